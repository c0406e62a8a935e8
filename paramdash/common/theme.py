from __future__ import annotations

import logging
from typing import Literal, cast, get_args

from nicegui import app, ui

ThemeMode = Literal["light", "dark", "system"]


def get_palette(mode: ThemeMode) -> dict[str, str]:
    """Palette tokens for the given mode; "system" uses the light tokens."""
    if mode == "dark":
        return {
            "primary": "#1F538D",
            "secondary": "#14375E",
            "background": "#1A1A1A",
            "surface": "#212121",
            "text": "#D6D6D6",
            "muted": "#949A9F",
            # diff row backgrounds
            "diff_changed": "rgba(49, 204, 236, 0.16)",
            "diff_added": "rgba(33, 186, 69, 0.16)",
            "diff_removed": "rgba(219, 40, 40, 0.16)",
            "accent": "#22D3EE",
            "positive": "#21BA45",
            "negative": "#DB2828",
            "info": "#31CCEC",
            "warning": "#F2C037",
        }
    # light
    return {
        "primary": "#3B8ED0",
        "secondary": "#36719F",
        "background": "#EBEBEB",
        "surface": "#F5F5F5",
        "text": "#1A1A1A",
        "muted": "#6B7280",
        "diff_changed": "rgba(59, 142, 208, 0.14)",
        "diff_added": "rgba(33, 186, 69, 0.14)",
        "diff_removed": "rgba(219, 40, 40, 0.12)",
        "accent": "#22D3EE",
        "positive": "#21BA45",
        "negative": "#DB2828",
        "info": "#31CCEC",
        "warning": "#F2C037",
    }


def _inject_css_vars(p: dict[str, str]) -> None:
    ui.add_css(
        f"""
:root {{
  --pd-bg: {p["background"]};
  --pd-surface: {p["surface"]};
  --pd-text: {p["text"]};
  --pd-muted: {p["muted"]};
  --pd-diff-changed: {p["diff_changed"]};
  --pd-diff-added: {p["diff_added"]};
  --pd-diff-removed: {p["diff_removed"]};
}}

body, .q-page {{ background: var(--pd-bg); color: var(--pd-text); }}
"""
    )


def apply_theme(mode: ThemeMode) -> None:
    """Set Quasar colors, dark mode and the CSS variables for the mode."""
    pal = get_palette(mode)
    ui.colors(
        primary=pal["primary"],
        secondary=pal["secondary"],
        accent=pal["accent"],
        positive=pal["positive"],
        negative=pal["negative"],
        info=pal["info"],
        warning=pal["warning"],
    )
    if mode == "system":
        # Quasar follows the browser preference
        ui.dark_mode().auto()
    elif mode == "dark":
        ui.dark_mode().enable()
    else:
        ui.dark_mode().disable()
    logging.debug(f"Applied theme: {mode}")
    _inject_css_vars(pal)


def set_theme(mode: ThemeMode) -> ThemeMode:
    """Persist, set and apply theme mode."""
    app.storage.general["theme_mode"] = mode
    apply_theme(mode)
    return mode


def get_theme() -> ThemeMode:
    """Return current requested mode ('light'/'dark'/'system')."""
    mode = app.storage.general.get("theme_mode", "system")
    if isinstance(mode, str) and mode in get_args(ThemeMode):
        return cast("ThemeMode", mode)
    return cast("ThemeMode", "system")


def inject_layout_css() -> None:
    """Tree indentation, type badges and diff row colors."""
    ui.add_css(
        """
.param-tree-group { cursor: pointer; user-select: none; }
.param-type-badge {
  font-size: 0.7rem;
  padding: 0 6px;
  border-radius: 4px;
  background: rgba(127, 127, 127, 0.18);
}
.param-value { font-family: monospace; word-break: break-all; }
.param-readonly { opacity: 0.7; font-style: italic; }

.diff-changed { background: var(--pd-diff-changed); }
.diff-added { background: var(--pd-diff-added); }
.diff-removed { background: var(--pd-diff-removed); }
.diff-value { font-family: monospace; white-space: pre-wrap; word-break: break-word; }

@media (max-width: 600px) {
  .history-layout { flex-direction: column; }
  .history-files, .history-detail { width: 100%; }
}
"""
    )
