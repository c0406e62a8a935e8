import argparse
import contextlib
import logging
import os

from nicegui import app as ng_app
from nicegui import ui
from nicegui.elements.tooltip import Tooltip

from paramdash.common.logging_config import TRACE, configure_logging
from paramdash.common.theme import apply_theme, get_theme, inject_layout_css
from paramdash.config import ConnectionSettings, normalize_namespace
from paramdash.constants import (
    LOG_LEVEL,
    MOCK_MODE,
    ROBOT_NAMESPACE,
    ROS_PARAMETERS_DOC_URL,
    ROSBRIDGE_URI,
    SELECTION_STORAGE_KEY,
    SERVER_HOST,
    SERVER_PORT,
)
from paramdash.core.selection import SelectionStore
from paramdash.pages.history import HistoryPage
from paramdash.pages.parameters import ParametersPage
from paramdash.pages.settings import SettingsPage
from paramdash.services.history import HistorySession
from paramdash.services.robot_client import make_client
from paramdash.services.storage import NiceGuiStore
from paramdash.services.tuning import TuningSession
from paramdash.state import connection_state, parameter_stats

# Runtime configuration (resolved later from CLI/env)
RUNTIME_SERVER_HOST = SERVER_HOST
RUNTIME_SERVER_PORT = SERVER_PORT
RUNTIME_DEFAULTS = ConnectionSettings(uri=ROSBRIDGE_URI, namespace=normalize_namespace(ROBOT_NAMESPACE))
RUNTIME_MOCK = MOCK_MODE

# ------------------------ Global state ------------------------

store = NiceGuiStore()
selection = SelectionStore(store, key=SELECTION_STORAGE_KEY)
_initial = make_client(RUNTIME_DEFAULTS, mock=RUNTIME_MOCK)
tuning_session = TuningSession(_initial, selection)
history_session = HistorySession(_initial)

# Widgets of the most recently opened page
status_label: ui.label | None = None
status_tooltip: Tooltip | None = None
parameters_page_instance: ParametersPage | None = None
history_page_instance: HistoryPage | None = None
settings_page_instance: SettingsPage | None = None

_STATUS_COLORS = {
    "Connected": "#21BA45",
    "Connecting...": "#F2C037",
    "Connection Error": "#DB2828",
    "Disconnected": "#9E9E9E",
}

# --------------- Robot connection ---------------


def _set_status(status: str, detail: str = "") -> None:
    connection_state.status = status
    if status_label:
        status_label.style(f"color: {_STATUS_COLORS.get(status, '#9E9E9E')}")
        if status_tooltip:
            status_tooltip.text = detail or status


async def connect_robot(settings: ConnectionSettings | None = None) -> None:
    """(Re)connect both sessions to the robot described by settings (stored settings by default)."""
    settings = settings or ConnectionSettings.load(store, defaults=RUNTIME_DEFAULTS)
    await disconnect_robot()
    client = make_client(settings, mock=RUNTIME_MOCK)
    tuning_session.client = client
    history_session.client = client
    connection_state.uri = settings.uri
    connection_state.namespace = settings.namespace
    connection_state.mock = RUNTIME_MOCK
    connection_state.connecting = True
    _set_status("Connecting...")
    try:
        await client.connect()
    except Exception as e:
        logging.error("Connection to %s failed: %s", settings.uri, e)
        connection_state.connected = False
        _set_status("Connection Error", str(e))
        return
    finally:
        connection_state.connecting = False
    connection_state.connected = True
    target = "mock robot" if RUNTIME_MOCK else f"{settings.uri} {settings.namespace}".strip()
    _set_status("Connected", target)
    logging.info("Connected to %s", target)


async def disconnect_robot() -> None:
    client = tuning_session.client
    if client.connected:
        try:
            await client.close()
        except Exception as e:
            logging.warning("Error while closing connection: %s", e)
        else:
            logging.info("Disconnected")
    connection_state.connected = False
    _set_status("Disconnected")


async def refresh_pages() -> None:
    """Reload live parameters and history files into the open page."""
    if not connection_state.connected:
        return
    if parameters_page_instance:
        await parameters_page_instance.refresh()
    if history_page_instance:
        await history_page_instance.refresh_files()


async def reconnect(settings: ConnectionSettings | None = None) -> None:
    await connect_robot(settings)
    if connection_state.connected:
        await refresh_pages()
    else:
        ui.notify(f"Could not connect to {connection_state.uri}", color="negative")


async def handle_disconnect() -> None:
    await disconnect_robot()
    ui.notify("Disconnected", color="primary")


# --------------- Layout ---------------


def build_header_and_tabs() -> None:
    global parameters_page_instance, history_page_instance, settings_page_instance
    parameters_page_instance = ParametersPage(tuning_session)
    history_page_instance = HistoryPage(history_session, tuning_session)
    settings_page_instance = SettingsPage(store, reconnect)

    # Header with left navigation tabs, centered title, right help
    with (
        ui.header().classes("p-0"),
        ui.row().classes("w-full items-center justify-between"),
    ):
        with ui.tabs() as main_tabs:
            parameters_tab = ui.tab("Parameters")
            history_tab = ui.tab("History")
            settings_tab = ui.tab("Settings")
        ui.label("Robot Parameter Dashboard").classes("text-sm text-center")
        with ui.row().classes("items-center gap-2 pr-2"):
            ui.button(
                "?",
                on_click=lambda: ui.run_javascript(f"window.open('{ROS_PARAMETERS_DOC_URL}', '_blank')"),
            ).props("round unelevated")

    with ui.tab_panels(main_tabs, value=parameters_tab).classes("w-full"):
        with ui.tab_panel(parameters_tab):
            parameters_page_instance.build()
        with ui.tab_panel(history_tab):
            history_page_instance.build()
        with ui.tab_panel(settings_tab):
            settings_page_instance.build()


def build_footer() -> None:
    # Footer: connection status, counters, connect/disconnect
    global status_label, status_tooltip
    with ui.footer().classes("justify-between items-center px-3 py-1"):
        with ui.row().classes("items-center gap-4"):
            status_label = ui.label().classes("text-sm").bind_text_from(connection_state, "status")
            with status_label:
                status_tooltip = ui.tooltip(connection_state.status)
            _set_status(connection_state.status)
            ui.label("|").classes("text-sm text-[var(--pd-muted)]")
            ui.label().classes("text-sm").bind_text_from(
                connection_state, "uri", backward=lambda u: "mock robot" if connection_state.mock else u
            )
            ui.label("|").classes("text-sm text-[var(--pd-muted)]")
            ui.label().classes("text-sm").bind_text_from(
                parameter_stats, "total", backward=lambda n: f"{n} parameters"
            )
            ui.label().classes("text-sm").bind_text_from(
                parameter_stats, "history_files", backward=lambda n: f"{n} history files"
            )
        with ui.row().classes("items-center gap-2"):
            ui.button("Connect", on_click=lambda: reconnect()).bind_enabled_from(
                connection_state, "connecting", backward=lambda v: not v
            )
            ui.button("Disconnect", on_click=handle_disconnect).props("color=negative").bind_enabled_from(
                connection_state, "connected"
            )


async def _initial_load() -> None:
    # Evaluate runtime env flag (allow overriding constants at test/runtime)
    auto_connect = os.getenv("PARAMDASH_AUTO_CONNECT", "1").lower() in ("1", "true", "yes", "on")
    if auto_connect and not connection_state.connected and not connection_state.connecting:
        await connect_robot()
    await refresh_pages()


@ui.page("/")
async def index() -> None:
    apply_theme(get_theme())
    ui.query(".nicegui-content").classes("p-0")
    inject_layout_css()

    build_header_and_tabs()
    build_footer()

    ui.timer(0.1, _initial_load, once=True)


def _app_startup() -> None:
    # general storage is only readable once NiceGUI has started
    selection.reload()
    connection_state.mock = RUNTIME_MOCK
    logging.debug("Restored selection for %d parameters", len(selection.as_dict()))


async def _app_shutdown() -> None:
    with contextlib.suppress(Exception):
        await tuning_session.client.close()


ng_app.on_startup(_app_startup)
ng_app.on_shutdown(_app_shutdown)


if __name__ in {"__main__", "__mp_main__"}:
    # CLI: web bind, robot target, and log level
    parser = argparse.ArgumentParser(description="Robot Parameter Dashboard")
    parser.add_argument("--host", default=SERVER_HOST, help="Webserver bind host")
    parser.add_argument("--port", type=int, default=SERVER_PORT, help="Webserver bind port")
    parser.add_argument(
        "--rosbridge-uri",
        default=ROSBRIDGE_URI,
        help="rosbridge websocket to connect to (a URI saved in the Settings tab wins)",
    )
    parser.add_argument(
        "--namespace",
        default=ROBOT_NAMESPACE,
        help="Namespace of the node whose parameters are tuned",
    )
    parser.add_argument(
        "--mock",
        action="store_true",
        default=MOCK_MODE,
        help="Serve an in-memory sample robot instead of connecting (overrides PARAMDASH_MOCK)",
    )
    parser.add_argument(
        "--log-level",
        choices=["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set log level",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity; -v=INFO, -vv=DEBUG, -vvv=TRACE",
    )
    parser.add_argument("-q", "--quiet", action="store_true", help="Enable WARNING logging")
    args, _ = parser.parse_known_args()

    # Resolve runtime values
    RUNTIME_SERVER_HOST = args.host
    RUNTIME_SERVER_PORT = int(args.port)
    RUNTIME_DEFAULTS.uri = args.rosbridge_uri
    RUNTIME_DEFAULTS.namespace = normalize_namespace(args.namespace)
    RUNTIME_MOCK = bool(args.mock)

    # Resolve log level priority: explicit --log-level > -v/-q > env default from constants
    if args.log_level:
        if args.log_level == "TRACE":
            RUNTIME_LOG_LEVEL = TRACE
        else:
            RUNTIME_LOG_LEVEL = getattr(logging, args.log_level)
    elif args.verbose >= 3:
        RUNTIME_LOG_LEVEL = TRACE
    elif args.verbose >= 2:
        RUNTIME_LOG_LEVEL = logging.DEBUG
    elif args.verbose == 1:
        RUNTIME_LOG_LEVEL = logging.INFO
    elif args.quiet:
        RUNTIME_LOG_LEVEL = logging.WARNING
    else:
        RUNTIME_LOG_LEVEL = LOG_LEVEL

    configure_logging(RUNTIME_LOG_LEVEL)
    logging.info(f"Webserver bind: host={RUNTIME_SERVER_HOST} port={RUNTIME_SERVER_PORT}")
    if RUNTIME_MOCK:
        logging.info("Mock mode: serving the in-memory sample robot")
    else:
        logging.info(f"Robot target: {RUNTIME_DEFAULTS.uri} namespace={RUNTIME_DEFAULTS.namespace or '/'}")

    ui.run(
        title="Robot Parameter Dashboard",
        host=RUNTIME_SERVER_HOST,
        port=RUNTIME_SERVER_PORT,
        reload=False,
        show=False,
        storage_secret=os.getenv("PARAMDASH_STORAGE_SECRET"),
    )
