from dataclasses import dataclass

from nicegui import binding


# Shared state singletons for cross-module access
@binding.bindable_dataclass
class ConnectionState:
    connected: bool = False
    connecting: bool = False
    status: str = "Disconnected"  # Connected | Connecting... | Connection Error | Disconnected
    uri: str = ""
    namespace: str = ""
    mock: bool = False


@binding.bindable_dataclass
class ParameterStats:
    # Derived counters for footer/header bindings
    total: int = 0
    selected: int = 0
    history_files: int = 0
    last_refresh_ts: float = 0.0


@dataclass
class EditState:
    name: str | None = None  # parameter currently being edited inline
    text: str = ""


# Module-level singletons
connection_state = ConnectionState()
parameter_stats = ParameterStats()
