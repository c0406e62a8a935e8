from __future__ import annotations

import logging
import os
from pathlib import Path

# Repository root
REPO_ROOT = Path(__file__).resolve().parent.parent

# ROS 2 parameter documentation (help button)
ROS_PARAMETERS_DOC_URL = "https://docs.ros.org/en/rolling/Concepts/Basic/About-Parameters.html"


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default) in ("1", "true", "True", "yes", "YES", "on")


# Robot target (rosbridge websocket the dashboard connects to)
ROSBRIDGE_URI: str = os.getenv("PARAMDASH_ROSBRIDGE_URI", "ws://localhost:9090")
ROBOT_NAMESPACE: str = os.getenv("PARAMDASH_NAMESPACE", "")
AUTO_CONNECT: bool = _env_flag("PARAMDASH_AUTO_CONNECT", "1")
# Serve an in-memory robot instead of connecting to rosbridge
MOCK_MODE: bool = _env_flag("PARAMDASH_MOCK", "0")
# Seconds to wait for a service response; 0 waits forever
CALL_TIMEOUT_S: float = float(os.getenv("PARAMDASH_CALL_TIMEOUT", "10"))
# param_manager reads the file path from a topic before the service call
TOPIC_SETTLE_S: float = float(os.getenv("PARAMDASH_TOPIC_SETTLE", "0.5"))

# Webserver bind (NiceGUI host/port)
SERVER_HOST: str = os.getenv("PARAMDASH_SERVER_IP", "0.0.0.0")
SERVER_PORT: int = int(os.getenv("PARAMDASH_SERVER_PORT", "8080"))

# Durable storage keys
SELECTION_STORAGE_KEY = "selected_parameters"
URI_STORAGE_KEY = "ros_connection_uri"
NAMESPACE_STORAGE_KEY = "ros_robot_namespace"

# param_manager node interface (history files)
PARAM_MANAGER = "/param_manager"


def _resolve_log_level() -> int:
    s = os.getenv("PARAMDASH_LOG_LEVEL")
    if s:
        name = s.strip().upper()
        mapping = {
            "DEBUG": logging.DEBUG,
            "INFO": logging.INFO,
            "WARNING": logging.WARNING,
            "ERROR": logging.ERROR,
            "CRITICAL": logging.CRITICAL,
        }
        return mapping.get(name, logging.WARNING)
    else:
        return logging.WARNING


LOG_LEVEL: int = _resolve_log_level()
