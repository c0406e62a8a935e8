from __future__ import annotations

from paramdash.config import ConnectionSettings
from paramdash.constants import CALL_TIMEOUT_S
from paramdash.services.mock_client import MockParameterClient
from paramdash.services.ros_client import ParameterClient, RosParameterClient


def make_client(settings: ConnectionSettings, mock: bool = False) -> ParameterClient:
    """Client for the configured robot; mock mode serves the in-memory sample robot."""
    if mock:
        return MockParameterClient()
    host, port = settings.host_port
    return RosParameterClient(
        host=host,
        port=port,
        namespace=settings.namespace,
        timeout=CALL_TIMEOUT_S,
        secure=settings.uri.startswith("wss://"),
    )
