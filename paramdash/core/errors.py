from __future__ import annotations


class ParamDashError(Exception):
    """Base class for errors raised by the parameter model and its services."""


class MalformedHierarchy(ParamDashError):
    """A dotted name is both a leaf and the prefix of other leaves.

    The whole parameter set is unusable for that fetch/build cycle.
    """

    def __init__(self, path: str, detail: str = "") -> None:
        self.path = path
        msg = f"Malformed parameter hierarchy at '{path}'"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)


class InvalidParameterName(ParamDashError, ValueError):
    """Parameter names must be non-empty strings without control characters."""


class InvalidEditValue(ParamDashError, ValueError):
    """Edited text could not be converted to the parameter's stored type."""


class ReadOnlyParameter(ParamDashError):
    """The parameter holds a value of unknown type and cannot be edited."""


class NothingSelected(ParamDashError):
    """A batch save was requested with no parameter selected."""


class RemoteCallFailure(ParamDashError):
    """The robot rejected or failed to answer a service call."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)
