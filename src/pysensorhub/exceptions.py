"""Custom exception hierarchy for pysensorhub.

Every error that can travel over the channel carries a stable negative
``code``. The broker places that code in the ``correlation_arg`` of the
``ERROR`` reply and the client maps it back to the same class.
"""

from __future__ import annotations


class HubError(Exception):
    """Base exception for all pysensorhub errors."""

    code: int = -1

    def __init__(self, message: str, *, request_type: int | None = None) -> None:
        self.request_type = request_type
        super().__init__(message)


class HubConfigError(HubError):
    """Invalid or missing configuration."""


class HubTransportError(HubError):
    """A snapshot sink could not deliver (network failure, non-2xx, broker refused)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class HubValidationError(HubError):
    """A command parameter is out of range or of the wrong type.

    Raised before any state is touched, so a rejected command never leaves a
    partial mutation behind.
    """

    code = -2


class HubUnavailableError(HubError):
    """The platform capability needed by a command is absent.

    For example no cellular radio source is attached. The command is failed;
    callers must retry explicitly once the capability exists.
    """

    code = -3


class HubPropagationError(HubError):
    """A platform collaborator raised while serving a command."""

    code = -4


class HubChannelError(HubError):
    """Delivery to one specific client channel failed (closed or full)."""

    code = -5

    def __init__(self, message: str, *, client_id: int | None = None) -> None:
        self.client_id = client_id
        super().__init__(message)


class HubProtocolError(HubError):
    """Unknown message type or malformed payload."""

    code = -6


_ERRORS_BY_CODE: dict[int, type[HubError]] = {
    cls.code: cls
    for cls in (
        HubValidationError,
        HubUnavailableError,
        HubPropagationError,
        HubChannelError,
        HubProtocolError,
    )
}


def error_for_code(code: int, message: str, *, request_type: int | None = None) -> HubError:
    """Rebuild the exception matching an ``ERROR`` reply code."""
    cls = _ERRORS_BY_CODE.get(code, HubError)
    if cls is HubChannelError:
        return HubChannelError(message)
    return cls(message, request_type=request_type)
