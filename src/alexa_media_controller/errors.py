"""Error taxonomy for the controller.

Every error is terminal for the current command. Callers tell them apart by type
and use ``exit_code`` and ``hint`` to report them.
"""

AUTH_HINT = "Run: amc auth"
REAUTH_HINT = "Try re-authenticating: amc auth"
AMBIGUOUS_HINT = "Specify one with -d <name> or set a default: amc default <name>"
DEVICES_HINT = "Run amc devices to list available devices."


class ControllerError(Exception):
    """Base class for all controller errors.

    Attributes:
        hint: Remediation shown to the user, if any.
        exit_code: Process exit code used by the CLI.
    """

    exit_code = 1

    def __init__(self, message: str, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint


class NotAuthenticated(ControllerError):
    """No stored credentials."""

    exit_code = 2

    def __init__(self, message: str = "Not authenticated.") -> None:
        super().__init__(message, hint=AUTH_HINT)


class ConnectionFailed(ControllerError):
    """Stored credentials were rejected or the connection could not be set up."""

    exit_code = 3

    def __init__(self, cause: BaseException | str) -> None:
        detail = str(cause) or type(cause).__name__
        super().__init__(f"Connection failed: {detail}", hint=REAUTH_HINT)
        self.cause = cause


class RemoteError(ControllerError):
    """A remote call failed after the session was established."""

    exit_code = 4

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class AmbiguousTarget(ControllerError):
    """More than one device qualifies and nothing picks one."""

    exit_code = 5

    def __init__(self, message: str = "Multiple devices found.") -> None:
        super().__init__(message, hint=AMBIGUOUS_HINT)


class DeviceNotFound(ControllerError):
    """The requested name matched no controllable device."""

    exit_code = 6

    def __init__(self, name: str | None, message: str | None = None) -> None:
        super().__init__(message or f'Device not found: "{name}".', hint=DEVICES_HINT)
        self.name = name
