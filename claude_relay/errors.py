"""Error taxonomy shared by the patch engine, the deployer and the HTTP layer."""

from __future__ import annotations

# deploy step names carried on RelayError.step
LOCATED = "located"
BACKED_UP = "backed_up"
PATCHED = "patched"
SETTINGS_WRITTEN = "settings_written"
RESTORED = "restored"


class RelayError(Exception):
    """Base error. `step` names the deploy step that failed, when known."""

    def __init__(self, message: str, *, step: str | None = None) -> None:
        super().__init__(message)
        self.step = step


class NotFoundError(RelayError):
    """Target file or backup is missing."""


class FormatChangedError(RelayError):
    """Anchor or every discovery signature failed to match."""


class IOFailure(RelayError):
    """Read, write or permission error on a local file."""


class RemoteTransportError(RelayError):
    """Remote shell invocation failed or exited non-zero."""

    def __init__(self, message: str, *, exit_code: int | None = None, step: str | None = None) -> None:
        super().__init__(message, step=step)
        self.exit_code = exit_code


class ConfigInvalid(RelayError):
    """Persisted configuration could not be parsed."""


class UpstreamError(RelayError):
    """The relay endpoint was unreachable or answered with an error."""


class DeployError(RelayError):
    def __init__(self, step: str, cause: Exception) -> None:
        super().__init__(f"{step}: {cause}", step=step)
        self.cause = cause
