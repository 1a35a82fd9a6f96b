"""Error taxonomy for a generate operation.

Every failure surfaces as a single RemixError subclass carrying a short tag,
so the CLI can report "Error [tag]: message" without inspecting types.
"""


class RemixError(Exception):
    """Base class for all errors raised by dialogue_remix."""

    tag = "error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class InputError(RemixError):
    """Caption handoff file is missing, unreadable, empty or malformed."""

    tag = "input"


class MissingSourceError(RemixError):
    """The original recording is required but absent or undecodable."""

    tag = "missing-source"


class ExternalServiceError(RemixError):
    """A synthesis or transcription call failed.

    The provider's own message is kept verbatim in ``message``.
    """

    tag = "external-service"


class EncodeError(RemixError):
    """Serializing or writing an output file failed."""

    tag = "encode"
