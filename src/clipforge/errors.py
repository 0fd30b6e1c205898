"""Custom exceptions for ClipForge."""


class ClipForgeError(Exception):
    """Base exception for ClipForge."""

    pass


class ValidationError(ClipForgeError):
    """An edit was rejected before any state changed."""

    reason = "invalid_value"

    def __init__(self, message: str, reason: str | None = None) -> None:
        super().__init__(message)
        if reason is not None:
            self.reason = reason


class InvalidTrimError(ValidationError):
    """In/out points are out of order or outside the media duration."""

    reason = "invalid_trim"


class OverlapError(ValidationError):
    """A clip would overlap another clip on the same track."""

    reason = "overlap"


class NotFoundError(ClipForgeError):
    """Unknown track, clip, media or job id."""

    pass


class ExportValidationError(ClipForgeError):
    """Timeline cannot be exported in its current state."""

    pass


class NoMainTrackError(ExportValidationError):
    """No visible main track holds any clips."""

    pass


class MissingMediaError(ExportValidationError):
    """A timeline clip references media that cannot be resolved."""

    pass


class EmptyTimelineError(ExportValidationError):
    """Timeline duration is zero."""

    pass


class ExportInProgressError(ClipForgeError):
    """Another export is still running."""

    pass


class ExternalToolError(ClipForgeError):
    """FFmpeg execution failed."""

    def __init__(self, message: str, returncode: int | None = None, diagnostics: str = "") -> None:
        super().__init__(message)
        self.returncode = returncode
        self.diagnostics = diagnostics


class ExportIOError(ClipForgeError):
    """Output could not be written or a partial file could not be removed."""

    pass
