"""Error taxonomy for the edition pipeline"""


class EpaperError(Exception):
    """Base class for every failure the pipeline reports to its caller."""


class EmptySelectionError(EpaperError):
    """No published article qualifies for the requested date and filters."""


class CompositionError(EpaperError):
    """Input violates the composer's contract (empty selection, missing id or title)."""


class RasterizationError(EpaperError):
    """A page could not be captured as a bitmap."""


class SurfaceDetachedError(RasterizationError):
    """The preview surface was closed, or the page does not belong to it."""


class AssemblyError(EpaperError):
    """The PDF could not be built from the page snapshots."""


class PublishError(EpaperError):
    """Upload or archive-record write failed; the PDF is kept for a manual retry."""

    def __init__(self, message: str, pdf: bytes, key: str | None = None):
        super().__init__(message)
        self.pdf = pdf
        self.key = key


class DuplicateEditionError(EpaperError):
    """A published edition already exists for the date."""


class GenerationInProgressError(EpaperError):
    """Another generation holds the single-flight lock."""
