class PreviewError(Exception):
    """Base class for preview pipeline failures."""


class CompressionError(PreviewError):
    """Every rung of a compression ladder failed."""


class RendererUnavailableError(PreviewError):
    """The watermark renderer cannot run in this environment."""


class PreviewUnavailableError(PreviewError):
    """Not even a placeholder image could be produced."""
