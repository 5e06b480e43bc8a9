# src/renderer/errors.py
from typing import Optional


class ConversionError(Exception):
    """
    Base class for caller-visible conversion failures.
    `summary` is the short envelope message, `details` the underlying cause.
    """

    def __init__(self, summary: str, details: Optional[str] = None):
        super().__init__(summary if details is None else f"{summary}: {details}")
        self.summary = summary
        self.details = details


class InputError(ConversionError):
    """Missing, empty or undecodable payload. Reported before any processing starts."""


class UpstreamRenderingError(ConversionError):
    """The styled renderer, the text extractor or the PDF printer failed or timed out."""


class ResourceError(ConversionError):
    """A rendering session could not be released. Logged only, never surfaced."""
