from __future__ import annotations

from typing import Any, Dict, Optional


class LayoutError(Exception):
    """Base class for failures inside the print layout pipeline."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class ImageLoadError(LayoutError):
    """Source bytes could not be decoded as a raster image."""


class ReconciliationError(LayoutError):
    """Dimension or ratio computation produced something unusable."""


class ColorProfileError(LayoutError):
    """The configured ICC profile could not be loaded."""


class PlanningOverflowError(LayoutError):
    """A slot rectangle left the canvas. Always a programming error."""


class EncodingError(LayoutError):
    """The final artifact could not be encoded or written."""


class FileSystemError(LayoutError):
    """The source file could not be read at all."""

