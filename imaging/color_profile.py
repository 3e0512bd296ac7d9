from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple, Union

from PIL import Image, ImageCms

from imaging.errors import ColorProfileError
from imaging.layout_spec import DPI

logger = logging.getLogger(__name__)

ADOBE_RGB_PROFILE = "/usr/share/color/icc/AdobeRGB1998.icc"
SRGB_PROFILE = "srgb"

# ICC header field holding the profile creation date and time
_ICC_DATETIME = slice(24, 36)


@dataclass(frozen=True)
class TaggedRaster:
    image: Image.Image
    icc_profile: bytes
    dpi: Tuple[int, int]


def load_icc_profile(profile: Union[str, Path]) -> bytes:
    """Return raw ICC bytes for `profile`.

    "srgb" selects the built-in standard-gamut profile; anything else is a
    path to an .icc file.
    """
    if str(profile).lower() == SRGB_PROFILE:
        return _builtin_srgb()

    path = Path(profile)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise ColorProfileError(f"Failed to load ICC profile: {path}") from e
    if not data:
        raise ColorProfileError(f"ICC profile is empty: {path}")
    return data


def _builtin_srgb() -> bytes:
    # lcms stamps the current time into generated profiles.
    data = bytearray(ImageCms.ImageCmsProfile(ImageCms.createProfile("sRGB")).tobytes())
    data[_ICC_DATETIME] = bytes(12)
    return bytes(data)


class ColorProfileTagger:
    """Attaches the configured ICC profile and print density to a canvas.

    Pixel values are never converted; only metadata for the encoder is added.
    The profile is read once per tagger.
    """

    def __init__(self, profile: Union[str, Path] = ADOBE_RGB_PROFILE, dpi: int = DPI):
        self._profile = profile
        self._dpi = dpi
        self._icc_bytes: Optional[bytes] = None

    @property
    def icc_bytes(self) -> bytes:
        if self._icc_bytes is None:
            self._icc_bytes = load_icc_profile(self._profile)
            logger.debug("Loaded ICC profile %s (%d bytes)", self._profile, len(self._icc_bytes))
        return self._icc_bytes

    def tag(self, canvas: Image.Image) -> TaggedRaster:
        return TaggedRaster(
            image=canvas,
            icc_profile=self.icc_bytes,
            dpi=(self._dpi, self._dpi),
        )
