from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Tuple, Union

from imaging.color_profile import ADOBE_RGB_PROFILE
from imaging.layout_spec import DPI, FitPolicy

JPEG_QUALITY = 95


@dataclass(frozen=True)
class PipelineConfig:
    """Everything the layout pipeline needs, passed in at construction."""

    output_dir: Path
    icc_profile: Union[str, Path] = ADOBE_RGB_PROFILE
    dpi: int = DPI
    jpeg_quality: int = JPEG_QUALITY
    background_color: Tuple[int, int, int] = (255, 255, 255)
    honor_exif_orientation: bool = True

    # layout name -> policy, e.g. {"two4x6": FitPolicy.CROP}
    fit_overrides: Mapping[str, FitPolicy] = field(default_factory=dict)
