"""
Print layout pipeline

Turns one uploaded photo into a print-ready A5 JPEG for a named layout.

Stages: normalize -> reconcile -> plan -> compose -> tag -> encode.

- Any recoverable failure between normalizing and tagging degrades to
  printing the untouched source file (status "fallback").
- Failing to read the source, or to write the artifact, is fatal.
- A slot rectangle outside the canvas is a programming error and is raised.
"""
from __future__ import annotations

import contextlib
import io
import logging
import os
import re
import time
import uuid
from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional, Tuple, Union

from PIL import Image

from imaging.color_profile import ColorProfileTagger, TaggedRaster
from imaging.compositor import compose
from imaging.errors import (
    EncodingError,
    FileSystemError,
    ImageLoadError,
    PlanningOverflowError,
)
from imaging.layout_spec import LayoutSpec, resolve_layout
from imaging.orientation import apply_exif_orientation, normalize_orientation
from imaging.pipeline_config import PipelineConfig
from imaging.reconcile import reconcile
from imaging.slot_planner import plan_slots

if TYPE_CHECKING:  # pragma: no cover
    from controller.print_job import PrintJob

logger = logging.getLogger(__name__)

_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9_.-]+")


class PipelineState(Enum):
    IDLE = auto()
    NORMALIZING = auto()
    RECONCILING = auto()
    PLANNING = auto()
    COMPOSITING = auto()
    TAGGING = auto()
    ENCODED = auto()
    FALLBACK = auto()
    FAILED = auto()


class OutcomeStatus(Enum):
    PROCESSED = "processed"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class PipelineOutcome:
    path: Path
    status: OutcomeStatus
    state: PipelineState
    layout: str
    rotated: bool = False
    error: Optional[str] = None

    @property
    def processed(self) -> bool:
        return self.status == OutcomeStatus.PROCESSED

    def to_dict(self) -> dict:
        return {
            "path": str(self.path),
            "status": self.status.value,
            "state": self.state.name,
            "layout": self.layout,
            "rotated": self.rotated,
            "error": self.error,
        }


def _to_rgb(img: Image.Image, background_color: Tuple[int, int, int]) -> Image.Image:
    """Flatten any alpha onto the background so transparent areas print white."""
    if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
        rgba = img.convert("RGBA")
        flat = Image.new("RGB", rgba.size, background_color)
        flat.paste(rgba, mask=rgba.getchannel("A"))
        return flat
    return img.convert("RGB")


@dataclass(frozen=True)
class SourceImage:
    """Raw bytes of the job's source file, read exactly once."""

    path: Path
    data: bytes

    @classmethod
    def read(cls, path: Path) -> "SourceImage":
        try:
            data = path.read_bytes()
        except OSError as e:
            raise FileSystemError(
                f"Cannot read source file: {path}",
                details={"state": PipelineState.FAILED.name},
            ) from e
        return cls(path=path, data=data)

    def decode(
            self,
            *,
            honor_exif_orientation: bool = True,
            background_color: Tuple[int, int, int] = (255, 255, 255),
    ) -> Image.Image:
        if not self.data:
            raise ImageLoadError(f"Source file is empty: {self.path}")

        try:
            with Image.open(io.BytesIO(self.data)) as opened:
                opened.load()
                img = apply_exif_orientation(opened) if honor_exif_orientation else opened
                return _to_rgb(img, background_color)
        except (OSError, ValueError, SyntaxError, Image.DecompressionBombError) as e:
            raise ImageLoadError(f"Failed to load image: {self.path}") from e


def _job_slug(job_id: str) -> str:
    return _UNSAFE_NAME_CHARS.sub("_", job_id)[:64] or "job"


class LayoutPipeline:
    """Runs one print job through the layout stages.

    An instance holds configuration only, so one pipeline can serve many
    concurrent jobs.
    """

    def __init__(self, config: PipelineConfig, tagger: Optional[ColorProfileTagger] = None):
        self._config = config
        self._tagger = tagger or ColorProfileTagger(config.icc_profile, dpi=config.dpi)

    @property
    def config(self) -> PipelineConfig:
        return self._config

    # ---------- Public API ----------

    def process_one(self, job: "PrintJob") -> PipelineOutcome:
        return self.process(job.source_path, job.layout, job_id=job.job_id)

    def process(
            self,
            source_path: Union[str, Path],
            layout_id: Optional[str] = None,
            *,
            job_id: Optional[str] = None,
    ) -> PipelineOutcome:
        job_id = job_id or uuid.uuid4().hex
        layout = resolve_layout(layout_id, self._config.fit_overrides)
        logger.info("Job %s: layout mode %s (%s)", job_id, layout.name, layout.fit.value)

        # Fatal: without the source there is nothing to fall back to.
        source = SourceImage.read(Path(source_path))

        state = PipelineState.IDLE
        rotated = False
        buffers: List[Image.Image] = []
        try:
            state = PipelineState.NORMALIZING
            img, rotated = self._normalize(source, layout)
            buffers.append(img)

            state = PipelineState.RECONCILING
            reconciled = reconcile(img, layout, self._config.background_color)
            buffers.append(reconciled)

            state = PipelineState.PLANNING
            plan = plan_slots(layout)

            state = PipelineState.COMPOSITING
            canvas = compose(
                plan=plan,
                image=reconciled,
                background_color=self._config.background_color,
            )
            buffers.append(canvas)

            state = PipelineState.TAGGING
            raster = self._tagger.tag(canvas)

            output_path = self._encode(raster, job_id=job_id, layout=layout)

        except (PlanningOverflowError, EncodingError):
            logger.error("Job %s failed in state %s", job_id, state.name)
            raise

        except Exception as e:
            logger.warning(
                "Job %s: layout processing failed in state %s, using original file instead",
                job_id,
                state.name,
                exc_info=True,
            )
            return PipelineOutcome(
                path=source.path,
                status=OutcomeStatus.FALLBACK,
                state=PipelineState.FALLBACK,
                layout=layout.name,
                rotated=rotated,
                error=str(e),
            )

        finally:
            for buffer in buffers:
                buffer.close()

        logger.info(
            "Job %s: %s ready at %s (rotated=%s)", job_id, layout.name, output_path, rotated
        )
        return PipelineOutcome(
            path=output_path,
            status=OutcomeStatus.PROCESSED,
            state=PipelineState.ENCODED,
            layout=layout.name,
            rotated=rotated,
        )

    # ---------- Stages ----------

    def _normalize(self, source: SourceImage, layout: LayoutSpec) -> Tuple[Image.Image, bool]:
        img = source.decode(
            honor_exif_orientation=self._config.honor_exif_orientation,
            background_color=self._config.background_color,
        )
        normalized, rotated = normalize_orientation(img, layout.orientation)
        if rotated:
            img.close()
        return normalized, rotated

    def _encode(self, raster: TaggedRaster, *, job_id: str, layout: LayoutSpec) -> Path:
        out_dir = self._config.output_dir
        unique = f"{_job_slug(job_id)}-{time.time_ns()}-{uuid.uuid4().hex[:8]}"
        final_path = out_dir / f"processed-{unique}-{layout.name}.jpg"
        part_path = out_dir / f".processed-{unique}.part"

        try:
            out_dir.mkdir(parents=True, exist_ok=True)
            raster.image.save(
                part_path,
                format="JPEG",
                quality=self._config.jpeg_quality,
                icc_profile=raster.icc_profile,
                dpi=raster.dpi,
            )
            os.replace(part_path, final_path)
        except (OSError, ValueError) as e:
            with contextlib.suppress(OSError):
                part_path.unlink(missing_ok=True)
            raise EncodingError(
                f"Failed to write print artifact: {final_path}",
                details={"state": PipelineState.FAILED.name},
            ) from e

        return final_path
