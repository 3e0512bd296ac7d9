from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional, Tuple, Union

from imaging.color_profile import ADOBE_RGB_PROFILE
from imaging.layout_spec import FitPolicy
from imaging.pipeline_config import PipelineConfig

STACKED_LAYOUTS = ("two4x6", "twoA6")


class ConfigurationError(ValueError):
    """Raised when the station cannot be configured from its settings."""


@dataclass(frozen=True)
class StationConfig:
    """Settings for one print station (one printer, one spool directory)."""

    printer_id: str
    lp_path: str = "lp"
    media: Optional[str] = "A5"
    spool_dir: Path = Path("/tmp/print-station/spool")
    output_dir: Path = Path("/tmp/print-station/out")
    icc_profile: Union[str, Path] = ADOBE_RGB_PROFILE
    port: int = 3001
    log_level: str = "INFO"
    delete_source_after_print: bool = True
    two_slot_fit: FitPolicy = FitPolicy.PAD
    extra_lp_args: Tuple[str, ...] = field(default_factory=tuple)
    job_history: int = 200

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "StationConfig":
        env = os.environ if environ is None else environ

        printer_id = (env.get("PRINTER_ID") or "").strip()
        if not printer_id:
            raise ConfigurationError("PRINTER_ID is not set")

        try:
            port = int(env.get("PORT", "3001"))
        except ValueError as e:
            raise ConfigurationError(f"PORT must be an integer (got {env.get('PORT')!r})") from e

        try:
            two_slot_fit = FitPolicy.parse(env.get("TWO_SLOT_FIT", "pad"))
        except ValueError as e:
            raise ConfigurationError(str(e)) from e

        try:
            job_history = int(env.get("JOB_HISTORY", "200"))
        except ValueError as e:
            raise ConfigurationError(f"JOB_HISTORY must be an integer (got {env.get('JOB_HISTORY')!r})") from e
        if job_history < 0:
            raise ConfigurationError(f"JOB_HISTORY must be >= 0 (got {job_history})")

        base = Path(env.get("PRINT_STATION_DIR", "/tmp/print-station"))
        return cls(
            printer_id=printer_id,
            lp_path=env.get("LP_PATH", "lp"),
            media=env.get("PRINT_MEDIA", "A5") or None,
            spool_dir=Path(env.get("SPOOL_DIR", str(base / "spool"))),
            output_dir=Path(env.get("OUTPUT_DIR", str(base / "out"))),
            icc_profile=env.get("ICC_PROFILE", ADOBE_RGB_PROFILE),
            port=port,
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
            delete_source_after_print=env.get("KEEP_SOURCE", "").lower() not in ("1", "true", "yes"),
            two_slot_fit=two_slot_fit,
            extra_lp_args=tuple((env.get("LP_EXTRA_ARGS") or "").split()),
            job_history=job_history,
        )

    def to_pipeline_config(self) -> PipelineConfig:
        return PipelineConfig(
            output_dir=self.output_dir,
            icc_profile=self.icc_profile,
            fit_overrides={name: self.two_slot_fit for name in STACKED_LAYOUTS},
        )
