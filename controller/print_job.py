from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum, auto
from pathlib import Path
from typing import Any, Mapping, Optional

from imaging.layout_spec import DEFAULT_LAYOUT_ID


class JobStatus(Enum):
    PENDING = auto()
    PROCESSING = auto()
    COMPLETED = auto()
    FAILED = auto()


class InvalidJobError(ValueError):
    """Raised when a submitted job payload cannot be turned into a PrintJob."""


def _parse_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


@dataclass(frozen=True)
class PrintOptions:
    """Passed straight through to the printer; the layout pipeline ignores them."""

    fit_to_page: bool = False
    copies: int = 1

    @classmethod
    def from_payload(cls, options: Optional[Mapping[str, Any]]) -> "PrintOptions":
        options = options or {}
        raw_copies = options.get("copies")
        if raw_copies is None or raw_copies == "":
            raw_copies = 1
        try:
            copies = int(raw_copies)
        except (TypeError, ValueError) as e:
            raise InvalidJobError(f"copies must be an integer (got {raw_copies!r})") from e
        if copies < 1:
            raise InvalidJobError(f"copies must be >= 1 (got {copies})")

        return cls(
            fit_to_page=_parse_bool(options.get("fitToPage", False)),
            copies=copies,
        )


@dataclass(frozen=True)
class PrintJob:
    job_id: str
    source_path: Path
    layout: str = DEFAULT_LAYOUT_ID
    options: PrintOptions = field(default_factory=PrintOptions)

    @classmethod
    def from_payload(cls, job_id: str, payload: Mapping[str, Any], source_path: Path) -> "PrintJob":
        """Build a job from a submitted document.

        The layout may sit at the top level or inside `options`; A5 when absent.
        """
        options = payload.get("options") or {}
        layout = payload.get("layout") or options.get("layout") or DEFAULT_LAYOUT_ID
        return cls(
            job_id=job_id,
            source_path=source_path,
            layout=str(layout),
            options=PrintOptions.from_payload(options),
        )


@dataclass
class JobRecord:
    """Mutable bookkeeping for one job, owned by the controller."""

    job: PrintJob
    status: JobStatus = JobStatus.PENDING
    result: Optional[str] = None  # "processed" | "fallback"
    error: Optional[str] = None
    submitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "jobId": self.job.job_id,
            "layout": self.job.layout,
            "status": self.status.name.lower(),
            "result": self.result,
            "error": self.error,
            "submittedAt": self.submitted_at.isoformat(),
            "completedAt": self.completed_at.isoformat() if self.completed_at else None,
        }
