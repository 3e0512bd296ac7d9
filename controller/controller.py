"""
Print station controller

Single owner of job bookkeeping and printer health.

Goals:
- Every submitted job runs in its own worker thread (one pipeline call each)
- A failed layout step still prints: the pipeline falls back to the original file
- A job only fails when nothing printable exists or the printer rejects it
- Temporary files of a job are removed on every exit path
"""

import logging
import threading
from collections import Counter, deque
from datetime import datetime, timezone
from pathlib import Path
from typing import Deque, Dict, Optional

from controller.health import HealthStatus, HealthCode, HealthLevel
from controller.print_job import JobRecord, JobStatus, PrintJob
from controller.printer_base import Printer, PrinterError
from imaging.pipeline import LayoutPipeline, PipelineOutcome

logger = logging.getLogger(__name__)

DEFAULT_JOB_HISTORY = 200


class PrintController:
    def __init__(
            self,
            pipeline: LayoutPipeline,
            printer: Printer,
            *,
            delete_source: bool = True,
            job_history: int = DEFAULT_JOB_HISTORY,
    ):
        self._pipeline = pipeline
        self._printer = printer
        self._delete_source = delete_source

        # Job registry
        self._jobs_lock = threading.Lock()
        self._jobs: Dict[str, JobRecord] = {}
        self._workers: Dict[str, threading.Thread] = {}
        # Finished job ids, oldest first; only the newest `job_history` are kept
        self._job_history = job_history
        self._finished: Deque[str] = deque()

        # Health
        self._health_lock = threading.Lock()
        self._health_status = HealthStatus.ok()

        self._running = False

    # ---------- Lifecycle ----------

    def start(self):
        self._running = True

        # Best-effort check. A missing spooler is reported, jobs are still accepted.
        try:
            self._printer.preflight()
            self._mark_printer_ok()
        except PrinterError as e:
            self._set_printer_error(HealthCode.PRINTER_UNAVAILABLE, str(e))

        logger.info("Print controller started for %s", self._printer.name)

    def stop(self):
        self._running = False

    # ---------- Public API ----------

    def submit(self, job: PrintJob) -> JobRecord:
        """Register `job` and process it on a new worker thread."""
        record = self._register(job)

        worker = threading.Thread(
            target=self.process_job,
            args=(job,),
            name=f"print-job-{job.job_id}",
            daemon=True,
        )
        with self._jobs_lock:
            self._workers[job.job_id] = worker
        worker.start()
        return record

    def process_job(self, job: PrintJob) -> JobRecord:
        """Run one job to completion on the calling thread."""
        record = self._register(job, allow_existing=True)
        self._set_job_status(job.job_id, JobStatus.PROCESSING)
        logger.info("Processing job %s (layout=%s)", job.job_id, job.layout)

        outcome: Optional[PipelineOutcome] = None
        try:
            outcome = self._pipeline.process_one(job)
            self._printer.print_file(
                outcome.path,
                copies=job.options.copies,
                job_name=f"print-{job.job_id}",
                fit_to_page=job.options.fit_to_page,
            )

        except PrinterError as e:
            self._set_printer_error(HealthCode.PRINT_FAILED, str(e))
            self._finish(job.job_id, JobStatus.FAILED, outcome, error=str(e))

        except Exception as e:
            # Keep the station alive; the job record carries the reason.
            logger.exception("Job %s failed", job.job_id)
            self._finish(job.job_id, JobStatus.FAILED, outcome, error=str(e) or type(e).__name__)

        else:
            self._mark_printer_ok()
            self._finish(job.job_id, JobStatus.COMPLETED, outcome)
            logger.info("Job %s completed (%s)", job.job_id, outcome.status.value)

        finally:
            self._cleanup(job, outcome)

        return record

    def wait(self, job_id: str, timeout: Optional[float] = None) -> None:
        with self._jobs_lock:
            worker = self._workers.get(job_id)
        if worker is not None:
            worker.join(timeout)

    def get_job(self, job_id: str) -> Optional[dict]:
        with self._jobs_lock:
            record = self._jobs.get(job_id)
            return record.to_dict() if record else None

    def get_status(self) -> dict:
        with self._jobs_lock:
            counts = Counter(record.status.name.lower() for record in self._jobs.values())
        return {
            "printerId": self._printer.name,
            "status": "running" if self._running else "stopped",
            "jobs": {status.name.lower(): counts.get(status.name.lower(), 0) for status in JobStatus},
        }

    def get_health(self) -> HealthStatus:
        with self._health_lock:
            return self._health_status

    # ---------- Job bookkeeping ----------

    def _register(self, job: PrintJob, *, allow_existing: bool = False) -> JobRecord:
        with self._jobs_lock:
            existing = self._jobs.get(job.job_id)
            if existing is not None:
                if allow_existing:
                    return existing
                raise ValueError(f"Job {job.job_id} was already submitted")
            record = JobRecord(job=job)
            self._jobs[job.job_id] = record
            return record

    def _set_job_status(self, job_id: str, status: JobStatus) -> None:
        with self._jobs_lock:
            self._jobs[job_id].status = status

    def _finish(
            self,
            job_id: str,
            status: JobStatus,
            outcome: Optional[PipelineOutcome],
            *,
            error: Optional[str] = None,
    ) -> None:
        with self._jobs_lock:
            record = self._jobs[job_id]
            record.status = status
            record.result = outcome.status.value if outcome else None
            record.error = error or (outcome.error if outcome else None)
            record.completed_at = datetime.now(timezone.utc)
            self._evict_finished(job_id)

    def _evict_finished(self, job_id: str) -> None:
        # Caller holds _jobs_lock.
        if job_id not in self._finished:
            self._finished.append(job_id)
        while len(self._finished) > self._job_history:
            evicted = self._finished.popleft()
            self._jobs.pop(evicted, None)
            logger.debug("Evicted job record %s", evicted)

    def _cleanup(self, job: PrintJob, outcome: Optional[PipelineOutcome]) -> None:
        paths = []
        if outcome is not None and outcome.processed:
            paths.append(outcome.path)
        if self._delete_source:
            paths.append(job.source_path)

        for path in paths:
            try:
                Path(path).unlink(missing_ok=True)
                logger.debug("Deleted temp file: %s", path)
            except OSError as e:
                logger.warning("Failed to delete temp file %s: %s", path, e)

        with self._jobs_lock:
            self._workers.pop(job.job_id, None)

    # ---------- Health helpers ----------

    def _mark_printer_ok(self):
        with self._health_lock:
            self._health_status = HealthStatus.ok()

    def _set_printer_error(self, code: HealthCode, message: str):
        with self._health_lock:
            if self._health_status.level == HealthLevel.ERROR and self._health_status.code == code:
                return
            self._health_status = HealthStatus.error(
                code=code,
                message=message,
                instructions=[
                    "Check that the printer is powered on and has paper",
                    "Check the CUPS queue for stopped jobs",
                    "Contact the operator if the problem persists",
                ],
            )
