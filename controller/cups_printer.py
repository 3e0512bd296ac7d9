# controller/cups_printer.py

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path
from typing import Sequence, Optional

from controller.printer_base import Printer, PrinterError

logger = logging.getLogger(__name__)


class CupsPrinter(Printer):
    """
    CUPS-backed printer using the `lp` command.

    Design constraints (intentional):
    - Fire-and-forget submission only (no job tracking).
    - Prints an existing file. No image processing.
    - Every print is forced onto the configured media (A5 by default).
    """

    def __init__(
            self,
            printer_name: str,
            lp_path: str = "lp",
            media: Optional[str] = "A5",
            extra_args: Optional[Sequence[str]] = None,
    ) -> None:
        self._printer_name = printer_name
        self._lp_path = lp_path
        self._media = media
        self._extra_args = list(extra_args or [])

    @property
    def name(self) -> str:
        return self._printer_name

    def preflight(self) -> None:
        if shutil.which(self._lp_path) is None:
            raise PrinterError(f"CUPS not available: '{self._lp_path}' not found in PATH")

    def build_command(
            self,
            file_path: Path,
            *,
            copies: int = 1,
            job_name: str | None = None,
            fit_to_page: bool = False,
    ) -> list[str]:
        cmd = [
            self._lp_path,
            "-d", self._printer_name,
            "-t", job_name or file_path.name,
        ]
        if self._media:
            cmd += ["-o", f"media={self._media}"]
        if fit_to_page:
            cmd += ["-o", "fit-to-page"]
        if copies > 1:
            cmd += ["-n", str(copies)]
        cmd += [*self._extra_args, str(file_path)]
        return cmd

    def print_file(
            self,
            file_path: Path,
            *,
            copies: int = 1,
            job_name: str | None = None,
            fit_to_page: bool = False,
    ) -> None:
        self.preflight()

        if copies < 1:
            raise PrinterError(f"copies must be >= 1 (got {copies})")

        if not file_path.exists():
            raise PrinterError(f"Print file does not exist: {file_path}")
        if not file_path.is_file():
            raise PrinterError(f"Print path is not a file: {file_path}")

        cmd = self.build_command(
            file_path,
            copies=copies,
            job_name=job_name,
            fit_to_page=fit_to_page,
        )
        logger.info("Running print command: %s", " ".join(cmd))

        proc = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
        )
        if proc.returncode != 0:
            out = (proc.stdout or "") + (proc.stderr or "")
            raise PrinterError(f"lp failed (rc={proc.returncode}): {out.strip()}")

        logger.info("[%s] Print output: %s", self._printer_name, (proc.stdout or "").strip())
