# controller/printer_base.py

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path


class PrinterError(RuntimeError):
    """Raised when the printer cannot accept or process a print request."""


class Printer(ABC):
    """
    Abstract printer interface.

    The controller owns printing behavior and error handling. Concrete implementations
    talk to real spoolers (CUPS) or are fakes in tests.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Queue/printer identity as configured for this station."""
        raise NotImplementedError

    def preflight(self) -> None:
        """Raise PrinterError if the printer obviously cannot accept jobs."""

    @abstractmethod
    def print_file(
            self,
            file_path: Path,
            *,
            copies: int = 1,
            job_name: str | None = None,
            fit_to_page: bool = False,
    ) -> None:
        """
        Submit `file_path` to the printer.

        - `copies` is the number of copies desired.
        - `fit_to_page` asks the spooler to scale the file onto the media.
        - Implementations should raise PrinterError on failure.
        """
        raise NotImplementedError
