import csv
import logging
from collections import Counter
from pathlib import Path
from typing import Optional, TextIO

from .models import NOT_APPLICABLE, Report

ERROR_CODE = "ERROR"


class SweepSummary:
    """
    Folds per-file outcomes of a directory sweep into counts, and optionally
    mirrors every record into a CSV file.
    """

    HEADERS = ["Action", "Source", "Destination"]

    def __init__(self, report_csv: Optional[Path] = None):
        self.counts: Counter = Counter()
        self.failures = 0
        self.report_csv = report_csv
        self._csv_file: Optional[TextIO] = None
        self._writer = None

    def __enter__(self):
        if self.report_csv:
            self._csv_file = open(self.report_csv, "w", newline="", encoding="utf-8")
            self._writer = csv.writer(self._csv_file)
            self._writer.writerow(self.HEADERS)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._csv_file:
            self._csv_file.close()
            self._csv_file = None
            logging.info(f"Sweep report written: {self.report_csv}")

    def record(self, report: Report) -> str:
        self.counts[report.code] += 1
        if not report.ok:
            self.failures += 1
        self._write_row(report.code, report.source, report.destination)
        return report.serialize()

    def record_error(self, path: Path, error: Exception) -> str:
        self.counts[ERROR_CODE] += 1
        self.failures += 1
        self._write_row(ERROR_CODE, path, None)
        return f"{ERROR_CODE}\t{path}\t{NOT_APPLICABLE}"

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    def log_summary(self, title: str):
        logging.info(f"{title}: {self.total} files")
        for code, count in sorted(self.counts.items()):
            logging.info(f"  {code:<30} {count}")

    def _write_row(self, code: str, source: Path, destination: Optional[Path]):
        if self._writer:
            dest = str(destination) if destination is not None else NOT_APPLICABLE
            self._writer.writerow([code, str(source), dest])
