"""Custom logging handlers."""

from __future__ import annotations

import logging
from pathlib import Path

DEFAULT_MAX_BYTES = 10 * 1024 * 1024


class HalvingFileHandler(logging.FileHandler):
    """File handler that drops the oldest half of the file once it grows too big.

    Unlike rotation this keeps a single file, which is what short-lived CLI
    invocations sharing one log want.
    """

    def __init__(
        self,
        filename: str,
        max_bytes: int = DEFAULT_MAX_BYTES,
        encoding: str = "utf-8",
    ) -> None:
        Path(filename).parent.mkdir(parents=True, exist_ok=True)
        super().__init__(filename, mode="a", encoding=encoding)
        self.max_bytes = max_bytes

    def emit(self, record: logging.LogRecord) -> None:
        super().emit(record)
        try:
            if self.stream and self.stream.tell() > self.max_bytes:
                self._halve()
        except OSError:
            self.handleError(record)

    def _halve(self) -> None:
        self.acquire()
        try:
            self.stream.close()
            path = Path(self.baseFilename)
            data = path.read_bytes()
            keep = data[len(data) // 2 :]
            # Start on a line boundary
            newline = keep.find(b"\n")
            if newline != -1:
                keep = keep[newline + 1 :]
            path.write_bytes(keep)
            self.stream = self._open()
        finally:
            self.release()
