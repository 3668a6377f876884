from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Tuple


EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_NOT_WRITABLE = 2
EXIT_UNRECOGNIZED = 3

# Per-file failure reasons and the exit code each one maps to.
REASON_CODES = {
    "not_writable": EXIT_NOT_WRITABLE,
    "unrecognized": EXIT_UNRECOGNIZED,
    "io_error": EXIT_FAILURE,
}


class Kind(Enum):
    PNG = "png"
    JPEG = "jpeg"
    UNRECOGNIZED = "unrecognized"


@dataclass(frozen=True)
class StepResult:
    step: str
    ok: bool
    error: Optional[str] = None


@dataclass(frozen=True)
class ProcessResult:
    """
    Outcome of processing a single file.

    Failed files still carry their sizes (final == original) so they can
    be counted in the run statistics like any other attempt.
    """
    path: Path
    original_bytes: int
    final_bytes: int
    replaced: bool
    kind: Kind = Kind.UNRECOGNIZED
    reason: Optional[str] = None  # key of REASON_CODES when the file failed
    error: Optional[str] = None  # human readable message with a remedy
    steps: Tuple[StepResult, ...] = ()
    metadata_error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.reason is None

    @property
    def exit_code(self) -> int:
        if self.reason is None:
            return EXIT_OK
        return REASON_CODES.get(self.reason, EXIT_FAILURE)

    @property
    def saved_bytes(self) -> int:
        return max(0, self.original_bytes - self.final_bytes)

    @property
    def saved_percent(self) -> int:
        if self.original_bytes <= 0:
            return 0
        return self.saved_bytes * 100 // self.original_bytes


@dataclass(frozen=True)
class RunStats:
    files: int = 0
    original_bytes: int = 0
    final_bytes: int = 0
    replaced: int = 0
    failed: int = 0

    def add(self, r: ProcessResult) -> "RunStats":
        return RunStats(
            files=self.files + 1,
            original_bytes=self.original_bytes + r.original_bytes,
            final_bytes=self.final_bytes + r.final_bytes,
            replaced=self.replaced + (1 if r.replaced else 0),
            failed=self.failed + (0 if r.ok else 1),
        )

    @property
    def saved_bytes(self) -> int:
        return max(0, self.original_bytes - self.final_bytes)

    @property
    def saved_percent(self) -> int:
        if self.original_bytes <= 0:
            return 0
        return self.saved_bytes * 100 // self.original_bytes


def initial_status(policy: str) -> int:
    # The historical driver starts from failure and lets each file overwrite it.
    return EXIT_FAILURE if policy == "last" else EXIT_OK


def fold_status(status: int, r: ProcessResult, policy: str) -> int:
    code = r.exit_code
    if policy == "last":
        return code
    return code if code != EXIT_OK else status
