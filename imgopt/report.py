from __future__ import annotations

import csv
import json
from dataclasses import asdict, dataclass, fields
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from .results import ProcessResult, RunStats


def format_result(r: ProcessResult) -> str:
    if not r.ok:
        return f"{r.path}: skipped, {r.error}"
    if r.replaced:
        return f"{r.path}: reduced {r.saved_bytes} bytes to {r.final_bytes} bytes"
    return f"{r.path}: unchanged at {r.original_bytes} bytes"


def format_summary(stats: RunStats) -> str:
    return f"{stats.files} files processed, {stats.saved_bytes} bytes saved ({stats.saved_percent}%)"


@dataclass(frozen=True)
class FileReport:
    path: str
    kind: str
    original_bytes: int
    final_bytes: int
    saved_bytes: int
    saved_percent: int
    replaced: bool
    exit_code: int
    reason: Optional[str]
    error: Optional[str]
    failed_steps: str


@dataclass(frozen=True)
class BatchReport:
    created_utc: str
    exit_status: int
    summary: dict
    files: List[FileReport]


def build_report(results: List[ProcessResult], stats: RunStats, status: int) -> BatchReport:
    created_utc = datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")

    files: List[FileReport] = []
    for r in results:
        files.append(
            FileReport(
                path=str(r.path),
                kind=r.kind.value,
                original_bytes=r.original_bytes,
                final_bytes=r.final_bytes,
                saved_bytes=r.saved_bytes,
                saved_percent=r.saved_percent,
                replaced=r.replaced,
                exit_code=r.exit_code,
                reason=r.reason,
                error=r.error or r.metadata_error,
                failed_steps=",".join(st.step for st in r.steps if not st.ok),
            )
        )

    summary_dict = {
        "files": stats.files,
        "replaced": stats.replaced,
        "failed": stats.failed,
        "original_bytes": stats.original_bytes,
        "final_bytes": stats.final_bytes,
        "saved_bytes": stats.saved_bytes,
        "saved_percent": stats.saved_percent,
    }

    return BatchReport(created_utc=created_utc, exit_status=status, summary=summary_dict, files=files)


def save_report_json(report: BatchReport, path: Path) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with path.open("w", encoding="utf-8") as f:
        json.dump(asdict(report), f, indent=2, ensure_ascii=False)


def save_report_csv(report: BatchReport, path: Path) -> None:
    """One row per file; the summary lives in the JSON report only."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    columns = [f.name for f in fields(FileReport)]
    with path.open("w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=columns)
        writer.writeheader()
        for row in report.files:
            writer.writerow(asdict(row))


def save_report(report: BatchReport, path: Path) -> None:
    if Path(path).suffix.lower() == ".csv":
        save_report_csv(report, path)
    else:
        save_report_json(report, path)
