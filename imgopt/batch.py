from __future__ import annotations

import os
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Optional, Sequence

from .engine import process_file
from .results import ProcessResult, RunStats, fold_status, initial_status
from .settings import OptimizeSettings


WALK_EXTS = {".jpg", ".jpeg", ".png"}


def walk(dir_path: Path, follow_symlinks: bool = False) -> Iterator[Path]:
    """
    Yield image files found under `dir_path`, recursively.

    Matching is on the extension, case-insensitively. Symlinks to regular
    files are yielded; symlinked directories are only descended into when
    `follow_symlinks` is set.
    """
    for root, _dirs, files in os.walk(dir_path, followlinks=follow_symlinks):
        for name in files:
            f = Path(root) / name
            if f.suffix.lower() not in WALK_EXTS:
                continue
            if not f.is_file():
                continue
            yield f


def iter_targets(
    inputs: Sequence[Path],
    s: OptimizeSettings,
    on_warning: Optional[Callable[[str], None]] = None,
) -> Iterator[Path]:
    """
    Expand a mixture of files and directories into the files to process.

    Files given directly are yielded as-is, whatever their extension; the
    classifier decides what they are.
    """
    for p in inputs:
        p = Path(p)

        if p.is_dir():
            yield from walk(p, follow_symlinks=s.follow_dir_symlinks)
            continue

        if p.is_file():
            yield p
            continue

        if on_warning:
            on_warning(f"{p}: not a file or directory, skipping")


def _unique(paths: Iterable[Path]) -> Iterator[Path]:
    seen = set()
    for p in paths:
        key = p.resolve()
        if key in seen:
            continue
        seen.add(key)
        yield p


def process_batch(
    inputs: Sequence[Path],
    settings: OptimizeSettings,
    on_result: Optional[Callable[[ProcessResult], None]] = None,
    on_warning: Optional[Callable[[str], None]] = None,
    process: Callable[[Path, OptimizeSettings], ProcessResult] = process_file,
) -> tuple[List[ProcessResult], RunStats, int]:
    """
    Process every input and fold the per-file results.

    Returns (results, stats, exit status). Results are folded in input order
    even with several jobs, so the exit status does not depend on timing.
    """
    results: List[ProcessResult] = []
    stats = RunStats()
    status = initial_status(settings.exit_policy)

    targets: Iterable[Path] = iter_targets(inputs, settings, on_warning=on_warning)

    if settings.jobs > 1:
        # Two workers must never share an original file.
        targets = list(_unique(targets))
        with ThreadPoolExecutor(max_workers=settings.jobs) as pool:
            for r in pool.map(lambda p: process(p, settings), targets):
                stats, status = _fold(r, stats, status, settings, results, on_result)
    else:
        for p in targets:
            r = process(p, settings)
            stats, status = _fold(r, stats, status, settings, results, on_result)

    return results, stats, status


def _fold(
    r: ProcessResult,
    stats: RunStats,
    status: int,
    settings: OptimizeSettings,
    results: List[ProcessResult],
    on_result: Optional[Callable[[ProcessResult], None]],
) -> tuple[RunStats, int]:
    results.append(r)
    if on_result:
        on_result(r)
    return stats.add(r), fold_status(status, r, settings.exit_policy)
