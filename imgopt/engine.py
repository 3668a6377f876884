from __future__ import annotations

import os
import shutil
import stat
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterator, List, Optional

from . import chain
from .classify import UNRECOGNIZED_REMEDY, Classifier
from .results import Kind, ProcessResult, StepResult
from .settings import OptimizeSettings


Optimizer = Callable[[Path, Kind, OptimizeSettings], List[StepResult]]


@dataclass(frozen=True)
class FileMeta:
    mode: int  # permission bits only
    uid: int
    gid: int


def process_file(
    src_path: Path,
    s: OptimizeSettings,
    classifier: Optional[Classifier] = None,
    optimizer: Optional[Optimizer] = None,
) -> ProcessResult:
    """
    Optimize one file in place, keeping the result only if it is smaller.

    Per-file problems come back as a failed ProcessResult; nothing raises.
    """
    src_path = Path(src_path)
    classifier = classifier or Classifier()
    optimizer = optimizer or chain.optimize

    src_bytes = _file_size(src_path)

    if not _is_writable(src_path):
        return _failed(src_path, src_bytes, "not_writable", "not writable; check the file permissions")

    try:
        with scratch_copy(src_path, s.scratch_dir) as scratch:
            meta = read_meta(src_path)

            kind = classifier.classify(src_path)
            if kind is Kind.UNRECOGNIZED:
                return _failed(src_path, src_bytes, "unrecognized", UNRECOGNIZED_REMEDY)

            steps = tuple(optimizer(scratch, kind, s))
            tmp_bytes = _file_size(scratch)

            if tmp_bytes >= src_bytes:
                return ProcessResult(
                    path=src_path,
                    original_bytes=src_bytes,
                    final_bytes=src_bytes,
                    replaced=False,
                    kind=kind,
                    steps=steps,
                )

            metadata_error = promote(scratch, src_path, meta)

            return ProcessResult(
                path=src_path,
                original_bytes=src_bytes,
                final_bytes=_file_size(src_path),
                replaced=True,
                kind=kind,
                steps=steps,
                metadata_error=metadata_error,
            )
    except OSError as e:
        return _failed(src_path, src_bytes, "io_error", f"I/O error: {e}")


@contextmanager
def scratch_copy(src_path: Path, scratch_dir: Optional[Path] = None) -> Iterator[Path]:
    """Yield a temporary copy of `src_path`; it is removed however the block exits."""
    fd, tmp_name = tempfile.mkstemp(
        prefix="imgopt_",
        suffix=src_path.suffix.lower(),
        dir=str(scratch_dir) if scratch_dir else None,
    )
    os.close(fd)
    tmp_path = Path(tmp_name)
    try:
        shutil.copyfile(src_path, tmp_path)
        yield tmp_path
    finally:
        tmp_path.unlink(missing_ok=True)


def promote(scratch: Path, src_path: Path, meta: FileMeta) -> Optional[str]:
    """
    Replace `src_path` with the bytes of `scratch` in one rename.

    The copy is staged beside the original (same filesystem) and gets the
    original's permissions and ownership before the rename, so a failed
    write never touches the original. Returns the metadata error, if any.
    """
    fd, tmp_name = tempfile.mkstemp(prefix=".imgopt_", suffix=src_path.suffix, dir=str(src_path.parent))
    os.close(fd)
    tmp_path = Path(tmp_name)
    try:
        shutil.copyfile(scratch, tmp_path)
        metadata_error = restore_meta(tmp_path, meta)
        os.replace(tmp_path, src_path)
    finally:
        tmp_path.unlink(missing_ok=True)
    return metadata_error


def read_meta(p: Path) -> FileMeta:
    st = p.stat()
    return FileMeta(mode=stat.S_IMODE(st.st_mode), uid=st.st_uid, gid=st.st_gid)


def restore_meta(p: Path, meta: FileMeta) -> Optional[str]:
    """Put permission bits and ownership back. Returns an error message on failure."""
    try:
        os.chmod(p, meta.mode)
        if hasattr(os, "chown"):
            st = p.stat()
            if (st.st_uid, st.st_gid) != (meta.uid, meta.gid):
                os.chown(p, meta.uid, meta.gid)
    except OSError as e:
        return f"could not restore permissions/ownership: {e}"
    return None


def _failed(src_path: Path, src_bytes: int, reason: str, error: str) -> ProcessResult:
    return ProcessResult(
        path=src_path,
        original_bytes=src_bytes,
        final_bytes=src_bytes,
        replaced=False,
        reason=reason,
        error=error,
    )


def _is_writable(p: Path) -> bool:
    return os.access(p, os.W_OK)


def _file_size(p: Path) -> int:
    try:
        return p.stat().st_size
    except FileNotFoundError:
        return 0
