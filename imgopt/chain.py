from __future__ import annotations

import os
import shutil
import subprocess
import tempfile
from contextlib import nullcontext
from pathlib import Path
from typing import List, Optional

from .results import Kind, StepResult
from .settings import OptimizeSettings, ToolStep


def optimize(scratch: Path, kind: Kind, s: OptimizeSettings) -> List[StepResult]:
    """
    Run the chain matching `kind` over the scratch copy, in order.

    A failed step leaves the scratch copy as it was and the next step runs
    anyway. Nothing is raised for individual step failures.
    """
    if kind is Kind.PNG:
        steps = s.png_steps
    elif kind is Kind.JPEG:
        steps = s.jpeg_steps
    else:
        return []

    return [run_step(step, Path(scratch), s.tool_timeout) for step in steps]


def run_step(step: ToolStep, scratch: Path, timeout: Optional[float] = None) -> StepResult:
    out_path: Optional[Path] = None
    try:
        # Output goes to a fresh file next to the scratch copy so the swap is a rename.
        fd, tmp_name = tempfile.mkstemp(prefix="imgopt_step_", suffix=scratch.suffix, dir=str(scratch.parent))
        os.close(fd)
        out_path = Path(tmp_name)

        if step.in_place:
            shutil.copyfile(scratch, out_path)

        cmd = step.command(scratch, out_path)

        with _open_or_none(scratch, "rb", step.stdin) as stdin, _open_or_none(out_path, "wb", step.stdout) as stdout:
            proc = subprocess.run(
                cmd,
                stdin=stdin if stdin is not None else subprocess.DEVNULL,
                stdout=stdout if stdout is not None else subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                timeout=timeout,
                check=False,
            )

        if proc.returncode != 0:
            detail = proc.stderr.decode("utf-8", errors="replace").strip()
            msg = f"exited with status {proc.returncode}"
            if detail:
                msg += f": {detail.splitlines()[-1]}"
            return StepResult(step=step.name, ok=False, error=msg)

        if out_path.stat().st_size == 0:
            return StepResult(step=step.name, ok=False, error="produced no output")

        os.replace(out_path, scratch)
        return StepResult(step=step.name, ok=True)

    except subprocess.TimeoutExpired:
        return StepResult(step=step.name, ok=False, error=f"timed out after {timeout} seconds")
    except OSError as e:
        return StepResult(step=step.name, ok=False, error=str(e))
    finally:
        if out_path is not None:
            out_path.unlink(missing_ok=True)


def _open_or_none(path: Path, mode: str, wanted: bool):
    if not wanted:
        return nullcontext()
    return path.open(mode)
