from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Literal, Optional, Tuple


# "last" reproduces the historical behavior: the exit status is the code of
# the last processed file. "any" makes any failed file yield a non-zero status.
ExitPolicy = Literal["last", "any"]


# Argument presets per optimizer step. "{in}" and "{out}" are replaced with
# the current scratch copy and the step's output file.
TOOL_ARGS: Dict[str, List[str]] = {
    "advpng": ["-z", "-4", "-q", "{out}"],
    "optipng": ["-o7", "-zm1-9", "-quiet", "{out}"],
    "pngout": ["{in}", "{out}", "-s0", "-y", "-q"],
    "jpegtran": ["-copy", "none", "-optimize", "-outfile", "{out}", "{in}"],
    "jfifremove": [],
}


@dataclass(frozen=True)
class ToolStep:
    """
    One external optimizer invocation.

    in_place:
        The tool rewrites "{out}", which starts as a copy of the scratch file.
    stdin / stdout:
        Feed the scratch copy on stdin and/or capture stdout into "{out}".
    """

    name: str
    args: Tuple[str, ...] = ()
    in_place: bool = False
    stdin: bool = False
    stdout: bool = False

    def command(self, src: Path, out: Path) -> List[str]:
        cmd = [self.name]
        for a in self.args:
            if a == "{in}":
                cmd.append(str(src))
            elif a == "{out}":
                cmd.append(str(out))
            else:
                cmd.append(a)
        return cmd


def default_png_steps(tool_args: Optional[Dict[str, List[str]]] = None) -> Tuple[ToolStep, ...]:
    # Order matters: each stage expects the previous one to have already
    # removed what it can.
    a = tool_args if tool_args is not None else TOOL_ARGS
    return (
        ToolStep("advpng", tuple(a["advpng"]), in_place=True),
        ToolStep("optipng", tuple(a["optipng"]), in_place=True),
        ToolStep("pngout", tuple(a["pngout"])),
    )


def default_jpeg_steps(tool_args: Optional[Dict[str, List[str]]] = None) -> Tuple[ToolStep, ...]:
    a = tool_args if tool_args is not None else TOOL_ARGS
    return (
        ToolStep("jpegtran", tuple(a["jpegtran"])),
        ToolStep("jfifremove", tuple(a["jfifremove"]), stdin=True, stdout=True),
    )


@dataclass(frozen=True)
class OptimizeSettings:
    """
    All user-configurable knobs for a run.

    Pure data: the CLI builds it, presets derive variants from it, and the
    engine only reads it.
    """

    # ----- Optimizer chains -----
    png_steps: Tuple[ToolStep, ...] = field(default_factory=default_png_steps)
    jpeg_steps: Tuple[ToolStep, ...] = field(default_factory=default_jpeg_steps)

    # Seconds before a single tool invocation is killed.
    tool_timeout: Optional[float] = 300.0

    # ----- Scratch files -----
    # None means the system temp directory.
    scratch_dir: Optional[Path] = None

    # ----- Discovery -----
    # Descend into symlinked directories while walking. Off by default so a
    # link cycle cannot make the walk endless.
    follow_dir_symlinks: bool = False

    # ----- Batch -----
    exit_policy: ExitPolicy = "last"
    jobs: int = 1

    def required_tools(self) -> List[str]:
        names: List[str] = []
        for step in self.png_steps + self.jpeg_steps:
            if step.name not in names:
                names.append(step.name)
        return names
