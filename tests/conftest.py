from __future__ import annotations

import sys
from pathlib import Path

import pytest
from PIL import Image

from imgopt.classify import Classifier
from imgopt.settings import OptimizeSettings, ToolStep


PNG_SIG = b"\x89PNG\r\n\x1a\n"


def make_png(path: Path, size=(32, 32), color=(200, 30, 30)) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGB", size, color).save(path, format="PNG")
    return path


def make_jpeg(path: Path, size=(32, 32), color=(30, 200, 30)) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGB", size, color).save(path, format="JPEG", quality=90)
    return path


def python_step(script: str, *args: str, **kw) -> ToolStep:
    """A ToolStep that runs a Python one-liner instead of a real optimizer."""
    return ToolStep(sys.executable, ("-c", script) + args, **kw)


def fixed_classifier(mime: str) -> Classifier:
    return Classifier(sniffer=lambda p: mime)


def shrink_to(n: int):
    def _opt(scratch: Path, kind, s):
        data = scratch.read_bytes()
        scratch.write_bytes(data[:n])
        return []
    return _opt


def grow_to(n: int):
    def _opt(scratch: Path, kind, s):
        data = scratch.read_bytes()
        scratch.write_bytes(data + b"\0" * (n - len(data)))
        return []
    return _opt


def strip_padding(scratch: Path, kind, s):
    scratch.write_bytes(scratch.read_bytes().rstrip(b"\0"))
    return []


@pytest.fixture
def scratch_dir(tmp_path: Path) -> Path:
    d = tmp_path / "scratch"
    d.mkdir()
    return d


@pytest.fixture
def settings(scratch_dir: Path) -> OptimizeSettings:
    return OptimizeSettings(scratch_dir=scratch_dir, tool_timeout=30)
