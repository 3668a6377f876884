from dataclasses import replace
from pathlib import Path

from imgopt import chain
from imgopt.chain import optimize, run_step
from imgopt.results import Kind

from conftest import python_step


HALVE = "import sys; p = sys.argv[1]; d = open(p, 'rb').read(); open(p, 'wb').write(d[:len(d) // 2])"
COPY_HALF = (
    "import sys; d = open(sys.argv[1], 'rb').read(); "
    "open(sys.argv[2], 'wb').write(d[:len(d) // 2])"
)
TRASH_AND_FAIL = "import sys; open(sys.argv[1], 'wb').write(b'garbage'); sys.exit(3)"
STDIO_HALF = "import sys; d = sys.stdin.buffer.read(); sys.stdout.buffer.write(d[:len(d) // 2])"


def _scratch(tmp_path: Path, size: int = 1000) -> Path:
    p = tmp_path / "work.png"
    p.write_bytes(b"x" * size)
    return p


def _leftovers(tmp_path: Path):
    return [p.name for p in tmp_path.iterdir() if p.name.startswith("imgopt_step_")]


def test_in_place_step_swaps_result_in(tmp_path: Path):
    scratch = _scratch(tmp_path)
    r = run_step(python_step(HALVE, "{out}", in_place=True), scratch, timeout=30)
    assert r.ok
    assert scratch.stat().st_size == 500
    assert _leftovers(tmp_path) == []


def test_in_out_step(tmp_path: Path):
    scratch = _scratch(tmp_path)
    r = run_step(python_step(COPY_HALF, "{in}", "{out}"), scratch, timeout=30)
    assert r.ok
    assert scratch.stat().st_size == 500


def test_stdin_stdout_step(tmp_path: Path):
    scratch = _scratch(tmp_path)
    r = run_step(python_step(STDIO_HALF, stdin=True, stdout=True), scratch, timeout=30)
    assert r.ok
    assert scratch.stat().st_size == 500


def test_failed_step_leaves_scratch_untouched(tmp_path: Path):
    scratch = _scratch(tmp_path)
    r = run_step(python_step(TRASH_AND_FAIL, "{out}", in_place=True), scratch, timeout=30)
    assert not r.ok
    assert "status 3" in r.error
    assert scratch.read_bytes() == b"x" * 1000
    assert _leftovers(tmp_path) == []


def test_empty_output_is_a_failure(tmp_path: Path):
    scratch = _scratch(tmp_path)
    r = run_step(python_step("pass"), scratch, timeout=30)
    assert not r.ok
    assert scratch.stat().st_size == 1000


def test_timeout_is_a_failure(tmp_path: Path):
    scratch = _scratch(tmp_path)
    r = run_step(python_step("import time; time.sleep(10)"), scratch, timeout=0.5)
    assert not r.ok
    assert "timed out" in r.error
    assert scratch.stat().st_size == 1000


def test_missing_executable_is_a_failure(tmp_path: Path):
    from imgopt.settings import ToolStep

    scratch = _scratch(tmp_path)
    r = run_step(ToolStep("no-such-optimizer-binary", ("{out}",), in_place=True), scratch)
    assert not r.ok
    assert scratch.stat().st_size == 1000


def test_chain_continues_after_failure(tmp_path: Path, settings):
    scratch = _scratch(tmp_path)
    s = replace(
        settings,
        png_steps=(
            python_step(HALVE, "{out}", in_place=True),
            python_step(TRASH_AND_FAIL, "{out}", in_place=True),
            python_step(HALVE, "{out}", in_place=True),
        ),
    )
    results = optimize(scratch, Kind.PNG, s)
    assert [r.ok for r in results] == [True, False, True]
    assert scratch.stat().st_size == 250


def test_chain_is_picked_by_kind(tmp_path: Path, settings):
    scratch = _scratch(tmp_path)
    s = replace(
        settings,
        png_steps=(python_step(HALVE, "{out}", in_place=True),),
        jpeg_steps=(python_step(STDIO_HALF, stdin=True, stdout=True), python_step(STDIO_HALF, stdin=True, stdout=True)),
    )
    assert len(optimize(scratch, Kind.JPEG, s)) == 2
    assert scratch.stat().st_size == 250
    assert optimize(scratch, Kind.UNRECOGNIZED, s) == []


def test_unwritable_step_dir_is_a_step_failure(tmp_path: Path, monkeypatch):
    scratch = _scratch(tmp_path)

    def no_space(*a, **kw):
        raise OSError(28, "No space left on device")

    monkeypatch.setattr(chain.tempfile, "mkstemp", no_space)
    r = run_step(python_step(HALVE, "{out}", in_place=True), scratch, timeout=30)

    assert not r.ok
    assert "No space left" in r.error
    assert scratch.stat().st_size == 1000
