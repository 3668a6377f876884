from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from .batch import process_batch
from .presets import PRESETS, apply_preset
from .report import build_report, format_result, format_summary, save_report
from .results import EXIT_FAILURE, ProcessResult
from .settings import OptimizeSettings
from .tools import MissingToolError, verify_tools


HELP_FLAGS = {"-h", "--help"}


def build_parser() -> argparse.ArgumentParser:
    # -h/--help is handled by main() so that it exits with a failure status.
    p = argparse.ArgumentParser(
        prog="imgopt",
        description=(
            "Losslessly optimize PNG and JPEG files in place. A file is only "
            "replaced when the optimized version is smaller; its permissions "
            "and ownership are kept."
        ),
        add_help=False,
    )
    p.add_argument("inputs", nargs="+", metavar="FILE|DIR", help="Files and/or folders to process")

    p.add_argument("--preset", choices=PRESETS, default="default", help="Optimizer effort preset (default: default)")
    p.add_argument("--timeout", type=float, default=300.0, help="Seconds allowed per tool run (default: 300)")
    p.add_argument("--jobs", type=int, default=1, help="Files to process in parallel (default: 1)")
    p.add_argument(
        "--exit-policy",
        choices=("last", "any"),
        default="last",
        help='"last": status of the last file (historical); "any": non-zero if any file failed',
    )
    p.add_argument("--follow-symlinks", action="store_true", help="Descend into symlinked directories")
    p.add_argument("--scratch-dir", default=None, help="Directory for temporary files")
    p.add_argument("--report", default=None, help="Write a JSON report (or CSV if the name ends in .csv)")

    out = p.add_mutually_exclusive_group()
    out.add_argument("-v", "--verbose", action="store_true", help="Also show failed optimizer steps")
    out.add_argument("-q", "--quiet", action="store_true", help="Only print the final summary")

    return p


def main(argv: Optional[List[str]] = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    parser = build_parser()

    # Running with nothing to do is a usage error, not a no-op.
    if not argv or HELP_FLAGS.intersection(argv):
        parser.print_help()
        return EXIT_FAILURE

    args = parser.parse_args(argv)

    settings = OptimizeSettings(
        tool_timeout=args.timeout if args.timeout > 0 else None,
        scratch_dir=Path(args.scratch_dir) if args.scratch_dir else None,
        follow_dir_symlinks=bool(args.follow_symlinks),
        exit_policy=args.exit_policy,
        jobs=max(1, int(args.jobs)),
    )
    settings = apply_preset(args.preset, settings)

    try:
        verify_tools(settings.required_tools())
    except MissingToolError as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_FAILURE

    def on_result(r: ProcessResult) -> None:
        if args.quiet:
            return
        print(format_result(r))
        if r.metadata_error:
            print(f"warning: {r.path}: {r.metadata_error}", file=sys.stderr)
        if args.verbose:
            for st in r.steps:
                if not st.ok:
                    print(f"  {st.step} failed: {st.error}")

    def on_warning(msg: str) -> None:
        print(f"warning: {msg}", file=sys.stderr)

    inputs = [Path(p) for p in args.inputs]
    results, stats, status = process_batch(inputs, settings, on_result=on_result, on_warning=on_warning)

    print(format_summary(stats))

    if args.report:
        save_report(build_report(results, stats, status), Path(args.report))
        if not args.quiet:
            print("Report written:", args.report)

    return status
