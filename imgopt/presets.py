from __future__ import annotations

from typing import Dict, List

from .settings import TOOL_ARGS, OptimizeSettings, default_jpeg_steps, default_png_steps


PRESETS = ("default", "fast", "max")


def _args_for(name: str) -> Dict[str, List[str]]:
    args = {k: list(v) for k, v in TOOL_ARGS.items()}

    if name == "fast":
        # Lower effort everywhere; roughly an order of magnitude quicker on big PNGs.
        args["advpng"] = ["-z", "-2", "-q", "{out}"]
        args["optipng"] = ["-o2", "-quiet", "{out}"]
        args["pngout"] = ["{in}", "{out}", "-s2", "-y", "-q"]
        return args

    if name == "max":
        args["advpng"] = ["-z", "-4", "-i", "15", "-q", "{out}"]
        args["optipng"] = ["-o7", "-zm1-9", "-strip", "all", "-quiet", "{out}"]
        return args

    return args


def apply_preset(name: str, base: OptimizeSettings) -> OptimizeSettings:
    name = name.lower()

    if name not in PRESETS:
        raise ValueError(f"Unknown preset: {name}")

    args = _args_for(name)
    return base.__class__(
        **{**base.__dict__,
           "png_steps": default_png_steps(args),
           "jpeg_steps": default_jpeg_steps(args)}
    )
