from __future__ import annotations

import shutil
from typing import Iterable, Optional


# How to get each external optimizer onto the PATH.
REMEDIES = {
    "advpng": "install advancecomp (http://www.advancemame.it/comp-readme.html)",
    "optipng": "install optipng (http://optipng.sourceforge.net/)",
    "pngout": "install pngout (http://www.jonof.id.au/kenutils)",
    "jpegtran": "install libjpeg or libjpeg-turbo, which ship jpegtran",
    "jfifremove": "build jfifremove from jfifremove.c and put it on your PATH",
}


class MissingToolError(Exception):
    def __init__(self, tool: str, remedy: str) -> None:
        super().__init__(f"required tool '{tool}' not found; {remedy}")
        self.tool = tool
        self.remedy = remedy


def verify_tools(names: Iterable[str], path: Optional[str] = None) -> None:
    """
    Make sure every tool in `names` resolves on the search path.

    Raises MissingToolError for the first one that does not. `path` overrides
    the PATH environment variable (same meaning as in shutil.which).
    """
    for name in names:
        if shutil.which(name, path=path) is None:
            remedy = REMEDIES.get(name, f"install {name} and make sure it is on your PATH")
            raise MissingToolError(name, remedy)
