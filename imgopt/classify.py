from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional

from PIL import Image, UnidentifiedImageError

from .results import Kind


MIME_TO_KIND = {
    "image/png": Kind.PNG,
    "image/jpeg": Kind.JPEG,
    # Multi-picture JPEG (most phone cameras); still a baseline JPEG stream.
    "image/mpo": Kind.JPEG,
}

EXT_TO_KIND = {
    ".png": Kind.PNG,
    ".jpg": Kind.JPEG,
    ".jpeg": Kind.JPEG,
}

UNRECOGNIZED_REMEDY = (
    "not a PNG or JPEG image; verify the file, or rename it with the correct extension"
)


class SniffError(Exception):
    """Content sniffing could not be performed on a file."""


def pillow_sniffer(path: Path) -> Optional[str]:
    """
    Return the MIME type of `path` from its content, or None if the content
    is not an image format Pillow knows.

    Only the header is parsed; pixel data is never decoded.
    """
    try:
        with Image.open(path) as im:
            fmt = im.format
    except UnidentifiedImageError:
        return None
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        raise SniffError(str(e)) from e

    if not fmt:
        return None
    return Image.MIME.get(fmt.upper())


def extension_matcher(path: Path) -> Kind:
    return EXT_TO_KIND.get(Path(path).suffix.lower(), Kind.UNRECOGNIZED)


class Classifier:
    """
    Content sniffing first, extension matching when sniffing is unavailable.

    Both stages are plain callables so tests can swap either one.
    """

    def __init__(
        self,
        sniffer: Callable[[Path], Optional[str]] = pillow_sniffer,
        matcher: Callable[[Path], Kind] = extension_matcher,
    ) -> None:
        self.sniffer = sniffer
        self.matcher = matcher

    def classify(self, path: Path) -> Kind:
        path = Path(path)
        try:
            mime = self.sniffer(path)
        except SniffError:
            return self.matcher(path)
        return MIME_TO_KIND.get(mime or "", Kind.UNRECOGNIZED)


DEFAULT_CLASSIFIER = Classifier()


def classify(path: Path) -> Kind:
    return DEFAULT_CLASSIFIER.classify(path)
