"""
Source Loader — reads Pangy module files from disk.

Guards:
  • Skips binary files (null-byte check)
  • Caps reads at max_lines
  • Decoding errors propagate so callers can turn them into diagnostics
"""

import logging
import os

from pangy_core.config import DEFAULT_MAX_LINES

logger = logging.getLogger(__name__)


class SourceLoadError(OSError):
    """A module file could not be read as Pangy source."""


def read_source(path: str, max_lines: int = DEFAULT_MAX_LINES) -> str:
    """Return the UTF-8 text of ``path``.

    Raises SourceLoadError for missing or binary files and for undecodable
    content; any other OSError from the filesystem propagates unchanged.
    """
    if not os.path.isfile(path):
        raise SourceLoadError(f"No such file: {path}")

    with open(path, "rb") as fb:
        head = fb.read(8192)
    if b"\x00" in head:
        logger.warning("Skipping binary file: %s", path)
        raise SourceLoadError(f"{path} looks like a binary file")

    try:
        with open(path, "r", encoding="utf-8") as f:
            lines = []
            for i, line in enumerate(f):
                if i >= max_lines:
                    logger.warning("File %s exceeds %d lines — truncated", path, max_lines)
                    break
                lines.append(line)
    except UnicodeDecodeError as e:
        raise SourceLoadError(f"{path} is not valid UTF-8: {e}") from e

    return "".join(lines)
