"""
Include Resolver — turns ``include a.b.C`` into a module file + imported symbol.

Search order for each candidate (longest dotted prefix first):
  1. the including file's directory
  2. the global library directory (``~/.pangylibs`` by default)

The segments left over after the file match decide what is imported:

  include mathlib             → WHOLE_FILE, alias "mathlib"
  include mathlib.Vector      → CLASS,      alias "Vector"
  include geo.Shape.Point     → INNER_CLASS (Point nested in Shape)
  include util.@square        → MACRO,      alias "square"
"""

import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from pangy_core.config import DEFAULT_EXTENSION, DEFAULT_LIBRARY_DIR

logger = logging.getLogger(__name__)


class IncludeKind(str, Enum):
    WHOLE_FILE = "file"
    CLASS = "class"
    INNER_CLASS = "inner_class"
    MACRO = "macro"


@dataclass
class IncludeDirective:
    path: str                       # raw dotted path as written
    alias: str
    resolved_file: Optional[str]
    kind: IncludeKind
    line: int                       # 1-indexed
    parent_class: Optional[str] = None   # for INNER_CLASS

    @property
    def file_name(self) -> str:
        return os.path.basename(self.resolved_file) if self.resolved_file else ""

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "alias": self.alias,
            "resolved_file": self.resolved_file,
            "kind": self.kind.value,
            "line": self.line,
            "parent_class": self.parent_class,
        }


def _is_class_segment(segment: str) -> bool:
    return segment[:1].isupper()


class IncludeResolver:
    """Resolves dotted include paths against the local and library directories."""

    def __init__(self, library_dir: Optional[str] = None, extension: str = DEFAULT_EXTENSION):
        self.library_dir = str(library_dir) if library_dir is not None else str(DEFAULT_LIBRARY_DIR)
        self.extension = extension

    def search_dirs(self, current_dir: str) -> List[str]:
        return [current_dir, self.library_dir]

    def find_module(self, parts: List[str], current_dir: str) -> Tuple[Optional[str], List[str]]:
        """Longest existing prefix of ``parts`` as a module file.

        Returns (absolute file path or None, unconsumed trailing segments).
        """
        for i in range(len(parts), 0, -1):
            base_name = os.path.join(*parts[:i]) + self.extension
            for directory in self.search_dirs(current_dir):
                candidate = os.path.abspath(os.path.join(directory, base_name))
                if os.path.isfile(candidate):
                    logger.debug("Include %s -> %s", ".".join(parts), candidate)
                    return candidate, parts[i:]
        return None, []

    def resolve(self, raw_path: str, current_dir: str, line: int = 0) -> Optional[IncludeDirective]:
        """Resolve ``raw_path``; None when no module file exists for any prefix."""
        # "util@square" and "util.@square" both name the macro segment
        normalised = raw_path.replace(".@", "@").replace("@", ".@")
        parts = [p for p in normalised.split(".") if p]
        if not parts:
            return None

        resolved, remaining = self.find_module(parts, current_dir)
        if resolved is None:
            logger.debug("Include %s not found in %s", raw_path, self.search_dirs(current_dir))
            return None

        kind = IncludeKind.WHOLE_FILE
        parent_class = None
        if not remaining:
            alias = os.path.splitext(os.path.basename(resolved))[0]
        else:
            alias = remaining[-1]
            if alias.startswith("@"):
                kind = IncludeKind.MACRO
                alias = alias[1:]
            elif _is_class_segment(alias):
                if len(remaining) > 1 and _is_class_segment(remaining[-2]):
                    kind = IncludeKind.INNER_CLASS
                    parent_class = remaining[-2]
                else:
                    kind = IncludeKind.CLASS
            # anything else imports the whole file, best effort

        return IncludeDirective(
            path=raw_path, alias=alias, resolved_file=resolved,
            kind=kind, line=line, parent_class=parent_class,
        )
