"""
Scanner — comment stripping and position mapping for Pangy source.

One character-level pass per line decides, for every character, whether it
is code (kept) or comment (dropped).  Both directions of position mapping
are derived from that single pass:

  • strip_comments()  — the cleaned line
  • map_offset()      — cleaned offset -> offset in the original line
  • ScannedLine.to_cleaned() — original offset -> cleaned offset

Rules:
  • "..." and '...' runs are opaque; a backslash consumes the next
    character verbatim (inside or outside strings)
  • /* ... */ spans are removed; an unterminated span carries over to
    the following lines through ``in_block_comment``
  • // and # truncate the rest of the line outside strings/block comments
"""

import logging
import re
from dataclasses import dataclass, field
from typing import List, Tuple

logger = logging.getLogger(__name__)

NOT_FOUND = -1


@dataclass
class ScannedLine:
    """A source line with its comment-free projection."""
    number: int                 # 1-indexed
    original: str
    cleaned: str
    kept: List[int] = field(default_factory=list)   # original index of each cleaned char
    starts_in_comment: bool = False
    ends_in_comment: bool = False

    @property
    def stripped(self) -> str:
        return self.cleaned.strip()

    def to_original(self, cleaned_offset: int) -> int:
        """Map a cleaned-line offset to the original line; NOT_FOUND if out of range."""
        if 0 <= cleaned_offset < len(self.kept):
            return self.kept[cleaned_offset]
        if cleaned_offset == len(self.kept) and self.kept:
            # one past the end, for exclusive range ends
            return self.kept[-1] + 1
        return NOT_FOUND

    def to_cleaned(self, original_offset: int) -> int:
        """Count code characters before ``original_offset``; NOT_FOUND if it is comment text."""
        count = 0
        for idx in self.kept:
            if idx == original_offset:
                return count
            if idx > original_offset:
                break
            count += 1
        return NOT_FOUND


def _scan(line: str, in_block_comment: bool) -> Tuple[List[int], bool]:
    """Return (kept original indices, in_block_comment at end of line)."""
    kept: List[int] = []
    in_string = False
    quote = ""
    escaped = False
    i = 0
    n = len(line)

    while i < n:
        ch = line[i]
        nxt = line[i + 1] if i + 1 < n else ""

        if in_block_comment:
            if ch == "*" and nxt == "/":
                in_block_comment = False
                i += 2
                continue
            i += 1
            continue

        if escaped:
            kept.append(i)
            escaped = False
            i += 1
            continue

        if ch == "\\":
            kept.append(i)
            escaped = True
            i += 1
            continue

        if in_string:
            kept.append(i)
            if ch == quote:
                in_string = False
            i += 1
            continue

        if ch in ('"', "'"):
            kept.append(i)
            in_string = True
            quote = ch
            i += 1
            continue

        if ch == "/" and nxt == "*":
            in_block_comment = True
            i += 2
            continue

        if (ch == "/" and nxt == "/") or ch == "#":
            break

        kept.append(i)
        i += 1

    return kept, in_block_comment


def scan_line(line: str, number: int = 1, in_block_comment: bool = False) -> ScannedLine:
    kept, ends_in_comment = _scan(line, in_block_comment)
    return ScannedLine(
        number=number,
        original=line,
        cleaned="".join(line[i] for i in kept),
        kept=kept,
        starts_in_comment=in_block_comment,
        ends_in_comment=ends_in_comment,
    )


def scan_source(text: str) -> List[ScannedLine]:
    """Scan every line of a source unit, threading block-comment state."""
    lines: List[ScannedLine] = []
    in_block = False
    for number, line in enumerate(split_lines(text), start=1):
        scanned = scan_line(line, number, in_block)
        in_block = scanned.ends_in_comment
        lines.append(scanned)
    if in_block:
        logger.debug("Source ends inside an unterminated block comment")
    return lines


def split_lines(text: str) -> List[str]:
    """Split on \\n or \\r\\n, keeping a trailing empty line like the editor does."""
    return text.replace("\r\n", "\n").split("\n")


def strip_comments(line: str, in_block_comment: bool = False) -> str:
    """Comment-free text of a single line."""
    return scan_line(line, in_block_comment=in_block_comment).cleaned


def strip_comments_stateful(line: str, in_block_comment: bool) -> Tuple[str, bool]:
    """Like strip_comments but also returns the block-comment state for the next line."""
    scanned = scan_line(line, in_block_comment=in_block_comment)
    return scanned.cleaned, scanned.ends_in_comment


def map_offset(original_line: str, cleaned_offset: int, in_block_comment: bool = False) -> int:
    """Recover the original-line offset of a cleaned-line offset, or NOT_FOUND."""
    return scan_line(original_line, in_block_comment=in_block_comment).to_original(cleaned_offset)


# an unterminated literal runs to the end of the line, matching _scan()
_STRING_LITERAL_RE = re.compile(
    r'"(?:\\.|[^"\\])*(?P<dq>")?|\'(?:\\.|[^\'\\])*(?P<sq>\')?'
)


def mask_strings(text: str, keep_quotes: bool = False) -> str:
    """Blank out string literals with spaces, preserving length.

    With ``keep_quotes`` the delimiters survive so an argument that is a
    string literal still counts as non-empty.
    """
    def _blank(m: re.Match) -> str:
        literal = m.group(0)
        if not keep_quotes:
            return " " * len(literal)
        closing = m.group("dq") or m.group("sq") or ""
        return literal[0] + " " * (len(literal) - 1 - len(closing)) + closing

    return _STRING_LITERAL_RE.sub(_blank, text)
