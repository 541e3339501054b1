"""
Statement Classifier — maps one comment-stripped line to a LineKind.

Matchers are tried in a fixed order and the first hit wins:

    include → class → function → macro → variable → malformed → if → other

Adding a grammar rule means adding one matcher to ``_MATCHERS``.  All
offsets in a ClassifiedLine refer to the cleaned line passed in.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Tuple

from pangy_core.symbols import Parameter

IDENT = r"[A-Za-z_][A-Za-z0-9_]*"
TYPE = IDENT + r"(?:\[\])?"

ACCESS_MODIFIERS = ("public", "private")
_MODIFIERS = r"(?P<mods>(?:(?:public|private|static)\s+)*)"

INCLUDE_RE = re.compile(rf"^\s*include\s+(?P<path>{IDENT}[A-Za-z0-9_.]*(?:@{IDENT})?)")
CLASS_RE = re.compile(rf"^\s*class\s+(?P<name>{IDENT})")
FUNCTION_RE = re.compile(
    rf"^\s*{_MODIFIERS}def\s+(?P<name>{IDENT})\s*\((?P<params>[^)]*)\)\s*->\s*(?P<ret>{TYPE})"
)
MACRO_RE = re.compile(rf"^\s*macro\s+(?P<name>{IDENT})\s*\((?P<params>[^)]*)\)")
VARIABLE_RE = re.compile(rf"^\s*{_MODIFIERS}var\s+(?P<name>{IDENT})\s+(?P<type>{TYPE})")
IF_RE = re.compile(r"^\s*(?:\}\s*)?(?:else\s+)?if\s*\((?P<cond>[^)]*)\)")
DECLARATION_PREFIX_RE = re.compile(
    r"^\s*(?:(?:public|private|static)\s+)*(?P<keyword>def|class|macro|var)\b"
)
PARAM_RE = re.compile(rf"({IDENT})\s+({TYPE})")
FUNCTION_CALL_RE = re.compile(rf"({IDENT})\s*\(")


class LineKind(Enum):
    INCLUDE = "include"
    CLASS = "class"
    FUNCTION = "function"
    MACRO = "macro"
    VARIABLE = "variable"
    MALFORMED = "malformed"
    IF = "if"
    OTHER = "other"


@dataclass
class ClassifiedLine:
    kind: LineKind
    text: str
    name: Optional[str] = None
    name_offset: int = -1
    params: List[Parameter] = field(default_factory=list)
    macro_params: List[str] = field(default_factory=list)
    type_name: Optional[str] = None       # variable type or function return type
    type_offset: int = -1
    modifier: Optional[str] = None        # public/private, if present
    modifier_offset: int = -1
    include_path: Optional[str] = None
    include_offset: int = -1
    keyword: Optional[str] = None         # for MALFORMED

    @property
    def opens_brace(self) -> bool:
        return "{" in self.text

    @property
    def is_one_liner(self) -> bool:
        """Body opened and closed on the same line: ``... { ... }``."""
        start = self.text.find("{")
        return start != -1 and self.text.find("}", start) != -1


def parse_params(params_text: str, base_offset: int = 0) -> List[Parameter]:
    """``a int, b string[]`` -> [Parameter(a, int), Parameter(b, string[])]."""
    return [
        Parameter(name=m.group(1), type=m.group(2), offset=base_offset + m.start(2))
        for m in PARAM_RE.finditer(params_text)
    ]


def parse_macro_params(params_text: str) -> List[str]:
    return [p.strip() for p in params_text.split(",") if p.strip()]


def _access_modifier(m: re.Match) -> Tuple[Optional[str], int]:
    mods = m.group("mods") or ""
    for mod in re.finditer(r"\w+", mods):
        if mod.group(0) in ACCESS_MODIFIERS:
            return mod.group(0), m.start("mods") + mod.start()
    return None, -1


# ═══════════════════════════════════════════════════════════════════════
#  Matchers
# ═══════════════════════════════════════════════════════════════════════

def _match_include(text: str) -> Optional[ClassifiedLine]:
    m = INCLUDE_RE.match(text)
    if not m:
        return None
    return ClassifiedLine(LineKind.INCLUDE, text,
                          include_path=m.group("path"), include_offset=m.start("path"))


def _match_class(text: str) -> Optional[ClassifiedLine]:
    m = CLASS_RE.match(text)
    if not m:
        return None
    return ClassifiedLine(LineKind.CLASS, text, name=m.group("name"), name_offset=m.start("name"))


def _match_function(text: str) -> Optional[ClassifiedLine]:
    m = FUNCTION_RE.match(text)
    if not m:
        return None
    modifier, modifier_offset = _access_modifier(m)
    return ClassifiedLine(
        LineKind.FUNCTION, text,
        name=m.group("name"), name_offset=m.start("name"),
        params=parse_params(m.group("params"), m.start("params")),
        type_name=m.group("ret"), type_offset=m.start("ret"),
        modifier=modifier, modifier_offset=modifier_offset,
    )


def _match_macro(text: str) -> Optional[ClassifiedLine]:
    m = MACRO_RE.match(text)
    if not m:
        return None
    return ClassifiedLine(LineKind.MACRO, text, name=m.group("name"), name_offset=m.start("name"),
                          macro_params=parse_macro_params(m.group("params")))


def _match_variable(text: str) -> Optional[ClassifiedLine]:
    m = VARIABLE_RE.match(text)
    if not m:
        return None
    modifier, modifier_offset = _access_modifier(m)
    return ClassifiedLine(
        LineKind.VARIABLE, text,
        name=m.group("name"), name_offset=m.start("name"),
        type_name=m.group("type"), type_offset=m.start("type"),
        modifier=modifier, modifier_offset=modifier_offset,
    )


def _match_malformed(text: str) -> Optional[ClassifiedLine]:
    m = DECLARATION_PREFIX_RE.match(text)
    if not m:
        return None
    return ClassifiedLine(LineKind.MALFORMED, text, keyword=m.group("keyword"))


def _match_if(text: str) -> Optional[ClassifiedLine]:
    if not IF_RE.match(text):
        return None
    return ClassifiedLine(LineKind.IF, text)


_MATCHERS: List[Callable[[str], Optional[ClassifiedLine]]] = [
    _match_include,
    _match_class,
    _match_function,
    _match_macro,
    _match_variable,
    _match_malformed,
    _match_if,
]


def classify(cleaned_line: str) -> ClassifiedLine:
    for matcher in _MATCHERS:
        result = matcher(cleaned_line)
        if result is not None:
            return result
    return ClassifiedLine(LineKind.OTHER, cleaned_line)


def is_declaration_line(cleaned_line: str) -> bool:
    """Lines whose identifiers are declarations rather than uses."""
    stripped = cleaned_line.strip()
    return stripped.startswith(("var ", "def ", "class ", "include "))
