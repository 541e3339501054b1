"""
Diagnostics — positioned findings produced by every analysis stage.

The reporter is a plain accumulator: stages append, nothing is ever
suppressed, and the resulting list keeps emission order.
"""

import logging
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from pangy_core.symbols import FunctionSymbol

logger = logging.getLogger(__name__)

SOURCE = "pangy"
LIBRARY_SOURCE = "pangy-library"


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    HINT = "hint"


class DiagnosticCode(str, Enum):
    UNRESOLVED_INCLUDE = "unresolved-include"
    SYMBOL_NOT_FOUND_IN_INCLUDE = "symbol-not-found-in-include"
    FILE_ACCESS_ERROR = "file-access-error"
    MALFORMED_DECLARATION = "malformed-declaration"
    MISSING_BRACE = "missing-brace"
    UNBALANCED_BRACES = "unbalanced-braces"
    UNKNOWN_TYPE = "unknown-type"
    UNDEFINED_CLASS = "undefined-class"
    UNDEFINED_VARIABLE = "undefined-variable"
    UNDEFINED_FUNCTION = "undefined-function"
    UNDEFINED_MACRO = "undefined-macro"
    MACRO_ARITY_MISMATCH = "macro-arity-mismatch"
    ACCESS_MODIFIER_MISUSE = "access-modifier-misuse"
    FUNCTION_INFO = "function-info"


class Diagnostic(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    message: str
    line: int                  # 1-indexed
    start_column: int          # 0-based
    end_column: int            # exclusive
    severity: Severity
    code: DiagnosticCode
    source: str = SOURCE
    whole_line: bool = False
    function: Optional[FunctionSymbol] = None

    def __str__(self) -> str:
        return (f"{self.line}:{self.start_column}-{self.end_column} "
                f"{self.severity.value} [{self.code.value}] {self.message}")


class DiagnosticReporter:
    """Ordered collection of diagnostics for one source unit."""

    def __init__(self):
        self._items: List[Diagnostic] = []

    def add(self, diagnostic: Diagnostic) -> Diagnostic:
        self._items.append(diagnostic)
        return diagnostic

    def report(self, code: DiagnosticCode, message: str, line: int,
               start: int, end: int, severity: Severity = Severity.ERROR,
               source: str = SOURCE, whole_line: bool = False,
               function: Optional[FunctionSymbol] = None) -> Diagnostic:
        return self.add(Diagnostic(
            message=message, line=line, start_column=start, end_column=end,
            severity=severity, code=code, source=source,
            whole_line=whole_line, function=function,
        ))

    def report_line(self, code: DiagnosticCode, message: str, scanned,
                    severity: Severity = Severity.ERROR,
                    source: str = SOURCE) -> Diagnostic:
        """Highlight the whole original line."""
        return self.report(code, message, scanned.number, 0, len(scanned.original),
                           severity=severity, source=source, whole_line=True)

    def report_at(self, code: DiagnosticCode, message: str, scanned,
                  offset: int, length: int,
                  severity: Severity = Severity.ERROR,
                  function: Optional[FunctionSymbol] = None,
                  fallback_message: Optional[str] = None,
                  source: str = SOURCE) -> Diagnostic:
        """Report a span given as an offset into the comment-stripped line.

        The offset is mapped back through the Position Mapper; if that
        fails the whole line is highlighted instead.
        """
        column = scanned.to_original(offset) if offset >= 0 else -1
        if column < 0:
            logger.debug("Position recovery failed on line %d (offset %d)",
                         scanned.number, offset)
            return self.report(code, fallback_message or message, scanned.number,
                               0, len(scanned.original), severity=severity,
                               source=source, whole_line=True, function=function)
        return self.report(code, message, scanned.number, column, column + length,
                           severity=severity, source=source, function=function)

    def extend(self, other: "DiagnosticReporter"):
        self._items.extend(other._items)

    def empty(self) -> bool:
        return not self._items

    @property
    def items(self) -> List[Diagnostic]:
        return list(self._items)

    def by_severity(self, severity: Severity) -> List[Diagnostic]:
        return [d for d in self._items if d.severity == severity]

    def by_code(self, code: DiagnosticCode) -> List[Diagnostic]:
        return [d for d in self._items if d.code == code]

    def to_list(self) -> List[dict]:
        return [d.model_dump(mode="json") for d in self._items]

    def __len__(self) -> int:
        return len(self._items)
