"""
Type Checker — every declared type must belong to the known-type universe.

    universe = built-in types ∪ local classes (nested included) ∪ imported classes

Checked: variable types, function return types, parameter types.  Each
failure is one UNKNOWN_TYPE error positioned on the type token; when the
token cannot be located the whole line is highlighted.
"""

import logging
from typing import Iterable, List, Set

from pangy_core.diagnostics import DiagnosticCode, DiagnosticReporter
from pangy_core.scanner import ScannedLine
from pangy_core.symbols import SymbolTable

logger = logging.getLogger(__name__)

BUILTIN_TYPES = (
    "int", "string", "float", "file", "void", "bool",
    "int[]", "string[]", "float[]",
)


def known_types(table: SymbolTable, builtins: Iterable[str] = BUILTIN_TYPES) -> Set[str]:
    universe = set(builtins)
    universe.update(table.class_names())
    return universe


class TypeChecker:

    def __init__(self, table: SymbolTable, lines: List[ScannedLine],
                 reporter: DiagnosticReporter):
        self.table = table
        self.lines = lines
        self.reporter = reporter
        self.known = known_types(table)

    def check(self):
        for var in self.table.all_variables():
            if var.type not in self.known:
                self._report(
                    var.line, var.type_offset, var.type,
                    f"Unknown type '{var.type}' for variable '{var.name}'. Known types are: "
                    f"int, string, float, file, void, bool, defined classes, and their "
                    f"array forms (e.g., int[]).",
                    f"Unknown type '{var.type}' for variable '{var.name}'.",
                )

        for func in self.table.all_functions():
            if func.return_type not in self.known:
                message = f"Unknown return type '{func.return_type}' for function '{func.name}'."
                self._report(func.line, func.return_type_offset, func.return_type,
                             message, message + " (Could not determine exact location)")
            for param in func.params:
                if param.type not in self.known:
                    message = (f"Unknown type '{param.type}' for parameter '{param.name}' "
                               f"in function '{func.name}'.")
                    self._report(func.line, param.offset, param.type,
                                 message, message + " (Could not determine exact location)")

    def _report(self, line: int, offset: int, type_name: str, message: str, fallback: str):
        scanned = self.lines[line - 1]
        # the classifier offset is authoritative; re-find the token only if it drifted
        if offset < 0 or scanned.cleaned[offset:offset + len(type_name)] != type_name:
            offset = scanned.cleaned.rfind(type_name)
        self.reporter.report_at(DiagnosticCode.UNKNOWN_TYPE, message, scanned,
                                offset, len(type_name), fallback_message=fallback)
