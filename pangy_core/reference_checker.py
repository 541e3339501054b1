"""
Reference Checker — flags names that resolve to nothing.

Three passes over the comment-stripped lines:

  1. macro calls     ``@name(args)``  — must exist; arity mismatch is a warning
  2. bare words      Capitalised → class reference, lowercase → variable
  3. bare calls      ``name(``        — must be a local/imported/built-in function

Declaration lines (var/def/class/include/macro), well-formed or not, are
skipped by the word pass: their identifiers are declarations, not uses.
String literals, unterminated ones included, are blanked before any word
is looked at.  Every resolved call also yields a
FUNCTION_INFO hint carrying the FunctionSymbol.
"""

import logging
import re
from typing import List, Optional, Set, Tuple

from pangy_core.classifier import FUNCTION_CALL_RE, LineKind, classify, is_declaration_line
from pangy_core.diagnostics import DiagnosticCode, DiagnosticReporter, Severity
from pangy_core.scanner import ScannedLine, mask_strings
from pangy_core.symbols import SymbolTable
from pangy_core.type_checker import BUILTIN_TYPES

logger = logging.getLogger(__name__)

KEYWORDS = frozenset({
    "if", "else", "loop", "stop", "return", "include", "class", "def", "var",
    "public", "private", "macro", "this", "static", "new", "true", "false", "use",
})

BUILTIN_FUNCTIONS = frozenset({
    "print", "input", "to_int", "to_string", "to_stringf", "to_intf",
    "append", "pop", "length", "index", "open", "write", "read", "close",
    "exec", "show",
})

# names that look like calls but are statements: ``if (``, ``loop (``
CALL_KEYWORDS = frozenset({"if", "else", "loop", "static", "var", "return", "stop"})

WORD_RE = re.compile(r"[^\s.(){}\[\],;=+\-*/%<>!&|^~]+")
VARIABLE_WORD_RE = re.compile(r"^[a-z_][A-Za-z0-9_]*$")
MACRO_CALL_RE = re.compile(r"@([A-Za-z_][A-Za-z0-9_]*)(\s*\()?")
EXTERNAL_CALL_RE = re.compile(
    r'\(\s*("[^"]*")\s+use\s*\.\s*([A-Za-z_][A-Za-z0-9_]*)\s*\(([^)]*)\)\s*\)'
)
_CALL_OPEN_RE = re.compile(r"\s*\(")

_DEFINITION_KINDS = (LineKind.FUNCTION, LineKind.CLASS, LineKind.MACRO)
_DECLARATION_KINDS = (LineKind.INCLUDE, LineKind.CLASS, LineKind.FUNCTION,
                      LineKind.MACRO, LineKind.VARIABLE)


def split_call_arguments(text: str, start: int) -> Tuple[Optional[List[str]], int]:
    """Split the argument list whose '(' ends just before ``start``.

    ``text`` should have string contents masked.  Returns (non-empty
    arguments, index of the closing paren), or (None, -1) if unterminated.
    """
    depth = 1
    args: List[str] = []
    current = start
    for i in range(start, len(text)):
        ch = text[i]
        if ch in "([{":
            depth += 1
        elif ch in ")]}":
            depth -= 1
            if depth == 0:
                args.append(text[current:i])
                return [a.strip() for a in args if a.strip()], i
        elif ch == "," and depth == 1:
            args.append(text[current:i])
            current = i + 1
    return None, -1


class ReferenceChecker:

    def __init__(self, table: SymbolTable, lines: List[ScannedLine],
                 reporter: DiagnosticReporter):
        self.table = table
        self.lines = lines
        self.reporter = reporter

        self._variables: Set[str] = {v.name for v in table.all_variables()}
        self._params: Set[str] = {p.name for f in table.all_functions() for p in f.params}
        self._params.update(p for m in table.all_macros() for p in m.params)

    def check(self):
        code_lines = [s for s in self.lines if s.stripped]
        for scanned in code_lines:
            self._check_macro_calls(scanned)
        for scanned in code_lines:
            self._check_words(scanned)
        for scanned in code_lines:
            self._check_calls(scanned)

    @staticmethod
    def _region(scanned: ScannedLine) -> Tuple[str, int, bool]:
        """(text to check, its offset in the cleaned line, is external-call args)."""
        m = EXTERNAL_CALL_RE.search(scanned.cleaned)
        if m:
            return m.group(3), m.start(3), True
        return scanned.cleaned, 0, False

    # ────────────────────────────────────────────────────────────────
    #  Macro calls
    # ────────────────────────────────────────────────────────────────

    def _check_macro_calls(self, scanned: ScannedLine):
        masked = mask_strings(scanned.cleaned, keep_quotes=True)
        for m in MACRO_CALL_RE.finditer(masked):
            name = m.group(1)
            macro = self.table.find_macro(name)
            if macro is None:
                self.reporter.report_at(
                    DiagnosticCode.UNDEFINED_MACRO,
                    f"Undefined macro '@{name}'. Make sure it's defined in this file "
                    f"or imported correctly.",
                    scanned, m.start(), len(name) + 1,
                    fallback_message=f"Undefined macro '@{name}'. Make sure it's defined in "
                                     f"this file or imported correctly. "
                                     f"(Could not determine exact location)",
                )
                continue

            if not m.group(2):
                continue
            args, close = split_call_arguments(masked, m.end())
            if args is None or len(args) == len(macro.params):
                continue
            self.reporter.report_at(
                DiagnosticCode.MACRO_ARITY_MISMATCH,
                f"Macro '@{name}' called with {len(args)} parameters but expects "
                f"{len(macro.params)}.",
                scanned, m.start(), close + 1 - m.start(),
                severity=Severity.WARNING,
            )

    # ────────────────────────────────────────────────────────────────
    #  Class and variable references
    # ────────────────────────────────────────────────────────────────

    def _check_words(self, scanned: ScannedLine):
        classified = classify(scanned.cleaned)
        if (classified.kind in _DECLARATION_KINDS or classified.kind == LineKind.MALFORMED
                or is_declaration_line(scanned.cleaned)):
            return

        text, base, _ = self._region(scanned)
        masked = mask_strings(text)

        for m in WORD_RE.finditer(masked):
            word = m.group(0)
            if word in KEYWORDS or word.isdigit() or word in BUILTIN_TYPES:
                continue

            start = m.start()
            after_dot = start > 0 and masked[start - 1] == "."

            if word[0].isupper():
                if after_dot or self.table.has_class(word):
                    continue
                self.reporter.report_at(
                    DiagnosticCode.UNDEFINED_CLASS,
                    f"Class '{word}' is not defined. Check spelling or ensure it's "
                    f"properly imported.",
                    scanned, base + start, len(word),
                    fallback_message=f"Class '{word}' is not defined. "
                                     f"(Could not determine exact location)",
                )
            elif VARIABLE_WORD_RE.match(word):
                is_call = _CALL_OPEN_RE.match(masked, m.end()) is not None
                if (after_dot or is_call or word in self._variables
                        or word in self._params or word in BUILTIN_FUNCTIONS):
                    continue
                self.reporter.report_at(
                    DiagnosticCode.UNDEFINED_VARIABLE,
                    f"Variable '{word}' is not defined. Check spelling or define it "
                    f"before use.",
                    scanned, base + start, len(word),
                    fallback_message=f"Variable '{word}' is not defined. "
                                     f"(Could not determine exact location)",
                )

    # ────────────────────────────────────────────────────────────────
    #  Bare function calls
    # ────────────────────────────────────────────────────────────────

    def _check_calls(self, scanned: ScannedLine):
        text, base, external = self._region(scanned)
        masked = mask_strings(text)
        classified = classify(scanned.cleaned)
        is_definition = (classified.kind in _DEFINITION_KINDS
                         or (classified.kind == LineKind.MALFORMED
                             and classified.keyword != "var"))

        for m in FUNCTION_CALL_RE.finditer(masked):
            name = m.group(1)
            start = m.start(1)

            # inside ("lib" use.func(...)) every call in the arguments counts
            if not external:
                before = masked[:start]
                if before.endswith("@"):
                    continue
                if (is_definition or name in CALL_KEYWORDS or name == "new"
                        or before.rstrip().endswith(".")):
                    continue

            func = self.table.find_function(name)
            if func is not None:
                self.reporter.report_at(
                    DiagnosticCode.FUNCTION_INFO, f"Function info: {name}",
                    scanned, base + start, len(name), severity=Severity.HINT,
                    function=func,
                    fallback_message=f"Function info: {name} (Position undetermined)",
                )
            elif name not in BUILTIN_FUNCTIONS:
                self.reporter.report_at(
                    DiagnosticCode.UNDEFINED_FUNCTION,
                    f"Function '{name}' is not defined. Check spelling or ensure it's "
                    f"properly imported.",
                    scanned, base + start, len(name),
                    fallback_message=f"Function '{name}' is not defined. "
                                     f"(Could not determine exact location)",
                )
