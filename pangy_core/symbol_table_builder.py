"""
Symbol Table Builder — single pass over one file's lines.

For each non-empty comment-stripped line the classifier decides what it
declares; declarations are attached to the innermost open class (tracked by
brace depth) or to the file's top level.  ``include`` lines recurse into the
resolved module with a fresh builder that shares:

  • visited   — files already entered in this pass (cycle guard)
  • memo      — path -> (SymbolTable, diagnostics) for modules already parsed

so every module is parsed at most once per top-level analysis and
mutually-including modules terminate with empty results.

Diagnostics found inside an included module are re-reported on the include
line of the including file with source ``pangy-library``.
"""

import logging
import os
from dataclasses import replace
from typing import Dict, List, Optional, Set, Tuple

from pangy_core.classifier import ClassifiedLine, LineKind, classify
from pangy_core.config import DEFAULT_MAX_LINES
from pangy_core.diagnostics import (
    LIBRARY_SOURCE, Diagnostic, DiagnosticCode, DiagnosticReporter, Severity,
)
from pangy_core.include_resolver import IncludeDirective, IncludeKind, IncludeResolver
from pangy_core.scanner import ScannedLine, mask_strings, scan_source
from pangy_core.source_loader import read_source
from pangy_core.symbols import (
    GLOBAL_SCOPE, ClassSymbol, FunctionSymbol, ImportedClass, MacroSymbol,
    SymbolTable, VariableSymbol,
)

logger = logging.getLogger(__name__)

Memo = Dict[str, Tuple[SymbolTable, List[Diagnostic]]]

_MALFORMED_MESSAGES = {
    "def": "Invalid function definition syntax. Expected: def name(param type, ...) -> type",
    "class": "Invalid class definition syntax. Expected: class Name {",
    "macro": "Invalid macro definition syntax. Expected: macro name(params) {",
    "var": "Variable declaration must include a type (int, float, string, file, or a class name).",
}

_KIND_LABELS = {
    IncludeKind.CLASS: "Class",
    IncludeKind.INNER_CLASS: "Inner class",
    IncludeKind.MACRO: "Macro",
}


class SymbolTableBuilder:
    """Builds the SymbolTable of one source unit.

    Usage:
        reporter = DiagnosticReporter()
        builder = SymbolTableBuilder(IncludeResolver(lib_dir), reporter)
        table = builder.build(scan_source(text), "/abs/path/main.pgy")
    """

    def __init__(self, resolver: IncludeResolver, reporter: DiagnosticReporter,
                 max_lines: int = DEFAULT_MAX_LINES,
                 visited: Optional[Set[str]] = None, memo: Optional[Memo] = None,
                 is_root: bool = True):
        self.resolver = resolver
        self.reporter = reporter
        self.max_lines = max_lines
        self.visited: Set[str] = visited if visited is not None else set()
        self.memo: Memo = memo if memo is not None else {}
        self.is_root = is_root

        self._table = SymbolTable()
        self._class_stack: List[Tuple[ClassSymbol, int]] = []
        self._open_braces: List[int] = []   # line numbers of unmatched '{'
        self._current_dir = os.getcwd()

    # ────────────────────────────────────────────────────────────────
    #  Entry points
    # ────────────────────────────────────────────────────────────────

    def build(self, lines: List[ScannedLine], file_path: Optional[str]) -> SymbolTable:
        if file_path:
            file_path = os.path.abspath(file_path)
            self.visited.add(file_path)
            self._current_dir = os.path.dirname(file_path)

        self._table = SymbolTable(file_path)
        self._class_stack = []
        self._open_braces = []

        for scanned in lines:
            if not scanned.stripped:
                continue
            self._process_line(scanned)

        for line_number in sorted(set(self._open_braces)):
            self.reporter.report(
                DiagnosticCode.UNBALANCED_BRACES,
                "Unbalanced braces: '{' is never closed",
                line_number, 0, len(lines[line_number - 1].original), whole_line=True,
            )

        logger.debug("Built symbol table for %s: %d symbols, %d includes",
                     file_path, self._table.total_symbols, len(self._table.includes))
        return self._table

    def build_module(self, path: str) -> Optional[Tuple[SymbolTable, List[Diagnostic]]]:
        """Parse an included module (memoised per pass).

        Returns None when ``path`` is already being parsed higher up the
        include chain.  Read failures raise OSError.
        """
        path = os.path.abspath(path)
        if path in self.memo:
            logger.debug("Include memo hit: %s", path)
            return self.memo[path]
        if path in self.visited:
            logger.debug("Include cycle detected, skipping %s", path)
            return None

        text = read_source(path, self.max_lines)
        child_reporter = DiagnosticReporter()
        child = SymbolTableBuilder(
            self.resolver, child_reporter, max_lines=self.max_lines,
            visited=self.visited, memo=self.memo, is_root=False,
        )
        table = child.build(scan_source(text), path)
        self.memo[path] = (table, child_reporter.items)
        return self.memo[path]

    # ────────────────────────────────────────────────────────────────
    #  Line dispatch
    # ────────────────────────────────────────────────────────────────

    def _process_line(self, scanned: ScannedLine):
        depth_before = len(self._open_braces)
        self._track_braces(scanned)
        depth = len(self._open_braces)

        while self._class_stack and depth < self._class_stack[-1][1]:
            self._class_stack.pop()
        owner = self._class_stack[-1][0] if self._class_stack else None

        classified = classify(scanned.cleaned)
        kind = classified.kind

        if kind == LineKind.INCLUDE:
            self._handle_include(classified, scanned)
        elif kind == LineKind.CLASS:
            cls = self._handle_class(classified, scanned, owner)
            if depth > depth_before:
                self._class_stack.append((cls, depth))
        elif kind == LineKind.FUNCTION:
            self._handle_function(classified, scanned, owner)
        elif kind == LineKind.MACRO:
            self._handle_macro(classified, scanned, owner)
        elif kind == LineKind.VARIABLE:
            self._handle_variable(classified, scanned, owner)
        elif kind == LineKind.MALFORMED:
            self.reporter.report_line(DiagnosticCode.MALFORMED_DECLARATION,
                                      _MALFORMED_MESSAGES[classified.keyword], scanned)
        elif kind == LineKind.IF and self.is_root and not classified.opens_brace:
            self.reporter.report_line(
                DiagnosticCode.MISSING_BRACE,
                "If statement should usually end with '{' or have its body on the same line.",
                scanned, severity=Severity.WARNING,
            )

    def _track_braces(self, scanned: ScannedLine):
        excess_close = False
        for ch in mask_strings(scanned.cleaned):
            if ch == "{":
                self._open_braces.append(scanned.number)
            elif ch == "}":
                if self._open_braces:
                    self._open_braces.pop()
                else:
                    excess_close = True
        if excess_close:
            self.reporter.report_line(DiagnosticCode.UNBALANCED_BRACES,
                                      "Unbalanced braces: '}' has no matching '{'", scanned)

    # ────────────────────────────────────────────────────────────────
    #  Declarations
    # ────────────────────────────────────────────────────────────────

    def _handle_class(self, classified: ClassifiedLine, scanned: ScannedLine,
                      owner: Optional[ClassSymbol]) -> ClassSymbol:
        cls = ClassSymbol(name=classified.name, line=scanned.number,
                          source_file=self._table.file_path)
        if owner is not None:
            owner.members.classes.append(cls)
        else:
            self._table.classes.append(cls)

        if (self.is_root and not scanned.stripped.endswith("{")
                and not classified.is_one_liner):
            self.reporter.report_line(DiagnosticCode.MISSING_BRACE,
                                      "Class definition should end with '{'", scanned)
        return cls

    def _handle_function(self, classified: ClassifiedLine, scanned: ScannedLine,
                         owner: Optional[ClassSymbol]):
        func = FunctionSymbol(
            name=classified.name,
            params=classified.params,
            return_type=classified.type_name,
            line=scanned.number,
            scope=owner.name if owner else None,
            source_file=self._table.file_path,
            return_type_offset=classified.type_offset,
            access_modifier=classified.modifier,
        )
        if owner is not None:
            owner.members.functions.append(func)
        else:
            self._table.functions.append(func)

        if not self.is_root:
            return
        if classified.modifier:
            self.reporter.report_at(
                DiagnosticCode.ACCESS_MODIFIER_MISUSE,
                f"Functions are public by default and do not support "
                f"'{classified.modifier}' access modifier.",
                scanned, classified.modifier_offset, len(classified.modifier),
                severity=Severity.WARNING,
            )
        if not classified.opens_brace:
            self.reporter.report_line(
                DiagnosticCode.MISSING_BRACE,
                "Function definition should usually end with '{' or have its body on the same line.",
                scanned, severity=Severity.WARNING,
            )

    def _handle_macro(self, classified: ClassifiedLine, scanned: ScannedLine,
                      owner: Optional[ClassSymbol]):
        macro = MacroSymbol(name=classified.name, params=classified.macro_params,
                            line=scanned.number, source_file=self._table.file_path)
        if owner is not None:
            owner.members.macros.append(macro)
        else:
            self._table.macros.append(macro)

        if self.is_root and not classified.opens_brace:
            self.reporter.report_line(
                DiagnosticCode.MISSING_BRACE,
                "Macro definition should usually end with '{' or have its body on the same line.",
                scanned, severity=Severity.WARNING,
            )

    def _handle_variable(self, classified: ClassifiedLine, scanned: ScannedLine,
                         owner: Optional[ClassSymbol]):
        var = VariableSymbol(
            name=classified.name, type=classified.type_name, line=scanned.number,
            scope=owner.name if owner else GLOBAL_SCOPE,
            type_offset=classified.type_offset,
        )
        if owner is not None:
            owner.members.variables.append(var)
        else:
            self._table.variables.append(var)

    # ────────────────────────────────────────────────────────────────
    #  Includes
    # ────────────────────────────────────────────────────────────────

    def _handle_include(self, classified: ClassifiedLine, scanned: ScannedLine):
        raw_path = classified.include_path
        offset, length = classified.include_offset, len(raw_path)

        directive = self.resolver.resolve(raw_path, self._current_dir, scanned.number)
        if directive is None:
            self.reporter.report_at(
                DiagnosticCode.UNRESOLVED_INCLUDE,
                f"Could not resolve include path '{raw_path}'. "
                f"Check paths and {self.resolver.library_dir} configuration.",
                scanned, offset, length,
            )
            return

        self._table.includes.append(directive)

        try:
            parsed = self.build_module(directive.resolved_file)
        except OSError as e:
            logger.error("Cannot read included file %s: %s", directive.resolved_file, e)
            self.reporter.report_at(
                DiagnosticCode.FILE_ACCESS_ERROR,
                f"Error reading or parsing included file '{directive.resolved_file}': {e}",
                scanned, offset, length, source=LIBRARY_SOURCE,
            )
            return

        if parsed is None:
            return
        module, module_diagnostics = parsed

        for diag in module_diagnostics:
            self.reporter.report_at(
                diag.code,
                f"Error in included library '{raw_path}': {diag.message} "
                f"(line {diag.line} in {directive.file_name})",
                scanned, offset, length, source=LIBRARY_SOURCE,
            )

        if not self._import_symbols(directive, module):
            self.reporter.report_at(
                DiagnosticCode.SYMBOL_NOT_FOUND_IN_INCLUDE,
                f"{_KIND_LABELS[directive.kind]} '{directive.alias}' not found in "
                f"'{directive.file_name}'. Path: {raw_path}",
                scanned, offset, length,
            )

    def _import_symbols(self, directive: IncludeDirective, module: SymbolTable) -> bool:
        """Merge what ``directive`` asks for; False if a named symbol is missing."""
        imported = self._table.imported
        source = directive.resolved_file

        if directive.kind == IncludeKind.WHOLE_FILE:
            for cls in module.classes:
                imported.add_class(ImportedClass(name=cls.name, source_file=source))
                self._import_methods(cls, source)
            for imp_cls in module.imported.classes:
                imported.add_class(imp_cls)
            for func in module.functions:
                imported.add_function(replace(func, source_file=source))
            for func in module.imported.functions:
                imported.add_function(func)
            for macro in module.macros:
                imported.add_macro(replace(macro, source_file=source))
            for macro in module.imported.macros:
                imported.add_macro(macro)
            return True

        if directive.kind == IncludeKind.CLASS:
            cls = next((c for c in module.classes if c.name == directive.alias), None)
            if cls is not None:
                imported.add_class(ImportedClass(name=cls.name, source_file=source))
                self._import_methods(cls, source)
                return True
            # a class the module itself pulled in from further down
            imp_cls = next((c for c in module.imported.classes if c.name == directive.alias), None)
            if imp_cls is None:
                return False
            imported.add_class(imp_cls)
            for func in module.imported.functions:
                if func.class_name == imp_cls.name:
                    imported.add_function(func)
            return True

        if directive.kind == IncludeKind.INNER_CLASS:
            parent = next((c for c in module.classes if c.name == directive.parent_class), None)
            inner = parent.find_inner(directive.alias) if parent else None
            if inner is None:
                return False
            imported.add_class(ImportedClass(name=inner.name, source_file=source,
                                             is_inner=True, parent_class=parent.name))
            self._import_methods(inner, source)
            return True

        if directive.kind == IncludeKind.MACRO:
            macro = next((m for m in module.macros if m.name == directive.alias), None)
            if macro is None:
                macro = next((m for m in module.imported.macros if m.name == directive.alias), None)
            if macro is None:
                return False
            imported.add_macro(replace(macro, source_file=macro.source_file or source))
            return True

        return False

    def _import_methods(self, cls: ClassSymbol, source: str):
        for method in cls.members.functions:
            self._table.imported.add_function(
                replace(method, source_file=source, class_name=cls.name)
            )
