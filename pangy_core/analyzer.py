"""
Analyzer — the full pipeline for one Pangy source unit.

    scan → build symbol table (recursing into includes) → type check → reference check

Each call is self-contained: the include memo lives only for the duration
of one pass, so every analysis re-reads included modules from disk.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from pangy_core.config import AnalyzerConfig
from pangy_core.diagnostics import Diagnostic, DiagnosticReporter, Severity
from pangy_core.include_resolver import IncludeResolver
from pangy_core.reference_checker import ReferenceChecker
from pangy_core.scanner import ScannedLine, scan_source
from pangy_core.source_loader import read_source
from pangy_core.symbol_table_builder import SymbolTableBuilder
from pangy_core.symbols import SymbolTable
from pangy_core.type_checker import TypeChecker

logger = logging.getLogger(__name__)


@dataclass
class AnalysisResult:
    file_path: Optional[str]
    symbols: SymbolTable
    diagnostics: List[Diagnostic] = field(default_factory=list)
    lines: List[ScannedLine] = field(default_factory=list)

    @property
    def errors(self) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == Severity.ERROR]

    @property
    def warnings(self) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == Severity.WARNING]

    @property
    def hints(self) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == Severity.HINT]

    def get_summary(self) -> Dict:
        return {
            "file": self.file_path,
            "errors": len(self.errors),
            "warnings": len(self.warnings),
            "hints": len(self.hints),
            "classes": len(self.symbols.classes),
            "functions": len(self.symbols.functions),
            "macros": len(self.symbols.macros),
            "variables": len(self.symbols.variables),
            "includes": len(self.symbols.includes),
        }


def analyze_source(text: str, file_path: Optional[str] = None,
                   config: Optional[AnalyzerConfig] = None) -> AnalysisResult:
    """Analyse ``text`` as the content of ``file_path``.

    ``file_path`` anchors relative includes; without it the current
    working directory is used.
    """
    config = config or AnalyzerConfig()
    if file_path:
        file_path = os.path.abspath(file_path)

    lines = scan_source(text)
    reporter = DiagnosticReporter()
    resolver = IncludeResolver(str(config.library_dir), config.module_extension)

    builder = SymbolTableBuilder(resolver, reporter, max_lines=config.max_lines)
    table = builder.build(lines, file_path)

    TypeChecker(table, lines, reporter).check()
    ReferenceChecker(table, lines, reporter).check()

    result = AnalysisResult(file_path=file_path, symbols=table,
                            diagnostics=reporter.items, lines=lines)
    summary = result.get_summary()
    logger.info("Analysed %s: %d errors, %d warnings, %d hints, %d modules parsed",
                file_path or "<buffer>", summary["errors"], summary["warnings"],
                summary["hints"], len(builder.memo))
    return result


def analyze_file(file_path: str, config: Optional[AnalyzerConfig] = None) -> AnalysisResult:
    """Read ``file_path`` from disk and analyse it.  Raises SourceLoadError."""
    config = config or AnalyzerConfig()
    text = read_source(file_path, config.max_lines)
    return analyze_source(text, file_path, config)
