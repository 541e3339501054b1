"""
Pangy Workspace — per-document analysis state.

Holds one AnalysisResult per open document, keyed by normalised absolute
path.  The lifecycle mirrors an editor session:

    open()    — analyse and store (text from disk unless given)
    change()  — re-analyse and replace; never patched in place
    close()   — forget the document

Usage:
    ws = PangyWorkspace(AnalyzerConfig.from_env())
    ws.open("/path/to/main.pgy")
    for d in ws.diagnostics("/path/to/main.pgy"):
        print(d)
"""

import logging
import os
from typing import Dict, List, Optional

from pangy_core.analyzer import AnalysisResult, analyze_file, analyze_source
from pangy_core.config import AnalyzerConfig
from pangy_core.diagnostics import Diagnostic
from pangy_core.symbols import SymbolTable

logger = logging.getLogger(__name__)


def _norm_path(p: str) -> str:
    """Absolute path with forward slashes, for use as a document key."""
    return os.path.abspath(p).replace("\\", "/")


class PangyWorkspace:

    def __init__(self, config: Optional[AnalyzerConfig] = None):
        self.config = config or AnalyzerConfig()
        self._documents: Dict[str, AnalysisResult] = {}
        # text given by the editor, which may differ from what is on disk
        self._texts: Dict[str, Optional[str]] = {}

    def open(self, file_path: str, text: Optional[str] = None) -> AnalysisResult:
        key = _norm_path(file_path)
        self._texts[key] = text
        return self._analyze(key, file_path, text)

    def change(self, file_path: str, text: str) -> AnalysisResult:
        key = _norm_path(file_path)
        if key not in self._documents:
            logger.debug("change() on unopened document %s, opening it", key)
        self._texts[key] = text
        return self._analyze(key, file_path, text)

    def close(self, file_path: str) -> bool:
        key = _norm_path(file_path)
        self._texts.pop(key, None)
        return self._documents.pop(key, None) is not None

    def reconfigure(self, config: AnalyzerConfig) -> int:
        """Swap the config and re-analyse every open document."""
        self.config = config
        return self.reanalyze_all()

    def reanalyze_all(self) -> int:
        for key in list(self._documents):
            self._analyze(key, key, self._texts.get(key))
        return len(self._documents)

    # ────────────────────────────────────────────────────────────────
    #  Queries
    # ────────────────────────────────────────────────────────────────

    def get(self, file_path: str) -> Optional[AnalysisResult]:
        return self._documents.get(_norm_path(file_path))

    def symbols(self, file_path: str) -> Optional[SymbolTable]:
        result = self.get(file_path)
        return result.symbols if result else None

    def diagnostics(self, file_path: str) -> List[Diagnostic]:
        result = self.get(file_path)
        return result.diagnostics if result else []

    def open_documents(self) -> List[str]:
        return sorted(self._documents)

    def is_open(self, file_path: str) -> bool:
        return _norm_path(file_path) in self._documents

    # ────────────────────────────────────────────────────────────────
    #  Internal
    # ────────────────────────────────────────────────────────────────

    def _analyze(self, key: str, file_path: str, text: Optional[str]) -> AnalysisResult:
        if text is None:
            result = analyze_file(file_path, self.config)
        else:
            result = analyze_source(text, file_path, self.config)
        # last write wins
        self._documents[key] = result
        return result
