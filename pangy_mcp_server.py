"""
Pangy Analyzer — MCP Server

Exposes the Pangy static analyzer to editors and agents via the Model
Context Protocol:

  1. open_document     — analyse a .pgy file (disk or supplied text) and keep it open
  2. update_document   — re-analyse an open document with new text
  3. close_document    — drop an open document's analysis
  4. analyze_file      — one-shot diagnostics table for a file
  5. get_symbols       — symbol table (local + imported) as JSON
  6. resolve_include   — show what an include path resolves to
  7. set_library_dir   — point at another module library, re-analyse open documents
"""

from mcp.server.fastmcp import FastMCP
import json
import logging
import os
import sys
from pathlib import Path

# Ensure pangy_core is importable when launched as a script
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from pangy_core.analyzer import AnalysisResult
from pangy_core import analyzer as pangy_analyzer
from pangy_core.config import AnalyzerConfig
from pangy_core.include_resolver import IncludeResolver
from pangy_core.source_loader import SourceLoadError
from pangy_core.workspace import PangyWorkspace

logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════════════════════════
#  Server Setup
# ═══════════════════════════════════════════════════════════════════════

mcp = FastMCP("Pangy Analyzer")

config = AnalyzerConfig.from_env()
workspace = PangyWorkspace(config)


def _format_diagnostics(result: AnalysisResult, include_hints: bool = False) -> str:
    summary = result.get_summary()
    out = (
        f"**{result.file_path}**: {summary['errors']} errors, "
        f"{summary['warnings']} warnings, {summary['hints']} hints\n\n"
    )
    shown = [d for d in result.diagnostics
             if include_hints or d.severity.value != "hint"]
    if not shown:
        return out + "No problems found.\n"

    out += "| Line | Columns | Severity | Code | Message |\n"
    out += "|------|---------|----------|------|---------|\n"
    for d in sorted(shown, key=lambda d: (d.line, d.start_column)):
        cols = "line" if d.whole_line else f"{d.start_column}-{d.end_column}"
        message = d.message.replace("|", "\\|")
        out += f"| {d.line} | {cols} | {d.severity.value} | {d.code.value} | {message} |\n"
    return out


# ═══════════════════════════════════════════════════════════════════════
#  Tools 1-3 — Document lifecycle
# ═══════════════════════════════════════════════════════════════════════

@mcp.tool()
def open_document(file_path: str, text: str = "") -> str:
    """
    Opens a Pangy document and analyses it.

    Args:
        file_path: Absolute path of the .pgy file.  Relative includes are
                   resolved from its directory.
        text:      Current buffer contents.  If empty, the file is read from disk.
    """
    try:
        result = workspace.open(file_path, text or None)
    except SourceLoadError as e:
        return f"Error: {e}"
    return _format_diagnostics(result)


@mcp.tool()
def update_document(file_path: str, text: str) -> str:
    """
    Replaces an open document's text and re-analyses it.

    Args:
        file_path: Path used when the document was opened.
        text:      The full new contents.
    """
    result = workspace.change(file_path, text)
    return _format_diagnostics(result)


@mcp.tool()
def close_document(file_path: str) -> str:
    """
    Closes a document and forgets its analysis.

    Args:
        file_path: Path used when the document was opened.
    """
    if workspace.close(file_path):
        return f"Closed {file_path}."
    return f"{file_path} was not open."


# ═══════════════════════════════════════════════════════════════════════
#  Tool 4 — One-shot analysis
# ═══════════════════════════════════════════════════════════════════════

@mcp.tool()
def analyze_file(file_path: str, include_hints: bool = False) -> str:
    """
    Analyses a file without opening it.  Open documents are served from
    the workspace so unsaved edits are reflected.

    Args:
        file_path:     Path of the .pgy file.
        include_hints: Also list function-info hints for every resolved call.
    """
    result = workspace.get(file_path)
    if result is None:
        try:
            result = pangy_analyzer.analyze_file(file_path, workspace.config)
        except SourceLoadError as e:
            return f"Error: {e}"
    return _format_diagnostics(result, include_hints=include_hints)


# ═══════════════════════════════════════════════════════════════════════
#  Tools 5-6 — Symbols and includes
# ═══════════════════════════════════════════════════════════════════════

@mcp.tool()
def get_symbols(file_path: str) -> str:
    """
    Returns the symbol table of a file as JSON: local classes (with nested
    members), functions, macros, variables, resolved includes and
    everything those includes imported.

    Args:
        file_path: Path of the .pgy file (open or on disk).
    """
    result = workspace.get(file_path)
    if result is None:
        try:
            result = pangy_analyzer.analyze_file(file_path, workspace.config)
        except SourceLoadError as e:
            return f"Error: {e}"
    return json.dumps(result.symbols.to_dict(), indent=2, default=str)


@mcp.tool()
def resolve_include(include_path: str, from_dir: str) -> str:
    """
    Shows how an include path resolves.

    Args:
        include_path: Dotted path as written, e.g. "geo.Shape.Point" or "util.@square".
        from_dir:     Directory of the including file.
    """
    resolver = IncludeResolver(str(workspace.config.library_dir),
                               workspace.config.module_extension)
    directive = resolver.resolve(include_path, os.path.abspath(from_dir))
    if directive is None:
        searched = ", ".join(resolver.search_dirs(os.path.abspath(from_dir)))
        return f"Could not resolve '{include_path}'. Searched: {searched}"
    return (
        f"**{include_path}**\n"
        f"- File: {directive.resolved_file}\n"
        f"- Kind: {directive.kind.value}\n"
        f"- Imports: {directive.alias}"
        + (f" (inside {directive.parent_class})" if directive.parent_class else "")
        + "\n"
    )


# ═══════════════════════════════════════════════════════════════════════
#  Tool 7 — Reconfiguration
# ═══════════════════════════════════════════════════════════════════════

@mcp.tool()
def set_library_dir(library_dir: str) -> str:
    """
    Changes the global module library directory and re-analyses every
    open document against it.

    Args:
        library_dir: Directory holding shared .pgy modules.  "~" is expanded.
    """
    global config

    path = Path(library_dir).expanduser()
    if not path.is_dir():
        return f"Error: Library directory not found at {path}"

    config = workspace.config.model_copy(update={"library_dir": path})
    try:
        count = workspace.reconfigure(config)
    except SourceLoadError as e:
        return f"Library directory set to {path}, but re-analysis failed: {e}"
    return f"Library directory set to {path}. Re-analysed {count} open documents."


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, stream=sys.stderr,
                        format="%(asctime)s %(name)s %(levelname)s %(message)s")
    logger.info("Pangy Analyzer starting, library dir %s", config.library_dir)
    mcp.run()
