"""
Workspace and Server Tests — document lifecycle, configuration, MCP tools.

Validates that:
  1. open/change/close construct, replace and erase per-document results
  2. Documents are keyed by normalised absolute path
  3. Reconfiguring the library directory re-analyses open documents
  4. Source loading guards (missing, binary, oversized files)
  5. The MCP server module imports and its tools return readable text
"""

import json
import os
import sys
import tempfile
import unittest
from pathlib import Path
from unittest import mock

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, PROJECT_ROOT)

MOCK_PROJECT = os.path.join(PROJECT_ROOT, "tests", "mock_project")
NO_LIB = os.path.join(MOCK_PROJECT, "no_lib")

from pangy_core.config import DEFAULT_LIBRARY_DIR, DEFAULT_MAX_LINES, AnalyzerConfig
from pangy_core.diagnostics import DiagnosticCode
from pangy_core.source_loader import SourceLoadError, read_source
from pangy_core.workspace import PangyWorkspace

import pangy_mcp_server as server


class TestWorkspaceLifecycle(unittest.TestCase):

    def setUp(self):
        self.ws = PangyWorkspace(AnalyzerConfig(library_dir=NO_LIB))
        self.path = os.path.join(MOCK_PROJECT, "scratch.pgy")

    def test_open_change_close(self):
        first = self.ws.open(self.path, "print(x)")
        self.assertEqual(len(self.ws.diagnostics(self.path)), 1)
        self.assertIs(self.ws.get(self.path), first)

        second = self.ws.change(self.path, "var x int\nprint(x)")
        self.assertIsNot(second, first)
        self.assertEqual(self.ws.diagnostics(self.path), [])
        self.assertEqual(self.ws.symbols(self.path).variables[0].name, "x")

        self.assertTrue(self.ws.close(self.path))
        self.assertIsNone(self.ws.get(self.path))
        self.assertIsNone(self.ws.symbols(self.path))
        self.assertEqual(self.ws.diagnostics(self.path), [])
        self.assertFalse(self.ws.close(self.path))

    def test_open_from_disk(self):
        result = self.ws.open(os.path.join(MOCK_PROJECT, "main.pgy"))
        self.assertEqual(result.errors, [])
        self.assertEqual(self.ws.symbols(os.path.join(MOCK_PROJECT, "main.pgy")).classes[0].name,
                         "Main")

    def test_open_missing_file_raises(self):
        with self.assertRaises(SourceLoadError):
            self.ws.open(os.path.join(MOCK_PROJECT, "does_not_exist.pgy"))
        self.assertEqual(self.ws.open_documents(), [])

    def test_keys_are_normalised(self):
        self.ws.open(os.path.join(MOCK_PROJECT, ".", "sub", "..", "scratch.pgy"), "var a int")
        self.assertTrue(self.ws.is_open(self.path))
        self.assertEqual(self.ws.open_documents(),
                         [os.path.abspath(self.path).replace("\\", "/")])

    def test_reconfigure_reanalyses_open_documents(self):
        with tempfile.TemporaryDirectory() as lib, tempfile.TemporaryDirectory() as local:
            with open(os.path.join(lib, "extra.pgy"), "w") as f:
                f.write("def extra() -> int {\n    return 1\n}\n")
            doc = os.path.join(local, "doc.pgy")

            before = self.ws.open(doc, "include extra\nextra()")
            self.assertEqual([d.code for d in before.errors],
                             [DiagnosticCode.UNRESOLVED_INCLUDE, DiagnosticCode.UNDEFINED_FUNCTION])

            count = self.ws.reconfigure(AnalyzerConfig(library_dir=lib))
            self.assertEqual(count, 1)
            after = self.ws.get(doc)
            self.assertEqual(after.errors, [])
            self.assertEqual(len(after.hints), 1)


class TestConfig(unittest.TestCase):

    def test_defaults(self):
        config = AnalyzerConfig()
        self.assertEqual(config.library_dir, DEFAULT_LIBRARY_DIR)
        self.assertEqual(config.module_extension, ".pgy")

    def test_from_env(self):
        env = {"PANGY_LIBS_DIR": "/opt/pangy/libs", "PANGY_MAX_LINES": "500"}
        with mock.patch.dict(os.environ, env):
            config = AnalyzerConfig.from_env()
        self.assertEqual(config.library_dir, Path("/opt/pangy/libs"))
        self.assertEqual(config.max_lines, 500)

    def test_from_env_invalid_int_falls_back(self):
        with mock.patch.dict(os.environ, {"PANGY_MAX_LINES": "lots"}):
            config = AnalyzerConfig.from_env()
        self.assertEqual(config.max_lines, DEFAULT_MAX_LINES)


class TestSourceLoader(unittest.TestCase):

    def test_binary_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "bin.pgy")
            with open(path, "wb") as f:
                f.write(b"class A {\x00}")
            with self.assertRaises(SourceLoadError):
                read_source(path)

    def test_invalid_utf8(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "latin.pgy")
            with open(path, "wb") as f:
                f.write(b"var s string \xff\xfe\n")
            with self.assertRaises(SourceLoadError):
                read_source(path)

    def test_truncated_at_max_lines(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "long.pgy")
            with open(path, "w") as f:
                f.write("".join(f"var v{i} int\n" for i in range(10)))
            text = read_source(path, max_lines=3)
        self.assertEqual(text.splitlines(), ["var v0 int", "var v1 int", "var v2 int"])


class TestMCPServer(unittest.TestCase):

    def setUp(self):
        self.original_config = server.workspace.config
        server.workspace.reconfigure(AnalyzerConfig(library_dir=NO_LIB))
        self.main = os.path.join(MOCK_PROJECT, "main.pgy")

    def tearDown(self):
        for path in server.workspace.open_documents():
            server.workspace.close(path)
        server.workspace.reconfigure(self.original_config)

    def test_open_and_close_document(self):
        out = server.open_document(self.main)
        self.assertIn("0 errors", out)
        self.assertIn("No problems found", out)
        self.assertIn("Closed", server.close_document(self.main))
        self.assertIn("was not open", server.close_document(self.main))

    def test_update_document_reports_table(self):
        server.open_document(self.main)
        out = server.update_document(self.main, "print(x)")
        self.assertIn("| 1 | 6-7 | error | undefined-variable |", out)

    def test_analyze_file_missing(self):
        out = server.analyze_file(os.path.join(MOCK_PROJECT, "missing.pgy"))
        self.assertTrue(out.startswith("Error:"))

    def test_analyze_file_with_hints(self):
        out = server.analyze_file(self.main, include_hints=True)
        self.assertIn("function-info", out)

    def test_get_symbols(self):
        data = json.loads(server.get_symbols(self.main))
        self.assertEqual([c["name"] for c in data["classes"]], ["Main"])
        self.assertEqual(len(data["includes"]), 3)
        self.assertIn("Point", [c["name"] for c in data["imported_symbols"]["classes"]])

    def test_resolve_include(self):
        out = server.resolve_include("shapes.Shape.Point", MOCK_PROJECT)
        self.assertIn("inner_class", out)
        self.assertIn("inside Shape", out)
        self.assertIn("Could not resolve", server.resolve_include("nowhere", MOCK_PROJECT))

    def test_set_library_dir(self):
        self.assertTrue(server.set_library_dir(os.path.join(MOCK_PROJECT, "missing_dir"))
                        .startswith("Error:"))
        server.open_document(self.main)
        out = server.set_library_dir(MOCK_PROJECT)
        self.assertIn("Re-analysed 1 open documents", out)
        self.assertEqual(server.workspace.config.library_dir, Path(MOCK_PROJECT))


if __name__ == "__main__":
    unittest.main()
