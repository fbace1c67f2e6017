from __future__ import annotations

import io
import json
import sys
import tempfile
import unittest
import xml.etree.ElementTree as ET
from pathlib import Path
from unittest import mock

TESTS_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = TESTS_DIR.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from smartart import cli

SVG = "{http://www.w3.org/2000/svg}"


class CLIAcceptanceTests(unittest.TestCase):
    def run_cli(self, argv: list[str], stdin_text: str = "") -> tuple[int, str, str]:
        stdout = io.StringIO()
        stderr = io.StringIO()
        stdin = io.StringIO(stdin_text)
        with mock.patch("sys.stdout", stdout), mock.patch("sys.stderr", stderr), mock.patch("sys.stdin", stdin):
            code = cli.main(argv)
        return code, stdout.getvalue(), stderr.getvalue()

    def test_requires_subcommand(self) -> None:
        code, _out, err = self.run_cli([])
        self.assertEqual(code, 2)
        self.assertIn("E_ARGS", err)
        self.assertIn("subcommand", err)

    def test_unknown_option_is_usage_error(self) -> None:
        code, _out, err = self.run_cli(["compile", "--bogus"])
        self.assertEqual(code, 2)
        self.assertIn("E_ARGS", err)

    def test_compile_file_writes_svg(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            src = Path(td) / "layers.txt"
            src.write_text("pyramid\noptions: width=300 height=300\nTop|#4285F4\nMiddle\nBottom\n")
            code, out, err = self.run_cli(["compile", str(src)])
            self.assertEqual(code, 0, err)
            target = Path(td) / "layers.svg"
            self.assertTrue(target.exists())
            self.assertIn("Wrote", out)
            root = ET.fromstring(target.read_text())
            self.assertEqual(root.get("width"), "300")
            self.assertEqual(len(root.findall(f"{SVG}path")), 3)

    def test_compile_text_with_type_to_stdout(self) -> None:
        code, out, err = self.run_cli(["compile", "--text", "Plan\nBuild\nShip", "--type", "chevron", "--stdout"])
        self.assertEqual(code, 0, err)
        root = ET.fromstring(out)
        self.assertEqual(root.get("class"), "chevron-diagram")
        self.assertEqual(root.get("width"), "520")

    def test_compile_declarative_text_detects_type(self) -> None:
        body = "type: venn\nwidth: 500\n---\nA∩B {color: '#ff0000'}\nB∩C"
        code, out, err = self.run_cli(["compile", "--text", body])
        self.assertEqual(code, 0, err)
        root = ET.fromstring(out)
        self.assertEqual(root.get("width"), "500")
        self.assertEqual(len(root.findall(f"{SVG}circle")), 3)

    def test_compile_reads_stdin(self) -> None:
        code, out, err = self.run_cli(["compile"], stdin_text="venn\nA∩B\n")
        self.assertEqual(code, 0, err)
        self.assertTrue(out.startswith("<svg"))

    def test_compile_unknown_type_errors(self) -> None:
        code, _out, err = self.run_cli(["compile", "--text", "Top\nBottom"])
        self.assertEqual(code, 3)
        self.assertIn("E_DIAGRAM_TYPE", err)

    def test_compile_empty_diagram_errors(self) -> None:
        code, _out, err = self.run_cli(["compile", "--text", "pyramid\noptions: width=300"])
        self.assertEqual(code, 3)
        self.assertIn("E_EMPTY_DIAGRAM", err)

    def test_stdout_and_output_are_exclusive(self) -> None:
        code, _out, err = self.run_cli(["compile", "--text", "pyramid\nA", "--stdout", "-o", "x.svg"])
        self.assertEqual(code, 2)
        self.assertIn("mutually exclusive", err)

    def test_text_and_file_are_exclusive(self) -> None:
        code, _out, err = self.run_cli(["compile", "in.txt", "--text", "pyramid\nA"])
        self.assertEqual(code, 2)
        self.assertIn("E_ARGS", err)

    def test_missing_input_file(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            missing = Path(td) / "missing.txt"
            code, _out, err = self.run_cli(["compile", str(missing)])
            self.assertEqual(code, 2)
            self.assertIn("E_IO_READ", err)

    def test_empty_stdin_errors(self) -> None:
        code, _out, err = self.run_cli(["document"], stdin_text="   \n")
        self.assertEqual(code, 2)
        self.assertIn("stdin was empty", err)

    def test_json_error_format(self) -> None:
        code, _out, err = self.run_cli(["--error-format", "json", "compile", "--text", "nothing here"])
        self.assertEqual(code, 3)
        payload = json.loads(err.strip().splitlines()[-1])
        self.assertFalse(payload["ok"])
        self.assertEqual(payload["code"], "E_DIAGRAM_TYPE")
        self.assertEqual(payload["file"], "<text>")
        self.assertIn("hint", payload)

    def test_text_with_output_writes_file(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            target = Path(td) / "steps.svg"
            code, out, err = self.run_cli(["compile", "--text", "chevron\nA\nB", "-o", str(target)])
            self.assertEqual(code, 0, err)
            self.assertIn("Wrote", out)
            self.assertTrue(target.read_text().startswith("<svg"))

    def test_document_writes_out_file(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            src = Path(td) / "notes.md"
            src.write_text("# Notes\n\n```pyramid\nTop\nBottom\n```\n\n```python\nx = 1\n```\n")
            code, out, err = self.run_cli(["document", str(src)])
            self.assertEqual(code, 0, err)
            self.assertIn("Wrote", out)
            rendered = (Path(td) / "notes.out.md").read_text()
            self.assertIn('class="pyramid-diagram"', rendered)
            self.assertIn("```python\nx = 1\n```\n", rendered)
            self.assertNotIn("```pyramid", rendered)

    def test_document_stdout(self) -> None:
        code, out, err = self.run_cli(["document", "--text", "intro\n~~~venn\nA∩B\n~~~\n", "--stdout"])
        self.assertEqual(code, 0, err)
        self.assertTrue(out.startswith("intro\n<svg"))

    def test_cheatsheet(self) -> None:
        code, out, err = self.run_cli(["cheatsheet"])
        self.assertEqual(code, 0, err)
        self.assertIn("smartart quick reference", out)
        self.assertIn("pyramid", out)

    def test_debug_flag_enables_logging(self) -> None:
        code, _out, err = self.run_cli(["--debug", "compile", "--text", "pyramid\nA", "--stdout"])
        self.assertEqual(code, 0, err)


if __name__ == "__main__":
    unittest.main()
