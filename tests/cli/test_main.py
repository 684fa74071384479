"""
Tests for the CLI entry point.

Verifies:
1. Argument parsing and dispatch to the command handlers.
2. `convert` on single files (stdout or --out) and directories.
3. `audit` as a table and as JSON.
4. Failure exit codes for missing inputs, bad settings and unparsable files.
"""

import json
from pathlib import Path
from unittest.mock import patch

import pytest
from rich.console import Console

from interop_migrator.cli.__main__ import main
from interop_migrator.utils.console import console, set_console

SOURCE = """using System.Runtime.InteropServices;

internal static partial class Native
{
    [DllImport("lib", BestFitMapping = false)]
    internal static extern int Add(int a, int b);

    [DllImport("lib")]
    internal static extern void Reset();
}
"""


@pytest.fixture
def cs_file(tmp_path):
  f = tmp_path / "Native.cs"
  f.write_text(SOURCE, encoding="utf-8")
  return f


@patch("interop_migrator.cli.commands.handle_convert")
def test_convert_dispatch(mock_handle):
  """
  Scenario: User runs `interop-migrator convert src --mode preprocessor --symbol NET7_0 --config k=v`.
  Expect: Handler receives parsed values.
  """
  mock_handle.return_value = 0

  ret = main(["convert", "src", "--mode", "preprocessor", "--symbol", "NET7_0", "--config", "diagnostic_id=X1"])

  assert ret == 0
  mock_handle.assert_called_once_with(Path("src"), None, "preprocessor", "NET7_0", {"diagnostic_id": "X1"})


@patch("interop_migrator.cli.commands.handle_audit")
def test_audit_dispatch(mock_handle):
  mock_handle.return_value = 0

  main(["audit", "src/", "--json"])

  mock_handle.assert_called_once_with(Path("src/"), True)


def test_invalid_mode_is_rejected():
  with pytest.raises(SystemExit):
    main(["convert", "x.cs", "--mode", "sideways"])


def test_version(capsys):
  with pytest.raises(SystemExit) as exc:
    main(["--version"])

  assert exc.value.code == 0
  assert "0.1.0" in capsys.readouterr().out


@patch("interop_migrator.cli.__main__.set_verbose")
@patch("interop_migrator.cli.commands.handle_audit", return_value=0)
def test_verbose_flag(_mock_handle, mock_verbose):
  main(["-v", "audit", "src"])
  mock_verbose.assert_called_once_with(True)


def test_convert_prints_to_stdout(cs_file, capsys):
  ret = main(["convert", str(cs_file)])
  out = capsys.readouterr().out

  assert ret == 0
  assert '[GeneratedDllImport("lib")]\n    internal static partial int Add(int a, int b);' in out
  assert "internal static partial void Reset();" in out
  # Source file untouched
  assert cs_file.read_text(encoding="utf-8") == SOURCE


def test_convert_to_output_file(cs_file, tmp_path):
  out_file = tmp_path / "out" / "Native.cs"

  ret = main(["convert", str(cs_file), "--out", str(out_file)])

  assert ret == 0
  assert out_file.read_text(encoding="utf-8") == SOURCE.replace(", BestFitMapping = false", "").replace(
    "DllImport", "GeneratedDllImport"
  ).replace("static extern", "static partial")


def test_convert_preprocessor_mode(cs_file, tmp_path):
  out_file = tmp_path / "Guarded.cs"

  ret = main(["convert", str(cs_file), "--out", str(out_file), "--mode", "preprocessor", "--symbol", "NET7_0"])
  text = out_file.read_text(encoding="utf-8")

  assert ret == 0
  assert text.count("#if NET7_0\n") == 2
  assert text.count("#else\n") == 2
  assert text.count("#endif\n") == 2
  assert 'DllImport("lib", BestFitMapping = false)' in text


def test_convert_keeps_crlf(tmp_path):
  src = tmp_path / "Crlf.cs"
  src.write_bytes(SOURCE.replace("\n", "\r\n").encode("utf-8"))
  out_file = tmp_path / "Out.cs"

  assert main(["convert", str(src), "--out", str(out_file), "--mode", "preprocessor"]) == 0

  data = out_file.read_bytes()
  assert b"#else\r\n" in data
  assert b"\n" not in data.replace(b"\r\n", b"")


def test_convert_directory(tmp_path):
  src = tmp_path / "src"
  (src / "Interop").mkdir(parents=True)
  (src / "A.cs").write_text(SOURCE, encoding="utf-8")
  (src / "Interop" / "B.cs").write_text(SOURCE, encoding="utf-8")
  (src / "notes.txt").write_text("not C#", encoding="utf-8")
  out = tmp_path / "out"

  ret = main(["convert", str(src), "--out", str(out)])

  assert ret == 0
  assert "static partial int Add" in (out / "A.cs").read_text(encoding="utf-8")
  assert "static partial int Add" in (out / "Interop" / "B.cs").read_text(encoding="utf-8")
  assert not (out / "notes.txt").exists()


def test_convert_directory_requires_out(tmp_path):
  (tmp_path / "A.cs").write_text(SOURCE, encoding="utf-8")
  assert main(["convert", str(tmp_path)]) == 1


def test_convert_missing_input(tmp_path):
  assert main(["convert", str(tmp_path / "missing.cs")]) == 1


def test_convert_invalid_symbol(cs_file):
  assert main(["convert", str(cs_file), "--symbol", "7up"]) == 1


def test_convert_syntax_error(tmp_path, capsys):
  bad = tmp_path / "Bad.cs"
  bad.write_text("class C {\n", encoding="utf-8")

  assert main(["convert", str(bad)]) == 1
  assert "Syntax error" in capsys.readouterr().out


def test_audit_table(cs_file, capsys):
  ret = main(["audit", str(cs_file)])
  out = capsys.readouterr().out

  assert ret == 0
  assert "Convertible Declarations" in out
  assert "Add" in out
  assert "Reset" in out


def test_audit_json(cs_file, capsys):
  """
  Scenario: `audit --json` on a file with two eligible methods.
  Expect: Valid JSON list only, one entry per method.
  """
  ret = main(["audit", str(cs_file), "--json"])
  data = json.loads(capsys.readouterr().out)

  assert ret == 0
  assert [(d["file"], d["method"], d["line"]) for d in data] == [("Native.cs", "Add", 6), ("Native.cs", "Reset", 9)]
  assert all(d["diagnostic"] == "DLLIMPORTGENANALYZER015" for d in data)
  assert "'Add'" in data[0]["message"]


def test_audit_reports_unparsable_files(tmp_path, capsys):
  (tmp_path / "Good.cs").write_text(SOURCE, encoding="utf-8")
  (tmp_path / "Bad.cs").write_text("class C {\n", encoding="utf-8")

  ret = main(["audit", str(tmp_path)])
  out = capsys.readouterr().out

  assert ret == 1
  assert "Bad.cs" in out


def test_audit_missing_path(tmp_path):
  assert main(["audit", str(tmp_path / "nope")]) == 1


def test_convert_logs_compatibility_warning(cs_file, tmp_path):
  """
  Scenario: Conversion with a recording console.
  Expect: Success line and the compatibility warning are logged.
  """
  set_console(Console(record=True, width=500))

  assert main(["convert", str(cs_file), "--out", str(tmp_path / "Out.cs")]) == 0

  log = console.export_text()
  assert "Converted 2 declaration(s)" in log
  assert "may change behavior and compatibility" in log
