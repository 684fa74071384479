"""
Audit Command Handler.

Lists the P/Invoke declarations that can be converted, without changing any file.
"""

import json
from pathlib import Path
from typing import Dict, List

from rich.markup import escape
from rich.table import Table

from interop_migrator.analysis.eligibility import Diagnostic
from interop_migrator.config import RuntimeConfig
from interop_migrator.core.engine import MigrationEngine
from interop_migrator.utils.console import console, log_error, log_info


def handle_audit(path: Path, json_mode: bool = False) -> int:
  """
  Scans a directory/file for declarations still using ``DllImport``.

  Args:
      path: Input source file or directory.
      json_mode: If True, output JSON to stdout and suppress Rich logs.

  Returns:
      int: Exit code (0 when the audit ran, 1 on missing input or unparsable files).
  """
  if not path.exists():
    log_error(f"Path not found: {escape(str(path))}")
    return 1

  files = [path] if path.is_file() else sorted(path.rglob("*.cs"))
  try:
    config = RuntimeConfig.load(search_path=path if path.is_dir() else path.parent)
  except ValueError as e:
    log_error(f"Invalid configuration: {escape(str(e))}")
    return 1
  engine = MigrationEngine(config)

  if not json_mode:
    log_info(f"Auditing {len(files)} files...")

  found: Dict[str, List[Diagnostic]] = {}
  failed = False
  for f in files:
    name = f.name if path.is_file() else str(f.relative_to(path))
    try:
      found[name] = engine.audit(f.read_text("utf-8-sig"))
    except (OSError, SyntaxError) as e:
      # Parse errors are logged even in JSON mode, they go to the log stream
      log_error(f"Failed to parse {escape(name)}: {escape(str(e))}")
      failed = True

  if json_mode:
    output_list = []
    for name in sorted(found):
      for diag in found[name]:
        output_list.append(
          {
            "file": name,
            "line": diag.line,
            "method": diag.method_name,
            "diagnostic": diag.id,
            "message": diag.message,
          }
        )
    print(json.dumps(output_list, indent=2))
    return 1 if failed else 0

  total = sum(len(d) for d in found.values())
  if total:
    table = Table(title="Convertible Declarations")
    table.add_column("File", style="cyan")
    table.add_column("Line", justify="right")
    table.add_column("Method", style="bold magenta")
    table.add_column("Diagnostic", style="dim")

    for name in sorted(found):
      for diag in found[name]:
        table.add_row(escape(name), str(diag.line), escape(diag.method_name), diag.id)

    console.print(table)
    console.print("\n")

  console.print(f"[bold]Audit Summary for {escape(path.name)}[/bold]")
  console.print(f"Files scanned:            {len(files)}")
  console.print(f"Convertible declarations: [yellow]{total}[/yellow]")

  return 1 if failed else 0
