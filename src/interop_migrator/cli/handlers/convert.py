"""
Convert Command Handler.

This module implements the logic for the `interop-migrator convert` command.
It orchestrates:
1. Configuration loading (pyproject.toml plus CLI overrides).
2. Conversion of each ``.cs`` file via the Engine.
3. Output writing and the batch summary.
"""

from pathlib import Path
from typing import Any, Dict, Optional

from rich.markup import escape
from rich.table import Table

from interop_migrator.config import RuntimeConfig
from interop_migrator.core.conversion_result import ConversionResult
from interop_migrator.core.engine import MigrationEngine
from interop_migrator.utils.console import console, log_error, log_info, log_success, log_warning

SOURCE_GLOB = "*.cs"


def handle_convert(
  input_path: Path,
  output_path: Optional[Path],
  mode: Optional[str],
  symbol: Optional[str],
  settings: Dict[str, Any],
) -> int:
  """
  Handles the 'convert' command execution.

  Args:
      input_path: Path to the source file or directory to convert.
      output_path: Path where converted code should be saved. A single file
          is printed to stdout when omitted.
      mode: Override for the conversion mode ('direct' or 'preprocessor').
      symbol: Override for the '#if' condition symbol.
      settings: Additional ``key=value`` configuration overrides.

  Returns:
      int: Exit code (0 for success, 1 for failure).
  """
  if not input_path.exists():
    log_error(f"Input not found: {escape(str(input_path))}")
    return 1

  try:
    config = RuntimeConfig.load(
      mode=mode,
      condition_symbol=symbol,
      overrides=settings,
      search_path=input_path if input_path.is_dir() else input_path.parent,
    )
  except ValueError as e:
    log_error(f"Invalid configuration: {escape(str(e))}")
    return 1

  engine = MigrationEngine(config)
  batch_results: Dict[str, ConversionResult] = {}

  if input_path.is_file():
    result = _convert_single_file(input_path, output_path, engine)
    batch_results[input_path.name] = result
    if not result.success:
      _print_batch_summary(batch_results)
      return 1

  elif input_path.is_dir():
    if not output_path:
      log_error("Directory conversion requires --out destination directory.")
      return 1

    cs_files = sorted(input_path.rglob(SOURCE_GLOB))
    if not cs_files:
      log_warning(f"No .cs files found in {escape(str(input_path))}")
      return 0

    log_info(f"Processing {len(cs_files)} files from [path]{escape(str(input_path))}[/path]...")

    for src_file in cs_files:
      rel_path = src_file.relative_to(input_path)
      result = _convert_single_file(src_file, output_path / rel_path, engine)
      batch_results[str(rel_path)] = result

  _print_batch_summary(batch_results)
  return 0 if all(r.success for r in batch_results.values()) else 1


def _convert_single_file(input_path: Path, output_path: Optional[Path], engine: MigrationEngine) -> ConversionResult:
  """
  Converts one file and writes (or prints) the result.

  Args:
      input_path: Source file path.
      output_path: Destination file path; stdout when None.
      engine: Configured migration engine.

  Returns:
      ConversionResult: Result object containing status and code.
  """
  try:
    # newline="" keeps CRLF files as they are.
    with open(input_path, "rt", encoding="utf-8-sig", newline="") as f:
      code = f.read()
    result = engine.run(code)

    if not result.success:
      for error in result.errors:
        log_error(f"{escape(input_path.name)}: {escape(error)}")
      return result

    if output_path:
      output_path.parent.mkdir(parents=True, exist_ok=True)
      with open(output_path, "wt", encoding="utf-8", newline="") as f:
        f.write(result.code)
      log_success(
        f"Converted {result.converted} declaration(s): [path]{escape(str(input_path))}[/path] -> "
        f"[path]{escape(str(output_path))}[/path]"
      )
    else:
      print(result.code, end="")

    for warning in result.warnings:
      log_warning(escape(warning))
    return result
  except OSError as e:
    log_error(f"Failed to convert {escape(str(input_path))}: {escape(str(e))}")
    return ConversionResult(success=False, errors=[str(e)])


def _print_batch_summary(results: Dict[str, ConversionResult]) -> None:
  """
  Renders a summary table of conversion results to the console.

  Args:
      results: Dictionary mapping filenames to conversion results.
  """
  total = len(results)
  converted = sum(r.converted for r in results.values())
  failures = sum(1 for r in results.values() if not r.success or r.has_errors)

  if failures == 0:
    log_success(f"Batch Complete: {total} file(s) processed, {converted} declaration(s) converted.")
    return

  table = Table(title="Conversion Report")
  table.add_column("File", style="cyan")
  table.add_column("Status", justify="center")
  table.add_column("Issues", style="red")

  for filename, res in results.items():
    if res.success and not res.has_errors:
      continue
    status = "❌ Failed" if not res.success else "⚠️ Partial"
    issues = "; ".join(res.errors) if res.errors else "Unknown Error"
    table.add_row(escape(filename), status, escape(issues))

  console.print(table)
  console.print(f"\n[bold]Summary:[/bold] {total - failures} Passed, {failures} with Issues.")
