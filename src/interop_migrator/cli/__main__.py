"""
Main Entry Point for interop-migrator CLI.

This module handles argument parsing and dispatches to specific command
handlers defined in `interop_migrator.cli.commands`.
"""

import argparse
from pathlib import Path
from typing import List, Optional

from interop_migrator import __version__
from interop_migrator.cli import commands
from interop_migrator.config import parse_cli_key_values
from interop_migrator.enums import ConversionMode
from interop_migrator.utils.console import set_verbose


def main(argv: Optional[List[str]] = None) -> int:
  """
  Main CLI entry point.

  Args:
      argv: Optional list of command line arguments (defaults to sys.argv).

  Returns:
      int: Exit code (0 for success, non-zero for failure).
  """
  parser = argparse.ArgumentParser(description="interop-migrator: DllImport to GeneratedDllImport converter")
  parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
  parser.add_argument("-v", "--verbose", action="store_true", help="Report skipped declarations")

  subparsers = parser.add_subparsers(dest="command", required=True)

  # --- Command: CONVERT ---
  cmd_conv = subparsers.add_parser("convert", help="Convert a C# file or directory")
  cmd_conv.add_argument("path", type=Path, help="Input .cs file or directory")
  cmd_conv.add_argument("--out", type=Path, help="Output destination (file or dir)")
  cmd_conv.add_argument(
    "--mode",
    choices=[m.value for m in ConversionMode],
    default=None,
    help="Conversion variant (default: from toml, else direct)",
  )
  cmd_conv.add_argument("--symbol", default=None, help="Condition symbol for preprocessor mode (default: NET)")
  cmd_conv.add_argument(
    "--config",
    nargs="*",
    help="Additional settings in key=value format (e.g. diagnostic_id=DLLIMPORTGENANALYZER015)",
  )

  # --- Command: AUDIT ---
  cmd_audit = subparsers.add_parser("audit", help="List declarations that can be converted")
  cmd_audit.add_argument("path", type=Path, help="Input .cs file or directory")
  cmd_audit.add_argument("--json", action="store_true", dest="json_mode", help="Print JSON to stdout")

  args = parser.parse_args(argv)
  set_verbose(args.verbose)

  if args.command == "convert":
    settings = parse_cli_key_values(args.config)
    return commands.handle_convert(args.path, args.out, args.mode, args.symbol, settings)

  elif args.command == "audit":
    return commands.handle_audit(args.path, args.json_mode)

  return 0


if __name__ == "__main__":
  raise SystemExit(main())
