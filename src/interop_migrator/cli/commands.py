"""
CLI Command Handlers Facade.

Re-exports handlers from `interop_migrator.cli.handlers`.
"""

from interop_migrator.cli.handlers.audit import handle_audit
from interop_migrator.cli.handlers.convert import (
  _convert_single_file,
  _print_batch_summary,
  handle_convert,
)

__all__ = [
  "_convert_single_file",
  "_print_batch_summary",
  "handle_audit",
  "handle_convert",
]
