"""
Pytest Configuration and Fixtures.

Includes:
- Syspath patching for local imports.
- Factories building parsed documents and diagnostics from C# snippets.
- Console isolation so CLI tests do not leak a recording console.
"""

import sys
from pathlib import Path
from typing import Callable, Iterable, Optional

import pytest

# Add src to path so we can import 'interop_migrator' without installing it
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from interop_migrator.analysis.eligibility import Diagnostic
from interop_migrator.config import DEFAULT_DIAGNOSTIC_ID, RuntimeConfig
from interop_migrator.core.csharp.nodes import MethodDeclaration, TextSpan
from interop_migrator.core.semantics import Compilation, Document
from interop_migrator.utils.console import reset_console, set_verbose

INTEROP_USING = "using System.Runtime.InteropServices;\n"


@pytest.fixture
def make_document() -> Callable[..., Document]:
  """Parses C# code into a Document whose compilation references both attribute types by default."""

  def _make(code: str, referenced_types: Optional[Iterable[str]] = None) -> Document:
    types = RuntimeConfig().referenced_types if referenced_types is None else referenced_types
    return Document(code, Compilation(types))

  return _make


@pytest.fixture
def diagnostic_for() -> Callable[..., Diagnostic]:
  """Builds the diagnostic an analyzer would report at the identifier ``name``."""

  def _diag(document: Document, name: str, diagnostic_id: str = DEFAULT_DIAGNOSTIC_ID) -> Diagnostic:
    for tok, offset in document.root.token_offsets():
      if tok.text == name:
        return Diagnostic(diagnostic_id, TextSpan(offset, len(name)), method_name=name)
    raise AssertionError(f"identifier {name!r} not found")

  return _diag


@pytest.fixture
def first_method() -> Callable[[Document], MethodDeclaration]:
  def _first(document: Document) -> MethodDeclaration:
    return next(n for n in document.root.descendants() if isinstance(n, MethodDeclaration))

  return _first


@pytest.fixture(autouse=True)
def isolate_console():
  yield
  set_verbose(False)
  reset_console()
