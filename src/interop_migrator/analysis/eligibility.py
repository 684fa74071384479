"""
Eligibility Analysis.

Reports the methods the fixer can convert: bodiless ``extern`` methods with
exactly one application of the legacy attribute, in a compilation where both
attribute types exist.

Methods already inside a conditional region that tests the configured
symbol are skipped, so running the guarded conversion twice does not nest
a second guard inside the first.
"""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Set

from interop_migrator.config import RuntimeConfig
from interop_migrator.core.csharp.nodes import CompilationUnit, DirectiveTrivia, MethodDeclaration, TextSpan
from interop_migrator.core.csharp.tokens import DirectiveKeyword
from interop_migrator.core.semantics import Document

logger = logging.getLogger(__name__)

MESSAGE_TEMPLATE = (
  "Mark the method '{name}' with 'GeneratedDllImportAttribute' instead of 'DllImportAttribute' "
  "to generate P/Invoke marshalling code at compile time"
)


@dataclass(frozen=True)
class Diagnostic:
  """
  A reported conversion opportunity.

  Attributes:
      id: Diagnostic identifier the fixer registers for.
      span: Span of the method name.
      method_name: Name of the method.
      line: 1-based line of the method name.
      message: Human readable description.
  """

  id: str
  span: TextSpan
  method_name: str = ""
  line: int = 0
  message: str = ""


class EligibilityAnalyzer:
  def __init__(self, config: Optional[RuntimeConfig] = None):
    self.config = config or RuntimeConfig()

  def analyze(self, document: Document) -> List[Diagnostic]:
    compilation = document.compilation
    legacy_type = compilation.get_type_by_metadata_name(self.config.legacy_attribute)
    if legacy_type is None or compilation.get_type_by_metadata_name(self.config.generated_attribute) is None:
      logger.debug("Attribute types are not available in this compilation")
      return []

    root = document.root
    model = document.semantic_model
    guarded = self._guarded_tokens(root)
    offsets = {id(tok): offset for tok, offset in root.token_offsets()}

    diagnostics = []
    for node in root.descendants():
      if not isinstance(node, MethodDeclaration):
        continue
      symbol = model.get_declared_symbol(node)
      if symbol is None or not symbol.is_extern or node.has_body:
        continue
      if len(symbol.attributes_of(legacy_type)) != 1:
        continue
      identifier = node.identifier
      if identifier is None or id(identifier) in guarded:
        continue

      start = offsets[id(identifier)]
      diagnostics.append(
        Diagnostic(
          id=self.config.diagnostic_id,
          span=TextSpan(start, len(identifier.text)),
          method_name=symbol.name,
          line=document.line_of(start),
          message=MESSAGE_TEMPLATE.format(name=symbol.name),
        )
      )
    return diagnostics

  def _guarded_tokens(self, root: CompilationUnit) -> Set[int]:
    """Ids of tokens inside a conditional region whose condition mentions the configured symbol."""
    pattern = re.compile(rf"\b{re.escape(self.config.condition_symbol)}\b")
    stack: List[bool] = []
    guarded: Set[int] = set()

    def track(directive: DirectiveTrivia) -> None:
      mentions = bool(directive.condition and pattern.search(directive.condition))
      if directive.keyword == DirectiveKeyword.IF.value:
        stack.append(mentions)
      elif directive.keyword == DirectiveKeyword.ELIF.value and stack:
        stack[-1] = stack[-1] or mentions
      elif directive.keyword == DirectiveKeyword.ENDIF.value and stack:
        stack.pop()

    for tok in root.tokens():
      for trivia in tok.leading_trivia:
        if isinstance(trivia, DirectiveTrivia):
          track(trivia)
      if any(stack):
        guarded.add(id(tok))
      for trivia in tok.trailing_trivia:
        if isinstance(trivia, DirectiveTrivia):
          track(trivia)
    return guarded
