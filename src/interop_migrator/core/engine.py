"""
Migration Engine.

Runs the whole pipeline over one C# source text:

1. Parse into a syntax tree (input syntax errors fail the run).
2. Find eligible declarations with the `EligibilityAnalyzer`.
3. Fix them all with the configured conversion variant.
4. Re-parse the output to make sure it is still well-formed.
"""

import logging
from typing import List

from interop_migrator.analysis.eligibility import Diagnostic, EligibilityAnalyzer
from interop_migrator.config import RuntimeConfig
from interop_migrator.core.conversion_result import ConversionResult
from interop_migrator.core.fixer import EQUIVALENCE_KEYS, ConvertToGeneratedDllImportFixer
from interop_migrator.core.semantics import Compilation, Document

logger = logging.getLogger(__name__)


class MigrationEngine:
  """
  Orchestrates analysis and conversion for source texts.

  Args:
      config: Settings shared by every run of this engine.
  """

  def __init__(self, config: RuntimeConfig):
    self.config = config
    self.compilation = Compilation(config.referenced_types)
    self.analyzer = EligibilityAnalyzer(config)
    self.fixer = ConvertToGeneratedDllImportFixer(config)

  def load(self, code: str) -> Document:
    """
    Raises:
        SyntaxError: If ``code`` cannot be parsed.
    """
    return Document(code, self.compilation)

  def audit(self, code: str) -> List[Diagnostic]:
    return self.analyzer.analyze(self.load(code))

  def run(self, code: str) -> ConversionResult:
    """
    Converts every eligible declaration in ``code``.

    Args:
        code: C# source text.

    Returns:
        ConversionResult: The converted text; the original text when nothing
        was eligible or the run failed.
    """
    try:
      document = self.load(code)
    except SyntaxError as e:
      return ConversionResult(code=code, errors=[f"Syntax error: {e}"], success=False)

    diagnostics = self.analyzer.analyze(document)
    if not diagnostics:
      logger.debug("No eligible declarations")
      return ConversionResult(code=code)

    key = EQUIVALENCE_KEYS[self.config.mode]
    result = self.fixer.get_fix_all_provider().fix_all(document, diagnostics, key)
    logger.debug(f"Converted {result.converted} of {len(diagnostics)} declaration(s) with {key}")
    return result
