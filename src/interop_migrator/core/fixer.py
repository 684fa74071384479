"""
Code-Fix Boundary.

Connects the eligibility diagnostics to the rewrite. For every diagnostic the
fixer offers two conversions, each identified by a stable equivalence key so
a batch run can apply the same variant to every occurrence in a document:

* ``ConvertToGeneratedDllImport``: replace the declaration in place.
* ``ConvertToGeneratedDllImportPreprocessor``: keep the legacy declaration in
  the ``#else`` branch of a ``#if <symbol>`` guard.

Precondition misses (missing attribute types, no method at the span, not
exactly one legacy attribute) produce no fix and are only logged at debug
level. Structural defects abort the single conversion and are reported in
the `ConversionResult`.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Set, Tuple

from interop_migrator.analysis.eligibility import Diagnostic
from interop_migrator.config import RuntimeConfig
from interop_migrator.core.attribute_rewriter import AttributeRewriter
from interop_migrator.core.conversion_result import ConversionResult
from interop_migrator.core.csharp.nodes import WARNING_ANNOTATION_KIND, CompilationUnit, MethodDeclaration
from interop_migrator.core.csharp.parser import parse_compilation_unit
from interop_migrator.core.declaration_transformer import DeclarationTransformer
from interop_migrator.core.edits import DocumentEditor, Edit, ReplaceEdit
from interop_migrator.core.errors import PreconditionError, StructuralDefectError
from interop_migrator.core.formatting import format_elastic_trivia
from interop_migrator.core.semantics import AttributeData, Document, MethodSymbol, NamedType
from interop_migrator.enums import ConversionMode

logger = logging.getLogger(__name__)

NO_PREPROCESSOR_DEFINES_KEY = "ConvertToGeneratedDllImport"
WITH_PREPROCESSOR_DEFINES_KEY = "ConvertToGeneratedDllImportPreprocessor"

EQUIVALENCE_KEYS: Dict[ConversionMode, str] = {
  ConversionMode.DIRECT: NO_PREPROCESSOR_DEFINES_KEY,
  ConversionMode.PREPROCESSOR_GUARDED: WITH_PREPROCESSOR_DEFINES_KEY,
}
MODES_BY_KEY: Dict[str, ConversionMode] = {key: mode for mode, key in EQUIVALENCE_KEYS.items()}

TITLES: Dict[ConversionMode, str] = {
  ConversionMode.DIRECT: "Convert to 'GeneratedDllImport'",
  ConversionMode.PREPROCESSOR_GUARDED: "Convert to 'GeneratedDllImport' under a preprocessor define",
}

WARNING_TEMPLATE = (
  "Conversion to 'GeneratedDllImport' may change behavior and compatibility. See {link} for more information."
)


@dataclass(frozen=True)
class CodeFixContext:
  document: Document
  diagnostic: Diagnostic


@dataclass(frozen=True)
class ConversionRequest:
  """A validated conversion target: the method, its legacy attribute and the type to convert to."""

  declaration: MethodDeclaration
  symbol: MethodSymbol
  legacy_attribute: AttributeData
  generated_type: NamedType


def apply_edits(document: Document, edits: Iterable[Edit]) -> ConversionResult:
  """
  Applies ``edits`` to ``document`` and checks that the result still parses.

  Raises:
      StructuralDefectError: If the edits cannot be applied, or the produced
          text is not well-formed.
  """
  edits = tuple(edits)
  editor = DocumentEditor(document.root)
  editor.apply(edits)
  root = format_elastic_trivia(editor.get_changed_root(), document.newline)
  code = root.to_text()
  verify_output(code)

  warnings: List[str] = []
  for edit in edits:
    for annotation in edit.new_node.get_annotations(WARNING_ANNOTATION_KIND):
      if annotation.data not in warnings:
        warnings.append(annotation.data)
  return ConversionResult(code=code, warnings=warnings, converted=_converted_count(edits))


def _converted_count(edits: Tuple[Edit, ...]) -> int:
  targets = {id(e.node) if isinstance(e, ReplaceEdit) else id(e.anchor) for e in edits}
  return len(targets)


def verify_output(code: str) -> CompilationUnit:
  try:
    return parse_compilation_unit(code)
  except SyntaxError as e:
    raise StructuralDefectError(f"Converted code does not parse: {e}") from e


class CodeAction:
  """One offered fix. Edits are computed lazily and only once."""

  def __init__(
    self, title: str, equivalence_key: str, fixer: "ConvertToGeneratedDllImportFixer", context: CodeFixContext
  ):
    self.title = title
    self.equivalence_key = equivalence_key
    self._fixer = fixer
    self._context = context
    self._edits: Optional[Tuple[Edit, ...]] = None

  @property
  def mode(self) -> ConversionMode:
    return MODES_BY_KEY[self.equivalence_key]

  def compute_edits(self) -> Tuple[Edit, ...]:
    if self._edits is None:
      request = self._fixer.prepare(self._context.document, self._context.diagnostic)
      if request is None:
        self._edits = ()
      else:
        self._edits = self._fixer.compute_edits(self._context.document, request, self.mode)
    return self._edits

  def apply(self) -> ConversionResult:
    document = self._context.document
    try:
      edits = self.compute_edits()
      if not edits:
        return ConversionResult(code=document.text)
      return apply_edits(document, edits)
    except PreconditionError as e:
      logger.debug(f"{self.title}: {e}")
      return ConversionResult(code=document.text)
    except StructuralDefectError as e:
      logger.debug(f"{self.title} failed: {e}")
      return ConversionResult(code=document.text, errors=[str(e)], success=False)

  def __repr__(self) -> str:
    return f"CodeAction(title={self.title!r}, equivalence_key={self.equivalence_key!r})"


class ConvertToGeneratedDllImportFixer:
  """
  Offers the two conversions for eligible declarations.

  Args:
      config: Attribute names, condition symbol, warning link and diagnostic id.
  """

  def __init__(self, config: Optional[RuntimeConfig] = None):
    self.config = config or RuntimeConfig()

  @property
  def fixable_diagnostic_ids(self) -> Tuple[str, ...]:
    return (self.config.diagnostic_id,)

  def get_fix_all_provider(self) -> "BatchFixer":
    return BatchFixer(self)

  def register_code_fixes(self, context: CodeFixContext) -> List[CodeAction]:
    """Returns both conversions for the diagnostic, or nothing when a precondition fails."""
    if context.diagnostic.id not in self.fixable_diagnostic_ids:
      return []
    if self.prepare(context.document, context.diagnostic) is None:
      return []
    return [CodeAction(TITLES[mode], EQUIVALENCE_KEYS[mode], self, context) for mode in ConversionMode]

  def prepare(self, document: Document, diagnostic: Diagnostic) -> Optional[ConversionRequest]:
    try:
      return self._prepare(document, diagnostic)
    except PreconditionError as e:
      logger.debug(f"No fix for {diagnostic.id} at {diagnostic.span.start}: {e}")
      return None

  def _prepare(self, document: Document, diagnostic: Diagnostic) -> ConversionRequest:
    compilation = document.compilation
    generated_type = compilation.get_type_by_metadata_name(self.config.generated_attribute)
    if generated_type is None:
      raise PreconditionError(f"'{self.config.generated_attribute}' is not available")
    legacy_type = compilation.get_type_by_metadata_name(self.config.legacy_attribute)
    if legacy_type is None:
      raise PreconditionError(f"'{self.config.legacy_attribute}' is not available")

    node = document.root.find_node(diagnostic.span)
    declaration = _enclosing_method(document.root, node)
    if declaration is None:
      raise PreconditionError("No method declaration at the diagnostic location")

    symbol = document.semantic_model.get_declared_symbol(declaration)
    if symbol is None:
      raise PreconditionError("Method has no declared symbol")

    matches = symbol.attributes_of(legacy_type)
    if len(matches) != 1:
      raise PreconditionError(f"Expected one '{legacy_type.name}' on '{symbol.name}', found {len(matches)}")
    return ConversionRequest(declaration, symbol, matches[0], generated_type)

  def compute_edits(self, document: Document, request: ConversionRequest, mode: ConversionMode) -> Tuple[Edit, ...]:
    """
    Raises:
        PreconditionError: If the declaration cannot take the conversion.
        StructuralDefectError: If the conversion would break the document.
    """
    model = document.semantic_model
    old_attribute = request.legacy_attribute.syntax
    options = model.get_dll_import_data(old_attribute)
    new_attribute = AttributeRewriter(model.usings).rewrite(old_attribute, request.generated_type, options)

    warning = WARNING_TEMPLATE.format(link=self.config.documentation_link)
    transformer = DeclarationTransformer(self.config.condition_symbol, warning)
    return transformer.transform(request.declaration, old_attribute, new_attribute, mode)


def _enclosing_method(root: CompilationUnit, node) -> Optional[MethodDeclaration]:
  if node is None:
    return None
  if isinstance(node, MethodDeclaration):
    return node
  for candidate in root.descendants():
    if isinstance(candidate, MethodDeclaration) and candidate.contains_node(node):
      return candidate
  return None


def _convert(
  document: Document, diagnostic: Diagnostic, config: Optional[RuntimeConfig], mode: ConversionMode
) -> Optional[Tuple[Edit, ...]]:
  fixer = ConvertToGeneratedDllImportFixer(config)
  request = fixer.prepare(document, diagnostic)
  if request is None:
    return None
  try:
    return fixer.compute_edits(document, request, mode)
  except PreconditionError as e:
    logger.debug(f"No fix for '{request.symbol.name}': {e}")
    return None


def convert_direct(
  document: Document, diagnostic: Diagnostic, config: Optional[RuntimeConfig] = None
) -> Optional[Tuple[Edit, ...]]:
  """
  Edits replacing the flagged declaration with its ``GeneratedDllImport`` form.

  Returns:
      A one-element edit tuple, or None when a precondition does not hold.

  Raises:
      StructuralDefectError: If the conversion would break the document.
  """
  return _convert(document, diagnostic, config, ConversionMode.DIRECT)


def convert_with_preprocessor_fallback(
  document: Document, diagnostic: Diagnostic, config: Optional[RuntimeConfig] = None
) -> Optional[Tuple[Edit, ...]]:
  """
  Edits guarding the converted declaration with ``#if`` and keeping the
  legacy one under ``#else``.

  Returns:
      ``(InsertBeforeEdit, ReplaceEdit)``, or None when a precondition does not hold.
  """
  return _convert(document, diagnostic, config, ConversionMode.PREPROCESSOR_GUARDED)


class BatchFixer:
  """Applies one conversion variant to every diagnostic of a document."""

  def __init__(self, fixer: ConvertToGeneratedDllImportFixer):
    self.fixer = fixer

  def fix_all(self, document: Document, diagnostics: Iterable[Diagnostic], equivalence_key: str) -> ConversionResult:
    """
    Computes every fix against the original tree, then applies them together.

    A conversion that fails structurally is skipped and reported; the others
    still apply. Diagnostics pointing at the same method are fixed once.
    """
    if equivalence_key not in MODES_BY_KEY:
      raise ValueError(f"Unknown equivalence key: '{equivalence_key}'")
    mode = MODES_BY_KEY[equivalence_key]

    edits: List[Edit] = []
    errors: List[str] = []
    seen: Set[int] = set()
    for diagnostic in diagnostics:
      if diagnostic.id not in self.fixer.fixable_diagnostic_ids:
        continue
      request = self.fixer.prepare(document, diagnostic)
      if request is None or id(request.declaration) in seen:
        continue
      seen.add(id(request.declaration))
      try:
        edits.extend(self.fixer.compute_edits(document, request, mode))
      except PreconditionError as e:
        logger.debug(f"No fix for '{request.symbol.name}': {e}")
      except StructuralDefectError as e:
        errors.append(f"{request.symbol.name}: {e}")

    if not edits:
      return ConversionResult(code=document.text, errors=errors, success=not errors)

    try:
      result = apply_edits(document, edits)
    except StructuralDefectError as e:
      return ConversionResult(code=document.text, errors=errors + [str(e)], success=False)
    return result.model_copy(update={"errors": errors, "success": not errors})
