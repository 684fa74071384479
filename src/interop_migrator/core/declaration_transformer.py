"""
Declaration Transformer.

Produces the edits that move one method declaration from ``DllImport`` to
``GeneratedDllImport``.

Direct conversion replaces the declaration in place:

.. code-block:: csharp

    [GeneratedDllImport("lib")]
    static partial int F();

Preprocessor-guarded conversion keeps the legacy declaration for builds
without the condition symbol:

.. code-block:: csharp

    #if NET
    [GeneratedDllImport("lib")]
    static partial int F();
    #else
    [DllImport("lib")]
    static extern int F();
    #endif

The guarded form is two edits: the new declaration is inserted before the
original, and the original is replaced by the legacy copy carrying the
closing directive.
"""

from typing import List, Optional, Tuple

from interop_migrator.core.csharp import factory
from interop_migrator.core.csharp.nodes import (
  WARNING_ANNOTATION_KIND,
  Annotation,
  Attribute,
  DirectiveTrivia,
  MethodDeclaration,
  Token,
  Trivia,
)
from interop_migrator.core.csharp.tokens import DirectiveKeyword, EXTERN_KEYWORD, PARTIAL_KEYWORD
from interop_migrator.core.edits import Edit, InsertBeforeEdit, ReplaceEdit
from interop_migrator.core.errors import PreconditionError, StructuralDefectError
from interop_migrator.enums import ConversionMode

_EXPECTED_GUARD = (DirectiveKeyword.IF.value, DirectiveKeyword.ELSE.value, DirectiveKeyword.ENDIF.value)


class DeclarationTransformer:
  """
  Builds the replacement declaration(s) for one conversion.

  Args:
      condition_symbol: Symbol tested by the guard in preprocessor mode.
      warning_message: Text of the compatibility warning attached to the
          converted declaration. No warning is attached when None.
  """

  def __init__(self, condition_symbol: str, warning_message: Optional[str] = None):
    self.condition_symbol = condition_symbol
    self.warning_message = warning_message

  def transform(
    self,
    declaration: MethodDeclaration,
    old_attribute: Attribute,
    new_attribute: Attribute,
    mode: ConversionMode,
  ) -> Tuple[Edit, ...]:
    """
    Args:
        declaration: The bodiless ``extern`` method being converted.
        old_attribute: The legacy attribute inside ``declaration``.
        new_attribute: Its replacement, built by the attribute rewriter.
        mode: Direct or preprocessor-guarded conversion.

    Returns:
        Tuple[Edit, ...]: Edits against the document ``declaration`` belongs to.

    Raises:
        PreconditionError: If the declaration is not an attribute-bearing
            bodiless ``extern`` method.
        StructuralDefectError: If the guarded output would not be balanced.
    """
    converted = self.convert(declaration, old_attribute, new_attribute)
    if mode == ConversionMode.DIRECT:
      return (ReplaceEdit(declaration, converted),)
    return self.guard(declaration, converted)

  def convert(
    self, declaration: MethodDeclaration, old_attribute: Attribute, new_attribute: Attribute
  ) -> MethodDeclaration:
    if not declaration.contains_node(old_attribute):
      raise PreconditionError("The legacy attribute does not belong to the declaration")
    if declaration.has_body:
      raise PreconditionError(f"Method '{_name_of(declaration)}' has a body")

    converted = declaration.replace_node(old_attribute, new_attribute)
    converted = with_partial_instead_of_extern(converted)
    if self.warning_message:
      converted = converted.with_additional_annotations(Annotation(WARNING_ANNOTATION_KIND, self.warning_message))
    return converted

  def guard(self, declaration: MethodDeclaration, converted: MethodDeclaration) -> Tuple[Edit, ...]:
    _check_interior_directives(declaration)

    head, indent = _split_at_last_line_break(converted.leading_trivia)
    opening = factory.if_directive(self.condition_symbol)
    guarded = converted.with_leading_trivia(head + factory.directive_line(opening) + indent)
    guarded = guarded.with_trailing_trivia(guarded.trailing_trivia + factory.directive_line(factory.else_directive()))

    legacy = declaration.with_leading_trivia(())
    legacy = legacy.with_trailing_trivia(legacy.trailing_trivia + factory.directive_line(factory.endif_directive()))

    _check_guard_order(guarded, legacy)
    return InsertBeforeEdit(declaration, guarded), ReplaceEdit(declaration, legacy)


def with_partial_instead_of_extern(declaration: MethodDeclaration) -> MethodDeclaration:
  """
  Drops ``extern`` and appends ``partial`` as the last modifier.

  The layout around the removed keyword is handed over so the modifier run
  keeps its spacing: ``static extern int`` becomes ``static partial int``,
  ``extern static int`` becomes ``static partial int``.
  """
  modifiers = declaration.modifiers
  idx = next((i for i, m in enumerate(modifiers) if m.text == EXTERN_KEYWORD), None)
  if idx is None:
    raise PreconditionError(f"Method '{_name_of(declaration)}' is not extern")

  extern = modifiers[idx]
  rest: List[Token] = list(modifiers[:idx] + modifiers[idx + 1 :])
  if any(m.text == PARTIAL_KEYWORD for m in rest):
    if idx < len(rest):
      rest[idx] = rest[idx].with_leading_trivia(extern.leading_trivia + rest[idx].leading_trivia)
    return declaration.with_modifiers(rest)

  if idx == len(modifiers) - 1:
    return declaration.with_modifiers(rest + [extern.with_text(PARTIAL_KEYWORD)])

  rest[idx] = rest[idx].with_leading_trivia(extern.leading_trivia + rest[idx].leading_trivia)
  partial = factory.modifier(PARTIAL_KEYWORD, leading=(), trailing=rest[-1].trailing_trivia)
  rest[-1] = rest[-1].with_trailing_trivia((factory.whitespace(),))
  return declaration.with_modifiers(rest + [partial])


def _name_of(declaration: MethodDeclaration) -> str:
  identifier = declaration.identifier
  return identifier.text if identifier else "<unknown>"


def _split_at_last_line_break(trivia: Tuple[Trivia, ...]) -> Tuple[Tuple[Trivia, ...], Tuple[Trivia, ...]]:
  """Splits leading trivia into the full lines before the node and the node's indentation."""
  for idx in range(len(trivia) - 1, -1, -1):
    if trivia[idx].is_end_of_line:
      return trivia[: idx + 1], trivia[idx + 1 :]
  return (), trivia


def _directives(declaration: MethodDeclaration, skip_leading: bool = False) -> List[DirectiveTrivia]:
  found: List[DirectiveTrivia] = []
  for idx, tok in enumerate(declaration.tokens()):
    trivia = tok.trailing_trivia if (skip_leading and idx == 0) else tok.leading_trivia + tok.trailing_trivia
    found.extend(t for t in trivia if isinstance(t, DirectiveTrivia))
  return found


def _check_interior_directives(declaration: MethodDeclaration) -> None:
  """The declaration is duplicated by the guard, so conditionals inside it must be self-contained."""
  depth = 0
  for directive in _directives(declaration, skip_leading=True):
    if directive.keyword == DirectiveKeyword.IF.value:
      depth += 1
    elif directive.keyword == DirectiveKeyword.ENDIF.value:
      depth -= 1
    elif directive.keyword in (DirectiveKeyword.ELIF.value, DirectiveKeyword.ELSE.value) and depth == 0:
      depth = -1
    if depth < 0:
      break
  if depth != 0:
    raise StructuralDefectError(
      f"Method '{_name_of(declaration)}' contains an unbalanced conditional directive and cannot be duplicated"
    )


def _check_guard_order(guarded: MethodDeclaration, legacy: MethodDeclaration) -> None:
  synthesized = [d.keyword for d in _directives(guarded) + _directives(legacy) if d.elastic]
  if tuple(synthesized) != _EXPECTED_GUARD:
    raise StructuralDefectError(f"Guard directives out of order: {' '.join(synthesized)}")
