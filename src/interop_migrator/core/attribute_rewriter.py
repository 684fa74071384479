"""
Attribute Rewriter.

Turns a legacy ``DllImport`` attribute application into a ``GeneratedDllImport``
one:

1. The attribute name is replaced with a reference to the new attribute type
   (keeping the old name's surrounding trivia).
2. Named arguments for options the new attribute does not support are dropped
   when their resolved value is ``false``. The generated marshalling code
   behaves as if both options were ``false``, so dropping them changes nothing:

   * ``BestFitMapping = false``
   * ``ThrowOnUnmappableChar = false`` (also spelled ``ThrowOnUnmappableCharacter``)

Anything else (``true``, non-literal values, positional and unknown
arguments) is copied through untouched.
"""

from dataclasses import dataclass, replace
from typing import Callable, Iterable, List, Optional, Tuple

from interop_migrator.core.csharp.factory import attribute_type_expression
from interop_migrator.core.csharp.nodes import Attribute, AttributeArgument, Token, Trivia, UsingDirective
from interop_migrator.core.csharp.tokens import TriviaKind
from interop_migrator.core.errors import StructuralDefectError
from interop_migrator.core.semantics import (
  BEST_FIT_MAPPING,
  OPTION_ALIASES,
  THROW_ON_UNMAPPABLE_CHAR,
  DllImportData,
  NamedType,
)


@dataclass(frozen=True)
class LegacyOption:
  """
  An option of the legacy attribute that the new attribute implies.

  Attributes:
      name: Canonical property name.
      accepted_names: Names a named argument may use for the option.
      resolve: Reads the option's value from the resolved option snapshot.
      implied_value: Value the new attribute's generated code always has.
  """

  name: str
  accepted_names: Tuple[str, ...]
  resolve: Callable[[DllImportData], Optional[bool]]
  implied_value: bool = False

  def is_redundant(self, options: DllImportData) -> bool:
    value = self.resolve(options)
    return value is not None and value == self.implied_value


LEGACY_ONLY_OPTIONS: Tuple[LegacyOption, ...] = (
  LegacyOption(BEST_FIT_MAPPING, OPTION_ALIASES[BEST_FIT_MAPPING], lambda d: d.best_fit_mapping),
  LegacyOption(
    THROW_ON_UNMAPPABLE_CHAR,
    OPTION_ALIASES[THROW_ON_UNMAPPABLE_CHAR],
    lambda d: d.throw_on_unmappable_char,
  ),
)


def _matching_option(argument: AttributeArgument) -> Optional[LegacyOption]:
  key = argument.named_argument_key
  if key is None:
    return None
  for option in LEGACY_ONLY_OPTIONS:
    if key in option.accepted_names:
      return option
  return None


class AttributeRewriter:
  """
  Builds the new attribute node from the legacy one.

  Args:
      usings: Using directives in scope, used to decide whether the new
          attribute name needs its namespace.
  """

  def __init__(self, usings: Iterable[UsingDirective] = ()):
    self.usings = tuple(usings)

  def rewrite(
    self, old_attribute: Attribute, new_attribute_type: NamedType, resolved_options: DllImportData
  ) -> Attribute:
    """
    Args:
        old_attribute: The legacy attribute application.
        new_attribute_type: Type the new attribute refers to.
        resolved_options: Evaluated option values of ``old_attribute``.

    Returns:
        Attribute: A new node; ``old_attribute`` is left untouched.
    """
    renamed = self.rename(old_attribute, new_attribute_type)
    redundant = self.redundant_arguments(renamed, resolved_options)
    return remove_arguments(renamed, redundant)

  def rename(self, attribute: Attribute, attribute_type: NamedType) -> Attribute:
    first, last = attribute.name[0], attribute.name[-1]
    name = attribute_type_expression(
      attribute_type.metadata_name,
      self.usings,
      leading=first.leading_trivia,
      trailing=last.trailing_trivia,
    )
    return attribute.with_name(name)

  @staticmethod
  def redundant_arguments(attribute: Attribute, resolved_options: DllImportData) -> List[AttributeArgument]:
    redundant = []
    for argument in attribute.arguments:
      option = _matching_option(argument)
      if option is not None and option.is_redundant(resolved_options):
        redundant.append(argument)
    return redundant


def _has_directive(argument: AttributeArgument) -> bool:
  return any(t.is_directive for tok in argument.tokens() for t in tok.leading_trivia + tok.trailing_trivia)


def _drop_comma(argument: AttributeArgument) -> AttributeArgument:
  """Removes the argument's trailing comma, keeping any comment that followed it."""
  comma = argument.comma
  result = argument.with_comma(None)
  if comma is not None and any(t.is_comment for t in comma.trailing_trivia):
    kept: Tuple[Trivia, ...] = result.trailing_trivia + comma.trailing_trivia
    result = result.with_trailing_trivia(kept)
  return result


def remove_arguments(attribute: Attribute, arguments: Iterable[AttributeArgument]) -> Attribute:
  """
  Removes ``arguments`` (matched by identity) from ``attribute`` in one batch.

  Survivors keep their relative order. Each removed argument takes its own
  comma with it; when the last argument goes, the comma before it goes too.

  Raises:
      StructuralDefectError: If an argument is not part of the attribute, or
          carries a preprocessor directive that removal would unbalance.
  """
  doomed = {id(a) for a in arguments}
  if not doomed:
    return attribute

  originals = attribute.arguments
  if len(doomed) != len([a for a in originals if id(a) in doomed]):
    raise StructuralDefectError("Cannot remove an argument that does not belong to the attribute")

  survivors: List[AttributeArgument] = []
  for argument in originals:
    if id(argument) not in doomed:
      survivors.append(argument)
    elif _has_directive(argument):
      raise StructuralDefectError(
        f"Removing argument '{argument.named_argument_key}' would drop a preprocessor directive"
      )

  argument_list = attribute.argument_list
  if survivors:
    if id(originals[0]) in doomed:
      survivors[0] = survivors[0].with_leading_trivia(originals[0].leading_trivia)
    if id(originals[-1]) in doomed:
      survivors[-1] = _drop_comma(survivors[-1])

  if id(originals[-1]) in doomed:
    before = survivors[-1].trailing_trivia if survivors else argument_list.open_paren.trailing_trivia
    argument_list = replace(argument_list, close_paren=_unindent_close_paren(argument_list.close_paren, before))

  return attribute.with_argument_list(argument_list.with_arguments(survivors))


def _unindent_close_paren(close_paren: Token, before: Tuple[Trivia, ...]) -> Token:
  """Drops the close paren's indentation once it no longer starts a line."""
  leading = close_paren.leading_trivia
  if not leading or any(t.kind != TriviaKind.WHITESPACE for t in leading):
    return close_paren
  if before and before[-1].is_end_of_line:
    return close_paren
  return close_paren.with_leading_trivia(())
