"""
Syntax Factory.

Helpers that build tokens and trivia which did not come from source text.
Everything created here for layout purposes is marked elastic so the
formatter may place it on its own line and indent around it.
"""

from typing import Iterable, List, Optional, Tuple

from interop_migrator.core.csharp.nodes import DirectiveTrivia, Token, Trivia, UsingDirective
from interop_migrator.core.csharp.tokens import DirectiveKeyword, Symbol, TokenKind, TriviaKind

ATTRIBUTE_SUFFIX = "Attribute"


def end_of_line(text: str = "\n", elastic: bool = True) -> Trivia:
  return Trivia(text, TriviaKind.END_OF_LINE, elastic=elastic)


def whitespace(text: str = " ") -> Trivia:
  return Trivia(text, TriviaKind.WHITESPACE)


def identifier(text: str, leading: Iterable[Trivia] = (), trailing: Iterable[Trivia] = ()) -> Token:
  return Token(TokenKind.IDENTIFIER, text, tuple(leading), tuple(trailing))


def symbol(text: str, leading: Iterable[Trivia] = (), trailing: Iterable[Trivia] = ()) -> Token:
  kind = TokenKind.OPERATOR if text == Symbol.DOUBLE_COLON.value else TokenKind.SYMBOL
  return Token(kind, text, tuple(leading), tuple(trailing))


def if_directive(
  condition: str, is_active: bool = True, branch_taken: bool = True, condition_value: bool = True
) -> DirectiveTrivia:
  """``#if <condition>``."""
  return DirectiveTrivia(
    f"#{DirectiveKeyword.IF.value} {condition}",
    keyword=DirectiveKeyword.IF.value,
    condition=condition,
    is_active=is_active,
    branch_taken=branch_taken,
    condition_value=condition_value,
    elastic=True,
  )


def else_directive(is_active: bool = False, branch_taken: bool = False) -> DirectiveTrivia:
  """``#else``."""
  return DirectiveTrivia(
    f"#{DirectiveKeyword.ELSE.value}",
    keyword=DirectiveKeyword.ELSE.value,
    is_active=is_active,
    branch_taken=branch_taken,
    condition_value=False,
    elastic=True,
  )


def endif_directive(is_active: bool = True) -> DirectiveTrivia:
  """``#endif``."""
  return DirectiveTrivia(
    f"#{DirectiveKeyword.ENDIF.value}",
    keyword=DirectiveKeyword.ENDIF.value,
    is_active=is_active,
    elastic=True,
  )


def directive_line(directive: DirectiveTrivia) -> Tuple[Trivia, ...]:
  """A directive followed by its (elastic) end-of-line."""
  return (directive, end_of_line())


def split_metadata_name(metadata_name: str) -> Tuple[str, str]:
  """``System.Runtime.InteropServices.DllImportAttribute`` -> (namespace, type name)."""
  namespace, _, name = metadata_name.rpartition(".")
  return namespace, name


def attribute_short_name(type_name: str) -> str:
  """Drops the conventional ``Attribute`` suffix, as C# allows in attribute position."""
  if type_name.endswith(ATTRIBUTE_SUFFIX) and len(type_name) > len(ATTRIBUTE_SUFFIX):
    return type_name[: -len(ATTRIBUTE_SUFFIX)]
  return type_name


def attribute_type_expression(
  metadata_name: str,
  usings: Iterable[UsingDirective] = (),
  leading: Iterable[Trivia] = (),
  trailing: Iterable[Trivia] = (),
) -> Tuple[Token, ...]:
  """
  Builds the simplified name tokens referring to an attribute type.

  The namespace is omitted when a ``using`` directive imports it; otherwise
  the name is fully qualified. The ``Attribute`` suffix is always dropped.

  Args:
      metadata_name: Full metadata name of the attribute type.
      usings: Using directives in scope.
      leading: Leading trivia for the first name token.
      trailing: Trailing trivia for the last name token.

  Returns:
      Tuple of identifier and dot tokens.
  """
  namespace, type_name = split_metadata_name(metadata_name)
  imported = any(not u.is_static and u.alias is None and u.target == namespace for u in usings)
  parts: List[str] = [attribute_short_name(type_name)]
  if namespace and not imported:
    parts = namespace.split(".") + parts

  tokens: List[Token] = []
  for idx, part in enumerate(parts):
    if idx:
      tokens.append(symbol(Symbol.DOT.value))
    tokens.append(identifier(part))
  tokens[0] = tokens[0].with_leading_trivia(leading)
  tokens[-1] = tokens[-1].with_trailing_trivia(trailing)
  return tuple(tokens)


def modifier(
  keyword: str, leading: Optional[Iterable[Trivia]] = None, trailing: Optional[Iterable[Trivia]] = None
) -> Token:
  return identifier(keyword, leading or (), trailing if trailing is not None else (whitespace(),))
