"""
C# Concrete Syntax Tree Nodes.

This module defines immutable data structures for representing C# source code
at declaration level (Compilation Unit -> Namespace/Type -> Member -> Attribute).

Every node is a frozen dataclass. Children are declared as fields in source
order, so generic helpers can walk, rebuild and print any node without
per-class code. Whitespace, comments and preprocessor directives are kept as
trivia on tokens (leading trivia before the token text, trailing trivia up to
and including the end of the line), which makes ``to_text()`` a byte-identical
round trip of the parsed source.

Editing never mutates a node: ``with_*`` / ``replace_*`` return new nodes that
share every untouched subtree with the original.
"""

from abc import ABC
from dataclasses import dataclass, field, fields, replace
from typing import Callable, Dict, Iterable, Iterator, Optional, Tuple, Union

from interop_migrator.core.csharp.tokens import TokenKind, TriviaKind, Symbol

WARNING_ANNOTATION_KIND = "Warning"


@dataclass(frozen=True)
class TextSpan:
  """A half-open range ``[start, start + length)`` over source text."""

  start: int
  length: int = 0

  @property
  def end(self) -> int:
    return self.start + self.length

  def contains(self, other: "TextSpan") -> bool:
    return self.start <= other.start and other.end <= self.end


@dataclass(frozen=True)
class Annotation:
  """
  Out-of-band data attached to a node.

  Annotations do not take part in equality and never appear in the text.
  """

  kind: str
  data: str = ""


@dataclass(frozen=True)
class Trivia:
  """Represents non-semantic text (whitespace, newlines, comments, directives)."""

  text: str
  kind: TriviaKind = TriviaKind.WHITESPACE
  # Elastic trivia was synthesized by a rewrite and may be re-laid out by the formatter.
  elastic: bool = False

  def to_text(self) -> str:
    return self.text

  @property
  def is_end_of_line(self) -> bool:
    return self.kind == TriviaKind.END_OF_LINE

  @property
  def is_directive(self) -> bool:
    return self.kind == TriviaKind.DIRECTIVE

  @property
  def is_comment(self) -> bool:
    return self.kind == TriviaKind.COMMENT


@dataclass(frozen=True)
class DirectiveTrivia(Trivia):
  """
  A preprocessor directive line (without its end-of-line).

  Attributes:
      keyword: Directive name, e.g. ``if``, ``else``, ``endif``, ``region``.
      condition: Remaining directive text, e.g. the symbol of ``#if NET``.
      is_active: Whether the directive sits in active code.
      branch_taken: Whether the branch it opens is the one compiled.
      condition_value: Evaluated condition of ``#if`` / ``#elif``.
  """

  kind: TriviaKind = TriviaKind.DIRECTIVE
  keyword: str = ""
  condition: Optional[str] = None
  is_active: bool = True
  branch_taken: bool = True
  condition_value: bool = True


@dataclass(frozen=True)
class Token:
  """A lexical unit together with its surrounding trivia."""

  kind: TokenKind
  text: str
  leading_trivia: Tuple[Trivia, ...] = ()
  trailing_trivia: Tuple[Trivia, ...] = ()

  def to_text(self) -> str:
    return "".join(t.text for t in self.leading_trivia) + self.text + "".join(t.text for t in self.trailing_trivia)

  @property
  def leading_width(self) -> int:
    return sum(len(t.text) for t in self.leading_trivia)

  @property
  def full_width(self) -> int:
    return self.leading_width + len(self.text) + sum(len(t.text) for t in self.trailing_trivia)

  def is_symbol(self, symbol: Union[Symbol, str]) -> bool:
    text = symbol.value if isinstance(symbol, Symbol) else symbol
    return self.kind in (TokenKind.SYMBOL, TokenKind.OPERATOR) and self.text == text

  def is_keyword(self, keyword: str) -> bool:
    return self.kind == TokenKind.IDENTIFIER and self.text == keyword

  def with_text(self, text: str) -> "Token":
    return replace(self, text=text)

  def with_leading_trivia(self, trivia: Iterable[Trivia]) -> "Token":
    return replace(self, leading_trivia=tuple(trivia))

  def with_trailing_trivia(self, trivia: Iterable[Trivia]) -> "Token":
    return replace(self, trailing_trivia=tuple(trivia))


Element = Union[Token, "CSharpNode"]


def _is_element(value: object) -> bool:
  return isinstance(value, (Token, CSharpNode))


@dataclass(frozen=True)
class CSharpNode(ABC):
  """Abstract base class for all C# CST nodes."""

  annotations: Tuple[Annotation, ...] = field(default=(), compare=False, repr=False, kw_only=True)

  # --- Structure ---

  def children(self) -> Iterator[Element]:
    """Yields direct child tokens and nodes in source order."""
    for f in fields(self):
      if f.name == "annotations":
        continue
      value = getattr(self, f.name)
      if isinstance(value, tuple):
        for item in value:
          if _is_element(item):
            yield item
      elif _is_element(value):
        yield value

  def tokens(self) -> Iterator[Token]:
    for child in self.children():
      if isinstance(child, Token):
        yield child
      else:
        yield from child.tokens()

  def descendants(self) -> Iterator["CSharpNode"]:
    """Yields every node below this one (pre-order, self excluded)."""
    for child in self.children():
      if isinstance(child, CSharpNode):
        yield child
        yield from child.descendants()

  def first_token(self) -> Optional[Token]:
    return next(self.tokens(), None)

  def last_token(self) -> Optional[Token]:
    last = None
    for last in self.tokens():
      pass
    return last

  def to_text(self) -> str:
    return "".join(t.to_text() for t in self.tokens())

  @property
  def full_width(self) -> int:
    return sum(t.full_width for t in self.tokens())

  # --- Trivia ---

  @property
  def leading_trivia(self) -> Tuple[Trivia, ...]:
    first = self.first_token()
    return first.leading_trivia if first else ()

  @property
  def trailing_trivia(self) -> Tuple[Trivia, ...]:
    last = self.last_token()
    return last.trailing_trivia if last else ()

  def with_leading_trivia(self, trivia: Iterable[Trivia] = ()) -> "CSharpNode":
    first = self.first_token()
    if first is None:
      return self
    return self.replace_tokens({id(first): first.with_leading_trivia(trivia)})

  def with_trailing_trivia(self, trivia: Iterable[Trivia] = ()) -> "CSharpNode":
    last = self.last_token()
    if last is None:
      return self
    return self.replace_tokens({id(last): last.with_trailing_trivia(trivia)})

  # --- Annotations ---

  def with_additional_annotations(self, *annotations: Annotation) -> "CSharpNode":
    return replace(self, annotations=self.annotations + tuple(annotations))

  def get_annotations(self, kind: str) -> Tuple[Annotation, ...]:
    return tuple(a for a in self.annotations if a.kind == kind)

  # --- Rebuilding ---

  def map_children(self, fn: Callable[[Element], Union[Element, Tuple[Element, ...]]]) -> "CSharpNode":
    """
    Rebuilds the node with ``fn`` applied to each direct child.

    Inside tuple-valued fields ``fn`` may return a tuple, which is spliced in
    place of the visited element (an empty tuple deletes it). Returns ``self``
    when nothing changed so untouched subtrees stay shared.
    """
    changes = {}
    for f in fields(self):
      if f.name == "annotations":
        continue
      value = getattr(self, f.name)
      if isinstance(value, tuple):
        new_items = []
        changed = False
        for item in value:
          if not _is_element(item):
            new_items.append(item)
            continue
          result = fn(item)
          if isinstance(result, tuple):
            new_items.extend(result)
            changed = True
          else:
            new_items.append(result)
            changed = changed or result is not item
        if changed:
          changes[f.name] = tuple(new_items)
      elif _is_element(value):
        result = fn(value)
        if isinstance(result, tuple):
          raise TypeError(f"Cannot splice into single-valued field '{f.name}' of {type(self).__name__}")
        if result is not value:
          changes[f.name] = result
    return replace(self, **changes) if changes else self

  def replace_tokens(self, mapping: Dict[int, Token]) -> "CSharpNode":
    """Returns a copy where each token whose ``id`` is in ``mapping`` is swapped."""

    def visit(child: Element) -> Element:
      if isinstance(child, Token):
        return mapping.get(id(child), child)
      return child.replace_tokens(mapping)

    return self.map_children(visit)

  def replace_node(self, old: "CSharpNode", new: "CSharpNode") -> "CSharpNode":
    """Returns a copy where the node ``old`` (matched by identity) is swapped for ``new``."""

    def visit(child: Element) -> Element:
      if child is old:
        return new
      if isinstance(child, CSharpNode):
        return child.replace_node(old, new)
      return child

    return self.map_children(visit)

  def contains_node(self, node: "CSharpNode") -> bool:
    return any(d is node for d in self.descendants())


@dataclass(frozen=True)
class NameEquals(CSharpNode):
  """``Name =`` prefix of a named attribute argument."""

  name: Token
  equals_token: Token


@dataclass(frozen=True)
class NameColon(CSharpNode):
  """``name:`` prefix of a constructor argument passed by parameter name."""

  name: Token
  colon_token: Token


@dataclass(frozen=True)
class AttributeArgument(CSharpNode):
  """
  A single attribute argument.

  The value expression is kept as an opaque token run. The separating comma
  that follows the argument (if any) is owned by the argument.
  """

  name_equals: Optional[NameEquals]
  name_colon: Optional[NameColon]
  expression: Tuple[Token, ...]
  comma: Optional[Token] = None

  @property
  def named_argument_key(self) -> Optional[str]:
    """Identifier text of a ``Name = value`` argument; None for other forms."""
    if self.name_equals is None:
      return None
    return self.name_equals.name.text

  def with_comma(self, comma: Optional[Token]) -> "AttributeArgument":
    return replace(self, comma=comma)


@dataclass(frozen=True)
class AttributeArgumentList(CSharpNode):
  """Parenthesized argument list of an attribute."""

  open_paren: Token
  arguments: Tuple[AttributeArgument, ...]
  close_paren: Token

  def with_arguments(self, arguments: Iterable[AttributeArgument]) -> "AttributeArgumentList":
    return replace(self, arguments=tuple(arguments))


@dataclass(frozen=True)
class Attribute(CSharpNode):
  """An attribute application: a (possibly qualified) name and optional arguments."""

  name: Tuple[Token, ...]
  argument_list: Optional[AttributeArgumentList] = None
  comma: Optional[Token] = None

  @property
  def name_text(self) -> str:
    return "".join(t.text for t in self.name)

  @property
  def arguments(self) -> Tuple[AttributeArgument, ...]:
    return self.argument_list.arguments if self.argument_list else ()

  def with_name(self, name: Iterable[Token]) -> "Attribute":
    return replace(self, name=tuple(name))

  def with_argument_list(self, argument_list: Optional[AttributeArgumentList]) -> "Attribute":
    return replace(self, argument_list=argument_list)


@dataclass(frozen=True)
class AttributeTargetSpecifier(CSharpNode):
  """``assembly:`` / ``return:`` prefix of an attribute list."""

  identifier: Token
  colon_token: Token


@dataclass(frozen=True)
class AttributeList(CSharpNode):
  """A bracketed attribute section, e.g. ``[A, B(1)]``."""

  open_bracket: Token
  target: Optional[AttributeTargetSpecifier]
  attributes: Tuple[Attribute, ...]
  close_bracket: Token


@dataclass(frozen=True)
class UsingDirective(CSharpNode):
  """
  A ``using`` directive.

  Forms: ``using N;``, ``using static T;``, ``using A = N.T;`` and the
  ``global using`` variants.
  """

  parts: Tuple[Token, ...]

  def _words(self) -> Tuple[str, ...]:
    return tuple(t.text for t in self.parts if not t.is_symbol(Symbol.SEMICOLON))

  @property
  def is_static(self) -> bool:
    return "static" in self._words()[:3]

  @property
  def alias(self) -> Optional[str]:
    words = self._words()
    if Symbol.EQUAL.value in words:
      return words[words.index(Symbol.EQUAL.value) - 1]
    return None

  @property
  def target(self) -> str:
    """Namespace or type name the directive imports or aliases."""
    words = list(self._words())
    if Symbol.EQUAL.value in words:
      words = words[words.index(Symbol.EQUAL.value) + 1 :]
    else:
      while words and words[0] in ("global", "using", "static", "unsafe") and words[1:2] != ["::"]:
        words.pop(0)
    name = "".join(words)
    if name.startswith("global::"):
      name = name[len("global::") :]
    return name


@dataclass(frozen=True)
class MemberDeclaration(CSharpNode):
  """Any member the rewriter does not need to understand, kept as an opaque token run."""

  attribute_lists: Tuple[AttributeList, ...]
  modifiers: Tuple[Token, ...]
  body_tokens: Tuple[Token, ...]


@dataclass(frozen=True)
class MethodDeclaration(CSharpNode):
  """
  A method declaration.

  Attributes:
      attribute_lists: Attribute sections preceding the declaration.
      modifiers: Modifier keywords in source order.
      signature: Return type, name, type parameters, parameters and constraints.
      body: Block (``{ ... }``) or expression body (``=> expr``); empty when bodiless.
      semicolon: Terminating ``;`` of bodiless and expression-bodied methods.
  """

  attribute_lists: Tuple[AttributeList, ...]
  modifiers: Tuple[Token, ...]
  signature: Tuple[Token, ...]
  body: Tuple[Token, ...] = ()
  semicolon: Optional[Token] = None

  @property
  def identifier(self) -> Optional[Token]:
    """The method name token."""
    depth = 0
    for idx, tok in enumerate(self.signature):
      if tok.is_symbol(Symbol.LPAREN):
        if depth == 0 and idx > 0:
          return self._name_before(idx)
        depth += 1
      elif tok.is_symbol(Symbol.RPAREN):
        depth -= 1
    return None

  def _name_before(self, idx: int) -> Optional[Token]:
    pos = idx - 1
    if self.signature[pos].is_symbol(Symbol.GT):
      nesting = 0
      while pos >= 0:
        if self.signature[pos].is_symbol(Symbol.GT):
          nesting += 1
        elif self.signature[pos].is_symbol(Symbol.LT):
          nesting -= 1
          if nesting == 0:
            break
        pos -= 1
      pos -= 1
    if pos < 0 or self.signature[pos].kind != TokenKind.IDENTIFIER:
      return None
    return self.signature[pos]

  @property
  def attributes(self) -> Tuple[Attribute, ...]:
    return tuple(a for lst in self.attribute_lists for a in lst.attributes)

  @property
  def has_body(self) -> bool:
    return bool(self.body)

  def has_modifier(self, keyword: str) -> bool:
    return any(m.text == keyword for m in self.modifiers)

  def with_modifiers(self, modifiers: Iterable[Token]) -> "MethodDeclaration":
    return replace(self, modifiers=tuple(modifiers))


@dataclass(frozen=True)
class TypeDeclaration(CSharpNode):
  """A class, struct, interface, record or enum with its member list."""

  attribute_lists: Tuple[AttributeList, ...]
  modifiers: Tuple[Token, ...]
  keyword: Token
  header: Tuple[Token, ...]
  open_brace: Optional[Token]
  members: Tuple["Member", ...]
  close_brace: Optional[Token]
  semicolon: Optional[Token] = None

  @property
  def name(self) -> str:
    for tok in self.header:
      # `record class` / `record struct`
      if tok.kind == TokenKind.IDENTIFIER and tok.text not in ("class", "struct"):
        return tok.text
    return ""


@dataclass(frozen=True)
class NamespaceDeclaration(CSharpNode):
  """A block-scoped (``namespace N { }``) or file-scoped (``namespace N;``) namespace."""

  keyword: Token
  name_tokens: Tuple[Token, ...]
  open_brace: Optional[Token]
  file_semicolon: Optional[Token]
  members: Tuple["Member", ...]
  close_brace: Optional[Token]
  semicolon: Optional[Token] = None

  @property
  def name(self) -> str:
    return "".join(t.text for t in self.name_tokens)


Member = Union[
  UsingDirective,
  AttributeList,
  NamespaceDeclaration,
  TypeDeclaration,
  MethodDeclaration,
  MemberDeclaration,
]


@dataclass(frozen=True)
class CompilationUnit(CSharpNode):
  """Top-level container of a C# file."""

  members: Tuple[Member, ...]
  end_of_file: Token

  def token_offsets(self) -> Iterator[Tuple[Token, int]]:
    """Yields each token with the offset of its text (trivia excluded)."""
    pos = 0
    for tok in self.tokens():
      yield tok, pos + tok.leading_width
      pos += tok.full_width

  def find_node(self, span: TextSpan) -> Optional[CSharpNode]:
    """Returns the innermost node whose span (trivia excluded) contains ``span``."""
    found, _, _, _ = _find_innermost(self, 0, span)
    return found


def _find_innermost(
  node: CSharpNode, offset: int, span: TextSpan
) -> Tuple[Optional[CSharpNode], Optional[int], Optional[int], int]:
  pos = offset
  start: Optional[int] = None
  end: Optional[int] = None
  best: Optional[CSharpNode] = None
  for child in node.children():
    if isinstance(child, Token):
      tok_start = pos + child.leading_width
      tok_end = tok_start + len(child.text)
      pos += child.full_width
    else:
      found, tok_start, tok_end, pos = _find_innermost(child, pos, span)
      if found is not None:
        best = found
      if tok_start is None:
        continue
    if start is None:
      start = tok_start
    end = tok_end
  if best is None and start is not None and end is not None and TextSpan(start, end - start).contains(span):
    best = node
  return best, start, end, pos
