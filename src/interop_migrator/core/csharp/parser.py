"""
C# Declaration-Level Recursive Descent Parser.

This module parses C# source text into the CST object model defined in `nodes.py`.
It understands the structure the rewriter needs (namespaces, type declarations,
using directives, attribute lists, method declarations) and keeps every other
member as an opaque token run. Trivia is attached to tokens the way Roslyn
does it:

* Trailing trivia of a token runs up to and including the first end-of-line.
* Everything after that belongs to the leading trivia of the next token.
* Preprocessor directives are always leading trivia.

Together this guarantees ``parse(text).to_text() == text``.
"""

import re
from dataclasses import dataclass
from typing import Generator, List, Optional, Tuple

from interop_migrator.core.csharp.nodes import (
  Attribute,
  AttributeArgument,
  AttributeArgumentList,
  AttributeList,
  AttributeTargetSpecifier,
  CompilationUnit,
  DirectiveTrivia,
  Member,
  MemberDeclaration,
  MethodDeclaration,
  NameColon,
  NameEquals,
  NamespaceDeclaration,
  Token,
  Trivia,
  TypeDeclaration,
  UsingDirective,
)
from interop_migrator.core.csharp.tokens import (
  CLOSING_BRACKETS,
  GLOBAL_ATTRIBUTE_TARGETS,
  MODIFIER_KEYWORDS,
  NAMESPACE_KEYWORD,
  NON_METHOD_KEYWORDS,
  OPENING_BRACKETS,
  TYPE_KEYWORDS,
  USING_KEYWORD,
  DirectiveKeyword,
  Symbol,
  TokenKind,
  TriviaKind,
)

_TRIVIA_KINDS = (TokenKind.WHITESPACE, TokenKind.NEWLINE, TokenKind.COMMENT, TokenKind.DIRECTIVE)


@dataclass
class Lexeme:
  kind: TokenKind
  text: str
  line: int
  col: int


class Tokenizer:
  """Regex-based lexer producing raw lexemes (tokens and trivia interleaved)."""

  PATTERN_DEFS = [
    (TokenKind.NEWLINE, r"\r\n|\r|\n"),
    (TokenKind.WHITESPACE, r"[ \t\f\v\u00a0\ufeff]+"),
    (TokenKind.DIRECTIVE, r"#[^\r\n]*"),
    (TokenKind.COMMENT, r"//[^\r\n]*|/\*[\s\S]*?\*/"),
    (
      TokenKind.STRING,
      r'\$*(?P<raw_quotes>"{3,})[\s\S]*?(?P=raw_quotes)'
      r'|\$?@\$?"(?:[^"]|"")*"'
      r'|\$"(?:[^"\\\r\n]|\\.)*"'
      r'|"(?:[^"\\\r\n]|\\.)*"(?:u8)?',
    ),
    (TokenKind.CHAR, r"'(?:[^'\\\r\n]|\\.)+'"),
    (
      TokenKind.NUMBER,
      r"0[xX][0-9a-fA-F_]+[uUlL]*|0[bB][01_]+[uUlL]*"
      r"|\d[\d_]*(?:\.\d[\d_]*)?(?:[eE][+-]?\d+)?[fFdDmMuUlL]*"
      r"|\.\d[\d_]*(?:[eE][+-]?\d+)?[fFdDmM]?",
    ),
    (TokenKind.IDENTIFIER, r"@?[^\W\d]\w*"),
    (
      TokenKind.OPERATOR,
      r"::|=>|\?\?=|\?\?|\?\.|==|!=|<=|>=|&&|\|\||\+\+|--|\+=|-=|\*=|/=|%=|&=|\|=|\^=|<<=|->",
    ),
    (TokenKind.SYMBOL, r"[{}()\[\];,.:=<>]"),
    (TokenKind.OPERATOR, r"[+\-*/%&|^!~?]"),
    (TokenKind.MISMATCH, r"."),
  ]

  _REGEX = re.compile(
    "|".join(f"(?P<{kind.value}_{idx}>{pattern})" for idx, (kind, pattern) in enumerate(PATTERN_DEFS)),
  )

  def __init__(self, text: str):
    self.text = text

  def tokenize(self) -> Generator[Lexeme, None, None]:
    line_num = 1
    line_start = 0
    line_has_content = False
    for mo in self._REGEX.finditer(self.text):
      kind = TokenKind(mo.lastgroup.rsplit("_", 1)[0])
      value = mo.group()
      col = mo.start() - line_start + 1

      if kind == TokenKind.MISMATCH:
        raise SyntaxError(f"Unexpected character {value!r} on line {line_num}:{col}")
      if kind == TokenKind.DIRECTIVE and line_has_content:
        raise SyntaxError(f"Preprocessor directive must appear first on a line ({line_num}:{col})")

      yield Lexeme(kind, value, line_num, col)

      if kind == TokenKind.NEWLINE:
        line_num += 1
        line_start = mo.end()
        line_has_content = False
      elif kind != TokenKind.WHITESPACE:
        line_has_content = True
        breaks = value.count("\n")
        if breaks:
          # Multi-line comments and verbatim strings
          line_num += breaks
          line_start = mo.start() + value.rfind("\n") + 1


def _make_trivia(lexeme: Lexeme) -> Trivia:
  if lexeme.kind == TokenKind.NEWLINE:
    return Trivia(lexeme.text, TriviaKind.END_OF_LINE)
  if lexeme.kind == TokenKind.COMMENT:
    return Trivia(lexeme.text, TriviaKind.COMMENT)
  if lexeme.kind == TokenKind.DIRECTIVE:
    return parse_directive(lexeme.text)
  return Trivia(lexeme.text, TriviaKind.WHITESPACE)


def parse_directive(text: str) -> DirectiveTrivia:
  """Splits ``#if NET`` style text into keyword and condition."""
  body = text[1:].strip()
  parts = body.split(None, 1)
  keyword = parts[0] if parts else ""
  condition = parts[1].strip() if len(parts) > 1 else None
  return DirectiveTrivia(text, keyword=keyword, condition=condition)


def lex(text: str) -> List[Token]:
  """
  Tokenizes text and attaches trivia to tokens.

  The returned list always ends with an EOF token carrying the remaining trivia.
  """
  tokens: List[Token] = []
  lexemes = list(Tokenizer(text).tokenize())
  pos = 0
  leading: List[Trivia] = []
  while pos < len(lexemes):
    lexeme = lexemes[pos]
    pos += 1
    if lexeme.kind in _TRIVIA_KINDS:
      leading.append(_make_trivia(lexeme))
      continue

    trailing: List[Trivia] = []
    while pos < len(lexemes):
      nxt = lexemes[pos]
      if nxt.kind in (TokenKind.WHITESPACE, TokenKind.COMMENT):
        trailing.append(_make_trivia(nxt))
        pos += 1
      elif nxt.kind == TokenKind.NEWLINE:
        trailing.append(_make_trivia(nxt))
        pos += 1
        break
      else:
        break
    tokens.append(Token(lexeme.kind, lexeme.text, tuple(leading), tuple(trailing)))
    leading = []

  tokens.append(Token(TokenKind.EOF, "", tuple(leading)))
  return tokens


def validate_directives(unit: CompilationUnit) -> None:
  """
  Checks that conditional and region directives are balanced.

  Raises:
      SyntaxError: On ``#else``/``#elif``/``#endif`` without ``#if``, a second
          ``#else`` in one region, or regions left open at end of file.
  """
  conditionals: List[bool] = []  # one entry per open #if: whether #else was seen
  regions = 0
  for tok in unit.tokens():
    for trivia in tok.leading_trivia + tok.trailing_trivia:
      if not isinstance(trivia, DirectiveTrivia):
        continue
      keyword = trivia.keyword
      if keyword == DirectiveKeyword.IF.value:
        conditionals.append(False)
      elif keyword in (DirectiveKeyword.ELIF.value, DirectiveKeyword.ELSE.value):
        if not conditionals or conditionals[-1]:
          raise SyntaxError(f"Unexpected '#{keyword}' directive")
        if keyword == DirectiveKeyword.ELSE.value:
          conditionals[-1] = True
      elif keyword == DirectiveKeyword.ENDIF.value:
        if not conditionals:
          raise SyntaxError("Unexpected '#endif' directive")
        conditionals.pop()
      elif keyword == "region":
        regions += 1
      elif keyword == "endregion":
        if regions == 0:
          raise SyntaxError("Unexpected '#endregion' directive")
        regions -= 1
  if conditionals:
    raise SyntaxError("'#endif' directive expected")
  if regions:
    raise SyntaxError("'#endregion' directive expected")


class CSharpParser:
  def __init__(self, text: str):
    self.tokens = lex(text)
    self.pos = 0

  def peek(self, offset: int = 0) -> Token:
    idx = self.pos + offset
    if idx >= len(self.tokens):
      return self.tokens[-1]
    return self.tokens[idx]

  def consume(self) -> Token:
    token = self.peek()
    self.pos += 1
    return token

  def match(self, symbol: str) -> bool:
    return self.peek().is_symbol(symbol)

  def expect(self, symbol: str) -> Token:
    if not self.match(symbol):
      cur = self.peek()
      raise SyntaxError(f"Expected '{symbol}', got {cur.kind.value} ('{cur.text}')")
    return self.consume()

  def expect_identifier(self) -> Token:
    cur = self.peek()
    if cur.kind != TokenKind.IDENTIFIER:
      raise SyntaxError(f"Expected identifier, got {cur.kind.value} ('{cur.text}')")
    return self.consume()

  def at_eof(self) -> bool:
    return self.peek().kind == TokenKind.EOF

  def parse(self) -> CompilationUnit:
    members = self.parse_members(in_block=False)
    unit = CompilationUnit(members=members, end_of_file=self.consume())
    validate_directives(unit)
    return unit

  def parse_members(self, in_block: bool) -> Tuple[Member, ...]:
    members: List[Member] = []
    while True:
      if self.at_eof():
        if in_block:
          raise SyntaxError("Expected '}' before end of file")
        break
      if self.match(Symbol.RBRACE.value):
        if in_block:
          break
        raise SyntaxError("Unexpected '}'")
      members.append(self.parse_member())
    return tuple(members)

  def parse_member(self) -> Member:
    if self._at_using_directive():
      return self.parse_using()

    attribute_lists: List[AttributeList] = []
    while self.match(Symbol.LBRACKET.value):
      attr_list = self.parse_attribute_list()
      if not attribute_lists and attr_list.target and attr_list.target.identifier.text in GLOBAL_ATTRIBUTE_TARGETS:
        return attr_list
      attribute_lists.append(attr_list)

    modifiers: List[Token] = []
    while self._at_modifier():
      modifiers.append(self.consume())

    head = self.peek()
    if head.is_keyword(NAMESPACE_KEYWORD) and not attribute_lists and not modifiers:
      return self.parse_namespace()
    if head.kind == TokenKind.IDENTIFIER and head.text in TYPE_KEYWORDS and self.peek(1).kind == TokenKind.IDENTIFIER:
      return self.parse_type_declaration(tuple(attribute_lists), tuple(modifiers))
    return self.parse_other_member(tuple(attribute_lists), tuple(modifiers))

  def _at_using_directive(self) -> bool:
    head = self.peek()
    if head.is_keyword("global") and self.peek(1).is_keyword(USING_KEYWORD):
      return True
    return head.is_keyword(USING_KEYWORD) and not self.peek(1).is_symbol(Symbol.LPAREN)

  def _at_modifier(self) -> bool:
    head = self.peek()
    if head.kind != TokenKind.IDENTIFIER or head.text not in MODIFIER_KEYWORDS:
      return False
    return self.peek(1).kind == TokenKind.IDENTIFIER

  def parse_using(self) -> UsingDirective:
    parts = []
    while not self.at_eof():
      tok = self.consume()
      parts.append(tok)
      if tok.is_symbol(Symbol.SEMICOLON):
        return UsingDirective(tuple(parts))
    raise SyntaxError("Expected ';' after using directive")

  def parse_namespace(self) -> NamespaceDeclaration:
    keyword = self.consume()
    name = []
    while not (self.match(Symbol.LBRACE.value) or self.match(Symbol.SEMICOLON.value)):
      if self.at_eof():
        raise SyntaxError("Unexpected end of file in namespace declaration")
      name.append(self.consume())

    if self.match(Symbol.SEMICOLON.value):
      file_semicolon = self.consume()
      members = self.parse_members(in_block=False)
      return NamespaceDeclaration(keyword, tuple(name), None, file_semicolon, members, None)

    open_brace = self.consume()
    members = self.parse_members(in_block=True)
    close_brace = self.expect(Symbol.RBRACE.value)
    semicolon = self.consume() if self.match(Symbol.SEMICOLON.value) else None
    return NamespaceDeclaration(keyword, tuple(name), open_brace, None, members, close_brace, semicolon)

  def parse_type_declaration(
    self, attribute_lists: Tuple[AttributeList, ...], modifiers: Tuple[Token, ...]
  ) -> TypeDeclaration:
    keyword = self.consume()
    header: List[Token] = []
    stack: List[str] = []
    while True:
      if self.at_eof():
        raise SyntaxError(f"Unexpected end of file in '{keyword.text}' declaration")
      if not stack and (self.match(Symbol.LBRACE.value) or self.match(Symbol.SEMICOLON.value)):
        break
      tok = self.consume()
      self._track_bracket(tok, stack)
      header.append(tok)

    if self.match(Symbol.SEMICOLON.value):
      return TypeDeclaration(attribute_lists, modifiers, keyword, tuple(header), None, (), None, self.consume())

    open_brace = self.consume()
    if keyword.text == "enum":
      body = self._collect_balanced_until_close()
      members: Tuple[Member, ...] = (MemberDeclaration((), (), body),) if body else ()
    else:
      members = self.parse_members(in_block=True)
    close_brace = self.expect(Symbol.RBRACE.value)
    semicolon = self.consume() if self.match(Symbol.SEMICOLON.value) else None
    return TypeDeclaration(
      attribute_lists, modifiers, keyword, tuple(header), open_brace, members, close_brace, semicolon
    )

  def _collect_balanced_until_close(self) -> Tuple[Token, ...]:
    collected: List[Token] = []
    stack: List[str] = []
    while True:
      if self.at_eof():
        raise SyntaxError("Expected '}' before end of file")
      if not stack and self.match(Symbol.RBRACE.value):
        return tuple(collected)
      tok = self.consume()
      self._track_bracket(tok, stack)
      collected.append(tok)

  def _track_bracket(self, tok: Token, stack: List[str]) -> None:
    if tok.kind != TokenKind.SYMBOL:
      return
    if tok.text in OPENING_BRACKETS:
      stack.append(tok.text)
    elif tok.text in CLOSING_BRACKETS:
      if not stack or stack[-1] != CLOSING_BRACKETS[tok.text]:
        raise SyntaxError(f"Unbalanced '{tok.text}'")
      stack.pop()

  def parse_other_member(
    self, attribute_lists: Tuple[AttributeList, ...], modifiers: Tuple[Token, ...]
  ) -> Member:
    collected: List[Token] = []
    stack: List[str] = []
    seen_assignment = False
    while True:
      if self.at_eof():
        raise SyntaxError("Unexpected end of file, expected ';' or '}'")
      if not stack and self.match(Symbol.RBRACE.value):
        break
      tok = self.consume()
      collected.append(tok)
      if not stack and (tok.is_symbol(Symbol.EQUAL) or tok.is_symbol(Symbol.ARROW)):
        seen_assignment = True
      closes_block = len(stack) == 1 and tok.is_symbol(Symbol.RBRACE)
      self._track_bracket(tok, stack)
      if stack:
        continue
      if tok.is_symbol(Symbol.SEMICOLON):
        break
      if closes_block and not seen_assignment:
        if self.match(Symbol.EQUAL.value):
          continue
        break

    if not collected:
      raise SyntaxError(f"Expected member declaration, got '{self.peek().text}'")

    method = self._as_method(attribute_lists, modifiers, collected)
    if method is not None:
      return method
    return MemberDeclaration(attribute_lists, modifiers, tuple(collected))

  def _as_method(
    self, attribute_lists: Tuple[AttributeList, ...], modifiers: Tuple[Token, ...], collected: List[Token]
  ) -> Optional[MethodDeclaration]:
    params_start = None
    depth = 0
    for idx, tok in enumerate(collected):
      if depth == 0 and (tok.is_symbol(Symbol.EQUAL) or tok.is_symbol(Symbol.LBRACE) or tok.is_symbol(Symbol.ARROW)):
        return None
      if tok.kind == TokenKind.IDENTIFIER and tok.text in NON_METHOD_KEYWORDS:
        return None
      if tok.is_symbol(Symbol.LPAREN):
        prev = collected[idx - 1] if idx > 0 else None
        if depth == 0 and prev is not None and (prev.kind == TokenKind.IDENTIFIER or prev.is_symbol(Symbol.GT)):
          params_start = idx
          break
        depth += 1
      elif tok.is_symbol(Symbol.RPAREN):
        depth -= 1
    if params_start is None:
      return None

    # Skip the parameter list, then look for the body.
    depth = 0
    body_start = None
    for idx in range(params_start, len(collected)):
      tok = collected[idx]
      if tok.kind == TokenKind.SYMBOL and tok.text in OPENING_BRACKETS:
        if depth == 0 and idx > params_start and tok.is_symbol(Symbol.LBRACE):
          body_start = idx
          break
        depth += 1
      elif tok.kind == TokenKind.SYMBOL and tok.text in CLOSING_BRACKETS:
        depth -= 1
      elif depth == 0 and tok.is_symbol(Symbol.ARROW):
        body_start = idx
        break

    last = collected[-1]
    semicolon = last if last.is_symbol(Symbol.SEMICOLON) else None
    if body_start is None:
      if semicolon is None:
        return None
      return MethodDeclaration(attribute_lists, modifiers, tuple(collected[:-1]), (), semicolon)

    signature = tuple(collected[:body_start])
    if collected[body_start].is_symbol(Symbol.ARROW):
      if semicolon is None:
        return None
      return MethodDeclaration(attribute_lists, modifiers, signature, tuple(collected[body_start:-1]), semicolon)
    return MethodDeclaration(attribute_lists, modifiers, signature, tuple(collected[body_start:]), None)

  def parse_attribute_list(self) -> AttributeList:
    open_bracket = self.expect(Symbol.LBRACKET.value)
    target = None
    if self.peek().kind == TokenKind.IDENTIFIER and self.peek(1).is_symbol(Symbol.COLON):
      target = AttributeTargetSpecifier(self.consume(), self.consume())

    attributes: List[Attribute] = []
    while not self.match(Symbol.RBRACKET.value):
      attribute = self.parse_attribute()
      if self.match(Symbol.COMMA.value):
        attributes.append(Attribute(attribute.name, attribute.argument_list, self.consume()))
        continue
      attributes.append(attribute)
      break
    close_bracket = self.expect(Symbol.RBRACKET.value)
    return AttributeList(open_bracket, target, tuple(attributes), close_bracket)

  def parse_attribute(self) -> Attribute:
    name = [self.expect_identifier()]
    while self.match(Symbol.DOT.value) or self.match(Symbol.DOUBLE_COLON.value):
      name.append(self.consume())
      name.append(self.expect_identifier())
    if self.match(Symbol.LT.value):
      nesting = 0
      while True:
        if self.at_eof():
          raise SyntaxError("Unexpected end of file in generic attribute name")
        tok = self.consume()
        name.append(tok)
        if tok.is_symbol(Symbol.LT):
          nesting += 1
        elif tok.is_symbol(Symbol.GT):
          nesting -= 1
          if nesting == 0:
            break

    argument_list = None
    if self.match(Symbol.LPAREN.value):
      argument_list = self.parse_attribute_argument_list()
    return Attribute(tuple(name), argument_list)

  def parse_attribute_argument_list(self) -> AttributeArgumentList:
    open_paren = self.expect(Symbol.LPAREN.value)
    arguments: List[AttributeArgument] = []
    while not self.match(Symbol.RPAREN.value):
      name_equals = None
      name_colon = None
      if self.peek().kind == TokenKind.IDENTIFIER:
        if self.peek(1).is_symbol(Symbol.EQUAL):
          name_equals = NameEquals(self.consume(), self.consume())
        elif self.peek(1).is_symbol(Symbol.COLON):
          name_colon = NameColon(self.consume(), self.consume())

      expression: List[Token] = []
      stack: List[str] = []
      while True:
        if self.at_eof():
          raise SyntaxError("Unexpected end of file in attribute arguments")
        if not stack and (self.match(Symbol.COMMA.value) or self.match(Symbol.RPAREN.value)):
          break
        tok = self.consume()
        self._track_bracket(tok, stack)
        expression.append(tok)
      if not expression:
        raise SyntaxError(f"Expected attribute argument, got '{self.peek().text}'")

      comma = self.consume() if self.match(Symbol.COMMA.value) else None
      arguments.append(AttributeArgument(name_equals, name_colon, tuple(expression), comma))
      if comma is None:
        break
    close_paren = self.expect(Symbol.RPAREN.value)
    return AttributeArgumentList(open_paren, tuple(arguments), close_paren)


def parse_compilation_unit(text: str) -> CompilationUnit:
  """
  Parses C# source text.

  Args:
      text: Source code.

  Returns:
      CompilationUnit: Root of the concrete syntax tree.

  Raises:
      SyntaxError: If the text is not well-formed at declaration level.
  """
  return CSharpParser(text).parse()
