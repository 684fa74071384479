"""
C# Token Definitions.

Defines the enumerations for Token Kinds, Trivia Kinds and Symbols used by the
Lexer and Parser, plus the keyword tables the parser consults when splitting a
member into attributes, modifiers and signature.
"""

from enum import Enum


class TokenKind(str, Enum):
  """Enumeration of Lexer Token Types."""

  # Trivia (attached to tokens, never emitted as tokens by the parser)
  COMMENT = "COMMENT"
  DIRECTIVE = "DIRECTIVE"
  NEWLINE = "NEWLINE"
  WHITESPACE = "WHITESPACE"

  # Tokens
  STRING = "STRING"
  CHAR = "CHAR"
  NUMBER = "NUMBER"
  IDENTIFIER = "IDENTIFIER"
  OPERATOR = "OPERATOR"
  SYMBOL = "SYMBOL"
  MISMATCH = "MISMATCH"
  EOF = "EOF"


class TriviaKind(str, Enum):
  """Enumeration of non-semantic text categories."""

  WHITESPACE = "whitespace"
  END_OF_LINE = "end_of_line"
  COMMENT = "comment"
  DIRECTIVE = "directive"


class Symbol(str, Enum):
  """Enumeration of Punctuation Symbols."""

  LBRACE = "{"
  RBRACE = "}"
  LPAREN = "("
  RPAREN = ")"
  LBRACKET = "["
  RBRACKET = "]"
  COMMA = ","
  COLON = ":"
  SEMICOLON = ";"
  EQUAL = "="
  DOT = "."
  LT = "<"
  GT = ">"
  DOUBLE_COLON = "::"
  ARROW = "=>"


class DirectiveKeyword(str, Enum):
  """Preprocessor directives that open, continue or close a conditional region."""

  IF = "if"
  ELIF = "elif"
  ELSE = "else"
  ENDIF = "endif"


OPENING_BRACKETS = {
  Symbol.LPAREN.value: Symbol.RPAREN.value,
  Symbol.LBRACKET.value: Symbol.RBRACKET.value,
  Symbol.LBRACE.value: Symbol.RBRACE.value,
}

CLOSING_BRACKETS = {v: k for k, v in OPENING_BRACKETS.items()}

# Keywords that may precede a member's type or keyword.
MODIFIER_KEYWORDS = frozenset(
  {
    "public",
    "private",
    "protected",
    "internal",
    "file",
    "static",
    "extern",
    "partial",
    "unsafe",
    "new",
    "virtual",
    "override",
    "sealed",
    "abstract",
    "readonly",
    "async",
    "volatile",
    "required",
    "const",
    "fixed",
  }
)

# Keywords that introduce a declaration with a member body.
TYPE_KEYWORDS = frozenset({"class", "struct", "interface", "record", "enum"})

NAMESPACE_KEYWORD = "namespace"
USING_KEYWORD = "using"
EXTERN_KEYWORD = "extern"
PARTIAL_KEYWORD = "partial"

# Attribute list targets that make the list stand alone (global attributes).
GLOBAL_ATTRIBUTE_TARGETS = frozenset({"assembly", "module"})

# Keywords whose presence before the first parenthesis rules out a method.
NON_METHOD_KEYWORDS = frozenset({"delegate", "event", "operator", "implicit", "explicit"})
