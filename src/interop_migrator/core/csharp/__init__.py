"""
C# Concrete Syntax Tree.

Immutable, trivia-preserving syntax tree for the parts of C# the rewriter
works on, with a regex lexer and a recursive descent parser.
"""

from interop_migrator.core.csharp.nodes import (
  Annotation,
  Attribute,
  AttributeArgument,
  AttributeList,
  CompilationUnit,
  CSharpNode,
  DirectiveTrivia,
  MethodDeclaration,
  TextSpan,
  Token,
  Trivia,
)
from interop_migrator.core.csharp.parser import CSharpParser, parse_compilation_unit

__all__ = [
  "Annotation",
  "Attribute",
  "AttributeArgument",
  "AttributeList",
  "CSharpNode",
  "CSharpParser",
  "CompilationUnit",
  "DirectiveTrivia",
  "MethodDeclaration",
  "TextSpan",
  "Token",
  "Trivia",
  "parse_compilation_unit",
]
