"""
Tests for the C# Parser (Round-Trip).

Verifies:
1. Tokenizer correctness for identifiers, literals, symbols and trivia.
2. Parser structural correctness (namespaces, types, methods, attributes, usings).
3. Whitespace/comment/directive preservation (byte identity).
4. Directive balance checking.
"""

import pytest

from interop_migrator.core.csharp.nodes import (
  AttributeList,
  DirectiveTrivia,
  MemberDeclaration,
  MethodDeclaration,
  NamespaceDeclaration,
  TypeDeclaration,
  UsingDirective,
)
from interop_migrator.core.csharp.parser import Tokenizer, lex, parse_compilation_unit, parse_directive
from interop_migrator.core.csharp.tokens import TokenKind, TriviaKind


def roundtrip(code: str) -> str:
  """Helper to parse and re-emit."""
  return parse_compilation_unit(code).to_text()


def methods(code: str):
  return [n for n in parse_compilation_unit(code).descendants() if isinstance(n, MethodDeclaration)]


def test_tokenizer_simple():
  text = '[DllImport("lib")] static extern int F();'
  kinds = [t.kind for t in Tokenizer(text).tokenize()]

  assert TokenKind.IDENTIFIER in kinds
  assert TokenKind.STRING in kinds
  assert TokenKind.SYMBOL in kinds
  assert TokenKind.WHITESPACE in kinds


def test_tokenizer_rejects_unknown_character():
  with pytest.raises(SyntaxError, match="1:5"):
    list(Tokenizer("int `x;").tokenize())


@pytest.mark.parametrize(
  "literal",
  [
    '"plain \\" escaped"',
    '@"verbatim ""quoted"" \\ path"',
    '$"interpolated {x}"',
    '"""raw "quoted" text"""',
    '"utf8"u8',
  ],
)
def test_string_literals_are_single_tokens(literal):
  tokens = lex(f"var s = {literal};")
  strings = [t for t in tokens if t.kind == TokenKind.STRING]
  assert [t.text for t in strings] == [literal]


def test_trailing_trivia_ends_at_newline():
  """
  Scenario: Comment after a statement, indented next line.
  Expect: The comment and newline trail the ';', the indentation leads the next token.
  """
  tokens = lex("int x; // note\n  int y;")
  semicolon = tokens[2]

  assert [t.text for t in semicolon.trailing_trivia] == [" ", "// note", "\n"]
  assert [t.kind for t in semicolon.trailing_trivia][-1] == TriviaKind.END_OF_LINE
  assert [t.text for t in tokens[3].leading_trivia] == ["  "]


def test_directives_are_leading_trivia():
  tokens = lex("int x;\n#if NET\nint y;\n#endif\n")
  directive = tokens[3].leading_trivia[0]

  assert isinstance(directive, DirectiveTrivia)
  assert directive.keyword == "if"
  assert directive.condition == "NET"
  assert tokens[-1].kind == TokenKind.EOF
  assert tokens[-1].leading_trivia[0].keyword == "endif"


def test_parse_directive_with_tab():
  directive = parse_directive("#if\tNET && !DEBUG")
  assert directive.keyword == "if"
  assert directive.condition == "NET && !DEBUG"


def test_directive_after_code_is_rejected():
  with pytest.raises(SyntaxError, match="first on a line"):
    lex("int x; #if NET\n")


@pytest.mark.parametrize(
  "code",
  [
    "#if NET\nint x;\n",
    "int x;\n#endif\n",
    "#if A\n#else\n#else\n#endif\n",
    "#region R\nint x;\n",
  ],
)
def test_unbalanced_directives_raise(code):
  with pytest.raises(SyntaxError):
    parse_compilation_unit(code)


@pytest.mark.parametrize(
  "code",
  [
    "",
    "using System;\n",
    "// header\nusing System.Runtime.InteropServices;\n\nnamespace N\n{\n    class C { }\n}\n",
    "namespace N;\n\ninternal static partial class Native\n{\n    [DllImport(\"lib\")]\n    static extern int F();\n}\n",
    "class C\r\n{\r\n    int M() => 1;\r\n    int P { get; set; } = 3;\r\n}\r\n",
    "enum E { A = 1, B = A | 2 }\n",
    "record R(int X, string Y);\n",
    "#if NET\n[DllImport(\"a\")]\n#else\n[DllImport(\"b\")]\n#endif\nstatic extern void F();\n",
    "class C\n{\n    /* block\n       comment */\n    void M() { var s = @\"a\n b\"; }\n}",
    "[assembly: InternalsVisibleTo(\"Tests\")]\nclass C<T> where T : struct { }\n",
  ],
)
def test_roundtrip_is_byte_identical(code):
  assert roundtrip(code) == code


def test_parse_namespace_and_types():
  unit = parse_compilation_unit("using System;\nnamespace A.B\n{\n    partial class C\n    {\n    }\n}\n")

  assert isinstance(unit.members[0], UsingDirective)
  namespace = unit.members[1]
  assert isinstance(namespace, NamespaceDeclaration)
  assert namespace.name == "A.B"
  cls = namespace.members[0]
  assert isinstance(cls, TypeDeclaration)
  assert cls.name == "C"
  assert [m.text for m in cls.modifiers] == ["partial"]


def test_file_scoped_namespace_owns_following_members():
  unit = parse_compilation_unit("namespace N;\nclass A { }\nclass B { }\n")
  namespace = unit.members[0]

  assert len(unit.members) == 1
  assert [m.name for m in namespace.members] == ["A", "B"]


def test_parse_extern_method():
  code = '[DllImport("lib", EntryPoint = "f")]\npublic static extern int F(int a);\n'
  [method] = methods(code)

  assert method.identifier.text == "F"
  assert [m.text for m in method.modifiers] == ["public", "static", "extern"]
  assert method.has_modifier("extern")
  assert not method.has_body
  assert method.semicolon.text == ";"

  [attribute] = method.attributes
  assert attribute.name_text == "DllImport"
  assert [a.named_argument_key for a in attribute.arguments] == [None, "EntryPoint"]
  assert [t.text for t in attribute.arguments[0].expression] == ['"lib"']
  assert attribute.arguments[0].comma is not None
  assert attribute.arguments[1].comma is None


def test_parse_generic_method_identifier():
  [method] = methods("static extern T Get<T>(T value);")
  assert method.identifier.text == "Get"


def test_method_bodies():
  block, expression = methods("class C\n{\n    void A() { return; }\n    int B() => 1;\n}\n")

  assert block.has_body
  assert block.semicolon is None
  assert expression.has_body
  assert expression.semicolon is not None


def test_properties_and_fields_are_not_methods():
  unit = parse_compilation_unit("class C\n{\n    int P { get; set; }\n    int f = Compute(1);\n}\n")
  members = unit.members[0].members

  assert all(isinstance(m, MemberDeclaration) for m in members)
  assert len(members) == 2


def test_attribute_target_and_qualified_names():
  code = (
    "[return: MarshalAs(UnmanagedType.Bool)]\n"
    '[global::System.Runtime.InteropServices.DllImport("lib")]\nstatic extern bool F();'
  )
  [method] = methods(code)
  first, second = method.attribute_lists

  assert first.target.identifier.text == "return"
  assert second.attributes[0].name_text == "global::System.Runtime.InteropServices.DllImport"


def test_multiple_attributes_in_one_list():
  [method] = methods('[DllImport("lib"), SuppressGCTransition] static extern void F();')
  attr_list = method.attribute_lists[0]

  assert [a.name_text for a in attr_list.attributes] == ["DllImport", "SuppressGCTransition"]
  assert attr_list.attributes[0].comma.text == ","
  assert attr_list.attributes[1].comma is None


def test_global_attribute_is_standalone_member():
  unit = parse_compilation_unit('[assembly: DisableRuntimeMarshalling]\n[DllImport("lib")] static extern void F();\n')

  assert isinstance(unit.members[0], AttributeList)
  assert isinstance(unit.members[1], MethodDeclaration)


@pytest.mark.parametrize(
  "code, alias, target, is_static",
  [
    ("using System.Runtime.InteropServices;", None, "System.Runtime.InteropServices", False),
    ("using Interop = System.Runtime.InteropServices;", "Interop", "System.Runtime.InteropServices", False),
    ("global using static System.Math;", None, "System.Math", True),
    ("using global::System.Runtime.InteropServices;", None, "System.Runtime.InteropServices", False),
  ],
)
def test_using_directives(code, alias, target, is_static):
  [using] = parse_compilation_unit(code).members

  assert using.alias == alias
  assert using.target == target
  assert using.is_static is is_static


def test_unclosed_block_raises():
  with pytest.raises(SyntaxError, match="Expected '}'"):
    parse_compilation_unit("class C {\n    void M();\n")
