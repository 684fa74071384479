"""
Tests for the Semantic Context.

Verifies:
1. Type lookup in the compilation.
2. Attribute name resolution through usings, aliases and qualification.
3. Literal evaluation of the legacy attribute's options.
4. Document line-ending detection.
"""

import pytest

from interop_migrator.config import GENERATED_ATTRIBUTE, LEGACY_ATTRIBUTE
from interop_migrator.core.semantics import Compilation, DllImportData, NamedType

USING = "using System.Runtime.InteropServices;\n"


def test_named_type_parts():
  named = NamedType(LEGACY_ATTRIBUTE)
  assert named.namespace == "System.Runtime.InteropServices"
  assert named.name == "DllImportAttribute"


def test_compilation_lookup():
  compilation = Compilation([LEGACY_ATTRIBUTE])

  assert compilation.get_type_by_metadata_name(LEGACY_ATTRIBUTE) == NamedType(LEGACY_ATTRIBUTE)
  assert compilation.get_type_by_metadata_name(GENERATED_ATTRIBUTE) is None


@pytest.mark.parametrize(
  "code, expected",
  [
    (USING + '[DllImport("a")] static extern int F();', LEGACY_ATTRIBUTE),
    (USING + '[GeneratedDllImport("a")] static partial int F();', GENERATED_ATTRIBUTE),
    ('[DllImport("a")] static extern int F();', None),
    (USING + "[Obsolete] static extern int F();", None),
    (USING + "[DllImport<int>] static extern int F();", None),
    ("using static System.Runtime.InteropServices;\n[DllImport(\"a\")] static extern int F();", None),
  ],
)
def test_resolve_attribute(make_document, first_method, code, expected):
  document = make_document(code)
  resolved = document.semantic_model.resolve_attribute(first_method(document).attributes[0])

  assert (resolved.metadata_name if resolved else None) == expected


def test_declared_symbol(make_document, first_method):
  document = make_document(USING + '[DllImport("a")] public static extern int F();')
  symbol = document.semantic_model.get_declared_symbol(first_method(document))

  assert symbol.name == "F"
  assert symbol.is_extern
  assert len(symbol.attributes_of(NamedType(LEGACY_ATTRIBUTE))) == 1
  assert symbol.attributes_of(NamedType(GENERATED_ATTRIBUTE)) == ()


def test_declared_symbol_of_non_method(make_document):
  document = make_document("class C { }")
  assert document.semantic_model.get_declared_symbol(document.root.members[0]) is None


def test_dll_import_data(make_document, first_method):
  code = (
    USING
    + '[DllImport(@"c:\\native\\lib.dll", EntryPoint = "f_impl", CharSet = CharSet.Unicode, '
    + "CallingConvention = CallingConvention.Cdecl, SetLastError = true, ExactSpelling = (false), "
    + "PreserveSig = !false, BestFitMapping = false, ThrowOnUnmappableChar = true)]\n"
    + "static extern int F();"
  )
  document = make_document(code)
  data = document.semantic_model.get_dll_import_data(first_method(document).attributes[0])

  assert data == DllImportData(
    library_name="c:\\native\\lib.dll",
    entry_point="f_impl",
    char_set="Unicode",
    calling_convention="Cdecl",
    set_last_error=True,
    exact_spelling=False,
    preserve_sig=True,
    best_fit_mapping=False,
    throw_on_unmappable_char=True,
  )


def test_dll_import_data_non_literal_values(make_document, first_method):
  code = (
    USING + "[DllImport(Lib.Name, BestFitMapping = Flags.Value, ThrowOnUnmappableChar = a && b)] static extern int F();"
  )
  document = make_document(code)
  data = document.semantic_model.get_dll_import_data(first_method(document).attributes[0])

  assert data.library_name is None
  assert data.best_fit_mapping is None
  assert data.throw_on_unmappable_char is None


def test_usings_are_collected_inside_namespaces(make_document):
  document = make_document("namespace N\n{\n    using System.Runtime.InteropServices;\n}\n")
  assert [u.target for u in document.semantic_model.usings] == ["System.Runtime.InteropServices"]


@pytest.mark.parametrize(
  "text, newline",
  [
    ("class C\n{\n}\n", "\n"),
    ("class C\r\n{\r\n}\r\n", "\r\n"),
    ("class C { }", "\n"),
  ],
)
def test_document_newline(make_document, text, newline):
  assert make_document(text).newline == newline


@pytest.mark.parametrize(
  "text",
  [
    "class C\n{\n    int x;\n}\n",
    "class C\r\n{\r\n    int x;\r\n}\r\n",
    "class C\r{\r    int x;\r}\r",
  ],
)
def test_document_line_of(make_document, text):
  document = make_document(text)
  assert document.line_of(0) == 1
  assert document.line_of(text.index("int")) == 3
  assert document.line_of(len(text)) == 5
