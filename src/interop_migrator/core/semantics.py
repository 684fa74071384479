"""
Read-Only Semantic Context.

The rewrite needs three facts it cannot read off a single node: whether an
attribute type exists in the compilation, which type an attribute name refers
to, and the values the legacy attribute's options evaluate to. This module
answers them from the syntax tree alone:

* `Compilation` knows the referenced type names.
* `SemanticModel` resolves attribute names through ``using`` directives,
  ``using`` aliases, qualified names and ``global::``, and evaluates
  literal-valued attribute options.
* `Document` bundles source text, tree and compilation.

All objects are passed explicitly; nothing here is global.
"""

import re
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple

from interop_migrator.core.csharp.factory import attribute_short_name, split_metadata_name
from interop_migrator.core.csharp.nodes import (
  Attribute,
  CompilationUnit,
  CSharpNode,
  MethodDeclaration,
  Token,
  UsingDirective,
)
from interop_migrator.core.csharp.parser import parse_compilation_unit
from interop_migrator.core.csharp.tokens import EXTERN_KEYWORD, TokenKind

GLOBAL_PREFIX = "global::"
_NEWLINE_RE = re.compile(r"\r\n|\r|\n")

# Canonical option name -> names accepted in source.
BEST_FIT_MAPPING = "BestFitMapping"
THROW_ON_UNMAPPABLE_CHAR = "ThrowOnUnmappableChar"
OPTION_ALIASES: Dict[str, Tuple[str, ...]] = {
  BEST_FIT_MAPPING: (BEST_FIT_MAPPING,),
  THROW_ON_UNMAPPABLE_CHAR: (THROW_ON_UNMAPPABLE_CHAR, "ThrowOnUnmappableCharacter"),
}


@dataclass(frozen=True)
class NamedType:
  """A resolved type identity."""

  metadata_name: str

  @property
  def namespace(self) -> str:
    return split_metadata_name(self.metadata_name)[0]

  @property
  def name(self) -> str:
    return split_metadata_name(self.metadata_name)[1]


class Compilation:
  """The set of types the code being converted can refer to."""

  def __init__(self, referenced_types: Iterable[str]):
    self._types = {name: NamedType(name) for name in referenced_types}

  def get_type_by_metadata_name(self, metadata_name: str) -> Optional[NamedType]:
    return self._types.get(metadata_name)

  @property
  def types(self) -> Tuple[NamedType, ...]:
    return tuple(self._types.values())


@dataclass(frozen=True)
class DllImportData:
  """
  Snapshot of the legacy attribute's option values.

  Fields are None when the option is absent or its value is not a literal.
  Only ``best_fit_mapping`` and ``throw_on_unmappable_char`` drive the rewrite.
  """

  library_name: Optional[str] = None
  entry_point: Optional[str] = None
  char_set: Optional[str] = None
  calling_convention: Optional[str] = None
  set_last_error: Optional[bool] = None
  exact_spelling: Optional[bool] = None
  preserve_sig: Optional[bool] = None
  best_fit_mapping: Optional[bool] = None
  throw_on_unmappable_char: Optional[bool] = None


@dataclass(frozen=True)
class AttributeData:
  """An attribute application together with the type it resolves to."""

  attribute_class: Optional[NamedType]
  syntax: Attribute


@dataclass(frozen=True)
class MethodSymbol:
  name: str
  declaration: MethodDeclaration
  attributes: Tuple[AttributeData, ...]

  @property
  def is_extern(self) -> bool:
    return self.declaration.has_modifier(EXTERN_KEYWORD)

  def attributes_of(self, attribute_type: NamedType) -> Tuple[AttributeData, ...]:
    return tuple(a for a in self.attributes if a.attribute_class == attribute_type)


def _strip_global(name: str) -> str:
  if name.startswith(GLOBAL_PREFIX):
    return name[len(GLOBAL_PREFIX) :]
  return name


class SemanticModel:
  """Name resolution and constant evaluation over one compilation unit."""

  def __init__(self, root: CompilationUnit, compilation: Compilation):
    self.root = root
    self.compilation = compilation
    self.usings: Tuple[UsingDirective, ...] = tuple(n for n in root.descendants() if isinstance(n, UsingDirective))
    self._imported_namespaces = {u.target for u in self.usings if u.alias is None and not u.is_static}
    self._aliases = {u.alias: u.target for u in self.usings if u.alias is not None}

  def resolve_attribute(self, attribute: Attribute) -> Optional[NamedType]:
    """
    Resolves the type an attribute name refers to.

    ``[X]`` may name ``X`` or ``XAttribute``, unqualified (namespace imported
    by ``using``), partially qualified relative to an imported namespace,
    fully qualified, or through a ``using`` alias.
    """
    name = _strip_global(attribute.name_text)
    if "<" in name:
      return None

    head, _, rest = name.partition(".")
    if head in self._aliases:
      name = self._aliases[head] + (f".{rest}" if rest else "")

    for named_type in self.compilation.types:
      if self._names_type(name, named_type):
        return named_type
    return None

  def _names_type(self, name: str, named_type: NamedType) -> bool:
    namespace = named_type.namespace
    for form in {named_type.name, attribute_short_name(named_type.name)}:
      if name == form and (not namespace or namespace in self._imported_namespaces):
        return True
      full = f"{namespace}.{form}" if namespace else form
      if name == full:
        return True
      if name.endswith(f".{form}"):
        prefix = name[: -len(form) - 1]
        if any(f"{ns}.{prefix}" == namespace for ns in self._imported_namespaces):
          return True
    # The alias may point straight at the type.
    return name == named_type.metadata_name

  def get_declared_symbol(self, node: CSharpNode) -> Optional[MethodSymbol]:
    if not isinstance(node, MethodDeclaration):
      return None
    identifier = node.identifier
    if identifier is None:
      return None
    attributes = tuple(AttributeData(self.resolve_attribute(a), a) for a in node.attributes)
    return MethodSymbol(identifier.text, node, attributes)

  def get_dll_import_data(self, attribute: Attribute) -> DllImportData:
    """Evaluates the legacy attribute's arguments into a `DllImportData` snapshot."""
    values: Dict[str, object] = {}
    for idx, argument in enumerate(attribute.arguments):
      key = argument.named_argument_key
      if key is None:
        if idx == 0 and argument.name_colon is None:
          values["library_name"] = _evaluate_string(argument.expression)
        continue
      if key in OPTION_ALIASES[BEST_FIT_MAPPING]:
        values["best_fit_mapping"] = _evaluate_bool(argument.expression)
      elif key in OPTION_ALIASES[THROW_ON_UNMAPPABLE_CHAR]:
        values["throw_on_unmappable_char"] = _evaluate_bool(argument.expression)
      elif key == "EntryPoint":
        values["entry_point"] = _evaluate_string(argument.expression)
      elif key == "CharSet":
        values["char_set"] = _member_name(argument.expression)
      elif key == "CallingConvention":
        values["calling_convention"] = _member_name(argument.expression)
      elif key == "SetLastError":
        values["set_last_error"] = _evaluate_bool(argument.expression)
      elif key == "ExactSpelling":
        values["exact_spelling"] = _evaluate_bool(argument.expression)
      elif key == "PreserveSig":
        values["preserve_sig"] = _evaluate_bool(argument.expression)
    return DllImportData(**values)


def _unparenthesize(tokens: Tuple[Token, ...]) -> Tuple[Token, ...]:
  while len(tokens) >= 2 and tokens[0].is_symbol("(") and tokens[-1].is_symbol(")"):
    tokens = tokens[1:-1]
  return tokens


def _evaluate_bool(tokens: Tuple[Token, ...]) -> Optional[bool]:
  tokens = _unparenthesize(tokens)
  negate = False
  while tokens and tokens[0].is_symbol("!"):
    negate = not negate
    tokens = _unparenthesize(tokens[1:])
  if len(tokens) != 1 or tokens[0].text not in ("true", "false"):
    return None
  value = tokens[0].text == "true"
  return not value if negate else value


def _evaluate_string(tokens: Tuple[Token, ...]) -> Optional[str]:
  tokens = _unparenthesize(tokens)
  if len(tokens) != 1 or tokens[0].kind != TokenKind.STRING:
    return None
  text = tokens[0].text
  if text.startswith("@"):
    return text[2:-1].replace('""', '"')
  if text.startswith('"') and text.endswith('"') and not text.startswith('"""'):
    return text[1:-1]
  return None


def _member_name(tokens: Tuple[Token, ...]) -> Optional[str]:
  """``CharSet.Unicode`` -> ``Unicode``."""
  tokens = _unparenthesize(tokens)
  if not tokens or tokens[-1].kind != TokenKind.IDENTIFIER:
    return None
  return tokens[-1].text


class Document:
  """Source text, its syntax tree and the compilation it belongs to."""

  def __init__(self, text: str, compilation: Compilation, root: Optional[CompilationUnit] = None):
    self.text = text
    self.compilation = compilation
    self.root = root if root is not None else parse_compilation_unit(text)
    self._model: Optional[SemanticModel] = None

  @property
  def semantic_model(self) -> SemanticModel:
    if self._model is None:
      self._model = SemanticModel(self.root, self.compilation)
    return self._model

  @property
  def newline(self) -> str:
    """The document's line ending, taken from its first line break."""
    match = _NEWLINE_RE.search(self.text)
    return match.group() if match else "\n"

  def line_of(self, offset: int) -> int:
    """1-based line number of ``offset``; any of ``\\r\\n``, ``\\r`` and ``\\n`` ends a line."""
    return len(_NEWLINE_RE.findall(self.text, 0, offset)) + 1
