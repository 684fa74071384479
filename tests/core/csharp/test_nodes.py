"""
Tests for the C# CST Object Model.

Verifies that:
1. Nodes are immutable and edits return new nodes.
2. Untouched subtrees are shared between the old and new tree.
3. Trivia helpers read and replace the outermost trivia.
4. Annotations never affect equality or text.
5. Span lookup finds the innermost node.
"""

import dataclasses

import pytest

from interop_migrator.core.csharp import factory
from interop_migrator.core.csharp.nodes import Annotation, MethodDeclaration, TextSpan, TypeDeclaration
from interop_migrator.core.csharp.parser import parse_compilation_unit

CODE = """class C
{
    [DllImport("lib")]
    static extern int F();

    static extern int G();
}
"""


@pytest.fixture
def unit():
  return parse_compilation_unit(CODE)


def test_nodes_are_frozen(unit):
  method = unit.members[0].members[0]
  with pytest.raises(dataclasses.FrozenInstanceError):
    method.semicolon = None


def test_replace_node_shares_untouched_subtrees(unit):
  cls = unit.members[0]
  f, g = cls.members
  new_f = f.with_modifiers(f.modifiers[:1])

  new_unit = unit.replace_node(f, new_f)

  assert new_unit is not unit
  assert new_unit.members[0].members[0] is new_f
  assert new_unit.members[0].members[1] is g
  # Original untouched
  assert unit.members[0].members[0] is f
  assert unit.to_text() == CODE


def test_replace_node_without_match_returns_self(unit):
  stray = parse_compilation_unit("static extern int H();").members[0]
  assert unit.replace_node(stray, stray) is unit


def test_leading_and_trailing_trivia(unit):
  f = unit.members[0].members[0]

  assert [t.text for t in f.leading_trivia] == ["    "]
  assert [t.text for t in f.trailing_trivia] == ["\n"]

  bare = f.with_leading_trivia(())
  assert bare.to_text().startswith("[DllImport")
  assert f.to_text().startswith("    [DllImport")


def test_annotations_do_not_affect_equality_or_text(unit):
  f = unit.members[0].members[0]
  annotated = f.with_additional_annotations(Annotation("Warning", "careful"))

  assert annotated == f
  assert annotated.to_text() == f.to_text()
  assert [a.data for a in annotated.get_annotations("Warning")] == ["careful"]
  assert f.get_annotations("Warning") == ()


def test_annotations_survive_trivia_edits(unit):
  f = unit.members[0].members[0].with_additional_annotations(Annotation("Warning", "x"))
  moved = f.with_trailing_trivia((factory.end_of_line(),))
  assert moved.get_annotations("Warning")


def test_map_children_rejects_splice_into_single_field(unit):
  f = unit.members[0].members[0]
  attr_list = f.attribute_lists[0]

  def splice(child):
    if child is attr_list.open_bracket:
      return (child, child)
    return child

  with pytest.raises(TypeError, match="single-valued"):
    attr_list.map_children(splice)


def test_map_children_splices_tuples(unit):
  cls = unit.members[0]
  f, g = cls.members

  doubled = cls.map_children(lambda child: (child, child) if child is g else child)

  assert isinstance(doubled, TypeDeclaration)
  assert doubled.members == (f, g, g)


def test_span_lookup(unit):
  g = unit.members[0].members[1]
  offset = CODE.index("G()")

  assert unit.find_node(TextSpan(offset, 1)) is g
  offsets = {id(tok): pos for tok, pos in unit.token_offsets()}
  assert offsets[id(g.identifier)] == offset


def test_find_node_outside_any_member(unit):
  found = unit.find_node(TextSpan(0, 5))
  assert isinstance(found, TypeDeclaration)


def test_descendants_preorder(unit):
  kinds = [type(n).__name__ for n in unit.descendants()]
  assert kinds[0] == "TypeDeclaration"
  assert kinds.count("MethodDeclaration") == 2
  assert all(isinstance(n, MethodDeclaration) for n in unit.members[0].members)
