"""
Document Edits.

Conversions describe their result as a list of edits against the original
tree instead of mutating it. The `DocumentEditor` collects edits for one
document (possibly from many conversions) and applies them in one pass,
so every edit can keep addressing nodes of the original tree.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Set, Tuple, Union

from interop_migrator.core.csharp.nodes import CompilationUnit, CSharpNode, Element, Token
from interop_migrator.core.errors import StructuralDefectError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReplaceEdit:
  """Swap ``node`` for ``new_node``."""

  node: CSharpNode
  new_node: CSharpNode


@dataclass(frozen=True)
class InsertBeforeEdit:
  """Insert ``new_node`` as a sibling directly before ``anchor``."""

  anchor: CSharpNode
  new_node: CSharpNode


Edit = Union[ReplaceEdit, InsertBeforeEdit]


class DocumentEditor:
  """
  Accumulates edits against one syntax tree.

  Nodes are addressed by identity. Several insertions before the same anchor
  keep the order they were added in.
  """

  def __init__(self, root: CompilationUnit):
    self.original_root = root
    self._nodes: Set[int] = {id(n) for n in root.descendants()}
    self._replacements: Dict[int, CSharpNode] = {}
    self._insertions: Dict[int, List[CSharpNode]] = {}
    self._pending: Set[int] = set()

  def _require_in_tree(self, node: CSharpNode) -> None:
    if id(node) not in self._nodes:
      raise StructuralDefectError(f"{type(node).__name__} is not part of the document being edited")

  def replace_node(self, node: CSharpNode, new_node: CSharpNode) -> None:
    self._require_in_tree(node)
    if id(node) in self._replacements:
      raise StructuralDefectError(f"{type(node).__name__} is already being replaced")
    self._replacements[id(node)] = new_node
    self._pending.add(id(node))

  def insert_before(self, anchor: CSharpNode, new_node: CSharpNode) -> None:
    self._require_in_tree(anchor)
    self._insertions.setdefault(id(anchor), []).append(new_node)
    self._pending.add(id(anchor))

  def apply(self, edits: Iterable[Edit]) -> None:
    for edit in edits:
      if isinstance(edit, ReplaceEdit):
        self.replace_node(edit.node, edit.new_node)
      else:
        self.insert_before(edit.anchor, edit.new_node)

  @property
  def has_changes(self) -> bool:
    return bool(self._pending)

  def get_changed_root(self) -> CompilationUnit:
    """
    Returns the tree with all collected edits applied.

    Raises:
        StructuralDefectError: If an insertion anchor does not sit in a list
            of siblings, or an edit targets a node inside a replaced subtree.
    """
    remaining = set(self._pending)
    try:
      root = self._rewrite(self.original_root, remaining)
    except TypeError as e:
      raise StructuralDefectError(f"Cannot insert here: {e}") from e
    if remaining:
      raise StructuralDefectError(f"{len(remaining)} edit(s) target nodes inside a replaced subtree")
    logger.debug(f"Applied {len(self._pending)} edit target(s)")
    return root

  def _rewrite(self, node: CSharpNode, remaining: Set[int]) -> CSharpNode:
    def visit(child: Element) -> Union[Element, Tuple[Element, ...]]:
      if isinstance(child, Token):
        return child
      key = id(child)
      if key in self._replacements:
        result: Element = self._replacements[key]
      else:
        result = self._rewrite(child, remaining)
      remaining.discard(key)
      inserted = self._insertions.get(key)
      if inserted:
        return tuple(inserted) + (result,)
      return result

    return node.map_children(visit)
