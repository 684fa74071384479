"""
Elastic Trivia Formatter.

Rewrites only leave raw layout decisions behind: a synthesized directive may
follow code on the same line, and a declaration whose leading trivia was
cleared starts at column zero. This pass fixes exactly that, touching only
elastic trivia and the lines directly after it:

* An elastic directive that does not start a line gets a line break before it,
  and the whitespace it followed is dropped.
* The first token of a branch opened by an elastic ``#if`` or ``#else`` is
  indented like the code preceding it when it has no indentation of its own.
* Elastic line breaks are normalized to the document's newline sequence.

Apart from that whitespace, source trivia is never changed, so formatting an
unedited tree is a no-op.
"""

from dataclasses import replace
from typing import List, Tuple

from interop_migrator.core.csharp import factory
from interop_migrator.core.csharp.nodes import CompilationUnit, DirectiveTrivia, Token, Trivia
from interop_migrator.core.csharp.tokens import DirectiveKeyword, TriviaKind


class ElasticFormatter:
  def __init__(self, newline: str = "\n"):
    self.newline = newline
    self._at_line_start = True
    self._line_indent = ""
    self._last_indent = ""
    self._after_elastic_directive = False
    self._needs_indent = False

  def format(self, root: CompilationUnit) -> CompilationUnit:
    self._at_line_start = True
    self._line_indent = ""
    self._last_indent = ""
    self._after_elastic_directive = False
    self._needs_indent = False

    processed = []
    previous: List[Trivia] = []
    for tok in root.tokens():
      leading = self._process(tok.leading_trivia, previous)
      if self._needs_indent and tok.text and self._last_indent:
        leading.append(factory.whitespace(self._last_indent))
        self._line_indent = self._last_indent
      self._needs_indent = False
      if tok.text:
        if self._at_line_start:
          self._last_indent = self._line_indent
        self._at_line_start = False
        self._after_elastic_directive = False
      trailing = self._process(tok.trailing_trivia, [])
      processed.append((tok, leading, trailing))
      previous = trailing

    mapping = {}
    for tok, leading, trailing in processed:
      new_leading, new_trailing = tuple(leading), tuple(trailing)
      if new_leading != tok.leading_trivia or new_trailing != tok.trailing_trivia:
        mapping[id(tok)] = Token(tok.kind, tok.text, new_leading, new_trailing)

    if not mapping:
      return root
    return root.replace_tokens(mapping)

  def _process(self, trivia: Tuple[Trivia, ...], previous: List[Trivia]) -> List[Trivia]:
    """
    Args:
        trivia: Trivia to lay out.
        previous: Already processed trivia directly before ``trivia``. Its
            trailing whitespace is dropped when a line break is inserted.
    """
    out: List[Trivia] = []
    for item in trivia:
      if item.is_directive:
        if item.elastic and not self._at_line_start:
          _strip_trailing_whitespace(out)
          if not out:
            _strip_trailing_whitespace(previous)
          out.append(factory.end_of_line(self.newline))
        out.append(item)
        self._at_line_start = False
        self._needs_indent = False
        self._after_elastic_directive = item.elastic and _opens_branch(item)
      elif item.is_end_of_line:
        out.append(replace(item, text=self.newline) if item.elastic else item)
        self._at_line_start = True
        self._line_indent = ""
        self._needs_indent = self._after_elastic_directive
        self._after_elastic_directive = False
      elif item.kind == TriviaKind.WHITESPACE:
        out.append(item)
        if self._at_line_start:
          self._line_indent += item.text
          self._needs_indent = False
      else:
        out.append(item)
        self._at_line_start = False
        self._needs_indent = False
        self._after_elastic_directive = False
    return out


def format_elastic_trivia(root: CompilationUnit, newline: str = "\n") -> CompilationUnit:
  return ElasticFormatter(newline).format(root)


def _opens_branch(directive: Trivia) -> bool:
  return isinstance(directive, DirectiveTrivia) and directive.keyword != DirectiveKeyword.ENDIF.value


def _strip_trailing_whitespace(items: List[Trivia]) -> None:
  while items and items[-1].kind == TriviaKind.WHITESPACE:
    items.pop()
