"""
Conversion Error Taxonomy.

* ``PreconditionError``: the input is not something this rewrite applies to
  (missing type, wrong node kind, no or several legacy attributes, no
  ``extern`` modifier). The code-fix boundary turns it into "no edit".
* ``StructuralDefectError``: a rewrite would break an internal invariant
  (unbalanced directives, reordered arguments, an insertion anchor outside a
  member list). Fatal to one conversion; the partial result is discarded.
"""


class MigrationError(Exception):
  """Base class for rewrite failures."""


class PreconditionError(MigrationError):
  """The declaration does not satisfy the conversion's input contract."""


class StructuralDefectError(MigrationError):
  """A rewrite step produced, or would produce, a malformed tree."""
