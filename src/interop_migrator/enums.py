"""
Enumerations for interop-migrator.
"""

from enum import Enum


class ConversionMode(str, Enum):
  """
  How a legacy declaration is replaced.

  DIRECT rewrites the declaration in place. PREPROCESSOR_GUARDED keeps the
  legacy declaration under ``#else`` and places the converted one under
  ``#if <symbol>``.
  """

  DIRECT = "direct"
  PREPROCESSOR_GUARDED = "preprocessor"
