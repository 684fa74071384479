"""
Data structures representing the output of the conversion pipeline.

This module defines the `ConversionResult` Pydantic model, which encapsulates
the rewritten code, any errors encountered and the advisory warnings attached
to converted declarations.
"""

from typing import List

from pydantic import BaseModel, Field


class ConversionResult(BaseModel):
  """
  Container for the results of a conversion job.
  """

  code: str = Field(default="", description="The rewritten source code.")
  errors: List[str] = Field(default_factory=list, description="List of error messages encountered.")
  warnings: List[str] = Field(
    default_factory=list,
    description="Advisory compatibility notes attached to converted declarations.",
  )
  converted: int = Field(default=0, description="Number of declarations converted.")
  success: bool = Field(
    default=True,
    description="True if the pipeline completed without fatal crashes.",
  )

  @property
  def has_errors(self) -> bool:
    """
    Check if the result contains any error messages.

    Returns:
        True if one or more errors are present.
    """
    return len(self.errors) > 0
