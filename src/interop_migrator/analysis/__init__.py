"""
Analysis Package.

Finds the declarations the fixer can convert.
"""

from interop_migrator.analysis.eligibility import Diagnostic, EligibilityAnalyzer

__all__ = ["Diagnostic", "EligibilityAnalyzer"]
