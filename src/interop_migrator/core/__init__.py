"""
Core Package.

Syntax tree, semantic context, the attribute and declaration rewrites and the
code-fix boundary that drives them.
"""
