"""
CLI Handlers Package.

Implementation modules for the ``convert`` and ``audit`` commands.
"""
