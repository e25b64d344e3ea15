"""
SIC/XE Assembler Command-Line Interface
=======================================

This package provides the command-line tool:

- **sicasm**: SIC/XE two-pass assembler

The tool is a Click-based CLI application with help text and
consistent exit codes (see errors.ExitCode).
"""

__all__ = ["sicasm"]
