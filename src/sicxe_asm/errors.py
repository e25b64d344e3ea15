"""
SIC/XE Assembler Error Hierarchy
================================

This module defines the exception hierarchy for the assembler.
All exceptions inherit from SicAsmError, allowing callers to catch all
assembler-related errors with a single except clause if desired.

Exception Hierarchy
-------------------
SicAsmError (base)
├── ResourceError - catalog or source file cannot be read
├── CatalogError - malformed instruction catalog line
└── AssemblerError (source-related)
    ├── AssemblySyntaxError - malformed numeric field in source
    ├── ExpressionError - malformed address expression
    └── UndefinedSymbolError - unresolved symbol (strict mode only)

Error Policy
------------
Structural failures (unreadable files, a bad catalog, a malformed number
or expression) are fatal and raised. Semantic problems such as an unknown
mnemonic or an unresolved symbol degrade to best-effort output so the
tool always produces *some* listing; strict mode turns unresolved symbols
into UndefinedSymbolError.

Error messages follow this format:
    filename:line: error: description
    source_line_text
    hint: suggestion for fixing (when available)
"""

from dataclasses import dataclass
from typing import Optional


# =============================================================================
# Base Exception Class
# =============================================================================

class SicAsmError(Exception):
    """
    Base exception for all assembler errors.

        try:
            assembler.assemble_file("program.asm")
        except SicAsmError as e:
            print(f"Error: {e}")
    """
    pass


class ResourceError(SicAsmError):
    """
    An input resource (instruction catalog or source file) is unreadable.

    Raised before assembly begins; no object module is produced.
    """

    def __init__(self, path: str, reason: str = ""):
        self.path = path
        self.reason = reason
        message = f"cannot read '{path}'"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class CatalogError(SicAsmError):
    """
    Malformed line in the instruction catalog.

    A partial catalog cannot guarantee correct encoding, so any bad line
    aborts the whole load.
    """

    def __init__(self, message: str, line_number: int = 0, line: str = ""):
        self.line_number = line_number
        self.line = line
        if line_number:
            message = f"line {line_number}: {message}: {line!r}"
        super().__init__(message)


# =============================================================================
# Source Location Tracking
# =============================================================================

@dataclass(frozen=True)
class SourceLocation:
    """
    A location in source code for error reporting.

    Attributes:
        filename: Name of the source file (or "<input>" for string input)
        line: Line number (1-indexed)
    """
    filename: str
    line: int

    def __str__(self) -> str:
        return f"{self.filename}:{self.line}"


# =============================================================================
# Assembler Exceptions
# =============================================================================

class AssemblerError(SicAsmError):
    """
    Base exception for errors tied to a source statement.

    Attributes:
        message: The error description
        location: Where in the source the error occurred (optional)
        hint: A suggestion for fixing the error (optional)
        source_line: The actual source text at the error location (optional)
    """

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
        source_line: Optional[str] = None,
    ):
        self.message = message
        self.location = location
        self.hint = hint
        self.source_line = source_line
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """
        Format the error message with location, source context, and hint.

        Example output:
            copy.asm:15: error: invalid RESB count 'ten'
                BUFFER	RESB	ten
            hint: reservation counts are decimal
        """
        parts = []

        if self.location:
            parts.append(f"{self.location}: error: {self.message}")
        else:
            parts.append(f"error: {self.message}")

        if self.source_line is not None:
            parts.append(f"    {self.source_line}")

        if self.hint:
            parts.append(f"hint: {self.hint}")

        return "\n".join(parts)


class AssemblySyntaxError(AssemblerError):
    """
    Malformed field in assembly source.

    Examples:
        - Non-numeric RESB/RESW count
        - Non-numeric immediate operand where a number is required
        - Malformed START address
    """
    pass


class ExpressionError(AssemblerError):
    """
    Error evaluating an address expression.

    Only '*', 'A-B', a decimal number or a single symbol are valid
    address expressions; anything else aborts the run.
    """
    pass


class UndefinedSymbolError(AssemblerError):
    """
    Reference to a symbol that is neither defined in the section nor
    declared with EXTREF.

    Only raised when the assembler runs in strict mode; otherwise the
    lookup degrades to -1 and a warning is logged.
    """

    def __init__(
        self,
        symbol: str,
        section: str = "",
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.symbol = symbol
        self.section = section

        hint = None
        if section:
            hint = f"declare '{symbol}' in EXTREF if it lives in another section than '{section}'"

        super().__init__(
            f"undefined symbol '{symbol}'",
            location=location,
            hint=hint,
            source_line=source_line,
        )
