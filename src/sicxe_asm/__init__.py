"""
sicxe-asm - Two-Pass Assembler for the SIC/XE Architecture
==========================================================

This package provides an assembler for SIC/XE, the hypothetical
educational machine with 24-bit words, nine registers and four
instruction formats. Source programs are assembled into relocatable
object modules in the H/D/R/T/M/E text record format consumed by a
linking loader.

Main Components
---------------
- **assembler**: The two-pass assembler (sicasm)
    Converts tab separated source files into object modules (.obj)
    and symbol tables (.sym)

- **data**: The bundled SIC/XE instruction catalog (inst.data)

Quick Start
-----------
Assemble a program:
    >>> from sicxe_asm import Assembler
    >>> asm = Assembler()
    >>> result = asm.assemble_file("copy.asm")
    >>> asm.write_object("copy.obj")
    >>> asm.write_symbols("copy.sym")

Or use the command-line tool:
    $ sicasm copy.asm -o copy.obj -s copy.sym

Version History
---------------
1.0.0 - Initial release
"""

__version__ = "1.0.0"

# =============================================================================
# Public API Exports
# =============================================================================

from sicxe_asm.assembler import Assembler, AssemblyResult, InstructionCatalog
from sicxe_asm.errors import (
    SicAsmError,
    ResourceError,
    CatalogError,
    SourceLocation,
    AssemblerError,
    AssemblySyntaxError,
    ExpressionError,
    UndefinedSymbolError,
)

__all__ = [
    "__version__",
    # Assembler
    "Assembler",
    "AssemblyResult",
    "InstructionCatalog",
    # Errors
    "SicAsmError",
    "ResourceError",
    "CatalogError",
    "SourceLocation",
    "AssemblerError",
    "AssemblySyntaxError",
    "ExpressionError",
    "UndefinedSymbolError",
]
