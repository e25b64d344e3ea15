"""
SIC/XE Two-Pass Assembler
=========================

This package assembles SIC/XE source into relocatable object modules made
of H/D/R/T/M/E records, one record group per control section.

Main Components
---------------
- **Assembler**: Main class that drives both passes
- **InstructionCatalog**: Mnemonic -> (format, opcode, operand count) table
- **parse_line**: Tokenizes one source line into a SourceToken
- **SymbolTable / LiteralTable / ModificationTable**: Per-section tables
- **CodeGenerator**: Pass 2 object code and record assembly
- **evaluate_address**: Address expressions (`*`, `A-B`, number, symbol)

Assembly Process
----------------
1. **Pass 1 (Assembler)**:
   - Tokenize every line, size it, and compute its addressing flags
   - Open a section at START/CSECT, bind labels, place literal pools
   - Record EXTREF names and the Modification entries they require

2. **Pass 2 (CodeGenerator)**:
   - Every statement encodes its object code from the stable tables
   - Records are assembled per section in source order

Example Usage
-------------
>>> from sicxe_asm.assembler import Assembler
>>> result = Assembler().assemble_file("copy.asm")
>>> print(result.format_object_program())

Supported Features
------------------
- Formats 1, 2, 3 and 4 (`+` prefix)
- Immediate (#), indirect (@), indexed (,X) and PC-relative addressing
- Literals (=X'..', =C'..') with LTORG / END pools
- BYTE, WORD, RESB, RESW, EQU
- Control sections (CSECT) with EXTDEF / EXTREF and Modification records
"""

from sicxe_asm.assembler.assembler import (
    Assembler,
    AssemblyResult,
    assemble,
    assemble_file,
)
from sicxe_asm.assembler.codegen import CodeGenerator
from sicxe_asm.assembler.context import AssemblyContext, SectionContext
from sicxe_asm.assembler.expressions import evaluate_address
from sicxe_asm.assembler.lexer import (
    AddressingFlags,
    Operand,
    SourceToken,
    parse_line,
)
from sicxe_asm.assembler.opcodes import (
    DIRECTIVES,
    REGISTERS,
    InstructionCatalog,
    InstructionSpec,
)
from sicxe_asm.assembler.records import (
    DefineRecord,
    EndRecord,
    HeaderRecord,
    ModificationRecord,
    ObjectRecord,
    RecordType,
    ReferRecord,
    TextRecord,
)
from sicxe_asm.assembler.tables import (
    ExternalReferenceTable,
    LiteralTable,
    ModificationTable,
    SymbolTable,
)

__all__ = [
    # Main class and functions
    "Assembler",
    "AssemblyResult",
    "assemble",
    "assemble_file",
    # Context
    "AssemblyContext",
    "SectionContext",
    # Tokenizer
    "AddressingFlags",
    "Operand",
    "SourceToken",
    "parse_line",
    # Catalog
    "DIRECTIVES",
    "REGISTERS",
    "InstructionCatalog",
    "InstructionSpec",
    # Tables
    "ExternalReferenceTable",
    "LiteralTable",
    "ModificationTable",
    "SymbolTable",
    # Code generator and records
    "CodeGenerator",
    "RecordType",
    "ObjectRecord",
    "HeaderRecord",
    "DefineRecord",
    "ReferRecord",
    "TextRecord",
    "ModificationRecord",
    "EndRecord",
    # Expressions
    "evaluate_address",
]
