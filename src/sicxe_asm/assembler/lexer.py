"""
SIC/XE Source Line Tokenizer
============================

This module splits one source line into a SourceToken: label, operator,
operands and comment. It also fixes, once and for all, everything about
the statement that does not depend on symbol addresses:

- the statement's byte size (which drives the location counter)
- the n/i/x/b/p/e addressing flags
- a tagged representation of the first operand

Source Line Format
------------------
Fields are separated by a single tab character:

    [label] <tab> [operator] <tab> [operand1,operand2,...] <tab> [comment]

A line whose label is "." is a comment line. An operator prefixed with
"+" selects the extended (format 4) encoding.

| Operand form | Tag           | Flags   | Example       |
|--------------|---------------|---------|---------------|
| (none)       | -             | n i     | RSUB          |
| #value       | Immediate     | i       | LDA #5        |
| @symbol      | Indirect      | n       | J @RETADR     |
| =X'..'       | LiteralRef    | n i     | TD =X'F1'     |
| symbol       | Simple        | n i     | STL RETADR    |
| A-B          | BinaryExpr    | n i     | WORD BUFEND-BUFFER |
| r1,r2        | Register      | -       | COMPR A,S     |

The p flag is on for every format 3 instruction with an operand, except
immediates. Format 4 instructions carry e instead.

Example
-------
>>> from sicxe_asm.assembler.opcodes import InstructionCatalog
>>> from sicxe_asm.assembler.lexer import parse_line
>>> catalog = InstructionCatalog.load(["LDA 3 00 1"])
>>> token = parse_line("LOOP\\tLDA\\t#5", catalog)
>>> token.byte_size, token.flags.is_immediate, token.flags.is_pc_relative
(3, True, False)
"""

from dataclasses import dataclass, field
from enum import Flag
from typing import Optional

from sicxe_asm.errors import AssemblySyntaxError, SourceLocation
from sicxe_asm.assembler.opcodes import (
    EXTENDED_MARKER,
    REGISTERS,
    InstructionCatalog,
    InstructionSpec,
)
from sicxe_asm.assembler.tables import literal_size, is_constant_text


# =============================================================================
# Constants
# =============================================================================

MAX_OPERANDS = 3

FIELD_SEPARATOR = "\t"
COMMENT_LABEL = "."

IMMEDIATE_PREFIX = "#"
INDIRECT_PREFIX = "@"
LITERAL_PREFIX = "="
INDEX_REGISTER = "X"


# =============================================================================
# Addressing Flags
# =============================================================================

class AddressingFlags(Flag):
    """
    The six n/i/x/b/p/e addressing bits of a format 3/4 instruction.

    Values match the bit positions in the instruction word, so
    `ni_bits` and `xbpe_bits` can be packed directly into the encoding.
    `set` and `clear` return a new value and are idempotent.
    """
    NONE = 0
    E = 1       # Extended (format 4)
    P = 2       # PC-relative
    B = 4       # Base-relative
    X = 8       # Indexed
    I = 16      # Immediate
    N = 32      # Indirect

    def set(self, flag: "AddressingFlags") -> "AddressingFlags":
        return self | flag

    def clear(self, flag: "AddressingFlags") -> "AddressingFlags":
        return self & ~flag

    @property
    def is_immediate(self) -> bool:
        return AddressingFlags.I in self and AddressingFlags.N not in self

    @property
    def is_indirect(self) -> bool:
        return AddressingFlags.N in self and AddressingFlags.I not in self

    @property
    def is_simple(self) -> bool:
        return AddressingFlags.N in self and AddressingFlags.I in self

    @property
    def is_indexed(self) -> bool:
        return AddressingFlags.X in self

    @property
    def is_base_relative(self) -> bool:
        return AddressingFlags.B in self

    @property
    def is_pc_relative(self) -> bool:
        return AddressingFlags.P in self

    @property
    def is_extended(self) -> bool:
        return AddressingFlags.E in self

    @property
    def ni_bits(self) -> int:
        """The n and i bits as a 2-bit value (added to the opcode byte)."""
        return (self.value >> 4) & 0x3

    @property
    def xbpe_bits(self) -> int:
        """The x, b, p and e bits as a 4-bit value (third hex digit)."""
        return self.value & 0xF

    def __str__(self) -> str:
        return "".join(
            name.lower() if flag in self else "-"
            for name, flag in (("n", AddressingFlags.N), ("i", AddressingFlags.I),
                               ("x", AddressingFlags.X), ("b", AddressingFlags.B),
                               ("p", AddressingFlags.P), ("e", AddressingFlags.E))
        )


# =============================================================================
# Tagged Operands
# =============================================================================

@dataclass(frozen=True)
class Operand:
    """
    Base class for a classified operand.

    Attributes:
        text: The operand exactly as written in the source
    """
    text: str

    def symbols(self) -> list[str]:
        """Names of the symbols this operand refers to."""
        return []


@dataclass(frozen=True)
class Register(Operand):
    """Format 2 register operand (A, X, L, B, S, T, F, PC, SW)."""
    name: str

    @property
    def code(self) -> int:
        return REGISTERS[self.name]


@dataclass(frozen=True)
class Number(Operand):
    """Plain decimal number (RESB count, format 2 count, WORD value)."""
    value: int


@dataclass(frozen=True)
class Immediate(Operand):
    """#value or #symbol."""
    value: Optional[int] = None
    symbol: Optional[str] = None

    def symbols(self) -> list[str]:
        return [self.symbol] if self.symbol else []


@dataclass(frozen=True)
class Indirect(Operand):
    """@symbol."""
    symbol: str

    def symbols(self) -> list[str]:
        return [self.symbol]


@dataclass(frozen=True)
class Simple(Operand):
    """Bare symbol reference."""
    symbol: str

    def symbols(self) -> list[str]:
        return [self.symbol]


@dataclass(frozen=True)
class LiteralRef(Operand):
    """=X'..' or =C'..' literal; `literal` is the text without '='."""
    literal: str


@dataclass(frozen=True)
class BinaryExpr(Operand):
    """A-B symbol difference."""
    left: str
    sign: str
    right: str

    def symbols(self) -> list[str]:
        return [self.left, self.right]


@dataclass(frozen=True)
class CurrentLocation(Operand):
    """'*' (the location counter)."""
    pass


@dataclass(frozen=True)
class Constant(Operand):
    """X'..' or C'..' constant of a BYTE directive."""
    kind: str
    payload: str


# =============================================================================
# Source Token
# =============================================================================

@dataclass
class SourceToken:
    """
    One source statement.

    Created in pass 1 with its location, size and flags fixed; pass 2
    fills in object_code.

    Attributes:
        location: Location counter value before this statement
        label: Label field ("" if none, "." for comment lines)
        operator: Mnemonic or directive, without the '+' marker
        extended: True if the operator carried the '+' marker
        operands: Raw operand strings (0-3)
        operand: Tagged form of the first operand (None if no operand)
        comment: Comment text
        flags: n/i/x/b/p/e addressing flags
        byte_size: Bytes this statement occupies
        object_code: Hex object code (pass 2)
        literal_pool: Literals placed at this LTORG/END (pass 1)
        line_number: Source line number (1-indexed, 0 if unknown)
        source: Original source line
    """
    location: int = 0
    label: str = ""
    operator: str = ""
    extended: bool = False
    operands: list[str] = field(default_factory=list)
    operand: Optional[Operand] = None
    comment: str = ""
    flags: AddressingFlags = AddressingFlags.NONE
    byte_size: int = 0
    object_code: str = ""
    literal_pool: list[str] = field(default_factory=list)
    line_number: int = 0
    source: str = ""

    @property
    def is_comment(self) -> bool:
        return self.label == COMMENT_LABEL

    @property
    def has_label(self) -> bool:
        return bool(self.label) and not self.is_comment

    @property
    def has_operand(self) -> bool:
        return bool(self.operands)

    def __repr__(self) -> str:
        marker = EXTENDED_MARKER if self.extended else ""
        return (
            f"SourceToken(${self.location:04X} {self.label or '-'} "
            f"{marker}{self.operator} {','.join(self.operands)} "
            f"size={self.byte_size} {self.flags})"
        )


# =============================================================================
# Line Parsing
# =============================================================================

def parse_line(
    raw_line: str,
    catalog: InstructionCatalog,
    location: int = 0,
    line_number: int = 0,
    filename: str = "<input>",
) -> SourceToken:
    """
    Tokenize one source line.

    Args:
        raw_line: The source line (tab separated fields)
        catalog: Instruction catalog used for sizing and operand counts
        location: Location counter value before this statement
        line_number: Line number for error messages
        filename: Source name for error messages

    Returns:
        The SourceToken with size, flags and tagged operand set

    Raises:
        AssemblySyntaxError: If a numeric field is malformed
    """
    line = raw_line.rstrip("\r\n")
    units = line.split(FIELD_SEPARATOR)
    token = SourceToken(
        location=location, label=units[0].strip(), line_number=line_number, source=line
    )

    if token.is_comment:
        token.comment = FIELD_SEPARATOR.join(units[1:])
        return token

    operator = units[1].strip() if len(units) > 1 else ""
    if operator.startswith(EXTENDED_MARKER):
        token.extended = True
        operator = operator[len(EXTENDED_MARKER):]
    token.operator = operator

    spec = catalog.lookup(operator)
    if spec is not None and spec.operand_count == 0:
        # No operand field: the third field is the comment
        token.comment = FIELD_SEPARATOR.join(units[2:])
    else:
        if len(units) > 2 and units[2].strip():
            token.operands = _split_operands(units[2].strip(), operator)
        token.comment = FIELD_SEPARATOR.join(units[3:])

    where = SourceLocation(filename, line_number)

    if token.operands:
        token.operand = classify_operand(token.operands[0], operator, spec, where, line)

    token.byte_size = _statement_size(token, spec, where, line)
    token.flags = _addressing_flags(token, spec)
    return token


def _split_operands(field_text: str, operator: str) -> list[str]:
    """Split the operand field on commas (at most MAX_OPERANDS parts)."""
    if operator == "BYTE" or is_constant_text(field_text.lstrip(LITERAL_PREFIX)):
        # Character constants may contain commas
        return [field_text]
    return [part.strip() for part in field_text.split(",", MAX_OPERANDS - 1)]


def classify_operand(
    text: str,
    operator: str,
    spec: Optional[InstructionSpec],
    where: Optional[SourceLocation] = None,
    source_line: Optional[str] = None,
) -> Operand:
    """
    Decide the tagged form of an operand.

    The classification depends on the operator: format 2 instructions
    take registers, BYTE takes a constant, everything else takes an
    address or expression.
    """
    if spec is not None and spec.format == 2:
        if text in REGISTERS:
            return Register(text, text)
        return Number(text, parse_number(text, where, source_line))

    if operator == "BYTE" and is_constant_text(text):
        return Constant(text, text[0].upper(), text[2:-1])

    if text.startswith(IMMEDIATE_PREFIX):
        body = text[len(IMMEDIATE_PREFIX):]
        if _looks_numeric(body):
            return Immediate(text, value=parse_number(body, where, source_line))
        return Immediate(text, symbol=body)

    if text.startswith(INDIRECT_PREFIX):
        return Indirect(text, text[len(INDIRECT_PREFIX):])

    if text.startswith(LITERAL_PREFIX):
        return LiteralRef(text, text[len(LITERAL_PREFIX):])

    if text == "*":
        return CurrentLocation(text)

    if _looks_numeric(text):
        return Number(text, parse_number(text, where, source_line))

    if "-" in text:
        left, right = text.split("-", 1)
        return BinaryExpr(text, left.strip(), "-", right.strip())

    return Simple(text, text)


def _statement_size(
    token: SourceToken,
    spec: Optional[InstructionSpec],
    where: SourceLocation,
    source_line: str,
) -> int:
    """Bytes occupied by a statement."""
    if token.extended:
        return 4

    if spec is not None:
        return spec.format

    operator = token.operator
    if operator in ("RESB", "RESW"):
        if not token.operands:
            raise AssemblySyntaxError(
                f"{operator} requires a count", location=where, source_line=source_line
            )
        count = parse_number(token.operands[0], where, source_line)
        return count * 3 if operator == "RESW" else count

    if operator == "BYTE":
        if isinstance(token.operand, Constant):
            return literal_size(token.operand.text)
        return 1

    if operator == "WORD":
        return 3

    # START, CSECT, EXTDEF, EXTREF, EQU, LTORG, END and unknown directives
    return 0


def _addressing_flags(token: SourceToken, spec: Optional[InstructionSpec]) -> AddressingFlags:
    """Compute n/i/x/b/p/e for a statement."""
    flags = AddressingFlags.NONE

    if token.extended:
        flags = flags.set(AddressingFlags.E)

    if token.byte_size < 3 or spec is None or spec.format != 3:
        return flags

    if not token.operands:
        return flags.set(AddressingFlags.N).set(AddressingFlags.I)

    if not token.extended:
        flags = flags.set(AddressingFlags.P)

    if len(token.operands) > 1 and token.operands[1] == INDEX_REGISTER:
        flags = flags.set(AddressingFlags.X)

    first = token.operands[0]
    if first.startswith(IMMEDIATE_PREFIX):
        flags = flags.set(AddressingFlags.I).clear(AddressingFlags.P)
    elif first.startswith(INDIRECT_PREFIX):
        flags = flags.set(AddressingFlags.N)
    else:
        flags = flags.set(AddressingFlags.N).set(AddressingFlags.I)

    return flags


def _looks_numeric(text: str) -> bool:
    return bool(text) and (text[0].isdigit() or (text[0] == "-" and text[1:2].isdigit()))


def parse_number(
    text: str,
    where: Optional[SourceLocation] = None,
    source_line: Optional[str] = None,
) -> int:
    """Parse a decimal number, raising AssemblySyntaxError if malformed."""
    try:
        return int(text)
    except ValueError:
        raise AssemblySyntaxError(
            f"invalid number '{text}'",
            location=where,
            hint="numeric fields are decimal",
            source_line=source_line,
        ) from None
