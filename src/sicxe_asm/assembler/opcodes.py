"""
SIC/XE Instruction Catalog
==========================

This module holds the instruction catalog: a read-only mapping from
mnemonic to its encoding information. Unlike a hard-coded opcode table,
the catalog is loaded from a plain text specification so the same
assembler core can be pointed at a different instruction set.

Catalog File Format
-------------------
One instruction per line, whitespace separated:

    <mnemonic> <format> <opcodeHex> <operandCount>

| Field        | Example | Meaning                               |
|--------------|---------|---------------------------------------|
| mnemonic     | LDA     | Instruction name (upper case)         |
| format       | 3       | 1, 2 or 3 (format 4 is 3 with '+')    |
| opcodeHex    | 00      | Base opcode byte, hexadecimal         |
| operandCount | 1       | Number of operands the source carries |

Blank lines and lines starting with '#' are ignored. A later duplicate
mnemonic overwrites an earlier one. Any other malformed line aborts the
load with CatalogError.

Directives
----------
The assembler directives are not in the catalog. A name that is not a
catalog instruction is treated as a directive by the rest of the
assembler; see DIRECTIVES.

Example
-------
>>> from sicxe_asm.assembler.opcodes import InstructionCatalog
>>> catalog = InstructionCatalog.load(["LDA 3 00 1", "RSUB 3 4C 0"])
>>> catalog.lookup("LDA")
InstructionSpec(LDA, format=3, opcode=$00, operands=1)
>>> catalog.lookup("NOPE") is None
True
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, Optional
import logging

from sicxe_asm.errors import CatalogError, ResourceError

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

# Bundled standard SIC/XE instruction table
DEFAULT_CATALOG_PATH = Path(__file__).parent.parent / "data" / "inst.data"

VALID_FORMATS = frozenset({1, 2, 3})

# Directives understood by the assembler (never looked up in the catalog)
DIRECTIVES = frozenset({
    "START", "CSECT",          # Section boundaries
    "EQU",                     # Symbol definition
    "LTORG", "END",            # Literal pool boundaries
    "EXTDEF", "EXTREF",        # Cross-section linkage
    "BYTE", "WORD",            # Data definition
    "RESB", "RESW",            # Storage reservation
})

# Directives that reserve storage without emitting object code
RESERVE_DIRECTIVES = frozenset({"RESB", "RESW"})

# Format 2 register codes
REGISTERS = {
    "A": 0,
    "X": 1,
    "L": 2,
    "B": 3,
    "S": 4,
    "T": 5,
    "F": 6,
    "PC": 8,
    "SW": 9,
}

# Prefix marking the extended (format 4) form of a format 3 instruction
EXTENDED_MARKER = "+"


# =============================================================================
# Instruction Information
# =============================================================================

@dataclass(frozen=True)
class InstructionSpec:
    """
    Encoding information for one catalog instruction.

    Frozen so the catalog cannot be modified once loaded.

    Attributes:
        mnemonic: Instruction name
        format: Encoding format (1, 2 or 3)
        opcode: Base opcode byte
        operand_count: Number of operands the source form carries
    """
    mnemonic: str
    format: int
    opcode: int
    operand_count: int

    def __repr__(self) -> str:
        return (
            f"InstructionSpec({self.mnemonic}, format={self.format}, "
            f"opcode=${self.opcode:02X}, operands={self.operand_count})"
        )


# =============================================================================
# Catalog
# =============================================================================

class InstructionCatalog:
    """
    Mnemonic to InstructionSpec lookup.

    The catalog is a pure query object: once built it is never modified,
    and lookups of unknown names return None rather than raising.

    Usage:
        catalog = InstructionCatalog.from_file("inst.data")
        spec = catalog.lookup("LDA")
        if catalog.is_instruction("RESW"):
            ...
    """

    def __init__(self, specs: Iterable[InstructionSpec] = ()):
        self._specs: dict[str, InstructionSpec] = {}
        for spec in specs:
            self._specs[spec.mnemonic] = spec

    # =========================================================================
    # Construction
    # =========================================================================

    @classmethod
    def load(cls, lines: Iterable[str]) -> "InstructionCatalog":
        """
        Build a catalog from specification lines.

        Args:
            lines: Lines in '<mnemonic> <format> <opcodeHex> <operandCount>' form

        Returns:
            The loaded catalog

        Raises:
            CatalogError: If any line is malformed
        """
        specs: dict[str, InstructionSpec] = {}

        for line_number, raw in enumerate(lines, start=1):
            line = raw.strip()
            if not line or line.startswith("#"):
                continue

            spec = _parse_catalog_line(line, line_number)
            if spec.mnemonic in specs:
                logger.debug(f"Catalog line {line_number}: '{spec.mnemonic}' overrides earlier entry")
            specs[spec.mnemonic] = spec

        logger.debug(f"Loaded {len(specs)} instructions into catalog")
        return cls(specs.values())

    @classmethod
    def from_file(cls, path: str | Path) -> "InstructionCatalog":
        """
        Load a catalog from a specification file.

        Raises:
            ResourceError: If the file cannot be read
            CatalogError: If any line is malformed
        """
        path = Path(path)
        try:
            text = path.read_text()
        except OSError as e:
            raise ResourceError(str(path), e.strerror or str(e)) from e
        return cls.load(text.splitlines())

    @classmethod
    def default(cls) -> "InstructionCatalog":
        """Load the bundled standard SIC/XE instruction table."""
        return cls.from_file(DEFAULT_CATALOG_PATH)

    # =========================================================================
    # Queries
    # =========================================================================

    def lookup(self, mnemonic: str) -> Optional[InstructionSpec]:
        """
        Look up a mnemonic.

        Returns:
            The InstructionSpec, or None if the name is not an instruction
        """
        return self._specs.get(mnemonic)

    def is_instruction(self, name: str) -> bool:
        """True if the name is a catalog instruction (not a directive)."""
        return name in self._specs

    def operand_count(self, mnemonic: str) -> int:
        """Operand count of an instruction, or -1 if it is not one."""
        spec = self._specs.get(mnemonic)
        return spec.operand_count if spec else -1

    def __contains__(self, mnemonic: object) -> bool:
        return mnemonic in self._specs

    def __len__(self) -> int:
        return len(self._specs)

    def __iter__(self) -> Iterator[InstructionSpec]:
        return iter(self._specs.values())


def _parse_catalog_line(line: str, line_number: int) -> InstructionSpec:
    """Parse one catalog line into an InstructionSpec."""
    fields = line.split()
    if len(fields) != 4:
        raise CatalogError("expected 4 fields", line_number, line)

    mnemonic, format_str, opcode_str, count_str = fields

    try:
        fmt = int(format_str)
        opcode = int(opcode_str, 16)
        operand_count = int(count_str)
    except ValueError:
        raise CatalogError("invalid number", line_number, line) from None

    if fmt not in VALID_FORMATS:
        raise CatalogError(f"invalid format {fmt}", line_number, line)
    if not 0 <= opcode <= 0xFF:
        raise CatalogError(f"opcode ${opcode:X} out of range", line_number, line)
    if not 0 <= operand_count <= 3:
        raise CatalogError(f"invalid operand count {operand_count}", line_number, line)

    return InstructionSpec(mnemonic.upper(), fmt, opcode, operand_count)


# =============================================================================
# Helper Functions
# =============================================================================

def is_directive(name: str) -> bool:
    """Check if a name is an assembler directive."""
    return name in DIRECTIVES


def register_code(name: str) -> Optional[int]:
    """Return the format 2 code of a register name, or None."""
    return REGISTERS.get(name)
