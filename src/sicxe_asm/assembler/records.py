"""
Object Module Record Definitions
================================

This module defines the records of the relocatable object module. Every
control section produces one group of records, always in this order:

    Header -> Define -> Refer -> Text* -> Modification* -> End

Record Format
-------------
Records are single text lines. All numeric fields are upper-case hex,
zero padded and masked to their width.

| Tag | Layout                                   | Example              |
|-----|------------------------------------------|----------------------|
| H   | H name ' ' start(6) length(6)            | HCOPY 000000001033   |
| D   | D (name addr(6))*                        | DBUFFER000033        |
| R   | R name*                                  | RRDRECWRREC          |
| T   | T start(6) length(2) code                | T0000000317202D      |
| M   | M location(6) width(2) signed-name       | M00000405+RDREC      |
| E   | E [first address(6)]                     | E000000              |
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Optional


# =============================================================================
# Enumeration Types
# =============================================================================

class RecordType(Enum):
    """Record tag characters."""
    HEADER = "H"
    DEFINE = "D"
    REFER = "R"
    TEXT = "T"
    MODIFICATION = "M"
    END = "E"


def hex_field(value: int, digits: int) -> str:
    """
    Format a value as a fixed-width upper-case hex field.

    Negative values are written in two's complement, truncated to the
    field width (so -1 in a 6 digit field is FFFFFF).
    """
    return f"{value & ((1 << (4 * digits)) - 1):0{digits}X}"


# =============================================================================
# Record Classes
# =============================================================================

@dataclass
class ObjectRecord:
    """Base class for all object module records."""

    record_type: ClassVar[Optional[RecordType]] = None  # Overridden by subclasses

    @property
    def tag(self) -> str:
        return self.record_type.value

    def to_text(self) -> str:
        raise NotImplementedError

    def __str__(self) -> str:
        return self.to_text()


@dataclass
class HeaderRecord(ObjectRecord):
    """Section name, start address and length."""
    name: str
    start: int
    length: int

    record_type = RecordType.HEADER

    def to_text(self) -> str:
        return f"{self.tag}{self.name} {hex_field(self.start, 6)}{hex_field(self.length, 6)}"


@dataclass
class DefineRecord(ObjectRecord):
    """Symbols this section exports (EXTDEF) with their addresses."""
    definitions: list[tuple[str, int]] = field(default_factory=list)

    record_type = RecordType.DEFINE

    def to_text(self) -> str:
        pairs = "".join(f"{name}{hex_field(address, 6)}" for name, address in self.definitions)
        return self.tag + pairs


@dataclass
class ReferRecord(ObjectRecord):
    """Symbols this section imports (EXTREF)."""
    names: list[str] = field(default_factory=list)

    record_type = RecordType.REFER

    def to_text(self) -> str:
        return self.tag + "".join(self.names)


@dataclass
class TextRecord(ObjectRecord):
    """
    A run of object code.

    Attributes:
        start: Address of the first byte
        code: Concatenated object code (two hex digits per byte)
    """
    start: int
    code: str = ""

    record_type = RecordType.TEXT

    # Longest run of object code in one record, in bytes
    MAX_BYTES = 30

    @property
    def length(self) -> int:
        return len(self.code) // 2

    def to_text(self) -> str:
        return f"{self.tag}{hex_field(self.start, 6)}{hex_field(self.length, 2)}{self.code}"


@dataclass
class ModificationRecord(ObjectRecord):
    """Linker patch: add/subtract a symbol's address at a location."""
    location: int
    width: int
    symbol: str

    record_type = RecordType.MODIFICATION

    def to_text(self) -> str:
        return f"{self.tag}{hex_field(self.location, 6)}{hex_field(self.width, 2)}{self.symbol}"


@dataclass
class EndRecord(ObjectRecord):
    """End of section; the first section names its first instruction."""
    first_address: Optional[int] = None

    record_type = RecordType.END

    def to_text(self) -> str:
        if self.first_address is None:
            return self.tag
        return f"{self.tag}{hex_field(self.first_address, 6)}"
