"""
Section Tables
==============

Every control section owns four tables, all append-only and
order-preserving:

| Table                  | Key          | Value                      |
|------------------------|--------------|----------------------------|
| SymbolTable            | label        | address                    |
| LiteralTable           | literal text | pool address               |
| ExternalReferenceTable | EXTREF name  | always 0 (membership only) |
| ModificationTable      | -            | ModificationEntry list     |

Lookups never raise: a missing name searches to NOT_FOUND (-1), which
callers either report or carry into the output as best-effort data.

Literals
--------
A literal's name is its own payload, so its size and its object code are
derived from the text on demand instead of being stored:

    X'F1'   -> 1 byte,  object code F1
    C'EOF'  -> 3 bytes, object code 454F46
"""

from dataclasses import dataclass
from typing import Iterator
import logging

logger = logging.getLogger(__name__)


NOT_FOUND = -1

LITERAL_MARKER = "="

HEX_CONSTANT = "X"
CHAR_CONSTANT = "C"


# =============================================================================
# Constant Helpers
# =============================================================================

def is_constant_text(text: str) -> bool:
    """True for X'..' and C'..' constant text."""
    return (
        len(text) >= 3
        and text[0].upper() in (HEX_CONSTANT, CHAR_CONSTANT)
        and text[1] == "'"
        and text.endswith("'")
    )


def _split_constant(text: str) -> tuple[str, str]:
    """Return (kind, payload) of a constant, ignoring a leading '='."""
    text = text.lstrip(LITERAL_MARKER)
    if not is_constant_text(text):
        return "", ""
    return text[0].upper(), text[2:-1]


def literal_size(text: str) -> int:
    """
    Size in bytes of an X'..' or C'..' constant.

    Hex constants hold two digits per byte, character constants one
    character per byte. Anything else has size 0.
    """
    kind, payload = _split_constant(text)
    if kind == HEX_CONSTANT:
        return (len(payload) + 1) // 2
    if kind == CHAR_CONSTANT:
        return len(payload)
    return 0


def literal_hex(text: str) -> str:
    """Object code of an X'..' or C'..' constant as hex digits."""
    kind, payload = _split_constant(text)
    if kind == HEX_CONSTANT:
        return payload.upper()
    if kind == CHAR_CONSTANT:
        return "".join(f"{ord(ch):02X}" for ch in payload)
    return ""


# =============================================================================
# Symbol Table
# =============================================================================

class SymbolTable:
    """
    Ordered name -> address mapping for one section.

    Duplicate insertions are ignored: the first definition wins.
    """

    def __init__(self):
        self._entries: dict[str, int] = {}

    def put_symbol(self, name: str, value: int) -> None:
        """
        Add a symbol.

        A leading literal marker '=' is stripped. Inserting a name that
        is already present is a no-op.
        """
        name = _strip_marker(name)
        if name in self._entries:
            logger.debug(f"Symbol '{name}' already defined, keeping ${self._entries[name]:X}")
            return
        self._entries[name] = value

    def modify_symbol(self, name: str, new_value: int) -> None:
        """Patch the value of an existing symbol in place."""
        name = _strip_marker(name)
        if name in self._entries:
            self._entries[name] = new_value

    def search(self, name: str) -> int:
        """Return the symbol's value, or NOT_FOUND (-1)."""
        return self._entries.get(name, NOT_FOUND)

    def names(self) -> list[str]:
        return list(self._entries)

    def items(self) -> list[tuple[str, int]]:
        return list(self._entries.items())

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[tuple[str, int]]:
        return iter(self._entries.items())

    def __repr__(self) -> str:
        body = ", ".join(f"{name}=${value:X}" for name, value in self._entries.items())
        return f"{type(self).__name__}({body})"


def _strip_marker(name: str) -> str:
    if name.startswith(LITERAL_MARKER):
        return name[len(LITERAL_MARKER):]
    return name


# =============================================================================
# Literal Table
# =============================================================================

class LiteralTable(SymbolTable):
    """
    Literal pool of one section.

    Literals are registered with a placeholder address when first
    referenced and get their real address when a pool boundary (LTORG or
    END) places them. A literal is placed at most once.
    """

    def __init__(self):
        super().__init__()
        self._located: set[str] = set()

    def place(self, name: str, address: int) -> None:
        """Assign the pool address of a literal."""
        name = _strip_marker(name)
        self.modify_symbol(name, address)
        self._located.add(name)

    def is_located(self, name: str) -> bool:
        return _strip_marker(name) in self._located

    def unlocated(self) -> list[str]:
        """Literals still waiting for a pool, in registration order."""
        return [name for name in self._entries if name not in self._located]

    def size_of(self, name: str) -> int:
        return literal_size(name)

    def encode(self, name: str) -> str:
        return literal_hex(name)

    def total_size(self) -> int:
        return sum(literal_size(name) for name in self._entries)


# =============================================================================
# External Reference Table
# =============================================================================

class ExternalReferenceTable(SymbolTable):
    """Names declared with EXTREF. Only membership matters."""

    def add(self, name: str) -> None:
        self.put_symbol(name, 0)


# =============================================================================
# Modification Table
# =============================================================================

@dataclass(frozen=True)
class ModificationEntry:
    """
    One pending linker patch.

    Attributes:
        symbol: Signed symbol name ("+NAME" or "-NAME")
        location: Address of the field to patch
        width: Patch width in half-bytes (5 or 6)
    """
    symbol: str
    location: int
    width: int


class ModificationTable:
    """Ordered list of modification entries for one section."""

    def __init__(self):
        self._entries: list[ModificationEntry] = []

    def put_modif_symbol(self, signed_name: str, location: int, width: int) -> None:
        self._entries.append(ModificationEntry(signed_name, location, width))
        logger.debug(f"Modification {signed_name} at ${location:06X} width {width}")

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ModificationEntry]:
        return iter(self._entries)

    def __getitem__(self, index: int) -> ModificationEntry:
        return self._entries[index]
