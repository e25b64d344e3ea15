"""
Assembly Context
================

Per-run state shared by pass 1 and pass 2. Instead of process-wide
counters, every assembly run creates one AssemblyContext that owns the
list of sections and the index of the active one; each section owns its
own location counter and tables. Two runs never share state, so the same
Assembler can assemble any number of inputs.
"""

from dataclasses import dataclass, field
from typing import Optional
import logging

from sicxe_asm.assembler.lexer import SourceToken
from sicxe_asm.assembler.opcodes import InstructionCatalog
from sicxe_asm.assembler.tables import (
    ExternalReferenceTable,
    LiteralTable,
    ModificationTable,
    SymbolTable,
)

logger = logging.getLogger(__name__)


@dataclass
class SectionContext:
    """
    One control section.

    Attributes:
        index: Position of the section in the source (0 for START)
        name: Section name (label of START/CSECT)
        start_location: Address of the first byte
        location_counter: Running location counter
        symbols: Labels defined in this section
        literals: Literal pool
        external_refs: Names declared with EXTREF
        modifications: Pending linker patches
        tokens: Statements of this section, in source order
    """
    index: int
    name: str = ""
    start_location: int = 0
    location_counter: int = 0
    symbols: SymbolTable = field(default_factory=SymbolTable)
    literals: LiteralTable = field(default_factory=LiteralTable)
    external_refs: ExternalReferenceTable = field(default_factory=ExternalReferenceTable)
    modifications: ModificationTable = field(default_factory=ModificationTable)
    tokens: list[SourceToken] = field(default_factory=list)

    @property
    def length(self) -> int:
        """Bytes occupied by all statements and literals of the section."""
        return sum(token.byte_size for token in self.tokens) + self.literals.total_size()

    def advance(self, size: int) -> None:
        self.location_counter += size

    def is_external(self, name: str) -> bool:
        return name in self.external_refs


@dataclass
class AssemblyContext:
    """
    State of one assembly run.

    Attributes:
        catalog: Instruction catalog
        filename: Source name for messages
        sections: Sections opened so far
    """
    catalog: InstructionCatalog
    filename: str = "<input>"
    sections: list[SectionContext] = field(default_factory=list)

    @property
    def active(self) -> Optional[SectionContext]:
        """The section currently receiving statements."""
        return self.sections[-1] if self.sections else None

    def open_section(self, name: str, start: int = 0) -> SectionContext:
        """Open a new section with a fresh location counter and tables."""
        section = SectionContext(
            index=len(self.sections),
            name=name,
            start_location=start,
            location_counter=start,
        )
        self.sections.append(section)
        logger.debug(f"Opened section {section.index} '{name}' at ${start:06X}")
        return section
