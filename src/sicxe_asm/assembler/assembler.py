"""
SIC/XE Assembler - Main Interface
=================================

This module provides the Assembler class, the primary interface for
assembling SIC/XE source. It drives the two passes:

Pass 1 (Symbol & Location Resolution)
-------------------------------------
- Tokenize every line into the active control section
- Open a new section at START / CSECT
- Bind labels (EQU labels to their evaluated expression)
- Register literals and place them at LTORG / END
- Record EXTREF names and the Modification entries that refer to them

Pass 2 (Object Code & Records)
------------------------------
- Handled by CodeGenerator, using only the tables pass 1 left behind

All run state lives in an AssemblyContext created per call, so one
Assembler can assemble any number of sources, and assembling the same
source twice produces identical output.

Example Usage
-------------
>>> from sicxe_asm.assembler import Assembler
>>>
>>> asm = Assembler()                      # bundled SIC/XE catalog
>>> result = asm.assemble_string(
...     "COPY\\tSTART\\t0\\n"
...     "FIRST\\tLDA\\t#5\\n"
...     "\\tEND\\tFIRST\\n"
... )
>>> print(result.format_object_program())
HCOPY 000000000003
T00000003010005
E000000
<BLANKLINE>

Command-Line Usage
------------------
    $ sicasm copy.asm -o copy.obj -s copy.sym
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional
import logging

from sicxe_asm.errors import ResourceError, SourceLocation
from sicxe_asm.assembler.codegen import CodeGenerator
from sicxe_asm.assembler.context import AssemblyContext, SectionContext
from sicxe_asm.assembler.expressions import evaluate_address
from sicxe_asm.assembler.lexer import (
    COMMENT_LABEL,
    BinaryExpr,
    FIELD_SEPARATOR,
    LiteralRef,
    SourceToken,
    parse_line,
    parse_number,
)
from sicxe_asm.assembler.opcodes import InstructionCatalog
from sicxe_asm.assembler.records import EndRecord, ObjectRecord

logger = logging.getLogger(__name__)


# Modification widths in half-bytes
WORD_FIELD_WIDTH = 6        # 24-bit word / format 3 operand word
EXTENDED_FIELD_WIDTH = 5    # 20-bit format 4 address field


# =============================================================================
# Assembly Result
# =============================================================================

@dataclass
class AssemblyResult:
    """
    Output of one assembly run.

    Attributes:
        context: The resolved sections (tables and statements)
        modules: Object records, one list per section
    """
    context: AssemblyContext
    modules: list[list[ObjectRecord]] = field(default_factory=list)

    @property
    def sections(self) -> list[SectionContext]:
        return self.context.sections

    def symbol_tables(self) -> list[dict[str, int]]:
        """Label addresses, one dictionary per section."""
        return [dict(section.symbols.items()) for section in self.sections]

    def records(self) -> list[ObjectRecord]:
        """All records of all sections, in output order."""
        return [record for module in self.modules for record in module]

    def format_symbol_table(self) -> str:
        """
        Render the symbol tables.

        One '<name>\\t<address>' line per label, with a blank line after
        each section.
        """
        lines = []
        for section in self.sections:
            for name, address in section.symbols:
                lines.append(f"{name}\t{_address_text(address)}")
            lines.append("")
        return "".join(line + "\n" for line in lines)

    def format_object_program(self) -> str:
        """
        Render the object module.

        One record per line, sections concatenated, with a blank line
        after each End record.
        """
        lines = []
        for record in self.records():
            lines.append(record.to_text())
            if isinstance(record, EndRecord):
                lines.append("")
        return "".join(line + "\n" for line in lines)


def _address_text(address: int) -> str:
    """Upper-case hex without padding; unresolved (-1) values wrap to 24 bits."""
    if address < 0:
        address &= 0xFFFFFF
    return f"{address:X}"


# =============================================================================
# Assembler
# =============================================================================

class Assembler:
    """
    Main SIC/XE assembler class.

    Attributes:
        catalog: The instruction catalog in use
        strict: If True, unresolved symbols raise UndefinedSymbolError
        verbose: If True, print progress messages
    """

    def __init__(self, catalog: Optional[InstructionCatalog] = None, strict: bool = False,
                 verbose: bool = False):
        """
        Initialize the assembler.

        Args:
            catalog: Instruction catalog; defaults to the bundled SIC/XE table
            strict: Treat symbols that are neither defined nor EXTREF'd as
                    errors instead of encoding them as -1 with a warning
            verbose: Print progress messages
        """
        self._catalog = catalog if catalog is not None else InstructionCatalog.default()
        self._strict = strict
        self._verbose = verbose
        self._result: Optional[AssemblyResult] = None

    # =========================================================================
    # Configuration
    # =========================================================================

    @property
    def catalog(self) -> InstructionCatalog:
        return self._catalog

    @property
    def strict(self) -> bool:
        return self._strict

    def load_catalog_file(self, path: str | Path) -> None:
        """
        Replace the catalog with one loaded from a file.

        Raises:
            ResourceError: If the file cannot be read
            CatalogError: If the file is malformed
        """
        self._catalog = InstructionCatalog.from_file(path)

    # =========================================================================
    # Assembly Methods
    # =========================================================================

    def assemble_lines(self, lines: Iterable[str], filename: str = "<input>") -> AssemblyResult:
        """
        Assemble source lines.

        Args:
            lines: Source lines (tab separated fields)
            filename: Name used in messages

        Returns:
            The AssemblyResult with tables and records

        Raises:
            AssemblerError: On a malformed number or expression
                            (or an unresolved symbol in strict mode)
        """
        if self._verbose:
            print(f"Assembling {filename}...")

        context = self._pass1(lines, filename)

        if self._verbose:
            statements = sum(len(section.tokens) for section in context.sections)
            print(f"Pass 1: {statements} statements in {len(context.sections)} sections")

        codegen = CodeGenerator(context.catalog, strict=self._strict, filename=filename)
        modules = codegen.generate(context)

        self._result = AssemblyResult(context, modules)
        logger.debug(
            f"Assembled {len(context.sections)} sections, "
            f"{len(self._result.records())} records"
        )
        return self._result

    def assemble_string(self, source: str, filename: str = "<input>") -> AssemblyResult:
        """Assemble source held in a string."""
        return self.assemble_lines(source.splitlines(), filename)

    def assemble_file(self, filepath: str | Path) -> AssemblyResult:
        """
        Assemble a source file.

        Raises:
            ResourceError: If the file cannot be read
        """
        filepath = Path(filepath)
        try:
            source = filepath.read_text()
        except OSError as e:
            raise ResourceError(str(filepath), e.strerror or str(e)) from e

        logger.debug(f"Assembling {filepath}")
        return self.assemble_string(source, str(filepath))

    # =========================================================================
    # Output Methods
    # =========================================================================

    def get_result(self) -> Optional[AssemblyResult]:
        """The result of the last assembly, or None."""
        return self._result

    def get_symbols(self) -> list[dict[str, int]]:
        """Label addresses of the last assembly, one dictionary per section."""
        return self._require_result().symbol_tables()

    def write_symbols(self, filepath: str | Path) -> None:
        """Write the symbol tables of the last assembly."""
        Path(filepath).write_text(self._require_result().format_symbol_table())
        logger.debug(f"Wrote symbols to {filepath}")

    def write_object(self, filepath: str | Path) -> None:
        """Write the object module of the last assembly."""
        Path(filepath).write_text(self._require_result().format_object_program())
        logger.debug(f"Wrote object program to {filepath}")

    def _require_result(self) -> AssemblyResult:
        if self._result is None:
            raise RuntimeError("nothing has been assembled yet")
        return self._result

    # =========================================================================
    # Pass 1
    # =========================================================================

    def _pass1(self, lines: Iterable[str], filename: str) -> AssemblyContext:
        """Tokenize every line and resolve symbols, literals and locations."""
        context = AssemblyContext(self._catalog, filename)

        for line_number, raw in enumerate(lines, start=1):
            if not raw.strip():
                continue

            section = self._section_for(raw, context, line_number)
            token = parse_line(
                raw, context.catalog, section.location_counter, line_number, filename
            )
            section.tokens.append(token)

            if token.is_comment:
                continue

            self._pass1_token(token, section, filename)
            section.advance(token.byte_size)

        return context

    def _section_for(self, raw: str, context: AssemblyContext, line_number: int) -> SectionContext:
        """Return the section a line belongs to, opening one at START/CSECT."""
        units = raw.rstrip("\r\n").split(FIELD_SEPARATOR)
        label = units[0].strip()
        operator = units[1].strip() if len(units) > 1 else ""

        if label != COMMENT_LABEL and operator in ("START", "CSECT"):
            start = 0
            if operator == "START":
                operand = units[2].strip() if len(units) > 2 else ""
                start = self._start_address(operand, context.filename, line_number, raw)
            leading = self._take_leading_comments(context)
            section = context.open_section(label, start)
            section.tokens.extend(leading)
            return section

        if context.active is None:
            # Statements before any START form an unnamed first section
            return context.open_section("")

        return context.active

    def _take_leading_comments(self, context: AssemblyContext) -> list[SourceToken]:
        """Detach an implicit first section that holds only comment lines."""
        if len(context.sections) != 1:
            return []
        section = context.sections[0]
        if not all(token.is_comment for token in section.tokens):
            return []
        context.sections.pop()
        return section.tokens

    def _start_address(self, operand: str, filename: str, line_number: int, raw: str) -> int:
        """START's operand is the load address (default 0)."""
        if not operand:
            return 0
        return parse_number(operand, SourceLocation(filename, line_number), raw)

    def _pass1_token(self, token: SourceToken, section: SectionContext, filename: str) -> None:
        """Apply one statement's effect on the section tables."""
        if token.has_label:
            self._define_label(token, section, filename)

        if isinstance(token.operand, LiteralRef):
            section.literals.put_symbol(token.operand.literal, 0)

        if token.operator in ("LTORG", "END"):
            self._flush_literals(token, section)
        elif token.operator == "EXTREF":
            for name in token.operands:
                section.external_refs.add(name)
        elif token.operand is not None and len(section.external_refs):
            self._record_modifications(token, section)

    def _define_label(self, token: SourceToken, section: SectionContext, filename: str) -> None:
        if token.operator == "EQU":
            value = evaluate_address(
                token.operands[0] if token.operands else "",
                section.location_counter,
                section.symbols,
                location=SourceLocation(filename, token.line_number),
                source_line=token.source,
            )
        else:
            value = section.location_counter

        if token.label in section.symbols:
            logger.warning(
                f"{filename}:{token.line_number}: duplicate label '{token.label}' ignored"
            )
        section.symbols.put_symbol(token.label, value)

    def _flush_literals(self, token: SourceToken, section: SectionContext) -> None:
        """Place every literal not yet in a pool at the location counter."""
        for name in section.literals.unlocated():
            section.literals.place(name, section.location_counter)
            token.literal_pool.append(name)
            logger.debug(f"Literal {name} placed at ${section.location_counter:06X}")
            section.advance(section.literals.size_of(name))

    def _record_modifications(self, token: SourceToken, section: SectionContext) -> None:
        """Register linker patches for an operand naming an EXTREF symbol."""
        operand = token.operand
        names = operand.symbols()
        if not any(section.is_external(name) for name in names):
            return

        if token.extended:
            width = EXTENDED_FIELD_WIDTH
        else:
            width = WORD_FIELD_WIDTH
        # A format 4 address field starts one byte into the instruction
        location = section.location_counter + (WORD_FIELD_WIDTH - width)

        if isinstance(operand, BinaryExpr):
            section.modifications.put_modif_symbol(f"+{operand.left}", location, width)
            section.modifications.put_modif_symbol(f"{operand.sign}{operand.right}", location, width)
        else:
            for name in names:
                section.modifications.put_modif_symbol(f"+{name}", location, width)


# =============================================================================
# Convenience Functions
# =============================================================================

def assemble(source: str, filename: str = "<input>", strict: bool = False) -> AssemblyResult:
    """
    Convenience function to assemble source code with the bundled catalog.

    Raises:
        AssemblerError: If assembly fails
    """
    return Assembler(strict=strict).assemble_string(source, filename)


def assemble_file(filepath: str | Path, strict: bool = False) -> AssemblyResult:
    """
    Convenience function to assemble a file with the bundled catalog.

    Raises:
        ResourceError: If the file cannot be read
        AssemblerError: If assembly fails
    """
    return Assembler(strict=strict).assemble_file(filepath)
