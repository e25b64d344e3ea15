"""
SIC/XE Code Generator
=====================

This module implements pass 2 of the assembler. It runs once pass 1 has
placed every statement, label and literal, and works one section at a
time:

1. Every statement encodes its own object code (`encode_token`).
2. The section's statements are walked again in source order to
   assemble the object module records (`build_records`).

Instruction Encoding
--------------------
```
Format 1:  opcode(8)
Format 2:  opcode(8)  r1(4)  r2(4)
Format 3:  opcode(6) n i  x b p e  disp(12)
Format 4:  opcode(6) n i  x b p e  address(20)
```

With p set the field holds a PC-relative displacement (target minus the
address of the next instruction) in two's complement, truncated to 3
hex digits. A format 4 address field is always written as zero, as is
any field that refers to an EXTREF symbol; the linker fills it in from
the Modification records recorded in pass 1.

Text Records
------------
A Text record collects consecutive statements with object code until
the next one would push it past 30 bytes, or a statement that occupies
no space or reserves storage (RESB/RESW) interrupts the run.
"""

from typing import Optional
import logging

from sicxe_asm.errors import SourceLocation, UndefinedSymbolError
from sicxe_asm.assembler.context import AssemblyContext, SectionContext
from sicxe_asm.assembler.expressions import evaluate_address
from sicxe_asm.assembler.lexer import (
    BinaryExpr,
    Constant,
    Immediate,
    Indirect,
    LiteralRef,
    Number,
    Register,
    Simple,
    SourceToken,
    parse_number,
)
from sicxe_asm.assembler.opcodes import (
    REGISTERS,
    RESERVE_DIRECTIVES,
    InstructionCatalog,
    InstructionSpec,
)
from sicxe_asm.assembler.records import (
    DefineRecord,
    EndRecord,
    HeaderRecord,
    ModificationRecord,
    ObjectRecord,
    ReferRecord,
    TextRecord,
    hex_field,
)
from sicxe_asm.assembler.tables import NOT_FOUND, literal_hex

logger = logging.getLogger(__name__)


# Shift instructions store (count - 1) in their second register field
SHIFT_INSTRUCTIONS = frozenset({"SHIFTL", "SHIFTR"})

SECTION_DIRECTIVES = frozenset({"START", "CSECT"})
POOL_DIRECTIVES = frozenset({"LTORG", "END"})


class CodeGenerator:
    """
    Generates object code and records from a resolved AssemblyContext.

    Usage:
        codegen = CodeGenerator(catalog)
        modules = codegen.generate(context)   # one record list per section

    Attributes:
        strict: If True, unresolved symbols raise UndefinedSymbolError
                instead of being encoded as -1 with a warning
    """

    def __init__(self, catalog: InstructionCatalog, strict: bool = False,
                 filename: str = "<input>"):
        self._catalog = catalog
        self._strict = strict
        self._filename = filename

    # =========================================================================
    # Public Interface
    # =========================================================================

    def generate(self, context: AssemblyContext) -> list[list[ObjectRecord]]:
        """
        Run pass 2 over every section.

        Args:
            context: Context produced by pass 1

        Returns:
            One list of records per section, in section order
        """
        self._catalog = context.catalog
        self._filename = context.filename
        modules = []

        for section in context.sections:
            self.encode_section(section)
            records = self.build_records(section)
            logger.debug(f"Section '{section.name}': {len(records)} records")
            modules.append(records)

        return modules

    def encode_section(self, section: SectionContext) -> None:
        """Let every statement of a section encode its object code."""
        for token in section.tokens:
            token.object_code = self.encode_token(token, section)

    def encode_token(self, token: SourceToken, section: SectionContext) -> str:
        """
        Encode one statement.

        Returns:
            Object code as hex digits ("" for statements that emit nothing)
        """
        if token.is_comment or not token.operator:
            return ""

        spec = self._catalog.lookup(token.operator)
        if spec is not None:
            if token.extended or spec.format == 3:
                return self._encode_format34(token, spec, section)
            if spec.format == 2:
                return self._encode_format2(token, spec)
            return f"{spec.opcode:02X}"

        if token.operator == "BYTE":
            return self._encode_byte(token)

        if token.operator == "WORD":
            return self._encode_word(token, section)

        return ""

    # =========================================================================
    # Instruction Encoding
    # =========================================================================

    def _encode_format34(self, token: SourceToken, spec: InstructionSpec,
                         section: SectionContext) -> str:
        """Encode a format 3 or format 4 instruction."""
        flags = token.flags
        digits = 5 if token.extended else 3
        first_byte = (spec.opcode & 0xFC) | flags.ni_bits

        if token.operand is None or spec.operand_count == 0:
            target = 0
        elif flags.is_extended:
            # Address comes from the linker; undefined operands are still reported
            if not self._refers_external(token, section):
                self._target_address(token, section)
            target = 0
        elif self._refers_external(token, section):
            target = 0
        else:
            target = self._target_address(token, section)
            if flags.is_pc_relative:
                target -= token.location + token.byte_size

        return f"{first_byte:02X}{flags.xbpe_bits:X}{hex_field(target, digits)}"

    def _target_address(self, token: SourceToken, section: SectionContext) -> int:
        """Resolve the target of a format 3/4 operand."""
        operand = token.operand

        if isinstance(operand, LiteralRef):
            return section.literals.search(operand.literal)

        if isinstance(operand, Immediate):
            if operand.value is not None:
                return operand.value
            return self._resolve(operand.symbol, token, section)

        if isinstance(operand, (Simple, Indirect)):
            return self._resolve(operand.symbol, token, section)

        if isinstance(operand, Number):
            return operand.value

        if isinstance(operand, BinaryExpr):
            return (self._resolve(operand.left, token, section)
                    - self._resolve(operand.right, token, section))

        return 0

    def _encode_format2(self, token: SourceToken, spec: InstructionSpec) -> str:
        """Encode a register-register instruction."""
        r1 = r2 = 0
        first = token.operand

        if isinstance(first, Register):
            r1 = first.code
        elif isinstance(first, Number):
            r1 = first.value

        if spec.operand_count >= 2 and len(token.operands) > 1:
            second = token.operands[1]
            if second in REGISTERS:
                r2 = REGISTERS[second]
            else:
                r2 = parse_number(second, self._where(token), token.source)
                if spec.mnemonic in SHIFT_INSTRUCTIONS:
                    r2 -= 1

        return f"{spec.opcode:02X}{r1 & 0xF:X}{r2 & 0xF:X}"

    # =========================================================================
    # Data Directives
    # =========================================================================

    def _encode_byte(self, token: SourceToken) -> str:
        operand = token.operand
        if isinstance(operand, Constant):
            return literal_hex(operand.text)
        if isinstance(operand, Number):
            return hex_field(operand.value, 2)
        return ""

    def _encode_word(self, token: SourceToken, section: SectionContext) -> str:
        if not token.operands:
            return hex_field(0, 6)
        if self._refers_external(token, section):
            return hex_field(0, 6)
        value = evaluate_address(
            token.operands[0],
            token.location,
            section.symbols,
            location=self._where(token),
            source_line=token.source,
        )
        for name in token.operand.symbols():
            if name not in section.symbols:
                self._unresolved(name, token, section)
        return hex_field(value, 6)

    # =========================================================================
    # Symbol Resolution
    # =========================================================================

    def _refers_external(self, token: SourceToken, section: SectionContext) -> bool:
        if token.operand is None or not len(section.external_refs):
            return False
        return any(section.is_external(name) for name in token.operand.symbols())

    def _resolve(self, name: Optional[str], token: SourceToken, section: SectionContext) -> int:
        """Look up a symbol, reporting it if it is not defined."""
        value = section.symbols.search(name)
        if value == NOT_FOUND and not section.is_external(name):
            self._unresolved(name, token, section)
        return value

    def _unresolved(self, name: str, token: SourceToken, section: SectionContext) -> None:
        if self._strict:
            raise UndefinedSymbolError(
                name,
                section=section.name,
                location=self._where(token),
                source_line=token.source,
            )
        logger.warning(
            f"{self._where(token)}: undefined symbol '{name}' in section '{section.name}'"
        )

    def _where(self, token: SourceToken) -> SourceLocation:
        return SourceLocation(self._filename, token.line_number)

    # =========================================================================
    # Record Assembly
    # =========================================================================

    def build_records(self, section: SectionContext) -> list[ObjectRecord]:
        """
        Assemble the records of one section.

        Statements must already carry their object code.

        Returns:
            Header, Define, Refer and Text records in source order,
            followed by the Modification records and the End record
        """
        records: list[ObjectRecord] = []
        tokens = section.tokens
        index = 0

        while index < len(tokens):
            token = tokens[index]

            if token.is_comment:
                index += 1
                continue

            operator = token.operator

            if operator in SECTION_DIRECTIVES:
                records.append(HeaderRecord(token.label, section.start_location, section.length))

            elif operator == "EXTDEF":
                records.append(DefineRecord(
                    [(name, section.symbols.search(name)) for name in token.operands]
                ))

            elif operator == "EXTREF":
                records.append(ReferRecord(list(token.operands)))

            elif operator in POOL_DIRECTIVES:
                if token.literal_pool:
                    records.append(self._literal_pool_record(token, section))

            elif token.object_code:
                record, index = self._text_run(tokens, index)
                records.append(record)
                continue

            index += 1

        for entry in section.modifications:
            records.append(ModificationRecord(entry.location, entry.width, entry.symbol))

        records.append(EndRecord(self._end_address(section)))
        return records

    def _text_run(self, tokens: list[SourceToken], first: int) -> tuple[TextRecord, int]:
        """
        Collect a Text record starting at tokens[first].

        Returns:
            The record and the index of the first statement not in it
        """
        record = TextRecord(tokens[first].location)
        size = 0
        index = first

        while index < len(tokens):
            token = tokens[index]
            if (token.byte_size == 0
                    or not token.object_code
                    or token.operator in RESERVE_DIRECTIVES
                    or size + token.byte_size > TextRecord.MAX_BYTES):
                break
            record.code += token.object_code
            size += token.byte_size
            index += 1

        return record, index

    def _literal_pool_record(self, token: SourceToken, section: SectionContext) -> TextRecord:
        """Text record for the literals placed at an LTORG/END."""
        start = section.literals.search(token.literal_pool[0])
        code = "".join(section.literals.encode(name) for name in token.literal_pool)
        return TextRecord(start, code)

    def _end_address(self, section: SectionContext) -> Optional[int]:
        """First executable address for the first section, None otherwise."""
        if section.index != 0:
            return None

        for token in section.tokens:
            if token.operator == "END" and token.operands:
                address = section.symbols.search(token.operands[0])
                if address != NOT_FOUND:
                    return address

        for token in section.tokens:
            if self._catalog.is_instruction(token.operator):
                return token.location

        return section.start_location
