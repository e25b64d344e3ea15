# =============================================================================
# test_assembler.py - Full Assembler Integration Tests
# =============================================================================
# End-to-end tests for the two-pass SIC/XE assembler.
# These tests verify the full pipeline from source text to object module
# and symbol table output.
#
# Test coverage includes:
#   - Complete single section and multi section programs
#   - Pass 1 symbol binding, EQU and literal pools
#   - Modification entries for external references
#   - Output formatting (object program and symbol table)
#   - Determinism across runs
#   - File input and output
# =============================================================================

import pytest

from sicxe_asm.assembler import Assembler, assemble
from sicxe_asm.assembler.records import (
    EndRecord,
    HeaderRecord,
    ModificationRecord,
    TextRecord,
)
from sicxe_asm.assembler.tables import ModificationEntry
from sicxe_asm.errors import (
    AssemblySyntaxError,
    ExpressionError,
    ResourceError,
)


def join_lines(*lines: str) -> str:
    return "\n".join(lines) + "\n"


# =============================================================================
# Full Pipeline Tests
# =============================================================================

class TestSingleSection:
    """Assemble a complete single section program."""

    def test_object_program(self, assembler, copy_source):
        result = assembler.assemble_string(copy_source)
        assert result.format_object_program() == join_lines(
            "HCOPY 000000000014",
            "T000000" + "0E" + "17200E010005032005A0043E2003",
            "T00000E03454F46",
            "E000000",
            "",
        )

    def test_symbols(self, assembler, copy_source):
        result = assembler.assemble_string(copy_source)
        assert result.symbol_tables() == [{"COPY": 0, "FIRST": 0, "RETADR": 0x11}]
        assert result.format_symbol_table() == "COPY\t0\nFIRST\t0\nRETADR\t11\n\n"

    def test_literal_placed_at_ltorg(self, assembler, copy_source):
        result = assembler.assemble_string(copy_source)
        literals = result.sections[0].literals
        assert literals.search("C'EOF'") == 0x0E
        ltorg = [token for token in result.sections[0].tokens if token.operator == "LTORG"][0]
        assert ltorg.literal_pool == ["C'EOF'"]

    def test_header_length_counts_literals(self, assembler, copy_source):
        result = assembler.assemble_string(copy_source)
        section = result.sections[0]
        sizes = sum(token.byte_size for token in section.tokens)
        header = result.modules[0][0]
        assert isinstance(header, HeaderRecord)
        assert header.length == sizes + section.literals.total_size() == 0x14

    def test_start_address(self, assembler):
        result = assembler.assemble_string(join_lines(
            "COPY\tSTART\t4096",
            "FIRST\tLDA\t#5",
            "\tEND\tFIRST",
        ))
        assert result.symbol_tables() == [{"COPY": 0x1000, "FIRST": 0x1000}]
        assert result.format_object_program() == join_lines(
            "HCOPY 001000000003",
            "T00100003010005",
            "E001000",
            "",
        )

    def test_statements_before_start(self, assembler):
        """Lines before any START form an unnamed first section."""
        result = assembler.assemble_string("\tLDA\t#5\n")
        assert len(result.sections) == 1
        assert result.sections[0].name == ""
        assert [type(record) for record in result.modules[0]] == [TextRecord, EndRecord]


class TestControlSections:
    """Assemble a program with two control sections."""

    def test_object_program(self, assembler, linked_source):
        result = assembler.assemble_string(linked_source)
        assert result.format_object_program() == join_lines(
            "HPROGA 000000000007",
            "DLISTA000004",
            "RLISTBENDB",
            "T000000" + "07" + "03100000" + "000000",
            "M00000105+LISTB",
            "M00000406+ENDB",
            "M00000406-LISTB",
            "E000000",
            "",
            "HPROGB 000000000006",
            "DLISTB000000ENDB000003",
            "RLISTA",
            "T000000" + "06" + "000000" + "4F0000",
            "M00000006+LISTA",
            "E",
            "",
        )

    def test_independent_record_groups(self, assembler):
        result = assembler.assemble_string(join_lines(
            "A\tCSECT",
            "\tLDA\t#1",
            "B\tCSECT",
            "\tLDA\t#2",
        ))
        assert len(result.modules) == 2
        for module, name in zip(result.modules, ["A", "B"]):
            assert isinstance(module[0], HeaderRecord)
            assert module[0].name == name
            assert isinstance(module[-1], EndRecord)
        assert result.modules[1][-1].first_address is None

    def test_sections_have_own_tables(self, assembler, linked_source):
        result = assembler.assemble_string(linked_source)
        first, second = result.symbol_tables()
        assert first == {"PROGA": 0, "FIRST": 0, "LISTA": 4}
        assert second == {"PROGB": 0, "LISTB": 0, "ENDB": 3}

    def test_symbol_table_output(self, assembler, linked_source):
        result = assembler.assemble_string(linked_source)
        assert result.format_symbol_table() == (
            "PROGA\t0\nFIRST\t0\nLISTA\t4\n\n"
            "PROGB\t0\nLISTB\t0\nENDB\t3\n\n"
        )


# =============================================================================
# Pass 1 Tests
# =============================================================================

class TestPass1:
    """Test symbol binding and location assignment."""

    def test_label_bound_to_location(self, assembler, copy_source):
        result = assembler.assemble_string(copy_source)
        section = result.sections[0]
        for token in section.tokens:
            if token.has_label and token.operator != "EQU":
                assert section.symbols.search(token.label) == token.location

    def test_equ_expressions(self, assembler):
        result = assembler.assemble_string(join_lines(
            "\tLDA\t#0",
            "HERE\tEQU\t*",
            "BUFFER\tRESB\t4096",
            "BUFEND\tEQU\t*",
            "MAXLEN\tEQU\tBUFEND-BUFFER",
            "SIZE\tEQU\t100",
            "ALIAS\tEQU\tBUFFER",
        ))
        symbols = result.symbol_tables()[0]
        assert symbols["HERE"] == 3
        assert symbols["BUFEND"] == 3 + 4096
        assert symbols["MAXLEN"] == 4096
        assert symbols["SIZE"] == 100
        assert symbols["ALIAS"] == 3

    def test_bad_equ_expression(self, assembler):
        with pytest.raises(ExpressionError):
            assembler.assemble_string("LEN\tEQU\tA+B\n")

    def test_duplicate_label_keeps_first(self, assembler, caplog):
        with caplog.at_level("WARNING"):
            result = assembler.assemble_string(join_lines(
                "LOOP\tLDA\t#1",
                "LOOP\tLDA\t#2",
            ))
        assert result.symbol_tables() == [{"LOOP": 0}]
        assert "duplicate label 'LOOP'" in caplog.text

    def test_literal_registered_once(self, assembler):
        result = assembler.assemble_string(join_lines(
            "\tLDA\t=X'05'",
            "\tLDA\t=X'05'",
            "\tEND",
        ))
        literals = result.sections[0].literals
        assert len(literals) == 1
        assert literals.search("X'05'") == 6

    def test_literals_flushed_at_end(self, assembler):
        result = assembler.assemble_string(join_lines(
            "\tLDA\t=C'EOF'",
            "\tEND",
        ))
        records = [record.to_text() for record in result.records()]
        assert records == ["T00000003032000", "T00000303454F46", "E000000"]

    def test_multi_byte_hex_literal(self, assembler):
        """A hex literal occupies one byte per two digits."""
        result = assembler.assemble_string(join_lines(
            "P\tSTART\t0",
            "\tLDA\t=X'05F1'",
            "\tEND",
        ))
        records = [record.to_text() for record in result.records()]
        assert records == ["HP 000000000005", "T00000003032000", "T0000030205F1", "E000000"]

    def test_comment_lines(self, assembler):
        result = assembler.assemble_string(join_lines(
            ".\tprogram header",
            "FIRST\tLDA\t#1",
            ".\tend",
        ))
        section = result.sections[0]
        assert [token.is_comment for token in section.tokens] == [True, False, True]
        assert section.tokens[2].location == 3
        assert section.length == 3

    def test_comments_before_start(self, assembler):
        """Leading comment lines belong to the START section."""
        result = assembler.assemble_string(join_lines(
            ".\tcopy file from input to output",
            "COPY\tSTART\t0",
            "\tLDA\t#5",
        ))
        assert len(result.sections) == 1
        section = result.sections[0]
        assert section.name == "COPY"
        assert section.tokens[0].is_comment
        assert isinstance(result.modules[0][0], HeaderRecord)
        assert result.modules[0][-1].first_address == 0

    def test_blank_lines_skipped(self, assembler):
        result = assembler.assemble_string("\n\tLDA\t#1\n\n   \n\tLDA\t#2\n")
        assert [token.line_number for token in result.sections[0].tokens] == [2, 5]

    def test_bad_start_address(self, assembler):
        with pytest.raises(AssemblySyntaxError):
            assembler.assemble_string("COPY\tSTART\t1A00\n")


class TestModifications:
    """Test Modification entries for external references."""

    def test_difference_of_externals(self, assembler):
        result = assembler.assemble_string(join_lines(
            "\tEXTREF\tX,Y",
            "\tLDA\t#0",
            "D\tWORD\tX-Y",
        ))
        assert list(result.sections[0].modifications) == [
            ModificationEntry("+X", 3, 6),
            ModificationEntry("-Y", 3, 6),
        ]

    def test_extended_difference(self, assembler):
        result = assembler.assemble_string(join_lines(
            "\tEXTREF\tX,Y",
            "\t+LDA\tX-Y",
        ))
        assert list(result.sections[0].modifications) == [
            ModificationEntry("+X", 1, 5),
            ModificationEntry("-Y", 1, 5),
        ]

    def test_extended_reference(self, assembler):
        result = assembler.assemble_string(join_lines(
            "\tEXTREF\tRDREC",
            "\tLDA\t#0",
            "\t+JSUB\tRDREC",
        ))
        assert list(result.sections[0].modifications) == [ModificationEntry("+RDREC", 4, 5)]

    def test_indexed_external(self, assembler):
        result = assembler.assemble_string(join_lines(
            "\tEXTREF\tBUFFER",
            "\t+STCH\tBUFFER,X",
        ))
        assert list(result.sections[0].modifications) == [ModificationEntry("+BUFFER", 1, 5)]

    def test_local_symbols_not_modified(self, assembler):
        result = assembler.assemble_string(join_lines(
            "\tEXTREF\tRDREC",
            "\t+JSUB\tLOCAL",
            "LOCAL\tRSUB",
        ))
        assert len(result.sections[0].modifications) == 0

    def test_modification_records_follow_text(self, assembler, linked_source):
        result = assembler.assemble_string(linked_source)
        kinds = [type(record) for record in result.modules[0]]
        last_text = max(i for i, kind in enumerate(kinds) if kind is TextRecord)
        first_mod = min(i for i, kind in enumerate(kinds) if kind is ModificationRecord)
        assert last_text < first_mod


# =============================================================================
# Determinism & Reuse Tests
# =============================================================================

class TestDeterminism:
    """The same input always produces the same output."""

    def test_same_instance_twice(self, assembler, linked_source):
        first = assembler.assemble_string(linked_source)
        second = assembler.assemble_string(linked_source)
        assert first.format_object_program() == second.format_object_program()
        assert first.format_symbol_table() == second.format_symbol_table()

    def test_fresh_context_per_run(self, assembler, copy_source, linked_source):
        assembler.assemble_string(copy_source)
        result = assembler.assemble_string(linked_source)
        assert len(result.sections) == 2
        assert "COPY" not in result.symbol_tables()[0]

    def test_convenience_function(self, copy_source, assembler):
        assert (assemble(copy_source).format_object_program()
                == assembler.assemble_string(copy_source).format_object_program())


# =============================================================================
# Field Width Tests
# =============================================================================

class TestFieldWidths:
    """Address fields are exactly 3 (format 3) or 5 (format 4) digits."""

    def test_widths(self, assembler, copy_source, linked_source):
        for source in (copy_source, linked_source):
            result = assembler.assemble_string(source)
            for section in result.sections:
                for token in section.tokens:
                    if token.flags.is_extended:
                        assert len(token.object_code) == 8
                    elif token.byte_size == 3 and assembler.catalog.is_instruction(token.operator):
                        assert len(token.object_code) == 6


# =============================================================================
# File Input/Output Tests
# =============================================================================

class TestFiles:
    """Test assembling from and writing to files."""

    def test_assemble_file(self, tmp_path, copy_source):
        path = tmp_path / "copy.asm"
        path.write_text(copy_source)

        asm = Assembler()
        result = asm.assemble_file(path)
        assert result.sections[0].name == "COPY"

        asm.write_object(tmp_path / "copy.obj")
        asm.write_symbols(tmp_path / "copy.sym")
        assert (tmp_path / "copy.obj").read_text() == result.format_object_program()
        assert (tmp_path / "copy.sym").read_text() == result.format_symbol_table()
        assert asm.get_symbols() == result.symbol_tables()

    def test_missing_source(self, tmp_path):
        with pytest.raises(ResourceError):
            Assembler().assemble_file(tmp_path / "missing.asm")

    def test_error_names_file(self, tmp_path):
        path = tmp_path / "bad.asm"
        path.write_text("BUF\tRESB\tten\n")
        with pytest.raises(AssemblySyntaxError) as exc_info:
            Assembler().assemble_file(path)
        assert f"{path}:1" in str(exc_info.value)

    def test_custom_catalog(self, tmp_path):
        path = tmp_path / "mini.data"
        path.write_text("LDA 3 00 1\n")
        asm = Assembler()
        asm.load_catalog_file(path)
        assert len(asm.catalog) == 1

    def test_write_before_assemble(self, tmp_path):
        with pytest.raises(RuntimeError):
            Assembler().write_object(tmp_path / "out.obj")
