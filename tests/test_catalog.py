# =============================================================================
# test_catalog.py - Instruction Catalog Tests
# =============================================================================
# Tests for loading and querying the SIC/XE instruction catalog.
#
# Test coverage includes:
#   - Parsing '<mnemonic> <format> <opcodeHex> <operandCount>' lines
#   - Duplicate mnemonics (later line wins)
#   - Malformed lines abort the load
#   - Unreadable catalog files
#   - The bundled default catalog
#   - Directive and register helpers
# =============================================================================

import pytest

from sicxe_asm.assembler.opcodes import (
    DIRECTIVES,
    InstructionCatalog,
    InstructionSpec,
    is_directive,
    register_code,
)
from sicxe_asm.errors import CatalogError, ResourceError


# =============================================================================
# Loading Tests
# =============================================================================

class TestCatalogLoad:
    """Test building a catalog from specification lines."""

    def test_single_line(self):
        """A well formed line becomes one InstructionSpec."""
        catalog = InstructionCatalog.load(["LDA 3 00 1"])
        assert catalog.lookup("LDA") == InstructionSpec("LDA", 3, 0x00, 1)

    def test_opcode_is_hex(self):
        """The opcode column is hexadecimal."""
        catalog = InstructionCatalog.load(["CLEAR 2 B4 1"])
        assert catalog.lookup("CLEAR").opcode == 0xB4

    def test_blank_and_comment_lines_skipped(self):
        """Blank lines and '#' lines are not instructions."""
        catalog = InstructionCatalog.load(["", "# format 1", "FIX 1 C4 0", "   "])
        assert len(catalog) == 1
        assert "FIX" in catalog

    def test_duplicate_overwrites(self):
        """A later duplicate mnemonic replaces the earlier one."""
        catalog = InstructionCatalog.load(["LDA 3 00 1", "LDA 3 04 1"])
        assert len(catalog) == 1
        assert catalog.lookup("LDA").opcode == 0x04

    def test_iteration_in_load_order(self):
        catalog = InstructionCatalog.load(["LDA 3 00 1", "STA 3 0C 1", "FIX 1 C4 0"])
        assert [spec.mnemonic for spec in catalog] == ["LDA", "STA", "FIX"]

    @pytest.mark.parametrize("line", [
        "LDA 3 00",            # missing column
        "LDA 3 00 1 extra",    # extra column
        "LDA x 00 1",          # format not a number
        "LDA 3 ZZ 1",          # opcode not hex
        "LDA 5 00 1",          # format out of range
        "LDA 3 100 1",         # opcode wider than a byte
        "LDA 3 00 7",          # operand count out of range
    ])
    def test_malformed_line_is_fatal(self, line):
        """Any malformed line aborts the whole load."""
        with pytest.raises(CatalogError):
            InstructionCatalog.load(["STA 3 0C 1", line])

    def test_error_names_line_number(self):
        with pytest.raises(CatalogError) as exc_info:
            InstructionCatalog.load(["STA 3 0C 1", "BAD LINE"])
        assert exc_info.value.line_number == 2
        assert "line 2" in str(exc_info.value)


# =============================================================================
# File Loading Tests
# =============================================================================

class TestCatalogFiles:
    """Test loading catalogs from disk."""

    def test_from_file(self, tmp_path):
        path = tmp_path / "inst.data"
        path.write_text("LDA 3 00 1\nRSUB 3 4C 0\n")
        catalog = InstructionCatalog.from_file(path)
        assert catalog.is_instruction("RSUB")
        assert catalog.operand_count("RSUB") == 0

    def test_missing_file(self, tmp_path):
        """An unreadable catalog is a ResourceError."""
        with pytest.raises(ResourceError) as exc_info:
            InstructionCatalog.from_file(tmp_path / "missing.data")
        assert "missing.data" in str(exc_info.value)

    def test_default_catalog(self, catalog):
        """The bundled catalog holds the standard SIC/XE table."""
        assert catalog.lookup("LDA") == InstructionSpec("LDA", 3, 0x00, 1)
        assert catalog.lookup("RSUB") == InstructionSpec("RSUB", 3, 0x4C, 0)
        assert catalog.lookup("COMPR") == InstructionSpec("COMPR", 2, 0xA0, 2)
        assert catalog.lookup("FIX") == InstructionSpec("FIX", 1, 0xC4, 0)


# =============================================================================
# Query Tests
# =============================================================================

class TestCatalogQueries:
    """Test lookups on a loaded catalog."""

    def test_unknown_mnemonic_is_none(self, catalog):
        assert catalog.lookup("NOPE") is None

    @pytest.mark.parametrize("name", sorted(DIRECTIVES))
    def test_directives_are_not_instructions(self, catalog, name):
        """Directives never appear in the catalog."""
        assert not catalog.is_instruction(name)
        assert is_directive(name)

    def test_operand_count_of_unknown(self, catalog):
        assert catalog.operand_count("WORD") == -1

    def test_spec_is_frozen(self, catalog):
        spec = catalog.lookup("LDA")
        with pytest.raises(AttributeError):
            spec.opcode = 0xFF


class TestRegisters:
    """Test format 2 register codes."""

    @pytest.mark.parametrize("name,code", [
        ("A", 0), ("X", 1), ("L", 2), ("B", 3), ("S", 4),
        ("T", 5), ("F", 6), ("PC", 8), ("SW", 9),
    ])
    def test_register_codes(self, name, code):
        assert register_code(name) == code

    def test_unknown_register(self):
        assert register_code("Q") is None
