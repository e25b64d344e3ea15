"""
SIC/XE Assembler - Test Configuration
=====================================

Shared fixtures for the assembler test suite:

- catalog: the bundled SIC/XE instruction catalog
- assembler: an Assembler using that catalog
- copy_source / linked_source: small complete programs used by several
  test modules, written with tab separated fields
"""

import pytest

from sicxe_asm.assembler import Assembler, InstructionCatalog


def join_lines(*lines: str) -> str:
    """Join source lines into one program text."""
    return "\n".join(lines) + "\n"


# A single section program exercising formats 2 and 3, immediate,
# indirect and literal operands, and an LTORG pool.
COPY_SOURCE = join_lines(
    "COPY\tSTART\t0",
    "FIRST\tSTL\tRETADR",
    "\tLDA\t#5",
    "\tLDA\t=C'EOF'",
    "\tCOMPR\tA,S",
    "\tJ\t@RETADR",
    "\tLTORG",
    "RETADR\tRESW\t1",
    "\tEND\tFIRST",
)

# Two control sections referring to each other's symbols.
LINKED_SOURCE = join_lines(
    "PROGA\tSTART\t0",
    "\tEXTDEF\tLISTA",
    "\tEXTREF\tLISTB,ENDB",
    "FIRST\t+LDA\tLISTB",
    "LISTA\tWORD\tENDB-LISTB",
    "PROGB\tCSECT",
    "\tEXTDEF\tLISTB,ENDB",
    "\tEXTREF\tLISTA",
    "LISTB\tWORD\tLISTA",
    "ENDB\tRSUB",
    "\tEND\tFIRST",
)


@pytest.fixture(scope="session")
def catalog() -> InstructionCatalog:
    """Fixture: the bundled SIC/XE instruction catalog."""
    return InstructionCatalog.default()


@pytest.fixture
def assembler(catalog) -> Assembler:
    """Fixture: a non-strict assembler using the bundled catalog."""
    return Assembler(catalog=catalog)


@pytest.fixture
def copy_source() -> str:
    return COPY_SOURCE


@pytest.fixture
def linked_source() -> str:
    return LINKED_SOURCE
