"""
sicasm - SIC/XE Assembler Command-Line Interface
================================================

This module implements the command-line interface for the SIC/XE
assembler. It assembles one source file into an object module and a
symbol table.

Usage Examples
--------------
Basic assembly (writes copy.obj and copy.sym):
    $ sicasm copy.asm

With explicit output files:
    $ sicasm copy.asm -o out/copy.obj -s out/copy.sym

With a custom instruction catalog:
    $ sicasm -c inst.data copy.asm

Fail on undefined symbols instead of encoding them as -1:
    $ sicasm --strict copy.asm

Verbose mode:
    $ sicasm -v copy.asm
"""

import logging
from pathlib import Path
from typing import Optional

import click

from sicxe_asm import __version__
from sicxe_asm.assembler import Assembler, InstructionCatalog
from sicxe_asm.cli.errors import handle_cli_exception


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbosity."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s" if verbose else "%(message)s",
    )


# =============================================================================
# CLI Definition
# =============================================================================

@click.command()
@click.argument(
    "input_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "-c", "--catalog",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Instruction catalog file (default: bundled SIC/XE table)",
)
@click.option(
    "-o", "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Output object module (default: input.obj)",
)
@click.option(
    "-s", "--symbols",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Output symbol table (default: input.sym)",
)
@click.option(
    "--strict",
    is_flag=True,
    help="Treat undefined symbols as errors",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
@click.version_option(version=__version__, prog_name="sicasm")
def main(
    input_file: Path,
    catalog: Optional[Path],
    output: Optional[Path],
    symbols: Optional[Path],
    strict: bool,
    verbose: bool,
) -> None:
    """
    Assemble SIC/XE source code.

    INPUT_FILE is the assembly source: one statement per line, with
    label, operator, operands and comment separated by tabs.

    \b
    Examples:
        sicasm copy.asm                  # Outputs copy.obj and copy.sym
        sicasm copy.asm -o out.obj       # Specify object file
        sicasm -c inst.data copy.asm     # Use another catalog
    """
    setup_logging(verbose)

    output_file = output if output is not None else input_file.with_suffix(".obj")
    symbols_file = symbols if symbols is not None else input_file.with_suffix(".sym")

    try:
        if catalog is not None:
            inst_catalog = InstructionCatalog.from_file(catalog)
            if verbose:
                click.echo(f"Loaded {len(inst_catalog)} instructions from {catalog}")
        else:
            inst_catalog = InstructionCatalog.default()

        asm = Assembler(catalog=inst_catalog, strict=strict)

        if verbose:
            click.echo(f"Assembling {input_file}...")

        result = asm.assemble_file(input_file)

        asm.write_symbols(symbols_file)
        if verbose:
            click.echo(f"Wrote symbols to {symbols_file}")

        asm.write_object(output_file)
        if verbose:
            click.echo(f"Wrote object program to {output_file}")

        # Print summary
        if verbose:
            labels = sum(len(table) for table in result.symbol_tables())
            click.echo(
                f"Assembly complete: {len(result.sections)} sections, "
                f"{len(result.records())} records"
            )
            click.echo(f"Defined {labels} symbols")

    except Exception as e:
        handle_cli_exception(e, verbose=verbose, error_type="Assembly")


if __name__ == "__main__":
    main()
