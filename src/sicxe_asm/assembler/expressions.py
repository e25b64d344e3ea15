"""
Address Expression Evaluator
============================

Evaluates the small expression language used by EQU and WORD operands.
Expressions are resolved against one section's symbol table.

Supported Forms
---------------
| Form   | Value                                  |
|--------|----------------------------------------|
| *      | Current location counter               |
| 123    | Decimal constant                       |
| NAME   | Address of NAME                        |
| A-B    | Address of A minus address of B        |

No other operators are supported; anything else raises ExpressionError.

Unresolved symbols search to -1 and take part in the arithmetic as-is,
so the caller decides whether that is worth reporting.

Example Usage
-------------
>>> from sicxe_asm.assembler.tables import SymbolTable
>>> symbols = SymbolTable()
>>> symbols.put_symbol("BUFFER", 0x33)
>>> symbols.put_symbol("BUFEND", 0x1033)
>>> evaluate_address("BUFEND-BUFFER", 0x1033, symbols)
4096
"""

from typing import Optional
import re

from sicxe_asm.errors import ExpressionError, SourceLocation
from sicxe_asm.assembler.tables import SymbolTable

# Symbol names: letters, digits and underscore, not starting with a digit
SYMBOL_PATTERN = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
NUMBER_PATTERN = re.compile(r"-?[0-9]+")

CURRENT_LOCATION = "*"


def evaluate_address(
    expression: str,
    location_counter: int,
    symbols: SymbolTable,
    location: Optional[SourceLocation] = None,
    source_line: Optional[str] = None,
) -> int:
    """
    Evaluate an address expression.

    Args:
        expression: Expression text ('*', number, NAME or A-B)
        location_counter: Value of '*'
        symbols: Symbol table of the active section
        location: Source location for error messages
        source_line: Source text for error messages

    Returns:
        The evaluated value

    Raises:
        ExpressionError: If the expression is not one of the supported forms
    """
    text = expression.strip()

    if text == CURRENT_LOCATION:
        return location_counter

    if NUMBER_PATTERN.fullmatch(text):
        return int(text)

    if SYMBOL_PATTERN.fullmatch(text):
        return symbols.search(text)

    left, right = split_difference(text)
    if left is not None:
        return symbols.search(left) - symbols.search(right)

    raise ExpressionError(
        f"unsupported address expression '{expression}'",
        location=location,
        hint="use '*', a number, a symbol, or SYMBOL-SYMBOL",
        source_line=source_line,
    )


def split_difference(text: str) -> tuple[Optional[str], Optional[str]]:
    """
    Split 'A-B' into its two symbol names.

    Returns:
        (A, B), or (None, None) if the text is not a symbol difference
    """
    if text.count("-") != 1:
        return None, None
    left, right = (part.strip() for part in text.split("-"))
    if SYMBOL_PATTERN.fullmatch(left) and SYMBOL_PATTERN.fullmatch(right):
        return left, right
    return None, None

