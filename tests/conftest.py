"""
Pytest configuration and fixtures for NoteGrid tests.
"""

from typing import Any

import pytest

from notegrid.fields.formula import FormulaColumnManager
from notegrid.schemas.column import ColumnConfig, FormulaOptions


@pytest.fixture
def formula_options() -> FormulaOptions:
    """Formula options with a small row limit for limit tests."""
    return FormulaOptions(row_limit=3, error_value="#ERR", tooltip_prefix="__tip__")


@pytest.fixture
def manager(formula_options: FormulaOptions) -> FormulaColumnManager:
    """Formula column manager without any columns prepared."""
    return FormulaColumnManager(formula_options)


@pytest.fixture
def order_columns() -> list[ColumnConfig]:
    """A small order table: two inputs and two chained formula columns."""
    return [
        ColumnConfig(name="Price"),
        ColumnConfig(name="Qty"),
        ColumnConfig(name="Subtotal", type="formula", formula="{Price} * {Qty}"),
        ColumnConfig(name="Total", type="formula", formula="={Subtotal} + 5"),
    ]


@pytest.fixture
def order_row() -> dict[str, Any]:
    """One row of the order table before formulas run."""
    return {"Price": "2.5", "Qty": "4"}
