"""Pydantic schemas for NoteGrid."""

from notegrid.schemas.column import ColumnConfig, ColumnType, FormulaOptions

__all__ = ["ColumnConfig", "ColumnType", "FormulaOptions"]
