"""Column schemas for table configuration."""

from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from notegrid.core.config import Settings
from notegrid.formula.presets import FormatPreset, normalize_format_preset

ColumnType = Literal["text", "date", "time", "formula"]


class ColumnConfig(BaseModel):
    """Configuration of one table column."""

    name: str = Field(..., min_length=1, description="Column name")
    type: ColumnType = Field(default="text", description="Column type")
    formula: Optional[str] = Field(None, description="Formula expression for computed columns")
    formula_format: Optional[FormatPreset] = Field(
        None, description="Number format preset or pattern for numeric formula results"
    )
    date_format: Optional[str] = Field(None, description="Display preset for date columns")
    time_format: Optional[str] = Field(None, description="Display preset for time columns")

    model_config = {"frozen": True}

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v: str) -> str:
        """Column names are matched trimmed, like field references."""
        return v.strip() if isinstance(v, str) else v

    @field_validator("formula_format", mode="before")
    @classmethod
    def parse_formula_format(cls, v: Optional[str]) -> Optional[str]:
        """Accept preset names and patterns, case-insensitively."""
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        preset = normalize_format_preset(v)
        if preset is None:
            raise ValueError(f"Unknown formula format: {v}")
        return preset

    @property
    def has_formula(self) -> bool:
        """Whether the column carries a non-blank formula."""
        return bool(self.formula and self.formula.strip())


class FormulaOptions(BaseModel):
    """Table-level options for formula evaluation."""

    row_limit: int = Field(default=5000, gt=0, description="Maximum rows evaluated")
    error_value: str = Field(default="#ERR", min_length=1, description="Failed cell marker")
    tooltip_prefix: str = Field(
        default="__tlbFormulaTooltip__", description="Row key prefix for diagnostics"
    )

    @classmethod
    def from_settings(cls, settings: Settings) -> "FormulaOptions":
        """Build options from application settings."""
        return cls(
            row_limit=settings.formula_row_limit,
            error_value=settings.formula_error_value,
            tooltip_prefix=settings.formula_tooltip_prefix,
        )
