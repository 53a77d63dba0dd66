"""Number format presets for numeric formula results.

A column may pick a preset by name (``fixed2``) or by its spreadsheet-style
pattern (``0.00``). ``auto`` keeps the canonical formula formatting.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Context, Decimal
from typing import Literal

FormatPreset = Literal[
    "auto",
    "fixed0",
    "fixed1",
    "fixed2",
    "fixed3",
    "fixed4",
    "fixed5",
    "fixed6",
    "thousandFixed0",
    "thousandFixed2",
    "percentFixed2",
]


@dataclass(frozen=True)
class PresetDefinition:
    value: FormatPreset
    label: str
    pattern: str | None = None
    decimals: int = 0
    grouping: bool = False
    percent: bool = False


PRESET_DEFINITIONS: tuple[PresetDefinition, ...] = (
    PresetDefinition("auto", "Automatic"),
    PresetDefinition("fixed0", "Integer", "0", 0),
    PresetDefinition("fixed1", "1 decimal", "0.0", 1),
    PresetDefinition("fixed2", "2 decimals", "0.00", 2),
    PresetDefinition("fixed3", "3 decimals", "0.000", 3),
    PresetDefinition("fixed4", "4 decimals", "0.0000", 4),
    PresetDefinition("fixed5", "5 decimals", "0.00000", 5),
    PresetDefinition("fixed6", "6 decimals", "0.000000", 6),
    PresetDefinition("thousandFixed0", "Thousands separator", "#,##0", 0, grouping=True),
    PresetDefinition(
        "thousandFixed2", "Thousands separator, 2 decimals", "#,##0.00", 2, grouping=True
    ),
    PresetDefinition("percentFixed2", "Percent, 2 decimals", "0.00%", 2, percent=True),
)

_BY_NAME = {definition.value.lower(): definition for definition in PRESET_DEFINITIONS}
_BY_PATTERN = {
    definition.pattern.lower(): definition
    for definition in PRESET_DEFINITIONS
    if definition.pattern
}

# Wide enough for every finite float at six decimals, scaled to percent
_QUANTIZE_CONTEXT = Context(prec=400)


def normalize_format_preset(value: str | None) -> FormatPreset | None:
    """
    Resolve a preset name or pattern.

    Args:
        value: Preset name or pattern, case-insensitive

    Returns:
        Canonical preset name, or None if blank or unknown
    """
    if not value:
        return None
    normalized = value.strip().lower()
    if not normalized:
        return None
    definition = _BY_NAME.get(normalized) or _BY_PATTERN.get(normalized)
    return definition.value if definition else None


def is_format_preset(value: str | None) -> bool:
    """Check for an exact canonical preset name."""
    return any(definition.value == value for definition in PRESET_DEFINITIONS)


def format_pattern(preset: str | None) -> str | None:
    """Spreadsheet-style pattern for a preset."""
    for definition in PRESET_DEFINITIONS:
        if definition.value == preset:
            return definition.pattern
    return None


def format_number(value: float, preset: str | None) -> str | None:
    """
    Format a number with a preset.

    Args:
        value: Finite number; halves round away from zero
        preset: Canonical preset name

    Returns:
        Formatted text, or None for ``auto``, missing or unknown presets
    """
    if not preset or preset == "auto":
        return None
    definition = _BY_NAME.get(preset.lower())
    if definition is None:
        return None

    # Round half away from zero on the shortest decimal form of the value
    number = Decimal(repr(float(value)))
    if definition.percent:
        number *= 100
    number = number.quantize(
        Decimal(1).scaleb(-definition.decimals), rounding=ROUND_HALF_UP, context=_QUANTIZE_CONTEXT
    )

    grouping = "," if definition.grouping else ""
    text = f"{number:{grouping}.{definition.decimals}f}"
    return f"{text}%" if definition.percent else text
