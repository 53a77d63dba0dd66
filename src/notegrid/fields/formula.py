"""Formula column handling for NoteGrid tables.

Formula columns are computed: their value for each row is derived from
other columns by evaluating the column's formula. This module owns the
per-table formula state: one compiled formula per column, compile errors
stored once per column, the self-reference guard and the row limit above
which formulas are not evaluated.
"""

from collections.abc import Callable, Iterable, Mapping, MutableMapping
from typing import Any

from pydantic import ValidationError

from notegrid.core.config import settings
from notegrid.core.exceptions import ColumnConfigError, FormulaCompilationError
from notegrid.core.logging import LoggerMixin
from notegrid.fields.display import format_date_for_display, format_time_for_display
from notegrid.formula.compiler import CompiledFormula, compile_formula
from notegrid.formula.evaluator import evaluate_formula
from notegrid.formula.presets import format_number
from notegrid.schemas.column import ColumnConfig, FormulaOptions

Row = MutableMapping[str, Any]

SELF_REFERENCE_MESSAGE = "Formula cannot reference its own column"


class FormulaColumnManager(LoggerMixin):
    """
    Compiles and applies the formula columns of one table.

    Call prepare() whenever the column configuration changes, then apply()
    for each row of a render pass (or apply_all() for the whole pass).
    Results are written into the row under the column name; diagnostics go
    to a companion tooltip key.

    Example:
        manager = FormulaColumnManager()
        manager.prepare([ColumnConfig(name="Total", type="formula", formula="{a} + {b}")])
        manager.apply_all(rows)
    """

    def __init__(self, options: FormulaOptions | None = None) -> None:
        self.options = options or FormulaOptions.from_settings(settings)
        self._columns: dict[str, CompiledFormula] = {}
        self._compile_errors: dict[str, str] = {}
        self._column_order: list[str] = []
        self._formats: dict[str, str] = {}
        self._display_formatters: dict[str, Callable[[Any], str]] = {}
        self._limit_notice_issued = False

    # ==========================================================================
    # Preparation
    # ==========================================================================

    def prepare(
        self, column_configs: Iterable[ColumnConfig | Mapping[str, Any]] | None
    ) -> None:
        """
        Rebuild formula state from the table's column configuration.

        Formulas whose text is unchanged since the last prepare() keep their
        compiled form.

        Args:
            column_configs: Column configurations, or None for a table without any

        Raises:
            ColumnConfigError: If a configuration mapping is invalid
        """
        previous = self._columns
        self._columns = {}
        self._compile_errors = {}
        self._column_order = []
        self._formats = {}
        self._display_formatters = {}
        self._limit_notice_issued = False

        if not column_configs:
            return

        configs = [self._coerce_config(config) for config in column_configs]

        for config in configs:
            self._register_display_formatter(config)

        for config in configs:
            if config.formula_format and config.formula_format != "auto":
                self._formats[config.name] = config.formula_format

            if not config.has_formula:
                continue
            raw_formula = config.formula.strip()
            self._column_order.append(config.name)

            cached = previous.get(config.name)
            if cached is not None and cached.original == raw_formula:
                compiled = cached
            else:
                try:
                    compiled = compile_formula(raw_formula)
                except FormulaCompilationError as e:
                    self.logger.warning(
                        "Formula failed to compile",
                        extra={"column": config.name, "error_kind": e.kind.value},
                    )
                    self._compile_errors[config.name] = e.message
                    continue

            if compiled.references(config.name):
                self.logger.warning(
                    "Formula references its own column", extra={"column": config.name}
                )
                self._compile_errors[config.name] = SELF_REFERENCE_MESSAGE
                continue

            self._columns[config.name] = compiled

    def _coerce_config(self, config: ColumnConfig | Mapping[str, Any]) -> ColumnConfig:
        if isinstance(config, ColumnConfig):
            return config
        try:
            return ColumnConfig.model_validate(config)
        except ValidationError as e:
            name = str(config.get("name", "")) if isinstance(config, Mapping) else ""
            raise ColumnConfigError(name, str(e)) from e

    def _register_display_formatter(self, config: ColumnConfig) -> None:
        if config.type == "date":
            preset = config.date_format
            self._display_formatters[config.name] = lambda value: format_date_for_display(
                value, preset
            )
        elif config.type == "time":
            preset = config.time_format
            self._display_formatters[config.name] = lambda value: format_time_for_display(
                value, preset
            )

    # ==========================================================================
    # Evaluation
    # ==========================================================================

    def apply(self, row: Row, formulas_enabled: bool = True) -> None:
        """
        Compute every formula column for one row, in column order.

        A formula can read the result of a formula column that precedes it.

        Args:
            row: Row data, updated in place
            formulas_enabled: False when the row limit was exceeded
        """
        for column_name in self._column_order:
            tooltip_field = self.tooltip_field(column_name)

            compile_error = self._compile_errors.get(column_name)
            if compile_error is not None:
                row[column_name] = self.options.error_value
                row[tooltip_field] = f"Formula parse failed: {compile_error}"
                continue

            if not formulas_enabled:
                row[tooltip_field] = f"Formulas disabled above {self.options.row_limit} rows"
                continue

            compiled = self._columns.get(column_name)
            if compiled is None:
                continue

            result = evaluate_formula(
                compiled, row, lambda field: self._resolve_context_value(row, field)
            )
            if result.error is not None:
                row[column_name] = self.options.error_value
                row[tooltip_field] = f"Formula error: {result.error}"
                continue

            preset = self._formats.get(column_name)
            if result.kind == "number" and preset and result.numeric_value is not None:
                row[column_name] = format_number(result.numeric_value, preset) or result.value
            else:
                row[column_name] = result.value
            row[tooltip_field] = ""

    def apply_all(self, rows: list[Row]) -> bool:
        """
        Compute formula columns for a full render pass.

        Formulas are skipped for every row when the table has more rows
        than the configured limit.

        Args:
            rows: All rows of the table, updated in place

        Returns:
            True if formulas were evaluated
        """
        enabled = len(rows) <= self.options.row_limit
        if self.should_notify_limit(len(rows)):
            self.logger.info(
                "Formula row limit exceeded, formulas disabled",
                extra={"row_count": len(rows), "row_limit": self.options.row_limit},
            )
        for row in rows:
            self.apply(row, enabled)
        return enabled

    def _resolve_context_value(self, row: Row, field: str) -> Any:
        """Field lookup that shows date and time columns as displayed."""
        raw_value = row.get(field)
        formatter = self._display_formatters.get(field)
        if formatter is None:
            return raw_value
        try:
            return formatter(raw_value)
        except Exception:
            self.logger.debug(
                "Display formatter failed", extra={"column": field}, exc_info=True
            )
            return raw_value

    # ==========================================================================
    # Introspection
    # ==========================================================================

    def should_notify_limit(self, row_count: int) -> bool:
        """
        Check whether to tell the user formulas were disabled.

        True at most once per prepare(), and only when the table has
        formula columns and more rows than the limit.
        """
        if row_count <= self.options.row_limit:
            return False
        if not self._column_order:
            return False
        if self._limit_notice_issued:
            return False
        self._limit_notice_issued = True
        return True

    def is_formula_column(self, name: str) -> bool:
        return name in self._columns or name in self._compile_errors

    def tooltip_field(self, column_name: str) -> str:
        """Row key holding the diagnostic message for a formula column."""
        return f"{self.options.tooltip_prefix}{column_name}"

    def compile_error(self, column_name: str) -> str | None:
        return self._compile_errors.get(column_name)

    def compiled(self, column_name: str) -> CompiledFormula | None:
        return self._columns.get(column_name)

    def dependencies(self, column_name: str) -> tuple[str, ...]:
        """Fields read by a column's formula; empty if it did not compile."""
        compiled = self._columns.get(column_name)
        return compiled.dependencies if compiled else ()

    @property
    def column_order(self) -> tuple[str, ...]:
        """Formula columns in evaluation order."""
        return tuple(self._column_order)
