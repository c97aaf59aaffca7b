from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, Callable, Literal, Optional

from procspec.exceptions import ImproperConfigurationError
from procspec.type_conversion import TypeConverter

if TYPE_CHECKING:
    from typing_extensions import Self

__all__ = ("CallStyle", "StatementConfig")

CallStyle = Literal["auto", "callproc", "escape"]


@dataclass
class StatementConfig:
    """Configuration for statement binding and execution.

    Attributes:
        type_coercion_map: Exact-type coercions applied to values before binding. Empty by
            default, so values reach the driver exactly as the caller passed them. Adapters
            ship presets for drivers that need them, see
            :func:`procspec.adapters.sqlite.sqlite_statement_config`.
        call_style: How stored procedures are invoked. ``callproc`` uses the DB-API
            ``cursor.callproc`` extension, ``escape`` executes the ``{call ...}`` text and
            ``auto`` picks ``callproc`` when the cursor provides it.
        validate_placeholders: Check that a query's ``?`` count matches its declared
            argument count before connecting.
        dialect: sqlglot dialect used when tokenizing query text.
        commit_on_close: Commit the connection before closing it on release.
        rollback_on_error: Roll back instead of committing when execution failed. Off by
            default: a failed call still commits whatever the connection holds, then closes.
        out_parameter_factory: Builds the bind value for OUT and INOUT slots from
            ``(cursor, type_code, value)``. Needed by drivers that require typed output
            variables. When unset the input value (``None`` for OUT) is bound.
        type_converter: Converter used by the arbitrary-typed result shape.
    """

    type_coercion_map: "dict[type, Callable[[Any], Any]]" = field(default_factory=dict)
    call_style: CallStyle = "auto"
    validate_placeholders: bool = False
    dialect: Optional[str] = None
    commit_on_close: bool = True
    rollback_on_error: bool = False
    out_parameter_factory: "Optional[Callable[[Any, int, Any], Any]]" = None
    type_converter: TypeConverter = field(default_factory=TypeConverter)

    def __post_init__(self) -> None:
        if self.call_style not in {"auto", "callproc", "escape"}:
            msg = f"Unsupported call style: {self.call_style!r}"
            raise ImproperConfigurationError(msg)

    def replace(self, **changes: Any) -> "Self":
        """Return a copy of this configuration with ``changes`` applied."""
        return replace(self, **changes)

    def coerce(self, value: Any) -> Any:
        """Apply the configured coercion for the exact type of ``value``."""
        converter = self.type_coercion_map.get(type(value))
        return value if converter is None else converter(value)
