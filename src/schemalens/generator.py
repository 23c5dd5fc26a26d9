"""
Canonical T-SQL text from structured column/parameter metadata.

The inverse of the parsers in schemalens.parser: output of
generate_view_definition parses back to the same columns and provenance.
"""
from __future__ import annotations

from typing import List, Optional, Sequence

from .models import DEFAULT_PARAMETER_TYPE, Column, ColumnSource, ProcedureParameter
from .parser_modules.procedures import ensure_parameter_name


def format_identifier_part(value: str) -> str:
    return "[" + value.replace("]", "]]") + "]"


def format_qualified_name(value: str) -> str:
    return ".".join(format_identifier_part(part) for part in value.split("."))


def _object_name(schema: Optional[str], name: Optional[str]) -> str:
    qualified = f"{schema}.{name}" if schema else (name or "")
    return format_qualified_name(qualified)


def build_parameter_list(parameters: Sequence[ProcedureParameter], indent: str = "  ") -> str:
    """One "@name type [OUTPUT]" line per parameter, comma separated."""
    lines: List[str] = []
    for param in parameters:
        name = ensure_parameter_name(param.name)
        data_type = (param.data_type or "").strip()
        output = " OUTPUT" if param.is_output else ""
        if data_type:
            lines.append(f"{indent}{name} {data_type}{output}")
        else:
            lines.append(f"{indent}{name}{output}")
    return ",\n".join(lines)


def _column_line(column: Column, source: Optional[ColumnSource], qualify: bool) -> str:
    if source is None:
        return format_identifier_part(column.name)
    ref = format_identifier_part(source.column)
    if qualify and source.table:
        ref = f"{format_qualified_name(source.table)}.{ref}"
    if column.name.lower() != source.column.lower():
        return f"{ref} AS {format_identifier_part(column.name)}"
    return ref


def generate_view_definition(
    columns: Sequence[Column],
    schema: Optional[str] = None,
    name: Optional[str] = None,
    include_header: bool = False,
) -> str:
    """SELECT list (and FROM, when all columns share one source table).

    Columns are left unqualified when a single source table exists and are
    qualified with their source table otherwise.
    """
    if not columns:
        return ""

    source_tables: List[str] = []
    for column in columns:
        source = column.primary_source()
        if source is not None and source.table and source.table not in source_tables:
            source_tables.append(source.table)
    from_table = source_tables[0] if len(source_tables) == 1 else None

    lines = [_column_line(c, c.primary_source(), qualify=from_table is None) for c in columns]
    body = "SELECT\n  " + ",\n  ".join(lines)
    if from_table:
        body += f"\nFROM {format_qualified_name(from_table)}"
    if include_header:
        return f"CREATE VIEW {_object_name(schema, name)}\nAS\n{body}"
    return body


def generate_procedure_definition(
    parameters: Sequence[ProcedureParameter],
    schema: Optional[str] = None,
    name: Optional[str] = None,
    include_header: bool = False,
) -> str:
    param_block = build_parameter_list(parameters)
    body = "BEGIN\n  SET NOCOUNT ON;\nEND"
    if include_header:
        head = f"CREATE PROCEDURE {_object_name(schema, name)}"
        if param_block:
            head += f"\n{param_block}"
        return f"{head}\nAS\n{body}"
    section = f"{param_block}\n\n" if param_block else ""
    return f"{section}{body}"


def generate_function_definition(
    parameters: Sequence[ProcedureParameter],
    return_type: str = "",
    schema: Optional[str] = None,
    name: Optional[str] = None,
    include_header: bool = False,
) -> str:
    param_block = build_parameter_list(parameters)
    params = f"(\n{param_block}\n)" if param_block else "()"
    returns = (return_type or "").strip() or DEFAULT_PARAMETER_TYPE
    body = "BEGIN\n  RETURN NULL\nEND"
    if include_header:
        return f"CREATE FUNCTION {_object_name(schema, name)}{params}\nRETURNS {returns}\nAS\n{body}"
    return f"{params}\nRETURNS {returns}\n{body}"
