"""
Best-effort parsing of T-SQL object definitions (views, triggers, stored
procedures, scalar functions). Nothing here raises on malformed SQL; callers
get empty or partial results instead.
"""
from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Set

from .models import Column, RoutineReferences, RoutineSignature, SchemaGraph, ViewDefinition
from .parser_modules.create_handlers import parse_view_column_list
from .parser_modules.lineage import attribute_by_name, build_view_column, build_view_columns, ensure_unique_name, unique_names
from .parser_modules.preprocess import sanitize_sql
from .parser_modules.procedures import analyze_routine_body, parse_return_type, parse_routine_signature
from .parser_modules.select_items import parse_select_items
from .parser_modules.table_refs import parse_table_references
from .parser_modules.tokens import Token, tokenize
from .schema_index import get_schema_index

logger = logging.getLogger(__name__)


def tokenize_definition(definition: str) -> List[Token]:
    """Sanitize and tokenize a definition in one step."""
    return tokenize(sanitize_sql(definition or ""))


def parse_view_definition(
    definition: str,
    schema: SchemaGraph,
    fallback_columns: Optional[Sequence[Column]] = None,
    default_schema: Optional[str] = None,
) -> ViewDefinition:
    """Infer a view's output columns (with lineage) and the tables it reads."""
    fallback = list(fallback_columns or [])
    if not (definition or "").strip():
        return ViewDefinition(columns=fallback, referenced_tables=[])

    tokens = tokenize_definition(definition)
    index = get_schema_index(schema)
    name_to_id = index.name_to_id
    refs = parse_table_references(tokens, name_to_id, default_schema)

    select_columns = build_view_columns(
        parse_select_items(tokens), schema, name_to_id, refs, default_schema
    )
    declared = parse_view_column_list(tokens)

    if declared:
        used: Set[str] = set()
        columns = []
        for i, declared_name in enumerate(declared):
            sources = (select_columns[i].source_columns or []) if i < len(select_columns) else []
            columns.append(
                build_view_column(ensure_unique_name(declared_name, used), sources, schema, name_to_id)
            )
    elif select_columns:
        columns = select_columns
    else:
        logger.debug("no select columns recovered, using %d fallback columns", len(fallback))
        columns = fallback

    referenced = unique_names(refs.read_tables)
    referenced_ids = [index.resolve(t) or t for t in referenced]
    if referenced_ids:
        columns = attribute_by_name(columns, referenced_ids, schema)

    return ViewDefinition(columns=columns, referenced_tables=referenced)


def parse_routine_parameters(definition: str) -> RoutineSignature:
    """Parameters of a procedure/function header or of a bare parameter list."""
    if not (definition or "").strip():
        return RoutineSignature(parameters=[], has_signature=False)
    return parse_routine_signature(tokenize_definition(definition))


def parse_function_return_type(definition: str) -> Optional[str]:
    """The type after RETURNS, e.g. "int" or "decimal(10,2)"; None when absent."""
    if not (definition or "").strip():
        return None
    return parse_return_type(tokenize_definition(definition))


def parse_routine_definition(
    definition: str,
    schema: SchemaGraph,
    default_schema: Optional[str] = None,
) -> RoutineReferences:
    """Tables a trigger/procedure/function body reads and writes."""
    if not (definition or "").strip():
        return RoutineReferences()
    tokens = tokenize_definition(definition)
    return analyze_routine_body(tokens, get_schema_index(schema).name_to_id, default_schema)
