"""
Column lineage for SELECT lists: maps each output column to the source
table columns it is derived from.
"""
from __future__ import annotations

import logging
from typing import Iterable, List, Mapping, Optional, Sequence, Set

from ..models import DEFAULT_VIEW_COLUMN_TYPE, Column, ColumnSource, SchemaGraph
from .select_items import SelectItem, extract_identifier_chains, match_wildcard, split_alias
from .table_refs import TableReferences, resolve_table_from_candidate
from .tokens import Token, is_keyword, normalize_identifier

logger = logging.getLogger(__name__)


def ensure_unique_name(name: str, used: Set[str]) -> str:
    """Return name, or name_2, name_3, ... whichever is not yet in used."""
    if name not in used:
        used.add(name)
        return name
    suffix = 2
    candidate = f"{name}_{suffix}"
    while candidate in used:
        suffix += 1
        candidate = f"{name}_{suffix}"
    used.add(candidate)
    return candidate


def unique_names(names: Iterable[str]) -> List[str]:
    """De-duplicate case-insensitively, keeping the first spelling and order."""
    seen: Set[str] = set()
    out: List[str] = []
    for name in names:
        key = name.lower()
        if key in seen:
            continue
        seen.add(key)
        out.append(name)
    return out


def _lookup_table_id(table: str, name_to_id: Mapping[str, str]) -> Optional[str]:
    return name_to_id.get(table.lower()) or name_to_id.get(
        table.replace("[", "").replace("]", "").lower()
    )


def _find_column(columns: Sequence[Column], name: str) -> Optional[Column]:
    key = name.lower()
    for col in columns:
        if col.name.lower() == key:
            return col
    return None


def build_view_column(
    name: str,
    sources: Sequence[ColumnSource],
    schema: SchemaGraph,
    name_to_id: Mapping[str, str],
) -> Column:
    """Column with canonicalised sources and metadata from the primary source."""
    normalized: List[ColumnSource] = []
    for source in sources:
        table_id = _lookup_table_id(source.table, name_to_id)
        column_name = source.column
        if table_id:
            match = _find_column(schema.get_columns(table_id), source.column)
            if match is not None:
                column_name = match.name
        normalized.append(ColumnSource(table_id or source.table, column_name))

    col = Column(name=name, data_type=DEFAULT_VIEW_COLUMN_TYPE, is_nullable=True)
    if normalized:
        primary = normalized[0]
        table_id = name_to_id.get(primary.table.lower())
        if table_id:
            match = _find_column(schema.get_columns(table_id), primary.column)
            if match is not None:
                col.data_type = match.data_type
                col.is_nullable = match.is_nullable
        col.source_columns = normalized
        col.source_table = primary.table
        col.source_column = primary.column
    return col


class LineageResolver:
    """Resolve SELECT items to output columns for one parse call."""

    def __init__(
        self,
        schema: SchemaGraph,
        name_to_id: Mapping[str, str],
        refs: TableReferences,
        default_schema: Optional[str] = None,
    ):
        self.schema = schema
        self.name_to_id = name_to_id
        self.refs = refs
        self.default_schema = default_schema
        self.tables_in_scope = unique_names(refs.read_tables)
        self.default_table = self.tables_in_scope[0] if len(self.tables_in_scope) == 1 else None

    def _known_columns(self, table: str) -> Optional[List[Column]]:
        table_id = _lookup_table_id(table, self.name_to_id)
        if not table_id:
            return None
        return self.schema.get_columns(table_id) or None

    def _table_for_bare_column(self, column: str) -> Optional[str]:
        if self.default_table:
            known = self._known_columns(self.default_table)
            if known is not None and _find_column(known, column) is None:
                return None
            return self.default_table
        matches = [
            table for table in self.tables_in_scope
            if _find_column(self._known_columns(table) or [], column) is not None
        ]
        if len(matches) == 1:
            return matches[0]
        return None

    def sources_for_tokens(self, tokens: Sequence[Token]) -> List[ColumnSource]:
        """Source columns referenced anywhere in an expression, de-duplicated."""
        sources: List[ColumnSource] = []
        seen: Set[str] = set()
        for chain in extract_identifier_chains(tokens):
            nxt = tokens[chain.end_index + 1] if chain.end_index + 1 < len(tokens) else None
            if nxt is not None and nxt.is_sym("("):
                # function name
                continue
            parts = [p for p in (normalize_identifier(x) for x in chain.parts) if p]
            if not parts:
                continue

            if len(parts) == 1:
                column = parts[0]
                raw = chain.parts[0]
                if raw[:1] not in ("[", '"') and (
                    is_keyword(column) or column[0].isdigit() or column.startswith("@")
                ):
                    continue
                table = self._table_for_bare_column(column)
                if not table:
                    logger.debug("dropping unresolved column reference %r", column)
                    continue
            else:
                head = chain.parts[0]
                if head[:1] not in ("[", '"') and head[0].isdigit():
                    # decimal literal such as 1.5
                    continue
                column = parts[-1]
                table = resolve_table_from_candidate(
                    ".".join(parts[:-1]),
                    self.refs.alias_map,
                    self.name_to_id,
                    self.default_schema,
                )
                if not table:
                    continue

            source = ColumnSource(table, column)
            if source.key in seen:
                continue
            seen.add(source.key)
            sources.append(source)
        return sources

    def _expand_table(self, table: str, add) -> None:
        table_id = _lookup_table_id(table, self.name_to_id)
        if not table_id:
            logger.debug("cannot expand wildcard for unknown table %r", table)
            return
        for col in self.schema.get_columns(table_id):
            add(build_view_column(col.name, [ColumnSource(table, col.name)], self.schema, self.name_to_id))

    def build_columns(self, select_items: Sequence[SelectItem]) -> List[Column]:
        columns: List[Column] = []
        used: Set[str] = set()

        def add(col: Column) -> None:
            col.name = ensure_unique_name(col.name, used)
            columns.append(col)

        for index, item in enumerate(select_items):
            split = split_alias(item)
            wildcard = match_wildcard(split.expr_tokens)
            if wildcard is not None:
                if wildcard.table_name:
                    resolved = resolve_table_from_candidate(
                        wildcard.table_name,
                        self.refs.alias_map,
                        self.name_to_id,
                        self.default_schema,
                    )
                    if resolved:
                        self._expand_table(resolved, add)
                else:
                    for table in self.refs.read_tables:
                        self._expand_table(table, add)
                continue

            sources = self.sources_for_tokens(split.expr_tokens)
            base_name = split.alias or (sources[0].column if sources else f"expr_{index + 1}")
            add(build_view_column(base_name, sources, self.schema, self.name_to_id))
        return columns


def build_view_columns(
    select_items: Sequence[SelectItem],
    schema: SchemaGraph,
    name_to_id: Mapping[str, str],
    refs: TableReferences,
    default_schema: Optional[str] = None,
) -> List[Column]:
    return LineageResolver(schema, name_to_id, refs, default_schema).build_columns(select_items)


def attribute_by_name(
    columns: Sequence[Column],
    referenced_ids: Sequence[str],
    schema: SchemaGraph,
) -> List[Column]:
    """Give provenance to unsourced columns whose name exists in exactly one table.

    Ambiguous names (present in several referenced tables) stay unsourced.
    """
    out: List[Column] = []
    for col in columns:
        if col.source_columns or col.source_table or col.source_column:
            out.append(col)
            continue
        matches: List[ColumnSource] = []
        for table_id in referenced_ids:
            match = _find_column(schema.get_columns(table_id), col.name)
            if match is not None:
                matches.append(ColumnSource(table_id, match.name))
        if len(matches) != 1:
            out.append(col)
            continue
        out.append(col.with_sources(matches))
    return out

