"""
Case-insensitive lookup index over a SchemaGraph snapshot.
"""
from __future__ import annotations

import weakref
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from .models import Column, ColumnSource, SchemaGraph


@dataclass(frozen=True)
class ViewColumnSource:
    column_name: str
    source_table_id: str
    source_column: str


@dataclass
class SchemaIndex:
    """Read-only lookup structures derived from one SchemaGraph.

    name_to_id maps lower-cased qualified ids and short names of tables and
    views to their canonical "schema.name" id.
    """
    name_to_id: Dict[str, str] = field(default_factory=dict)
    view_column_sources: Dict[str, List[ViewColumnSource]] = field(default_factory=dict)
    neighbors: Dict[str, Set[str]] = field(default_factory=dict)

    def resolve(self, name: str) -> Optional[str]:
        """Resolve a (possibly bracketed) table name to its canonical id."""
        if not name:
            return None
        key = name.lower()
        hit = self.name_to_id.get(key)
        if hit:
            return hit
        return self.name_to_id.get(name.replace("[", "").replace("]", "").lower())


def _add_name_lookup(name_to_id: Dict[str, str], name: str, object_id: str) -> None:
    name_to_id[name.lower()] = object_id


def _column_sources(col: Column) -> List[ColumnSource]:
    if col.source_columns:
        return list(col.source_columns)
    if col.source_table and col.source_column:
        return [ColumnSource(col.source_table, col.source_column)]
    return []


def build_schema_index(schema: SchemaGraph) -> SchemaIndex:
    index = SchemaIndex()
    name_to_id = index.name_to_id

    def add_neighbor(a: str, b: str) -> None:
        index.neighbors.setdefault(a, set()).add(b)

    for table in schema.tables:
        _add_name_lookup(name_to_id, table.name, table.id)
        _add_name_lookup(name_to_id, table.id, table.id)
    for view in schema.views:
        _add_name_lookup(name_to_id, view.name, view.id)
        _add_name_lookup(name_to_id, view.id, view.id)

    for rel in schema.relationships:
        add_neighbor(rel.from_table, rel.to_table)
        add_neighbor(rel.to_table, rel.from_table)

    for trigger in schema.triggers:
        add_neighbor(trigger.id, trigger.table_id)
        add_neighbor(trigger.table_id, trigger.id)
        for table_id in trigger.referenced_tables + trigger.affected_tables:
            add_neighbor(trigger.id, table_id)

    for proc in schema.stored_procedures:
        for table_id in proc.referenced_tables + proc.affected_tables:
            add_neighbor(proc.id, table_id)

    for fn in schema.scalar_functions:
        for table_id in fn.referenced_tables:
            add_neighbor(fn.id, table_id)

    for view in schema.views:
        seen: Set[str] = set()
        for col in view.columns:
            for source in _column_sources(col):
                source_key = source.table.replace("[", "").replace("]", "").lower()
                source_table_id = name_to_id.get(source_key)
                if not source_table_id:
                    short = source_key.split(".")[-1]
                    if short != source_key:
                        source_table_id = name_to_id.get(short)
                if not source_table_id:
                    continue
                key = f"{col.name}::{source_table_id}::{source.column}"
                if key in seen:
                    continue
                seen.add(key)
                index.view_column_sources.setdefault(view.id, []).append(
                    ViewColumnSource(
                        column_name=col.name,
                        source_table_id=source_table_id,
                        source_column=source.column,
                    )
                )

    for view_id, sources in index.view_column_sources.items():
        for table_id in {s.source_table_id for s in sources}:
            add_neighbor(view_id, table_id)
            add_neighbor(table_id, view_id)

    return index


_INDEX_CACHE: "weakref.WeakKeyDictionary[SchemaGraph, SchemaIndex]" = weakref.WeakKeyDictionary()


def get_schema_index(schema: SchemaGraph) -> SchemaIndex:
    """Return the index for this snapshot, building it once per instance."""
    cached = _INDEX_CACHE.get(schema)
    if cached is not None:
        return cached
    built = build_schema_index(schema)
    _INDEX_CACHE[schema] = built
    return built
