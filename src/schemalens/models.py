"""
Core data models for schemalens.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


DEFAULT_VIEW_COLUMN_TYPE = "unknown"
DEFAULT_PARAMETER_TYPE = "int"


@dataclass(frozen=True)
class ColumnSource:
    """Reference to a source column a view column is derived from."""
    table: str
    column: str

    @property
    def key(self) -> str:
        return f"{self.table}::{self.column}"

    def to_dict(self) -> Dict[str, str]:
        return {"table": self.table, "column": self.column}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ColumnSource":
        return cls(table=str(data.get("table", "")), column=str(data.get("column", "")))


@dataclass
class Column:
    """Column of a table or view, with optional lineage for view columns."""
    name: str
    data_type: str = DEFAULT_VIEW_COLUMN_TYPE
    is_nullable: bool = True
    is_primary_key: bool = False
    source_columns: Optional[List[ColumnSource]] = None
    # Legacy single-source mirrors of source_columns[0]
    source_table: Optional[str] = None
    source_column: Optional[str] = None

    def primary_source(self) -> Optional[ColumnSource]:
        """Return the primary provenance, falling back to the legacy fields."""
        if self.source_columns:
            return self.source_columns[0]
        if self.source_table and self.source_column:
            return ColumnSource(self.source_table, self.source_column)
        return None

    def with_sources(self, sources: List[ColumnSource]) -> "Column":
        """Return a copy of this column carrying the given provenance."""
        col = Column(
            name=self.name,
            data_type=self.data_type,
            is_nullable=self.is_nullable,
            is_primary_key=self.is_primary_key,
        )
        if sources:
            col.source_columns = list(sources)
            col.source_table = sources[0].table
            col.source_column = sources[0].column
        return col

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "name": self.name,
            "dataType": self.data_type,
            "isNullable": self.is_nullable,
            "isPrimaryKey": self.is_primary_key,
        }
        if self.source_columns:
            out["sourceColumns"] = [s.to_dict() for s in self.source_columns]
        if self.source_table is not None:
            out["sourceTable"] = self.source_table
        if self.source_column is not None:
            out["sourceColumn"] = self.source_column
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Column":
        sources = data.get("sourceColumns")
        return cls(
            name=str(data["name"]),
            data_type=str(data.get("dataType") or DEFAULT_VIEW_COLUMN_TYPE),
            is_nullable=bool(data.get("isNullable", True)),
            is_primary_key=bool(data.get("isPrimaryKey", False)),
            source_columns=[ColumnSource.from_dict(s) for s in sources] if sources else None,
            source_table=data.get("sourceTable"),
            source_column=data.get("sourceColumn"),
        )


@dataclass
class ProcedureParameter:
    """Parameter of a stored procedure or function. Name is always @-prefixed."""
    name: str
    data_type: str
    is_output: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "dataType": self.data_type, "isOutput": self.is_output}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProcedureParameter":
        return cls(
            name=str(data["name"]),
            data_type=str(data.get("dataType") or ""),
            is_output=bool(data.get("isOutput", False)),
        )


@dataclass
class TableNode:
    id: str  # "schema.table"
    name: str
    schema: str
    columns: List[Column] = field(default_factory=list)


@dataclass
class ViewNode:
    id: str  # "schema.view"
    name: str
    schema: str
    columns: List[Column] = field(default_factory=list)
    definition: str = ""
    referenced_tables: List[str] = field(default_factory=list)


@dataclass
class RelationshipEdge:
    """Foreign key between two tables."""
    id: str
    from_table: str
    to_table: str
    from_column: str = ""
    to_column: str = ""


@dataclass
class Trigger:
    id: str  # "schema.table.trigger"
    name: str
    schema: str
    table_id: str
    trigger_type: str = "AFTER"
    is_disabled: bool = False
    fires_on_insert: bool = False
    fires_on_update: bool = False
    fires_on_delete: bool = False
    definition: str = ""
    referenced_tables: List[str] = field(default_factory=list)
    affected_tables: List[str] = field(default_factory=list)


@dataclass
class StoredProcedure:
    id: str
    name: str
    schema: str
    procedure_type: str = "SQL_STORED_PROCEDURE"
    parameters: List[ProcedureParameter] = field(default_factory=list)
    definition: str = ""
    referenced_tables: List[str] = field(default_factory=list)
    affected_tables: List[str] = field(default_factory=list)


@dataclass
class ScalarFunction:
    id: str
    name: str
    schema: str
    function_type: str = "SQL_SCALAR_FUNCTION"
    parameters: List[ProcedureParameter] = field(default_factory=list)
    return_type: str = ""
    definition: str = ""
    referenced_tables: List[str] = field(default_factory=list)
    affected_tables: List[str] = field(default_factory=list)


@dataclass(eq=False)
class SchemaGraph:
    """Snapshot of a database schema: tables, views and programmable objects.

    Compared by identity so that a derived index can be memoised per snapshot.
    """
    tables: List[TableNode] = field(default_factory=list)
    views: List[ViewNode] = field(default_factory=list)
    relationships: List[RelationshipEdge] = field(default_factory=list)
    triggers: List[Trigger] = field(default_factory=list)
    stored_procedures: List[StoredProcedure] = field(default_factory=list)
    scalar_functions: List[ScalarFunction] = field(default_factory=list)

    def get_columns(self, object_id: str) -> List[Column]:
        """Columns of the table or view with the given id (exact match)."""
        for table in self.tables:
            if table.id == object_id:
                return table.columns
        for view in self.views:
            if view.id == object_id:
                return view.columns
        return []


@dataclass
class ViewDefinition:
    """Result of parsing a view definition."""
    columns: List[Column] = field(default_factory=list)
    referenced_tables: List[str] = field(default_factory=list)


@dataclass
class RoutineSignature:
    """Parameters extracted from a routine definition.

    has_signature is False when no @-prefixed token exists in the candidate
    region, which is different from a recognised but empty parameter list.
    """
    parameters: List[ProcedureParameter] = field(default_factory=list)
    has_signature: bool = False


@dataclass
class RoutineReferences:
    """Tables read (referenced) and written (affected) by a routine body."""
    referenced_tables: List[str] = field(default_factory=list)
    affected_tables: List[str] = field(default_factory=list)
