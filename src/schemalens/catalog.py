"""
Read and write SchemaGraph catalogs (YAML or JSON, camelCase keys).
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List

import yaml

from .errors import CatalogError
from .models import (
    Column,
    ProcedureParameter,
    RelationshipEdge,
    ScalarFunction,
    SchemaGraph,
    StoredProcedure,
    TableNode,
    Trigger,
    ViewNode,
)

logger = logging.getLogger(__name__)

_YAML_SUFFIXES = (".yml", ".yaml")


def _object_id(data: Dict[str, Any]) -> str:
    if data.get("id"):
        return str(data["id"])
    schema = data.get("schema") or "dbo"
    return f"{schema}.{data['name']}"


def _columns(data: Dict[str, Any]) -> List[Column]:
    return [Column.from_dict(c) for c in data.get("columns") or []]


def _parameters(data: Dict[str, Any]) -> List[ProcedureParameter]:
    return [ProcedureParameter.from_dict(p) for p in data.get("parameters") or []]


def schema_graph_from_dict(data: Dict[str, Any]) -> SchemaGraph:
    """Build a SchemaGraph from a plain mapping; missing sections are empty."""
    if not isinstance(data, dict):
        raise CatalogError(f"catalog must be a mapping, got {type(data).__name__}")
    try:
        graph = SchemaGraph()
        for t in data.get("tables") or []:
            graph.tables.append(TableNode(
                id=_object_id(t), name=t["name"], schema=t.get("schema") or "dbo",
                columns=_columns(t),
            ))
        for v in data.get("views") or []:
            graph.views.append(ViewNode(
                id=_object_id(v), name=v["name"], schema=v.get("schema") or "dbo",
                columns=_columns(v),
                definition=v.get("definition") or "",
                referenced_tables=list(v.get("referencedTables") or []),
            ))
        for i, r in enumerate(data.get("relationships") or []):
            graph.relationships.append(RelationshipEdge(
                id=str(r.get("id") or f"fk_{i}"),
                from_table=r["from"], to_table=r["to"],
                from_column=r.get("fromColumn") or "",
                to_column=r.get("toColumn") or "",
            ))
        for tr in data.get("triggers") or []:
            schema = tr.get("schema") or "dbo"
            graph.triggers.append(Trigger(
                id=tr.get("id") or f"{tr['tableId']}.{tr['name']}",
                name=tr["name"], schema=schema, table_id=tr["tableId"],
                trigger_type=tr.get("triggerType") or "AFTER",
                is_disabled=bool(tr.get("isDisabled", False)),
                fires_on_insert=bool(tr.get("firesOnInsert", False)),
                fires_on_update=bool(tr.get("firesOnUpdate", False)),
                fires_on_delete=bool(tr.get("firesOnDelete", False)),
                definition=tr.get("definition") or "",
                referenced_tables=list(tr.get("referencedTables") or []),
                affected_tables=list(tr.get("affectedTables") or []),
            ))
        for p in data.get("storedProcedures") or []:
            graph.stored_procedures.append(StoredProcedure(
                id=_object_id(p), name=p["name"], schema=p.get("schema") or "dbo",
                procedure_type=p.get("procedureType") or "SQL_STORED_PROCEDURE",
                parameters=_parameters(p),
                definition=p.get("definition") or "",
                referenced_tables=list(p.get("referencedTables") or []),
                affected_tables=list(p.get("affectedTables") or []),
            ))
        for f in data.get("scalarFunctions") or []:
            graph.scalar_functions.append(ScalarFunction(
                id=_object_id(f), name=f["name"], schema=f.get("schema") or "dbo",
                function_type=f.get("functionType") or "SQL_SCALAR_FUNCTION",
                parameters=_parameters(f),
                return_type=f.get("returnType") or "",
                definition=f.get("definition") or "",
                referenced_tables=list(f.get("referencedTables") or []),
                affected_tables=list(f.get("affectedTables") or []),
            ))
    except (KeyError, TypeError, AttributeError) as exc:
        raise CatalogError(f"invalid catalog entry: {exc}") from exc
    return graph


def schema_graph_to_dict(graph: SchemaGraph) -> Dict[str, Any]:
    def cols(columns: List[Column]) -> List[Dict[str, Any]]:
        return [c.to_dict() for c in columns]

    def params(parameters: List[ProcedureParameter]) -> List[Dict[str, Any]]:
        return [p.to_dict() for p in parameters]

    return {
        "tables": [
            {"id": t.id, "name": t.name, "schema": t.schema, "columns": cols(t.columns)}
            for t in graph.tables
        ],
        "views": [
            {"id": v.id, "name": v.name, "schema": v.schema, "columns": cols(v.columns),
             "definition": v.definition, "referencedTables": list(v.referenced_tables)}
            for v in graph.views
        ],
        "relationships": [
            {"id": r.id, "from": r.from_table, "to": r.to_table,
             "fromColumn": r.from_column, "toColumn": r.to_column}
            for r in graph.relationships
        ],
        "triggers": [
            {"id": tr.id, "name": tr.name, "schema": tr.schema, "tableId": tr.table_id,
             "triggerType": tr.trigger_type, "isDisabled": tr.is_disabled,
             "firesOnInsert": tr.fires_on_insert, "firesOnUpdate": tr.fires_on_update,
             "firesOnDelete": tr.fires_on_delete, "definition": tr.definition,
             "referencedTables": list(tr.referenced_tables),
             "affectedTables": list(tr.affected_tables)}
            for tr in graph.triggers
        ],
        "storedProcedures": [
            {"id": p.id, "name": p.name, "schema": p.schema, "procedureType": p.procedure_type,
             "parameters": params(p.parameters), "definition": p.definition,
             "referencedTables": list(p.referenced_tables),
             "affectedTables": list(p.affected_tables)}
            for p in graph.stored_procedures
        ],
        "scalarFunctions": [
            {"id": f.id, "name": f.name, "schema": f.schema, "functionType": f.function_type,
             "parameters": params(f.parameters), "returnType": f.return_type,
             "definition": f.definition, "referencedTables": list(f.referenced_tables),
             "affectedTables": list(f.affected_tables)}
            for f in graph.scalar_functions
        ],
    }


def load_schema_graph(path: Path) -> SchemaGraph:
    """Load a catalog file; the format follows the file suffix."""
    p = Path(path)
    if not p.exists():
        raise CatalogError(f"catalog not found: {p}")
    text = p.read_text(encoding="utf-8")
    try:
        if p.suffix.lower() in _YAML_SUFFIXES:
            data = yaml.safe_load(text) or {}
        else:
            data = json.loads(text)
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise CatalogError(f"cannot parse catalog {p}: {exc}") from exc
    graph = schema_graph_from_dict(data)
    logger.info(
        "Loaded catalog %s: %d tables, %d views, %d routines",
        p, len(graph.tables), len(graph.views),
        len(graph.triggers) + len(graph.stored_procedures) + len(graph.scalar_functions),
    )
    return graph


def dump_schema_graph(graph: SchemaGraph, path: Path) -> Path:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    data = schema_graph_to_dict(graph)
    if p.suffix.lower() in _YAML_SUFFIXES:
        p.write_text(yaml.safe_dump(data, sort_keys=False, allow_unicode=True), encoding="utf-8")
    else:
        p.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
    return p
