from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from .catalog import dump_schema_graph, load_schema_graph
from .config import RuntimeConfig
from .models import SchemaGraph
from .parser import (
    parse_function_return_type,
    parse_routine_definition,
    parse_routine_parameters,
    parse_view_definition,
    tokenize_definition,
)
from .parser_modules.create_handlers import parse_object_header

logger = logging.getLogger(__name__)


@dataclass
class EnrichRequest:
    catalog: Path
    out: Path
    default_schema: Optional[str] = None


@dataclass
class AnalyzeRequest:
    sql_dir: Path
    out_dir: Path
    catalog: Optional[Path] = None
    include: Optional[List[str]] = None
    exclude: Optional[List[str]] = None
    default_schema: Optional[str] = None


class Engine:
    def __init__(self, config: RuntimeConfig):
        self.config = config

    def _default_schema(self, req_value: Optional[str]) -> Optional[str]:
        return req_value or self.config.default_schema

    def run_enrich(self, req: EnrichRequest) -> Dict[str, Any]:
        """
        Re-derive lineage and table references for every object in a catalog:
        views get columns + referenced tables, routines get parameters,
        return types and read/write tables. Writes the enriched catalog.
        """
        graph = load_schema_graph(req.catalog)
        default_schema = self._default_schema(req.default_schema)
        warnings = 0
        rows: List[Dict[str, Any]] = []

        for view in sorted(graph.views, key=lambda v: v.id.lower()):
            if not view.definition.strip():
                continue
            try:
                parsed = parse_view_definition(
                    view.definition, graph,
                    fallback_columns=view.columns,
                    default_schema=default_schema,
                )
            except Exception as exc:
                warnings += 1
                logger.warning("Failed to analyse view %s: %s", view.id, exc)
                continue
            view.columns = parsed.columns
            view.referenced_tables = parsed.referenced_tables
            rows.append({
                "object": view.id, "kind": "view",
                "items": len(view.columns),
                "referenced": ", ".join(view.referenced_tables), "affected": "",
            })
            logger.info("view %s: %d columns", view.id, len(view.columns))

        routines: List[tuple] = (
            [("trigger", t) for t in graph.triggers]
            + [("procedure", p) for p in graph.stored_procedures]
            + [("function", f) for f in graph.scalar_functions]
        )
        for kind, obj in sorted(routines, key=lambda r: r[1].id.lower()):
            if not obj.definition.strip():
                continue
            try:
                refs = parse_routine_definition(obj.definition, graph, default_schema=default_schema)
                obj.referenced_tables = refs.referenced_tables
                obj.affected_tables = refs.affected_tables
                if kind in ("procedure", "function"):
                    signature = parse_routine_parameters(obj.definition)
                    if signature.has_signature:
                        obj.parameters = signature.parameters
                if kind == "function":
                    obj.return_type = parse_function_return_type(obj.definition) or obj.return_type
            except Exception as exc:
                warnings += 1
                logger.warning("Failed to analyse %s %s: %s", kind, obj.id, exc)
                continue
            rows.append({
                "object": obj.id, "kind": kind,
                "items": len(getattr(obj, "parameters", []) or []),
                "referenced": ", ".join(obj.referenced_tables),
                "affected": ", ".join(obj.affected_tables),
            })

        out = dump_schema_graph(graph, req.out)
        return {
            "columns": ["object", "kind", "items", "referenced", "affected"],
            "rows": rows,
            "objects": len(rows),
            "views": sum(1 for r in rows if r["kind"] == "view"),
            "routines": sum(1 for r in rows if r["kind"] != "view"),
            "warnings": warnings,
            "out": str(out),
        }

    def analyze_file(self, sql_text: str, graph: SchemaGraph, default_schema: Optional[str] = None) -> Dict[str, Any]:
        """Parse one object definition according to its CREATE/ALTER header."""
        default_schema = self._default_schema(default_schema)
        header = parse_object_header(tokenize_definition(sql_text))
        kind = header.kind if header else None
        result: Dict[str, Any] = {"kind": kind, "name": header.name if header else None}

        if kind == "view":
            parsed = parse_view_definition(sql_text, graph, default_schema=default_schema)
            result["columns"] = [c.to_dict() for c in parsed.columns]
            result["referencedTables"] = parsed.referenced_tables
            return result

        refs = parse_routine_definition(sql_text, graph, default_schema=default_schema)
        result["referencedTables"] = refs.referenced_tables
        result["affectedTables"] = refs.affected_tables
        if kind in ("procedure", "function"):
            signature = parse_routine_parameters(sql_text)
            result["parameters"] = [p.to_dict() for p in signature.parameters]
            result["hasSignature"] = signature.has_signature
        if kind == "function":
            result["returnType"] = parse_function_return_type(sql_text)
        return result

    def run_analyze(self, req: AnalyzeRequest) -> Dict[str, Any]:
        """Analyse every matching .sql file and write one JSON artefact per file."""
        graph = load_schema_graph(req.catalog) if req.catalog else SchemaGraph()
        includes = list(req.include or self.config.include or [])
        excludes = list(req.exclude or self.config.exclude or [])

        def match_any(p: Path, patterns: List[str]) -> bool:
            return any(p.match(g) for g in patterns)

        sql_root = Path(req.sql_dir)
        sql_files = [
            p for p in sorted(sql_root.rglob("*.sql"))
            if (not includes or match_any(p, includes)) and not match_any(p, excludes)
        ]

        out_dir = Path(req.out_dir)
        out_dir.mkdir(parents=True, exist_ok=True)
        rows: List[Dict[str, Any]] = []
        warnings = 0

        for sql_path in sql_files:
            try:
                sql_text = sql_path.read_text(encoding="utf-8-sig")
            except (OSError, UnicodeDecodeError) as exc:
                warnings += 1
                logger.warning("Cannot read %s: %s", sql_path, exc)
                continue
            payload = self.analyze_file(sql_text, graph, req.default_schema)
            if payload["kind"] is None:
                warnings += 1
                logger.warning("No CREATE/ALTER header in %s", sql_path)
            target = out_dir / f"{sql_path.stem}.json"
            target.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
            rows.append({"file": str(sql_path), "kind": payload["kind"] or "-", "output": str(target)})

        return {"columns": ["file", "kind", "output"], "rows": rows, "warnings": warnings}
