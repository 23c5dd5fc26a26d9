from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .catalog import load_schema_graph
from .config import RuntimeConfig, load_config
from .engine import AnalyzeRequest, Engine, EnrichRequest
from .errors import SchemaLensError
from .generator import (
    generate_function_definition,
    generate_procedure_definition,
    generate_view_definition,
)
from .models import SchemaGraph
from .parser import (
    parse_function_return_type,
    parse_routine_definition,
    parse_routine_parameters,
    parse_view_definition,
)


app = typer.Typer(add_completion=False, no_args_is_help=True, help="schemalens CLI")
console = Console()

_LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def version_callback(value: bool):
    from . import __version__

    if value:
        console.print(f"schemalens {__version__}")
        raise typer.Exit()


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=_LOG_LEVELS.get((level or "info").lower(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
        force=True,
    )


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(None, exists=True, dir_okay=False, help="Path to schemalens.yml"),
    log_level: Optional[str] = typer.Option(None, help="log level: debug|info|warn|error"),
    format: Optional[str] = typer.Option(None, help="output format: text|json"),
    version: bool = typer.Option(False, "--version", callback=version_callback, is_eager=True, help="Show version and exit"),
):
    ctx.ensure_object(dict)
    try:
        cfg = load_config(config)
    except SchemaLensError as exc:
        _fail(exc)
    # override with CLI flags (precedence)
    if log_level:
        cfg.log_level = log_level
    if format:
        cfg.output_format = format
    _configure_logging(cfg.log_level)
    ctx.obj["cfg"] = cfg


def _fail(exc: Exception) -> None:
    console.print(f"[red]error:[/red] {escape(str(exc))}", soft_wrap=True)
    raise typer.Exit(code=1)


def _load_graph(catalog: Optional[Path], cfg: RuntimeConfig) -> SchemaGraph:
    path = catalog or (Path(cfg.catalog) if cfg.catalog else None)
    if path is None:
        return SchemaGraph()
    try:
        return load_schema_graph(path)
    except SchemaLensError as exc:
        _fail(exc)


def _read_sql(path: Path) -> str:
    return path.read_text(encoding="utf-8-sig")


@app.command()
def view(
    ctx: typer.Context,
    sql_file: Path = typer.Argument(..., exists=True, dir_okay=False),
    catalog: Optional[Path] = typer.Option(None, exists=True, dir_okay=False),
    default_schema: Optional[str] = typer.Option(None),
):
    """Show the output columns of a view definition with their lineage."""
    cfg: RuntimeConfig = ctx.obj["cfg"]
    graph = _load_graph(catalog, cfg)
    parsed = parse_view_definition(
        _read_sql(sql_file), graph, default_schema=default_schema or cfg.default_schema
    )
    payload = {
        "columns": ["name", "dataType", "nullable", "sources"],
        "rows": [
            {
                "name": c.name,
                "dataType": c.data_type,
                "nullable": c.is_nullable,
                "sources": ", ".join(f"{s.table}.{s.column}" for s in c.source_columns or []),
            }
            for c in parsed.columns
        ],
        "referencedTables": parsed.referenced_tables,
    }
    if cfg.output_format == "json":
        payload = {
            "columns": [c.to_dict() for c in parsed.columns],
            "referencedTables": parsed.referenced_tables,
        }
    _emit(payload, cfg.output_format)


@app.command()
def routine(
    ctx: typer.Context,
    sql_file: Path = typer.Argument(..., exists=True, dir_okay=False),
    catalog: Optional[Path] = typer.Option(None, exists=True, dir_okay=False),
    default_schema: Optional[str] = typer.Option(None),
):
    """Show parameters, return type and table usage of a routine."""
    cfg: RuntimeConfig = ctx.obj["cfg"]
    graph = _load_graph(catalog, cfg)
    sql = _read_sql(sql_file)
    signature = parse_routine_parameters(sql)
    refs = parse_routine_definition(sql, graph, default_schema=default_schema or cfg.default_schema)
    payload: Dict[str, Any] = {
        "parameters": [p.to_dict() for p in signature.parameters],
        "hasSignature": signature.has_signature,
        "returnType": parse_function_return_type(sql),
        "referencedTables": refs.referenced_tables,
        "affectedTables": refs.affected_tables,
    }
    if cfg.output_format != "json":
        payload["columns"] = ["name", "dataType", "isOutput"]
        payload["rows"] = payload["parameters"]
    _emit(payload, cfg.output_format)


@app.command()
def analyze(
    ctx: typer.Context,
    sql_dir: Optional[Path] = typer.Option(None, exists=True, file_okay=False),
    out_dir: Optional[Path] = typer.Option(None, file_okay=False),
    catalog: Optional[Path] = typer.Option(None, exists=True, dir_okay=False),
    include: Optional[str] = typer.Option(None, help="Glob include pattern"),
    exclude: Optional[str] = typer.Option(None, help="Glob exclude pattern"),
):
    """Analyse every .sql file in a directory and write JSON artefacts."""
    cfg: RuntimeConfig = ctx.obj["cfg"]
    engine = Engine(cfg)
    req = AnalyzeRequest(
        sql_dir=sql_dir or Path(cfg.sql_dir),
        out_dir=out_dir or Path(cfg.out_dir),
        catalog=catalog or (Path(cfg.catalog) if cfg.catalog else None),
        include=[include] if include else None,
        exclude=[exclude] if exclude else None,
    )
    try:
        result = engine.run_analyze(req)
    except SchemaLensError as exc:
        _fail(exc)
    _emit(result, cfg.output_format)


@app.command()
def enrich(
    ctx: typer.Context,
    catalog: Optional[Path] = typer.Option(None, exists=True, dir_okay=False),
    out: Optional[Path] = typer.Option(None, dir_okay=False),
    default_schema: Optional[str] = typer.Option(None),
):
    """Recompute lineage and table references for every object in a catalog."""
    cfg: RuntimeConfig = ctx.obj["cfg"]
    catalog_path = catalog or (Path(cfg.catalog) if cfg.catalog else None)
    if catalog_path is None:
        _fail(SchemaLensError("no catalog given (use --catalog or set catalog in schemalens.yml)"))
    req = EnrichRequest(
        catalog=catalog_path,
        out=out or Path(cfg.out_dir) / "catalog.json",
        default_schema=default_schema,
    )
    try:
        result = Engine(cfg).run_enrich(req)
    except SchemaLensError as exc:
        _fail(exc)
    _emit(result, cfg.output_format)


@app.command()
def generate(
    ctx: typer.Context,
    kind: str = typer.Argument(..., help="view|procedure|function"),
    object_id: str = typer.Argument(..., help="schema.name of the object in the catalog"),
    catalog: Optional[Path] = typer.Option(None, exists=True, dir_okay=False),
    header: bool = typer.Option(True, "--header/--no-header", help="Emit CREATE ... AS header"),
):
    """Print canonical SQL for a catalog object from its metadata."""
    cfg: RuntimeConfig = ctx.obj["cfg"]
    graph = _load_graph(catalog, cfg)
    key = object_id.lower()
    kind = kind.lower()

    if kind == "view":
        found = next((v for v in graph.views if v.id.lower() == key), None)
        if found is not None:
            sql = generate_view_definition(found.columns, found.schema, found.name, include_header=header)
    elif kind == "procedure":
        found = next((p for p in graph.stored_procedures if p.id.lower() == key), None)
        if found is not None:
            sql = generate_procedure_definition(found.parameters, found.schema, found.name, include_header=header)
    elif kind == "function":
        found = next((f for f in graph.scalar_functions if f.id.lower() == key), None)
        if found is not None:
            sql = generate_function_definition(
                found.parameters, found.return_type, found.schema, found.name, include_header=header
            )
    else:
        _fail(SchemaLensError(f"unknown kind '{kind}' (expected view|procedure|function)"))

    if found is None:
        _fail(SchemaLensError(f"{kind} '{object_id}' not found in catalog"))
    sys.stdout.write(sql + "\n")


def _emit(payload: dict, fmt: str) -> None:
    if fmt == "json":
        sys.stdout.write(json.dumps(payload, indent=2, ensure_ascii=False) + "\n")
        return

    if "rows" in payload and isinstance(payload["rows"], list):
        table = Table(show_header=True)
        for k in payload.get("columns", []):
            table.add_column(k)
        for r in payload["rows"]:
            table.add_row(*[str(r.get(c, "")) for c in payload.get("columns", [])])
        console.print(table)
        extras = {k: v for k, v in payload.items() if k not in ("rows", "columns", "parameters")}
        if extras:
            console.print(extras)
    else:
        console.print(payload)


def entrypoint() -> None:
    app()


if __name__ == "__main__":
    entrypoint()
