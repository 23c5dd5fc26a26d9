from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence

from .tokens import (
    Token,
    TokenCursor,
    is_identifier_token,
    normalize_identifier,
    normalize_qualified_name,
)

logger = logging.getLogger(__name__)

PSEUDO_TABLES = frozenset({"inserted", "deleted"})


@dataclass
class TableRef:
    name: str
    alias: Optional[str] = None


@dataclass
class TableReferences:
    """Tables read and written by a statement, plus the alias map.

    alias_map keys are lower-cased canonical ids, short names and aliases.
    """
    read_tables: List[str] = field(default_factory=list)
    write_tables: List[str] = field(default_factory=list)
    alias_map: Dict[str, str] = field(default_factory=dict)


def _qualify(normalized: str, name_to_id: Mapping[str, str], default_schema: Optional[str]) -> str:
    if not normalized:
        return ""
    existing = name_to_id.get(normalized.lower())
    if existing:
        return existing
    if "." not in normalized and default_schema:
        return f"{default_schema}.{normalized}"
    return normalized


def resolve_table_name(
    qualified_name: str,
    name_to_id: Mapping[str, str],
    default_schema: Optional[str] = None,
) -> str:
    """Canonical id for a table name; best effort when the schema lacks it."""
    return _qualify(normalize_identifier(qualified_name), name_to_id, default_schema)


def resolve_table_name_from_parts(
    parts: Sequence[str],
    name_to_id: Mapping[str, str],
    default_schema: Optional[str] = None,
) -> str:
    return _qualify(normalize_qualified_name(parts), name_to_id, default_schema)


def resolve_table_from_candidate(
    candidate: str,
    alias_map: Mapping[str, str],
    name_to_id: Mapping[str, str],
    default_schema: Optional[str] = None,
) -> str:
    """Resolve an alias, short name or qualified name seen in an expression."""
    normalized = normalize_identifier(candidate)
    if not normalized:
        return ""
    hit = alias_map.get(normalized.lower())
    if hit:
        return hit
    short = normalized.split(".")[-1]
    if short:
        hit = alias_map.get(short.lower())
        if hit:
            return hit
    return resolve_table_name(normalized, name_to_id, default_schema)


def parse_table_ref(
    cursor: TokenCursor,
    name_to_id: Mapping[str, str],
    default_schema: Optional[str] = None,
) -> Optional[TableRef]:
    """Parse "name [AS] [alias]" at the cursor; derived tables yield None."""
    if not is_identifier_token(cursor.peek()):
        return None
    probe = cursor.fork()
    parts = probe.read_qualified_name()
    name = resolve_table_name_from_parts(parts, name_to_id, default_schema)
    if not name:
        return None
    cursor.pos = probe.pos

    alias: Optional[str] = None
    nxt = cursor.peek()
    if nxt is not None and nxt.is_keyword("as"):
        cursor.advance()
        if is_identifier_token(cursor.peek()):
            alias = cursor.advance().value
    elif is_identifier_token(nxt):
        alias = cursor.advance().value
    return TableRef(name=name, alias=alias)


def parse_table_list(
    cursor: TokenCursor,
    name_to_id: Mapping[str, str],
    default_schema: Optional[str] = None,
) -> List[TableRef]:
    refs: List[TableRef] = []
    while not cursor.at_end:
        ref = parse_table_ref(cursor, name_to_id, default_schema)
        if ref is None:
            break
        refs.append(ref)
        nxt = cursor.peek()
        if nxt is not None and nxt.is_sym(","):
            cursor.advance()
            continue
        break
    return refs


def parse_table_references(
    tokens: Sequence[Token],
    name_to_id: Mapping[str, str],
    default_schema: Optional[str] = None,
) -> TableReferences:
    """Walk the token stream collecting read and write table references.

    FROM takes a comma-separated list; JOIN/USING/APPLY take one table.
    INSERT [INTO], DELETE [FROM], MERGE [INTO] and UPDATE add one write target.
    """
    refs = TableReferences()

    def add(target: List[str], ref: TableRef) -> None:
        target.append(ref.name)
        refs.alias_map[ref.name.lower()] = ref.name
        short = ref.name.split(".")[-1]
        if short:
            refs.alias_map[short.lower()] = ref.name
        if ref.alias:
            refs.alias_map[normalize_identifier(ref.alias).lower()] = ref.name

    def add_one(target: List[str], cursor: TokenCursor) -> None:
        ref = parse_table_ref(cursor, name_to_id, default_schema)
        if ref is not None:
            add(target, ref)

    cursor = TokenCursor(tokens)
    while not cursor.at_end:
        tok = cursor.advance()
        if not tok.is_word:
            continue
        word = tok.lower

        if word == "from":
            for ref in parse_table_list(cursor, name_to_id, default_schema):
                add(refs.read_tables, ref)
        elif word in ("join", "using", "apply"):
            add_one(refs.read_tables, cursor)
        elif word in ("insert", "merge"):
            cursor.match_keyword("into")
            add_one(refs.write_tables, cursor)
        elif word == "delete":
            cursor.match_keyword("from")
            add_one(refs.write_tables, cursor)
        elif word == "update":
            add_one(refs.write_tables, cursor)

    logger.debug(
        "table refs: read=%s write=%s aliases=%d",
        refs.read_tables, refs.write_tables, len(refs.alias_map),
    )
    return refs


def is_pseudo_table(table_name: str) -> bool:
    """True for the trigger-only inserted/deleted relations, in any case."""
    return normalize_identifier(table_name.split(".")[-1]).lower() in PSEUDO_TABLES
