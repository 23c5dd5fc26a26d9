from __future__ import annotations

import logging
from typing import List, Mapping, Optional, Sequence

from ..models import ProcedureParameter, RoutineReferences, RoutineSignature
from .lineage import unique_names
from .table_refs import is_pseudo_table, parse_table_references
from .tokens import Token, TokenCursor, split_top_level, tokens_to_sql, unwrap_parens

logger = logging.getLogger(__name__)

_PROCEDURE_REGION_END = ("as", "begin", "with")
_FRAGMENT_REGION_END = ("as", "begin", "returns")
_RETURN_TYPE_END = ("as", "begin")


def ensure_parameter_name(value: str) -> str:
    trimmed = (value or "").strip()
    if not trimmed:
        return "@param"
    return trimmed if trimmed.startswith("@") else f"@{trimmed}"


def _has_parameter_token(tokens: Sequence[Token]) -> bool:
    return any(t.is_word and t.value.startswith("@") for t in tokens)


def parse_parameter_chunk(tokens: Sequence[Token]) -> Optional[ProcedureParameter]:
    """One "@name [AS] type [= default] [OUTPUT|OUT] [READONLY]" declaration."""
    name_index = next(
        (i for i, t in enumerate(tokens) if t.is_word and t.value.startswith("@")),
        -1,
    )
    if name_index == -1:
        return None

    type_tokens: List[Token] = []
    is_output = False
    in_default = False
    rest = list(tokens[name_index + 1:])
    if rest and rest[0].is_keyword("as"):
        rest = rest[1:]
    for tok in rest:
        if tok.is_sym("="):
            in_default = True
            continue
        if tok.is_keyword("output", "out"):
            is_output = True
            continue
        if tok.is_keyword("readonly") or in_default:
            continue
        type_tokens.append(tok)

    return ProcedureParameter(
        name=ensure_parameter_name(tokens[name_index].value),
        data_type=tokens_to_sql(type_tokens),
        is_output=is_output,
    )


def _signature_from_region(region: Sequence[Token]) -> RoutineSignature:
    region = unwrap_parens(region)
    if not _has_parameter_token(region):
        return RoutineSignature(parameters=[], has_signature=False)
    params = [p for p in map(parse_parameter_chunk, split_top_level(region)) if p is not None]
    return RoutineSignature(parameters=params, has_signature=True)


def _is_type_as(tok: Token, region: Sequence[Token]) -> bool:
    """AS directly after a parameter name, as in "@p AS int"."""
    return tok.is_keyword("as") and bool(region) and region[-1].is_word \
        and region[-1].value.startswith("@")


def _collect_until(cursor: TokenCursor, stop_words: Sequence[str]) -> List[Token]:
    """Tokens up to the first stop word at parenthesis depth 0."""
    region: List[Token] = []
    depth = 0
    while not cursor.at_end:
        tok = cursor.peek()
        if tok.is_sym("("):
            depth += 1
        elif tok.is_sym(")"):
            depth = max(0, depth - 1)
        elif depth == 0 and tok.is_keyword(*stop_words) and not _is_type_as(tok, region):
            break
        region.append(tok)
        cursor.advance()
    return region


def _collect_parenthesised(cursor: TokenCursor) -> List[Token]:
    """Tokens inside the "( ... )" group opening at the cursor."""
    region: List[Token] = []
    cursor.advance()
    depth = 0
    while not cursor.at_end:
        tok = cursor.advance()
        if tok.is_sym("("):
            depth += 1
        elif tok.is_sym(")"):
            if depth == 0:
                break
            depth -= 1
        region.append(tok)
    return region


def parse_routine_signature(tokens: Sequence[Token]) -> RoutineSignature:
    """Extract the parameter list of a procedure, function or bare fragment."""
    routine_index, kind = -1, None
    for i, tok in enumerate(tokens):
        if tok.is_keyword("function"):
            routine_index, kind = i, "function"
            break
        if tok.is_keyword("procedure", "proc"):
            routine_index, kind = i, "procedure"
            break

    if kind is None:
        return _signature_from_region(_collect_until(TokenCursor(tokens), _FRAGMENT_REGION_END))

    cursor = TokenCursor(tokens, routine_index + 1)
    cursor.read_qualified_name()

    if kind == "function":
        while cursor.match_keyword("as"):
            pass
        opening = cursor.peek()
        if opening is None or not opening.is_sym("("):
            logger.debug("function header without a parameter list")
            return RoutineSignature(parameters=[], has_signature=False)
        return _signature_from_region(_collect_parenthesised(cursor))

    return _signature_from_region(_collect_until(cursor, _PROCEDURE_REGION_END))


def parse_return_type(tokens: Sequence[Token]) -> Optional[str]:
    """Type expression following the first RETURNS, or None."""
    start = next((i for i, t in enumerate(tokens) if t.is_keyword("returns")), -1)
    if start == -1:
        return None
    type_tokens: List[Token] = []
    for tok in tokens[start + 1:]:
        if tok.is_keyword(*_RETURN_TYPE_END) or tok.is_sym(";"):
            break
        type_tokens.append(tok)
    return tokens_to_sql(type_tokens) or None


def analyze_routine_body(
    tokens: Sequence[Token],
    name_to_id: Mapping[str, str],
    default_schema: Optional[str] = None,
) -> RoutineReferences:
    """Tables read and written by a routine body, without inserted/deleted."""
    refs = parse_table_references(tokens, name_to_id, default_schema)
    known_ids = {v.lower() for v in name_to_id.values()}

    def resolve(table: str) -> str:
        hit = refs.alias_map.get(table.lower(), table)
        if hit.lower() in known_ids:
            return hit
        # UPDATE/DELETE target written as an alias declared later in FROM
        short = hit.split(".")[-1].lower()
        target = refs.alias_map.get(short)
        if target is None or target.split(".")[-1].lower() == short:
            # short is another table's name, not an alias
            return hit
        return target

    def finish(tables: Sequence[str]) -> List[str]:
        return unique_names(t for t in map(resolve, tables) if not is_pseudo_table(t))

    return RoutineReferences(
        referenced_tables=finish(refs.read_tables),
        affected_tables=finish(refs.write_tables),
    )
