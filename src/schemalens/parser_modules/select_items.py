from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

from .tokens import (
    Token,
    TokenCursor,
    is_identifier_token,
    normalize_identifier,
    split_top_level,
)

SelectItem = List[Token]

# Clauses that can end a select list at depth 0 besides FROM
_LIST_TERMINATORS = ("from", "into", "where", "union", "order", "group")


@dataclass
class AliasSplit:
    expr_tokens: List[Token]
    alias: Optional[str] = None


@dataclass
class Wildcard:
    table_name: Optional[str] = None  # None for a bare "*"


@dataclass
class IdentifierChain:
    parts: List[str]
    end_index: int


def find_top_level_select(tokens: Sequence[Token]) -> int:
    """Index of the first SELECT at parenthesis depth 0, or -1."""
    depth = 0
    for i, tok in enumerate(tokens):
        if tok.is_sym("("):
            depth += 1
        elif tok.is_sym(")"):
            depth = max(0, depth - 1)
        elif depth == 0 and tok.is_keyword("select"):
            return i
    return -1


def skip_select_modifiers(cursor: TokenCursor) -> None:
    """Skip DISTINCT/ALL and TOP (n) | TOP n [PERCENT] [WITH TIES]."""
    cursor.match_keyword("distinct", "all")
    if not cursor.match_keyword("top"):
        return
    nxt = cursor.peek()
    if nxt is not None and nxt.is_sym("("):
        cursor.skip_balanced()
    elif nxt is not None and nxt.is_word:
        cursor.advance()
    cursor.match_keyword("percent")
    after = cursor.peek(1)
    if cursor.peek() is not None and cursor.peek().is_keyword("with") \
            and after is not None and after.lower == "ties":
        cursor.advance(2)


def parse_select_items(tokens: Sequence[Token]) -> List[SelectItem]:
    """Split the top-level SELECT list into one token list per output column."""
    start = find_top_level_select(tokens)
    if start == -1:
        return []
    cursor = TokenCursor(tokens, start + 1)
    skip_select_modifiers(cursor)

    region: List[Token] = []
    depth = 0
    while not cursor.at_end:
        tok = cursor.peek()
        if tok.is_sym("("):
            depth += 1
        elif tok.is_sym(")"):
            if depth == 0:
                break
            depth -= 1
        elif depth == 0 and (tok.is_keyword(*_LIST_TERMINATORS) or tok.is_sym(";")):
            break
        region.append(tok)
        cursor.advance()
    return split_top_level(region)


def split_alias(tokens: Sequence[Token]) -> AliasSplit:
    """Separate a select item into expression tokens and its alias, if any.

    Recognises "expr AS alias", "alias = expr" and "expr alias".
    """
    items = list(tokens)
    depth = 0
    as_index = -1
    for i, tok in enumerate(items):
        if tok.is_sym("("):
            depth += 1
        elif tok.is_sym(")"):
            depth = max(0, depth - 1)
        elif depth == 0 and tok.is_keyword("as"):
            as_index = i

    if as_index != -1 and as_index + 1 < len(items) and items[as_index + 1].is_word:
        return AliasSplit(items[:as_index], normalize_identifier(items[as_index + 1].value))

    if len(items) > 2 and items[1].is_sym("=") and is_identifier_token(items[0]) \
            and not items[0].value.startswith("@"):
        return AliasSplit(items[2:], normalize_identifier(items[0].value))

    if len(items) > 1:
        last, before = items[-1], items[-2]
        if is_identifier_token(last) and not before.is_sym("."):
            return AliasSplit(items[:-1], normalize_identifier(last.value))

    return AliasSplit(items)


def match_wildcard(tokens: Sequence[Token]) -> Optional[Wildcard]:
    """Recognise "*" and "qualifier.*" (qualifier may itself be dotted)."""
    if len(tokens) == 1 and tokens[0].is_sym("*"):
        return Wildcard()
    if len(tokens) >= 3 and tokens[-1].is_sym("*") and tokens[-2].is_sym("."):
        cursor = TokenCursor(tokens)
        parts = cursor.read_qualified_name()
        if parts and cursor.pos == len(tokens) - 2:
            return Wildcard(table_name=".".join(parts))
    return None


def extract_identifier_chains(tokens: Sequence[Token]) -> List[IdentifierChain]:
    """Every dot-joined run of words in an expression, in order."""
    chains: List[IdentifierChain] = []
    cursor = TokenCursor(tokens)
    while not cursor.at_end:
        tok = cursor.peek()
        if not tok.is_word:
            cursor.advance()
            continue
        parts = cursor.read_qualified_name()
        chains.append(IdentifierChain(parts=parts, end_index=cursor.pos - 1))
    return chains
