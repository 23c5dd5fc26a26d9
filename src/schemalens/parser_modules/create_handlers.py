from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

from .tokens import Token, TokenCursor, normalize_identifier, normalize_qualified_name

_OBJECT_KINDS = ("view", "procedure", "proc", "function", "trigger")


@dataclass
class ObjectHeader:
    kind: str  # view | procedure | function | trigger
    name: str  # normalised, possibly schema-qualified


def _is_create_or_alter(tokens: Sequence[Token], index: int) -> bool:
    """True when one of the three words before index is CREATE or ALTER."""
    before = [t.lower for t in tokens[max(0, index - 3):index] if t.is_word]
    return "create" in before or "alter" in before


def parse_object_header(tokens: Sequence[Token]) -> Optional[ObjectHeader]:
    """Find "CREATE|ALTER [OR ALTER] <kind> <name>" and return kind and name."""
    for i, tok in enumerate(tokens):
        if not tok.is_keyword(*_OBJECT_KINDS) or not _is_create_or_alter(tokens, i):
            continue
        cursor = TokenCursor(tokens, i + 1)
        name = normalize_qualified_name(cursor.read_qualified_name())
        if not name:
            return None
        kind = "procedure" if tok.lower == "proc" else tok.lower
        return ObjectHeader(kind=kind, name=name)
    return None


def parse_view_column_list(tokens: Sequence[Token]) -> List[str]:
    """Column names declared in "CREATE VIEW name (c1, c2, ...) AS", if any."""
    for i, tok in enumerate(tokens):
        if not tok.is_keyword("view") or not _is_create_or_alter(tokens, i):
            continue
        cursor = TokenCursor(tokens, i + 1)
        cursor.read_qualified_name()
        opening = cursor.peek()
        if opening is None or not opening.is_sym("("):
            continue
        cursor.advance()

        columns: List[str] = []
        depth = 0
        while not cursor.at_end:
            current = cursor.advance()
            if current.is_sym("("):
                depth += 1
            elif current.is_sym(")"):
                if depth == 0:
                    break
                depth -= 1
            elif depth == 0 and current.is_word:
                name = normalize_identifier(current.value)
                if name:
                    columns.append(name)
        return columns
    return []
