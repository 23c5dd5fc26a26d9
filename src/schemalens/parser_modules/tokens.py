"""
Flat token stream over sanitized T-SQL, plus the helpers every clause parser
shares: identifier normalisation, depth-aware splitting and reassembly.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Sequence


class TokenKind(Enum):
    WORD = "word"
    SYMBOL = "symbol"


@dataclass(frozen=True)
class Token:
    value: str
    kind: TokenKind

    @property
    def is_word(self) -> bool:
        return self.kind is TokenKind.WORD

    @property
    def is_symbol(self) -> bool:
        return self.kind is TokenKind.SYMBOL

    @property
    def lower(self) -> str:
        return self.value.lower()

    def is_keyword(self, *values: str) -> bool:
        """True for an unquoted word equal (case-insensitively) to one of values."""
        return self.kind is TokenKind.WORD and self.value.lower() in values

    def is_sym(self, value: str) -> bool:
        return self.kind is TokenKind.SYMBOL and self.value == value


RESERVED_KEYWORDS = frozenset({
    "select", "from", "where", "join", "inner", "left", "right", "full",
    "cross", "outer", "on", "group", "by", "having", "order", "union", "all",
    "distinct", "as", "into", "update", "insert", "delete", "merge", "values",
    "set", "case", "when", "then", "else", "end", "and", "or", "not", "null",
    "is", "in", "exists", "top", "percent", "with", "over", "partition",
    "apply", "using", "create", "alter", "view", "procedure", "function",
    "trigger", "returns", "return", "begin", "declare", "if", "while", "loop",
    "cursor", "open", "fetch", "close", "deallocate",
})

SYMBOLS = frozenset("(),.*=;")

_IDENT_EXTRA = frozenset("_@#$")


def is_keyword(value: str) -> bool:
    return value.lower() in RESERVED_KEYWORDS


def is_identifier_token(token: Optional[Token]) -> bool:
    """Quoted identifiers always qualify; plain words only when not reserved."""
    if token is None or not token.is_word:
        return False
    if token.value.startswith("[") or token.value.startswith('"'):
        return True
    return not is_keyword(token.value)


def _is_ident_char(ch: str) -> bool:
    return (ch.isascii() and ch.isalnum()) or ch in _IDENT_EXTRA


def _read_delimited(sql: str, start: int, close: str) -> int:
    """Return the index just past a delimited identifier opened at start."""
    i = start + 1
    n = len(sql)
    while i < n:
        if sql[i] == close:
            if i + 1 < n and sql[i + 1] == close:
                i += 2
                continue
            return i + 1
        i += 1
    return n


def tokenize(sql: str) -> List[Token]:
    """Split sanitized SQL into WORD and SYMBOL tokens.

    Bracketed and double-quoted identifiers keep their delimiters in the token
    value; characters outside the modelled subset are dropped.
    """
    tokens: List[Token] = []
    i = 0
    n = len(sql or "")
    while i < n:
        ch = sql[i]
        if ch.isspace():
            i += 1
            continue
        if ch == "[":
            end = _read_delimited(sql, i, "]")
            tokens.append(Token(sql[i:end], TokenKind.WORD))
            i = end
            continue
        if ch == '"':
            end = _read_delimited(sql, i, '"')
            tokens.append(Token(sql[i:end], TokenKind.WORD))
            i = end
            continue
        if _is_ident_char(ch):
            j = i + 1
            while j < n and _is_ident_char(sql[j]):
                j += 1
            tokens.append(Token(sql[i:j], TokenKind.WORD))
            i = j
            continue
        if ch in SYMBOLS:
            tokens.append(Token(ch, TokenKind.SYMBOL))
        i += 1
    return tokens


def normalize_identifier(raw: str) -> str:
    """Strip one layer of [] or "" delimiters and un-double escaped delimiters."""
    value = (raw or "").strip()
    if not value:
        return value
    if value.startswith("[") and value.endswith("]") and len(value) >= 2:
        value = value[1:-1].replace("]]", "]")
    elif value.startswith('"') and value.endswith('"') and len(value) >= 2:
        value = value[1:-1].replace('""', '"')
    return value.strip()


def normalize_qualified_name(parts: Iterable[str]) -> str:
    return ".".join(p for p in (normalize_identifier(x) for x in parts) if p)


def tokens_to_sql(tokens: Iterable[Token]) -> str:
    """Reassemble tokens into readable SQL, e.g. decimal(10,2) or dbo.MyType."""
    out = ""
    for tok in tokens:
        if tok.is_symbol and tok.value in ".(),":
            out = out.rstrip() + tok.value
            continue
        if not out or out.endswith(("(", ".", ",")):
            out += tok.value
        else:
            out += " " + tok.value
    return out.strip()


def split_top_level(tokens: Sequence[Token], separator: str = ",") -> List[List[Token]]:
    """Split on separator symbols at parenthesis depth 0, dropping empty chunks."""
    chunks: List[List[Token]] = []
    current: List[Token] = []
    depth = 0
    for tok in tokens:
        if tok.is_sym("("):
            depth += 1
        elif tok.is_sym(")"):
            depth = max(0, depth - 1)
        if depth == 0 and tok.is_sym(separator):
            if current:
                chunks.append(current)
            current = []
            continue
        current.append(tok)
    if current:
        chunks.append(current)
    return chunks


def unwrap_parens(tokens: Sequence[Token]) -> List[Token]:
    """Drop one enclosing "( ... )" pair when it spans the whole sequence."""
    items = list(tokens)
    if len(items) < 2 or not items[0].is_sym("(") or not items[-1].is_sym(")"):
        return items
    depth = 0
    for i, tok in enumerate(items):
        if tok.is_sym("("):
            depth += 1
        elif tok.is_sym(")"):
            depth -= 1
            if depth == 0 and i != len(items) - 1:
                return items
    return items[1:-1]


class TokenCursor:
    """Position over a token list with peek/advance helpers.

    Reads past the end return None instead of raising.
    """

    def __init__(self, tokens: Sequence[Token], pos: int = 0):
        self.tokens = tokens
        self.pos = pos

    def __repr__(self) -> str:
        return f"TokenCursor(pos={self.pos}, len={len(self.tokens)})"

    @property
    def at_end(self) -> bool:
        return self.pos >= len(self.tokens)

    def peek(self, offset: int = 0) -> Optional[Token]:
        i = self.pos + offset
        if 0 <= i < len(self.tokens):
            return self.tokens[i]
        return None

    def advance(self, count: int = 1) -> Optional[Token]:
        """Move forward and return the first token stepped over."""
        tok = self.peek()
        self.pos = min(len(self.tokens), self.pos + count)
        return tok

    def fork(self) -> "TokenCursor":
        return TokenCursor(self.tokens, self.pos)

    def match_keyword(self, *values: str) -> bool:
        """Consume the next token if it is one of the given keywords."""
        tok = self.peek()
        if tok is not None and tok.is_keyword(*values):
            self.pos += 1
            return True
        return False

    def read_qualified_name(self) -> List[str]:
        """Consume a dot-separated chain of words and return the raw parts."""
        tok = self.peek()
        if tok is None or not tok.is_word:
            return []
        parts = [tok.value]
        self.pos += 1
        while True:
            dot, nxt = self.peek(), self.peek(1)
            if dot is not None and dot.is_sym(".") and nxt is not None and nxt.is_word:
                parts.append(nxt.value)
                self.pos += 2
                continue
            return parts

    def skip_balanced(self) -> None:
        """Skip a parenthesised group starting at the current "(" token."""
        if not (self.peek() and self.peek().is_sym("(")):
            return
        depth = 0
        while not self.at_end:
            tok = self.advance()
            if tok.is_sym("("):
                depth += 1
            elif tok.is_sym(")"):
                depth -= 1
                if depth == 0:
                    return
