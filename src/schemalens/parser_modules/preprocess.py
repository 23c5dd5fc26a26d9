from __future__ import annotations


def _is_word_char(ch: str) -> bool:
    return ch.isalnum() or ch in "_@#$"


def _skip_delimited(sql: str, start: int, close: str) -> int:
    """Index just past a [..] or ".." identifier opened at start."""
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


def sanitize_sql(sql: str) -> str:
    """Blank out string literals and comments, keeping the text length.

    Every character of a '...' literal (with '' escapes and an optional N
    prefix), a -- line comment or a /* ... */ block comment is replaced by a
    space, delimiters included. Bracketed and double-quoted identifiers are
    copied as they are, so "--" or "'" inside them starts nothing.
    Newlines are kept so line numbers still line up with the input.
    Unterminated literals and comments run to the end of the input.
    """
    if not sql:
        return ""
    out = []
    i = 0
    n = len(sql)

    def blank(ch: str) -> str:
        return ch if ch in "\r\n" else " "

    while i < n:
        ch = sql[i]
        nxt = sql[i + 1] if i + 1 < n else ""

        if ch in "[\"":
            end = _skip_delimited(sql, i, "]" if ch == "[" else '"')
            out.append(sql[i:end])
            i = end
            continue

        if ch == "-" and nxt == "-":
            out.append("  ")
            i += 2
            while i < n and sql[i] != "\n":
                out.append(blank(sql[i]))
                i += 1
            continue

        if ch == "/" and nxt == "*":
            out.append("  ")
            i += 2
            while i < n and not (sql[i] == "*" and i + 1 < n and sql[i + 1] == "/"):
                out.append(blank(sql[i]))
                i += 1
            if i < n:
                out.append("  ")
                i += 2
            continue

        if ch in "Nn" and nxt == "'" and (i == 0 or not _is_word_char(sql[i - 1])):
            # N'...' unicode literal prefix
            out.append(" ")
            i += 1
            continue

        if ch == "'":
            out.append(" ")
            i += 1
            while i < n:
                if sql[i] == "'" and i + 1 < n and sql[i + 1] == "'":
                    out.append("  ")
                    i += 2
                    continue
                if sql[i] == "'":
                    out.append(" ")
                    i += 1
                    break
                out.append(blank(sql[i]))
                i += 1
            continue

        out.append(ch)
        i += 1

    return "".join(out)
