from schemalens.parser_modules.select_items import (
    extract_identifier_chains,
    find_top_level_select,
    match_wildcard,
    parse_select_items,
    split_alias,
)
from schemalens.parser_modules.tokens import tokenize


def texts(items):
    return [" ".join(t.value for t in item) for item in items]


def test_top_level_select_skips_subqueries():
    tokens = tokenize("WITH x AS (SELECT 1 AS a) SELECT a FROM x")
    index = find_top_level_select(tokens)
    assert tokens[index].value == "SELECT"
    assert tokens[index + 1].value == "a"
    assert find_top_level_select(tokenize("UPDATE t SET a = 1")) == -1


def test_modifiers_and_nested_commas():
    items = parse_select_items(tokenize(
        "SELECT DISTINCT TOP (5) PERCENT WITH TIES a, COALESCE(b, c) AS d, "
        "(SELECT MAX(x) FROM y) AS m FROM t"
    ))
    assert texts(items) == [
        "a",
        "COALESCE ( b , c ) AS d",
        "( SELECT MAX ( x ) FROM y ) AS m",
    ]


def test_top_without_parens():
    assert texts(parse_select_items(tokenize("SELECT TOP 10 id FROM t"))) == ["id"]


def test_list_ends_at_into_and_semicolon():
    assert texts(parse_select_items(tokenize("SELECT a, b INTO #tmp FROM t"))) == ["a", "b"]
    assert texts(parse_select_items(tokenize("SELECT 1 AS one; SELECT 2"))) == ["1 AS one"]


def test_no_select():
    assert parse_select_items(tokenize("EXEC dbo.do_things")) == []


class TestSplitAlias:
    def test_as_alias(self):
        split = split_alias(tokenize("ISNULL(o.total, 0) AS [total safe]"))
        assert split.alias == "total safe"
        assert [t.value for t in split.expr_tokens][:2] == ["ISNULL", "("]

    def test_equals_alias(self):
        split = split_alias(tokenize("total_safe = ISNULL(total, 0)"))
        assert split.alias == "total_safe"
        assert split.expr_tokens[0].value == "ISNULL"

    def test_trailing_bare_alias(self):
        split = split_alias(tokenize("o.total amount"))
        assert split.alias == "amount"
        assert [t.value for t in split.expr_tokens] == ["o", ".", "total"]

    def test_qualified_column_is_not_an_alias(self):
        split = split_alias(tokenize("o.total"))
        assert split.alias is None

    def test_keyword_is_not_an_alias(self):
        split = split_alias(tokenize("CASE WHEN a = 1 THEN b END"))
        assert split.alias is None

    def test_as_inside_cast_is_ignored(self):
        split = split_alias(tokenize("CAST(o.total AS int)"))
        assert split.alias is None


def test_match_wildcard():
    assert match_wildcard(tokenize("*")).table_name is None
    assert match_wildcard(tokenize("o.*")).table_name == "o"
    assert match_wildcard(tokenize("dbo.orders.*")).table_name == "dbo.orders"
    assert match_wildcard(tokenize("COUNT(*)")) is None
    assert match_wildcard(tokenize("a")) is None


def test_identifier_chains():
    chains = extract_identifier_chains(tokenize("ISNULL(o.total, c.[credit limit])"))
    assert [c.parts for c in chains] == [["ISNULL"], ["o", "total"], ["c", "[credit limit]"]]
    assert chains[0].end_index == 0
