from schemalens.parser_modules.table_refs import (
    is_pseudo_table,
    parse_table_references,
    resolve_table_from_candidate,
    resolve_table_name,
)
from schemalens.parser_modules.tokens import tokenize
from schemalens.schema_index import get_schema_index


class TestResolveTableName:
    def setup_method(self):
        self.name_to_id = {"orders": "dbo.orders", "dbo.orders": "dbo.orders"}

    def test_known_short_and_bracketed_names(self):
        assert resolve_table_name("orders", self.name_to_id) == "dbo.orders"
        assert resolve_table_name("[orders]", self.name_to_id) == "dbo.orders"
        assert resolve_table_name("DBO.ORDERS", self.name_to_id) == "dbo.orders"

    def test_unknown_names_get_default_schema_only_when_unqualified(self):
        assert resolve_table_name("audit", {}, "dbo") == "dbo.audit"
        assert resolve_table_name("stage.audit", {}, "dbo") == "stage.audit"
        assert resolve_table_name("audit", {}) == "audit"

    def test_candidate_prefers_alias_map(self):
        alias_map = {"o": "dbo.orders"}
        assert resolve_table_from_candidate("o", alias_map, {}) == "dbo.orders"
        assert resolve_table_from_candidate("[o]", alias_map, {}) == "dbo.orders"
        assert resolve_table_from_candidate("x.o", alias_map, {}) == "dbo.orders"
        assert resolve_table_from_candidate("", alias_map, {}) == ""


def refs_for(sql, schema, default_schema=None):
    name_to_id = get_schema_index(schema).name_to_id
    return parse_table_references(tokenize(sql), name_to_id, default_schema)


def test_from_list_and_joins(schema):
    refs = refs_for(
        "SELECT * FROM orders o, dbo.customers AS c "
        "LEFT JOIN [sales].[invoices] i ON i.invoice_id = o.id",
        schema,
    )
    assert refs.read_tables == ["dbo.orders", "dbo.customers", "sales.invoices"]
    assert refs.write_tables == []
    assert refs.alias_map["o"] == "dbo.orders"
    assert refs.alias_map["c"] == "dbo.customers"
    assert refs.alias_map["i"] == "sales.invoices"
    assert refs.alias_map["invoices"] == "sales.invoices"
    assert refs.alias_map["sales.invoices"] == "sales.invoices"


def test_derived_tables_are_skipped(schema):
    refs = refs_for("SELECT x.id FROM (SELECT id FROM orders) x", schema)
    assert refs.read_tables == ["dbo.orders"]


def test_write_targets(schema):
    refs = refs_for(
        "INSERT INTO dbo.audit (id) SELECT id FROM orders; "
        "UPDATE customers SET name = name; "
        "DELETE FROM orders WHERE id = 1; "
        "DELETE invoices",
        schema,
        default_schema="dbo",
    )
    assert refs.write_tables == ["dbo.audit", "dbo.customers", "dbo.orders", "sales.invoices"]
    assert refs.read_tables == ["dbo.orders"]


def test_merge_update_set_is_not_a_table(schema):
    refs = refs_for(
        "MERGE INTO dbo.orders AS t USING dbo.staging AS s ON t.id = s.id "
        "WHEN MATCHED THEN UPDATE SET t.total = s.total "
        "WHEN NOT MATCHED THEN INSERT (id, total) VALUES (s.id, s.total);",
        schema,
    )
    assert refs.write_tables == ["dbo.orders"]
    assert refs.read_tables == ["dbo.staging"]
    assert "set" not in refs.alias_map


def test_apply_and_using(schema):
    refs = refs_for("SELECT * FROM orders o CROSS APPLY dbo.fn_lines l", schema)
    assert refs.read_tables == ["dbo.orders", "dbo.fn_lines"]
    assert refs.alias_map["l"] == "dbo.fn_lines"


def test_malformed_input_does_not_raise(schema):
    assert refs_for("FROM", schema).read_tables == []
    assert refs_for("SELECT FROM , JOIN ON", schema).read_tables == []
    assert refs_for("", schema).read_tables == []


def test_pseudo_tables():
    assert is_pseudo_table("inserted")
    assert is_pseudo_table("DELETED")
    assert is_pseudo_table("dbo.Inserted")
    assert is_pseudo_table("[deleted]")
    assert not is_pseudo_table("dbo.orders")
