import sqlglot
from sqlglot import exp

from schemalens.generator import (
    format_identifier_part,
    format_qualified_name,
    generate_function_definition,
    generate_procedure_definition,
    generate_view_definition,
)
from schemalens.models import Column, ColumnSource, ProcedureParameter
from schemalens.parser import (
    parse_function_return_type,
    parse_routine_parameters,
    parse_view_definition,
)


def sourced(name, table, column):
    return Column(name=name).with_sources([ColumnSource(table, column)])


def lineage_pairs(columns):
    return {
        (c.name, tuple((s.table.lower(), s.column) for s in c.source_columns or []))
        for c in columns
    }


class TestIdentifiers:
    def test_bracket_quoting(self):
        assert format_identifier_part("total") == "[total]"
        assert format_identifier_part("odd]name") == "[odd]]name]"
        assert format_qualified_name("dbo.orders") == "[dbo].[orders]"


class TestViewGeneration:
    def test_single_source_table(self):
        sql = generate_view_definition([
            sourced("id", "dbo.orders", "id"),
            sourced("order_total", "dbo.orders", "total"),
        ])
        assert sql == "SELECT\n  [id],\n  [total] AS [order_total]\nFROM [dbo].[orders]"

    def test_mixed_sources_are_qualified_without_from(self):
        sql = generate_view_definition([
            sourced("id", "dbo.orders", "id"),
            sourced("customer", "dbo.customers", "name"),
        ])
        assert sql == (
            "SELECT\n  [dbo].[orders].[id],\n  [dbo].[customers].[name] AS [customer]"
        )
        assert "FROM" not in sql

    def test_no_sources(self):
        sql = generate_view_definition([Column(name="a"), Column(name="b")])
        assert sql == "SELECT\n  [a],\n  [b]"

    def test_legacy_single_source_fields(self):
        col = Column(name="total", source_table="dbo.orders", source_column="total")
        assert generate_view_definition([col]) == "SELECT\n  [total]\nFROM [dbo].[orders]"

    def test_empty(self):
        assert generate_view_definition([]) == ""

    def test_header(self):
        sql = generate_view_definition(
            [sourced("id", "dbo.orders", "id")], schema="dbo", name="v_orders", include_header=True
        )
        assert sql.startswith("CREATE VIEW [dbo].[v_orders]\nAS\nSELECT")

    def test_output_is_valid_tsql(self):
        sql = generate_view_definition([
            sourced("id", "dbo.orders", "id"),
            sourced("order_total", "dbo.orders", "total"),
        ])
        select = sqlglot.parse_one(sql, read="tsql")
        assert isinstance(select, exp.Select)
        assert select.named_selects == ["id", "order_total"]

        created = sqlglot.parse_one(
            generate_view_definition(
                [sourced("id", "dbo.orders", "id")], "dbo", "v_orders", include_header=True
            ),
            read="tsql",
        )
        assert isinstance(created, exp.Create)

    def test_round_trip_recovers_lineage(self, schema):
        columns = [
            sourced("id", "dbo.orders", "id"),
            sourced("order_total", "dbo.orders", "total"),
            sourced("state", "dbo.orders", "status"),
        ]
        parsed = parse_view_definition(generate_view_definition(columns), schema)
        assert lineage_pairs(parsed.columns) == lineage_pairs(columns)

    def test_round_trip_with_header_and_odd_names(self, schema):
        columns = [sourced("weird]name", "dbo.customers", "email")]
        sql = generate_view_definition(columns, "dbo", "v_odd", include_header=True)
        parsed = parse_view_definition(sql, schema)
        assert lineage_pairs(parsed.columns) == lineage_pairs(columns)
        assert parsed.referenced_tables == ["dbo.customers"]


class TestRoutineGeneration:
    def setup_method(self):
        self.params = [
            ProcedureParameter(name="@id", data_type="int"),
            ProcedureParameter(name="total", data_type="decimal(10,2)", is_output=True),
        ]

    def test_procedure_stub(self):
        assert generate_procedure_definition(self.params) == (
            "  @id int,\n  @total decimal(10,2) OUTPUT\n\nBEGIN\n  SET NOCOUNT ON;\nEND"
        )

    def test_procedure_without_parameters(self):
        assert generate_procedure_definition([]) == "BEGIN\n  SET NOCOUNT ON;\nEND"

    def test_procedure_header(self):
        sql = generate_procedure_definition(self.params, "dbo", "usp_x", include_header=True)
        assert sql.startswith("CREATE PROCEDURE [dbo].[usp_x]\n  @id int,")
        assert "\nAS\nBEGIN" in sql

    def test_procedure_round_trip(self):
        sql = generate_procedure_definition(self.params, "dbo", "usp_x", include_header=True)
        signature = parse_routine_parameters(sql)
        assert signature.has_signature
        assert [(p.name, p.data_type, p.is_output) for p in signature.parameters] == [
            ("@id", "int", False),
            ("@total", "decimal(10,2)", True),
        ]

    def test_parameter_without_type(self):
        sql = generate_procedure_definition([ProcedureParameter(name="", data_type="")])
        assert sql.startswith("  @param\n")

    def test_function_stub(self):
        assert generate_function_definition([], "") == "()\nRETURNS int\nBEGIN\n  RETURN NULL\nEND"
        assert generate_function_definition(self.params[:1], "bit") == (
            "(\n  @id int\n)\nRETURNS bit\nBEGIN\n  RETURN NULL\nEND"
        )

    def test_function_round_trip(self):
        sql = generate_function_definition(
            self.params[:1], "decimal(10,2)", "dbo", "fn_total", include_header=True
        )
        assert sql.startswith("CREATE FUNCTION [dbo].[fn_total](\n  @id int\n)\nRETURNS decimal(10,2)\nAS\n")
        assert parse_function_return_type(sql) == "decimal(10,2)"
        assert [p.name for p in parse_routine_parameters(sql).parameters] == ["@id"]

    def test_fragment_round_trip(self):
        sql = generate_function_definition(self.params[:1], "int")
        assert [p.name for p in parse_routine_parameters(sql).parameters] == ["@id"]
        assert parse_function_return_type(sql) == "int"
