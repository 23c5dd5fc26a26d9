import pytest

from schemalens.models import (
    Column,
    ColumnSource,
    RelationshipEdge,
    SchemaGraph,
    TableNode,
    ViewNode,
)


def make_table(table_id, columns):
    schema, name = table_id.split(".")
    return TableNode(
        id=table_id,
        name=name,
        schema=schema,
        columns=[
            Column(name=n, data_type=t, is_nullable=nullable, is_primary_key=pk)
            for n, t, nullable, pk in columns
        ],
    )


@pytest.fixture
def schema():
    """Small warehouse: orders, customers and a sales-schema invoice table."""
    orders = make_table("dbo.orders", [
        ("id", "int", False, True),
        ("total", "decimal(10,2)", True, False),
        ("status", "nvarchar(20)", False, False),
        ("customer_id", "int", False, False),
    ])
    customers = make_table("dbo.customers", [
        ("id", "int", False, True),
        ("name", "nvarchar(100)", False, False),
        ("email", "nvarchar(200)", True, False),
    ])
    invoices = make_table("sales.invoices", [
        ("invoice_id", "int", False, True),
        ("amount", "money", True, False),
    ])
    paid_orders = ViewNode(
        id="dbo.v_paid_orders",
        name="v_paid_orders",
        schema="dbo",
        columns=[
            Column(
                name="order_id",
                data_type="int",
                is_nullable=False,
                source_columns=[ColumnSource("[dbo].[orders]", "id")],
                source_table="[dbo].[orders]",
                source_column="id",
            ),
            Column(name="note"),
        ],
    )
    return SchemaGraph(
        tables=[orders, customers, invoices],
        views=[paid_orders],
        relationships=[
            RelationshipEdge(
                id="fk_orders_customers",
                from_table="dbo.orders",
                to_table="dbo.customers",
                from_column="customer_id",
                to_column="id",
            )
        ],
    )


@pytest.fixture
def empty_schema():
    return SchemaGraph()


CATALOG_YAML = """\
tables:
  - name: orders
    schema: dbo
    columns:
      - {name: id, dataType: int, isNullable: false, isPrimaryKey: true}
      - {name: total, dataType: "decimal(10,2)"}
      - {name: status, dataType: "nvarchar(20)", isNullable: false}
      - {name: customer_id, dataType: int, isNullable: false}
  - name: customers
    schema: dbo
    columns:
      - {name: id, dataType: int, isNullable: false, isPrimaryKey: true}
      - {name: name, dataType: "nvarchar(100)", isNullable: false}
views:
  - name: v_paid
    schema: dbo
    definition: |
      CREATE VIEW dbo.v_paid AS
      SELECT o.id, o.total AS amount
      FROM dbo.orders o
      WHERE o.status = 'paid'
relationships:
  - {from: dbo.orders, to: dbo.customers, fromColumn: customer_id, toColumn: id}
triggers:
  - name: trg_orders_audit
    schema: dbo
    tableId: dbo.orders
    firesOnInsert: true
    definition: |
      CREATE TRIGGER dbo.trg_orders_audit ON dbo.orders AFTER INSERT AS
      BEGIN
        INSERT INTO dbo.orders_audit (order_id) SELECT i.id FROM inserted i
      END
storedProcedures:
  - name: usp_close_order
    schema: dbo
    definition: |
      CREATE PROCEDURE dbo.usp_close_order @order_id int, @closed bit OUTPUT AS
      UPDATE dbo.orders SET status = 'closed' WHERE id = @order_id
scalarFunctions:
  - name: fn_order_total
    schema: dbo
    definition: |
      CREATE FUNCTION dbo.fn_order_total(@id int) RETURNS decimal(10,2) AS
      BEGIN
        RETURN (SELECT total FROM dbo.orders WHERE id = @id)
      END
"""


@pytest.fixture
def catalog_file(tmp_path):
    path = tmp_path / "catalog.yml"
    path.write_text(CATALOG_YAML, encoding="utf-8")
    return path
