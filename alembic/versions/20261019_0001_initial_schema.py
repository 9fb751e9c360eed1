"""initial schema

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 09:00:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "20261019_0001"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _unit_conversion_table(name: str, parent: str) -> None:
    op.create_table(
        name,
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("item_id", sa.String(length=64), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=24), nullable=False),
        sa.Column("factor", sa.Numeric(precision=18, scale=6), nullable=False),
        sa.ForeignKeyConstraint(["item_id"], [f"{parent}.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("item_id", "name", name=f"uq_{name}_item_name"),
    )
    op.create_index(op.f(f"ix_{name}_id"), name, ["id"], unique=False)
    op.create_index(op.f(f"ix_{name}_item_id"), name, ["item_id"], unique=False)


def _line_columns() -> list[sa.Column]:
    return [
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("transaction_id", sa.String(length=64), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("item_id", sa.String(length=64), nullable=False),
        sa.Column("item_name", sa.String(length=160), nullable=False),
        sa.Column("sku", sa.String(length=64), nullable=False),
        sa.Column("quantity", sa.Numeric(precision=18, scale=4), nullable=False),
        sa.Column("unit", sa.String(length=24), nullable=False),
        sa.Column("factor", sa.Numeric(precision=18, scale=6), nullable=False),
        sa.Column("base_quantity", sa.Numeric(precision=18, scale=4), nullable=False),
    ]


def _item_indexes(name: str) -> None:
    op.create_index(op.f(f"ix_{name}_category"), name, ["category"], unique=False)
    op.create_index(op.f(f"ix_{name}_id"), name, ["id"], unique=False)
    op.create_index(op.f(f"ix_{name}_name"), name, ["name"], unique=False)
    op.create_index(op.f(f"ix_{name}_sku"), name, ["sku"], unique=True)
    op.create_index(op.f(f"ix_{name}_status"), name, ["status"], unique=False)


def upgrade() -> None:
    user_role_enum = sa.Enum("ADMIN", "STAFF", name="userrole")
    transaction_type_enum = sa.Enum("IN", "OUT", name="transactiontype")
    reject_transaction_type_enum = sa.Enum("IN", "OUT", name="rejecttransactiontype")

    bind = op.get_bind()
    user_role_enum.create(bind, checkfirst=True)
    transaction_type_enum.create(bind, checkfirst=True)
    reject_transaction_type_enum.create(bind, checkfirst=True)

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("username", sa.String(length=50), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("role", user_role_enum, nullable=False),
        sa.Column("failed_login_attempts", sa.Integer(), nullable=False),
        sa.Column("last_login_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)
    op.create_index(op.f("ix_users_id"), "users", ["id"], unique=False)
    op.create_index(op.f("ix_users_role"), "users", ["role"], unique=False)
    op.create_index(op.f("ix_users_username"), "users", ["username"], unique=True)

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("actor_user_id", sa.Integer(), nullable=True),
        sa.Column("event_type", sa.String(length=100), nullable=False),
        sa.Column("entity_id", sa.String(length=64), nullable=True),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column("details", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["actor_user_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_audit_logs_created_at"), "audit_logs", ["created_at"], unique=False)
    op.create_index(op.f("ix_audit_logs_entity_id"), "audit_logs", ["entity_id"], unique=False)
    op.create_index(op.f("ix_audit_logs_event_type"), "audit_logs", ["event_type"], unique=False)
    op.create_index(op.f("ix_audit_logs_id"), "audit_logs", ["id"], unique=False)

    op.create_table(
        "inventory_items",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=160), nullable=False),
        sa.Column("sku", sa.String(length=64), nullable=False),
        sa.Column("category", sa.String(length=120), nullable=False),
        sa.Column("base_unit", sa.String(length=24), nullable=False),
        sa.Column("stock", sa.Numeric(precision=18, scale=4), nullable=False),
        sa.Column("min_stock", sa.Numeric(precision=18, scale=4), nullable=False),
        sa.Column("price", sa.Numeric(precision=14, scale=2), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("last_updated", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    _item_indexes("inventory_items")
    _unit_conversion_table("item_unit_conversions", "inventory_items")

    op.create_table(
        "stock_transactions",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("type", transaction_type_enum, nullable=False),
        sa.Column("date", sa.DateTime(), nullable=False),
        sa.Column("reference_number", sa.String(length=64), nullable=True),
        sa.Column("supplier", sa.String(length=160), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("performer", sa.String(length=120), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_stock_transactions_created_at"), "stock_transactions", ["created_at"], unique=False)
    op.create_index(op.f("ix_stock_transactions_date"), "stock_transactions", ["date"], unique=False)
    op.create_index(op.f("ix_stock_transactions_id"), "stock_transactions", ["id"], unique=False)
    op.create_index(
        op.f("ix_stock_transactions_reference_number"), "stock_transactions", ["reference_number"], unique=False
    )
    op.create_index(op.f("ix_stock_transactions_type"), "stock_transactions", ["type"], unique=False)

    op.create_table(
        "stock_transaction_lines",
        *_line_columns(),
        sa.ForeignKeyConstraint(["transaction_id"], ["stock_transactions.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_stock_transaction_lines_id"), "stock_transaction_lines", ["id"], unique=False)
    op.create_index(op.f("ix_stock_transaction_lines_item_id"), "stock_transaction_lines", ["item_id"], unique=False)
    op.create_index(
        op.f("ix_stock_transaction_lines_transaction_id"), "stock_transaction_lines", ["transaction_id"], unique=False
    )

    op.create_table(
        "reject_items",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=160), nullable=False),
        sa.Column("sku", sa.String(length=64), nullable=False),
        sa.Column("category", sa.String(length=120), nullable=False),
        sa.Column("base_unit", sa.String(length=24), nullable=False),
        sa.Column("stock", sa.Numeric(precision=18, scale=4), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    _item_indexes("reject_items")
    _unit_conversion_table("reject_unit_conversions", "reject_items")

    op.create_table(
        "reject_transactions",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("type", reject_transaction_type_enum, nullable=False),
        sa.Column("date", sa.DateTime(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("performer", sa.String(length=120), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_reject_transactions_created_at"), "reject_transactions", ["created_at"], unique=False)
    op.create_index(op.f("ix_reject_transactions_date"), "reject_transactions", ["date"], unique=False)
    op.create_index(op.f("ix_reject_transactions_id"), "reject_transactions", ["id"], unique=False)

    op.create_table(
        "reject_transaction_lines",
        *_line_columns(),
        sa.Column("reason", sa.String(length=255), nullable=False),
        sa.ForeignKeyConstraint(["transaction_id"], ["reject_transactions.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_reject_transaction_lines_id"), "reject_transaction_lines", ["id"], unique=False)
    op.create_index(
        op.f("ix_reject_transaction_lines_item_id"), "reject_transaction_lines", ["item_id"], unique=False
    )
    op.create_index(
        op.f("ix_reject_transaction_lines_transaction_id"), "reject_transaction_lines", ["transaction_id"], unique=False
    )


def downgrade() -> None:
    # indexes go with their tables
    op.drop_table("reject_transaction_lines")
    op.drop_table("reject_transactions")
    op.drop_table("reject_unit_conversions")
    op.drop_table("reject_items")
    op.drop_table("stock_transaction_lines")
    op.drop_table("stock_transactions")
    op.drop_table("item_unit_conversions")
    op.drop_table("inventory_items")
    op.drop_table("audit_logs")
    op.drop_table("users")

    bind = op.get_bind()
    sa.Enum(name="rejecttransactiontype").drop(bind, checkfirst=True)
    sa.Enum(name="transactiontype").drop(bind, checkfirst=True)
    sa.Enum(name="userrole").drop(bind, checkfirst=True)
