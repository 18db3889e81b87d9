"""Cash ledger, transactions and period closures

Revision ID: 20261019_cash_ledger
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_cash_ledger"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "cash_movements",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("movement_type", sa.String(length=16), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("category", sa.String(length=32), nullable=False),
        sa.Column("sub_category", sa.String(length=128), nullable=True),
        sa.Column("description", sa.String(length=255), nullable=True),
        sa.Column("is_z_cut", sa.Boolean(), nullable=False),
        sa.Column("z_report", sa.JSON(), nullable=True),
        sa.Column("source_ref", sa.String(length=64), nullable=True),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.CheckConstraint("amount_cents >= 0", name="ck_cash_movements_amount_nonneg"),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("cash_movements", schema=None) as batch_op:
        batch_op.create_index("ix_cash_movements_occurred_id", ["occurred_at", "id"], unique=False)
        batch_op.create_index(batch_op.f("ix_cash_movements_movement_type"), ["movement_type"], unique=False)
        batch_op.create_index(batch_op.f("ix_cash_movements_category"), ["category"], unique=False)
        batch_op.create_index(batch_op.f("ix_cash_movements_is_z_cut"), ["is_z_cut"], unique=False)
        batch_op.create_index(batch_op.f("ix_cash_movements_source_ref"), ["source_ref"], unique=False)
        batch_op.create_index(batch_op.f("ix_cash_movements_occurred_at"), ["occurred_at"], unique=False)

    op.create_table(
        "transactions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("external_id", sa.String(length=64), nullable=False),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("subtotal_cents", sa.Integer(), nullable=False),
        sa.Column("discount_cents", sa.Integer(), nullable=False),
        sa.Column("total_cents", sa.Integer(), nullable=False),
        sa.Column("amount_paid_cents", sa.Integer(), nullable=False),
        sa.Column("payment_method", sa.String(length=16), nullable=False),
        sa.Column("payment_status", sa.String(length=16), nullable=False),
        sa.Column("split_cash_cents", sa.Integer(), nullable=True),
        sa.Column("split_card_cents", sa.Integer(), nullable=True),
        sa.Column("split_transfer_cents", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("transactions", schema=None) as batch_op:
        batch_op.create_index(batch_op.f("ix_transactions_external_id"), ["external_id"], unique=True)
        batch_op.create_index(batch_op.f("ix_transactions_occurred_at"), ["occurred_at"], unique=False)
        batch_op.create_index(batch_op.f("ix_transactions_payment_method"), ["payment_method"], unique=False)
        batch_op.create_index(batch_op.f("ix_transactions_status"), ["status"], unique=False)
        batch_op.create_index("ix_transactions_status_occurred", ["status", "occurred_at"], unique=False)

    op.create_table(
        "transaction_lines",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("transaction_id", sa.Integer(), nullable=False),
        sa.Column("product_ref", sa.String(length=64), nullable=True),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("category", sa.String(length=64), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price_cents", sa.Integer(), nullable=False),
        sa.Column("is_consignment", sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(["transaction_id"], ["transactions.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("transaction_lines", schema=None) as batch_op:
        batch_op.create_index(batch_op.f("ix_transaction_lines_transaction_id"), ["transaction_id"], unique=False)

    op.create_table(
        "period_closures",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("period_start", sa.Date(), nullable=False),
        sa.Column("period_end", sa.Date(), nullable=False),
        sa.Column("report", sa.JSON(), nullable=False),
        sa.Column("distribution", sa.JSON(), nullable=False),
        sa.Column("notes", sa.String(length=255), nullable=True),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("period_start", name="uq_period_closures_start"),
        sqlite_autoincrement=True,
    )


def downgrade():
    op.drop_table("period_closures")

    with op.batch_alter_table("transaction_lines", schema=None) as batch_op:
        batch_op.drop_index(batch_op.f("ix_transaction_lines_transaction_id"))
    op.drop_table("transaction_lines")

    with op.batch_alter_table("transactions", schema=None) as batch_op:
        batch_op.drop_index("ix_transactions_status_occurred")
        batch_op.drop_index(batch_op.f("ix_transactions_status"))
        batch_op.drop_index(batch_op.f("ix_transactions_payment_method"))
        batch_op.drop_index(batch_op.f("ix_transactions_occurred_at"))
        batch_op.drop_index(batch_op.f("ix_transactions_external_id"))
    op.drop_table("transactions")

    with op.batch_alter_table("cash_movements", schema=None) as batch_op:
        batch_op.drop_index(batch_op.f("ix_cash_movements_occurred_at"))
        batch_op.drop_index(batch_op.f("ix_cash_movements_source_ref"))
        batch_op.drop_index(batch_op.f("ix_cash_movements_is_z_cut"))
        batch_op.drop_index(batch_op.f("ix_cash_movements_category"))
        batch_op.drop_index(batch_op.f("ix_cash_movements_movement_type"))
        batch_op.drop_index("ix_cash_movements_occurred_id")
    op.drop_table("cash_movements")
