"""Create supply chain ledger tables

Revision ID: 20261018_000001
Revises: None
Create Date: 2026-10-18

Append-only, hash-chained supply_chain_transactions table plus the
audit_trail table that records ledger events.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20261018_000001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the ledger and audit tables."""
    op.create_table(
        "supply_chain_transactions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("hash", sa.String(64), nullable=False),
        sa.Column("previous_hash", sa.String(64), nullable=False),
        sa.Column("block_number", sa.Integer(), nullable=False),
        sa.Column("batch_id", sa.Integer(), nullable=False),
        sa.Column("from_entity_id", sa.Integer(), nullable=True),
        sa.Column("to_entity_id", sa.Integer(), nullable=False),
        sa.Column(
            "transaction_type",
            sa.Enum(
                "manufacture", "transfer", "sale", "return", "recall",
                name="transaction_type",
                create_constraint=True,
            ),
            nullable=False,
        ),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price", sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column("total_amount", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("transaction_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("shipping_details", sa.JSON(), nullable=True),
        sa.Column("temperature_log", sa.JSON(), nullable=True),
        sa.Column("digital_signature", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("nonce", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("mining_exhausted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("quantity > 0", name="ck_supply_chain_transactions_quantity_positive"),
    )

    # Unique chain positions; the writer relies on these to detect races
    op.create_index("ix_supply_chain_transactions_hash", "supply_chain_transactions", ["hash"], unique=True)
    op.create_index(
        "ix_supply_chain_transactions_block_number", "supply_chain_transactions", ["block_number"], unique=True
    )
    op.create_index("ix_supply_chain_transactions_previous_hash", "supply_chain_transactions", ["previous_hash"])
    op.create_index("ix_supply_chain_transactions_batch_id", "supply_chain_transactions", ["batch_id"])
    op.create_index("ix_supply_chain_transactions_from_entity_id", "supply_chain_transactions", ["from_entity_id"])
    op.create_index("ix_supply_chain_transactions_to_entity_id", "supply_chain_transactions", ["to_entity_id"])
    op.create_index(
        "ix_supply_chain_transactions_transaction_date", "supply_chain_transactions", ["transaction_date"]
    )

    op.create_table(
        "audit_trail",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("table_name", sa.String(50), nullable=False),
        sa.Column("record_id", sa.Integer(), nullable=False),
        sa.Column("new_values", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_audit_trail_action", "audit_trail", ["action"])


def downgrade() -> None:
    """Drop the ledger and audit tables."""
    op.drop_index("ix_audit_trail_action", table_name="audit_trail")
    op.drop_table("audit_trail")

    op.drop_index("ix_supply_chain_transactions_transaction_date", table_name="supply_chain_transactions")
    op.drop_index("ix_supply_chain_transactions_to_entity_id", table_name="supply_chain_transactions")
    op.drop_index("ix_supply_chain_transactions_from_entity_id", table_name="supply_chain_transactions")
    op.drop_index("ix_supply_chain_transactions_batch_id", table_name="supply_chain_transactions")
    op.drop_index("ix_supply_chain_transactions_previous_hash", table_name="supply_chain_transactions")
    op.drop_index("ix_supply_chain_transactions_block_number", table_name="supply_chain_transactions")
    op.drop_index("ix_supply_chain_transactions_hash", table_name="supply_chain_transactions")
    op.drop_table("supply_chain_transactions")

    # Drop the enum type
    if op.get_bind().dialect.name == "postgresql":
        op.execute("DROP TYPE IF EXISTS transaction_type")
