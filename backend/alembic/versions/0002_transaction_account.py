"""split transactions into enterprise and individual accounts

Revision ID: 0002_transaction_account
Revises: 0001_initial_schema
Create Date: 2026-10-19 14:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0002_transaction_account"
down_revision = "0001_initial_schema"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column(
        "transactions",
        sa.Column("account", sa.String(length=16), nullable=False, server_default="enterprise"),
    )
    # income is the only row type ever written to a worker's ledger
    op.execute("UPDATE transactions SET account = 'individual' WHERE type = 'income'")
    op.create_check_constraint(
        "ck_transactions_account", "transactions", "account IN ('enterprise', 'individual')"
    )
    op.create_index("ix_transactions_user_account", "transactions", ["user_id", "account"])


def downgrade() -> None:
    op.drop_index("ix_transactions_user_account", table_name="transactions")
    op.drop_constraint("ck_transactions_account", "transactions", type_="check")
    op.drop_column("transactions", "account")
