"""create push token, ticket, receipt and rate limit tables"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "202610170900"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "push_tokens",
        sa.Column("token", sa.String(length=255), primary_key=True),
        sa.Column("environment", sa.String(length=16), nullable=False),
        sa.Column("store_id", sa.String(length=128), nullable=True),
        sa.Column("platform", sa.String(length=20), nullable=True),
        sa.Column("app_version", sa.String(length=32), nullable=True),
        sa.Column("device_id", sa.String(length=255), nullable=True),
        sa.Column("opted_in", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_push_tokens_environment_store_id", "push_tokens", ["environment", "store_id"])

    op.create_table(
        "push_tickets",
        sa.Column("ticket_id", sa.String(length=64), primary_key=True),
        sa.Column("token", sa.String(length=255), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_push_tickets_token", "push_tickets", ["token"])
    op.create_index("ix_push_tickets_created_at", "push_tickets", ["created_at"])

    op.create_table(
        "push_receipts",
        sa.Column("ticket_id", sa.String(length=64), primary_key=True),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("error_code", sa.String(length=64), nullable=True),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("recorded_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "rate_limits",
        sa.Column("key", sa.String(length=255), primary_key=True),
        sa.Column("bucket", sa.String(length=13), primary_key=True),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_attempt_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )


def downgrade() -> None:
    op.drop_table("rate_limits")
    op.drop_table("push_receipts")
    op.drop_index("ix_push_tickets_created_at", table_name="push_tickets")
    op.drop_index("ix_push_tickets_token", table_name="push_tickets")
    op.drop_table("push_tickets")
    op.drop_index("ix_push_tokens_environment_store_id", table_name="push_tokens")
    op.drop_table("push_tokens")
