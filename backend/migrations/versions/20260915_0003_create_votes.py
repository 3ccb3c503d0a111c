from __future__ import annotations
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision = "20260915_0003"
down_revision = "20260914_0002"
branch_labels = None
depends_on = None

def upgrade() -> None:
    op.create_table(
        "votes",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("submission_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False),
        sa.Column("event_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_votes_user_id", "votes", ["user_id"])
    op.create_index("ix_votes_submission_id", "votes", ["submission_id"])
    op.create_index("ix_votes_event_id", "votes", ["event_id"])
    # quota counts are per (user, event)
    op.create_index("ix_votes_user_event", "votes", ["user_id", "event_id"])
    op.create_unique_constraint("uq_vote_once_per_user", "votes", ["user_id", "submission_id"])

def downgrade() -> None:
    op.drop_constraint("uq_vote_once_per_user", "votes", type_="unique")
    op.drop_index("ix_votes_user_event", table_name="votes")
    op.drop_index("ix_votes_event_id", table_name="votes")
    op.drop_index("ix_votes_submission_id", table_name="votes")
    op.drop_index("ix_votes_user_id", table_name="votes")
    op.drop_table("votes")
