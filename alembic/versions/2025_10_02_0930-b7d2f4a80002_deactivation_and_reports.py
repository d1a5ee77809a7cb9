"""deactivation_and_reports

Revision ID: b7d2f4a80002
Revises: a1c3e5f70001
Create Date: 2025-10-02 09:30:00.000000

"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "b7d2f4a80002"
down_revision = "a1c3e5f70001"
branch_labels = None
depends_on = None

REPORT_REASONS = (
    "SPAM", "HARASSMENT", "HATE_SPEECH", "VIOLENCE",
    "INAPPROPRIATE_CONTENT", "MISINFORMATION", "COPYRIGHT", "OTHER",
)
REPORT_STATUSES = ("PENDING", "REVIEWED", "RESOLVED", "DISMISSED")


def upgrade() -> None:
    op.add_column("profile", sa.Column("scheduled_deletion_at", sa.DateTime(), nullable=True))
    op.add_column("post", sa.Column("is_hidden", sa.Boolean(), nullable=False, server_default=sa.false()))
    op.create_index("ix_post_is_hidden", "post", ["is_hidden"])
    op.add_column("comment", sa.Column("is_hidden", sa.Boolean(), nullable=False, server_default=sa.false()))

    op.create_table(
        "report",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("reporter_id", sa.String(), sa.ForeignKey("profile.id"), nullable=False),
        sa.Column("reported_user_id", sa.String(), sa.ForeignKey("profile.id"), nullable=True),
        sa.Column("post_id", sa.String(), sa.ForeignKey("post.id"), nullable=True),
        sa.Column("comment_id", sa.String(), sa.ForeignKey("comment.id"), nullable=True),
        sa.Column("reason", sa.Enum(*REPORT_REASONS, name="reportreason"), nullable=False),
        sa.Column("description", sa.String(length=1000), nullable=True),
        sa.Column("status", sa.Enum(*REPORT_STATUSES, name="reportstatus"), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint(
            "(post_id IS NOT NULL AND comment_id IS NULL) OR (post_id IS NULL AND comment_id IS NOT NULL)",
            name="ck_report_one_target",
        ),
    )
    op.create_index("ix_report_reporter_id", "report", ["reporter_id"])
    op.create_index("ix_report_reported_user_id", "report", ["reported_user_id"])
    op.create_index("ix_report_post_id", "report", ["post_id"])
    op.create_index("ix_report_comment_id", "report", ["comment_id"])
    op.create_index("ix_report_status", "report", ["status"])


def downgrade() -> None:
    op.drop_table("report")
    op.execute("DROP TYPE IF EXISTS reportstatus")
    op.execute("DROP TYPE IF EXISTS reportreason")
    op.drop_column("comment", "is_hidden")
    op.drop_index("ix_post_is_hidden", table_name="post")
    op.drop_column("post", "is_hidden")
    op.drop_column("profile", "scheduled_deletion_at")
