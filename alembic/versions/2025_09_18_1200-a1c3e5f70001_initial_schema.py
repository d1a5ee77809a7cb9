"""initial_schema

Revision ID: a1c3e5f70001
Revises:
Create Date: 2025-09-18 12:00:00.000000

"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "a1c3e5f70001"
down_revision = None
branch_labels = None
depends_on = None

NOTIFICATION_TYPES = ("MENTION", "LIKE", "COMMENT", "FOLLOW", "REPLY")


def upgrade() -> None:
    op.create_table(
        "profile",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("username", sa.String(length=30), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=True),
        sa.Column("bio", sa.String(length=500), nullable=True),
        sa.Column("profile_pic", sa.String(), nullable=True),
        sa.Column("school", sa.String(length=100), nullable=True),
        sa.Column("department", sa.String(length=100), nullable=True),
        sa.Column("year", sa.Integer(), nullable=True),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("followers_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("following_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_deactivated", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("deactivated_at", sa.DateTime(), nullable=True),
        sa.Column("last_username_change", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_profile_username", "profile", ["username"], unique=True)
    op.create_index("ix_profile_is_deactivated", "profile", ["is_deactivated"])

    op.create_table(
        "follow",
        sa.Column("follower_id", sa.String(), sa.ForeignKey("profile.id"), primary_key=True),
        sa.Column("following_id", sa.String(), sa.ForeignKey("profile.id"), primary_key=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_follow_follower_id", "follow", ["follower_id"])
    op.create_index("ix_follow_following_id", "follow", ["following_id"])

    op.create_table(
        "post",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("user_id", sa.String(), sa.ForeignKey("profile.id"), nullable=False),
        sa.Column("body", sa.String(length=5000), nullable=False),
        sa.Column("attachment_url", sa.String(), nullable=True),
        sa.Column("attachment_type", sa.String(length=100), nullable=True),
        sa.Column("school_tag", sa.String(length=100), nullable=True),
        sa.Column("course_tag", sa.String(length=100), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_post_user_id", "post", ["user_id"])
    op.create_index("ix_post_school_tag", "post", ["school_tag"])
    op.create_index("ix_post_course_tag", "post", ["course_tag"])
    op.create_index("ix_post_created_at", "post", ["created_at"])

    op.create_table(
        "comment",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("post_id", sa.String(), sa.ForeignKey("post.id"), nullable=False),
        sa.Column("user_id", sa.String(), sa.ForeignKey("profile.id"), nullable=False),
        sa.Column("parent_comment_id", sa.String(), sa.ForeignKey("comment.id"), nullable=True),
        sa.Column("body", sa.String(length=5000), nullable=False),
        sa.Column("attachment_url", sa.String(), nullable=True),
        sa.Column("attachment_type", sa.String(length=100), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_comment_post_id", "comment", ["post_id"])
    op.create_index("ix_comment_user_id", "comment", ["user_id"])
    op.create_index("ix_comment_parent_comment_id", "comment", ["parent_comment_id"])
    op.create_index("ix_comment_created_at", "comment", ["created_at"])

    op.create_table(
        "postlike",
        sa.Column("user_id", sa.String(), sa.ForeignKey("profile.id"), primary_key=True),
        sa.Column("post_id", sa.String(), sa.ForeignKey("post.id"), primary_key=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_postlike_post_id", "postlike", ["post_id"])

    op.create_table(
        "commentlike",
        sa.Column("user_id", sa.String(), sa.ForeignKey("profile.id"), primary_key=True),
        sa.Column("comment_id", sa.String(), sa.ForeignKey("comment.id"), primary_key=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_commentlike_comment_id", "commentlike", ["comment_id"])

    op.create_table(
        "bookmark",
        sa.Column("user_id", sa.String(), sa.ForeignKey("profile.id"), primary_key=True),
        sa.Column("post_id", sa.String(), sa.ForeignKey("post.id"), primary_key=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_bookmark_post_id", "bookmark", ["post_id"])
    op.create_index("ix_bookmark_created_at", "bookmark", ["created_at"])

    op.create_table(
        "notification",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("recipient_id", sa.String(), sa.ForeignKey("profile.id"), nullable=False),
        sa.Column("actor_id", sa.String(), sa.ForeignKey("profile.id"), nullable=False),
        sa.Column("type", sa.Enum(*NOTIFICATION_TYPES, name="notificationtype"), nullable=False),
        sa.Column("message", sa.String(), nullable=False),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("post_id", sa.String(), sa.ForeignKey("post.id"), nullable=True),
        sa.Column("comment_id", sa.String(), sa.ForeignKey("comment.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_notification_recipient_id", "notification", ["recipient_id"])
    op.create_index("ix_notification_is_read", "notification", ["is_read"])
    op.create_index("ix_notification_post_id", "notification", ["post_id"])
    op.create_index("ix_notification_comment_id", "notification", ["comment_id"])
    op.create_index("ix_notification_created_at", "notification", ["created_at"])


def downgrade() -> None:
    op.drop_table("notification")
    op.execute("DROP TYPE IF EXISTS notificationtype")
    op.drop_table("bookmark")
    op.drop_table("commentlike")
    op.drop_table("postlike")
    op.drop_table("comment")
    op.drop_table("post")
    op.drop_table("follow")
    op.drop_table("profile")
