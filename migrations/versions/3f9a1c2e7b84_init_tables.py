"""init tables

Revision ID: 3f9a1c2e7b84
Revises: 
Create Date: 2026-10-19 09:12:40.518204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f9a1c2e7b84'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    # enum columns hold the member names, the same way SQLModel stores them
    op.create_table(
        "user",
        sa.Column("id", sa.VARCHAR(36), primary_key=True, nullable=False),
        sa.Column("first_name", sa.VARCHAR(100), nullable=False),
        sa.Column("last_name", sa.VARCHAR(100), nullable=False),
        sa.Column("email", sa.VARCHAR(254), unique=True, index=True, nullable=False),
        sa.Column("hashed_password", sa.TEXT, nullable=False),
        sa.Column("role", sa.VARCHAR(20), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "event",
        sa.Column("id", sa.VARCHAR(36), primary_key=True),
        sa.Column("slug", sa.VARCHAR(220), unique=True, index=True, nullable=False),
        sa.Column("title", sa.VARCHAR(200), nullable=False),
        sa.Column("description", sa.TEXT, nullable=False),
        sa.Column("date", sa.DateTime(timezone=True), index=True, nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("start_time", sa.VARCHAR(20), nullable=True),
        sa.Column("end_time", sa.VARCHAR(20), nullable=True),
        sa.Column("location", sa.VARCHAR(300), nullable=False),
        sa.Column("image", sa.TEXT, nullable=True),
        sa.Column("capacity", sa.Integer, nullable=False),
        sa.Column("price", sa.Float, nullable=False),
        sa.Column("category", sa.VARCHAR(100), index=True, nullable=True),
        sa.Column("visibility", sa.VARCHAR(10), nullable=False),
        sa.Column("type", sa.VARCHAR(10), nullable=False),
        sa.Column("status", sa.VARCHAR(10), nullable=False),
        sa.Column("organizer_id", sa.VARCHAR(36), sa.ForeignKey("user.id", ondelete="CASCADE"),
                  index=True, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "ticket",
        sa.Column("id", sa.VARCHAR(36), primary_key=True),
        sa.Column("event_id", sa.VARCHAR(36), sa.ForeignKey("event.id", ondelete="CASCADE"),
                  index=True, nullable=False),
        sa.Column("user_id", sa.VARCHAR(36), sa.ForeignKey("user.id", ondelete="CASCADE"),
                  index=True, nullable=False),
        sa.Column("attendee_name", sa.TEXT, nullable=False),
        sa.Column("attendee_email", sa.TEXT, nullable=False),
        sa.Column("ticket_number", sa.VARCHAR(40), unique=True, index=True, nullable=False),
        sa.Column("ticket_type", sa.VARCHAR(50), nullable=False),
        sa.Column("price", sa.Float, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("check_in_count", sa.Integer, nullable=False),
        sa.Column("is_checked_in", sa.Boolean, nullable=False),
        sa.Column("checked_in_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("checked_in_by", sa.VARCHAR(36), nullable=True),
        sa.UniqueConstraint("event_id", "user_id", name="uq_ticket_event_user"),
    )

    op.create_table(
        "check_in",
        sa.Column("id", sa.VARCHAR(36), primary_key=True),
        sa.Column("event_id", sa.VARCHAR(36), sa.ForeignKey("event.id", ondelete="CASCADE"),
                  index=True, nullable=False),
        sa.Column("ticket_id", sa.VARCHAR(36), sa.ForeignKey("ticket.id", ondelete="CASCADE"),
                  index=True, nullable=False),
        sa.Column("attendee_name", sa.TEXT, nullable=False),
        sa.Column("attendee_email", sa.TEXT, nullable=False),
        sa.Column("checked_in_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("checked_in_by", sa.VARCHAR(36), nullable=False),
        sa.Column("checked_in_by_name", sa.TEXT, nullable=False),
        sa.Column("method", sa.VARCHAR(10), nullable=False),
        sa.Column("is_duplicate", sa.Boolean, nullable=False),
    )

    op.create_table(
        "email_template",
        sa.Column("id", sa.VARCHAR(36), primary_key=True),
        sa.Column("user_id", sa.VARCHAR(36), sa.ForeignKey("user.id", ondelete="CASCADE"),
                  index=True, nullable=False),
        sa.Column("event_id", sa.VARCHAR(36), sa.ForeignKey("event.id", ondelete="SET NULL"),
                  nullable=True),
        sa.Column("template_name", sa.VARCHAR(100), nullable=False),
        sa.Column("template_type", sa.VARCHAR(12), nullable=False),
        sa.Column("subject", sa.VARCHAR(300), nullable=False),
        sa.Column("content", sa.TEXT, nullable=False),
        sa.Column("is_default", sa.Boolean, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )


def downgrade() -> None:
    """Downgrade schema."""
    # dropping a table drops its indexes too
    op.drop_table("email_template")
    op.drop_table("check_in")
    op.drop_table("ticket")
    op.drop_table("event")
    op.drop_table("user")
