"""SQLAlchemy metadata definitions for instruction setting tables."""

from __future__ import annotations

import sqlalchemy as sa

metadata = sa.MetaData()

user_settings = sa.Table(
    "user_settings",
    metadata,
    sa.Column("user_id", sa.Text(), primary_key=True, nullable=False),
    sa.Column("system_instruction", sa.Text(), nullable=False, server_default=sa.text("''")),
    sa.Column(
        "updated_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("CURRENT_TIMESTAMP"),
    ),
)

group_user_settings = sa.Table(
    "group_user_settings",
    metadata,
    sa.Column("group_id", sa.Text(), primary_key=True, nullable=False),
    sa.Column("user_id", sa.Text(), primary_key=True, nullable=False),
    sa.Column("system_instruction", sa.Text(), nullable=False, server_default=sa.text("''")),
    sa.Column(
        "updated_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("CURRENT_TIMESTAMP"),
    ),
)
