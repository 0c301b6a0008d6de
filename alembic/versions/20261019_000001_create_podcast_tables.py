"""Create podcasts and episodes tables.

Revision ID: 20261019_000001
Revises:
Create Date: 2026-10-19

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op  # type: ignore[attr-defined]

# revision identifiers, used by Alembic.
revision: str = "20261019_000001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "podcasts",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("owner_id", sa.String(), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("author", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("image_url", sa.String(), nullable=False),
        sa.Column("categories", sa.JSON(), nullable=False),
        sa.Column("website_url", sa.String(), nullable=False),
        sa.Column("language", sa.String(), nullable=False),
        sa.Column("explicit", sa.Boolean(), nullable=False),
        sa.Column("rss_url", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_podcasts_owner_id", "podcasts", ["owner_id"])
    op.create_index("ix_podcasts_created_at", "podcasts", ["created_at"])

    op.create_table(
        "episodes",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("podcast_id", sa.String(), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("audio_url", sa.String(), nullable=False),
        sa.Column("audio_file_name", sa.String(), nullable=False),
        sa.Column("audio_object_name", sa.String(), nullable=False),
        sa.Column("duration", sa.Interval(), nullable=False),
        sa.Column("file_size", sa.BigInteger(), nullable=False),
        sa.Column("mime_type", sa.String(), nullable=False),
        sa.Column("season", sa.Integer(), nullable=True),
        sa.Column("episode_number", sa.Integer(), nullable=True),
        sa.Column("explicit", sa.Boolean(), nullable=False),
        sa.Column("image_url", sa.String(), nullable=False),
        sa.Column("download_count", sa.Integer(), nullable=False),
        sa.Column("publish_date", sa.DateTime(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(
            ["podcast_id"], ["podcasts.id"], name="fk_episodes_podcast"
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_episodes_podcast_id", "episodes", ["podcast_id"])
    op.create_index("ix_episodes_publish_date", "episodes", ["publish_date"])


def downgrade() -> None:
    op.drop_index("ix_episodes_publish_date", table_name="episodes")
    op.drop_index("ix_episodes_podcast_id", table_name="episodes")
    op.drop_table("episodes")

    op.drop_index("ix_podcasts_created_at", table_name="podcasts")
    op.drop_index("ix_podcasts_owner_id", table_name="podcasts")
    op.drop_table("podcasts")
