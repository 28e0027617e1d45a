"""initial catalog schema - songs and user_songs

Revision ID: 0001_initial_catalog_schema
Revises:
Create Date: 2026-10-19 12:00:00.000000

Hey future me - this is the WHOLE data model of the upload pipeline:

- songs:      one row per unique file content. file_hash is UNIQUE - that
              constraint is what settles concurrent first-uploads of the same bytes.
              uploader_id NULL = public-domain entry from the seeding CLI.
- user_songs: an actor's library. Composite PK (user_id, song_id) = an actor
              can't have the same song twice. Rows go away with their song.
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001_initial_catalog_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create songs and user_songs."""
    op.create_table(
        "songs",
        sa.Column("id", sa.String(36), primary_key=True),
        # Metadata extracted from the MusicXML (sanitized, max 200 chars)
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("composer", sa.String(200), nullable=False),
        sa.Column("subtitle", sa.String(200), nullable=True),
        # MD5 hex of the uploaded bytes, also the blob key stem
        sa.Column("file_hash", sa.String(32), nullable=False),
        sa.Column("uploader_id", sa.String(36), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("file_hash", name="uq_songs_file_hash"),
    )
    op.create_index("ix_songs_uploader_id", "songs", ["uploader_id"])
    op.create_index("ix_songs_title_lower", "songs", [sa.text("lower(title)")])
    op.create_index("ix_songs_composer_lower", "songs", [sa.text("lower(composer)")])

    op.create_table(
        "user_songs",
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column(
            "song_id",
            sa.String(36),
            sa.ForeignKey("songs.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("user_id", "song_id", name="pk_user_songs"),
    )
    op.create_index(
        "ix_user_songs_user_created", "user_songs", ["user_id", "created_at"]
    )


def downgrade() -> None:
    """Drop user_songs and songs."""
    op.drop_index("ix_user_songs_user_created", table_name="user_songs")
    op.drop_table("user_songs")
    op.drop_index("ix_songs_composer_lower", table_name="songs")
    op.drop_index("ix_songs_title_lower", table_name="songs")
    op.drop_index("ix_songs_uploader_id", table_name="songs")
    op.drop_table("songs")
