"""Initial migration: create tournament and match tables

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Create tournament table
    op.create_table(
        "tournament",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("sport", sa.String(), nullable=False),
        sa.Column("format", sa.String(), nullable=False, server_default="standard"),
        sa.Column("status", sa.String(), nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_tournament_sport", "tournament", ["sport"])
    op.create_index("ix_tournament_status", "tournament", ["status"])
    op.create_index("ix_tournament_created_at", "tournament", ["created_at"])

    # Create match table
    op.create_table(
        "match",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tournament_id", sa.Integer(), nullable=False),
        sa.Column("round", sa.String(), nullable=False),
        sa.Column("team1", sa.String(length=100), nullable=False),
        sa.Column("team2", sa.String(length=100), nullable=False),
        sa.Column("score1", sa.Integer(), nullable=True),
        sa.Column("score2", sa.Integer(), nullable=True),
        sa.Column("winner", sa.String(length=100), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="pending"),
        sa.Column("scheduled_at", sa.DateTime(), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["tournament_id"],
            ["tournament.id"],
        ),
        sa.CheckConstraint("score1 IS NULL OR score1 >= 0", name="chk_match_score1_non_negative"),
        sa.CheckConstraint("score2 IS NULL OR score2 >= 0", name="chk_match_score2_non_negative"),
    )
    op.create_index("ix_match_tournament_id", "match", ["tournament_id"])
    op.create_index("ix_match_round", "match", ["round"])
    op.create_index("ix_match_status", "match", ["status"])
    op.create_index("ix_match_scheduled_at", "match", ["scheduled_at"])


def downgrade() -> None:
    op.drop_index("ix_match_scheduled_at", table_name="match")
    op.drop_index("ix_match_status", table_name="match")
    op.drop_index("ix_match_round", table_name="match")
    op.drop_index("ix_match_tournament_id", table_name="match")
    op.drop_table("match")
    op.drop_index("ix_tournament_created_at", table_name="tournament")
    op.drop_index("ix_tournament_status", table_name="tournament")
    op.drop_index("ix_tournament_sport", table_name="tournament")
    op.drop_table("tournament")
