"""sessions, transcripts, analyses

Revision ID: 0001_initial
Revises: None
Create Date: 2026-10-18 00:00:00.000000
"""
from alembic import op
import sqlalchemy as sa

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

STATUSES = ("CREATED", "UPLOADING", "TRANSCRIBING", "ANALYZING", "COMPLETED", "FAILED")


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime, server_default=sa.func.current_timestamp(), nullable=False),
        sa.Column("updated_at", sa.DateTime, server_default=sa.func.current_timestamp(), nullable=False),
    ]


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)

    if not insp.has_table("sessions"):
        op.create_table(
            "sessions",
            sa.Column("id", sa.String(36), primary_key=True),
            sa.Column("language", sa.String(10), nullable=False),
            sa.Column("description", sa.Text),
            sa.Column(
                "status",
                sa.Enum(*STATUSES, name="sessionstatus", native_enum=False, length=20),
                nullable=False,
                server_default="CREATED",
            ),
            sa.Column("original_audio_path", sa.String(512)),
            sa.Column("original_file_name", sa.String(255)),
            sa.Column("audio_duration", sa.Integer),
            sa.Column("delete_after_analysis", sa.Boolean, nullable=False, server_default=sa.false()),
            sa.Column("error_message", sa.Text),
            sa.Column("last_job_id", sa.String(64)),
            *_timestamps(),
        )
        op.create_index("ix_sessions_status", "sessions", ["status"])

    if not insp.has_table("transcripts"):
        op.create_table(
            "transcripts",
            sa.Column("id", sa.Integer, primary_key=True),
            sa.Column(
                "session_id", sa.String(36),
                sa.ForeignKey("sessions.id", ondelete="CASCADE"),
                nullable=False, unique=True,
            ),
            sa.Column("full_text", sa.Text, nullable=False),
            sa.Column("language", sa.String(10)),
            sa.Column("duration", sa.Float),
            sa.Column("segments", sa.JSON, nullable=False),
            sa.Column("speakers", sa.JSON),
            *_timestamps(),
        )

    if not insp.has_table("analyses"):
        op.create_table(
            "analyses",
            sa.Column("id", sa.Integer, primary_key=True),
            sa.Column(
                "session_id", sa.String(36),
                sa.ForeignKey("sessions.id", ondelete="CASCADE"),
                nullable=False, unique=True,
            ),
            sa.Column("question_response_pairs", sa.JSON, nullable=False),
            sa.Column("appropriateness_score", sa.Float),
            sa.Column("keyword_matches", sa.JSON, nullable=False),
            sa.Column("filler_words", sa.JSON, nullable=False),
            sa.Column("silence_periods", sa.JSON, nullable=False),
            sa.Column("speaking_rate", sa.Float),
            sa.Column("average_pause_duration", sa.Float),
            sa.Column("overall_score", sa.Float),
            sa.Column("recommendations", sa.JSON, nullable=False),
            sa.Column("engine_used", sa.String(100), nullable=False),
            *_timestamps(),
        )


def downgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    for name in ("analyses", "transcripts", "sessions"):
        if insp.has_table(name):
            op.drop_table(name)
