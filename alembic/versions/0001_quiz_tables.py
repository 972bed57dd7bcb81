"""questions, respondents and subscribers"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_quiz_tables"
down_revision = None
branch_labels = None
depends_on = None


def _json_type(bind) -> sa.types.TypeEngine:
    if bind.dialect.name == "postgresql":
        return postgresql.JSONB()
    return sa.JSON()


def upgrade() -> None:
    bind = op.get_bind()
    json_type = _json_type(bind)
    bigint_pk = sa.BigInteger().with_variant(sa.Integer(), "sqlite")
    points = sa.Numeric(12, 2)

    op.create_table(
        "open_questions",
        sa.Column("number", sa.Integer(), primary_key=True, autoincrement=False),
        sa.Column("options", json_type, nullable=False),
        sa.Column("answer", sa.String(length=64), nullable=False),
        sa.Column("points", points, nullable=False, server_default="1"),
    )

    op.create_table(
        "closed_questions",
        sa.Column("number", sa.Integer(), primary_key=True, autoincrement=False),
        sa.Column("answer_a", sa.String(length=512), nullable=False, server_default=""),
        sa.Column("points_a", points, nullable=False, server_default="1"),
        sa.Column("answer_b", sa.String(length=512), nullable=False, server_default=""),
        sa.Column("points_b", points, nullable=False, server_default="1"),
    )

    op.create_table(
        "respondents",
        sa.Column("user_id", bigint_pk, primary_key=True, autoincrement=False),
        sa.Column("score", points, nullable=False, server_default="0"),
        sa.Column("correct_answers", json_type, nullable=False),
        sa.Column("wrong_answers", json_type, nullable=False),
        sa.Column("finished", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("closed_finished", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("degree", sa.String(length=16), nullable=False, server_default="—"),
        sa.Column("last_answer", json_type, nullable=True),
        sa.Column("answers", json_type, nullable=False),
        sa.Column(
            "enrolled_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
    )

    op.create_table(
        "subscribers",
        sa.Column("chat_id", bigint_pk, primary_key=True, autoincrement=False),
        sa.Column(
            "created",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
    )


def downgrade() -> None:
    op.drop_table("subscribers")
    op.drop_table("respondents")
    op.drop_table("closed_questions")
    op.drop_table("open_questions")
