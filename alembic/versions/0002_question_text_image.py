"""question text and optional photo for open questions"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "0002_question_text_image"
down_revision = "0001_quiz_tables"
branch_labels = None
depends_on = None


def upgrade() -> None:
    with op.batch_alter_table("open_questions") as batch:
        batch.add_column(sa.Column("text", sa.Text(), nullable=False, server_default=""))
        batch.add_column(sa.Column("image", sa.String(length=256), nullable=True))


def downgrade() -> None:
    with op.batch_alter_table("open_questions") as batch:
        batch.drop_column("image")
        batch.drop_column("text")
