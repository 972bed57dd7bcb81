from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import JSON, BigInteger, Boolean, DateTime, Integer, Numeric, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


_json_type = JSONB().with_variant(JSON(), "sqlite")
_bigint_pk = BigInteger().with_variant(Integer(), "sqlite")
_points_type = Numeric(12, 2, asdecimal=True)


class OpenQuestion(Base):
    __tablename__ = "open_questions"

    number: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    text: Mapped[str] = mapped_column(Text, nullable=False, default="")
    image: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    options: Mapped[list[str]] = mapped_column(_json_type, nullable=False, default=list)
    answer: Mapped[str] = mapped_column(String(64), nullable=False)
    points: Mapped[Decimal] = mapped_column(_points_type, nullable=False, default=Decimal("1"))


class ClosedQuestion(Base):
    __tablename__ = "closed_questions"

    number: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    answer_a: Mapped[str] = mapped_column(String(512), nullable=False, default="")
    points_a: Mapped[Decimal] = mapped_column(_points_type, nullable=False, default=Decimal("1"))
    answer_b: Mapped[str] = mapped_column(String(512), nullable=False, default="")
    points_b: Mapped[Decimal] = mapped_column(_points_type, nullable=False, default=Decimal("1"))

    @property
    def points(self) -> Decimal:
        return Decimal(self.points_a or 0) + Decimal(self.points_b or 0)


class Respondent(Base):
    __tablename__ = "respondents"

    user_id: Mapped[int] = mapped_column(_bigint_pk, primary_key=True, autoincrement=False)
    score: Mapped[Decimal] = mapped_column(_points_type, nullable=False, default=Decimal("0"))
    correct_answers: Mapped[list[int]] = mapped_column(_json_type, nullable=False, default=list)
    wrong_answers: Mapped[list[int]] = mapped_column(_json_type, nullable=False, default=list)
    finished: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    closed_finished: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    degree: Mapped[str] = mapped_column(String(16), nullable=False, default="—")
    last_answer: Mapped[Optional[dict[str, Any]]] = mapped_column(_json_type, nullable=True)
    answers: Mapped[dict[str, str]] = mapped_column(_json_type, nullable=False, default=dict)
    enrolled_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


class Subscriber(Base):
    __tablename__ = "subscribers"

    chat_id: Mapped[int] = mapped_column(_bigint_pk, primary_key=True, autoincrement=False)
    created: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
