from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    pass


class OrganizationORM(Base):
    __tablename__ = "organizations"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=utcnow, nullable=False
    )

    assessments: Mapped[list[AssessmentORM]] = relationship(
        back_populates="organization", cascade="all, delete-orphan"
    )


class SectionORM(Base):
    __tablename__ = "sections"
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    order: Mapped[int] = mapped_column(Integer, nullable=False)
    weight: Mapped[float] = mapped_column(Float, default=1.0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=utcnow, nullable=False
    )

    questions: Mapped[list[QuestionORM]] = relationship(
        back_populates="section", cascade="all, delete-orphan", order_by="QuestionORM.order"
    )


class QuestionORM(Base):
    __tablename__ = "questions"
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    section_id: Mapped[str] = mapped_column(
        ForeignKey("sections.id", ondelete="CASCADE"), nullable=False, index=True
    )
    text: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    options: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    mandatory: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    weight: Mapped[float] = mapped_column(Float, default=1.0, nullable=False)
    is_hidden: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=utcnow, nullable=False
    )

    __table_args__ = (
        CheckConstraint(
            "type IN ('BOOLEAN', 'LIKERT_SCALE', 'SINGLE_CHOICE', 'MULTIPLE_CHOICE', 'TEXT')",
            name="ck_question_type",
        ),
    )

    section: Mapped[SectionORM] = relationship(back_populates="questions")
    responses: Mapped[list[ResponseORM]] = relationship(
        back_populates="question", cascade="all, delete-orphan"
    )


class AssessmentORM(Base):
    __tablename__ = "assessments"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    organization_id: Mapped[int] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(String(32), default="IN_PROGRESS", nullable=False)
    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=utcnow, nullable=False
    )
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)

    __table_args__ = (
        CheckConstraint("status IN ('IN_PROGRESS', 'COMPLETED')", name="ck_assessment_status"),
    )

    organization: Mapped[OrganizationORM] = relationship(back_populates="assessments")
    responses: Mapped[list[ResponseORM]] = relationship(
        back_populates="assessment", cascade="all, delete-orphan"
    )
    suggestions: Mapped[list[GeneratedSuggestionORM]] = relationship(
        back_populates="assessment",
        cascade="all, delete-orphan",
        order_by="GeneratedSuggestionORM.position",
    )


class ResponseORM(Base):
    __tablename__ = "responses"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    assessment_id: Mapped[int] = mapped_column(
        ForeignKey("assessments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    question_id: Mapped[str] = mapped_column(
        ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    value: Mapped[Any] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=utcnow, onupdate=utcnow, nullable=False
    )

    __table_args__ = (
        UniqueConstraint("assessment_id", "question_id", name="uq_response_assessment_question"),
    )

    assessment: Mapped[AssessmentORM] = relationship(back_populates="responses")
    question: Mapped[QuestionORM] = relationship(back_populates="responses")


class SuggestionRuleORM(Base):
    """Administrator-authored rule; ``condition`` NULL means unconditional."""

    __tablename__ = "suggestion_rules"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    scope: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
    scope_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    condition: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    suggestion: Mapped[str] = mapped_column(Text, nullable=False)
    priority: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    weight: Mapped[float] = mapped_column(Float, default=1.0, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=utcnow, nullable=False
    )

    __table_args__ = (
        CheckConstraint("scope IN ('QUESTION', 'SECTION', 'ASSESSMENT')", name="ck_rule_scope"),
        CheckConstraint(
            "(scope = 'ASSESSMENT') OR (scope_id IS NOT NULL)", name="ck_rule_scope_target"
        ),
    )


class GeneratedSuggestionORM(Base):
    __tablename__ = "generated_suggestions"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    assessment_id: Mapped[int] = mapped_column(
        ForeignKey("assessments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    scope: Mapped[str] = mapped_column(String(16), nullable=False)
    source_rule_id: Mapped[int | None] = mapped_column(
        ForeignKey("suggestion_rules.id", ondelete="SET NULL"), nullable=True
    )
    source_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    suggestion: Mapped[str] = mapped_column(Text, nullable=False)
    priority: Mapped[int] = mapped_column(Integer, nullable=False)
    weight: Mapped[float] = mapped_column(Float, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    details: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=utcnow, nullable=False
    )

    # One consistent set per assessment: concurrent writers collide on position
    __table_args__ = (
        UniqueConstraint("assessment_id", "position", name="uq_suggestion_assessment_position"),
    )

    assessment: Mapped[AssessmentORM] = relationship(back_populates="suggestions")
