from __future__ import annotations

from pathlib import Path

import pandas as pd
from sqlalchemy import func, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from app.application.api import create_suggestion_rule
from app.domain.models import QuestionType
from app.infrastructure.config import ScoringConfig, get_scoring_config
from app.infrastructure.exceptions import SectionNotFoundError, ValidationError
from app.infrastructure.logging import get_logger
from app.infrastructure.models import Base, QuestionORM, SectionORM

logger = get_logger(__name__)


def initialise_database(engine: Engine) -> bool:
    """
    Ensure all ORM tables exist.

    Returns:
        True if every table already existed before this call, False if at least one table
        needed to be created.
    """

    inspector = inspect(engine)
    existing_tables = set(inspector.get_table_names())
    expected_tables = [table.name for table in Base.metadata.sorted_tables]
    already_exists = all(table in existing_tables for table in expected_tables)
    Base.metadata.create_all(engine)
    return already_exists


def seed_reference_sections(session: Session, config: ScoringConfig | None = None) -> list[SectionORM]:
    """
    Create the scored sections named by the scoring configuration.

    Existing sections are left as they are, so the call is safe to repeat.
    Returns the sections that were created.
    """
    config = config or get_scoring_config()
    existing = {sid for (sid,) in session.query(SectionORM.id).all()}
    next_order = (session.query(func.max(SectionORM.order)).scalar() or 0) + 1

    created: list[SectionORM] = []
    for dimension in config.dimensions:
        if dimension.section_id in existing:
            continue
        section = SectionORM(id=dimension.section_id, title=dimension.label, order=next_order)
        session.add(section)
        created.append(section)
        next_order += 1

    session.flush()
    logger.info(f"Seeded {len(created)} reference sections")
    return created


QUESTION_SHEET = "Questions"
RULE_SHEET = "Rules"


def clean_text(value: object) -> str:
    if isinstance(value, str):
        return value.strip()
    if value is None:
        return ""
    if pd.isna(value):
        return ""
    return str(value).strip()


def clean_optional(value: object) -> str | None:
    text = clean_text(value)
    return text or None


def split_options(cell: object) -> list[str] | None:
    text = clean_text(cell)
    if not text:
        return None
    return [part.strip() for part in text.split(";") if part.strip()]


def _as_bool(value: object) -> bool:
    return clean_text(value).lower() in {"1", "true", "yes", "y"}


def _as_threshold(value: object) -> float | str | bool:
    text = clean_text(value)
    if text.lower() in {"true", "false"}:
        return text.lower() == "true"
    try:
        return float(text)
    except ValueError:
        return text


def sync_questions(session: Session, table: pd.DataFrame) -> int:
    """
    Insert or update questions from a ``Questions`` sheet.

    Expected columns: QuestionID, SectionID, Text, Type, Mandatory, Order, Options
    (semicolon separated), Description.
    """
    count = 0
    for row in table.to_dict(orient="records"):
        question_id = clean_text(row.get("QuestionID"))
        if not question_id:
            continue
        section_id = clean_text(row.get("SectionID"))
        if session.get(SectionORM, section_id) is None:
            raise SectionNotFoundError(section_id)

        raw_type = clean_text(row.get("Type")).upper()
        if raw_type not in {t.value for t in QuestionType}:
            raise ValidationError("Type", f"Unknown question type for {question_id}", value=raw_type)
        order = row.get("Order")
        fields = {
            "section_id": section_id,
            "text": clean_text(row.get("Text")),
            "description": clean_optional(row.get("Description")),
            "type": raw_type,
            "mandatory": _as_bool(row.get("Mandatory")),
            "order": 0 if order is None or pd.isna(order) else int(order),
            "options": split_options(row.get("Options")),
        }

        question = session.get(QuestionORM, question_id)
        if question is None:
            session.add(QuestionORM(id=question_id, **fields))
        else:
            for name, value in fields.items():
                setattr(question, name, value)
        count += 1

    session.flush()
    return count


def seed_rules(session: Session, table: pd.DataFrame) -> int:
    """
    Create suggestion rules from a ``Rules`` sheet.

    Expected columns: Scope, ScopeID, Suggestion, Metric, Operator, Threshold,
    Priority, Weight. Rows without a Metric are unconditional.
    """
    count = 0
    for row in table.to_dict(orient="records"):
        suggestion = clean_text(row.get("Suggestion"))
        if not suggestion:
            continue
        metric = clean_optional(row.get("Metric"))
        condition = None
        if metric:
            condition = {
                "metric": metric,
                "operator": clean_text(row.get("Operator")).lower(),
                "threshold": _as_threshold(row.get("Threshold")),
            }
        priority = row.get("Priority")
        weight = row.get("Weight")
        create_suggestion_rule(
            session,
            clean_text(row.get("Scope")).upper(),
            suggestion,
            scope_id=clean_optional(row.get("ScopeID")),
            condition=condition,
            priority=1 if priority is None or pd.isna(priority) else int(priority),
            weight=1.0 if weight is None or pd.isna(weight) else float(weight),
        )
        count += 1
    return count


def seed_questionnaire_from_workbook(session: Session, excel_path: Path) -> tuple[int, int]:
    """
    Load questions (and optionally rules) from an Excel workbook.

    Returns:
        Number of questions synced and number of rules created
    """
    sheets = pd.read_excel(excel_path, sheet_name=None, engine="openpyxl")
    if QUESTION_SHEET not in sheets:
        raise ValidationError("excel_path", f"Workbook has no '{QUESTION_SHEET}' sheet", value=str(excel_path))

    questions = sync_questions(session, sheets[QUESTION_SHEET])
    rules = seed_rules(session, sheets[RULE_SHEET]) if RULE_SHEET in sheets else 0
    logger.info(f"Seeded {questions} questions and {rules} rules from {excel_path}")
    return questions, rules
