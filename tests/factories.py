from types import SimpleNamespace

from app.domain.models import QuestionType, RuleScope
from app.infrastructure.config import ScoringConfig
from app.infrastructure.models import AssessmentORM, OrganizationORM, QuestionORM, SuggestionRuleORM
from app.utils.seed import seed_reference_sections

QUESTIONS = [
    # id, section, type, mandatory, order
    ("gov-q1", "governance-section", QuestionType.BOOLEAN, True, 1),
    ("gov-q2", "governance-section", QuestionType.LIKERT_SCALE, True, 2),
    ("gov-q3", "governance-section", QuestionType.TEXT, False, 3),
    ("fin-q1", "financial-section", QuestionType.BOOLEAN, True, 1),
    ("fin-q2", "financial-section", QuestionType.BOOLEAN, False, 2),
    ("fin-q3", "financial-section", QuestionType.BOOLEAN, False, 3),
    ("fin-q4", "financial-section", QuestionType.BOOLEAN, False, 4),
    ("fin-q5", "financial-section", QuestionType.BOOLEAN, False, 5),
    ("fin-q6", "financial-section", QuestionType.BOOLEAN, False, 6),
    ("prog-q1", "programme-section", QuestionType.MULTIPLE_CHOICE, False, 1),
    ("hr-q1", "hr-section", QuestionType.SINGLE_CHOICE, False, 1),
    ("hr-q2", "hr-section", QuestionType.LIKERT_SCALE, False, 2),
]


def seed_questionnaire(s):
    """Sections, questions, one organisation and one IN_PROGRESS assessment."""
    seed_reference_sections(s, ScoringConfig())
    for qid, section_id, qtype, mandatory, order in QUESTIONS:
        options = ["Policy", "Audit", "Training"] if qtype == QuestionType.MULTIPLE_CHOICE else None
        s.add(
            QuestionORM(
                id=qid,
                section_id=section_id,
                text=f"Question {qid}",
                type=qtype.value,
                mandatory=mandatory,
                order=order,
                options=options,
            )
        )
    org = OrganizationORM(name="Helping Hands CSO", email="info@helpinghands.org")
    s.add(org)
    s.flush()
    assessment = AssessmentORM(organization_id=org.id)
    s.add(assessment)
    s.flush()
    return SimpleNamespace(organization_id=org.id, assessment_id=assessment.id)


def add_rule(s, scope, suggestion, scope_id=None, condition=None, priority=1, weight=1.0, is_active=True):
    rule = SuggestionRuleORM(
        scope=RuleScope(scope).value,
        scope_id=scope_id,
        condition=condition,
        suggestion=suggestion,
        priority=priority,
        weight=weight,
        is_active=is_active,
    )
    s.add(rule)
    s.flush()
    return rule
