import pytest

from app.application.api import (
    create_suggestion_rule,
    delete_question,
    record_response,
    record_section_responses,
    reorder_section,
)
from app.domain.models import RuleScope
from app.infrastructure.exceptions import (
    AssessmentNotFoundError,
    QuestionNotFoundError,
    SectionNotFoundError,
    ValidationError,
)
from app.infrastructure.models import QuestionORM, ResponseORM, SuggestionRuleORM
from app.infrastructure.repositories import (
    AssessmentRepo,
    ResponseRepo,
    SectionRepo,
    SuggestionRuleRepo,
)
from tests.factories import add_rule


class TestSectionOrdering:
    def orders(self, session):
        return [(s.id, s.order) for s in SectionRepo(session).list_ordered()]

    def test_move_down_shifts_intermediate_sections_up(self, session, seeded):
        reorder_section(session, "governance-section", 3)
        assert self.orders(session) == [
            ("financial-section", 1),
            ("programme-section", 2),
            ("governance-section", 3),
            ("hr-section", 4),
        ]

    def test_move_up_shifts_intermediate_sections_down(self, session, seeded):
        reorder_section(session, "hr-section", 1)
        assert self.orders(session) == [
            ("hr-section", 1),
            ("governance-section", 2),
            ("financial-section", 3),
            ("programme-section", 4),
        ]

    def test_orders_stay_unique_and_contiguous(self, session, seeded):
        for section_id, position in [("programme-section", 1), ("governance-section", 4), ("hr-section", 2)]:
            reorder_section(session, section_id, position)
            assert sorted(order for _, order in self.orders(session)) == [1, 2, 3, 4]

    def test_out_of_range_order_is_rejected(self, session, seeded):
        with pytest.raises(ValidationError):
            reorder_section(session, "hr-section", 9)
        with pytest.raises(ValidationError):
            reorder_section(session, "hr-section", -1)

    def test_unknown_section(self, session, seeded):
        with pytest.raises(SectionNotFoundError):
            reorder_section(session, "volunteer-section", 1)


class TestQuestionDeletion:
    def test_delete_removes_responses_and_question_rules(self, session, seeded):
        record_response(session, seeded.assessment_id, "gov-q3", "We publish minutes")
        add_rule(session, RuleScope.QUESTION, "Publish minutes online", "gov-q3")
        keep = add_rule(session, RuleScope.QUESTION, "Adopt a constitution", "gov-q1")
        session.commit()

        delete_question(session, "gov-q3")
        session.commit()

        assert session.get(QuestionORM, "gov-q3") is None
        assert session.query(ResponseORM).filter_by(question_id="gov-q3").count() == 0
        remaining = session.query(SuggestionRuleORM).all()
        assert [r.id for r in remaining] == [keep.id]

    def test_delete_unknown_question(self, session, seeded):
        with pytest.raises(QuestionNotFoundError):
            delete_question(session, "gov-q99")


class TestResponses:
    def test_upsert_keeps_one_row_per_question(self, session, seeded):
        repo = ResponseRepo(session)
        repo.upsert(seeded.assessment_id, "gov-q2", 2)
        repo.upsert(seeded.assessment_id, "gov-q2", 5)

        rows = session.query(ResponseORM).filter_by(question_id="gov-q2").all()
        assert len(rows) == 1
        assert rows[0].value == 5

    def test_section_submission_stores_missing_answers_as_none(self, session, seeded):
        responses = record_section_responses(
            session, seeded.assessment_id, "governance-section", {"gov-q1": True, "gov-q3": "Annual AGM"}
        )
        assert [(r.question_id, r.value) for r in responses] == [
            ("gov-q1", True),
            ("gov-q2", None),
            ("gov-q3", "Annual AGM"),
        ]

        records = ResponseRepo(session).list_records(seeded.assessment_id)
        assert {r.question_id: r.question_type for r in records}["gov-q2"] == "LIKERT_SCALE"

    def test_section_submission_rejects_foreign_questions(self, session, seeded):
        with pytest.raises(ValidationError):
            record_section_responses(session, seeded.assessment_id, "hr-section", {"gov-q1": True})

    def test_section_submission_rejects_nested_values(self, session, seeded):
        with pytest.raises(ValidationError):
            record_section_responses(
                session, seeded.assessment_id, "hr-section", {"hr-q1": {"choice": "A"}}
            )

    def test_multiple_choice_round_trips_as_list(self, session, seeded):
        record_response(session, seeded.assessment_id, "prog-q1", ["Policy", "Audit"])
        session.commit()
        (record,) = ResponseRepo(session).list_records(seeded.assessment_id)
        assert record.value == ["Policy", "Audit"]
        assert record.section_id == "programme-section"

    def test_unknown_targets(self, session, seeded):
        with pytest.raises(AssessmentNotFoundError):
            record_response(session, 777, "gov-q1", True)
        with pytest.raises(QuestionNotFoundError):
            record_response(session, seeded.assessment_id, "gov-q77", True)


class TestRules:
    def test_create_rule_validates_condition(self, session, seeded):
        rule = create_suggestion_rule(
            session,
            RuleScope.SECTION,
            "  Strengthen financial controls  ",
            scope_id="financial-section",
            condition={"metric": "percentage", "operator": "lt", "threshold": 60},
            priority=8,
        )
        assert rule.id is not None
        assert rule.suggestion == "Strengthen financial controls"
        assert rule.condition == {"metric": "percentage", "operator": "lt", "threshold": 60.0}

        (loaded,) = SuggestionRuleRepo(session).list_active(RuleScope.SECTION)
        assert loaded.malformed is False
        assert loaded.condition.threshold == 60.0

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"scope": "SECTION", "condition": {"metric": "percentage", "operator": "between", "threshold": 1}},
            {"scope": "SECTION", "scope_id": None},
            {"scope": "ASSESSMENT", "scope_id": "hr-section"},
            {"scope": "TEAM"},
            {"scope": "SECTION", "priority": 101},
        ],
    )
    def test_invalid_rules_are_rejected(self, session, seeded, kwargs):
        params = {"scope_id": "financial-section", **kwargs}
        scope = params.pop("scope")
        with pytest.raises(ValidationError):
            create_suggestion_rule(session, scope, "Some advice", **params)
        assert session.query(SuggestionRuleORM).count() == 0


def test_assessment_lifecycle_helpers(session, seeded):
    repo = AssessmentRepo(session)
    assessment = repo.get_by_id_required(seeded.assessment_id)
    repo.mark_completed(assessment)
    assert assessment.status == "COMPLETED"
    repo.mark_in_progress(assessment)
    assert assessment.status == "IN_PROGRESS"
    assert assessment.completed_at is None
    with pytest.raises(AssessmentNotFoundError):
        repo.get_by_id_required(31337)
