"""
Unit tests for ContactScorer
Weights, penalties, clamping and issue ordering
"""
import pytest
from unittest.mock import AsyncMock, MagicMock

from salescrm.domain.models.quality import (
    AIAssessment,
    AIMode,
    AssessmentError,
    AssessmentErrorKind,
    IssueSource,
    ScoringConfig,
)
from salescrm.domain.services.contact_scorer import ContactScorer
from salescrm.domain.services.contact_validator import ContactValidator
from salescrm.domain.services.quality_assessor import QualityAssessor

REFERENCE_CONTACT = {"name": "Juan Perez", "phone": "+16502530000", "email": "juan@example.com"}


def mock_assessor(outcome, mode=AIMode.LIVE):
    assessor = MagicMock()
    assessor.mode = mode
    assessor.assess = AsyncMock(return_value=outcome)
    return assessor


class TestScoreComponents:
    """Additive weights and penalties"""

    @pytest.mark.asyncio
    async def test_reference_contact_scores_90(self):
        scorer = ContactScorer(ContactValidator(default_region="MX"))

        analysis = await scorer.score(REFERENCE_CONTACT)

        assert analysis.score == 90
        assert analysis.issues == []
        assert analysis.is_suspicious is False

    @pytest.mark.asyncio
    async def test_offline_mode_keeps_90_and_adds_info_issue(self, offline_assessor):
        scorer = ContactScorer(ContactValidator(default_region="MX"), offline_assessor)

        analysis = await scorer.score(REFERENCE_CONTACT)

        assert analysis.score == 90
        assert analysis.ai_mode == AIMode.OFFLINE
        assert analysis.issue_messages(IssueSource.AI) == [
            "AI service in offline mode. No live analysis was performed."
        ]

    @pytest.mark.asyncio
    async def test_pattern_penalty_applies_once(self):
        scorer = ContactScorer(ContactValidator(default_region="US"))

        # test123: partial name (10) + phone (30) + email (20) + bonus (20) - pattern (10)
        analysis = await scorer.score({"name": "test123", "phone": "+16502530000", "email": "t@example.com"})

        assert analysis.is_suspicious_by_pattern is True
        assert analysis.score == 70
        assert len(analysis.issue_messages(IssueSource.PATTERN)) == 1

    @pytest.mark.asyncio
    async def test_several_patterns_still_one_penalty(self):
        scorer = ContactScorer(ContactValidator(default_region="US"))

        # "testaaa": placeholder_prefix + repeated_characters + all_lowercase
        analysis = await scorer.score({"name": "testaaa", "phone": "+16502530000"})

        assert analysis.score == 30 + 10 + 20 - 10

    @pytest.mark.asyncio
    async def test_ai_suspicion_penalty(self):
        outcome = AIAssessment(mode=AIMode.LIVE, is_suspicious=True, suspicion_reason="Name is a celebrity")
        scorer = ContactScorer(ContactValidator(default_region="MX"), mock_assessor(outcome))

        analysis = await scorer.score(REFERENCE_CONTACT)

        assert analysis.score == 70
        assert analysis.is_suspicious_by_ai is True
        assert analysis.is_suspicious is True
        assert any("celebrity" in m for m in analysis.issue_messages(IssueSource.AI))

    @pytest.mark.asyncio
    async def test_custom_weights(self):
        config = ScoringConfig(valid_phone_weight=50, completeness_bonus=0)
        scorer = ContactScorer(ContactValidator(default_region="MX"), config=config)

        analysis = await scorer.score(REFERENCE_CONTACT)

        assert analysis.score == 50 + 20 + 20


class TestBounds:
    """Score stays within [0, 100] for any input shape"""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("contact", [
        None,
        {},
        "not a contact",
        {"name": None, "phone": None},
        {"name": "aaa", "phone": "0"},
        {"name": "x" * 500, "phone": "+16502530000", "email": "a@example.com"},
    ])
    async def test_score_is_bounded(self, contact):
        outcome = AIAssessment(mode=AIMode.LIVE, is_suspicious=True)
        scorer = ContactScorer(ContactValidator(default_region="US"), mock_assessor(outcome))

        analysis = await scorer.score(contact)

        assert 0 <= analysis.score <= 100

    @pytest.mark.asyncio
    async def test_clamps_at_zero(self):
        outcome = AIAssessment(mode=AIMode.LIVE, is_suspicious=True)
        scorer = ContactScorer(ContactValidator(default_region="US"), mock_assessor(outcome))

        analysis = await scorer.score({"name": "aaa"})

        assert analysis.score == 0

    @pytest.mark.asyncio
    async def test_clamps_at_hundred(self):
        config = ScoringConfig(valid_phone_weight=80)
        scorer = ContactScorer(ContactValidator(default_region="MX"), config=config)

        analysis = await scorer.score(REFERENCE_CONTACT)

        assert analysis.score == 100


class TestAIOutcomes:
    """How each AI outcome is folded into the analysis"""

    @pytest.mark.asyncio
    async def test_assessment_error_adds_issue_without_penalty(self):
        error = AssessmentError(kind=AssessmentErrorKind.TIMEOUT, message="AI analysis timed out after 15.0s")
        scorer = ContactScorer(ContactValidator(default_region="MX"), mock_assessor(error))

        analysis = await scorer.score(REFERENCE_CONTACT)

        assert analysis.score == 90
        assert analysis.is_suspicious_by_ai is False
        assert analysis.ai_details is None
        assert analysis.ai_error == error
        assert analysis.issue_messages(IssueSource.AI) == ["AI analysis timed out after 15.0s"]

    @pytest.mark.asyncio
    async def test_live_answer_with_null_lists_still_penalized(self, live_provider):
        live_provider.generate.return_value = (
            '{"is_suspicious": true, "suspicion_score": 0.9, "suspicion_reason": "fake", '
            '"quality_issues": null, "recommendations": null}'
        )
        scorer = ContactScorer(
            ContactValidator(default_region="MX"),
            QualityAssessor(AIMode.LIVE, provider=live_provider)
        )

        analysis = await scorer.score(REFERENCE_CONTACT)

        assert analysis.score == 70
        assert analysis.is_suspicious_by_ai is True
        assert analysis.ai_error is None

    @pytest.mark.asyncio
    async def test_live_details_are_kept(self):
        details = {"is_suspicious": False, "quality_issues": ["Generic email provider"]}
        outcome = AIAssessment(
            mode=AIMode.LIVE,
            quality_issues=["Generic email provider"],
            recommendations=["Ask for a work email"],
            details=details,
        )
        scorer = ContactScorer(ContactValidator(default_region="MX"), mock_assessor(outcome))

        analysis = await scorer.score(REFERENCE_CONTACT)

        assert analysis.ai_details == details
        assert analysis.score == 90
        assert analysis.recommendations[-1].message == "AI suggestions: Ask for a work email"

    @pytest.mark.asyncio
    async def test_issue_order_is_validator_pattern_ai(self):
        outcome = AIAssessment(mode=AIMode.LIVE, is_suspicious=True)
        scorer = ContactScorer(ContactValidator(default_region="US"), mock_assessor(outcome))

        analysis = await scorer.score({"name": "test123", "phone": "bad"})

        sources = [i.source for i in analysis.issues]
        assert sources == sorted(sources, key=["validator", "pattern", "ai"].index)
        assert sources[-1] == "ai"

    @pytest.mark.asyncio
    async def test_scoring_is_reproducible(self):
        outcome = AIAssessment(mode=AIMode.LIVE, is_suspicious=True, suspicion_reason="Repeated digits")
        scorer = ContactScorer(ContactValidator(default_region="US"), mock_assessor(outcome))
        contact = {"name": "Juan Perez", "phone": "+16502530000"}

        first = await scorer.score(contact)
        second = await scorer.score(contact)

        assert first.model_dump() == second.model_dump()
