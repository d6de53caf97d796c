"""
Contact Scorer
Combines validator output and the AI assessment into a bounded quality score.

Fixed additive weights, then penalties, then clamp to [0, 100]. The
completeness bonus is independent of the phone/email/name components, so
the unclamped sum is not meaningful on its own; the clamp is the bound.
"""
import logging
from typing import Any, List, Optional

from salescrm.domain.models.contact import extract_contact_fields
from salescrm.domain.models.quality import (
    AIAssessment,
    AIMode,
    AssessmentError,
    IssueSource,
    NameCompleteness,
    QualityAnalysis,
    QualityIssue,
    ScoringConfig,
)
from salescrm.domain.services.contact_validator import ContactValidator
from salescrm.domain.services.quality_assessor import QualityAssessor

logger = logging.getLogger(__name__)


class ContactScorer:
    """
    Scores contacts.

    The validator always runs first; the AI assessment is applied last and
    can only add issues and penalties.
    """

    def __init__(
        self,
        validator: ContactValidator,
        assessor: Optional[QualityAssessor] = None,
        config: Optional[ScoringConfig] = None
    ):
        self.validator = validator
        self.assessor = assessor
        self.config = config or ScoringConfig()

    async def score(self, contact: Any) -> QualityAnalysis:
        cfg = self.config
        report = self.validator.validate(contact)

        score = 0
        if report.phone_valid:
            score += cfg.valid_phone_weight
        if report.email_valid:
            score += cfg.valid_email_weight
        if report.name_completeness == NameCompleteness.FULL:
            score += cfg.complete_name_weight
        elif report.name_completeness == NameCompleteness.PARTIAL:
            score += cfg.complete_name_weight // 2
        if report.phone_valid and report.name_present:
            score += cfg.completeness_bonus
        if report.is_suspicious_by_pattern:
            score += cfg.pattern_penalty

        issues: List[QualityIssue] = list(report.issues)
        recommendations: List[QualityIssue] = list(report.recommendations)

        analysis = QualityAnalysis(is_suspicious_by_pattern=report.is_suspicious_by_pattern)

        if self.assessor is not None:
            outcome = await self.assessor.assess(contact)
            analysis.ai_mode = self.assessor.mode
            score += self._apply_assessment(outcome, analysis, issues, recommendations)

        analysis.score = max(0, min(100, round(score)))
        analysis.issues = issues
        analysis.recommendations = recommendations

        fields = extract_contact_fields(contact)
        logger.info(
            f"Contact analysis finished for {fields['name'] or fields['id']}: "
            f"score={analysis.score}, issues={len(issues)}"
        )
        return analysis

    def _apply_assessment(
        self,
        outcome: Any,
        analysis: QualityAnalysis,
        issues: List[QualityIssue],
        recommendations: List[QualityIssue]
    ) -> int:
        """Record the AI outcome on the analysis; returns the score delta"""
        if isinstance(outcome, AssessmentError):
            analysis.ai_error = outcome
            issues.append(QualityIssue(source=IssueSource.AI, message=outcome.message))
            return 0

        if not isinstance(outcome, AIAssessment):
            return 0

        delta = 0
        if outcome.mode == AIMode.OFFLINE:
            issues.append(QualityIssue(
                source=IssueSource.AI,
                message="AI service in offline mode. No live analysis was performed."
            ))
        else:
            analysis.ai_details = outcome.details

        if outcome.is_suspicious:
            analysis.is_suspicious_by_ai = True
            delta += self.config.ai_suspicion_penalty
            reason = outcome.suspicion_reason or "See AI details."
            issues.append(QualityIssue(
                source=IssueSource.AI,
                message=f"AI flagged the contact as suspicious. Reason: {reason}"
            ))
            recommendations.append(QualityIssue(
                source=IssueSource.AI,
                message="The contact was flagged as potentially problematic by the AI. Manual review recommended."
            ))

        if outcome.quality_issues:
            issues.append(QualityIssue(
                source=IssueSource.AI,
                message=f"AI identified quality issues: {', '.join(outcome.quality_issues)}"
            ))
        if outcome.recommendations:
            recommendations.append(QualityIssue(
                source=IssueSource.AI,
                message=f"AI suggestions: {', '.join(outcome.recommendations)}"
            ))
        return delta
