"""
AI Quality Assessor
Asks a generative model for a supplemental suspicion/quality judgment on a contact.

Two modes, fixed when the assessor is built:
- LIVE: one bounded call to the LLM provider per assessment, no retries
- OFFLINE: deterministic stub, never touches the network

Failures in live mode (timeout, provider error, unparseable response) come back
as an AssessmentError value. assess() never raises for them.
"""
import re
import json
import asyncio
import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ValidationError, field_validator

from salescrm.domain.interfaces.llm_provider import LLMProvider
from salescrm.domain.models.contact import extract_contact_fields
from salescrm.domain.models.quality import (
    AIAssessment,
    AIMode,
    AssessmentError,
    AssessmentErrorKind,
    AssessmentOutcome,
)

logger = logging.getLogger(__name__)


SYSTEM_PROMPT = (
    "You are a data quality analyst for a sales CRM. "
    "You reply with a single JSON object and nothing else."
)

CONTACT_ANALYSIS_PROMPT = """Analyze the quality and authenticity of the following contact data. Reply ONLY with a JSON object.
Do not add explanations outside the JSON. The JSON must have this structure:
{{
  "is_genuine_person": boolean,
  "is_suspicious": boolean,
  "suspicion_score": float,
  "suspicion_reason": string,
  "data_completeness_score": float,
  "data_accuracy_score": float,
  "quality_issues": [string],
  "recommendations": [string]
}}
suspicion_score, data_completeness_score and data_accuracy_score range from 0.0 to 1.0
(1.0 is very suspicious / fully complete / fully accurate).

Contact data:
Name: {name}
Phone: {phone}
Email: {email}
Source: {source}
Notes: {notes}
"""

_FENCED_BLOCK = re.compile(r"```(?:json)?\s*(.*?)\s*```", re.DOTALL | re.IGNORECASE)


def build_contact_prompt(contact: Any) -> str:
    fields = extract_contact_fields(contact)
    return CONTACT_ANALYSIS_PROMPT.format(
        name=fields["name"] or "Not provided",
        phone=fields["phone"] or "Not provided",
        email=fields["email"] or "Not provided",
        source=fields["source"] or "Not provided",
        notes=fields["notes"] or "None",
    )


def extract_json_object(text: Optional[str]) -> Optional[Dict[str, Any]]:
    """
    Return the first well-formed JSON object in free-form model output.

    A ```json fenced block is searched first, then the whole text.
    """
    if not text:
        return None

    candidates: List[str] = []
    fenced = _FENCED_BLOCK.search(text)
    if fenced:
        candidates.append(fenced.group(1))
    candidates.append(text)

    decoder = json.JSONDecoder()
    for candidate in candidates:
        start = candidate.find("{")
        while start != -1:
            try:
                obj, _ = decoder.raw_decode(candidate, start)
            except json.JSONDecodeError:
                obj = None
            if isinstance(obj, dict):
                return obj
            start = candidate.find("{", start + 1)
    return None


class _AIPayload(BaseModel):
    """Shape requested from the model; unknown keys are ignored"""
    is_genuine_person: Optional[bool] = None
    is_suspicious: Optional[bool] = None
    suspicion_score: Optional[float] = None
    suspicion_reason: Optional[str] = None
    data_completeness_score: Optional[float] = None
    data_accuracy_score: Optional[float] = None
    quality_issues: List[str] = []
    recommendations: List[str] = []

    @field_validator("quality_issues", "recommendations", mode="before")
    @classmethod
    def _null_list_is_empty(cls, value):
        return [] if value is None else value


class QualityAssessor:
    """
    AI-backed contact assessment with an offline fallback.

    Build with `create_quality_assessor()` at startup, or construct
    directly with an explicit mode (tests, offline deployments).
    """

    def __init__(
        self,
        mode: AIMode,
        provider: Optional[LLMProvider] = None,
        timeout_seconds: float = 15.0,
        suspicion_threshold: float = 0.7
    ):
        if mode == AIMode.LIVE and provider is None:
            raise ValueError("Live mode requires an LLM provider")
        self._mode = mode
        self._provider = provider if mode == AIMode.LIVE else None
        self.timeout_seconds = timeout_seconds
        self.suspicion_threshold = suspicion_threshold

    @property
    def mode(self) -> AIMode:
        return self._mode

    @property
    def is_live(self) -> bool:
        return self._mode == AIMode.LIVE

    async def assess(self, contact: Any) -> AssessmentOutcome:
        if not self.is_live:
            return self._offline_assessment(contact)

        contact_id = extract_contact_fields(contact)["id"]
        prompt = build_contact_prompt(contact)

        try:
            raw = await asyncio.wait_for(
                self._provider.generate(prompt, system_prompt=SYSTEM_PROMPT),
                timeout=self.timeout_seconds
            )
        except asyncio.TimeoutError:
            logger.warning(f"AI assessment timed out after {self.timeout_seconds}s (contact={contact_id})")
            return AssessmentError(
                kind=AssessmentErrorKind.TIMEOUT,
                message=f"AI analysis timed out after {self.timeout_seconds}s"
            )
        except Exception as e:
            logger.error(f"AI assessment call failed (contact={contact_id}): {e}")
            return AssessmentError(kind=AssessmentErrorKind.PROVIDER, message=f"AI analysis failed: {e}")

        payload = extract_json_object(raw)
        if payload is None:
            logger.warning(f"No JSON object in AI response (contact={contact_id}): {raw!r:.200}")
            return AssessmentError(
                kind=AssessmentErrorKind.PARSE,
                message="AI response could not be parsed as JSON"
            )

        try:
            parsed = _AIPayload.model_validate(payload)
        except ValidationError as e:
            logger.warning(f"Malformed AI payload (contact={contact_id}): {e}")
            return AssessmentError(
                kind=AssessmentErrorKind.PARSE,
                message=f"Error processing AI response: {e.error_count()} invalid field(s)"
            )

        flagged = bool(parsed.is_suspicious) or (
            parsed.suspicion_score is not None and parsed.suspicion_score > self.suspicion_threshold
        )
        logger.info(f"AI assessment received (contact={contact_id}, suspicious={flagged})")

        return AIAssessment(
            mode=AIMode.LIVE,
            is_suspicious=flagged,
            suspicion_score=parsed.suspicion_score,
            suspicion_reason=parsed.suspicion_reason,
            is_genuine_person=parsed.is_genuine_person,
            data_completeness_score=parsed.data_completeness_score,
            data_accuracy_score=parsed.data_accuracy_score,
            quality_issues=parsed.quality_issues,
            recommendations=parsed.recommendations,
            details=payload,
        )

    def _offline_assessment(self, contact: Any) -> AIAssessment:
        """Stub used without credentials: only 'demo' names are flagged"""
        name = extract_contact_fields(contact)["name"] or ""
        if "demo" in name.lower():
            return AIAssessment(
                mode=AIMode.OFFLINE,
                is_suspicious=True,
                suspicion_score=1.0,
                suspicion_reason="Offline stub flags demo names",
            )
        return AIAssessment(mode=AIMode.OFFLINE, is_suspicious=False, suspicion_score=0.0)

    async def cleanup(self) -> None:
        if self._provider:
            await self._provider.cleanup()


async def create_quality_assessor(
    api_key: Optional[str],
    provider_name: str = "groq",
    provider_config: Optional[dict] = None,
    timeout_seconds: float = 15.0,
    suspicion_threshold: float = 0.7
) -> QualityAssessor:
    """
    Decide the AI mode once, from the configured credentials.

    No key, an unknown provider or a provider that fails to initialize
    all yield an OFFLINE assessor.
    """
    from salescrm.infrastructure.llm.factory import LLMFactory

    if not api_key:
        logger.warning("No AI API key configured. Quality assessor running in offline mode.")
        return QualityAssessor(AIMode.OFFLINE, timeout_seconds=timeout_seconds,
                               suspicion_threshold=suspicion_threshold)

    config = dict(provider_config or {})
    config["api_key"] = api_key
    try:
        provider = LLMFactory.create(provider_name, config)
        await provider.initialize(config)
    except Exception as e:
        logger.error(f"Failed to initialize {provider_name} provider, running in offline mode: {e}")
        return QualityAssessor(AIMode.OFFLINE, timeout_seconds=timeout_seconds,
                               suspicion_threshold=suspicion_threshold)

    logger.info(f"Quality assessor running in live mode ({provider.name})")
    return QualityAssessor(
        AIMode.LIVE,
        provider=provider,
        timeout_seconds=timeout_seconds,
        suspicion_threshold=suspicion_threshold
    )
