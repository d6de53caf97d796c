"""
Quality Analysis Models
Validator output, AI assessment outcomes and the combined quality analysis
"""
from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any, Union
from enum import Enum


class IssueSource(str, Enum):
    """Which stage of the scoring pipeline raised an issue"""
    VALIDATOR = "validator"
    PATTERN = "pattern"
    AI = "ai"


class NameCompleteness(str, Enum):
    FULL = "full"      # first + last name
    PARTIAL = "partial"
    NONE = "none"


class AIMode(str, Enum):
    """Whether the assessor calls the external model or returns a stub"""
    LIVE = "live"
    OFFLINE = "offline"


class QualityIssue(BaseModel):
    """A problem or recommendation tagged with the stage that raised it"""
    source: IssueSource
    message: str

    model_config = {"use_enum_values": True}


class ScoringConfig(BaseModel):
    """Weights and thresholds for contact quality scoring"""
    valid_phone_weight: int = Field(default=30, description="Points for a valid, dialable phone")
    valid_email_weight: int = Field(default=20, description="Points for a present, well-formed email")
    complete_name_weight: int = Field(default=20, description="Points for a first + last name")
    completeness_bonus: int = Field(default=20, description="Points when phone is valid and name is present")
    ai_suspicion_penalty: int = Field(default=-20, le=0, description="Applied when the AI flags the contact")
    ai_suspicion_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    default_phone_region: str = Field(default="MX", min_length=2, max_length=2)

    @property
    def pattern_penalty(self) -> int:
        """Pattern matches cost half the AI penalty"""
        return self.ai_suspicion_penalty // 2


class ValidationReport(BaseModel):
    """Deterministic checks on a contact's phone, email and name"""
    phone_valid: bool = False
    normalized_phone: Optional[str] = None
    email_present: bool = False
    email_valid: bool = False
    name_present: bool = False
    name_completeness: NameCompleteness = NameCompleteness.NONE
    is_suspicious_by_pattern: bool = False
    matched_patterns: List[str] = []
    issues: List[QualityIssue] = []
    recommendations: List[QualityIssue] = []


class AIAssessment(BaseModel):
    """Successful judgment from the AI assessor (live call or offline stub)"""
    mode: AIMode
    is_suspicious: bool = False
    suspicion_score: Optional[float] = None
    suspicion_reason: Optional[str] = None
    is_genuine_person: Optional[bool] = None
    data_completeness_score: Optional[float] = None
    data_accuracy_score: Optional[float] = None
    quality_issues: List[str] = []
    recommendations: List[str] = []
    details: Optional[Dict[str, Any]] = None  # raw payload, live mode only


class AssessmentErrorKind(str, Enum):
    TIMEOUT = "timeout"
    PROVIDER = "provider"   # network, auth or API failure
    PARSE = "parse"         # no usable JSON in the response


class AssessmentError(BaseModel):
    """The AI step ran but produced no signal"""
    kind: AssessmentErrorKind
    message: str


AssessmentOutcome = Union[AIAssessment, AssessmentError]


class QualityAnalysis(BaseModel):
    """Combined result of validation, pattern checks and AI assessment"""
    score: int = Field(default=0, ge=0, le=100)
    issues: List[QualityIssue] = []
    recommendations: List[QualityIssue] = []
    is_suspicious_by_pattern: bool = False
    is_suspicious_by_ai: bool = False
    ai_mode: Optional[AIMode] = None
    ai_details: Optional[Dict[str, Any]] = None
    ai_error: Optional[AssessmentError] = None

    @property
    def is_suspicious(self) -> bool:
        return self.is_suspicious_by_pattern or self.is_suspicious_by_ai

    def issue_messages(self, source: Optional[IssueSource] = None) -> List[str]:
        """Issue texts, optionally restricted to one source"""
        wanted = source.value if source else None
        return [i.message for i in self.issues if wanted is None or i.source == wanted]
