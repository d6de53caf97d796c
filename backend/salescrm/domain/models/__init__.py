"""Domain models"""

# Contacts and advisors
from .contact import (
    ContactStatus,
    InteractionType,
    Contact,
    ContactCreate,
    ContactUpdate,
    ContactFilters,
    Interaction,
)
from .advisor import (
    Advisor,
    AdvisorCreate,
    AdvisorUpdate,
    AdvisorWorkload,
    AdvisorPerformance,
)

# Quality scoring
from .quality import (
    IssueSource,
    NameCompleteness,
    AIMode,
    QualityIssue,
    ScoringConfig,
    ValidationReport,
    AIAssessment,
    AssessmentErrorKind,
    AssessmentError,
    AssessmentOutcome,
    QualityAnalysis,
)

# Distribution
from .distribution import (
    DistributionOptions,
    Assignment,
    AssignmentPlan,
    ExecutionResult,
    DistributionResult,
)

__all__ = [
    # Contacts and advisors
    "ContactStatus",
    "InteractionType",
    "Contact",
    "ContactCreate",
    "ContactUpdate",
    "ContactFilters",
    "Interaction",
    "Advisor",
    "AdvisorCreate",
    "AdvisorUpdate",
    "AdvisorWorkload",
    "AdvisorPerformance",
    # Quality scoring
    "IssueSource",
    "NameCompleteness",
    "AIMode",
    "QualityIssue",
    "ScoringConfig",
    "ValidationReport",
    "AIAssessment",
    "AssessmentErrorKind",
    "AssessmentError",
    "AssessmentOutcome",
    "QualityAnalysis",
    # Distribution
    "DistributionOptions",
    "Assignment",
    "AssignmentPlan",
    "ExecutionResult",
    "DistributionResult",
]
