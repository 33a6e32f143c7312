"""Quality review data models."""

from enum import Enum

from pydantic import BaseModel, Field


class Severity(str, Enum):
    """Issue severity, most serious first."""

    CRITICAL = "critical"
    MAJOR = "major"
    MINOR = "minor"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {Severity.CRITICAL: 0, Severity.MAJOR: 1, Severity.MINOR: 2}


class Dimension(str, Enum):
    """Scored aspects of an article."""

    STRUCTURAL = "structural"
    FACTUAL_DENSITY = "factual_density"
    ATTRIBUTION = "attribution"
    FORMATTING = "formatting"
    ANALYTICAL_DEPTH = "analytical_depth"
    REGISTER = "register_compliance"


class QualityIssue(BaseModel):
    """One rule violation."""

    dimension: Dimension
    severity: Severity
    rule: str
    description: str
    example: str | None = None
    suggestion: str
    penalty: int = 0

    model_config = {"frozen": True}


class DimensionScores(BaseModel):
    """Per-dimension scores, each 0-100."""

    structural: int = Field(default=100, ge=0, le=100)
    factual_density: int = Field(default=100, ge=0, le=100)
    attribution: int = Field(default=100, ge=0, le=100)
    formatting: int = Field(default=100, ge=0, le=100)
    analytical_depth: int = Field(default=100, ge=0, le=100)
    register_compliance: int = Field(default=100, ge=0, le=100)

    model_config = {"frozen": True}

    def get(self, dimension: Dimension) -> int:
        return int(getattr(self, dimension.value))


class QualityReview(BaseModel):
    """Result of scoring one article. Never mutated after return."""

    scores: DimensionScores
    issues: tuple[QualityIssue, ...] = ()
    overall: int = Field(..., ge=0, le=100)
    passed: bool
    threshold: int = 70

    model_config = {"frozen": True}

    def issues_by_severity(self, severity: Severity) -> list[QualityIssue]:
        return [issue for issue in self.issues if issue.severity == severity]

    @property
    def critical_issues(self) -> list[QualityIssue]:
        return self.issues_by_severity(Severity.CRITICAL)


class ArticleCheck(BaseModel):
    """Outcome of the pre-publication structure check."""

    valid: bool
    errors: list[str] = Field(default_factory=list)
