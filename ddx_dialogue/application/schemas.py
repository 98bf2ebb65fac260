from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ddx_dialogue.domain.models import QuestionCategory, QuestionTemplate, UrgencyLevel


class DialogueState(str, Enum):
    INIT = "INIT"
    AWAITING_ANSWER = "AWAITING_ANSWER"
    TERMINATED = "TERMINATED"


class Outcome(str, Enum):
    DIAGNOSIS = "DIAGNOSIS"
    REFERRAL = "REFERRAL"


class RankedCondition(BaseModel):
    model_config = ConfigDict(frozen=True)

    condition_id: str
    name: str
    posterior: float = Field(..., ge=0.0, le=1.0)
    body_region: str = "general"
    supporting_findings: List[str] = []
    confidence_label: str


class RecommendationKind(str, Enum):
    GENERAL = "general"
    SPECIFIC = "specific"


class Recommendation(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: RecommendationKind
    message: str
    next_steps: List[str] = []
    condition: Optional[str] = None
    note: Optional[str] = None


class ConversationSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_questions: int
    duration_seconds: int = 0
    key_findings: List[str] = []
    final_confidence: float = Field(0.0, ge=0.0, le=1.0)


class DiagnosisResult(BaseModel):
    """Snapshot of the differential taken when a dialogue terminates normally."""
    model_config = ConfigDict(frozen=True)

    ranked_conditions: List[RankedCondition]
    confidence: float = Field(..., ge=0.0, le=1.0)
    summary: str
    evidence_quality: str
    questions_asked: int
    insufficient_data: bool = False
    low_confidence: bool = False
    recommendations: Optional[Recommendation] = None
    conversation_summary: Optional[ConversationSummary] = None

    @property
    def top(self) -> Optional[RankedCondition]:
        return self.ranked_conditions[0] if self.ranked_conditions else None


class ReferralResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    urgency: UrgencyLevel
    triggering_pattern_ids: List[str]
    triggering_pattern_names: List[str]
    detected_red_flags: List[str]
    message: str
    actions: List[str] = []
    associated_conditions: List[str] = []
    questions_asked: int = 0


class TurnKind(str, Enum):
    QUESTION = "question"
    DIAGNOSIS = "diagnosis"
    REFERRAL = "referral"


class TurnResult(BaseModel):
    """What the caller gets back after submitting one answer."""
    model_config = ConfigDict(frozen=True)

    session_id: str
    kind: TurnKind
    question: Optional[QuestionTemplate] = None
    diagnosis: Optional[DiagnosisResult] = None
    referral: Optional[ReferralResult] = None
    completion_percentage: float = 0.0


class DiagnosticsSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    session_id: str
    state: DialogueState
    outcome: Optional[Outcome] = None
    top_conditions: List[RankedCondition] = []
    confidence: float = 0.0
    completion_percentage: float = 0.0
    questions_asked: int = 0
    red_flags: List[str] = []
    urgency: Optional[UrgencyLevel] = None
    insufficient_data: bool = True
    low_confidence: bool = False
    missing_critical: List[QuestionCategory] = []
    evidence_quality: str
    summary: str


class ScreeningContext(BaseModel):
    """Session context shared with an external next-question advisor."""
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(..., alias="sessionId")
    body_region: Optional[str] = Field(None, alias="bodyRegion")
    collected_responses: Dict[str, Any] = Field(default_factory=dict, alias="collectedResponses")
    answered_question_ids: List[str] = Field(default_factory=list, alias="answeredQuestionIds")
    red_flags_detected: List[str] = Field(default_factory=list, alias="redFlagsDetected")
    session_duration: int = Field(0, alias="sessionDuration")
    top_conditions: Dict[str, float] = Field(default_factory=dict, alias="topConditions")
    candidate_question_ids: List[str] = Field(default_factory=list, alias="candidateQuestionIds")


class NextQuestionAdvice(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    question_id: str = Field(..., alias="questionId")
    priority: Optional[str] = None
    reasoning: Optional[str] = None
