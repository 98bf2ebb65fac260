import re
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Set, Union

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator, model_validator


NEUTRAL_WEIGHT = 1.0
REGION_FINDING_KEY = "pain_location"
NEGATIVE_CHOICES = {"none", "no", "nothing"}


def evidence_key(finding_key: str, value: Optional[str] = None) -> str:
    """Build the evidence key a finding contributes to belief updates.

    A present boolean finding contributes its bare key; every other value is
    appended after an ``=`` (``pain_night=no``, ``pain_intensity=severe``).
    """
    if value is None:
        return finding_key
    return f"{finding_key}={value}"


def scale_bucket(value: float, scale_min: float = 0, scale_max: float = 10) -> str:
    span = scale_max - scale_min
    if span <= 0 or value <= scale_min:
        return "none"
    fraction = (value - scale_min) / span
    if fraction <= 0.3:
        return "mild"
    if fraction <= 0.6:
        return "moderate"
    return "severe"


SCALE_BUCKETS = ["none", "mild", "moderate", "severe"]


class UrgencyLevel(str, Enum):
    LOW = "LOW"
    MODERATE = "MODERATE"
    HIGH = "HIGH"
    URGENT = "URGENT"

    @property
    def rank(self) -> int:
        return _URGENCY_RANK[self]


_URGENCY_RANK = {
    UrgencyLevel.LOW: 1,
    UrgencyLevel.MODERATE: 2,
    UrgencyLevel.HIGH: 3,
    UrgencyLevel.URGENT: 4,
}


class QuestionCategory(str, Enum):
    RED_FLAG_SCREENING = "red_flag_screening"
    PAIN = "pain"
    NEUROLOGICAL = "neurological"
    RANGE_OF_MOTION = "range_of_motion"
    MOTOR = "motor"
    OBJECTIVE = "objective"
    FUNCTIONAL = "functional"
    HISTORY = "history"


class FindingCategory(str, Enum):
    PAIN = "pain"
    NEUROLOGICAL = "neurological"
    RANGE_OF_MOTION = "range_of_motion"
    MOTOR = "motor"
    OBJECTIVE = "objective"
    FUNCTIONAL = "functional"
    HISTORY = "history"


# Screening answers are stored with the patient's history unless a template says otherwise
DEFAULT_FINDING_CATEGORY = {
    QuestionCategory.RED_FLAG_SCREENING: FindingCategory.HISTORY,
    QuestionCategory.PAIN: FindingCategory.PAIN,
    QuestionCategory.NEUROLOGICAL: FindingCategory.NEUROLOGICAL,
    QuestionCategory.RANGE_OF_MOTION: FindingCategory.RANGE_OF_MOTION,
    QuestionCategory.MOTOR: FindingCategory.MOTOR,
    QuestionCategory.OBJECTIVE: FindingCategory.OBJECTIVE,
    QuestionCategory.FUNCTIONAL: FindingCategory.FUNCTIONAL,
    QuestionCategory.HISTORY: FindingCategory.HISTORY,
}


class PromptType(str, Enum):
    YES_NO = "yes_no"
    SINGLE_CHOICE = "single_choice"
    MULTI_CHOICE = "multi_choice"
    NUMERIC_SCALE = "numeric_scale"
    NUMERIC = "numeric"
    FREE_TEXT = "free_text"


CHOICE_PROMPTS = {PromptType.SINGLE_CHOICE, PromptType.MULTI_CHOICE}


# ---------------------------------------------------------------------------
# Knowledge base reference data
# ---------------------------------------------------------------------------

class Condition(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    prior: float = Field(..., ge=0.0)
    body_region: str = "general"
    likelihoods: Dict[str, float] = {}
    red_flag_triggers: List[str] = []

    @field_validator("likelihoods")
    @classmethod
    def validate_likelihoods(cls, v: Dict[str, float]):
        for key, weight in v.items():
            if weight < 0:
                raise ValueError(f"Likelihood weight for '{key}' must be non-negative")
        return v

    def likelihood(self, key: str) -> float:
        return self.likelihoods.get(key, NEUTRAL_WEIGHT)


class SymptomCombination(BaseModel):
    """A decision-tree fragment: all evidence keys present boosts one condition."""
    model_config = ConfigDict(frozen=True)

    condition_id: str
    finding_keys: List[str] = Field(..., min_length=1)
    weight: float = Field(..., ge=0.0)


class AnswerOption(BaseModel):
    model_config = ConfigDict(frozen=True)

    value: str
    label: Optional[str] = None
    red_flag: Optional[str] = None

    @property
    def display(self) -> str:
        return self.label or self.value.replace("_", " ")


class QuestionTemplate(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    category: QuestionCategory
    prompt: str
    prompt_type: PromptType
    target_finding_keys: List[str] = Field(..., min_length=1)
    finding_category: FindingCategory
    priority: float = 1.0
    discriminative_power: int = 0
    red_flag: bool = False
    topic: Optional[str] = None
    options: List[AnswerOption] = []
    scale_min: int = 0
    scale_max: int = 10
    body_regions: List[str] = []

    @model_validator(mode="before")
    @classmethod
    def default_finding_category(cls, data: Any):
        if isinstance(data, dict) and not data.get("finding_category") and data.get("category"):
            data = dict(data)
            data["finding_category"] = DEFAULT_FINDING_CATEGORY[QuestionCategory(data["category"])]
        return data

    @model_validator(mode="after")
    def check_prompt_shape(self):
        if self.prompt_type in CHOICE_PROMPTS and not self.options:
            raise ValueError(f"Question '{self.id}' is a choice question without options")
        if self.prompt_type == PromptType.NUMERIC_SCALE and self.scale_max <= self.scale_min:
            raise ValueError(f"Question '{self.id}' has an empty scale range")
        return self

    def option(self, value: str) -> Optional[AnswerOption]:
        for option in self.options:
            if option.value == value:
                return option
        return None

    def evidence_keys(self) -> List[str]:
        """Every evidence key an answer to this question could produce."""
        keys: List[str] = []
        for key in self.target_finding_keys:
            if self.prompt_type == PromptType.YES_NO:
                keys += [evidence_key(key), evidence_key(key, "no")]
            elif self.prompt_type in CHOICE_PROMPTS:
                keys += [evidence_key(key, option.value) for option in self.options]
            elif self.prompt_type == PromptType.NUMERIC_SCALE:
                keys += [evidence_key(key, bucket) for bucket in SCALE_BUCKETS]
        return keys

    def applies_to_region(self, region: Optional[str]) -> bool:
        if not self.body_regions or "all" in self.body_regions:
            return True
        return region is not None and region in self.body_regions


class RedFlagPattern(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    urgency: UrgencyLevel
    categories: List[QuestionCategory] = []
    keywords: List[str] = []
    patterns: List[str] = []
    finding_key: Optional[str] = None
    action: str = "Please have this reviewed by a clinician."

    @field_validator("patterns")
    @classmethod
    def validate_patterns(cls, v: List[str]):
        for pattern in v:
            try:
                re.compile(pattern)
            except re.error as e:
                raise ValueError(f"Invalid red flag pattern '{pattern}': {e}")
        return v

    def applies_to(self, category: Optional[QuestionCategory]) -> bool:
        return not self.categories or category is None or category in self.categories

    def matches_text(self, text: str) -> bool:
        lowered = text.lower()
        if any(keyword.lower() in lowered for keyword in self.keywords):
            return True
        return any(re.search(pattern, text, re.IGNORECASE) for pattern in self.patterns)


class KnowledgeBase(BaseModel):
    """Read-only catalogs the engine reasons over, addressed by string id."""

    conditions: List[Condition] = Field(..., min_length=1)
    questions: List[QuestionTemplate] = Field(..., min_length=1)
    red_flag_patterns: List[RedFlagPattern] = []
    combinations: List[SymptomCombination] = []

    _conditions: Dict[str, Condition] = PrivateAttr(default_factory=dict)
    _questions: Dict[str, QuestionTemplate] = PrivateAttr(default_factory=dict)
    _patterns: Dict[str, RedFlagPattern] = PrivateAttr(default_factory=dict)

    @model_validator(mode="after")
    def check_references(self):
        for label, items in (
            ("condition", self.conditions),
            ("question", self.questions),
            ("red flag pattern", self.red_flag_patterns),
        ):
            ids = [item.id for item in items]
            duplicates = sorted({i for i in ids if ids.count(i) > 1})
            if duplicates:
                raise ValueError(f"Duplicate {label} ids: {', '.join(duplicates)}")

        pattern_ids = {p.id for p in self.red_flag_patterns}
        condition_ids = {c.id for c in self.conditions}
        for condition in self.conditions:
            unknown = set(condition.red_flag_triggers) - pattern_ids
            if unknown:
                raise ValueError(f"Condition '{condition.id}' references unknown red flags: {sorted(unknown)}")
        for question in self.questions:
            for option in question.options:
                if option.red_flag and option.red_flag not in pattern_ids:
                    raise ValueError(f"Question '{question.id}' option '{option.value}' references unknown red flag '{option.red_flag}'")
        for combination in self.combinations:
            if combination.condition_id not in condition_ids:
                raise ValueError(f"Symptom combination references unknown condition '{combination.condition_id}'")
        return self

    def model_post_init(self, __context: Any) -> None:
        self._conditions = {c.id: c for c in self.conditions}
        self._questions = {q.id: q for q in self.questions}
        self._patterns = {p.id: p for p in self.red_flag_patterns}

    def condition(self, condition_id: str) -> Optional[Condition]:
        return self._conditions.get(condition_id)

    def question(self, question_id: str) -> Optional[QuestionTemplate]:
        return self._questions.get(question_id)

    def pattern(self, pattern_id: str) -> Optional[RedFlagPattern]:
        return self._patterns.get(pattern_id)

    def questions_in(self, category: QuestionCategory) -> List[QuestionTemplate]:
        return [q for q in self.questions if q.category == category]


# ---------------------------------------------------------------------------
# Findings
# ---------------------------------------------------------------------------

class _FindingBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    question_id: str

    def evidence_keys(self) -> List[str]:
        return []

    @property
    def positive(self) -> bool:
        return True


class BooleanFinding(_FindingBase):
    kind: Literal["boolean"] = "boolean"
    present: bool

    def evidence_keys(self) -> List[str]:
        return [evidence_key(self.key)] if self.present else [evidence_key(self.key, "no")]

    @property
    def positive(self) -> bool:
        return self.present


class ScaleFinding(_FindingBase):
    kind: Literal["scale"] = "scale"
    value: float
    scale_min: float = 0
    scale_max: float = 10

    @property
    def bucket(self) -> str:
        return scale_bucket(self.value, self.scale_min, self.scale_max)

    def evidence_keys(self) -> List[str]:
        return [evidence_key(self.key, self.bucket)]

    @property
    def positive(self) -> bool:
        return self.value > self.scale_min


class ChoiceFinding(_FindingBase):
    kind: Literal["choice"] = "choice"
    values: List[str] = []

    def evidence_keys(self) -> List[str]:
        return [evidence_key(self.key, value) for value in self.values]

    @property
    def positive(self) -> bool:
        return any(value not in NEGATIVE_CHOICES for value in self.values)


class NumericFinding(_FindingBase):
    kind: Literal["numeric"] = "numeric"
    value: float


class TextFinding(_FindingBase):
    kind: Literal["text"] = "text"
    text: str


Finding = Annotated[
    Union[BooleanFinding, ScaleFinding, ChoiceFinding, NumericFinding, TextFinding],
    Field(discriminator="kind"),
]


class CategoryFindings(BaseModel):
    entries: Dict[str, Finding] = {}

    def record(self, finding: Finding) -> None:
        self.entries[finding.key] = finding

    def get(self, key: str) -> Optional[Finding]:
        return self.entries.get(key)

    def has_positive(self) -> bool:
        return any(f.positive for f in self.entries.values())

    def evidence_keys(self) -> List[str]:
        keys: List[str] = []
        for finding in self.entries.values():
            keys.extend(finding.evidence_keys())
        return keys


class PainFindings(CategoryFindings):
    @property
    def intensity(self) -> Optional[float]:
        finding = self.get("pain_intensity")
        return finding.value if isinstance(finding, ScaleFinding) else None

    @property
    def location(self) -> Optional[str]:
        finding = self.get(REGION_FINDING_KEY)
        if isinstance(finding, ChoiceFinding) and finding.values:
            return finding.values[0]
        return None


class NeurologicalFindings(CategoryFindings):
    @property
    def has_deficit(self) -> bool:
        return self.has_positive()


class RangeOfMotionFindings(CategoryFindings):
    pass


class MotorFindings(CategoryFindings):
    pass


class ObjectiveFindings(CategoryFindings):
    pass


class FunctionalFindings(CategoryFindings):
    @property
    def impact(self) -> Optional[str]:
        finding = self.get("functional_limitation")
        if isinstance(finding, ChoiceFinding) and finding.values:
            return finding.values[0]
        return None


class HistoryFindings(CategoryFindings):
    pass


class ClinicalFindings(BaseModel):
    """Findings grouped into one struct per clinical category."""

    pain: PainFindings = Field(default_factory=PainFindings)
    neurological: NeurologicalFindings = Field(default_factory=NeurologicalFindings)
    range_of_motion: RangeOfMotionFindings = Field(default_factory=RangeOfMotionFindings)
    motor: MotorFindings = Field(default_factory=MotorFindings)
    objective: ObjectiveFindings = Field(default_factory=ObjectiveFindings)
    functional: FunctionalFindings = Field(default_factory=FunctionalFindings)
    history: HistoryFindings = Field(default_factory=HistoryFindings)

    def for_category(self, category: FindingCategory) -> CategoryFindings:
        return getattr(self, category.value)

    def record(self, category: FindingCategory, finding: Finding) -> None:
        self.for_category(category).record(finding)

    def get(self, key: str) -> Optional[Finding]:
        for category in FindingCategory:
            finding = self.for_category(category).get(key)
            if finding is not None:
                return finding
        return None

    def all_findings(self) -> List[Finding]:
        findings: List[Finding] = []
        for category in FindingCategory:
            findings.extend(self.for_category(category).entries.values())
        return findings

    def evidence_keys(self) -> List[str]:
        keys: List[str] = []
        for category in FindingCategory:
            keys.extend(self.for_category(category).evidence_keys())
        return keys

    def implicated_categories(self) -> Set[FindingCategory]:
        return {c for c in FindingCategory if self.for_category(c).has_positive()}

    def is_empty(self) -> bool:
        return not self.all_findings()


# ---------------------------------------------------------------------------
# Session and engine state
# ---------------------------------------------------------------------------

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TurnRecord(BaseModel):
    question_id: str
    answer: Any = None
    answered_at: datetime = Field(default_factory=_utcnow)


class AssessmentSession(BaseModel):
    """Mutable state of one patient dialogue, owned by a single conversation manager."""

    session_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    answered_question_ids: List[str] = []
    responses: Dict[str, Any] = {}
    findings: ClinicalFindings = Field(default_factory=ClinicalFindings)
    posteriors: Dict[str, float] = {}
    insufficient_data: bool = True
    low_confidence: bool = False
    red_flags: List[str] = []
    urgency: Optional[UrgencyLevel] = None
    completion_percentage: float = 0.0
    missing_critical: List[QuestionCategory] = []
    unparseable_question_ids: List[str] = []
    history: List[TurnRecord] = []
    started_at: datetime = Field(default_factory=_utcnow)
    turn: int = 0

    @model_validator(mode="after")
    def check_responses_match(self):
        if len(set(self.answered_question_ids)) != len(self.answered_question_ids):
            raise ValueError("A question was answered more than once")
        if set(self.answered_question_ids) != set(self.responses):
            raise ValueError("Answered question ids and responses are out of step")
        return self

    def record_response(self, question_id: str, answer: Any) -> None:
        if question_id in self.responses:
            raise ValueError(f"Question '{question_id}' has already been answered")
        self.answered_question_ids.append(question_id)
        self.responses[question_id] = answer
        self.history.append(TurnRecord(question_id=question_id, answer=answer))

    def has_answered(self, question_id: str) -> bool:
        return question_id in self.responses

    @property
    def questions_asked(self) -> int:
        return len(self.answered_question_ids)

    @property
    def body_region(self) -> Optional[str]:
        return self.findings.pain.location


class BeliefState(BaseModel):
    posteriors: Dict[str, float]
    insufficient_data: bool = False
    low_confidence: bool = False


class CategoryRequirement(BaseModel):
    required: int = Field(..., ge=0)
    weight: float = Field(..., ge=0.0)


def default_category_requirements() -> Dict[QuestionCategory, CategoryRequirement]:
    return {
        QuestionCategory.RED_FLAG_SCREENING: CategoryRequirement(required=2, weight=0.25),
        QuestionCategory.PAIN: CategoryRequirement(required=3, weight=0.25),
        QuestionCategory.NEUROLOGICAL: CategoryRequirement(required=1, weight=0.15),
        QuestionCategory.FUNCTIONAL: CategoryRequirement(required=1, weight=0.15),
        QuestionCategory.HISTORY: CategoryRequirement(required=1, weight=0.20),
    }


class EngineConfig(BaseModel):
    completion_threshold: float = Field(80.0, ge=0.0, le=100.0)
    max_questions: int = Field(12, ge=1)
    top_k: int = Field(3, ge=1)
    category_requirements: Dict[QuestionCategory, CategoryRequirement] = Field(
        default_factory=default_category_requirements
    )


class CompletenessResult(BaseModel):
    is_complete: bool
    score: float = Field(..., ge=0.0, le=100.0)
    missing_critical: List[QuestionCategory] = []
    answered: int = 0
    reached_question_cap: bool = False
