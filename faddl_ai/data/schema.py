"""Data schema definitions for profiles, match scores and moderation decisions"""

from datetime import datetime, timezone
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# ═══════════════════════════════════════════════════════════════════
# Enumerations
# ═══════════════════════════════════════════════════════════════════

class _Ranked(str, Enum):
    """String enum whose declaration order is its ordinal rank"""

    @property
    def rank(self) -> int:
        return list(type(self)).index(self)


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"


class MaritalStatus(str, Enum):
    NEVER_MARRIED = "never_married"
    DIVORCED = "divorced"
    WIDOWED = "widowed"
    MARRIED = "married"

    @property
    def previously_married(self) -> bool:
        return self in (MaritalStatus.DIVORCED, MaritalStatus.WIDOWED)


class PracticeLevel(_Ranked):
    """Ordinal scale shared by prayer frequency and modest dress"""
    NEVER = "never"
    SOMETIMES = "sometimes"
    OFTEN = "often"
    ALWAYS = "always"


class ContentType(str, Enum):
    PROFILE = "profile"
    MESSAGE = "message"
    PHOTO = "photo"
    BIO = "bio"


class Severity(_Ranked):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ReviewerType(_Ranked):
    AI = "ai"
    HUMAN = "human"
    SCHOLAR = "scholar"


class TicketStatus(str, Enum):
    PENDING = "pending"
    IN_REVIEW = "in_review"
    RESOLVED = "resolved"
    ESCALATED = "escalated"


class Sentiment(str, Enum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


class ConversationStage(str, Enum):
    INTRODUCTION = "introduction"
    GETTING_TO_KNOW = "getting_to_know"
    FAMILY_DISCUSSION = "family_discussion"
    MEETING_PLANNING = "meeting_planning"


Score = Field(ge=0.0, le=1.0)


# ═══════════════════════════════════════════════════════════════════
# Profiles (read-only inputs from the external profile store)
# ═══════════════════════════════════════════════════════════════════

class UserProfile(BaseModel):
    """Matrimonial profile as read from the profile store"""

    model_config = ConfigDict(frozen=True)

    user_id: str
    year_of_birth: int = Field(ge=1900, le=2100)
    gender: Gender
    location_zone: str
    marital_status: MaritalStatus = MaritalStatus.NEVER_MARRIED
    has_children: bool = False
    children_count: int = Field(0, ge=0)
    prayer_frequency: PracticeLevel = PracticeLevel.SOMETIMES
    modest_dress: PracticeLevel = PracticeLevel.SOMETIMES
    ethnicity: str = "other"
    languages: tuple[str, ...] = ()
    education: Optional[str] = None
    profession: Optional[str] = None
    bio: Optional[str] = None
    photo_count: Optional[int] = Field(None, ge=0)   # None when the photo store was not consulted

    @field_validator("languages", mode="before")
    @classmethod
    def _normalize_languages(cls, value):
        if value is None:
            return ()
        return tuple(str(lang).strip().lower() for lang in value if str(lang).strip())

    def age(self, reference_year: Optional[int] = None) -> int:
        year = reference_year or datetime.now(timezone.utc).year
        return year - self.year_of_birth


class PartnerPreferences(BaseModel):
    """What a user is looking for in a spouse"""

    model_config = ConfigDict(frozen=True)

    min_age: Optional[int] = Field(None, ge=18)
    max_age: Optional[int] = Field(None, ge=18)
    location_zones: tuple[str, ...] = ()
    marital_statuses: tuple[MaritalStatus, ...] = ()
    accepts_children: bool = False
    wants_children: bool = True
    education_level: Optional[str] = None

    @model_validator(mode="after")
    def _check_age_range(self):
        if self.min_age is not None and self.max_age is not None and self.min_age > self.max_age:
            raise ValueError(f"min_age {self.min_age} exceeds max_age {self.max_age}")
        return self


# ═══════════════════════════════════════════════════════════════════
# Embeddings and match scores
# ═══════════════════════════════════════════════════════════════════

EMBEDDING_DIMENSIONS = ("values", "interests", "lifestyle", "personality", "profile_text")


class EmbeddingMetadata(BaseModel):
    model: str
    dimensions: int = Field(gt=0)
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    version: str = "1.0"
    token_count: Optional[int] = None


class ProfileEmbeddings(BaseModel):
    """Five semantic vectors for one profile"""

    profile_id: str
    values: list[float]
    interests: list[float]
    lifestyle: list[float]
    personality: list[float]
    profile_text: list[float]
    metadata: EmbeddingMetadata

    @model_validator(mode="after")
    def _check_dimensions(self):
        for name in EMBEDDING_DIMENSIONS:
            length = len(getattr(self, name))
            if length != self.metadata.dimensions:
                raise ValueError(
                    f"{name} vector of {self.profile_id} has {length} dimensions, "
                    f"metadata says {self.metadata.dimensions}"
                )
        return self

    def vector(self, dimension: str) -> list[float]:
        return getattr(self, dimension)


class SimilaritySubscores(BaseModel):
    values: float = Score
    interests: float = Score
    lifestyle: float = Score
    personality: float = Score
    profile_text: float = Score
    demographics: float = Score


class SimilarityScore(BaseModel):
    profile_id: str
    overall_score: float = Score
    subscores: SimilaritySubscores
    explanation: str
    islamic_alignment: float = Score
    cultural_compatibility: float = Score


class IslamicValuesSummary(BaseModel):
    score: float = Score
    alignment: list[str] = Field(default_factory=list)
    areas: list[str] = Field(default_factory=list)


class MatchExplanation(BaseModel):
    overall_compatibility: float = Score
    strengths: list[str] = Field(default_factory=list)
    considerations: list[str] = Field(default_factory=list)
    islamic_values: IslamicValuesSummary
    recommendations: list[str] = Field(default_factory=list)


# ═══════════════════════════════════════════════════════════════════
# Moderation
# ═══════════════════════════════════════════════════════════════════

class ModerationContext(BaseModel):
    recipient_id: Optional[str] = None
    conversation_id: Optional[str] = None
    profile_section: Optional[str] = None


class CulturalContext(BaseModel):
    primary_language: str = "english"
    cultural_background: str = "mixed"
    religious_level: PracticeLevel = PracticeLevel.SOMETIMES


class ModerationRequest(BaseModel):
    content: str
    content_type: ContentType = ContentType.MESSAGE
    user_id: str
    context: ModerationContext = Field(default_factory=ModerationContext)
    cultural_context: CulturalContext = Field(default_factory=CulturalContext)


class SafetyResult(BaseModel):
    flagged: bool
    categories: dict[str, bool] = Field(default_factory=dict)
    category_scores: dict[str, float] = Field(default_factory=dict)
    confidence: float = Score
    violations: list[str] = Field(default_factory=list)

    @property
    def score(self) -> float:
        return 0.1 if self.flagged else 0.9


class ComplianceResult(BaseModel):
    score: float = Score
    confidence: float = Score
    violations: list[str] = Field(default_factory=list)
    guidance: Optional[str] = None
    recommendations: list[str] = Field(default_factory=list)
    cultural_notes: str = ""


class CulturalSensitivityResult(BaseModel):
    score: float = Score
    confidence: float = Score
    concerns: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)
    cultural_notes: str = ""


class ContentAnalysisResult(BaseModel):
    language: str = "unknown"
    sentiment: Sentiment = Sentiment.NEUTRAL
    topics: list[str] = Field(default_factory=list)
    appropriateness: float = Score


class GuardianAlert(BaseModel):
    reason: str
    severity: Severity
    suggested_action: str


class EscalationResult(BaseModel):
    required: bool
    reason: Optional[str] = None
    severity: Severity = Severity.LOW
    reviewer_type: ReviewerType = ReviewerType.AI
    guardian_alert: Optional[GuardianAlert] = None
    priority: int = Field(0, ge=0, le=100)
    estimated_review_minutes: float = 0.0
    recommended_action: str = ""


class EscalationTicket(BaseModel):
    id: str
    created_at: datetime
    user_id: str
    content_type: ContentType
    content: str
    reason: str
    severity: Severity
    reviewer_type: ReviewerType
    priority: int = Field(ge=0, le=100)
    status: TicketStatus = TicketStatus.PENDING
    estimated_review_minutes: float
    guardian_alert: Optional[GuardianAlert] = None
    context: dict = Field(default_factory=dict)
    assigned_to: Optional[str] = None
    resolved_at: Optional[datetime] = None
    resolution: Optional[str] = None


class ModerationResult(BaseModel):
    approved: bool
    confidence: float = Score
    safety: SafetyResult
    islamic_compliance: ComplianceResult
    cultural_sensitivity: CulturalSensitivityResult
    content_analysis: ContentAnalysisResult  # appropriateness holds the fused score
    escalation: EscalationResult
    ticket: Optional[EscalationTicket] = None


# ═══════════════════════════════════════════════════════════════════
# Conversation intelligence
# ═══════════════════════════════════════════════════════════════════

class ConversationParticipant(BaseModel):
    id: str
    gender: Gender
    cultural_background: str = "mixed"
    language_preference: str = "english"
    communication_style: Literal["formal", "casual", "mixed"] = "formal"


class ConversationContext(BaseModel):
    participants: list[ConversationParticipant] = Field(min_length=2)
    stage: ConversationStage = ConversationStage.INTRODUCTION
    guardian_involved: bool = False
    previous_messages: int = Field(0, ge=0)
    last_interaction: Optional[datetime] = None


class ConversationSuggestion(BaseModel):
    type: Literal["greeting", "question", "response", "topic_change", "family_introduction"]
    content: str
    cultural_context: str
    islamic_guidance: Optional[str] = None
    confidence: float = Score
    alternatives: list[str] = Field(default_factory=list)


class ConversationAnalysis(BaseModel):
    sentiment: Literal["positive", "neutral", "negative", "concerned"] = "neutral"
    appropriateness: float = Score
    islamic_compliance: float = Score
    cultural_sensitivity: float = Score
    escalation_needed: bool
    recommendations: list[str] = Field(default_factory=list)
    guardian_alert: Optional[GuardianAlert] = None


# ═══════════════════════════════════════════════════════════════════
# Profile enhancement
# ═══════════════════════════════════════════════════════════════════

class ProfileSection(str, Enum):
    BIO = "bio"
    INTERESTS = "interests"
    VALUES = "values"
    PHOTOS = "photos"
    PREFERENCES = "preferences"


class Priority(_Ranked):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class InteractionHistory(BaseModel):
    matches_viewed: int = Field(0, ge=0)
    messages_exchanged: int = Field(0, ge=0)
    meetings_arranged: int = Field(0, ge=0)


class PersonalizationContext(BaseModel):
    """A user's own profile and preferences plus how they use the platform"""
    user_id: str
    profile: UserProfile
    preferences: PartnerPreferences = Field(default_factory=PartnerPreferences)
    interaction_history: InteractionHistory = Field(default_factory=InteractionHistory)
    cultural_background: str = "mixed"
    primary_language: str = "english"
    family_involvement: Literal["high", "medium", "low"] = "medium"


class ProfileEnhancementSuggestion(BaseModel):
    section: ProfileSection
    suggestion: str
    reasoning: str
    islamic_guidance: Optional[str] = None
    cultural_consideration: Optional[str] = None
    priority: Priority = Priority.MEDIUM
    estimated_impact: float = Score
