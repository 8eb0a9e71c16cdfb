"""
Transcription and analysis payloads exchanged with the providers and the frontend
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, confloat
from pydantic.alias_generators import to_camel

Score = confloat(ge=0.0, le=1.0)


class TranscriptSpan(BaseModel):
    """Time-bounded piece of transcribed text"""
    id: int = 0
    start: float = 0.0
    end: float = 0.0
    text: str = ""

    model_config = ConfigDict(extra="ignore")


class TranscriptionResult(BaseModel):
    text: str
    language: Optional[str] = None
    duration: Optional[float] = None
    segments: List[TranscriptSpan] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")


class CamelModel(BaseModel):
    """Serialized with camelCase keys, the shape the dashboard consumes"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")


class SentimentBreakdown(CamelModel):
    overall: Literal["positive", "neutral", "negative"] = "neutral"
    customer_sentiment: Score = 0.5
    salesperson_sentiment: Score = 0.5


class EngagementMetrics(CamelModel):
    conversation_flow: Score = 0.5
    question_quality: Score = 0.5
    listening_skills: Score = 0.5


class SalesIndicators(CamelModel):
    objections: List[str] = Field(default_factory=list)
    buying_signals: List[str] = Field(default_factory=list)
    next_steps: str = ""


class TimelinePoint(CamelModel):
    time: str
    sentiment: float
    engagement: float


class AnalysisResult(CamelModel):
    sentiment: Score = 0.5
    engagement: Score = 0.5
    keywords: List[str] = Field(default_factory=list)
    summary: Optional[str] = None
    positive_points: List[str] = Field(default_factory=list)
    improvement_areas: List[str] = Field(default_factory=list)
    sentiment_analysis: Optional[SentimentBreakdown] = None
    engagement_metrics: Optional[EngagementMetrics] = None
    sales_indicators: Optional[SalesIndicators] = None
    recommendations: List[str] = Field(default_factory=list)
    real_time_data: List[TimelinePoint] = Field(default_factory=list)
    analyzed_at: Optional[str] = None

    def to_response(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


Level = Literal["low", "medium", "high"]
Tone = Literal["positive", "neutral", "negative"]
Speaker = Literal["salesperson", "customer", "unknown"]


class Objection(CamelModel):
    type: Literal["price", "timeline", "product", "competitor", "authority", "other"] = "other"
    text: str = ""
    severity: Level = "medium"
    suggested_response: str = ""


class CompetitorMention(CamelModel):
    competitor: str = ""
    context: str = ""
    suggested_counter: str = ""


class ObjectionAnalysis(CamelModel):
    objections: List[Objection] = Field(default_factory=list)
    competitor_mentions: List[CompetitorMention] = Field(default_factory=list)
    overall_objection_level: Level = "low"

    def to_response(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class SalespersonSentiment(CamelModel):
    sentiment: Score = 0.5
    engagement: Score = 0.5
    tone: Tone = "neutral"
    confidence: Score = 0.5


class CustomerSentiment(CamelModel):
    sentiment: Score = 0.5
    engagement: Score = 0.5
    tone: Tone = "neutral"
    interest: Score = 0.5


class TensionMoment(CamelModel):
    time: str = "0:00"
    description: str = ""
    severity: Level = "medium"
    suggestion: str = ""


class ApproachChange(CamelModel):
    time: str = "0:00"
    reason: str = ""
    suggested_approach: str = ""


class PersonSentiment(CamelModel):
    salesperson: SalespersonSentiment = Field(default_factory=SalespersonSentiment)
    customer: CustomerSentiment = Field(default_factory=CustomerSentiment)
    tension_moments: List[TensionMoment] = Field(default_factory=list)
    approach_change_suggestions: List[ApproachChange] = Field(default_factory=list)

    def to_response(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class ImmediateAction(CamelModel):
    action: str = ""
    priority: Level = "medium"
    deadline: str = ""
    description: str = ""


class PlannedAction(CamelModel):
    action: str = ""
    timeline: str = ""
    description: str = ""


class FollowUpEmail(CamelModel):
    subject: str = ""
    body: str = ""
    tone: Literal["professional", "friendly", "urgent", "casual"] = "professional"


class ProposalSection(CamelModel):
    heading: str = ""
    content: str = ""
    order: int = 0


class ProposalOutline(CamelModel):
    title: str = ""
    sections: List[ProposalSection] = Field(default_factory=list)
    key_points: List[str] = Field(default_factory=list)
    pricing_recommendation: str = ""


class CustomerInfo(CamelModel):
    name: Optional[str] = None
    company: Optional[str] = None
    pain_points: List[str] = Field(default_factory=list)


class NextSteps(CamelModel):
    immediate: List[ImmediateAction] = Field(default_factory=list)
    short_term: List[PlannedAction] = Field(default_factory=list)
    long_term: List[PlannedAction] = Field(default_factory=list)
    follow_up_email: Optional[FollowUpEmail] = None
    proposal_outline: Optional[ProposalOutline] = None

    def to_response(self) -> dict:
        # Proposal sections are presented in order
        if self.proposal_outline:
            self.proposal_outline.sections.sort(key=lambda section: section.order)
        return self.model_dump(by_alias=True, exclude_none=True)


class AdvancedAnalysisResult(CamelModel):
    """Deep analysis; each section is a free-form object as returned by the model"""
    emotion_analysis: Dict[str, Any] = Field(default_factory=dict)
    silence_analysis: Dict[str, Any] = Field(default_factory=dict)
    interruption_analysis: Dict[str, Any] = Field(default_factory=dict)
    tone_analysis: Dict[str, Any] = Field(default_factory=dict)
    competitive_keywords: Dict[str, Any] = Field(default_factory=dict)
    question_analysis: Dict[str, Any] = Field(default_factory=dict)
    closing_analysis: Dict[str, Any] = Field(default_factory=dict)
    rapport_analysis: Dict[str, Any] = Field(default_factory=dict)
    persuasion_score: Dict[str, Any] = Field(default_factory=dict)
    objection_types: Dict[str, float] = Field(default_factory=dict)

    def to_response(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class RealtimeInsight(CamelModel):
    sentiment: Score
    engagement: Score
    keywords: List[str] = Field(default_factory=list)
    suggestion: str = ""
    time: float = 0.0

    model_config = ConfigDict(extra="ignore")

    def to_response(self) -> dict:
        return self.model_dump(by_alias=True)
