"""FastAPI main application - FADDL matching and moderation API"""

import asyncio
import sys
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from loguru import logger

from faddl_ai.config import settings
from faddl_ai.conversation.intelligence import ConversationIntelligence
from faddl_ai.data.schema import (
    ComplianceResult,
    ContentType,
    ConversationAnalysis,
    ConversationContext,
    ConversationSuggestion,
    CulturalContext,
    EscalationResult,
    EscalationTicket,
    MatchExplanation,
    ModerationRequest,
    ModerationResult,
    PartnerPreferences,
    PersonalizationContext,
    ProfileEmbeddings,
    ProfileEnhancementSuggestion,
    SimilarityScore,
    UserProfile,
)
from faddl_ai.errors import (
    AIIntegrationError,
    EmbeddingMismatchError,
    InvalidProfileError,
)
from faddl_ai.matching.matching_engine import MatchingEngine
from faddl_ai.matching.similarity_matcher import SimilarityMatcher
from faddl_ai.moderation.content_moderation import ContentModerationSystem
from faddl_ai.moderation.escalation import EscalationSystem
from faddl_ai.moderation.islamic_compliance import IslamicComplianceChecker
from faddl_ai.personalization.profile_enhancement import ProfileEnhancer

API_VERSION = "1.0.0"


# ============================================
# Pydantic Models
# ============================================

class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    version: str = API_VERSION


class ComplianceRequest(BaseModel):
    """Rule-only Islamic compliance check"""
    content: str
    content_type: ContentType = ContentType.MESSAGE
    cultural_context: CulturalContext = Field(default_factory=CulturalContext)


class SimilarityRequest(BaseModel):
    """Score profile B as a match for profile A"""
    profile_a: UserProfile
    embeddings_a: ProfileEmbeddings
    preferences_a: Optional[PartnerPreferences] = None
    profile_b: UserProfile
    embeddings_b: ProfileEmbeddings
    preferences_b: Optional[PartnerPreferences] = None


class SimilarityResponse(BaseModel):
    similarity: SimilarityScore
    explanation: MatchExplanation


class TicketRequest(BaseModel):
    """Materialize an escalation ticket for a moderated request"""
    request: ModerationRequest
    escalation: EscalationResult


class SuggestionRequest(BaseModel):
    context: ConversationContext
    recipient_profile: UserProfile


class MessageAnalysisRequest(BaseModel):
    message: str
    context: ConversationContext
    sender_profile: UserProfile


class CompletenessResponse(BaseModel):
    user_id: str
    completeness: float


# ============================================
# Lifespan Management
# ============================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown

    Startup:
        - Build the moderation, escalation, compliance and matching services
        - Build the conversation and profile enhancement services
    """
    logger.info("Starting up FADDL AI API...")

    app.state.moderation = ContentModerationSystem()
    app.state.escalation = app.state.moderation.escalation_system
    app.state.compliance = app.state.moderation.compliance_checker
    app.state.matching = MatchingEngine(SimilarityMatcher())
    app.state.conversation = ConversationIntelligence(moderation_system=app.state.moderation)
    app.state.enhancer = ProfileEnhancer()

    logger.info("✅ FADDL AI API started successfully")

    yield

    stats = app.state.moderation.get_moderation_stats()
    logger.info(f"Shutting down FADDL AI API after {stats['total_moderated']} moderated items")


# ============================================
# FastAPI App
# ============================================

app = FastAPI(
    title="FADDL AI API",
    description="Islamic matrimonial matching and content moderation",
    version=API_VERSION,
    lifespan=lifespan
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AIIntegrationError)
async def ai_integration_error_handler(request: Request, exc: AIIntegrationError):
    if isinstance(exc, EmbeddingMismatchError):
        status = 409
    elif isinstance(exc, InvalidProfileError):
        status = 422
    else:
        status = 500
    logger.error(f"{exc.code} on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=status, content=exc.to_dict())


# ============================================
# Dependencies
# ============================================

def get_moderation_system(request: Request) -> ContentModerationSystem:
    return request.app.state.moderation


def get_escalation_system(request: Request) -> EscalationSystem:
    return request.app.state.escalation


def get_compliance_checker(request: Request) -> IslamicComplianceChecker:
    return request.app.state.compliance


def get_matching_engine(request: Request) -> MatchingEngine:
    return request.app.state.matching


def get_conversation_intelligence(request: Request) -> ConversationIntelligence:
    return request.app.state.conversation


def get_profile_enhancer(request: Request) -> ProfileEnhancer:
    return request.app.state.enhancer


# ============================================
# Health Check
# ============================================

@app.get("/health", response_model=HealthResponse, tags=["System"])
async def health_check():
    """Health check endpoint"""
    return HealthResponse(status="ok")


# ============================================
# Moderation Endpoints
# ============================================

@app.post("/api/v1/moderation", response_model=ModerationResult, tags=["Moderation"])
async def moderate(
    body: ModerationRequest,
    moderation: ContentModerationSystem = Depends(get_moderation_system),
):
    """Moderate a single piece of content"""
    return await moderation.moderate_content(body)


@app.post("/api/v1/moderation/batch", response_model=list[ModerationResult], tags=["Moderation"])
async def moderate_batch(
    body: list[ModerationRequest],
    moderation: ContentModerationSystem = Depends(get_moderation_system),
):
    """Moderate many items in rate-limited chunks; results keep input order"""
    return await moderation.moderate_content_batch(body)


@app.get("/api/v1/moderation/stats", tags=["Moderation"])
async def moderation_stats(moderation: ContentModerationSystem = Depends(get_moderation_system)):
    return moderation.get_moderation_stats()


@app.post("/api/v1/compliance", response_model=ComplianceResult, tags=["Moderation"])
async def check_compliance(
    body: ComplianceRequest,
    checker: IslamicComplianceChecker = Depends(get_compliance_checker),
):
    """Rule-based Islamic compliance check with no external calls"""
    return checker.check_compliance(body.content, body.content_type, body.cultural_context)


# ============================================
# Escalation Endpoints
# ============================================

@app.post("/api/v1/escalation/tickets", response_model=EscalationTicket, tags=["Escalation"])
async def create_ticket(
    body: TicketRequest,
    escalation: EscalationSystem = Depends(get_escalation_system),
):
    if not body.escalation.required:
        raise HTTPException(status_code=400, detail="Escalation not required for this content")
    return escalation.create_ticket(body.request, body.escalation)


@app.get("/api/v1/escalation/stats", tags=["Escalation"])
async def escalation_stats(
    escalation: EscalationSystem = Depends(get_escalation_system),
    moderation: ContentModerationSystem = Depends(get_moderation_system),
):
    return escalation.get_escalation_stats(moderation.tickets)


# ============================================
# Matching Endpoints
# ============================================

@app.post("/api/v1/matching/similarity", response_model=SimilarityResponse, tags=["Matching"])
async def similarity(
    body: SimilarityRequest,
    engine: MatchingEngine = Depends(get_matching_engine),
):
    """
    Score profile B as a match for profile A

    Returns 409 when the two embedding records come from different models
    or have different dimensionality.
    """
    score = await asyncio.to_thread(
        engine.matcher.calculate_similarity,
        body.embeddings_a, body.embeddings_b,
        body.profile_a, body.profile_b,
        body.preferences_a, body.preferences_b,
    )
    return SimilarityResponse(similarity=score, explanation=engine.explain_match(score))


# ============================================
# Conversation Endpoints
# ============================================

@app.post(
    "/api/v1/conversation/suggestions",
    response_model=list[ConversationSuggestion],
    tags=["Conversation"],
)
async def conversation_suggestions(
    body: SuggestionRequest,
    intelligence: ConversationIntelligence = Depends(get_conversation_intelligence),
):
    return intelligence.generate_suggestions(body.context, body.recipient_profile)


@app.post("/api/v1/conversation/analyze", response_model=ConversationAnalysis, tags=["Conversation"])
async def analyze_message(
    body: MessageAnalysisRequest,
    intelligence: ConversationIntelligence = Depends(get_conversation_intelligence),
):
    return await intelligence.analyze_message(body.message, body.context, body.sender_profile)


# ============================================
# Profile Endpoints
# ============================================

@app.post(
    "/api/v1/profile/enhancement",
    response_model=list[ProfileEnhancementSuggestion],
    tags=["Profile"],
)
async def profile_enhancement(
    body: PersonalizationContext,
    enhancer: ProfileEnhancer = Depends(get_profile_enhancer),
):
    """Ranked suggestions for improving a profile, at most eight"""
    return await asyncio.to_thread(enhancer.generate_suggestions, body)


@app.post("/api/v1/profile/completeness", response_model=CompletenessResponse, tags=["Profile"])
async def profile_completeness(
    profile: UserProfile,
    enhancer: ProfileEnhancer = Depends(get_profile_enhancer),
):
    return CompletenessResponse(user_id=profile.user_id, completeness=enhancer.calculate_completeness(profile))


# ============================================
# Root Endpoint
# ============================================

@app.get("/", tags=["System"])
async def root():
    """
    Root endpoint - API info
    """
    return {
        "name": "FADDL AI API",
        "version": API_VERSION,
        "description": "Islamic matrimonial matching and content moderation",
        "endpoints": {
            "health": "/health",
            "docs": "/docs",
            "moderation": "/api/v1/moderation",
            "matching": "/api/v1/matching/similarity",
            "conversation": "/api/v1/conversation/suggestions",
            "profile": "/api/v1/profile/enhancement",
        }
    }


def run():
    """Console entry point: configure logging and serve the API with uvicorn"""
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level.upper())
    uvicorn.run(
        "faddl_ai.api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )


# ============================================
# Run with: uvicorn faddl_ai.api.main:app --reload
# ============================================

if __name__ == "__main__":
    run()
