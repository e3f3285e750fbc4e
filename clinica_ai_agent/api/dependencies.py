"""
Service graph construction and FastAPI dependencies.
"""

from dataclasses import dataclass
from typing import Optional

import redis.asyncio as redis
from fastapi import HTTPException, Request, status

from ..config import Settings
from ..knowledge import KnowledgeBase, load_knowledge_base
from ..services.clinic import AvailabilityService, ClinicRepository, NotificationService, PatientService
from ..services.context import ContextStore, ConversationContextManager, create_redis_client
from ..services.conversation import ConversationManager
from ..services.flows import ConversationFlowHandler
from ..services.llm import GeminiClient, RateLimiter
from ..services.nlp import NLPPipeline
from ..services.semantic import SemanticStore
from ..utils.date import DateParser
from ..utils.logging import get_logger


logger = get_logger("clinica.api")


@dataclass
class Services:
    """Long-lived collaborators shared by every request."""

    knowledge_base: KnowledgeBase
    redis: redis.Redis
    repository: ClinicRepository
    semantic: SemanticStore
    llm: GeminiClient
    conversation: ConversationManager

    async def close(self) -> None:
        await self.redis.aclose()


async def build_services(settings: Settings, redis_client: Optional[redis.Redis] = None) -> Services:
    """Wire the conversation manager and its dependencies from settings."""
    knowledge_base = load_knowledge_base()
    redis_client = redis_client or create_redis_client(settings.redis_url)
    scheduling = settings.scheduling

    repository = ClinicRepository(settings.clinic_db_path, knowledge_base)
    await repository.initialize()

    semantic = SemanticStore(
        settings.chroma_path,
        knowledge_base=knowledge_base,
        conversation_threshold=settings.semantic_conversation_threshold,
        knowledge_threshold=settings.semantic_knowledge_threshold,
    )
    await semantic.initialize()

    llm = GeminiClient(
        settings,
        rate_limiter=RateLimiter(
            redis_client,
            window_seconds=settings.rate_limit_window_seconds,
            max_requests=settings.rate_limit_max_requests,
        ),
    )

    flow_handler = ConversationFlowHandler(
        repository=repository,
        availability=AvailabilityService(repository, scheduling),
        patients=PatientService(repository),
        notifications=NotificationService(settings.notification_webhook_url, settings.notification_timeout),
        knowledge_base=knowledge_base,
        config=scheduling,
    )

    conversation = ConversationManager(
        context_manager=ConversationContextManager(
            ContextStore(redis_client, settings.context_ttl_seconds),
            max_history=settings.max_history_length,
        ),
        nlp=NLPPipeline(llm, knowledge_base, DateParser(settings.timezone)),
        flow_handler=flow_handler,
        knowledge_base=knowledge_base,
        llm=llm,
        semantic=semantic,
        repository=repository,
        settings=settings,
    )
    logger.info("api: services ready")

    return Services(
        knowledge_base=knowledge_base,
        redis=redis_client,
        repository=repository,
        semantic=semantic,
        llm=llm,
        conversation=conversation,
    )


def get_conversation_manager(request: Request) -> ConversationManager:
    services: Optional[Services] = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Service starting up")
    return services.conversation
