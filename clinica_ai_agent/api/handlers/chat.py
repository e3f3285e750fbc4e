"""
Web chat handler.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ...core.models import ConversationResponse
from ...services.conversation import ConversationManager
from ..dependencies import get_conversation_manager


class ChatRequest(BaseModel):
    """Message sent by the chat widget."""
    user_id: str = Field(min_length=1)
    message: str = Field(min_length=1, max_length=4000)
    session_id: Optional[str] = None
    conversation_id: Optional[str] = None


class ChatHandler:
    """Handler for the chat endpoint."""

    def __init__(self):
        self.router = APIRouter()
        self._setup_routes()

    def _setup_routes(self):
        """Setup chat routes."""

        @self.router.post("", response_model=ConversationResponse)
        async def chat(
            body: ChatRequest,
            manager: ConversationManager = Depends(get_conversation_manager),
        ):
            """Process one chat message and return the assistant's reply."""
            return await manager.process_message(
                user_id=body.user_id,
                message=body.message,
                session_id=body.session_id,
                conversation_id=body.conversation_id,
            )
