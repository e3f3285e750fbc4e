"""
Conversation manager response models.
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field

from ..enums import Intent


class ConversationResponse(BaseModel):
    """Payload returned to the channel adapter for one turn."""

    model_config = ConfigDict(extra="forbid")

    message: str
    intent: Intent = Intent.UNKNOWN
    next_steps: Optional[List[str]] = None
    is_completed: bool = False
    requires_input: bool = True
    data: Optional[Dict[str, Any]] = None
    confidence: float = 0.0


class StreamChunk(BaseModel):
    """Chunk produced by the LLM client while streaming."""

    model_config = ConfigDict(extra="forbid")

    content: str
    is_complete: bool = False


class ConversationChunk(BaseModel):
    """Chunk produced by the conversation manager while streaming a reply."""

    model_config = ConfigDict(extra="forbid")

    content: str
    is_complete: bool = False
    intent: Intent = Intent.UNKNOWN
    next_steps: Optional[List[str]] = None


class SemanticMatch(BaseModel):
    """Document returned by a semantic search."""

    model_config = ConfigDict(extra="forbid")

    id: str
    content: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    score: float = 0.0


class SemanticContext(BaseModel):
    """Context gathered from the semantic store for prompt construction."""

    model_config = ConfigDict(extra="forbid")

    similar_conversations: List[SemanticMatch] = Field(default_factory=list)
    relevant_knowledge: List[SemanticMatch] = Field(default_factory=list)
    recent_history: List[SemanticMatch] = Field(default_factory=list)
