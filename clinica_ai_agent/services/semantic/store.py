"""
Semantic store backed by ChromaDB.

Holds two collections: past conversation messages and the clinic knowledge
documents. Chroma's client is synchronous, so every call runs in a worker
thread. Failures are logged and surface as empty results.
"""

import asyncio
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import chromadb

from ...core.exceptions import SemanticStoreError
from ...core.models import SemanticContext, SemanticMatch
from ...knowledge import KnowledgeBase
from ...utils.logging import get_logger


logger = get_logger("clinica.semantic")

CONVERSATIONS = "conversations"
KNOWLEDGE = "knowledge"


def _clean_metadata(metadata: Dict[str, Any]) -> Dict[str, Any]:
    """Chroma only accepts scalar metadata values and rejects None."""
    return {
        key: value if isinstance(value, (str, int, float, bool)) else str(value)
        for key, value in metadata.items()
        if value is not None
    }


def _where(**conditions: Optional[str]) -> Optional[Dict[str, Any]]:
    clauses = [{key: value} for key, value in conditions.items() if value]
    if not clauses:
        return None
    if len(clauses) == 1:
        return clauses[0]
    return {"$and": clauses}


class SemanticStore:
    """Vector search over conversation history and knowledge documents."""

    def __init__(
        self,
        path: str = "chroma_data",
        knowledge_base: Optional[KnowledgeBase] = None,
        client: Optional[Any] = None,
        conversation_threshold: float = 0.6,
        knowledge_threshold: float = 0.5,
    ):
        self.path = path
        self.knowledge_base = knowledge_base
        self.client = client
        self.conversation_threshold = conversation_threshold
        self.knowledge_threshold = knowledge_threshold
        self._collections: Dict[str, Any] = {}

    async def initialize(self) -> bool:
        """Open the collections and load the knowledge documents. Returns False on failure."""
        def _setup() -> int:
            if self.client is None:
                self.client = chromadb.PersistentClient(path=self.path)
            for name in (CONVERSATIONS, KNOWLEDGE):
                self._collections[name] = self.client.get_or_create_collection(
                    name, metadata={"hnsw:space": "cosine"}
                )

            if self.knowledge_base is None:
                return 0
            documents = self.knowledge_base.to_documents()
            if documents:
                self._collections[KNOWLEDGE].upsert(
                    ids=[doc.id for doc in documents],
                    documents=[doc.content for doc in documents],
                    metadatas=[_clean_metadata(doc.metadata) or {"type": "knowledge"} for doc in documents],
                )
            return len(documents)

        try:
            loaded = await asyncio.to_thread(_setup)
        except Exception as e:
            logger.error(f"semantic: initialization failed: {e}")
            return False

        logger.info(f"semantic: ready with {loaded} knowledge documents", path=self.path)
        return True

    def _collection(self, name: str) -> Any:
        collection = self._collections.get(name)
        if collection is None:
            raise SemanticStoreError(f"collection {name!r} is not initialized")
        return collection

    async def add_conversation_message(
        self,
        user_id: str,
        content: str,
        role: str,
        conversation_id: Optional[str] = None,
        session_id: Optional[str] = None,
        intent: Optional[str] = None,
    ) -> Optional[str]:
        """Store one message; returns its document id, or None when the store is unavailable."""
        if not content or not content.strip():
            return None

        now = datetime.now(timezone.utc)
        doc_id = uuid.uuid4().hex
        metadata = _clean_metadata({
            "user_id": user_id,
            "role": role,
            "conversation_id": conversation_id,
            "session_id": session_id,
            "intent": intent,
            "timestamp": now.isoformat(),
            "timestamp_epoch": now.timestamp(),
        })

        try:
            collection = self._collection(CONVERSATIONS)
            await asyncio.to_thread(
                collection.add, ids=[doc_id], documents=[content], metadatas=[metadata]
            )
        except Exception as e:
            logger.error(f"semantic: failed to store message: {e}", user_id=user_id, session_id=session_id)
            return None
        return doc_id

    async def search_similar(
        self,
        query: str,
        collection: str = CONVERSATIONS,
        limit: int = 5,
        threshold: Optional[float] = None,
        where: Optional[Dict[str, Any]] = None,
    ) -> List[SemanticMatch]:
        """
        Nearest documents to ``query``.

        Score is ``1 - distance``; matches under ``threshold`` are dropped and
        the rest are returned best first.
        """
        if not query or not query.strip():
            return []
        if threshold is None:
            threshold = self.conversation_threshold if collection == CONVERSATIONS else self.knowledge_threshold

        try:
            target = self._collection(collection)
            kwargs: Dict[str, Any] = {"query_texts": [query], "n_results": limit}
            if where:
                kwargs["where"] = where
            results = await asyncio.to_thread(target.query, **kwargs)
        except Exception as e:
            logger.error(f"semantic: search in {collection} failed: {e}")
            return []

        ids = (results.get("ids") or [[]])[0]
        documents = (results.get("documents") or [[]])[0]
        metadatas = (results.get("metadatas") or [[]])[0] or [{}] * len(ids)
        distances = (results.get("distances") or [[]])[0] or [1.0] * len(ids)

        matches = []
        for doc_id, content, metadata, distance in zip(ids, documents, metadatas, distances):
            score = 1.0 - float(distance)
            if score < threshold:
                continue
            matches.append(SemanticMatch(
                id=doc_id,
                content=content or "",
                metadata=dict(metadata or {}),
                score=round(score, 4),
            ))
        matches.sort(key=lambda m: m.score, reverse=True)
        return matches

    async def get_conversation_history(
        self,
        user_id: str,
        conversation_id: Optional[str] = None,
        limit: int = 10,
    ) -> List[SemanticMatch]:
        """Most recent stored messages for the user, newest first."""
        try:
            collection = self._collection(CONVERSATIONS)
            results = await asyncio.to_thread(
                collection.get, where=_where(user_id=user_id, conversation_id=conversation_id)
            )
        except Exception as e:
            logger.error(f"semantic: history lookup failed: {e}", user_id=user_id)
            return []

        ids = results.get("ids") or []
        documents = results.get("documents") or []
        metadatas = results.get("metadatas") or [{}] * len(ids)
        history = [
            SemanticMatch(id=doc_id, content=content or "", metadata=dict(metadata or {}), score=1.0)
            for doc_id, content, metadata in zip(ids, documents, metadatas)
        ]
        history.sort(key=lambda m: m.metadata.get("timestamp_epoch", 0.0), reverse=True)
        return history[:limit]

    async def get_context(
        self,
        query: str,
        user_id: str,
        conversation_id: Optional[str] = None,
    ) -> SemanticContext:
        similar, knowledge, history = await asyncio.gather(
            self.search_similar(query, CONVERSATIONS, limit=3, where=_where(user_id=user_id)),
            self.search_similar(query, KNOWLEDGE, limit=3),
            self.get_conversation_history(user_id, conversation_id, limit=5),
        )
        return SemanticContext(
            similar_conversations=similar,
            relevant_knowledge=knowledge,
            recent_history=history,
        )

    async def health_check(self) -> Dict[str, Any]:
        try:
            counts = {}
            for name in (CONVERSATIONS, KNOWLEDGE):
                counts[name] = await asyncio.to_thread(self._collection(name).count)
        except Exception as e:
            logger.error(f"semantic: health check failed: {e}")
            return {"status": "unhealthy", "error": str(e)}
        return {"status": "healthy", **counts}
