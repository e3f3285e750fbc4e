"""
Tests for the ChromaDB-backed semantic store.
"""

import re
from unittest.mock import Mock

import pytest

from clinica_ai_agent.services.semantic import SemanticStore
from clinica_ai_agent.services.semantic.store import CONVERSATIONS, KNOWLEDGE


def _words(text):
    return set(re.findall(r"\w+", text.lower()))


class FakeCollection:
    """In-memory stand-in for a chroma collection; distance is 0 when the query shares a word."""

    def __init__(self):
        self.docs = {}

    def add(self, ids, documents, metadatas):
        for doc_id, document, metadata in zip(ids, documents, metadatas):
            self.docs[doc_id] = (document, metadata)

    upsert = add

    def count(self):
        return len(self.docs)

    def _matches(self, where):
        if not where:
            return list(self.docs.items())
        clauses = where.get("$and", [where])
        return [
            (doc_id, (document, metadata))
            for doc_id, (document, metadata) in self.docs.items()
            if all(metadata.get(k) == v for clause in clauses for k, v in clause.items())
        ]

    def query(self, query_texts, n_results, where=None):
        words = _words(query_texts[0])
        scored = []
        for doc_id, (document, metadata) in self._matches(where):
            distance = 0.1 if words & _words(document) else 0.9
            scored.append((distance, doc_id, document, metadata))
        scored.sort(key=lambda item: item[0])
        scored = scored[:n_results]
        return {
            "ids": [[s[1] for s in scored]],
            "documents": [[s[2] for s in scored]],
            "metadatas": [[s[3] for s in scored]],
            "distances": [[s[0] for s in scored]],
        }

    def get(self, where=None):
        matches = self._matches(where)
        return {
            "ids": [doc_id for doc_id, _ in matches],
            "documents": [document for _, (document, _) in matches],
            "metadatas": [metadata for _, (_, metadata) in matches],
        }


class FakeChromaClient:
    def __init__(self):
        self.collections = {}

    def get_or_create_collection(self, name, metadata=None):
        return self.collections.setdefault(name, FakeCollection())


@pytest.fixture
def chroma_client():
    return FakeChromaClient()


class TestInitialization:
    """Test collection setup."""

    @pytest.mark.asyncio
    async def test_loads_knowledge_documents(self, chroma_client, knowledge_base):
        store = SemanticStore(knowledge_base=knowledge_base, client=chroma_client)

        assert await store.initialize()
        assert chroma_client.collections[KNOWLEDGE].count() == len(knowledge_base.to_documents())
        assert chroma_client.collections[CONVERSATIONS].count() == 0

        health = await store.health_check()
        assert health["status"] == "healthy"
        assert health[KNOWLEDGE] > 0

    @pytest.mark.asyncio
    async def test_client_failure_reports_false(self):
        client = Mock()
        client.get_or_create_collection.side_effect = RuntimeError("disk full")
        store = SemanticStore(client=client)

        assert not await store.initialize()
        assert (await store.health_check())["status"] == "unhealthy"


class TestConversationMessages:
    """Test storing and searching conversation messages."""

    @pytest.mark.asyncio
    async def test_add_and_history(self, chroma_client):
        store = SemanticStore(client=chroma_client)
        await store.initialize()

        first = await store.add_conversation_message("u1", "Quero agendar cardiologia", "user", conversation_id="c1")
        await store.add_conversation_message("u1", "Claro!", "assistant", conversation_id="c1", intent=None)
        await store.add_conversation_message("u2", "Oi", "user", conversation_id="c2")

        assert first is not None
        metadata = chroma_client.collections[CONVERSATIONS].docs[first][1]
        assert metadata["role"] == "user"
        assert "intent" not in metadata and "session_id" not in metadata

        history = await store.get_conversation_history("u1", "c1")
        assert [m.content for m in history] == ["Claro!", "Quero agendar cardiologia"]

    @pytest.mark.asyncio
    async def test_blank_message_is_not_stored(self, chroma_client):
        store = SemanticStore(client=chroma_client)
        await store.initialize()
        assert await store.add_conversation_message("u1", "   ", "user") is None

    @pytest.mark.asyncio
    async def test_search_applies_threshold_and_filter(self, chroma_client):
        store = SemanticStore(client=chroma_client)
        await store.initialize()
        await store.add_conversation_message("u1", "dor no joelho", "user")
        await store.add_conversation_message("u1", "bom dia", "user")
        await store.add_conversation_message("u2", "joelho inchado", "user")

        matches = await store.search_similar("joelho", where={"user_id": "u1"})

        assert [m.content for m in matches] == ["dor no joelho"]
        assert matches[0].score == 0.9
        assert await store.search_similar("   ") == []

    @pytest.mark.asyncio
    async def test_uninitialized_store_degrades_to_empty(self):
        store = SemanticStore(client=FakeChromaClient())

        assert await store.add_conversation_message("u1", "Oi", "user") is None
        assert await store.search_similar("Oi") == []
        assert await store.get_conversation_history("u1") == []


class TestContext:
    """Test prompt context assembly."""

    @pytest.mark.asyncio
    async def test_get_context(self, chroma_client, knowledge_base):
        store = SemanticStore(knowledge_base=knowledge_base, client=chroma_client)
        await store.initialize()
        await store.add_conversation_message("u1", "Vocês aceitam convênio Unimed?", "user", conversation_id="c1")

        context = await store.get_context("convênio", "u1", "c1")

        assert context.relevant_knowledge
        assert all(m.score >= store.knowledge_threshold for m in context.relevant_knowledge)
        assert [m.content for m in context.recent_history] == ["Vocês aceitam convênio Unimed?"]
