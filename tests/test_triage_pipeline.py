"""Tests for the message triage pipeline."""

import json
import logging

import httpx
import pytest

from src.chat.application import TriagePipeline
from src.chat.infrastructure import (
    DocumentRetriever,
    LLMAgentInvoker,
    SQLAlchemyChatSessionRepository,
)
from src.core import (
    AgentProcessingException,
    LLMException,
    MalformedAgentResponseException,
    RepositoryException,
    SessionClosedException,
    SessionNotFoundException,
    ValidationException,
)
from src.infrastructure.docsearch import Api2Client

from fakes import ScriptedLLMClient, StubRetriever, analysis_json


async def _roles(message_repo, session_id):
    return [m.role for m in await message_repo.list_by_session(session_id)]


class TestRejection:
    async def test_unknown_session(self, pipeline, retriever, llm_client):
        with pytest.raises(SessionNotFoundException):
            await pipeline.handle_message("6f1c2a8e-3b0d-4c55-9a51-2f0e6c1d9b7a", "hello")

        assert retriever.queries == []
        assert llm_client.calls == []

    async def test_malformed_session_id_is_not_found(self, pipeline):
        with pytest.raises(SessionNotFoundException):
            await pipeline.handle_message("not-a-uuid", "hello")

    async def test_closed_session_has_no_side_effects(
        self, pipeline, chat_service, open_session, message_repo, retriever, llm_client
    ):
        await chat_service.close_session(open_session.id)

        with pytest.raises(SessionClosedException):
            await pipeline.handle_message(open_session.id, "Сайт выдаёт 404")

        assert await message_repo.list_by_session(open_session.id) == []
        assert retriever.queries == []
        assert llm_client.calls == []

    async def test_blank_message(self, pipeline, open_session, message_repo):
        with pytest.raises(ValidationException):
            await pipeline.handle_message(open_session.id, "   ")

        assert await message_repo.list_by_session(open_session.id) == []


class TestSuccessfulTriage:
    async def test_end_to_end_bug_report(
        self, pipeline, open_session, message_repo, backlog_repo
    ):
        outcome = await pipeline.handle_message(open_session.id, "Сайт выдаёт 404")

        messages = await message_repo.list_by_session(open_session.id)
        assert [m.role for m in messages] == ["user", "agent"]
        assert messages[0].message == "Сайт выдаёт 404"
        assert messages[0].id == outcome.user_message_id
        assert messages[1].id == outcome.agent_message_id

        stored_analysis = json.loads(messages[1].message)
        assert stored_analysis["category"] == "bug"
        assert stored_analysis["type"] == "analysis_result"
        assert messages[1].metadata["api2_docs_count"] == 2

        task = await backlog_repo.get_by_id(outcome.backlog_task_id)
        assert task is not None
        assert task.ticket_text == "Сайт выдаёт 404"
        assert task.ai_summary == outcome.analysis_result.problem_summary
        assert task.severity == "high"
        assert task.priority == 2
        assert task.metrics.api2_calls == 1
        assert task.metrics.created_from_session_id == open_session.id

    async def test_metrics_come_from_pipeline_not_agent(self, pipeline, open_session, retriever):
        outcome = await pipeline.handle_message(open_session.id, "Сайт выдаёт 404")

        metrics = outcome.analysis_result.metrics
        assert metrics.api2_docs_count == len(retriever.result.documents)
        assert metrics.api2_docs_ids == ["web-404", "web-500"]
        assert metrics.api2_processing_time == 37
        assert metrics.tokens_used == 321
        assert metrics.confidence == 0.83

    async def test_agent_sees_message_documents_and_browser_context(
        self, pipeline, open_session, llm_client, retriever
    ):
        await pipeline.handle_message(open_session.id, "Сайт выдаёт 404")

        assert retriever.queries == ["Сайт выдаёт 404"]
        messages = llm_client.calls[0]["messages"]
        assert [m["role"] for m in messages] == ["system", "user"]

        context = json.loads(messages[1]["content"])
        assert context["user_message"] == "Сайт выдаёт 404"
        assert [d["id"] for d in context["api2_docs"]] == ["web-404", "web-500"]
        assert context["browser_session"]["user_agent"] == "Mozilla/5.0"
        assert context["session_source"] == "widget"
        assert "timestamp" in context

    async def test_accepted_message_refreshes_updated_at(
        self, pipeline, open_session, session_repo
    ):
        await pipeline.handle_message(open_session.id, "Сайт выдаёт 404")

        stored = await session_repo.get_by_id(open_session.id)
        assert stored.is_open
        assert stored.updated_at.replace(tzinfo=None) > open_session.updated_at.replace(tzinfo=None)

    async def test_non_analysis_type_creates_no_task(
        self, session_repo, message_repo, backlog_repo, retriever, open_session
    ):
        client = ScriptedLLMClient([analysis_json(type="clarification_request")])
        pipeline = TriagePipeline(
            session_repo, message_repo, backlog_repo, retriever, LLMAgentInvoker(client)
        )

        outcome = await pipeline.handle_message(open_session.id, "Что-то не так")

        assert outcome.backlog_task_id is None
        assert await backlog_repo.count() == 0
        assert await _roles(message_repo, open_session.id) == ["user", "agent"]

    async def test_each_message_gets_exactly_one_reply(self, pipeline, open_session, message_repo):
        for text in ("Первое", "Второе", "Третье"):
            await pipeline.handle_message(open_session.id, text)

        assert await _roles(message_repo, open_session.id) == [
            "user", "agent", "user", "agent", "user", "agent",
        ]


class TestDegradedRetrieval:
    async def test_transport_failure_uses_fallback_document(
        self, session_repo, message_repo, backlog_repo, llm_client, open_session
    ):
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        retriever = DocumentRetriever(
            client=Api2Client(base_url="http://api2.test", transport=httpx.MockTransport(refuse)),
            limit=5,
        )
        pipeline = TriagePipeline(
            session_repo, message_repo, backlog_repo, retriever, LLMAgentInvoker(llm_client)
        )

        outcome = await pipeline.handle_message(open_session.id, "Не могу войти, ошибка 401")

        assert outcome.analysis_result.metrics.api2_docs_count == 1
        assert outcome.analysis_result.metrics.api2_docs_ids == ["auth-12"]
        assert outcome.backlog_task_id is not None
        await retriever.close()


class TestAgentFailure:
    async def test_unparseable_reply_logs_system_message(
        self, session_repo, message_repo, backlog_repo, retriever, open_session
    ):
        client = ScriptedLLMClient(["not json at all"])
        pipeline = TriagePipeline(
            session_repo, message_repo, backlog_repo, retriever, LLMAgentInvoker(client)
        )

        with pytest.raises(AgentProcessingException) as exc_info:
            await pipeline.handle_message(open_session.id, "Сайт выдаёт 404")

        assert isinstance(exc_info.value.cause, MalformedAgentResponseException)
        assert exc_info.value.__cause__ is exc_info.value.cause

        messages = await message_repo.list_by_session(open_session.id)
        assert [m.role for m in messages] == ["user", "system"]
        assert messages[1].message.startswith("Agent error: ")
        assert messages[1].metadata["error"] is True
        assert messages[1].is_error
        assert await backlog_repo.count() == 0

    async def test_backend_error_logs_system_message(
        self, session_repo, message_repo, backlog_repo, retriever, open_session
    ):
        client = ScriptedLLMClient([LLMException("timeout")])
        pipeline = TriagePipeline(
            session_repo, message_repo, backlog_repo, retriever, LLMAgentInvoker(client)
        )

        with pytest.raises(AgentProcessingException) as exc_info:
            await pipeline.handle_message(open_session.id, "Сайт выдаёт 404")

        assert isinstance(exc_info.value.cause, LLMException)
        assert await _roles(message_repo, open_session.id) == ["user", "system"]

    async def test_session_stays_open_after_failure(
        self, session_repo, message_repo, backlog_repo, open_session
    ):
        client = ScriptedLLMClient(["not json at all", analysis_json()])
        pipeline = TriagePipeline(
            session_repo, message_repo, backlog_repo, StubRetriever(), LLMAgentInvoker(client)
        )

        with pytest.raises(AgentProcessingException):
            await pipeline.handle_message(open_session.id, "Сайт выдаёт 404")
        await pipeline.handle_message(open_session.id, "Сайт выдаёт 404")

        assert await _roles(message_repo, open_session.id) == ["user", "system", "user", "agent"]

    async def test_failed_touch_still_gets_a_system_reply(
        self, db_session, message_repo, backlog_repo, retriever, llm_client, open_session
    ):
        class FailingTouchRepository(SQLAlchemyChatSessionRepository):
            async def touch(self, session_id, at):
                raise RepositoryException("Failed to store session activity: locked")

        pipeline = TriagePipeline(
            FailingTouchRepository(db_session), message_repo, backlog_repo,
            retriever, LLMAgentInvoker(llm_client),
        )

        with pytest.raises(AgentProcessingException) as exc_info:
            await pipeline.handle_message(open_session.id, "Сайт выдаёт 404")

        assert isinstance(exc_info.value.cause, RepositoryException)
        assert await _roles(message_repo, open_session.id) == ["user", "system"]
        assert llm_client.calls == []


class TestLogging:
    async def test_failure_log_keeps_fields_and_correlation_id(
        self, session_repo, message_repo, backlog_repo, retriever, open_session, caplog
    ):
        pipeline = TriagePipeline(
            session_repo, message_repo, backlog_repo, retriever,
            LLMAgentInvoker(ScriptedLLMClient(["not json at all"])),
            correlation_id="corr-1",
        )

        with caplog.at_level(logging.INFO, logger="src.chat.application.pipeline"):
            with pytest.raises(AgentProcessingException):
                await pipeline.handle_message(open_session.id, "Сайт выдаёт 404")

        failed = next(r for r in caplog.records if r.getMessage() == "Agent processing failed")
        assert failed.correlation_id == "corr-1"
        assert failed.error_type == "MalformedAgentResponseException"
        assert failed.session_id == open_session.id

        timed = next(r for r in caplog.records if r.getMessage() == "agent_call completed")
        assert timed.correlation_id == "corr-1"
        assert timed.latency_ms >= 0
        assert timed.session_id == open_session.id
