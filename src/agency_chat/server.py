"""HTTP transport: FastAPI app serving the chat stream as server-sent events.

Run with::

    uvicorn --factory agency_chat.server:create_app
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator
from typing import Any

from fastapi import FastAPI, Query, Request
from fastapi.responses import JSONResponse, Response, StreamingResponse
from pydantic import BaseModel, ValidationError

from agency_chat import __version__
from agency_chat.config import Settings, get_settings
from agency_chat.context.assembler import ContextAssembler
from agency_chat.exceptions import ConfigurationError, RateLimitExceededError, StorageError
from agency_chat.models.events import ChatStreamEvent, MetaEvent
from agency_chat.models.query import ChatQuery
from agency_chat.orchestrator import ChatOrchestrator
from agency_chat.protocols.context import DomainDataProvider
from agency_chat.providers.anthropic import AnthropicProvider

logger = logging.getLogger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


def sse_record(event: BaseModel) -> str:
    """Encode one event as an SSE ``data:`` record."""
    return f"data: {event.model_dump_json()}\n\n"


def _error(status_code: int, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse({"error": message, **extra}, status_code=status_code)


def _validation_message(exc: ValidationError) -> str:
    for error in exc.errors():
        if error.get("loc") and error["loc"][0] == "message":
            return "Message is required"
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ())) or "body"
    return f"Invalid request: {location}: {first.get('msg', 'invalid value')}"


def _build_orchestrator(settings: Settings, domain: DomainDataProvider | None) -> ChatOrchestrator:
    provider = AnthropicProvider(
        api_key=settings.require_api_key(),
        timeout=settings.provider_timeout_seconds,
    )
    assembler = ContextAssembler(domain) if domain is not None else None
    return ChatOrchestrator.from_settings(settings, provider, assembler=assembler)


def create_app(
    orchestrator: ChatOrchestrator | None = None,
    settings: Settings | None = None,
    *,
    domain: DomainDataProvider | None = None,
) -> FastAPI:
    """Create the chat API.

    Parameters:
        orchestrator: A pre-built orchestrator. When omitted one is built
            from *settings* on first use, which requires an API key.
        settings: Configuration. Defaults to ``get_settings()``.
        domain: Domain data collaborator for context assembly.

    Returns:
        A FastAPI application exposing ``POST /api/ai/chat``,
        ``GET /api/ai/usage`` and ``GET /health``.
    """
    settings = settings or get_settings()

    def get_orchestrator(app: FastAPI) -> ChatOrchestrator:
        if app.state.orchestrator is None:
            app.state.orchestrator = _build_orchestrator(settings, domain)
        return app.state.orchestrator

    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        sweeper: asyncio.Task[None] | None = None
        try:
            limiter = get_orchestrator(app).limiter
        except ConfigurationError as e:
            logger.warning("Chat pipeline not configured at startup: %s", e)
        else:
            run_sweeper = getattr(limiter, "run_sweeper", None)
            if run_sweeper is not None:
                sweeper = asyncio.create_task(run_sweeper())
        try:
            yield
        finally:
            if sweeper is not None:
                sweeper.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await sweeper

    app = FastAPI(title="agency-chat", version=__version__, lifespan=lifespan)
    app.state.orchestrator = orchestrator

    @app.exception_handler(ConfigurationError)
    async def _configuration_error(_request: Request, exc: ConfigurationError) -> JSONResponse:
        logger.error("Configuration error: %s", exc)
        return _error(500, str(exc))

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok", "version": __version__}

    @app.post("/api/ai/chat")
    async def chat(request: Request) -> Response:
        orchestrator = get_orchestrator(request.app)

        try:
            body = await request.json()
        except ValueError:
            return _error(400, "Request body must be JSON")
        if not isinstance(body, dict):
            return _error(400, "Request body must be a JSON object")
        try:
            query = ChatQuery.model_validate(body)
        except ValidationError as e:
            return _error(400, _validation_message(e))

        try:
            decision = orchestrator.admit(query)
        except RateLimitExceededError as e:
            return _error(429, str(e), remaining=e.remaining)

        events = orchestrator.stream(query, decision)
        first = await anext(events)
        headers = {**SSE_HEADERS, "X-Rate-Limit-Remaining": str(decision.remaining)}
        if isinstance(first, MetaEvent):
            headers["X-AI-Tier"] = str(first.tier)
            if first.budget_warning:
                headers["X-AI-Budget-Warning"] = first.budget_warning

        async def body_iter() -> AsyncIterator[str]:
            event: ChatStreamEvent
            try:
                yield sse_record(first)
                async for event in events:
                    yield sse_record(event)
            finally:
                await events.aclose()

        return StreamingResponse(body_iter(), media_type="text/event-stream", headers=headers)

    @app.get("/api/ai/usage", response_model=None)
    async def usage(request: Request, days: int = Query(7)) -> Response | dict[str, Any]:
        days = min(30, max(1, days))
        try:
            stats = get_orchestrator(request.app).ledger.stats(days)
        except StorageError:
            logger.exception("Usage stats read failed")
            return _error(500, "Failed to fetch usage stats")
        return stats.model_dump(mode="json")

    return app
