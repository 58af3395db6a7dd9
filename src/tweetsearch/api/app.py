"""FastAPI app exposing search, enhanced search, health and tool invocation."""

from __future__ import annotations

import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import AliasChoices, BaseModel, Field

from tweetsearch import __version__
from tweetsearch.config import Settings, load_settings
from tweetsearch.errors import TweetSearchError
from tweetsearch.logging import configure_logging, get_logger
from tweetsearch.service import SearchService, create_service
from tweetsearch.tools.registry import ToolDispatcher, list_tools

logger = get_logger(__name__)


class SearchRequest(BaseModel):
    """Search request. `query` is checked by the service so a blank one gets a 400."""

    query: str | None = None
    max_results: int | None = Field(
        default=None,
        validation_alias=AliasChoices("maxResults", "max_results"),
    )


class EnhanceRequest(SearchRequest):
    """Search request with enhancement of the top results."""

    enhance_top_x: int | None = Field(
        default=None,
        ge=0,
        validation_alias=AliasChoices("enhanceTopX", "enhance_top_x"),
    )
    custom_instruction: str | None = Field(
        default=None,
        validation_alias=AliasChoices("customInstruction", "custom_instruction"),
    )


class ToolRequest(BaseModel):
    """Tool invocation request."""

    tool: str | None = None
    parameters: dict[str, Any] = Field(default_factory=dict)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def create_app(settings: Settings | None = None, service: SearchService | None = None) -> FastAPI:
    """Create FastAPI app.

    Args:
        settings: Settings to use; loaded from the environment when omitted.
        service: Prebuilt service (tests); built from settings when omitted.
    """

    settings = settings or load_settings()
    configure_logging(settings.effective_log_level)
    owns_service = service is None
    search_service = service or create_service(settings)
    dispatcher = ToolDispatcher(search_service)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        mode = "MOCK DATA (no API key)" if search_service.mock_mode else "REAL API"
        logger.info("TweetSearch API starting, mode: %s", mode)
        yield
        if owns_service:
            await search_service.aclose()

    app = FastAPI(title="TweetSearch", version=__version__, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(TweetSearchError)
    async def _service_error(request: Request, exc: TweetSearchError) -> JSONResponse:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
        return _error(exc.http_status, str(exc))

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        details = "; ".join(str(err.get("msg")) for err in exc.errors())
        return _error(400, f"Invalid request: {details}")

    @app.exception_handler(Exception)
    async def _unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("%s %s error", request.method, request.url.path)
        return _error(500, str(exc))

    @app.get("/health")
    async def health() -> dict[str, Any]:
        return {
            "status": "ok",
            "version": __version__,
            "timestamp": datetime.now(UTC).isoformat(),
            "mock": search_service.mock_mode,
        }

    @app.post("/search")
    async def search(req: SearchRequest) -> dict[str, Any]:
        start_time = time.perf_counter()
        logger.info("POST /search start", extra={"max_results": req.max_results})
        items = await search_service.search(req.query, req.max_results)
        logger.info(
            "POST /search success: results=%d, latency=%.2fms",
            len(items),
            (time.perf_counter() - start_time) * 1000,
        )
        return {"results": [it.model_dump(mode="json") for it in items]}

    @app.post("/search/enhance")
    async def search_enhance(req: EnhanceRequest) -> dict[str, Any]:
        start_time = time.perf_counter()
        logger.info("POST /search/enhance start", extra={"top_k": req.enhance_top_x})
        items = await search_service.search_and_enhance(
            req.query,
            req.max_results,
            top_k=req.enhance_top_x,
            instruction=req.custom_instruction,
        )
        logger.info(
            "POST /search/enhance success: results=%d, latency=%.2fms",
            len(items),
            (time.perf_counter() - start_time) * 1000,
        )
        return {"results": [it.model_dump(mode="json") for it in items]}

    @app.get("/tools")
    async def tools_list() -> dict[str, Any]:
        return {"tools": list_tools()}

    @app.post("/tools")
    async def tools_invoke(req: ToolRequest) -> Any:
        if not req.tool:
            return _error(400, "Missing tool name in request")
        result = await dispatcher.execute(req.tool, req.parameters)
        if not result.success:
            return _error(int(result.metadata.get("http_status", 500)), result.error or "Tool failed")
        return result.content

    return app
