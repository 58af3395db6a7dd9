"""Tool invocation over a fixed set of operations.

Each tool has a pydantic parameter model tagged by its name. A call is parsed into the
tagged union, so an unknown name or a bad parameter shape is rejected before anything
runs.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Annotated, Any, Literal, Union

from pydantic import AliasChoices, BaseModel, Field, TypeAdapter, ValidationError, field_validator

from tweetsearch.errors import (
    EnhancementError,
    InvalidToolParametersError,
    TweetSearchError,
    UnknownToolError,
)
from tweetsearch.logging import get_logger
from tweetsearch.models.search import ResultItem
from tweetsearch.ranking.scoring import rank

if TYPE_CHECKING:
    from tweetsearch.service import SearchService

logger = get_logger(__name__)


class ToolName(str, Enum):
    SEARCH = "search"
    RANK_BY_ENGAGEMENT = "rank-by-engagement"
    EXTRACT_TERM = "extract-term"


class ToolResult(BaseModel):
    """Result from a tool execution."""

    success: bool = True
    content: Any = None
    error: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class SearchCall(BaseModel):
    """Search the upstream and rank results by engagement."""

    tool: Literal["search"] = "search"
    query: str = Field(min_length=1)
    max_results: int = Field(
        default=10,
        ge=1,
        le=100,
        validation_alias=AliasChoices("max_results", "maxResults"),
    )


class RankCall(BaseModel):
    """Rank the given items by engagement score."""

    tool: Literal["rank-by-engagement"] = "rank-by-engagement"
    items: list[ResultItem] = Field(
        default_factory=list,
        validation_alias=AliasChoices("items", "tweets"),
    )

    @field_validator("items", mode="before")
    @classmethod
    def _accept_upstream_shape(cls, v: Any) -> Any:
        # Items may arrive in the upstream `ID/Content/Metadata` shape.
        if not isinstance(v, list):
            return v
        return [ResultItem.from_upstream(raw) if isinstance(raw, dict) and "ID" in raw else raw for raw in v]


class ExtractTermCall(BaseModel):
    """Extract a search term from one post."""

    tool: Literal["extract-term"] = "extract-term"
    content: str = Field(
        min_length=1,
        validation_alias=AliasChoices("content", "tweet_content"),
    )
    instruction: str | None = Field(
        default=None,
        validation_alias=AliasChoices("instruction", "customInstruction"),
    )


ToolCall = Annotated[Union[SearchCall, RankCall, ExtractTermCall], Field(discriminator="tool")]

_CALL_ADAPTER: TypeAdapter[ToolCall] = TypeAdapter(ToolCall)

_CALL_MODELS: dict[ToolName, type[BaseModel]] = {
    ToolName.SEARCH: SearchCall,
    ToolName.RANK_BY_ENGAGEMENT: RankCall,
    ToolName.EXTRACT_TERM: ExtractTermCall,
}


def parse_call(tool: str, parameters: dict[str, Any] | None) -> SearchCall | RankCall | ExtractTermCall:
    """Parse a raw `{tool, parameters}` request into a typed call.

    Raises:
        UnknownToolError: `tool` is not one of `ToolName`.
        InvalidToolParametersError: Parameters do not fit the tool.
    """

    try:
        name = ToolName(tool)
    except ValueError as e:
        raise UnknownToolError(tool) from e

    payload = dict(parameters or {})
    payload["tool"] = name.value
    try:
        return _CALL_ADAPTER.validate_python(payload)
    except ValidationError as e:
        details = "; ".join(f"{'.'.join(map(str, err['loc']))}: {err['msg']}" for err in e.errors())
        raise InvalidToolParametersError(f"Invalid parameters for tool '{name.value}': {details}") from e


def list_tools() -> list[dict[str, Any]]:
    """List all tools with their parameter schemas.

    Returns:
        List of tool metadata dictionaries.
    """

    out: list[dict[str, Any]] = []
    for name, model in _CALL_MODELS.items():
        schema = model.model_json_schema(by_alias=False)
        schema.get("properties", {}).pop("tool", None)
        out.append({"name": name.value, "description": (model.__doc__ or "").strip(), "schema": schema})
    return out


class ToolDispatcher:
    """Executes parsed tool calls against a `SearchService`."""

    def __init__(self, service: SearchService) -> None:
        self._service = service

    async def execute(self, tool: str, parameters: dict[str, Any] | None = None) -> ToolResult:
        """Execute a tool.

        Args:
            tool: Name of the tool to execute.
            parameters: Tool arguments.

        Returns:
            ToolResult with execution result. Service errors are reported in the result.

        Raises:
            UnknownToolError, InvalidToolParametersError: The call itself is malformed.
        """

        call = parse_call(tool, parameters)
        logger.info("Executing tool", extra={"tool": call.tool})
        try:
            return await self._dispatch(call)
        except TweetSearchError as e:
            logger.warning("Tool execution failed", extra={"tool": call.tool, "error": str(e)})
            return ToolResult(success=False, error=str(e), metadata={"http_status": e.http_status})

    async def _dispatch(self, call: SearchCall | RankCall | ExtractTermCall) -> ToolResult:
        if isinstance(call, SearchCall):
            items = await self._service.search(call.query, call.max_results)
            return ToolResult(content=[it.model_dump(mode="json") for it in items])

        if isinstance(call, RankCall):
            ranked = rank(call.items)
            return ToolResult(content=[it.model_dump(mode="json") for it in ranked])

        try:
            term = await self._service.extract_term(call.content, call.instruction)
        except EnhancementError as e:
            logger.warning("Search term extraction failed: %s", e)
            return ToolResult(content={"searchTerm": None, "success": False, "error": str(e)})
        return ToolResult(content={"searchTerm": term, "success": True})
