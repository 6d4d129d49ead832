from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class Location(BaseModel):
    """A fully resolved geographic point."""

    model_config = ConfigDict(frozen=True)

    name: str
    latitude: float = Field(ge=-90, le=90, allow_inf_nan=False)
    longitude: float = Field(ge=-180, le=180, allow_inf_nan=False)


class RequestLocation(BaseModel):
    """Location as sent by the browser. Validated later by the resolver."""

    model_config = ConfigDict(populate_by_name=True)

    latitude: float | None = None
    longitude: float | None = None
    location_name: str | None = Field(default=None, alias="locationName")


class MessageItem(BaseModel):
    role: Literal["user", "assistant"]
    content: str
    location: RequestLocation | None = None  # Structured alternative to the text annotation


class ChatRequest(BaseModel):
    messages: list[MessageItem]  # Full conversation history
    location: RequestLocation | None = None  # Optional location picked in the UI


class ChatResponse(BaseModel):
    response: str
    location: Location


class ToolCallRequest(BaseModel):
    tool_name: str
    params: dict[str, Any] = Field(default_factory=dict)


class ToolParameter(BaseModel):
    name: str
    type: str
    required: bool
    default: Any = None
    description: str = ""


class ToolSpec(BaseModel):
    name: str
    description: str
    parameters: list[ToolParameter]


class ToolInvocationResult(BaseModel):
    """Outcome of one tool call, either formatted output or an error message."""

    tool_name: str
    upstream: str
    raw_payload: Any = None
    formatted_text: str | None = None
    error_message: str | None = None

    @property
    def ok(self) -> bool:
        return self.error_message is None

    @property
    def text(self) -> str:
        return self.formatted_text if self.ok else self.error_message
