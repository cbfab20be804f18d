"""Data models and schemas for the Groq chat completions API."""

from typing import Dict, List, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field


Role = Literal["system", "user", "assistant"]


class Message(BaseModel):
    """Chat message model."""
    model_config = ConfigDict(frozen=True)

    role: Role
    content: str


class ResponseFormat(BaseModel):
    """Requested output format; json_object enables JSON mode."""
    type: Literal["text", "json_object"] = "text"


class ChatCompletionRequest(BaseModel):
    """Request model for chat completions."""
    model: str
    messages: List[Message]
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    n: Optional[int] = None
    stream: bool = False
    stop: Optional[Union[str, List[str]]] = None
    presence_penalty: Optional[float] = None
    frequency_penalty: Optional[float] = None
    logit_bias: Optional[Dict[str, int]] = None
    user: Optional[str] = None
    response_format: Optional[ResponseFormat] = None

    @property
    def wants_json(self) -> bool:
        return (
            self.response_format is not None
            and self.response_format.type == "json_object"
        )


class Usage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class Choice(BaseModel):
    """Choice model for non-streaming chat completions."""
    index: int = 0
    message: Message
    finish_reason: Optional[str] = None


class ChatCompletionResponse(BaseModel):
    """Response model for chat completions."""
    id: str = ""
    object: str = "chat.completion"
    created: int = 0
    model: str = ""
    choices: List[Choice] = Field(default_factory=list)
    usage: Usage = Field(default_factory=Usage)


class Delta(BaseModel):
    """Partial message carried by a streamed chunk."""
    role: Optional[Role] = None
    content: Optional[str] = None


class ChoiceDelta(BaseModel):
    index: int = 0
    delta: Delta = Field(default_factory=Delta)
    finish_reason: Optional[str] = None


class ChatCompletionChunk(BaseModel):
    """One decoded frame of a streamed chat completion."""
    id: str = ""
    object: Optional[str] = None
    created: Optional[int] = None
    model: Optional[str] = None
    choices: List[ChoiceDelta] = Field(default_factory=list)

    @property
    def content(self) -> str:
        """Content of the first choice's delta, or an empty string."""
        if not self.choices:
            return ""
        return self.choices[0].delta.content or ""


class Model(BaseModel):
    """Model descriptor returned by the /models endpoints."""
    id: str
    object: str = "model"
    created: Optional[int] = None
    owned_by: Optional[str] = None
    active: Optional[bool] = None
    context_window: Optional[int] = None


class ModelList(BaseModel):
    object: str = "list"
    data: List[Model] = Field(default_factory=list)
