"""
Chat schemas - Pydantic models for the /ai-chat endpoint.
The wire format is camelCase (testMode, baseUrl, ...); Python code uses
snake_case attributes through aliases.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# REQUEST SCHEMAS (what the client sends)
# ---------------------------------------------------------------------------

class ChatMessage(BaseModel):
    """
    One conversation turn.

    Example:
    {
        "role": "user",
        "content": "What does this logo say?",
        "images": ["data:image/png;base64,iVBORw0..."]
    }
    """
    role: Literal["user", "assistant"]
    content: str = ""
    # images: data URLs or http(s) URLs attached to the turn
    images: List[str] = Field(default_factory=list)


class ProviderConfigPayload(BaseModel):
    """
    Provider config sent by the admin panel with a connectivity test.

    apiKey may be omitted when the config is already saved; the stored
    credential is reused in that case.
    """
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    label: Optional[str] = None
    provider: str = "custom"
    base_url: str = Field(default="", alias="baseUrl")
    model: str = ""
    api_key: Optional[str] = Field(default=None, alias="apiKey")
    enabled: bool = True


class ChatRequest(BaseModel):
    """
    Request body of POST /ai-chat.

    Example:
    {
        "messages": [{"role": "user", "content": "hello"}],
        "language": "en",
        "mode": "chat"
    }
    """
    model_config = ConfigDict(populate_by_name=True)

    messages: List[ChatMessage] = Field(..., min_length=1)
    language: Literal["en", "hi"] = "en"
    # mode: chat | image-gen | video-gen | suggest | extract; anything else is chat
    mode: Optional[str] = "chat"
    test_mode: bool = Field(default=False, alias="testMode")
    test_config: Optional[ProviderConfigPayload] = Field(default=None, alias="testConfig")
    user_model: Optional[str] = Field(default=None, alias="userModel")

    @property
    def last_user_content(self) -> str:
        """Content of the most recent user turn (the subject of one-shot modes)."""
        for message in reversed(self.messages):
            if message.role == "user":
                return message.content
        return self.messages[-1].content


# ---------------------------------------------------------------------------
# RESPONSE SCHEMAS (what the server returns for non-streaming modes)
# ---------------------------------------------------------------------------

class ImageResponse(BaseModel):
    text: str = ""
    images: List[str] = Field(default_factory=list)


class VideoResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: str = ""
    video_url: Optional[str] = Field(default=None, alias="videoUrl")
    prompt: str = ""


class SuggestionsResponse(BaseModel):
    suggestions: List[str] = Field(default_factory=list)


class ProbeResponse(BaseModel):
    status: Literal["success"] = "success"
    message: str
    provider: Optional[str] = None
    model: Optional[str] = None


class ErrorResponse(BaseModel):
    """Error envelope: {error, status?, retryAfter?}."""
    model_config = ConfigDict(populate_by_name=True)

    error: str
    status: Optional[int] = None
    retry_after: Optional[int] = Field(default=None, alias="retryAfter")
