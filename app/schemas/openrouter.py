"""Request/response shapes for the OpenRouter chat-completion API"""

from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import Any, Dict, List, Literal, Optional


# ==================== CLIENT CONFIGURATION ====================

class RetryConfig(BaseModel):
    """Exponential backoff policy. Delays are in seconds."""
    model_config = ConfigDict(frozen=True)

    max_attempts: int = Field(5, ge=1)
    initial_delay: float = Field(0.5, ge=0)
    max_delay: float = Field(8.0, ge=0)
    backoff_factor: float = Field(1.5, ge=1)

    @model_validator(mode="after")
    def check_delays(self):
        if self.max_delay < self.initial_delay:
            raise ValueError("max_delay must be greater than or equal to initial_delay")
        return self


class ServiceConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    retry: RetryConfig = Field(default_factory=RetryConfig)
    timeout: float = Field(45.0, gt=0, description="Per-attempt timeout in seconds")


# ==================== MODEL PARAMETERS ====================

class JsonSchemaDefinition(BaseModel):
    type: str
    properties: Dict[str, Any]
    required: List[str]


class JsonSchemaFormat(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    schema_: JsonSchemaDefinition = Field(..., alias="schema")


class ResponseFormat(BaseModel):
    type: Literal["json_schema"]
    json_schema: JsonSchemaFormat


class ModelParameters(BaseModel):
    temperature: float = Field(..., ge=0, le=2)
    top_p: float = Field(..., ge=0, le=1)
    max_tokens: Optional[int] = Field(None, gt=0)
    frequency_penalty: Optional[float] = Field(None, ge=-2, le=2)
    presence_penalty: Optional[float] = Field(None, ge=-2, le=2)
    response_format: Optional[ResponseFormat] = None


# ==================== REQUEST PAYLOAD ====================

class ChatMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str = Field(..., min_length=1, max_length=4096)


class PayloadResponseFormat(BaseModel):
    type: Literal["json_schema"]
    json_schema: Dict[str, Any]


class RequestPayload(BaseModel):
    model: str = Field(..., min_length=1)
    messages: List[ChatMessage] = Field(..., min_length=1)
    temperature: float = Field(..., ge=0, le=2)
    top_p: float = Field(..., ge=0, le=1)
    max_tokens: Optional[int] = Field(None, gt=0)
    frequency_penalty: Optional[float] = Field(None, ge=-2, le=2)
    presence_penalty: Optional[float] = Field(None, ge=-2, le=2)
    response_format: Optional[PayloadResponseFormat] = None


# ==================== RESPONSE ====================

class AssistantMessage(BaseModel):
    role: Literal["assistant"]
    content: str


class Choice(BaseModel):
    index: int
    message: AssistantMessage
    finish_reason: Optional[str] = None


class Usage(BaseModel):
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


class ChatCompletionResponse(BaseModel):
    """Validated chat completion. Unknown extra fields are ignored."""
    id: str
    model: str
    created: int
    object: Literal["chat.completion"]
    choices: List[Choice]
    usage: Usage
