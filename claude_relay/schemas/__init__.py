"""
Pydantic wire models for the OpenAI-compatible surface and the session/auth endpoints.
"""

from .auth import AuthStatusResponse, LoginUrlResponse
from .chat import (
    AssistantMessage,
    ChatCompletionRequest,
    ChatCompletionResponse,
    ChatMessage,
    Choice,
    FunctionCall,
    FunctionDefinition,
    HealthResponse,
    ModelInfo,
    ModelsResponse,
    Tool,
    ToolCall,
    Usage,
)
from .session import ExchangeView, RestoredExchange, RestoreResponse, SessionStateResponse

__all__ = [
    "AssistantMessage",
    "AuthStatusResponse",
    "ChatCompletionRequest",
    "ChatCompletionResponse",
    "ChatMessage",
    "Choice",
    "ExchangeView",
    "FunctionCall",
    "FunctionDefinition",
    "HealthResponse",
    "LoginUrlResponse",
    "ModelInfo",
    "ModelsResponse",
    "RestoreResponse",
    "RestoredExchange",
    "SessionStateResponse",
    "Tool",
    "ToolCall",
    "Usage",
]
