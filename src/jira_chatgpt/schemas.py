from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from .contracts import CompletionRequest, CompletionResult

MISSING_PARAMETERS_MESSAGE = "Missing required parameters"
INVALID_BODY_MESSAGE = "Invalid request body"
PROCESSING_FAILED_MESSAGE = "Failed to process request"


class ChatGPTRequest(BaseModel):
    # Unknown keys are ignored; required-field checks happen in the gateway so
    # missing fields map to a 400 with a fixed message rather than a 422.
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    text: str | None = None
    action: str | None = None
    language: str | None = None
    custom_prompt: str | None = Field(default=None, alias="customPrompt")

    def to_completion_request(self) -> CompletionRequest:
        return CompletionRequest(
            text=self.text,
            action=self.action,
            language=self.language,
            custom_prompt=self.custom_prompt,
        )


class ChatGPTResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: Literal[True] = True
    response: str
    token_usage: int = Field(alias="tokenUsage")


def make_chatgpt_response(result: CompletionResult) -> ChatGPTResponse:
    return ChatGPTResponse(response=result.response, token_usage=result.token_usage)


class ErrorResponse(BaseModel):
    error: str
    message: str | None = None


def make_error_response(*, error: str, message: str | None = None) -> dict[str, str]:
    return ErrorResponse(error=error, message=message).model_dump(exclude_none=True)


class HealthResponse(BaseModel):
    status: Literal["ok"] = "ok"
