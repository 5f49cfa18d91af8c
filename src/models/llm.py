"""LLM-facing value objects: streamed chunks, model listings and provider configs."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class ChatChunk(BaseModel):
    """One incremental piece of a streamed completion."""

    model_config = ConfigDict(frozen=True)

    content: str = ""
    finish_reason: str | None = None


class ModelInfo(BaseModel):
    """A model advertised by a provider's listing endpoint."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    provider: str
    type: Literal["chat", "embedding"] = "chat"
    description: str = ""


class ProviderConfig(BaseModel):
    """Resolved connection settings for one LLM provider."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    type: Literal["api", "local"] = "api"
    api_key: str | None = Field(default=None, repr=False)
    base_url: str | None = None
    enabled: bool = True
