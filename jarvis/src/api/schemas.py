"""Request / response models for the HTTP surface."""

from datetime import datetime

from pydantic import BaseModel, Field


class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1, description="The user's latest message")


class ChatResponse(BaseModel):
    response: str


class ErrorResponse(BaseModel):
    error: str


class ExchangeOut(BaseModel):
    user: str
    assistant: str
    embedding: list[float] = Field(default_factory=list)
    timestamp: datetime
