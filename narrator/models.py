"""Pydantic models for structured narrator output."""

from pydantic import BaseModel, Field


class Narration(BaseModel):
    """Short flavor text read out before the first night."""

    text: str = Field(
        description="Two suspenseful sentences setting the scene. Mention a few players by name. Never reveal roles."
    )
