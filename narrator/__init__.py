"""Narrator: pydantic-ai backed flavor text for the session."""

from narrator.narrator import FALLBACK_INTRO, generate_intro

__all__ = ["FALLBACK_INTRO", "generate_intro"]
