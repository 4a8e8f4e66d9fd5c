"""Narrative generator: turns the roster into a line of flavor prose."""

import logging
from typing import Any

from pydantic_ai import Agent

from narrator.llm_config import get_default_model, get_model_from_config
from narrator.models import Narration
from narrator.prompts import NARRATOR_SYSTEM_PROMPT, build_intro_prompt

logger = logging.getLogger(__name__)

FALLBACK_INTRO = "The telegraph lines are down. The Godfather cannot speak right now."
EMPTY_INTRO = "The room is quiet. Too quiet."

# Model is passed at run() so we use defer_model_check.
_narrator_agent = Agent(
    model=None,
    defer_model_check=True,
    output_type=Narration,
    system_prompt=NARRATOR_SYSTEM_PROMPT,
)


def get_narrator_agent() -> Agent[None, Narration]:
    return _narrator_agent


def _get_model(llm_config: dict[str, Any] | None) -> Any:
    if not llm_config:
        return get_default_model()
    return get_model_from_config(
        llm_config.get("provider", "openai"),
        llm_config.get("model", ""),
        llm_config.get("api_key"),
    )


def generate_intro(player_names: list[str], llm_config: dict[str, Any] | None = None) -> str:
    """
    Return a short intro naming some of the players.

    Never raises: any provider failure yields FALLBACK_INTRO. Call it before
    the game starts; it blocks on the provider.
    """
    try:
        result = get_narrator_agent().run_sync(build_intro_prompt(player_names), model=_get_model(llm_config))
    except Exception as e:
        logger.warning("Narrator failed: %s", e)
        return FALLBACK_INTRO
    text = (result.output.text if result.output else "").strip()
    return text or EMPTY_INTRO
