"""Prompt building for the narrator."""

NARRATOR_SYSTEM_PROMPT = (
    "You are the narrator of a gritty 1920s Mafia game. "
    "You write short, dark, mysterious scene-setting prose and never reveal anyone's role."
)

INTRO_INSTRUCTIONS_TEMPLATE = (
    "The following people have gathered in a smoky speakeasy backroom: {names}. "
    "Write a short, suspenseful, 2-sentence intro setting the scene and mentioning a few of them by name. "
    "Do not reveal roles. Keep it mysterious and dark."
)


def build_intro_prompt(player_names: list[str]) -> str:
    return INTRO_INSTRUCTIONS_TEMPLATE.format(names=", ".join(player_names))
