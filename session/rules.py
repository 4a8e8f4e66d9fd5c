"""Game rules and constants for the Mafia session engine."""

from enum import Enum


class Role(str, Enum):
    """Player roles in the game."""

    VILLAGER = "villager"
    MAFIA = "mafia"
    DOCTOR = "doctor"
    DETECTIVE = "detective"


class Phase(str, Enum):
    """Current game phase."""

    NIGHT = "night"
    DISCUSSION = "discussion"
    VOTING = "voting"
    GAME_OVER = "game-over"


class DiscussionAction(str, Enum):
    """What a player did to another player during discussion."""

    ACCUSE = "accuse"
    DEFEND = "defend"
    SKIP = "skip"


class LogType(str, Enum):
    """Kind of log entry, used by the presentation layer for styling."""

    SYSTEM = "system"
    CHAT = "chat"
    ALERT = "alert"
    CLUE = "clue"
    INFO = "info"


class Winner(str, Enum):
    """Winning faction."""

    MAFIA = "mafia"
    VILLAGER = "villager"


class LobbyStatus(str, Enum):
    WAITING = "waiting"
    IN_GAME = "in-game"
    FINISHED = "finished"


class Intuition(str, Enum):
    """Direction of a gut feeling leaked from a private result."""

    GOOD = "good"
    BAD = "bad"


class RumorKind(str, Enum):
    SUSPICIOUS = "suspicious"
    TRUSTED = "trusted"


# Target sentinel for "vote for no one" / "do nothing tonight"
SKIP = "SKIP"

# Roles that act at night
NIGHT_ROLES = (Role.MAFIA, Role.DOCTOR, Role.DETECTIVE)

# Minimum players to start
MIN_PLAYERS = 3

# Neutral suspicion (percent) used for strangers and for any missing lookup
BASE_SUSPICION = 35.0

# Role pool thresholds
DOCTOR_MIN_PLAYERS = 4
DETECTIVE_MIN_PLAYERS = 5
