"""Engine configuration: belief weights, noise widths, thresholds and phase durations."""

import json
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from session.rules import BASE_SUSPICION

ENV_ENGINE_CONFIG = "MAFIA_ENGINE_CONFIG"


class BeliefWeights(BaseModel):
    """Base weights of every observable event (signed; positive raises suspicion)."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    # Discussion
    action_accuse: float = 0.20
    action_defend: float = -0.15
    lurker_penalty: float = 0.12
    defensive_reaction: float = 0.30
    guilt_by_association: float = 0.15

    # Voting patterns
    bandwagon_penalty: float = 0.15
    hypocrite_penalty: float = 0.30
    consistent_bonus: float = -0.10

    # Historical vindication
    vindication_bonus: float = -0.40
    wrong_accusation: float = 0.25
    complicity_penalty: float = 0.30

    # Private roles
    detective_found_mafia: float = 1.2
    detective_found_innocent: float = -1.2
    doctor_saved_innocent: float = -0.8
    doctor_protect_bias: float = -0.2
    guardian_angel_effect: float = -0.4
    frame_up: float = 0.25

    # Ambient effects
    intuition: float = 0.08
    rumor_suspicious: float = 0.25
    rumor_trusted: float = -0.20
    ambient_paranoia: float = Field(default=0.15, ge=0, description="Half-width of the zero-mean nightly nudge")


class NoiseWidths(BaseModel):
    """Half-widths of the uniform noise multiplier drawn for each kind of update."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    vote: float = 0.40
    discussion: float = 0.30
    private_leak: float = 0.80
    hypocrite: float = 0.20
    history: float = 0.10
    lurker: float = 0.20
    defensive: float = 0.20
    guilt: float = 0.20
    doctor_bias: float = 0.10
    doctor_save: float = 0.10
    guardian_angel: float = 0.20
    detective: float = 0.10
    frame_up: float = 0.30
    rumor: float = 0.50
    ambient: float = 0.50


class PhaseDurations(BaseModel):
    """Phase windows in seconds."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    night: float = Field(default=30.0, gt=0)
    discussion: float = Field(default=180.0, gt=0)
    voting: float = Field(default=30.0, gt=0)


class EngineConfig(BaseModel):
    """Single immutable configuration value passed to the engine at construction."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    epsilon: float = Field(default=5.0, ge=0, lt=50, description="Suspicion is kept within [epsilon, 100-epsilon]")
    base_suspicion: float = Field(default=BASE_SUSPICION, ge=0, le=100)
    startup_noise: float = Field(default=10.0, ge=0, description="Initial suspicion is base +/- this")
    mafia_partner_suspicion: float = 0.0
    memory_drift_lambda: float = Field(default=0.85, ge=0, le=1)
    learning_rate: float = 0.3
    misinterpret_chance: float = Field(default=0.05, ge=0, le=1)
    misinterpret_factor: float = 0.5
    context_bias: bool = True
    bias_strength: float = 0.2
    bias_high: float = 0.6
    bias_low: float = 0.4
    min_trust: float = 0.1
    reverse_psychology_threshold: float = 60.0
    reverse_psychology_factor: float = 0.5
    guilt_threshold: float = 70.0
    bandwagon_cutoff: float = Field(default=0.6, ge=0, le=1)
    rumor_suspicious_chance: float = Field(default=0.6, ge=0, le=1)
    doctor_save_intuition_strength: float = 0.7
    night_death_history_factor: float = 0.5

    weights: BeliefWeights = Field(default_factory=BeliefWeights)
    noise: NoiseWidths = Field(default_factory=NoiseWidths)
    durations: PhaseDurations = Field(default_factory=PhaseDurations)

    @property
    def min_suspicion(self) -> float:
        return self.epsilon

    @property
    def max_suspicion(self) -> float:
        return 100.0 - self.epsilon


default_config = EngineConfig()


def load_config_from_json(config_path: str) -> EngineConfig:
    """
    Load engine configuration from a JSON file.

    Missing keys keep their defaults; unknown keys are rejected.

    Raises:
        FileNotFoundError: If the config file doesn't exist
        pydantic.ValidationError: If the file holds invalid values
    """
    config_file = Path(config_path)
    if not config_file.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")
    data = json.loads(config_file.read_text() or "{}")
    if not data:
        return default_config
    return EngineConfig.model_validate(data)


def load_config(config_path: Optional[str] = None) -> EngineConfig:
    """Load configuration from config_path, else from $MAFIA_ENGINE_CONFIG, else the defaults."""
    path = config_path or os.environ.get(ENV_ENGINE_CONFIG)
    if not path:
        return default_config
    return load_config_from_json(path)
