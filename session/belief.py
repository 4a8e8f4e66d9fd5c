"""Belief engine: the noisy, bounded update every processor uses to move suspicion."""

import logging
import random
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Optional

from session.config import EngineConfig, default_config
from session.rules import Intuition, RumorKind
from session.state import SuspicionBuilder, coerce_suspicion

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Rumor:
    """Result of one pass of the rumor mill, for logging."""

    target_id: str
    kind: RumorKind


class BeliefEngine:
    """
    Noisy belief updates over a suspicion matrix.

    All randomness comes from ``rng`` so a seeded (or scripted) random.Random
    makes every update reproducible.
    """

    def __init__(self, config: Optional[EngineConfig] = None, rng: Optional[random.Random] = None):
        self.config = config or default_config
        self.rng = rng or random.Random()

    def _context_multiplier(self, p: float, weight: float) -> float:
        """Motivated reasoning: evidence agreeing with a held belief lands harder."""
        cfg = self.config
        if p > cfg.bias_high and weight > 0:
            return 1.0 + cfg.bias_strength
        if p > cfg.bias_high and weight < 0:
            return 1.0 - cfg.bias_strength
        if p < cfg.bias_low and weight < 0:
            return 1.0 + cfg.bias_strength
        if p < cfg.bias_low and weight > 0:
            return 1.0 - cfg.bias_strength
        return 1.0

    def update_belief(self, current, weight: float, noise_width: float) -> float:
        """
        Move one suspicion value (percent) by weight, with noise.

        Missing or non-numeric current values start from the baseline. The
        result always lies within [epsilon, 100 - epsilon].
        """
        cfg = self.config
        p = coerce_suspicion(current, cfg.base_suspicion) / 100

        noise_multiplier = self.rng.uniform(1 - noise_width, 1 + noise_width)

        # Occasional misinterpretation of the same event
        effective_weight = weight
        if self.rng.random() < cfg.misinterpret_chance:
            effective_weight = -weight * cfg.misinterpret_factor

        context_multiplier = self._context_multiplier(p, effective_weight) if cfg.context_bias else 1.0
        change = effective_weight * noise_multiplier * context_multiplier

        # Learning rate: approach the bounds asymptotically
        if change > 0:
            new_p = p + (1 - p) * change * cfg.learning_rate
        else:
            new_p = p + p * change * cfg.learning_rate

        low = cfg.min_suspicion / 100
        high = cfg.max_suspicion / 100
        return min(max(new_p, low), high) * 100

    def nudge(
        self,
        matrix: SuspicionBuilder,
        observer_id: str,
        target_id: str,
        weight: float,
        noise_width: float,
    ) -> Optional[float]:
        """Apply update_belief to one matrix cell in place. Self-pairs are skipped."""
        if observer_id == target_id:
            return None
        current = matrix.value(observer_id, target_id, self.config.base_suspicion)
        new_value = self.update_belief(current, weight, noise_width)
        matrix.set(observer_id, target_id, new_value)
        return new_value

    def propagate_intuition(
        self,
        matrix: SuspicionBuilder,
        knower_id: str,
        target_id: str,
        direction: Intuition,
        observer_ids: Iterable[str],
        strength: float = 1.0,
    ) -> None:
        """Leak a private result to everyone else as a weak gut feeling about target."""
        magnitude = self.config.weights.intuition * strength
        if direction == Intuition.GOOD:
            magnitude = -magnitude
        for observer_id in observer_ids:
            if observer_id in (knower_id, target_id):
                continue
            self.nudge(matrix, observer_id, target_id, magnitude, self.config.noise.private_leak)

    def generate_rumor(self, matrix: SuspicionBuilder, living_ids: list[str]) -> Optional[Rumor]:
        """Spread one random rumor about a living player; None with fewer than two alive."""
        if len(living_ids) < 2:
            return None
        cfg = self.config
        target_id = self.rng.choice(living_ids)
        if self.rng.random() < cfg.rumor_suspicious_chance:
            kind, weight = RumorKind.SUSPICIOUS, cfg.weights.rumor_suspicious
        else:
            kind, weight = RumorKind.TRUSTED, cfg.weights.rumor_trusted
        for observer_id in living_ids:
            if observer_id == target_id:
                continue
            self.nudge(matrix, observer_id, target_id, weight, cfg.noise.rumor)
        logger.debug("Rumor about %s: %s", target_id, kind.value)
        return Rumor(target_id=target_id, kind=kind)

    def apply_memory_drift(self, matrix: SuspicionBuilder) -> None:
        """Pull every value toward the baseline: new = old * lambda + base * (1 - lambda)."""
        lam = self.config.memory_drift_lambda
        base = self.config.base_suspicion
        for observer_id in matrix.observers():
            for target_id in matrix.targets(observer_id):
                old = matrix.value(observer_id, target_id, base)
                matrix.set(observer_id, target_id, old * lam + base * (1 - lam))
