"""
Antymology Behavior Genome
===========================
Scalar parameter sets that drive the ant decision procedure.

A genome holds per-action probabilities and cooldown lengths (in ticks).
Genomes are immutable values: mutation returns a new genome, so a colony
spawned with a genome keeps it for the lifetime of its ants.
"""

from dataclasses import dataclass, asdict, fields, replace
from typing import Any, Dict, Optional

import numpy as np

from .config import EvolutionConfig

PROBABILITY_FIELDS = (
    "move_probability",
    "dig_probability",
    "eat_probability",
    "build_probability",
    "queen_build_probability",
)

COOLDOWN_FIELDS = (
    "ticks_between_digs",
    "ticks_between_eats",
    "ticks_between_builds",
    "ticks_between_queen_builds",
)

# Genome field -> EvolutionConfig mutation delta attribute
_MUTATION_DELTAS = {
    "move_probability": "move_mutation",
    "dig_probability": "dig_mutation",
    "eat_probability": "eat_mutation",
    "build_probability": "build_mutation",
    "queen_build_probability": "queen_build_mutation",
}


@dataclass(frozen=True)
class BehaviorGenome:
    """Per-action probabilities and cooldowns for one colony"""
    move_probability: float
    dig_probability: float
    eat_probability: float
    build_probability: float = 0.0
    queen_build_probability: float = 0.0
    ticks_between_digs: int = 3
    ticks_between_eats: int = 3
    ticks_between_builds: int = 8
    ticks_between_queen_builds: int = 20

    def clamped(self, max_cooldown: Optional[int] = None) -> "BehaviorGenome":
        """Copy with probabilities in [0, 1] and cooldowns >= 1"""
        values = {}
        for name in PROBABILITY_FIELDS:
            values[name] = float(np.clip(getattr(self, name), 0.0, 1.0))
        for name in COOLDOWN_FIELDS:
            ticks = max(1, int(getattr(self, name)))
            if max_cooldown is not None:
                ticks = min(ticks, max_cooldown)
            values[name] = ticks
        return replace(self, **values)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BehaviorGenome":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown genome keys: {sorted(unknown)}")
        return cls(**data).clamped()

    def __str__(self) -> str:
        return (
            f"move:{self.move_probability:.2f} dig:{self.dig_probability:.2f} "
            f"eat:{self.eat_probability:.2f} build:{self.build_probability:.2f} "
            f"queenBuild:{self.queen_build_probability:.2f} "
            f"digs:({self.ticks_between_digs}) eats:({self.ticks_between_eats}) "
            f"builds:({self.ticks_between_builds}) qbuilds:({self.ticks_between_queen_builds})"
        )


def default_genome() -> BehaviorGenome:
    """Genome used by non-evolving colonies and as a seed"""
    return BehaviorGenome(
        move_probability=0.2,
        dig_probability=0.01,
        eat_probability=0.01,
        build_probability=0.02,
        queen_build_probability=1.0,
        ticks_between_digs=25,
        ticks_between_eats=8,
        ticks_between_builds=8,
        ticks_between_queen_builds=20,
    )


def random_genome(rng: np.random.Generator, config: EvolutionConfig) -> BehaviorGenome:
    """Draw each field independently from its configured range"""
    values = {}
    for name in PROBABILITY_FIELDS:
        low, high = getattr(config, f"{name}_range")
        values[name] = float(rng.uniform(low, high))
    for name in COOLDOWN_FIELDS:
        low, high = getattr(config, f"{name}_range")
        values[name] = int(rng.integers(low, high + 1))
    return BehaviorGenome(**values)


def mutate_genome(genome: BehaviorGenome, rng: np.random.Generator,
                  config: EvolutionConfig) -> BehaviorGenome:
    """
    Perturb every field by a small bounded delta.

    Probabilities move by U(-delta, delta) and are clamped to [0, 1];
    cooldowns move by an integer in [-k, k] and are clamped to cooldown_bounds.
    """
    values = {}
    for name in PROBABILITY_FIELDS:
        delta = getattr(config, _MUTATION_DELTAS[name])
        values[name] = float(np.clip(getattr(genome, name) + rng.uniform(-delta, delta), 0.0, 1.0))

    low, high = config.cooldown_bounds
    k = config.cooldown_mutation
    for name in COOLDOWN_FIELDS:
        ticks = getattr(genome, name) + int(rng.integers(-k, k + 1))
        values[name] = int(np.clip(ticks, max(1, low), high))

    return replace(genome, **values)
