"""
Antymology Configuration
=========================
Configuration system for the colony simulation and the evolutionary search.
All tunables for the block world, ant behavior, the fixed-timestep scheduler
and the genetic algorithm live here.
"""

from dataclasses import dataclass, field, fields, asdict, is_dataclass
from typing import Any, Dict, Optional, Tuple
from enum import Enum
from pathlib import Path
import json


class BlockKind(Enum):
    """Kinds of blocks in the world grid (stored as uint8)"""
    AIR = 0
    GRASS = 1
    STONE = 2
    MULCH = 3
    ACIDIC = 4
    CONTAINER = 5
    NEST = 6


class AntKind(Enum):
    """Closed set of agent variants"""
    WORKER = "worker"
    QUEEN = "queen"


class EvolutionState(Enum):
    """Evolution engine lifecycle states"""
    IDLE = "idle"
    EVALUATING = "evaluating"
    SELECTING = "selecting"


@dataclass
class WorldConfig:
    """Block world dimensions and terrain generation"""
    # Extents (y is vertical)
    width: int = 64  # x
    height: int = 32  # y
    depth: int = 64  # z

    # Terrain shape
    base_height: int = 6  # Lowest surface level
    height_variation: int = 10  # Surface rises up to base_height + height_variation
    noise_scales: Tuple[int, ...] = (4, 8, 16)  # Octave cell sizes

    # Surface composition (fraction of surface columns)
    mulch_fraction: float = 0.15
    acidic_fraction: float = 0.05
    mulch_depth: int = 2  # Mulch layers below the surface

    # Indestructible floor at y=0
    container_floor: bool = True


@dataclass
class AntConfig:
    """Ant behavior and colony spawn configuration"""
    # Population
    worker_ant_count: int = 20

    # Health
    max_worker_health: float = 100.0
    max_queen_health: float = 150.0
    health_decay_rate: float = 0.5  # Health units per second of simulated time
    acidic_decay_multiplier: float = 2.0
    mulch_health_restore: float = 30.0

    # Movement
    max_height_difference: int = 2
    movement_speed: float = 2.0  # Blocks per second (presentation only)
    movement_lock_ticks: int = 0  # Ticks a move takes; 0 or 1 completes within the tick

    # Costs (fraction of max health)
    nest_production_health_cost: float = 0.33
    container_production_health_cost: float = 0.10
    nest_health_margin: float = 1.5  # Queen needs health > margin * nest cost

    # Spawning
    spawn_y_level: int = 8  # Minimum spawn elevation
    spawn_radius: int = 10
    queen_spawn_radius: int = 2
    spawn_attempts: int = 100


@dataclass
class SchedulerConfig:
    """Fixed-timestep scheduler configuration"""
    timestep_duration: float = 0.1  # Seconds per simulation tick
    fast_mode: bool = False
    time_scale_multiplier: float = 10.0  # Applied to elapsed time in fast mode
    max_ticks_per_update: int = 2000  # Safety cap per real-time update


@dataclass
class EvolutionConfig:
    """Generational genetic algorithm configuration"""
    enabled: bool = True
    population_size: int = 6
    steps_per_evaluation: int = 300  # Ticks per candidate evaluation window
    n_elites: int = 2

    # Sampling ranges for random genomes (inclusive for integer fields)
    move_probability_range: Tuple[float, float] = (0.0, 0.5)
    dig_probability_range: Tuple[float, float] = (0.0, 0.1)
    eat_probability_range: Tuple[float, float] = (0.0, 0.05)
    build_probability_range: Tuple[float, float] = (0.0, 0.08)
    queen_build_probability_range: Tuple[float, float] = (0.5, 1.0)
    ticks_between_digs_range: Tuple[int, int] = (1, 5)
    ticks_between_eats_range: Tuple[int, int] = (4, 11)
    ticks_between_builds_range: Tuple[int, int] = (4, 11)
    ticks_between_queen_builds_range: Tuple[int, int] = (10, 20)

    # Mutation deltas (uniform in [-delta, +delta])
    move_mutation: float = 0.02
    dig_mutation: float = 0.01
    eat_mutation: float = 0.01
    build_mutation: float = 0.01
    queen_build_mutation: float = 0.02
    cooldown_mutation: int = 1

    # Valid cooldown range after mutation
    cooldown_bounds: Tuple[int, int] = (1, 20)


@dataclass
class SimulationConfig:
    """Master configuration combining all subsystems"""
    world: WorldConfig = field(default_factory=WorldConfig)
    ant: AntConfig = field(default_factory=AntConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    evolution: EvolutionConfig = field(default_factory=EvolutionConfig)

    # Run settings
    seed: Optional[int] = None
    scenario_name: str = "default"
    log_level: str = "INFO"
    output_dir: str = "./antymology_output"

    def validate(self):
        """Validate configuration consistency"""
        assert self.world.width > 0 and self.world.depth > 0, "World footprint must be positive"
        assert self.world.height > 2, "World must be at least 3 blocks tall"
        assert self.world.base_height + self.world.height_variation < self.world.height, \
            "Terrain does not fit in world height"
        assert self.ant.worker_ant_count >= 0, "Worker count cannot be negative"
        assert self.ant.max_worker_health > 0, "Worker health must be positive"
        assert self.ant.max_queen_health > 0, "Queen health must be positive"
        assert self.ant.health_decay_rate >= 0, "Decay rate cannot be negative"
        assert self.ant.max_height_difference >= 0, "Height delta cannot be negative"
        assert self.ant.movement_lock_ticks >= 0, "Movement lock cannot be negative"
        for cost in (self.ant.nest_production_health_cost,
                     self.ant.container_production_health_cost):
            assert 0 <= cost <= 1, f"Health cost fraction must be in [0, 1]: {cost}"
        assert self.scheduler.timestep_duration > 0, "Timestep must be positive"
        assert self.scheduler.time_scale_multiplier > 0, "Time scale must be positive"
        assert self.scheduler.max_ticks_per_update >= 1, "Tick cap must be at least 1"
        assert self.evolution.population_size > 0, "Population must not be empty"
        assert self.evolution.steps_per_evaluation > 0, "Evaluation window must be positive"
        assert 1 <= self.evolution.n_elites <= self.evolution.population_size, \
            "Elites must be between 1 and population size"

        low, high = self.evolution.cooldown_bounds
        assert 1 <= low <= high, f"Invalid cooldown bounds: {self.evolution.cooldown_bounds}"

        # Validate sampling ranges
        for f in fields(self.evolution):
            if f.name.endswith("_range"):
                bounds = getattr(self.evolution, f.name)
                assert bounds[0] <= bounds[1], f"Invalid bounds for {f.name}: {bounds}"
                if "probability" in f.name:
                    assert 0 <= bounds[0] and bounds[1] <= 1, f"{f.name} must lie in [0, 1]"
                else:
                    assert bounds[0] >= 1, f"{f.name} must start at 1 or above"

        return True


def create_default_config() -> SimulationConfig:
    """Create default configuration"""
    return SimulationConfig()


def create_small_test_config() -> SimulationConfig:
    """Create small configuration for testing"""
    config = SimulationConfig()
    config.world.width = 16
    config.world.depth = 16
    config.world.height = 16
    config.world.base_height = 4
    config.world.height_variation = 4
    config.world.noise_scales = (4, 8)
    config.ant.worker_ant_count = 5
    config.ant.spawn_y_level = 4
    config.ant.spawn_radius = 3
    config.evolution.population_size = 4
    config.evolution.steps_per_evaluation = 50
    return config


def create_large_scale_config() -> SimulationConfig:
    """Create large-scale configuration for full experiments"""
    config = SimulationConfig()
    config.world.width = 128
    config.world.depth = 128
    config.world.height = 48
    config.world.height_variation = 16
    config.ant.worker_ant_count = 50
    config.ant.spawn_y_level = 12
    config.evolution.population_size = 12
    config.evolution.steps_per_evaluation = 1000
    config.evolution.n_elites = 3
    return config


# =============================================================================
# SERIALIZATION
# =============================================================================

def config_to_dict(config: SimulationConfig) -> Dict[str, Any]:
    """Convert a configuration to a JSON-compatible dictionary"""
    return asdict(config)


def _build_dataclass(cls, data: Dict[str, Any]):
    """Recursively build a config dataclass, coercing lists back to tuples"""
    known = {f.name: f for f in fields(cls)}
    unknown = set(data) - set(known)
    if unknown:
        raise ValueError(f"Unknown {cls.__name__} keys: {sorted(unknown)}")

    kwargs = {}
    defaults = cls()
    for name, value in data.items():
        current = getattr(defaults, name)
        if is_dataclass(current):
            kwargs[name] = _build_dataclass(type(current), value)
        elif isinstance(current, tuple) and isinstance(value, list):
            kwargs[name] = tuple(value)
        else:
            kwargs[name] = value
    return cls(**kwargs)


def config_from_dict(data: Dict[str, Any]) -> SimulationConfig:
    """Build a SimulationConfig from a (possibly partial) dictionary"""
    return _build_dataclass(SimulationConfig, data)


def load_config(path) -> SimulationConfig:
    """Load and validate a configuration from a JSON file"""
    with open(path, 'r') as f:
        config = config_from_dict(json.load(f))
    config.validate()
    return config


def save_config(config: SimulationConfig, path) -> Path:
    """Write a configuration to a JSON file"""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        json.dump(config_to_dict(config), f, indent=2)
    return path
