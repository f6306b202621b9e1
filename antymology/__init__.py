"""
Antymology Colony Simulator
============================
An ant colony living in a 3D block world, tuned by an evolutionary algorithm.

Worker ants and a single queen wander the terrain, dig, eat mulch and stack
blocks; the queen converts her own health into nest blocks. A generational
genetic algorithm searches the space of behavior genomes for colonies that
produce the most nest blocks.

Modules:
--------
- config: Configuration dataclasses, presets and JSON load/save
- world: Block grid contract, numpy block world and terrain generation
- genome: Behavior genomes, random sampling and mutation
- occupancy: Position -> ants spatial index
- agent: Worker/queen per-tick behavior
- colony: Population management and fixed-timestep scheduler
- evolution: Elitist genetic algorithm driven by simulation ticks
- main: CLI and simulation runner

Example Usage:
--------------
>>> from antymology import create_small_test_config, run_evolution
>>> config = create_small_test_config()
>>> results = run_evolution(config, n_generations=2, seed=0)
>>> print(results["best_genome"])
"""

__version__ = "1.0.0"
__author__ = "Antymology Team"

# Configuration
from .config import (
    SimulationConfig,
    WorldConfig,
    AntConfig,
    SchedulerConfig,
    EvolutionConfig,
    BlockKind,
    AntKind,
    EvolutionState,
    create_default_config,
    create_small_test_config,
    create_large_scale_config,
    load_config,
    save_config,
)

# World
from .world import (
    WorldQuery,
    BlockWorld,
    generate_world,
)

# Genomes
from .genome import (
    BehaviorGenome,
    default_genome,
    random_genome,
    mutate_genome,
)

# Simulation core
from .occupancy import OccupancyIndex
from .agent import Ant, AntSnapshot, SimulationContext
from .colony import ColonyManager
from .evolution import EvolutionEngine, GenerationRecord

# Runners
from .main import (
    create_benchmark_config,
    create_simulation,
    run_evolution,
    run_simulation,
)

__all__ = [
    # Config
    "SimulationConfig",
    "WorldConfig",
    "AntConfig",
    "SchedulerConfig",
    "EvolutionConfig",
    "BlockKind",
    "AntKind",
    "EvolutionState",
    "create_default_config",
    "create_small_test_config",
    "create_large_scale_config",
    "load_config",
    "save_config",
    # World
    "WorldQuery",
    "BlockWorld",
    "generate_world",
    # Genomes
    "BehaviorGenome",
    "default_genome",
    "random_genome",
    "mutate_genome",
    # Core
    "OccupancyIndex",
    "Ant",
    "AntSnapshot",
    "SimulationContext",
    "ColonyManager",
    "EvolutionEngine",
    "GenerationRecord",
    # Runners
    "create_benchmark_config",
    "create_simulation",
    "run_evolution",
    "run_simulation",
]
