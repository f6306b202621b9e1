"""
Antymology Main Simulation Runner
==================================
Entry point for running colony simulations and evolutionary searches.

Provides:
- CLI interface for evolving genomes and replaying a genome
- Benchmark scenarios
- Fitness-history visualization
- JSON output of the evolution history and best genome
"""

import argparse
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
from tqdm import tqdm

from .colony import ColonyManager
from .config import (
    SimulationConfig, create_default_config, create_small_test_config,
    create_large_scale_config, load_config, save_config
)
from .evolution import EvolutionEngine, GenerationRecord
from .genome import BehaviorGenome, default_genome
from .world import BlockWorld, generate_world

logger = logging.getLogger("Antymology")


def create_benchmark_config(scenario: str = "standard") -> SimulationConfig:
    """
    Create configuration for benchmark scenarios.

    Args:
        scenario: One of "small", "standard", "large"

    Returns:
        SimulationConfig for the scenario
    """
    if scenario == "small":
        config = create_small_test_config()
    elif scenario == "standard":
        config = create_default_config()
    elif scenario == "large":
        config = create_large_scale_config()
    else:
        raise ValueError(f"Unknown scenario: {scenario}")

    config.scenario_name = scenario
    return config


def setup_logging(config: SimulationConfig):
    """Log to the console and to <output_dir>/simulation.log"""
    Path(config.output_dir).mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        level=getattr(logging, config.log_level),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(f"{config.output_dir}/simulation.log"),
            logging.StreamHandler()
        ]
    )


def create_simulation(
    config: SimulationConfig,
    world: Optional[BlockWorld] = None,
    seed: Optional[int] = None
) -> Tuple[BlockWorld, ColonyManager, EvolutionEngine]:
    """
    Build world, colony and evolution engine sharing one random generator.

    The world's current blocks become the snapshot every evaluation starts from.
    """
    config.validate()
    rng = np.random.default_rng(seed if seed is not None else config.seed)

    if world is None:
        world = generate_world(config.world, rng)
    world.capture_initial_world()

    colony = ColonyManager(config, world, rng=rng)
    engine = EvolutionEngine(config.evolution, colony, world, rng=rng)
    colony.attach_evolution(engine)
    return world, colony, engine


def run_evolution(
    config: Optional[SimulationConfig] = None,
    n_generations: int = 10,
    frame_time: Optional[float] = None,
    seed: Optional[int] = None,
    world: Optional[BlockWorld] = None
) -> Dict[str, Any]:
    """
    Evolve genomes for a number of complete generations.

    Args:
        config: Simulation configuration
        n_generations: Generations to fully evaluate
        frame_time: Real seconds fed to the scheduler per update; defaults to
            one timestep, i.e. one tick per update outside fast mode
        seed: Random seed
        world: Pre-built world (generated from config if omitted)

    Returns:
        Results with history, best genome and final colony stats
    """
    if config is None:
        config = create_default_config()
    if frame_time is None:
        frame_time = config.scheduler.timestep_duration

    world, colony, engine = create_simulation(config, world=world, seed=seed)
    engine.start_evolution()

    ticks_per_generation = config.evolution.population_size * config.evolution.steps_per_evaluation
    total_ticks = n_generations * ticks_per_generation

    with tqdm(total=total_ticks, desc="Evolution") as progress:
        while len(engine.history) < n_generations and engine.is_running:
            ticks = colony.update(frame_time)
            progress.update(ticks)
            progress.set_postfix(gen=engine.generation, best=engine.best_fitness)

    engine.stop_evolution(respawn_best=True)

    return {
        "history": list(engine.history),
        "best_genome": engine.best_genome,
        "best_fitness": engine.best_fitness,
        "final_stats": colony.get_stats(),
    }


def run_simulation(
    config: Optional[SimulationConfig] = None,
    genome: Optional[BehaviorGenome] = None,
    n_ticks: int = 1000,
    seed: Optional[int] = None,
    world: Optional[BlockWorld] = None
) -> Dict[str, Any]:
    """
    Run one non-evolving colony with a fixed genome.

    Args:
        config: Simulation configuration
        genome: Genome shared by every ant (default genome if omitted)
        n_ticks: Number of ticks to run
        seed: Random seed
        world: Pre-built world (generated from config if omitted)

    Returns:
        Per-tick metrics and final stats
    """
    if config is None:
        config = create_default_config()
    if genome is None:
        genome = default_genome()

    world, colony, _ = create_simulation(config, world=world, seed=seed)
    colony.attach_evolution(None)
    colony.spawn_colony_with_genome(genome)

    results = {
        "ticks": [],
        "alive_ants": [],
        "nests": [],
        "queen_health": [],
    }

    for tick in tqdm(range(n_ticks), desc="Simulation"):
        colony.simulation_update()
        stats = colony.get_stats()

        results["ticks"].append(tick)
        results["alive_ants"].append(stats["alive_ants"])
        results["nests"].append(stats["nests_produced"])
        results["queen_health"].append(stats["queen_health"])

        if stats["alive_ants"] == 0:
            logger.info(f"Colony died out after {tick + 1} ticks")
            break

    results["final_stats"] = colony.get_stats()
    return results


def visualize_evolution(history: List[GenerationRecord], output_path: Optional[str] = None):
    """
    Plot best and mean fitness per generation.

    Args:
        history: Records from run_evolution
        output_path: Path to save figure (optional)
    """
    import matplotlib.pyplot as plt

    generations = [record.generation for record in history]

    fig, ax = plt.subplots(figsize=(8, 5))
    ax.plot(generations, [record.best_fitness for record in history], marker="o", label="Best")
    ax.plot(generations, [record.mean_fitness for record in history], marker="s", label="Mean")
    ax.set_xlabel("Generation")
    ax.set_ylabel("Nests produced")
    ax.set_title("Colony Fitness")
    ax.legend()
    plt.tight_layout()

    if output_path:
        plt.savefig(output_path)
        plt.close(fig)
        logger.info(f"Saved visualization to {output_path}")
    else:
        plt.show()


def save_results(results: Dict[str, Any], output_path: str):
    """Write evolution results (history and best genome) as JSON"""
    payload = {
        "best_fitness": results["best_fitness"],
        "best_genome": results["best_genome"].to_dict(),
        "history": [record.to_dict() for record in results["history"]],
        "final_stats": results["final_stats"],
    }
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        json.dump(payload, f, indent=2)
    logger.info(f"Saved results to {path}")


def load_genome(path: str) -> BehaviorGenome:
    """Load a genome from JSON: either a bare genome or a saved results file"""
    with open(path, 'r') as f:
        data = json.load(f)
    if "best_genome" in data:
        data = data["best_genome"]
    return BehaviorGenome.from_dict(data)


def print_config_summary(config: SimulationConfig):
    """Print a summary of the configuration"""
    print("\n" + "="*60)
    print("Antymology Configuration Summary")
    print("="*60)
    print(f"Scenario: {config.scenario_name}")
    print(f"World: {config.world.width}x{config.world.height}x{config.world.depth}")
    print(f"Workers: {config.ant.worker_ant_count} (+1 queen)")
    print(f"Timestep: {config.scheduler.timestep_duration}s "
          f"(fast mode: {config.scheduler.fast_mode})")
    print()
    print("Evolution settings:")
    print(f"  - Population: {config.evolution.population_size}")
    print(f"  - Elites: {config.evolution.n_elites}")
    print(f"  - Ticks/evaluation: {config.evolution.steps_per_evaluation}")
    print("="*60 + "\n")


def main(argv: Optional[List[str]] = None):
    """CLI entry point"""
    parser = argparse.ArgumentParser(
        description="Antymology Colony Simulation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Quick evolutionary run
  python -m antymology.main --mode evolve --scenario small --generations 3

  # Evolve in fast mode and save history, best genome and a plot
  python -m antymology.main --mode evolve --fast --output out/results.json --plot out/fitness.png

  # Replay an evolved genome without evolution
  python -m antymology.main --mode simulate --genome out/results.json --ticks 2000
        """
    )

    parser.add_argument(
        "--mode",
        choices=["evolve", "simulate"],
        default="evolve",
        help="Running mode"
    )

    parser.add_argument(
        "--scenario",
        choices=["small", "standard", "large"],
        default="standard",
        help="Benchmark scenario"
    )

    parser.add_argument("--config", type=str, help="JSON configuration file (overrides scenario)")
    parser.add_argument("--generations", type=int, default=5, help="Generations to evolve")
    parser.add_argument("--ticks", type=int, default=1000, help="Ticks to simulate")
    parser.add_argument("--seed", type=int, help="Random seed")
    parser.add_argument("--fast", action="store_true", help="Enable fast mode")

    parser.add_argument("--genome", type=str, help="Genome JSON for simulate mode")
    parser.add_argument("--output", type=str, help="Output path for results")
    parser.add_argument("--plot", type=str, help="Output path for fitness plot")

    args = parser.parse_args(argv)

    # Create config
    if args.config:
        config = load_config(args.config)
    else:
        config = create_benchmark_config(args.scenario)

    if args.seed is not None:
        config.seed = args.seed
    if args.fast:
        config.scheduler.fast_mode = True

    setup_logging(config)
    save_config(config, Path(config.output_dir) / "config.json")
    print_config_summary(config)

    if args.mode == "evolve":
        print("Running evolution...")
        results = run_evolution(config=config, n_generations=args.generations, seed=config.seed)
        print(f"\nEvolution complete!")
        print(f"Best fitness: {results['best_fitness']}")
        print(f"Best genome: {results['best_genome']}")

        if args.output:
            save_results(results, args.output)
        if args.plot:
            visualize_evolution(results["history"], args.plot)

    elif args.mode == "simulate":
        genome = load_genome(args.genome) if args.genome else default_genome()
        print(f"Running simulation with genome: {genome}")
        results = run_simulation(config=config, genome=genome, n_ticks=args.ticks, seed=config.seed)
        final = results["final_stats"]
        print(f"\nSimulation complete!")
        print(f"Ticks run: {final['tick']}")
        print(f"Nests produced: {final['nests_produced']}")
        print(f"Ants alive: {final['alive_ants']}")

        if args.output:
            path = Path(args.output)
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, 'w') as f:
                json.dump(results, f, indent=2)


if __name__ == "__main__":
    main()
