"""
Antymology Evolution Engine
============================
Elitist genetic algorithm over behavior genomes.

Loop (driven one tick at a time by the colony scheduler):
1. Evaluate: spawn a colony with candidate i on the restored world and let
   it run for steps_per_evaluation ticks
2. Record: fitness_i = nests produced by that colony
3. After the last candidate, select and mutate:
   - Keep the top n_elites genomes unchanged
   - Fill the rest with mutated clones of uniformly chosen elites
4. Start evaluating the new generation from candidate 0

Index-consistency faults (fitness/population size mismatch, evaluation index
out of range) self-heal with a warning instead of raising.
"""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional

import numpy as np

from .config import EvolutionConfig, EvolutionState
from .genome import BehaviorGenome, default_genome, mutate_genome, random_genome
from .world import WorldQuery

if TYPE_CHECKING:
    from .colony import ColonyManager

logger = logging.getLogger("Evolution")


@dataclass
class GenerationRecord:
    """Outcome of one fully evaluated generation"""
    generation: int
    best_fitness: int
    mean_fitness: float
    best_genome: BehaviorGenome
    fitnesses: List[int] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "generation": self.generation,
            "best_fitness": self.best_fitness,
            "mean_fitness": self.mean_fitness,
            "best_genome": self.best_genome.to_dict(),
            "fitnesses": list(self.fitnesses),
        }


class EvolutionEngine:
    """
    Generate -> evaluate -> select -> mutate over a fixed-size population.

    Each evaluation costs a full colony run, so the engine advances only
    through tick(), called once per simulation tick by the colony.
    """

    def __init__(self, config: EvolutionConfig, colony: "ColonyManager",
                 world: WorldQuery, rng: Optional[np.random.Generator] = None):
        self.config = config
        self.colony = colony
        self.world = world
        self.rng = rng if rng is not None else colony.rng

        self.state = EvolutionState.IDLE

        # Population: genome column and fitness column
        self.population: List[BehaviorGenome] = []
        self.fitnesses = np.zeros(0, dtype=int)

        # Evaluation cursor
        self.eval_index = 0
        self.eval_steps_remaining = 0
        self.generation = 0

        # Best genome of the last completed generation
        self.best_genome: BehaviorGenome = default_genome()
        self.best_fitness = 0
        self.history: List[GenerationRecord] = []

    @property
    def is_running(self) -> bool:
        return self.state is not EvolutionState.IDLE

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start_evolution(self):
        """Create a random population and begin evaluating candidate 0"""
        if self.is_running:
            return

        self.initialize_population()
        self.eval_index = 0
        self.state = EvolutionState.EVALUATING
        self.start_evaluation(self.eval_index)
        self.colony.advance_generation()

        logger.info(f"Evolution started: population={len(self.population)}, "
                    f"steps/evaluation={self.config.steps_per_evaluation}")

    def stop_evolution(self, respawn_best: bool = True):
        """
        Switch to non-evolving mode.

        Takes effect between ticks. With respawn_best the colony is cleared and
        respawned with the best known genome; otherwise it keeps running as is.
        """
        def _stop():
            if not self.is_running:
                return
            self.state = EvolutionState.IDLE
            if respawn_best:
                self.colony.clear_all_ants()
                self.colony.spawn_colony_with_genome(self.best_genome)
            logger.info(f"Evolution stopped at generation {self.generation}; "
                        f"best genome: {self.best_genome}")

        self.colony.call_between_ticks(_stop)

    def initialize_population(self):
        self.population = [
            random_genome(self.rng, self.config)
            for _ in range(self.config.population_size)
        ]
        self.fitnesses = np.zeros(len(self.population), dtype=int)

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def tick(self):
        """Advance the current evaluation window by one simulation tick"""
        if self.state is not EvolutionState.EVALUATING:
            return

        if not self.population:
            logger.warning("Evolution has an empty population; stopping")
            self.state = EvolutionState.IDLE
            return

        if len(self.fitnesses) != len(self.population):
            logger.warning(f"Fitness array size {len(self.fitnesses)} != population "
                           f"size {len(self.population)}; resetting fitness")
            self.fitnesses = np.zeros(len(self.population), dtype=int)

        self.eval_steps_remaining -= 1
        if self.eval_steps_remaining > 0:
            return

        if not 0 <= self.eval_index < len(self.fitnesses):
            logger.warning(f"Evaluation index {self.eval_index} out of range "
                           f"(0..{len(self.fitnesses) - 1}); resetting to 0")
            self.eval_index = 0

        self.fitnesses[self.eval_index] = self.colony.total_nests_produced
        logger.debug(f"Genome {self.eval_index} fitness: {self.fitnesses[self.eval_index]}")

        self.eval_index += 1
        if self.eval_index < len(self.population):
            self.start_evaluation(self.eval_index)
        else:
            self.evolve_population()
            self.eval_index = 0
            self.start_evaluation(self.eval_index)

    def start_evaluation(self, index: int) -> bool:
        """Restore the world and spawn a fresh colony for candidate `index`"""
        if not 0 <= index < len(self.population):
            return False

        self.world.restore_initial_world()
        self.colony.clear_all_ants()
        self.colony.spawn_colony_with_genome(self.population[index])
        self.eval_steps_remaining = self.config.steps_per_evaluation
        self.colony.reset_nest_count()

        logger.info(f"Evaluating genome {index + 1}/{len(self.population)} "
                    f"(generation {self.generation})")
        return True

    # ------------------------------------------------------------------
    # Selection and mutation
    # ------------------------------------------------------------------

    def evolve_population(self):
        """Replace the population with elites plus mutated elite clones"""
        self.state = EvolutionState.SELECTING

        # Descending fitness; ties keep population order
        order = np.argsort(-self.fitnesses, kind="stable")
        n_elites = min(self.config.n_elites, len(self.population))
        elites = [self.population[i] for i in order[:n_elites]]

        new_population = list(elites)
        while len(new_population) < len(self.population):
            parent = elites[int(self.rng.integers(n_elites))]
            new_population.append(mutate_genome(parent, self.rng, self.config))

        best_index = int(order[0])
        record = GenerationRecord(
            generation=self.generation,
            best_fitness=int(self.fitnesses[best_index]),
            mean_fitness=float(np.mean(self.fitnesses)),
            best_genome=self.population[best_index],
            fitnesses=[int(f) for f in self.fitnesses],
        )
        self.history.append(record)
        self.best_genome = record.best_genome
        self.best_fitness = record.best_fitness

        self.population = new_population
        self.fitnesses = np.zeros(len(self.population), dtype=int)
        self.generation += 1
        self.colony.advance_generation()
        self.state = EvolutionState.EVALUATING

        logger.info(f"Generation {record.generation} complete: best={record.best_fitness}, "
                    f"mean={record.mean_fitness:.2f}; best genome: {record.best_genome}")

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def get_summary(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "generation": self.generation,
            "eval_index": self.eval_index,
            "eval_steps_remaining": self.eval_steps_remaining,
            "best_fitness": self.best_fitness,
            "best_genome": self.best_genome.to_dict(),
        }
