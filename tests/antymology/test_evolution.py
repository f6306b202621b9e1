"""
Unit tests for antymology/evolution.py

Tests the evaluation loop, elitist selection, self-healing guards and
stopping. Most tests drive the engine with a fake colony whose fitness is a
deterministic function of the spawned genome.
"""

import logging

import pytest
import numpy as np
from antymology.config import EvolutionConfig, EvolutionState
from antymology.evolution import EvolutionEngine, GenerationRecord
from antymology.genome import BehaviorGenome, default_genome


class FakeWorld:
    """Counts snapshot restores"""

    def __init__(self):
        self.restores = 0

    def restore_initial_world(self):
        self.restores += 1


class FakeColony:
    """Colony stand-in: nests produced = 1000 * move_probability of the genome"""

    def __init__(self, rng):
        self.rng = rng
        self.genome = None
        self.spawned = []
        self.cleared = 0
        self.current_generation = 0
        self.is_ticking = False
        self._deferred = []

    @property
    def total_nests_produced(self):
        if self.genome is None:
            return 0
        return int(round(self.genome.move_probability * 1000))

    def clear_all_ants(self):
        self.cleared += 1
        self.genome = None

    def spawn_colony_with_genome(self, genome):
        self.genome = genome
        self.spawned.append(genome)

    def reset_nest_count(self):
        pass

    def advance_generation(self):
        self.current_generation += 1

    def call_between_ticks(self, action):
        if self.is_ticking:
            self._deferred.append(action)
        else:
            action()

    def run(self, engine, ticks):
        for _ in range(ticks):
            self.is_ticking = True
            engine.tick()
            self.is_ticking = False
            while self._deferred:
                self._deferred.pop(0)()


@pytest.fixture
def evo_config():
    """Four candidates, two elites, three-tick evaluations"""
    return EvolutionConfig(population_size=4, n_elites=2, steps_per_evaluation=3)


@pytest.fixture
def fake_colony(rng):
    return FakeColony(rng)


@pytest.fixture
def fake_world():
    return FakeWorld()


@pytest.fixture
def engine(evo_config, fake_colony, fake_world):
    return EvolutionEngine(evo_config, fake_colony, fake_world)


def ticks_per_generation(config):
    return config.population_size * config.steps_per_evaluation


class TestLifecycle:
    """Tests for start/stop"""

    def test_initial_state(self, engine):
        """Test a new engine is idle with the default genome as best"""
        assert engine.state == EvolutionState.IDLE
        assert not engine.is_running
        assert engine.best_genome == default_genome()
        assert engine.history == []

    def test_start_evolution(self, engine, fake_colony, fake_world, evo_config):
        """Test starting evaluates candidate 0 on a restored world"""
        engine.start_evolution()

        assert engine.state == EvolutionState.EVALUATING
        assert len(engine.population) == evo_config.population_size
        assert engine.fitnesses.shape == (evo_config.population_size,)
        assert engine.eval_index == 0
        assert engine.eval_steps_remaining == evo_config.steps_per_evaluation
        assert fake_colony.spawned == [engine.population[0]]
        assert fake_world.restores == 1
        assert fake_colony.current_generation == 1

    def test_start_twice(self, engine, fake_colony):
        """Test starting a running engine does nothing"""
        engine.start_evolution()
        population = list(engine.population)
        engine.start_evolution()
        assert engine.population == population
        assert len(fake_colony.spawned) == 1

    def test_tick_when_idle(self, engine, fake_colony):
        """Test ticks are ignored before evolution starts"""
        engine.tick()
        assert fake_colony.spawned == []

    def test_stop_respawns_best(self, engine, fake_colony, evo_config):
        """Test stopping respawns the best genome of the last generation"""
        engine.start_evolution()
        fake_colony.run(engine, ticks_per_generation(evo_config))
        engine.stop_evolution()

        assert engine.state == EvolutionState.IDLE
        assert fake_colony.spawned[-1] == engine.best_genome

    def test_stop_without_respawn(self, engine, fake_colony):
        """Test stopping can leave the current colony running"""
        engine.start_evolution()
        n_spawned = len(fake_colony.spawned)
        engine.stop_evolution(respawn_best=False)

        assert not engine.is_running
        assert len(fake_colony.spawned) == n_spawned

    def test_stop_mid_tick_is_deferred(self, engine, fake_colony):
        """Test a stop requested during a tick waits for the tick to finish"""
        engine.start_evolution()
        fake_colony.is_ticking = True
        engine.stop_evolution()
        assert engine.is_running

        fake_colony.is_ticking = False
        fake_colony._deferred.pop(0)()
        assert not engine.is_running


class TestEvaluation:
    """Tests for the per-tick evaluation loop"""

    def test_fitness_recorded_after_window(self, engine, fake_colony, evo_config):
        """Test fitness is recorded exactly when the window closes"""
        engine.start_evolution()
        first = engine.population[0]

        fake_colony.run(engine, evo_config.steps_per_evaluation - 1)
        assert engine.eval_index == 0
        assert engine.fitnesses[0] == 0

        fake_colony.run(engine, 1)
        assert engine.fitnesses[0] == int(round(first.move_probability * 1000))
        assert engine.eval_index == 1
        assert fake_colony.spawned[-1] == engine.population[1]

    def test_each_candidate_evaluated(self, engine, fake_colony, fake_world, evo_config):
        """Test every candidate gets its own colony and world restore"""
        engine.start_evolution()
        population = list(engine.population)
        fake_colony.run(engine, ticks_per_generation(evo_config) - 1)

        assert fake_colony.spawned == population
        assert fake_world.restores == evo_config.population_size

    def test_generation_rollover(self, engine, fake_colony, evo_config):
        """Test the last window triggers selection and restarts at candidate 0"""
        engine.start_evolution()
        fake_colony.run(engine, ticks_per_generation(evo_config))

        assert engine.generation == 1
        assert len(engine.history) == 1
        assert engine.eval_index == 0
        assert engine.state == EvolutionState.EVALUATING
        assert len(engine.population) == evo_config.population_size
        assert fake_colony.spawned[-1] == engine.population[0]
        assert np.all(engine.fitnesses == 0)


class TestSelection:
    """Tests for evolve_population"""

    def test_elites_survive_unchanged(self, engine, evo_config):
        """Test the top genomes are copied by value into the next generation"""
        engine.initialize_population()
        engine.state = EvolutionState.EVALUATING
        old = list(engine.population)
        engine.fitnesses = np.array([3, 9, 1, 7])

        engine.evolve_population()

        assert engine.population[0] == old[1]
        assert engine.population[1] == old[3]
        assert len(engine.population) == evo_config.population_size

    def test_ties_keep_population_order(self, engine):
        """Test equal fitness selects the earliest candidates"""
        engine.initialize_population()
        old = list(engine.population)
        engine.evolve_population()
        assert engine.population[:2] == old[:2]

    def test_generation_record(self, engine):
        """Test the history entry describes the finished generation"""
        engine.initialize_population()
        old = list(engine.population)
        engine.fitnesses = np.array([2, 4, 6, 0])

        engine.evolve_population()

        record = engine.history[0]
        assert isinstance(record, GenerationRecord)
        assert record.generation == 0
        assert record.best_fitness == 6
        assert record.mean_fitness == pytest.approx(3.0)
        assert record.best_genome == old[2]
        assert record.fitnesses == [2, 4, 6, 0]
        assert engine.best_genome == old[2]
        assert engine.best_fitness == 6
        assert record.to_dict()["best_genome"] == old[2].to_dict()

    def test_children_mutated_from_elites(self, rng, fake_colony, fake_world):
        """Test non-elite slots are close to some elite"""
        config = EvolutionConfig(population_size=6, n_elites=2, steps_per_evaluation=1)
        engine = EvolutionEngine(config, fake_colony, fake_world, rng=rng)
        engine.initialize_population()
        engine.fitnesses = np.array([5, 4, 0, 0, 0, 0])
        elites = engine.population[:2]

        engine.evolve_population()

        for child in engine.population[2:]:
            assert any(
                abs(child.move_probability - elite.move_probability) <= config.move_mutation
                for elite in elites
            )

    def test_best_fitness_never_decreases(self, rng, fake_colony, fake_world):
        """Test elitism keeps the best fitness monotone across generations"""
        config = EvolutionConfig(population_size=5, n_elites=1, steps_per_evaluation=2)
        engine = EvolutionEngine(config, fake_colony, fake_world, rng=rng)
        engine.start_evolution()

        fake_colony.run(engine, 6 * ticks_per_generation(config))

        best = [record.best_fitness for record in engine.history]
        assert len(best) == 6
        assert all(later >= earlier for earlier, later in zip(best, best[1:]))


class TestGuards:
    """Tests for self-healing index guards"""

    def test_fitness_size_mismatch(self, engine, fake_colony, evo_config, caplog):
        """Test a mismatched fitness array is reset with a warning"""
        engine.start_evolution()
        engine.fitnesses = np.zeros(2, dtype=int)

        with caplog.at_level(logging.WARNING, logger="Evolution"):
            fake_colony.run(engine, 1)

        assert engine.fitnesses.shape == (evo_config.population_size,)
        assert any("Fitness array size" in r.message for r in caplog.records)

    def test_eval_index_out_of_range(self, engine, fake_colony, evo_config, caplog):
        """Test an out-of-range evaluation index restarts at 0"""
        engine.start_evolution()
        engine.eval_index = 99

        with caplog.at_level(logging.WARNING, logger="Evolution"):
            fake_colony.run(engine, evo_config.steps_per_evaluation)

        assert engine.eval_index == 1
        assert any("out of range" in r.message for r in caplog.records)

    def test_empty_population_stops(self, engine, fake_colony):
        """Test an empty population stops evolution"""
        engine.start_evolution()
        engine.population = []
        fake_colony.run(engine, 1)
        assert engine.state == EvolutionState.IDLE

    def test_start_evaluation_out_of_range(self, engine, fake_colony):
        """Test an invalid candidate index spawns nothing"""
        engine.initialize_population()
        assert not engine.start_evaluation(10)
        assert fake_colony.spawned == []


class TestSummary:
    """Tests for get_summary"""

    def test_summary(self, engine):
        """Test the summary dictionary"""
        engine.start_evolution()
        summary = engine.get_summary()
        assert summary["state"] == "evaluating"
        assert summary["generation"] == 0
        assert summary["best_genome"] == default_genome().to_dict()


class TestZeroMutation:
    """Tests for selection with mutation switched off"""

    def test_zero_deltas_monotone(self, rng, fake_colony, fake_world):
        """Test best fitness is non-decreasing when children copy elites exactly"""
        config = EvolutionConfig(
            population_size=4, n_elites=2, steps_per_evaluation=1,
            move_mutation=0.0, dig_mutation=0.0, eat_mutation=0.0,
            build_mutation=0.0, queen_build_mutation=0.0, cooldown_mutation=0,
        )
        engine = EvolutionEngine(config, fake_colony, fake_world, rng=rng)
        engine.start_evolution()
        first = list(engine.population)

        fake_colony.run(engine, 4 * ticks_per_generation(config))

        best = [record.best_fitness for record in engine.history]
        assert all(later >= earlier for earlier, later in zip(best, best[1:]))
        # Only copies of the original elites remain
        top = sorted(first, key=lambda g: g.move_probability, reverse=True)[:2]
        for genome in engine.population:
            assert any(genome.move_probability == pytest.approx(g.move_probability) for g in top)
