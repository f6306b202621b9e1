"""
Antymology Colony Manager
==========================
Owns the ant population and drives the fixed-timestep simulation.

Responsibilities:
- Converting elapsed real time into whole simulation ticks (accumulator)
- Updating every live ant once per tick over a snapshot of the population
- Handing each finished tick to the evolution engine
- Colony lifecycle: spawn, clear, spawn-with-genome, nest counting
"""

import logging
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

import numpy as np

from .agent import Ant, AntSnapshot, SimulationContext
from .config import AntKind, BlockKind, SimulationConfig
from .genome import BehaviorGenome, default_genome
from .occupancy import OccupancyIndex, Position
from .world import WorldQuery

if TYPE_CHECKING:
    from .evolution import EvolutionEngine

logger = logging.getLogger("Colony")


class ColonyManager:
    """
    Colony population, occupancy index and tick scheduler.

    All simulation state is mutated inside simulation_update(), which runs
    strictly sequentially: one tick (all ants, then the evolution hook)
    completes before the next starts.
    """

    def __init__(self, config: SimulationConfig, world: WorldQuery,
                 rng: Optional[np.random.Generator] = None,
                 evolution: Optional["EvolutionEngine"] = None):
        self.config = config
        self.world = world
        self.rng = rng if rng is not None else np.random.default_rng(config.seed)
        self.occupancy = OccupancyIndex()
        self.context = SimulationContext(
            config=config,
            world=world,
            occupancy=self.occupancy,
            rng=self.rng,
            colony=self,
        )
        self.evolution = evolution

        # Population (exclusively owned here)
        self.ants: List[Ant] = []
        self._queen: Optional[Ant] = None
        self._next_ant_id = 0

        # Colony metrics
        self.total_nests_produced = 0
        self.current_generation = 0
        self.tick_count = 0

        # Scheduler state
        self.timestep_accumulator = 0.0
        self.fast_mode = config.scheduler.fast_mode
        self.is_ticking = False
        self._deferred: List[Callable[[], None]] = []

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def alive_ant_count(self) -> int:
        return len(self.ants)

    @property
    def queen(self) -> Optional[Ant]:
        return self._queen

    def attach_evolution(self, engine: "EvolutionEngine"):
        self.evolution = engine

    def set_fast_mode(self, enabled: bool):
        self.fast_mode = enabled
        logger.info(f"Fast mode {'ON' if enabled else 'OFF'}")

    # ------------------------------------------------------------------
    # Scheduler
    # ------------------------------------------------------------------

    def update(self, delta_time: float) -> int:
        """
        Feed elapsed real time into the accumulator and run whole ticks.

        In fast mode elapsed time is scaled by time_scale_multiplier. At most
        max_ticks_per_update ticks run per call; any excess stays in the
        accumulator for the next call.

        Returns:
            Number of ticks executed
        """
        sched = self.config.scheduler
        scale = sched.time_scale_multiplier if self.fast_mode else 1.0
        self.timestep_accumulator += delta_time * scale

        ticks = 0
        while (self.timestep_accumulator >= sched.timestep_duration
               and ticks < sched.max_ticks_per_update):
            self.timestep_accumulator -= sched.timestep_duration
            self.simulation_update()
            ticks += 1

        if ticks == sched.max_ticks_per_update and self.timestep_accumulator >= sched.timestep_duration:
            logger.debug(
                f"Tick cap reached ({ticks}); carrying "
                f"{self.timestep_accumulator / sched.timestep_duration:.1f} ticks over"
            )
        return ticks

    def simulation_update(self):
        """Run exactly one simulation tick"""
        self.is_ticking = True
        try:
            # Snapshot: ants dying mid-pass are skipped once dead,
            # ants spawned mid-pass wait for the next tick
            for ant in list(self.ants):
                if ant.alive:
                    ant.simulation_update(self.context)

            self.tick_count += 1

            if self.evolution is not None:
                self.evolution.tick()
        finally:
            self.is_ticking = False

        self._run_deferred()

    def call_between_ticks(self, action: Callable[[], None]):
        """Run `action` now, or right after the current tick if one is running"""
        if self.is_ticking:
            self._deferred.append(action)
        else:
            action()

    def _run_deferred(self):
        while self._deferred:
            self._deferred.pop(0)()

    # ------------------------------------------------------------------
    # Ant management
    # ------------------------------------------------------------------

    def register_ant(self, ant: Ant):
        if ant in self.ants:
            return
        self.ants.append(ant)
        self.occupancy.add(ant, ant.position)
        if ant.is_queen:
            self._queen = ant

    def unregister_ant(self, ant: Ant):
        """Remove an ant from the population and the occupancy index"""
        if ant in self.ants:
            self.ants.remove(ant)
        self.occupancy.remove(ant, ant.position)
        if self._queen is ant:
            self._queen = None

    def get_ants_at_position(self, position: Position) -> List[Ant]:
        return list(self.occupancy.query(position))

    def get_all_ants(self) -> List[AntSnapshot]:
        return [ant.snapshot() for ant in self.ants]

    def on_nest_produced(self):
        self.total_nests_produced += 1

    def reset_nest_count(self):
        self.total_nests_produced = 0

    def advance_generation(self):
        self.current_generation += 1

    def clear_all_ants(self):
        """Destroy every ant and reset the occupancy index"""
        for ant in self.ants:
            ant.alive = False
        self.ants.clear()
        self.occupancy.clear()
        self._queen = None

    # ------------------------------------------------------------------
    # Spawning
    # ------------------------------------------------------------------

    def spawn_ant(self, kind: AntKind, position: Position,
                  genome: Optional[BehaviorGenome] = None) -> Ant:
        """Create an ant at full health and register it"""
        if kind is AntKind.QUEEN:
            max_health = self.config.ant.max_queen_health
        else:
            max_health = self.config.ant.max_worker_health

        ant = Ant(
            ant_id=self._next_ant_id,
            kind=kind,
            position=position,
            max_health=max_health,
            genome=genome if genome is not None else default_genome(),
        )
        self._next_ant_id += 1
        self.register_ant(ant)
        return ant

    def spawn_colony_with_genome(self, genome: BehaviorGenome) -> List[Ant]:
        """Spawn the configured workers and one queen, all sharing `genome`"""
        self.total_nests_produced = 0
        center = self.find_safe_spawn_location()

        spawned = []
        for _ in range(self.config.ant.worker_ant_count):
            position = self.find_nearby_spawn_position(center, self.config.ant.spawn_radius)
            spawned.append(self.spawn_ant(AntKind.WORKER, position, genome))

        queen_position = self.find_nearby_spawn_position(center, self.config.ant.queen_spawn_radius)
        spawned.append(self.spawn_ant(AntKind.QUEEN, queen_position, genome))

        logger.debug(f"Spawned colony of {len(spawned)} around {center}")
        return spawned

    def spawn_generation(self):
        """Start evolution if attached, otherwise spawn one non-evolving colony"""
        if self.evolution is not None and self.config.evolution.enabled:
            self.evolution.start_evolution()
            return

        self.clear_all_ants()
        self.spawn_colony_with_genome(default_genome())
        self.advance_generation()

    def find_safe_spawn_location(self) -> Position:
        """
        Pick a spawn center in the middle half of the world footprint.

        A column qualifies if its surface is high enough and neither acidic
        nor container. Falls back to the world center at its real ground level.
        """
        world = self.world
        w, h, d = world.width, world.height, world.depth

        for _ in range(self.config.ant.spawn_attempts):
            x = int(self.rng.integers(w // 4, max(w * 3 // 4, w // 4 + 1)))
            z = int(self.rng.integers(d // 4, max(d * 3 // 4, d // 4 + 1)))

            ground = world.ground_height(x, z)
            ground_block = world.get_block(x, ground, z)
            if not world.is_solid(ground_block):
                continue

            y = ground + 1
            if y < self.config.ant.spawn_y_level or y >= h:
                continue

            if ground_block is not BlockKind.ACIDIC and ground_block is not BlockKind.CONTAINER:
                return (x, y, z)

        # Fallback: world center, on its actual ground
        cx, cz = w // 2, d // 2
        ground = world.ground_height(cx, cz)
        y = ground + 1 if world.is_solid(world.get_block(cx, ground, cz)) else 0
        y = int(np.clip(y, 0, h - 1))
        logger.warning(f"No safe spawn column found; falling back to center ({cx}, {y}, {cz})")
        return (cx, y, cz)

    def find_nearby_spawn_position(self, center: Position, radius: int) -> Position:
        """Random cell within `radius` of center, clamped and settled on solid ground"""
        world = self.world
        cx, cy, cz = center

        x = int(np.clip(cx + int(self.rng.integers(-radius, radius + 1)), 0, world.width - 1))
        z = int(np.clip(cz + int(self.rng.integers(-radius, radius + 1)), 0, world.depth - 1))
        y = int(np.clip(cy, 0, world.height - 1))

        # Climb out of terrain, then settle down onto support
        while y < world.height - 1 and world.is_solid(world.get_block(x, y, z)):
            y += 1
        while y > 0 and not world.is_solid(world.get_block(x, y - 1, z)):
            y -= 1

        return (x, y, z)

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def get_stats(self) -> Dict[str, Any]:
        """Colony metrics polled by presentation layers"""
        healths = [ant.health for ant in self.ants]
        return {
            "tick": self.tick_count,
            "generation": self.current_generation,
            "nests_produced": self.total_nests_produced,
            "alive_ants": self.alive_ant_count,
            "queen_alive": self._queen is not None,
            "queen_health": self._queen.health if self._queen is not None else 0.0,
            "mean_health": float(np.mean(healths)) if healths else 0.0,
            "fast_mode": self.fast_mode,
        }
