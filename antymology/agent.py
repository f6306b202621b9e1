"""
Antymology Ant Agents
======================
Per-tick behavior state machine for worker and queen ants.

Each simulation tick an ant:
1. Loses health to decay (doubled when standing on acidic ground)
2. Counts its action cooldowns down by one
3. Runs a priority-ordered decision procedure: move > dig > eat > build
4. Queens additionally try to produce a nest block beneath them
5. Dies if its health has reached zero

Failed actions are not errors: every action returns False and the ant
simply does nothing else that tick.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Tuple

import numpy as np

from .config import AntKind, BlockKind, SimulationConfig
from .genome import BehaviorGenome
from .occupancy import OccupancyIndex, Position
from .world import WorldQuery

if TYPE_CHECKING:
    from .colony import ColonyManager

logger = logging.getLogger("Ant")

# Cardinal horizontal directions (dx, dy, dz)
HORIZONTAL_DIRECTIONS: Tuple[Position, ...] = (
    (1, 0, 0),
    (-1, 0, 0),
    (0, 0, 1),
    (0, 0, -1),
)


@dataclass
class SimulationContext:
    """
    Everything a tick needs, passed explicitly to each ant update.

    One context is built per colony at simulation start; the rng is the
    single seedable random source for all decisions.
    """
    config: SimulationConfig
    world: WorldQuery
    occupancy: OccupancyIndex
    rng: np.random.Generator
    colony: Optional["ColonyManager"] = None


@dataclass(frozen=True)
class AntSnapshot:
    """Read-only view of an ant for presentation/inspection"""
    ant_id: int
    kind: AntKind
    position: Position
    health: float
    max_health: float
    alive: bool


class Ant:
    """
    A single simulated ant.

    Workers and queens share this class; `kind` selects the queen's extra
    nest-production step after the shared decision procedure.
    """

    def __init__(self, ant_id: int, kind: AntKind, position: Position,
                 max_health: float, genome: BehaviorGenome):
        self.ant_id = ant_id
        self.kind = kind
        self.position: Position = tuple(int(c) for c in position)
        self.max_health = float(max_health)
        self.health = float(max_health)
        self.alive = True
        self.genome = genome

        # Action cooldowns (ticks remaining)
        self.dig_cooldown = 0
        self.eat_cooldown = 0
        self.build_cooldown = 0

        # Ticks left in the current move; 0 means not moving
        self.move_ticks_remaining = 0

        # Last horizontal move direction (for presentation)
        self.facing: Position = (0, 0, 1)

        self.nests_produced = 0

    def __repr__(self) -> str:
        state = "alive" if self.alive else "dead"
        return (f"Ant(id={self.ant_id}, kind={self.kind.value}, pos={self.position}, "
                f"health={self.health:.1f}/{self.max_health:.0f}, {state})")

    @property
    def is_queen(self) -> bool:
        return self.kind is AntKind.QUEEN

    @property
    def is_moving(self) -> bool:
        return self.move_ticks_remaining > 0

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def simulation_update(self, ctx: SimulationContext):
        """Advance this ant by one simulation tick"""
        if not self.alive:
            return

        self.apply_health_decay(ctx)

        if self.dig_cooldown > 0:
            self.dig_cooldown -= 1
        if self.eat_cooldown > 0:
            self.eat_cooldown -= 1
        if self.build_cooldown > 0:
            self.build_cooldown -= 1
        if self.move_ticks_remaining > 0:
            self.move_ticks_remaining -= 1

        self.make_decision(ctx)
        if self.kind is AntKind.QUEEN:
            self.make_queen_decision(ctx)

        if self.health <= 0:
            self.die(ctx)

    def make_decision(self, ctx: SimulationContext):
        """
        Exclusive priority chain: at most one of move, dig, eat, build fires.

        Random draws are short-circuited exactly like the conditions, so the
        draw sequence (and therefore replay) depends only on the seed.
        """
        rng = ctx.rng
        genome = self.genome

        if not self.is_moving and rng.random() < genome.move_probability:
            direction = HORIZONTAL_DIRECTIONS[int(rng.integers(len(HORIZONTAL_DIRECTIONS)))]
            self.try_move(ctx, direction)
            return

        x, y, z = self.position
        below = ctx.world.get_block(x, y - 1, z)
        diggable = below is not None and below is not BlockKind.CONTAINER and below is not BlockKind.AIR

        if (not self.is_moving and diggable
                and rng.random() < genome.dig_probability
                and self.dig_cooldown <= 0):
            self.try_dig(ctx)
        elif rng.random() < genome.eat_probability and self.eat_cooldown <= 0:
            if self.try_eat(ctx):
                self.eat_cooldown = genome.ticks_between_eats
        elif (not self.is_moving and genome.build_probability > 0
                and rng.random() < genome.build_probability
                and self.build_cooldown <= 0):
            self.try_build_up(ctx)

    def make_queen_decision(self, ctx: SimulationContext):
        """Nest production, only when health is well above the nest cost"""
        nest_cost = self.max_health * ctx.config.ant.nest_production_health_cost
        if (self.health > nest_cost * ctx.config.ant.nest_health_margin
                and ctx.rng.random() < self.genome.queen_build_probability):
            self.try_produce_nest(ctx)

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def try_move(self, ctx: SimulationContext, direction: Position) -> bool:
        """
        Step one block horizontally onto the target column's surface.

        Rejected when the ground heights differ by more than the configured
        maximum, the destination is out of bounds or solid, or the block under
        the destination is not solid.
        """
        if self.is_moving:
            return False

        dx = int(np.clip(direction[0], -1, 1))
        dz = int(np.clip(direction[2], -1, 1))
        if dx == 0 and dz == 0:
            return False

        world = ctx.world
        x, y, z = self.position
        tx, tz = x + dx, z + dz
        if not (0 <= tx < world.width and 0 <= tz < world.depth):
            return False

        current_ground = world.ground_height(x, z)
        target_ground = world.ground_height(tx, tz)
        if abs(target_ground - current_ground) > ctx.config.ant.max_height_difference:
            return False

        target = (tx, target_ground + 1, tz)
        if not world.in_bounds(*target):
            return False
        if world.is_solid(world.get_block(*target)):
            return False
        if not world.is_solid(world.get_block(tx, target_ground, tz)):
            return False

        self._relocate(ctx, target)
        self.facing = (dx, 0, dz)
        self.move_ticks_remaining = ctx.config.ant.movement_lock_ticks
        return True

    def try_dig(self, ctx: SimulationContext) -> bool:
        """Remove the block beneath, unless that would leave no landing below"""
        world = ctx.world
        x, y, z = self.position

        below = world.get_block(x, y - 1, z)
        if below is None or below is BlockKind.CONTAINER or below is BlockKind.AIR:
            return False

        # Need solid ground two blocks down to land on
        if y - 2 < 0:
            return False
        if not world.is_solid(world.get_block(x, y - 2, z)):
            return False

        world.set_block(x, y - 1, z, BlockKind.AIR)
        self.dig_cooldown = self.genome.ticks_between_digs
        self.drop_to_ground(ctx)
        return True

    def try_eat(self, ctx: SimulationContext) -> bool:
        """Consume the mulch beneath. Mulch cannot be shared within a cell."""
        world = ctx.world
        x, y, z = self.position

        if world.get_block(x, y - 1, z) is not BlockKind.MULCH:
            return False
        if ctx.occupancy.count(self.position) > 1:
            return False

        self.add_health(ctx.config.ant.mulch_health_restore)
        world.set_block(x, y - 1, z, BlockKind.AIR)
        self.drop_to_ground(ctx)
        return True

    def try_build_up(self, ctx: SimulationContext) -> bool:
        """
        Place a block in the current cell and climb onto it.

        Costs a fraction of max health; refused if that would kill the ant.
        Block placement and health deduction happen together or not at all.
        """
        world = ctx.world
        x, y, z = self.position

        if y + 1 >= world.height:
            return False
        if world.get_block(x, y, z) is not BlockKind.AIR:
            return False
        if world.get_block(x, y + 1, z) is not BlockKind.AIR:
            return False

        health_cost = self.max_health * ctx.config.ant.container_production_health_cost
        if self.health - health_cost <= 0:
            return False

        world.set_block(x, y, z, BlockKind.GRASS)
        self.remove_health(health_cost, ctx)
        self.build_cooldown = self.genome.ticks_between_builds

        # Standing on the block just placed, no support check needed
        self._relocate(ctx, (x, y + 1, z))
        self.move_ticks_remaining = ctx.config.ant.movement_lock_ticks
        return True

    def try_produce_nest(self, ctx: SimulationContext) -> bool:
        """Turn the block beneath into a nest block (queen only)"""
        if self.kind is not AntKind.QUEEN:
            return False

        world = ctx.world
        x, y, z = self.position

        below = world.get_block(x, y - 1, z)
        if below is None or below is BlockKind.CONTAINER or below is BlockKind.NEST:
            return False

        health_cost = self.max_health * ctx.config.ant.nest_production_health_cost
        if self.health <= health_cost:
            return False

        self.remove_health(health_cost, ctx)
        world.set_block(x, y - 1, z, BlockKind.NEST)
        self.nests_produced += 1

        if ctx.colony is not None:
            ctx.colony.on_nest_produced()
        return True

    def drop_to_ground(self, ctx: SimulationContext):
        """Fall straight down until there is solid ground beneath or y=0"""
        world = ctx.world
        # Bounded by the column height so an empty column still terminates
        for _ in range(world.height):
            x, y, z = self.position
            if y <= 0 or world.is_solid(world.get_block(x, y - 1, z)):
                break
            self._relocate(ctx, (x, y - 1, z))

        self.move_ticks_remaining = 0

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    def apply_health_decay(self, ctx: SimulationContext):
        decay = ctx.config.ant.health_decay_rate * ctx.config.scheduler.timestep_duration

        x, y, z = self.position
        if ctx.world.get_block(x, y - 1, z) is BlockKind.ACIDIC:
            decay *= ctx.config.ant.acidic_decay_multiplier

        self.health = max(self.health - decay, 0.0)

    def add_health(self, amount: float):
        """Add health (capped at max)"""
        self.health = min(self.health + amount, self.max_health)

    def remove_health(self, amount: float, ctx: SimulationContext):
        """Remove health; dies on reaching zero"""
        self.health = max(self.health - amount, 0.0)
        if self.health <= 0:
            self.die(ctx)

    def share_health_with(self, other: "Ant", amount: float, ctx: SimulationContext) -> float:
        """
        Zero-sum transfer of up to `amount` health to another ant.

        Returns:
            The amount actually transferred (0 if either ant is dead)
        """
        if not self.alive or not other.alive:
            return 0.0

        transferred = min(max(amount, 0.0), self.health)
        self.remove_health(transferred, ctx)
        other.add_health(transferred)
        return transferred

    def die(self, ctx: SimulationContext):
        """Alive -> dead transition; happens at most once"""
        if not self.alive:
            return

        self.alive = False
        if ctx.colony is not None:
            ctx.colony.unregister_ant(self)
        else:
            ctx.occupancy.remove(self, self.position)

        logger.debug(f"{self.kind.value} {self.ant_id} died at {self.position}")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _relocate(self, ctx: SimulationContext, new_position: Position):
        """Move in the occupancy index and update position together"""
        ctx.occupancy.move(self, self.position, new_position)
        self.position = new_position

    def snapshot(self) -> AntSnapshot:
        return AntSnapshot(
            ant_id=self.ant_id,
            kind=self.kind,
            position=self.position,
            health=self.health,
            max_health=self.max_health,
            alive=self.alive,
        )
