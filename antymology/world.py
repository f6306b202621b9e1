"""
Antymology Block World
=======================
The discrete 3D block grid that ants live in.

The colony core only talks to the world through the WorldQuery contract:
- Block lookup/mutation by integer (x, y, z) coordinate, y vertical
- Out-of-range lookups return None instead of raising
- A solidity predicate (everything except air is solid)
- Restoring the initial terrain snapshot between evaluations

BlockWorld is the in-memory numpy implementation used by the runners and tests.
"""

import logging
from typing import Optional, Protocol, Tuple

import numpy as np
from scipy.ndimage import zoom

from .config import BlockKind, WorldConfig

logger = logging.getLogger("World")

# Index by uint8 value -> BlockKind
_KINDS = {kind.value: kind for kind in BlockKind}


class WorldQuery(Protocol):
    """
    Interface the simulation core consumes.

    Implementations must never raise on out-of-range coordinates:
    get_block returns None and set_block returns False.
    """
    width: int
    height: int
    depth: int

    def get_block(self, x: int, y: int, z: int) -> Optional[BlockKind]:
        ...

    def set_block(self, x: int, y: int, z: int, kind: BlockKind) -> bool:
        ...

    def is_solid(self, kind: Optional[BlockKind]) -> bool:
        ...

    def in_bounds(self, x: int, y: int, z: int) -> bool:
        ...

    def ground_height(self, x: int, z: int) -> int:
        ...

    def restore_initial_world(self) -> None:
        ...


class BlockWorld:
    """
    Block grid backed by a uint8 array of shape (width, height, depth).

    The array is indexed [x, y, z]. A copy of the grid taken at construction
    (or by capture_initial_world) is what restore_initial_world returns to.
    """

    def __init__(self, blocks: np.ndarray):
        self.blocks = np.array(blocks, dtype=np.uint8)
        if self.blocks.ndim != 3:
            raise ValueError(f"Block grid must be 3D, got shape {self.blocks.shape}")
        self.width, self.height, self.depth = self.blocks.shape
        self._initial_blocks = self.blocks.copy()

    @classmethod
    def flat(cls, width: int, height: int, depth: int, ground_height: int,
             surface: BlockKind = BlockKind.GRASS,
             container_floor: bool = True) -> "BlockWorld":
        """
        Build a flat world whose topmost solid block is at y=ground_height.

        Layout per column: CONTAINER at y=0 (optional), STONE up to
        ground_height - 1, `surface` at ground_height, AIR above.
        """
        blocks = np.full((width, height, depth), BlockKind.AIR.value, dtype=np.uint8)
        blocks[:, :ground_height, :] = BlockKind.STONE.value
        blocks[:, ground_height, :] = surface.value
        if container_floor and ground_height > 0:
            blocks[:, 0, :] = BlockKind.CONTAINER.value
        return cls(blocks)

    # ------------------------------------------------------------------
    # WorldQuery
    # ------------------------------------------------------------------

    def in_bounds(self, x: int, y: int, z: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height and 0 <= z < self.depth

    def get_block(self, x: int, y: int, z: int) -> Optional[BlockKind]:
        """Block kind at (x, y, z), or None outside the world"""
        if not self.in_bounds(x, y, z):
            return None
        return _KINDS[int(self.blocks[x, y, z])]

    def set_block(self, x: int, y: int, z: int, kind: BlockKind) -> bool:
        if not self.in_bounds(x, y, z):
            return False
        self.blocks[x, y, z] = kind.value
        return True

    @staticmethod
    def is_solid(kind: Optional[BlockKind]) -> bool:
        return kind is not None and kind is not BlockKind.AIR

    def ground_height(self, x: int, z: int) -> int:
        """Height of the topmost solid block in a column (0 if none or off-grid)"""
        if not (0 <= x < self.width and 0 <= z < self.depth):
            return 0
        solid = np.nonzero(self.blocks[x, :, z] != BlockKind.AIR.value)[0]
        if len(solid) == 0:
            return 0
        return int(solid[-1])

    def restore_initial_world(self) -> None:
        self.blocks[...] = self._initial_blocks

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def capture_initial_world(self) -> None:
        """Make the current grid the snapshot restored between evaluations"""
        self._initial_blocks = self.blocks.copy()

    def count(self, kind: BlockKind) -> int:
        return int(np.sum(self.blocks == kind.value))

    def column_kinds(self, x: int, z: int) -> Tuple[BlockKind, ...]:
        """Block kinds in a column from y=0 upward"""
        return tuple(_KINDS[int(v)] for v in self.blocks[x, :, z])

    @property
    def shape(self) -> Tuple[int, int, int]:
        return (self.width, self.height, self.depth)


# =============================================================================
# TERRAIN GENERATION
# =============================================================================

def _smooth_noise(rng: np.random.Generator, width: int, depth: int, scale: int) -> np.ndarray:
    """Generate smooth noise at given scale"""
    # Random values at coarse grid points
    gx = max(2, width // scale + 1)
    gz = max(2, depth // scale + 1)
    grid = rng.random((gx, gz))

    # Bilinear interpolation up to full size
    smooth = zoom(grid, (width / gx, depth / gz), order=1)

    # Ensure correct size
    smooth = smooth[:width, :depth]
    if smooth.shape[0] < width:
        smooth = np.pad(smooth, ((0, width - smooth.shape[0]), (0, 0)), mode='edge')
    if smooth.shape[1] < depth:
        smooth = np.pad(smooth, ((0, 0), (0, depth - smooth.shape[1])), mode='edge')

    return smooth


def _patch_mask(rng: np.random.Generator, width: int, depth: int,
                fraction: float, exclude: Optional[np.ndarray] = None) -> np.ndarray:
    """Clustered boolean mask covering roughly `fraction` of the columns"""
    if fraction <= 0:
        return np.zeros((width, depth), dtype=bool)
    noise = _smooth_noise(rng, width, depth, 4)
    if exclude is not None:
        noise = np.where(exclude, -1.0, noise)
    threshold = np.quantile(noise, 1.0 - fraction)
    return (noise >= threshold) & (noise >= 0)


def generate_heightmap(config: WorldConfig, rng: np.random.Generator) -> np.ndarray:
    """Integer surface heights of shape (width, depth)"""
    elevation = np.zeros((config.width, config.depth))

    # Multi-octave noise: each finer octave contributes half as much
    amplitude = 1.0
    for scale in sorted(config.noise_scales, reverse=True):
        elevation += amplitude * _smooth_noise(rng, config.width, config.depth, scale)
        amplitude *= 0.5

    # Normalize to [0, 1]
    elevation = (elevation - elevation.min()) / (elevation.max() - elevation.min() + 1e-8)

    heights = config.base_height + np.rint(elevation * config.height_variation)
    return heights.astype(int)


def generate_world(config: WorldConfig, rng: Optional[np.random.Generator] = None) -> BlockWorld:
    """
    Generate a layered terrain world.

    STONE body, GRASS surface, clustered MULCH patches (mulch_depth layers deep)
    and ACIDIC surface patches, with a CONTAINER floor at y=0.
    """
    if rng is None:
        rng = np.random.default_rng()

    heights = generate_heightmap(config, rng)
    ys = np.arange(config.height)[None, :, None]
    h = heights[:, None, :]

    blocks = np.where(ys < h, BlockKind.STONE.value, BlockKind.AIR.value).astype(np.uint8)
    blocks[ys == h] = BlockKind.GRASS.value

    mulch = _patch_mask(rng, config.width, config.depth, config.mulch_fraction)
    acidic = _patch_mask(rng, config.width, config.depth, config.acidic_fraction, exclude=mulch)

    mulch_layers = (ys <= h) & (ys > h - max(1, config.mulch_depth)) & mulch[:, None, :]
    blocks[mulch_layers] = BlockKind.MULCH.value
    blocks[(ys == h) & acidic[:, None, :]] = BlockKind.ACIDIC.value

    if config.container_floor:
        blocks[:, 0, :] = BlockKind.CONTAINER.value

    world = BlockWorld(blocks)
    logger.info(
        f"Generated {config.width}x{config.height}x{config.depth} world: "
        f"surface {heights.min()}..{heights.max()}, "
        f"mulch={world.count(BlockKind.MULCH)}, acidic={world.count(BlockKind.ACIDIC)}"
    )
    return world
