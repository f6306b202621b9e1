"""
Pytest configuration and shared fixtures for Antymology tests.
"""

import pytest
import numpy as np
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


@pytest.fixture
def rng():
    """Seeded random number generator for reproducible tests"""
    return np.random.default_rng(42)


@pytest.fixture
def small_config():
    """Small simulation configuration"""
    from antymology.config import create_small_test_config
    return create_small_test_config()


@pytest.fixture
def quiet_config(small_config):
    """Small configuration without passive health decay"""
    small_config.ant.health_decay_rate = 0.0
    return small_config


@pytest.fixture
def flat_world():
    """16x16x16 flat world; grass surface at y=4, ants stand at y=5"""
    from antymology.world import BlockWorld
    return BlockWorld.flat(16, 16, 16, ground_height=4)


@pytest.fixture
def colony(quiet_config, flat_world, rng):
    """Colony on the flat world with no evolution attached"""
    from antymology.colony import ColonyManager
    return ColonyManager(quiet_config, flat_world, rng=rng)


@pytest.fixture
def ctx(colony):
    """Simulation context bound to the colony fixture"""
    return colony.context


@pytest.fixture
def make_genome():
    """Factory for genomes with every action disabled unless overridden"""
    from antymology.genome import BehaviorGenome

    def _make(**overrides):
        values = dict(
            move_probability=0.0,
            dig_probability=0.0,
            eat_probability=0.0,
            build_probability=0.0,
            queen_build_probability=0.0,
        )
        values.update(overrides)
        return BehaviorGenome(**values)

    return _make
