"""
Pytest fixtures for the Monte Carlo engine test suite.
"""

import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from montecarlo.models import SimulationConfig


@pytest.fixture
def sample_pnls():
    """Twenty closed trades with a positive edge (mean 13.75)."""
    return [
        120.0, -80.0, 60.0, -40.0, 200.0, -150.0, 90.0, -60.0, 30.0, -20.0,
        110.0, -90.0, 75.0, -55.0, 180.0, -130.0, 45.0, -35.0, 95.0, -70.0,
    ]


@pytest.fixture
def base_config():
    """Small flat-mode config that runs fast."""
    return SimulationConfig(
        num_simulations=300,
        num_trades=40,
        starting_equity=10000.0,
        ruin_threshold=0.5,
        confidence_level=95,
    )


@pytest.fixture
def scenario_file(tmp_path):
    """Scenario YAML using the camelCase keys of the simulations page."""
    path = tmp_path / "scenario.yaml"
    path.write_text(
        "simulation:\n"
        "  numSimulations: 200\n"
        "  numTrades: 25\n"
        "  startingEquity: 5000\n"
        "  ruinThreshold: 0.7\n"
        "  confidenceLevel: 90\n"
        "  riskPerTrade: 0.02\n"
        "historical_pnl: [50, -25, 80, -40]\n",
        encoding="utf-8",
    )
    return path
