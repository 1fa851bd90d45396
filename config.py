"""
Central configuration loader.
Reads .env for engine settings and platform_config.yaml for simulation
defaults. Scenario files carry a simulation block plus optional trade P&L.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv

from montecarlo.models import InvalidConfigurationError, SimulationConfig

# Project root
ROOT_DIR = Path(__file__).parent
PLATFORM_CONFIG_PATH = ROOT_DIR / "platform_config.yaml"

DEFAULT_SIMULATION = {
    "num_simulations": 500,
    "num_trades": 100,
    "starting_equity": 10000.0,
    "ruin_threshold": 0.5,
    "confidence_level": 95,
}


@dataclass
class EngineSettings:
    """Runtime knobs from .env / environment."""

    workers: int = 1
    seed: Optional[int] = None
    log_level: str = "info"

    @classmethod
    def from_env(cls, env_file: Optional[Path] = None) -> "EngineSettings":
        load_dotenv(env_file or ROOT_DIR / ".env")
        seed = os.getenv("MC_SEED", "")
        return cls(
            workers=max(1, int(os.getenv("MC_WORKERS", "1"))),
            seed=int(seed) if seed else None,
            log_level=os.getenv("MC_LOG_LEVEL", "info"),
        )


def load_platform_config(path: Optional[Path] = None) -> dict:
    """Load platform_config.yaml. Returns empty dict if missing."""
    path = Path(path or PLATFORM_CONFIG_PATH)
    if not path.exists():
        return {}
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def get_simulation_defaults(path: Optional[Path] = None) -> dict:
    """Simulation defaults from platform config, falling back to built-ins."""
    platform = load_platform_config(path)
    return {**DEFAULT_SIMULATION, **(platform.get("simulation") or {})}


def load_simulation_config(path: str | Path) -> tuple[SimulationConfig, list[float]]:
    """
    Load a scenario file.

    Expected layout:
        simulation: {num_simulations: ..., override: {...}, ...}
        historical_pnl: [120.0, -80.0, ...]

    Missing simulation keys fall back to ``get_simulation_defaults()``.
    """
    path = Path(path)
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise InvalidConfigurationError(f"Scenario file must be a mapping: {path}")

    sim_data = data.get("simulation") or {}
    if not isinstance(sim_data, dict):
        raise InvalidConfigurationError("'simulation' must be a mapping")

    config = SimulationConfig.from_dict({**get_simulation_defaults(), **sim_data})
    pnls = [float(p) for p in data.get("historical_pnl") or []]
    return config, pnls
