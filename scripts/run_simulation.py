#!/usr/bin/env python3
"""
Run a Monte Carlo projection from a scenario file and print the result as JSON.
Run: python scripts/run_simulation.py scenarios/example.yaml
"""

import json
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from config import EngineSettings, load_simulation_config
from montecarlo.engine import run_simulation

logger = logging.getLogger("montecarlo")


def main(argv: list[str]) -> int:
    if len(argv) != 1:
        print("Usage: python scripts/run_simulation.py <scenario.yaml>", file=sys.stderr)
        return 2

    settings = EngineSettings.from_env()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    config, pnls = load_simulation_config(argv[0])
    logger.info(f"Loaded scenario {argv[0]} ({len(pnls)} historical trades)")

    result = run_simulation(pnls, config, seed=settings.seed, workers=settings.workers)
    print(json.dumps(result.to_dict(), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
