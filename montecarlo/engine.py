"""
Monte Carlo engine entry point.
Resamples per-trade P&L into many equity paths and reduces them to
fan-chart percentiles and risk statistics.
"""

import logging
from typing import Optional, Union

import numpy as np
import pandas as pd

from montecarlo.models import SimulationConfig, SimulationResult
from montecarlo.paths import generate_paths, n_chunks, uses_compounding
from montecarlo.percentiles import aggregate_percentiles
from montecarlo.risk import compute_risk_stats
from montecarlo.sampler import build_sampler

logger = logging.getLogger(__name__)

MIN_HISTORY_TRADES = 3

SeedLike = Union[int, np.random.SeedSequence, None]


def run_simulation(
    historical_pnl,
    config: Union[SimulationConfig, dict],
    seed: SeedLike = None,
    rng: Optional[np.random.Generator] = None,
    workers: int = 1,
) -> SimulationResult:
    """
    Run a Monte Carlo projection.

    Args:
        historical_pnl: Realized P&L per trade (list, ndarray or pd.Series).
            Ignored when the config carries an override block.
        config: SimulationConfig or a mapping accepted by SimulationConfig.from_dict
        seed: Entropy for the run. Same seed + same inputs = identical result.
        rng: Caller-owned generator; child streams are spawned from it.
            Takes precedence over ``seed``.
        workers: Threads used to generate paths. Does not affect the output.

    Raises:
        InvalidConfigurationError: before any simulation work is done.
    """
    if not isinstance(config, SimulationConfig):
        config = SimulationConfig.from_dict(config)
    config.validate()

    if isinstance(historical_pnl, pd.Series):
        pnls = historical_pnl.to_numpy(dtype=float)
    else:
        pnls = np.asarray(historical_pnl, dtype=float).ravel()

    sampler = build_sampler(pnls, config)
    if config.override is None and len(pnls) < MIN_HISTORY_TRADES:
        logger.warning(
            f"Only {len(pnls)} historical trades; results are statistically weak"
        )

    generators, used_seed = _spawn_generators(config, seed, rng)

    logger.debug(
        f"Simulating {config.num_simulations} paths x {config.num_trades} trades "
        f"({'compounding' if uses_compounding(sampler, config) else 'flat'}, seed={used_seed})"
    )
    if config.compounding and not uses_compounding(sampler, config):
        logger.warning(
            "No losing trades to size risk against; compounding falls back to flat dollars"
        )
    equity, path_stats = generate_paths(sampler, config, generators, workers=workers)

    percentiles = aggregate_percentiles(equity, config.confidence_level)
    stats = compute_risk_stats(equity, path_stats, sampler, config)

    logger.info(
        f"Monte Carlo complete: median {stats.median_final_equity:.2f}, "
        f"ruin {stats.probability_of_ruin:.1f}%, profit {stats.probability_of_profit:.1f}%"
    )

    return SimulationResult(
        percentiles=percentiles,
        stats=stats,
        num_simulations=config.num_simulations,
        num_trades=config.num_trades,
        starting_equity=config.starting_equity,
        seed=used_seed,
    )


def _spawn_generators(
    config: SimulationConfig,
    seed: SeedLike,
    rng: Optional[np.random.Generator],
) -> tuple[list[np.random.Generator], Optional[int]]:
    """One independent generator per chunk of simulations."""
    count = n_chunks(config.num_simulations)
    if rng is not None:
        return rng.spawn(count), None

    if isinstance(seed, np.random.SeedSequence):
        # Fresh copy so the caller's sequence is not advanced by spawn()
        seq = np.random.SeedSequence(seed.entropy, spawn_key=seed.spawn_key)
    else:
        seq = np.random.SeedSequence(seed)
    return [np.random.default_rng(child) for child in seq.spawn(count)], seq.entropy
