"""
Equity path generation.
Folds sampled trade outcomes into one equity trajectory per simulation,
either as flat dollar increments or compounding on current equity.
"""

import logging
from concurrent.futures import ThreadPoolExecutor

import numpy as np

from montecarlo.models import PathStats, SimulationConfig
from montecarlo.risk import longest_losing_streak, max_drawdown_pct
from montecarlo.sampler import TradeSampler

logger = logging.getLogger(__name__)

# Rows per independently seeded chunk. Chunking never depends on the
# worker count, so results are identical for any degree of parallelism.
CHUNK_SIZE = 1000


def n_chunks(num_simulations: int) -> int:
    return -(-num_simulations // CHUNK_SIZE)


def uses_compounding(sampler: TradeSampler, config: SimulationConfig) -> bool:
    """Compounding needs a risk per trade and a loss size to scale wins by."""
    return config.compounding and sampler.risk_unit > 0


def simulate_chunk(
    sampler: TradeSampler,
    config: SimulationConfig,
    rng: np.random.Generator,
    out: np.ndarray,
) -> tuple[np.ndarray, np.ndarray, np.ndarray, float]:
    """
    Fill ``out`` (rows x num_trades + 1) with simulated equity paths.

    Returns per-row max drawdown %, longest losing streak and path minimum,
    plus the sum of the dollar outcomes drawn, for the expected value.
    """
    n_rows = out.shape[0]
    deltas = sampler.draw(rng, (n_rows, config.num_trades))

    out[:, 0] = config.starting_equity
    if uses_compounding(sampler, config):
        factors = 1.0 + sampler.to_returns(deltas, config.risk_per_trade)
        # A wiped-out account stays at zero
        np.maximum(factors, 0.0, out=factors)
        np.cumprod(factors, axis=1, out=out[:, 1:])
        out[:, 1:] *= config.starting_equity
    else:
        np.cumsum(deltas, axis=1, out=out[:, 1:])
        out[:, 1:] += config.starting_equity

    return (
        max_drawdown_pct(out),
        longest_losing_streak(deltas),
        out.min(axis=1),
        float(deltas.sum()),
    )


def generate_paths(
    sampler: TradeSampler,
    config: SimulationConfig,
    generators: list[np.random.Generator],
    workers: int = 1,
) -> tuple[np.ndarray, PathStats]:
    """
    Run all simulations.

    Args:
        sampler: Outcome model from ``build_sampler``
        config: Validated simulation config
        generators: One generator per chunk, see ``n_chunks``
        workers: Thread count for the chunk fan-out

    Returns:
        (equity matrix of shape num_simulations x num_trades + 1,
         per-path drawdown / streak / minimum and the mean dollar outcome)
    """
    if len(generators) != n_chunks(config.num_simulations):
        raise ValueError(
            f"Expected {n_chunks(config.num_simulations)} generators, got {len(generators)}"
        )

    equity = np.empty((config.num_simulations, config.num_trades + 1), dtype=float)
    slices = [
        equity[i * CHUNK_SIZE:(i + 1) * CHUNK_SIZE]
        for i in range(len(generators))
    ]

    if workers > 1 and len(slices) > 1:
        logger.debug(f"Generating {len(slices)} chunks on {workers} threads")
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [
                executor.submit(simulate_chunk, sampler, config, rng, out)
                for rng, out in zip(generators, slices)
            ]
            # Collect in submission order so the float sum is reproducible
            chunks = [future.result() for future in futures]
    else:
        chunks = [
            simulate_chunk(sampler, config, rng, out)
            for rng, out in zip(generators, slices)
        ]

    drawdowns, streaks, minimums, totals = zip(*chunks)
    n_draws = config.num_simulations * config.num_trades
    stats = PathStats(
        max_drawdown=np.concatenate(drawdowns),
        losing_streak=np.concatenate(streaks),
        path_min=np.concatenate(minimums),
        expected_value=sum(totals) / n_draws,
    )
    return equity, stats
