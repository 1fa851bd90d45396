"""
Risk statistics over completed equity paths.
Computes ruin probability, drawdown and losing-streak medians,
confidence bounds on final equity and Kelly sizing.
"""

import numpy as np

from montecarlo.models import PathStats, RiskStats, SimulationConfig
from montecarlo.percentiles import percentile
from montecarlo.sampler import TradeSampler


def max_drawdown_pct(equity: np.ndarray) -> np.ndarray:
    """
    Largest peak-to-trough decline of each path, in percent.

    Args:
        equity: 2-D array, one path per row (a single 1-D path also works)
    """
    equity = np.atleast_2d(equity)
    running_max = np.maximum.accumulate(equity, axis=1)
    drawdown = running_max - equity
    drawdown_pct = np.divide(
        drawdown, running_max,
        out=np.zeros_like(drawdown), where=running_max > 0,
    )
    return drawdown_pct.max(axis=1) * 100


def longest_losing_streak(deltas: np.ndarray) -> np.ndarray:
    """Longest run of strictly negative drawn outcomes per path."""
    losing = np.atleast_2d(deltas) < 0
    if losing.shape[1] == 0:
        return np.zeros(losing.shape[0], dtype=int)

    # Streak length = losses so far minus losses counted at the last non-loss
    count = np.cumsum(losing, axis=1)
    reset = np.maximum.accumulate(np.where(losing, 0, count), axis=1)
    return (count - reset).max(axis=1)


def kelly_percent(win_rate: float, reward_risk: float) -> float:
    """
    Kelly fraction in percent: W - (1 - W) / R.

    Negative results are returned as-is. An undefined ratio (no losses or
    no wins to measure) reports 0.
    """
    if reward_risk <= 0 or not np.isfinite(reward_risk):
        return 0.0
    w = win_rate / 100
    return (w - (1 - w) / reward_risk) * 100


def compute_risk_stats(
    equity: np.ndarray,
    path_stats: PathStats,
    sampler: TradeSampler,
    config: SimulationConfig,
) -> RiskStats:
    """Reduce final equity and the per-path reductions to scalar risk statistics."""
    finals = equity[:, -1]
    n = len(finals)

    ruined = path_stats.path_min <= config.ruin_level
    kelly = kelly_percent(*sampler.kelly_inputs())

    return RiskStats(
        median_final_equity=percentile(finals, 50),
        worst_case=percentile(finals, config.tail_percent),
        best_case=percentile(finals, 100 - config.tail_percent),
        probability_of_profit=float((finals > config.starting_equity).sum() / n * 100),
        probability_of_ruin=float(ruined.sum() / n * 100),
        median_max_drawdown=float(np.median(path_stats.max_drawdown)),
        kelly_percent=float(kelly),
        half_kelly_percent=float(kelly / 2),
        expected_value=float(path_stats.expected_value),
        max_consecutive_losses=float(np.median(path_stats.losing_streak)),
        confidence_level=config.confidence_level,
        ruin_threshold=config.ruin_threshold,
    )
