"""
Trade outcome samplers.
Either bootstraps the trader's own P&L history or draws from a
Bernoulli win/loss model when a what-if override is configured.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

import numpy as np

from montecarlo.models import InvalidConfigurationError, OverrideBlock, SimulationConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PnlSummary:
    """Win/loss profile of a P&L sample."""
    count: int
    win_rate: float        # percent
    avg_win: float
    avg_loss: float        # positive magnitude
    mean: float

    @property
    def reward_risk(self) -> float:
        return self.avg_win / self.avg_loss if self.avg_loss > 0 else 0.0


def summarize_pnl(pnls: np.ndarray) -> PnlSummary:
    """Compute win rate, average win/loss and mean of a P&L array."""
    pnls = np.asarray(pnls, dtype=float)
    n = len(pnls)
    if n == 0:
        return PnlSummary(count=0, win_rate=0.0, avg_win=0.0, avg_loss=0.0, mean=0.0)

    wins = pnls[pnls > 0]
    losses = pnls[pnls < 0]
    return PnlSummary(
        count=n,
        win_rate=float(len(wins) / n * 100),
        avg_win=float(wins.mean()) if len(wins) > 0 else 0.0,
        avg_loss=float(np.abs(losses).mean()) if len(losses) > 0 else 0.0,
        mean=float(pnls.mean()),
    )


class TradeSampler(ABC):
    """Base class: produces signed dollar outcomes for simulated trades."""

    #: Dollar size of "one average loss", the unit risked when compounding.
    #: Zero means there is no loss to scale by and paths stay in flat dollars.
    risk_unit: float = 0.0

    @abstractmethod
    def draw(self, rng: np.random.Generator, size) -> np.ndarray:
        ...

    def draw_one(self, rng: np.random.Generator, current_equity: float = 0.0) -> float:
        """Single trade outcome in dollars. Equity does not change the draw."""
        return float(self.draw(rng, 1)[0])

    def to_returns(self, deltas: np.ndarray, risk_per_trade: float) -> np.ndarray:
        """Reinterpret dollar outcomes as returns on current equity.

        A loss costs ``risk_per_trade``; a win earns ``risk_per_trade`` scaled by
        its size in units of the average loss. Requires a positive ``risk_unit``.
        """
        wins = risk_per_trade * np.abs(deltas) / self.risk_unit
        return np.where(deltas < 0, -risk_per_trade, np.where(deltas > 0, wins, 0.0))

    @abstractmethod
    def kelly_inputs(self) -> tuple[float, float]:
        """(win rate percent, reward:risk ratio) used for Kelly sizing."""


class BootstrapSampler(TradeSampler):
    """Uniform draws with replacement from historical P&L."""

    def __init__(self, pnls: np.ndarray):
        self.pnls = np.asarray(pnls, dtype=float)
        self.summary = summarize_pnl(self.pnls)
        self.risk_unit = self.summary.avg_loss

    def draw(self, rng: np.random.Generator, size) -> np.ndarray:
        return rng.choice(self.pnls, size=size, replace=True)

    def kelly_inputs(self) -> tuple[float, float]:
        return self.summary.win_rate, self.summary.reward_risk


class BernoulliSampler(TradeSampler):
    """Fixed win/loss amounts with a configured win probability."""

    def __init__(self, override: OverrideBlock):
        self.win_rate = override.win_rate
        self.win_probability = override.win_rate / 100
        self.avg_win = override.effective_avg_win
        self.avg_loss = override.avg_loss
        self.reward_risk_ratio = override.reward_risk_ratio
        self.risk_unit = self.avg_loss

    def draw(self, rng: np.random.Generator, size) -> np.ndarray:
        wins = rng.random(size) < self.win_probability
        return np.where(wins, self.avg_win, -self.avg_loss)

    def kelly_inputs(self) -> tuple[float, float]:
        if self.avg_loss <= 0:
            return self.win_rate, 0.0
        if self.reward_risk_ratio is not None:
            return self.win_rate, self.reward_risk_ratio
        return self.win_rate, self.avg_win / self.avg_loss


def build_sampler(historical_pnl: np.ndarray, config: SimulationConfig) -> TradeSampler:
    """Pick the outcome model for a run.

    The override block, when present, always wins over the history.
    """
    if config.override is not None:
        logger.debug(
            f"Using Bernoulli model: {config.override.win_rate}% WR, "
            f"win {config.override.effective_avg_win}, loss {config.override.avg_loss}"
        )
        return BernoulliSampler(config.override)

    pnls = np.asarray(historical_pnl, dtype=float)
    if pnls.size == 0:
        raise InvalidConfigurationError("Historical P&L is empty and no override block was given")
    if not np.all(np.isfinite(pnls)):
        raise InvalidConfigurationError("Historical P&L contains NaN or infinite values")

    logger.debug(f"Bootstrapping from {len(pnls)} historical trades")
    return BootstrapSampler(pnls)
