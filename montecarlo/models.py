"""
Monte Carlo data structures.
Configuration in, fan-chart percentiles and risk statistics out.
"""

import math
from dataclasses import dataclass, fields
from typing import Optional

import numpy as np
import pandas as pd

CONFIDENCE_LEVELS = (90, 95, 99)


class InvalidConfigurationError(ValueError):
    """Raised before any simulation work when the inputs make no sense."""


@dataclass(frozen=True)
class OverrideBlock:
    """What-if win/loss model used instead of the trade history."""
    win_rate: float                          # percent, 0-100
    avg_loss: float                          # dollars, positive magnitude
    avg_win: Optional[float] = None          # dollars
    reward_risk_ratio: Optional[float] = None

    @property
    def effective_avg_win(self) -> float:
        if self.reward_risk_ratio is not None:
            return self.avg_loss * self.reward_risk_ratio
        return float(self.avg_win or 0.0)

    def validate(self) -> None:
        if not 0 <= self.win_rate <= 100:
            raise InvalidConfigurationError(
                f"win_rate override must be a percent in [0, 100], got {self.win_rate}"
            )
        if not math.isfinite(self.avg_loss) or self.avg_loss < 0:
            raise InvalidConfigurationError(f"avg_loss override must be >= 0, got {self.avg_loss}")
        if self.avg_win is None and self.reward_risk_ratio is None:
            raise InvalidConfigurationError("Override needs either avg_win or reward_risk_ratio")
        if self.avg_win is not None and (not math.isfinite(self.avg_win) or self.avg_win < 0):
            raise InvalidConfigurationError(f"avg_win override must be >= 0, got {self.avg_win}")
        if self.reward_risk_ratio is not None and (
            not math.isfinite(self.reward_risk_ratio) or self.reward_risk_ratio <= 0
        ):
            raise InvalidConfigurationError(
                f"reward_risk_ratio must be > 0, got {self.reward_risk_ratio}"
            )


# camelCase keys as sent by the simulations page
_CAMEL_KEYS = {
    "numSimulations": "num_simulations",
    "numTrades": "num_trades",
    "startingEquity": "starting_equity",
    "ruinThreshold": "ruin_threshold",
    "confidenceLevel": "confidence_level",
    "riskPerTrade": "risk_per_trade",
    "winRateOverride": "win_rate",
    "avgWinOverride": "avg_win",
    "avgLossOverride": "avg_loss",
    "rewardRiskRatio": "reward_risk_ratio",
}
_OVERRIDE_KEYS = ("win_rate", "avg_win", "avg_loss", "reward_risk_ratio")


@dataclass(frozen=True)
class SimulationConfig:
    """Immutable simulation parameters."""
    num_simulations: int = 500
    num_trades: int = 100
    starting_equity: float = 10_000.0
    ruin_threshold: float = 0.5              # ruin = equity <= start * threshold
    confidence_level: int = 95
    risk_per_trade: Optional[float] = None   # fraction of equity, enables compounding
    override: Optional[OverrideBlock] = None

    @property
    def compounding(self) -> bool:
        return self.risk_per_trade is not None

    @property
    def ruin_level(self) -> float:
        return self.starting_equity * self.ruin_threshold

    @property
    def tail_percent(self) -> float:
        """Percentile used for the worst case, e.g. 2.5 at 95% confidence."""
        return (100 - self.confidence_level) / 2

    def validate(self) -> None:
        if int(self.num_simulations) != self.num_simulations or self.num_simulations <= 0:
            raise InvalidConfigurationError(
                f"num_simulations must be a positive integer, got {self.num_simulations}"
            )
        if int(self.num_trades) != self.num_trades or self.num_trades <= 0:
            raise InvalidConfigurationError(
                f"num_trades must be a positive integer, got {self.num_trades}"
            )
        if not math.isfinite(self.starting_equity) or self.starting_equity <= 0:
            raise InvalidConfigurationError(
                f"starting_equity must be positive, got {self.starting_equity}"
            )
        if not 0 < self.ruin_threshold <= 1:
            raise InvalidConfigurationError(
                f"ruin_threshold must be in (0, 1], got {self.ruin_threshold}"
            )
        if self.confidence_level not in CONFIDENCE_LEVELS:
            raise InvalidConfigurationError(
                f"confidence_level must be one of {CONFIDENCE_LEVELS}, got {self.confidence_level}"
            )
        if self.risk_per_trade is not None and not 0 < self.risk_per_trade <= 1:
            raise InvalidConfigurationError(
                f"risk_per_trade must be a fraction in (0, 1], got {self.risk_per_trade}"
            )
        if self.override is not None:
            self.override.validate()

    @classmethod
    def from_dict(cls, data: dict) -> "SimulationConfig":
        """Build a config from snake_case or camelCase keys.

        Flat override keys (``winRateOverride`` ...) are folded into an
        ``OverrideBlock``; a nested ``override`` mapping works as well.
        """
        flat = {_CAMEL_KEYS.get(k, k): v for k, v in data.items()}
        override_data = dict(flat.pop("override", None) or {})
        override_data = {_CAMEL_KEYS.get(k, k): v for k, v in override_data.items()}
        for key in _OVERRIDE_KEYS:
            if key in flat:
                override_data[key] = flat.pop(key)

        known = {f.name for f in fields(cls)} - {"override"}
        unknown = set(flat) - known
        if unknown:
            raise InvalidConfigurationError(f"Unknown config keys: {sorted(unknown)}")

        override = None
        if override_data:
            if "win_rate" not in override_data or "avg_loss" not in override_data:
                raise InvalidConfigurationError("Override needs win_rate and avg_loss")
            override = OverrideBlock(
                win_rate=float(override_data["win_rate"]),
                avg_loss=float(override_data["avg_loss"]),
                avg_win=_optional_float(override_data.get("avg_win")),
                reward_risk_ratio=_optional_float(override_data.get("reward_risk_ratio")),
            )

        kwargs = {}
        if "num_simulations" in flat:
            kwargs["num_simulations"] = int(flat["num_simulations"])
        if "num_trades" in flat:
            kwargs["num_trades"] = int(flat["num_trades"])
        if "starting_equity" in flat:
            kwargs["starting_equity"] = float(flat["starting_equity"])
        if "ruin_threshold" in flat:
            kwargs["ruin_threshold"] = float(flat["ruin_threshold"])
        if "confidence_level" in flat:
            kwargs["confidence_level"] = int(flat["confidence_level"])
        if "risk_per_trade" in flat:
            kwargs["risk_per_trade"] = _optional_float(flat["risk_per_trade"])
        return cls(override=override, **kwargs)


def _optional_float(value) -> Optional[float]:
    if value is None:
        return None
    return float(value)


@dataclass(frozen=True)
class PercentileSeries:
    """Fan-chart bands, each aligned by trade index 0..num_trades.

    ``p1`` and ``p99`` are only filled at 99% confidence so the outer band
    covers the full interval.
    """
    p5: tuple[float, ...]
    p10: tuple[float, ...]
    p25: tuple[float, ...]
    p50: tuple[float, ...]
    p75: tuple[float, ...]
    p90: tuple[float, ...]
    p95: tuple[float, ...]
    p1: Optional[tuple[float, ...]] = None
    p99: Optional[tuple[float, ...]] = None

    def band_names(self) -> list[str]:
        """Names of the populated bands, lowest percentile first."""
        names = ["p5", "p10", "p25", "p50", "p75", "p90", "p95"]
        if self.p1 is not None:
            names.insert(0, "p1")
        if self.p99 is not None:
            names.append("p99")
        return names

    def bands(self) -> list[tuple[float, ...]]:
        return [getattr(self, name) for name in self.band_names()]

    def to_frame(self) -> pd.DataFrame:
        """One row per trade index, one column per band."""
        df = pd.DataFrame({name: list(getattr(self, name)) for name in self.band_names()})
        df.index.name = "trade"
        return df


@dataclass
class PathStats:
    """Per-path reductions collected while the paths are generated."""
    max_drawdown: np.ndarray     # percent, one per path
    losing_streak: np.ndarray    # longest run of losing draws, one per path
    path_min: np.ndarray         # lowest equity touched, one per path
    expected_value: float        # mean dollar outcome over every draw


@dataclass(frozen=True)
class RiskStats:
    """Scalar summaries of the simulated population."""
    median_final_equity: float
    worst_case: float               # (100 - CL) / 2 percentile of final equity
    best_case: float                # 100 - (100 - CL) / 2 percentile
    probability_of_profit: float    # percent
    probability_of_ruin: float      # percent
    median_max_drawdown: float      # percent
    kelly_percent: float            # may be negative
    half_kelly_percent: float
    expected_value: float           # mean sampled P&L per trade
    max_consecutive_losses: float   # median longest losing streak
    confidence_level: int
    ruin_threshold: float

    def projected_pnl(self, num_trades: int) -> float:
        """Expected P&L over a horizon of ``num_trades`` trades."""
        return self.expected_value * num_trades


_STATS_KEYS = {
    "median_final_equity": "medianFinalEquity",
    "worst_case": "worstCase",
    "best_case": "bestCase",
    "probability_of_profit": "probabilityOfProfit",
    "probability_of_ruin": "probabilityOfRuin",
    "median_max_drawdown": "medianMaxDrawdown",
    "kelly_percent": "kellyPercent",
    "half_kelly_percent": "halfKellyPercent",
    "expected_value": "expectedValue",
    "max_consecutive_losses": "maxConsecutiveLosses",
    "confidence_level": "confidenceLevel",
    "ruin_threshold": "ruinThreshold",
}


@dataclass(frozen=True)
class SimulationResult:
    """Complete output of one ``run_simulation`` call."""
    percentiles: PercentileSeries
    stats: RiskStats
    num_simulations: int = 0
    num_trades: int = 0
    starting_equity: float = 0.0
    seed: Optional[int] = None

    def to_dict(self) -> dict:
        """JSON-ready payload in the shape the chart layer consumes."""
        return {
            "percentiles": {
                name: list(getattr(self.percentiles, name))
                for name in self.percentiles.band_names()
            },
            "stats": {
                camel: getattr(self.stats, name) for name, camel in _STATS_KEYS.items()
            },
            "numSimulations": self.num_simulations,
            "numTrades": self.num_trades,
            "startingEquity": self.starting_equity,
            "seed": self.seed,
        }
