"""
KuCoin Trading - Trade Analysis Interface.

============================================================
PURPOSE
============================================================
The interface a chart/market analysis engine implements to
feed the batch executor, and a PLACEHOLDER implementation.

PLACEHOLDER WARNING:
    PlaceholderAnalysisEngine does not analyse anything. It
    draws signals, stop distances and confidence from a
    seeded random generator so the pipeline can be exercised
    end to end. Replace it with a real engine behind the same
    AnalysisEngine interface; callers do not change.

============================================================
"""

import logging
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Tuple

from .types import MarketSnapshot, OrderSide, TradeCandidate


logger = logging.getLogger(__name__)


MAX_SCORE = 10.0


# ============================================================
# STRATEGY PROFILES
# ============================================================

class Strategy(Enum):
    """Trading style."""

    SCALP = "scalp"
    SWING = "swing"


@dataclass(frozen=True)
class StrategyProfile:
    """Stop distance and reward ranges for a strategy."""

    stop_distance_range: Tuple[float, float]
    """Stop distance as a fraction of price."""

    risk_reward_range: Tuple[float, float]
    """Reward to risk multiple."""

    timeframes: Tuple[str, ...]


STRATEGY_PROFILES = {
    Strategy.SCALP: StrategyProfile(
        stop_distance_range=(0.005, 0.015),
        risk_reward_range=(1.0, 2.0),
        timeframes=("1m", "5m", "15m"),
    ),
    Strategy.SWING: StrategyProfile(
        stop_distance_range=(0.02, 0.05),
        risk_reward_range=(2.0, 4.0),
        timeframes=("1h", "4h", "1d"),
    ),
}


# ============================================================
# SCORING
# ============================================================

def score_opportunity(confidence: float, risk_reward: float, analysis: str = "") -> float:
    """
    Rank a trade idea on a 0-10 scale.

    Confidence (0-100) contributes a tenth of its value; the
    reward multiple and analysis keywords add fixed bonuses.
    """
    score = confidence / 10

    if risk_reward >= 3:
        score += 3
    elif risk_reward >= 2:
        score += 2
    elif risk_reward >= 1.5:
        score += 1

    text = analysis.lower()
    if "structure" in text:
        score += 1
    if "breakout" in text:
        score += 1
    if "confluence" in text:
        score += 2

    return min(score, MAX_SCORE)


# ============================================================
# ENGINE INTERFACE
# ============================================================

class AnalysisEngine(ABC):
    """Produces trade candidates from market data."""

    @abstractmethod
    def analyze(self, snapshot: MarketSnapshot) -> List[TradeCandidate]:
        """
        Candidates for the symbols in a snapshot, best first.

        Args:
            snapshot: Last prices

        Returns:
            Scored candidates
        """
        pass


class PlaceholderAnalysisEngine(AnalysisEngine):
    """
    Random stand-in for a real analysis engine.

    Output is reproducible for a given seed.
    """

    def __init__(self, strategy: Strategy = Strategy.SWING, seed: Optional[int] = None):
        self._strategy = strategy
        self._profile = STRATEGY_PROFILES[strategy]
        self._rng = random.Random(seed)

    @property
    def strategy(self) -> Strategy:
        return self._strategy

    def analyze(self, snapshot: MarketSnapshot) -> List[TradeCandidate]:
        candidates = []

        for symbol in snapshot.symbols:
            price = snapshot.prices.get(symbol)
            if price is None or price <= 0:
                continue
            candidates.append(self._candidate(symbol, price))

        candidates.sort(key=lambda c: c.score, reverse=True)
        logger.info(
            f"Placeholder analysis ({self._strategy.value}) produced "
            f"{len(candidates)} candidates"
        )
        return candidates

    def _candidate(self, symbol: str, price: Decimal) -> TradeCandidate:
        rng = self._rng
        side = OrderSide.BUY if rng.random() > 0.5 else OrderSide.SELL

        stop_fraction = Decimal(str(round(rng.uniform(*self._profile.stop_distance_range), 6)))
        risk_reward = round(rng.uniform(*self._profile.risk_reward_range), 2)
        stop_distance = price * stop_fraction
        profit_distance = stop_distance * Decimal(str(risk_reward))

        if side == OrderSide.BUY:
            stop_loss = price - stop_distance
            take_profit = price + profit_distance
        else:
            stop_loss = price + stop_distance
            take_profit = price - profit_distance

        bias = "bullish" if side == OrderSide.BUY else "bearish"
        timeframe = rng.choice(self._profile.timeframes)
        analysis = (
            f"PLACEHOLDER {self._strategy.value} analysis: {bias} structure "
            f"on {timeframe} timeframe"
        )
        confidence = round(70 + rng.random() * 25, 1)

        return TradeCandidate(
            symbol=symbol,
            side=side,
            entry_price=price,
            stop_loss=stop_loss,
            take_profit=take_profit,
            score=score_opportunity(confidence, risk_reward, analysis),
            confidence=confidence,
            risk_reward=risk_reward,
            analysis=analysis,
        )
