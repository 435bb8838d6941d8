"""
Trend Analyzer

최근 분류 결과의 이동 창에서 재질 변화 추세를 추정한다.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Deque, List, Optional

import numpy as np

from emfad.core.material_database import MaterialType
from emfad.utils.numeric import clamp_unit

logger = logging.getLogger(__name__)


class TrendDirection(Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


@dataclass(frozen=True)
class TrendEntry:
    material_type: MaterialType
    confidence: float
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class MaterialTrend:
    direction: TrendDirection
    strength: float
    last_change: datetime


class TrendAnalyzer:
    """
    Rolling window of recent classifications.

    Args:
        window_size: 창 크기 (기본 5)
        change_threshold: 평균 신뢰도 변화가 이 값을 넘으면 증가/감소로 판정
    """

    def __init__(self, window_size: int = 5, change_threshold: float = 0.1) -> None:
        if window_size < 2:
            raise ValueError(f"window_size must be at least 2, got {window_size}")
        self.window_size = window_size
        self.change_threshold = change_threshold
        self._entries: Deque[TrendEntry] = deque(maxlen=window_size)

    def add(
        self,
        material_type: MaterialType,
        confidence: float,
        timestamp: Optional[datetime] = None,
    ) -> Optional[MaterialTrend]:
        """Record one classification and return the updated trend (None until two entries exist)."""
        entry = TrendEntry(material_type, confidence, timestamp or datetime.now())
        self._entries.append(entry)
        return self.analyze_trend()

    def analyze_trend(self) -> Optional[MaterialTrend]:
        entries = list(self._entries)
        if len(entries) < 2:
            return None

        change_indices = [i + 1 for i, (a, b) in enumerate(zip(entries, entries[1:])) if a.material_type != b.material_type]
        if not change_indices:
            return MaterialTrend(TrendDirection.STABLE, 1.0, entries[0].timestamp)

        deltas = np.diff([e.confidence for e in entries])
        average_change = float(np.mean(deltas))
        if average_change > self.change_threshold:
            direction = TrendDirection.INCREASING
        elif average_change < -self.change_threshold:
            direction = TrendDirection.DECREASING
        else:
            direction = TrendDirection.STABLE

        trend = MaterialTrend(direction, clamp_unit(abs(average_change)), entries[change_indices[-1]].timestamp)
        logger.debug(f"Trend over {len(entries)} entries: {direction.name}, avg change {average_change:+.3f}")
        return trend

    def history(self) -> List[TrendEntry]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()
