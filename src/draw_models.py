"""
Lotto 6/45 Draw Models
======================

Value objects passed between the fetch layer, the analytics engine and the
summary formatter. Everything here is immutable once built.
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Dict, List, Optional, Tuple

MIN_NUMBER = 1
MAX_NUMBER = 45
NUMBERS_PER_DRAW = 6


class DrawStatus(str, Enum):
    """Outcome of a single upstream lookup."""
    SUCCESS = "SUCCESS"      # Well-formed draw
    NOT_FOUND = "NOT_FOUND"  # Draw not published yet, or partial record


@dataclass(frozen=True)
class DrawRecord:
    """One historical draw as returned by the upstream source."""
    draw_no: int
    draw_date: str
    numbers: Tuple[int, ...]  # upstream order, not necessarily sorted
    bonus: int

    def to_dict(self) -> Dict:
        result = asdict(self)
        result['numbers'] = list(self.numbers)
        return result


@dataclass(frozen=True)
class ProcessedDrawRecord:
    """A DrawRecord plus the per-draw statistics derived from it."""
    draw: DrawRecord
    sorted_numbers: Tuple[int, ...]
    total: int
    even_count: int
    odd_count: int

    @property
    def draw_no(self) -> int:
        return self.draw.draw_no

    @property
    def draw_date(self) -> str:
        return self.draw.draw_date

    @property
    def bonus(self) -> int:
        return self.draw.bonus

    def to_dict(self) -> Dict:
        return {
            'draw_no': self.draw.draw_no,
            'draw_date': self.draw.draw_date,
            'numbers': list(self.sorted_numbers),
            'bonus': self.draw.bonus,
            'sum': self.total,
            'even_count': self.even_count,
            'odd_count': self.odd_count,
        }


@dataclass(frozen=True)
class DrawFetchResult:
    """Cached outcome of fetching one draw index."""
    draw_no: int
    status: DrawStatus
    draw: Optional[DrawRecord] = None

    @property
    def found(self) -> bool:
        return self.status == DrawStatus.SUCCESS and self.draw is not None


@dataclass(frozen=True)
class AggregateStatistics:
    """
    Descriptive statistics over a window of draws.

    ``frequency_table`` keeps first-seen insertion order; numbers that never
    appeared are absent rather than zero. ``band_percentages`` is None when
    no numbers were analyzed.
    """
    analyzed_draws_count: int
    requested_window: int
    first_draw_no: Optional[int]
    last_draw_no: Optional[int]
    average_sum: float
    average_even_count: float
    average_odd_count: float
    rounded_even_count: int
    rounded_odd_count: int
    even_odd_ratio_label: str
    frequency_table: Dict[int, int] = field(default_factory=dict)
    top_frequent: List[Tuple[int, int]] = field(default_factory=list)
    bottom_frequent: List[Tuple[int, int]] = field(default_factory=list)
    band_counts: Dict[str, int] = field(default_factory=dict)
    band_percentages: Optional[Dict[str, int]] = None
    total_numbers_analyzed: int = 0
    consecutive_pairs: int = 0
    not_appeared_numbers: List[int] = field(default_factory=list)
    description: str = ""

    @property
    def is_empty(self) -> bool:
        return self.analyzed_draws_count == 0

    @property
    def average_sum_display(self) -> str:
        return f"{self.average_sum:.2f}"

    def to_dict(self) -> Dict:
        return {
            'analyzed_draws_count': self.analyzed_draws_count,
            'requested_window': self.requested_window,
            'first_draw_no': self.first_draw_no,
            'last_draw_no': self.last_draw_no,
            'average_sum': self.average_sum,
            'average_sum_display': self.average_sum_display,
            'average_even_count': self.average_even_count,
            'average_odd_count': self.average_odd_count,
            'even_odd_ratio': self.even_odd_ratio_label,
            'frequency_table': {str(k): v for k, v in self.frequency_table.items()},
            'top_frequent': [{'number': n, 'count': c} for n, c in self.top_frequent],
            'bottom_frequent': [{'number': n, 'count': c} for n, c in self.bottom_frequent],
            'band_counts': dict(self.band_counts),
            'band_percentages': dict(self.band_percentages) if self.band_percentages is not None else None,
            'total_numbers_analyzed': self.total_numbers_analyzed,
            'consecutive_pairs': self.consecutive_pairs,
            'not_appeared_numbers': list(self.not_appeared_numbers),
            'description': self.description,
        }
