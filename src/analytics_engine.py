"""
Lotto Analytics Engine
======================
Descriptive statistics over a trailing window of Lotto 6/45 draws.
"""

import math
from collections import Counter
from typing import Dict, List, Sequence, Tuple, Union

import numpy as np
from loguru import logger

from src.draw_models import (
    MAX_NUMBER,
    MIN_NUMBER,
    NUMBERS_PER_DRAW,
    AggregateStatistics,
    DrawRecord,
    ProcessedDrawRecord,
)

TOP_N = 5

# (label, low, high) inclusive
NUMBER_BANDS = [
    ('low', 1, 15),
    ('mid', 16, 30),
    ('high', 31, 45),
]

INSUFFICIENT_DATA_DESCRIPTION = "분석할 데이터가 충분하지 않습니다."


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (not banker's rounding)."""
    return int(math.floor(value + 0.5))


def process_draw(draw: DrawRecord) -> ProcessedDrawRecord:
    """
    Derive per-draw statistics.

    Evenness is counted per raw value, so a duplicated even number counts
    twice.
    """
    sorted_numbers = tuple(sorted(draw.numbers))
    even_count = sum(1 for n in sorted_numbers if n % 2 == 0)
    return ProcessedDrawRecord(
        draw=draw,
        sorted_numbers=sorted_numbers,
        total=sum(sorted_numbers),
        even_count=even_count,
        odd_count=NUMBERS_PER_DRAW - even_count,
    )


def process_draws(draws: Sequence[DrawRecord]) -> List[ProcessedDrawRecord]:
    return [process_draw(d) for d in draws]


def rank_frequencies(frequency_table: Dict[int, int]) -> List[Tuple[int, int]]:
    """
    Order (number, count) pairs by descending count.

    ``sorted`` is stable, so ties keep the table's insertion order, which is
    the order numbers were first seen in the window.
    """
    return sorted(frequency_table.items(), key=lambda item: item[1], reverse=True)


def count_consecutive_pairs(processed: Sequence[ProcessedDrawRecord]) -> int:
    pairs = 0
    for record in processed:
        numbers = record.sorted_numbers
        pairs += sum(1 for a, b in zip(numbers, numbers[1:]) if b - a == 1)
    return pairs


def _empty_statistics(window_size: int) -> AggregateStatistics:
    return AggregateStatistics(
        analyzed_draws_count=0,
        requested_window=window_size,
        first_draw_no=None,
        last_draw_no=None,
        average_sum=0.0,
        average_even_count=0.0,
        average_odd_count=0.0,
        rounded_even_count=0,
        rounded_odd_count=0,
        even_odd_ratio_label="0:0",
        band_counts={label: 0 for label, _, _ in NUMBER_BANDS},
        band_percentages=None,
        not_appeared_numbers=list(range(MIN_NUMBER, MAX_NUMBER + 1)),
        description=INSUFFICIENT_DATA_DESCRIPTION,
    )


def compute_aggregate_statistics(
    draws: Sequence[Union[DrawRecord, ProcessedDrawRecord]],
    window_size: int,
) -> AggregateStatistics:
    """
    Compute aggregate statistics over the first ``window_size`` draws.

    Input is expected newest-first. A short input is analyzed as-is and the
    degraded count is recorded; an empty window yields the "0:0" sentinel
    instead of raising.

    Args:
        draws: Raw or processed draws, newest first
        window_size: Number of draws to analyze

    Returns:
        AggregateStatistics for the selected window
    """
    window = [d if isinstance(d, ProcessedDrawRecord) else process_draw(d)
              for d in list(draws)[:max(0, window_size)]]

    if not window:
        logger.warning(f"No draws available for a {window_size}-draw window")
        return _empty_statistics(window_size)

    if len(window) < window_size:
        logger.info(f"Degraded window: analyzing {len(window)} of {window_size} requested draws")

    sums = np.array([d.total for d in window], dtype=float)
    evens = np.array([d.even_count for d in window], dtype=float)
    odds = np.array([d.odd_count for d in window], dtype=float)

    average_sum = float(np.mean(sums))
    average_even = float(np.mean(evens))
    average_odd = float(np.mean(odds))

    # Each average is rounded on its own, then odd is forced so the label totals 6
    rounded_even = round_half_up(average_even)
    independent_odd = round_half_up(average_odd)
    rounded_odd = max(0, NUMBERS_PER_DRAW - rounded_even)
    if independent_odd != rounded_odd:
        logger.debug(f"Odd count forced from {independent_odd} to {rounded_odd}")

    flattened = [n for d in window for n in d.sorted_numbers]
    frequency_table = dict(Counter(flattened))
    ranked = rank_frequencies(frequency_table)

    total_numbers = len(window) * NUMBERS_PER_DRAW
    band_counts = {
        label: sum(1 for n in flattened if low <= n <= high)
        for label, low, high in NUMBER_BANDS
    }
    band_percentages = None
    if total_numbers > 0:
        band_percentages = {
            label: round_half_up(count / total_numbers * 100)
            for label, count in band_counts.items()
        }

    appeared = set(flattened)
    not_appeared = [n for n in range(MIN_NUMBER, MAX_NUMBER + 1) if n not in appeared]

    stats = AggregateStatistics(
        analyzed_draws_count=len(window),
        requested_window=window_size,
        first_draw_no=window[-1].draw_no,
        last_draw_no=window[0].draw_no,
        average_sum=average_sum,
        average_even_count=average_even,
        average_odd_count=average_odd,
        rounded_even_count=rounded_even,
        rounded_odd_count=rounded_odd,
        even_odd_ratio_label=f"{rounded_even}:{rounded_odd}",
        frequency_table=frequency_table,
        top_frequent=ranked[:TOP_N],
        bottom_frequent=ranked[-TOP_N:],
        band_counts=band_counts,
        band_percentages=band_percentages,
        total_numbers_analyzed=total_numbers,
        consecutive_pairs=count_consecutive_pairs(window),
        not_appeared_numbers=not_appeared,
        description=(
            f"최근 {len(window)}회차 분석: 평균 합계 {average_sum:.2f}, "
            f"짝수:홀수 {rounded_even}:{rounded_odd}"
        ),
    )

    logger.info(
        f"Aggregate statistics over {len(window)} draws "
        f"(avg sum {stats.average_sum_display}, ratio {stats.even_odd_ratio_label})"
    )
    return stats
