"""
Summary Formatter
=================

Renders AggregateStatistics as Korean text: a multi-line paragraph used as
the prompt input for the recommendation model, and a one-line summary for
display.
"""

from typing import List, Tuple

from src.analytics_engine import round_half_up
from src.draw_models import AggregateStatistics

NO_DATA_SUMMARY = "분석할 과거 데이터가 부족합니다."
NOT_APPEARED_LIMIT = 10

BAND_LABELS = [
    ('low', "낮은 숫자(1-15)"),
    ('mid', "중간 숫자(16-30)"),
    ('high', "높은 숫자(31-45)"),
]


def _join_counts(entries: List[Tuple[int, int]]) -> str:
    return ", ".join(f"{number}({count}회)" for number, count in entries)


def _range_label(stats: AggregateStatistics) -> str:
    return f"{stats.first_draw_no}회 ~ {stats.last_draw_no}회"


def format_historical_summary(stats: AggregateStatistics, window_size: int) -> str:
    """
    Fixed-order multi-line summary of a window of draws.

    The average sum line is rounded to an integer on its own; it is not a
    reformatting of ``average_sum_display``.
    """
    if stats.is_empty:
        return NO_DATA_SUMMARY

    lines = [
        f"최근 {window_size}회차 중 {stats.analyzed_draws_count}회차 ({_range_label(stats)}) 당첨 번호 분석:",
        f"- 평균 당첨 번호 합계: 약 {round_half_up(stats.average_sum)} (일반적인 범위: 100-180)",
        f"- 평균 짝수:홀수 비율: {stats.even_odd_ratio_label}",
    ]

    if stats.top_frequent:
        lines.append(f"- 최근 자주 등장한 숫자(출현횟수): {_join_counts(stats.top_frequent)}")
    if stats.bottom_frequent:
        lines.append(f"- 최근 가장 드물게 등장한 숫자(출현횟수): {_join_counts(stats.bottom_frequent)}")

    if stats.total_numbers_analyzed > 0 and stats.band_percentages is not None:
        for key, label in BAND_LABELS:
            lines.append(f"- {label} 출현 비율: 약 {stats.band_percentages[key]}%")

    if stats.not_appeared_numbers:
        shown = ", ".join(str(n) for n in stats.not_appeared_numbers[:NOT_APPEARED_LIMIT])
        suffix = " 등" if len(stats.not_appeared_numbers) > NOT_APPEARED_LIMIT else ""
        lines.append(f"- 최근 {window_size}회 동안 미출현: {shown}{suffix}")

    # Labelled and averaged over the requested window, not the analyzed count
    per_draw = stats.consecutive_pairs / window_size
    lines.append(
        f"- {window_size}회간 연속번호 출현 쌍: {stats.consecutive_pairs}번 "
        f"(평균 {per_draw:.1f} 쌍/회)"
    )

    return "\n".join(lines) + "\n"


def format_display_summary(stats: AggregateStatistics) -> str:
    """One-line summary shown next to the recent draws."""
    if stats.is_empty:
        return stats.description
    return (
        f"최근 {stats.analyzed_draws_count}회차 ({_range_label(stats)}) 분석: "
        f"평균 번호 합계는 {stats.average_sum_display}이며, "
        f"평균 짝수:홀수 비율은 {stats.even_odd_ratio_label}입니다."
    )
