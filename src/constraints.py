"""
User constraint validation for number recommendations.

Include/exclude lists and the analysis window are checked here, before any
network activity, and rejected with ValidationError.
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Union

from src.draw_models import MAX_NUMBER, MIN_NUMBER, NUMBERS_PER_DRAW
from src.exceptions import ValidationError

MAX_INCLUDE_NUMBERS = NUMBERS_PER_DRAW
MAX_EXCLUDE_NUMBERS = MAX_NUMBER - NUMBERS_PER_DRAW

MIN_ANALYSIS_WINDOW = 5
MAX_ANALYSIS_WINDOW = 100

NumberInput = Union[None, str, Iterable[int]]


@dataclass(frozen=True)
class NumberConstraints:
    include_numbers: List[int] = field(default_factory=list)
    exclude_numbers: List[int] = field(default_factory=list)


def parse_numbers(value: NumberInput, label: str) -> List[int]:
    """
    Normalize a comma-separated string or an iterable of ints.

    Duplicates collapse, keeping first occurrence order.

    Raises:
        ValidationError: On non-integer tokens or numbers outside 1-45
    """
    if value is None:
        return []

    if isinstance(value, str):
        tokens = [t.strip() for t in value.split(',') if t.strip()]
        numbers = []
        for token in tokens:
            try:
                numbers.append(int(token))
            except ValueError:
                raise ValidationError(f"{label}에 숫자가 아닌 값이 있습니다: '{token}'")
    else:
        numbers = []
        for item in value:
            if isinstance(item, bool) or not isinstance(item, int):
                raise ValidationError(f"{label}에 숫자가 아닌 값이 있습니다: {item!r}")
            numbers.append(item)

    out_of_range = [n for n in numbers if n < MIN_NUMBER or n > MAX_NUMBER]
    if out_of_range:
        raise ValidationError(
            f"{label}는 {MIN_NUMBER}부터 {MAX_NUMBER} 사이여야 합니다: "
            f"{', '.join(str(n) for n in out_of_range)}"
        )

    return list(dict.fromkeys(numbers))


def validate_constraints(include: NumberInput = None, exclude: NumberInput = None) -> NumberConstraints:
    """
    Validate include/exclude numbers for a recommendation request.

    Returns:
        NumberConstraints with deduplicated lists

    Raises:
        ValidationError: On range errors, overlap or too many numbers
    """
    include_numbers = parse_numbers(include, "포함할 숫자")
    exclude_numbers = parse_numbers(exclude, "제외할 숫자")

    if len(include_numbers) > MAX_INCLUDE_NUMBERS:
        raise ValidationError(f"포함할 숫자는 최대 {MAX_INCLUDE_NUMBERS}개까지 지정할 수 있습니다.")
    if len(exclude_numbers) > MAX_EXCLUDE_NUMBERS:
        raise ValidationError("제외할 숫자가 너무 많습니다.")

    overlap = [n for n in include_numbers if n in set(exclude_numbers)]
    if overlap:
        raise ValidationError(
            f"포함할 숫자와 제외할 숫자에 중복된 값이 있습니다: {', '.join(str(n) for n in overlap)}"
        )

    return NumberConstraints(include_numbers=include_numbers, exclude_numbers=exclude_numbers)


def validate_analysis_window(value: Union[None, int, str], default: int) -> int:
    """
    Resolve the number of draws to analyze (5-100).

    Raises:
        ValidationError: If a supplied value is not an integer in range
    """
    if value is None or value == "":
        return default
    try:
        window = int(value)
    except (TypeError, ValueError):
        raise ValidationError("분석할 회차 수는 숫자여야 합니다.")
    if isinstance(value, bool) or not MIN_ANALYSIS_WINDOW <= window <= MAX_ANALYSIS_WINDOW:
        raise ValidationError(
            f"분석할 회차 수는 {MIN_ANALYSIS_WINDOW}회에서 {MAX_ANALYSIS_WINDOW}회 사이여야 합니다."
        )
    return window
