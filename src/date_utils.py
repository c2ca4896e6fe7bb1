"""
Date Utilities
==============

Centralized date handling for the weekly Lotto 6/45 draw calendar, in the
Asia/Seoul timezone, with logging for tracking and debugging.
"""

import pytz
from datetime import datetime, timedelta
from typing import Optional, Union
from loguru import logger


class DateManager:
    """
    Central manager for every draw-calendar calculation.

    - Standardized timezone (Asia/Seoul)
    - Weekly draw calendar
    - Draw-number estimation from the first draw
    """

    LOTTO_TIMEZONE = pytz.timezone('Asia/Seoul')

    # Draw 1 was held on 2002-12-07
    EPOCH_DRAW_NO = 1
    EPOCH_DATE = datetime(2002, 12, 7)

    @classmethod
    def get_current_kst_time(cls) -> datetime:
        """
        Current date and time in KST.

        Returns:
            datetime: Timezone-aware current time
        """
        current_time = datetime.now(pytz.UTC).astimezone(cls.LOTTO_TIMEZONE)
        logger.debug(f"KST time: {current_time.isoformat()}")
        return current_time

    @classmethod
    def convert_to_kst(cls, dt: Union[datetime, str]) -> datetime:
        """
        Convert a datetime or ISO-ish string to KST.

        Naive values are assumed to already be KST.

        Args:
            dt: datetime or string (YYYY-MM-DD, YYYY-MM-DD HH:MM:SS or ISO)

        Returns:
            datetime: Timezone-aware KST datetime
        """
        if isinstance(dt, str):
            try:
                if 'T' in dt:
                    parsed_dt = datetime.fromisoformat(dt.replace('Z', '+00:00'))
                else:
                    parsed_dt = datetime.strptime(dt[:19], '%Y-%m-%d %H:%M:%S')
            except ValueError as e:
                logger.debug(f"Falling back to date-only parse for '{dt}': {e}")
                parsed_dt = datetime.strptime(dt[:10], '%Y-%m-%d')
        else:
            parsed_dt = dt

        if parsed_dt.tzinfo is None:
            return cls.LOTTO_TIMEZONE.localize(parsed_dt)
        return parsed_dt.astimezone(cls.LOTTO_TIMEZONE)

    @classmethod
    def epoch_kst(cls) -> datetime:
        return cls.LOTTO_TIMEZONE.localize(cls.EPOCH_DATE)

    @classmethod
    def estimate_draw_index(cls, now: Optional[datetime] = None) -> int:
        """
        Rough estimate of the current draw number.

        Whole weeks elapsed since the first draw, plus one. Holiday skips and
        clock drift make this approximate; callers must confirm it against
        the upstream source.

        Args:
            now: Reference time (defaults to current KST time)

        Returns:
            int: Estimated draw number (at least 1)
        """
        reference = cls.get_current_kst_time() if now is None else cls.convert_to_kst(now)
        elapsed = reference - cls.epoch_kst()
        weeks = elapsed.days // 7
        estimate = max(cls.EPOCH_DRAW_NO, weeks + cls.EPOCH_DRAW_NO)

        logger.debug(f"Estimated draw number {estimate} for {reference.isoformat()} ({weeks} weeks since epoch)")
        return estimate

    @classmethod
    def calculate_draw_date(cls, draw_no: int) -> str:
        """
        Nominal calendar date of a draw number, assuming one draw per week.

        Args:
            draw_no: Positive draw number

        Returns:
            str: Date in YYYY-MM-DD format
        """
        if draw_no < 1:
            raise ValueError(f"draw_no must be positive, got {draw_no}")
        draw_date = cls.EPOCH_DATE + timedelta(weeks=draw_no - cls.EPOCH_DRAW_NO)
        return draw_date.strftime('%Y-%m-%d')

    @classmethod
    def validate_date_format(cls, date_str: str) -> bool:
        """
        Validates that a date has the YYYY-MM-DD format.

        Args:
            date_str: Date string to validate

        Returns:
            bool: True if the date is valid
        """
        if not isinstance(date_str, str) or len(date_str) != 10:
            return False
        try:
            datetime.strptime(date_str, '%Y-%m-%d')
            return True
        except ValueError:
            return False

