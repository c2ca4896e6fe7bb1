"""
Lotto Service Exceptions
========================

Error taxonomy shared by the fetch layer, the analysis pipeline and the API.
Each user-facing error carries a Korean message that can be shown as-is.
"""

from typing import Optional


class LottoServiceError(Exception):
    """Base exception for the lotto statistics service."""

    user_message = "로또 데이터 처리 중 오류가 발생했습니다."

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.user_message)
        self.message = message or self.user_message


class FetchError(LottoServiceError):
    """Transport or parse failure for a single draw index."""

    def __init__(self, draw_no: int, reason: str):
        self.draw_no = draw_no
        self.reason = reason
        super().__init__(f"회차 {draw_no} 데이터를 가져오지 못했습니다: {reason}")


class DiscoveryError(LottoServiceError):
    """No latest draw index could be confirmed."""

    user_message = "최신 회차 번호를 확인할 수 없습니다. API 서비스 상태를 확인해주세요."


class InsufficientHistoryError(LottoServiceError):
    """Latest draw was found but the history window came back short."""

    def __init__(self, required: int, available: int):
        self.required = required
        self.available = available
        super().__init__(
            f"분석을 위한 과거 당첨 데이터를 충분히 가져올 수 없습니다 "
            f"(최소 {required}회차 필요, 현재 {available}회차)."
        )


class ValidationError(LottoServiceError):
    """Invalid user input: constraint numbers or analysis window."""

    user_message = "입력값이 올바르지 않습니다."


class RecommendationError(LottoServiceError):
    """The text generation collaborator failed or returned malformed output."""

    user_message = "로또 번호 추천 중 오류가 발생했습니다."
