"""
Google Gemini Service for Lotto Number Recommendations
Sends the historical summary and user constraints to Gemini and validates
the structured reply.
"""

import json
from typing import Annotated, Any, List, Optional

from loguru import logger
from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as SchemaValidationError
import google.generativeai as genai

from src.config import get_lotto_config
from src.constraints import NumberConstraints
from src.draw_models import MAX_NUMBER, MIN_NUMBER, NUMBERS_PER_DRAW
from src.exceptions import RecommendationError

RECOMMENDED_SET_COUNT = 5

LottoNumber = Annotated[int, Field(ge=MIN_NUMBER, le=MAX_NUMBER)]


class LottoSet(BaseModel):
    numbers: List[LottoNumber] = Field(
        ..., min_length=NUMBERS_PER_DRAW, max_length=NUMBERS_PER_DRAW,
        description="추천된 로또 번호 6개 (1-45)"
    )
    reasoning: str = Field(..., description="이 조합을 추천하는 통계적 근거")

    @field_validator('numbers')
    @classmethod
    def numbers_must_be_distinct(cls, value: List[int]) -> List[int]:
        if len(set(value)) != len(value):
            raise ValueError("numbers must be distinct")
        return sorted(value)


class RecommendationOutput(BaseModel):
    recommended_sets: List[LottoSet] = Field(
        ..., min_length=RECOMMENDED_SET_COUNT, max_length=RECOMMENDED_SET_COUNT
    )
    predicted_sum_range: str = Field(..., description='예: "135-145"')
    predicted_even_odd_ratio: str = Field(..., description='예: "3:3 또는 4:2"')


PROMPT_TEMPLATE = """당신은 데이터 분석가이자 통계 전문가입니다. 제공된 과거 로또 당첨 번호 데이터의 요약과 사용자가 지정한 포함/제외 숫자를 고려하여, 통계적 가능성을 높일 수 있는 로또 번호 조합 5세트를 추천해주세요. 또한, 과거 데이터 요약을 바탕으로 다음 회차의 예상 당첨 번호 합계 범위와 예상되는 짝수:홀수 비율을 예측해주세요.

과거 데이터 요약:
{summary}

사용자 지정:
- 포함할 숫자: {include}
- 제외할 숫자: {exclude}

각 번호 조합은 1부터 45 사이의 중복되지 않는 숫자 6개로 구성되어야 합니다. 각 조합에 대한 간략한 통계적 근거나 추천 논리를 설명해주세요.
모든 답변은 한국어로, 명확하고 분석적인 어조로 작성해주세요.

Return ONLY a valid JSON object with this structure:
{{
  "recommended_sets": [
    {{"numbers": [3, 11, 19, 27, 34, 42], "reasoning": "..."}}
  ],
  "predicted_sum_range": "135-145",
  "predicted_even_odd_ratio": "3:3 또는 4:2"
}}
"recommended_sets" must contain exactly 5 entries.
"""


def build_prompt(summary: str, constraints: NumberConstraints) -> str:
    def _fmt(numbers: List[int]) -> str:
        return ", ".join(str(n) for n in numbers) if numbers else "없음"

    return PROMPT_TEMPLATE.format(
        summary=summary.strip(),
        include=_fmt(constraints.include_numbers),
        exclude=_fmt(constraints.exclude_numbers),
    )


def _strip_code_fence(text: str) -> str:
    json_text = text.strip()
    if json_text.startswith('```json'):
        json_text = json_text[7:]
    if json_text.startswith('```'):
        json_text = json_text[3:]
    if json_text.endswith('```'):
        json_text = json_text[:-3]
    return json_text.strip()


def parse_recommendation(text: Optional[str]) -> RecommendationOutput:
    """
    Parse and validate a raw model reply.

    Raises:
        RecommendationError: If the reply is empty, not JSON, or off-schema
    """
    if not text:
        raise RecommendationError("추천 모델이 빈 응답을 반환했습니다.")

    try:
        payload = json.loads(_strip_code_fence(text))
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse Gemini JSON response: {e}")
        raise RecommendationError("추천 모델 응답을 해석할 수 없습니다.") from e

    try:
        return RecommendationOutput.model_validate(payload)
    except SchemaValidationError as e:
        logger.error(f"Gemini response failed schema validation: {e.error_count()} error(s)")
        raise RecommendationError("추천 모델 응답 형식이 올바르지 않습니다.") from e


class LottoRecommendationService:
    """
    Gemini-backed recommendation collaborator.

    The model object can be injected; otherwise it is built from
    GEMINI_API_KEY / GEMINI_MODEL.
    """

    def __init__(self, model: Any = None, api_key: Optional[str] = None, model_name: Optional[str] = None):
        if model is not None:
            self.model = model
            self.model_name = model_name or getattr(model, "model_name", "injected")
            return

        config = get_lotto_config()
        api_key = api_key or config.gemini_api_key
        if not api_key:
            raise RecommendationError("GEMINI_API_KEY environment variable is required")

        genai.configure(api_key=api_key)
        self.model_name = model_name or config.gemini_model
        self.model = genai.GenerativeModel(self.model_name)
        logger.info(f"Gemini recommendation service initialized ({self.model_name})")

    def recommend(self, summary: str, constraints: NumberConstraints) -> RecommendationOutput:
        """
        Ask Gemini for five number sets based on the historical summary.

        Constraints are forwarded verbatim; they are already validated.

        Raises:
            RecommendationError: On API failure or malformed output
        """
        prompt = build_prompt(summary, constraints)
        logger.debug("Sending recommendation request to Gemini API")

        try:
            response = self.model.generate_content(
                prompt,
                generation_config={"response_mime_type": "application/json"},
            )
            text = response.text
        except Exception as e:
            logger.error(f"Gemini API error: {e}")
            raise RecommendationError("추천 모델 호출에 실패했습니다.") from e

        result = parse_recommendation(text)

        excluded = set(constraints.exclude_numbers)
        for index, lotto_set in enumerate(result.recommended_sets, start=1):
            missing = [n for n in constraints.include_numbers if n not in lotto_set.numbers]
            banned = [n for n in lotto_set.numbers if n in excluded]
            if missing or banned:
                logger.warning(f"Set {index} ignores constraints (missing={missing}, excluded={banned})")

        logger.info(f"Gemini returned {len(result.recommended_sets)} recommended sets")
        return result


def create_recommendation_service() -> LottoRecommendationService:
    """
    Create and configure a recommendation service instance.

    Raises:
        RecommendationError: If Gemini is not configured
    """
    try:
        return LottoRecommendationService()
    except Exception as e:
        logger.error(f"Failed to create Gemini service: {e}")
        raise
