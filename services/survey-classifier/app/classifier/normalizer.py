"""
Survey normalizer
Maps arbitrary CSV headers onto canonical NormalizedSurveyRow fields
"""
import re
from typing import Dict, List, Optional

from .models import NormalizedSurveyRow, TriState

# Canonical field -> accepted headers, first match wins
KEY_ALIASES: Dict[str, List[str]] = {
    "pmf": ["PMF", "pmf"],
    "slight_reason": ["아쉬움 이유", "slight_reason"],
    "why_think": ["그렇게 생각한 이유", "why_think"],
    "fit_score": ["맞춤", "맞춤점수", "fit_score", "score"],
    "fit_reason": ["맞춤형 이유", "fit_reason"],
    "best_point": ["좋았던 점", "best_point"],
    "best_point_summary": ["가장 좋은 점", "best_point_summary"],
    "purchase_timing": [
        "원래 구매 시기",
        "원래구매시기",
        "해당 카테고리 원래 구매 시기",
        "카테고리 구매시기",
        "구매시기",
        "purchase_timing",
        "original_purchase_timing",
    ],
    "purchase_intent": [
        "이 서비스에서 추천받은 상품에 대한 구매의향",
        "추천상품 구매의향",
        "추천 상품 구매의향",
        "추천상품_구매의향",
        "구매의향",
        "purchase_intent",
        "recommended_product_purchase_intent",
    ],
    "purchase_planned": ["구매예정여부", "purchase_planned"],
    "purchase_intent_combined": [
        "추천상품 구매의향_종합",
        "추천 상품 구매의향 종합",
        "구매의향_종합",
        "purchase_intent_combined",
    ],
    "buy_reason": ["구매 이유", "buy_reason"],
    "improvement": ["개선", "improvement"],
    "downside_summary": ["아쉬운 점", "downside_summary"],
    "judgement_reason": ["판단 이유", "judgement_reason"],
}

# Negative markers are checked first
PURCHASE_NEGATIVE_SIGNALS = ["참고만", "확신없음", "미정", "없음"]
PURCHASE_POSITIVE_SIGNALS = ["구매", "장바구니", "곧구매", "이미구매", "당장", "예정", "a", "b"]

_NUMBER = re.compile(r"-?\d+(\.\d+)?")


def pick_value(row: Dict[str, str], aliases: List[str]) -> str:
    for alias in aliases:
        if alias in row:
            return (row[alias] or "").strip()
    return ""


def parse_score(score_text: str) -> Optional[float]:
    """First signed decimal number in the text"""
    if not score_text:
        return None
    matched = _NUMBER.search(score_text)
    if not matched:
        return None
    return float(matched.group(0))


def infer_purchase_planned(planned_text: str, intent_text: str) -> TriState:
    planned = f"{planned_text} {intent_text}".lower()
    if not planned.strip():
        return TriState.UNKNOWN

    if any(signal in planned for signal in PURCHASE_NEGATIVE_SIGNALS):
        return TriState.FALSE
    if any(signal in planned for signal in PURCHASE_POSITIVE_SIGNALS):
        return TriState.TRUE
    return TriState.UNKNOWN


def normalize_survey_row(row: Dict[str, str]) -> NormalizedSurveyRow:
    """
    Normalize one raw survey row.

    Args:
        row: Header -> cell value

    Returns:
        NormalizedSurveyRow with empty answers left unset
    """
    values = {
        name: pick_value(row, aliases) for name, aliases in KEY_ALIASES.items()
    }
    fit_score_text = values.pop("fit_score")
    planned_text = values.pop("purchase_planned")

    return NormalizedSurveyRow(
        fit_score=parse_score(fit_score_text),
        purchase_planned=infer_purchase_planned(planned_text, values["purchase_intent"]),
        **{name: value or None for name, value in values.items()}
    )
