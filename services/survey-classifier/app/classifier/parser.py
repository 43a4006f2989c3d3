"""
Model response parsing and sanitization

Every sanitizer here is total: malformed fields degrade to conservative
defaults (ND, unknown, empty) instead of raising. Only an undecodable
payload is an error.
"""
import json
import logging
import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, List, Optional

from ..exceptions import MalformedPayloadError
from .models import (
    ClassificationLabel,
    ClassifierVote,
    NormalizedSurveyRow,
    NORMALIZED_FIELD_KEYS,
    TriState,
)

logger = logging.getLogger(__name__)

PMF_VERY_DISAPPOINTED = "매우 아쉬움"
PMF_SOMEWHAT_DISAPPOINTED = "조금 아쉬움"
PMF_NOT_DISAPPOINTED = "별로 아쉽지 않음"

# Keyword contained in the answer -> canonical regret phrase
PMF_KEYWORDS = [
    ("매우", PMF_VERY_DISAPPOINTED),
    ("조금", PMF_SOMEWHAT_DISAPPOINTED),
    ("별로", PMF_NOT_DISAPPOINTED),
]

DEFAULT_RATIONALE = "No rationale returned."

_EXACT_LABELS = {
    "PRE_VD": ClassificationLabel.PRE_VD,
    "VSD": ClassificationLabel.VSD,
    "NSD": ClassificationLabel.NSD,
}


def extract_json_object(text: str) -> str:
    """
    Best-effort extraction of the JSON object inside model output.

    Returns the span from the first '{' to the last '}' so that prose or
    code fences around the payload are dropped. Without a usable brace pair
    the text is returned unchanged and strict decoding decides.
    """
    first = text.find("{")
    last = text.rfind("}")
    if first == -1 or last == -1 or first >= last:
        return text
    return text[first:last + 1]


def to_label(value: Any) -> ClassificationLabel:
    """Map model label text to a label; anything unrecognized is ND"""
    if isinstance(value, ClassificationLabel):
        return value
    if not isinstance(value, str):
        return ClassificationLabel.ND
    normalized = value.strip().upper().replace("-", "_")
    return _EXACT_LABELS.get(normalized, ClassificationLabel.ND)


def clean_text(value: Any) -> Optional[str]:
    """Trimmed string, or None for empty and non-string values"""
    if not isinstance(value, str):
        return None
    text = value.strip()
    return text or None


def normalize_pmf(value: Any) -> Optional[str]:
    text = clean_text(value)
    if text is None:
        return None
    for keyword, canonical in PMF_KEYWORDS:
        if keyword in text:
            return canonical
    return None


def sanitize_fit_score(value: Any) -> Optional[float]:
    # bool is an int subclass and must not count as a score
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    # Halves round up, e.g. 7.25 -> 7.3
    clamped = min(10.0, max(0.0, float(value)))
    return float(Decimal(str(clamped)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def sanitize_used_columns(columns: Any, allowed_headers: Iterable[str]) -> List[str]:
    """Keep known headers only, de-duplicated in the model's order"""
    if not isinstance(columns, list) or not columns:
        return []

    allowed = set(allowed_headers)
    unique: List[str] = []
    for column in columns:
        header = "" if column is None else str(column).strip()
        if not header or header not in allowed:
            continue
        if header not in unique:
            unique.append(header)
    return unique


def sanitize_warning_signals(signals: Any) -> List[str]:
    if not isinstance(signals, list):
        return []
    return [str(signal) for signal in signals if signal is not None]


def sanitize_normalized(data: Any) -> NormalizedSurveyRow:
    """Build a NormalizedSurveyRow from the model's camelCase object"""
    if not isinstance(data, dict):
        return NormalizedSurveyRow()

    values: Dict[str, Any] = {}
    for name, key in NORMALIZED_FIELD_KEYS.items():
        raw = data.get(key)
        if name == "pmf":
            values[name] = normalize_pmf(raw)
        elif name == "fit_score":
            values[name] = sanitize_fit_score(raw)
        elif name == "purchase_planned":
            values[name] = TriState.from_value(raw)
        else:
            values[name] = clean_text(raw)
    return NormalizedSurveyRow(**values)


def decode_payload(raw_text: str) -> Dict[str, Any]:
    """Strictly decode the extracted JSON object"""
    json_text = extract_json_object(raw_text)
    try:
        payload = json.loads(json_text)
    except json.JSONDecodeError as e:
        logger.warning(f"Malformed model payload ({len(raw_text)} chars): {raw_text[:200]}")
        raise MalformedPayloadError(f"Model returned invalid JSON: {e}", raw_text) from e

    if not isinstance(payload, dict):
        raise MalformedPayloadError(
            f"Model returned JSON {type(payload).__name__}, expected an object", raw_text
        )
    return payload


def parse_vote(raw_text: str, allowed_headers: Iterable[str]) -> ClassifierVote:
    """
    Turn raw model text into one sanitized vote.

    Args:
        raw_text: Text payload returned by the model
        allowed_headers: Headers present in the row's raw entries

    Returns:
        ClassifierVote

    Raises:
        MalformedPayloadError: The payload is not a JSON object
    """
    payload = decode_payload(raw_text)

    return ClassifierVote(
        label=to_label(payload.get("label", ClassificationLabel.ND.value)),
        rationale=clean_text(payload.get("rationale")) or DEFAULT_RATIONALE,
        warning_signals=sanitize_warning_signals(payload.get("warningSignals")),
        used_columns=sanitize_used_columns(payload.get("usedColumns"), allowed_headers),
        is_abuser=TriState.from_value(payload.get("isAbuser")),
        abuser_reason=clean_text(payload.get("abuserReason")),
        core_value_understood=TriState.from_value(payload.get("coreValueUnderstood")),
        core_value_reason=clean_text(payload.get("coreValueReason")),
        normalized_data=sanitize_normalized(payload.get("normalized")),
    )
