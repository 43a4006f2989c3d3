"""
Data models for the self-consistency classifier
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ClassificationLabel(str, Enum):
    """Survey classification labels, most positive first"""
    PRE_VD = "PRE_VD"
    VSD = "VSD"
    NSD = "NSD"
    ND = "ND"


class TriState(str, Enum):
    """A model opinion that may be absent: true, false or unknown"""
    TRUE = "true"
    FALSE = "false"
    UNKNOWN = "unknown"

    @classmethod
    def from_value(cls, value: Any) -> "TriState":
        """Only literal booleans carry an opinion"""
        if value is True:
            return cls.TRUE
        if value is False:
            return cls.FALSE
        return cls.UNKNOWN

    def to_optional(self) -> Optional[bool]:
        if self is TriState.UNKNOWN:
            return None
        return self is TriState.TRUE


# Canonical field name -> wire (camelCase) key
NORMALIZED_FIELD_KEYS: Dict[str, str] = {
    "pmf": "pmf",
    "slight_reason": "slightReason",
    "why_think": "whyThink",
    "fit_score": "fitScore",
    "fit_reason": "fitReason",
    "best_point": "bestPoint",
    "best_point_summary": "bestPointSummary",
    "purchase_timing": "purchaseTiming",
    "purchase_intent": "purchaseIntent",
    "purchase_planned": "purchasePlanned",
    "purchase_intent_combined": "purchaseIntentCombined",
    "buy_reason": "buyReason",
    "improvement": "improvement",
    "downside_summary": "downsideSummary",
    "judgement_reason": "judgementReason",
}


@dataclass(frozen=True)
class NormalizedSurveyRow:
    """Survey answers mapped onto canonical fields"""
    pmf: Optional[str] = None
    slight_reason: Optional[str] = None
    why_think: Optional[str] = None
    fit_score: Optional[float] = None
    fit_reason: Optional[str] = None
    best_point: Optional[str] = None
    best_point_summary: Optional[str] = None
    purchase_timing: Optional[str] = None
    purchase_intent: Optional[str] = None
    purchase_planned: TriState = TriState.UNKNOWN
    purchase_intent_combined: Optional[str] = None
    buy_reason: Optional[str] = None
    improvement: Optional[str] = None
    downside_summary: Optional[str] = None
    judgement_reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Wire form with camelCase keys; unset text fields are omitted"""
        result: Dict[str, Any] = {}
        for name, key in NORMALIZED_FIELD_KEYS.items():
            value = getattr(self, name)
            if name == "purchase_planned":
                result[key] = value.to_optional()
            elif name == "fit_score":
                result[key] = value
            elif value is not None:
                result[key] = value
        return result


@dataclass(frozen=True)
class RawEntry:
    """One CSV cell with its original header and position"""
    header: str
    value: str
    column_index: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "header": self.header,
            "value": self.value,
            "columnIndex": self.column_index,
        }


@dataclass(frozen=True)
class ClassifierInput:
    """Everything needed to classify one survey row"""
    row_index: int
    normalized: NormalizedSurveyRow
    raw_data: Dict[str, str]
    raw_entries: List[RawEntry] = field(default_factory=list)
    user_criteria: Optional[str] = None
    core_value: Optional[str] = None
    abuser_criteria: Optional[str] = None
    discovery_criteria: Optional[str] = None

    @property
    def allowed_headers(self) -> List[str]:
        return [entry.header for entry in self.raw_entries]


@dataclass(frozen=True)
class ClassifierVote:
    """One model sample's opinion"""
    label: ClassificationLabel
    rationale: str
    warning_signals: List[str] = field(default_factory=list)
    used_columns: List[str] = field(default_factory=list)
    is_abuser: TriState = TriState.UNKNOWN
    abuser_reason: Optional[str] = None
    core_value_understood: TriState = TriState.UNKNOWN
    core_value_reason: Optional[str] = None
    normalized_data: NormalizedSurveyRow = field(default_factory=NormalizedSurveyRow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "label": self.label.value,
            "rationale": self.rationale,
            "warningSignals": list(self.warning_signals),
            "usedColumns": list(self.used_columns),
            "isAbuser": self.is_abuser.to_optional(),
            "abuserReason": self.abuser_reason,
            "coreValueUnderstood": self.core_value_understood.to_optional(),
            "coreValueReason": self.core_value_reason,
            "normalizedData": self.normalized_data.to_dict(),
        }


@dataclass(frozen=True)
class ClassifierResult:
    """Reconciled classification of one row"""
    final_label: ClassificationLabel
    confidence: float
    rationale: str
    warning_signals: List[str]
    is_abuser: bool
    is_discovery_type: bool
    normalized_data: NormalizedSurveyRow
    used_columns: List[str]
    core_value_understood: TriState
    core_value_reason: Optional[str]
    votes: List[ClassifierVote]
    latency_ms: int
