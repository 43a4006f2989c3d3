"""
Business rules applied after the majority vote
Deterministic; no model calls happen here
"""
import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence

from .config import ClassifierConfig
from .models import ClassificationLabel, ClassifierVote, NormalizedSurveyRow, TriState
from .parser import PMF_NOT_DISAPPOINTED, PMF_SOMEWHAT_DISAPPOINTED

logger = logging.getLogger(__name__)

ABUSER_SIGNAL = "어뷰저 의심"
DISCOVERY_SIGNAL = "디스커버리형"
LLM_ABUSER_SIGNAL_PREFIX = "LLM 어뷰저 판단: "

DISCOVERY_PHRASE = "구체적인 구매 계획은 없지만 정보가 궁금했습니다"
NO_PLAN_PATTERN = re.compile(r"구매\s*계획.*없|계획.*없음|미정|없습니다")
CURIOSITY_PATTERN = re.compile(r"정보.*궁금")

# Free-text answers inspected by the rule-based abuse check
SUBJECTIVE_FIELDS = [
    "best_point_summary",
    "best_point",
    "downside_summary",
    "slight_reason",
    "fit_reason",
    "buy_reason",
    "improvement",
    "judgement_reason",
    "why_think",
]

_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class LlmAbuseVerdict:
    is_abuser: bool
    reason: Optional[str] = None


@dataclass(frozen=True)
class RuleOutcome:
    label: ClassificationLabel
    is_abuser: bool
    is_discovery_type: bool
    warning_signals: List[str]


def meaningful_length(text: str) -> int:
    return len(_WHITESPACE.sub("", text))


class BusinessRuleEngine:
    """Post-processing rules layered on the aggregated label"""

    def __init__(self, config: Optional[ClassifierConfig] = None):
        self.config = config or ClassifierConfig()

    def apply_core_value_rules(
        self,
        label: ClassificationLabel,
        normalized: NormalizedSurveyRow,
        core_value_understood: TriState
    ) -> ClassificationLabel:
        """
        Keep the label consistent with the core-value verdict.

        Without core-value understanding only NSD/ND are admissible, split by
        the regret signal. With it, NSD/ND are lifted to VSD.
        """
        if core_value_understood is TriState.FALSE:
            if normalized.pmf == PMF_NOT_DISAPPOINTED:
                return ClassificationLabel.ND
            if normalized.pmf == PMF_SOMEWHAT_DISAPPOINTED:
                return ClassificationLabel.NSD
            return ClassificationLabel.NSD

        if core_value_understood is TriState.TRUE and label in (
            ClassificationLabel.NSD, ClassificationLabel.ND
        ):
            return ClassificationLabel.VSD

        return label

    def detect_abuser(self, normalized: NormalizedSurveyRow) -> bool:
        """Flag respondents whose free-text answers are missing or too short"""
        answers = []
        for name in SUBJECTIVE_FIELDS:
            text = (getattr(normalized, name) or "").strip()
            if text:
                answers.append(text)

        if not answers:
            return True

        lengths = [meaningful_length(answer) for answer in answers]
        if len(lengths) == 1:
            return lengths[0] < self.config.single_answer_min_length

        short_count = sum(1 for length in lengths if length < self.config.short_answer_length)
        average_length = sum(lengths) / len(lengths)
        return (
            short_count / len(lengths) >= self.config.short_answer_ratio
            and average_length < self.config.min_average_length
        )

    def detect_abuser_by_llm(self, votes: Sequence[ClassifierVote]) -> LlmAbuseVerdict:
        """Majority of the votes that expressed an abuse opinion; ties count as abuse"""
        decisions = [vote for vote in votes if vote.is_abuser is not TriState.UNKNOWN]
        if not decisions:
            return LlmAbuseVerdict(is_abuser=False)

        positive = sum(1 for vote in decisions if vote.is_abuser is TriState.TRUE)
        is_abuser = positive / len(decisions) >= self.config.llm_abuse_ratio
        verdict = TriState.from_value(is_abuser)
        reason = next(
            (vote.abuser_reason for vote in decisions if vote.is_abuser is verdict),
            None
        )
        return LlmAbuseVerdict(is_abuser=is_abuser, reason=reason)

    def detect_discovery_type(
        self,
        normalized: NormalizedSurveyRow,
        warning_signals: Sequence[str]
    ) -> bool:
        """Respondents browsing for information without a purchase plan"""
        if any(DISCOVERY_SIGNAL in signal for signal in warning_signals):
            return True

        purchase_timing = _WHITESPACE.sub(" ", normalized.purchase_timing or "").strip()
        if not purchase_timing:
            return False

        if DISCOVERY_PHRASE in purchase_timing:
            return True

        has_no_plan = NO_PLAN_PATTERN.search(purchase_timing) is not None
        has_curiosity = CURIOSITY_PATTERN.search(purchase_timing) is not None
        return has_no_plan and has_curiosity

    def assemble_warning_signals(
        self,
        base_signals: Sequence[str],
        llm_verdict: LlmAbuseVerdict,
        is_abuser: bool,
        is_discovery_type: bool
    ) -> List[str]:
        signals = list(base_signals)

        def append_once(signal: str):
            if signal not in signals:
                signals.append(signal)

        if llm_verdict.reason:
            append_once(f"{LLM_ABUSER_SIGNAL_PREFIX}{llm_verdict.reason}")
        if is_abuser:
            append_once(ABUSER_SIGNAL)
        if is_discovery_type:
            append_once(DISCOVERY_SIGNAL)
        return signals

    def apply(
        self,
        label: ClassificationLabel,
        representative: Optional[ClassifierVote],
        normalized: NormalizedSurveyRow,
        votes: Sequence[ClassifierVote]
    ) -> RuleOutcome:
        """
        Run every rule against the representative vote.

        Args:
            label: Majority label before any coercion
            representative: Vote supplying the detail fields, if any
            normalized: Normalized data selected for the result
            votes: All votes in round order

        Returns:
            RuleOutcome with the final label, flags and warning signals
        """
        core_value_understood = (
            representative.core_value_understood if representative else TriState.UNKNOWN
        )
        base_signals = representative.warning_signals if representative else []

        final_label = self.apply_core_value_rules(label, normalized, core_value_understood)
        if final_label != label:
            logger.info(f"Core-value rule changed label {label.value} -> {final_label.value}")

        rule_abuser = self.detect_abuser(normalized)
        llm_verdict = self.detect_abuser_by_llm(votes)
        is_abuser = rule_abuser or llm_verdict.is_abuser
        is_discovery_type = self.detect_discovery_type(normalized, base_signals)

        if is_abuser:
            logger.info(f"Abuser flagged (rule={rule_abuser}, llm={llm_verdict.is_abuser})")

        warning_signals = self.assemble_warning_signals(
            base_signals, llm_verdict, is_abuser, is_discovery_type
        )
        return RuleOutcome(
            label=final_label,
            is_abuser=is_abuser,
            is_discovery_type=is_discovery_type,
            warning_signals=warning_signals,
        )
