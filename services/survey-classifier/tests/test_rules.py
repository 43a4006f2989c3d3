"""
Unit tests for the business rule engine
"""

import pytest

from app.classifier.config import ClassifierConfig
from app.classifier.models import (
    ClassificationLabel,
    ClassifierVote,
    NormalizedSurveyRow,
    TriState,
)
from app.classifier.rules import (
    ABUSER_SIGNAL,
    DISCOVERY_SIGNAL,
    BusinessRuleEngine,
    LlmAbuseVerdict,
)

PRE_VD = ClassificationLabel.PRE_VD
VSD = ClassificationLabel.VSD
NSD = ClassificationLabel.NSD
ND = ClassificationLabel.ND

# Free text long enough to never look abusive
THOUGHTFUL = "추천 상품이 제 취향과 정확히 맞아서 바로 장바구니에 담았습니다"


def abuse_vote(is_abuser, reason=None):
    return ClassifierVote(
        label=VSD,
        rationale="r",
        is_abuser=TriState.from_value(is_abuser),
        abuser_reason=reason,
    )


class TestCoreValueRules:
    """Test cases for core-value label coercion"""

    def setup_method(self):
        """Set up test fixtures"""
        self.engine = BusinessRuleEngine(ClassifierConfig())

    def test_understood_lifts_nd_to_vsd(self):
        """Test ND becomes VSD when the core value was understood"""
        label = self.engine.apply_core_value_rules(ND, NormalizedSurveyRow(), TriState.TRUE)
        assert label == VSD

    def test_understood_lifts_nsd_to_vsd(self):
        """Test NSD becomes VSD when the core value was understood"""
        label = self.engine.apply_core_value_rules(NSD, NormalizedSurveyRow(), TriState.TRUE)
        assert label == VSD

    def test_understood_keeps_positive_labels(self):
        """Test PRE_VD passes through when the core value was understood"""
        label = self.engine.apply_core_value_rules(PRE_VD, NormalizedSurveyRow(), TriState.TRUE)
        assert label == PRE_VD

    @pytest.mark.parametrize("pmf,expected", [
        ("별로 아쉽지 않음", ND),
        ("조금 아쉬움", NSD),
        ("매우 아쉬움", NSD),
        (None, NSD),
    ])
    def test_not_understood_splits_by_regret(self, pmf, expected):
        """Test NSD/ND split by the regret signal when not understood"""
        label = self.engine.apply_core_value_rules(
            PRE_VD, NormalizedSurveyRow(pmf=pmf), TriState.FALSE
        )
        assert label == expected

    @pytest.mark.parametrize("label", list(ClassificationLabel))
    def test_unknown_passes_through(self, label):
        """Test labels are unchanged without a core-value verdict"""
        assert self.engine.apply_core_value_rules(
            label, NormalizedSurveyRow(), TriState.UNKNOWN
        ) == label


class TestRuleBasedAbuse:
    """Test cases for detect_abuser"""

    def setup_method(self):
        """Set up test fixtures"""
        self.engine = BusinessRuleEngine(ClassifierConfig())

    def test_no_answers_is_abuser(self):
        """Test zero free-text answers flags an abuser"""
        assert self.engine.detect_abuser(NormalizedSurveyRow()) is True

    def test_whitespace_only_answers_are_ignored(self):
        """Test blank answers count as missing"""
        assert self.engine.detect_abuser(NormalizedSurveyRow(best_point="   ")) is True

    def test_single_short_answer(self):
        """Test a single 5-character answer flags an abuser"""
        assert self.engine.detect_abuser(NormalizedSurveyRow(best_point="좋아요요요")) is True

    def test_single_long_answer(self):
        """Test a single 15-character answer is not abuse"""
        row = NormalizedSurveyRow(best_point="a" * 15)
        assert self.engine.detect_abuser(row) is False

    def test_single_answer_length_ignores_whitespace(self):
        """Test inner whitespace does not count toward length"""
        row = NormalizedSurveyRow(best_point="a b c d e f g h i")
        assert self.engine.detect_abuser(row) is True

    def test_mostly_short_answers(self):
        """Test many short answers with a low mean flag an abuser"""
        row = NormalizedSurveyRow(
            best_point="좋음",
            downside_summary="없음",
            improvement="없음",
            buy_reason="그냥",
        )
        assert self.engine.detect_abuser(row) is True

    def test_short_answers_with_high_mean(self):
        """Test both thresholds must hold: a long answer lifts the mean"""
        row = NormalizedSurveyRow(
            best_point="좋음",
            downside_summary="없음",
            improvement="없음",
            buy_reason="a" * 80,
        )
        # 3/4 short, but mean length is 21.5
        assert self.engine.detect_abuser(row) is False

    def test_thoughtful_answers(self):
        """Test detailed answers are not abuse"""
        row = NormalizedSurveyRow(best_point=THOUGHTFUL, why_think=THOUGHTFUL)
        assert self.engine.detect_abuser(row) is False


class TestModelBasedAbuse:
    """Test cases for detect_abuser_by_llm"""

    def setup_method(self):
        """Set up test fixtures"""
        self.engine = BusinessRuleEngine(ClassifierConfig())

    def test_no_opinions(self):
        """Test votes without an opinion give no abuse signal"""
        verdict = self.engine.detect_abuser_by_llm([abuse_vote(None), abuse_vote(None)])
        assert verdict == LlmAbuseVerdict(is_abuser=False, reason=None)

    def test_exact_half_counts_as_abuse(self):
        """Test a 50/50 split is treated as abuse"""
        verdict = self.engine.detect_abuser_by_llm([
            abuse_vote(False, "성실함"),
            abuse_vote(True, "복붙 응답"),
        ])
        assert verdict.is_abuser is True
        assert verdict.reason == "복붙 응답"

    def test_unknown_votes_are_excluded(self):
        """Test the ratio only counts opinionated votes"""
        verdict = self.engine.detect_abuser_by_llm([
            abuse_vote(None),
            abuse_vote(False, "성실함"),
            abuse_vote(None),
        ])
        assert verdict.is_abuser is False
        assert verdict.reason == "성실함"

    def test_reason_from_first_agreeing_vote(self):
        """Test the reason comes from the first vote matching the verdict"""
        verdict = self.engine.detect_abuser_by_llm([
            abuse_vote(False, "성실함"),
            abuse_vote(True, None),
            abuse_vote(True, "짧은 답변"),
        ])
        assert verdict.is_abuser is True
        assert verdict.reason is None


class TestDiscoveryType:
    """Test cases for detect_discovery_type"""

    def setup_method(self):
        """Set up test fixtures"""
        self.engine = BusinessRuleEngine(ClassifierConfig())

    def test_canonical_phrase(self):
        """Test the canonical discovery phrase is detected"""
        row = NormalizedSurveyRow(purchase_timing="구체적인 구매 계획은 없지만 정보가 궁금했습니다")
        assert self.engine.detect_discovery_type(row, []) is True

    def test_canonical_phrase_with_extra_whitespace(self):
        """Test whitespace is collapsed before matching"""
        row = NormalizedSurveyRow(purchase_timing="구체적인  구매\n계획은 없지만 정보가 궁금했습니다")
        assert self.engine.detect_discovery_type(row, []) is True

    def test_pattern_pair(self):
        """Test no-plan and curiosity patterns together"""
        row = NormalizedSurveyRow(purchase_timing="구매 시기 미정, 정보만 궁금해서 참여")
        assert self.engine.detect_discovery_type(row, []) is True

    def test_no_plan_alone(self):
        """Test a no-plan answer without curiosity is not discovery"""
        row = NormalizedSurveyRow(purchase_timing="구매 계획 없음")
        assert self.engine.detect_discovery_type(row, []) is False

    def test_existing_signal(self):
        """Test a model-supplied discovery signal is enough"""
        assert self.engine.detect_discovery_type(
            NormalizedSurveyRow(), ["디스커버리형 응답자"]
        ) is True

    def test_no_timing(self):
        """Test missing purchase timing is not discovery"""
        assert self.engine.detect_discovery_type(NormalizedSurveyRow(), []) is False


class TestApply:
    """Test cases for the combined rule pass"""

    def setup_method(self):
        """Set up test fixtures"""
        self.engine = BusinessRuleEngine(ClassifierConfig())

    def test_signals_are_appended_once(self):
        """Test synthesized signals are appended in order without duplicates"""
        representative = ClassifierVote(
            label=VSD,
            rationale="r",
            warning_signals=[ABUSER_SIGNAL],
            is_abuser=TriState.TRUE,
            abuser_reason="짧은 답변",
        )
        normalized = NormalizedSurveyRow(
            purchase_timing="구체적인 구매 계획은 없지만 정보가 궁금했습니다"
        )

        outcome = self.engine.apply(VSD, representative, normalized, [representative])

        assert outcome.is_abuser is True
        assert outcome.is_discovery_type is True
        assert outcome.warning_signals == [
            ABUSER_SIGNAL,
            "LLM 어뷰저 판단: 짧은 답변",
            DISCOVERY_SIGNAL,
        ]

    def test_rule_abuse_alone_is_enough(self):
        """Test the final abuse flag is rule OR model"""
        representative = ClassifierVote(label=PRE_VD, rationale="r", is_abuser=TriState.FALSE)
        outcome = self.engine.apply(PRE_VD, representative, NormalizedSurveyRow(), [representative])
        assert outcome.is_abuser is True
        assert outcome.label == PRE_VD

    def test_without_representative(self):
        """Test rules run on caller data when there are no votes"""
        normalized = NormalizedSurveyRow(best_point=THOUGHTFUL, why_think=THOUGHTFUL)
        outcome = self.engine.apply(ND, None, normalized, [])
        assert outcome.label == ND
        assert outcome.is_abuser is False
        assert outcome.warning_signals == []
