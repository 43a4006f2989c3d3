"""
Unit tests for model response parsing and sanitization
"""

import json
import math

import pytest

from app.classifier.models import ClassificationLabel, TriState
from app.classifier.parser import (
    DEFAULT_RATIONALE,
    extract_json_object,
    normalize_pmf,
    parse_vote,
    sanitize_fit_score,
    sanitize_normalized,
    sanitize_used_columns,
    to_label,
)
from app.exceptions import MalformedPayloadError


class TestExtractJsonObject:
    """Test cases for best-effort JSON extraction"""

    def test_strips_code_fence(self):
        """Test extracting JSON wrapped in a markdown fence"""
        text = 'Here you go:\n```json\n{"label": "VSD"}\n```'
        assert extract_json_object(text) == '{"label": "VSD"}'

    def test_keeps_nested_braces(self):
        """Test span runs from first '{' to last '}'"""
        text = 'x {"a": {"b": 1}} y'
        assert extract_json_object(text) == '{"a": {"b": 1}}'

    def test_returns_text_without_braces(self):
        """Test text without a brace pair passes through unchanged"""
        assert extract_json_object("no json here") == "no json here"

    def test_returns_text_with_inverted_braces(self):
        """Test '}' before '{' passes through unchanged"""
        assert extract_json_object("} oops {") == "} oops {"


class TestToLabel:
    """Test cases for label normalization"""

    @pytest.mark.parametrize("raw,expected", [
        ("PRE_VD", ClassificationLabel.PRE_VD),
        ("pre-vd", ClassificationLabel.PRE_VD),
        ("  vsd ", ClassificationLabel.VSD),
        ("Nsd", ClassificationLabel.NSD),
        ("ND", ClassificationLabel.ND),
        ("PRE VD", ClassificationLabel.ND),
        ("positive", ClassificationLabel.ND),
        ("", ClassificationLabel.ND),
    ])
    def test_label_mapping(self, raw, expected):
        """Test exact matches map to labels and everything else to ND"""
        assert to_label(raw) == expected

    @pytest.mark.parametrize("raw", [None, 3, ["VSD"], {"label": "VSD"}])
    def test_non_string_is_nd(self, raw):
        """Test non-string labels never raise"""
        assert to_label(raw) == ClassificationLabel.ND

    @pytest.mark.parametrize("raw", ["pre-vd", "vsd", "garbage", "", "n-s-d", "NSD"])
    def test_idempotent(self, raw):
        """Test applying to_label twice gives the same label"""
        assert to_label(to_label(raw)) == to_label(raw)


class TestSanitizers:
    """Test cases for individual field sanitizers"""

    def test_used_columns_allow_list_and_dedup(self):
        """Test unknown headers dropped, duplicates removed, order kept"""
        assert sanitize_used_columns(["A", "C", "A"], ["A", "B"]) == ["A"]

    def test_used_columns_trims_and_keeps_model_order(self):
        """Test headers are trimmed and ordered as the model listed them"""
        assert sanitize_used_columns([" B", "A ", None, ""], ["A", "B"]) == ["B", "A"]

    def test_used_columns_non_list(self):
        """Test a non-list value yields no columns"""
        assert sanitize_used_columns("A", ["A"]) == []

    @pytest.mark.parametrize("raw,expected", [
        (7, 7.0),
        (7.26, 7.3),
        (7.25, 7.3),
        (0.25, 0.3),
        (9.95, 10.0),
        (12, 10.0),
        (-3, 0.0),
        (math.inf, None),
        (math.nan, None),
        ("8", None),
        (True, None),
        (None, None),
    ])
    def test_fit_score(self, raw, expected):
        """Test fit score clamping, rounding and rejection"""
        assert sanitize_fit_score(raw) == expected

    @pytest.mark.parametrize("raw,expected", [
        ("매우 아쉬울 것 같아요", "매우 아쉬움"),
        ("조금 아쉬움", "조금 아쉬움"),
        ("별로 아쉽지 않음", "별로 아쉽지 않음"),
        ("모르겠음", None),
        ("   ", None),
        (None, None),
    ])
    def test_normalize_pmf(self, raw, expected):
        """Test regret answers map to canonical phrases"""
        assert normalize_pmf(raw) == expected

    def test_normalized_text_fields(self):
        """Test text fields are trimmed and empty strings become unset"""
        row = sanitize_normalized({
            "bestPoint": "  추천이 정확함 ",
            "improvement": "   ",
            "buyReason": 42,
            "purchasePlanned": "yes",
        })

        assert row.best_point == "추천이 정확함"
        assert row.improvement is None
        assert row.buy_reason is None
        assert row.purchase_planned is TriState.UNKNOWN

    def test_normalized_not_a_dict(self):
        """Test a non-object normalized block yields an empty row"""
        row = sanitize_normalized(["bestPoint"])
        assert row.best_point is None
        assert row.fit_score is None


class TestParseVote:
    """Test cases for parse_vote"""

    def setup_method(self):
        """Set up test fixtures"""
        self.headers = ["PMF", "좋았던 점", "구매시기"]

    def test_full_payload(self):
        """Test a well-formed payload becomes a sanitized vote"""
        raw = json.dumps({
            "label": "pre-vd",
            "rationale": " 구매의향이 강함 ",
            "warningSignals": ["조건부 구매"],
            "usedColumns": ["PMF", "없는 헤더", "PMF"],
            "isAbuser": False,
            "abuserReason": "성실한 응답",
            "coreValueUnderstood": True,
            "coreValueReason": "맞춤 추천을 이해함",
            "normalized": {"pmf": "매우 아쉬움", "fitScore": 9},
        }, ensure_ascii=False)

        vote = parse_vote(raw, self.headers)

        assert vote.label == ClassificationLabel.PRE_VD
        assert vote.rationale == "구매의향이 강함"
        assert vote.warning_signals == ["조건부 구매"]
        assert vote.used_columns == ["PMF"]
        assert vote.is_abuser is TriState.FALSE
        assert vote.core_value_understood is TriState.TRUE
        assert vote.normalized_data.pmf == "매우 아쉬움"
        assert vote.normalized_data.fit_score == 9.0

    def test_minimal_payload_defaults(self):
        """Test missing fields degrade to conservative defaults"""
        vote = parse_vote('{"isAbuser": "true", "coreValueUnderstood": null}', self.headers)

        assert vote.label == ClassificationLabel.ND
        assert vote.rationale == DEFAULT_RATIONALE
        assert vote.warning_signals == []
        assert vote.used_columns == []
        assert vote.is_abuser is TriState.UNKNOWN
        assert vote.core_value_understood is TriState.UNKNOWN
        assert vote.abuser_reason is None

    def test_payload_wrapped_in_prose(self):
        """Test JSON surrounded by prose is still decoded"""
        vote = parse_vote('결과입니다: {"label": "NSD"} 감사합니다', self.headers)
        assert vote.label == ClassificationLabel.NSD

    def test_invalid_json_raises(self):
        """Test undecodable text surfaces as MalformedPayloadError"""
        with pytest.raises(MalformedPayloadError) as exc_info:
            parse_vote("label: VSD", self.headers)
        assert exc_info.value.raw_text == "label: VSD"

    def test_non_object_json_raises(self):
        """Test a JSON array is rejected rather than guessed at"""
        with pytest.raises(MalformedPayloadError):
            parse_vote('["VSD"]', self.headers)
