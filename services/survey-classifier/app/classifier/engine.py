"""
SelfConsistencyClassifier - samples the model N times and reconciles the votes
"""
import asyncio
import logging
import time
from typing import List, Optional

from ..config import settings
from ..prompts.classifier import (
    CLASSIFIER_SYSTEM_PROMPT,
    PROMPT_VERSION,
    create_classifier_prompt,
)
from ..services.gemini_client import GeminiClient, get_gemini_client
from .aggregator import select_by_majority, select_representative
from .config import ClassifierConfig
from .models import ClassifierInput, ClassifierResult, ClassifierVote, TriState
from .parser import parse_vote
from .rules import BusinessRuleEngine

logger = logging.getLogger(__name__)

DEFAULT_RESULT_RATIONALE = "No rationale."


def get_model_name() -> str:
    return settings.GEMINI_MODEL


def get_prompt_version() -> str:
    return PROMPT_VERSION


def get_system_criteria() -> str:
    return CLASSIFIER_SYSTEM_PROMPT


class SelfConsistencyClassifier:
    """
    Classifies survey rows by majority vote over repeated model samples.

    Holds no per-call state, so one instance can serve many rows
    concurrently.
    """

    def __init__(
        self,
        client: Optional[GeminiClient] = None,
        config: Optional[ClassifierConfig] = None,
        parallel: Optional[bool] = None
    ):
        self.client = client or get_gemini_client()
        self.config = config or ClassifierConfig.from_env()
        self.parallel = settings.PARALLEL_SAMPLING if parallel is None else parallel
        self.rules = BusinessRuleEngine(self.config)

    def get_base_temperature(self, sample_count: int) -> float:
        """Single samples run near-deterministic; multiple samples must diverge"""
        if sample_count > 1:
            return self.config.multi_sample_temperature
        return self.config.single_sample_temperature

    def get_round_temperature(self, sample_count: int, sample_index: int) -> float:
        base = self.get_base_temperature(sample_count)
        return round(base + sample_index * self.config.temperature_step, 4)

    async def sample_vote(
        self,
        input: ClassifierInput,
        prompt: str,
        sample_index: int,
        temperature: float
    ) -> ClassifierVote:
        """Run one sampling round"""
        logger.debug(f"[row {input.row_index}] Round {sample_index} at temperature {temperature}")
        raw = await self.client.generate(prompt, temperature)
        logger.debug(f"[row {input.row_index}] Round {sample_index} response: {raw[:200]}")
        vote = parse_vote(raw, input.allowed_headers)
        logger.info(f"[row {input.row_index}] Round {sample_index} voted {vote.label.value}")
        return vote

    async def collect_votes(self, input: ClassifierInput, sample_count: int) -> List[ClassifierVote]:
        """
        Run every sampling round and return votes in round order.

        Temperatures are fixed per round index before dispatch. The first
        failing round aborts the whole collection.
        """
        prompt = create_classifier_prompt(input)
        temperatures = [
            self.get_round_temperature(sample_count, i) for i in range(sample_count)
        ]

        if not self.parallel:
            votes = []
            for i, temperature in enumerate(temperatures):
                votes.append(await self.sample_vote(input, prompt, i, temperature))
            return votes

        tasks = [
            asyncio.ensure_future(self.sample_vote(input, prompt, i, temperature))
            for i, temperature in enumerate(temperatures)
        ]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def classify(self, input: ClassifierInput, sample_count: int = 3) -> ClassifierResult:
        """
        Classify one survey row.

        Args:
            input: Row data and optional criteria
            sample_count: Number of independent model samples

        Returns:
            ClassifierResult with the full vote audit trail

        Raises:
            ClassifierError: Any sampling round failed
        """
        if sample_count < 1:
            raise ValueError(f"sample_count must be at least 1, got {sample_count}")

        start = time.monotonic()
        logger.info(f"[row {input.row_index}] Classifying with {sample_count} sample(s)")

        try:
            votes = await self.collect_votes(input, sample_count)
        except Exception as e:
            logger.error(f"[row {input.row_index}] Classification failed: {e}")
            raise

        majority = select_by_majority(votes)
        representative = select_representative(votes, majority.label)
        if representative is not None:
            normalized = representative.normalized_data
        else:
            normalized = input.normalized

        outcome = self.rules.apply(majority.label, representative, normalized, votes)
        latency_ms = int((time.monotonic() - start) * 1000)

        logger.info(
            f"[row {input.row_index}] Final label {outcome.label.value} "
            f"(majority {majority.label.value}, confidence {majority.confidence:.2f}, {latency_ms}ms)"
        )

        return ClassifierResult(
            final_label=outcome.label,
            confidence=round(majority.confidence, 4),
            rationale=representative.rationale if representative else DEFAULT_RESULT_RATIONALE,
            warning_signals=outcome.warning_signals,
            is_abuser=outcome.is_abuser,
            is_discovery_type=outcome.is_discovery_type,
            normalized_data=normalized,
            used_columns=list(representative.used_columns) if representative else [],
            core_value_understood=(
                representative.core_value_understood if representative else TriState.UNKNOWN
            ),
            core_value_reason=representative.core_value_reason if representative else None,
            votes=votes,
            latency_ms=latency_ms,
        )


# Global classifier instance
_classifier: Optional[SelfConsistencyClassifier] = None


def get_classifier() -> SelfConsistencyClassifier:
    """Get global classifier instance"""
    global _classifier
    if _classifier is None:
        _classifier = SelfConsistencyClassifier()
    return _classifier
