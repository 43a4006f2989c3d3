"""
Configuration for the self-consistency classifier
"""
import os
from dataclasses import dataclass


@dataclass(frozen=True)
class ClassifierConfig:
    """Sampling temperatures and business-rule thresholds"""

    # Sampling temperatures
    single_sample_temperature: float = 0.1
    multi_sample_temperature: float = 0.35
    temperature_step: float = 0.02

    # Rule-based abuse detection (lengths exclude whitespace)
    single_answer_min_length: int = 10
    short_answer_length: int = 12
    short_answer_ratio: float = 0.7
    min_average_length: float = 18.0

    # Model-based abuse detection
    llm_abuse_ratio: float = 0.5

    @classmethod
    def from_env(cls) -> 'ClassifierConfig':
        """Create config from environment variables"""
        return cls(
            single_sample_temperature=float(os.getenv("CLASSIFIER_SINGLE_TEMPERATURE", "0.1")),
            multi_sample_temperature=float(os.getenv("CLASSIFIER_MULTI_TEMPERATURE", "0.35")),
            temperature_step=float(os.getenv("CLASSIFIER_TEMPERATURE_STEP", "0.02")),

            single_answer_min_length=int(os.getenv("CLASSIFIER_SINGLE_ANSWER_MIN_LENGTH", "10")),
            short_answer_length=int(os.getenv("CLASSIFIER_SHORT_ANSWER_LENGTH", "12")),
            short_answer_ratio=float(os.getenv("CLASSIFIER_SHORT_ANSWER_RATIO", "0.7")),
            min_average_length=float(os.getenv("CLASSIFIER_MIN_AVERAGE_LENGTH", "18")),

            llm_abuse_ratio=float(os.getenv("CLASSIFIER_LLM_ABUSE_RATIO", "0.5")),
        )
