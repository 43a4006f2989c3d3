"""
Self-consistency classification of survey responses
"""
from .models import (
    ClassificationLabel,
    ClassifierInput,
    ClassifierResult,
    ClassifierVote,
    NormalizedSurveyRow,
    RawEntry,
    TriState,
)
from .config import ClassifierConfig

__all__ = [
    'ClassificationLabel',
    'ClassifierInput',
    'ClassifierResult',
    'ClassifierVote',
    'NormalizedSurveyRow',
    'RawEntry',
    'TriState',
    'ClassifierConfig',
]
