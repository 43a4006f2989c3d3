"""
Majority vote over self-consistency samples
"""
from collections import Counter
from dataclasses import dataclass
from typing import List, Optional, Sequence

from .models import ClassificationLabel, ClassifierVote

# Ties resolve to the most conservative label
TIE_BREAKER_ORDER: List[ClassificationLabel] = [
    ClassificationLabel.ND,
    ClassificationLabel.NSD,
    ClassificationLabel.VSD,
    ClassificationLabel.PRE_VD,
]


@dataclass(frozen=True)
class MajorityVote:
    label: ClassificationLabel
    confidence: float


def select_by_majority(votes: Sequence[ClassifierVote]) -> MajorityVote:
    """
    Pick the most frequent label.

    Confidence is the share of votes carrying the winning label; an empty
    vote set yields ND with confidence 0.
    """
    if not votes:
        return MajorityVote(label=ClassificationLabel.ND, confidence=0.0)

    counts = Counter(vote.label for vote in votes)
    top_count = max(counts.values())
    tied = [label for label in TIE_BREAKER_ORDER if counts.get(label, 0) == top_count]

    return MajorityVote(label=tied[0], confidence=top_count / len(votes))


def select_representative(
    votes: Sequence[ClassifierVote],
    label: ClassificationLabel
) -> Optional[ClassifierVote]:
    """First vote in round order agreeing with the label, else the first vote"""
    for vote in votes:
        if vote.label == label:
            return vote
    return votes[0] if votes else None
