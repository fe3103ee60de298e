"""Deterministic impact score estimation for evidence profiles."""

import math
from dataclasses import asdict, dataclass
from typing import Dict, Sequence

import numpy as np

from .models import MAX_RANK_SCORE, MIN_RANK_SCORE, EvidenceProfile


@dataclass
class ScoreDecomposition:
    """Breakdown of a fallback impact score into its components."""
    name: str
    base_score: float
    citation_weight: float
    citation_bonus: float
    score5_weight: float
    raw_score: float
    final_score: int

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


class ImpactScoreEstimator:
    """Fallback scorer used when the ranking oracle is unavailable."""

    def __init__(self,
                 listed_base: float = 6.0,
                 unlisted_base: float = 3.0,
                 max_citation_bonus: float = 4.0,
                 score5_increment: float = 0.5):
        """Initialize estimator with scoring parameters.

        Args:
            listed_base: Base score for experts named in the roster section
            unlisted_base: Base score for experts found only in text
            max_citation_bonus: Bonus reached by the most-cited expert of the batch
            score5_increment: Bonus per score-5 fact citing the expert
        """
        if listed_base < unlisted_base:
            raise ValueError("listed_base must not be lower than unlisted_base")
        if max_citation_bonus < 0 or score5_increment < 0:
            raise ValueError("Score bonuses must be non-negative")

        self.listed_base = listed_base
        self.unlisted_base = unlisted_base
        self.max_citation_bonus = max_citation_bonus
        self.score5_increment = score5_increment

    def estimate_score(self, profile: EvidenceProfile, max_citations_in_batch: int) -> int:
        """Score a profile on the 1-10 scale relative to the batch maximum."""
        return self.explain_score(profile, max_citations_in_batch).final_score

    def explain_score(self, profile: EvidenceProfile, max_citations_in_batch: int) -> ScoreDecomposition:
        """Compute the fallback score and keep every intermediate term.

        Formula: base + min(4 * citations / max_citations, 4) + 0.5 * score5_citations
        """
        base_score = self.listed_base if profile.is_in_dok1_section else self.unlisted_base
        citation_weight = profile.total_citations / max(max_citations_in_batch, 1)
        citation_bonus = min(citation_weight * self.max_citation_bonus, self.max_citation_bonus)
        score5_weight = profile.score5_fact_citations * self.score5_increment

        raw_score = base_score + citation_bonus + score5_weight
        final_score = clamp_score(math.floor(raw_score + 0.5))

        return ScoreDecomposition(
            name=profile.canonical_name,
            base_score=base_score,
            citation_weight=citation_weight,
            citation_bonus=citation_bonus,
            score5_weight=score5_weight,
            raw_score=raw_score,
            final_score=final_score,
        )

    def get_score_statistics(self,
                             profiles: Sequence[EvidenceProfile],
                             max_citations_in_batch: int) -> Dict[str, Dict[str, float]]:
        """Descriptive statistics of fallback scores and citation counts."""
        if not profiles:
            return {}

        values = {
            'fallback_score': [self.estimate_score(p, max_citations_in_batch) for p in profiles],
            'total_citations': [p.total_citations for p in profiles],
            'score5_fact_citations': [p.score5_fact_citations for p in profiles],
        }

        stats = {}
        for metric_name, metric_values in values.items():
            stats[metric_name] = {
                'count': len(metric_values),
                'mean': float(np.mean(metric_values)),
                'median': float(np.median(metric_values)),
                'std': float(np.std(metric_values)),
                'min': float(np.min(metric_values)),
                'max': float(np.max(metric_values)),
                'q25': float(np.percentile(metric_values, 25)),
                'q75': float(np.percentile(metric_values, 75)),
            }

        return stats


def clamp_score(score: int) -> int:
    return max(MIN_RANK_SCORE, min(MAX_RANK_SCORE, int(score)))


def max_citations(profiles: Sequence[EvidenceProfile]) -> int:
    """Largest total citation count in the batch, never below 1."""
    return max([p.total_citations for p in profiles] + [1])


def estimate_score(profile: EvidenceProfile, max_citations_in_batch: int) -> int:
    """Module-level shortcut using the default estimator parameters."""
    return ImpactScoreEstimator().estimate_score(profile, max_citations_in_batch)
