"""Expert evidence aggregation and ranking for brainlift documents.

This module ranks the experts a brainlift document relies on. It parses the
document's "DOK1: Experts" roster, counts how often each expert is cited by the
fact base, the reading list and the document text, and turns that evidence
into a 1-10 impact score.

Main components:
- Name normalization and co-author splitting
- Roster parsing of "- Expert N" blocks (Who / Where / Focus)
- Evidence profiles combining fact, content and reading-list citations
- Deterministic impact score estimator
- Ranking oracle adapter delegating final scores to an LLM, with fallback
"""

from .core import (
    ExpertRanker, ExpertRankingConfig, EvidenceProfile, RankedExpert, InMemoryStorage
)

__all__ = [
    "ExpertRanker",
    "ExpertRankingConfig",
    "EvidenceProfile",
    "RankedExpert",
    "InMemoryStorage",
]

__version__ = "1.0.0"
