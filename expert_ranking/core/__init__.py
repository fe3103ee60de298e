"""Core components for the expert ranking engine."""

from .models import (
    ExpertMention, Fact, ReadingListItem, EvidenceProfile, RankedExpert,
    ExpertSource, Brainlift, ExpertRankingConfig
)
from .name_normalizer import normalize, split_co_authors
from .roster_parser import RosterParser, parse_roster
from .citation_counter import count_mentions
from .profile_builder import (
    CitationOverrides, EvidenceProfileBuilder, build_profiles, CURATED_CITATION_OVERRIDES
)
from .scoring import ImpactScoreEstimator, ScoreDecomposition, estimate_score
from .ranking_oracle import (
    RankingOracle, LLMRankingOracle, RankingOracleAdapter, RankingOracleError, OracleRequest
)
from .expert_store import InMemoryStorage
from .expert_ranker import ExpertRanker

__all__ = [
    # Models
    "ExpertMention", "Fact", "ReadingListItem", "EvidenceProfile", "RankedExpert",
    "ExpertSource", "Brainlift", "ExpertRankingConfig",

    # Pipeline functions
    "normalize", "split_co_authors", "parse_roster", "count_mentions",
    "build_profiles", "estimate_score", "CURATED_CITATION_OVERRIDES",

    # Core components
    "RosterParser", "CitationOverrides", "EvidenceProfileBuilder",
    "ImpactScoreEstimator", "ScoreDecomposition", "RankingOracle",
    "LLMRankingOracle", "RankingOracleAdapter", "RankingOracleError",
    "OracleRequest", "InMemoryStorage", "ExpertRanker",
]
