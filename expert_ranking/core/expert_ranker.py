"""Main orchestrator for ranking the experts cited by a brainlift."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from .expert_store import InMemoryStorage
from .models import (
    Brainlift, EvidenceProfile, ExpertMention, ExpertRankingConfig, Fact,
    RankedExpert, ReadingListItem,
)
from .name_normalizer import name_key
from .profile_builder import CitationOverrides, EvidenceProfileBuilder
from .ranking_oracle import LLMRankingOracle, RankingOracle, RankingOracleAdapter
from .roster_parser import RosterParser
from .scoring import ImpactScoreEstimator, max_citations

logger = logging.getLogger(__name__)


class ExpertRanker:
    """Runs roster parsing, evidence aggregation and ranking for one document at a time."""

    def __init__(self,
                 config: Optional[ExpertRankingConfig] = None,
                 oracle: Optional[RankingOracle] = None,
                 overrides: Optional[CitationOverrides] = None):
        """Initialize with configuration.

        Args:
            config: Ranking configuration; defaults to ExpertRankingConfig.from_env()
            oracle: Ranking oracle; built from config when it carries an API key
            overrides: Citation override layer; loaded from config.overrides_path if unset
        """
        self.config = config or ExpertRankingConfig.from_env()

        if overrides is None and self.config.overrides_path:
            overrides = CitationOverrides.from_json(self.config.overrides_path)
        if oracle is None and self.config.oracle_enabled:
            oracle = LLMRankingOracle(self.config)

        # Initialize components
        self.parser = RosterParser(window=self.config.roster_window)
        self.profile_builder = EvidenceProfileBuilder(overrides)
        self.estimator = ImpactScoreEstimator()
        self.adapter = RankingOracleAdapter(oracle, self.estimator)

        # Results of the last run
        self.mentions: List[ExpertMention] = []
        self.profiles: List[EvidenceProfile] = []
        self.max_citations = 1
        self.rankings: List[RankedExpert] = []

    def rank_document(self,
                      brainlift_id: int,
                      title: str,
                      description: str,
                      document_text: str,
                      facts: Sequence[Fact],
                      reading_list: Sequence[ReadingListItem]) -> List[RankedExpert]:
        """Run the complete ranking pipeline for one document."""
        logger.info(f"Starting expert ranking for brainlift {brainlift_id}")

        # Step 1: Parse the expert roster
        self.mentions = self.parser.parse(document_text or "")
        logger.info(f"Experts from document DOK1 section: {[m.name for m in self.mentions]}")

        # Step 2: Aggregate citation evidence
        self.profiles = self.profile_builder.build_profiles(
            self.mentions, facts, document_text or "", reading_list
        )
        self.max_citations = max_citations(self.profiles)

        for profile in self.profiles:
            suggested = self.estimator.estimate_score(profile, self.max_citations)
            logger.info(
                f"Expert {profile.canonical_name}: facts={profile.fact_citations}, "
                f"notes={profile.note_citations}, sources={profile.source_citations}, "
                f"score5={profile.score5_fact_citations}, suggested={suggested}"
            )

        # Step 3: Rank through the oracle or the estimator
        self.rankings = self.adapter.rank(
            self.profiles,
            {"title": title or "", "description": description or ""},
            brainlift_id=brainlift_id,
        )

        stats = self.estimator.get_score_statistics(self.profiles, self.max_citations)
        logger.debug(f"Score statistics: {stats}")
        logger.info(
            f"Ranking complete. {len(self.rankings)} experts "
            f"({'fallback estimator' if self.adapter.last_used_fallback else 'ranking oracle'})"
        )
        return self.rankings

    def refresh(self, brainlift: Brainlift, store: InMemoryStorage) -> List[RankedExpert]:
        """Re-rank a stored brainlift and replace its expert set."""
        rankings = self.rank_document(
            brainlift_id=brainlift.id,
            title=brainlift.title,
            description=brainlift.description,
            document_text=brainlift.original_content,
            facts=brainlift.facts,
            reading_list=brainlift.reading_list,
        )
        return store.save_experts(brainlift.id, rankings)

    def get_top_experts(self, n: int = 10) -> List[RankedExpert]:
        """Get top N experts by rank score."""
        return self.rankings[:n]

    def get_profile(self, name: str) -> Optional[EvidenceProfile]:
        key = name_key(name)
        for profile in self.profiles:
            if profile.key == key:
                return profile
        return None

    def get_expert_explanation(self, name: str) -> Optional[Dict[str, Any]]:
        """Explain the evidence and fallback score behind one expert.

        Args:
            name: Canonical name of the expert (case-insensitive)

        Returns:
            Dictionary with evidence counts and score decomposition, or None if unknown
        """
        profile = self.get_profile(name)
        if profile is None:
            return None

        ranking = next((r for r in self.rankings if name_key(r.name) == profile.key), None)
        decomposition = self.estimator.explain_score(profile, self.max_citations)

        return {
            'name': profile.canonical_name,
            'rank_score': ranking.rank_score if ranking else None,
            'rationale': ranking.rationale if ranking else None,
            'evidence': {
                'fact_citations': profile.fact_citations,
                'note_citations': profile.note_citations,
                'source_citations': profile.source_citations,
                'reading_list_mentions': profile.reading_list_mentions,
                'score5_fact_citations': profile.score5_fact_citations,
                'is_in_dok1_section': profile.is_in_dok1_section,
            },
            'max_citations_in_batch': self.max_citations,
            'fallback_score': decomposition.to_dict(),
        }

    def export_results(self, output_path: str, format: str = 'csv') -> None:
        """Export results to file.

        Args:
            output_path: Path to output file
            format: Export format ('csv', 'json', 'summary_json', 'explanations')
                   - summary_json includes only name, rank score and source
                   - explanations provides evidence and score breakdowns per expert
        """
        if not self.rankings:
            raise ValueError("No rankings available. Run rank_document() first.")

        output_path = Path(output_path)

        if format.lower() == 'explanations':
            explanations = {r.name: self.get_expert_explanation(r.name) for r in self.rankings}
            with open(output_path, 'w', encoding='utf-8') as f:
                json.dump(explanations, f, indent=2, ensure_ascii=False, default=str)
            logger.info(f"Explanations exported to {output_path}")
            return

        if format.lower() == 'summary_json':
            df = self._create_summary_dataframe()
        else:
            df = self._rankings_to_dataframe()

        if format.lower() == 'csv':
            df.to_csv(output_path, index=False)
        elif format.lower() in ['json', 'summary_json']:
            df.to_json(output_path, orient='records', indent=2, force_ascii=False)
        else:
            raise ValueError(f"Unsupported format: {format}")

        logger.info(f"Results exported to {output_path} (format: {format})")

    def _rankings_to_dataframe(self) -> pd.DataFrame:
        """Convert rankings joined with their evidence to a DataFrame."""
        data = []
        for rank, expert in enumerate(self.rankings, 1):
            profile = self.get_profile(expert.name)
            data.append({
                'rank': rank,
                'name': expert.name,
                'rank_score': expert.rank_score,
                'source': expert.source.value,
                'twitter_handle': expert.twitter_handle,
                'is_following': expert.is_following,
                'rationale': expert.rationale,
                'fact_citations': profile.fact_citations if profile else None,
                'reading_list_mentions': profile.reading_list_mentions if profile else None,
                'score5_fact_citations': profile.score5_fact_citations if profile else None,
            })

        return pd.DataFrame(data)

    def _create_summary_dataframe(self) -> pd.DataFrame:
        data = []
        for rank, expert in enumerate(self.rankings, 1):
            data.append({
                'rank': rank,
                'name': expert.name,
                'rank_score': expert.rank_score,
                'source': expert.source.value,
            })

        return pd.DataFrame(data)
