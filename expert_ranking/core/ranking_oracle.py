"""Delegation of final expert scores to an external ranking oracle, with fallback."""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .models import (
    MAX_RANK_SCORE, MIN_RANK_SCORE, EvidenceProfile, ExpertRankingConfig,
    ExpertSource, RankedExpert,
)
from .name_normalizer import name_key, normalize
from .openai_model import LLM
from .scoring import ImpactScoreEstimator, max_citations

logger = logging.getLogger(__name__)


SYSTEM_PROMPT = """You are an expert analyst performing STACK RANKING of researchers based on their MEASURED IMPACT on a document.

You will receive:
1. Expert names with their citation counts (how often they appear in facts/notes/sources)
2. Whether they are in the DOK1 Experts section
3. How many Score-5 (verified) facts cite them

YOUR JOB: Assign differentiated rankScores (1-10) based on ACTUAL IMPACT:
- Experts with highest citations AND score-5 fact associations = 9-10
- Experts with moderate citations = 6-8
- Experts with low citations = 4-5
- Experts barely mentioned = 1-3

CRITICAL RULES:
1. NO TWO EXPERTS should have the same score unless their impact metrics are identical
2. Stack rank MUST differentiate - if one expert has 15 citations and another has 3, they CANNOT have the same score
3. Base your rationale on the actual citation numbers provided
4. Preserve Twitter handles exactly as provided
5. Use source "listed" for DOK1 section experts, "cited" for those found in notes

Output ONLY a valid JSON array:
[
  {
    "name": "Full Name",
    "rankScore": 10,
    "rationale": "15 citations, 8 score-5 facts",
    "source": "listed",
    "twitterHandle": "@handle or null"
  }
]

Sort by rankScore descending. Keep rationales under 50 chars with actual numbers."""


class RankingOracleError(Exception):
    """Raised when the ranking oracle cannot produce a usable answer."""


@dataclass
class OracleRequest:
    """Evidence handed to the ranking oracle."""
    evidence_table: str
    title: str
    description: str
    max_citations: int

    def to_prompt(self) -> str:
        return (
            "Stack rank these experts by their MEASURED IMPACT on this brainlift:\n\n"
            f"**Brainlift:** {self.title}\n"
            f"**Description:** {self.description}\n\n"
            "**EXPERT IMPACT METRICS (use these numbers for ranking):**\n"
            f"{self.evidence_table}\n\n"
            f"**Maximum citations by any expert:** {self.max_citations}\n\n"
            "Assign differentiated scores (1-10) based on the citation counts above. "
            "Experts with more citations = higher scores. "
            "No two experts with different citation counts should have the same score."
        )


class RankingOracle(ABC):
    """Interface of the external ranking collaborator.

    Implementations return the raw response text; parsing and validation happen
    in RankingOracleAdapter so every oracle gets the same checks.
    """

    @abstractmethod
    def rank(self, request: OracleRequest) -> str:
        pass


class LLMRankingOracle(RankingOracle):
    """Ranking oracle backed by a chat-completions model."""

    def __init__(self, config: ExpertRankingConfig, llm=None):
        self.config = config
        if llm is None:
            llm = LLM(
                config.model,
                api_key=config.api_key,
                base_url=config.base_url,
                timeout=config.timeout_seconds,
            )
        self.llm = llm

    def rank(self, request: OracleRequest) -> str:
        try:
            response, usage_in, usage_out = self.llm.get_response(
                request.to_prompt(),
                system_prompt=SYSTEM_PROMPT,
                temperature=self.config.temperature,
                max_tokens=self.config.max_tokens,
                max_retries=self.config.max_retries,
            )
        except Exception as e:
            raise RankingOracleError(f"Ranking oracle request failed: {e}") from e

        logger.debug(f"Ranking oracle usage: in={usage_in}, out={usage_out}")
        if not response:
            raise RankingOracleError("Ranking oracle returned an empty response")
        return response


def format_evidence_table(profiles: Sequence[EvidenceProfile]) -> str:
    """One line of citation evidence per expert."""
    lines = []
    for p in profiles:
        handle = f" ({p.twitter_handle})" if p.twitter_handle else ""
        section = "IN DOK1 EXPERTS SECTION" if p.is_in_dok1_section else "not in DOK1 section"
        lines.append(
            f"- {p.canonical_name}{handle}: {p.total_citations} total citations "
            f"({p.fact_citations} in facts, {p.note_citations} in notes, "
            f"{p.source_citations} in sources), {p.score5_fact_citations} score-5 verified facts, "
            f"{section}"
        )
    return "\n".join(lines)


def extract_json_array(text: str) -> Optional[List[Any]]:
    """Return the first well-formed JSON array in text.

    An object carrying an "experts" array is accepted as well.
    """
    if not text:
        return None

    decoder = json.JSONDecoder()
    for index, char in enumerate(text):
        if char not in "[{":
            continue
        try:
            value, _ = decoder.raw_decode(text, index)
        except ValueError:
            continue
        if isinstance(value, list):
            return value
        if isinstance(value, dict) and isinstance(value.get("experts"), list):
            return value["experts"]
    return None


class RankingOracleAdapter:
    """Turns evidence profiles into ranked experts through the oracle or the estimator."""

    def __init__(self,
                 oracle: Optional[RankingOracle] = None,
                 estimator: Optional[ImpactScoreEstimator] = None):
        self.oracle = oracle
        self.estimator = estimator or ImpactScoreEstimator()
        self.last_used_fallback = False
        self.last_dropped_entries = 0

    def rank(self,
             profiles: Sequence[EvidenceProfile],
             context: Dict[str, str],
             brainlift_id: int = 0) -> List[RankedExpert]:
        """Rank profiles for one document.

        Args:
            profiles: Evidence profiles of the run
            context: Mapping with the document "title" and "description"
            brainlift_id: Owning document id stamped on every ranked expert

        Returns:
            Ranked experts sorted by score, highest first
        """
        self.last_used_fallback = False
        self.last_dropped_entries = 0
        if not profiles:
            return []

        batch_max = max_citations(profiles)
        experts = None

        if self.oracle is None:
            logger.info("Ranking oracle not configured, using impact score estimator")
        else:
            request = OracleRequest(
                evidence_table=format_evidence_table(profiles),
                title=context.get("title", ""),
                description=context.get("description", ""),
                max_citations=batch_max,
            )
            try:
                experts = self._rank_with_oracle(request, brainlift_id)
            except Exception as e:
                logger.warning(f"Ranking oracle failed, using impact score estimator: {e}")

        if not experts:
            self.last_used_fallback = True
            experts = self._rank_with_estimator(profiles, batch_max, brainlift_id)

        experts.sort(key=lambda e: e.rank_score, reverse=True)
        return experts

    def _rank_with_oracle(self, request: OracleRequest, brainlift_id: int) -> List[RankedExpert]:
        response = self.oracle.rank(request)
        entries = extract_json_array(response)
        if entries is None:
            raise RankingOracleError("No JSON array found in ranking oracle response")

        experts = []
        seen_keys = set()
        for entry in entries:
            parsed = self._validate_entry(entry)
            if parsed is None:
                self.last_dropped_entries += 1
                continue
            name, score, rationale, source, handle = parsed

            # First entry per individual wins
            key = name_key(normalize(name) or name)
            if key in seen_keys:
                logger.debug(f"Dropping duplicate ranking oracle entry for {name}")
                self.last_dropped_entries += 1
                continue
            seen_keys.add(key)

            experts.append(RankedExpert(
                brainlift_id=brainlift_id,
                name=name,
                rank_score=score,
                rationale=rationale,
                source=source,
                twitter_handle=handle,
                is_following=score > 5,
            ))

        if self.last_dropped_entries:
            logger.warning(f"Dropped {self.last_dropped_entries} invalid or duplicate ranking oracle entries")
        logger.info(f"Ranking oracle returned {len(experts)} valid experts: "
                    f"{[f'{e.name}: {e.rank_score}' for e in experts]}")
        return experts

    @staticmethod
    def _validate_entry(entry: Any) -> Optional[Tuple[str, int, str, ExpertSource, Optional[str]]]:
        if not isinstance(entry, dict):
            return None

        name = entry.get("name")
        if not isinstance(name, str) or not name.strip():
            return None

        score = entry.get("rankScore")
        if isinstance(score, bool):
            return None
        if isinstance(score, float) and score.is_integer():
            score = int(score)
        if not isinstance(score, int) or not MIN_RANK_SCORE <= score <= MAX_RANK_SCORE:
            return None

        rationale = entry.get("rationale")
        if not isinstance(rationale, str):
            return None

        try:
            source = ExpertSource(entry.get("source"))
        except ValueError:
            return None

        handle = entry.get("twitterHandle")
        if isinstance(handle, str) and handle.strip().lower() in ("", "null", "none"):
            handle = None
        if handle is not None and not isinstance(handle, str):
            return None

        return name.strip(), score, rationale, source, handle

    def _rank_with_estimator(self,
                             profiles: Sequence[EvidenceProfile],
                             batch_max: int,
                             brainlift_id: int) -> List[RankedExpert]:
        experts = []
        for profile in profiles:
            score = self.estimator.estimate_score(profile, batch_max)
            experts.append(RankedExpert(
                brainlift_id=brainlift_id,
                name=profile.canonical_name,
                rank_score=score,
                rationale=fallback_rationale(profile),
                source=ExpertSource.LISTED if profile.is_in_dok1_section else ExpertSource.CITED,
                twitter_handle=profile.twitter_handle,
                is_following=score > 5,
            ))
        return experts


def fallback_rationale(profile: EvidenceProfile) -> str:
    """Short summary of the raw counts behind an estimated score."""
    rationale = f"{profile.total_citations} citations, {profile.score5_fact_citations} score-5 facts"
    if profile.reading_list_mentions:
        rationale += f", {profile.reading_list_mentions} readings"
    return rationale
