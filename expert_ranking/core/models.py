"""Data models for the expert evidence aggregation and ranking engine."""

import json
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


MIN_FACT_SCORE = 1
MAX_FACT_SCORE = 5
MIN_RANK_SCORE = 1
MAX_RANK_SCORE = 10


class ExpertSource(Enum):
    """Where the evidence for an expert came from."""
    LISTED = "listed"
    VERIFICATION = "verification"
    CITED = "cited"


@dataclass
class ExpertMention:
    """One bullet of a document's expert roster."""
    name: str
    handle: Optional[str] = None
    focus_description: str = ""


@dataclass
class Fact:
    """Fact statement from the fact base."""
    fact: str
    score: int
    note: Optional[str] = None
    source: Optional[str] = None
    original_id: Optional[str] = None
    category: Optional[str] = None

    def __post_init__(self):
        if isinstance(self.score, bool) or not isinstance(self.score, int):
            raise TypeError(f"Fact score must be an integer, got {self.score!r}")
        if not MIN_FACT_SCORE <= self.score <= MAX_FACT_SCORE:
            raise ValueError(
                f"Fact score must be between {MIN_FACT_SCORE} and {MAX_FACT_SCORE}, got {self.score}"
            )

    def combined_text(self) -> str:
        return " ".join([self.fact or "", self.note or "", self.source or ""])

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Fact":
        return cls(
            fact=data.get("fact") or "",
            score=data.get("score"),
            note=data.get("note"),
            source=data.get("source"),
            original_id=data.get("originalId"),
            category=data.get("category"),
        )


def _optional_text(value: Any, field_name: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise TypeError(f"Reading list {field_name} must be a string, got {type(value).__name__}")
    return value


@dataclass
class ReadingListItem:
    """Reading list entry; only the author field feeds the ranking."""
    author: str = ""
    topic: str = ""
    type: Optional[str] = None
    time: Optional[str] = None
    url: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReadingListItem":
        return cls(
            author=_optional_text(data.get("author"), "author"),
            topic=_optional_text(data.get("topic"), "topic"),
            type=data.get("type"),
            time=data.get("time"),
            url=data.get("url"),
        )


@dataclass(frozen=True)
class EvidenceProfile:
    """Per-expert citation evidence for a single ranking run."""
    canonical_name: str
    twitter_handle: Optional[str] = None
    description: str = ""
    fact_citations: int = 0
    note_citations: int = 0  # reserved, folded into fact_citations
    source_citations: int = 0  # reserved, folded into fact_citations
    reading_list_mentions: int = 0
    is_in_dok1_section: bool = False
    score5_fact_citations: int = 0

    @property
    def key(self) -> str:
        return " ".join(self.canonical_name.lower().split())

    @property
    def total_citations(self) -> int:
        return self.fact_citations + self.note_citations + self.source_citations


@dataclass
class RankedExpert:
    """Final expert ranking output, persisted per brainlift."""
    brainlift_id: int
    name: str
    rank_score: int
    rationale: str
    source: ExpertSource
    twitter_handle: Optional[str] = None
    is_following: bool = False
    id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "brainliftId": self.brainlift_id,
            "name": self.name,
            "rankScore": self.rank_score,
            "rationale": self.rationale,
            "source": self.source.value,
            "twitterHandle": self.twitter_handle,
            "isFollowing": self.is_following,
        }


@dataclass
class Brainlift:
    """Stored document with the inputs the expert ranking needs."""
    id: int
    slug: str
    title: str
    description: str = ""
    author: Optional[str] = None
    original_content: str = ""
    facts: List[Fact] = field(default_factory=list)
    reading_list: List[ReadingListItem] = field(default_factory=list)


@dataclass
class ExpertRankingConfig:
    """Configuration for expert ranking runs."""
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    model: str = "anthropic/claude-sonnet-4"
    temperature: float = 0.1
    max_tokens: int = 2000
    timeout_seconds: float = 60.0
    max_retries: int = 2
    roster_window: int = 5000
    overrides_path: Optional[str] = None

    def __post_init__(self):
        if self.timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be positive, got {self.timeout_seconds}")
        if self.max_retries < 1:
            raise ValueError(f"max_retries must be at least 1, got {self.max_retries}")
        if self.roster_window <= 0:
            raise ValueError(f"roster_window must be positive, got {self.roster_window}")

    @property
    def oracle_enabled(self) -> bool:
        return bool(self.api_key)

    @classmethod
    def from_env(cls) -> "ExpertRankingConfig":
        """Build a configuration from environment variables.

        OPENROUTER_API_KEY takes precedence over OPENAI_API_KEY; with neither set
        the oracle is disabled and every run uses the deterministic estimator.
        """
        api_key = os.getenv("OPENROUTER_API_KEY")
        base_url = None
        if api_key:
            base_url = os.getenv("OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1")
        else:
            api_key = os.getenv("OPENAI_API_KEY")

        kwargs: Dict[str, Any] = {"api_key": api_key, "base_url": base_url}
        if os.getenv("EXPERT_RANKING_MODEL"):
            kwargs["model"] = os.environ["EXPERT_RANKING_MODEL"]
        if os.getenv("EXPERT_ORACLE_TIMEOUT"):
            kwargs["timeout_seconds"] = float(os.environ["EXPERT_ORACLE_TIMEOUT"])
        if os.getenv("EXPERT_ORACLE_RETRIES"):
            kwargs["max_retries"] = int(os.environ["EXPERT_ORACLE_RETRIES"])
        kwargs["overrides_path"] = os.getenv("EXPERT_CITATION_OVERRIDES") or None
        return cls(**kwargs)

    def to_json(self) -> str:
        """Serialize without the API key, for logging."""
        data = {k: v for k, v in self.__dict__.items() if k != "api_key"}
        data["oracle_enabled"] = self.oracle_enabled
        return json.dumps(data)
