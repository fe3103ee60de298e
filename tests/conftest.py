"""
Pytest configuration and fixtures for expert ranking tests.
"""

import pytest

from expert_ranking.core import ExpertRankingConfig, Fact, RankingOracle


YEAGER_DOCUMENT = """Brainlift: Feedback that motivates

DOK1: Experts
- Expert 1
  - Who: David Yeager, PhD;
  - Where: @davidscottyeager
  - Focus: wise feedback
"""

CO_AUTHOR_DOCUMENT = """DOK1: Experts
- Expert 1
  - Who: Hochman & Wexler;
  - Where: The Writing Revolution, @TWRWriting
  - Focus: sentence-level writing instruction
"""


class StubOracle(RankingOracle):
    """Ranking oracle returning a canned response and recording requests."""

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []

    def rank(self, request):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def offline_config() -> ExpertRankingConfig:
    """Configuration without credentials, so no oracle is built."""
    return ExpertRankingConfig(api_key=None)


@pytest.fixture
def yeager_document() -> str:
    return YEAGER_DOCUMENT


@pytest.fixture
def co_author_document() -> str:
    return CO_AUTHOR_DOCUMENT


@pytest.fixture
def yeager_facts():
    """Four facts mentioning Yeager, one of them with the maximum score."""
    return [
        Fact(fact="Yeager showed wise feedback raises revision rates.", score=5),
        Fact(fact="Growth mindset interventions scale.", note="See Yeager 2019", score=4),
        Fact(fact="Mentors should signal high standards.", source="Yeager et al.", score=3),
        Fact(fact="Adolescents respond to respect.", note="yeager's lab", score=2),
        Fact(fact="Retrieval practice improves retention.", score=5),
    ]


@pytest.fixture
def make_oracle():
    """Factory for StubOracle instances."""
    return StubOracle
