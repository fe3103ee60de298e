"""Tests for expert_ranking.core.expert_ranker."""

import json

import pandas as pd
import pytest

from expert_ranking.core.expert_ranker import ExpertRanker
from expert_ranking.core.expert_store import InMemoryStorage
from expert_ranking.core.models import Brainlift, ExpertRankingConfig, ExpertSource


def rank_yeager(ranker, yeager_document, yeager_facts):
    return ranker.rank_document(
        brainlift_id=1,
        title="Feedback that motivates",
        description="Wise feedback in classrooms",
        document_text=yeager_document,
        facts=yeager_facts,
        reading_list=[],
    )


class TestRankDocument:
    """End-to-end pipeline scenarios."""

    def test_listed_expert_with_fact_evidence(self, offline_config, yeager_document, yeager_facts):
        ranker = ExpertRanker(offline_config)
        rankings = rank_yeager(ranker, yeager_document, yeager_facts)

        assert len(ranker.profiles) == 1
        profile = ranker.profiles[0]
        assert profile.canonical_name == "David Yeager"
        assert profile.twitter_handle == "@davidscottyeager"
        assert profile.is_in_dok1_section is True
        assert profile.fact_citations == 4
        assert profile.score5_fact_citations == 1

        assert len(rankings) == 1
        expert = rankings[0]
        assert expert.name == "David Yeager"
        assert expert.rank_score > 6
        assert expert.source is ExpertSource.LISTED
        assert expert.is_following is True
        assert expert.brainlift_id == 1

    def test_document_without_roster(self, offline_config, make_oracle):
        oracle = make_oracle(response="[]")
        ranker = ExpertRanker(offline_config, oracle=oracle)

        rankings = ranker.rank_document(1, "Untitled", "", "Plain prose without a roster.", [], [])

        assert ranker.mentions == []
        assert ranker.profiles == []
        assert rankings == []
        assert oracle.requests == []

    def test_co_authored_roster_entry(self, offline_config, co_author_document):
        ranker = ExpertRanker(offline_config)
        rankings = ranker.rank_document(1, "Writing", "", co_author_document, [], [])

        assert sorted(p.canonical_name for p in ranker.profiles) == ["Hochman", "Wexler"]
        assert sorted(e.name for e in rankings) == ["Hochman", "Wexler"]

    def test_oracle_scores_are_used(self, offline_config, yeager_document, yeager_facts, make_oracle):
        response = json.dumps([{
            "name": "David Yeager", "rankScore": 8, "rationale": "4 citations, 1 score-5 fact",
            "source": "listed", "twitterHandle": "@davidscottyeager",
        }])
        ranker = ExpertRanker(offline_config, oracle=make_oracle(response=response))
        rankings = rank_yeager(ranker, yeager_document, yeager_facts)

        assert [(e.name, e.rank_score) for e in rankings] == [("David Yeager", 8)]
        assert ranker.adapter.last_used_fallback is False

    def test_oracle_failure_falls_back(self, offline_config, yeager_document, yeager_facts, make_oracle):
        ranker = ExpertRanker(offline_config, oracle=make_oracle(error=TimeoutError("timed out")))
        rankings = rank_yeager(ranker, yeager_document, yeager_facts)

        assert len(rankings) == 1
        assert rankings[0].rank_score == 10
        assert ranker.adapter.last_used_fallback is True

    def test_overrides_loaded_from_config(self, tmp_path, yeager_document, yeager_facts):
        path = tmp_path / "overrides.json"
        path.write_text(json.dumps({"david yeager": 2}), encoding="utf-8")
        ranker = ExpertRanker(ExpertRankingConfig(overrides_path=str(path)))

        rank_yeager(ranker, yeager_document, yeager_facts)

        assert ranker.profiles[0].fact_citations == 2
        assert ranker.profiles[0].score5_fact_citations == 0

    def test_top_experts(self, offline_config):
        text = (
            "DOK1: Experts\n"
            "- Expert 1\n  - Who: Doug Lemov;\n"
            "- Expert 2\n  - Who: Carl Hendrick;\n"
            "- Expert 3\n  - Who: Paul Kirschner;\n"
            "Kirschner Kirschner Kirschner Hendrick"
        )
        ranker = ExpertRanker(offline_config)
        ranker.rank_document(1, "T", "", text, [], [])

        assert [e.name for e in ranker.get_top_experts(2)] == ["Paul Kirschner", "Carl Hendrick"]


class TestRefresh:
    """Tests for refreshing a stored brainlift."""

    def test_refresh_replaces_stored_experts(self, offline_config, yeager_document, yeager_facts):
        store = InMemoryStorage()
        brainlift = store.create_brainlift(Brainlift(
            id=0, slug="feedback", title="Feedback", original_content=yeager_document, facts=yeager_facts,
        ))
        ranker = ExpertRanker(offline_config)

        first = ranker.refresh(brainlift, store)
        second = ranker.refresh(brainlift, store)

        stored = store.get_experts_by_brainlift_id(brainlift.id)
        assert len(stored) == 1
        assert stored[0].id == second[0].id != first[0].id
        assert stored[0].brainlift_id == brainlift.id


class TestExplanationsAndExport:
    """Tests for explanations and exports."""

    @pytest.fixture
    def ranker(self, offline_config, yeager_document, yeager_facts):
        ranker = ExpertRanker(offline_config)
        rank_yeager(ranker, yeager_document, yeager_facts)
        return ranker

    def test_explanation(self, ranker):
        explanation = ranker.get_expert_explanation("david yeager")

        assert explanation['name'] == "David Yeager"
        assert explanation['rank_score'] == 10
        assert explanation['evidence']['fact_citations'] == 4
        assert explanation['evidence']['is_in_dok1_section'] is True
        assert explanation['max_citations_in_batch'] == 4
        assert explanation['fallback_score']['raw_score'] == pytest.approx(10.5)

    def test_explanation_unknown_expert(self, ranker):
        assert ranker.get_expert_explanation("Nobody Here") is None

    def test_export_csv(self, ranker, tmp_path):
        path = tmp_path / "experts.csv"
        ranker.export_results(str(path), format='csv')

        df = pd.read_csv(path)
        assert list(df['name']) == ["David Yeager"]
        assert df.loc[0, 'rank'] == 1
        assert df.loc[0, 'fact_citations'] == 4

    def test_export_json(self, ranker, tmp_path):
        path = tmp_path / "experts.json"
        ranker.export_results(str(path), format='json')

        records = json.loads(path.read_text(encoding="utf-8"))
        assert records[0]['twitter_handle'] == "@davidscottyeager"
        assert records[0]['source'] == "listed"

    def test_export_summary_json(self, ranker, tmp_path):
        path = tmp_path / "summary.json"
        ranker.export_results(str(path), format='summary_json')

        records = json.loads(path.read_text(encoding="utf-8"))
        assert set(records[0]) == {'rank', 'name', 'rank_score', 'source'}

    def test_export_explanations(self, ranker, tmp_path):
        path = tmp_path / "explanations.json"
        ranker.export_results(str(path), format='explanations')

        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["David Yeager"]["evidence"]["score5_fact_citations"] == 1

    def test_export_unsupported_format(self, ranker, tmp_path):
        with pytest.raises(ValueError, match="Unsupported format"):
            ranker.export_results(str(tmp_path / "x.xml"), format='xml')

    def test_export_before_ranking(self, offline_config, tmp_path):
        with pytest.raises(ValueError, match="No rankings available"):
            ExpertRanker(offline_config).export_results(str(tmp_path / "x.csv"))
