"""In-memory storage of brainlifts and their ranked experts."""

import itertools
import logging
import threading
from dataclasses import replace
from typing import Dict, List, Optional

from .models import Brainlift, RankedExpert

logger = logging.getLogger(__name__)


class InMemoryStorage:
    """Brainlift and expert storage.

    save_experts replaces the whole expert set of a brainlift; follow flags set
    by users on the previous set are not carried over. Refreshes of the same
    brainlift must be serialized by the caller.
    """

    def __init__(self):
        self._brainlifts: Dict[int, Brainlift] = {}
        self._experts: Dict[int, RankedExpert] = {}
        self._brainlift_ids = itertools.count(1)
        self._expert_ids = itertools.count(1)
        self._lock = threading.RLock()

    # Brainlifts

    def create_brainlift(self, brainlift: Brainlift) -> Brainlift:
        with self._lock:
            if self.get_brainlift_by_slug(brainlift.slug) is not None:
                raise ValueError(f"Brainlift with slug {brainlift.slug!r} already exists")
            stored = replace(brainlift, id=next(self._brainlift_ids))
            self._brainlifts[stored.id] = stored
            return stored

    def get_brainlift(self, brainlift_id: int) -> Optional[Brainlift]:
        with self._lock:
            return self._brainlifts.get(brainlift_id)

    def get_brainlift_by_slug(self, slug: str) -> Optional[Brainlift]:
        with self._lock:
            for brainlift in self._brainlifts.values():
                if brainlift.slug == slug:
                    return brainlift
        return None

    def delete_brainlift(self, brainlift_id: int) -> None:
        """Delete a brainlift together with its experts."""
        with self._lock:
            self._brainlifts.pop(brainlift_id, None)
            self._delete_experts_of(brainlift_id)

    # Experts

    def get_experts_by_brainlift_id(self, brainlift_id: int) -> List[RankedExpert]:
        with self._lock:
            experts = [e for e in self._experts.values() if e.brainlift_id == brainlift_id]
        return sorted(experts, key=lambda e: e.rank_score, reverse=True)

    def save_experts(self, brainlift_id: int, experts: List[RankedExpert]) -> List[RankedExpert]:
        """Replace the expert set of a brainlift (delete then insert)."""
        with self._lock:
            removed = self._delete_experts_of(brainlift_id)

            saved = []
            for expert in experts:
                stored = replace(expert, brainlift_id=brainlift_id, id=next(self._expert_ids))
                self._experts[stored.id] = stored
                saved.append(stored)

        logger.info(f"Replaced {removed} experts with {len(saved)} for brainlift {brainlift_id}")
        return saved

    def update_expert_following(self, expert_id: int, is_following: bool) -> RankedExpert:
        with self._lock:
            expert = self._get_expert(expert_id)
            updated = replace(expert, is_following=is_following)
            self._experts[expert_id] = updated
            return updated

    def get_followed_experts(self, brainlift_id: int) -> List[RankedExpert]:
        return [e for e in self.get_experts_by_brainlift_id(brainlift_id) if e.is_following]

    def delete_expert(self, expert_id: int) -> None:
        with self._lock:
            self._get_expert(expert_id)
            del self._experts[expert_id]

    def _get_expert(self, expert_id: int) -> RankedExpert:
        expert = self._experts.get(expert_id)
        if expert is None:
            raise KeyError(f"Expert {expert_id} not found")
        return expert

    def _delete_experts_of(self, brainlift_id: int) -> int:
        stale_ids = [eid for eid, e in self._experts.items() if e.brainlift_id == brainlift_id]
        for eid in stale_ids:
            del self._experts[eid]
        return len(stale_ids)
