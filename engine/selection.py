"""Selection engine: picks one fresh, non-repetitive item per request"""

import logging
import math
import random
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

import config
from engine.fallbacks import FALLBACK_IMAGES, LOCAL_QUOTES, fallback_document
from engine.fatigue import GlobalFatigue, TypeFatigue, build_type_fatigue
from engine.items import (
    Candidate,
    CandidateOrigin,
    ItemType,
    SelectionDebug,
    SkipReason,
    build_candidate,
    parse_item_type,
)
from engine.scoring import PROFILES, score, should_prefer_fresh
from engine.store import ItemStore, item_store
from ingest.feeds import NetworkCandidates

logger = logging.getLogger(__name__)

NetworkSource = Callable[[ItemType, Optional[List[str]]], List[Candidate]]


@dataclass
class SelectionResult:
    item: Optional[Dict]
    debug: Optional[SelectionDebug] = None


class SelectionEngine:
    """
    Per-type candidate collection, freshness scoring and fatigue filtering.

    Candidates come from four database buckets plus live feeds. Each is
    scored against what this process served recently, then walked in score
    order until one passes the fatigue checks. When none does, the best
    scored candidate is served anyway; with no candidates at all a local
    fallback is used.
    """

    def __init__(self,
                 store: ItemStore = None,
                 network: NetworkSource = None,
                 fatigue: Dict[ItemType, TypeFatigue] = None,
                 global_fatigue: GlobalFatigue = None,
                 rng: random.Random = None):
        self.store = store if store is not None else item_store
        self.network = network if network is not None else NetworkCandidates()
        self.fatigue = fatigue or build_type_fatigue()
        self.global_fatigue = global_fatigue or GlobalFatigue()
        self.rng = rng or random.Random()

    # ==================== CANDIDATES ====================

    def gather(self, item_type: ItemType, hints: List[str] = None) -> List[Candidate]:
        """Merge database and network candidates, keyed by identity."""
        bucket: Dict[str, Candidate] = {}

        def add(candidate: Optional[Candidate]):
            if candidate is None:
                return
            existing = bucket.get(candidate.key)
            if existing is None:
                bucket[candidate.key] = candidate
            elif candidate.origin == CandidateOrigin.NETWORK and existing.origin != CandidateOrigin.NETWORK:
                # Keep pointing at the stored copy, which may predate content hashes
                candidate.filter = existing.filter
                bucket[candidate.key] = candidate

        for doc, origin in self.store.collect_documents(item_type):
            add(build_candidate(item_type, doc, origin))

        try:
            network = self.network(item_type, hints)
        except Exception as e:
            logger.warning("Network candidates for %s failed: %s", item_type.value, e)
            network = []
        for candidate in network:
            add(candidate)

        return list(bucket.values())

    # ==================== SELECTION ====================

    def select(self, item_type, debug: bool = False, hints: List[str] = None) -> SelectionResult:
        """
        Pick one item of the given type.

        Args:
            item_type: ItemType or its string value
            debug: collect skip reasons and the selection outcome
            hints: query hints for feeds that search

        Returns:
            SelectionResult; ``item`` is None only for types without a
            local fallback (video, web) when nothing was found
        """
        item_type = parse_item_type(item_type)
        fatigue = self.fatigue[item_type]
        profile = PROFILES[item_type]

        candidates = self.gather(item_type, hints)
        scored = [(candidate, score(candidate, fatigue, profile, rng=self.rng)) for candidate in candidates]
        scored = [(c, s) for c, s in scored if math.isfinite(s)]
        scored.sort(key=lambda pair: pair[1], reverse=True)

        context = SelectionDebug(total=len(scored)) if debug else None
        prefer_fresh = should_prefer_fresh(self.global_fatigue.recent_origins(config.ORIGIN_WINDOW))
        has_network = any(c.origin == CandidateOrigin.NETWORK for c, _ in scored)
        total = len(scored)

        relaxed = None
        for candidate, value in scored:
            if relaxed is None:
                relaxed = candidate
            reason = self._skip_reason(candidate, value, fatigue, profile.min_score,
                                       total, prefer_fresh, has_network)
            if reason is not None:
                if context:
                    context.track(reason)
                continue
            return SelectionResult(self._finalize(candidate, context, relaxed=False), context)

        if relaxed is not None:
            return SelectionResult(self._finalize(relaxed, context, relaxed=True), context)

        if context:
            context.fallback = True
        return SelectionResult(self._fallback(item_type, context), context)

    def _skip_reason(self, candidate: Candidate, value: float, fatigue: TypeFatigue,
                     min_score: Optional[float], total: int, prefer_fresh: bool,
                     has_network: bool) -> Optional[SkipReason]:
        if min_score is not None and value < min_score:
            return SkipReason.LOW_SCORE

        item_type = candidate.item_type
        if self.global_fatigue.is_item_recent(item_type, candidate.key) and total > 2:
            return SkipReason.GLOBALLY_RECENT

        # Untagged videos never count as all-recent
        if item_type == ItemType.VIDEO and not candidate.tags:
            all_tags_recent = False
        else:
            all_tags_recent = all(tag in fatigue.tags for tag in candidate.tags)
        all_keywords_recent = fatigue.keywords.contains_all(candidate.keywords)
        if all_tags_recent and all_keywords_recent and total > 2:
            return SkipReason.ALL_RECENT

        topics_tired = self.global_fatigue.are_topics_recent(candidate.tags)
        keywords_tired = self.global_fatigue.are_keywords_recent(candidate.keywords)
        if (topics_tired or keywords_tired) and total > 2:
            return SkipReason.GLOBAL_TOPICS

        is_network = candidate.origin == CandidateOrigin.NETWORK
        if self.global_fatigue.is_provider_recent(candidate.provider) and total > 3 \
                and (not prefer_fresh or not is_network):
            return SkipReason.PROVIDER_FATIGUE

        if prefer_fresh and has_network and not is_network and total > 2:
            return SkipReason.PREFER_FRESH

        return None

    def _finalize(self, candidate: Candidate, context: Optional[SelectionDebug], relaxed: bool) -> Dict:
        item_type = candidate.item_type
        # Local fallbacks are never written to the store
        if candidate.origin == CandidateOrigin.NETWORK:
            self.store.upsert_document(candidate.document, candidate.filter)
        if candidate.origin != CandidateOrigin.FALLBACK:
            self.store.touch_last_shown(item_type, candidate.filter)

        if context:
            context.selected = candidate.key
            context.relaxed = relaxed

        self.fatigue[item_type].mark(candidate.key, candidate.provider, candidate.tags,
                                     candidate.keywords, candidate.author)
        self.global_fatigue.mark_item(item_type, candidate.key)
        self.global_fatigue.mark_topics(candidate.tags)
        self.global_fatigue.mark_keywords(candidate.keywords)
        self.global_fatigue.mark_provider(candidate.provider)
        self.global_fatigue.mark_origin(candidate.origin)

        logger.debug("Selected %s %r (origin=%s, relaxed=%s)", item_type.value, candidate.key,
                     candidate.origin.value, relaxed)
        return candidate.item

    def _fallback(self, item_type: ItemType, context: Optional[SelectionDebug]) -> Optional[Dict]:
        recent = self.fatigue[item_type].items
        raw = fallback_document(item_type.value, lambda key: key in recent, self.rng)
        candidate = build_candidate(item_type, raw, CandidateOrigin.FALLBACK)
        if candidate is None:
            logger.info("No %s available, not even a local fallback", item_type.value)
            return None
        return self._finalize(candidate, context, relaxed=False)

    def select_first(self, types: List, debug: bool = False, hints: List[str] = None) -> SelectionResult:
        """
        Try item types in the given order and return the first hit.

        Falls back to a local quote when quotes were asked for, and to a
        fallback image otherwise.
        """
        parsed = [parse_item_type(t) for t in types]
        last_debug = None
        for item_type in parsed:
            result = self.select(item_type, debug=debug, hints=hints)
            last_debug = result.debug
            if result.item:
                return result

        if ItemType.QUOTE in parsed:
            text = self.rng.choice(LOCAL_QUOTES)
            item = {'type': 'quote', 'text': text, 'author': '', 'provider': 'local',
                    'source': {'name': 'Local', 'url': ''}}
        else:
            url = self.rng.choice(FALLBACK_IMAGES)
            item = {'type': 'image', 'url': url, 'thumbUrl': None, 'provider': 'unsplash',
                    'source': {'name': 'Unsplash', 'url': url}}
        if last_debug:
            last_debug.fallback = True
        return SelectionResult(item, last_debug)

    def reset(self):
        for fatigue in self.fatigue.values():
            fatigue.reset()
        self.global_fatigue.reset()

    def fatigue_sizes(self) -> Dict:
        return {
            'global': self.global_fatigue.sizes(),
            'types': {item_type.value: fatigue.sizes() for item_type, fatigue in self.fatigue.items()},
        }


# Singleton instance
selection_engine = SelectionEngine()
