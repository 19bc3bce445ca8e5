"""Freshness scoring for selection candidates"""

import math
import random
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional, Sequence, Tuple

from engine.fatigue import TypeFatigue
from engine.items import Candidate, CandidateOrigin, ItemType, utcnow

DAY_SECONDS = 60 * 60 * 24

FRESH_ORIGINS = (CandidateOrigin.NETWORK, CandidateOrigin.DB_FRESH, CandidateOrigin.DB_UNSEEN)
BACKLOG_ORIGINS = (CandidateOrigin.DB_BACKLOG, CandidateOrigin.DB_RANDOM)


@dataclass(frozen=True)
class ScoreProfile:
    """
    Weights for one item type.

    ``shown_bands`` are (days, bonus) pairs checked in order: the first band
    whose age the item exceeds applies. Otherwise ``recent_penalty`` applies
    when the item was shown less than ``recent_days`` ago.
    ``updated_bands`` work the other way round: the first band the update age
    falls under applies, ``stale_update`` otherwise.
    """
    item_fresh: float = 0.0
    item_repeat: float = 0.0
    provider_fresh: float = 0.0
    provider_repeat: float = 0.0
    author_fresh: float = 0.0
    author_repeat: float = 0.0
    tag_fresh: float = 0.0
    tag_repeat: float = 0.0
    keyword_fresh: float = 1.0
    keyword_repeat: float = 1.0
    origin_bonus: Dict[CandidateOrigin, float] = field(default_factory=dict)
    never_shown: float = 0.0
    shown_bands: Tuple[Tuple[float, float], ...] = ()
    recent_days: float = 0.0
    recent_penalty: float = 0.0
    updated_bands: Tuple[Tuple[float, float], ...] = ()
    stale_update: float = 0.0
    jitter: float = 1.0
    min_score: Optional[float] = None


def _origins(network, unseen, backlog):
    return {
        CandidateOrigin.NETWORK: network,
        CandidateOrigin.DB_UNSEEN: unseen,
        CandidateOrigin.DB_BACKLOG: backlog,
    }


IMAGE_PROFILE = ScoreProfile(
    item_fresh=10, item_repeat=6,
    provider_fresh=4, provider_repeat=3,
    tag_fresh=3, tag_repeat=1,
    keyword_fresh=1, keyword_repeat=1,
    origin_bonus=_origins(5, 3, 2),
    never_shown=3, shown_bands=((21, 4),), recent_days=2, recent_penalty=1,
)

PROFILES = {
    ItemType.IMAGE: IMAGE_PROFILE,
    ItemType.QUOTE: ScoreProfile(
        item_fresh=12, item_repeat=8,
        author_fresh=4, author_repeat=3,
        tag_fresh=3, tag_repeat=1,
        keyword_fresh=1, keyword_repeat=1.2,
        origin_bonus=_origins(5, 3, 2),
        never_shown=4, shown_bands=((30, 5), (10, 3)), recent_days=2, recent_penalty=2,
    ),
    ItemType.FACT: ScoreProfile(
        item_fresh=12, item_repeat=9,
        provider_fresh=3, provider_repeat=2,
        tag_fresh=2, tag_repeat=1,
        keyword_fresh=1, keyword_repeat=1.5,
        origin_bonus=_origins(5, 3, 2),
        never_shown=4, shown_bands=((21, 4),), recent_days=2, recent_penalty=1,
    ),
    ItemType.JOKE: ScoreProfile(
        item_fresh=12, item_repeat=9,
        provider_fresh=3, provider_repeat=2,
        tag_fresh=3, tag_repeat=1,
        keyword_fresh=1, keyword_repeat=1.5,
        origin_bonus=_origins(5, 4, 2),
        never_shown=4, shown_bands=((21, 5), (7, 3)), recent_days=2, recent_penalty=1,
        jitter=1.5,
    ),
    ItemType.VIDEO: ScoreProfile(
        item_fresh=0, item_repeat=6,
        provider_fresh=5, provider_repeat=4,
        tag_fresh=5, tag_repeat=3,
        keyword_fresh=1.2, keyword_repeat=1.8,
        origin_bonus=_origins(6, 4, 2),
        never_shown=14, shown_bands=((21, 9), (14, 7), (7, 5), (3, 2)),
        recent_days=math.inf, recent_penalty=3,
        updated_bands=((2, 8), (7, 5), (21, 2)), stale_update=1,
        jitter=2, min_score=-2,
    ),
    ItemType.WEB: IMAGE_PROFILE,
}


def _days_since(moment: datetime, now: datetime) -> float:
    return (now - moment).total_seconds() / DAY_SECONDS


def score(candidate: Candidate, fatigue: TypeFatigue, profile: Optional[ScoreProfile] = None,
          now: Optional[datetime] = None, rng: Optional[random.Random] = None) -> float:
    """
    Score a candidate against the recent history of its type.

    Higher is better. Unseen items, unfamiliar providers and topics, and
    network or never-shown origins are rewarded; anything the user saw
    recently is penalized. A small random jitter breaks ties.
    """
    if not candidate.key:
        return -math.inf

    profile = profile or PROFILES[candidate.item_type]
    now = now or utcnow()
    rng = rng or random

    total = 0.0

    if candidate.key in fatigue.items:
        total -= profile.item_repeat
    else:
        total += profile.item_fresh

    if profile.provider_fresh or profile.provider_repeat:
        if candidate.provider in fatigue.providers:
            total -= profile.provider_repeat
        else:
            total += profile.provider_fresh

    author = candidate.author.strip().lower()
    if author and (profile.author_fresh or profile.author_repeat):
        if author in fatigue.authors:
            total -= profile.author_repeat
        else:
            total += profile.author_fresh

    for tag in set(candidate.tags):
        if tag in fatigue.tags:
            total -= profile.tag_repeat
        else:
            total += profile.tag_fresh

    repeated = sum(1 for word in candidate.keywords if word in fatigue.keywords)
    total += (len(candidate.keywords) - repeated) * profile.keyword_fresh
    total -= repeated * profile.keyword_repeat

    total += profile.origin_bonus.get(candidate.origin, 0.0)

    if candidate.last_shown_at is None:
        total += profile.never_shown
    else:
        days = _days_since(candidate.last_shown_at, now)
        for threshold, bonus in profile.shown_bands:
            if days > threshold:
                total += bonus
                break
        else:
            if days < profile.recent_days:
                total -= profile.recent_penalty

    if profile.updated_bands:
        if candidate.updated_at is None:
            total -= profile.stale_update
        else:
            days = _days_since(candidate.updated_at, now)
            for threshold, bonus in profile.updated_bands:
                if days < threshold:
                    total += bonus
                    break
            else:
                total -= profile.stale_update

    total += rng.random() * profile.jitter
    return total


def should_prefer_fresh(window: Sequence[CandidateOrigin]) -> bool:
    """
    Decide whether recent picks leaned too hard on old stock.

    Needs at least five recorded origins; true when fewer than three were
    fresh and the backlog picks outnumber them by two or more.
    """
    if len(window) < 5:
        return False
    fresh = sum(1 for origin in window if origin in FRESH_ORIGINS)
    backlog = sum(1 for origin in window if origin in BACKLOG_ORIGINS)
    return fresh < 3 and backlog >= fresh + 2
