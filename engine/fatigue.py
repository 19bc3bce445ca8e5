"""Recency tracking used to downrank repeated content"""

import threading
from typing import Dict, Iterable, List, Optional

from engine.items import CandidateOrigin, ItemType, global_key


class RecentList:
    """
    Bounded most-recently-used list of normalized strings.

    Pushing a value already present moves it to the tail; the oldest
    entries fall off the head once ``max_size`` is exceeded.
    """

    def __init__(self, max_size: int):
        self.max_size = max_size
        self._values: List[str] = []
        self._lock = threading.Lock()

    @staticmethod
    def _normalize(value) -> Optional[str]:
        if value is None:
            return None
        key = str(value).strip().lower()
        return key or None

    def push(self, value):
        key = self._normalize(value)
        if key is None:
            return
        with self._lock:
            self._push(key)

    def push_many(self, values: Iterable):
        with self._lock:
            for value in values:
                key = self._normalize(value)
                if key is not None:
                    self._push(key)

    def _push(self, key: str):
        if key in self._values:
            self._values.remove(key)
        self._values.append(key)
        while len(self._values) > self.max_size:
            self._values.pop(0)

    def __contains__(self, value) -> bool:
        key = self._normalize(value)
        if key is None:
            return False
        with self._lock:
            return key in self._values

    def contains_all(self, values: Iterable) -> bool:
        """True when there is at least one value and every one is recent."""
        keys = [k for k in (self._normalize(v) for v in values) if k]
        if not keys:
            return False
        with self._lock:
            return all(k in self._values for k in keys)

    def tail(self, size: int) -> List[str]:
        with self._lock:
            return self._values[-size:] if size > 0 else []

    def clear(self):
        with self._lock:
            self._values.clear()

    def __len__(self) -> int:
        return len(self._values)


class TypeFatigue:
    """Recent items, providers, tags, keywords and authors for one item type."""

    def __init__(self, items: int, providers: int, tags: int, keywords: int, authors: int = 0):
        self.items = RecentList(items)
        self.providers = RecentList(providers)
        self.tags = RecentList(tags)
        self.keywords = RecentList(keywords)
        self.authors = RecentList(authors)

    def mark(self, key: str, provider: str = '', tags: Iterable[str] = (),
             keywords: Iterable[str] = (), author: str = ''):
        self.items.push(key)
        self.providers.push(provider)
        self.tags.push_many(tags)
        self.keywords.push_many(keywords)
        if self.authors.max_size:
            self.authors.push(author)

    def reset(self):
        for recent in (self.items, self.providers, self.tags, self.keywords, self.authors):
            recent.clear()

    def sizes(self) -> Dict[str, int]:
        return {
            'items': len(self.items),
            'providers': len(self.providers),
            'tags': len(self.tags),
            'keywords': len(self.keywords),
            'authors': len(self.authors),
        }


# Window sizes per item type
TYPE_WINDOWS = {
    ItemType.IMAGE: dict(items=80, providers=24, tags=80, keywords=120),
    ItemType.QUOTE: dict(items=80, providers=24, tags=70, keywords=120, authors=40),
    ItemType.FACT: dict(items=90, providers=25, tags=70, keywords=120),
    ItemType.JOKE: dict(items=80, providers=20, tags=60, keywords=120),
    ItemType.VIDEO: dict(items=20, providers=8, tags=20, keywords=90),
    ItemType.WEB: dict(items=60, providers=30, tags=60, keywords=120),
}


def build_type_fatigue() -> Dict[ItemType, TypeFatigue]:
    return {item_type: TypeFatigue(**windows) for item_type, windows in TYPE_WINDOWS.items()}


class GlobalFatigue:
    """
    Recency shared across item types.

    Keeps a joke about cats from following a cat fact, and stops one
    provider from dominating consecutive requests whatever the type.
    """

    def __init__(self, items: int = 260, topics: int = 220, providers: int = 140,
                 keywords: int = 260, origins: int = 160):
        self.items = RecentList(items)
        self.topics = RecentList(topics)
        self.providers = RecentList(providers)
        self.keywords = RecentList(keywords)
        self.max_origins = origins
        self._origins: List[str] = []
        self._origin_lock = threading.Lock()

    def mark_item(self, item_type: ItemType, key: Optional[str]):
        self.items.push(global_key(item_type, key))

    def is_item_recent(self, item_type: ItemType, key: Optional[str]) -> bool:
        gkey = global_key(item_type, key)
        return gkey is not None and gkey in self.items

    def mark_topics(self, tags: Iterable[str]):
        self.topics.push_many(tags)

    def are_topics_recent(self, tags: Iterable[str]) -> bool:
        return self.topics.contains_all(tags)

    def mark_keywords(self, words: Iterable[str]):
        self.keywords.push_many(words)

    def are_keywords_recent(self, words: Iterable[str]) -> bool:
        return self.keywords.contains_all(words)

    def mark_provider(self, provider: Optional[str]):
        self.providers.push(provider)

    def is_provider_recent(self, provider: Optional[str]) -> bool:
        return bool(provider) and provider in self.providers

    def mark_origin(self, origin: CandidateOrigin):
        # Sliding window, origins are not de-duplicated
        with self._origin_lock:
            self._origins.append(origin.value)
            while len(self._origins) > self.max_origins:
                self._origins.pop(0)

    def recent_origins(self, size: int) -> List[CandidateOrigin]:
        with self._origin_lock:
            window = self._origins[-size:] if size > 0 else []
        return [CandidateOrigin(value) for value in window]

    def reset(self):
        for recent in (self.items, self.topics, self.providers, self.keywords):
            recent.clear()
        with self._origin_lock:
            self._origins.clear()

    def sizes(self) -> Dict[str, int]:
        return {
            'items': len(self.items),
            'topics': len(self.topics),
            'providers': len(self.providers),
            'keywords': len(self.keywords),
            'origins': len(self._origins),
        }
