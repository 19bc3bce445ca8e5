"""Configurable JSON feeds that produce raw items and network candidates"""

import logging
import os
import random
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional
from urllib.parse import quote_plus, urljoin

import config
from engine.items import Candidate, CandidateOrigin, ItemType, build_candidate, parse_item_type
from ingest.client import fetch_json

logger = logging.getLogger(__name__)


@dataclass
class FeedSource:
    name: str
    item_type: ItemType
    url: str
    items: str = ''
    fields: Dict[str, str] = field(default_factory=dict)
    source: Dict[str, str] = field(default_factory=dict)
    match: Dict[str, str] = field(default_factory=dict)
    env_key: Optional[str] = None
    env: Dict[str, str] = field(default_factory=dict)
    limit: int = 6

    @classmethod
    def from_config(cls, entry: Dict) -> 'FeedSource':
        return cls(
            name=entry['name'],
            item_type=parse_item_type(entry['type']),
            url=entry['url'],
            items=entry.get('items', ''),
            fields=dict(entry.get('fields', {})),
            source=dict(entry.get('source', {})),
            match=dict(entry.get('match', {})),
            env_key=entry.get('env_key'),
            env=dict(entry.get('env', {})),
            limit=int(entry.get('limit', 6)),
        )

    def _env_values(self) -> Optional[Dict[str, str]]:
        values = {}
        if self.env_key:
            values['key'] = os.environ.get(self.env_key, '')
        for name, var in self.env.items():
            values[name] = os.environ.get(var, '')
        if any(not value for value in values.values()):
            return None
        return values

    @property
    def enabled(self) -> bool:
        return self._env_values() is not None

    @property
    def needs_query(self) -> bool:
        return '{query}' in self.url

    def build_url(self, query: str = '') -> Optional[str]:
        values = self._env_values()
        if values is None:
            return None
        return self.url.format(query=quote_plus(query or ''), **values)


def load_sources(entries: List[Dict] = None) -> List[FeedSource]:
    return [FeedSource.from_config(entry) for entry in (config.FEED_SOURCES if entries is None else entries)]


def get_path(data, path: str):
    """Walk a dotted path through dicts and lists; '' is the value itself."""
    if not path:
        return data
    current = data
    for part in path.split('.'):
        if isinstance(current, dict):
            current = current.get(part)
        elif isinstance(current, list) and part.isdigit():
            index = int(part)
            current = current[index] if index < len(current) else None
        else:
            return None
        if current is None:
            return None
    return current


def parse_entries(source: FeedSource, payload, query: str = '') -> List[Dict]:
    """
    Map a feed payload onto raw item dicts.

    Entries failing a ``match`` pattern, or missing every mapped field,
    are dropped.
    """
    entries = get_path(payload, source.items)
    if entries is None:
        return []
    if not isinstance(entries, list):
        entries = [entries]

    raws = []
    for entry in entries:
        raw = {}
        for name, path in source.fields.items():
            value = get_path(entry, path)
            if isinstance(value, (str, int, float)) and str(value).strip():
                raw[name] = str(value).strip()
        if not raw:
            continue
        if any(not re.search(pattern, raw.get(name, '')) for name, pattern in source.match.items()):
            continue
        base_url = source.source.get('url', '')
        page_url = raw.pop('page_url', None)
        if page_url:
            page_url = urljoin(base_url, page_url)
        raw.setdefault('provider', source.name)
        raw['source'] = {
            'name': source.source.get('name', source.name),
            'url': page_url or raw.get('url') or base_url,
        }
        if page_url:
            raw['page_url'] = page_url
        if query:
            raw['queries'] = [query]
        raws.append(raw)
    return raws


def fetch_feed(source: FeedSource, query: str = '', timeout: float = config.INGEST_TIMEOUT) -> List[Dict]:
    url = source.build_url(query)
    if url is None:
        return []
    payload = fetch_json(url, timeout=timeout)
    if payload is None:
        return []
    return parse_entries(source, payload, query if source.needs_query else '')


def sources_for(item_type: ItemType, names: List[str] = None,
                sources: List[FeedSource] = None) -> List[FeedSource]:
    available = load_sources() if sources is None else sources
    selected = [s for s in available if s.item_type == item_type and s.enabled]
    if names:
        wanted = {name.strip().lower() for name in names}
        selected = [s for s in selected if s.name.lower() in wanted]
    return selected


def pick_query(item_type: ItemType, hints: List[str] = None, rng=random) -> str:
    if hints:
        return rng.choice(hints)
    defaults = config.DEFAULT_QUERIES.get(item_type.value)
    return rng.choice(defaults) if defaults else ''


def is_limited_author(author: str) -> bool:
    lowered = (author or '').strip().lower()
    return bool(lowered) and any(name in lowered for name in config.LIMITED_AUTHORS)


class NetworkCandidates:
    """
    Live candidates pulled from the enabled feeds of an item type.

    Feeds are tried in random order and failures are logged and skipped.
    """

    def __init__(self, sources: List[FeedSource] = None, timeout: float = config.PROVIDER_TIMEOUT,
                 enabled: bool = config.NETWORK_ENABLED, rng=None):
        self.sources = sources
        self.timeout = timeout
        self.enabled = enabled
        self.rng = rng or random.Random()

    def __call__(self, item_type: ItemType, hints: List[str] = None) -> List[Candidate]:
        if not self.enabled:
            return []
        feeds = sources_for(item_type, sources=self.sources)
        self.rng.shuffle(feeds)

        candidates = []
        for source in feeds:
            query = pick_query(item_type, hints, self.rng) if source.needs_query else ''
            try:
                raws = fetch_feed(source, query, timeout=self.timeout)
            except Exception as e:
                logger.warning("Feed %s failed: %s", source.name, e)
                continue
            for raw in raws[:source.limit]:
                if item_type == ItemType.QUOTE and is_limited_author(raw.get('author')) \
                        and self.rng.random() < config.LIMITED_AUTHOR_SKIP_RATE:
                    continue
                candidate = build_candidate(item_type, raw, CandidateOrigin.NETWORK)
                if candidate:
                    candidates.append(candidate)
        logger.debug("%d network %s candidates from %d feeds", len(candidates), item_type.value, len(feeds))
        return candidates
