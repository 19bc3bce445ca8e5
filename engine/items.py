"""Item types, stored documents and selection candidates"""

import hashlib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional
from urllib.parse import parse_qs, urlparse

from engine.text import (
    QUOTE_STOP_WORDS,
    build_tag_list,
    collapse_whitespace,
    expand_query_to_tags,
    extract_keywords,
    extract_topic_tags,
    merge_keyword_sources,
    normalize_string_list,
)


class ItemType(Enum):
    IMAGE = "image"
    QUOTE = "quote"
    FACT = "fact"
    JOKE = "joke"
    VIDEO = "video"
    WEB = "web"


class CandidateOrigin(Enum):
    DB_FRESH = "db-fresh"
    DB_UNSEEN = "db-unseen"
    DB_BACKLOG = "db-backlog"
    DB_RANDOM = "db-random"
    NETWORK = "network"
    FALLBACK = "fallback"


class SkipReason(Enum):
    LOW_SCORE = "lowScore"
    GLOBALLY_RECENT = "globallyRecent"
    ALL_RECENT = "allRecent"
    GLOBAL_TOPICS = "globalTopics"
    PROVIDER_FATIGUE = "providerFatigue"
    PREFER_FRESH = "preferFresh"


class InvalidItemError(ValueError):
    """Raised when raw input cannot be turned into a stored document."""


TEXT_TYPES = (ItemType.QUOTE, ItemType.FACT, ItemType.JOKE)

# Provider used when a document does not name one
DEFAULT_PROVIDERS = {
    ItemType.IMAGE: 'image',
    ItemType.QUOTE: 'quote',
    ItemType.FACT: 'fact',
    ItemType.JOKE: 'cache',
    ItemType.VIDEO: 'youtube',
    ItemType.WEB: 'web',
}

IMAGE_STOP_TAGS = frozenset(['pixabay', 'pexels', 'giphy', 'tenor', 'image', 'photo', 'gif'])


@dataclass
class Candidate:
    item_type: ItemType
    key: str
    item: Dict
    filter: Dict
    document: Dict
    provider: str
    origin: CandidateOrigin
    tags: List[str] = field(default_factory=list)
    keywords: List[str] = field(default_factory=list)
    author: str = ''
    updated_at: Optional[datetime] = None
    last_shown_at: Optional[datetime] = None


@dataclass
class SelectionDebug:
    total: int
    fallback: bool = False
    relaxed: bool = False
    selected: Optional[str] = None
    reasons: Dict[str, int] = field(
        default_factory=lambda: {reason.value: 0 for reason in SkipReason}
    )

    def track(self, reason: SkipReason):
        self.reasons[reason.value] += 1

    def to_dict(self) -> Dict:
        return {
            'total': self.total,
            'fallback': self.fallback,
            'relaxed': self.relaxed,
            'selected': self.selected,
            'reasons': dict(self.reasons),
        }


def parse_item_type(value) -> ItemType:
    if isinstance(value, ItemType):
        return value
    try:
        return ItemType(str(value or '').strip().lower())
    except ValueError:
        raise InvalidItemError(f"Unknown item type: {value!r}")


def utcnow() -> datetime:
    """Current time as naive UTC, the form pymongo hands back."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_datetime(value) -> Optional[datetime]:
    """Coerce a stored timestamp to naive UTC."""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc).replace(tzinfo=None)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip().replace('Z', '+00:00'))
        except ValueError:
            return None
        return to_datetime(parsed)
    return None


def _text(value) -> str:
    return collapse_whitespace(value) if isinstance(value, str) else ''


def content_hash(text: str, author: Optional[str] = None) -> str:
    payload = collapse_whitespace(text)
    if author is not None:
        payload = f"{payload}||{collapse_whitespace(author)}"
    return hashlib.sha1(payload.encode('utf-8')).hexdigest()


def youtube_id(url: str) -> str:
    """Video id from a youtube.com/watch or youtu.be link."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return ''
    host = (parsed.hostname or '').lower()
    if host.endswith('youtu.be'):
        return parsed.path.strip('/').split('/')[0]
    if 'youtube.com' in host:
        ids = parse_qs(parsed.query).get('v')
        if ids:
            return ids[0]
        parts = [p for p in parsed.path.split('/') if p]
        if len(parts) >= 2 and parts[0] in ('shorts', 'embed'):
            return parts[1]
    return ''


def youtube_thumb(video_id: str) -> str:
    return f"https://i.ytimg.com/vi/{video_id}/hqdefault.jpg"


def host_of(url: str) -> str:
    try:
        host = urlparse(url).netloc
    except ValueError:
        return ''
    return host[4:] if host.startswith('www.') else host


def _source(raw: Dict, provider: str, default_url: Optional[str]) -> Dict:
    source = raw.get('source')
    if not isinstance(source, dict):
        source = {}
    name = _text(source.get('name')) or provider
    url = source.get('url') if isinstance(source.get('url'), str) and source.get('url') else default_url
    return {'name': name, 'url': url or ''}


def _provider(raw: Dict, item_type: ItemType) -> str:
    provider = _text(raw.get('provider'))
    if provider:
        return provider
    source = raw.get('source')
    if isinstance(source, dict) and _text(source.get('name')):
        return _text(source.get('name'))
    return DEFAULT_PROVIDERS[item_type]


def _queries(value) -> List[str]:
    """Search queries as a list; a bare string is one query."""
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return []
    return [q for q in value if isinstance(q, str) and q.strip()]


def _text_keywords(item_type: ItemType, text: str) -> List[str]:
    if item_type == ItemType.QUOTE:
        return extract_keywords(text, 6, QUOTE_STOP_WORDS)
    return extract_keywords(text, 8, ())


# ==================== DOCUMENTS ====================

def build_document(item_type, raw: Dict) -> Dict:
    """
    Normalize a raw item into the document stored in ``items``.

    Args:
        item_type: ItemType or its string value
        raw: loose dict from a feed, an ingest request or a scraper

    Returns:
        Document dict including ``type``, identity fields, tags and keywords

    Raises:
        InvalidItemError: the identity field (text or url) is missing
    """
    item_type = parse_item_type(item_type)
    if not isinstance(raw, dict):
        raise InvalidItemError(f"Expected an object for {item_type.value}, got {type(raw).__name__}")

    if item_type in TEXT_TYPES:
        return _build_text_document(item_type, raw)
    if item_type == ItemType.IMAGE:
        return _build_image_document(raw)
    if item_type == ItemType.VIDEO:
        return _build_video_document(raw)
    return _build_web_document(raw)


def _build_text_document(item_type: ItemType, raw: Dict) -> Dict:
    text = _text(raw.get('text')) or _text(raw.get('content'))
    if not text:
        raise InvalidItemError(f"{item_type.value} requires text")
    provider = _provider(raw, item_type)
    doc = {
        'type': item_type.value,
        'text': text,
        'provider': provider,
        'source': _source(raw, provider, raw.get('url') if isinstance(raw.get('url'), str) else None),
    }
    combined = text
    if item_type == ItemType.QUOTE:
        author = _text(raw.get('author'))
        doc['author'] = author
        doc['hash'] = content_hash(text, author)
        combined = f"{text} {author}".strip()
    else:
        doc['hash'] = content_hash(text)
    doc['tags'] = normalize_string_list(raw.get('tags')) or extract_topic_tags(combined, item_type.value)
    doc['keywords'] = normalize_string_list(raw.get('keywords')) or _text_keywords(item_type, combined)
    return doc


def _build_image_document(raw: Dict) -> Dict:
    url = _text(raw.get('url'))
    if not url:
        raise InvalidItemError("image requires url")
    provider = _provider(raw, ItemType.IMAGE)
    title = _text(raw.get('title'))
    description = _text(raw.get('description'))
    queries = _queries(raw.get('queries'))
    api_tags = raw.get('apiTags') if isinstance(raw.get('apiTags'), list) else []
    tags = normalize_string_list(raw.get('tags'))
    if not tags:
        tags = [t for t in build_tag_list([provider, expand_query_to_tags(queries), api_tags, title, description])
                if t not in IMAGE_STOP_TAGS]
    keywords = normalize_string_list(raw.get('keywords')) or merge_keyword_sources(
        [title, ' '.join(queries), description])
    return {
        'type': ItemType.IMAGE.value,
        'url': url,
        'thumb': _text(raw.get('thumb')) or _text(raw.get('thumbUrl')) or None,
        'title': title,
        'provider': provider,
        'source': _source(raw, provider, _text(raw.get('page_url')) or url),
        'tags': tags,
        'keywords': keywords,
    }


def _build_video_document(raw: Dict) -> Dict:
    video_id = _text(raw.get('videoId'))
    url = _text(raw.get('url'))
    if not video_id and url:
        video_id = youtube_id(url)
    if not url and video_id:
        url = f"https://youtu.be/{video_id}"
    if not url:
        raise InvalidItemError("video requires url or videoId")
    provider = _provider(raw, ItemType.VIDEO)
    title = _text(raw.get('title')) or _text(raw.get('text'))
    description = _text(raw.get('description'))
    queries = _queries(raw.get('queries'))
    tags = normalize_string_list(raw.get('tags')) or build_tag_list(
        [provider, expand_query_to_tags(queries), title])
    keywords = normalize_string_list(raw.get('keywords')) or merge_keyword_sources(
        [title, description, ' '.join(queries)])
    doc = {
        'type': ItemType.VIDEO.value,
        'url': url,
        'thumb': _text(raw.get('thumb')) or (youtube_thumb(video_id) if video_id else None),
        'title': title,
        'description': description,
        'provider': provider,
        'source': _source(raw, provider, _text(raw.get('page_url')) or url),
        'tags': tags,
        'keywords': keywords,
    }
    if video_id:
        doc['videoId'] = video_id
    return doc


def _build_web_document(raw: Dict) -> Dict:
    url = _text(raw.get('url')) or _text(raw.get('link'))
    if not url:
        raise InvalidItemError("web requires url")
    host = _text(raw.get('host')) or host_of(url)
    provider = _provider(raw, ItemType.WEB)
    title = _text(raw.get('title')) or _text(raw.get('text')) or host or url
    return {
        'type': ItemType.WEB.value,
        'url': url,
        'title': title,
        'host': host,
        'ogImage': _text(raw.get('ogImage')) or None,
        'provider': provider,
        'source': _source(raw, provider, url),
        'tags': normalize_string_list(raw.get('tags')) or build_tag_list([host.split('.')[0] if host else '', title]),
        'keywords': normalize_string_list(raw.get('keywords')) or merge_keyword_sources([title]),
    }


def identity_filter(doc: Dict) -> Dict:
    """Mongo filter matching the stored copy of a document."""
    item_type = parse_item_type(doc.get('type'))
    if item_type in TEXT_TYPES:
        if doc.get('hash'):
            return {'type': item_type.value, 'hash': doc['hash']}
        return {'type': item_type.value, 'text': doc.get('text')}
    if item_type == ItemType.VIDEO and doc.get('videoId'):
        return {'type': item_type.value, 'videoId': doc['videoId']}
    return {'type': item_type.value, 'url': doc.get('url')}


# ==================== CANDIDATES ====================

def candidate_key(item_type: ItemType, doc: Dict) -> str:
    if item_type == ItemType.QUOTE:
        return f"{doc.get('text', '')}__{doc.get('author', '')}"
    if item_type in TEXT_TYPES:
        return doc.get('text', '')
    if item_type == ItemType.VIDEO:
        return doc.get('videoId') or doc.get('url', '')
    return doc.get('url', '')


def global_key(item_type: ItemType, key: Optional[str]) -> Optional[str]:
    if not key:
        return None
    normalized = str(key).strip().lower()
    if not normalized:
        return None
    return f"{item_type.value}:{normalized}"


def build_payload(item_type: ItemType, doc: Dict) -> Dict:
    """Public shape of an item as returned by the API."""
    source = doc.get('source') or {'name': doc.get('provider', ''), 'url': ''}
    provider = doc.get('provider', '')
    if item_type == ItemType.IMAGE:
        return {'type': 'image', 'url': doc['url'], 'thumbUrl': doc.get('thumb'),
                'source': source, 'provider': provider}
    if item_type == ItemType.VIDEO:
        return {'type': 'video', 'url': doc['url'], 'thumbUrl': doc.get('thumb'),
                'text': doc.get('title', ''), 'source': source, 'provider': provider}
    if item_type == ItemType.WEB:
        return {'type': 'web', 'url': doc['url'], 'text': doc.get('title') or doc['url'],
                'ogImage': doc.get('ogImage'), 'source': source, 'provider': provider}
    payload = {'type': item_type.value, 'text': doc['text'], 'source': source, 'provider': provider}
    if item_type == ItemType.QUOTE:
        payload = {'type': 'quote', 'text': doc['text'], 'author': doc.get('author', ''),
                   'source': source, 'provider': provider}
    return payload


def build_candidate(item_type, doc: Optional[Dict], origin: CandidateOrigin) -> Optional[Candidate]:
    """
    Turn a stored or freshly fetched document into a scoring candidate.

    Stored documents keep their tags and keywords; anything missing is
    derived the same way ingestion derives it. Returns None when the
    document has no usable identity.
    """
    if not doc:
        return None
    item_type = parse_item_type(item_type)
    try:
        normalized = build_document(item_type, doc)
    except InvalidItemError:
        return None

    key = candidate_key(item_type, normalized)
    if not key:
        return None

    # Web recency is tracked per host, not per search feed
    provider = normalized.get('provider', '')
    if item_type == ItemType.WEB:
        provider = normalized.get('host') or provider

    return Candidate(
        item_type=item_type,
        key=key,
        item=build_payload(item_type, normalized),
        filter={'_id': doc['_id']} if doc.get('_id') is not None else identity_filter(normalized),
        document=normalized,
        provider=provider,
        origin=origin,
        tags=list(normalized.get('tags', [])),
        keywords=list(normalized.get('keywords', [])),
        author=normalized.get('author', ''),
        updated_at=to_datetime(doc.get('updatedAt')),
        last_shown_at=to_datetime(doc.get('lastShownAt')),
    )
