"""Tag and keyword extraction shared by ingestion and selection"""

import re
import unicodedata
from typing import Iterable, List, Optional, Union

DEFAULT_STOP_WORDS = frozenset([
    'the', 'and', 'with', 'from', 'that', 'this', 'your', 'our', 'for', 'into', 'over', 'under',
    'about', 'just', 'make', 'made', 'making', 'best', 'how', 'what', 'when', 'where', 'why', 'who',
    'are', 'was', 'were', 'will', 'can', 'get', 'got', 'been', 'take', 'takes', 'took', 'first',
    'second', 'third', 'day', 'night', 'amp', 'episode', 'official', 'new', 'video', 'full', 'challenge',
    'edition', 'life', 'hack', 'hacks', 'trick', 'tricks', 'tip', 'tips', 'tutorial', 'amazing',
    'awesome', 'incredible', 'really', 'very', 'here', 'there', 'have', 'without', 'inside', 'outside',
    'their', 'them', 'they', 'you', 'yours', 'give', 'given', 'giving', 'see', 'seen', 'look', 'looking',
    'want', 'wanted', 'watch', 'watching', 'every', 'always', 'never', 'still', 'out', 'once', 'again',
    'another', 'ever', 'more', 'less', 'thing', 'things', 'stuff', 'maybe', 'some', 'someone',
    'something', 'going', 'around', 'back', 'front', 'little', 'big', 'fun', 'cool', 'nice', 'good',
    'bad', 'love', 'live', 'shorts', 'short', 'feat',
])

QUOTE_STOP_WORDS = frozenset([
    'the', 'and', 'with', 'from', 'that', 'this', 'your', 'our', 'for', 'into', 'over', 'under',
    'about', 'just', 'make', 'made', 'making', 'best', 'how', 'what', 'when', 'where', 'why', 'who',
    'are', 'was', 'were', 'will', 'can', 'get', 'been', 'take', 'takes', 'took', 'first', 'second',
    'third', 'day', 'night', 'amp', 'life', 'quote', 'quotes',
])

TAG_STOP_WORDS = frozenset(['', 'gif', 'image', 'photo', 'video'])

# Topic seeds per item type: a tag applies when any seed occurs in the text
TOPIC_SEEDS = {
    'quote': {
        'inspiration': ['dream', 'hope', 'inspire', 'courage', 'light', 'future', 'vision', 'grow', 'goal'],
        'love': ['love', 'heart', 'romance', 'affection', 'together', 'kindness', 'compassion'],
        'wisdom': ['wisdom', 'knowledge', 'truth', 'lesson', 'learn', 'understand', 'philosophy'],
        'ambition': ['success', 'goal', 'achievement', 'drive', 'focus', 'win', 'mission'],
        'creativity': ['create', 'art', 'artist', 'imagination', 'idea', 'design'],
        'resilience': ['strength', 'resilience', 'fight', 'battle', 'storm', 'survive', 'rise'],
        'humor': ['laugh', 'funny', 'smile', 'joy'],
        'mindfulness': ['mind', 'calm', 'peace', 'silence', 'meditation', 'breathe'],
    },
    'fact': {
        'science': ['planet', 'star', 'space', 'physics', 'chemistry', 'biology', 'atom', 'quantum', 'experiment'],
        'history': ['history', 'ancient', 'empire', 'king', 'queen', 'war', 'dynasty', 'medieval'],
        'animal': ['animal', 'cat', 'dog', 'bird', 'fish', 'insect', 'mammal', 'reptile'],
        'space': ['galaxy', 'universe', 'mars', 'moon', 'nasa', 'astronaut', 'cosmos'],
        'culture': ['culture', 'festival', 'language', 'music', 'dance', 'tradition', 'myth'],
        'numbers': ['percent', 'ratio', 'number', 'statistics', 'probability', 'math'],
        'odd': ['weird', 'strange', 'bizarre', 'unusual', 'rare', 'unexpected'],
    },
    'joke': {
        'tech': ['computer', 'programmer', 'developer', 'debug', 'software', 'coding', 'laptop', 'wifi'],
        'work': ['boss', 'office', 'meeting', 'coworker', 'deadline', 'job', 'zoom'],
        'family': ['mom', 'dad', 'kids', 'baby', 'grandma', 'grandpa', 'sister', 'brother', 'family'],
        'relationships': ['dating', 'marriage', 'husband', 'wife', 'girlfriend', 'boyfriend', 'partner', 'romance'],
        'school': ['school', 'teacher', 'class', 'homework', 'exam', 'college', 'university'],
        'bar': ['bar', 'bartender', 'drink', 'beer', 'wine', 'pub'],
        'animals': ['dog', 'cat', 'cow', 'horse', 'chicken', 'duck', 'goat', 'pig', 'bird', 'fish'],
        'puns': ['pun', 'wordplay', 'knock knock', 'dad joke'],
        'dark': ['grave', 'ghost', 'zombie', 'vampire', 'death', 'haunted'],
        'daily': ['coffee', 'sleep', 'morning', 'kitchen', 'laundry', 'groceries', 'traffic'],
        'holiday': ['christmas', 'holiday', 'halloween', 'birthday', 'new year', 'valentine'],
    },
}

# Types whose topic extraction never comes back empty
MISC_DEFAULT_TYPES = ('quote', 'joke')

_NON_ALNUM = re.compile(r'[^a-z0-9\s]')
_SLUG = re.compile(r'[^a-z0-9]+')


def normalize_text(value: str) -> str:
    """Lowercase and strip accents."""
    decomposed = unicodedata.normalize('NFKD', value)
    return ''.join(ch for ch in decomposed if not unicodedata.combining(ch)).lower()


def collapse_whitespace(value: Optional[str]) -> str:
    return re.sub(r'\s+', ' ', value or '').strip()


def tokenize(text: str) -> List[str]:
    return _NON_ALNUM.sub(' ', normalize_text(text)).split()


def extract_keywords(text: Optional[str], limit: int = 12,
                     stop_words: Iterable[str] = DEFAULT_STOP_WORDS) -> List[str]:
    """
    Pull distinctive words out of free text.

    Keeps tokens of 3 to 18 characters that are not stop words, in the
    order they first appear, up to ``limit``.
    """
    if not text:
        return []
    stop = stop_words if isinstance(stop_words, (set, frozenset)) else set(stop_words)
    keywords = []
    seen = set()
    for word in tokenize(text):
        if len(word) < 3 or len(word) > 18:
            continue
        if word in stop or word in seen:
            continue
        seen.add(word)
        keywords.append(word)
        if len(keywords) >= limit:
            break
    return keywords


def sanitize_tag(raw: str) -> Optional[str]:
    tag = _SLUG.sub('-', normalize_text(raw)).strip('-')
    if not tag or tag in TAG_STOP_WORDS or len(tag) < 2:
        return None
    return tag


def build_tag_list(values: Iterable[Union[str, List[str], None]], limit: int = 12) -> List[str]:
    """Flatten strings and lists of strings into unique slug tags."""
    tags = []
    seen = set()
    for entry in values:
        if not entry:
            continue
        entries = entry if isinstance(entry, (list, tuple)) else [entry]
        for raw in entries:
            if not raw or not isinstance(raw, str):
                continue
            tag = sanitize_tag(raw)
            if not tag or tag in seen:
                continue
            seen.add(tag)
            tags.append(tag)
            if len(tags) >= limit:
                return tags
    return tags


def merge_keyword_sources(parts: Iterable[Optional[str]], limit: int = 14) -> List[str]:
    merged = ' '.join(part for part in parts if part)
    return extract_keywords(merged, limit)


def expand_query_to_tags(queries: Iterable[str]) -> List[str]:
    tags = []
    for query in queries:
        if not query:
            continue
        tags.extend(part for part in re.split(r'[\s,]+', query) if part)
    return tags


def extract_topic_tags(text: Optional[str], item_type: str) -> List[str]:
    """Map text onto the topic seeds of an item type."""
    seeds = TOPIC_SEEDS.get(item_type, {})
    lower = (text or '').lower()
    tags = []
    if lower:
        for tag, words in seeds.items():
            if any(word in lower for word in words) and tag not in tags:
                tags.append(tag)
    if not tags and item_type in MISC_DEFAULT_TYPES:
        return ['misc']
    return tags


def normalize_string_list(value) -> List[str]:
    """Trimmed, lowercased, de-duplicated strings from a stored list."""
    if not isinstance(value, (list, tuple)):
        return []
    out = []
    for entry in value:
        if entry is None:
            continue
        text = str(entry).strip().lower()
        if text and text not in out:
            out.append(text)
    return out
