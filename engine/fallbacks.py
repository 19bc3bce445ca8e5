"""Local content served when neither the database nor the network has anything"""

import logging
import random
from pathlib import Path
from typing import Dict, List, Optional

import config

logger = logging.getLogger(__name__)

FALLBACK_IMAGES = [
    'https://images.unsplash.com/photo-1519681393784-d120267933ba',
    'https://images.unsplash.com/photo-1500530855697-b586d89ba3ee',
    'https://images.unsplash.com/photo-1495567720989-cebdbdd97913',
]

LOCAL_QUOTES = [
    'Simplicity is the soul of efficiency.',
    'Make it work, make it right, make it fast.',
    'Creativity is intelligence having fun.',
    'The best way to predict the future is to invent it.',
    'Imagination rules the world.',
    'Stay curious and keep exploring.',
    'Every great idea started as something weird.',
]

LOCAL_FACTS = [
    'Honey never spoils.',
    'Octopuses have three hearts.',
    'Bananas are berries.',
    'A group of flamingos is a flamboyance.',
]

_short_jokes: Optional[List[str]] = None


def load_short_jokes(path: str = None) -> List[str]:
    """Read the short jokes file once, one joke per line."""
    global _short_jokes
    if _short_jokes is not None and path is None:
        return _short_jokes
    jokes_path = Path(path or config.SHORTJOKES_PATH)
    try:
        lines = jokes_path.read_text(encoding='utf-8').splitlines()
    except OSError as e:
        logger.info("Short jokes unavailable at %s: %s", jokes_path, e)
        lines = []
    jokes = [line.strip() for line in lines if line.strip()]
    if path is None:
        _short_jokes = jokes
    return jokes


def reset_cache():
    global _short_jokes
    _short_jokes = None


def _pick_unseen(options: List[str], is_recent, rng) -> Optional[str]:
    if not options:
        return None
    unseen = [option for option in options if not is_recent(option)]
    return rng.choice(unseen or options)


def fallback_document(item_type: str, is_recent=lambda key: False, rng=random) -> Optional[Dict]:
    """
    Raw document for the local fallback of an item type.

    ``is_recent`` receives a candidate key; entries that are not recent are
    preferred, and once all of them are one is chosen from the full list.
    Video and web items have no local fallback.
    """
    if item_type == 'image':
        url = _pick_unseen(FALLBACK_IMAGES, is_recent, rng)
        return {'url': url, 'provider': 'unsplash', 'source': {'name': 'Unsplash', 'url': url}}
    if item_type == 'quote':
        text = _pick_unseen(LOCAL_QUOTES, lambda q: is_recent(f"{q}__"), rng)
        return {'text': text, 'author': '', 'provider': 'local', 'source': {'name': 'Local', 'url': ''}}
    if item_type == 'fact':
        text = _pick_unseen(LOCAL_FACTS, is_recent, rng)
        return {'text': text, 'provider': 'local', 'source': {'name': 'Local', 'url': ''}}
    if item_type == 'joke':
        text = _pick_unseen(load_short_jokes(), is_recent, rng)
        if text is None:
            return None
        return {'text': text, 'provider': 'shortjokes.csv', 'source': {'name': 'local-csv', 'url': ''}}
    return None
