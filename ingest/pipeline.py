"""Normalize, de-duplicate and upsert incoming items"""

import logging
from collections import Counter
from dataclasses import asdict, dataclass, field
from typing import Dict, List, Optional

from engine.items import InvalidItemError, ItemType, build_document, identity_filter, parse_item_type
from engine.store import ItemStore
from ingest.feeds import FeedSource, fetch_feed, pick_query, sources_for
from ingest.pages import fetch_og_image

logger = logging.getLogger(__name__)


@dataclass
class IngestResult:
    item_type: str
    scanned: int = 0
    unique: int = 0
    inserted: int = 0
    updated: int = 0
    rejected: int = 0
    dry_run: bool = False
    sample: List[Dict] = field(default_factory=list)
    provider_counts: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict:
        data = asdict(self)
        data['type'] = data.pop('item_type')
        data['dryRun'] = data.pop('dry_run')
        data['providerCounts'] = data.pop('provider_counts')
        if not self.dry_run:
            data.pop('sample')
        return data


def _identity(doc: Dict) -> tuple:
    return tuple(sorted(identity_filter(doc).items()))


def ingest_items(item_type, raw_items: List[Dict], store: ItemStore, dry_run: bool = False,
                 enrich: bool = False, sample_size: int = 5) -> IngestResult:
    """
    Store a batch of raw items.

    Args:
        item_type: ItemType or its string value
        raw_items: loose dicts, normalized with build_document
        store: target item store
        dry_run: normalize and report without writing
        enrich: look up preview images for web items that lack one
        sample_size: documents echoed back on a dry run

    Returns:
        IngestResult with scanned, unique, inserted, updated and rejected counts
    """
    item_type = parse_item_type(item_type)
    result = IngestResult(item_type=item_type.value, scanned=len(raw_items), dry_run=dry_run)

    unique = {}
    for raw in raw_items:
        try:
            doc = build_document(item_type, raw)
        except InvalidItemError as e:
            result.rejected += 1
            logger.debug("Rejected %s item: %s", item_type.value, e)
            continue
        unique.setdefault(_identity(doc), doc)

    docs = list(unique.values())
    result.unique = len(docs)
    result.provider_counts = dict(Counter(doc.get('provider', '') for doc in docs))

    if enrich and item_type == ItemType.WEB:
        for doc in docs:
            if not doc.get('ogImage'):
                doc['ogImage'] = fetch_og_image(doc['url'])

    if dry_run:
        result.sample = docs[:sample_size]
        return result

    counts = store.bulk_upsert(docs)
    result.inserted = counts['inserted']
    result.updated = counts['updated']
    logger.info("Ingested %s: scanned=%d unique=%d inserted=%d updated=%d rejected=%d",
                item_type.value, result.scanned, result.unique, result.inserted,
                result.updated, result.rejected)
    return result


def pull_feeds(item_type, store: ItemStore, names: List[str] = None, query: Optional[str] = None,
               rounds: int = 1, dry_run: bool = False, enrich: bool = False,
               sources: List[FeedSource] = None) -> IngestResult:
    """
    Fetch the configured feeds of an item type and store what they return.

    Each round hits every selected feed once; feeds that take a query get
    ``query`` or one of the default queries for the type.
    """
    item_type = parse_item_type(item_type)
    feeds = sources_for(item_type, names, sources)
    collected = []
    for _ in range(max(1, rounds)):
        for source in feeds:
            feed_query = (query or pick_query(item_type)) if source.needs_query else ''
            try:
                collected.extend(fetch_feed(source, feed_query))
            except Exception as e:
                logger.warning("Feed %s failed: %s", source.name, e)
    logger.info("Pulled %d raw %s items from %d feeds", len(collected), item_type.value, len(feeds))
    return ingest_items(item_type, collected, store, dry_run=dry_run, enrich=enrich)
