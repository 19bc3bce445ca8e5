"""MongoDB access for the shared items collection"""

import logging
import threading
from datetime import timedelta
from typing import Dict, List, Optional, Tuple

from pymongo import ASCENDING, DESCENDING, MongoClient, ReturnDocument
from pymongo.errors import PyMongoError

import config
from engine.items import CandidateOrigin, ItemType, identity_filter, utcnow

logger = logging.getLogger(__name__)

# (fresh, unseen, backlog, random) limits and backlog age in days
BUCKET_LIMITS = {
    ItemType.QUOTE: ((150, 100, 120, 80), 21),
}
DEFAULT_BUCKET_LIMITS = ((120, 80, 80, 60), 14)

NOT_SUPPRESSED = {'isSuppressed': {'$ne': True}}
INSERT_DEFAULTS = {'dislikeCount': 0, 'showWeight': 1.0, 'isSuppressed': False}


class ItemStore:
    """
    Reads and writes content documents in the ``items`` collection.

    Every read degrades to an empty result when the database is
    unconfigured or unreachable, so selection can still fall back to
    network candidates and local content.
    """

    def __init__(self, uri: str = config.MONGO_URI, db_name: str = config.MONGO_DB,
                 collection: str = config.ITEMS_COLLECTION, db=None):
        self.uri = uri
        self.db_name = db_name
        self.collection_name = collection
        self._db = db
        self._client = None
        self._lock = threading.Lock()

    @property
    def db(self):
        """Database handle, or None when no URI is configured."""
        if self._db is not None:
            return self._db
        if not self.uri:
            return None
        with self._lock:
            if self._db is None:
                try:
                    self._client = MongoClient(self.uri, serverSelectionTimeoutMS=config.MONGO_TIMEOUT_MS,
                                               connectTimeoutMS=config.MONGO_TIMEOUT_MS)
                    self._db = self._client[self.db_name]
                except PyMongoError as e:
                    logger.warning("Mongo client init failed: %s", e)
                    return None
        return self._db

    @property
    def items(self):
        db = self.db
        return None if db is None else db[self.collection_name]

    def ping(self) -> bool:
        db = self.db
        if db is None:
            return False
        try:
            result = db.command('ping')
            return bool(result.get('ok'))
        except PyMongoError as e:
            logger.warning("Mongo ping failed: %s", e)
            return False

    def ensure_indexes(self):
        coll = self.items
        if coll is None:
            return
        try:
            coll.create_index([('type', ASCENDING), ('updatedAt', DESCENDING)])
            coll.create_index([('type', ASCENDING), ('lastShownAt', ASCENDING)])
            coll.create_index([('type', ASCENDING), ('hash', ASCENDING)])
            coll.create_index([('type', ASCENDING), ('url', ASCENDING)])
        except PyMongoError as e:
            logger.warning("Index creation failed: %s", e)

    # ==================== READS ====================

    def collect_documents(self, item_type: ItemType) -> List[Tuple[Dict, CandidateOrigin]]:
        """
        Pull the four candidate buckets for an item type.

        Returns:
            (document, origin) pairs in bucket order: fresh, unseen,
            backlog, random. A document may appear in several buckets.
        """
        coll = self.items
        if coll is None:
            return []

        (fresh_n, unseen_n, backlog_n, random_n), backlog_days = BUCKET_LIMITS.get(
            item_type, DEFAULT_BUCKET_LIMITS)
        base = {'type': item_type.value, **NOT_SUPPRESSED}
        stale = utcnow() - timedelta(days=backlog_days)

        results = []
        try:
            fresh = coll.find(base).sort('updatedAt', DESCENDING).limit(fresh_n)
            results.extend((doc, CandidateOrigin.DB_FRESH) for doc in fresh)

            unseen = coll.find({**base, '$or': [{'lastShownAt': {'$exists': False}}, {'lastShownAt': None}]}) \
                .sort('updatedAt', DESCENDING).limit(unseen_n)
            results.extend((doc, CandidateOrigin.DB_UNSEEN) for doc in unseen)

            backlog = coll.find({**base, 'lastShownAt': {'$lt': stale}}) \
                .sort('lastShownAt', ASCENDING).limit(backlog_n)
            results.extend((doc, CandidateOrigin.DB_BACKLOG) for doc in backlog)

            sampled = coll.aggregate([{'$match': base}, {'$sample': {'size': random_n}}])
            results.extend((doc, CandidateOrigin.DB_RANDOM) for doc in sampled)
        except PyMongoError as e:
            logger.warning("Collecting %s candidates failed: %s", item_type.value, e)

        return results

    def stats(self) -> Dict[str, int]:
        coll = self.items
        if coll is None:
            return {}
        counts = {}
        try:
            for item_type in ItemType:
                counts[item_type.value] = coll.count_documents({'type': item_type.value})
        except PyMongoError as e:
            logger.warning("Counting items failed: %s", e)
        return counts

    # ==================== WRITES ====================

    def upsert_document(self, doc: Dict, key: Optional[Dict] = None) -> bool:
        """Insert or refresh one normalized document."""
        coll = self.items
        if coll is None:
            return False
        now = utcnow()
        try:
            coll.update_one(
                key or identity_filter(doc),
                {'$set': {**doc, 'updatedAt': now}, '$setOnInsert': {'createdAt': now, **INSERT_DEFAULTS}},
                upsert=True,
            )
            return True
        except PyMongoError as e:
            logger.warning("Upsert of %s failed: %s", doc.get('type'), e)
            return False

    def bulk_upsert(self, docs: List[Dict]) -> Dict[str, int]:
        """
        Upsert a batch of documents sharing one ``updatedAt``.

        Database errors propagate to the caller.

        Returns:
            Dict with inserted and updated counts
        """
        coll = self.items
        counts = {'inserted': 0, 'updated': 0}
        if coll is None or not docs:
            return counts
        now = utcnow()
        for doc in docs:
            result = coll.update_one(
                identity_filter(doc),
                {'$set': {**doc, 'updatedAt': now}, '$setOnInsert': {'createdAt': now, **INSERT_DEFAULTS}},
                upsert=True,
            )
            if result.upserted_id is not None:
                counts['inserted'] += 1
            elif result.modified_count:
                counts['updated'] += 1
        return counts

    def touch_last_shown(self, item_type: ItemType, key: Dict):
        coll = self.items
        if coll is None:
            return
        try:
            coll.update_one({'type': item_type.value, **key}, {'$set': {'lastShownAt': utcnow()}})
        except PyMongoError as e:
            logger.warning("Touching %s failed: %s", item_type.value, e)

    def record_dislike(self, item_type: ItemType, key: Dict) -> Optional[Dict]:
        """
        Register a dislike: bump the counter and shrink the show weight.

        The weight is DISLIKE_WEIGHT_FACTOR raised to the dislike count, so
        every dislike scales it by the factor once. Items past the
        suppression threshold are hidden from selection.

        Returns:
            The updated document, or None when nothing matched
        """
        coll = self.items
        if coll is None:
            return None
        doc = coll.find_one_and_update(
            {'type': item_type.value, **key},
            {'$inc': {'dislikeCount': 1}},
            return_document=ReturnDocument.AFTER,
        )
        if doc is None:
            return None
        count = doc.get('dislikeCount', 0)
        changes = {'showWeight': config.DISLIKE_WEIGHT_FACTOR ** count}
        if count >= config.DISLIKE_SUPPRESS_THRESHOLD:
            changes['isSuppressed'] = True
        coll.update_one({'_id': doc['_id']}, {'$set': changes})
        doc.update(changes)
        return doc


# Singleton instance
item_store = ItemStore()
