#!/usr/bin/env python3
"""Random Feed - Flask API Server"""

import logging

from bson import ObjectId
from flask import Flask, jsonify, request
from flask_cors import CORS
from pymongo.errors import PyMongoError

import config
from engine.items import InvalidItemError, ItemType, parse_item_type
from engine.selection import selection_engine
from engine.store import item_store
from ingest.feeds import load_sources
from ingest.pipeline import ingest_items, pull_feeds

logger = logging.getLogger(__name__)

app = Flask(__name__)
CORS(app, resources={r"/api/*": {"origins": "*"}})

# Fields a client may use to point at a stored item
DISLIKE_KEY_FIELDS = ('_id', 'url', 'videoId', 'hash', 'text')


def parse_types(value):
    """Comma separated type list; unknown names are dropped."""
    if not value:
        return list(config.DEFAULT_TYPES)
    types = []
    for name in value.split(','):
        name = name.strip().lower()
        if name in config.ITEM_TYPES and name not in types:
            types.append(name)
    return types or list(config.DEFAULT_TYPES)


def parse_flag(value):
    return str(value or '').strip().lower() in ('1', 'true', 'yes', 'on')


def parse_hints(value):
    if not value:
        return None
    hints = [h.strip() for h in value.split(',') if h.strip()]
    return hints or None


def is_authorized():
    """Admin key from the ``key`` query param or the x-admin-ingest-key header."""
    if not config.ADMIN_INGEST_KEY:
        return False
    supplied = request.args.get('key') or request.headers.get('x-admin-ingest-key') or ''
    return supplied.strip() == config.ADMIN_INGEST_KEY


def lookup_type(name):
    """ItemType for a route segment, or None for unknown names."""
    try:
        return parse_item_type(name)
    except InvalidItemError:
        return None


# ==================== RANDOM ENDPOINTS ====================

@app.route('/api/random', methods=['GET'])
def get_random():
    """Random item from the first requested type that yields one."""
    types = parse_types(request.args.get('types'))
    debug = parse_flag(request.args.get('debug'))
    hints = parse_hints(request.args.get('q'))

    try:
        result = selection_engine.select_first(types, debug=debug, hints=hints)
    except Exception as e:
        logger.exception("Random selection failed")
        return jsonify({'error': str(e)}), 500

    body = {'item': result.item}
    if debug:
        body['debug'] = result.debug.to_dict() if result.debug else None
    return jsonify(body)


@app.route('/api/random/<item_type>', methods=['GET'])
def get_random_of_type(item_type):
    """Random item of a single type."""
    parsed = lookup_type(item_type)
    if parsed is None:
        return jsonify({'error': f'Unknown type: {item_type}'}), 404

    debug = parse_flag(request.args.get('debug'))
    hints = parse_hints(request.args.get('q'))
    try:
        result = selection_engine.select(parsed, debug=debug, hints=hints)
    except Exception as e:
        logger.exception("Selection of %s failed", parsed.value)
        return jsonify({'error': str(e)}), 500

    if result.item is None:
        return jsonify({'error': f'No {parsed.value} available'}), 404

    body = {'item': result.item}
    if debug:
        body['debug'] = result.debug.to_dict() if result.debug else None
    return jsonify(body)


@app.route('/api/types', methods=['GET'])
def get_types():
    """Available item types and the feeds configured for each."""
    sources = {t.value: [] for t in ItemType}
    for source in load_sources():
        sources[source.item_type.value].append({'name': source.name, 'enabled': source.enabled})
    return jsonify({
        'types': config.ITEM_TYPES,
        'defaultTypes': config.DEFAULT_TYPES,
        'sources': sources,
    })


# ==================== INGEST ENDPOINTS ====================

@app.route('/api/ingest/<item_type>', methods=['POST'])
def post_ingest(item_type):
    """Store pushed items of one type."""
    if not is_authorized():
        return jsonify({'error': 'Unauthorized'}), 401

    parsed = lookup_type(item_type)
    if parsed is None:
        return jsonify({'error': f'Unknown type: {item_type}'}), 404

    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'error': 'Body must be a JSON object'}), 400
    items = data.get('items')
    if not isinstance(items, list):
        return jsonify({'error': 'items must be a list'}), 400

    try:
        result = ingest_items(parsed, items, item_store,
                              dry_run=bool(data.get('dryRun')),
                              enrich=bool(data.get('enrich')))
    except InvalidItemError as e:
        return jsonify({'error': str(e)}), 400
    except PyMongoError as e:
        logger.error("Ingest of %s failed: %s", parsed.value, e)
        return jsonify({'error': str(e)}), 500

    return jsonify(result.to_dict())


@app.route('/api/ingest/<item_type>', methods=['GET'])
def pull_ingest(item_type):
    """Pull configured feeds of one type into the store."""
    if not is_authorized():
        return jsonify({'error': 'Unauthorized'}), 401

    parsed = lookup_type(item_type)
    if parsed is None:
        return jsonify({'error': f'Unknown type: {item_type}'}), 404

    names = parse_hints(request.args.get('sources'))
    try:
        rounds = int(request.args.get('rounds', 1))
    except ValueError:
        return jsonify({'error': 'rounds must be an integer'}), 400
    rounds = max(1, min(rounds, 10))

    try:
        result = pull_feeds(parsed, item_store, names=names, query=request.args.get('q'),
                            rounds=rounds, dry_run=parse_flag(request.args.get('dryRun')),
                            enrich=parse_flag(request.args.get('enrich')))
    except PyMongoError as e:
        logger.error("Feed pull of %s failed: %s", parsed.value, e)
        return jsonify({'error': str(e)}), 500

    return jsonify(result.to_dict())


# ==================== FEEDBACK ENDPOINTS ====================

@app.route('/api/feedback/dislike', methods=['POST'])
def post_dislike():
    """Record a dislike against a stored item."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'error': 'Body must be a JSON object'}), 400
    try:
        parsed = parse_item_type(data.get('type'))
    except InvalidItemError as e:
        return jsonify({'error': str(e)}), 400

    key = data.get('key', data)
    if not isinstance(key, dict):
        return jsonify({'error': 'key must be an object'}), 400

    # Only plain strings reach the query, never operator documents
    selector = {}
    for field in DISLIKE_KEY_FIELDS:
        if field not in key or key[field] is None:
            continue
        value = key[field]
        if not isinstance(value, str) or not value.strip():
            return jsonify({'error': f'{field} must be a non-empty string'}), 400
        if field == '_id':
            if not ObjectId.is_valid(value):
                return jsonify({'error': '_id is not a valid ObjectId'}), 400
            value = ObjectId(value)
        selector[field] = value
    if not selector:
        return jsonify({'error': 'Item key required'}), 400

    try:
        doc = item_store.record_dislike(parsed, selector)
    except PyMongoError as e:
        logger.error("Dislike failed: %s", e)
        return jsonify({'error': 'Internal server error'}), 500

    return jsonify({
        'success': True,
        'found': doc is not None,
        'dislikeCount': doc.get('dislikeCount', 0) if doc else 0,
        'isSuppressed': bool(doc.get('isSuppressed')) if doc else False,
    })


# ==================== ADMIN ENDPOINTS ====================

@app.route('/api/health', methods=['GET'])
def get_health():
    """Database reachability."""
    return jsonify({'ping': 1 if item_store.ping() else 0, 'hasEnv': bool(config.MONGO_URI)})


@app.route('/api/stats', methods=['GET'])
def get_stats():
    """Item counts per type and in-memory fatigue sizes."""
    return jsonify({
        'counts': item_store.stats(),
        'fatigue': selection_engine.fatigue_sizes(),
    })


@app.route('/api/admin/reset-fatigue', methods=['POST'])
def reset_fatigue():
    """Forget everything served so far."""
    if not is_authorized():
        return jsonify({'error': 'Unauthorized'}), 401
    selection_engine.reset()
    return jsonify({'success': True})


if __name__ == '__main__':
    logging.basicConfig(level=config.LOG_LEVEL,
                        format='%(asctime)s %(levelname)s %(name)s: %(message)s')
    print("🚀 Starting Random Feed Server...")
    print(f"   Mongo: {config.MONGO_DB} ({'configured' if config.MONGO_URI else 'not configured'})")
    print(f"   Network feeds: {'on' if config.NETWORK_ENABLED else 'off'}")
    item_store.ensure_indexes()
    app.run(host=config.SERVER_HOST, port=config.SERVER_PORT, debug=config.DEBUG_MODE, threaded=True)
