"""Outbound HTTP helpers for feeds and page lookups"""

import logging
from typing import Dict, Optional

import requests

import config

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    'User-Agent': config.USER_AGENT,
}

session = requests.Session()
session.headers.update(DEFAULT_HEADERS)


def fetch(url: str, params: Dict = None, headers: Dict = None,
          timeout: float = config.INGEST_TIMEOUT) -> Optional[requests.Response]:
    """
    GET a URL, returning None instead of raising on any network failure.

    Non-2xx responses also come back as None.
    """
    try:
        resp = session.get(url, params=params, headers=headers, timeout=timeout)
    except requests.RequestException as e:
        logger.debug("GET %s failed: %s", url, e)
        return None
    if not resp.ok:
        logger.debug("GET %s returned %s", url, resp.status_code)
        return None
    return resp


def fetch_json(url: str, params: Dict = None, headers: Dict = None,
               timeout: float = config.INGEST_TIMEOUT):
    resp = fetch(url, params=params, headers=headers, timeout=timeout)
    if resp is None:
        return None
    try:
        return resp.json()
    except ValueError:
        logger.debug("GET %s returned invalid JSON", url)
        return None


def fetch_text(url: str, params: Dict = None, headers: Dict = None,
               timeout: float = config.INGEST_TIMEOUT) -> Optional[str]:
    resp = fetch(url, params=params, headers=headers, timeout=timeout)
    return None if resp is None else resp.text
