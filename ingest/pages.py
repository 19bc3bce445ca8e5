"""Preview image lookup for web items"""

import logging
from typing import Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup

import config
from ingest.client import fetch_text

logger = logging.getLogger(__name__)

PAGE_HEADERS = {'User-Agent': 'Mozilla/5.0 (RandomApp Bot; +https://random.app)'}


def extract_preview_image(html: str, base_url: str) -> Optional[str]:
    """Absolute og:image, twitter:image or first <img> of a page."""
    soup = BeautifulSoup(html, 'html.parser')

    for attrs in ({'property': 'og:image'}, {'name': 'twitter:image'}):
        meta = soup.find('meta', attrs=attrs)
        if meta and meta.get('content'):
            return urljoin(base_url, meta['content'].strip())

    img = soup.find('img', src=True)
    if img:
        return urljoin(base_url, img['src'].strip())
    return None


def fetch_og_image(url: str, timeout: float = config.PAGE_TIMEOUT) -> Optional[str]:
    html = fetch_text(url, headers=PAGE_HEADERS, timeout=timeout)
    if not html:
        return None
    try:
        return extract_preview_image(html, url)
    except (ValueError, TypeError) as e:
        logger.debug("Preview parse failed for %s: %s", url, e)
        return None
