"""
Linktree import.

Fetches a public linktr.ee page and reads its embedded ``__NEXT_DATA__`` JSON,
returning links in the same shape ``POST /create`` accepts. Nothing is
published here.
"""

import json
import logging
import re
from typing import Any, Dict, List
from urllib.parse import urlparse

import requests

from linkpage.errors import UpstreamError, ValidationError

logger = logging.getLogger(__name__)

LINKTREE_HOST = "linktr.ee"
USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Safari/605.1.15"
)

_NEXT_DATA_RE = re.compile(
    r'<script[^>]*id=["\']__NEXT_DATA__["\'][^>]*>(.*?)</script>',
    re.DOTALL | re.IGNORECASE,
)


def is_linktree_url(url: Any) -> bool:
    if not isinstance(url, str) or not url:
        return False
    host = (urlparse(url).hostname or "").lower()
    return host == LINKTREE_HOST or host.endswith("." + LINKTREE_HOST)


def extract_next_data(html: str) -> Dict[str, Any]:
    match = _NEXT_DATA_RE.search(html or "")
    if not match:
        raise ValidationError("Could not find __NEXT_DATA__ in Linktree page. The page structure may have changed.")
    try:
        data = json.loads(match.group(1))
    except ValueError as e:
        raise ValidationError("Linktree page data is not valid JSON") from e
    return data if isinstance(data, dict) else {}


def links_from_account(account: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Regular links first, then social links (``isSocial``) titled by platform."""
    links = [
        {"title": item.get("title"), "url": item.get("url")}
        for item in account.get("links") or []
        if isinstance(item, dict)
    ]
    for social in account.get("socialLinks") or []:
        if not isinstance(social, dict):
            continue
        kind = str(social.get("type") or "Social")
        links.append({"title": kind[:1] + kind[1:].lower(), "url": social.get("url"), "isSocial": True})
    return links


def parse_linktree(url: str, timeout: int = 10) -> Dict[str, Any]:
    """
    Import the links of a Linktree page.

    Returns:
        ``{"links", "username", "source": "linktree", "sourceUrl"}``

    Raises:
        ValidationError: not a linktr.ee URL, or no links on the page
        UpstreamError: the page could not be fetched
    """
    if not is_linktree_url(url):
        raise ValidationError("Invalid Linktree URL. Please enter a linktr.ee URL.")

    logger.info(f"Parsing Linktree URL: {url}")
    try:
        resp = requests.get(url, headers={"User-Agent": USER_AGENT}, timeout=timeout)
    except requests.RequestException as e:
        logger.error(f"Linktree fetch failed: {e}")
        raise UpstreamError("Failed to fetch Linktree page") from e

    if resp.status_code == 404:
        raise ValidationError("Linktree page not found")
    if resp.status_code >= 300:
        raise UpstreamError(f"Linktree fetch failed: {resp.status_code}")

    data = extract_next_data(resp.text)
    account = ((data.get("props") or {}).get("pageProps") or {}).get("account")
    if not isinstance(account, dict) or not account.get("links"):
        raise ValidationError("No links found on this Linktree page.")

    links = links_from_account(account)
    username = account.get("username") or "Unknown"
    logger.info(f"Extracted {len(links)} links from @{username}'s Linktree")
    return {"links": links, "username": username, "source": "linktree", "sourceUrl": url}
