"""Discovery of published content over HTTP directory indexes.

The distribution host serves repository trees with plain autoindex pages.
Crawling those pages gives the set of reachable URLs below a base URL,
which is what the config generators use to find published repositories.
"""

import re
from collections import deque
from pathlib import Path
from typing import Deque, Dict, Iterable, List, Optional, Tuple
from urllib.parse import urldefrag, urljoin

import httpx

from ..common.logger import get_logger

logger = get_logger("listing")

HREF_PATTERN = re.compile(r"""href\s*=\s*["']([^"']+)["']""", re.IGNORECASE)

# Entries produced by autoindex pages that never hold published content
IGNORED_ENTRY_PATTERN = re.compile(r"\?|index|robots")


def _new_client() -> httpx.Client:
    return httpx.Client(follow_redirects=True, timeout=None)


def extract_links(page_url: str, html: str) -> List[str]:
    """Extract absolute link targets from an HTML page.

    Args:
        page_url: URL the page was fetched from
        html: Page body

    Returns:
        Absolute URLs in document order, fragments removed
    """
    links = []
    for href in HREF_PATTERN.findall(html):
        absolute, _ = urldefrag(urljoin(page_url, href.strip()))
        if absolute:
            links.append(absolute)
    return links


def list_reachable_paths(
    base_url: str,
    depth: int = 1,
    client: Optional[httpx.Client] = None,
) -> List[str]:
    """List every URL reachable below base_url through directory indexes.

    Only directories (URLs ending in "/") are fetched, and links that leave
    base_url are ignored. The base URL itself is part of the result, the
    same way a recursive spider reports it.

    Args:
        base_url: Directory URL to start from
        depth: How many directory levels to descend
        client: Optional httpx client (one is created when omitted)

    Returns:
        Unique URLs in discovery order; empty when base_url does not exist

    Raises:
        httpx.HTTPStatusError: For HTTP errors other than a missing base
        httpx.TransportError: If the server cannot be reached
    """
    if not base_url.endswith("/"):
        base_url += "/"

    owns_client = client is None
    http = client or _new_client()
    try:
        found: Dict[str, None] = {base_url: None}
        queue: Deque[Tuple[str, int]] = deque([(base_url, 0)])

        while queue:
            url, level = queue.popleft()
            if level >= depth:
                continue

            response = http.get(url)
            if response.status_code == 404:
                if url == base_url:
                    logger.debug(f"Nothing published at {base_url}")
                    return []
                logger.debug(f"Skipping unreachable listing {url}")
                continue
            response.raise_for_status()

            for link in extract_links(url, response.text):
                if not link.startswith(base_url) or link in found:
                    continue
                found[link] = None
                if link.endswith("/"):
                    queue.append((link, level + 1))

        return list(found)
    finally:
        if owns_client:
            http.close()


def filter_listing(urls: Iterable[str], base_url: Optional[str] = None) -> List[str]:
    """Drop index, robots and query entries and anything that is not HTTP.

    When base_url is given, only the part of each URL below it is checked
    for ignored entries. Trailing slashes are removed from the surviving URLs.
    """
    result = []
    seen = set()
    for url in urls:
        entry = url[len(base_url):] if base_url and url.startswith(base_url) else url
        if IGNORED_ENTRY_PATTERN.search(entry):
            continue
        if not url.startswith(("http://", "https://")):
            continue
        trimmed = url.rstrip("/")
        if trimmed not in seen:
            seen.add(trimmed)
            result.append(trimmed)
    return result


def download_file(url: str, destination: Path, client: Optional[httpx.Client] = None) -> Path:
    """Download a single file, replacing any existing copy.

    Args:
        url: File URL
        destination: Local file path
        client: Optional httpx client

    Returns:
        The destination path

    Raises:
        httpx.HTTPStatusError: If the server answers with an error
    """
    owns_client = client is None
    http = client or _new_client()
    try:
        response = http.get(url)
        response.raise_for_status()
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_bytes(response.content)
        return destination
    finally:
        if owns_client:
            http.close()
