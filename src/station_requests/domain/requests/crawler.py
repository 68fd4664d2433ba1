"""
User-agent heuristics for spotting automated request traffic.
"""

import re
from typing import Iterable, Optional

CRAWLER_PATTERNS = [
    r"bot\b",
    r"bot[/_-]",
    r"crawl",
    r"spider",
    r"slurp",
    r"scrap",
    r"archiver",
    r"facebookexternalhit",
    r"mediapartners-google",
    r"ia_archiver",
    r"curl/",
    r"wget/",
    r"python-requests",
    r"python-urllib",
    r"aiohttp/",
    r"httpx/",
    r"go-http-client",
    r"java/\d",
    r"libwww-perl",
    r"okhttp",
    r"headlesschrome",
    r"phantomjs",
    r"puppeteer",
    r"selenium",
    r"lighthouse",
]

_CRAWLER_RE = re.compile("|".join(CRAWLER_PATTERNS), re.IGNORECASE)


def is_crawler(user_agent: Optional[str], extra_patterns: Iterable[str] = ()) -> bool:
    """Check if a user agent belongs to a crawler or scripted client.

    Args:
        user_agent: Raw User-Agent header (None or blank means unknown)
        extra_patterns: Additional regexes, e.g. from configuration

    Returns:
        True if the user agent matches a known automation signature

    Examples:
        is_crawler("Mozilla/5.0 (compatible; Googlebot/2.1)")  # True
        is_crawler("curl/8.4.0")  # True
        is_crawler("Mozilla/5.0 (X11; Linux x86_64) Firefox/128.0")  # False
        is_crawler(None)  # False
    """
    if not user_agent or not user_agent.strip():
        return False

    if _CRAWLER_RE.search(user_agent):
        return True

    return any(re.search(pattern, user_agent, re.IGNORECASE) for pattern in extra_patterns)
