"""
Scraper service for JobTracker
Fetches job posting pages and pulls job details out of the HTML without AI
"""

import os
import re
import json
import logging
import html as html_module
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import httpx

from jobtracker.errors import InvalidInput, UpstreamFailure
from jobtracker.models.posting import ParsedJobPosting

logger = logging.getLogger(__name__)

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)
MAX_DESCRIPTION_CHARS = 500

SCRIPT_PATTERN = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
JSON_LD_PATTERN = re.compile(
    r"<script[^>]*type=[\"']application/ld\+json[\"'][^>]*>([\s\S]*?)</script>", re.IGNORECASE
)
TITLE_PATTERN = re.compile(r"<title[^>]*>([\s\S]*?)</title>", re.IGNORECASE)
TAG_PATTERN = re.compile(r"<[^>]+>")


def validate_url(url: Any) -> str:
    if not url or not isinstance(url, str):
        raise InvalidInput("URL is required")
    parsed = urlparse(url.strip())
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise InvalidInput("Invalid URL format")
    return url.strip()


def strip_scripts(page: str) -> str:
    """Remove <script> blocks from fetched HTML."""
    return SCRIPT_PATTERN.sub("", page)


def _text(fragment: Optional[str]) -> str:
    """Visible text of an HTML fragment with whitespace collapsed."""
    if not fragment:
        return ""
    # entity-encoded markup only becomes a tag after unescaping
    text = TAG_PATTERN.sub(" ", html_module.unescape(fragment))
    return re.sub(r"\s+", " ", text).strip()


def _meta(page: str, name: str) -> Optional[str]:
    """Content of <meta property|name="name">, attribute order either way."""
    for pattern in (
        rf"<meta[^>]+(?:property|name)=[\"']{re.escape(name)}[\"'][^>]*content=[\"']([^\"']*)[\"']",
        rf"<meta[^>]+content=[\"']([^\"']*)[\"'][^>]*(?:property|name)=[\"']{re.escape(name)}[\"']",
    ):
        match = re.search(pattern, page, re.IGNORECASE)
        if match:
            return html_module.unescape(match.group(1)).strip() or None
    return None


def _find_job_posting(node: Any) -> Optional[Dict[str, Any]]:
    """Depth-first search of a JSON-LD document for a JobPosting object."""
    if isinstance(node, list):
        for item in node:
            found = _find_job_posting(item)
            if found:
                return found
    elif isinstance(node, dict):
        kind = node.get("@type")
        if kind == "JobPosting" or (isinstance(kind, list) and "JobPosting" in kind):
            return node
        if "@graph" in node:
            return _find_job_posting(node["@graph"])
    return None


def _json_ld_posting(page: str) -> Optional[Dict[str, Any]]:
    for block in JSON_LD_PATTERN.findall(page):
        try:
            data = json.loads(block.strip())
        except json.JSONDecodeError:
            continue
        posting = _find_job_posting(data)
        if posting:
            return posting
    return None


def _location(posting: Dict[str, Any]) -> Optional[str]:
    places = posting.get("jobLocation")
    if isinstance(places, dict):
        places = [places]
    parts: List[str] = []
    for place in places or []:
        address = place.get("address") if isinstance(place, dict) else None
        if isinstance(address, dict):
            label = ", ".join(
                str(address[key]) for key in ("addressLocality", "addressRegion") if address.get(key)
            )
            if label and label not in parts:
                parts.append(label)
    if posting.get("jobLocationType") == "TELECOMMUTE":
        parts.append("Remote")
    return "; ".join(parts) or None


def _salary(posting: Dict[str, Any]) -> Optional[str]:
    salary = posting.get("baseSalary")
    if not salary:
        return None
    if not isinstance(salary, dict):
        return str(salary)

    currency = salary.get("currency") or ""
    value = salary.get("value")
    unit = ""
    if isinstance(value, dict):
        unit = value.get("unitText") or ""
        low, high = value.get("minValue"), value.get("maxValue")
        if low is not None and high is not None:
            amount = f"{low} - {high}"
        else:
            amount = str(value.get("value") or low or high or "")
    else:
        amount = str(value or "")
    if not amount:
        return None
    text = f"{currency} {amount}".strip()
    return f"{text} per {unit.lower()}" if unit else text


def _split_title(title: str) -> tuple[Optional[str], Optional[str]]:
    """Split page titles such as 'Engineer at Acme: Berlin | LinkedIn' into (position, company)."""
    title = re.sub(r"\s*[|\-–—]\s*LinkedIn.*$", "", title, flags=re.IGNORECASE)
    title = title.split("|")[0].strip()
    if " at " in title:
        position, company = title.split(" at ", 1)
        return position.strip() or None, company.split(":", 1)[0].strip() or None
    return title or None, None


def _bullets_after(page: str, heading: str) -> List[str]:
    """List items of the first <ul>/<ol> that follows a heading containing `heading`."""
    match = re.search(rf">[^<]{{0,40}}\b{heading}\b[^<]{{0,20}}<", page, re.IGNORECASE)
    if not match:
        return []
    rest = page[match.end():]
    listing = re.search(r"<(ul|ol)\b[^>]*>([\s\S]*?)</\1>", rest[:5000], re.IGNORECASE)
    if not listing:
        return []
    items = re.findall(r"<li\b[^>]*>([\s\S]*?)</li>", listing.group(2), re.IGNORECASE)
    return [text for text in (_text(item) for item in items) if text]


def parse_job_posting_html(page: str) -> ParsedJobPosting:
    """
    Best-effort extraction from raw HTML.

    Structured JSON-LD JobPosting data wins; page title and meta tags fill the
    gaps. Anything not found comes back empty.
    """
    company = position = location = salary = description = None

    posting = _json_ld_posting(page)
    if posting:
        position = _text(posting.get("title")) or None
        organization = posting.get("hiringOrganization")
        if isinstance(organization, dict):
            company = _text(organization.get("name")) or None
        elif isinstance(organization, str):
            company = organization.strip() or None
        location = _location(posting)
        salary = _salary(posting)
        description = _text(posting.get("description")) or None

    if not position or not company:
        title_match = TITLE_PATTERN.search(page)
        for candidate in (_meta(page, "og:title"), _text(title_match.group(1)) if title_match else None):
            if not candidate:
                continue
            found_position, found_company = _split_title(candidate)
            position = position or found_position
            company = company or found_company
            if position and company:
                break

    company = company or _meta(page, "og:site_name")
    description = description or _meta(page, "og:description") or _meta(page, "description")
    if description and len(description) > MAX_DESCRIPTION_CHARS:
        description = description[:MAX_DESCRIPTION_CHARS].rstrip() + "..."

    result = ParsedJobPosting(
        company=company,
        position=position,
        location=location,
        salary=salary,
        description=description,
        requirements=_bullets_after(page, "Requirements"),
        qualifications=_bullets_after(page, "Qualifications"),
    )
    logger.info(f"Heuristic extraction results - Position: {result.position}, Company: {result.company}")
    return result


class ScraperService:
    """Fetches job posting pages over HTTP"""

    def __init__(self, timeout: Optional[float] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.timeout = timeout if timeout is not None else float(os.getenv("SCRAPE_TIMEOUT", "10"))
        self.transport = transport

    async def fetch_page(self, url: Any) -> str:
        """Return the raw HTML of `url`; fetch failures raise UpstreamFailure."""
        url = validate_url(url)
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                headers={"User-Agent": BROWSER_USER_AGENT},
                follow_redirects=True,
                transport=self.transport,
            ) as client:
                r = await client.get(url)
        except httpx.HTTPError as e:
            logger.error(f"Error fetching URL {url}: {str(e)}")
            raise UpstreamFailure("Failed to fetch URL content") from e

        if not r.is_success:
            logger.warning(f"Fetching {url} returned HTTP {r.status_code}")
            raise UpstreamFailure(f"Failed to fetch URL: {r.reason_phrase or r.status_code}")
        return r.text

    async def scrape(self, url: Any) -> str:
        """Page content with scripts removed, ready to hand to the AI extractor."""
        return strip_scripts(await self.fetch_page(url))
