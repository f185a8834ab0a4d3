"""Pytest configuration and fixtures."""

from datetime import datetime, timezone

import httpx
import pytest
from fastapi.testclient import TestClient

from jobtracker.main import app
from jobtracker.models.posting import ParsedJobPosting
from jobtracker.services.auth_service import StaticTokenAuth
from jobtracker.services.job_service import JobService
from jobtracker.services.memory_store import InMemoryStore
from jobtracker.services.scraper_service import ScraperService

USER_ID = "11111111-1111-4111-8111-111111111111"
OTHER_USER_ID = "22222222-2222-4222-8222-222222222222"
FIXED_NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)

POSTING_URL = "https://jobs.example.com/postings/123"
MISSING_URL = "https://jobs.example.com/postings/404"

POSTING_HTML = """
<html>
<head>
  <title>Senior Backend Engineer at Acme Corp | LinkedIn</title>
  <meta property="og:title" content="Senior Backend Engineer at Acme Corp">
  <script type="application/ld+json">
  {"@context": "https://schema.org", "@type": "JobPosting",
   "title": "Senior Backend Engineer",
   "hiringOrganization": {"@type": "Organization", "name": "Acme Corp"},
   "jobLocation": {"@type": "Place", "address": {"addressLocality": "Berlin", "addressRegion": "BE"}},
   "baseSalary": {"@type": "MonetaryAmount", "currency": "EUR",
                  "value": {"@type": "QuantitativeValue", "minValue": 70000, "maxValue": 90000, "unitText": "YEAR"}},
   "description": "<p>Build &amp; run our APIs.</p>"}
  </script>
  <script>window.tracking = true;</script>
</head>
<body>
  <h2>Requirements</h2>
  <ul><li>5+ years of Python</li><li>PostgreSQL</li></ul>
  <h2>Preferred Qualifications</h2>
  <ul><li>FastAPI experience</li></ul>
</body>
</html>
"""


def _posting_site(request: httpx.Request) -> httpx.Response:
    if str(request.url) == POSTING_URL:
        return httpx.Response(200, text=POSTING_HTML)
    return httpx.Response(404, text="gone")


class FakeAI:
    """Stands in for OpenAIService; records what it was asked to analyze."""

    def __init__(self, posting: ParsedJobPosting):
        self.posting = posting
        self.calls = []

    async def analyze_job_posting(self, content, url=None):
        self.calls.append((content, url))
        return self.posting


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def job_service(store, clock):
    return JobService(store, clock=clock)


@pytest.fixture
def scraper():
    """Scraper wired to an in-process fake job site, no network."""
    return ScraperService(timeout=5, transport=httpx.MockTransport(_posting_site))


@pytest.fixture
def fake_ai():
    return FakeAI(
        ParsedJobPosting(
            company="Initech",
            position="Platform Engineer",
            location="Remote",
            requirements=["Kubernetes"],
        )
    )


@pytest.fixture
def client(store, scraper, clock):
    """FastAPI test client with in-memory store and static tokens."""
    app.state.store = store
    app.state.auth = StaticTokenAuth({"token-a": USER_ID, "token-b": OTHER_USER_ID})
    app.state.scraper = scraper
    app.state.ai = None
    app.state.clock = clock
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers():
    return {"Authorization": "Bearer token-a"}


@pytest.fixture
def other_headers():
    return {"Authorization": "Bearer token-b"}
