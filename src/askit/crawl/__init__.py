"""Website crawling: policy gate, rendering, robots, extraction and traversal."""

from .browser import BrowserFetcher, FetchedPage, Fetcher
from .crawler import Crawler, should_skip_url
from .errors import FetchError, FetchErrorKind, InvalidCrawlTarget
from .extractor import extract_links, extract_text
from .models import CrawlFailure, CrawlRequest, CrawlResult, CrawlStats, Page, ProgressSink
from .policy import DnsPolicyGate, PolicyDecision, PolicyGate
from .robots import RobotsLoader, RobotsPolicy

__all__ = [
    "BrowserFetcher",
    "Crawler",
    "CrawlFailure",
    "CrawlRequest",
    "CrawlResult",
    "CrawlStats",
    "DnsPolicyGate",
    "FetchError",
    "FetchErrorKind",
    "FetchedPage",
    "Fetcher",
    "InvalidCrawlTarget",
    "Page",
    "PolicyDecision",
    "PolicyGate",
    "ProgressSink",
    "RobotsLoader",
    "RobotsPolicy",
    "extract_links",
    "extract_text",
    "should_skip_url",
]
