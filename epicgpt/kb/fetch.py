"""
Fetching web pages for the knowledge base.

HTML pages are reduced to their main content with BeautifulSoup. Navigation,
scripts and other page chrome are dropped first. PDFs are read with PyMuPDF
and plain text or markdown is taken as served. Whatever comes back is
normalized the same way before it is uploaded.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from urllib.parse import urlparse

import fitz  # PyMuPDF
import httpx
from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"

# Shorter than this after cleanup usually means a JavaScript shell or a block page
MIN_CONTENT_LENGTH = 100
MAX_TITLE_LENGTH = 200

NOISE_SELECTOR = "script, style, noscript, nav, footer, header, aside, .sidebar, .menu, .navigation"
MAIN_SELECTORS = ("main", "article", '[role="main"]', "body")

INVALID_URL_MESSAGE = "Invalid URL format. Please provide a valid HTTP or HTTPS URL."

_MARKDOWN_HEADING = re.compile(r"^#\s*(.+)$", re.MULTILINE)
_SETEXT_HEADING = re.compile(r"^(.+)\n={3,}$", re.MULTILINE)


class FetchError(Exception):
    """Raised when a URL cannot be turned into usable knowledge base text."""
    pass


@dataclass(frozen=True)
class FetchedPage:
    url: str
    title: str
    content: str


def is_valid_url(url: str) -> bool:
    parsed = urlparse(url.strip())
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def clean_text(text: str) -> str:
    """Collapse runs of blank lines and strip every line."""
    text = re.sub(r"\n{3,}", "\n\n", text)
    return "\n".join(line.strip() for line in text.split("\n")).strip()


def prepare_for_upload(text: str) -> str:
    text = text.replace("\r\n", "\n")
    return re.sub(r"\n{3,}", "\n\n", text).strip()


def html_to_text(html: str) -> tuple[str, str | None]:
    """
    Extract the readable text of an HTML page.

    Returns:
        The cleaned text of the page's main content, and its title (the
        first ``<h1>`` of that content, else ``<title>``) if it has one
    """
    soup = BeautifulSoup(html, "html.parser")
    page_title = soup.title.get_text(strip=True) if soup.title else None

    for tag in soup.select(NOISE_SELECTOR):
        tag.decompose()

    main = None
    for selector in MAIN_SELECTORS:
        main = soup.select_one(selector)
        if main is not None:
            break
    root = main if main is not None else soup

    heading = root.find("h1")
    title = heading.get_text(" ", strip=True) if heading else None
    text = root.get_text(separator="\n", strip=True)
    return clean_text(text), title or page_title or None


def pdf_to_text(data: bytes) -> tuple[str, str | None]:
    """
    Extract the text of every page of a PDF.

    Returns:
        The joined page text and the document's metadata title, if set

    Raises:
        FetchError: If the PDF cannot be opened or is encrypted
    """
    try:
        pdf_doc = fitz.open(stream=data, filetype="pdf")
    except Exception as e:
        raise FetchError(f"Could not read PDF: {e}") from e

    with pdf_doc:
        if pdf_doc.is_encrypted:
            raise FetchError("PDF is encrypted and cannot be read")
        pages = [page.get_text() for page in pdf_doc]
        title = (pdf_doc.metadata or {}).get("title") or None
    return clean_text("\n\n".join(pages)), title


def heading_title(content: str) -> str | None:
    """First markdown heading (``# Title`` or ``Title`` over ``===``) in ``content``."""
    match = _MARKDOWN_HEADING.search(content) or _SETEXT_HEADING.search(content)
    return match.group(1).strip() if match else None


def title_from_url(url: str) -> str:
    parsed = urlparse(url)
    segments = [segment for segment in parsed.path.split("/") if segment]
    return segments[-1] if segments else parsed.hostname or url


def url_filename(url: str) -> str:
    """Upload filename for a URL, e.g. ``docs.example.com_guide_intro.md``."""
    parsed = urlparse(url)
    return f"{parsed.hostname}{parsed.path.replace('/', '_')}.md"


def _is_pdf(url: str, content_type: str) -> bool:
    return content_type == "application/pdf" or urlparse(url).path.lower().endswith(".pdf")


async def fetch_url(
    http: httpx.AsyncClient,
    url: str,
    min_content_length: int = MIN_CONTENT_LENGTH,
) -> FetchedPage:
    """
    Download ``url`` and extract its text for upload.

    Raises:
        FetchError: On an invalid URL, a transport or HTTP error, unreadable
            content, or content shorter than ``min_content_length``
    """
    if not is_valid_url(url):
        raise FetchError(INVALID_URL_MESSAGE)

    logger.info(f"Fetching URL: {url}")
    try:
        response = await http.get(
            url,
            headers={"User-Agent": USER_AGENT, "Accept": ACCEPT},
            follow_redirects=True,
        )
    except httpx.HTTPError as e:
        raise FetchError(f"Failed to fetch URL: {e}") from e

    if response.is_error:
        raise FetchError(
            f"Failed to fetch URL: {response.status_code} {response.reason_phrase}"
        )

    content_type = response.headers.get("content-type", "").split(";")[0].strip().lower()
    if _is_pdf(url, content_type):
        text, title = pdf_to_text(response.content)
    elif content_type in ("text/plain", "text/markdown"):
        text, title = clean_text(response.text), None
    else:
        text, title = html_to_text(response.text)

    content = prepare_for_upload(text)
    if len(content) < min_content_length:
        raise FetchError(
            f"URL content too short ({len(content)} characters). "
            "The page might require JavaScript or be protected."
        )

    title = title or heading_title(content) or title_from_url(url)
    logger.debug(f"Fetched {url}: {len(content)} characters, title {title!r}")
    return FetchedPage(url=url, title=title[:MAX_TITLE_LENGTH], content=content)
