"""Tests for URL fetching and text extraction."""

import fitz
import httpx
import pytest

from epicgpt.kb.fetch import (
    INVALID_URL_MESSAGE,
    USER_AGENT,
    FetchError,
    clean_text,
    fetch_url,
    heading_title,
    html_to_text,
    is_valid_url,
    pdf_to_text,
    prepare_for_upload,
    title_from_url,
    url_filename,
)

PARAGRAPH = (
    "OPX is an options protocol on Solana. Writers deposit collateral and buyers "
    "pay a premium for the right to exercise before expiry."
)

ARTICLE_HTML = f"""
<html>
  <head><title>OPX Docs | Epicentral</title><script>var tracking = 1;</script></head>
  <body>
    <header><h1>Site Banner</h1></header>
    <nav><a href="/">Home</a> <a href="/docs">Docs</a></nav>
    <div class="sidebar">Related links</div>
    <main>
      <h1>Getting Started with OPX</h1>
      <p>{PARAGRAPH}</p>
      <style>.x {{ color: red; }}</style>
    </main>
    <footer>Copyright</footer>
  </body>
</html>
"""


def _pdf_bytes(text: str, title: str | None = None, **save_options) -> bytes:
    doc = fitz.open()
    page = doc.new_page()
    page.insert_text((72, 72), text)
    if title:
        doc.set_metadata({"title": title})
    data = doc.tobytes(**save_options)
    doc.close()
    return data


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestUrlHelpers:

    @pytest.mark.parametrize(
        ("url", "valid"),
        [
            ("https://docs.example.com/guide", True),
            ("http://example.com", True),
            ("ftp://example.com/file", False),
            ("https://", False),
            ("not a url", False),
        ],
    )
    def test_is_valid_url(self, url, valid):
        assert is_valid_url(url) is valid

    def test_title_from_url_uses_last_path_segment(self):
        assert title_from_url("https://docs.example.com/guide/intro/") == "intro"

    def test_title_from_url_falls_back_to_host(self):
        assert title_from_url("https://docs.example.com/") == "docs.example.com"

    def test_url_filename(self):
        assert url_filename("https://docs.example.com/guide/intro") == "docs.example.com_guide_intro.md"


class TestTextCleanup:

    def test_clean_text_collapses_blank_runs_and_strips_lines(self):
        assert clean_text("  a  \n\n\n\n   b\n  ") == "a\n\nb"

    def test_prepare_for_upload_normalizes_newlines(self):
        assert prepare_for_upload("a\r\nb\n\n\n\nc\n") == "a\nb\n\nc"

    def test_heading_title(self):
        assert heading_title("intro\n# The Title\nbody") == "The Title"
        assert heading_title("Setext Title\n=====\nbody") == "Setext Title"
        assert heading_title("no heading here") is None


class TestHtmlToText:

    def test_keeps_main_content_and_drops_chrome(self):
        text, title = html_to_text(ARTICLE_HTML)

        assert "Getting Started with OPX" in text
        assert PARAGRAPH in text
        for noise in ("Site Banner", "Home", "Related links", "Copyright", "tracking", "color: red"):
            assert noise not in text
        assert title == "Getting Started with OPX"

    def test_falls_back_to_article_then_body(self):
        text, _ = html_to_text("<body><p>outside</p><article><p>inside</p></article></body>")
        assert text == "inside"

        text, _ = html_to_text("<body><p>only body</p></body>")
        assert text == "only body"

    def test_page_title_used_when_content_has_no_h1(self):
        _, title = html_to_text("<html><head><title>Page Title</title></head><body><p>x</p></body></html>")
        assert title == "Page Title"


class TestPdfToText:

    def test_extracts_text_and_metadata_title(self):
        text, title = pdf_to_text(_pdf_bytes("Epicentral whitepaper", title="Whitepaper v2"))
        assert "Epicentral whitepaper" in text
        assert title == "Whitepaper v2"

    def test_encrypted_pdf_is_rejected(self):
        data = _pdf_bytes(
            "secret",
            encryption=fitz.PDF_ENCRYPT_AES_256,
            owner_pw="owner",
            user_pw="user",
        )
        with pytest.raises(FetchError, match="encrypted"):
            pdf_to_text(data)

    def test_garbage_is_rejected(self):
        with pytest.raises(FetchError, match="Could not read PDF"):
            pdf_to_text(b"this is not a pdf")


class TestFetchUrl:

    @pytest.mark.asyncio
    async def test_html_page(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["headers"] = request.headers
            return httpx.Response(200, html=ARTICLE_HTML)

        page = await fetch_url(_client(handler), "https://docs.example.com/opx")

        assert seen["headers"]["User-Agent"] == USER_AGENT
        assert seen["headers"]["Accept"].startswith("text/html")
        assert page.title == "Getting Started with OPX"
        assert PARAGRAPH in page.content
        assert page.url == "https://docs.example.com/opx"

    @pytest.mark.asyncio
    async def test_follows_redirects(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/old":
                return httpx.Response(301, headers={"Location": "https://docs.example.com/new"})
            return httpx.Response(200, html=ARTICLE_HTML)

        page = await fetch_url(_client(handler), "https://docs.example.com/old")
        assert PARAGRAPH in page.content

    @pytest.mark.asyncio
    async def test_pdf_by_content_type(self):
        data = _pdf_bytes("\n".join(["Tokenomics overview"] * 8), title="Tokenomics")

        def handler(request):
            return httpx.Response(200, content=data, headers={"Content-Type": "application/pdf"})

        page = await fetch_url(_client(handler), "https://example.com/download?id=7")

        assert page.title == "Tokenomics"
        assert page.content.startswith("Tokenomics overview")

    @pytest.mark.asyncio
    async def test_markdown_title_from_heading(self):
        body = f"# Release Notes\n\n{PARAGRAPH}"

        def handler(request):
            return httpx.Response(200, text=body, headers={"Content-Type": "text/markdown; charset=utf-8"})

        page = await fetch_url(_client(handler), "https://example.com/CHANGELOG.md")
        assert page.title == "Release Notes"
        assert page.content == body

    @pytest.mark.asyncio
    async def test_title_falls_back_to_url(self):
        def handler(request):
            return httpx.Response(200, text=PARAGRAPH, headers={"Content-Type": "text/plain"})

        page = await fetch_url(_client(handler), "https://example.com/guides/staking")
        assert page.title == "staking"

    @pytest.mark.asyncio
    async def test_http_error_status(self):
        with pytest.raises(FetchError, match="Failed to fetch URL: 404 Not Found"):
            await fetch_url(_client(lambda r: httpx.Response(404)), "https://example.com/missing")

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(FetchError, match="Failed to fetch URL"):
            await fetch_url(_client(handler), "https://example.com")

    @pytest.mark.asyncio
    async def test_short_content_is_rejected(self):
        def handler(request):
            return httpx.Response(200, html="<body><div id='app'>Loading...</div></body>")

        with pytest.raises(FetchError) as exc_info:
            await fetch_url(_client(handler), "https://app.example.com")
        assert str(exc_info.value) == (
            "URL content too short (10 characters). "
            "The page might require JavaScript or be protected."
        )

    @pytest.mark.asyncio
    async def test_invalid_url_makes_no_request(self):
        def handler(request):
            raise AssertionError("no request expected")

        with pytest.raises(FetchError, match=INVALID_URL_MESSAGE.split(".")[0]):
            await fetch_url(_client(handler), "javascript:alert(1)")
