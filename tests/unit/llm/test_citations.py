"""Tests for citation formatting and file_search annotation resolution."""

from types import SimpleNamespace

from epicgpt.llm.citations import (
    CANONICAL_FILE_IDS,
    extract_file_search_citations,
    format_canonical_file_citation,
    format_kb_citation,
    format_web_citation,
    format_web_search_results,
)
from epicgpt.tools.web_search import WebSearchResult

OPERATING_AGREEMENT = "file-VNyEvYFhiddg51i2Dt7oWv"


def _annotation(file_id: str) -> dict:
    return {"type": "file_citation", "text": "【4:0†source】", "file_citation": {"file_id": file_id}}


class TestSimpleFormatters:
    def test_kb_citation(self):
        assert format_kb_citation("Tokenomics Deck") == "(KB: Tokenomics Deck)"

    def test_canonical_file_citation(self):
        assert format_canonical_file_citation(OPERATING_AGREEMENT) == f"({OPERATING_AGREEMENT})"

    def test_web_citation_strips_www(self):
        assert format_web_citation("https://www.example.com/path?q=1") == "(Source: example.com)"

    def test_web_citation_keeps_subdomain(self):
        assert format_web_citation("https://docs.opx.markets/intro") == "(Source: docs.opx.markets)"

    def test_web_citation_unparsable_falls_back_to_url(self):
        assert format_web_citation("not a url") == "(Source: not a url)"


class TestFormatWebSearchResults:
    def test_empty(self):
        assert format_web_search_results([]) == "[Web Search Results]\nNo relevant results found."

    def test_numbered_blocks(self):
        results = [
            WebSearchResult(title="OPX Markets", snippet="Options on Solana", url="https://opx.markets"),
            WebSearchResult(title="MetaDAO", snippet="Futarchy", url="https://metadao.fi"),
        ]
        assert format_web_search_results(results) == (
            "[Web Search Results]\n"
            "1. **OPX Markets**\n   Options on Solana\n   URL: https://opx.markets\n\n"
            "2. **MetaDAO**\n   Futarchy\n   URL: https://metadao.fi"
        )


class TestExtractFileSearchCitations:
    def test_resolves_titles_and_canonical_ids(self):
        titles = {"file-abc": "Roadmap"}
        citations = extract_file_search_citations(
            [_annotation("file-abc"), _annotation(OPERATING_AGREEMENT)], titles
        )
        assert citations == ["(KB: Roadmap)", f"({OPERATING_AGREEMENT})"]

    def test_canonical_ids_are_not_resolved_through_titles(self):
        titles = {OPERATING_AGREEMENT: "Operating Agreement.pdf"}
        assert extract_file_search_citations([_annotation(OPERATING_AGREEMENT)], titles) == [
            f"({OPERATING_AGREEMENT})"
        ]

    def test_unknown_files_are_skipped(self):
        assert extract_file_search_citations([_annotation("file-unknown")], {}) == []

    def test_deduplicates_preserving_first_appearance(self):
        titles = {"file-a": "A", "file-b": "B"}
        annotations = [_annotation(f) for f in ("file-b", "file-a", "file-b", "file-a")]
        assert extract_file_search_citations(annotations, titles) == ["(KB: B)", "(KB: A)"]

    def test_idempotent(self):
        titles = {"file-a": "A"}
        annotations = [_annotation("file-a"), _annotation(OPERATING_AGREEMENT), _annotation("file-a")]
        first = extract_file_search_citations(annotations, titles)
        second = extract_file_search_citations(annotations, titles)
        assert first == second == ["(KB: A)", f"({OPERATING_AGREEMENT})"]

    def test_accepts_sdk_style_objects(self):
        annotation = SimpleNamespace(
            type="file_citation", file_citation=SimpleNamespace(file_id="file-a"), file_path=None
        )
        assert extract_file_search_citations([annotation], {"file-a": "A"}) == ["(KB: A)"]

    def test_ignores_annotations_without_file(self):
        annotations = [{"type": "url_citation", "url": "https://x.io"}, SimpleNamespace(type="other")]
        assert extract_file_search_citations(annotations, {"file-a": "A"}) == []

    def test_allow_list_contents(self):
        assert OPERATING_AGREEMENT in CANONICAL_FILE_IDS
        assert "file-SjDBvE2VmPyT8SgjCT6CVK" in CANONICAL_FILE_IDS
