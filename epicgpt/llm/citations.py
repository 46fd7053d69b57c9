"""
Citation formatting.

Pure helpers that turn knowledge base annotations and web search results into
the inline citation styles the system prompt asks the model to use.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import TYPE_CHECKING, Any
from urllib.parse import urlparse

if TYPE_CHECKING:
    from epicgpt.tools.web_search import WebSearchResult

# Documents cited by file ID rather than by title
CANONICAL_FILE_IDS = frozenset({
    "file-VNyEvYFhiddg51i2Dt7oWv",  # EPICENTRAL LABS DAO LLC OPERATING AGREEMENT
    "file-SjDBvE2VmPyT8SgjCT6CVK",  # Clarity for Digital Tokens Act
})


def format_kb_citation(title: str) -> str:
    return f"(KB: {title})"


def format_canonical_file_citation(file_id: str) -> str:
    return f"({file_id})"


def format_web_citation(url: str) -> str:
    """Cite a web page by hostname, e.g. ``(Source: docs.opx.markets)``."""
    host = urlparse(url).hostname
    if not host:
        return f"(Source: {url})"
    if host.startswith("www."):
        host = host[len("www."):]
    return f"(Source: {host})"


def format_web_search_results(results: Sequence[WebSearchResult]) -> str:
    """
    Render search results as the numbered block prepended to the user message.

    Example output::

        [Web Search Results]
        1. **OPX Markets**
           Options trading on Solana.
           URL: https://opx.markets
    """
    if not results:
        return "[Web Search Results]\nNo relevant results found."

    blocks = [
        f"{index}. **{result.title}**\n   {result.snippet}\n   URL: {result.url}"
        for index, result in enumerate(results, start=1)
    ]
    return "[Web Search Results]\n" + "\n\n".join(blocks)


def _annotation_file_id(annotation: Any) -> str | None:
    """Pull the file ID out of a file_citation or file_path annotation."""
    if isinstance(annotation, Mapping):
        for key in ("file_citation", "file_path"):
            inner = annotation.get(key)
            if isinstance(inner, Mapping) and inner.get("file_id"):
                return inner["file_id"]
        return None

    for key in ("file_citation", "file_path"):
        inner = getattr(annotation, key, None)
        file_id = getattr(inner, "file_id", None) if inner is not None else None
        if file_id:
            return file_id
    return None


def extract_file_search_citations(
    annotations: Iterable[Any],
    file_id_to_title: Mapping[str, str],
) -> list[str]:
    """
    Resolve file_search annotations into de-duplicated citation strings.

    Canonical documents are cited by file ID; everything else is cited by the
    knowledge item title. Files with no known title are skipped. Order of
    first appearance is preserved.

    Accepts both OpenAI SDK annotation objects and plain dicts.
    """
    citations: list[str] = []
    seen: set[str] = set()

    for annotation in annotations:
        file_id = _annotation_file_id(annotation)
        if not file_id:
            continue

        if file_id in CANONICAL_FILE_IDS:
            citation = format_canonical_file_citation(file_id)
        elif file_id in file_id_to_title:
            citation = format_kb_citation(file_id_to_title[file_id])
        else:
            continue

        if citation not in seen:
            seen.add(citation)
            citations.append(citation)

    return citations
