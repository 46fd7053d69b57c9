"""
System prompt construction.

The system message is the static head of every request, so it only varies by
the web-search flag and the advisory sentences picked from the prompt's
keywords. Everything retrieved per request goes into the user message instead.
"""

from __future__ import annotations

from pathlib import Path

DEFAULT_TEMPLATE_PATH = Path(__file__).parent.parent / "prompts" / "system.txt"

WEB_SEARCH_SECTION = (
    "## Web Search Mode\n"
    "Web search is ENABLED for this request. You should:\n"
    "1. First check the knowledge base\n"
    "2. Then use web search results provided in context\n"
    "3. Always cite web sources with (Source: domain)"
)

OWNERSHIP_KEYWORDS = ("ownership coin", "ownership", "member token", "equity token")
TECHNICAL_KEYWORDS = (
    "opx",
    "opx markets",
    "technical",
    "product",
    "ecosystem",
    "protocol",
    "trading",
    "market",
)

METADAO_ADVISORY = (
    "For ownership coins or ownership-related queries, reference MetaDAO documentation "
    "at https://docs.metadao.fi/ as a resource for best practices."
)
OPX_ADVISORY = (
    "For technical, ecosystem, and product-related questions, prioritize OPX Markets "
    "documentation at https://docs.opx.markets as the single point of truth."
)


def load_system_template(path: Path | str | None = None, bot_name: str = "EpicGPT") -> str:
    """Read the system prompt template and fill in the bot name."""
    template_path = Path(path) if path else DEFAULT_TEMPLATE_PATH
    return template_path.read_text(encoding="utf-8").replace("{bot_name}", bot_name).strip()


def detect_advisories(prompt: str) -> str:
    """
    Pick the documentation advisories that apply to a prompt.

    Keyword matching only; each keyword set contributes at most one sentence.
    Returns an empty string when nothing matches.
    """
    lowered = prompt.lower()
    parts: list[str] = []
    if any(keyword in lowered for keyword in OWNERSHIP_KEYWORDS):
        parts.append(METADAO_ADVISORY)
    if any(keyword in lowered for keyword in TECHNICAL_KEYWORDS):
        parts.append(OPX_ADVISORY)
    return " ".join(parts)


def build_system_prompt(
    template: str,
    web_search_enabled: bool = False,
    additional_context: str = "",
) -> str:
    """Append the optional web search and additional context sections to the template."""
    prompt = template
    if web_search_enabled:
        prompt += f"\n\n{WEB_SEARCH_SECTION}"
    if additional_context:
        prompt += f"\n\n## Additional Context\n{additional_context}"
    return prompt
