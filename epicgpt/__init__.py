"""
EpicGPT - LLM-powered Discord assistant for Epicentral Labs.

This package answers member questions by combining a per-guild knowledge base,
optional web search, and read-only Solana tools behind a tool-calling LLM loop.
"""

__version__ = "0.1.0"
