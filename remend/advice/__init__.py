"""Advice deduplication cache and formatters."""

from remend.advice.cache import AdviceCache

__all__ = ["AdviceCache"]
