"""Voice-model lookup and caching."""

from .cache import ModelCache
from .resolver import DEFAULT_SEARCH_TERM, ModelResolver, parse_voice_model

__all__ = ["DEFAULT_SEARCH_TERM", "ModelCache", "ModelResolver", "parse_voice_model"]
