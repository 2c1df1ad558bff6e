"""Voice-model lookup by search term, token, or human-readable name.

Responsibilities:
- Query the provider model search and cache results by exact search term.
- Resolve tokens through the cache, falling back to a broad search scan.
- Resolve names through a fixed three-tier match policy.
"""

from __future__ import annotations

from typing import Any, Mapping, Protocol

from ..models.datatypes import VoiceModel
from ..parsing import normalize_optional_string
from ..telemetry.logger import EventLogger, default_event_logger
from .cache import ModelCache


DEFAULT_SEARCH_TERM = "voice"


class ModelSearchClient(Protocol):
    """Provider surface needed for model lookups."""

    def search_models(self, search_term: str) -> list[dict[str, Any]]:
        """Return raw model records matching a search term."""


def parse_voice_model(record: Mapping[str, Any]) -> VoiceModel | None:
    """Build a `VoiceModel` from one raw search record, or `None` when unusable."""

    token = normalize_optional_string(record.get("weight_token") or record.get("model_token"))
    title = normalize_optional_string(record.get("title"))
    if token is None or title is None:
        return None

    creator_payload = record.get("creator")
    creator = None
    if isinstance(creator_payload, Mapping):
        creator = normalize_optional_string(
            creator_payload.get("display_name") or creator_payload.get("username")
        )
    creator = creator or normalize_optional_string(record.get("creator_display_name"))
    language = normalize_optional_string(
        record.get("maybe_ietf_primary_language_subtag")
        or record.get("ietf_primary_language_subtag")
    )
    search_text = " ".join(part for part in (title, creator, language) if part).lower()
    return VoiceModel(
        token=token,
        title=title,
        search_text=search_text,
        language=language,
        creator=creator,
    )


class ModelResolver:
    """Resolve voice models with an in-memory, search-term keyed cache."""

    def __init__(
        self,
        client: ModelSearchClient,
        cache: ModelCache | None = None,
        default_search_term: str = DEFAULT_SEARCH_TERM,
        event_logger: EventLogger | None = None,
    ) -> None:
        self._client = client
        self.cache = cache if cache is not None else ModelCache()
        self.default_search_term = normalize_optional_string(default_search_term) or DEFAULT_SEARCH_TERM
        self._event_logger = event_logger or default_event_logger

    def search(self, term: str | None) -> tuple[VoiceModel, ...]:
        """Return models matching `term`; a blank term uses the broad default query."""

        search_term = normalize_optional_string(term) or self.default_search_term
        cached = self.cache.get(search_term)
        if cached is not None:
            self._event_logger.debug("resolver", "cache_hit", term_length=len(search_term))
            return cached

        records = self._client.search_models(search_term)
        models = tuple(
            model for model in (parse_voice_model(record) for record in records) if model is not None
        )
        self.cache.set(search_term, models)
        self._event_logger.info("resolver", "search_complete", results=len(models))
        return models

    def get_by_token(self, token: str) -> VoiceModel | None:
        """Look up one model by exact token.

        The provider has no get-by-token endpoint, so a cache miss costs one
        broad search plus a linear scan.
        """

        normalized = normalize_optional_string(token)
        if normalized is None:
            return None
        cached = self.cache.get_by_token(normalized)
        if cached is not None:
            return cached
        for model in self.search(self.default_search_term):
            if model.token == normalized:
                return model
        return None

    def find_by_name(self, name: str) -> VoiceModel | None:
        """Find a model by case-insensitive name.

        Tiers, in order: exact title match, first title containing `name`,
        then the first search result at all. The last tier can return an
        unrelated model; callers rely on it never returning `None` while the
        search has results.
        """

        models = self.search(name)
        if not models:
            return None
        needle = (normalize_optional_string(name) or "").lower()
        if needle:
            for model in models:
                if model.title.lower() == needle:
                    return model
            for model in models:
                if needle in model.title.lower():
                    return model
        self._event_logger.warning("resolver", "name_fallback_to_first_result", results=len(models))
        return models[0]

    def clear_cache(self) -> None:
        self.cache.clear()
