"""Canonical audio URL construction for provider result paths.

The provider has reported generated audio in two shapes over time: a path in
its old storage bucket, and a newer CDN location. During the migration both
can be present, and the CDN field is authoritative.
"""

from __future__ import annotations

from typing import Any, Mapping
from urllib.parse import urlsplit

from ..models.datatypes import AudioLocation, Job
from ..parsing import normalize_optional_string


DEFAULT_CDN_ORIGIN = "https://cdn-2.fakeyou.com"
DEFAULT_LEGACY_STORAGE_ORIGIN = "https://storage.googleapis.com/vocodes-public"

_CDN_PATH_KEYS = ("maybe_cdn_wav_audio_url", "maybe_cdn_wav_audio_path", "cdnUrl")
_LEGACY_PATH_KEYS = (
    "maybe_public_bucket_wav_audio_path",
    "publicBucketWavAudioPath",
    "resourceUrl",
)
_MEDIA_SEGMENT = "/media/"


def audio_location_from_payload(payload: Mapping[str, Any]) -> AudioLocation:
    """Extract both audio path fields from a job `state` object or inference record."""

    cdn_path = None
    media_links = payload.get("media_links")
    if isinstance(media_links, Mapping):
        cdn_path = normalize_optional_string(media_links.get("cdn_url"))
    for key in _CDN_PATH_KEYS:
        if cdn_path is not None:
            break
        cdn_path = normalize_optional_string(payload.get(key))

    legacy_path = None
    for key in _LEGACY_PATH_KEYS:
        legacy_path = normalize_optional_string(payload.get(key))
        if legacy_path is not None:
            break
    return AudioLocation(cdn_path=cdn_path, legacy_path=legacy_path)


def _is_absolute_url(value: str) -> bool:
    return value.startswith(("https://", "http://"))


def _join(origin: str, path: str) -> str:
    return f"{origin.rstrip('/')}/{path.lstrip('/')}"


class AudioUrlNormalizer:
    """Turn provider audio path fields into one canonical fetch URL."""

    def __init__(
        self,
        cdn_origin: str = DEFAULT_CDN_ORIGIN,
        legacy_storage_origin: str = DEFAULT_LEGACY_STORAGE_ORIGIN,
    ) -> None:
        self.cdn_origin = cdn_origin.rstrip("/")
        self.legacy_storage_origin = legacy_storage_origin.rstrip("/")
        self._legacy_host = urlsplit(self.legacy_storage_origin).netloc.lower()

    def normalize(self, source: Job | AudioLocation | Mapping[str, Any] | None) -> str | None:
        """Return the canonical audio URL, or `None` when no usable path exists."""

        location = self._location_of(source)
        if location is None:
            return None
        if location.cdn_path:
            return self._from_cdn_path(location.cdn_path)
        if location.legacy_path:
            return self._from_legacy_path(location.legacy_path)
        return None

    def _location_of(
        self, source: Job | AudioLocation | Mapping[str, Any] | None
    ) -> AudioLocation | None:
        if source is None:
            return None
        if isinstance(source, Job):
            return source.audio
        if isinstance(source, AudioLocation):
            return source
        state = source.get("state")
        return audio_location_from_payload(state if isinstance(state, Mapping) else source)

    def _from_cdn_path(self, cdn_path: str) -> str:
        if _is_absolute_url(cdn_path):
            return cdn_path
        return _join(self.cdn_origin, cdn_path)

    def _from_legacy_path(self, legacy_path: str) -> str:
        """Prefix relative legacy paths, then move old-storage URLs onto the CDN."""

        url = legacy_path if _is_absolute_url(legacy_path) else _join(
            self.legacy_storage_origin, legacy_path
        )
        if urlsplit(url).netloc.lower() != self._legacy_host:
            return url
        media_index = url.find(_MEDIA_SEGMENT)
        if media_index < 0:
            return url
        return f"{self.cdn_origin}{url[media_index:]}"
