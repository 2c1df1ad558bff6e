"""Audio URL normalization and download helpers."""

from .download import AudioDownloader
from .urls import (
    DEFAULT_CDN_ORIGIN,
    DEFAULT_LEGACY_STORAGE_ORIGIN,
    AudioUrlNormalizer,
    audio_location_from_payload,
)

__all__ = [
    "AudioDownloader",
    "AudioUrlNormalizer",
    "DEFAULT_CDN_ORIGIN",
    "DEFAULT_LEGACY_STORAGE_ORIGIN",
    "audio_location_from_payload",
]
