"""Download of finished job audio to the local filesystem."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping, Protocol

from ..errors import NotFoundError
from ..models.datatypes import AudioLocation, Job
from ..telemetry.logger import EventLogger, default_event_logger
from .urls import AudioUrlNormalizer


class DownloadClient(Protocol):
    """Provider surface needed for file downloads."""

    def download(self, url: str, destination: Path) -> int:
        """Stream `url` into `destination` and return bytes written."""


class AudioDownloader:
    """Resolve a job's canonical audio URL and save the file."""

    def __init__(
        self,
        client: DownloadClient,
        normalizer: AudioUrlNormalizer | None = None,
        event_logger: EventLogger | None = None,
    ) -> None:
        self._client = client
        self.normalizer = normalizer if normalizer is not None else AudioUrlNormalizer()
        self._event_logger = event_logger or default_event_logger

    def download(
        self,
        source: Job | AudioLocation | Mapping[str, Any] | str,
        destination: Path,
    ) -> Path:
        """Save audio for `source` (job, path fields, or a URL) to `destination`."""

        url = source if isinstance(source, str) else self.normalizer.normalize(source)
        if not url:
            raise NotFoundError("No audio path is available for this job yet.")
        written = self._client.download(url, destination)
        self._event_logger.info("download", "complete", path=destination, bytes=written)
        return destination
