"""Typed domain models for ttsrelay."""

from .datatypes import AudioLocation, Credential, Job, JobRequest, JobStatus, VoiceModel

__all__ = [
    "AudioLocation",
    "Credential",
    "Job",
    "JobRequest",
    "JobStatus",
    "VoiceModel",
]
