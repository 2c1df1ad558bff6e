"""Job submission and status polling."""

from .poller import StatusPoller, job_from_status_document
from .submitter import JobSubmitter

__all__ = ["JobSubmitter", "StatusPoller", "job_from_status_document"]
