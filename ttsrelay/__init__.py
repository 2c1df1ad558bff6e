"""Top-level package for ttsrelay.

This package wraps an asynchronous text-to-speech web API: it manages the
provider session, resolves voice models, submits generation jobs, polls them to
completion, and turns result paths into canonical audio URLs. The main entry
point is `RelayService`.
"""

from .service import RelayService

__all__ = ["RelayService", "__version__"]

__version__ = "0.3.0"
