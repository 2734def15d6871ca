import hashlib
import logging
from threading import Lock
from typing import Any, Callable, Dict, MutableMapping, Optional

from app.core.config import CONTEXT_CACHE

logger = logging.getLogger(__name__)

ExtractFn = Callable[[str], Dict[str, Any]]

# TTLCache is not thread-safe and extraction runs in executor threads
_cache_lock = Lock()


class SummaryExtractor:
    """Wraps a context-extraction call with caching and a soft failure mode.

    Extraction is best effort: if it fails the pipeline carries on with an
    empty summary and the playbook header falls back to placeholders.
    """

    def __init__(self, extract_fn: ExtractFn, cache: Optional[MutableMapping[str, Dict[str, Any]]] = None):
        self.extract_fn = extract_fn
        self.cache = CONTEXT_CACHE if cache is None else cache

    @staticmethod
    def cache_key(request_input: str) -> str:
        return hashlib.sha256(request_input.encode("utf-8")).hexdigest()

    def extract(self, request_input: str) -> Dict[str, Any]:
        key = self.cache_key(request_input)
        with _cache_lock:
            cached = self.cache.get(key)
        if cached is not None:
            logger.info(f"Summary context cache hit for {key[:12]}")
            return dict(cached)

        try:
            summary = self.extract_fn(request_input)
        except Exception as e:
            logger.warning(f"Context extraction failed, continuing without summary: {e}")
            return {}

        if not isinstance(summary, dict):
            logger.warning(f"Context extraction returned {type(summary).__name__}, ignoring")
            return {}

        with _cache_lock:
            self.cache[key] = dict(summary)
        return summary
