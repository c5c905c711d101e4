"""
Compiled pattern cache for ``regex`` rules.

Patterns are compiled on first use and memoized by their exact source
string. One cache is shared by every validator in the process unless a
validator is constructed with its own.
"""

import logging
import re
import threading
from typing import Dict, Pattern

logger = logging.getLogger(__name__)


class PatternCache:
    """
    Thread-safe memoizing compiler for regular expressions.

    Lookups and stores take an internal lock, compilation does not. Two
    threads asking for the same new pattern may both compile it; the last
    store wins.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._patterns: Dict[str, Pattern] = {}

    def get(self, pattern: str) -> Pattern:
        """
        Return the compiled form of ``pattern``.

        Args:
            pattern: Regular expression source, used verbatim as cache key.

        Returns:
            The compiled pattern.

        Raises:
            re.error: If the pattern does not compile. Failures are not cached.
        """
        with self._lock:
            compiled = self._patterns.get(pattern)
        if compiled is not None:
            return compiled

        compiled = re.compile(pattern)
        logger.debug("Compiled pattern %r", pattern)
        with self._lock:
            self._patterns[pattern] = compiled
        return compiled

    def reset(self) -> None:
        """Drop every cached pattern (schema reload, test isolation)."""
        with self._lock:
            self._patterns = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._patterns)

    def __contains__(self, pattern: object) -> bool:
        with self._lock:
            return pattern in self._patterns


default_cache = PatternCache()
