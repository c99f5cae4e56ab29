"""Lexical abuse detection over request content."""

import json
import re
from collections.abc import Iterable
from typing import Any

DEFAULT_PATTERNS = (r"spam+", r"hate")


class AbuseDetector:
    """Match request content against a word list and regex patterns."""

    def __init__(self, words: Iterable[str], patterns: Iterable[str] = DEFAULT_PATTERNS):
        self.words = [w.lower() for w in words if w]
        self.patterns = [re.compile(p, re.IGNORECASE) for p in patterns]

    def is_abusive(self, content: Any) -> bool:
        """Check text, or a JSON-encodable structure, for abusive words or patterns."""
        if not content:
            return False

        if isinstance(content, bytes):
            text = content.decode("utf-8", errors="replace")
        elif isinstance(content, str):
            text = content
        else:
            text = json.dumps(content, default=str)
        text = text.lower()

        if any(word in text for word in self.words):
            return True
        return any(pattern.search(text) for pattern in self.patterns)

    def detect(self, sources: Iterable[Any]) -> bool:
        """Return True if any source is abusive."""
        return any(self.is_abusive(source) for source in sources)
