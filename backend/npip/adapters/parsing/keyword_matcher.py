"""
Keyword Matching
Decides whether a piece of text belongs to a project
"""

from dataclasses import dataclass
from typing import List, Optional

from .boolean_query import evaluate_boolean_query, sanitize_query


@dataclass
class KeywordMatch:
    """Result of matching one text against a project"""
    matched_keyword: str   # first matching keyword, "" if none
    boolean_match: bool    # True when no boolean query is configured
    has_keywords: bool

    @property
    def accepted(self) -> bool:
        if not self.boolean_match:
            return False
        # Projects without keywords accept every boolean-query match
        return bool(self.matched_keyword) or not self.has_keywords


class KeywordMatcher:
    """
    Matches text against a project's ordered keyword list and boolean query.
    Keywords are compared case-insensitively by substring containment.
    """

    def __init__(self, keywords: Optional[List[str]] = None, boolean_query: Optional[str] = None):
        self.keywords = [k.strip() for k in (keywords or []) if k and k.strip()]
        self.boolean_query = sanitize_query(boolean_query or "")

    @classmethod
    def for_project(cls, project) -> "KeywordMatcher":
        return cls(project.keywords, project.boolean_query)

    def match(self, text: str) -> KeywordMatch:
        haystack = (text or "").lower()
        matched = next((k for k in self.keywords if k.lower() in haystack), "")
        boolean_match = evaluate_boolean_query(self.boolean_query, haystack) if self.boolean_query else True
        return KeywordMatch(
            matched_keyword=matched,
            boolean_match=boolean_match,
            has_keywords=bool(self.keywords),
        )
