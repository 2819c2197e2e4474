"""
Text Parsing Adapters
"""

from .boolean_query import evaluate_boolean_query, sanitize_query, tokenize, to_postfix
from .keyword_matcher import KeywordMatcher, KeywordMatch
from .sentiment_analyzer import (
    SentimentClassifier,
    SentimentResult,
    detect_language,
    get_sentiment_classifier,
)

__all__ = [
    "evaluate_boolean_query",
    "sanitize_query",
    "tokenize",
    "to_postfix",
    "KeywordMatcher",
    "KeywordMatch",
    "SentimentClassifier",
    "SentimentResult",
    "detect_language",
    "get_sentiment_classifier",
]
