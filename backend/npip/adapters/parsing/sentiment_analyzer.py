"""
Language & Sentiment Classification
Script-level language detection and model-backed sentiment with a
keyword fallback
"""

import asyncio
import logging
import re
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from npip.config import get_settings
from npip.models import SentimentLabel

logger = logging.getLogger(__name__)

_DEVANAGARI = re.compile(r"[\u0900-\u097F]")
_LATIN = re.compile(r"[a-zA-Z]")


def detect_language(text: str) -> str:
    """
    Script heuristic, not language identification.
    Devanagari wins over Latin, which wins over unknown.
    """
    text = text or ""
    if _DEVANAGARI.search(text):
        return "ne"
    if _LATIN.search(text):
        return "en"
    return "unknown"


@dataclass
class SentimentResult:
    """Result of sentiment inference"""
    label: str
    confidence: float  # 0.0 to 1.0

    def to_dict(self) -> dict:
        return {"label": self.label, "confidence": self.confidence}


def _default_model_loader(model_name: str) -> Callable[[str], Any]:
    from transformers import pipeline
    return pipeline("sentiment-analysis", model=model_name)


class SentimentClassifier:
    """
    Multilingual sentiment via a pre-trained transformers pipeline.

    The pipeline is loaded lazily on first use and reused. Any model failure
    falls back to a small keyword heuristic with fixed low confidence.
    """

    POSITIVE_WORDS = ["good", "great", "excellent"]
    NEGATIVE_WORDS = ["bad", "terrible", "poor"]

    FALLBACK_CONFIDENCE = 0.4
    NEUTRAL_FALLBACK_CONFIDENCE = 0.2

    def __init__(
        self,
        model_name: Optional[str] = None,
        max_chars: Optional[int] = None,
        retry_after_seconds: Optional[int] = None,
        model_loader: Callable[[str], Callable[[str], Any]] = _default_model_loader,
        clock: Callable[[], float] = time.monotonic,
    ):
        settings = get_settings()
        self.model_name = model_name or settings.SENTIMENT_MODEL
        self.max_chars = max_chars or settings.SENTIMENT_MAX_CHARS
        self.retry_after_seconds = (
            retry_after_seconds if retry_after_seconds is not None
            else settings.SENTIMENT_MODEL_RETRY_SECONDS
        )
        self._model_loader = model_loader
        self._clock = clock
        self._pipeline = None
        self._load_failed_at: Optional[float] = None
        self._load_lock = threading.Lock()

    def _get_pipeline(self):
        if self._pipeline is not None:
            return self._pipeline
        with self._load_lock:
            if self._pipeline is not None:
                return self._pipeline
            if (
                self._load_failed_at is not None
                and self._clock() - self._load_failed_at < self.retry_after_seconds
            ):
                raise RuntimeError(f"Sentiment model {self.model_name} unavailable")
            try:
                self._pipeline = self._model_loader(self.model_name)
            except Exception:
                self._load_failed_at = self._clock()
                raise
            self._load_failed_at = None
            logger.info(f"Loaded sentiment model {self.model_name}")
            return self._pipeline

    @staticmethod
    def _normalize_label(raw_label: str) -> str:
        """Map star ratings (1-5) to polarity; other labels are lower-cased"""
        label = (raw_label or "").strip().lower()
        if not label:
            return SentimentLabel.NEUTRAL.value
        if label[0].isdigit() and "star" in label:
            stars = int(label[0])
            if stars <= 2:
                return SentimentLabel.NEGATIVE.value
            if stars == 3:
                return SentimentLabel.NEUTRAL.value
            return SentimentLabel.POSITIVE.value
        return label

    def _fallback(self, text: str) -> SentimentResult:
        # Cues match anywhere, so "goodness" and "poorly" count
        lowered = (text or "").lower()
        if any(word in lowered for word in self.POSITIVE_WORDS):
            return SentimentResult(SentimentLabel.POSITIVE.value, self.FALLBACK_CONFIDENCE)
        if any(word in lowered for word in self.NEGATIVE_WORDS):
            return SentimentResult(SentimentLabel.NEGATIVE.value, self.FALLBACK_CONFIDENCE)
        return SentimentResult(SentimentLabel.NEUTRAL.value, self.NEUTRAL_FALLBACK_CONFIDENCE)

    def classify(self, text: str) -> SentimentResult:
        """Synchronous inference; never raises"""
        trimmed = (text or "").strip()
        if not trimmed:
            return SentimentResult(SentimentLabel.NEUTRAL.value, 0.0)

        try:
            model = self._get_pipeline()
            output = model(trimmed[: self.max_chars])
            top = output[0] if isinstance(output, list) else output
            label = self._normalize_label(top.get("label", ""))
            confidence = max(0.0, min(1.0, float(top.get("score", 0) or 0)))
            return SentimentResult(label, confidence)
        except Exception as e:
            logger.debug(f"Sentiment model failed, using keyword fallback: {e}")
            return self._fallback(trimmed)

    async def infer_sentiment(self, text: str) -> SentimentResult:
        """Async inference; the model runs in a worker thread"""
        if not (text or "").strip():
            return SentimentResult(SentimentLabel.NEUTRAL.value, 0.0)
        return await asyncio.to_thread(self.classify, text)


_classifier: Optional[SentimentClassifier] = None


def get_sentiment_classifier() -> SentimentClassifier:
    """Process-wide classifier so the model is loaded once per worker"""
    global _classifier
    if _classifier is None:
        _classifier = SentimentClassifier()
    return _classifier
