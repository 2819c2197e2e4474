"""Language detection and sentiment inference"""

import pytest

from npip.adapters.parsing import SentimentClassifier, detect_language


class RecordingLoader:
    def __init__(self, label="5 stars", score=0.87):
        self.loads = 0
        self.inputs = []
        self.label = label
        self.score = score

    def __call__(self, model_name):
        self.loads += 1

        def pipeline(text):
            self.inputs.append(text)
            return [{"label": self.label, "score": self.score}]
        return pipeline


class Ticker:
    def __init__(self):
        self.value = 0.0

    def __call__(self):
        return self.value


@pytest.mark.parametrize("text,expected", [
    ("नेपालमा चुनाव", "ne"),
    ("Election in नेपाल", "ne"),
    ("Election day", "en"),
    ("12345 !!!", "unknown"),
    ("", "unknown"),
])
def test_detect_language(text, expected):
    assert detect_language(text) == expected


async def test_empty_text_is_neutral_without_model_call():
    loader = RecordingLoader()
    classifier = SentimentClassifier(model_loader=loader)

    result = await classifier.infer_sentiment("   ")

    assert result.to_dict() == {"label": "neutral", "confidence": 0.0}
    assert loader.loads == 0
    assert loader.inputs == []


@pytest.mark.parametrize("label,expected", [
    ("1 star", "negative"),
    ("2 stars", "negative"),
    ("3 stars", "neutral"),
    ("4 stars", "positive"),
    ("5 stars", "positive"),
    ("POSITIVE", "positive"),
])
async def test_model_labels_are_normalized(label, expected):
    classifier = SentimentClassifier(model_loader=RecordingLoader(label=label, score=0.7))
    result = await classifier.infer_sentiment("some text")
    assert result.label == expected
    assert result.confidence == pytest.approx(0.7)


async def test_model_is_loaded_once_and_input_truncated():
    loader = RecordingLoader()
    classifier = SentimentClassifier(model_loader=loader, max_chars=10)

    await classifier.infer_sentiment("a" * 50)
    await classifier.infer_sentiment("b" * 50)

    assert loader.loads == 1
    assert loader.inputs == ["a" * 10, "b" * 10]


@pytest.mark.parametrize("text,expected", [
    ("What a great result", ("positive", 0.4)),
    ("A terrible outcome", ("negative", 0.4)),
    ("The count continues", ("neutral", 0.2)),
    ("Such goodness on display", ("positive", 0.4)),
    ("A poorly handled count", ("negative", 0.4)),
    ("BADLY delayed results", ("negative", 0.4)),
])
async def test_keyword_fallback_when_model_unavailable(text, expected):
    def broken(model_name):
        raise OSError("no weights")

    classifier = SentimentClassifier(model_loader=broken)
    result = await classifier.infer_sentiment(text)
    assert (result.label, result.confidence) == expected


def test_inference_error_falls_back():
    def loader(model_name):
        def pipeline(text):
            raise RuntimeError("CUDA out of memory")
        return pipeline

    result = SentimentClassifier(model_loader=loader).classify("good news")
    assert result.label == "positive"
    assert result.confidence == 0.4


def test_failed_load_is_retried_after_cooldown():
    attempts = []
    ticker = Ticker()

    def flaky(model_name):
        attempts.append(ticker.value)
        if len(attempts) == 1:
            raise OSError("hub unreachable")
        return lambda text: [{"label": "4 stars", "score": 0.9}]

    classifier = SentimentClassifier(model_loader=flaky, retry_after_seconds=60, clock=ticker)

    assert classifier.classify("fine").confidence == 0.2
    ticker.value = 30
    assert classifier.classify("fine").confidence == 0.2
    assert len(attempts) == 1

    ticker.value = 61
    assert classifier.classify("fine").label == "positive"
    assert len(attempts) == 2
