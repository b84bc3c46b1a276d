from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
import unicodedata

import pytest

from shadowing.core import config as config_core
from shadowing.core.compare import InputTooLargeError, compare_texts
from shadowing.core.normalize import NormalizerConfig

PAIRS = [
    ("The quick brown fox", "The quick brown fox"),
    ("I love cats", "I love dogs"),
    ("see you later", "see later"),
    ("good morning", "good very morning"),
    ("It's raining cats and dogs", "it is raining dogs and cats"),
    ("She sells sea shells by the sea shore", "she sell see shells on the shore"),
    ("one two three", ""),
    ("a", "b c d e f"),
]


def test_exact_match():
    result = compare_texts("The quick brown fox", "The quick brown fox")
    assert result.accuracy == 100.0
    assert result.total_expected == 4
    assert result.total_correct == 4
    assert result.wrong_words == []
    assert result.missing_words == []
    assert result.extra_words == []


def test_substitution():
    result = compare_texts("I love dogs", "I love cats")
    assert [w.word for w in result.correct_words] == ["i", "love"]
    assert [(w.expected, w.actual, w.position) for w in result.wrong_words] == [("cats", "dogs", 2)]
    assert result.accuracy == pytest.approx(66.67, abs=0.01)


def test_deletion():
    result = compare_texts("see later", "see you later")
    assert [(w.word, w.position) for w in result.missing_words] == [("you", 1)]
    assert result.total_correct == 2
    assert result.accuracy == pytest.approx(66.67, abs=0.01)


def test_insertion_does_not_reduce_accuracy():
    # Accuracy is computed over expected words only, so an extra word is listed
    # but costs nothing.
    result = compare_texts("good very morning", "good morning")
    assert [(w.word, w.position) for w in result.extra_words] == [("very", 1)]
    assert result.total_correct == 2
    assert result.accuracy == 100.0


def test_empty_expected():
    result = compare_texts("anything", "")
    assert result.accuracy == 0.0
    assert result.total_expected == 0
    assert result.correct_words == result.wrong_words == result.missing_words == result.extra_words == []
    assert result.word_comparison == []
    assert "No expected text" in result.feedback


def test_punctuation_only_expected_is_empty():
    result = compare_texts("hello", "?!")
    assert result.total_expected == 0


def test_empty_transcript_marks_everything_missing():
    result = compare_texts("", "one two three")
    assert [w.word for w in result.missing_words] == ["one", "two", "three"]
    assert result.accuracy == 0.0
    assert result.feedback.startswith("📚")


def test_contractions_are_compared_expanded():
    result = compare_texts("it is raining", "It's raining!")
    assert result.accuracy == 100.0
    assert result.total_expected == 3


@pytest.mark.parametrize("expected,transcribed", PAIRS)
def test_counts_add_up(expected: str, transcribed: str):
    result = compare_texts(transcribed, expected)
    assert result.total_correct + len(result.wrong_words) + len(result.missing_words) == result.total_expected
    if result.total_expected > 0:
        assert result.accuracy == 100 * result.total_correct / result.total_expected
    else:
        assert result.accuracy == 0
    assert 0.0 <= result.accuracy <= 100.0
    assert len(result.word_comparison) == result.total_expected + len(result.extra_words)


@pytest.mark.parametrize("text", [pair[0] for pair in PAIRS])
def test_reflexive(text: str):
    result = compare_texts(text, text)
    assert result.accuracy == 100.0
    assert result.wrong_words == []
    assert result.missing_words == []
    assert result.extra_words == []


def test_input_too_large_is_rejected():
    with pytest.raises(InputTooLargeError) as excinfo:
        compare_texts("a b", "a b c d", max_tokens=3)
    assert excinfo.value.side == "expected"
    assert excinfo.value.tokens == 4
    assert excinfo.value.max_tokens == 3

    with pytest.raises(InputTooLargeError) as excinfo:
        compare_texts("a b c d", "a b", max_tokens=3)
    assert excinfo.value.side == "transcribed"


def test_empty_expected_skips_size_check():
    result = compare_texts("word " * 50, "", max_tokens=3)
    assert result.total_expected == 0


def test_settings_are_not_read_from_environment_or_config(monkeypatch, tmp_path):
    config_path = tmp_path / "config.toml"
    config_path.write_text("[compare\nmax_tokens = ", encoding="utf-8")
    monkeypatch.setenv("SHADOWING_CONFIG_PATH", str(config_path))
    monkeypatch.setenv("SHADOWING_MAX_TOKENS", "2")
    config_core.reset_config_cache()

    result = compare_texts("hello world again", "hello world again")
    assert result.accuracy == 100.0


def test_default_limit_is_a_thousand_tokens():
    with pytest.raises(InputTooLargeError) as excinfo:
        compare_texts("a " * 1001, "a")
    assert excinfo.value.max_tokens == 1000


def test_max_tokens_must_be_positive():
    with pytest.raises(ValueError, match="max_tokens"):
        compare_texts("a", "a", max_tokens=0)


def test_explicit_normalizer():
    cfg = NormalizerConfig(contractions={})
    result = compare_texts("it is", "it's", normalizer=cfg)
    assert result.total_expected == 1
    assert result.accuracy == 0.0


def test_parallel_calls_match_sequential():
    sequential = [compare_texts(t, e).to_dict() for e, t in PAIRS]
    with ThreadPoolExecutor(max_workers=4) as pool:
        parallel = list(pool.map(lambda pair: compare_texts(pair[1], pair[0]).to_dict(), PAIRS))
    assert parallel == sequential


def test_decomposed_transcript_matches_composed_reference():
    result = compare_texts(unicodedata.normalize("NFD", "café au lait"), "Café au lait")
    assert result.accuracy == 100.0
    assert result.wrong_words == []
