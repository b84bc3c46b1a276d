from __future__ import annotations

from dataclasses import dataclass, asdict, field
from typing import Iterable

from shadowing.core.align import AlignmentOp, OpKind

NO_REFERENCE_FEEDBACK = "No expected text provided"

STATUS_MARKERS = {
    OpKind.MATCH: "✓",
    OpKind.SUBSTITUTION: "✗",
    OpKind.DELETION: "−",
    OpKind.INSERTION: "+",
}

# (minimum accuracy, message), checked top to bottom.
FEEDBACK_TIERS = (
    (90.0, "🌟 Excellent! Your pronunciation is very clear!"),
    (70.0, "👍 Good! You're doing well. Keep practicing to improve."),
    (50.0, "💪 Not bad! Focus on the words marked above to improve."),
    (float("-inf"), "📚 Keep practicing! Focus on clear pronunciation of the words marked above."),
)


@dataclass(frozen=True)
class WordPosition:
    word: str
    position: int


@dataclass(frozen=True)
class WordMismatch:
    expected: str
    actual: str
    position: int


@dataclass(frozen=True)
class WordComparison:
    status: str
    expected_word: str | None
    transcribed_word: str | None


@dataclass(frozen=True)
class ComparisonResult:
    transcribed_text: str
    expected_text: str
    accuracy: float
    total_expected: int
    total_correct: int
    correct_words: list[WordPosition] = field(default_factory=list)
    wrong_words: list[WordMismatch] = field(default_factory=list)
    missing_words: list[WordPosition] = field(default_factory=list)
    extra_words: list[WordPosition] = field(default_factory=list)
    word_comparison: list[WordComparison] = field(default_factory=list)
    feedback: str = ""

    def to_dict(self) -> dict:
        return asdict(self)


def accuracy_for(total_correct: int, total_expected: int) -> float:
    if total_expected <= 0:
        return 0.0
    return 100 * total_correct / total_expected


def feedback_message(accuracy: float) -> str:
    for threshold, message in FEEDBACK_TIERS:
        if accuracy >= threshold:
            return message
    return FEEDBACK_TIERS[-1][1]


def generate_feedback(
    *,
    accuracy: float,
    correct: int,
    total: int,
    wrong: int,
    missing: int,
    extra: int,
) -> str:
    lines = [
        feedback_message(accuracy),
        "",
        f"Correct words: {correct}/{total} ({accuracy:.1f}%)",
    ]
    if wrong > 0:
        lines.append(f"Wrong/Mispronounced words: {wrong}")
    if missing > 0:
        lines.append(f"Missing words: {missing}")
    if extra > 0:
        lines.append(f"Extra words: {extra}")
    return "\n".join(lines)


def empty_result(expected_text: str, transcribed_text: str) -> ComparisonResult:
    return ComparisonResult(
        transcribed_text=transcribed_text,
        expected_text=expected_text,
        accuracy=0.0,
        total_expected=0,
        total_correct=0,
        feedback=NO_REFERENCE_FEEDBACK,
    )


def build_report(
    expected_text: str,
    transcribed_text: str,
    alignment: Iterable[AlignmentOp],
) -> ComparisonResult:
    """Classify every alignment step and score the attempt.

    Accuracy counts only expected-side words, so extra spoken words are listed
    but never lower the score. With no expected words the result is empty.
    """
    ops = list(alignment)
    total_expected = sum(1 for op in ops if op.consumes_expected)
    if total_expected == 0:
        return empty_result(expected_text, transcribed_text)

    correct_words: list[WordPosition] = []
    wrong_words: list[WordMismatch] = []
    missing_words: list[WordPosition] = []
    extra_words: list[WordPosition] = []
    word_comparison: list[WordComparison] = []

    for op in ops:
        if op.kind is OpKind.MATCH:
            correct_words.append(WordPosition(word=op.expected_word, position=op.expected_index))
        elif op.kind is OpKind.SUBSTITUTION:
            wrong_words.append(
                WordMismatch(expected=op.expected_word, actual=op.transcribed_word, position=op.expected_index)
            )
        elif op.kind is OpKind.DELETION:
            missing_words.append(WordPosition(word=op.expected_word, position=op.expected_index))
        elif op.kind is OpKind.INSERTION:
            extra_words.append(WordPosition(word=op.transcribed_word, position=op.transcribed_index))
        else:  # pragma: no cover - OpKind is closed
            raise ValueError(f"Unknown alignment op: {op.kind!r}")
        word_comparison.append(
            WordComparison(
                status=STATUS_MARKERS[op.kind],
                expected_word=op.expected_word,
                transcribed_word=op.transcribed_word,
            )
        )

    total_correct = len(correct_words)
    accuracy = accuracy_for(total_correct, total_expected)
    feedback = generate_feedback(
        accuracy=accuracy,
        correct=total_correct,
        total=total_expected,
        wrong=len(wrong_words),
        missing=len(missing_words),
        extra=len(extra_words),
    )
    return ComparisonResult(
        transcribed_text=transcribed_text,
        expected_text=expected_text,
        accuracy=accuracy,
        total_expected=total_expected,
        total_correct=total_correct,
        correct_words=correct_words,
        wrong_words=wrong_words,
        missing_words=missing_words,
        extra_words=extra_words,
        word_comparison=word_comparison,
        feedback=feedback,
    )
