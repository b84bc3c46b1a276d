from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
from typing import Sequence

logger = logging.getLogger(__name__)

MATCH_SCORE = 2
MISMATCH_SCORE = -1
GAP_SCORE = -1

# Predecessor directions stored one byte per cell.
_DIAG = 0
_UP = 1
_LEFT = 2


class OpKind(str, Enum):
    MATCH = "match"
    SUBSTITUTION = "substitution"
    DELETION = "deletion"
    INSERTION = "insertion"


@dataclass(frozen=True)
class AlignmentOp:
    """One step of the alignment script.

    Deletions carry only the expected side, insertions only the transcribed side;
    the other side is None.
    """

    kind: OpKind
    expected_word: str | None = None
    expected_index: int | None = None
    transcribed_word: str | None = None
    transcribed_index: int | None = None

    @property
    def consumes_expected(self) -> bool:
        return self.kind is not OpKind.INSERTION

    @property
    def consumes_transcribed(self) -> bool:
        return self.kind is not OpKind.DELETION

    def to_dict(self) -> dict:
        return {
            "op": self.kind.value,
            "expected_word": self.expected_word,
            "expected_index": self.expected_index,
            "transcribed_word": self.transcribed_word,
            "transcribed_index": self.transcribed_index,
        }


def _fill_directions(expected: Sequence[str], transcribed: Sequence[str]) -> bytearray:
    """Score the DP table row by row and return the predecessor table.

    Only two score rows are alive at a time; the (n+1)*(m+1) direction table is
    what the backtrace needs.
    """
    n, m = len(expected), len(transcribed)
    width = m + 1
    directions = bytearray(width * (n + 1))

    prev = [-j for j in range(width)]
    for j in range(1, width):
        directions[j] = _LEFT

    for i in range(1, n + 1):
        cur = [0] * width
        cur[0] = -i
        row = i * width
        directions[row] = _UP
        ref = expected[i - 1]
        for j in range(1, width):
            diag = prev[j - 1] + (MATCH_SCORE if ref == transcribed[j - 1] else MISMATCH_SCORE)
            up = prev[j] + GAP_SCORE
            left = cur[j - 1] + GAP_SCORE
            # Precedence is diag >= up >= left; changing it changes reported errors on ties.
            if diag >= up and diag >= left:
                cur[j] = diag
                directions[row + j] = _DIAG
            elif up >= left:
                cur[j] = up
                directions[row + j] = _UP
            else:
                cur[j] = left
                directions[row + j] = _LEFT
        prev = cur

    logger.debug("aligned %d x %d tokens, final score %d", n, m, prev[m])
    return directions


def align(expected: Sequence[str], transcribed: Sequence[str]) -> list[AlignmentOp]:
    """Align two token sequences.

    Returns operations in left-to-right order over the expected sequence. Empty
    inputs degrade to all insertions or all deletions; this never raises.
    """
    n, m = len(expected), len(transcribed)
    directions = _fill_directions(expected, transcribed)
    width = m + 1

    ops: list[AlignmentOp] = []
    i, j = n, m
    while i > 0 or j > 0:
        step = directions[i * width + j]
        if step == _DIAG:
            ref, hyp = expected[i - 1], transcribed[j - 1]
            kind = OpKind.MATCH if ref == hyp else OpKind.SUBSTITUTION
            ops.append(AlignmentOp(kind, ref, i - 1, hyp, j - 1))
            i -= 1
            j -= 1
        elif step == _UP:
            ops.append(AlignmentOp(OpKind.DELETION, expected_word=expected[i - 1], expected_index=i - 1))
            i -= 1
        else:
            ops.append(AlignmentOp(OpKind.INSERTION, transcribed_word=transcribed[j - 1], transcribed_index=j - 1))
            j -= 1
    ops.reverse()
    return ops
