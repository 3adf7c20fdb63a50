"""Edit distance and similarity used by every text-matching tier."""

from __future__ import annotations

DEFAULT_LENGTH_GUARD = 0.5


def levenshtein_distance(
    a: str,
    b: str,
    *,
    length_guard: float | None = DEFAULT_LENGTH_GUARD,
    score_cutoff: int | None = None,
) -> int:
    """Return the edit distance between ``a`` and ``b``.

    Substitution, insertion and deletion each cost 1. When the lengths
    differ by more than ``length_guard`` of the longer string the strings
    are treated as unrelated and the longer length is returned without
    running the DP. With ``score_cutoff`` the computation stops as soon as
    every cell of a row exceeds the cutoff and ``score_cutoff + 1`` is
    returned instead of the exact distance.
    """

    m = len(a)
    n = len(b)
    if m == 0:
        return n
    if n == 0:
        return m
    if a == b:
        return 0

    longest = max(m, n)
    if length_guard is not None and abs(m - n) > length_guard * longest:
        return longest

    if score_cutoff is not None and abs(m - n) > score_cutoff:
        return score_cutoff + 1

    # row buffers are sized to the shorter string
    if m < n:
        a, b = b, a
        m, n = n, m

    previous = list(range(n + 1))
    for i in range(1, m + 1):
        current = [i] + [0] * n
        char_a = a[i - 1]
        row_min = i
        for j in range(1, n + 1):
            if char_a == b[j - 1]:
                value = previous[j - 1]
            else:
                value = min(previous[j - 1], current[j - 1], previous[j]) + 1
            current[j] = value
            if value < row_min:
                row_min = value
        if score_cutoff is not None and row_min > score_cutoff:
            return score_cutoff + 1
        previous = current

    distance = previous[n]
    if score_cutoff is not None and distance > score_cutoff:
        return score_cutoff + 1
    return distance


def similarity(a: str, b: str, *, length_guard: float | None = DEFAULT_LENGTH_GUARD) -> float:
    """Return ``1 - distance / max(len(a), len(b))`` in ``[0, 1]``."""

    if not a and not b:
        return 1.0
    if not a or not b:
        return 0.0
    distance = levenshtein_distance(a, b, length_guard=length_guard)
    ratio = 1.0 - distance / max(len(a), len(b))
    return max(0.0, min(1.0, ratio))


__all__ = ["DEFAULT_LENGTH_GUARD", "levenshtein_distance", "similarity"]
