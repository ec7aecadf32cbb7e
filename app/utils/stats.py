import statistics
from typing import Sequence

from rapidfuzz.distance import Levenshtein


def mean(amounts: Sequence[float]) -> float:
    if not amounts:
        return 0.0
    return statistics.fmean(amounts)


def std_deviation(amounts: Sequence[float]) -> float:
    """
    Population standard deviation (divides by N). The analyzer reports this
    value as a category's "variance"; it is sigma, not sigma squared.
    """
    if not amounts:
        return 0.0
    return statistics.pstdev(amounts)


def string_similarity(first: str, second: str) -> float:
    """
    Case-insensitive normalized Levenshtein similarity in [0, 1].
    Two empty strings are identical.
    """
    first, second = first.lower(), second.lower()
    longest = max(len(first), len(second))
    if longest == 0:
        return 1.0
    return (longest - Levenshtein.distance(first, second)) / longest
