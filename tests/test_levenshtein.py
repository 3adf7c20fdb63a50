"""Tests for the edit-distance helpers."""

from __future__ import annotations

import pytest
from rapidfuzz.distance import Levenshtein

from readanchor.services.levenshtein import levenshtein_distance, similarity


def test_distance_basics():
    assert levenshtein_distance("", "") == 0
    assert levenshtein_distance("abc", "") == 3
    assert levenshtein_distance("", "abc") == 3
    assert levenshtein_distance("same", "same") == 0
    assert levenshtein_distance("kitten", "sitting") == 3
    assert levenshtein_distance("brown fox", "brown fax") == 1


@pytest.mark.parametrize(
    ("a", "b"),
    [
        ("kitten", "sitting"),
        ("flaw", "lawn"),
        ("the quick brown fox", "the quick brown fax"),
        ("gumbo", "gambol"),
    ],
)
def test_distance_is_symmetric(a, b):
    assert levenshtein_distance(a, b) == levenshtein_distance(b, a)


@pytest.mark.parametrize(
    ("a", "b"),
    [
        ("kitten", "sitting"),
        ("intention", "execution"),
        ("reading position", "reading positions"),
        ("It was the best of times", "It was the worst of times"),
        ("abcdef", "azced"),
        ("a", "b"),
    ],
)
def test_distance_matches_reference_implementation(a, b):
    assert levenshtein_distance(a, b, length_guard=None) == Levenshtein.distance(a, b)


def test_length_guard_treats_disparate_lengths_as_unrelated():
    assert levenshtein_distance("a", "abcdefgh") == 8
    assert levenshtein_distance("a", "abcdefgh", length_guard=None) == 7


def test_score_cutoff_stops_early():
    assert levenshtein_distance("kitten", "sitting", score_cutoff=1) == 2
    assert levenshtein_distance("kitten", "sitting", score_cutoff=3) == 3
    assert levenshtein_distance("aaaaaaaa", "qzxwvuts", score_cutoff=1) == 2


def test_similarity_bounds():
    assert similarity("", "") == 1.0
    assert similarity("abc", "") == 0.0
    assert similarity("abcd", "abce") == pytest.approx(0.75)
    assert similarity("same", "same") == 1.0
    assert 0.0 <= similarity("short", "a much longer string entirely") <= 1.0
