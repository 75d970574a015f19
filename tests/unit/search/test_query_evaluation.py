from __future__ import annotations

import pytest

from title_search.index import InvertedIndex, evaluate_query


@pytest.fixture
def index() -> InvertedIndex:
    built = InvertedIndex()
    built.insert("a.org", ["the", "bears", "den"])
    built.insert("b.org", ["second", "bears", "camp"])
    built.insert("d.org", ["the", "second", "city"])
    return built


def test_single_token_returns_its_postings(index: InvertedIndex) -> None:
    assert evaluate_query(index, "bears") == {"a.org", "b.org"}


def test_all_tokens_must_match(index: InvertedIndex) -> None:
    assert evaluate_query(index, "bears second") == {"b.org"}


def test_token_order_and_case_do_not_matter(index: InvertedIndex) -> None:
    assert evaluate_query(index, "SECOND bears") == evaluate_query(index, "bears second")


def test_duplicate_tokens_do_not_change_result(index: InvertedIndex) -> None:
    assert evaluate_query(index, "bears bears") == {"a.org", "b.org"}


def test_unknown_token_yields_empty_result(index: InvertedIndex) -> None:
    assert evaluate_query(index, "camp unicorns") == set()
    assert evaluate_query(index, "unicorns camp") == set()


def test_disjoint_tokens_yield_empty_result(index: InvertedIndex) -> None:
    assert evaluate_query(index, "den camp") == set()


@pytest.mark.parametrize("query", ["", "   ", "!!! ...", "2024 42"])
def test_queries_without_tokens_match_nothing(index: InvertedIndex, query: str) -> None:
    assert evaluate_query(index, query) == set()


def test_query_punctuation_is_tokenized_like_titles(index: InvertedIndex) -> None:
    assert evaluate_query(index, "Bears, second!") == {"b.org"}


@pytest.mark.parametrize(
    ("left", "right"),
    [
        ("bears", "second"),
        ("the", "second"),
        ("bears", "unicorns"),
        ("", "camp"),
        ("city", "the"),
    ],
)
def test_combined_query_is_subset_of_each_part(
    index: InvertedIndex, left: str, right: str
) -> None:
    combined = evaluate_query(index, f"{left} {right}")

    assert combined <= evaluate_query(index, left) | evaluate_query(index, right)
    if left.strip() and right.strip():
        assert combined == evaluate_query(index, left) & evaluate_query(index, right)


def test_result_is_a_fresh_set(index: InvertedIndex) -> None:
    result = evaluate_query(index, "bears")
    result.add("mutated.org")

    assert index.lookup("bears") == frozenset({"a.org", "b.org"})
