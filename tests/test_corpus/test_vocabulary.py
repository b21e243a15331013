"""
Purpose
-------
Unit tests for `corpus.vocabulary` and the `Vocabulary` value object.

Key behaviors
-------------
- The same token streams always yield the same sorted vocabulary.
- Indices are contiguous and round-trip between term and index.
- `min_doc_freq` prunes by document frequency, not raw frequency.
- Null streams and empty vocabularies are rejected.

Downstream usage
----------------
Run with `pytest -q tests/test_corpus`.
"""

from __future__ import annotations

from typing import List

import pytest

from corpus.corpus_types import Vocabulary
from corpus.vocabulary import build_vocabulary, count_token_frequencies
from infra.utils.pipeline_errors import InvalidInputError


def test_build_vocabulary_is_sorted_and_contiguous(
    animal_corpus_tokens: dict[str, List[str]],
) -> None:
    vocabulary: Vocabulary = build_vocabulary(animal_corpus_tokens.values())

    assert vocabulary.terms == ("gato", "perro", "sol")
    assert [vocabulary.index_of(t) for t in vocabulary] == [0, 1, 2]
    assert vocabulary.term_of(1) == "perro"
    assert "sol" in vocabulary and "luna" not in vocabulary


def test_build_vocabulary_is_deterministic_across_document_order(
    animal_corpus_tokens: dict[str, List[str]],
) -> None:
    forward: Vocabulary = build_vocabulary(list(animal_corpus_tokens.values()))
    backward: Vocabulary = build_vocabulary(list(reversed(list(animal_corpus_tokens.values()))))

    assert forward == backward


def test_count_token_frequencies_separates_term_and_document_counts() -> None:
    term_counts, doc_counts = count_token_frequencies([["a", "a", "a"], ["a", "b"], ["b"]])

    assert term_counts == {"a": 4, "b": 2}
    assert doc_counts == {"a": 2, "b": 2}


def test_min_doc_freq_prunes_rare_terms(recording_logger) -> None:
    streams: List[List[str]] = [["keep", "drop", "drop", "drop"], ["keep"], ["keep", "keep"]]

    vocabulary: Vocabulary = build_vocabulary(streams, min_doc_freq=2, logger=recording_logger)

    assert vocabulary.terms == ("keep",)
    level, event, context = recording_logger.records[-1]
    assert (level, event) == ("INFO", "vocabulary_built")
    assert context["vocab_size_before"] == 2
    assert context["vocab_size_after"] == 1


@pytest.mark.parametrize("streams", [None, [["a"], None]])
def test_build_vocabulary_rejects_null_streams(streams) -> None:
    with pytest.raises(InvalidInputError):
        build_vocabulary(streams)


@pytest.mark.parametrize("streams", [[], [[], []]])
def test_build_vocabulary_rejects_empty_vocabulary(streams) -> None:
    with pytest.raises(InvalidInputError):
        build_vocabulary(streams)


def test_build_vocabulary_rejects_invalid_min_doc_freq() -> None:
    with pytest.raises(InvalidInputError):
        build_vocabulary([["a"]], min_doc_freq=0)


def test_vocabulary_rejects_duplicate_terms() -> None:
    with pytest.raises(InvalidInputError):
        Vocabulary(("gato", "perro", "gato"))
