"""
Purpose
-------
Build the corpus vocabulary: the set of distinct surviving terms with a
stable, contiguous integer index per term.

Key behaviors
-------------
- Count global term frequency and document frequency over per-document token
  streams.
- Optionally prune terms below a minimum document frequency.
- Assign indices in sorted term order, so the same corpus always yields the
  same vocabulary and the same matrix columns.

Conventions
-----------
- Token streams are iterables of already-normalized, stopword-filtered
  tokens, one per document.
- A `None` stream (for the whole corpus or a single document) is invalid
  input, never an empty document.

Downstream usage
----------------
`corpus.term_count_matrix.build_corpus` calls `build_vocabulary` once per
run and hands the result to `build_term_count_matrix`.
"""

from collections import Counter
from typing import Iterable, List

from corpus.corpus_config import DEFAULT_MIN_DOC_FREQ
from corpus.corpus_types import Vocabulary
from infra.logging.pipeline_logger import PipelineLogger
from infra.utils.pipeline_errors import InvalidInputError


def count_token_frequencies(
    token_streams: Iterable[Iterable[str]],
) -> tuple[Counter[str], Counter[str]]:
    """
    Count global term frequency and document frequency.

    Parameters
    ----------
    token_streams : Iterable[Iterable[str]]
        One token stream per document.

    Returns
    -------
    tuple[Counter[str], Counter[str]]
        (token -> total occurrences, token -> number of documents containing it).

    Raises
    ------
    InvalidInputError
        If `token_streams` or any individual stream is None.
    """

    if token_streams is None:
        raise InvalidInputError("Token streams must not be None")
    token_frequency_counter: Counter[str] = Counter()
    token_document_counter: Counter[str] = Counter()
    for position, tokens in enumerate(token_streams):
        if tokens is None:
            raise InvalidInputError(f"Token stream for document at position {position} is None")
        document_counter: Counter[str] = Counter(tokens)
        token_frequency_counter.update(document_counter)
        token_document_counter.update(document_counter.keys())
    return token_frequency_counter, token_document_counter


def build_vocabulary(
    token_streams: Iterable[Iterable[str]],
    min_doc_freq: int = DEFAULT_MIN_DOC_FREQ,
    logger: PipelineLogger | None = None,
) -> Vocabulary:
    """
    Build a deterministic term -> index mapping from per-document token streams.

    Parameters
    ----------
    token_streams : Iterable[Iterable[str]]
        One token stream per document.
    min_doc_freq : int, default DEFAULT_MIN_DOC_FREQ
        Terms appearing in fewer documents are dropped.
    logger : PipelineLogger, optional
        Receives a `vocabulary_built` entry with before/after sizes.

    Returns
    -------
    Vocabulary
        Terms sorted lexicographically; indices are contiguous in [0, V).

    Raises
    ------
    InvalidInputError
        If the streams are None, `min_doc_freq` < 1, or no term survives.
    """

    if min_doc_freq < 1:
        raise InvalidInputError(f"min_doc_freq must be >= 1, got {min_doc_freq}")
    token_frequency_counter, token_document_counter = count_token_frequencies(token_streams)
    kept_terms: List[str] = sorted(
        term for term, doc_freq in token_document_counter.items() if doc_freq >= min_doc_freq
    )
    if not kept_terms:
        raise InvalidInputError(
            "Vocabulary is empty: no tokens survived normalization, stopword removal and pruning"
        )
    if logger is not None:
        vocab_size_before: int = len(token_document_counter)
        logger.info(
            event="vocabulary_built",
            context={
                "min_doc_freq": min_doc_freq,
                "vocab_size_before": vocab_size_before,
                "vocab_size_after": len(kept_terms),
                "fraction_removed": round(1 - len(kept_terms) / vocab_size_before, 4),
                "top_terms": [term for term, _ in token_frequency_counter.most_common(10)],
            },
        )
    return Vocabulary(tuple(kept_terms))
