"""
Purpose
-------
Typed value objects shared by the corpus, TF-IDF and LDA layers: documents,
the vocabulary, the sparse term-count matrix, and corpus-wide statistics.

Key behaviors
-------------
- `Document` holds one article's identity, outlet, date and raw text.
- `Vocabulary` is a bidirectional term <-> dense index mapping over [0, V).
- `TermCountMatrix` wraps a CSR matrix of non-negative integer counts whose
  rows follow `document_ids` and whose columns follow the vocabulary.
- `CorpusStatistics` carries N and per-term document frequency explicitly so
  that no component reads corpus-wide state implicitly.

Conventions
-----------
- All objects are frozen dataclasses and are never mutated after
  construction; the numpy/scipy payloads are treated as read-only.
- Only non-zero counts are stored in the matrix.

Downstream usage
----------------
Built by `corpus.vocabulary` and `corpus.term_count_matrix`; consumed by
`tfidf.tfidf_engine` and `lda.lda_model`.
"""

import datetime as dt
from dataclasses import dataclass, field
from typing import Iterator, Tuple

import numpy as np
import pandas as pd
import scipy.sparse as sp

from infra.utils.pipeline_errors import InvalidInputError


@dataclass(frozen=True)
class Document:
    """
    Purpose
    -------
    One ingested news article.

    Parameters
    ----------
    document_id : str
        Unique, stable identifier (article id).
    outlet : str
        Opaque outlet label; display-name remapping happens downstream.
    published_on : datetime.date
        Publication date.
    text : str
        Raw, encoding-normalized article text.
    """

    document_id: str
    outlet: str
    published_on: dt.date
    text: str


@dataclass(frozen=True)
class Vocabulary:
    """
    Purpose
    -------
    Bidirectional mapping between term strings and contiguous integer indices.

    Parameters
    ----------
    terms : tuple[str, ...]
        Terms in index order; `terms[i]` has index `i`.

    Raises
    ------
    InvalidInputError
        If `terms` contains duplicates.
    """

    terms: Tuple[str, ...]
    _index: dict[str, int] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        index: dict[str, int] = {term: i for i, term in enumerate(self.terms)}
        if len(index) != len(self.terms):
            raise InvalidInputError("Vocabulary terms must be unique")
        object.__setattr__(self, "_index", index)

    def __len__(self) -> int:
        return len(self.terms)

    def __contains__(self, term: object) -> bool:
        return term in self._index

    def __iter__(self) -> Iterator[str]:
        return iter(self.terms)

    def index_of(self, term: str) -> int:
        return self._index[term]

    def term_of(self, index: int) -> str:
        return self.terms[index]


@dataclass(frozen=True, eq=False)
class TermCountMatrix:
    """
    Purpose
    -------
    Sparse (document x term) matrix of raw occurrence counts.

    Parameters
    ----------
    counts : scipy.sparse.csr_matrix
        Integer counts of shape (len(document_ids), len(vocabulary)).
    document_ids : tuple[str, ...]
        Row labels.
    vocabulary : Vocabulary
        Column labels.

    Raises
    ------
    InvalidInputError
        If the matrix shape does not match its labels or holds negative or
        non-integral counts.

    Notes
    -----
    - Explicit zeros are eliminated at construction so that `nnz` counts
      only observed (document, term) pairs.
    """

    counts: sp.csr_matrix
    document_ids: Tuple[str, ...]
    vocabulary: Vocabulary

    def __post_init__(self) -> None:
        raw: sp.csr_matrix = sp.csr_matrix(self.counts, copy=True)
        if raw.nnz and not (np.mod(raw.data, 1) == 0).all():
            raise InvalidInputError("Term counts must be integral")
        counts: sp.csr_matrix = raw.astype(np.int64)
        counts.eliminate_zeros()
        if counts.shape != (len(self.document_ids), len(self.vocabulary)):
            raise InvalidInputError(
                f"Count matrix shape {counts.shape} does not match "
                f"{len(self.document_ids)} documents x {len(self.vocabulary)} terms"
            )
        if counts.nnz and counts.data.min() < 0:
            raise InvalidInputError("Term counts must be non-negative")
        object.__setattr__(self, "counts", counts)

    @property
    def shape(self) -> Tuple[int, int]:
        return self.counts.shape

    @property
    def nnz(self) -> int:
        return int(self.counts.nnz)

    def to_count_table(self) -> pd.DataFrame:
        """
        Return the non-zero entries as a long table.

        Returns
        -------
        pandas.DataFrame
            Columns ['document_id', 'term', 'n'], one row per stored entry.
        """

        coo: sp.coo_matrix = self.counts.tocoo()
        return pd.DataFrame(
            {
                "document_id": np.asarray(self.document_ids, dtype=object)[coo.row],
                "term": np.asarray(self.vocabulary.terms, dtype=object)[coo.col],
                "n": coo.data.astype(np.int64),
            }
        )


@dataclass(frozen=True, eq=False)
class CorpusStatistics:
    """
    Purpose
    -------
    Immutable corpus-wide statistics passed explicitly to the components that
    need them.

    Parameters
    ----------
    num_documents : int
        Total number of documents N (rows of the count matrix).
    document_frequency : numpy.ndarray
        Per-term count of documents containing the term, aligned with the
        vocabulary.
    term_frequency : numpy.ndarray
        Per-term total occurrence count, aligned with the vocabulary.
    vocabulary : Vocabulary
        The vocabulary the arrays are indexed by.
    """

    num_documents: int
    document_frequency: np.ndarray
    term_frequency: np.ndarray
    vocabulary: Vocabulary

    @property
    def num_tokens(self) -> int:
        return int(self.term_frequency.sum())

    def document_frequency_of(self, term: str) -> int:
        return int(self.document_frequency[self.vocabulary.index_of(term)])
