"""
Purpose
-------
Assemble the sparse document–term count matrix from validated article
records, and derive the corpus-wide statistics and grouped count tables that
the TF-IDF and LDA engines consume.

Key behaviors
-------------
- Validate the incoming article table and convert it into `Document`s.
- Tokenize and stopword-filter documents in chunks across a thread pool.
- Build a CSR count matrix whose storage is proportional to its non-zero
  entries.
- Compute `CorpusStatistics` (N, document frequency, term frequency).
- Sum article rows by an opaque grouping key (e.g. outlet) through a sparse
  indicator product, without merging texts.

Conventions
-----------
- Matrix rows follow document order; columns follow vocabulary order.
- Tokens absent from the vocabulary (e.g. pruned by `min_doc_freq`) are
  ignored by the matrix builder.
- Grouping keys are opaque data; no display-name remapping happens here.

Downstream usage
----------------
Call `build_corpus` once per run, then pass the matrix to
`tfidf.tfidf_engine.tf_idf_by_group` and `lda.lda_model.fit_lda`.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import List, Mapping, Sequence

import numpy as np
import pandas as pd
import scipy.sparse as sp

from corpus.corpus_config import (
    CHUNK_SIZE,
    DEFAULT_MIN_DOC_FREQ,
    MAXIMAL_WORKER_COUNT,
    REQUIRED_DOCUMENT_COLUMNS,
    STRIP_ACCENTS,
)
from corpus.corpus_types import CorpusStatistics, Document, TermCountMatrix, Vocabulary
from corpus.tokenizer import tokenize_and_filter
from corpus.vocabulary import build_vocabulary
from infra.logging.pipeline_logger import PipelineLogger
from infra.utils.pipeline_errors import InvalidInputError


def documents_from_frame(documents_df: pd.DataFrame) -> List[Document]:
    """
    Validate an article table and convert it into `Document` records.

    Parameters
    ----------
    documents_df : pandas.DataFrame
        Must contain ['document_id', 'outlet', 'date', 'text'].

    Returns
    -------
    list[Document]
        One record per row, in row order. `date` values are coerced to
        `datetime.date`; ids are coerced to `str`.

    Raises
    ------
    InvalidInputError
        If the table is empty, a required column is missing, ids are null or
        duplicated, outlets or dates are null, or a date cannot be parsed.

    Notes
    -----
    - Text presence is validated by the tokenizer, not here, so that the
      error points at the component that needs the text.
    """

    if documents_df is None or documents_df.empty:
        raise InvalidInputError("Corpus is empty")
    missing: List[str] = [c for c in REQUIRED_DOCUMENT_COLUMNS if c not in documents_df.columns]
    if missing:
        raise InvalidInputError(f"Document table is missing required columns: {missing}")
    for column in ["document_id", "outlet", "date"]:
        if documents_df[column].isna().any():
            raise InvalidInputError(f"Column '{column}' contains null values")
    document_ids: pd.Series = documents_df["document_id"].astype(str)
    if document_ids.duplicated().any():
        duplicates: List[str] = sorted(set(document_ids[document_ids.duplicated()]))
        raise InvalidInputError(f"Duplicate document ids: {duplicates[:10]}")
    try:
        dates: pd.Series = pd.to_datetime(documents_df["date"]).dt.date
    except (ValueError, TypeError) as exc:
        raise InvalidInputError(f"Unparseable publication date: {exc}") from exc
    return [
        Document(document_id=doc_id, outlet=str(outlet), published_on=date, text=text)
        for doc_id, outlet, date, text in zip(
            document_ids, documents_df["outlet"], dates, documents_df["text"]
        )
    ]


def tokenize_documents(
    documents: Sequence[Document],
    stopwords: frozenset[str],
    logger: PipelineLogger,
    max_workers: int = MAXIMAL_WORKER_COUNT,
    chunk_size: int = CHUNK_SIZE,
    strip_accents: bool = STRIP_ACCENTS,
) -> List[List[str]]:
    """
    Tokenize and stopword-filter every document, chunked across threads.

    Parameters
    ----------
    documents : Sequence[Document]
        Documents to tokenize.
    stopwords : frozenset[str]
        Normalized stopword set (see `corpus.tokenizer.load_stopwords`).
    logger : PipelineLogger
        Receives one debug entry per chunk.
    max_workers : int, default MAXIMAL_WORKER_COUNT
        Thread pool size; 1 tokenizes inline.
    chunk_size : int, default CHUNK_SIZE
        Documents per submitted task.
    strip_accents : bool, default STRIP_ACCENTS
        Forwarded to the tokenizer.

    Returns
    -------
    list[list[str]]
        Token lists aligned with `documents`.

    Raises
    ------
    InvalidInputError
        If any document text is missing (propagated from the tokenizer).
    """

    def tokenize_chunk(start: int) -> List[List[str]]:
        chunk: Sequence[Document] = documents[start : start + chunk_size]
        logger.debug(event="tokenize_chunk", context={"start": start, "size": len(chunk)})
        return [tokenize_and_filter(doc.text, stopwords, strip_accents) for doc in chunk]

    starts: range = range(0, len(documents), chunk_size)
    if max_workers <= 1:
        chunks: List[List[List[str]]] = [tokenize_chunk(start) for start in starts]
    else:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            chunks = list(executor.map(tokenize_chunk, starts))
    return [tokens for chunk in chunks for tokens in chunk]


def build_term_count_matrix(
    document_ids: Sequence[str],
    token_lists: Sequence[Sequence[str]],
    vocabulary: Vocabulary,
) -> TermCountMatrix:
    """
    Build the sparse (document x term) count matrix.

    Parameters
    ----------
    document_ids : Sequence[str]
        Row labels, aligned with `token_lists`.
    token_lists : Sequence[Sequence[str]]
        Filtered tokens per document.
    vocabulary : Vocabulary
        Column index; out-of-vocabulary tokens are skipped.

    Returns
    -------
    TermCountMatrix
        CSR counts with duplicates summed; only non-zero entries stored.

    Raises
    ------
    InvalidInputError
        If ids and token lists have different lengths, or any list is None.
    """

    if len(document_ids) != len(token_lists):
        raise InvalidInputError(
            f"{len(document_ids)} document ids but {len(token_lists)} token lists"
        )
    rows: List[int] = []
    cols: List[int] = []
    for row, tokens in enumerate(token_lists):
        if tokens is None:
            raise InvalidInputError(f"Token list for document {document_ids[row]} is None")
        for token in tokens:
            if token in vocabulary:
                rows.append(row)
                cols.append(vocabulary.index_of(token))
    data: np.ndarray = np.ones(len(rows), dtype=np.int64)
    counts: sp.csr_matrix = sp.coo_matrix(
        (data, (np.asarray(rows, dtype=np.int64), np.asarray(cols, dtype=np.int64))),
        shape=(len(document_ids), len(vocabulary)),
    ).tocsr()
    counts.sum_duplicates()
    return TermCountMatrix(counts=counts, document_ids=tuple(document_ids), vocabulary=vocabulary)


def compute_corpus_statistics(matrix: TermCountMatrix) -> CorpusStatistics:
    """Derive N, per-term document frequency and term frequency from the matrix."""

    counts: sp.csr_matrix = matrix.counts
    return CorpusStatistics(
        num_documents=counts.shape[0],
        document_frequency=np.asarray((counts > 0).sum(axis=0)).ravel().astype(np.int64),
        term_frequency=np.asarray(counts.sum(axis=0)).ravel().astype(np.int64),
        vocabulary=matrix.vocabulary,
    )


def build_corpus(
    documents: Sequence[Document],
    stopwords: frozenset[str],
    logger: PipelineLogger,
    min_doc_freq: int = DEFAULT_MIN_DOC_FREQ,
    max_workers: int = MAXIMAL_WORKER_COUNT,
    strip_accents: bool = STRIP_ACCENTS,
) -> tuple[TermCountMatrix, CorpusStatistics]:
    """
    Run tokenizer -> stopword filter -> vocabulary -> count matrix.

    Parameters
    ----------
    documents : Sequence[Document]
        Validated documents.
    stopwords : frozenset[str]
        Normalized stopword set.
    logger : PipelineLogger
        Structured logger.
    min_doc_freq : int, default DEFAULT_MIN_DOC_FREQ
        Vocabulary pruning threshold.
    max_workers : int, default MAXIMAL_WORKER_COUNT
        Tokenization thread count.
    strip_accents : bool, default STRIP_ACCENTS
        Forwarded to the tokenizer.

    Returns
    -------
    tuple[TermCountMatrix, CorpusStatistics]
        The count matrix and its statistics.

    Raises
    ------
    InvalidInputError
        If there are no documents or no term survives filtering.
    """

    if not documents:
        raise InvalidInputError("Corpus is empty")
    token_lists: List[List[str]] = tokenize_documents(
        documents, stopwords, logger, max_workers=max_workers, strip_accents=strip_accents
    )
    vocabulary: Vocabulary = build_vocabulary(token_lists, min_doc_freq=min_doc_freq, logger=logger)
    matrix: TermCountMatrix = build_term_count_matrix(
        [doc.document_id for doc in documents], token_lists, vocabulary
    )
    statistics: CorpusStatistics = compute_corpus_statistics(matrix)
    num_rows, num_cols = matrix.shape
    logger.info(
        event="term_count_matrix_built",
        context={
            "documents": num_rows,
            "terms": num_cols,
            "nnz": matrix.nnz,
            "tokens": statistics.num_tokens,
            "sparsity": round(1 - matrix.nnz / (num_rows * num_cols), 6),
        },
    )
    return matrix, statistics


def count_terms_by_group(
    matrix: TermCountMatrix, group_labels: Mapping[str, str]
) -> pd.DataFrame:
    """
    Sum document rows by grouping key and return a long (group, term, n) table.

    Parameters
    ----------
    matrix : TermCountMatrix
        Per-article counts.
    group_labels : Mapping[str, str]
        document_id -> group key (e.g. outlet). Must cover every row.

    Returns
    -------
    pandas.DataFrame
        Columns ['group', 'term', 'n'], only rows with n > 0, unordered.

    Raises
    ------
    InvalidInputError
        If a document has no group label.

    Notes
    -----
    - Implemented as (groups x documents) indicator @ (documents x terms), so
      memory stays proportional to the non-zero entries.
    """

    missing: List[str] = [doc_id for doc_id in matrix.document_ids if doc_id not in group_labels]
    if missing:
        raise InvalidInputError(f"Documents without group label: {missing[:10]}")
    labels: pd.Series = pd.Series([group_labels[d] for d in matrix.document_ids])
    group_codes, groups = pd.factorize(labels, sort=True)
    num_docs: int = len(matrix.document_ids)
    indicator: sp.csr_matrix = sp.csr_matrix(
        (np.ones(num_docs, dtype=np.int64), (group_codes, np.arange(num_docs))),
        shape=(len(groups), num_docs),
    )
    grouped: sp.coo_matrix = (indicator @ matrix.counts).tocoo()
    return pd.DataFrame(
        {
            "group": np.asarray(groups, dtype=object)[grouped.row],
            "term": np.asarray(matrix.vocabulary.terms, dtype=object)[grouped.col],
            "n": grouped.data.astype(np.int64),
        }
    ).loc[lambda df: df["n"] > 0].reset_index(drop=True)
