"""
Purpose
-------
Run the full outlet topic analysis on an in-memory article table: corpus
construction, per-outlet TF-IDF, LDA, and gamma aggregation by outlet and
date.

Key behaviors
-------------
- Validate the article table and build the sparse count matrix once; both
  engines consume the same matrix and vocabulary.
- Compute per-outlet TF-IDF by summing article rows per outlet.
- Fit LDA and convert beta/gamma into long tables.
- Aggregate gamma by outlet and by date (optionally bucketed).
- Wrap every stage in `logger.stage` so durations and failures are logged.

Conventions
-----------
- Ingestion, encoding normalization, plotting and report generation are
  external; this module takes a DataFrame and returns DataFrames.
- Errors from any stage propagate unchanged after being logged.

Downstream usage
----------------
>>> artifacts = run_outlet_topic_analysis(articles_df, LdaConfig(num_topics=6))
>>> artifacts.tf_idf, artifacts.beta, artifacts.outlet_topic_means
"""

from dataclasses import dataclass
from typing import Iterable, List

import pandas as pd

from corpus.corpus_config import DEFAULT_MIN_DOC_FREQ, MAXIMAL_WORKER_COUNT, STRIP_ACCENTS
from corpus.corpus_types import CorpusStatistics, Document, TermCountMatrix
from corpus.term_count_matrix import build_corpus, documents_from_frame
from corpus.tokenizer import load_stopwords, normalize_stopwords
from infra.logging.pipeline_logger import PipelineLogger, initialize_logger
from lda.lda_config import LdaConfig
from lda.lda_model import LdaDiagnostics, LdaResult, fit_lda
from lda.lda_output_parse import beta_table, gamma_table
from lda.topic_aggregation import mean_gamma_by_date, mean_gamma_by_outlet
from tfidf.tfidf_engine import tf_idf_by_group


@dataclass(frozen=True, eq=False)
class OutletTopicArtifacts:
    """
    Purpose
    -------
    Bundle of tables produced by one analysis run.

    Attributes
    ----------
    tf_idf : pandas.DataFrame
        ['group', 'term', 'n', 'tf', 'df', 'idf', 'tf_idf'] with outlets as groups.
    beta : pandas.DataFrame
        ['topic', 'term', 'beta'].
    gamma : pandas.DataFrame
        ['document_id', 'topic', 'gamma'].
    outlet_topic_means : pandas.DataFrame
        ['outlet', 'topic', 'mean_gamma_pct'].
    date_topic_means : pandas.DataFrame
        ['date', 'topic', 'mean_gamma_pct'].
    diagnostics : LdaDiagnostics
        Sampler convergence report.
    statistics : CorpusStatistics
        N, document and term frequencies of the corpus.
    """

    tf_idf: pd.DataFrame
    beta: pd.DataFrame
    gamma: pd.DataFrame
    outlet_topic_means: pd.DataFrame
    date_topic_means: pd.DataFrame
    diagnostics: LdaDiagnostics
    statistics: CorpusStatistics


def run_outlet_topic_analysis(
    documents_df: pd.DataFrame,
    lda_config: LdaConfig,
    stopwords: Iterable[str] | None = None,
    logger: PipelineLogger | None = None,
    min_doc_freq: int = DEFAULT_MIN_DOC_FREQ,
    max_workers: int = MAXIMAL_WORKER_COUNT,
    date_frequency: str | None = None,
    strip_accents: bool = STRIP_ACCENTS,
) -> OutletTopicArtifacts:
    """
    Execute the whole analysis on an article table.

    Parameters
    ----------
    documents_df : pandas.DataFrame
        Articles with ['document_id', 'outlet', 'date', 'text'].
    lda_config : LdaConfig
        Model configuration.
    stopwords : Iterable[str], optional
        Stopword list; normalized like corpus tokens. When None, the nltk
        base lexicon plus `EXTRA_STOPWORDS` is used.
    logger : PipelineLogger, optional
        Structured logger; created from the environment when None.
    min_doc_freq : int, default DEFAULT_MIN_DOC_FREQ
        Vocabulary pruning threshold.
    max_workers : int, default MAXIMAL_WORKER_COUNT
        Tokenization thread count.
    date_frequency : str, optional
        Period alias used to bucket dates for the trend table.
    strip_accents : bool, default STRIP_ACCENTS
        Accent stripping for tokens and stopwords.

    Returns
    -------
    OutletTopicArtifacts
        All analytical tables for the run.

    Raises
    ------
    InvalidInputError
        On malformed articles or an empty corpus/vocabulary.
    DegenerateInputError
        If K is incompatible with the vocabulary or the matrix is empty.
    NumericInstabilityError
        If a distribution fails to normalize.
    """

    if logger is None:
        logger = initialize_logger(
            component_name="outlet_topics",
            run_meta={"num_topics": lda_config.num_topics, "random_seed": lda_config.random_seed},
        )

    with logger.stage("build_corpus", context={"articles": len(documents_df)}):
        documents: List[Document] = documents_from_frame(documents_df)
        stopword_set: frozenset[str] = (
            load_stopwords(strip_accents=strip_accents)
            if stopwords is None
            else normalize_stopwords(stopwords, strip_accents)
        )
        matrix: TermCountMatrix
        statistics: CorpusStatistics
        matrix, statistics = build_corpus(
            documents,
            stopword_set,
            logger,
            min_doc_freq=min_doc_freq,
            max_workers=max_workers,
            strip_accents=strip_accents,
        )

    with logger.stage("compute_tf_idf"):
        outlet_by_document: dict[str, str] = {doc.document_id: doc.outlet for doc in documents}
        tf_idf_df: pd.DataFrame = tf_idf_by_group(matrix, outlet_by_document)

    with logger.stage("fit_lda", context={"num_topics": lda_config.num_topics}):
        result: LdaResult = fit_lda(matrix, lda_config, logger, statistics)
        beta_df: pd.DataFrame = beta_table(result)
        gamma_df: pd.DataFrame = gamma_table(result)

    with logger.stage("aggregate_topics"):
        metadata_df: pd.DataFrame = pd.DataFrame(
            {
                "document_id": [doc.document_id for doc in documents],
                "outlet": [doc.outlet for doc in documents],
                "date": [doc.published_on for doc in documents],
            }
        )
        outlet_means: pd.DataFrame = mean_gamma_by_outlet(gamma_df, metadata_df)
        date_means: pd.DataFrame = mean_gamma_by_date(gamma_df, metadata_df, date_frequency)

    return OutletTopicArtifacts(
        tf_idf=tf_idf_df,
        beta=beta_df,
        gamma=gamma_df,
        outlet_topic_means=outlet_means,
        date_topic_means=date_means,
        diagnostics=result.diagnostics,
        statistics=statistics,
    )
