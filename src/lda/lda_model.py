"""
Purpose
-------
Estimate a Latent Dirichlet Allocation model on the sparse document–term
count matrix with collapsed Gibbs sampling, returning the topic–word (beta)
and document–topic (gamma) distributions plus convergence diagnostics.

Key behaviors
-------------
- Validate that the matrix and K are compatible before sampling
  (`DegenerateInputError` otherwise).
- Expand the count matrix into one entry per token occurrence, draw a
  random initial topic for each from the seeded generator, and resample
  every assignment from its full conditional in each sweep.
- Track the collapsed joint log-likelihood and the share of reassigned
  tokens after every sweep; stop early once the log-likelihood is stable,
  otherwise exhaust the iteration budget and report non-convergence.
- Derive smoothed, row-normalized beta (K x V) and gamma (D x K) from the
  final count tables and verify both are valid distributions.

Conventions
-----------
- Priors follow the MALLET convention: `alpha` in `LdaConfig` is the sum of
  the symmetric document–topic prior, `beta` the per-term prior.
- All randomness flows from `numpy.random.default_rng(config.random_seed)`;
  identical inputs and seed reproduce identical beta and gamma.
- Sweeps are sequential: each reassignment updates the shared count tables
  before the next token is sampled, so the sampler is not parallelized.
- Tokens are visited in (document, term) order of the CSR matrix.
- Documents with no in-vocabulary tokens receive the prior mean, 1/K per
  topic.

Downstream usage
----------------
Call `fit_lda(matrix, LdaConfig(num_topics=K), logger)` and convert the
result to long tables with `lda.lda_output_parse`.
"""

from dataclasses import dataclass
from typing import List, Tuple

import numpy as np
import scipy.sparse as sp
from scipy.special import gammaln

from corpus.corpus_types import CorpusStatistics, TermCountMatrix, Vocabulary
from infra.logging.pipeline_logger import PipelineLogger
from infra.utils.pipeline_errors import (
    DegenerateInputError,
    InvalidInputError,
    NumericInstabilityError,
)
from lda.lda_config import PROBABILITY_TOLERANCE, LdaConfig


@dataclass(frozen=True)
class LdaDiagnostics:
    """
    Purpose
    -------
    Convergence report of one sampler run.

    Attributes
    ----------
    iterations_run : int
        Number of completed sweeps.
    converged : bool
        True if the stopping rule fired before the budget ran out.
    log_likelihood_trace : tuple[float, ...]
        Collapsed joint log-likelihood after each sweep.
    reassignment_rate_trace : tuple[float, ...]
        Fraction of tokens whose topic changed in each sweep.
    """

    iterations_run: int
    converged: bool
    log_likelihood_trace: Tuple[float, ...]
    reassignment_rate_trace: Tuple[float, ...]


@dataclass(frozen=True, eq=False)
class LdaResult:
    """
    Purpose
    -------
    Output of one LDA inference run; immutable once produced.

    Attributes
    ----------
    beta : numpy.ndarray
        (K, V) topic–word probabilities; each row sums to 1.
    gamma : numpy.ndarray
        (D, K) document–topic probabilities; each row sums to 1.
    document_ids : tuple[str, ...]
        Row labels of `gamma`.
    vocabulary : Vocabulary
        Column labels of `beta`.
    diagnostics : LdaDiagnostics
        Convergence report.
    config : LdaConfig
        Configuration the model was fitted with.
    """

    beta: np.ndarray
    gamma: np.ndarray
    document_ids: Tuple[str, ...]
    vocabulary: Vocabulary
    diagnostics: LdaDiagnostics
    config: LdaConfig

    @property
    def num_topics(self) -> int:
        return self.beta.shape[0]


def fit_lda(
    matrix: TermCountMatrix,
    config: LdaConfig,
    logger: PipelineLogger,
    statistics: CorpusStatistics | None = None,
) -> LdaResult:
    """
    Fit LDA by collapsed Gibbs sampling.

    Parameters
    ----------
    matrix : TermCountMatrix
        Sparse document–term counts.
    config : LdaConfig
        Number of topics, seed, priors and iteration controls.
    logger : PipelineLogger
        Receives start, periodic progress and convergence entries.
    statistics : CorpusStatistics, optional
        Corpus statistics of `matrix`; when given they are checked against
        the matrix before sampling.

    Returns
    -------
    LdaResult
        Beta, gamma and diagnostics.

    Raises
    ------
    InvalidInputError
        If `statistics` does not describe `matrix`.
    DegenerateInputError
        If the matrix has no non-zero entries, K < 1, or K exceeds the
        vocabulary size.
    NumericInstabilityError
        If beta or gamma fail to be finite, non-negative, row-normalized
        distributions.

    Notes
    -----
    - Non-convergence is not an error: the last state is returned and
      `diagnostics.converged` is False.
    """

    validate_lda_inputs(matrix, config)
    if statistics is not None:
        check_statistics_alignment(matrix, statistics)
    num_docs, vocab_size = matrix.shape
    num_topics: int = config.num_topics
    alpha_k: float = config.alpha_per_topic
    doc_of_token, word_of_token = expand_tokens(matrix.counts)
    num_tokens: int = len(doc_of_token)

    rng: np.random.Generator = np.random.default_rng(config.random_seed)
    topic_of_token: np.ndarray = rng.integers(0, num_topics, size=num_tokens)
    doc_topic_counts: np.ndarray = np.zeros((num_docs, num_topics), dtype=np.int64)
    topic_word_counts: np.ndarray = np.zeros((num_topics, vocab_size), dtype=np.int64)
    np.add.at(doc_topic_counts, (doc_of_token, topic_of_token), 1)
    np.add.at(topic_word_counts, (topic_of_token, word_of_token), 1)
    topic_counts: np.ndarray = topic_word_counts.sum(axis=1)

    logger.info(
        event="lda_fit_started",
        context={
            "num_topics": num_topics,
            "documents": num_docs,
            "terms": vocab_size,
            "tokens": num_tokens,
            "random_seed": config.random_seed,
            "max_iterations": config.max_iterations,
        },
    )

    log_likelihoods: List[float] = []
    reassignment_rates: List[float] = []
    stable_sweeps: int = 0
    converged: bool = False
    for iteration in range(1, config.max_iterations + 1):
        reassigned: int = gibbs_sweep(
            doc_of_token,
            word_of_token,
            topic_of_token,
            doc_topic_counts,
            topic_word_counts,
            topic_counts,
            alpha_k,
            config.beta,
            rng,
        )
        log_likelihood: float = collapsed_log_likelihood(
            doc_topic_counts, topic_word_counts, alpha_k, config.beta
        )
        reassignment_rates.append(reassigned / num_tokens)
        if log_likelihoods:
            previous: float = log_likelihoods[-1]
            relative_change: float = abs(log_likelihood - previous) / max(abs(previous), 1e-12)
            stable_sweeps = stable_sweeps + 1 if relative_change < config.convergence_tolerance else 0
        log_likelihoods.append(log_likelihood)
        if iteration % config.log_interval == 0:
            logger.debug(
                event="lda_iteration",
                context={
                    "iteration": iteration,
                    "log_likelihood": log_likelihood,
                    "reassignment_rate": reassignment_rates[-1],
                },
            )
        if stable_sweeps >= config.convergence_patience:
            converged = True
            break

    diagnostics = LdaDiagnostics(
        iterations_run=len(log_likelihoods),
        converged=converged,
        log_likelihood_trace=tuple(log_likelihoods),
        reassignment_rate_trace=tuple(reassignment_rates),
    )
    if converged:
        logger.info(
            event="lda_converged",
            context={"iterations": diagnostics.iterations_run, "log_likelihood": log_likelihoods[-1]},
        )
    else:
        logger.warning(
            event="lda_not_converged",
            msg="Iteration budget exhausted before the log-likelihood stabilized",
            context={"iterations": diagnostics.iterations_run, "log_likelihood": log_likelihoods[-1]},
        )

    beta: np.ndarray = (topic_word_counts + config.beta) / (
        topic_counts[:, None] + vocab_size * config.beta
    )
    gamma: np.ndarray = (doc_topic_counts + alpha_k) / (
        doc_topic_counts.sum(axis=1)[:, None] + num_topics * alpha_k
    )
    check_distribution(beta, "beta")
    check_distribution(gamma, "gamma")
    return LdaResult(
        beta=beta,
        gamma=gamma,
        document_ids=matrix.document_ids,
        vocabulary=matrix.vocabulary,
        diagnostics=diagnostics,
        config=config,
    )


def validate_lda_inputs(matrix: TermCountMatrix, config: LdaConfig) -> None:
    """Raise `DegenerateInputError` when K and the matrix are incompatible."""

    if config.num_topics < 1:
        raise DegenerateInputError(f"num_topics must be >= 1, got {config.num_topics}")
    if matrix.nnz == 0:
        raise DegenerateInputError("Count matrix has no non-zero entries")
    vocab_size: int = matrix.shape[1]
    if config.num_topics > vocab_size:
        raise DegenerateInputError(
            f"num_topics ({config.num_topics}) exceeds vocabulary size ({vocab_size})"
        )


def check_statistics_alignment(matrix: TermCountMatrix, statistics: CorpusStatistics) -> None:
    """
    Raise `InvalidInputError` unless `statistics` describes `matrix`.

    Notes
    -----
    - Compares N, the vocabulary, and the per-term document and term
      frequencies.
    """

    counts: sp.csr_matrix = matrix.counts
    if statistics.num_documents != matrix.shape[0] or statistics.vocabulary != matrix.vocabulary:
        raise InvalidInputError("Corpus statistics do not match the count matrix dimensions")
    term_frequency: np.ndarray = np.asarray(counts.sum(axis=0)).ravel()
    document_frequency: np.ndarray = np.asarray((counts > 0).sum(axis=0)).ravel()
    if not (
        np.array_equal(statistics.term_frequency, term_frequency)
        and np.array_equal(statistics.document_frequency, document_frequency)
    ):
        raise InvalidInputError("Corpus statistics do not match the count matrix frequencies")


def expand_tokens(counts: sp.csr_matrix) -> Tuple[np.ndarray, np.ndarray]:
    """
    Expand a count matrix into per-occurrence (document, term) index arrays.

    Parameters
    ----------
    counts : scipy.sparse.csr_matrix
        Non-negative integer counts.

    Returns
    -------
    tuple[numpy.ndarray, numpy.ndarray]
        (document index, term index) of every token occurrence, ordered by
        document then by CSR column order.
    """

    coo: sp.coo_matrix = counts.tocoo()
    repeats: np.ndarray = coo.data.astype(np.int64)
    return np.repeat(coo.row, repeats).astype(np.int64), np.repeat(coo.col, repeats).astype(np.int64)


def gibbs_sweep(
    doc_of_token: np.ndarray,
    word_of_token: np.ndarray,
    topic_of_token: np.ndarray,
    doc_topic_counts: np.ndarray,
    topic_word_counts: np.ndarray,
    topic_counts: np.ndarray,
    alpha_k: float,
    beta: float,
    rng: np.random.Generator,
) -> int:
    """
    Resample every token's topic once, updating the count tables in place.

    Parameters
    ----------
    doc_of_token, word_of_token : numpy.ndarray
        Document and term index of each token.
    topic_of_token : numpy.ndarray
        Current topic of each token; updated in place.
    doc_topic_counts : numpy.ndarray
        (D, K) assignment counts; updated in place.
    topic_word_counts : numpy.ndarray
        (K, V) assignment counts; updated in place.
    topic_counts : numpy.ndarray
        (K,) tokens per topic; updated in place.
    alpha_k : float
        Per-topic document prior.
    beta : float
        Per-term topic prior.
    rng : numpy.random.Generator
        Seeded generator; one uniform draw per token.

    Returns
    -------
    int
        Number of tokens whose topic changed.

    Notes
    -----
    - Full conditional:
      p(z = k | rest) ∝ (n_dk + alpha_k) * (n_kw + beta) / (n_k + V * beta),
      with the current token removed from all counts.
    - The smoothed terms (n_dk + alpha_k), (n_kw + beta) and (n_k + V * beta)
      are kept as float tables updated in place during the sweep; the integer
      count tables are resynchronized from them once at the end.
    - Cost is one Python-level step per token, so runtime grows with
      tokens x sweeps; large corpora should lower `max_iterations` or rely on
      the convergence rule.
    """

    num_topics: int = topic_word_counts.shape[0]
    last_topic: int = num_topics - 1
    doc_weights: np.ndarray = doc_topic_counts.astype(np.float64) + alpha_k
    word_weights: np.ndarray = np.ascontiguousarray(topic_word_counts.T, dtype=np.float64) + beta
    denominators: np.ndarray = topic_counts.astype(np.float64) + topic_word_counts.shape[1] * beta
    topics: List[int] = topic_of_token.tolist()
    uniforms: List[float] = rng.random(len(topics)).tolist()
    reassigned: int = 0
    for i, (d, w) in enumerate(zip(doc_of_token.tolist(), word_of_token.tolist())):
        old_topic: int = topics[i]
        doc_row: np.ndarray = doc_weights[d]
        word_row: np.ndarray = word_weights[w]
        doc_row[old_topic] -= 1.0
        word_row[old_topic] -= 1.0
        denominators[old_topic] -= 1.0

        cumulative: np.ndarray = np.cumsum(doc_row * word_row / denominators)
        new_topic: int = min(
            int(np.searchsorted(cumulative, uniforms[i] * cumulative[-1], side="right")),
            last_topic,
        )

        doc_row[new_topic] += 1.0
        word_row[new_topic] += 1.0
        denominators[new_topic] += 1.0
        if new_topic != old_topic:
            topics[i] = new_topic
            reassigned += 1

    topic_of_token[:] = topics
    doc_topic_counts[:] = np.rint(doc_weights - alpha_k).astype(np.int64)
    topic_word_counts[:] = np.rint(word_weights.T - beta).astype(np.int64)
    topic_counts[:] = topic_word_counts.sum(axis=1)
    return reassigned


def collapsed_log_likelihood(
    doc_topic_counts: np.ndarray,
    topic_word_counts: np.ndarray,
    alpha_k: float,
    beta: float,
) -> float:
    """
    Compute log p(w, z) with theta and phi integrated out.

    Parameters
    ----------
    doc_topic_counts : numpy.ndarray
        (D, K) assignment counts.
    topic_word_counts : numpy.ndarray
        (K, V) assignment counts.
    alpha_k : float
        Per-topic document prior.
    beta : float
        Per-term topic prior.

    Returns
    -------
    float
        log p(w | z) + log p(z).
    """

    num_docs, num_topics = doc_topic_counts.shape
    vocab_size: int = topic_word_counts.shape[1]
    log_p_w_given_z: float = num_topics * (
        gammaln(vocab_size * beta) - vocab_size * gammaln(beta)
    ) + float(
        gammaln(topic_word_counts + beta).sum()
        - gammaln(topic_word_counts.sum(axis=1) + vocab_size * beta).sum()
    )
    log_p_z: float = num_docs * (
        gammaln(num_topics * alpha_k) - num_topics * gammaln(alpha_k)
    ) + float(
        gammaln(doc_topic_counts + alpha_k).sum()
        - gammaln(doc_topic_counts.sum(axis=1) + num_topics * alpha_k).sum()
    )
    return float(log_p_w_given_z + log_p_z)


def check_distribution(values: np.ndarray, name: str) -> None:
    """
    Verify that every row of `values` is a probability distribution.

    Raises
    ------
    NumericInstabilityError
        If any entry is non-finite or negative, or a row sum deviates from 1
        by more than PROBABILITY_TOLERANCE.
    """

    if not np.isfinite(values).all():
        raise NumericInstabilityError(f"{name} contains non-finite values")
    if (values < 0).any():
        raise NumericInstabilityError(f"{name} contains negative values")
    row_sums: np.ndarray = values.sum(axis=1)
    worst: float = float(np.abs(row_sums - 1.0).max())
    if worst > PROBABILITY_TOLERANCE:
        raise NumericInstabilityError(
            f"{name} rows do not sum to 1 (max deviation {worst:.3e})"
        )


def perplexity(result: LdaResult, matrix: TermCountMatrix) -> float:
    """
    Compute the perplexity of `matrix` under a fitted model.

    Parameters
    ----------
    result : LdaResult
        Fitted model.
    matrix : TermCountMatrix
        Counts with the same documents and vocabulary as the fit.

    Returns
    -------
    float
        exp(-sum n_dw log(sum_k gamma_dk beta_kw) / total tokens).

    Raises
    ------
    InvalidInputError
        If the matrix is not aligned with the fitted model or is empty.
    """

    if matrix.document_ids != result.document_ids or matrix.vocabulary != result.vocabulary:
        raise InvalidInputError("Matrix is not aligned with the fitted model")
    coo: sp.coo_matrix = matrix.counts.tocoo()
    if coo.nnz == 0:
        raise InvalidInputError("Cannot compute perplexity of an empty matrix")
    word_probabilities: np.ndarray = np.einsum(
        "ik,ki->i", result.gamma[coo.row], result.beta[:, coo.col]
    )
    log_likelihood: float = float((coo.data * np.log(word_probabilities)).sum())
    return float(np.exp(-log_likelihood / coo.data.sum()))
