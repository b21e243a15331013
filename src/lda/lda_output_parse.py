"""
Purpose
-------
Turn an in-memory `LdaResult` into the long-format tables consumed by the
aggregation layer and by external reporting collaborators.

Key behaviors
-------------
- `beta_table`: one row per (topic, term) with its probability.
- `gamma_table`: one row per (document_id, topic) with its probability.
- `top_terms_per_topic`: the highest-probability terms of each topic, for
  inspecting and labeling topics.
- `dominant_topic_per_document`: the argmax topic of each document.
- `round_for_reporting`: rounding applied only to exported copies.

Conventions
-----------
- Tables carry full floating-point precision; rounding is never applied
  before arithmetic such as the log-ratio in `lda.topic_aggregation`.
- Topics are integer ids in [0, K).

Downstream usage
----------------
The orchestrator calls `beta_table` and `gamma_table` after `fit_lda` and
hands them to `lda.topic_aggregation`.
"""

from typing import Iterable

import numpy as np
import pandas as pd

from infra.utils.pipeline_errors import InvalidInputError
from lda.lda_config import REPORTING_DECIMALS
from lda.lda_model import LdaResult


def beta_table(result: LdaResult) -> pd.DataFrame:
    """
    Return beta in long format.

    Parameters
    ----------
    result : LdaResult
        Fitted model.

    Returns
    -------
    pandas.DataFrame
        Columns ['topic', 'term', 'beta'], ordered by topic then vocabulary
        index; K * V rows.
    """

    num_topics, vocab_size = result.beta.shape
    return pd.DataFrame(
        {
            "topic": np.repeat(np.arange(num_topics), vocab_size),
            "term": np.tile(np.asarray(result.vocabulary.terms, dtype=object), num_topics),
            "beta": result.beta.ravel(),
        }
    )


def gamma_table(result: LdaResult) -> pd.DataFrame:
    """
    Return gamma in long format.

    Parameters
    ----------
    result : LdaResult
        Fitted model.

    Returns
    -------
    pandas.DataFrame
        Columns ['document_id', 'topic', 'gamma'], ordered by document then
        topic; D * K rows.
    """

    num_docs, num_topics = result.gamma.shape
    return pd.DataFrame(
        {
            "document_id": np.repeat(np.asarray(result.document_ids, dtype=object), num_topics),
            "topic": np.tile(np.arange(num_topics), num_docs),
            "gamma": result.gamma.ravel(),
        }
    )


def top_terms_per_topic(beta_df: pd.DataFrame, n: int = 10) -> pd.DataFrame:
    """
    Keep the `n` highest-beta terms of each topic.

    Parameters
    ----------
    beta_df : pandas.DataFrame
        Output of `beta_table`.
    n : int, default 10
        Terms per topic.

    Returns
    -------
    pandas.DataFrame
        Columns ['topic', 'term', 'beta', 'rank'] sorted by topic and
        descending beta; ties broken by term.
    """

    if n < 1:
        raise InvalidInputError(f"n must be >= 1, got {n}")
    ranked: pd.DataFrame = beta_df.sort_values(
        ["topic", "beta", "term"], ascending=[True, False, True]
    )
    ranked = ranked.groupby("topic", sort=False).head(n).copy()
    ranked["rank"] = ranked.groupby("topic", sort=False).cumcount() + 1
    return ranked.reset_index(drop=True)


def dominant_topic_per_document(gamma_df: pd.DataFrame) -> pd.DataFrame:
    """
    Return each document's highest-gamma topic (lowest topic id on ties).

    Returns
    -------
    pandas.DataFrame
        Columns ['document_id', 'topic', 'gamma'], one row per document.
    """

    ordered: pd.DataFrame = gamma_df.sort_values(
        ["document_id", "gamma", "topic"], ascending=[True, False, True]
    )
    return ordered.drop_duplicates(subset=["document_id"], keep="first").reset_index(drop=True)


def round_for_reporting(
    df: pd.DataFrame,
    columns: Iterable[str] = ("beta", "gamma", "tf", "idf", "tf_idf", "mean_gamma_pct"),
    decimals: int = REPORTING_DECIMALS,
) -> pd.DataFrame:
    """Return a copy of `df` with the present probability columns rounded."""

    rounded: pd.DataFrame = df.copy()
    for column in columns:
        if column in rounded.columns:
            rounded[column] = rounded[column].round(decimals)
    return rounded
