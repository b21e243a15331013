"""
Purpose
-------
Compute term frequency, document frequency, inverse document frequency and
TF-IDF over a grouped count table, and expose the thin top-N ranking used to
report each outlet's characteristic words.

Key behaviors
-------------
- `compute_tf_idf` works on whatever grouping unit it is handed (outlet,
  article, month); it never assumes "document" means "article".
- `tf = n / total terms in the group`, `df` = number of groups containing the
  term, `idf = ln(N / df)` with N the number of groups, `tf_idf = tf * idf`.
- `tf_idf_by_group` chains `count_terms_by_group` and `compute_tf_idf` for the
  per-outlet use case.
- `top_terms_per_group` ranks by descending `tf_idf` on the consumer side.

Conventions
-----------
- Natural logarithm throughout.
- Output rows are unordered; ranking is the caller's concern.
- `idf == 0` exactly when a term appears in every group, and then
  `tf_idf == 0` for all of its rows. This is a valid result, not an error.
- `df` is derived from the input rows, so it is always >= 1 for every
  reported term.

Downstream usage
----------------
The orchestrator calls `tf_idf_by_group(matrix, outlet_by_document)`;
reporting collaborators call `top_terms_per_group` on the result.
"""

from typing import Mapping

import numpy as np
import pandas as pd

from corpus.corpus_types import TermCountMatrix
from corpus.term_count_matrix import count_terms_by_group
from infra.utils.pipeline_errors import InvalidInputError, NumericInstabilityError

TF_IDF_COLUMNS: list[str] = ["group", "term", "n", "tf", "df", "idf", "tf_idf"]


def compute_tf_idf(
    count_table: pd.DataFrame,
    group_col: str = "group",
    term_col: str = "term",
    count_col: str = "n",
) -> pd.DataFrame:
    """
    Compute tf, df, idf and tf_idf for a (group, term, count) table.

    Parameters
    ----------
    count_table : pandas.DataFrame
        One row per (group, term) with a non-negative count. Repeated
        (group, term) rows are summed.
    group_col : str, default "group"
        Column holding the grouping unit.
    term_col : str, default "term"
        Column holding the term.
    count_col : str, default "n"
        Column holding the raw count.

    Returns
    -------
    pandas.DataFrame
        Columns ['group', 'term', 'n', 'tf', 'df', 'idf', 'tf_idf'].

    Raises
    ------
    InvalidInputError
        If columns are missing, counts are non-numeric, negative or null, or
        no positive count remains.
    NumericInstabilityError
        If any computed value is non-finite or tf_idf is negative.
    """

    if count_table is None:
        raise InvalidInputError("Count table must not be None")
    missing: list[str] = [c for c in (group_col, term_col, count_col) if c not in count_table.columns]
    if missing:
        raise InvalidInputError(f"Count table is missing required columns: {missing}")
    counts: pd.Series = count_table[count_col]
    if not pd.api.types.is_numeric_dtype(counts):
        raise InvalidInputError(f"Count column '{count_col}' must be numeric, got {counts.dtype}")
    if counts.isna().any():
        raise InvalidInputError("Count table contains null counts")
    if (counts < 0).any():
        raise InvalidInputError("Count table contains negative counts")

    tf_idf_df: pd.DataFrame = (
        count_table.loc[counts > 0, [group_col, term_col, count_col]]
        .rename(columns={group_col: "group", term_col: "term", count_col: "n"})
        .groupby(["group", "term"], as_index=False, sort=False)["n"]
        .sum()
    )
    if tf_idf_df.empty:
        raise InvalidInputError("Count table has no positive counts")

    num_groups: int = tf_idf_df["group"].nunique()
    tf_idf_df["tf"] = tf_idf_df["n"] / tf_idf_df.groupby("group")["n"].transform("sum")
    tf_idf_df["df"] = tf_idf_df.groupby("term")["group"].transform("nunique").astype(np.int64)
    tf_idf_df["idf"] = np.log(num_groups / tf_idf_df["df"])
    tf_idf_df["tf_idf"] = tf_idf_df["tf"] * tf_idf_df["idf"]

    values: np.ndarray = tf_idf_df[["tf", "idf", "tf_idf"]].to_numpy(dtype=float)
    if not np.isfinite(values).all():
        raise NumericInstabilityError("Non-finite tf/idf/tf_idf values")
    if (tf_idf_df["tf_idf"] < 0).any():
        raise NumericInstabilityError("Negative tf_idf values")
    return tf_idf_df[TF_IDF_COLUMNS]


def tf_idf_by_group(matrix: TermCountMatrix, group_labels: Mapping[str, str]) -> pd.DataFrame:
    """Aggregate article counts by group (e.g. outlet) and compute TF-IDF over groups."""

    return compute_tf_idf(count_terms_by_group(matrix, group_labels))


def top_terms_per_group(tf_idf_df: pd.DataFrame, n: int = 10) -> pd.DataFrame:
    """
    Select the `n` highest-tf_idf terms per group.

    Parameters
    ----------
    tf_idf_df : pandas.DataFrame
        Output of `compute_tf_idf`.
    n : int, default 10
        Terms kept per group.

    Returns
    -------
    pandas.DataFrame
        Same columns plus 'rank' (1-based), sorted by group then rank. Ties on
        tf_idf are broken by term so the ranking is deterministic.
    """

    if n < 1:
        raise InvalidInputError(f"n must be >= 1, got {n}")
    ranked: pd.DataFrame = tf_idf_df.sort_values(
        ["group", "tf_idf", "term"], ascending=[True, False, True]
    )
    ranked = ranked.groupby("group", sort=False).head(n).copy()
    ranked["rank"] = ranked.groupby("group", sort=False).cumcount() + 1
    return ranked.reset_index(drop=True)
