"""
Purpose
-------
Summarize document–topic exposures by outlet and by date, and contrast two
topics through the log-ratio of their word distributions.

Key behaviors
-------------
- `mean_gamma_by_outlet`: mean gamma per (outlet, topic), in percent.
- `mean_gamma_by_date`: mean gamma per (date, topic), in percent, optionally
  bucketed into calendar periods (e.g. monthly) for trend extraction.
- `beta_log_ratio`: rank terms by log2(beta_a / beta_b) among terms whose
  beta exceeds a threshold in at least one of the two topics.

Conventions
-----------
- Aggregations are unweighted means over documents, so for every outlet (or
  date) the percentages across all topics sum to 100.
- Topic selection for `beta_log_ratio` is caller-supplied; nothing here
  decides which topics are worth contrasting.
- A zero beta makes the ratio undefined. `ZERO_BETA_POLICY` fixes the
  behavior: "exclude" drops such terms, "infinity" keeps them with a signed
  infinite log-ratio (+inf when only beta_b is zero, -inf when only beta_a is
  zero). With a positive `beta` prior the sampler never yields zeros, so the
  policy matters only for externally supplied tables.

Downstream usage
----------------
The orchestrator joins `gamma_table` output with article metadata and calls
the two mean functions; analysts call `beta_log_ratio` for hand-picked
topic pairs.
"""

import numpy as np
import pandas as pd

from infra.utils.pipeline_errors import InvalidInputError

BETA_RATIO_THRESHOLD: float = 0.001

ZERO_BETA_POLICY: str = "exclude"

ZERO_BETA_POLICIES: set[str] = {"exclude", "infinity"}


def join_document_metadata(gamma_df: pd.DataFrame, documents_df: pd.DataFrame) -> pd.DataFrame:
    """
    Attach outlet and date to every gamma row.

    Parameters
    ----------
    gamma_df : pandas.DataFrame
        Columns ['document_id', 'topic', 'gamma'].
    documents_df : pandas.DataFrame
        Article metadata with at least ['document_id', 'outlet', 'date'].

    Returns
    -------
    pandas.DataFrame
        gamma rows with 'outlet' and 'date' columns added.

    Raises
    ------
    InvalidInputError
        If required columns are missing, ids are duplicated, outlets or dates
        are null, or a gamma document has no metadata.
    """

    for column in ["document_id", "outlet", "date"]:
        if column not in documents_df.columns:
            raise InvalidInputError(f"Document metadata is missing column '{column}'")
        if documents_df[column].isna().any():
            raise InvalidInputError(f"Document metadata column '{column}' contains null values")
    metadata: pd.DataFrame = documents_df[["document_id", "outlet", "date"]].copy()
    metadata["document_id"] = metadata["document_id"].astype(str)
    duplicated: pd.Series = metadata["document_id"].duplicated()
    if duplicated.any():
        duplicates: list = sorted(set(metadata.loc[duplicated, "document_id"]))
        raise InvalidInputError(f"Duplicate document ids in metadata: {duplicates[:10]}")
    joined: pd.DataFrame = gamma_df.assign(document_id=gamma_df["document_id"].astype(str)).merge(
        metadata, on="document_id", how="left", validate="many_to_one"
    )
    unmatched: pd.Series = joined.loc[joined["outlet"].isna(), "document_id"]
    if not unmatched.empty:
        raise InvalidInputError(
            f"Documents without metadata: {sorted(unmatched.unique().tolist())[:10]}"
        )
    return joined


def mean_gamma_by_outlet(gamma_df: pd.DataFrame, documents_df: pd.DataFrame) -> pd.DataFrame:
    """
    Mean topic exposure per outlet, in percent.

    Parameters
    ----------
    gamma_df : pandas.DataFrame
        Columns ['document_id', 'topic', 'gamma'].
    documents_df : pandas.DataFrame
        Article metadata with ['document_id', 'outlet', 'date'].

    Returns
    -------
    pandas.DataFrame
        Columns ['outlet', 'topic', 'mean_gamma_pct'].
    """

    joined: pd.DataFrame = join_document_metadata(gamma_df, documents_df)
    means: pd.DataFrame = joined.groupby(["outlet", "topic"], as_index=False)["gamma"].mean()
    means["mean_gamma_pct"] = means["gamma"] * 100
    return means[["outlet", "topic", "mean_gamma_pct"]]


def mean_gamma_by_date(
    gamma_df: pd.DataFrame,
    documents_df: pd.DataFrame,
    frequency: str | None = None,
) -> pd.DataFrame:
    """
    Mean topic exposure per date (or calendar period), in percent.

    Parameters
    ----------
    gamma_df : pandas.DataFrame
        Columns ['document_id', 'topic', 'gamma'].
    documents_df : pandas.DataFrame
        Article metadata with ['document_id', 'outlet', 'date'].
    frequency : str, optional
        pandas period alias ("W", "M", "Q", ...). When given, dates are
        replaced by the start date of their period before averaging.

    Returns
    -------
    pandas.DataFrame
        Columns ['date', 'topic', 'mean_gamma_pct'] sorted by date and topic;
        'date' holds `datetime.date` values.
    """

    joined: pd.DataFrame = join_document_metadata(gamma_df, documents_df)
    try:
        dates: pd.Series = pd.to_datetime(joined["date"])
    except (ValueError, TypeError) as exc:
        raise InvalidInputError(f"Unparseable publication date: {exc}") from exc
    if frequency is not None:
        dates = dates.dt.to_period(frequency).dt.start_time
    joined["date"] = dates.dt.date
    means: pd.DataFrame = joined.groupby(["date", "topic"], as_index=False)["gamma"].mean()
    means["mean_gamma_pct"] = means["gamma"] * 100
    return means[["date", "topic", "mean_gamma_pct"]].sort_values(["date", "topic"]).reset_index(
        drop=True
    )


def beta_log_ratio(
    beta_df: pd.DataFrame,
    topic_a: int,
    topic_b: int,
    threshold: float = BETA_RATIO_THRESHOLD,
    zero_policy: str = ZERO_BETA_POLICY,
) -> pd.DataFrame:
    """
    Rank terms by log2(beta_a / beta_b) between two topics.

    Parameters
    ----------
    beta_df : pandas.DataFrame
        Columns ['topic', 'term', 'beta'] at full precision.
    topic_a, topic_b : int
        Topics to contrast; positive ratios favor `topic_a`.
    threshold : float, default BETA_RATIO_THRESHOLD
        Keep terms whose beta exceeds this in at least one of the two topics.
    zero_policy : str, default ZERO_BETA_POLICY
        "exclude" or "infinity"; see the module notes.

    Returns
    -------
    pandas.DataFrame
        Columns ['term', 'beta_a', 'beta_b', 'log_ratio'] sorted by
        descending log_ratio (ties by term).

    Raises
    ------
    InvalidInputError
        If a topic is absent from `beta_df`, the two topics are equal, or the
        policy is unknown.
    """

    if zero_policy not in ZERO_BETA_POLICIES:
        raise InvalidInputError(f"Unknown zero_policy '{zero_policy}'")
    if topic_a == topic_b:
        raise InvalidInputError("topic_a and topic_b must differ")
    available: set = set(beta_df["topic"].unique().tolist())
    for topic in (topic_a, topic_b):
        if topic not in available:
            raise InvalidInputError(f"Topic {topic} not present in beta table")

    wide: pd.DataFrame = (
        beta_df[beta_df["topic"].isin([topic_a, topic_b])]
        .pivot(index="term", columns="topic", values="beta")
        .fillna(0.0)
        .rename(columns={topic_a: "beta_a", topic_b: "beta_b"})
        .reset_index()
    )
    wide.columns.name = None
    wide = wide[(wide["beta_a"] > threshold) | (wide["beta_b"] > threshold)]
    has_zero: pd.Series = (wide["beta_a"] == 0) | (wide["beta_b"] == 0)
    if zero_policy == "exclude":
        wide = wide[~has_zero].copy()
        wide["log_ratio"] = np.log2(wide["beta_a"] / wide["beta_b"])
    else:
        wide = wide.copy()
        with np.errstate(divide="ignore"):
            wide["log_ratio"] = np.log2(wide["beta_a"]) - np.log2(wide["beta_b"])
    return (
        wide[["term", "beta_a", "beta_b", "log_ratio"]]
        .sort_values(["log_ratio", "term"], ascending=[False, True])
        .reset_index(drop=True)
    )
