"""
Purpose
-------
Unit tests for `lda.topic_aggregation`.

Key behaviors
-------------
- Per-outlet mean gamma percentages sum to 100 across topics.
- Date aggregation supports daily and calendar-period buckets.
- `beta_log_ratio` filters by threshold, applies the zero-beta policy and
  ranks by descending log2 ratio.

Downstream usage
----------------
Run with `pytest -q tests/test_lda`.
"""

import datetime as dt

import numpy as np
import pandas as pd
import pytest

from infra.utils.pipeline_errors import InvalidInputError
from lda.topic_aggregation import (
    beta_log_ratio,
    join_document_metadata,
    mean_gamma_by_date,
    mean_gamma_by_outlet,
)


@pytest.fixture
def gamma_df(articles_df: pd.DataFrame) -> pd.DataFrame:
    per_document: dict[str, list[float]] = {
        "a1": [0.9, 0.1],
        "a2": [0.7, 0.3],
        "a3": [0.2, 0.8],
        "a4": [0.4, 0.6],
        "a5": [1.0, 0.0],
        "a6": [0.1, 0.9],
    }
    return pd.DataFrame(
        [
            {"document_id": doc_id, "topic": topic, "gamma": value}
            for doc_id, values in per_document.items()
            for topic, value in enumerate(values)
        ]
    )


@pytest.fixture
def beta_df() -> pd.DataFrame:
    topic_0: dict[str, float] = {"a": 0.6, "b": 0.3, "c": 0.0995, "d": 0.0005, "e": 0.0}
    topic_1: dict[str, float] = {"a": 0.15, "b": 0.3, "c": 0.05, "d": 0.0004, "e": 0.4995}
    rows = [{"topic": 0, "term": t, "beta": b} for t, b in topic_0.items()]
    rows += [{"topic": 1, "term": t, "beta": b} for t, b in topic_1.items()]
    return pd.DataFrame(rows)


def test_mean_gamma_by_outlet_sums_to_one_hundred(
    gamma_df: pd.DataFrame, articles_df: pd.DataFrame
) -> None:
    means: pd.DataFrame = mean_gamma_by_outlet(gamma_df, articles_df)

    assert list(means.columns) == ["outlet", "topic", "mean_gamma_pct"]
    np.testing.assert_allclose(means.groupby("outlet")["mean_gamma_pct"].sum(), 100.0)
    diario_topic_0 = means.loc[(means["outlet"] == "diario") & (means["topic"] == 0)]
    assert diario_topic_0["mean_gamma_pct"].item() == pytest.approx(60.0)


def test_mean_gamma_by_date_daily(gamma_df: pd.DataFrame, articles_df: pd.DataFrame) -> None:
    means: pd.DataFrame = mean_gamma_by_date(gamma_df, articles_df)

    assert means["date"].iloc[0] == dt.date(2023, 1, 5)
    first_day = means[means["date"] == dt.date(2023, 1, 5)]
    np.testing.assert_allclose(first_day["mean_gamma_pct"], [65.0, 35.0])
    assert means["date"].nunique() == 5


def test_mean_gamma_by_date_monthly(gamma_df: pd.DataFrame, articles_df: pd.DataFrame) -> None:
    means: pd.DataFrame = mean_gamma_by_date(gamma_df, articles_df, frequency="M")

    assert list(means["date"].unique()) == [dt.date(2023, 1, 1), dt.date(2023, 2, 1)]
    january = means[means["date"] == dt.date(2023, 1, 1)]
    np.testing.assert_allclose(january["mean_gamma_pct"], [200 / 3, 100 / 3])
    np.testing.assert_allclose(means.groupby("date")["mean_gamma_pct"].sum(), 100.0)


def with_value(df: pd.DataFrame, row: int, column: str, value) -> pd.DataFrame:
    changed: pd.DataFrame = df.astype({column: object})
    changed.loc[row, column] = value
    return changed


@pytest.mark.parametrize(
    "mutate",
    [
        lambda df: df[df["document_id"] != "a6"],
        lambda df: df.drop(columns=["date"]),
        lambda df: with_value(df, 5, "document_id", "a1"),
        lambda df: with_value(df, 1, "outlet", None),
        lambda df: with_value(df, 1, "date", None),
        lambda df: with_value(df, 1, "document_id", None),
    ],
)
def test_join_document_metadata_rejects_malformed_metadata(
    gamma_df: pd.DataFrame, articles_df: pd.DataFrame, mutate
) -> None:
    with pytest.raises(InvalidInputError):
        join_document_metadata(gamma_df, mutate(articles_df))


def test_null_date_fails_instead_of_dropping_documents(
    gamma_df: pd.DataFrame, articles_df: pd.DataFrame
) -> None:
    with pytest.raises(InvalidInputError):
        mean_gamma_by_date(gamma_df, with_value(articles_df, 2, "date", None))


def test_duplicate_metadata_ids_fail_outlet_means(
    gamma_df: pd.DataFrame, articles_df: pd.DataFrame
) -> None:
    duplicated: pd.DataFrame = pd.concat([articles_df, articles_df.iloc[[0]]], ignore_index=True)

    with pytest.raises(InvalidInputError):
        mean_gamma_by_outlet(gamma_df, duplicated)


def test_unparseable_date_fails_trend_table(
    gamma_df: pd.DataFrame, articles_df: pd.DataFrame
) -> None:
    with pytest.raises(InvalidInputError):
        mean_gamma_by_date(gamma_df, with_value(articles_df, 0, "date", "not-a-date"))


def test_beta_log_ratio_excludes_zero_betas(beta_df: pd.DataFrame) -> None:
    ratios: pd.DataFrame = beta_log_ratio(beta_df, topic_a=0, topic_b=1)

    assert list(ratios.columns) == ["term", "beta_a", "beta_b", "log_ratio"]
    assert list(ratios["term"]) == ["a", "c", "b"]
    np.testing.assert_allclose(ratios["log_ratio"], [2.0, np.log2(1.99), 0.0])


def test_beta_log_ratio_infinity_policy_keeps_signed_infinities(beta_df: pd.DataFrame) -> None:
    ratios: pd.DataFrame = beta_log_ratio(beta_df, topic_a=0, topic_b=1, zero_policy="infinity")

    assert list(ratios["term"]) == ["a", "c", "b", "e"]
    assert ratios["log_ratio"].iloc[-1] == -np.inf

    reversed_ratios: pd.DataFrame = beta_log_ratio(
        beta_df, topic_a=1, topic_b=0, zero_policy="infinity"
    )
    assert reversed_ratios["term"].iloc[0] == "e"
    assert reversed_ratios["log_ratio"].iloc[0] == np.inf


def test_beta_log_ratio_threshold_filters_rare_terms(beta_df: pd.DataFrame) -> None:
    permissive: pd.DataFrame = beta_log_ratio(beta_df, topic_a=0, topic_b=1, threshold=0.0001)

    assert "d" in set(permissive["term"])


@pytest.mark.parametrize(
    "kwargs",
    [
        {"topic_a": 0, "topic_b": 0},
        {"topic_a": 0, "topic_b": 5},
        {"topic_a": 0, "topic_b": 1, "zero_policy": "ignore"},
    ],
)
def test_beta_log_ratio_rejects_invalid_requests(beta_df: pd.DataFrame, kwargs: dict) -> None:
    with pytest.raises(InvalidInputError):
        beta_log_ratio(beta_df, **kwargs)
