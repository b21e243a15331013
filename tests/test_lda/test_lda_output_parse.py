"""
Purpose
-------
Unit tests for the long-format conversions in `lda.lda_output_parse`.

Key behaviors
-------------
- `beta_table` / `gamma_table` emit K*V and D*K rows in index order.
- `top_terms_per_topic` and `dominant_topic_per_document` rank
  deterministically.
- `round_for_reporting` rounds a copy, leaving the input untouched.

Downstream usage
----------------
Run with `pytest -q tests/test_lda`.
"""

import numpy as np
import pandas as pd
import pytest

from corpus.corpus_types import Vocabulary
from infra.utils.pipeline_errors import InvalidInputError
from lda.lda_config import LdaConfig
from lda.lda_model import LdaDiagnostics, LdaResult
from lda.lda_output_parse import (
    beta_table,
    dominant_topic_per_document,
    gamma_table,
    round_for_reporting,
    top_terms_per_topic,
)


@pytest.fixture
def fitted_result() -> LdaResult:
    return LdaResult(
        beta=np.array([[0.6, 0.3, 0.1], [0.2, 0.2, 0.6]]),
        gamma=np.array([[0.9, 0.1], [0.25, 0.75], [0.5, 0.5]]),
        document_ids=("d1", "d2", "d3"),
        vocabulary=Vocabulary(("gato", "perro", "sol")),
        diagnostics=LdaDiagnostics(
            iterations_run=1,
            converged=False,
            log_likelihood_trace=(-10.0,),
            reassignment_rate_trace=(0.5,),
        ),
        config=LdaConfig(num_topics=2),
    )


def test_beta_table_layout(fitted_result: LdaResult) -> None:
    table: pd.DataFrame = beta_table(fitted_result)

    assert list(table.columns) == ["topic", "term", "beta"]
    assert len(table) == 6
    assert list(table["topic"]) == [0, 0, 0, 1, 1, 1]
    assert list(table["term"]) == ["gato", "perro", "sol"] * 2
    np.testing.assert_allclose(table.groupby("topic")["beta"].sum(), 1.0)


def test_gamma_table_layout(fitted_result: LdaResult) -> None:
    table: pd.DataFrame = gamma_table(fitted_result)

    assert list(table.columns) == ["document_id", "topic", "gamma"]
    assert list(table["document_id"]) == ["d1", "d1", "d2", "d2", "d3", "d3"]
    assert list(table["topic"]) == [0, 1] * 3
    assert table.loc[3, "gamma"] == pytest.approx(0.75)


def test_top_terms_per_topic_ranks_and_breaks_ties(fitted_result: LdaResult) -> None:
    top: pd.DataFrame = top_terms_per_topic(beta_table(fitted_result), n=2)

    assert list(top.loc[top["topic"] == 0, "term"]) == ["gato", "perro"]
    assert list(top.loc[top["topic"] == 1, "term"]) == ["sol", "gato"]
    assert list(top["rank"]) == [1, 2, 1, 2]


def test_top_terms_per_topic_rejects_non_positive_n(fitted_result: LdaResult) -> None:
    with pytest.raises(InvalidInputError):
        top_terms_per_topic(beta_table(fitted_result), n=0)


def test_dominant_topic_prefers_lowest_topic_on_ties(fitted_result: LdaResult) -> None:
    dominant: pd.DataFrame = dominant_topic_per_document(gamma_table(fitted_result))

    assert dict(zip(dominant["document_id"], dominant["topic"])) == {"d1": 0, "d2": 1, "d3": 0}


def test_round_for_reporting_returns_rounded_copy() -> None:
    df = pd.DataFrame({"topic": [0], "term": ["gato"], "beta": [0.123456789]})

    rounded: pd.DataFrame = round_for_reporting(df, decimals=3)

    assert rounded.loc[0, "beta"] == pytest.approx(0.123)
    assert df.loc[0, "beta"] == pytest.approx(0.123456789)
