"""
Purpose
-------
Shared fixtures for the outlet topic analysis test suite: a recording
stand-in for `PipelineLogger` and small synthetic corpora.

Key behaviors
-------------
- `RecordingLogger` exposes the logger interface used by production code
  (`debug`, `info`, `warning`, `error`, `stage`) and keeps every call in
  memory so tests can assert on emitted events without any I/O.
- `animal_corpus_tokens` is the three-document "gato / perro / sol" corpus in
  which every term appears in every document.
- `two_theme_token_lists` holds documents drawn from two disjoint
  vocabularies (sports vs. economy), used to check that LDA separates them.

Conventions
-----------
- Fixtures return fresh objects per test; nothing is shared across tests.

Downstream usage
----------------
Fixtures are discovered automatically by pytest.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, List

import pandas as pd
import pytest


class RecordingLogger:
    """
    Purpose
    -------
    In-memory stand-in for `PipelineLogger`.

    Attributes
    ----------
    records : list[tuple[str, str, dict]]
        (level, event, context) for each call, in call order.
    """

    def __init__(self) -> None:
        self.records: List[tuple[str, str, dict]] = []

    def _record(self, level: str, event: str, context: dict | None) -> None:
        self.records.append((level, event, context or {}))

    def debug(self, event: str, msg: str | None = None, context: dict | None = None) -> None:
        self._record("DEBUG", event, context)

    def info(self, event: str, msg: str | None = None, context: dict | None = None) -> None:
        self._record("INFO", event, context)

    def warning(self, event: str, msg: str | None = None, context: dict | None = None) -> None:
        self._record("WARNING", event, context)

    def error(self, event: str, msg: str | None = None, context: dict | None = None) -> None:
        self._record("ERROR", event, context)

    @contextmanager
    def stage(self, name: str, context: dict | None = None) -> Iterator[None]:
        self.info(f"{name}_started", context=context)
        try:
            yield
        except Exception:
            self.error(f"{name}_failed")
            raise
        self.info(f"{name}_finished")

    def events(self, level: str | None = None) -> List[str]:
        return [event for lvl, event, _ in self.records if level is None or lvl == level]


@pytest.fixture
def recording_logger() -> RecordingLogger:
    return RecordingLogger()


@pytest.fixture
def animal_corpus_tokens() -> dict[str, List[str]]:
    return {
        "A": ["gato", "gato", "perro"],
        "B": ["perro", "perro", "sol"],
        "C": ["sol", "sol", "gato"],
    }


@pytest.fixture
def two_theme_token_lists() -> dict[str, List[str]]:
    sports: List[str] = ["gol", "partido", "equipo", "liga", "jugador"]
    economy: List[str] = ["inflacion", "mercado", "banco", "precio", "deuda"]
    documents: dict[str, List[str]] = {}
    for i in range(4):
        documents[f"sports_{i}"] = [sports[(i + j) % 5] for j in range(25)]
        documents[f"economy_{i}"] = [economy[(i + j) % 5] for j in range(25)]
    return documents


@pytest.fixture
def articles_df() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "document_id": ["a1", "a2", "a3", "a4", "a5", "a6"],
            "outlet": ["diario", "diario", "diario", "radio", "radio", "radio"],
            "date": [
                "2023-01-05",
                "2023-01-20",
                "2023-02-03",
                "2023-01-05",
                "2023-02-10",
                "2023-02-11",
            ],
            "text": [
                "El equipo ganó el partido; gol del jugador en la liga.",
                "Liga: el equipo y el jugador celebran otro gol.",
                "La inflación sube y el banco central ajusta el precio del dinero.",
                "El mercado reacciona: la deuda y la inflación preocupan al banco.",
                "Partido de liga, gol y equipo campeón.",
                "Precio, deuda, mercado: el banco vigila la inflación.",
            ],
        }
    )
