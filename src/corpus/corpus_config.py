"""
Purpose
-------
Centralize configuration constants for turning raw news articles into
tokens, a vocabulary, and a sparse document–term matrix, so that
normalization rules, stopword lexicons and parallelism knobs live in a single
importable module.

Key behaviors
-------------
- Define the regular expression that splits normalized text into tokens.
- Name the base stopword lexicon (an nltk stopwords corpus) and the
  corpus-specific additions appended to it.
- Configure chunked, thread-parallel tokenization.
- Provide the default minimum document frequency for vocabulary pruning.

Conventions
-----------
- Stopword entries are data: they are normalized with the same rules as
  corpus tokens before use, so casing and punctuation in this module do not
  matter.
- Digits are expected to be stripped upstream; the tokenizer does not drop
  them.
- `DEFAULT_MIN_DOC_FREQ = 1` disables pruning.

Downstream usage
----------------
Import from `corpus.tokenizer`, `corpus.vocabulary` and
`corpus.term_count_matrix` instead of hard-coding rules or worker counts.
"""

import re
from typing import List

NON_WORD_PATTERN: re.Pattern[str] = re.compile(r"[\W_]+")

DEFAULT_STOPWORD_LANGUAGE: str = "spanish"

EXTRA_STOPWORDS: List[str] = [
    "según",
    "además",
    "así",
    "dijo",
    "aseguró",
    "señaló",
    "explicó",
    "indicó",
    "afirmó",
    "través",
    "año",
    "años",
    "hoy",
    "ayer",
    "ser",
    "si",
    "sólo",
    "solo",
]

STRIP_ACCENTS: bool = False

CHUNK_SIZE: int = 500

MAXIMAL_WORKER_COUNT: int = 4

DEFAULT_MIN_DOC_FREQ: int = 1

REQUIRED_DOCUMENT_COLUMNS: List[str] = ["document_id", "outlet", "date", "text"]
