"""
Purpose
-------
Turn raw article text into normalized word tokens and remove stopwords.

Key behaviors
-------------
- Normalize text deterministically: Unicode NFKC, lowercase, punctuation and
  underscores replaced by whitespace, optional accent stripping.
- Split normalized text on whitespace into a lazy token stream.
- Normalize stopword lexicons with exactly the same rules as corpus tokens and
  deduplicate them into a frozenset.
- Filter token streams against a stopword set while preserving order.

Conventions
-----------
- No stemming or lemmatization is applied.
- Digits are assumed to be stripped upstream and are kept as-is here.
- Empty or whitespace-only text is valid and yields no tokens; `None` or
  non-string text is an `InvalidInputError`.

Downstream usage
----------------
`corpus.term_count_matrix.tokenize_documents` calls `tokenize_and_filter`
per document; callers build the stopword set once with `load_stopwords`.
"""

import unicodedata
from typing import Iterable, Iterator, List

import nltk

from corpus.corpus_config import (
    DEFAULT_STOPWORD_LANGUAGE,
    EXTRA_STOPWORDS,
    NON_WORD_PATTERN,
    STRIP_ACCENTS,
)
from infra.utils.pipeline_errors import InvalidInputError


def normalize_text(text: str, strip_accents: bool = STRIP_ACCENTS) -> str:
    """
    Apply the corpus normalization rules to a string.

    Parameters
    ----------
    text : str
        Raw text.
    strip_accents : bool, default STRIP_ACCENTS
        If True, decompose characters (NFKD) and drop combining marks so that
        e.g. "canción" becomes "cancion".

    Returns
    -------
    str
        Lowercased text with every run of non-word characters (punctuation,
        symbols, underscores) replaced by a single space.
    """

    normalized: str = unicodedata.normalize("NFKC", text).lower()
    if strip_accents:
        normalized = "".join(
            ch for ch in unicodedata.normalize("NFKD", normalized) if not unicodedata.combining(ch)
        )
    return NON_WORD_PATTERN.sub(" ", normalized)


def tokenize(text: str, strip_accents: bool = STRIP_ACCENTS) -> Iterator[str]:
    """
    Lazily yield normalized tokens from document text.

    Parameters
    ----------
    text : str
        Raw document text.
    strip_accents : bool, default STRIP_ACCENTS
        Forwarded to `normalize_text`.

    Yields
    ------
    str
        Lowercase tokens containing no punctuation.

    Raises
    ------
    InvalidInputError
        If `text` is None or not a string. Raised on first iteration.
    """

    if not isinstance(text, str):
        raise InvalidInputError(f"Document text must be a string, got {type(text).__name__}")
    yield from normalize_text(text, strip_accents).split()


def normalize_stopwords(words: Iterable[str], strip_accents: bool = STRIP_ACCENTS) -> frozenset[str]:
    """
    Normalize a stopword list the same way as corpus tokens and deduplicate it.

    Parameters
    ----------
    words : Iterable[str]
        Raw stopword entries; duplicates and mixed casing are allowed.
    strip_accents : bool, default STRIP_ACCENTS
        Must match the setting used to tokenize the corpus.

    Returns
    -------
    frozenset[str]
        Normalized stopword set. Entries that normalize to several tokens
        (e.g. "a.m.") contribute each token.

    Raises
    ------
    InvalidInputError
        If `words` is None.
    """

    if words is None:
        raise InvalidInputError("Stopword list must not be None")
    normalized: set[str] = set()
    for word in words:
        normalized.update(tokenize(word, strip_accents))
    return frozenset(normalized)


def load_stopwords(
    language: str = DEFAULT_STOPWORD_LANGUAGE,
    extra_stopwords: Iterable[str] = EXTRA_STOPWORDS,
    strip_accents: bool = STRIP_ACCENTS,
) -> frozenset[str]:
    """
    Build the stopword set from nltk's base lexicon plus corpus additions.

    Parameters
    ----------
    language : str, default DEFAULT_STOPWORD_LANGUAGE
        Name of the nltk stopwords corpus file (e.g. "spanish", "english").
    extra_stopwords : Iterable[str], default EXTRA_STOPWORDS
        Corpus-specific additions appended to the base lexicon.
    strip_accents : bool, default STRIP_ACCENTS
        Must match the setting used to tokenize the corpus.

    Returns
    -------
    frozenset[str]
        Normalized, deduplicated stopword set.

    Notes
    -----
    - Downloads the nltk `stopwords` corpus quietly if it is not present.
    """

    nltk.download("stopwords", quiet=True)
    base_lexicon: List[str] = nltk.corpus.stopwords.words(language)
    return normalize_stopwords([*base_lexicon, *extra_stopwords], strip_accents)


def filter_stopwords(tokens: Iterable[str], stopwords: frozenset[str]) -> Iterator[str]:
    """Yield the tokens not present in `stopwords`, in their original order."""

    return (token for token in tokens if token not in stopwords)


def tokenize_and_filter(
    text: str, stopwords: frozenset[str], strip_accents: bool = STRIP_ACCENTS
) -> List[str]:
    return list(filter_stopwords(tokenize(text, strip_accents), stopwords))
