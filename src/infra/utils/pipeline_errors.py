"""
Purpose
-------
Define the exception taxonomy shared by every stage of the outlet topic
analysis pipeline (tokenization, vocabulary, count matrix, TF-IDF, LDA and
aggregation).

Key behaviors
-------------
- `InvalidInputError` for malformed or missing inputs (absent text, null token
  streams, missing columns, empty corpus, invalid configuration values).
- `DegenerateInputError` for configurations that are incompatible with the
  data (K < 1, K larger than the vocabulary, an all-zero count matrix).
- `NumericInstabilityError` for non-finite values or probability
  distributions that fail to normalize within tolerance.

Conventions
-----------
- All three are fatal to the run that raises them; callers never retry,
  since the computation is deterministic in its inputs.
- LDA non-convergence within the iteration budget is NOT an error; it is
  reported through `LdaDiagnostics`.
- The first two also subclass `ValueError` and the last `ArithmeticError`, so
  generic handlers keep working.

Downstream usage
----------------
from infra.utils.pipeline_errors import DegenerateInputError, InvalidInputError
"""


class PipelineError(Exception):
    """Base class for all errors raised by the analysis pipeline."""


class InvalidInputError(PipelineError, ValueError):
    """Raised when an input is malformed, missing, or empty."""


class DegenerateInputError(PipelineError, ValueError):
    """Raised when a model configuration is incompatible with the data."""


class NumericInstabilityError(PipelineError, ArithmeticError):
    """Raised when values that must be finite or normalized are not."""
