"""
Purpose
-------
Centralize the hyperparameters and iteration controls of the collapsed Gibbs
LDA sampler, and expose them as a validated, immutable `LdaConfig`.

Key behaviors
-------------
- Define project-wide defaults for the random seed, iteration budget,
  convergence tolerance and patience, Dirichlet priors, and progress-log
  interval.
- Validate every configuration value at construction time.
- Hydrate a configuration from environment variables (optionally via a
  `.env` file) with `LdaConfig.from_env`.

Conventions
-----------
- `alpha` is the SUM of the symmetric document–topic Dirichlet prior; each
  topic receives `alpha / num_topics`.
- `beta` is the per-term topic–word Dirichlet prior (smoothing over the
  vocabulary).
- Convergence is declared when the relative change of the collapsed joint
  log-likelihood stays below `convergence_tolerance` for
  `convergence_patience` consecutive sweeps; `convergence_tolerance = 0`
  therefore always runs the full budget.
- `num_topics` compatibility with the data (K >= 1, K <= V) is checked by the
  engine, which raises `DegenerateInputError`.
- Rounding for reports uses `REPORTING_DECIMALS` and is applied only to
  exported tables, never before arithmetic.

Attributes
----------
DEFAULT_RANDOM_SEED : int
    Seed for `numpy.random.default_rng`.
DEFAULT_MAX_ITERATIONS : int
    Maximum number of Gibbs sweeps.
DEFAULT_CONVERGENCE_TOLERANCE : float
    Relative log-likelihood change below which a sweep counts as stable.
DEFAULT_CONVERGENCE_PATIENCE : int
    Consecutive stable sweeps required to stop early.
DEFAULT_ALPHA : float
    Sum of the document–topic prior.
DEFAULT_BETA : float
    Topic–word prior.
DEFAULT_LOG_INTERVAL : int
    Sweeps between progress log entries.
PROBABILITY_TOLERANCE : float
    Allowed deviation of a distribution's sum from 1.
REPORTING_DECIMALS : int
    Decimals kept in exported beta/gamma tables.

Downstream usage
----------------
Build an `LdaConfig(num_topics=...)` (or `LdaConfig.from_env()`) and pass it
to `lda.lda_model.fit_lda`.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from infra.utils.pipeline_errors import InvalidInputError

DEFAULT_RANDOM_SEED: int = 42

DEFAULT_MAX_ITERATIONS: int = 200

DEFAULT_CONVERGENCE_TOLERANCE: float = 1e-4

DEFAULT_CONVERGENCE_PATIENCE: int = 5

DEFAULT_ALPHA: float = 5.0

DEFAULT_BETA: float = 0.01

DEFAULT_LOG_INTERVAL: int = 10

PROBABILITY_TOLERANCE: float = 1e-6

REPORTING_DECIMALS: int = 6


@dataclass(frozen=True)
class LdaConfig:
    """
    Purpose
    -------
    Immutable LDA model configuration.

    Parameters
    ----------
    num_topics : int
        Number of latent topics K; caller-supplied, never learned.
    random_seed : int, default DEFAULT_RANDOM_SEED
        Seed making initialization and sampling reproducible.
    max_iterations : int, default DEFAULT_MAX_ITERATIONS
        Gibbs sweep budget (>= 1).
    convergence_tolerance : float, default DEFAULT_CONVERGENCE_TOLERANCE
        Relative log-likelihood change threshold (>= 0).
    convergence_patience : int, default DEFAULT_CONVERGENCE_PATIENCE
        Consecutive stable sweeps required to stop (>= 1).
    alpha : float, default DEFAULT_ALPHA
        Sum of the symmetric document–topic prior (> 0).
    beta : float, default DEFAULT_BETA
        Topic–word prior (> 0).
    log_interval : int, default DEFAULT_LOG_INTERVAL
        Sweeps between progress entries (>= 1).

    Raises
    ------
    InvalidInputError
        If an iteration control or prior is out of range.
    """

    num_topics: int
    random_seed: int = DEFAULT_RANDOM_SEED
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    convergence_tolerance: float = DEFAULT_CONVERGENCE_TOLERANCE
    convergence_patience: int = DEFAULT_CONVERGENCE_PATIENCE
    alpha: float = DEFAULT_ALPHA
    beta: float = DEFAULT_BETA
    log_interval: int = DEFAULT_LOG_INTERVAL

    def __post_init__(self) -> None:
        if self.max_iterations < 1:
            raise InvalidInputError(f"max_iterations must be >= 1, got {self.max_iterations}")
        if self.convergence_tolerance < 0:
            raise InvalidInputError(
                f"convergence_tolerance must be >= 0, got {self.convergence_tolerance}"
            )
        if self.convergence_patience < 1:
            raise InvalidInputError(
                f"convergence_patience must be >= 1, got {self.convergence_patience}"
            )
        if self.alpha <= 0 or self.beta <= 0:
            raise InvalidInputError(
                f"Dirichlet priors must be positive, got alpha={self.alpha}, beta={self.beta}"
            )
        if self.log_interval < 1:
            raise InvalidInputError(f"log_interval must be >= 1, got {self.log_interval}")

    @property
    def alpha_per_topic(self) -> float:
        return self.alpha / self.num_topics

    @classmethod
    def from_env(cls) -> "LdaConfig":
        """
        Build a configuration from environment variables.

        Returns
        -------
        LdaConfig
            Configuration read from LDA_NUM_TOPICS (required),
            LDA_RANDOM_SEED, LDA_MAX_ITERATIONS, LDA_CONVERGENCE_TOLERANCE,
            LDA_ALPHA and LDA_BETA; unset optional variables keep defaults.

        Raises
        ------
        InvalidInputError
            If LDA_NUM_TOPICS is unset or any value is not numeric.

        Notes
        -----
        - Calls `load_dotenv()` first, so a `.env` file in the working
          directory is honored without overriding already-set variables.
        """

        load_dotenv()
        if "LDA_NUM_TOPICS" not in os.environ:
            raise InvalidInputError("LDA_NUM_TOPICS must be set")
        try:
            return cls(
                num_topics=int(os.environ["LDA_NUM_TOPICS"]),
                random_seed=int(os.environ.get("LDA_RANDOM_SEED", DEFAULT_RANDOM_SEED)),
                max_iterations=int(os.environ.get("LDA_MAX_ITERATIONS", DEFAULT_MAX_ITERATIONS)),
                convergence_tolerance=float(
                    os.environ.get("LDA_CONVERGENCE_TOLERANCE", DEFAULT_CONVERGENCE_TOLERANCE)
                ),
                alpha=float(os.environ.get("LDA_ALPHA", DEFAULT_ALPHA)),
                beta=float(os.environ.get("LDA_BETA", DEFAULT_BETA)),
            )
        except ValueError as exc:
            if isinstance(exc, InvalidInputError):
                raise
            raise InvalidInputError(f"Invalid LDA environment configuration: {exc}") from exc
