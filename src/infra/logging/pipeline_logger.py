"""
Purpose
-------
Provide the structured logger used by every stage of the outlet topic
analysis pipeline. Centralizes log levels, formats, destinations, run
metadata, and stage timing.

Key behaviors
-------------
- Emits one structured log entry per call (`emit`).
- Supports log level thresholding (DEBUG, INFO, WARNING, ERROR).
- Serializes entries as JSON (default) or human-readable text.
- Times pipeline stages through the `stage` context manager, emitting
  `<stage>_started` / `<stage>_finished` entries, or `<stage>_failed` before
  re-raising.
- Handles invalid environment variables by falling back to defaults.

Conventions
-----------
- Default log level is INFO.
- Default format is JSON; text output is line-based with key=value context.
- Default destination is STDERR; file destinations are opened in append mode.
- Timestamps are UTC ISO-8601 with a trailing "Z".
- Event names are snake_case.

Downstream usage
----------------
Call `initialize_logger` once per run and pass the logger down to the corpus,
TF-IDF and LDA functions. Use `logger.stage("fit_lda")` around long steps.
"""

import datetime as dt
import json
import os
import sys
import time
from contextlib import contextmanager
from typing import Iterator, TypedDict

LOG_LEVELS: set[str] = {"DEBUG", "INFO", "WARNING", "ERROR"}
LEVEL_MAPPING: dict[str, int] = {"DEBUG": 10, "INFO": 20, "WARNING": 30, "ERROR": 40}
LOG_FORMATS: set[str] = {"json", "text"}


class LogEntry(TypedDict):
    """
    Purpose
    -------
    Typed dictionary describing the structure of a single log entry.

    Fields
    ------
    timestamp : str
        UTC ISO-8601 timestamp string with a "Z" suffix.
    level : str
        Log severity level ("DEBUG", "INFO", "WARNING", "ERROR").
    run_id : str
        Identifier of the analysis run that emitted this entry.
    component : str
        Name of the pipeline component producing the log.
    event : str
        Short machine-readable event name (snake_case).
    message : str
        Human-readable message string.
    run_meta : dict
        Run metadata attached at logger initialization (e.g. K, seed).
    context : dict
        Event-specific context payload (small, JSON-serializable).
    """

    timestamp: str
    level: str
    run_id: str
    component: str
    event: str
    message: str
    run_meta: dict
    context: dict


class PipelineLogger:
    """
    Purpose
    -------
    Structured logger for the analysis pipeline that enforces level
    thresholds, normalizes output format, and writes to a configurable
    destination.

    Parameters
    ----------
    component_name : str
        Name of the pipeline component using this logger.
    run_id : str
        Identifier for this analysis run.
    run_meta : dict
        Run-scoped metadata serialized into each entry.
    log_level : str, default="INFO"
        Minimum log level threshold.
    log_format : str, default="json"
        Output format ("json" or "text").
    log_dest : str, default="stderr"
        Destination for logs ("stderr" or a file path).

    Notes
    -----
    - Serialization never raises; JSON falls back to `default=str`.
    """

    def __init__(
        self,
        component_name: str,
        run_id: str,
        run_meta: dict,
        log_level: str = "INFO",
        log_format: str = "json",
        log_dest: str = "stderr",
    ) -> None:
        self.component_name = component_name
        self.run_id = run_id
        self.run_meta = run_meta
        self.level = log_level
        self.format = log_format
        self.dest = log_dest

    def emit(
        self, event: str, level: str = "INFO", msg: str | None = None, context: dict | None = None
    ) -> None:
        """
        Emit one structured log entry.

        Parameters
        ----------
        event : str
            Snake_case event name describing what happened.
        level : str, default="INFO"
            Log severity level.
        msg : str, optional
            Human-readable message string.
        context : dict, optional
            Event-specific payload.

        Returns
        -------
        None

        Notes
        -----
        - Entries below the configured threshold are dropped before any
          timestamping or formatting happens.
        """

        if LEVEL_MAPPING[level] < LEVEL_MAPPING[self.level]:
            return
        entry: LogEntry = {
            "timestamp": dt.datetime.now(dt.timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": level,
            "run_id": self.run_id,
            "component": self.component_name,
            "event": event,
            "message": msg or "",
            "run_meta": self.run_meta,
            "context": context or {},
        }
        self.write_entry(self.format_entry(entry))

    def debug(self, event: str, msg: str | None = None, context: dict | None = None) -> None:
        self.emit(event=event, level="DEBUG", msg=msg, context=context)

    def info(self, event: str, msg: str | None = None, context: dict | None = None) -> None:
        self.emit(event=event, level="INFO", msg=msg, context=context)

    def warning(self, event: str, msg: str | None = None, context: dict | None = None) -> None:
        self.emit(event=event, level="WARNING", msg=msg, context=context)

    def error(self, event: str, msg: str | None = None, context: dict | None = None) -> None:
        self.emit(event=event, level="ERROR", msg=msg, context=context)

    @contextmanager
    def stage(self, name: str, context: dict | None = None) -> Iterator[None]:
        """
        Time a pipeline stage and log its start, completion, or failure.

        Parameters
        ----------
        name : str
            Snake_case stage name; used as the event prefix.
        context : dict, optional
            Extra context attached to the `_started` entry.

        Yields
        ------
        None

        Raises
        ------
        Exception
            Any exception raised inside the block is logged at ERROR as
            `<name>_failed` and re-raised unchanged.
        """

        self.info(event=f"{name}_started", context=context)
        start: float = time.perf_counter()
        try:
            yield
        except Exception as exc:
            self.error(
                event=f"{name}_failed",
                msg=str(exc),
                context={
                    "error_type": type(exc).__name__,
                    "elapsed_seconds": round(time.perf_counter() - start, 3),
                },
            )
            raise
        self.info(
            event=f"{name}_finished",
            context={"elapsed_seconds": round(time.perf_counter() - start, 3)},
        )

    def format_entry(self, entry: LogEntry) -> str:
        """
        Format a log entry as a JSON string or a single human-readable line.

        Parameters
        ----------
        entry : LogEntry
            Structured log entry dictionary.

        Returns
        -------
        str
            Serialized log entry.
        """

        if self.format == "json":
            try:
                return json.dumps(entry, ensure_ascii=False)
            except (TypeError, ValueError):
                return json.dumps(entry, ensure_ascii=False, default=str)
        context_str = " ".join(f"{k}={v}" for k, v in entry["context"].items())
        return (
            f"{entry['timestamp']} [{entry['level']}] "
            f"{entry['component']} {entry['event']} - {entry['message']} "
            f"{context_str}"
        )

    def write_entry(self, formatted_entry: str) -> None:
        if self.dest == "stderr":
            print(formatted_entry, file=sys.stderr)
        else:
            with open(self.dest, "a", encoding="utf-8") as f:
                f.write(formatted_entry + "\n")


def initialize_logger(
    component_name: str,
    run_id: str | None = None,
    run_meta: dict | None = None,
) -> PipelineLogger:
    """
    Configure and return a PipelineLogger from the environment.

    Parameters
    ----------
    component_name : str
        Name of the component using the logger.
    run_id : str, optional
        Identifier for the run; generated when not provided.
    run_meta : dict, optional
        Run metadata dictionary (e.g. number of topics, seed).

    Returns
    -------
    PipelineLogger
        Logger configured from LOG_LEVEL, LOG_FORMAT and LOG_DEST.

    Notes
    -----
    - Invalid environment values fall back to defaults; one WARNING entry is
      emitted per fallback.
    """

    fall_backs: dict[str, bool] = {"level": False, "log_format": False, "log_dest": False}
    level, log_format, log_dest = extract_env_vars(fall_backs)
    logger = PipelineLogger(
        component_name=component_name,
        run_id=run_id if run_id is not None else generate_run_id(component_name),
        run_meta=run_meta if run_meta is not None else {},
        log_level=level,
        log_format=log_format,
        log_dest=log_dest,
    )
    handle_fallbacks(logger, fall_backs)
    return logger


def extract_env_vars(fall_backs: dict[str, bool]) -> tuple[str, str, str]:
    """
    Extract and validate logging configuration from environment variables.

    Parameters
    ----------
    fall_backs : dict[str, bool]
        Mutable dict recording which settings had to fall back to defaults.

    Returns
    -------
    tuple[str, str, str]
        Normalized (level, format, destination).
    """

    level: str = os.environ.get("LOG_LEVEL", "INFO").upper()
    log_format: str = os.environ.get("LOG_FORMAT", "json").lower()
    log_dest: str = os.environ.get("LOG_DEST", "stderr")

    if level not in LOG_LEVELS:
        fall_backs["level"] = True
        level = "INFO"

    if log_format not in LOG_FORMATS:
        fall_backs["log_format"] = True
        log_format = "json"

    if log_dest.lower() != "stderr":
        try:
            with open(log_dest, "a", encoding="utf-8"):
                pass
        except OSError:
            fall_backs["log_dest"] = True
            log_dest = "stderr"

    return level, log_format, log_dest


def generate_run_id(component_name: str) -> str:
    """Return `<component>--<UTC timestamp>--<pid>`."""

    return (
        component_name
        + "--"
        + dt.datetime.now(dt.timezone.utc).strftime("%Y%m%dT%H%M%SZ")
        + "--"
        + str(os.getpid())
    )


FALLBACK_EVENTS: dict[str, tuple[str, str, str]] = {
    "level": ("FALLBACK_LOG_LEVEL", "LOG_LEVEL", "Invalid LOG_LEVEL env var; defaulting to INFO"),
    "log_format": (
        "FALLBACK_LOG_FORMAT",
        "LOG_FORMAT",
        "Invalid LOG_FORMAT env var; defaulting to json",
    ),
    "log_dest": ("FALLBACK_LOG_DEST", "LOG_DEST", "Invalid LOG_DEST env var; defaulting to stderr"),
}


def handle_fallbacks(logger: PipelineLogger, fall_backs: dict[str, bool]) -> None:
    """
    Emit one WARNING entry for every environment variable that fell back.

    Parameters
    ----------
    logger : PipelineLogger
        Logger used to emit the warnings.
    fall_backs : dict[str, bool]
        Flags produced by `extract_env_vars`.

    Returns
    -------
    None
    """

    for key, triggered in fall_backs.items():
        if not triggered:
            continue
        event, env_var, msg = FALLBACK_EVENTS[key]
        logger.warning(
            event=event,
            msg=msg,
            context={"invalid_value": os.environ.get(env_var, None)},
        )
