"""
Progress and duration reporting for the silver layer load.

The load reports its progress through a ``StageListener``. The default
``LoggingStageListener`` writes the events to the standard logger; callers can
pass their own listener (metrics, audit tables) to ``load_silver``.
"""

import logging
from typing import List, Optional

from config import LOG_LEVEL, LOG_FORMAT

# Configure logging
logging.basicConfig(level=getattr(logging, LOG_LEVEL), format=LOG_FORMAT)
logger = logging.getLogger(__name__)


class StageListener:
    """Receives structured events from the silver layer load. All hooks are no-ops."""

    def on_run_start(self, stages: List[str]) -> None:
        pass

    def on_stage_start(self, stage: str, table: str) -> None:
        pass

    def on_stage_end(
        self, stage: str, table: str, duration_seconds: float, row_count: int
    ) -> None:
        pass

    def on_stage_failure(
        self, stage: str, table: str, duration_seconds: float, error: BaseException
    ) -> None:
        pass

    def on_run_end(self, duration_seconds: float, succeeded: bool) -> None:
        pass


class LoggingStageListener(StageListener):
    """Logs stage start, end and duration events."""

    def __init__(self, log: Optional[logging.Logger] = None):
        self.log = log or logger

    def on_run_start(self, stages: List[str]) -> None:
        self.log.info(f"START: Silver Layer Load ({', '.join(stages)})")

    def on_stage_start(self, stage: str, table: str) -> None:
        self.log.info(f"Loading silver.{table} (stage: {stage})")

    def on_stage_end(
        self, stage: str, table: str, duration_seconds: float, row_count: int
    ) -> None:
        self.log.info(
            f"Loaded {row_count} rows into silver.{table} in {duration_seconds:.2f} seconds"
        )

    def on_stage_failure(
        self, stage: str, table: str, duration_seconds: float, error: BaseException
    ) -> None:
        self.log.error(
            f"Stage {stage} failed on silver.{table} after {duration_seconds:.2f} seconds: {error}"
        )

    def on_run_end(self, duration_seconds: float, succeeded: bool) -> None:
        status = "completed" if succeeded else "failed"
        self.log.info(
            f"END: Silver Layer Load {status} in {duration_seconds:.2f} seconds"
        )
