import logging
from dataclasses import dataclass, field
from typing import Callable, List

from core.config import Settings
from schemas.etl import ProcessingStats, ProgressEvent, RunOptions

ProgressCallback = Callable[[ProgressEvent], None]


@dataclass
class ProcessingContext:
    """Run options, settings, shared counters and progress subscribers of one run"""

    options: RunOptions
    settings: Settings
    logger: logging.Logger
    stats: ProcessingStats = field(default_factory=ProcessingStats)
    progress_callbacks: List[ProgressCallback] = field(default_factory=list)
