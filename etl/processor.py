# ============================================================================
# File: etl/processor.py
# Description: Template-method ETL orchestrator with structured results
# ============================================================================
"""
ETL Processor - Orchestrates Validate, Extract, Transform, Load.

This module provides the base class every job derives from:
- Fixed phase order with per-phase timing
- Progress events for subscribers
- Monotonic counters as the only write path into ProcessingStats
- Exceptions converted into a structured result at the phase boundary
"""

import asyncio
import logging
import time
import re
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional, Tuple

from core.config import Settings, settings as default_settings
from core.exceptions import ETLException, ValidationError
from etl.concurrency import ConcurrencyLimiter
from etl.consolidation import Consolidator
from etl.context import ProcessingContext, ProgressCallback
from etl.loaders.batch_writer import BatchWriter
from etl.loaders.stores import DocumentStore
from schemas.enums import Destination, ProcessingStatus, ProcessorState, RunStatus
from schemas.etl import (
    PhaseStats,
    ProcessingResult,
    ProgressEvent,
    RunOptions,
    ValidationResult,
    utcnow,
)


Document = Tuple[str, Any, Dict[str, Any]]

_PHASE_BY_STATE = {
    ProcessorState.EXTRACTING: "extraction",
    ProcessorState.TRANSFORMING: "transformation",
    ProcessorState.LOADING: "load",
}


class ETLProcessor(ABC):
    """
    Base ETL processor.

    Responsibilities:
    - Sequence validate -> extract -> transform -> load
    - Short-circuit on invalid options without touching the network
    - Never raise past process() except on cancellation: the CLI always
      gets a ProcessingResult
    - Own the run counters (successes, failures, warnings)

    Subclasses implement extract/transform/load and may extend validate.
    """

    def __init__(
        self,
        options: RunOptions,
        settings: Optional[Settings] = None,
        store: Optional[DocumentStore] = None,
        writer: Optional[BatchWriter] = None,
        limiter: Optional[ConcurrencyLimiter] = None,
        consolidator: Optional[Consolidator] = None,
    ):
        settings = settings or default_settings
        self.context = ProcessingContext(
            options=options,
            settings=settings,
            logger=logging.getLogger(f"{__name__}.{type(self).__name__}"),
        )
        self.state = ProcessorState.CREATED
        self.phase_seconds: Dict[str, float] = {}
        self.writer = writer or (
            BatchWriter(
                store,
                max_operations=settings.BATCH_MAX_OPERATIONS,
                max_document_bytes=settings.BATCH_MAX_DOCUMENT_BYTES,
                commit_timeout=settings.BATCH_COMMIT_TIMEOUT,
            )
            if store is not None else None
        )
        self.limiter = limiter or ConcurrencyLimiter(
            chunk_size=options.concorrencia,
            pause=settings.CHUNK_PAUSE,
        )
        self.consolidator = consolidator or Consolidator()

    # ------------------------------------------------------------------
    # Phases implemented by subclasses
    # ------------------------------------------------------------------

    @abstractmethod
    def get_process_name(self) -> str:
        ...

    async def validate(self) -> ValidationResult:
        return self.validate_common_params()

    @abstractmethod
    async def extract(self) -> Any:
        ...

    @abstractmethod
    async def transform(self, extracted: Any) -> Any:
        ...

    @abstractmethod
    async def load(self, transformed: Any) -> Dict[str, Any]:
        ...

    # ------------------------------------------------------------------
    # Progress
    # ------------------------------------------------------------------

    @property
    def options(self) -> RunOptions:
        return self.context.options

    @property
    def stats(self):
        return self.context.stats

    def on_progress(self, callback: ProgressCallback) -> None:
        self.context.progress_callbacks.append(callback)

    def emit_progress(
        self,
        status: ProcessingStatus,
        percent: int,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        event = ProgressEvent(status=status, percent=percent, message=message, details=details)
        for callback in self.context.progress_callbacks:
            try:
                callback(event)
            except Exception as e:
                self.context.logger.warning(f"Progress subscriber failed: {e}")
        self.context.logger.info(f"[{status.value}] {message} ({percent}%)")

    # ------------------------------------------------------------------
    # Counters
    # ------------------------------------------------------------------

    def _current_phase(self) -> Optional[PhaseStats]:
        name = _PHASE_BY_STATE.get(self.state)
        return getattr(self.stats, name) if name else None

    @staticmethod
    def _check_count(count: int) -> None:
        if count < 0:
            raise ValueError("Counters are monotonic; count must be >= 0")

    def increment_processed(self, count: int = 1) -> None:
        self._check_count(count)
        self.stats.processed += count

    def increment_successes(self, count: int = 1) -> None:
        """Run-level successes, mirrored into the current phase"""
        self._check_count(count)
        self.stats.successes += count
        phase = self._current_phase()
        if phase is not None:
            phase.successes += count

    def increment_failures(self, count: int = 1) -> None:
        """Run-level failures, mirrored into the current phase"""
        self._check_count(count)
        self.stats.failures += count
        phase = self._current_phase()
        if phase is not None:
            phase.failures += count

    def increment_warnings(self, count: int = 1) -> None:
        self._check_count(count)
        self.stats.warnings += count

    def add_phase_total(self, count: int) -> None:
        """Announce how many units the current phase will handle"""
        self._check_count(count)
        phase = self._current_phase()
        if phase is not None:
            phase.total += count

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def _run_phase(
        self,
        state: ProcessorState,
        step: str,
        percent: int,
        status: ProcessingStatus,
        message: str,
        phase: Callable[[], Awaitable[Any]],
    ) -> Any:
        self.state = state
        self.context.logger.info(f"{step}: {state.value}")
        self.emit_progress(status, percent, message)

        started = time.monotonic()
        try:
            return await phase()
        finally:
            elapsed = time.monotonic() - started
            self.phase_seconds[_PHASE_BY_STATE[state]] = elapsed
            self.context.logger.info(f"{state.value} finished in {elapsed:.2f}s")

    async def process(self) -> ProcessingResult:
        """
        Run the full pipeline.

        Returns:
            ProcessingResult with status "success", "partial" or "error"

        Raises:
            asyncio.CancelledError: re-raised after a CANCELLED progress event
        """
        self.context.logger.info("=" * 60)
        self.context.logger.info(self.get_process_name())
        self.context.logger.info("=" * 60)

        try:
            self.emit_progress(ProcessingStatus.STARTED, 0, "Starting ETL run")

            # --------------------------------------------------
            # PHASE 1: VALIDATION
            # --------------------------------------------------
            self.state = ProcessorState.VALIDATING
            self.context.logger.info("Step 1/4: validating")
            validation = await self.validate()
            for warning in validation.warnings:
                self.context.logger.warning(warning)
            self.increment_warnings(len(validation.warnings))
            if not validation.valid:
                raise ValidationError(
                    f"Validation failed: {', '.join(validation.errors)}",
                    context={"errors": validation.errors}
                )

            # --------------------------------------------------
            # PHASE 2-4: EXTRACT, TRANSFORM, LOAD
            # --------------------------------------------------
            extracted = await self._run_phase(
                ProcessorState.EXTRACTING, "Step 2/4", 25,
                ProcessingStatus.EXTRACTING, "Extracting data",
                self.extract,
            )
            transformed = await self._run_phase(
                ProcessorState.TRANSFORMING, "Step 3/4", 50,
                ProcessingStatus.TRANSFORMING, "Transforming data",
                lambda: self.transform(extracted),
            )

            if self.options.dry_run:
                self.context.logger.warning("DRY-RUN: nothing will be written")
                return self._finish({"message": "dry-run, no data written"}, destination="dry-run")

            load_result = await self._run_phase(
                ProcessorState.LOADING, "Step 4/4", 75,
                ProcessingStatus.LOADING, "Loading data",
                lambda: self.load(transformed),
            )
            return self._finish(load_result or {})

        except asyncio.CancelledError:
            cancelled_in = self.state
            self.state = ProcessorState.ERROR
            self.stats.finished_at = utcnow()
            self.context.logger.warning(f"ETL run cancelled during {cancelled_in.value}")
            self.emit_progress(ProcessingStatus.CANCELLED, 0, "Run cancelled")
            raise

        except ValidationError as e:
            return self._fail(e, "Validation failed")

        except ETLException as e:
            return self._fail(e, "ETL run failed")

        except Exception as e:
            self.context.logger.exception("Unexpected error in ETL run")
            return self._fail(
                ETLException(
                    "Unexpected error in ETL run",
                    context={"state": self.state.value},
                    original_exception=e
                ),
                "ETL run failed"
            )

    def _finish(self, details: Dict[str, Any], destination: Optional[str] = None) -> ProcessingResult:
        self.state = ProcessorState.FINISHED
        self.stats.finished_at = utcnow()

        result = ProcessingResult(
            status=RunStatus.PARTIAL if self.stats.failures > 0 else RunStatus.SUCCESS,
            successes=self.stats.successes,
            failures=self.stats.failures,
            warnings=self.stats.warnings,
            elapsed_seconds=self.stats.elapsed_seconds(),
            phase_seconds=dict(self.phase_seconds),
            destination=destination or self.options.destino.value,
            legislatura=self.options.legislatura,
            stats=self.stats.model_copy(deep=True),
            details=details,
        )
        self.emit_progress(ProcessingStatus.DONE, 100, "Processing finished")
        self._log_result(result)
        return result

    def _fail(self, error: ETLException, message: str) -> ProcessingResult:
        failed_in = self.state
        self.state = ProcessorState.ERROR
        self.stats.finished_at = utcnow()

        self.context.logger.error(
            f"{message} during {failed_in.value}: {error.message}",
            extra={"error_context": error.to_dict()}
        )
        self.emit_progress(ProcessingStatus.ERROR, 0, f"Error: {error.message}")

        return ProcessingResult(
            status=RunStatus.ERROR,
            successes=self.stats.successes,
            failures=self.stats.failures,
            warnings=self.stats.warnings,
            elapsed_seconds=self.stats.elapsed_seconds(),
            phase_seconds=dict(self.phase_seconds),
            destination=self.options.destino.value,
            legislatura=self.options.legislatura,
            stats=self.stats.model_copy(deep=True),
            errors=[{**error.to_dict(), "phase": failed_in.value}],
        )

    def _log_result(self, result: ProcessingResult) -> None:
        log = self.context.logger
        log.info("=" * 60)
        log.info(f"RESULT: {result.status.value}")
        log.info(f"Successes: {result.successes}  Failures: {result.failures}  Warnings: {result.warnings}")
        log.info(f"Total time: {result.elapsed_seconds:.2f}s")
        if self.options.verbose:
            for phase, seconds in result.phase_seconds.items():
                log.info(f"  - {phase}: {seconds:.2f}s")
        log.info(f"Destination: {result.destination}")
        log.info("=" * 60)

    # ------------------------------------------------------------------
    # Helpers for subclasses
    # ------------------------------------------------------------------

    async def load_documents(self, documents: Iterable[Document]) -> Dict[str, Any]:
        """
        Write (collection_path, document_id, data) triples through the batch writer.

        Dropped (oversized) documents count as warnings; operations lost in a
        failed commit count as failures.
        """
        if self.writer is None:
            raise ETLException(
                "No document store configured for the load phase",
                context={"destination": self.options.destino.value}
            )

        documents = list(documents)
        self.add_phase_total(len(documents))

        dropped_before = self.writer.stats.dropped_documents
        committed_before = self.writer.stats.committed_operations
        lost_before = self.writer.stats.lost_operations

        for collection_path, document_id, data in documents:
            await self.writer.set(collection_path, document_id, data)
        await self.writer.commit()

        dropped = self.writer.stats.dropped_documents - dropped_before
        committed = self.writer.stats.committed_operations - committed_before
        lost = self.writer.stats.lost_operations - lost_before

        self.increment_successes(committed)
        self.increment_failures(lost)
        self.increment_warnings(dropped)

        return {
            "documents": len(documents),
            "committed": committed,
            "lost": lost,
            "dropped": dropped,
            "batches": len(self.writer.results),
        }

    def validate_common_params(self) -> ValidationResult:
        """Checks shared by every processor"""
        errors = []
        warnings = []
        opts = self.options

        if opts.legislatura is not None:
            if opts.legislatura < 1 or opts.legislatura > 58:
                errors.append(f"Legislature {opts.legislatura} outside the valid range (1-58)")
            elif opts.legislatura < 55:
                warnings.append(f"Legislature {opts.legislatura} is old and may have incomplete data")

        if opts.limite is not None and opts.limite <= 0:
            errors.append("Limit must be greater than zero")

        if opts.partido and not re.match(r"^[A-Z]{2,10}$", opts.partido):
            warnings.append("Party sigla looks malformed (use siglas such as PT, PSDB)")

        if opts.uf and not re.match(r"^[A-Z]{2}$", opts.uf):
            errors.append("UF must have exactly 2 upper-case letters (e.g. SP, RJ, MG)")

        if opts.data_inicio and opts.data_fim and opts.data_inicio > opts.data_fim:
            errors.append("Start date must not be after end date")

        if opts.destino == Destination.EMULATED_STORE and not self.context.settings.FIRESTORE_EMULATOR_HOST:
            warnings.append("FIRESTORE_EMULATOR_HOST not set, using 127.0.0.1:8000")

        return ValidationResult(valid=not errors, errors=errors, warnings=warnings)
