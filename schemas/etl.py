"""
Pydantic schemas for run options, pipeline data and results
"""

from pydantic import BaseModel, Field, validator
from typing import Optional, List, Dict, Any, Tuple
from datetime import date, datetime, timezone

from core.exceptions import InvalidPathError
from schemas.enums import (
    Destination,
    OperationKind,
    ProcessingStatus,
    RunStatus,
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ApiPolicy(BaseModel):
    """Request pacing and retry policy for one API family"""

    family: str
    base_url: str
    timeout: float = 30.0
    retry_attempts: int = Field(3, ge=1)
    retry_delay: float = Field(1.0, ge=0)
    request_pause: float = Field(0.0, ge=0)
    suffix: str = ""

    class Config:
        frozen = True


class RunOptions(BaseModel):
    """
    Immutable input of a job, built once when the CLI is parsed.
    """

    legislatura: Optional[int] = None
    legislator_id: Optional[str] = None
    limite: Optional[int] = None
    data_inicio: Optional[date] = None
    data_fim: Optional[date] = None
    destino: Destination = Destination.PRIMARY_STORE
    concorrencia: int = Field(3, ge=1)
    incremental: bool = False
    verbose: bool = False
    dry_run: bool = False
    partido: Optional[str] = None
    uf: Optional[str] = None

    class Config:
        frozen = True

    @validator("partido", "uf", pre=True)
    def upper_sigla(cls, v):
        """Siglas are upper-case in both APIs"""
        if isinstance(v, str):
            v = v.strip().upper()
            return v or None
        return v


class PhaseStats(BaseModel):
    """Counters of one pipeline phase"""

    total: int = 0
    successes: int = 0
    failures: int = 0


class ProcessingStats(BaseModel):
    """
    Mutable counters owned by the orchestrator.

    Only ETLProcessor increment methods write here.
    """

    started_at: datetime = Field(default_factory=utcnow)
    finished_at: Optional[datetime] = None
    processed: int = 0
    successes: int = 0
    failures: int = 0
    warnings: int = 0
    extraction: PhaseStats = Field(default_factory=PhaseStats)
    transformation: PhaseStats = Field(default_factory=PhaseStats)
    load: PhaseStats = Field(default_factory=PhaseStats)

    def elapsed_seconds(self) -> float:
        end = self.finished_at or utcnow()
        return (end - self.started_at).total_seconds()


class ExtractionFragment(BaseModel):
    """One API response plus its provenance"""

    source: str
    params: Dict[str, Any] = Field(default_factory=dict)
    fetched_at: datetime = Field(default_factory=utcnow)
    data: Any = None
    error: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    class Config:
        frozen = True

    @property
    def ok(self) -> bool:
        return self.error is None and self.data is not None


class ConsolidatedRecord(BaseModel):
    """Items merged from one or more fragments, ready for transformation"""

    key: Optional[str] = None
    items: List[Any] = Field(default_factory=list)
    sources: List[str] = Field(default_factory=list)
    skipped: int = 0


class DocumentPath(BaseModel):
    """
    Store location as alternating collection/document segments.

    Built once from a collection path and a document id; always has an
    even number of non-empty segments.
    """

    segments: Tuple[str, ...]

    class Config:
        frozen = True

    @classmethod
    def parse(cls, collection_path: str, document_id: Any) -> "DocumentPath":
        collection = (collection_path or "").strip().strip("/")
        doc_id = str(document_id if document_id is not None else "").strip().strip("/")

        if not collection or not doc_id:
            raise InvalidPathError(
                "Collection path and document id must be non-empty",
                context={"collection_path": collection_path, "document_id": document_id}
            )

        segments = tuple(collection.split("/")) + tuple(doc_id.split("/"))
        if any(not s.strip() for s in segments) or len(segments) % 2 != 0:
            raise InvalidPathError(
                f"Invalid path {'/'.join(segments)}: expected collection/document pairs",
                context={"collection_path": collection_path, "document_id": document_id}
            )
        return cls(segments=segments)

    @property
    def collection(self) -> str:
        return "/".join(self.segments[:-1])

    @property
    def document_id(self) -> str:
        return self.segments[-1]

    def __str__(self) -> str:
        return "/".join(self.segments)


class BatchOperation(BaseModel):
    """A pending write owned by one BatchWriter"""

    kind: OperationKind
    path: DocumentPath
    data: Optional[Dict[str, Any]] = None
    merge: bool = False
    size_bytes: int = 0

    class Config:
        frozen = True


class BatchResult(BaseModel):
    """Outcome of a single commit"""

    total: int = 0
    successes: int = 0
    failures: int = 0
    duration_seconds: float = 0.0
    error: Optional[str] = None


class ProgressEvent(BaseModel):
    """Emitted by processors, never stored"""

    status: ProcessingStatus
    percent: int = Field(..., ge=0, le=100)
    message: str
    details: Optional[Dict[str, Any]] = None

    class Config:
        frozen = True


class ValidationResult(BaseModel):
    """Outcome of a processor's validate() phase"""

    valid: bool = True
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

    def merge(self, other: "ValidationResult") -> "ValidationResult":
        errors = self.errors + other.errors
        return ValidationResult(
            valid=not errors,
            errors=errors,
            warnings=self.warnings + other.warnings,
        )


class ProcessingResult(BaseModel):
    """Structured outcome returned by ETLProcessor.process()"""

    status: RunStatus
    successes: int = 0
    failures: int = 0
    warnings: int = 0
    elapsed_seconds: float = 0.0
    phase_seconds: Dict[str, float] = Field(default_factory=dict)
    destination: str
    legislatura: Optional[int] = None
    stats: Optional[ProcessingStats] = None
    errors: List[Dict[str, Any]] = Field(default_factory=list)
    details: Dict[str, Any] = Field(default_factory=dict)

    @property
    def exit_code(self) -> int:
        return 1 if self.status == RunStatus.ERROR else 0
