"""
Pydantic schemas and enums shared by the pipeline.

Modules:
    enums: Destinations, progress/lifecycle states, write kinds
    etl: Run options, stats, fragments, records, batch operations, results
"""

__all__ = [
    "Destination",
    "ProcessingStatus",
    "ProcessorState",
    "RunStatus",
    "OperationKind",
    "ApiPolicy",
    "RunOptions",
    "PhaseStats",
    "ProcessingStats",
    "ExtractionFragment",
    "ConsolidatedRecord",
    "DocumentPath",
    "BatchOperation",
    "BatchResult",
    "ProgressEvent",
    "ValidationResult",
    "ProcessingResult",
]
