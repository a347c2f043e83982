"""
ETL engine for the Brazilian legislative open-data APIs.

Modules:
    retry: Fixed-delay RetryExecutor
    pagination: Page-number Paginator with page ceilings
    concurrency: Chunked ConcurrencyLimiter
    consolidation: Shape-probing Consolidator and de-duplication helpers
    context: Per-run ProcessingContext
    processor: ETLProcessor template (validate, extract, transform, load)
    cli: legis-etl command line

Subpackages:
    extractors: HTTP client for the Senado and Camara APIs
    loaders: BatchWriter and document-store back-ends
    processors: Bills, boards and deputy speeches

Usage:
    from etl.processors import DiscursosDeputadosProcessor

    async with LegislativeApiClient(settings.api_policy("camara")) as client:
        processor = DiscursosDeputadosProcessor(options, client=client, store=store)
        result = await processor.process()
"""

__all__ = [
    "ConcurrencyLimiter",
    "Consolidator",
    "ETLProcessor",
    "Paginator",
    "ProcessingContext",
    "RetryExecutor",
]
