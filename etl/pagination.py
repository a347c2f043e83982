"""
Page-number pagination over list endpoints.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from core.exceptions import ApiError
from etl.consolidation import locate_items
from etl.retry import RetryExecutor

logger = logging.getLogger(__name__)

FetchPage = Callable[[str, Dict[str, Any]], Awaitable[Any]]

MAX_PAGES_FULL = 100
MAX_PAGES_INCREMENTAL = 20


def default_max_pages(incremental: bool) -> int:
    return MAX_PAGES_INCREMENTAL if incremental else MAX_PAGES_FULL


class Paginator:
    """
    Collect every item of a paginated resource.

    Stops on a short page, an empty page, or after ``max_pages`` requests.
    A page whose retries are exhausted fails the whole call; pages already
    collected are discarded.
    """

    def __init__(
        self,
        fetch_page: FetchPage,
        retry: Optional[RetryExecutor] = None,
        page_size: int = 100,
        page_param: str = "pagina",
        size_param: str = "itens",
    ):
        self.fetch_page = fetch_page
        self.retry = retry or RetryExecutor()
        self.page_size = page_size
        self.page_param = page_param
        self.size_param = size_param

    async def get_all_pages(
        self,
        endpoint: str,
        base_params: Optional[Dict[str, Any]] = None,
        context: Optional[str] = None,
        max_pages: int = MAX_PAGES_FULL,
    ) -> List[Any]:
        label = context or endpoint
        results: List[Any] = []
        page = 1

        logger.info(f"Starting paginated extraction of {label}")

        while page <= max_pages:
            params = {
                **(base_params or {}),
                self.page_param: page,
                self.size_param: self.page_size,
            }

            response = await self.retry.run(
                lambda: self.fetch_page(endpoint, params),
                label=f"{label} - page {page}",
            )

            items = locate_items(response)
            if items is None:
                raise ApiError(
                    f"Unrecognized page payload for {label}",
                    endpoint=endpoint,
                    context={"page": page}
                )
            if not items:
                break

            results.extend(items)
            logger.debug(f"Page {page}: {len(items)} items (total: {len(results)})")

            if len(items) < self.page_size:
                break
            page += 1
        else:
            logger.warning(f"Stopped {label} at the {max_pages}-page ceiling")

        logger.info(f"Paginated extraction of {label} finished: {len(results)} items")
        return results
