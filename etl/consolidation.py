"""
Merge extraction fragments into one consolidated record.

The Senado and Camara APIs nest their payload arrays at different depths
(``ProcessosResultset.Processos.Processo``, ``ListaParlamentarLegislatura.
Parlamentares.Parlamentar``, ``dados``, bare arrays, ...) and return a single
object instead of a one-element array for singular results. Each probe below
either finds the payload array or returns None; probes run in order and the
first hit wins.
"""

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from schemas.etl import ConsolidatedRecord, ExtractionFragment

logger = logging.getLogger(__name__)

Probe = Callable[[Any], Optional[List[Any]]]


def _as_list(value: Any) -> Optional[List[Any]]:
    if isinstance(value, list):
        return value
    if isinstance(value, dict):
        return [value]
    return None


def _is_plural_of(container_key: str, item_key: str) -> bool:
    container = container_key.lower()
    item = item_key.lower()
    return container != item and container.startswith(item)


def _find_nested_items(node: Dict[str, Any]) -> Optional[List[Any]]:
    """Find ``<Plural>.<Singular>`` (or any ``A.B`` array) one level down."""
    for outer_key, outer in node.items():
        if not isinstance(outer, dict):
            continue
        for inner_key, inner in outer.items():
            if isinstance(inner, list):
                return inner
            if isinstance(inner, dict) and _is_plural_of(outer_key, inner_key):
                return [inner]
    return None


def probe_resultset(data: Any) -> Optional[List[Any]]:
    """
    ``<Name>Resultset.<Plural>.<Singular>`` and other single-key envelopes
    such as ``ListaParlamentarLegislatura.Parlamentares.Parlamentar``.
    """
    if not isinstance(data, dict):
        return None
    for key, value in data.items():
        if not isinstance(value, dict):
            continue
        if key.lower().endswith("resultset") or len(data) == 1:
            found = _find_nested_items(value)
            if found is not None:
                return found
    return None


def probe_nested(data: Any) -> Optional[List[Any]]:
    """``<Plural>.<Singular>`` directly under the root"""
    if not isinstance(data, dict):
        return None
    return _find_nested_items(data)


def _probe_key(key: str) -> Probe:
    def probe(data: Any) -> Optional[List[Any]]:
        if isinstance(data, dict) and key in data:
            return _as_list(data[key])
        return None
    probe.__name__ = f"probe_{key}"
    return probe


probe_dados = _probe_key("dados")
probe_items = _probe_key("items")
probe_item = _probe_key("item")


def probe_bare_list(data: Any) -> Optional[List[Any]]:
    return data if isinstance(data, list) else None


def probe_first_array(data: Any) -> Optional[List[Any]]:
    """Last resort: first root property holding an array"""
    if not isinstance(data, dict):
        return None
    for value in data.values():
        if isinstance(value, list):
            return value
    return None


DEFAULT_PROBES: Sequence[Probe] = (
    probe_resultset,
    probe_dados,
    probe_nested,
    probe_items,
    probe_item,
    probe_bare_list,
    probe_first_array,
)


def locate_items(data: Any, probes: Sequence[Probe] = DEFAULT_PROBES) -> Optional[List[Any]]:
    """Return the payload array of one response, or None if no shape matches."""
    if data is None:
        return None
    for probe in probes:
        found = probe(data)
        if found is not None:
            return found
    return None


class Consolidator:
    """
    Concatenate the payload arrays of several fragments.

    No de-duplication happens here: the same bill may legitimately appear
    in adjacent date windows. Use ``deduplicate`` on business ids when
    building documents.
    """

    def __init__(self, probes: Sequence[Probe] = DEFAULT_PROBES):
        self.probes = tuple(probes)

    def consolidate(
        self,
        fragments: Iterable[ExtractionFragment],
        key: Optional[str] = None,
    ) -> Optional[ConsolidatedRecord]:
        items: List[Any] = []
        sources: List[str] = []
        skipped = 0

        for fragment in fragments:
            if not fragment.ok:
                skipped += 1
                logger.warning(
                    f"Skipping fragment {fragment.source}: "
                    f"{fragment.error or 'no data'}"
                )
                continue

            found = locate_items(fragment.data, self.probes)
            if found is None:
                skipped += 1
                shape = list(fragment.data.keys()) if isinstance(fragment.data, dict) else type(fragment.data).__name__
                logger.warning(f"No known payload shape in {fragment.source} (keys: {shape})")
                continue

            logger.debug(f"{len(found)} items from {fragment.source}")
            items.extend(found)
            sources.append(fragment.source)

        if not items:
            logger.warning(f"Nothing to consolidate for {key or 'record'} ({skipped} fragments skipped)")
            return None

        return ConsolidatedRecord(key=key, items=items, sources=sources, skipped=skipped)


def deduplicate(items: Iterable[Any], key_fn: Callable[[Any], Any]) -> List[Any]:
    """
    Keep the last occurrence of each business id, in order of first appearance.

    Items whose key is None are kept as-is.
    """
    order: List[Any] = []
    latest: Dict[Any, Any] = {}
    passthrough: List[Any] = []

    for item in items:
        k = key_fn(item)
        if k is None:
            order.append(("", len(passthrough)))
            passthrough.append(item)
            continue
        if k not in latest:
            order.append(("k", k))
        latest[k] = item

    return [latest[v] if tag == "k" else passthrough[v] for tag, v in order]


def count_by(items: Iterable[Any], field: str) -> Dict[str, int]:
    """Count items by the string value of a top-level field"""
    counts: Dict[str, int] = {}
    for item in items:
        value = item.get(field) if isinstance(item, dict) else None
        label = str(value) if value is not None else "unknown"
        counts[label] = counts.get(label, 0) + 1
    return counts
