"""Loading of contributions declared under the ``callsheet.*`` entry point groups."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from importlib.metadata import entry_points
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DiscoveredContribution:
    """A loaded entry point: its name, its group and the object it points at."""

    name: str
    group: str
    value: Any


def discover(
    group: str,
    *,
    exclude_names: frozenset[str] = frozenset(),
) -> list[DiscoveredContribution]:
    """Load every entry point of ``group`` in name order.

    An entry point that fails to import is logged and skipped; the rest of
    the application still starts.

    Args:
        group: Entry point group, e.g. ``"callsheet.routers"``.
        exclude_names: Entry point names not to load.

    Returns:
        The loaded contributions.
    """
    loaded: list[DiscoveredContribution] = []
    for ep in sorted(entry_points(group=group), key=lambda ep: ep.name):
        if ep.name in exclude_names:
            logger.debug("entry_point_excluded", extra={"group": group, "entry_point": ep.name})
            continue
        try:
            value = ep.load()
        except Exception:
            logger.exception(
                "entry_point_load_failed", extra={"group": group, "entry_point": ep.name}
            )
            continue
        loaded.append(DiscoveredContribution(name=ep.name, group=group, value=value))

    logger.info("entry_points_discovered", extra={"group": group, "count": len(loaded)})
    return loaded
