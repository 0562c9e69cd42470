"""
Reference-list filtering against the individuals that pass outlier QC.

External individual lists (e.g. whole-genome-sequenced donors) are intersected
with the passing set while keeping each list's own order. IDs that never
appeared in the expression matrix are dropped silently.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List

logger = logging.getLogger(__name__)

__all__ = ['IdListFilterResult', 'filter_id_list', 'filter_id_lists']


@dataclass
class IdListFilterResult:
    """A filtered individual list with provenance."""
    name: str
    kept: List[str]
    dropped: List[str]
    parameters: Dict[str, Any] = field(default_factory=dict)

    @property
    def n_kept(self) -> int:
        return len(self.kept)

    @property
    def n_dropped(self) -> int:
        return len(self.dropped)


def filter_id_list(ids: Iterable[str], passing: Iterable[str]) -> List[str]:
    """
    Keep the IDs that are in ``passing``, preserving order and repeats.

    Examples:
        >>> filter_id_list(["B", "X", "A"], passing=["A", "B", "C"])
        ['B', 'A']
    """
    passing = set(passing)
    return [i for i in ids if i in passing]


def filter_id_lists(
    id_lists: Dict[str, List[str]],
    passing: Iterable[str],
) -> Dict[str, IdListFilterResult]:
    """
    Filter several named lists against the same passing set.

    Args:
        id_lists: Mapping of list name → IDs
        passing: Individuals that passed the outlier burden filter

    Returns:
        Mapping of list name → IdListFilterResult
    """
    passing = set(passing)
    results = {}
    for name, ids in id_lists.items():
        kept = filter_id_list(ids, passing)
        dropped = [i for i in ids if i not in passing]
        results[name] = IdListFilterResult(
            name=name,
            kept=kept,
            dropped=dropped,
            parameters={"n_passing": len(passing)},
        )
        logger.info(
            f"Filtered {name}: kept {len(kept)}/{len(ids)} individuals, "
            f"dropped {len(dropped)}"
        )
    return results
