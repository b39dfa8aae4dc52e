from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Sequence, Set, Tuple

from ..model.portfolio import Asset

LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class AssemblyResult:
    assets: List[Asset]
    cycles: Tuple[str, ...] = ()

    @property
    def has_cycles(self) -> bool:
        return bool(self.cycles)


def _children_index(assets: Sequence[Asset]) -> Dict[str, List[str]]:
    index: Dict[str, List[str]] = {}
    for asset in assets:
        if asset.parent_ip_id:
            index.setdefault(asset.parent_ip_id, []).append(asset.ip_id)
    return index


def _walk_for_cycles(
    start: str,
    children: Dict[str, List[str]],
    visited: Set[str],
) -> List[str]:
    """
    Depth-first walk from `start` tracking the ancestors on the current path.

    Returns the ids that were reached while already being their own ancestor.
    Descent stops at those ids; the rest of the walk continues.
    """
    found: List[str] = []
    # Each frame: (node id, ancestors of that node on the current path)
    stack: List[Tuple[str, frozenset]] = [(start, frozenset())]
    while stack:
        ip_id, ancestors = stack.pop()
        if ip_id in ancestors:
            found.append(ip_id)
            continue
        if ip_id in visited:
            continue
        visited.add(ip_id)
        path = ancestors | {ip_id}
        # Reverse so children are explored in input order.
        for child_id in reversed(children.get(ip_id, [])):
            stack.append((child_id, path))
    return found


def detect_cycles(assets: Sequence[Asset], *, logger: Optional[logging.Logger] = None) -> Tuple[str, ...]:
    """Report ids that close a cycle in the parent references of `assets`."""
    log = logger or LOG
    children = {a.ip_id: list(a.child_ip_ids) for a in assets}
    visited: Set[str] = set()
    cycles: List[str] = []

    for asset in assets:
        if not asset.parent_ip_id:
            cycles.extend(_walk_for_cycles(asset.ip_id, children, visited))

    # Anything not reachable from a root sits on, or hangs below, a cycle.
    for asset in assets:
        if asset.ip_id not in visited:
            cycles.extend(_walk_for_cycles(asset.ip_id, children, visited))

    for ip_id in cycles:
        log.warning(
            "Circular reference detected in IP asset relationships for %s",
            ip_id,
            extra={"step": "assemble", "phase": "warning", "ip_id": ip_id},
        )
    return tuple(cycles)


def build_relationship_graph(
    assets: List[Asset],
    *,
    logger: Optional[logging.Logger] = None,
    in_place: bool = True,
) -> AssemblyResult:
    """
    Rebuild parent/child links for a flat asset list and check it for cycles.

    Every asset's `child_ip_ids` becomes the ids of all assets whose
    `parent_ip_id` equals its `ip_id`, in input order, and `derivative_count`
    its length. Stored child lists are discarded.

    With `in_place=True` (default) the caller's Asset objects are updated and the
    same list is returned in the result; callers sharing the list between
    threads should pass `in_place=False` to work on copies instead.

    Cycles are logged as warnings and returned in the result, never raised.
    """
    target = assets if in_place else [replace(a, child_ip_ids=[], metadata=dict(a.metadata)) for a in assets]
    if not target:
        return AssemblyResult(assets=target)

    index = _children_index(target)
    for asset in target:
        asset.child_ip_ids = list(index.get(asset.ip_id, []))
        asset.derivative_count = len(asset.child_ip_ids)

    cycles = detect_cycles(target, logger=logger)
    return AssemblyResult(assets=target, cycles=cycles)
