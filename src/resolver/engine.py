"""Greedy closure engine.

Resolution is a single worklist pass: each requirement is satisfied by a
resource that is already selected or, failing that, by the highest-versioned
provider whose logical name is still free. A later requirement that the
already-selected version of a name does not satisfy is a VersionConflict;
there is no backtracking.

Optional requirements are deferred until every mandatory requirement has
been processed. Each one is then tried on a copy of the resolution state;
if the attempt raises a ResolutionError the copy is dropped and the
requirement is reported in ``Closure.missing_optional``.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Deque, Dict, Iterable, List, Optional, Sequence, Tuple, Union

try:
    from ..common.errors import ResolutionError, UnsatisfiableRequirement, VersionConflict
    from ..common.logging_utils import Timer, extra_context, is_debug_enabled
    from ..constants import Constants, TieBreak
except ImportError:
    from common.errors import ResolutionError, UnsatisfiableRequirement, VersionConflict
    from common.logging_utils import Timer, extra_context, is_debug_enabled
    from constants import Constants, TieBreak
from .index import ResourceIndex
from .models import Closure, Requirement, Resource, ResourceId
from .namespaces import REGISTRY

logger = logging.getLogger(__name__)


class _State:
    """Mutable working state of one resolve() call."""

    def __init__(self):
        self.selected: Dict[Tuple[str, str], Resource] = {}
        self.order: List[Resource] = []
        self.queue: Deque[Requirement] = deque()
        self.deferred: Deque[Requirement] = deque()

    def copy(self) -> "_State":
        clone = _State()
        clone.selected = dict(self.selected)
        clone.order = list(self.order)
        clone.queue = deque(self.queue)
        clone.deferred = deque(self.deferred)
        return clone

    def push(self, requirement: Requirement) -> None:
        if requirement.optional:
            self.deferred.append(requirement)
        else:
            self.queue.append(requirement)

    def select(self, resource: Resource) -> None:
        self.selected[resource.id.logical_key] = resource
        self.order.append(resource)
        for requirement in resource.requirements:
            self.push(requirement)

    def satisfied_by_selected(self, requirement: Requirement) -> Optional[Resource]:
        for resource in self.order:
            if _provides(resource, requirement):
                return resource
        return None

    def same_name(self, requirement: Requirement) -> Optional[Resource]:
        """Selected resource carrying the identity name the requirement targets."""
        if not REGISTRY.is_identifying(requirement.namespace) or not requirement.name:
            return None
        kind = requirement.kind
        for (selected_kind, name), resource in self.selected.items():
            if name == requirement.name and (kind is None or kind == selected_kind):
                return resource
        return None


def _provides(resource: Resource, requirement: Requirement) -> bool:
    return any(requirement.matches(cap) for cap in resource.capabilities_in(requirement.namespace))


def _tie_break(value: Union[TieBreak, str, None]) -> TieBreak:
    if isinstance(value, TieBreak):
        return value
    return TieBreak(str(value or Constants.TIE_BREAK).lower())


def _choose(candidates: Sequence[Resource], tie_break: TieBreak) -> Resource:
    """Highest version wins; ties go to the first or last discovered provider."""
    best = max(resource.version for resource in candidates)
    top = [resource for resource in candidates if resource.version == best]
    return top[0] if tie_break is TieBreak.FIRST else top[-1]


def _process(state: _State, requirement: Requirement, universe: ResourceIndex, tie_break: TieBreak) -> None:
    if state.satisfied_by_selected(requirement) is not None:
        return
    existing = state.same_name(requirement)
    if existing is not None:
        raise VersionConflict(requirement.name, existing.version, requirement.version_range, requirement)
    providers = universe.find_providers(requirement)
    free = [res for res in providers if res.id.logical_key not in state.selected]
    if not free:
        if providers:
            blocker = state.selected[providers[0].id.logical_key]
            raise VersionConflict(blocker.name, blocker.version, requirement.version_range, requirement)
        raise UnsatisfiableRequirement(requirement)
    chosen = _choose(free, tie_break)
    if is_debug_enabled(logger):
        logger.debug(
            "Selected provider",
            extra=extra_context(event="decision", component="engine", action="select",
                                requirement=str(requirement), chosen=str(chosen.id),
                                candidates=len(free))
        )
    state.select(chosen)


def _drain(state: _State, universe: ResourceIndex, tie_break: TieBreak) -> None:
    while state.queue:
        _process(state, state.queue.popleft(), universe, tie_break)


def _edges(order: Iterable[Resource], universe: ResourceIndex) -> Dict[ResourceId, frozenset]:
    """Wire every requirement of every selected resource to one selected provider.

    The provider is the first selected resource in universe order, so edges do
    not depend on the order in which resources were selected.
    """
    selected_ids = {res.id for res in order}
    ranked = [res for res in universe if res.id in selected_ids]
    edges: Dict[ResourceId, frozenset] = {}
    for resource in order:
        targets = set()
        for requirement in resource.requirements:
            for candidate in ranked:
                if _provides(candidate, requirement):
                    targets.add(candidate.id)
                    break
        targets.discard(resource.id)
        edges[resource.id] = frozenset(targets)
    return edges


def resolve(
    roots: Iterable[Requirement],
    universe: ResourceIndex,
    tie_break: Union[TieBreak, str, None] = None,
) -> Closure:
    """Compute the closure of ``roots`` over ``universe``.

    Args:
        roots: Requirements to satisfy; optional ones may be skipped.
        universe: Immutable resource index, shared read-only.
        tie_break: Provider preference at equal versions (default from Constants).

    Returns:
        Closure: selected resources and their dependency edges.

    Raises:
        UnsatisfiableRequirement: a mandatory requirement has no provider.
        VersionConflict: a selected name does not satisfy a later range.
    """
    strategy = _tie_break(tie_break)
    roots = tuple(roots)
    state = _State()
    for requirement in roots:
        state.push(requirement)

    with Timer() as timer:
        _drain(state, universe, strategy)
        missing: List[Requirement] = []
        while state.deferred:
            requirement = state.deferred.popleft()
            if state.satisfied_by_selected(requirement) is not None:
                continue
            trial = state.copy()
            trial.deferred.clear()
            try:
                _process(trial, requirement, universe, strategy)
                _drain(trial, universe, strategy)
            except ResolutionError as exc:
                missing.append(requirement)
                logger.debug(
                    "Skipping optional requirement %s: %s", requirement, exc,
                    extra=extra_context(event="decision", component="engine", action="optional",
                                        outcome="skipped", requirement=str(requirement))
                )
                continue
            trial.deferred = deque(list(state.deferred) + list(trial.deferred))
            state = trial

    # a later trial may have selected a provider for an earlier miss
    missing = [req for req in missing if state.satisfied_by_selected(req) is None]
    root_ids = []
    for requirement in roots:
        provider = state.satisfied_by_selected(requirement)
        if provider is not None and provider.id not in root_ids:
            root_ids.append(provider.id)

    closure = Closure(
        selected=frozenset(res.id for res in state.order),
        edges=_edges(state.order, universe),
        resources=tuple(state.order),
        roots=tuple(root_ids),
        missing_optional=tuple(missing),
    )
    if is_debug_enabled(logger):
        logger.debug(
            "Resolution complete",
            extra=extra_context(event="function_exit", component="engine", action="resolve",
                                outcome="success", selected=len(closure), duration_ms=timer.duration_ms())
        )
    return closure
