"""Resolution service: builds a universe once and resolves requests against it."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Union

try:
    from ..common.errors import FeatureResolveError
    from ..common.logging_utils import Timer, extra_context, is_debug_enabled
    from ..constants import Constants, TieBreak
    from ..versioning.macro import RangeExpansionRule
    from ..versioning.parser import dependency_range, tokenize_root
except ImportError:
    from common.errors import FeatureResolveError
    from common.logging_utils import Timer, extra_context, is_debug_enabled
    from constants import Constants, TieBreak
    from versioning.macro import RangeExpansionRule
    from versioning.parser import dependency_range, tokenize_root
from .builder import BuildReport, build_universe
from .engine import resolve
from .index import ResourceIndex
from .models import BundleDescriptor, Closure, Feature, Requirement
from .namespaces import identity_requirement

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolutionOutcome:
    """Result of one request in a batch: a closure or the error that stopped it."""

    request: tuple
    closure: Optional[Closure] = None
    error: Optional[FeatureResolveError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ResolutionService:
    """Resolve feature requests against an immutable universe.

    The universe is fully built before any resolution starts, so resolve
    calls may run concurrently.
    """

    def __init__(
        self,
        universe: ResourceIndex,
        policy: Optional[RangeExpansionRule] = None,
        tie_break: Union[TieBreak, str, None] = None,
        report: Optional[BuildReport] = None,
        lenient: bool = False,
    ):
        self.universe = universe
        self.policy = policy if policy is not None else RangeExpansionRule(Constants.RANGE_POLICY)
        self.tie_break = tie_break if tie_break is not None else Constants.TIE_BREAK
        self.report = report
        self.lenient = lenient

    @classmethod
    def from_descriptors(
        cls,
        bundles: Iterable[BundleDescriptor] = (),
        features: Iterable[Feature] = (),
        policy: Optional[RangeExpansionRule] = None,
        tie_break: Union[TieBreak, str, None] = None,
        lenient: Optional[bool] = None,
        strict: bool = False,
    ) -> "ResolutionService":
        """Build the universe and wrap it in a service.

        With ``strict`` the first build failure is raised; otherwise failing
        entries are left out and recorded on ``report``.
        """
        policy = policy if policy is not None else RangeExpansionRule(Constants.RANGE_POLICY)
        lenient = Constants.LENIENT_VERSIONS if lenient is None else lenient
        report = build_universe(bundles, features, policy, lenient)
        if strict:
            report.raise_first()
        return cls(report.index, policy, tie_break, report, lenient)

    def root_requirement(self, token: str) -> Requirement:
        """Turn ``name`` or ``name/version-expression`` into a root requirement."""
        name, expr = tokenize_root(token)
        return identity_requirement(name, dependency_range(expr, self.policy, self.lenient), Constants.TYPE_FEATURE)

    def resolve(self, roots: Sequence[Requirement]) -> Closure:
        return resolve(roots, self.universe, self.tie_break)

    def resolve_features(self, tokens: Iterable[str]) -> Closure:
        """Resolve feature tokens together as one root set."""
        tokens = list(tokens)
        with Timer() as timer:
            closure = self.resolve([self.root_requirement(token) for token in tokens])
        logger.info("Resolved %d root(s) into %d resource(s)", len(tokens), len(closure),
                    extra=extra_context(event="resolve", component="service", outcome="success",
                                        duration_ms=timer.duration_ms()))
        return closure

    def _outcome(self, request: Sequence[str]) -> ResolutionOutcome:
        try:
            return ResolutionOutcome(tuple(request), closure=self.resolve_features(request))
        except FeatureResolveError as exc:
            logger.warning("Resolution of %s failed: %s", ", ".join(request), exc)
            return ResolutionOutcome(tuple(request), error=exc)

    def resolve_many(
        self, requests: Sequence[Sequence[str]], max_workers: Optional[int] = None
    ) -> List[ResolutionOutcome]:
        """Resolve independent requests in parallel, returning outcomes in request order."""
        if not requests:
            return []
        workers = max(1, max_workers or Constants.MAX_WORKERS)
        outcomes: List[Optional[ResolutionOutcome]] = [None] * len(requests)
        with ThreadPoolExecutor(max_workers=workers) as executor:
            future_to_index = {
                executor.submit(self._outcome, list(request)): i for i, request in enumerate(requests)
            }
            for future in as_completed(future_to_index):
                outcomes[future_to_index[future]] = future.result()
        if is_debug_enabled(logger):
            logger.debug(
                "Batch resolution finished",
                extra=extra_context(event="function_exit", component="service", action="resolve_many",
                                    count=len(requests), failed=sum(1 for o in outcomes if not o.ok))
            )
        return outcomes
