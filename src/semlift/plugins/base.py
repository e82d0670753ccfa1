"""
Plan providers and registries.

Plans can be imported by (provider, identifier) instead of by location. A
provider answers for one provider id; registries route requests to
providers and can be chained.

Usage:
    from semlift.plugins import DefaultPlanRegistry, CompositePlanRegistry

    local = DefaultPlanRegistry()
    local.register_plan("base-things", plan)       # import as {provider: local, id: base-things}

    registry = CompositePlanRegistry([local, DefaultPlanRegistry([OgcBblocksProvider(resolver)])])
    plan = registry.resolve("ogc-bblocks", "ogc.geo.features.feature")

Fall-through:
    CompositePlanRegistry moves to the next delegate only when a delegate
    raises PlanResolutionError with kind UNKNOWN_PROVIDER or
    UNKNOWN_IDENTIFIER. Every other error propagates immediately.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional, Protocol, runtime_checkable

from ..core.errors import PlanErrorKind, PlanResolutionError
from ..models.plan import LiftPlan

logger = logging.getLogger(__name__)

LOCAL_PROVIDER_ID = "local"


# =============================================================================
# Protocols
# =============================================================================

class PlanProvider(ABC):
    """Resolves identifiers within one provider namespace."""

    @property
    @abstractmethod
    def id(self) -> str:
        """Provider id used in plan imports."""
        pass

    @abstractmethod
    def resolve(self, identifier: str) -> LiftPlan:
        """Return the plan for ``identifier``.

        Raises:
            PlanResolutionError: kind UNKNOWN_IDENTIFIER when the id is not known.
        """
        pass


@runtime_checkable
class PlanResolver(Protocol):
    """Anything that resolves (provider id, identifier) to a plan."""

    def resolve(self, provider_id: str, identifier: str) -> LiftPlan:
        ...


def unknown_provider(provider_id: str) -> PlanResolutionError:
    return PlanResolutionError(PlanErrorKind.UNKNOWN_PROVIDER, f"Unknown plan provider: {provider_id}")


def unknown_identifier(identifier: str) -> PlanResolutionError:
    return PlanResolutionError(PlanErrorKind.UNKNOWN_IDENTIFIER, f"Unknown plan id: {identifier}")


# =============================================================================
# Registries
# =============================================================================

class PlanRegistry:
    """Routes to the first provider whose id matches."""

    def __init__(self, providers: Iterable[PlanProvider]):
        self._providers: List[PlanProvider] = list(providers)

    def resolve(self, provider_id: str, identifier: str) -> LiftPlan:
        for provider in self._providers:
            if provider.id == provider_id:
                return provider.resolve(identifier)
        raise unknown_provider(provider_id)


class DefaultPlanRegistry:
    """Provider registry plus plans registered in-process under ``local``."""

    def __init__(self, providers: Iterable[PlanProvider] = ()):
        self._providers: Dict[str, PlanProvider] = {}
        self._plans: Dict[str, LiftPlan] = {}
        for provider in providers:
            self.register_provider(provider)

    def register_provider(self, provider: PlanProvider) -> None:
        if provider.id == LOCAL_PROVIDER_ID:
            raise ValueError(f"Provider id '{LOCAL_PROVIDER_ID}' is reserved")
        self._providers[provider.id] = provider
        logger.debug(f"Registered plan provider {provider.id}")

    def register_plan(self, identifier: str, plan: LiftPlan) -> None:
        self._plans[identifier] = plan

    def resolve_plan(self, identifier: str) -> LiftPlan:
        plan = self._plans.get(identifier)
        if plan is None:
            raise unknown_identifier(identifier)
        return plan

    def resolve(self, provider_id: str, identifier: str) -> LiftPlan:
        if provider_id == LOCAL_PROVIDER_ID:
            return self.resolve_plan(identifier)
        provider = self._providers.get(provider_id)
        if provider is None:
            raise unknown_provider(provider_id)
        return provider.resolve(identifier)

    @property
    def provider_ids(self) -> List[str]:
        return [LOCAL_PROVIDER_ID] + sorted(self._providers)


class CompositePlanRegistry:
    """Tries each delegate in order, falling through only on unknown-id errors."""

    def __init__(self, registries: Iterable[PlanResolver]):
        self._registries: List[PlanResolver] = list(registries)

    def resolve(self, provider_id: str, identifier: str) -> LiftPlan:
        last_error: Optional[PlanResolutionError] = None
        for registry in self._registries:
            try:
                return registry.resolve(provider_id, identifier)
            except PlanResolutionError as e:
                if not e.is_unknown:
                    raise
                logger.debug(f"{type(registry).__name__} cannot resolve {provider_id}:{identifier}: {e}")
                last_error = e
        if last_error is not None:
            raise last_error
        raise unknown_provider(provider_id)
