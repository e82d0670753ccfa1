"""
Plan merge rules.

Given the fully resolved imports of a plan (in import order) and the plan's
own parts:

- context: imported contexts, then the local one, as one ``@context`` array
- pre/post steps: imported steps first (import order), then local steps
- identifier rules: imported rules, then local context-level rules, then
  local plan-level rules
- input: the local input, else the first import that has one
- metadata scalars: local value, else the first import's value
- metadata lists: the local list if non-empty, else the distinct union of
  the imports' lists in import order
"""

from dataclasses import replace
from typing import Any, Iterable, List, Optional, Sequence

from ..models.plan import (
    ContextSpec,
    IdRule,
    InlineContext,
    LiftPlan,
    PlanMetadata,
    ResolvedContext,
)


def context_elements(context: ContextSpec) -> List[Any]:
    """Entries a context contributes to a merged ``@context`` array."""
    if isinstance(context, ResolvedContext):
        return [context.uri]
    document = context.document
    if isinstance(document, dict) and "@context" in document:
        document = document["@context"]
    if isinstance(document, list):
        return list(document)
    return [document]


def merge_contexts(contexts: Iterable[Optional[ContextSpec]]) -> Optional[ContextSpec]:
    """Concatenate contexts into ``{"@context": [...]}``; None when there are none."""
    elements: List[Any] = []
    for context in contexts:
        if context is not None:
            elements.extend(context_elements(context))
    if not elements:
        return None
    return InlineContext({"@context": elements})


def _distinct(values: Iterable[str]) -> tuple:
    seen = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return tuple(seen)


def merge_metadata(imported: Sequence[PlanMetadata], local: Optional[PlanMetadata]) -> Optional[PlanMetadata]:
    if local is None and not imported:
        return None
    base = imported[0] if imported else PlanMetadata()
    own = local or PlanMetadata()
    scalars = {
        name: getattr(own, name) if getattr(own, name) is not None else getattr(base, name)
        for name in PlanMetadata.SCALAR_FIELDS
    }
    lists = {
        name: getattr(own, name) if getattr(own, name) else _distinct(
            value for metadata in imported for value in getattr(metadata, name)
        )
        for name in PlanMetadata.LIST_FIELDS
    }
    return PlanMetadata(**scalars, **lists)


def merge_plan(
    local: LiftPlan,
    imported: Sequence[LiftPlan],
    context_rules: Sequence[IdRule] = (),
) -> LiftPlan:
    """Merge resolved ``imported`` plans under ``local``.

    ``local.id_rules`` holds only the plan-level rules; ``context_rules``
    are the rules declared inside the local context block. The merged plan
    has no imports left to resolve.
    """
    own_rules = tuple(context_rules) + tuple(local.id_rules)
    if not imported:
        return replace(local, id_rules=own_rules)

    contexts = [plan.context for plan in imported] + [local.context]
    input_spec = local.input
    if input_spec is None:
        input_spec = next((plan.input for plan in imported if plan.input is not None), None)

    return replace(
        local,
        context=merge_contexts(contexts),
        pre_steps=tuple(step for plan in imported for step in plan.pre_steps) + local.pre_steps,
        post_steps=tuple(step for plan in imported for step in plan.post_steps) + local.post_steps,
        id_rules=tuple(rule for plan in imported for rule in plan.id_rules) + own_rules,
        input=input_spec,
        metadata=merge_metadata([p.metadata for p in imported if p.metadata is not None], local.metadata),
        imports=(),
    )
