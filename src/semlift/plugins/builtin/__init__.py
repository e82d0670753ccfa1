"""Built-in plan providers."""

from .ogc_bblocks import (
    DEFAULT_REGISTRY_URL,
    BuildingBlock,
    BlockValidationSummary,
    ExampleValidationResult,
    OgcBblocksProvider,
)

__all__ = [
    "DEFAULT_REGISTRY_URL",
    "BuildingBlock",
    "BlockValidationSummary",
    "ExampleValidationResult",
    "OgcBblocksProvider",
]
