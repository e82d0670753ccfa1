"""OGC API - Features client (``ogc-api-features``)."""

import logging
from typing import Any, Dict, List, Optional

from ..constants import ApiDefaults
from ..core.cancellation import CancellationToken, check_cancelled
from ..core.errors import ProtocolError
from ..core.resources import ResourceResolver
from ..models.documents import JsonDocument
from ..models.sources import ApiConfig, ApiProtocolId, OgcApiFeaturesConfig
from .base import ApiProtocol, append_query_params, append_records, parse_json, select_records

logger = logging.getLogger(__name__)


def items_url(config: OgcApiFeaturesConfig) -> str:
    """``<base>/collections/<collection>/items`` with limit, bbox and extra params."""
    base = config.base_url.rstrip("/")
    collection = config.collection.strip("/")
    params: Dict[str, Any] = {}
    if config.limit is not None:
        params["limit"] = config.limit
    if config.bbox:
        params["bbox"] = config.bbox
    params.update(config.params)
    return append_query_params(f"{base}/collections/{collection}/items", params)


def find_next_link(page: Any) -> Optional[str]:
    """``links[rel=next].href``, else a top-level ``next`` string."""
    if not isinstance(page, dict):
        return None
    links = page.get("links")
    if isinstance(links, list):
        for link in links:
            if isinstance(link, dict) and str(link.get("rel", "")).lower() == "next":
                href = link.get("href")
                return str(href) if href else None
    next_url = page.get("next")
    return next_url if isinstance(next_url, str) and next_url else None


class OgcApiFeaturesProtocol(ApiProtocol):
    """Follows ``next`` links until the collection is exhausted."""

    id = ApiProtocolId.OGC_API_FEATURES

    def fetch(
        self,
        config: ApiConfig,
        resolver: ResourceResolver,
        cancellation_token: Optional[CancellationToken] = None,
    ) -> JsonDocument:
        config = self._require_config(config, OgcApiFeaturesConfig)
        record_path = config.record_path or ApiDefaults.DEFAULT_RECORD_PATH
        records: List[Any] = []
        seen = set()
        next_url: Optional[str] = items_url(config)

        with self._progress() as pbar:
            while next_url is not None:
                check_cancelled(cancellation_token)
                if next_url in seen or len(seen) >= ApiDefaults.MAX_PAGES:
                    raise ProtocolError(f"Pagination did not terminate at {next_url}", url=next_url)
                seen.add(next_url)

                page = parse_json(self.http.request("GET", next_url, config.headers), next_url)
                count = append_records(records, select_records(page, record_path))
                pbar.update(1)
                logger.debug(f"Fetched {count} records from {next_url}")
                next_url = find_next_link(page)

        logger.info(f"Fetched {len(records)} features from collection {config.collection}")
        return JsonDocument.from_value(records)
