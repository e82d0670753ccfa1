"""WFS GetFeature client (``wfs``)."""

import logging
from typing import Any, Dict, List, Optional, Sequence

from ..constants import ApiDefaults
from ..core.cancellation import CancellationToken, check_cancelled
from ..core.errors import ProtocolError
from ..core.resources import ResourceResolver
from ..models.documents import JsonDocument
from ..models.sources import ApiConfig, ApiProtocolId, WfsConfig
from .base import ApiProtocol, append_query_params, append_records, parse_json_or_xml, select_records

logger = logging.getLogger(__name__)

MEMBER_KEYS = ("featureMember", "member")


def get_feature_url(config: WfsConfig, start_index: int) -> str:
    params: Dict[str, Any] = {
        "service": "WFS",
        "request": "GetFeature",
        "version": config.version,
        "typeName": config.type_name,
    }
    if config.output_format:
        params["outputFormat"] = config.output_format
    if config.srs_name:
        params["srsName"] = config.srs_name
    if config.page_size is not None:
        params["count"] = config.page_size
    params["startIndex"] = start_index
    params.update(config.params)
    return append_query_params(config.base_url, params)


def collect_members(node: Any, keys: Sequence[str] = MEMBER_KEYS) -> List[Any]:
    """Gather every ``featureMember``/``member`` value, depth-first."""
    found: List[Any] = []
    if isinstance(node, dict):
        for key in keys:
            if key in node:
                value = node[key]
                found.extend(value if isinstance(value, list) else [value])
        for value in node.values():
            found.extend(collect_members(value, keys))
    elif isinstance(node, list):
        for item in node:
            found.extend(collect_members(item, keys))
    return found


def select_wfs_records(page: Any, record_path: Optional[str]) -> Any:
    """``recordPath`` if given, else ``features``, else collected members, else the page."""
    if record_path:
        return select_records(page, record_path)
    if isinstance(page, dict) and isinstance(page.get("features"), list):
        return page["features"]
    members = collect_members(page)
    return members if members else page


class WfsProtocol(ApiProtocol):
    """Pages with startIndex/count while full pages come back."""

    id = ApiProtocolId.WFS

    def fetch(
        self,
        config: ApiConfig,
        resolver: ResourceResolver,
        cancellation_token: Optional[CancellationToken] = None,
    ) -> JsonDocument:
        config = self._require_config(config, WfsConfig)
        records: List[Any] = []
        start_index = config.start_index
        pages = 0

        with self._progress() as pbar:
            while True:
                check_cancelled(cancellation_token)
                if pages >= ApiDefaults.MAX_PAGES:
                    raise ProtocolError(f"WFS paging exceeded {ApiDefaults.MAX_PAGES} pages")
                url = get_feature_url(config, start_index)
                page = parse_json_or_xml(self.http.request("GET", url, config.headers), url)
                count = append_records(records, select_wfs_records(page, config.record_path))
                pages += 1
                pbar.update(1)
                logger.debug(f"Fetched {count} records from {url}")

                if config.page_size is None or count < config.page_size:
                    break
                start_index += config.page_size

        logger.info(f"Fetched {len(records)} features of type {config.type_name}")
        return JsonDocument.from_value(records)
