import re
from dataclasses import dataclass
from typing import Callable, List, Mapping, Optional, Sequence, Tuple

from .facade import MapFacade
from .models import SearchTabArg, SearchTabDef
from .settings import DEFAULT_SINGLE_CLICK_ZOOM_LEVEL, SEARCH_TIMEOUT_MS
from .utils.logging import get_logger
from .widget import checked_position

logger = get_logger(__name__)

LAT_LNG_TAB_URL = "javascript:geeJumpToLatLng"

_LAT_LNG_PATTERN = re.compile(
    r"^\s*(?P<lat>[-+]?\d+(?:\.\d+)?)\s*(?:,\s*|\s+)(?P<lng>[-+]?\d+(?:\.\d+)?)\s*$"
)


def default_search_tabs() -> List[SearchTabDef]:
    """Single tab that jumps to typed coordinates without querying the server."""
    return [
        SearchTabDef(
            tabLabel="Lat Lng",
            url=LAT_LNG_TAB_URL,
            args=[SearchTabArg(screenLabel="Latitude, Longitude", urlTag="latlng")],
        )
    ]


def effective_search_timeout(params: Mapping[str, str], default: int = SEARCH_TIMEOUT_MS) -> int:
    raw = params.get("search_timeout")
    if not raw:
        return default
    try:
        return int(raw)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring invalid search_timeout: {raw!r}")
        return default


@dataclass
class SearchTabsPanel:
    container_id: str
    tabs: List[SearchTabDef]
    timeout_ms: int
    on_results_cleared: Callable[[], None]

    def clear_results(self) -> None:
        self.on_results_cleared()


def initialize_search(
    container_id: str,
    tabs: Sequence[SearchTabDef],
    timeout_ms: int,
    on_results_cleared: Callable[[], None],
) -> SearchTabsPanel:
    logger.info(f"Initializing {len(tabs)} search tab(s), timeout={timeout_ms}ms")
    return SearchTabsPanel(
        container_id=container_id,
        tabs=list(tabs),
        timeout_ms=timeout_ms,
        on_results_cleared=on_results_cleared,
    )


def parse_lat_lng(text: str) -> Tuple[float, float]:
    match = _LAT_LNG_PATTERN.match(text or "")
    if not match:
        raise ValueError(f"Expected 'lat,lng', got {text!r}")

    position = checked_position(match.group("lat"), match.group("lng"))
    return position.lat, position.lng


def jump_to_lat_lng(facade: MapFacade, text: str, zoom: Optional[int] = None) -> Tuple[float, float]:
    lat, lng = parse_lat_lng(text)
    facade.pan_to(lat, lng, zoom if zoom is not None else DEFAULT_SINGLE_CLICK_ZOOM_LEVEL)
    return lat, lng
