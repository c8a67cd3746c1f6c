from typing import Callable, List, Mapping, Optional, Sequence

from .facade import MapFacade
from .icons import build_icon_urls
from .layer_panel import LayerPanel, build_layer_list
from .models import SearchTabDef, ServerConfig
from .search import (
    SearchTabsPanel,
    default_search_tabs,
    effective_search_timeout,
    initialize_search,
    parse_lat_lng,
)
from .server_defs import ServerDefsError
from .session import DivIds, PageSession
from .settings import (
    INITIAL_VIEW_LAT,
    INITIAL_VIEW_LNG,
    INITIAL_ZOOM_LEVEL,
    MAX_ZOOM_LEVEL,
    MIN_ZOOM_LEVEL,
    SEARCH_TIMEOUT_MS,
)
from .utils.logging import get_logger
from .widget import MapOptions, MapWidget

logger = get_logger(__name__)

MISSING_DATABASE_MESSAGE = (
    "Error: The Google Earth Enterprise server does not recognize the requested database."
)

SearchInitializer = Callable[[str, Sequence[SearchTabDef], int, Callable[[], None]], SearchTabsPanel]


def initial_view(params: Mapping[str, str]) -> MapOptions:
    """Initial center and zoom, with ``ll=lat,lng`` and ``z=zoom`` overrides."""
    lat, lng, zoom = INITIAL_VIEW_LAT, INITIAL_VIEW_LNG, INITIAL_ZOOM_LEVEL

    ll = params.get("ll")
    if ll:
        try:
            lat, lng = parse_lat_lng(ll)
        except ValueError:
            logger.warning(f"Ignoring invalid ll parameter: {ll!r}")

    z = params.get("z")
    if z:
        try:
            requested = int(z)
        except ValueError:
            requested = None
        if requested is not None and MIN_ZOOM_LEVEL <= requested <= MAX_ZOOM_LEVEL:
            zoom = requested
        else:
            logger.warning(f"Ignoring invalid z parameter: {z!r}")

    return MapOptions(center_lat=lat, center_lng=lng, zoom=zoom)


def left_panel_divs(div_ids: DivIds, show_search: bool) -> List[str]:
    """Ids of the sub-containers created inside the left panel, in order."""
    divs = []
    if show_search:
        divs.extend([div_ids.search_tabs, div_ids.search_title, div_ids.search_results])
    divs.extend([div_ids.layers_title, div_ids.layers])
    return divs


def initialize(
    server_defs: Optional[ServerConfig],
    options: Optional[MapOptions] = None,
    show_search: bool = True,
    *,
    params: Optional[Mapping[str, str]] = None,
    static_url: str = "",
    div_ids: Optional[DivIds] = None,
    search_initializer: SearchInitializer = initialize_search,
) -> PageSession:
    """Build a page session: icons, search tabs, panels, map and layer list.

    Raises ServerDefsError when no server definitions were loaded.
    """
    if server_defs is None:
        logger.error(MISSING_DATABASE_MESSAGE)
        raise ServerDefsError(MISSING_DATABASE_MESSAGE)

    params = params or {}
    div_ids = div_ids or DivIds()
    steps = []

    icon_urls = build_icon_urls(static_url)
    steps.append("icons")

    if show_search and not server_defs.searchTabs:
        server_defs = server_defs.model_copy(update={"searchTabs": default_search_tabs()})
        steps.append("default_search_tabs")

    divs = left_panel_divs(div_ids, show_search)
    steps.append("left_panel_divs")

    # Fit once before the map exists and again once the search tabs add height.
    steps.append("fit_layout")

    widget = MapWidget(div_ids.map, server_defs, options or initial_view(params))
    facade = MapFacade(widget)
    steps.append("map")

    layer_list = build_layer_list(server_defs.serverUrl, div_ids.layers, server_defs.layers)
    layer_panel = LayerPanel(layer_list)
    steps.append("layers")

    search_panel = None
    if show_search:
        timeout_ms = effective_search_timeout(params, SEARCH_TIMEOUT_MS)
        search_panel = search_initializer(
            div_ids.search_tabs, server_defs.searchTabs, timeout_ms, facade.clear_search_results
        )
        steps.append("search")

    steps.append("fit_layout")

    logger.info(
        "Map page initialized",
        extra={'layers': len(layer_list.items), 'show_search': show_search}
    )
    return PageSession(
        server_defs=server_defs,
        icon_urls=icon_urls,
        div_ids=div_ids,
        widget=widget,
        facade=facade,
        layer_panel=layer_panel,
        search_panel=search_panel,
        left_panel_divs=divs,
        steps=steps,
    )
