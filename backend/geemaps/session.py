import uuid
from dataclasses import dataclass, field
from typing import List, Optional

from cachetools import TTLCache

from .facade import MapFacade
from .icons import IconUrls
from .layer_panel import LayerPanel
from .models import ServerConfig, SessionResponse
from .search import SearchTabsPanel
from .utils.logging import get_logger
from .widget import MapWidget

logger = get_logger(__name__)


@dataclass(frozen=True)
class DivIds:
    """Element ids the page must provide; they match the page's markup and CSS."""

    header: str = "header"
    map: str = "map"
    map_inner: str = "map_inner"
    left_panel_parent: str = "left_panel_cell"
    left_panel: str = "left_panel"
    search_tabs: str = "search_tabs"
    search_title: str = "search_results_title"
    search_results: str = "search_results_container"
    layers_title: str = "layers_title"
    layers: str = "layers_container"
    collapse_panel: str = "collapsePanel"
    collapse_shim: str = "collapseShim"


@dataclass
class PageSession:
    server_defs: ServerConfig
    icon_urls: IconUrls
    div_ids: DivIds
    widget: MapWidget
    facade: MapFacade
    layer_panel: LayerPanel
    search_panel: Optional[SearchTabsPanel] = None
    left_panel_divs: List[str] = field(default_factory=list)
    steps: List[str] = field(default_factory=list)
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @property
    def show_search(self) -> bool:
        return self.search_panel is not None

    def to_response(self) -> SessionResponse:
        return SessionResponse(
            sessionId=self.id,
            serverUrl=self.server_defs.serverUrl,
            isAuthenticated=self.server_defs.isAuthenticated,
            iconUrls=self.icon_urls.as_dict(),
            searchTabs=self.server_defs.searchTabs,
            searchTimeoutMs=self.search_panel.timeout_ms if self.search_panel else None,
            layers=self.layer_panel.item_models(),
            tileLayers={
                layer.id: {'requestType': layer.requestType, 'version': layer.version}
                for layer in self.server_defs.layers
            },
            view=self.widget.snapshot(),
            steps=list(self.steps),
        )


class SessionStore:
    """Bounded store of live page sessions; idle sessions expire."""

    def __init__(self, max_size: int = 1000, ttl: int = 3600):
        self.sessions = TTLCache(maxsize=max_size, ttl=ttl)

    def add(self, session: PageSession) -> PageSession:
        self.sessions[session.id] = session
        logger.info("Page session created", extra={'session_id': session.id})
        return session

    def get(self, session_id: str) -> PageSession:
        session = self.sessions[session_id]
        # Touch so active pages stay alive.
        self.sessions[session_id] = session
        return session

    def discard(self, session_id: str) -> None:
        self.sessions.pop(session_id, None)

    def clear(self) -> None:
        self.sessions.clear()

    def __len__(self) -> int:
        return len(self.sessions)


_store = None


def get_session_store(max_size: int = 1000, ttl: int = 3600) -> SessionStore:
    global _store
    if _store is None:
        _store = SessionStore(max_size=max_size, ttl=ttl)
    return _store
