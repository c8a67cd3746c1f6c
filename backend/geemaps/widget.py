"""
Server-side model of the hosted map widget.

The browser only mirrors what :meth:`MapWidget.snapshot` returns, so every
pan, layer toggle, balloon and marker change happens here first.
"""
import math
import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Union

from .models import (
    InfoWindowState,
    LatLng,
    MarkerModel,
    ServerConfig,
    ViewState,
)
from .utils.logging import get_logger

logger = get_logger(__name__)

Number = Union[int, float, str]


class MapWidgetError(Exception):
    """Raised when the widget rejects an operation."""


def checked_position(lat: Number, lng: Number) -> LatLng:
    """Finite, in-range position; raises ValueError otherwise."""
    lat, lng = float(lat), float(lng)
    if not (math.isfinite(lat) and -90.0 <= lat <= 90.0):
        raise ValueError(f"Latitude out of range: {lat}")
    if not (math.isfinite(lng) and -180.0 <= lng <= 180.0):
        raise ValueError(f"Longitude out of range: {lng}")
    return LatLng(lat=lat, lng=lng)


@dataclass(frozen=True)
class MapOptions:
    center_lat: float
    center_lng: float
    zoom: int


@dataclass
class Marker:
    id: str
    position: LatLng
    title: str
    icon: Optional[str] = None
    draggable: bool = False
    map: Optional["MapWidget"] = None
    listeners: Dict[str, List[Callable[[], None]]] = field(default_factory=lambda: defaultdict(list))

    def get_position(self) -> LatLng:
        return self.position

    def set_map(self, widget: Optional["MapWidget"]) -> None:
        if self.map is not None:
            self.map.markers.pop(self.id, None)
        self.map = widget
        if widget is not None:
            widget.markers[self.id] = self

    def to_model(self) -> MarkerModel:
        return MarkerModel(
            id=self.id,
            position=self.position,
            icon=self.icon,
            title=self.title,
            draggable=self.draggable,
        )


class MapWidget:
    def __init__(self, container_id: str, server_defs: ServerConfig, options: MapOptions):
        self.container_id = container_id
        self.server_url = server_defs.serverUrl
        self.center = LatLng(lat=options.center_lat, lng=options.center_lng)
        self.zoom = options.zoom
        self.layer_visibility: Dict[str, bool] = {
            layer.id: layer.initialState for layer in server_defs.layers
        }
        self.info_window: Optional[InfoWindowState] = None
        self.markers: Dict[str, Marker] = {}

    def pan_to(self, lat: Number, lng: Number, zoom: Optional[Number] = None) -> None:
        self.center = LatLng(lat=float(lat), lng=float(lng))
        if zoom is not None:
            self.zoom = int(zoom)
        logger.debug(f"Panned to {self.center.lat},{self.center.lng} z={self.zoom}")

    def _require_layer(self, layer_id: str) -> None:
        if layer_id not in self.layer_visibility:
            raise MapWidgetError(f"Unknown layer id: {layer_id}")

    def show_fusion_layer(self, layer_id: str) -> None:
        self._require_layer(layer_id)
        self.layer_visibility[layer_id] = True

    def hide_fusion_layer(self, layer_id: str) -> None:
        self._require_layer(layer_id)
        self.layer_visibility[layer_id] = False

    def open_info_window(self, position: LatLng, content: str) -> None:
        self.info_window = InfoWindowState(position=position, content=content)

    def close_info_window(self) -> None:
        self.info_window = None

    def new_marker(self, position: LatLng, title: str, icon: Optional[str] = None) -> Marker:
        marker = Marker(id=uuid.uuid4().hex[:12], position=position, title=title, icon=icon)
        marker.set_map(self)
        return marker

    def get_marker(self, marker_id: str) -> Marker:
        try:
            return self.markers[marker_id]
        except KeyError:
            raise MapWidgetError(f"Unknown marker id: {marker_id}") from None

    @staticmethod
    def add_listener(marker: Marker, event: str, handler: Callable[[], None]) -> None:
        marker.listeners[event].append(handler)

    @staticmethod
    def trigger(marker: Marker, event: str) -> None:
        for handler in list(marker.listeners.get(event, ())):
            handler()

    def snapshot(self) -> ViewState:
        return ViewState(
            center=self.center,
            zoom=self.zoom,
            visibleLayers=[layer_id for layer_id, visible in self.layer_visibility.items() if visible],
            infoWindow=self.info_window,
            markers=[marker.to_model() for marker in self.markers.values()],
        )
