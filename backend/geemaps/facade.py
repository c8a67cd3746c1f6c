from typing import Mapping, Optional

from .widget import MapWidget, Marker, Number, checked_position


class MapFacade:
    """Thin forwarding layer over the page's single map widget."""

    def __init__(self, widget: MapWidget):
        self.widget = widget

    def pan_to(self, lat: Number, lng: Number, zoom: Optional[Number] = None) -> None:
        self.widget.pan_to(lat, lng, zoom)

    def close_info_window(self) -> None:
        self.widget.close_info_window()

    def open_balloon(self, marker: Marker, title: str, body: str) -> None:
        # Title and body are trusted HTML from the search results.
        self.widget.open_info_window(marker.get_position(), '<b>' + title + '</b><br/>' + body)

    def create_marker(
        self,
        name: str,
        description: str,
        latlng: Mapping[str, str],
        icon_url: Optional[str] = None,
    ) -> Marker:
        position = checked_position(latlng["lat"], latlng["lon"])
        marker = self.widget.new_marker(position, title=name, icon=icon_url)
        self.widget.add_listener(
            marker, 'click', lambda: self.open_balloon(marker, name, description)
        )
        return marker

    def remove_overlay(self, marker: Marker) -> None:
        marker.set_map(None)

    def show_layer(self, layer_id: str) -> None:
        self.widget.show_fusion_layer(layer_id)

    def hide_layer(self, layer_id: str) -> None:
        self.widget.hide_fusion_layer(layer_id)

    def clear_search_results(self) -> None:
        """Called by the search tabs after their results are cleared."""
        self.widget.close_info_window()
