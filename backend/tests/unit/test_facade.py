import pytest

from geemaps.facade import MapFacade
from geemaps.models import ServerConfig
from geemaps.widget import MapOptions, MapWidget, MapWidgetError


def _facade():
    config = ServerConfig.model_validate({
        "serverUrl": "http://gee.example.com/mapdb",
        "layers": [{"id": "1002", "label": "Roads", "initialState": False}],
    })
    widget = MapWidget("map", config, MapOptions(center_lat=37.422, center_lng=-122.08, zoom=6))
    return MapFacade(widget)


class TestPanTo:

    def test_with_zoom(self):
        facade = _facade()
        facade.pan_to(40.0, -75.5, 9)

        view = facade.widget.snapshot()
        assert (view.center.lat, view.center.lng, view.zoom) == (40.0, -75.5, 9)

    def test_keeps_zoom_when_omitted(self):
        facade = _facade()
        facade.pan_to("12.5", "99.25")

        view = facade.widget.snapshot()
        assert (view.center.lat, view.center.lng, view.zoom) == (12.5, 99.25, 6)


class TestBalloons:

    def test_open_balloon_html_is_not_escaped(self):
        facade = _facade()
        marker = facade.create_marker("Cafe", "x", {"lat": "1.5", "lon": "2.5"})

        facade.open_balloon(marker, "Joe's <i>Cafe</i>", "Open & late")

        info = facade.widget.info_window
        assert info.content == "<b>Joe's <i>Cafe</i></b><br/>Open & late"
        assert (info.position.lat, info.position.lng) == (1.5, 2.5)

    def test_close_info_window(self):
        facade = _facade()
        marker = facade.create_marker("Cafe", "x", {"lat": "1", "lon": "2"})
        facade.open_balloon(marker, "T", "B")

        facade.close_info_window()

        assert facade.widget.snapshot().infoWindow is None

    def test_clear_search_results_closes_balloon(self):
        facade = _facade()
        marker = facade.create_marker("Cafe", "x", {"lat": "1", "lon": "2"})
        facade.open_balloon(marker, "T", "B")

        facade.clear_search_results()

        assert facade.widget.info_window is None


class TestMarkers:

    def test_create_marker(self):
        facade = _facade()
        marker = facade.create_marker("Depot", "Main yard", {"lat": "-33.86", "lon": "151.2"}, "http://x/pin.png")

        assert marker.title == "Depot"
        assert marker.icon == "http://x/pin.png"
        assert marker.draggable is False
        assert marker.get_position().lat == -33.86
        assert marker.get_position().lng == 151.2
        assert [m.id for m in facade.widget.snapshot().markers] == [marker.id]

    def test_marker_click_opens_balloon(self):
        facade = _facade()
        marker = facade.create_marker("Depot", "Main yard", {"lat": "1", "lon": "2"})

        facade.widget.trigger(marker, "click")

        assert facade.widget.info_window.content == "<b>Depot</b><br/>Main yard"

    def test_unparseable_coordinates(self):
        with pytest.raises(ValueError):
            _facade().create_marker("Bad", "", {"lat": "north", "lon": "2"})

    @pytest.mark.parametrize("latlng", [
        {"lat": "nan", "lon": "2"},
        {"lat": "1", "lon": "inf"},
        {"lat": "95", "lon": "0"},
        {"lat": "0", "lon": "180.5"},
    ])
    def test_out_of_range_coordinates(self, latlng):
        facade = _facade()

        with pytest.raises(ValueError):
            facade.create_marker("Bad", "", latlng)
        assert facade.widget.snapshot().markers == []

    def test_remove_overlay(self):
        facade = _facade()
        marker = facade.create_marker("Depot", "", {"lat": "1", "lon": "2"})

        facade.remove_overlay(marker)

        assert marker.map is None
        assert facade.widget.snapshot().markers == []
        with pytest.raises(MapWidgetError):
            facade.widget.get_marker(marker.id)


class TestLayers:

    def test_show_and_hide(self):
        facade = _facade()

        facade.show_layer("1002")
        assert facade.widget.snapshot().visibleLayers == ["1002"]

        facade.hide_layer("1002")
        assert facade.widget.snapshot().visibleLayers == []

    def test_unknown_layer_raises(self):
        with pytest.raises(MapWidgetError):
            _facade().show_layer("nope")
