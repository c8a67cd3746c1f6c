import pytest

from geemaps.facade import MapFacade
from geemaps.layer_panel import (
    LayerPanel,
    UiEvent,
    build_layer_list,
    render_layer_list_html,
)
from geemaps.models import LayerDef, ServerConfig
from geemaps.widget import MapOptions, MapWidget

SERVER_URL = "http://gee.example.com/mapdb"


def _layers(first_request_type="ImageryMaps"):
    return [
        LayerDef(id="1001", label="Imagery", icon="icons/773_l.png", initialState=True,
                 requestType=first_request_type),
        LayerDef(id="1002", label="Roads", icon="icons/roads.png", initialState=True,
                 requestType="VectorMapsRaster",
                 lookAt={"lat": 37.4, "lng": -122.1, "zoom": 12}),
        LayerDef(id="1003", label="Parks & Trails", icon="icons/parks.png", initialState=False,
                 requestType="VectorMapsRaster", lookAt="none"),
        LayerDef(id="1004", label="Overlay", icon="icons/overlay.png", initialState=False,
                 requestType="ImageryMaps"),
    ]


class RecordingFacade:
    """Stands in for MapFacade and records the calls it receives."""

    def __init__(self, fail_with=None):
        self.calls = []
        self.fail_with = fail_with

    def pan_to(self, lat, lng, zoom=None):
        self.calls.append(("pan_to", lat, lng, zoom))

    def show_layer(self, layer_id):
        self.calls.append(("show", layer_id))
        if self.fail_with:
            raise self.fail_with

    def hide_layer(self, layer_id):
        self.calls.append(("hide", layer_id))
        if self.fail_with:
            raise self.fail_with


class TestBuildLayerList:

    def test_skips_leading_imagery_layer(self):
        layer_list = build_layer_list(SERVER_URL, "layers_container", _layers())

        assert [item.layer_id for item in layer_list.items] == ["1002", "1003", "1004"]
        assert layer_list.container_id == "layers_container"
        assert layer_list.css_class == "layer_list"

    def test_keeps_all_layers_without_leading_imagery(self):
        layer_list = build_layer_list(SERVER_URL, "layers_container", _layers("VectorMapsRaster"))

        assert [item.layer_id for item in layer_list.items] == ["1001", "1002", "1003", "1004"]

    def test_only_position_zero_is_skipped(self):
        layers = _layers("VectorMapsRaster")
        layers.insert(1, LayerDef(id="2000", label="Second imagery", requestType="ImageryMaps"))

        layer_list = build_layer_list(SERVER_URL, "layers_container", layers)

        assert "2000" in [item.layer_id for item in layer_list.items]
        assert len(layer_list.items) == len(layers)

    def test_item_fields(self):
        items = build_layer_list(SERVER_URL, "layers_container", _layers()).items

        roads = items[0]
        assert roads.checkbox_id == "1002_cb"
        assert roads.checked is True
        assert roads.label == "Roads"
        assert roads.icon_url == "http://gee.example.com/mapdb/query?request=Icon&icon_path=icons/roads.png"
        assert items[1].checked is False

    def test_empty_layers(self):
        assert build_layer_list(SERVER_URL, "layers_container", []).items == []

    def test_render_html(self):
        markup = render_layer_list_html(build_layer_list(SERVER_URL, "layers_container", _layers()))

        assert markup.startswith('<ul class="layer_list">')
        assert markup.count("<li ") == 3
        assert 'id="1002_cb" checked' in markup
        assert 'id="1003_cb" data-layer-id' in markup
        assert "Parks &amp; Trails" in markup

    def test_render_html_marks_items_without_look_at(self):
        markup = render_layer_list_html(build_layer_list(SERVER_URL, "layers_container", _layers()))

        assert markup.count('data-look-at="none"') == 2
        assert 'data-layer-id="1002">' in markup
        assert 'data-layer-id="1003" data-look-at="none">' in markup


class TestLayerClick:

    def test_none_look_at_does_nothing(self):
        item = build_layer_list(SERVER_URL, "layers", _layers()).items[1]
        facade = RecordingFacade()
        event = UiEvent()

        assert item.on_click(facade, event) is False
        assert facade.calls == []
        assert event.cancelled is False

    def test_concrete_look_at_pans_and_cancels(self):
        item = build_layer_list(SERVER_URL, "layers", _layers()).items[0]
        facade = RecordingFacade()
        event = UiEvent()

        assert item.on_click(facade, event) is True
        assert facade.calls == [("pan_to", 37.4, -122.1, 12)]
        assert event.cancelled is True

    def test_handlers_capture_their_own_layer(self):
        items = build_layer_list(SERVER_URL, "layers", _layers("VectorMapsRaster")).items
        assert [item.on_click.layer_id for item in items] == ["1001", "1002", "1003", "1004"]


class TestToggleLayer:

    def _panel(self):
        return LayerPanel(build_layer_list(SERVER_URL, "layers", _layers()))

    def test_checked_shows_once(self):
        panel = self._panel()
        facade = RecordingFacade()

        result = panel.toggle_layer(facade, "1003_cb", "1003", "Parks", checked=True)

        assert result.ok is True
        assert result.visible is True
        assert facade.calls == [("show", "1003")]
        assert panel.checkboxes["1003_cb"] is True

    def test_unchecked_hides_once(self):
        panel = self._panel()
        facade = RecordingFacade()

        result = panel.toggle_layer(facade, "1002_cb", "1002", "Roads", checked=False)

        assert result.ok is True
        assert result.visible is False
        assert facade.calls == [("hide", "1002")]

    def test_uses_current_checkbox_state_when_not_given(self):
        panel = self._panel()
        facade = RecordingFacade()

        panel.toggle_layer(facade, "1002_cb", "1002", "Roads")

        assert facade.calls == [("show", "1002")]

    def test_widget_failure_is_reported_not_raised(self):
        panel = self._panel()
        facade = RecordingFacade(fail_with=RuntimeError("tile server down"))
        event = UiEvent(type="change")

        result = panel.toggle_layer(facade, "1003_cb", "1003", "Parks", checked=True, event=event)

        assert result.ok is False
        assert result.error.startswith("Failed attempt to enable/disable layer: Parks\n1003\n")
        assert "tile server down" in result.error
        assert facade.calls == [("show", "1003")]
        assert event.cancelled is True

    def test_missing_checkbox(self):
        panel = self._panel()
        facade = RecordingFacade()

        result = panel.toggle_layer(facade, "9999_cb", "9999", "Ghost", checked=True)

        assert result.ok is False
        assert result.error.startswith("Failed attempt to get checkbox for layer: Ghost")
        assert facade.calls == []

    def test_unknown_layer_on_real_widget(self):
        config = ServerConfig(serverUrl=SERVER_URL, layers=_layers())
        widget = MapWidget("map", config, MapOptions(center_lat=0, center_lng=0, zoom=3))
        panel = LayerPanel(build_layer_list(SERVER_URL, "layers", []))
        panel.checkboxes["5555_cb"] = False

        result = panel.toggle_layer(MapFacade(widget), "5555_cb", "5555", "Stale", checked=True)

        assert result.ok is False
        assert "Unknown layer id: 5555" in result.error

    def test_one_failure_does_not_affect_other_layers(self):
        config = ServerConfig(serverUrl=SERVER_URL, layers=_layers())
        widget = MapWidget("map", config, MapOptions(center_lat=0, center_lng=0, zoom=3))
        facade = MapFacade(widget)
        panel = self._panel()

        panel.toggle_layer(facade, "9999_cb", "9999", "Ghost", checked=True)
        result = panel.toggle_layer(facade, "1003_cb", "1003", "Parks", checked=True)

        assert result.ok is True
        assert widget.layer_visibility["1003"] is True

    def test_item_models_reflect_toggles(self):
        panel = self._panel()
        panel.toggle_layer(RecordingFacade(), "1003_cb", "1003", "Parks", checked=True)

        models = {model.layerId: model for model in panel.item_models()}
        assert models["1003"].checked is True
        assert models["1002"].lookAt.zoom == 12

    def test_item_lookup(self):
        panel = self._panel()
        assert panel.item("1002").label == "Roads"
        with pytest.raises(KeyError):
            panel.item("1001")
