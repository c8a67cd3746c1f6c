import html
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Union

from .facade import MapFacade
from .icons import layer_icon_url
from .models import (
    LOOK_AT_NONE,
    LayerDef,
    LayerItemModel,
    LookAt,
    RequestType,
    ToggleResult,
)
from .utils.logging import get_logger

logger = get_logger(__name__)

LAYER_LIST_CLASS = "layer_list"


@dataclass
class UiEvent:
    """A DOM event as far as the handlers care: it can be cancelled."""

    type: str = "click"
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


@dataclass(frozen=True)
class LayerClickHandler:
    layer_id: str
    look_at: Union[str, LookAt]

    def __call__(self, facade: MapFacade, event: Optional[UiEvent] = None) -> bool:
        """Pan to the layer's camera target; returns False for "none"."""
        if self.look_at == LOOK_AT_NONE:
            return False
        facade.pan_to(self.look_at.lat, self.look_at.lng, self.look_at.zoom)
        if event is not None:
            event.cancel()
        return True


@dataclass(frozen=True)
class LayerItem:
    layer_id: str
    label: str
    checkbox_id: str
    checked: bool
    icon_url: str
    on_click: LayerClickHandler

    def to_model(self, checked: Optional[bool] = None) -> LayerItemModel:
        return LayerItemModel(
            layerId=self.layer_id,
            label=self.label,
            checkboxId=self.checkbox_id,
            checked=self.checked if checked is None else checked,
            iconUrl=self.icon_url,
            lookAt=self.on_click.look_at,
        )


@dataclass(frozen=True)
class LayerList:
    container_id: str
    items: List[LayerItem]
    css_class: str = LAYER_LIST_CLASS


def checkbox_id_for(layer_id: str) -> str:
    return f"{layer_id}_cb"


def create_layer_item(server_url: str, layer: LayerDef) -> LayerItem:
    return LayerItem(
        layer_id=layer.id,
        label=layer.label,
        checkbox_id=checkbox_id_for(layer.id),
        checked=layer.initialState,
        icon_url=layer_icon_url(server_url, layer),
        on_click=LayerClickHandler(layer_id=layer.id, look_at=layer.lookAt),
    )


def build_layer_list(server_url: str, container_id: str, layers: Sequence[LayerDef]) -> LayerList:
    """One item per layer, except a leading imagery layer (it gets a button instead)."""
    items = []
    for index, layer in enumerate(layers):
        if index == 0 and layer.requestType == RequestType.IMAGERY_MAPS.value:
            continue
        items.append(create_layer_item(server_url, layer))
    return LayerList(container_id=container_id, items=items)


def render_layer_list_html(layer_list: LayerList) -> str:
    lines = [f'<ul class="{layer_list.css_class}">']
    for item in layer_list.items:
        checked = " checked" if item.checked else ""
        look_at = f' data-look-at="{LOOK_AT_NONE}"' if item.on_click.look_at == LOOK_AT_NONE else ""
        lines.append(
            f'<li id="{html.escape(item.layer_id)}_item" class="layer_item" '
            f'data-layer-id="{html.escape(item.layer_id)}"{look_at}>'
            f'<input type="checkbox" id="{html.escape(item.checkbox_id)}"{checked} '
            f'data-layer-id="{html.escape(item.layer_id)}" '
            f'data-layer-name="{html.escape(item.label)}" />'
            f'<img class="layer_icon" src="{html.escape(item.icon_url)}" alt="" />'
            f'<span class="layer_label">{html.escape(item.label)}</span>'
            '</li>'
        )
    lines.append('</ul>')
    return "\n".join(lines)


@dataclass
class LayerPanel:
    layer_list: LayerList
    checkboxes: Dict[str, bool] = field(default_factory=dict)

    def __post_init__(self):
        if not self.checkboxes:
            self.checkboxes = {item.checkbox_id: item.checked for item in self.layer_list.items}

    @property
    def items(self) -> List[LayerItem]:
        return self.layer_list.items

    def item(self, layer_id: str) -> LayerItem:
        for candidate in self.layer_list.items:
            if candidate.layer_id == layer_id:
                return candidate
        raise KeyError(layer_id)

    def item_models(self) -> List[LayerItemModel]:
        return [item.to_model(self.checkboxes.get(item.checkbox_id)) for item in self.items]

    def toggle_layer(
        self,
        facade: MapFacade,
        checkbox_id: str,
        layer_id: str,
        layer_name: str,
        checked: Optional[bool] = None,
        event: Optional[UiEvent] = None,
    ) -> ToggleResult:
        """Show or hide a layer to match its checkbox; failures are returned, not raised."""
        if event is not None:
            event.cancel()

        if checkbox_id not in self.checkboxes:
            message = f"Failed attempt to get checkbox for layer: {layer_name}\nno checkbox '{checkbox_id}'"
            logger.warning(message, extra={'layer_id': layer_id})
            return ToggleResult(ok=False, layerId=layer_id, layerName=layer_name, error=message)

        if checked is not None:
            self.checkboxes[checkbox_id] = checked
        visible = self.checkboxes[checkbox_id]

        try:
            if visible:
                facade.show_layer(layer_id)
            else:
                facade.hide_layer(layer_id)
        except Exception as exc:
            message = f"Failed attempt to enable/disable layer: {layer_name}\n{layer_id}\n{exc}"
            logger.warning(message, extra={'layer_id': layer_id})
            return ToggleResult(ok=False, layerId=layer_id, layerName=layer_name, error=message)

        return ToggleResult(ok=True, layerId=layer_id, layerName=layer_name, visible=visible)
