from dataclasses import asdict, dataclass
from typing import Dict

from .models import LayerDef

EARTH_IMAGE_PATH = "/earth/images/"
MAPS_IMAGE_PATH = "/maps/api/icons/"


def earth_image(static_url: str, name: str) -> str:
    return f"{static_url}{EARTH_IMAGE_PATH}{name}"


def maps_image(static_url: str, name: str) -> str:
    return f"{static_url}{MAPS_IMAGE_PATH}{name}"


@dataclass(frozen=True)
class IconUrls:
    """Absolute URLs of the chrome icons used by the layer and search panels."""

    openedFolder: str
    closedFolder: str
    cancelButton: str
    collapse: str
    expand: str
    transparent: str
    defaultLayerIcon: str

    def as_dict(self) -> Dict[str, str]:
        return asdict(self)


def build_icon_urls(static_url: str) -> IconUrls:
    static_url = static_url.rstrip("/")
    return IconUrls(
        openedFolder=earth_image(static_url, "openfolder.png"),
        closedFolder=earth_image(static_url, "closedfolder.png"),
        cancelButton=earth_image(static_url, "cancel.png"),
        collapse=maps_image(static_url, "collapse.png"),
        expand=maps_image(static_url, "expand.png"),
        transparent=maps_image(static_url, "transparent.png"),
        defaultLayerIcon=earth_image(static_url, "default_layer_icon.png"),
    )


def layer_icon_url(server_url: str, layer: LayerDef) -> str:
    """URL of a layer's icon as served by the GEE server."""
    return f"{server_url}/query?request=Icon&icon_path={layer.icon}"
