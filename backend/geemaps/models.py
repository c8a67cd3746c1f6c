from typing import List, Optional, Dict, Any, Literal, Union
from pydantic import BaseModel, Field, field_validator, ConfigDict
from enum import Enum


class RequestType(str, Enum):
    IMAGERY_MAPS = "ImageryMaps"
    IMAGERY_MAPS_MERCATOR = "ImageryMapsMercator"
    VECTOR_MAPS_RASTER = "VectorMapsRaster"
    VECTOR_MAPS = "VectorMaps"


# Sentinel the server uses for layers without a camera target.
LOOK_AT_NONE = "none"


class LookAt(BaseModel):
    lat: float
    lng: float
    zoom: Optional[int] = None


class LayerDef(BaseModel):
    id: str
    label: str
    icon: str = ""
    initialState: bool = False
    requestType: str = RequestType.VECTOR_MAPS_RASTER.value
    lookAt: Union[Literal["none"], LookAt] = LOOK_AT_NONE
    opacity: Optional[float] = None
    isPng: Optional[bool] = None
    version: Optional[int] = None

    model_config = ConfigDict(extra="allow")

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value: Any) -> str:
        # Layer ids are numeric channel ids on most servers.
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(int(value))
        return value


class SearchTabArg(BaseModel):
    screenLabel: str
    urlTag: str
    defaultValue: str = ""

    model_config = ConfigDict(extra="allow")


class SearchTabDef(BaseModel):
    tabLabel: str
    url: str
    args: List[SearchTabArg] = Field(default_factory=list)

    model_config = ConfigDict(extra="allow")


class ServerConfig(BaseModel):
    serverUrl: str
    isAuthenticated: bool = False
    searchTabs: List[SearchTabDef] = Field(default_factory=list)
    layers: List[LayerDef] = Field(default_factory=list)

    model_config = ConfigDict(extra="allow")

    @field_validator("searchTabs", mode="before")
    @classmethod
    def empty_search_tabs(cls, value: Any) -> Any:
        # Servers without search tabs send "" instead of [].
        if value is None or value == "":
            return []
        return value

    @field_validator("layers", mode="before")
    @classmethod
    def empty_layers(cls, value: Any) -> Any:
        if value is None or value == "":
            return []
        return value


class LatLng(BaseModel):
    lat: float
    lng: float


class InfoWindowState(BaseModel):
    position: LatLng
    content: str


class MarkerModel(BaseModel):
    id: str
    position: LatLng
    icon: Optional[str] = None
    title: str
    draggable: bool = False


class ViewState(BaseModel):
    center: LatLng
    zoom: int
    visibleLayers: List[str]
    infoWindow: Optional[InfoWindowState] = None
    markers: List[MarkerModel] = Field(default_factory=list)


class LayerItemModel(BaseModel):
    layerId: str
    label: str
    checkboxId: str
    checked: bool
    iconUrl: str
    lookAt: Union[Literal["none"], LookAt]


class ToggleRequest(BaseModel):
    checkboxId: str
    layerId: str
    layerName: str = ""
    checked: Optional[bool] = None


class ToggleResult(BaseModel):
    ok: bool
    layerId: str
    layerName: str
    visible: Optional[bool] = None
    error: Optional[str] = None


class PanRequest(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    zoom: Optional[int] = Field(default=None, ge=0, le=32)


class MarkerLatLng(BaseModel):
    # Search results deliver coordinates as strings.
    lat: str
    lon: str

    @field_validator("lat", "lon", mode="before")
    @classmethod
    def stringify(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class MarkerRequest(BaseModel):
    name: str
    description: str = ""
    latlng: MarkerLatLng
    iconUrl: Optional[str] = None


class BalloonRequest(BaseModel):
    markerId: str
    title: str
    body: str = ""


class LatLngSearchRequest(BaseModel):
    latlng: str = Field(..., min_length=3, max_length=100)


class SessionRequest(BaseModel):
    showSearch: bool = True
    params: Dict[str, str] = Field(default_factory=dict)


class SessionResponse(BaseModel):
    sessionId: str
    serverUrl: str
    isAuthenticated: bool
    iconUrls: Dict[str, str]
    searchTabs: List[SearchTabDef]
    searchTimeoutMs: Optional[int] = None
    layers: List[LayerItemModel]
    tileLayers: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    view: ViewState
    steps: List[str]


class ErrorResponse(BaseModel):
    error: str
    detail: Optional[str] = None
    request_id: Optional[str] = None


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    version: Optional[str] = None
