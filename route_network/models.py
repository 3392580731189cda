"""
Pydantic models for the trace API wire formats

Field names match the JSON the backend expects (camelCase where it uses it).
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


# ============================================================
# Loop (globalData.loop)
# ============================================================

class RouteGeometry(BaseModel):
    coordinates: List[List[float]]  # [[lng, lat], ...]


class RouteFeature(BaseModel):
    geometry: RouteGeometry


class RouteModel(BaseModel):
    features: List[RouteFeature] = Field(default_factory=list)


class LoopConnectionModel(BaseModel):
    length: float
    existing: bool
    color: str


class LoopEntryModel(BaseModel):
    name: str
    coordinates: List[float]  # [lng, lat]
    lgd_code: str = ""
    connection: Optional[LoopConnectionModel] = None
    route: Optional[RouteModel] = None


# ============================================================
# Segment history (polylineHistory)
# ============================================================

class LatLng(BaseModel):
    lat: float
    lng: float


class PolylineModel(BaseModel):
    coordinates: List[LatLng]


class SegmentConnection(BaseModel):
    length: float
    existing: bool
    color: Optional[str] = None


class SegmentData(BaseModel):
    connection: SegmentConnection
    startCords: str = ""
    endCords: str = ""


class PolylineEntry(BaseModel):
    polyline: PolylineModel
    segmentData: SegmentData


# ============================================================
# Persistence snapshot
# ============================================================

class GlobalData(BaseModel):
    loop: List[LoopEntryModel] = Field(default_factory=list)
    mainPointName: Optional[str] = None
    totalLength: float = 0.0
    proposedlength: float = 0.0
    existinglength: float = 0.0
    st_code: str = ""
    st_name: str = ""
    dt_code: str = ""
    dt_name: str = ""
    blk_code: str = ""
    blk_name: str = ""


class SnapshotPayload(BaseModel):
    """Body of save-kml / save-to-db / download/{format}"""
    globalData: GlobalData
    polylineHistory: Dict[str, PolylineEntry] = Field(default_factory=dict)
    user_id: int
    user_name: str


# ============================================================
# Ingestion
# ============================================================

class IngestionPayload(BaseModel):
    """Points/connections/network payload; records stay loosely typed"""
    model_config = ConfigDict(extra="allow")

    points: List[Any] = Field(default_factory=list)
    connections: List[Any] = Field(default_factory=list)
    network: Optional[Dict[str, Any]] = Field(default_factory=dict)


class LoopPayload(BaseModel):
    """Bulk-upload response: a prebuilt loop"""
    model_config = ConfigDict(extra="allow")

    loop: List[Any] = Field(default_factory=list)
    mainPointName: Optional[str] = None


# ============================================================
# Routing / search
# ============================================================

class RouteResult(BaseModel):
    """One routing-service result; route vertices are [lat, lng]"""
    model_config = ConfigDict(extra="ignore")

    route: List[List[float]] = Field(default_factory=list)
    distance: float = 0.0


class PlaceLocation(BaseModel):
    lat: float
    lng: float


class Place(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = ""
    formatted_address: str = ""
    location: PlaceLocation
