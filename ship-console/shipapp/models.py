from __future__ import annotations
import base64
from typing import List, Literal, Optional, Tuple

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


Rudder = Literal["Left", "Center", "Right"]
Course = Literal["Forward", "Backward"]
Route = Literal["C", "UP", "DOWN", "W", "E", "None"]
PilotAction = Literal["", "take_photo", "locate"]


class GridVec(BaseModel):
    x: int = 0
    y: int = 0


class Ship(BaseModel):
    id: str
    # Absent until the ocean server has reported the ship's position
    sector: Optional[GridVec] = None
    dir: Optional[GridVec] = None


class SubPosition(BaseModel):
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0


class Submarine(BaseModel):
    id: Optional[str] = None  # null until the submersible reports in
    pos: Optional[SubPosition] = None
    depth: float = 0.0
    distance: float = 0.0
    hasPicture: bool = False
    pictureTimestamp: Optional[int] = None


class WorldState(BaseModel):
    ship: Optional[Ship] = None
    submarines: List[Submarine] = Field(default_factory=list)


class LaunchParams(BaseModel):
    name: str = "Explorer1"
    x: int = 1
    y: int = 1
    dx: int = 0
    dy: int = 0


class NavigateCommand(BaseModel):
    rudder: Rudder
    course: Course


class PilotCommand(BaseModel):
    id: Optional[str] = None
    route: Route = "C"
    action: PilotAction = ""

    def is_movement(self) -> bool:
        return self.route != "None" and self.action not in ("take_photo", "locate")


class ScanResult(BaseModel):
    depth: Optional[float] = None
    stddev: Optional[float] = None


class SectorRef(BaseModel):
    vec2: Tuple[float, float]


class Echo(BaseModel):
    sector: Optional[SectorRef] = None
    ground: Optional[str] = None
    height: Optional[float] = None


class RadarResponse(BaseModel):
    # The ship API spells the key "echos"
    echoes: List[Echo] = Field(default_factory=list, validation_alias=AliasChoices("echoes", "echos"))


class RadarSnapshot(BaseModel):
    echoes: List[Echo] = Field(default_factory=list)
    ship_sector_at_capture: Optional[GridVec] = None


class Blip(BaseModel):
    x: float
    y: float
    dx: float
    dy: float
    angle: float
    height: float


class PictureResponse(BaseModel):
    hasPicture: bool = False
    picture: Optional[str] = None
    id: Optional[str] = None
    timestamp: Optional[int] = None


class LiveViewFrame(BaseModel):
    model_config = ConfigDict(frozen=True)

    encoded_image: Optional[bytes] = None
    subject_id: Optional[str] = None
    captured_at: Optional[int] = None
    is_loading: bool = False

    @property
    def data_uri(self) -> Optional[str]:
        if self.encoded_image is None:
            return None
        return "data:image/png;base64," + base64.b64encode(self.encoded_image).decode("ascii")


class LogEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    timestamp: str
    message: str

    def render(self) -> str:
        return f"[{self.timestamp}] {self.message}"


class MeasurementCount(BaseModel):
    id: str
    measurement_count: int = 0


class MeasurementSummary(BaseModel):
    submarine_id: Optional[str] = None
    count: Optional[int] = None
    submarines: List[MeasurementCount] = Field(default_factory=list)
    total_measurements: Optional[int] = None
