from __future__ import annotations
import math
from typing import List, Optional

from ..models import Blip, Echo, GridVec, RadarSnapshot


BLIP_RADIUS_FRACTION = 0.9


def echo_offset(echo: Echo, ship_sector: GridVec) -> Optional[tuple]:
    """Sector offset of an echo from the ship, or None if it cannot be drawn."""
    if echo.sector is None or echo.height is None or echo.height <= 0:
        return None
    ex, ey = echo.sector.vec2
    dx = ex - ship_sector.x
    dy = ey - ship_sector.y
    if dx == 0 and dy == 0:
        # Same cell as the ship: no bearing
        return None
    return dx, dy


def project_echoes(snapshot: RadarSnapshot, size_px: float = 200.0) -> List[Blip]:
    ship = snapshot.ship_sector_at_capture
    if ship is None:
        return []
    center = size_px / 2.0
    radius = size_px / 2.0
    blips: List[Blip] = []
    for echo in snapshot.echoes:
        offset = echo_offset(echo, ship)
        if offset is None:
            continue
        dx, dy = offset
        # Screen y grows downward, so flip world y
        angle = math.atan2(-dy, dx)
        blips.append(Blip(
            x=center + radius * BLIP_RADIUS_FRACTION * math.cos(angle),
            y=center + radius * BLIP_RADIUS_FRACTION * math.sin(angle),
            dx=dx,
            dy=dy,
            angle=angle,
            height=float(echo.height),
        ))
    return blips
