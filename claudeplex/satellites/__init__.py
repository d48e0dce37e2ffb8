"""Satellite programs that run in their own panes beside the controller."""

from claudeplex.satellites.manager import SatelliteKind, SatelliteManager

__all__ = ["SatelliteKind", "SatelliteManager"]
