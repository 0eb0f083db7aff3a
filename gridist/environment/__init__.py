"""
Environment module.
Ground truth, observation and benchmark ingestion for grid maps.
"""

from gridist.environment.grid_model import GridModel, GridInfo
from gridist.environment.sensor_model import Sensor
from gridist.environment.map_parser import (
    MapData,
    ScenarioEntry,
    load_map,
    load_scenario,
    parse_map,
    parse_map_rows,
    parse_scenario,
)

__all__ = [
    "GridModel",
    "GridInfo",
    "Sensor",
    "MapData",
    "ScenarioEntry",
    "load_map",
    "load_scenario",
    "parse_map",
    "parse_map_rows",
    "parse_scenario",
]
