"""Barometric elevation estimate relative to the first reading of a session."""

import math

import structlog

logger = structlog.get_logger()

GAS_CONSTANT = 8.31432  # J/(mol·K)
MOLAR_MASS_AIR = 0.0289644  # kg/mol
GRAVITY = 9.80665  # m/s²
STANDARD_TEMPERATURE = 288.15  # K, assumed constant

# R·T / (M·g), ≈ 8434.5 m
SCALE_HEIGHT = (GAS_CONSTANT * STANDARD_TEMPERATURE) / (MOLAR_MASS_AIR * GRAVITY)


class BarometricElevationEstimator:
    """Convert pressure readings into elevation change.

    The first reading after ``reset`` becomes the reference, so every estimate
    is the height above (or below) the point where the session started.
    """

    def __init__(self) -> None:
        self.reference_pressure: float | None = None
        self.last_elevation = 0.0
        self.logger = logger.bind(component="elevation_estimator")

    def update(self, pressure_kpa: float) -> float:
        """Record a pressure reading and return the elevation change in meters.

        Non-positive readings are ignored and the previous estimate is returned.
        """
        if pressure_kpa <= 0:
            self.logger.warning("Ignoring invalid pressure reading", pressure_kpa=pressure_kpa)
            return self.last_elevation

        if self.reference_pressure is None:
            self.reference_pressure = pressure_kpa
            self.logger.info("Set reference pressure", pressure_kpa=pressure_kpa)

        self.last_elevation = SCALE_HEIGHT * math.log(self.reference_pressure / pressure_kpa)
        return self.last_elevation

    def reset(self) -> None:
        self.reference_pressure = None
        self.last_elevation = 0.0
