"""Static sensor type table.

Maps the standard sensor type ids to their type names, the number of
leading values one reading carries, and the runtime permission the source
needs before it may be subscribed.
"""

from __future__ import annotations

import enum

from pysensorhub.platform import Permission


class SensorType(enum.IntEnum):
    ACCELEROMETER = 1
    MAGNETIC_FIELD = 2
    ORIENTATION = 3
    GYROSCOPE = 4
    LIGHT = 5
    PRESSURE = 6
    TEMPERATURE = 7
    PROXIMITY = 8
    GRAVITY = 9
    LINEAR_ACCELERATION = 10
    ROTATION_VECTOR = 11
    RELATIVE_HUMIDITY = 12
    AMBIENT_TEMPERATURE = 13
    MAGNETIC_FIELD_UNCALIBRATED = 14
    GAME_ROTATION_VECTOR = 15
    GYROSCOPE_UNCALIBRATED = 16
    SIGNIFICANT_MOTION = 17
    STEP_DETECTOR = 18
    STEP_COUNTER = 19
    GEOMAGNETIC_ROTATION_VECTOR = 20
    HEART_RATE = 21
    POSE_6DOF = 28
    STATIONARY_DETECT = 29
    MOTION_DETECT = 30
    HEART_BEAT = 31
    LOW_LATENCY_OFFBODY_DETECT = 34
    ACCELEROMETER_UNCALIBRATED = 35


SENSOR_DIMENSIONS: dict[int, int] = {
    SensorType.LIGHT: 1,
    SensorType.PRESSURE: 1,
    SensorType.TEMPERATURE: 1,
    SensorType.PROXIMITY: 1,
    SensorType.RELATIVE_HUMIDITY: 1,
    SensorType.AMBIENT_TEMPERATURE: 1,
    SensorType.SIGNIFICANT_MOTION: 1,
    SensorType.STEP_DETECTOR: 1,
    SensorType.STEP_COUNTER: 1,
    SensorType.HEART_RATE: 1,
    SensorType.STATIONARY_DETECT: 1,
    SensorType.MOTION_DETECT: 1,
    SensorType.HEART_BEAT: 1,
    SensorType.LOW_LATENCY_OFFBODY_DETECT: 1,
    SensorType.ORIENTATION: 3,
    SensorType.ACCELEROMETER: 3,
    SensorType.MAGNETIC_FIELD: 3,
    SensorType.GYROSCOPE: 3,
    SensorType.GRAVITY: 3,
    SensorType.LINEAR_ACCELERATION: 3,
    SensorType.GAME_ROTATION_VECTOR: 4,
    SensorType.ROTATION_VECTOR: 5,
    SensorType.GEOMAGNETIC_ROTATION_VECTOR: 5,
    SensorType.MAGNETIC_FIELD_UNCALIBRATED: 6,
    SensorType.GYROSCOPE_UNCALIBRATED: 6,
    SensorType.ACCELEROMETER_UNCALIBRATED: 6,
    SensorType.POSE_6DOF: 15,
}

_REQUIRED_PERMISSIONS: dict[int, Permission] = {
    SensorType.HEART_RATE: Permission.BODY_SENSORS,
    SensorType.HEART_BEAT: Permission.BODY_SENSORS,
    SensorType.STEP_COUNTER: Permission.ACTIVITY_RECOGNITION,
    SensorType.STEP_DETECTOR: Permission.ACTIVITY_RECOGNITION,
}


def sensor_type_name(source_id: int) -> str:
    try:
        return SensorType(source_id).name.lower()
    except ValueError:
        return f"unknown({source_id})"


def sensor_dimensionality(source_id: int) -> int | None:
    """Number of values one reading carries, ``None`` for unknown types."""
    return SENSOR_DIMENSIONS.get(source_id)


def required_permission(source_id: int) -> Permission | None:
    return _REQUIRED_PERMISSIONS.get(source_id)
