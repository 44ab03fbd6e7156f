"""
External axes support for robotic systems.

This module provides support for external axes including:
- Linear tracks (rail-mounted robots or sliding work tables)
- Rotational positioners (turntables)
- Posing an axis for a given value and projecting points onto its guide
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import numpy as np
from compas.geometry import Frame, Line, Point, Rotation, Transformation, Translation, Vector

from robotkin.core.config import ExternalAxisConfig
from robotkin.core.exceptions import ExternalAxisError
from robotkin.core.robot import AXIS_LOGIC, AxisLimits
from robotkin.motion.positions import UNDEFINED, ExternalJointPosition


class ExternalAxisType(Enum):
    """Types of external axes."""

    LINEAR = "linear"  # Translation along the axis direction (mm)
    ROTATIONAL = "rotational"  # Rotation about the axis line (degrees)


@dataclass
class ExternalAxis:
    """
    Represents an external axis (positioner or linear track).

    Attributes:
        name: Axis name/identifier
        axis_type: Type of external axis
        attachment_frame: Frame of whatever the axis carries at value zero
        axis_frame: The axis line runs through this frame's origin along its Z-axis
        limits: Allowed values (degrees or mm)
        axis_logic: Logical axis letter a-f; assigned by position when omitted
        moves_robot: True if the axis carries the robot base
    """

    name: str
    axis_type: ExternalAxisType
    attachment_frame: Frame
    axis_frame: Frame
    limits: AxisLimits
    axis_logic: Optional[str] = None
    moves_robot: bool = False

    @property
    def axis_number(self) -> int:
        """Index 0-5 of the logical axis, or -1 if no logic is assigned."""
        if self.axis_logic is None:
            return -1
        return AXIS_LOGIC.find(self.axis_logic)

    @property
    def default_value(self) -> float:
        """Value used when the external joint position leaves this axis undefined."""
        return self.limits.closest_to_zero()

    @property
    def direction(self) -> Vector:
        return Vector(*self.axis_frame.zaxis).unitized()

    def value_from(self, external_joint_position: ExternalJointPosition) -> float:
        """
        Read this axis' value from an external joint position.

        Args:
            external_joint_position: Values of all logical axes

        Returns:
            The stored value, or the default if the value is undefined
        """
        if self.axis_number < 0:
            raise ExternalAxisError("External axis has no axis logic", axis_name=self.name)
        value = external_joint_position[self.axis_number]
        if value == UNDEFINED:
            return self.default_value
        return value

    def transformation(self, value: float, clamp: bool = False) -> Transformation:
        """
        Transformation of the axis at ``value``.

        Args:
            value: Axis value in mm (linear) or degrees (rotational)
            clamp: Clamp the value into the axis limits first

        Returns:
            Translation along the axis direction or rotation about the axis line
        """
        if clamp:
            value = self.limits.clamp(value)

        if self.axis_type == ExternalAxisType.LINEAR:
            return Translation.from_vector(self.direction.scaled(value))

        return Rotation.from_axis_and_angle(
            self.direction, math.radians(value), point=self.axis_frame.point
        )

    def position(self, value: float, clamp: bool = False) -> Frame:
        """Attachment frame posed at ``value``."""
        return self.attachment_frame.transformed(self.transformation(value, clamp=clamp))

    def guide_line(self) -> Line:
        """
        Line covered by a linear axis between its limits.

        Raises:
            ExternalAxisError: If the axis is not linear
        """
        self._require_linear("guide_line")
        origin = Point(*self.attachment_frame.point)
        direction = self.direction
        return Line(
            origin + direction.scaled(self.limits.lower),
            origin + direction.scaled(self.limits.upper),
        )

    def closest_parameter(self, point: Point, origin: Optional[Point] = None) -> float:
        """
        Axis value whose posed origin is closest to ``point``.

        The projection onto the guide line is clipped to the axis limits.

        Args:
            point: Point to project
            origin: Point that sits at axis value zero (default: attachment origin)
        """
        self._require_linear("closest_parameter")
        if origin is None:
            origin = self.attachment_frame.point
        offset = np.asarray(point, dtype=float) - np.asarray(origin, dtype=float)
        parameter = float(np.dot(offset, np.asarray(self.direction, dtype=float)))
        return self.limits.clamp(parameter)

    def _require_linear(self, operation: str) -> None:
        if self.axis_type != ExternalAxisType.LINEAR:
            raise ExternalAxisError(
                f"{operation} is only defined for linear axes", axis_name=self.name
            )

    @classmethod
    def from_config(cls, config: ExternalAxisConfig) -> "ExternalAxis":
        """Build an external axis from its validated configuration."""
        return cls(
            name=config.name,
            axis_type=ExternalAxisType(config.type),
            attachment_frame=config.attachment.to_frame(),
            axis_frame=config.axis.to_frame(),
            limits=AxisLimits(config.lower, config.upper),
            axis_logic=config.axis_logic,
            moves_robot=config.moves_robot,
        )


def create_turntable(
    name: str = "turntable",
    max_rotation: float = 360.0,
    position: tuple = (0, 0, 0),
    axis_logic: Optional[str] = None,
) -> ExternalAxis:
    """
    Create a turntable rotating about the world Z-axis.

    Args:
        name: Axis name
        max_rotation: Total rotation range (degrees), centered on zero
        position: Table center (x, y, z) in mm
        axis_logic: Logical axis letter

    Returns:
        Rotational external axis
    """
    frame = Frame(Point(*position), Vector(1, 0, 0), Vector(0, 1, 0))
    return ExternalAxis(
        name=name,
        axis_type=ExternalAxisType.ROTATIONAL,
        attachment_frame=frame,
        axis_frame=frame.copy(),
        limits=AxisLimits(-max_rotation / 2, max_rotation / 2),
        axis_logic=axis_logic,
    )


def create_linear_track(
    name: str = "linear_track",
    length: float = 3000.0,
    position: tuple = (0, 0, 0),
    direction: tuple = (1, 0, 0),
    moves_robot: bool = True,
    axis_logic: Optional[str] = None,
) -> ExternalAxis:
    """
    Create a linear track.

    Args:
        name: Axis name
        length: Track length (mm); values run from 0 to ``length``
        position: Track start position (x, y, z)
        direction: Travel direction
        moves_robot: True if the robot rides on the track
        axis_logic: Logical axis letter

    Returns:
        Linear external axis
    """
    zaxis = Vector(*direction).unitized()
    helper = Vector(0, 0, 1) if abs(zaxis.z) < 0.9 else Vector(1, 0, 0)
    xaxis = helper.cross(zaxis)
    axis_frame = Frame(Point(*position), xaxis, zaxis.cross(xaxis))
    return ExternalAxis(
        name=name,
        axis_type=ExternalAxisType.LINEAR,
        attachment_frame=Frame(Point(*position), Vector(1, 0, 0), Vector(0, 1, 0)),
        axis_frame=axis_frame,
        limits=AxisLimits(0.0, length),
        axis_logic=axis_logic,
        moves_robot=moves_robot,
    )
