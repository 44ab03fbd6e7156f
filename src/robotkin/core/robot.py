"""
Robot model for robotkin.

A robot is described by its OPW kinematic parameters (the ABB convention of
a1, a2, a3, b, c1, c2, c3, c4), the six joint limit intervals, a base frame,
the mounted tool and an optional list of external axes. The joint frames and
the flange (mounting) frame are generated from the parameters and expressed
in world coordinates through the base frame.
"""

import copy
import dataclasses
import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Sequence

from compas.geometry import Frame, Point, Vector

from robotkin.core.config import RobotConfig
from robotkin.core.exceptions import ConfigurationError, ExternalAxisError, RobotError
from robotkin.core.geometry import TransformationUtilities

if TYPE_CHECKING:
    from robotkin.motion.external_axes import ExternalAxis

MAX_EXTERNAL_AXES = 6
AXIS_LOGIC = "abcdef"

DEFAULT_AXIS_SIGNS = (1, 1, 1, 1, 1, 1)
DEFAULT_AXIS_OFFSETS = (0.0, 0.0, -90.0, 0.0, 0.0, 0.0)
DEFAULT_WRIST_TOLERANCE = 1e-3


def _axis_frame(point: Point, axis: str) -> Frame:
    """Frame at ``point`` whose Z-axis is the world axis named ``axis``."""
    if axis == "x":
        return Frame(point, Vector(0, 1, 0), Vector(0, 0, 1))
    if axis == "y":
        return Frame(point, Vector(0, 0, 1), Vector(1, 0, 0))
    return Frame(point, Vector(1, 0, 0), Vector(0, 1, 0))


@dataclass(frozen=True)
class AxisLimits:
    """
    Closed interval of allowed axis values (degrees or mm).

    Attributes:
        lower: Lower bound
        upper: Upper bound
    """

    lower: float
    upper: float

    def __post_init__(self) -> None:
        if self.lower > self.upper:
            raise ConfigurationError(
                "Axis limit lower bound exceeds upper bound",
                details={"lower": self.lower, "upper": self.upper},
            )

    def includes(self, value: float) -> bool:
        """Check whether a value lies inside the closed interval."""
        return self.lower <= value <= self.upper

    def clamp(self, value: float) -> float:
        """Clamp a value into the interval."""
        return min(max(value, self.lower), self.upper)

    def closest_to_zero(self) -> float:
        """Value inside the interval with the smallest magnitude."""
        return self.clamp(0.0)

    @property
    def length(self) -> float:
        return self.upper - self.lower


@dataclass(frozen=True)
class RobotKinematicParameters:
    """
    OPW kinematic parameters of a 6-axis arm with a spherical wrist.

    Attributes:
        a1: Shoulder offset along X (axis 1 to axis 2)
        a2: Elbow offset (negative when the forearm sits above axis 3)
        a3: Wrist offset; must be zero for the closed-form solver
        b: Lateral offset of the wrist along Y
        c1: Height of axis 2 above the base
        c2: Lower arm length (axis 2 to axis 3)
        c3: Forearm length (axis 3 to the wrist center)
        c4: Wrist center to flange distance
    """

    a1: float
    a2: float
    a3: float
    b: float
    c1: float
    c2: float
    c3: float
    c4: float

    @property
    def is_spherical_wrist(self) -> bool:
        return self.a3 == 0

    def axis_frames(self) -> list[Frame]:
        """
        Joint frames at the zero position in the robot's local coordinates.

        Each frame's Z-axis is the rotation axis of its joint.
        """
        a1, a2, a3, b = self.a1, self.a2, self.a3, self.b
        c1, c2, c3, c4 = self.c1, self.c2, self.c3, self.c4

        return [
            _axis_frame(Point(0, 0, 0), "z"),
            _axis_frame(Point(a1, 0, c1), "y"),
            _axis_frame(Point(a1, 0, c1 + c2), "y"),
            _axis_frame(Point(a1, b, c1 + c2 - a2), "x"),
            _axis_frame(Point(a1 + c3, b, c1 + c2 - a2), "y"),
            _axis_frame(Point(a1 + c3 + c4, b, c1 + c2 - a2 - a3), "x"),
        ]

    def mounting_frame(self) -> Frame:
        """Flange frame at the zero position: X down, Y along world Y, Z forward."""
        origin = self.axis_frames()[5].point
        return Frame(origin, Vector(0, 0, -1), Vector(0, 1, 0))


@dataclass
class RobotTool:
    """
    Tool mounted on the robot flange.

    Attributes:
        name: Tool name
        attachment_frame: Frame of the tool that is bolted onto the flange
        tool_frame: Tool center point frame, in the same space as the attachment frame
    """

    name: str = "tool0"
    attachment_frame: Frame = field(default_factory=Frame.worldXY)
    tool_frame: Frame = field(default_factory=Frame.worldXY)


class Robot:
    """
    Long-lived robot model consumed by the kinematics solvers.

    The model is treated as read-only by the solvers. Use ``with_tool`` or
    ``copy`` to obtain an independent variant instead of mutating an instance
    that is shared.
    """

    def __init__(
        self,
        name: str,
        kinematic_parameters: RobotKinematicParameters,
        axis_limits: Sequence[AxisLimits | tuple[float, float]],
        base_frame: Frame | None = None,
        tool: RobotTool | None = None,
        external_axes: Sequence["ExternalAxis"] | None = None,
        wrist_singularity_tolerance: float = DEFAULT_WRIST_TOLERANCE,
        axis_signs: Sequence[int] = DEFAULT_AXIS_SIGNS,
        axis_offsets: Sequence[float] = DEFAULT_AXIS_OFFSETS,
    ) -> None:
        """
        Initialize robot model.

        Args:
            name: Robot name
            kinematic_parameters: OPW parameters in mm
            axis_limits: Six joint limit intervals in degrees
            base_frame: Robot base frame in world coordinates (default world XY)
            tool: Mounted tool (default: flange tool ``tool0``)
            external_axes: External axes attached to this robot
            wrist_singularity_tolerance: Axis 5 magnitude (radians) below which
                a solution is flagged as wrist singular
            axis_signs: Per-axis sign correction of the closed-form solver
            axis_offsets: Per-axis offset correction in degrees

        Raises:
            RobotError: If the model is inconsistent
        """
        if len(axis_limits) != 6:
            raise RobotError(
                f"Robot '{name}' needs exactly 6 axis limits",
                details={"count": len(axis_limits)},
            )
        if len(axis_signs) != 6 or len(axis_offsets) != 6:
            raise RobotError(f"Robot '{name}' needs 6 axis signs and 6 axis offsets")

        self.name = name
        self.kinematic_parameters = kinematic_parameters
        self.axis_limits = [
            limits if isinstance(limits, AxisLimits) else AxisLimits(*limits)
            for limits in axis_limits
        ]
        self.base_frame = base_frame.copy() if base_frame is not None else Frame.worldXY()
        self.tool = tool if tool is not None else RobotTool()
        self.wrist_singularity_tolerance = wrist_singularity_tolerance
        self.axis_signs = tuple(1 if sign >= 0 else -1 for sign in axis_signs)
        self.axis_offsets = tuple(float(offset) for offset in axis_offsets)
        self.external_axes = self._validate_external_axes(list(external_axes or []))

    def _validate_external_axes(self, axes: list["ExternalAxis"]) -> list["ExternalAxis"]:
        if len(axes) > MAX_EXTERNAL_AXES:
            raise RobotError(
                f"More than {MAX_EXTERNAL_AXES} external axes are attached to robot '{self.name}'"
            )

        if sum(1 for axis in axes if axis.moves_robot) > 1:
            raise RobotError(
                "More than one external axis is defined that moves the robot",
                details={"axes": [axis.name for axis in axes if axis.moves_robot]},
            )

        validated = []
        used: set[str] = set()
        for index, axis in enumerate(axes):
            if axis.axis_logic is None:
                axis = dataclasses.replace(axis, axis_logic=AXIS_LOGIC[index])
            if axis.axis_logic not in AXIS_LOGIC:
                raise ExternalAxisError(
                    f"Invalid axis logic '{axis.axis_logic}'",
                    axis_name=axis.name,
                    details={"allowed": list(AXIS_LOGIC)},
                )
            if axis.axis_logic in used:
                raise ExternalAxisError(
                    f"Axis logic '{axis.axis_logic}' is used twice",
                    axis_name=axis.name,
                )
            used.add(axis.axis_logic)
            validated.append(axis)

        return validated

    def joint_rotations(self, joint_values: Sequence[float]) -> list[float]:
        """
        Rotation of each joint about its frame in ``axis_frames``, in radians.

        The joint frames describe the arm with the default sign and offset
        corrections at zero. A robot with other corrections is rotated by
        ``sign * value - offset`` measured from that pose, the same angle the
        closed-form solver works with.

        Args:
            joint_values: Six axis values in degrees

        Returns:
            Six rotation angles in radians
        """
        return [
            math.radians(sign * value - offset + default_offset)
            for value, sign, offset, default_offset in zip(
                joint_values, self.axis_signs, self.axis_offsets, DEFAULT_AXIS_OFFSETS
            )
        ]

    @property
    def axis_frames(self) -> list[Frame]:
        """Joint frames at the zero position in world coordinates."""
        orient = TransformationUtilities.plane_to_plane(Frame.worldXY(), self.base_frame)
        return [frame.transformed(orient) for frame in self.kinematic_parameters.axis_frames()]

    @property
    def mounting_frame(self) -> Frame:
        """Flange frame at the zero position in world coordinates."""
        orient = TransformationUtilities.plane_to_plane(Frame.worldXY(), self.base_frame)
        return self.kinematic_parameters.mounting_frame().transformed(orient)

    @property
    def tool_frame(self) -> Frame:
        """TCP frame of the mounted tool at the zero position in world coordinates."""
        return self.attach_tool_frame(self.tool)

    def attach_tool_frame(self, tool: RobotTool) -> Frame:
        """TCP frame of ``tool`` when mounted on this robot at the zero position."""
        mount = TransformationUtilities.plane_to_plane(tool.attachment_frame, self.mounting_frame)
        return tool.tool_frame.transformed(mount)

    @property
    def robot_moving_axis(self) -> "ExternalAxis | None":
        """The external axis that carries the robot base, if any."""
        for axis in self.external_axes:
            if axis.moves_robot:
                return axis
        return None

    def get_external_axis(self, logic: str) -> "ExternalAxis":
        """
        Get an external axis by its logic letter.

        Raises:
            ExternalAxisError: If no axis uses that logic letter
        """
        for axis in self.external_axes:
            if axis.axis_logic == logic:
                return axis
        raise ExternalAxisError(
            f"No external axis with logic '{logic}' on robot '{self.name}'",
            details={"available": [axis.axis_logic for axis in self.external_axes]},
        )

    def copy(self) -> "Robot":
        """Deep copy of the robot model."""
        return copy.deepcopy(self)

    def with_tool(self, tool: RobotTool) -> "Robot":
        """Deep copy of the robot model with a different tool mounted."""
        duplicate = self.copy()
        duplicate.tool = copy.deepcopy(tool)
        return duplicate

    @classmethod
    def from_config(cls, config: RobotConfig) -> "Robot":
        """
        Build a robot model from a validated configuration.

        A configuration either names a preset or spells out the kinematic
        parameters and joint limits; explicit values override the preset.

        Args:
            config: RobotConfig object

        Returns:
            Robot instance

        Raises:
            ConfigurationError: If neither a preset nor kinematics are given
        """
        from robotkin.core.presets import get_preset
        from robotkin.motion.external_axes import ExternalAxis

        if config.preset is not None:
            preset = get_preset(config.preset)
            parameters = preset.kinematic_parameters
            limits = preset.axis_limits
        else:
            if config.kinematics is None or not config.joint_limits:
                raise ConfigurationError(
                    f"Robot '{config.name}' needs either a preset or kinematics and joint limits"
                )
            parameters = None
            limits = []

        if config.kinematics is not None:
            parameters = RobotKinematicParameters(**config.kinematics.model_dump())
        if config.joint_limits:
            limits = [AxisLimits(item.lower, item.upper) for item in config.joint_limits]

        tool = RobotTool(
            name=config.tool.name,
            attachment_frame=config.tool.attachment.to_frame(),
            tool_frame=config.tool.tcp.to_frame(),
        )

        return cls(
            name=config.name,
            kinematic_parameters=parameters,
            axis_limits=limits,
            base_frame=config.base_frame.to_frame(),
            tool=tool,
            external_axes=[ExternalAxis.from_config(item) for item in config.external_axes],
            wrist_singularity_tolerance=config.wrist_singularity_tolerance,
            axis_signs=config.axis_signs,
            axis_offsets=config.axis_offsets,
        )

    def __repr__(self) -> str:
        return (
            f"Robot(name='{self.name}', external_axes={len(self.external_axes)}, "
            f"tool='{self.tool.name}')"
        )
