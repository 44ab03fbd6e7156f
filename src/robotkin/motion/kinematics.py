"""
Forward kinematics for 6-axis robots with external axes.

The tool frame is found by chaining rotations about the joint frames of the
robot model. Each joint frame is first moved by the rotations of all joints
before it, so the chain stays valid for any base frame and for robots that
ride on an external axis.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from compas.geometry import Frame, Transformation

from robotkin.core.geometry import TransformationUtilities
from robotkin.core.logging import get_logger
from robotkin.core.robot import Robot
from robotkin.motion.positions import UNDEFINED, ExternalJointPosition, RobotJointPosition

logger = get_logger(__name__)


def effective_base_frame(robot: Robot, external_joint_position: ExternalJointPosition) -> Frame:
    """
    Base frame of the robot after applying the robot-moving external axis.

    The axis value is not clamped; an undefined value uses the axis default.
    """
    axis = robot.robot_moving_axis
    if axis is None:
        return robot.base_frame.copy()
    value = axis.value_from(external_joint_position)
    return robot.base_frame.transformed(axis.transformation(value))


def check_axis_limits(
    robot: Robot,
    robot_joint_position: RobotJointPosition,
    external_joint_position: ExternalJointPosition,
) -> Tuple[List[str], bool]:
    """
    Check internal and external axis values against their limits.

    Args:
        robot: Robot model
        robot_joint_position: Internal axis values in degrees
        external_joint_position: Logical external axis values

    Returns:
        Tuple of (error messages, in-limits flag)
    """
    errors = []

    for index, limits in enumerate(robot.axis_limits):
        if not limits.includes(robot_joint_position[index]):
            errors.append(f"The position of robot axis {index + 1} is not in range.")

    for axis in robot.external_axes:
        value = external_joint_position[axis.axis_number]
        if value == UNDEFINED:
            errors.append(f"The position of external logical axis {axis.axis_logic} is not defined.")
        elif not axis.limits.includes(value):
            errors.append(f"The position of external logical axis {axis.axis_logic} is not in range.")

    return errors, not errors


@dataclass
class ForwardKinematicsResult:
    """
    Result of a forward kinematics computation.

    Attributes:
        tcp_frame: Tool center point frame in world coordinates
        position_frame: Effective robot base frame
        transformations: Cumulative transformations T0..T6; T0 maps the
            nominal base onto the effective base
        external_axis_frames: Posed (clamped) attachment frame per external axis
        errors: Axis limit messages
        in_limits: False if any axis is out of its limits
    """

    tcp_frame: Frame
    position_frame: Frame
    transformations: List[Transformation]
    external_axis_frames: List[Frame] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    in_limits: bool = True


class ForwardKinematics:
    """
    Forward kinematics solver.

    Example:
        >>> fk = ForwardKinematics(robot)
        >>> result = fk.calculate(RobotJointPosition(0, 0, 0, 0, 90, 0))
        >>> result.tcp_frame.point
    """

    def __init__(self, robot: Robot):
        self.robot = robot

    def calculate(
        self,
        robot_joint_position: RobotJointPosition,
        external_joint_position: Optional[ExternalJointPosition] = None,
        check_limits: bool = True,
    ) -> ForwardKinematicsResult:
        """
        Compute the TCP frame for a joint position.

        Args:
            robot_joint_position: Internal axis values in degrees
            external_joint_position: External axis values (default: all undefined)
            check_limits: Run the axis limit check

        Returns:
            ForwardKinematicsResult
        """
        if external_joint_position is None:
            external_joint_position = ExternalJointPosition()

        robot = self.robot
        position_frame = effective_base_frame(robot, external_joint_position)
        to_position = TransformationUtilities.plane_to_plane(robot.base_frame, position_frame)

        chain = Transformation()
        transformations = [to_position]
        for axis_frame, angle in zip(robot.axis_frames, robot.joint_rotations(robot_joint_position)):
            frame = axis_frame.transformed(chain)
            rotation = TransformationUtilities.rotation_about(frame.zaxis, angle, frame.point)
            chain = rotation * chain
            transformations.append(to_position * chain)

        tcp_frame = robot.tool_frame.transformed(transformations[-1])

        external_axis_frames = [
            axis.position(axis.value_from(external_joint_position), clamp=True)
            for axis in robot.external_axes
        ]

        errors: List[str] = []
        in_limits = True
        if check_limits:
            errors, in_limits = check_axis_limits(
                robot, robot_joint_position, external_joint_position
            )

        return ForwardKinematicsResult(
            tcp_frame=tcp_frame,
            position_frame=position_frame,
            transformations=transformations,
            external_axis_frames=external_axis_frames,
            errors=errors,
            in_limits=in_limits,
        )

    def link_frames(self, robot_joint_position: RobotJointPosition) -> List[Frame]:
        """Joint frames posed at ``robot_joint_position`` (for visualization)."""
        result = self.calculate(robot_joint_position, check_limits=False)
        return [
            frame.transformed(transformation)
            for frame, transformation in zip(self.robot.axis_frames, result.transformations[1:])
        ]
