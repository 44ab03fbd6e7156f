"""
Inverse kinematics for movements.

Wraps the closed-form solver with everything around it: mapping a target
through its work object and tool, undoing the contribution of an external
axis that carries the robot, selecting a branch by configuration data and
reporting limit violations and singularities as warning strings.
"""

import math
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np
from compas.geometry import Frame

from robotkin.core.geometry import TransformationUtilities, normalize_angle
from robotkin.core.logging import get_logger
from robotkin.core.robot import Robot, RobotTool
from robotkin.motion.actions import JointTarget, Movement, RobotTarget
from robotkin.motion.external_axes import ExternalAxisType
from robotkin.motion.kinematics import ForwardKinematics, check_axis_limits, effective_base_frame
from robotkin.motion.opw import OPWKinematics, Solution
from robotkin.motion.positions import (
    UNDEFINED,
    ConfigurationData,
    ExternalJointPosition,
    RobotJointPosition,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class ConfigurationDescription:
    """Physical meaning of a configuration index."""

    cfx: int
    wrist_center_vs_axis1: str
    wrist_center_vs_lower_arm: str
    axis5: str


CONFIGURATIONS: Tuple[ConfigurationDescription, ...] = (
    ConfigurationDescription(0, "front", "front", "positive"),
    ConfigurationDescription(1, "front", "front", "negative"),
    ConfigurationDescription(2, "front", "behind", "positive"),
    ConfigurationDescription(3, "front", "behind", "negative"),
    ConfigurationDescription(4, "behind", "front", "positive"),
    ConfigurationDescription(5, "behind", "front", "negative"),
    ConfigurationDescription(6, "behind", "behind", "positive"),
    ConfigurationDescription(7, "behind", "behind", "negative"),
)

# Raw solver index for each configuration index
SOLVER_ORDER = (0, 4, 1, 5, 2, 6, 3, 7)

TURN_OFFSETS = (-360.0, 0.0, 360.0)


@dataclass
class InverseKinematicsResult:
    """
    Result of an inverse kinematics computation.

    Attributes:
        movement: The movement that was solved
        robot_joint_position: Selected joint position
        external_joint_position: External axis values belonging to the solution
        configuration: Configuration data of the selected joint position
        solutions: All eight branches indexed by configuration index
            (empty for joint targets)
        position_frame: Effective robot base frame
        target_frame: TCP target in world coordinates
        end_frame: Flange target in the robot's local coordinates
        errors: Limit and singularity warnings
        in_limits: False if an axis is out of range or the target is out of reach
        reference_distance: Summed axis distance to the reference joint
            position after a closest-to-reference search
    """

    movement: Movement
    robot_joint_position: RobotJointPosition
    external_joint_position: ExternalJointPosition
    configuration: ConfigurationData
    solutions: Tuple[Solution, ...] = ()
    position_frame: Optional[Frame] = None
    target_frame: Optional[Frame] = None
    end_frame: Optional[Frame] = None
    errors: List[str] = field(default_factory=list)
    in_limits: bool = True
    reference_distance: Optional[float] = None

    @property
    def selected(self) -> Optional[Solution]:
        if not self.solutions:
            return None
        return self.solutions[self.configuration.cfx]


def adjust_turn(value: float, target_quadrant: int) -> float:
    """
    Shift an axis value by whole turns so that its quadrant matches ``target_quadrant``.

    Values on a quadrant boundary also match the quadrant below them.
    """
    quadrant = math.floor(value / 90)
    diff = target_quadrant - quadrant

    if diff != 0 and diff % 4 == 0:
        return value + diff / 4 * 360
    if (value / 90) % 1 == 0 and target_quadrant != quadrant + 1 and (diff + 1) % 4 == 0:
        return value + (diff + 1) / 4 * 360
    return value


class InverseKinematics:
    """
    Inverse kinematics solver for movements.

    Example:
        >>> ik = InverseKinematics(robot)
        >>> result = ik.calculate(movement)
        >>> result.robot_joint_position, result.errors
    """

    def __init__(self, robot: Robot):
        """
        Initialize the solver.

        Args:
            robot: Robot model; read only

        Raises:
            RobotError: If the robot has no spherical wrist
        """
        self.robot = robot
        self.opw = OPWKinematics(
            robot.kinematic_parameters,
            robot.axis_signs,
            robot.axis_offsets,
            robot.wrist_singularity_tolerance,
        )

    def solve_local(self, end_frame: Frame) -> Tuple[Solution, ...]:
        """Eight branches for a local flange frame, indexed by configuration index."""
        raw = self.opw.inverse(end_frame)
        return tuple(raw[index] for index in SOLVER_ORDER)

    def calculate(self, movement: Movement) -> InverseKinematicsResult:
        """
        Solve a movement.

        Joint targets are copied as they are. Cartesian targets are solved in
        closed form and the branch at the target's configuration index is
        selected.

        Args:
            movement: Movement to solve

        Returns:
            InverseKinematicsResult
        """
        target = movement.target

        if isinstance(target, JointTarget):
            external = self.calculate_external_joint_position(movement)
            joint_position = target.robot_joint_position.copy()
            errors, in_limits = check_axis_limits(self.robot, joint_position, external)
            return InverseKinematicsResult(
                movement=movement,
                robot_joint_position=joint_position,
                external_joint_position=external,
                configuration=self.configuration_from_joint_position(joint_position, external),
                position_frame=effective_base_frame(self.robot, external),
                errors=[f"Movement {movement.name}: {error}" for error in errors],
                in_limits=in_limits,
            )

        target_frame = movement.posed_global_target_frame()
        tool = movement.tool or self.robot.tool
        end_frame = self._end_frame(tool, target_frame)
        position_frame = self._position_frame(target, target_frame)
        local_end_frame = end_frame.transformed(TransformationUtilities.change_basis(position_frame))

        solutions = self.solve_local(local_end_frame)
        configuration = target.configuration
        joint_position = solutions[configuration.cfx].joint_position.copy()
        joint_position[0] = adjust_turn(joint_position[0], configuration.cf1)
        joint_position[3] = adjust_turn(joint_position[3], configuration.cf4)
        joint_position[5] = adjust_turn(joint_position[5], configuration.cf6)

        result = InverseKinematicsResult(
            movement=movement,
            robot_joint_position=joint_position,
            external_joint_position=self._external_from_position_frame(position_frame, target),
            configuration=ConfigurationData.from_joint_position(
                joint_position, configuration.cfx, name=configuration.name
            ),
            solutions=solutions,
            position_frame=position_frame,
            target_frame=target_frame,
            end_frame=local_end_frame,
        )
        self._check(result)

        logger.debug(
            "ik_solved",
            movement=movement.name,
            cfx=configuration.cfx,
            wrist_singular=solutions[configuration.cfx].wrist_singular,
            in_limits=result.in_limits,
        )
        return result

    def _end_frame(self, tool: RobotTool, target_frame: Frame) -> Frame:
        return tool.attachment_frame.transformed(
            TransformationUtilities.plane_to_plane(tool.tool_frame, target_frame)
        )

    def _position_frame(self, target: RobotTarget, target_frame: Frame) -> Frame:
        robot = self.robot
        axis = robot.robot_moving_axis
        if axis is None:
            return robot.base_frame.copy()

        value = target.external_joint_position[axis.axis_number]
        if value == UNDEFINED and axis.axis_type == ExternalAxisType.LINEAR:
            value = axis.closest_parameter(target_frame.point, origin=robot.base_frame.point)
            return robot.base_frame.transformed(axis.transformation(value))

        return effective_base_frame(robot, target.external_joint_position)

    def _external_from_position_frame(
        self, position_frame: Frame, target: RobotTarget
    ) -> ExternalJointPosition:
        external = ExternalJointPosition(name=target.external_joint_position.name)
        base_frame = self.robot.base_frame

        for axis in self.robot.external_axes:
            if axis.moves_robot and axis.axis_type == ExternalAxisType.LINEAR:
                offset = np.asarray(position_frame.point) - np.asarray(base_frame.point)
                distance = float(np.linalg.norm(offset))
                along = float(np.dot(offset, np.asarray(axis.direction)))
                external[axis.axis_number] = distance if along >= 0 else -distance
            else:
                external[axis.axis_number] = axis.value_from(target.external_joint_position)

        return external

    def calculate_external_joint_position(self, movement: Movement) -> ExternalJointPosition:
        """
        External joint position reached by a movement.

        Defined values are kept, undefined values of configured axes resolve
        to their defaults. For a Cartesian target the robot-moving linear axis
        gets the distance the base travelled along the guide.
        """
        target = movement.target
        if isinstance(target, JointTarget):
            external = ExternalJointPosition(name=target.external_joint_position.name)
            for axis in self.robot.external_axes:
                external[axis.axis_number] = axis.value_from(target.external_joint_position)
            return external

        position_frame = self._position_frame(target, movement.posed_global_target_frame())
        return self._external_from_position_frame(position_frame, target)

    def _check(self, result: InverseKinematicsResult) -> None:
        prefix = f"Movement {result.movement.name}: "
        errors, in_limits = check_axis_limits(
            self.robot, result.robot_joint_position, result.external_joint_position
        )
        messages = [prefix + error for error in errors]

        solution = result.selected
        if solution is not None:
            if solution.wrist_singular:
                messages.append(prefix + "The robot is near a wrist singularity.")
            if solution.elbow_singular:
                messages.append(prefix + "The target is out of reach (elbow singularity).")
                in_limits = False
            if solution.shoulder_singular:
                messages.append(prefix + "The robot is near a shoulder singularity.")

        result.errors = messages
        result.in_limits = in_limits

    def closest_to_reference(
        self, result: InverseKinematicsResult, reference: RobotJointPosition
    ) -> InverseKinematicsResult:
        """
        Replace the selected solution by the candidate closest to ``reference``.

        Every branch is tried with axis 4 and axis 6 shifted by -360, 0 and
        +360 degrees. Candidates outside the axis limits are skipped and a
        candidate must be strictly closer than the current selection.

        Args:
            result: Result of ``calculate`` for a Cartesian target
            reference: Joint position to stay close to, usually the previous one

        Returns:
            New result with the closest joint position and its distance
        """
        best = result.robot_joint_position
        best_cfx = result.configuration.cfx
        best_distance = reference.distance(best)

        for cfx, solution in enumerate(result.solutions):
            for offset4 in TURN_OFFSETS:
                for offset6 in TURN_OFFSETS:
                    candidate = solution.joint_position.copy()
                    candidate[3] += offset4
                    candidate[5] += offset6
                    if not all(
                        limits.includes(value)
                        for limits, value in zip(self.robot.axis_limits, candidate)
                    ):
                        continue
                    distance = reference.distance(candidate)
                    if distance < best_distance:
                        best, best_cfx, best_distance = candidate, cfx, distance

        closest = InverseKinematicsResult(
            movement=result.movement,
            robot_joint_position=best.copy(),
            external_joint_position=result.external_joint_position.copy(),
            configuration=ConfigurationData.from_joint_position(
                best, best_cfx, name=result.configuration.name
            ),
            solutions=result.solutions,
            position_frame=result.position_frame,
            target_frame=result.target_frame,
            end_frame=result.end_frame,
            reference_distance=best_distance,
        )
        self._check(closest)
        return closest

    def configuration_from_joint_position(
        self,
        joint_position: RobotJointPosition,
        external_joint_position: Optional[ExternalJointPosition] = None,
    ) -> ConfigurationData:
        """
        Configuration data of a joint position.

        The quadrants come from the joint values. The configuration index is
        that of the branch whose solution is closest to the joint position
        when the resulting TCP frame is solved again.
        """
        if external_joint_position is None:
            external_joint_position = ExternalJointPosition()

        fk = ForwardKinematics(self.robot).calculate(
            joint_position, external_joint_position, check_limits=False
        )
        end_frame = self._end_frame(self.robot.tool, fk.tcp_frame)
        local_end_frame = end_frame.transformed(
            TransformationUtilities.change_basis(fk.position_frame)
        )
        solutions = self.solve_local(local_end_frame)

        normalized = joint_position.normalized()
        best_cfx = 0
        best_distance = math.inf
        for cfx, solution in enumerate(solutions):
            distance = sum(
                abs(normalize_angle(a - b)) for a, b in zip(normalized, solution.joint_position)
            )
            if distance < best_distance:
                best_cfx, best_distance = cfx, distance
            if distance < 1e-3:
                break

        return ConfigurationData.from_joint_position(joint_position, best_cfx)
