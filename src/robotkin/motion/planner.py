"""
Path generation for motion programs.

The path generator walks through a program's actions and approximates the
trajectory the robot follows: every movement is split into a fixed number of
interpolation steps, each with a joint position, external joint position,
TCP frame and configuration data. Joint movements interpolate in joint
space, linear movements in Cartesian space and circular movements along the
arc through their circular point.

The result is a geometric approximation for visualization and limit
checking; speed profiles and zones of the real controller are not modelled.
"""

import dataclasses
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
from compas.geometry import Frame, Point, Polyline

from robotkin.core.exceptions import PathGenerationError
from robotkin.core.geometry import TransformationUtilities, slerp_frames
from robotkin.core.logging import get_logger, kinematics_context
from robotkin.core.robot import Robot, RobotTool
from robotkin.motion.actions import (
    Action,
    CirclePathMode,
    CirPathMode,
    JointConfigurationControl,
    JointTarget,
    LinearConfigurationControl,
    Movement,
    MovementType,
    OverrideRobotTool,
    RobotTarget,
    WaitTime,
    ungroup,
)
from robotkin.motion.inverse import InverseKinematics, InverseKinematicsResult
from robotkin.motion.kinematics import ForwardKinematics
from robotkin.motion.positions import (
    ConfigurationData,
    ExternalJointPosition,
    RobotJointPosition,
)

logger = get_logger(__name__)

MIN_CIRCLE_DISTANCE = 0.1  # mm
MIN_CIRCLE_ANGLE = 1.0  # degrees
MAX_CIRCLE_SWEEP = 240.0  # degrees
CIR_POINT_RANGE = (0.25, 0.75)


@dataclass
class PathState:
    """
    Accumulator threaded through the path generator.

    Attributes:
        robot_joint_position: Last reached joint position
        external_joint_position: Last reached external joint position
        tcp_frame: Last reached TCP frame in world coordinates
        tool: Active tool (changed by OverrideRobotTool)
        joint_configuration_control: Configuration control of joint movements
        linear_configuration_control: Configuration control of linear and circular movements
        circle_path_mode: Orientation mode of circular movements
        program_time: Accumulated program time in seconds
    """

    robot_joint_position: RobotJointPosition
    external_joint_position: ExternalJointPosition
    tcp_frame: Frame
    tool: RobotTool
    joint_configuration_control: bool = True
    linear_configuration_control: bool = True
    circle_path_mode: CirPathMode = CirPathMode.PATH_FRAME
    program_time: float = 0.0


@dataclass
class SegmentResult:
    """Interpolation steps of a single movement."""

    movement: Movement
    robot_joint_positions: List[RobotJointPosition] = field(default_factory=list)
    external_joint_positions: List[ExternalJointPosition] = field(default_factory=list)
    frames: List[Frame] = field(default_factory=list)
    configurations: List[ConfigurationData] = field(default_factory=list)
    in_limits: List[bool] = field(default_factory=list)
    path: Optional[Polyline] = None
    errors: List[str] = field(default_factory=list)
    leading_errors: List[str] = field(default_factory=list)
    time: float = 0.0

    def add(
        self,
        robot_joint_position: RobotJointPosition,
        external_joint_position: ExternalJointPosition,
        frame: Frame,
        configuration: ConfigurationData,
        in_limits: bool,
    ) -> None:
        self.robot_joint_positions.append(robot_joint_position)
        self.external_joint_positions.append(external_joint_position)
        self.frames.append(frame)
        self.configurations.append(configuration)
        self.in_limits.append(in_limits)


@dataclass
class PathResult:
    """
    Trajectory of a complete program.

    Attributes:
        robot_joint_positions: Joint position per step
        external_joint_positions: External joint position per step
        frames: TCP frame per step in world coordinates
        configurations: Configuration data per step
        in_limits: Axis limit flag per step
        paths: TCP path per movement (None for movements without TCP travel)
        errors: Warnings without duplicates, in order of appearance
        is_first_movement_move_abs_j: False if the first movement is not MoveAbsJ
        program_time: Estimated program time in seconds
    """

    robot_joint_positions: List[RobotJointPosition] = field(default_factory=list)
    external_joint_positions: List[ExternalJointPosition] = field(default_factory=list)
    frames: List[Frame] = field(default_factory=list)
    configurations: List[ConfigurationData] = field(default_factory=list)
    in_limits: List[bool] = field(default_factory=list)
    paths: List[Optional[Polyline]] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    is_first_movement_move_abs_j: bool = True
    program_time: float = 0.0

    def __len__(self) -> int:
        return len(self.robot_joint_positions)


@dataclass
class _Arc:
    """Circular arc through three points, swept counter-clockwise about ``normal``."""

    center: np.ndarray
    normal: np.ndarray
    radius: float
    sweep: float
    _e1: np.ndarray
    _e2: np.ndarray

    @classmethod
    def through(cls, start: np.ndarray, via: np.ndarray, end: np.ndarray) -> Optional["_Arc"]:
        u = via - start
        v = end - start
        w = np.cross(u, v)
        w_sq = float(np.dot(w, w))
        if w_sq < 1e-12:
            return None

        center = start + (np.dot(u, u) * np.cross(v, w) + np.dot(v, v) * np.cross(w, u)) / (2.0 * w_sq)
        normal = np.cross(via - start, end - via)
        normal = normal / np.linalg.norm(normal)
        radius = float(np.linalg.norm(start - center))
        e1 = (start - center) / radius
        e2 = np.cross(normal, e1)

        arc = cls(center, normal, radius, 0.0, e1, e2)
        arc.sweep = arc.angle_of(end)
        return arc

    def angle_of(self, point: np.ndarray) -> float:
        """Angle of a point measured from the start, in [0, 2 pi)."""
        offset = point - self.center
        return math.atan2(float(np.dot(offset, self._e2)), float(np.dot(offset, self._e1))) % (2.0 * math.pi)

    def parameter_of(self, point: np.ndarray) -> float:
        return self.angle_of(point) / self.sweep

    def point_at(self, t: float) -> np.ndarray:
        angle = t * self.sweep
        return self.center + self.radius * (math.cos(angle) * self._e1 + math.sin(angle) * self._e2)

    @property
    def length(self) -> float:
        return self.radius * self.sweep

    def rotate(self, frame: Frame, angle: float) -> Frame:
        """Rotate a frame about the arc axis."""
        rotation = TransformationUtilities.rotation_about(
            self.normal.tolist(), angle, self.center.tolist()
        )
        return frame.transformed(rotation)


@dataclass
class _Kinematics:
    robot: Robot
    forward: ForwardKinematics
    inverse: InverseKinematics


def _sign(value: float) -> int:
    return (value > 0) - (value < 0)


def _append_point(points: List[Point], point: Point) -> None:
    if list(points[-1]) != list(point):
        points.append(point)


def _path_curve(points: Sequence[Point]) -> Optional[Polyline]:
    if len(points) > 1:
        return Polyline(points)
    return None


def _movement_time(movement: Movement, length: float) -> float:
    if movement.time >= 0:
        return movement.time
    return length / movement.speed.v_tcp


class PathGenerator:
    """
    Path generator for motion programs.

    Example:
        >>> generator = PathGenerator(robot, interpolations=5)
        >>> result = generator.calculate(actions)
        >>> result.frames[-1], result.errors
    """

    def __init__(self, robot: Robot, interpolations: int = 5):
        """
        Initialize path generator.

        Args:
            robot: Robot model; never mutated, tool variants are copies
            interpolations: Interpolation steps per movement

        Raises:
            PathGenerationError: If interpolations is smaller than 1
        """
        if interpolations < 1:
            raise PathGenerationError(
                f"Interpolations must be at least 1, got {interpolations}"
            )
        self.robot = robot
        self.interpolations = interpolations
        self._kinematics: Dict[int, Tuple[RobotTool, _Kinematics]] = {}

    def _kinematics_for(self, tool: RobotTool) -> _Kinematics:
        cached = self._kinematics.get(id(tool))
        if cached is not None and cached[0] is tool:
            return cached[1]

        robot = self.robot if tool is self.robot.tool else self.robot.with_tool(tool)
        kinematics = _Kinematics(robot, ForwardKinematics(robot), InverseKinematics(robot))
        self._kinematics[id(tool)] = (tool, kinematics)
        return kinematics

    def initial_state(self) -> PathState:
        """Zero joint position with every external axis at its lower limit."""
        robot_joint_position = RobotJointPosition()
        external_joint_position = ExternalJointPosition()
        for axis in self.robot.external_axes:
            external_joint_position[axis.axis_number] = axis.limits.lower

        forward = self._kinematics_for(self.robot.tool).forward
        fk = forward.calculate(robot_joint_position, external_joint_position, check_limits=False)
        return PathState(
            robot_joint_position=robot_joint_position,
            external_joint_position=external_joint_position,
            tcp_frame=fk.tcp_frame,
            tool=self.robot.tool,
        )

    def calculate(self, actions: Sequence[Action]) -> PathResult:
        """
        Calculate the path of a program.

        The first entry of the trajectory is the end of the first movement;
        the approach towards it from the initial state is dropped.

        Args:
            actions: Program actions in order

        Returns:
            PathResult

        Raises:
            PathGenerationError: If a circular movement cannot be constructed
        """
        with kinematics_context(robot=self.robot.name):
            state = self.initial_state()
            result = PathResult(
                robot_joint_positions=[state.robot_joint_position.copy()],
                external_joint_positions=[state.external_joint_position.copy()],
                frames=[state.tcp_frame.copy()],
                configurations=[ConfigurationData()],
                in_limits=[True],
            )

            flat = ungroup(list(actions))
            result.is_first_movement_move_abs_j = self._check_first_movement(flat, result.errors)

            movements = 0
            for action in flat:
                segment, state = self.step(state, action)
                if segment is None:
                    continue
                movements += 1
                result.robot_joint_positions.extend(segment.robot_joint_positions)
                result.external_joint_positions.extend(segment.external_joint_positions)
                result.frames.extend(segment.frames)
                result.configurations.extend(segment.configurations)
                result.in_limits.extend(segment.in_limits)
                result.paths.append(segment.path)
                for message in segment.leading_errors:
                    result.errors.insert(0, message)
                result.errors.extend(segment.errors)

            if movements > 0:
                n = self.interpolations
                del result.robot_joint_positions[:n]
                del result.external_joint_positions[:n]
                del result.frames[:n]
                del result.configurations[:n]
                del result.in_limits[:n]

            if result.paths:
                result.paths.pop(0)

            result.errors = list(dict.fromkeys(result.errors))
            result.program_time = state.program_time

            logger.info(
                "path_calculated",
                movements=movements,
                steps=len(result),
                warnings=len(result.errors),
                program_time=round(result.program_time, 3),
            )
            return result

    @staticmethod
    def _check_first_movement(actions: Sequence[Action], errors: List[str]) -> bool:
        for action in actions:
            if isinstance(action, Movement):
                if action.movement_type == MovementType.MOVE_ABS_J:
                    return True
                errors.append("The first movement is not set as an absolute joint movement.")
                return False
        return True

    def step(self, state: PathState, action: Action) -> Tuple[Optional[SegmentResult], PathState]:
        """
        Apply one action to the path state.

        Args:
            state: Current state
            action: Action to apply (groups are ungrouped by ``calculate``)

        Returns:
            Tuple of (segment for movements or None, new state)
        """
        if isinstance(action, OverrideRobotTool):
            return None, dataclasses.replace(state, tool=action.tool)
        if isinstance(action, JointConfigurationControl):
            return None, dataclasses.replace(state, joint_configuration_control=action.is_active)
        if isinstance(action, LinearConfigurationControl):
            return None, dataclasses.replace(state, linear_configuration_control=action.is_active)
        if isinstance(action, CirclePathMode):
            return None, dataclasses.replace(state, circle_path_mode=action.mode)
        if isinstance(action, WaitTime):
            return None, dataclasses.replace(state, program_time=state.program_time + action.duration)
        if not isinstance(action, Movement):
            return None, state

        kinematics = self._kinematics_for(action.tool or state.tool)

        if action.movement_type in (MovementType.MOVE_ABS_J, MovementType.MOVE_J):
            segment = self._joint_segment(state, action, kinematics)
        elif action.movement_type == MovementType.MOVE_L:
            segment = self._linear_segment(state, action, kinematics)
        else:
            segment = self._circular_segment(state, action, kinematics)

        new_state = dataclasses.replace(
            state,
            robot_joint_position=segment.robot_joint_positions[-1].copy(),
            external_joint_position=segment.external_joint_positions[-1].copy(),
            tcp_frame=segment.frames[-1].copy(),
            program_time=state.program_time + segment.time,
        )
        return segment, new_state

    def _joint_segment(
        self, state: PathState, movement: Movement, kinematics: _Kinematics
    ) -> SegmentResult:
        ik_result = kinematics.inverse.calculate(movement)
        if (
            not state.joint_configuration_control
            and movement.movement_type == MovementType.MOVE_J
            and isinstance(movement.target, RobotTarget)
        ):
            ik_result = kinematics.inverse.closest_to_reference(ik_result, state.robot_joint_position)

        segment = SegmentResult(movement=movement, errors=list(ik_result.errors))
        towards = ik_result.robot_joint_position
        towards_external = ik_result.external_joint_position

        n = self.interpolations
        delta = (towards - state.robot_joint_position) / n
        delta_external = (towards_external - state.external_joint_position) / n
        points = [state.tcp_frame.point]

        for i in range(n):
            robot_joint_position = state.robot_joint_position + delta * (i + 1)
            external_joint_position = state.external_joint_position + delta_external * (i + 1)
            robot_joint_position.name = towards.name
            external_joint_position.name = towards_external.name

            fk = kinematics.forward.calculate(robot_joint_position, external_joint_position)
            configuration = kinematics.inverse.configuration_from_joint_position(
                robot_joint_position, external_joint_position
            )
            if isinstance(movement.target, RobotTarget):
                configuration.name = movement.target.configuration.name

            segment.add(
                robot_joint_position,
                external_joint_position,
                fk.tcp_frame,
                configuration,
                fk.in_limits,
            )
            _append_point(points, fk.tcp_frame.point)

        segment.path = _path_curve(points)
        if segment.path is not None:
            segment.time = _movement_time(movement, segment.path.length)
        return segment

    def _start_frame(self, state: PathState, movement: Movement) -> Frame:
        """Last TCP frame in the coordinates of the movement's work object."""
        frame = state.tcp_frame.copy()
        work_object = movement.work_object
        if work_object.external_axis is not None:
            axis = work_object.external_axis
            value = axis.value_from(state.external_joint_position)
            frame = frame.transformed(axis.transformation(-value))
        return frame.transformed(TransformationUtilities.change_basis(work_object.global_frame))

    def _solve_step(
        self,
        state: PathState,
        movement: Movement,
        frame: Frame,
        external_joint_position: ExternalJointPosition,
        previous: RobotJointPosition,
        kinematics: _Kinematics,
    ) -> Tuple[Movement, InverseKinematicsResult]:
        target = movement.target
        step_movement = dataclasses.replace(
            movement,
            target=RobotTarget(
                frame=frame,
                configuration=dataclasses.replace(target.configuration),
                external_joint_position=external_joint_position,
                name=target.name,
            ),
        )
        ik_result = kinematics.inverse.calculate(step_movement)
        if not state.linear_configuration_control:
            ik_result = kinematics.inverse.closest_to_reference(ik_result, previous)
        return step_movement, ik_result

    def _add_step(
        self,
        segment: SegmentResult,
        movement: Movement,
        step_movement: Movement,
        ik_result: InverseKinematicsResult,
        previous: RobotJointPosition,
        points: List[Point],
    ) -> None:
        if _sign(ik_result.robot_joint_position[4]) * _sign(previous[4]) < 0:
            segment.errors.append(f"Movement {movement.name}: The robot is near a wrist singularity.")
        segment.errors.extend(ik_result.errors)

        frame = step_movement.posed_global_target_frame()
        segment.add(
            ik_result.robot_joint_position.copy(),
            ik_result.external_joint_position.copy(),
            frame,
            ik_result.configuration,
            ik_result.in_limits,
        )
        _append_point(points, frame.point)

    def _linear_segment(
        self, state: PathState, movement: Movement, kinematics: _Kinematics
    ) -> SegmentResult:
        segment = SegmentResult(movement=movement)
        n = self.interpolations

        towards_external = kinematics.inverse.calculate_external_joint_position(movement)
        delta_external = (towards_external - state.external_joint_position) / n

        start = self._start_frame(state, movement)
        end = movement.target.frame
        start_point = np.asarray(start.point, dtype=float)
        end_point = np.asarray(end.point, dtype=float)

        points = [state.tcp_frame.point]
        previous = state.robot_joint_position

        for i in range(n):
            t = (i + 1) / n
            point = (1.0 - t) * start_point + t * end_point
            frame = slerp_frames(start, end, t, point.tolist())
            external_joint_position = state.external_joint_position + delta_external * (i + 1)

            step_movement, ik_result = self._solve_step(
                state, movement, frame, external_joint_position, previous, kinematics
            )
            self._add_step(segment, movement, step_movement, ik_result, previous, points)
            previous = ik_result.robot_joint_position

        segment.path = _path_curve(points)
        segment.time = _movement_time(movement, float(np.linalg.norm(end_point - start_point)))
        return segment

    def _circle_mode(self, state: PathState, movement: Movement, segment: SegmentResult) -> CirPathMode:
        mode = state.circle_path_mode
        if mode in (CirPathMode.PATH_FRAME, CirPathMode.CIR_POINT_ORI):
            segment.leading_errors.append(
                f'Circular Path Mode "{mode.value}" is roughly estimated by the path generator. '
                "For accurate results, verify the program in a controller simulation."
            )
            return mode
        if mode == CirPathMode.OBJECT_FRAME:
            return mode

        segment.leading_errors.append(
            f'Circular Path Mode "{mode.value}" is not supported by the path generator. '
            '"PathFrame" mode is used instead. '
            "For accurate results, verify the program in a controller simulation."
        )
        logger.warning("circle_path_mode_fallback", mode=mode.value, movement=movement.name)
        return CirPathMode.PATH_FRAME

    def _circular_segment(
        self, state: PathState, movement: Movement, kinematics: _Kinematics
    ) -> SegmentResult:
        segment = SegmentResult(movement=movement)
        mode = self._circle_mode(state, movement, segment)
        prefix = f"Circular movement {movement.name}: "

        if movement.circular_point is None:
            raise PathGenerationError(prefix + "No circular point defined.")

        n = self.interpolations
        towards_external = kinematics.inverse.calculate_external_joint_position(movement)
        delta_external = (towards_external - state.external_joint_position) / n

        start = self._start_frame(state, movement)
        via = movement.circular_point.frame
        end = movement.target.frame
        p1 = np.asarray(start.point, dtype=float)
        pc = np.asarray(via.point, dtype=float)
        p2 = np.asarray(end.point, dtype=float)

        arc = _Arc.through(p1, pc, p2)
        if arc is None:
            raise PathGenerationError(
                prefix + "Arc is not valid. Did you define the circular point correctly?",
                details={"start": p1.tolist(), "circular_point": pc.tolist(), "end": p2.tolist()},
            )

        if math.degrees(arc.sweep) > MAX_CIRCLE_SWEEP:
            segment.errors.append(prefix + f"Circle is too large (> {MAX_CIRCLE_SWEEP:g} degrees).")
        if np.linalg.norm(p2 - p1) < MIN_CIRCLE_DISTANCE:
            segment.errors.append(
                prefix + "Distance between the start and end point is smaller than 0.1 mm."
            )
        if np.linalg.norm(pc - p1) < MIN_CIRCLE_DISTANCE:
            segment.errors.append(
                prefix + "Distance between the start and circular point is smaller than 0.1 mm."
            )
        chord_end, chord_via = p2 - p1, pc - p1
        cosine = np.dot(chord_end, chord_via) / (np.linalg.norm(chord_end) * np.linalg.norm(chord_via))
        if math.degrees(math.acos(float(np.clip(cosine, -1.0, 1.0)))) < MIN_CIRCLE_ANGLE:
            segment.errors.append(
                prefix + "The angle between the circular point and start point is smaller than 1 degree."
            )

        via_parameter = arc.parameter_of(pc)
        if mode == CirPathMode.CIR_POINT_ORI and not (
            CIR_POINT_RANGE[0] <= via_parameter <= CIR_POINT_RANGE[1]
        ):
            segment.errors.append(
                prefix + "The circular point is not between 0.25 and 0.75 of the circle movement "
                "which is required for the CirPointOri mode."
            )

        points = [state.tcp_frame.point]
        previous = state.robot_joint_position

        for i in range(n):
            t = (i + 1) / n
            point = arc.point_at(t).tolist()
            frame = self._circle_orientation(mode, arc, start, via, end, t, via_parameter, point)
            external_joint_position = state.external_joint_position + delta_external * (i + 1)

            step_movement, ik_result = self._solve_step(
                state, movement, frame, external_joint_position, previous, kinematics
            )
            self._add_step(segment, movement, step_movement, ik_result, previous, points)
            previous = ik_result.robot_joint_position

        segment.path = _path_curve(points)
        segment.time = _movement_time(movement, arc.length)
        return segment

    @staticmethod
    def _circle_orientation(
        mode: CirPathMode,
        arc: _Arc,
        start: Frame,
        via: Frame,
        end: Frame,
        t: float,
        via_parameter: float,
        point: List[float],
    ) -> Frame:
        """
        Tool orientation at arc parameter ``t``.

        PathFrame carries both end orientations along the arc to the current
        point and blends them; this approximates the controller, which keeps
        the orientation constant relative to the path.
        """
        if mode == CirPathMode.OBJECT_FRAME:
            return slerp_frames(start, end, t, point)

        sweep = arc.sweep
        if mode == CirPathMode.CIR_POINT_ORI:
            if t < via_parameter:
                first = arc.rotate(start, t * sweep)
                second = arc.rotate(via, (t - via_parameter) * sweep)
                return slerp_frames(first, second, t / via_parameter, point)
            first = arc.rotate(via, (t - via_parameter) * sweep)
            second = arc.rotate(end, (t - 1.0) * sweep)
            return slerp_frames(first, second, (t - via_parameter) / (1.0 - via_parameter), point)

        first = arc.rotate(start, t * sweep)
        second = arc.rotate(end, (t - 1.0) * sweep)
        return slerp_frames(first, second, t, point)
