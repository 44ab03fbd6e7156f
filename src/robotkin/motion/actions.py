"""
Motion program actions.

A program is an ordered list of actions: movements towards targets plus a
few instructions that change how the following movements are evaluated
(tool override, configuration control, circle path mode, waits). Targets
are expressed in a work object, which may be carried by an external axis.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Union

from compas.geometry import Frame

from robotkin.core.config import ActionConfig, MovementConfig, ProgramConfig, ToolConfig
from robotkin.core.exceptions import ConfigurationError, KinematicsError
from robotkin.core.geometry import TransformationUtilities
from robotkin.core.robot import Robot, RobotTool
from robotkin.motion.external_axes import ExternalAxis
from robotkin.motion.positions import (
    ConfigurationData,
    ExternalJointPosition,
    RobotJointPosition,
)


class MovementType(Enum):
    """Move instruction types."""

    MOVE_ABS_J = "MoveAbsJ"  # Joint move to a joint target
    MOVE_J = "MoveJ"  # Joint move to a Cartesian target
    MOVE_L = "MoveL"  # Linear TCP move
    MOVE_C = "MoveC"  # Circular TCP move through a circular point


@dataclass
class RobotTarget:
    """
    Cartesian target.

    Attributes:
        frame: TCP frame in work object coordinates
        configuration: Axis configuration used to pick the IK branch
        external_joint_position: External axis values at the target
        name: Target name
    """

    frame: Frame
    configuration: ConfigurationData = field(default_factory=ConfigurationData)
    external_joint_position: ExternalJointPosition = field(default_factory=ExternalJointPosition)
    name: str = ""


@dataclass
class JointTarget:
    """
    Joint space target.

    Attributes:
        robot_joint_position: Internal axis values in degrees
        external_joint_position: External axis values
        name: Target name
    """

    robot_joint_position: RobotJointPosition
    external_joint_position: ExternalJointPosition = field(default_factory=ExternalJointPosition)
    name: str = ""


Target = Union[RobotTarget, JointTarget]


@dataclass
class WorkObject:
    """
    Coordinate system that Cartesian targets are expressed in.

    The global frame is the object frame mapped through the user frame and,
    for a work object on a positioner, through the attachment frame of the
    carrying axis.

    Attributes:
        name: Work object name
        user_frame: User frame in world coordinates
        object_frame: Object frame in user frame coordinates
        external_axis: Axis that carries the work object, if any
    """

    name: str = "wobj0"
    user_frame: Frame = field(default_factory=Frame.worldXY)
    object_frame: Frame = field(default_factory=Frame.worldXY)
    external_axis: Optional[ExternalAxis] = None

    def __post_init__(self) -> None:
        if self.external_axis is not None and self.external_axis.moves_robot:
            raise ConfigurationError(
                f"Work object '{self.name}' cannot be carried by an axis that moves the robot",
                details={"axis": self.external_axis.name},
            )

    @property
    def global_frame(self) -> Frame:
        world = Frame.worldXY()
        frame = self.object_frame.transformed(
            TransformationUtilities.plane_to_plane(world, self.user_frame)
        )
        if self.external_axis is not None:
            frame = frame.transformed(
                TransformationUtilities.plane_to_plane(world, self.external_axis.attachment_frame)
            )
        return frame


@dataclass
class SpeedData:
    """TCP speed in mm/s."""

    v_tcp: float = 1000.0
    name: str = ""

    def __post_init__(self) -> None:
        if self.v_tcp <= 0:
            raise ConfigurationError(f"TCP speed must be positive, got {self.v_tcp}")


@dataclass
class Movement:
    """
    Move instruction.

    Attributes:
        movement_type: MoveAbsJ, MoveJ, MoveL or MoveC
        target: Destination
        speed: Speed data
        work_object: Work object the target is expressed in
        tool: Tool used for this movement (default: the robot's tool)
        circular_point: Through point of a circular movement
        time: Declared movement time in seconds; negative means not declared
    """

    movement_type: MovementType
    target: Target
    speed: SpeedData = field(default_factory=SpeedData)
    work_object: WorkObject = field(default_factory=WorkObject)
    tool: Optional[RobotTool] = None
    circular_point: Optional[RobotTarget] = None
    time: float = -1.0

    def __post_init__(self) -> None:
        if isinstance(self.target, JointTarget) and self.movement_type != MovementType.MOVE_ABS_J:
            raise KinematicsError(
                f"A joint target can only be used with MoveAbsJ, not {self.movement_type.value}"
            )
        if isinstance(self.target, RobotTarget) and self.movement_type == MovementType.MOVE_ABS_J:
            raise KinematicsError("MoveAbsJ needs a joint target")

    @property
    def name(self) -> str:
        return f"{self.target.name}/{self.work_object.name}"

    def _to_global(self, frame: Frame) -> Frame:
        orient = TransformationUtilities.plane_to_plane(Frame.worldXY(), self.work_object.global_frame)
        return frame.transformed(orient)

    def global_target_frame(self) -> Frame:
        """
        Target frame in world coordinates, with the work object axis at zero.

        Raises:
            KinematicsError: If the target is a joint target
        """
        if not isinstance(self.target, RobotTarget):
            raise KinematicsError("A joint target has no target frame")
        return self._to_global(self.target.frame)

    def posed_global_target_frame(self) -> Frame:
        """Target frame in world coordinates with the work object axis posed at its target value."""
        frame = self.global_target_frame()
        axis = self.work_object.external_axis
        if axis is not None:
            value = axis.value_from(self.target.external_joint_position)
            frame = frame.transformed(axis.transformation(value))
        return frame


@dataclass
class OverrideRobotTool:
    """Mount a different tool for the following movements."""

    tool: RobotTool


@dataclass
class JointConfigurationControl:
    """Turn axis configuration control of joint movements on or off."""

    is_active: bool = True


@dataclass
class LinearConfigurationControl:
    """Turn axis configuration control of linear and circular movements on or off."""

    is_active: bool = True


class CirPathMode(Enum):
    """Tool orientation modes during circular movements."""

    PATH_FRAME = "PathFrame"
    OBJECT_FRAME = "ObjectFrame"
    CIR_POINT_ORI = "CirPointOri"
    WRIST45 = "Wrist45"
    WRIST46 = "Wrist46"
    WRIST56 = "Wrist56"


@dataclass
class CirclePathMode:
    """Select the tool orientation mode of the following circular movements."""

    mode: CirPathMode = CirPathMode.PATH_FRAME


@dataclass
class WaitTime:
    """Wait a fixed duration in seconds."""

    duration: float

    def __post_init__(self) -> None:
        if self.duration < 0:
            raise ConfigurationError(f"Wait duration must not be negative, got {self.duration}")


@dataclass
class ActionGroup:
    """Named group of actions; nested groups are flattened by ``ungroup``."""

    actions: List["Action"] = field(default_factory=list)
    name: str = ""

    def ungroup(self) -> List["Action"]:
        flat: List[Action] = []
        for action in self.actions:
            if isinstance(action, ActionGroup):
                flat.extend(action.ungroup())
            else:
                flat.append(action)
        return flat


Action = Union[
    Movement,
    OverrideRobotTool,
    JointConfigurationControl,
    LinearConfigurationControl,
    CirclePathMode,
    WaitTime,
    ActionGroup,
]


def ungroup(actions: List[Action]) -> List[Action]:
    """Flatten all action groups in ``actions``."""
    return ActionGroup(list(actions)).ungroup()


def _tool_from_config(config: ToolConfig) -> RobotTool:
    return RobotTool(
        name=config.name,
        attachment_frame=config.attachment.to_frame(),
        tool_frame=config.tcp.to_frame(),
    )


class _ProgramBuilder:
    """Resolves names in a program configuration against the robot model."""

    def __init__(self, program: ProgramConfig, robot: Robot):
        self.program = program
        self.robot = robot
        self.tools: Dict[str, RobotTool] = {robot.tool.name: robot.tool}
        for tool_config in program.tools:
            self.tools[tool_config.name] = _tool_from_config(tool_config)

        self.work_objects: Dict[str, WorkObject] = {"wobj0": WorkObject()}
        for wobj_config in program.work_objects:
            axis = None
            if wobj_config.external_axis is not None:
                axis = robot.get_external_axis(wobj_config.external_axis)
            self.work_objects[wobj_config.name] = WorkObject(
                name=wobj_config.name,
                user_frame=wobj_config.user_frame.to_frame(),
                object_frame=wobj_config.object_frame.to_frame(),
                external_axis=axis,
            )

    def tool(self, name: str) -> RobotTool:
        if name not in self.tools:
            raise ConfigurationError(
                f"Tool not found: {name}", details={"available": list(self.tools)}
            )
        return self.tools[name]

    def work_object(self, name: Optional[str]) -> WorkObject:
        name = name or "wobj0"
        if name not in self.work_objects:
            raise ConfigurationError(
                f"Work object not found: {name}",
                details={"available": list(self.work_objects)},
            )
        return self.work_objects[name]

    def movement(self, config: MovementConfig) -> Movement:
        external = ExternalJointPosition.from_dict(config.external)
        if config.joints is not None:
            target: Target = JointTarget(
                RobotJointPosition(config.joints), external, name=config.name
            )
        else:
            target = RobotTarget(
                frame=config.frame.to_frame(),
                configuration=ConfigurationData(config.cf1, config.cf4, config.cf6, config.cfx),
                external_joint_position=external,
                name=config.name,
            )

        circular_point = None
        if config.circular_point is not None:
            circular_point = RobotTarget(
                frame=config.circular_point.to_frame(),
                external_joint_position=external.copy(),
                name=f"{config.name}_cir",
            )

        return Movement(
            movement_type=MovementType(config.type),
            target=target,
            speed=SpeedData(config.speed),
            work_object=self.work_object(config.work_object),
            tool=self.tool(config.tool) if config.tool is not None else None,
            circular_point=circular_point,
            time=config.time,
        )

    def action(self, config: ActionConfig) -> Action:
        if config.move is not None:
            return self.movement(config.move)
        if config.override_tool is not None:
            return OverrideRobotTool(self.tool(config.override_tool))
        if config.joint_configuration_control is not None:
            return JointConfigurationControl(config.joint_configuration_control)
        if config.linear_configuration_control is not None:
            return LinearConfigurationControl(config.linear_configuration_control)
        if config.circle_path_mode is not None:
            try:
                return CirclePathMode(CirPathMode(config.circle_path_mode))
            except ValueError as e:
                raise ConfigurationError(
                    f"Unknown circle path mode: {config.circle_path_mode}",
                    details={"allowed": [mode.value for mode in CirPathMode]},
                ) from e
        if config.wait is not None:
            return WaitTime(config.wait)
        return ActionGroup([self.action(item) for item in config.group or []])


def program_actions(program: ProgramConfig, robot: Robot) -> List[Action]:
    """
    Build the action list of a program configuration.

    Args:
        program: Validated program configuration
        robot: Robot model the program runs on; external axis letters of
            work objects are resolved against it

    Returns:
        List of actions in program order

    Raises:
        ConfigurationError: If a tool, work object or circle path mode is unknown
    """
    builder = _ProgramBuilder(program, robot)
    return [builder.action(config) for config in program.actions]
