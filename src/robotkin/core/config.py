"""
Configuration management for robotkin.

Robot definitions and motion programs live in YAML files under a config
directory::

    config/
        robots/irb6700_track.yaml     # top-level key ``robot``
        programs/pick_and_place.yaml  # top-level key ``program``

Files are validated with pydantic models and exposed by ``ConfigManager``.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, Optional

import yaml
from compas.geometry import Frame, Point, Vector
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from robotkin.core.exceptions import ConfigurationError


class FrameConfig(BaseModel):
    """Coordinate frame given by origin and two axis directions."""

    point: list[float] = Field(default_factory=lambda: [0.0, 0.0, 0.0])
    xaxis: list[float] = Field(default_factory=lambda: [1.0, 0.0, 0.0])
    yaxis: list[float] = Field(default_factory=lambda: [0.0, 1.0, 0.0])

    @field_validator("point", "xaxis", "yaxis")
    @classmethod
    def _three_components(cls, value: list[float]) -> list[float]:
        if len(value) != 3:
            raise ValueError("expected exactly 3 components")
        return value

    def to_frame(self) -> Frame:
        return Frame(Point(*self.point), Vector(*self.xaxis), Vector(*self.yaxis))


class AxisLimitConfig(BaseModel):
    """Closed interval of an axis."""

    lower: float
    upper: float

    @model_validator(mode="after")
    def _ordered(self) -> "AxisLimitConfig":
        if self.lower > self.upper:
            raise ValueError(f"lower ({self.lower}) exceeds upper ({self.upper})")
        return self


class KinematicsConfig(BaseModel):
    """OPW kinematic parameters in mm."""

    a1: float
    a2: float
    a3: float = 0.0
    b: float = 0.0
    c1: float
    c2: float
    c3: float
    c4: float


class ToolConfig(BaseModel):
    """Tool definition."""

    name: str = "tool0"
    attachment: FrameConfig = Field(default_factory=FrameConfig)
    tcp: FrameConfig = Field(default_factory=FrameConfig)


class ExternalAxisConfig(BaseModel):
    """External linear or rotational axis."""

    name: str
    type: Literal["linear", "rotational"]
    axis_logic: Optional[str] = None
    lower: float
    upper: float
    moves_robot: bool = False
    attachment: FrameConfig = Field(default_factory=FrameConfig)
    axis: FrameConfig = Field(default_factory=FrameConfig)


class RobotConfig(BaseModel):
    """Robot configuration model."""

    name: str
    manufacturer: str = "ABB"
    preset: Optional[str] = None
    kinematics: Optional[KinematicsConfig] = None
    joint_limits: list[AxisLimitConfig] = Field(default_factory=list)
    base_frame: FrameConfig = Field(default_factory=FrameConfig)
    tool: ToolConfig = Field(default_factory=ToolConfig)
    external_axes: list[ExternalAxisConfig] = Field(default_factory=list)
    wrist_singularity_tolerance: float = Field(default=1e-3, gt=0)
    axis_signs: list[int] = Field(default_factory=lambda: [1, 1, 1, 1, 1, 1])
    axis_offsets: list[float] = Field(default_factory=lambda: [0.0, 0.0, -90.0, 0.0, 0.0, 0.0])

    @field_validator("joint_limits")
    @classmethod
    def _six_or_none(cls, value: list[AxisLimitConfig]) -> list[AxisLimitConfig]:
        if value and len(value) != 6:
            raise ValueError(f"expected 6 joint limits, got {len(value)}")
        return value

    @field_validator("axis_signs", "axis_offsets")
    @classmethod
    def _six_values(cls, value: list) -> list:
        if len(value) != 6:
            raise ValueError(f"expected 6 values, got {len(value)}")
        return value


class MovementConfig(BaseModel):
    """A single move instruction of a program."""

    type: Literal["MoveAbsJ", "MoveJ", "MoveL", "MoveC"]
    name: str = ""
    frame: Optional[FrameConfig] = None
    joints: Optional[list[float]] = None
    external: dict[str, float] = Field(default_factory=dict)
    cf1: int = 0
    cf4: int = 0
    cf6: int = 0
    cfx: int = Field(default=0, ge=0, le=7)
    circular_point: Optional[FrameConfig] = None
    speed: float = Field(default=1000.0, gt=0)
    time: float = -1.0
    work_object: Optional[str] = None
    tool: Optional[str] = None

    @model_validator(mode="after")
    def _one_target(self) -> "MovementConfig":
        if (self.frame is None) == (self.joints is None):
            raise ValueError("a movement needs exactly one of 'frame' or 'joints'")
        if self.joints is not None:
            if self.type != "MoveAbsJ":
                raise ValueError("joint targets are only allowed for MoveAbsJ")
            if len(self.joints) != 6:
                raise ValueError(f"expected 6 joint values, got {len(self.joints)}")
        return self


class ActionConfig(BaseModel):
    """One entry of a program's action list; exactly one field is set."""

    move: Optional[MovementConfig] = None
    override_tool: Optional[str] = None
    joint_configuration_control: Optional[bool] = None
    linear_configuration_control: Optional[bool] = None
    circle_path_mode: Optional[str] = None
    wait: Optional[float] = Field(default=None, ge=0)
    group: Optional[list["ActionConfig"]] = None

    @model_validator(mode="after")
    def _exactly_one(self) -> "ActionConfig":
        given = [name for name, value in self if value is not None]
        if len(given) != 1:
            raise ValueError(f"an action needs exactly one entry, got {given or 'none'}")
        return self


ActionConfig.model_rebuild()


class WorkObjectConfig(BaseModel):
    """Work object; ``external_axis`` names the logic letter of a carrying axis."""

    name: str
    user_frame: FrameConfig = Field(default_factory=FrameConfig)
    object_frame: FrameConfig = Field(default_factory=FrameConfig)
    external_axis: Optional[str] = None


class ProgramConfig(BaseModel):
    """Motion program configuration model."""

    name: str
    robot: str
    interpolations: int = Field(default=5, ge=1)
    tools: list[ToolConfig] = Field(default_factory=list)
    work_objects: list[WorkObjectConfig] = Field(default_factory=list)
    actions: list[ActionConfig] = Field(default_factory=list)


@dataclass
class ConfigManager:
    """
    Central configuration manager for robotkin.

    Loads and validates robot and program configurations from YAML files.

    Example:
        >>> config = ConfigManager(config_dir=Path("config"))
        >>> robot = config.get_robot("irb6700_track")
        >>> program = config.get_program("pick_and_place")
    """

    config_dir: Path
    _robots: dict[str, RobotConfig] = field(default_factory=dict, init=False)
    _programs: dict[str, ProgramConfig] = field(default_factory=dict, init=False)
    _loaded: bool = field(default=False, init=False)

    def __post_init__(self) -> None:
        self.config_dir = Path(self.config_dir)
        if not self.config_dir.exists():
            raise ConfigurationError(
                f"Configuration directory not found: {self.config_dir}"
            )

    def load(self) -> None:
        """Load all configurations from disk."""
        self._robots = self._load_section("robots", "robot", RobotConfig)
        self._programs = self._load_section("programs", "program", ProgramConfig)
        self._loaded = True

    def _load_section(self, directory: str, key: str, model: type[BaseModel]) -> dict:
        section_dir = self.config_dir / directory
        if not section_dir.exists():
            return {}

        loaded = {}
        for config_file in sorted(section_dir.glob("*.yaml")):
            try:
                with open(config_file) as f:
                    data = yaml.safe_load(f)
                if data and key in data:
                    loaded[config_file.stem] = model(**data[key])
            except (yaml.YAMLError, ValidationError) as e:
                raise ConfigurationError(
                    f"Failed to load {key} config: {config_file}",
                    details={"error": str(e)},
                ) from e
        return loaded

    def get_robot(self, name: str) -> RobotConfig:
        """
        Get robot configuration by name.

        Args:
            name: Robot configuration name (without .yaml extension)

        Returns:
            RobotConfig instance

        Raises:
            ConfigurationError: If robot not found
        """
        if not self._loaded:
            self.load()

        if name not in self._robots:
            raise ConfigurationError(
                f"Robot configuration not found: {name}",
                details={"available": list(self._robots.keys())},
            )
        return self._robots[name]

    def get_program(self, name: str) -> ProgramConfig:
        """
        Get program configuration by name.

        Raises:
            ConfigurationError: If program not found
        """
        if not self._loaded:
            self.load()

        if name not in self._programs:
            raise ConfigurationError(
                f"Program configuration not found: {name}",
                details={"available": list(self._programs.keys())},
            )
        return self._programs[name]

    def list_robots(self) -> list[str]:
        """List available robot configurations."""
        if not self._loaded:
            self.load()
        return list(self._robots.keys())

    def list_programs(self) -> list[str]:
        """List available program configurations."""
        if not self._loaded:
            self.load()
        return list(self._programs.keys())


def load_program_file(path: str | Path) -> ProgramConfig:
    """
    Load a single program file outside of a config directory.

    Raises:
        ConfigurationError: If the file is missing or invalid
    """
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Program file not found: {path}")
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
        if not data or "program" not in data:
            raise ConfigurationError(f"Program file has no 'program' section: {path}")
        return ProgramConfig(**data["program"])
    except (yaml.YAMLError, ValidationError) as e:
        raise ConfigurationError(
            f"Failed to load program config: {path}",
            details={"error": str(e)},
        ) from e
