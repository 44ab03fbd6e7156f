"""
Joint position value types.

``RobotJointPosition`` holds the six internal axis values of the arm and
``ExternalJointPosition`` the six logical external axis values (a to f). Both
are in degrees (mm for linear external axes) and support component-wise
arithmetic so that the path generator can interpolate them.
"""

import math
from dataclasses import dataclass
from typing import Iterable, Iterator, Union

from compas_robots import Configuration

from robotkin.core.exceptions import KinematicsError
from robotkin.core.geometry import normalize_angle

UNDEFINED = 9e9
AXIS_LOGIC = "abcdef"

Number = Union[int, float]


class RobotJointPosition:
    """
    Six internal axis values in degrees.

    Values are stored as given. Solver output is wrapped to (-180, 180];
    turn-shifted candidates (for example axis 6 at 300 degrees) keep their
    un-normalized value so they can be compared against a reference.
    """

    def __init__(self, *values: Number, name: str = "") -> None:
        if len(values) == 1 and isinstance(values[0], Iterable):
            values = tuple(values[0])
        if not values:
            values = (0.0,) * 6
        if len(values) != 6:
            raise KinematicsError(
                "A robot joint position needs 6 values", details={"count": len(values)}
            )
        self._values = [float(value) for value in values]
        self.name = name

    def __getitem__(self, index: int) -> float:
        return self._values[index]

    def __setitem__(self, index: int, value: Number) -> None:
        self._values[index] = float(value)

    def __iter__(self) -> Iterator[float]:
        return iter(self._values)

    def __len__(self) -> int:
        return 6

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RobotJointPosition):
            return NotImplemented
        return self._values == other._values

    def __add__(self, other: "RobotJointPosition") -> "RobotJointPosition":
        return RobotJointPosition([a + b for a, b in zip(self, other)], name=self.name)

    def __sub__(self, other: "RobotJointPosition") -> "RobotJointPosition":
        return RobotJointPosition([a - b for a, b in zip(self, other)], name=self.name)

    def __mul__(self, factor: Number) -> "RobotJointPosition":
        return RobotJointPosition([a * factor for a in self], name=self.name)

    __rmul__ = __mul__

    def __truediv__(self, divisor: Number) -> "RobotJointPosition":
        if divisor == 0:
            raise KinematicsError("Cannot divide a joint position by zero")
        return RobotJointPosition([a / divisor for a in self], name=self.name)

    def __repr__(self) -> str:
        values = ", ".join(f"{value:.4f}" for value in self._values)
        return f"RobotJointPosition({values})"

    def to_list(self) -> list[float]:
        return list(self._values)

    def copy(self) -> "RobotJointPosition":
        return RobotJointPosition(self._values, name=self.name)

    def normalized(self) -> "RobotJointPosition":
        """Copy with every value wrapped to (-180, 180]."""
        return RobotJointPosition([normalize_angle(value) for value in self], name=self.name)

    def distance(self, other: "RobotJointPosition") -> float:
        """Summed absolute per-axis difference in degrees."""
        return sum(abs(a - b) for a, b in zip(self, other))

    def to_configuration(self) -> Configuration:
        """Convert to a compas_robots configuration with revolute values in radians."""
        return Configuration.from_revolute_values([math.radians(value) for value in self])


class ExternalJointPosition:
    """
    Six logical external axis values.

    The sentinel ``UNDEFINED`` (9e9) marks an axis value that is not set; the
    solvers replace it with the axis default. Arithmetic leaves undefined
    values untouched.
    """

    def __init__(self, *values: Number, name: str = "") -> None:
        if len(values) == 1 and isinstance(values[0], Iterable):
            values = tuple(values[0])
        if len(values) > 6:
            raise KinematicsError(
                "An external joint position holds at most 6 values",
                details={"count": len(values)},
            )
        padded = [float(value) for value in values] + [UNDEFINED] * (6 - len(values))
        self._values = padded
        self.name = name

    @classmethod
    def from_dict(cls, values: dict[str, Number], name: str = "") -> "ExternalJointPosition":
        """Build from a mapping of logic letter to value, e.g. ``{"a": 500}``."""
        position = cls(name=name)
        for logic, value in values.items():
            position[logic] = value
        return position

    @staticmethod
    def _index(key: Union[int, str]) -> int:
        if isinstance(key, str):
            if key not in AXIS_LOGIC or len(key) != 1:
                raise KinematicsError(f"Invalid external axis logic '{key}'")
            return AXIS_LOGIC.index(key)
        if not 0 <= key < 6:
            raise KinematicsError(f"External axis index out of range: {key}")
        return key

    def __getitem__(self, key: Union[int, str]) -> float:
        return self._values[self._index(key)]

    def __setitem__(self, key: Union[int, str], value: Number) -> None:
        self._values[self._index(key)] = float(value)

    def __iter__(self) -> Iterator[float]:
        return iter(self._values)

    def __len__(self) -> int:
        return 6

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ExternalJointPosition):
            return NotImplemented
        return self._values == other._values

    def is_defined(self, key: Union[int, str]) -> bool:
        return self[key] != UNDEFINED

    def _combine(self, other: "ExternalJointPosition", sign: float) -> "ExternalJointPosition":
        values = []
        for index, (a, b) in enumerate(zip(self, other)):
            if a != UNDEFINED and b != UNDEFINED:
                values.append(a + sign * b)
            elif a == UNDEFINED and b == UNDEFINED:
                values.append(UNDEFINED)
            else:
                raise KinematicsError(
                    "A defined external joint value is combined with an undefined one",
                    details={"axis": AXIS_LOGIC[index]},
                )
        return ExternalJointPosition(values, name=self.name)

    def __add__(self, other: "ExternalJointPosition") -> "ExternalJointPosition":
        return self._combine(other, 1.0)

    def __sub__(self, other: "ExternalJointPosition") -> "ExternalJointPosition":
        return self._combine(other, -1.0)

    def __mul__(self, factor: Number) -> "ExternalJointPosition":
        return ExternalJointPosition(
            [value if value == UNDEFINED else value * factor for value in self],
            name=self.name,
        )

    __rmul__ = __mul__

    def __truediv__(self, divisor: Number) -> "ExternalJointPosition":
        if divisor == 0:
            raise KinematicsError("Cannot divide an external joint position by zero")
        return ExternalJointPosition(
            [value if value == UNDEFINED else value / divisor for value in self],
            name=self.name,
        )

    def __repr__(self) -> str:
        values = ", ".join(
            "undefined" if value == UNDEFINED else f"{value:.4f}" for value in self._values
        )
        return f"ExternalJointPosition({values})"

    def to_list(self) -> list[float]:
        return list(self._values)

    def copy(self) -> "ExternalJointPosition":
        return ExternalJointPosition(self._values, name=self.name)


@dataclass
class ConfigurationData:
    """
    Robot axis configuration.

    Attributes:
        cf1: Quadrant of axis 1, ``floor(q1 / 90)``
        cf4: Quadrant of axis 4, ``floor(q4 / 90)``
        cf6: Quadrant of axis 6, ``floor(q6 / 90)``
        cfx: Configuration index 0-7 selecting one inverse kinematics branch
        name: Optional variable name
    """

    cf1: int = 0
    cf4: int = 0
    cf6: int = 0
    cfx: int = 0
    name: str = ""

    def __post_init__(self) -> None:
        if not 0 <= self.cfx <= 7:
            raise KinematicsError(f"Configuration index must be in [0, 7], got {self.cfx}")

    @classmethod
    def from_joint_position(
        cls, joint_position: RobotJointPosition, cfx: int, name: str = ""
    ) -> "ConfigurationData":
        """Quadrant numbers of a joint position combined with a configuration index."""
        return cls(
            cf1=math.floor(joint_position[0] / 90),
            cf4=math.floor(joint_position[3] / 90),
            cf6=math.floor(joint_position[5] / 90),
            cfx=cfx,
            name=name,
        )
