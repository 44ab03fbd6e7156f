"""
Closed-form kinematics for ortho-parallel arms with a spherical wrist.

Implements the geometric solution of Brandstötter, Angerer and Hofbaur,
"An analytical solution of the inverse kinematics problem of industrial
serial manipulators with an ortho-parallel basis and a spherical wrist"
(2014). Frames passed in and returned are in the robot's local coordinates,
i.e. relative to its (effective) base frame.

The raw solution order is::

    index  axis 1   axes 2/3   wrist
    0      front    branch i   unflipped
    1      front    branch ii  unflipped
    2      back     branch iii unflipped
    3      back     branch iv  unflipped
    4..7   same as 0..3 with the wrist flipped
"""

import math
from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np
from compas.geometry import Frame

from robotkin.core.exceptions import RobotError
from robotkin.core.geometry import FrameConverter, normalize_angle, normalize_radians
from robotkin.core.robot import RobotKinematicParameters
from robotkin.motion.positions import RobotJointPosition

SHOULDER_TOLERANCE = 1e-3
ELBOW_TOLERANCE = 1e-3


@dataclass(frozen=True)
class Solution:
    """
    One inverse kinematics branch.

    Attributes:
        joint_position: Axis values in degrees, wrapped to (-180, 180]
        wrist_singular: Axis 5 is close to zero
        elbow_singular: The arm is stretched or folded to its reach boundary
        shoulder_singular: The wrist center lies on the axis 1 line
    """

    joint_position: RobotJointPosition
    wrist_singular: bool = False
    elbow_singular: bool = False
    shoulder_singular: bool = False


def _safe_acos(value: float) -> Tuple[float, bool]:
    """acos that returns 0 for arguments outside [-1, 1] and reports it."""
    if value < -1.0 or value > 1.0 or math.isnan(value):
        return 0.0, True
    return math.acos(value), False


class OPWKinematics:
    """
    Closed-form forward and inverse kinematics.

    Args:
        parameters: OPW kinematic parameters in mm
        axis_signs: Per-axis sign correction between solver and robot angles
        axis_offsets: Per-axis offset in degrees between solver and robot angles
        wrist_tolerance: Axis 5 magnitude (radians) flagged as wrist singular
    """

    def __init__(
        self,
        parameters: RobotKinematicParameters,
        axis_signs: Sequence[int],
        axis_offsets: Sequence[float],
        wrist_tolerance: float = 1e-3,
    ):
        if not parameters.is_spherical_wrist:
            raise RobotError(
                "The closed-form solver needs a spherical wrist (a3 = 0)",
                details={"a3": parameters.a3},
            )
        self.parameters = parameters
        self.axis_signs = tuple(axis_signs)
        self.axis_offsets = tuple(axis_offsets)
        self.wrist_tolerance = wrist_tolerance

        self._psi3 = math.atan2(parameters.a2, parameters.c3)
        self._k = math.sqrt(parameters.a2**2 + parameters.c3**2)

    def _to_robot_angles(self, thetas: Sequence[float]) -> RobotJointPosition:
        values = []
        for theta, sign, offset in zip(thetas, self.axis_signs, self.axis_offsets):
            value = sign * (math.degrees(normalize_radians(theta)) + offset)
            values.append(normalize_angle(value))
        return RobotJointPosition(values)

    def _to_solver_angles(self, joint_position: RobotJointPosition) -> list[float]:
        return [
            math.radians(value * sign - offset)
            for value, sign, offset in zip(joint_position, self.axis_signs, self.axis_offsets)
        ]

    def forward(self, joint_position: RobotJointPosition) -> Frame:
        """
        Flange frame for a joint position, in local coordinates.

        Args:
            joint_position: Axis values in degrees

        Returns:
            Flange frame
        """
        p = self.parameters
        t1, t2, t3, t4, t5, t6 = self._to_solver_angles(joint_position)
        psi3, k = self._psi3, self._k

        s1, c1 = math.sin(t1), math.cos(t1)
        s2, c2 = math.sin(t2), math.cos(t2)
        s4, c4 = math.sin(t4), math.cos(t4)
        s5, c5 = math.sin(t5), math.cos(t5)
        s6, c6 = math.sin(t6), math.cos(t6)
        s23, c23 = math.sin(t2 + t3), math.cos(t2 + t3)

        cx1 = p.c2 * s2 + k * math.sin(t2 + t3 + psi3) + p.a1
        cy1 = p.b
        cz1 = p.c2 * c2 + k * math.cos(t2 + t3 + psi3)

        wrist_center = np.array(
            [cx1 * c1 - cy1 * s1, cx1 * s1 + cy1 * c1, cz1 + p.c1]
        )

        r_oc = np.array(
            [
                [c1 * c23, -s1, c1 * s23],
                [s1 * c23, c1, s1 * s23],
                [-s23, 0.0, c23],
            ]
        )
        r_ce = np.array(
            [
                [c4 * c5 * c6 - s4 * s6, -c4 * c5 * s6 - s4 * c6, c4 * s5],
                [s4 * c5 * c6 + c4 * s6, -s4 * c5 * s6 + c4 * c6, s4 * s5],
                [-s5 * c6, s5 * s6, c5],
            ]
        )
        r_oe = r_oc @ r_ce

        matrix = np.eye(4)
        matrix[:3, :3] = r_oe
        matrix[:3, 3] = wrist_center + p.c4 * r_oe[:, 2]
        return FrameConverter.from_matrix(matrix)

    def inverse(self, frame: Frame) -> Tuple[Solution, ...]:
        """
        All eight inverse kinematics branches for a flange frame.

        Degenerate geometry never raises: out-of-domain acos arguments
        evaluate to zero and the affected branches are flagged as elbow
        singular.

        Args:
            frame: Flange frame in local coordinates

        Returns:
            Tuple of 8 solutions in raw solver order
        """
        p = self.parameters
        psi3, k = self._psi3, self._k

        matrix = FrameConverter.to_matrix(frame)
        e = matrix[:3, :3]
        u = matrix[:3, 3]
        c = u - p.c4 * e[:, 2]
        cx, cy, cz = float(c[0]), float(c[1]), float(c[2])

        nx1 = math.sqrt(max(cx**2 + cy**2 - p.b**2, 0.0)) - p.a1
        height = cz - p.c1

        s1_sq = nx1**2 + height**2
        s2_sq = (nx1 + 2.0 * p.a1) ** 2 + height**2
        s1 = math.sqrt(s1_sq)
        s2 = math.sqrt(s2_sq)

        kappa_sq = k**2
        psi1 = math.atan2(nx1, height)
        psi2_i, elbow_i = _safe_acos((s1_sq + p.c2**2 - kappa_sq) / (2.0 * s1 * p.c2) if s1 else 2.0)
        psi2_ii, elbow_ii = _safe_acos((s2_sq + p.c2**2 - kappa_sq) / (2.0 * s2 * p.c2) if s2 else 2.0)
        acos1, _ = _safe_acos((s1_sq - p.c2**2 - kappa_sq) / (2.0 * k * p.c2))
        acos2, _ = _safe_acos((s2_sq - p.c2**2 - kappa_sq) / (2.0 * k * p.c2))

        atan1 = math.atan2(cy, cx)
        atan2 = math.atan2(p.b, nx1 + p.a1)
        atan3 = math.atan2(nx1 + 2.0 * p.a1, height)

        theta1_i = atan1 - atan2
        theta1_ii = atan1 + atan2 - math.pi

        arm = [
            (theta1_i, psi1 - psi2_i, acos1 - psi3),
            (theta1_i, psi1 + psi2_i, -acos1 - psi3),
            (theta1_ii, -psi2_ii - atan3, acos2 - psi3),
            (theta1_ii, psi2_ii - atan3, -acos2 - psi3),
        ]
        elbow_i = elbow_i or psi2_i < ELBOW_TOLERANCE
        elbow_ii = elbow_ii or psi2_ii < ELBOW_TOLERANCE
        elbow = [elbow_i, elbow_i, elbow_ii, elbow_ii]
        shoulder = abs(cx) < SHOULDER_TOLERANCE and abs(cy) < SHOULDER_TOLERANCE

        (e11, e12, e13), (e21, e22, e23), (e31, e32, e33) = e.tolist()

        solutions = []
        for index in range(8):
            flipped = index >= 4
            t1, t2, t3 = arm[index % 4]

            sin1, cos1 = math.sin(t1), math.cos(t1)
            s23, c23 = math.sin(t2 + t3), math.cos(t2 + t3)

            m = e13 * s23 * cos1 + e23 * s23 * sin1 + e33 * c23
            t4 = math.atan2(
                e23 * cos1 - e13 * sin1,
                e13 * c23 * cos1 + e23 * c23 * sin1 - e33 * s23,
            )
            t5 = math.atan2(math.sqrt(max(1.0 - m**2, 0.0)), m)
            t6 = math.atan2(
                e12 * s23 * cos1 + e22 * s23 * sin1 + e32 * c23,
                -e11 * s23 * cos1 - e21 * s23 * sin1 - e31 * c23,
            )
            if flipped:
                t4 += math.pi
                t5 = -t5
                t6 -= math.pi

            solutions.append(
                Solution(
                    joint_position=self._to_robot_angles((t1, t2, t3, t4, t5, t6)),
                    wrist_singular=abs(t5) < self.wrist_tolerance,
                    elbow_singular=elbow[index % 4],
                    shoulder_singular=shoulder,
                )
            )

        return tuple(solutions)
