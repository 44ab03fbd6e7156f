"""
Frame and orientation helpers built on COMPAS, numpy and scipy.

Frames are ``compas.geometry.Frame`` instances throughout the package. The
closed-form solver works on 4x4 numpy matrices, and orientation interpolation
uses ``scipy.spatial.transform``; the helpers here convert between the three.
"""

import math

import numpy as np
from compas.geometry import Frame, Point, Rotation as CompasRotation, Transformation, Vector
from scipy.spatial.transform import Rotation, Slerp


def normalize_angle(angle: float) -> float:
    """
    Wrap an angle in degrees to the half-open interval (-180, 180].

    Args:
        angle: Angle in degrees

    Returns:
        Equivalent angle in (-180, 180]
    """
    return 180.0 - (180.0 - angle) % 360.0


def normalize_radians(angle: float) -> float:
    """Wrap an angle in radians to (-pi, pi]."""
    return math.pi - (math.pi - angle) % (2.0 * math.pi)


class FrameConverter:
    """
    Converter between COMPAS frames, homogeneous matrices and rotations.
    """

    @staticmethod
    def to_matrix(frame: Frame) -> np.ndarray:
        """
        Convert a frame to a 4x4 homogeneous matrix.

        The columns of the upper-left block are the frame's x, y and z axes.

        Args:
            frame: COMPAS frame

        Returns:
            4x4 numpy array
        """
        matrix = np.eye(4)
        matrix[:3, 0] = list(frame.xaxis)
        matrix[:3, 1] = list(frame.yaxis)
        matrix[:3, 2] = list(frame.zaxis)
        matrix[:3, 3] = list(frame.point)
        return matrix

    @staticmethod
    def from_matrix(matrix: np.ndarray) -> Frame:
        """
        Convert a 4x4 homogeneous matrix to a frame.

        Args:
            matrix: 4x4 numpy array (only the upper 3x4 block is read)

        Returns:
            COMPAS frame
        """
        matrix = np.asarray(matrix, dtype=float)
        return Frame(
            Point(*matrix[:3, 3]),
            Vector(*matrix[:3, 0]),
            Vector(*matrix[:3, 1]),
        )

    @staticmethod
    def to_rotation(frame: Frame) -> Rotation:
        """Orientation of a frame as a scipy Rotation."""
        return Rotation.from_matrix(FrameConverter.to_matrix(frame)[:3, :3])

    @staticmethod
    def from_rotation(point: Point | list[float], rotation: Rotation) -> Frame:
        """Build a frame from an origin and a scipy Rotation."""
        matrix = rotation.as_matrix()
        return Frame(
            Point(*point),
            Vector(*matrix[:, 0]),
            Vector(*matrix[:, 1]),
        )


class TransformationUtilities:
    """
    Rigid transformations between frames.
    """

    @staticmethod
    def plane_to_plane(frame_from: Frame, frame_to: Frame) -> Transformation:
        """
        Transformation that maps ``frame_from`` onto ``frame_to``.

        Args:
            frame_from: Source frame
            frame_to: Target frame

        Returns:
            COMPAS transformation
        """
        return Transformation.from_frame_to_frame(frame_from, frame_to)

    @staticmethod
    def change_basis(frame: Frame) -> Transformation:
        """
        Transformation that re-expresses world geometry in ``frame``'s
        local coordinates.
        """
        return Transformation.from_frame_to_frame(frame, Frame.worldXY())

    @staticmethod
    def rotation_about(axis: Vector | list[float], angle: float, point: Point | list[float]) -> Transformation:
        """
        Rotation about an axis line.

        Args:
            axis: Direction of the axis line
            angle: Rotation angle in radians
            point: Point on the axis line

        Returns:
            COMPAS rotation
        """
        return CompasRotation.from_axis_and_angle(axis, angle, point=point)


def slerp_frames(frame_a: Frame, frame_b: Frame, t: float, point: Point | list[float]) -> Frame:
    """
    Spherical linear interpolation between the orientations of two frames.

    Args:
        frame_a: Orientation at t = 0
        frame_b: Orientation at t = 1
        t: Interpolation parameter in [0, 1]
        point: Origin of the returned frame

    Returns:
        Frame at ``point`` with the interpolated orientation
    """
    key_rotations = Rotation.from_matrix(
        [
            FrameConverter.to_matrix(frame_a)[:3, :3],
            FrameConverter.to_matrix(frame_b)[:3, :3],
        ]
    )
    slerp = Slerp([0.0, 1.0], key_rotations)
    return FrameConverter.from_rotation(point, slerp([t])[0])


def frame_deviation(frame_a: Frame, frame_b: Frame) -> tuple[float, float]:
    """
    Distance between two frames.

    Returns:
        Tuple of (position distance, largest axis deviation)
    """
    a = FrameConverter.to_matrix(frame_a)
    b = FrameConverter.to_matrix(frame_b)
    position = float(np.linalg.norm(a[:3, 3] - b[:3, 3]))
    orientation = float(np.max(np.abs(a[:3, :3] - b[:3, :3])))
    return position, orientation
