"""
Tests for forward kinematics.
"""

import pytest
from compas.geometry import Frame, Point, Vector

from robotkin.core.geometry import frame_deviation
from robotkin.core.presets import create_robot
from robotkin.core.robot import Robot, RobotTool
from robotkin.motion.kinematics import ForwardKinematics, check_axis_limits, effective_base_frame
from robotkin.motion.opw import OPWKinematics
from robotkin.motion.positions import ExternalJointPosition, RobotJointPosition

POSE = RobotJointPosition(10, 20, 30, 40, 50, 60)
CORRECTED_SIGNS = (1, 1, 1, -1, 1, 1)
CORRECTED_OFFSETS = (0, 0, -90, 0, 0, 10)


class TestForwardKinematics:
    """Tests for ForwardKinematics."""

    def test_home_position(self, irb6700):
        """Test the flange frame at zero joints."""
        result = ForwardKinematics(irb6700).calculate(RobotJointPosition())
        frame = result.tcp_frame

        assert list(frame.point) == pytest.approx([2032.5, 0, 2125])
        assert list(frame.xaxis) == pytest.approx([0, 0, -1], abs=1e-9)
        assert list(frame.zaxis) == pytest.approx([1, 0, 0], abs=1e-9)
        assert result.in_limits
        assert result.errors == []
        assert len(result.transformations) == 7

    def test_axis_1_rotation(self, irb6700):
        """Test that axis 1 turns the flange about world Z."""
        frame = ForwardKinematics(irb6700).calculate(RobotJointPosition(90, 0, 0, 0, 0, 0)).tcp_frame
        assert list(frame.point) == pytest.approx([0, 2032.5, 2125], abs=1e-6)

    @pytest.mark.parametrize(
        "values",
        [
            (10, 20, 30, 40, 50, 60),
            (-45, 10, -20, 120, -30, 200),
            (150, -40, 60, -90, 100, -300),
        ],
    )
    def test_matches_closed_form(self, irb6700, values):
        """Test that the chained joint frames agree with the closed-form solver."""
        joints = RobotJointPosition(values)
        chain = ForwardKinematics(irb6700).calculate(joints).tcp_frame
        opw = OPWKinematics(
            irb6700.kinematic_parameters, irb6700.axis_signs, irb6700.axis_offsets
        ).forward(joints)

        position, orientation = frame_deviation(chain, opw)
        assert position < 1e-6
        assert orientation < 1e-9

    @pytest.mark.parametrize(
        "values",
        [
            (10, 20, 30, 40, 50, 60),
            (-45, 10, -20, 120, -30, 200),
        ],
    )
    def test_matches_closed_form_with_corrections(self, irb6700, values):
        """Test that non-default axis signs and offsets are used by both solvers."""
        robot = Robot(
            "corrected",
            irb6700.kinematic_parameters,
            irb6700.axis_limits,
            axis_signs=CORRECTED_SIGNS,
            axis_offsets=CORRECTED_OFFSETS,
        )
        joints = RobotJointPosition(values)
        chain = ForwardKinematics(robot).calculate(joints).tcp_frame
        opw = OPWKinematics(
            robot.kinematic_parameters, robot.axis_signs, robot.axis_offsets
        ).forward(joints)

        position, orientation = frame_deviation(chain, opw)
        assert position < 1e-6
        assert orientation < 1e-9

    def test_corrections_map_to_default_robot(self, irb6700):
        """Test that a flipped axis 4 and an offset axis 6 pose like the equivalent default values."""
        robot = Robot(
            "corrected",
            irb6700.kinematic_parameters,
            irb6700.axis_limits,
            axis_signs=CORRECTED_SIGNS,
            axis_offsets=CORRECTED_OFFSETS,
        )
        corrected = ForwardKinematics(robot).calculate(POSE).tcp_frame
        default = ForwardKinematics(irb6700).calculate(RobotJointPosition(10, 20, 30, -40, 50, 50)).tcp_frame

        position, orientation = frame_deviation(corrected, default)
        assert position < 1e-6
        assert orientation < 1e-9

    def test_tool_and_base(self):
        """Test that tool and base frame are applied."""
        tool = RobotTool("torch", tool_frame=Frame(Point(0, 0, 100), Vector(1, 0, 0), Vector(0, 1, 0)))
        base = Frame(Point(0, 0, 500), Vector(1, 0, 0), Vector(0, 1, 0))
        robot = create_robot("irb6700_245_300", base_frame=base, tool=tool)

        frame = ForwardKinematics(robot).calculate(RobotJointPosition()).tcp_frame
        assert list(frame.point) == pytest.approx([2132.5, 0, 2625])

    def test_axis_out_of_range(self, irb6700):
        """Test the limit message for an internal axis."""
        result = ForwardKinematics(irb6700).calculate(RobotJointPosition(175, 0, 0, 0, 0, 0))

        assert not result.in_limits
        assert result.errors == ["The position of robot axis 1 is not in range."]

    def test_skip_limit_check(self, irb6700):
        """Test that the limit check can be turned off."""
        result = ForwardKinematics(irb6700).calculate(
            RobotJointPosition(175, 0, 0, 0, 0, 0), check_limits=False
        )
        assert result.in_limits
        assert result.errors == []

    def test_link_frames(self, irb6700):
        """Test posed joint frames."""
        frames = ForwardKinematics(irb6700).link_frames(RobotJointPosition(90, 0, 0, 0, 0, 0))

        assert len(frames) == 6
        assert list(frames[1].point) == pytest.approx([0, 320, 780], abs=1e-9)


class TestExternalAxes:
    """Tests for forward kinematics with external axes."""

    def test_track_moves_tcp(self, track_robot):
        """Test that the track value offsets the TCP."""
        fk = ForwardKinematics(track_robot)
        home = fk.calculate(POSE, ExternalJointPosition(0)).tcp_frame
        moved = fk.calculate(POSE, ExternalJointPosition(1000))

        assert moved.tcp_frame.point.x - home.point.x == pytest.approx(1000)
        assert list(moved.position_frame.point) == pytest.approx([1000, 0, 0])
        assert moved.in_limits

    def test_undefined_external_value(self, track_robot):
        """Test that an undefined value is reported and the default is used."""
        result = ForwardKinematics(track_robot).calculate(POSE, ExternalJointPosition())

        assert not result.in_limits
        assert result.errors == ["The position of external logical axis a is not defined."]
        assert list(result.position_frame.point) == pytest.approx([0, 0, 0])

    def test_external_out_of_range(self, track_robot):
        """Test an external value outside its limits."""
        result = ForwardKinematics(track_robot).calculate(POSE, ExternalJointPosition(6000))

        assert result.errors == ["The position of external logical axis a is not in range."]
        assert list(result.external_axis_frames[0].point) == pytest.approx([5000, 0, 0])
        assert list(result.position_frame.point) == pytest.approx([6000, 0, 0])

    def test_turntable_frame(self, turntable_robot):
        """Test the posed turntable attachment frame."""
        result = ForwardKinematics(turntable_robot).calculate(POSE, ExternalJointPosition(90))

        assert list(result.external_axis_frames[0].xaxis) == pytest.approx([0, 1, 0], abs=1e-9)
        assert list(result.position_frame.point) == pytest.approx([0, 0, 0])


class TestHelpers:
    """Tests for module helpers."""

    def test_effective_base_frame(self, track_robot, irb6700):
        """Test base frame after the robot-moving axis."""
        assert list(effective_base_frame(track_robot, ExternalJointPosition(250)).point) == pytest.approx(
            [250, 0, 0]
        )
        assert list(effective_base_frame(irb6700, ExternalJointPosition(250)).point) == pytest.approx(
            [0, 0, 0]
        )

    def test_check_axis_limits(self, turntable_robot):
        """Test combined internal and external checks."""
        errors, in_limits = check_axis_limits(
            turntable_robot, RobotJointPosition(0, 90, 0, 0, 0, 0), ExternalJointPosition(200)
        )

        assert not in_limits
        assert errors == [
            "The position of robot axis 2 is not in range.",
            "The position of external logical axis a is not in range.",
        ]
