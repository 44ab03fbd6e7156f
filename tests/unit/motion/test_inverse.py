"""
Tests for inverse kinematics.
"""

import itertools
import math

import numpy as np
import pytest
from compas.geometry import Frame, Point, Translation, Vector

from robotkin.core.exceptions import RobotError
from robotkin.core.geometry import frame_deviation
from robotkin.core.presets import create_robot, list_presets
from robotkin.core.robot import Robot, RobotKinematicParameters, RobotTool
from robotkin.motion.actions import JointTarget, Movement, MovementType, RobotTarget, WorkObject
from robotkin.motion.inverse import CONFIGURATIONS, InverseKinematics, adjust_turn
from robotkin.motion.kinematics import ForwardKinematics
from robotkin.motion.positions import ConfigurationData, ExternalJointPosition, RobotJointPosition

POSE = RobotJointPosition(10, 20, 30, 40, 50, 60)


def _move_j(frame, cfx=0, external=None, name="p10", work_object=None):
    target = RobotTarget(
        frame=frame,
        configuration=ConfigurationData(cfx=cfx),
        external_joint_position=external or ExternalJointPosition(),
        name=name,
    )
    return Movement(MovementType.MOVE_J, target, work_object=work_object or WorkObject())


@pytest.fixture
def pose_frame(irb6700):
    """TCP frame of POSE."""
    return ForwardKinematics(irb6700).calculate(POSE).tcp_frame


def _sample_poses(robot, count=10, seed=7):
    """Seeded joint positions spread over the axis limits."""
    rng = np.random.default_rng(seed)
    lower = [limits.lower for limits in robot.axis_limits]
    upper = [limits.upper for limits in robot.axis_limits]
    return [RobotJointPosition(rng.uniform(lower, upper).tolist()) for _ in range(count)]


def _round_trip(robot, joints):
    """
    Solve every configuration for the TCP frame of ``joints``.

    Returns the (position, orientation) deviation of each in-limits solution.
    """
    fk = ForwardKinematics(robot)
    ik = InverseKinematics(robot)
    target = fk.calculate(joints, check_limits=False).tcp_frame

    deviations = []
    for cfx in range(8):
        result = ik.calculate(_move_j(target, cfx=cfx))
        if not result.in_limits:
            continue
        frame = fk.calculate(result.robot_joint_position, check_limits=False).tcp_frame
        deviations.append(frame_deviation(frame, target))
    return deviations


class TestAdjustTurn:
    """Tests for adjust_turn."""

    @pytest.mark.parametrize(
        "value, quadrant, expected",
        [
            (10, 0, 10),
            (10, -4, -350),
            (-170, 2, 190),
            (10, 1, 10),
            (-90, 2, 270),
            (90, 0, 90),
        ],
    )
    def test_adjust_turn(self, value, quadrant, expected):
        """Test whole-turn shifts towards the requested quadrant."""
        assert adjust_turn(value, quadrant) == pytest.approx(expected)


class TestSolver:
    """Tests for the eight branches."""

    def test_rejects_offset_wrist(self, irb6700):
        """Test that a non-spherical wrist cannot be solved in closed form."""
        parameters = RobotKinematicParameters(a1=320, a2=-200, a3=50, b=0, c1=780, c2=1145, c3=1462.5, c4=250)
        robot = Robot("offset", parameters, irb6700.axis_limits)
        with pytest.raises(RobotError, match="spherical wrist"):
            InverseKinematics(robot)

    def test_every_branch_reaches_target(self, irb6700, pose_frame):
        """Test that each branch's forward kinematics lands on the target."""
        ik = InverseKinematics(irb6700)
        solutions = ik.solve_local(pose_frame)
        fk = ForwardKinematics(irb6700)

        assert len(solutions) == 8
        for solution in solutions:
            assert not solution.elbow_singular
            frame = fk.calculate(solution.joint_position, check_limits=False).tcp_frame
            position, orientation = frame_deviation(frame, pose_frame)
            assert position < 1e-6
            assert orientation < 1e-9

    def test_branches_are_distinct(self, irb6700, pose_frame):
        """Test that the eight branches are different joint positions."""
        solutions = InverseKinematics(irb6700).solve_local(pose_frame)
        for a, b in itertools.combinations(solutions, 2):
            assert a.joint_position.distance(b.joint_position) > 1e-3

    def test_values_wrapped(self, irb6700, pose_frame):
        """Test that solver values lie in (-180, 180]."""
        for solution in InverseKinematics(irb6700).solve_local(pose_frame):
            assert all(-180 < value <= 180 for value in solution.joint_position)

    def test_wrist_flip_order(self, irb6700, pose_frame):
        """Test that odd configuration indices flip axis 5."""
        solutions = InverseKinematics(irb6700).solve_local(pose_frame)
        for cfx in range(0, 8, 2):
            assert solutions[cfx].joint_position[4] == pytest.approx(-solutions[cfx + 1].joint_position[4])
            assert CONFIGURATIONS[cfx].axis5 == "positive"


class TestCalculate:
    """Tests for InverseKinematics.calculate."""

    def test_solves_pose(self, irb6700, pose_frame):
        """Test that the pose is recovered with its configuration index."""
        ik = InverseKinematics(irb6700)
        result = ik.calculate(_move_j(pose_frame, cfx=0))

        assert result.robot_joint_position.to_list() == pytest.approx(POSE.to_list(), abs=1e-6)
        assert result.configuration.cfx == 0
        assert result.in_limits
        assert result.errors == []
        assert result.selected is result.solutions[0]

    def test_configuration_from_joint_position(self, irb6700):
        """Test that a joint position maps back to its branch."""
        configuration = InverseKinematics(irb6700).configuration_from_joint_position(POSE)
        assert configuration.cfx == 0
        assert (configuration.cf1, configuration.cf4, configuration.cf6) == (0, 0, 0)

    def test_flipped_wrist_configuration(self, irb6700, pose_frame):
        """Test that the flipped solution maps to configuration index 1."""
        ik = InverseKinematics(irb6700)
        flipped = ik.solve_local(pose_frame)[1].joint_position
        assert ik.configuration_from_joint_position(flipped).cfx == 1

    def test_quadrant_adjusts_axis_6(self, irb6700, pose_frame):
        """Test that cf6 shifts axis 6 by a full turn."""
        movement = _move_j(pose_frame)
        movement.target.configuration = ConfigurationData(cf6=-4, cfx=0)
        result = InverseKinematics(irb6700).calculate(movement)

        assert result.robot_joint_position[5] == pytest.approx(-300)
        assert result.configuration.cf6 == -4

    def test_joint_target_passthrough(self, irb6700):
        """Test that joint targets are copied as they are."""
        target = JointTarget(RobotJointPosition(175, 0, 0, 0, 30, 0), name="home")
        result = InverseKinematics(irb6700).calculate(Movement(MovementType.MOVE_ABS_J, target))

        assert result.robot_joint_position == target.robot_joint_position
        assert result.robot_joint_position is not target.robot_joint_position
        assert result.solutions == ()
        assert not result.in_limits
        assert result.errors == ["Movement home/wobj0: The position of robot axis 1 is not in range."]

    def test_wrist_singularity(self, irb6700):
        """Test the wrist singularity warning at zero joints."""
        frame = ForwardKinematics(irb6700).calculate(RobotJointPosition()).tcp_frame
        result = InverseKinematics(irb6700).calculate(_move_j(frame, cfx=0, name="home"))

        assert "Movement home/wobj0: The robot is near a wrist singularity." in result.errors
        assert result.robot_joint_position[4] == pytest.approx(0, abs=1e-3)
        assert result.selected.wrist_singular

    def test_shoulder_singularity(self, irb6700):
        """Test the warning when the wrist center lies on the axis 1 line."""
        frame = Frame(Point(250, 0, 2000), Vector(0, 0, -1), Vector(0, 1, 0))
        result = InverseKinematics(irb6700).calculate(_move_j(frame, name="top"))

        assert "Movement top/wobj0: The robot is near a shoulder singularity." in result.errors
        assert all(solution.shoulder_singular for solution in result.solutions)

    def test_out_of_reach(self, irb6700):
        """Test that a target out of reach is flagged."""
        frame = Frame(Point(10000, 0, 0), Vector(0, 0, -1), Vector(0, 1, 0))
        result = InverseKinematics(irb6700).calculate(_move_j(frame, name="far"))

        assert "Movement far/wobj0: The target is out of reach (elbow singularity)." in result.errors
        assert not result.in_limits

    def test_nearly_stretched_arm(self, irb6700):
        """Test that an arm a hundredth of a degree short of full stretch is flagged."""
        p = irb6700.kinematic_parameters
        stretched = -math.degrees(math.atan2(p.a2, p.c3)) - 90.0
        joints = RobotJointPosition(0, 30, stretched + 0.01, 0, 45, 0)
        frame = ForwardKinematics(irb6700).calculate(joints).tcp_frame
        result = InverseKinematics(irb6700).calculate(_move_j(frame, name="reach"))

        assert all(solution.elbow_singular for solution in result.solutions)
        assert "Movement reach/wobj0: The target is out of reach (elbow singularity)." in result.errors
        assert not result.in_limits

    def test_tool_is_removed(self, irb6700, pose_frame):
        """Test that a movement tool is taken into account."""
        tool = RobotTool("torch", tool_frame=Frame(Point(0, 0, 200), Vector(1, 0, 0), Vector(0, 1, 0)))
        tcp = ForwardKinematics(irb6700.with_tool(tool)).calculate(POSE).tcp_frame
        movement = _move_j(tcp)
        movement.tool = tool

        result = InverseKinematics(irb6700).calculate(movement)
        assert result.robot_joint_position.to_list() == pytest.approx(POSE.to_list(), abs=1e-6)


class TestRoundTrip:
    """Forward then inverse then forward kinematics over sampled poses."""

    @pytest.mark.parametrize("preset", list_presets())
    def test_presets(self, preset):
        """Test that every in-limits configuration lands on the sampled TCP frame."""
        robot = create_robot(preset)
        solved = 0
        for joints in _sample_poses(robot):
            for position, orientation in _round_trip(robot, joints):
                assert position < 1e-6
                assert orientation < 1e-6
                solved += 1

        assert solved > 0

    def test_axis_corrections(self, irb6700):
        """Test the round trip for a robot with a flipped axis 4 and an offset axis 6."""
        robot = Robot(
            "corrected",
            irb6700.kinematic_parameters,
            irb6700.axis_limits,
            axis_signs=(1, 1, 1, -1, 1, 1),
            axis_offsets=(0, 0, -90, 0, 0, 10),
        )
        deviations = []
        for joints in [POSE, *_sample_poses(robot, count=5, seed=11)]:
            deviations.extend(_round_trip(robot, joints))

        assert deviations
        for position, orientation in deviations:
            assert position < 1e-6
            assert orientation < 1e-6

    def test_pose_recovered_with_corrections(self, irb6700):
        """Test that configuration index 0 returns the corrected joint values."""
        robot = Robot(
            "corrected",
            irb6700.kinematic_parameters,
            irb6700.axis_limits,
            axis_signs=(1, 1, 1, -1, 1, 1),
            axis_offsets=(0, 0, -90, 0, 0, 10),
        )
        frame = ForwardKinematics(robot).calculate(POSE).tcp_frame
        result = InverseKinematics(robot).calculate(_move_j(frame, cfx=0))

        assert result.in_limits
        assert result.robot_joint_position.to_list() == pytest.approx(POSE.to_list(), abs=1e-6)


class TestClosestToReference:
    """Tests for closest_to_reference."""

    def test_turn_shift(self, irb6700, pose_frame):
        """Test that axis 6 is shifted by a turn to match the reference."""
        ik = InverseKinematics(irb6700)
        result = ik.calculate(_move_j(pose_frame))
        reference = RobotJointPosition(10, 20, 30, 40, 50, -300)

        closest = ik.closest_to_reference(result, reference)

        assert closest.robot_joint_position[5] == pytest.approx(-300)
        assert closest.reference_distance == pytest.approx(0, abs=1e-6)
        assert closest.configuration.cfx == 0
        assert closest.configuration.cf6 == -4

    def test_keeps_selection_when_closest(self, irb6700, pose_frame):
        """Test that the selection stays when nothing is strictly closer."""
        ik = InverseKinematics(irb6700)
        result = ik.calculate(_move_j(pose_frame))
        closest = ik.closest_to_reference(result, POSE)

        assert closest.robot_joint_position.to_list() == pytest.approx(POSE.to_list(), abs=1e-6)
        assert closest.configuration.cfx == 0


class TestExternalAxes:
    """Tests for targets with external axes."""

    def test_track_with_defined_value(self, track_robot, irb6700, pose_frame):
        """Test that the track offset is removed before solving."""
        frame = pose_frame.transformed(Translation.from_vector([1500, 0, 0]))
        result = InverseKinematics(track_robot).calculate(
            _move_j(frame, external=ExternalJointPosition(1500))
        )

        assert result.robot_joint_position.to_list() == pytest.approx(POSE.to_list(), abs=1e-6)
        assert result.external_joint_position["a"] == pytest.approx(1500)
        assert list(result.position_frame.point) == pytest.approx([1500, 0, 0])

    def test_track_with_undefined_value(self, track_robot):
        """Test that the track follows the target when its value is undefined."""
        frame = Frame(Point(2500, 300, 1200), Vector(0, 0, -1), Vector(0, 1, 0))
        result = InverseKinematics(track_robot).calculate(_move_j(frame))

        assert result.external_joint_position["a"] == pytest.approx(2500)
        assert list(result.position_frame.point) == pytest.approx([2500, 0, 0])

    def test_track_undefined_value_clamped(self, track_robot):
        """Test that the followed track value stays inside the limits."""
        frame = Frame(Point(8000, 0, 1200), Vector(0, 0, -1), Vector(0, 1, 0))
        ik = InverseKinematics(track_robot)
        movement = _move_j(frame)

        assert ik.calculate_external_joint_position(movement)["a"] == pytest.approx(5000)

    def test_turntable_work_object(self, turntable_robot):
        """Test a target on a work object carried by the turntable."""
        table = turntable_robot.get_external_axis("a")
        work_object = WorkObject(name="table", external_axis=table)
        frame = Frame(Point(100, 0, 0), Vector(1, 0, 0), Vector(0, 1, 0))
        movement = _move_j(frame, external=ExternalJointPosition(90), name="t1", work_object=work_object)

        assert list(movement.posed_global_target_frame().point) == pytest.approx([2000, 100, 0], abs=1e-9)

        result = InverseKinematics(turntable_robot).calculate(movement)
        assert result.external_joint_position["a"] == 90
        assert list(result.target_frame.point) == pytest.approx([2000, 100, 0], abs=1e-9)

    def test_joint_target_resolves_defaults(self, turntable_robot):
        """Test that undefined external values of joint targets use axis defaults."""
        target = JointTarget(RobotJointPosition(0, 0, 0, 0, 30, 0))
        result = InverseKinematics(turntable_robot).calculate(Movement(MovementType.MOVE_ABS_J, target))

        assert result.external_joint_position["a"] == 0
        assert result.in_limits
