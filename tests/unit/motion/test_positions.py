"""
Tests for joint position value types.
"""

import math

import pytest

from robotkin.core.exceptions import KinematicsError
from robotkin.motion.positions import (
    UNDEFINED,
    ConfigurationData,
    ExternalJointPosition,
    RobotJointPosition,
)


class TestRobotJointPosition:
    """Tests for RobotJointPosition."""

    def test_default_is_zero(self):
        """Test that an empty position is all zeros."""
        assert RobotJointPosition().to_list() == [0.0] * 6

    def test_from_values_and_iterable(self):
        """Test both construction styles."""
        assert RobotJointPosition(1, 2, 3, 4, 5, 6) == RobotJointPosition([1, 2, 3, 4, 5, 6])

    def test_wrong_length(self):
        """Test that six values are required."""
        with pytest.raises(KinematicsError, match="needs 6 values"):
            RobotJointPosition(1, 2, 3)

    def test_arithmetic(self):
        """Test component-wise arithmetic."""
        a = RobotJointPosition(10, 20, 30, 40, 50, 60)
        b = RobotJointPosition(1, 2, 3, 4, 5, 6)

        assert (a + b).to_list() == [11, 22, 33, 44, 55, 66]
        assert (a - b).to_list() == [9, 18, 27, 36, 45, 54]
        assert (b * 2).to_list() == [2, 4, 6, 8, 10, 12]
        assert (2 * b) == b * 2
        assert (a / 10).to_list() == pytest.approx([1, 2, 3, 4, 5, 6])

    def test_divide_by_zero(self):
        """Test that division by zero raises."""
        with pytest.raises(KinematicsError, match="divide"):
            RobotJointPosition() / 0

    def test_item_access(self):
        """Test reading and writing single axes."""
        position = RobotJointPosition()
        position[4] = 90
        assert position[4] == 90.0
        assert len(position) == 6

    def test_copy_is_independent(self):
        """Test that a copy does not share values."""
        position = RobotJointPosition(1, 2, 3, 4, 5, 6, name="j1")
        duplicate = position.copy()
        duplicate[0] = 100

        assert position[0] == 1
        assert duplicate.name == "j1"

    def test_normalized(self):
        """Test wrapping every axis to (-180, 180]."""
        position = RobotJointPosition(190, -180, 360, 0, 540, -300)
        assert position.normalized().to_list() == pytest.approx([-170, 180, 0, 0, 180, 60])

    def test_distance(self):
        """Test summed absolute difference."""
        a = RobotJointPosition(10, 0, 0, 0, 0, 0)
        b = RobotJointPosition(0, 0, 0, 0, -5, 0)
        assert a.distance(b) == 15

    def test_to_configuration(self):
        """Test conversion to a compas_robots configuration."""
        configuration = RobotJointPosition(90, 0, 0, 0, 0, -180).to_configuration()
        assert configuration.joint_values[0] == pytest.approx(math.pi / 2)
        assert configuration.joint_values[5] == pytest.approx(-math.pi)


class TestExternalJointPosition:
    """Tests for ExternalJointPosition."""

    def test_padding(self):
        """Test that missing values are undefined."""
        position = ExternalJointPosition(100, 200)
        assert position.to_list()[2:] == [UNDEFINED] * 4
        assert position.is_defined("b")
        assert not position.is_defined("c")

    def test_too_many_values(self):
        """Test that at most six values are accepted."""
        with pytest.raises(KinematicsError, match="at most 6"):
            ExternalJointPosition([0] * 7)

    def test_logic_access(self):
        """Test access by logic letter."""
        position = ExternalJointPosition.from_dict({"c": 45})
        assert position[2] == 45
        assert position["c"] == 45

    @pytest.mark.parametrize("key", ["g", "ab", 6, -1])
    def test_invalid_key(self, key):
        """Test that invalid keys raise."""
        with pytest.raises(KinematicsError):
            ExternalJointPosition()[key]

    def test_arithmetic_keeps_undefined(self):
        """Test that undefined values survive arithmetic."""
        a = ExternalJointPosition(100)
        b = ExternalJointPosition(50)

        total = a + b
        assert total["a"] == 150
        assert total["b"] == UNDEFINED
        assert (a - b)["a"] == 50
        assert (a * 2)["a"] == 200
        assert (a / 4)["a"] == 25
        assert (a / 4)["f"] == UNDEFINED

    def test_mixed_definition(self):
        """Test that a defined value cannot be combined with an undefined one."""
        with pytest.raises(KinematicsError, match="combined with an undefined one"):
            ExternalJointPosition(100) + ExternalJointPosition()

    def test_repr(self):
        """Test undefined values in the representation."""
        assert "undefined" in repr(ExternalJointPosition(1))


class TestConfigurationData:
    """Tests for ConfigurationData."""

    def test_from_joint_position(self):
        """Test quadrant numbers."""
        configuration = ConfigurationData.from_joint_position(
            RobotJointPosition(-10, 0, 0, 200, 0, 90), cfx=3
        )
        assert (configuration.cf1, configuration.cf4, configuration.cf6) == (-1, 2, 1)
        assert configuration.cfx == 3

    @pytest.mark.parametrize("cfx", [-1, 8])
    def test_cfx_range(self, cfx):
        """Test configuration index range."""
        with pytest.raises(KinematicsError, match="Configuration index"):
            ConfigurationData(cfx=cfx)
