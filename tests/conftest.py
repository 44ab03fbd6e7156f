"""
Pytest configuration and shared fixtures.
"""

import tempfile
from pathlib import Path

import pytest

from robotkin.core.presets import create_robot
from robotkin.motion.external_axes import create_linear_track, create_turntable


@pytest.fixture
def temp_dir():
    """Provide a temporary directory that is cleaned up after the test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


ROBOT_ON_TRACK_YAML = """
robot:
  name: "IRB6700 on track"
  preset: irb6700_245_300
  tool:
    name: torch
    tcp:
      point: [0, 0, 300]
  external_axes:
    - name: track
      type: linear
      axis_logic: a
      lower: 0
      upper: 5000
      moves_robot: true
      axis:
        point: [0, 0, 0]
        xaxis: [0, 1, 0]
        yaxis: [0, 0, 1]
"""

CUSTOM_ROBOT_YAML = """
robot:
  name: "Custom arm"
  kinematics:
    a1: 150
    a2: 0
    c1: 486.5
    c2: 700
    c3: 600
    c4: 65
  joint_limits:
    - {lower: -180, upper: 180}
    - {lower: -63, upper: 110}
    - {lower: -235, upper: 55}
    - {lower: -200, upper: 200}
    - {lower: -115, upper: 115}
    - {lower: -400, upper: 400}
"""

PROGRAM_YAML = """
program:
  name: "Pick and place"
  robot: irb6700_245_300
  interpolations: 4
  tools:
    - name: gripper
      tcp:
        point: [0, 0, 150]
  actions:
    - move:
        type: MoveAbsJ
        name: home
        joints: [0, 0, 0, 0, 30, 0]
    - move:
        type: MoveAbsJ
        name: approach
        joints: [10, 20, 30, 40, 50, 60]
    - wait: 0.5
    - group:
        - joint_configuration_control: false
        - move:
            type: MoveAbsJ
            name: retract
            joints: [0, 10, 20, 0, 45, 0]
"""


@pytest.fixture
def sample_config_dir(temp_dir):
    """Create a sample configuration directory structure."""
    config_dir = temp_dir / "config"
    (config_dir / "robots").mkdir(parents=True)
    (config_dir / "programs").mkdir(parents=True)

    (config_dir / "robots" / "irb6700_track.yaml").write_text(ROBOT_ON_TRACK_YAML)
    (config_dir / "robots" / "custom_arm.yaml").write_text(CUSTOM_ROBOT_YAML)
    (config_dir / "programs" / "pick_and_place.yaml").write_text(PROGRAM_YAML)

    return config_dir


@pytest.fixture
def program_file(temp_dir):
    """A standalone program file."""
    path = temp_dir / "program.yaml"
    path.write_text(PROGRAM_YAML)
    return path


@pytest.fixture
def irb6700():
    """ABB IRB 6700 with the flange tool at the world origin."""
    return create_robot("irb6700_245_300")


@pytest.fixture
def track_robot():
    """ABB IRB 6700 riding on a 5 m linear track along world X (logic 'a')."""
    track = create_linear_track(length=5000.0, moves_robot=True, axis_logic="a")
    return create_robot("irb6700_245_300", external_axes=[track])


@pytest.fixture
def turntable_robot():
    """ABB IRB 6700 with a turntable 2 m in front of it (logic 'a')."""
    table = create_turntable(max_rotation=360.0, position=(2000, 0, 0), axis_logic="a")
    return create_robot("irb6700_245_300", external_axes=[table])
