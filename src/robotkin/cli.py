"""
Command-line interface for robotkin.

Provides commands for listing robot presets, forward and inverse kinematics
of a single pose, and running the path generator on a YAML program.
Negative joint values must follow ``--`` so they are not read as options.
"""

from pathlib import Path
from typing import NoReturn, Optional

import click
from compas.geometry import Frame, Point, Vector
from rich.console import Console
from rich.table import Table

from robotkin import __version__
from robotkin.core.config import ConfigManager, load_program_file
from robotkin.core.exceptions import RobotKinError
from robotkin.core.logging import configure_logging
from robotkin.core.presets import PRESETS, create_robot, list_presets
from robotkin.core.robot import Robot
from robotkin.motion.actions import Movement, MovementType, RobotTarget, program_actions
from robotkin.motion.inverse import CONFIGURATIONS, InverseKinematics
from robotkin.motion.kinematics import ForwardKinematics
from robotkin.motion.planner import PathGenerator
from robotkin.motion.positions import ConfigurationData, ExternalJointPosition, RobotJointPosition

console = Console()


def _format(values) -> list[str]:
    return [f"{value:.3f}" for value in values]


def _parse_external(values: tuple[str, ...]) -> ExternalJointPosition:
    """Parse ``a=500`` style external axis values."""
    external = ExternalJointPosition()
    for item in values:
        logic, _, value = item.partition("=")
        if not value:
            raise click.BadParameter(f"expected LOGIC=VALUE, got '{item}'", param_hint="--external")
        try:
            external[logic.strip()] = float(value)
        except (ValueError, RobotKinError) as e:
            raise click.BadParameter(str(e), param_hint="--external") from e
    return external


def _load_robot(ctx: click.Context, name: str) -> Robot:
    """Resolve a robot by preset name or by configuration name."""
    if name in PRESETS:
        return create_robot(name)
    manager = ConfigManager(config_dir=ctx.obj["config_dir"])
    return Robot.from_config(manager.get_robot(name))


def _fail(message: str, error: Exception) -> NoReturn:
    console.print(f"[red]✗[/red] {message}: {error}")
    raise SystemExit(1)


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default="config",
    help="Configuration directory",
)
@click.option("--log-level", default="WARNING", help="Log level (DEBUG, INFO, WARNING, ...)")
@click.option("--json-logs", is_flag=True, help="Emit log records as JSON lines")
@click.pass_context
def main(ctx: click.Context, config_dir: Path, log_level: str, json_logs: bool) -> None:
    """robotkin - Kinematics and path approximation for 6-axis robot arms."""
    configure_logging(level=log_level, json_output=json_logs)
    ctx.ensure_object(dict)
    ctx.obj["config_dir"] = config_dir


@main.command("presets")
def presets() -> None:
    """List robot presets."""
    table = Table(title="Robot Presets")
    table.add_column("Name", style="cyan")
    table.add_column("Robot")
    for column in ("a1", "a2", "c1", "c2", "c3", "c4"):
        table.add_column(column, justify="right")

    for name in list_presets():
        preset = PRESETS[name]
        p = preset.kinematic_parameters
        table.add_row(
            name,
            preset.description,
            *[f"{value:g}" for value in (p.a1, p.a2, p.c1, p.c2, p.c3, p.c4)],
        )

    console.print(table)


@main.command("fk")
@click.argument("robot_name")
@click.argument("joints", nargs=6, type=float)
@click.option("--external", "-e", multiple=True, help="External axis value, e.g. a=500")
@click.pass_context
def fk(ctx: click.Context, robot_name: str, joints: tuple[float, ...], external: tuple[str, ...]) -> None:
    """Forward kinematics for a joint position in degrees."""
    try:
        robot = _load_robot(ctx, robot_name)
        result = ForwardKinematics(robot).calculate(
            RobotJointPosition(joints), _parse_external(external)
        )
    except RobotKinError as e:
        _fail("Forward kinematics failed", e)

    frame = result.tcp_frame
    table = Table(title=f"TCP frame: {robot.name}")
    table.add_column("", style="cyan")
    table.add_column("X", justify="right")
    table.add_column("Y", justify="right")
    table.add_column("Z", justify="right")
    table.add_row("point", *_format(frame.point))
    table.add_row("xaxis", *_format(frame.xaxis))
    table.add_row("yaxis", *_format(frame.yaxis))
    console.print(table)

    for error in result.errors:
        console.print(f"[yellow]⚠[/yellow] {error}")


@main.command("ik")
@click.argument("robot_name")
@click.option("--point", "-p", nargs=3, type=float, required=True, help="TCP position")
@click.option("--xaxis", nargs=3, type=float, default=(1.0, 0.0, 0.0), help="TCP x-axis")
@click.option("--yaxis", nargs=3, type=float, default=(0.0, 1.0, 0.0), help="TCP y-axis")
@click.option("--cfx", type=click.IntRange(0, 7), default=0, help="Configuration index to select")
@click.option("--external", "-e", multiple=True, help="External axis value, e.g. a=500")
@click.pass_context
def ik(
    ctx: click.Context,
    robot_name: str,
    point: tuple[float, float, float],
    xaxis: tuple[float, float, float],
    yaxis: tuple[float, float, float],
    cfx: int,
    external: tuple[str, ...],
) -> None:
    """Inverse kinematics: all eight solutions for a TCP frame."""
    try:
        robot = _load_robot(ctx, robot_name)
        target = RobotTarget(
            frame=Frame(Point(*point), Vector(*xaxis), Vector(*yaxis)),
            configuration=ConfigurationData(cfx=cfx),
            external_joint_position=_parse_external(external),
            name="target",
        )
        result = InverseKinematics(robot).calculate(Movement(MovementType.MOVE_J, target))
    except RobotKinError as e:
        _fail("Inverse kinematics failed", e)

    table = Table(title=f"Inverse kinematics: {robot.name}")
    table.add_column("cfx", style="cyan")
    table.add_column("Config")
    for axis in range(1, 7):
        table.add_column(f"A{axis}", justify="right")
    table.add_column("Flags")

    for index, solution in enumerate(result.solutions):
        description = CONFIGURATIONS[index]
        flags = "".join(
            letter
            for letter, flag in (
                ("W", solution.wrist_singular),
                ("E", solution.elbow_singular),
                ("S", solution.shoulder_singular),
            )
            if flag
        )
        marker = "*" if index == cfx else ""
        table.add_row(
            f"{index}{marker}",
            f"{description.wrist_center_vs_axis1}/{description.wrist_center_vs_lower_arm}/{description.axis5}",
            *_format(solution.joint_position),
            flags,
        )

    console.print(table)
    console.print(f"Selected: {', '.join(_format(result.robot_joint_position))}")
    for error in result.errors:
        console.print(f"[yellow]⚠[/yellow] {error}")


@main.command("path")
@click.argument("program_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--interpolations", "-n", type=click.IntRange(min=1), default=None, help="Override interpolation steps")
@click.option("--steps", is_flag=True, help="Print every trajectory step")
@click.pass_context
def path(ctx: click.Context, program_file: Path, interpolations: Optional[int], steps: bool) -> None:
    """Run the path generator on a YAML program."""
    try:
        program = load_program_file(program_file)
        robot = _load_robot(ctx, program.robot)
        actions = program_actions(program, robot)
        generator = PathGenerator(robot, interpolations or program.interpolations)
        result = generator.calculate(actions)
    except RobotKinError as e:
        _fail("Path generation failed", e)

    table = Table(title=f"Program: {program.name}")
    table.add_column("Property", style="cyan")
    table.add_column("Value")
    table.add_row("Robot", robot.name)
    table.add_row("Steps", str(len(result)))
    table.add_row("Paths", str(sum(1 for curve in result.paths if curve is not None)))
    table.add_row("Program time", f"{result.program_time:.3f} s")
    table.add_row("In limits", "yes" if all(result.in_limits) else "no")
    if result.frames:
        table.add_row("Final TCP", ", ".join(_format(result.frames[-1].point)))
        table.add_row("Final joints", ", ".join(_format(result.robot_joint_positions[-1])))
    console.print(table)

    if steps:
        step_table = Table(title="Trajectory")
        step_table.add_column("#", style="cyan")
        for axis in range(1, 7):
            step_table.add_column(f"A{axis}", justify="right")
        step_table.add_column("cfx", justify="right")
        for index, (joints, configuration) in enumerate(
            zip(result.robot_joint_positions, result.configurations)
        ):
            step_table.add_row(str(index), *_format(joints), str(configuration.cfx))
        console.print(step_table)

    if result.errors:
        console.print(f"[yellow]⚠[/yellow] {len(result.errors)} warning(s):")
        for error in result.errors:
            console.print(f"  {error}")
    else:
        console.print("[green]✓[/green] No warnings")


if __name__ == "__main__":
    main()
