"""
Custom exceptions for robotkin.

All robotkin exceptions inherit from RobotKinError for easy catching.
Axis-limit violations and singularities are never raised; they are reported
as warning strings by the solvers.
"""

from typing import Any


class RobotKinError(Exception):
    """Base exception for all robotkin errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message


class ConfigurationError(RobotKinError):
    """Raised when configuration is invalid or missing."""

    pass


class RobotError(RobotKinError):
    """Raised when a robot model is invalid or cannot be built."""

    pass


class ExternalAxisError(RobotError):
    """Raised when an external axis definition is invalid."""

    def __init__(
        self,
        message: str,
        axis_name: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.axis_name = axis_name


class KinematicsError(RobotKinError):
    """Raised when a kinematics computation receives inconsistent input."""

    pass


class PathGenerationError(KinematicsError):
    """Raised when a path segment cannot be constructed at all."""

    pass
