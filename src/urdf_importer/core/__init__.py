"""Core data structures and errors for the URDF importer.

This module provides the immutable records that make up a parsed robot
description and the exceptions raised while building it.
"""

from .errors import (
    BrokenChainError,
    MacroSyntaxError,
    StructuralError,
    StructuralErrorKind,
    UrdfImportError,
)
from .robot_model import (
    Body,
    Frame,
    Geometry,
    GeometryKind,
    Inertial,
    Joint,
    JointDynamics,
    JointLimits,
    JointType,
    RobotModel,
)

__all__ = [
    "Body",
    "BrokenChainError",
    "Frame",
    "Geometry",
    "GeometryKind",
    "Inertial",
    "Joint",
    "JointDynamics",
    "JointLimits",
    "JointType",
    "MacroSyntaxError",
    "RobotModel",
    "StructuralError",
    "StructuralErrorKind",
    "UrdfImportError",
]
