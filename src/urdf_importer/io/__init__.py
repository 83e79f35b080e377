"""Readers turning xacro and URDF text into RobotModel structures."""

from .urdf_parser import load_urdf, parse_urdf
from .xacro import XacroResult, expand_xacro, get_parameters

__all__ = ["XacroResult", "expand_xacro", "get_parameters", "load_urdf", "parse_urdf"]
