"""Heuristic detection of drive wheels in a reduced robot model."""

import logging
from typing import Tuple

from .core import JointType, RobotModel
from .graph import get_joints_for_child_link, get_link

logger = logging.getLogger(__name__)

WHEEL_JOINT_TYPES = (JointType.REVOLUTE, JointType.CONTINUOUS)


def is_wheel_link(robot: RobotModel, link_name: str) -> bool:
    """Return True if ``link_name`` looks like a wheel.

    A wheel is a body that has both visual and collision geometry, is not
    named like a joint (``*_joint*``), and is the child of exactly one
    revolute or continuous joint with a non-zero axis.
    """
    body = get_link(robot, link_name)
    if body is None:
        return False
    if "_joint" in link_name.lower():
        logger.debug(f"'{link_name}' is named like a joint, not a wheel")
        return False
    if not body.visuals or not body.collisions:
        return False

    joints = get_joints_for_child_link(robot, link_name)
    if len(joints) != 1:
        return False
    joint = joints[0]
    if joint.type not in WHEEL_JOINT_TYPES:
        return False
    return joint.axis is not None and any(component != 0.0 for component in joint.axis)


def find_wheel_links(robot: RobotModel) -> Tuple[str, ...]:
    """Names of every body that passes ``is_wheel_link``, in body order."""
    return tuple(body.name for body in robot.bodies if is_wheel_link(robot, body.name))
