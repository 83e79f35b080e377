"""Structural queries over a reduced RobotModel.

Every lookup is a read of the name indices built when the model was parsed, so
queries never walk the tree. Unknown names give empty results rather than
errors.
"""

from typing import Dict, Optional, Tuple

from .core import Body, Frame, Joint, RobotModel


def get_all_links(robot: RobotModel) -> Dict[str, Body]:
    """Map every surviving body name to its Body."""
    return {body.name: body for body in robot.bodies}


def get_all_joints(robot: RobotModel) -> Dict[str, Joint]:
    """Map every non-fixed joint name to its Joint."""
    return {joint.name: joint for joint in robot.joints}


def get_joints_for_parent_link(robot: RobotModel, link_name: str) -> Tuple[Joint, ...]:
    """Joints whose parent is ``link_name``, in document order."""
    return tuple(robot.joints[i] for i in robot.parent_joints.get(link_name, ()))


def get_joints_for_child_link(robot: RobotModel, link_name: str) -> Tuple[Joint, ...]:
    """Joints whose child is ``link_name``. At most one in a valid tree."""
    return tuple(robot.joints[i] for i in robot.child_joints.get(link_name, ()))


def get_link(robot: RobotModel, link_name: str) -> Optional[Body]:
    index = robot.body_index.get(link_name)
    return robot.bodies[index] if index is not None else None


def get_frame(robot: RobotModel, frame_name: str) -> Optional[Frame]:
    index = robot.frame_index.get(frame_name)
    return robot.frames[index] if index is not None else None


def frame_name_exists(robot: RobotModel, frame_name: str) -> bool:
    """True if ``frame_name`` was kept as an alias by fixed-joint reduction."""
    return frame_name in robot.frame_index


def resolve_frame(robot: RobotModel, name: str) -> Optional[str]:
    """Return the surviving body a body or frame name refers to.

    Args:
        robot: The reduced model.
        name: A body name or a frame alias (fused link or fixed joint name).

    Returns:
        The body name, or None if ``name`` is neither a body nor a frame.
    """
    if name in robot.body_index:
        return name
    frame = get_frame(robot, name)
    return frame.attached_to if frame is not None else None
