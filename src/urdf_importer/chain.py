"""World transforms along the original joint chain.

Fixed-joint reduction rewrites joints and bodies, but the model keeps the
pre-reduction chain (``link_names``, ``parent_indices``, ``joint_transforms``).
Transforms here are computed from that chain in the rest configuration, so any
original link or joint name can be placed in the world.
"""

import logging
from typing import Dict

import jax
import jax.numpy as jnp
from jax import Array

from .core import BrokenChainError, RobotModel
from .transforms import Pose

logger = logging.getLogger(__name__)


def forward_kinematics(robot: RobotModel) -> Dict[str, Array]:
    """Compute rest-pose world transforms for all original links.

    Args:
        robot: RobotModel containing the original joint chain

    Returns:
        Dictionary mapping link names to their 4x4 SE(3) world poses
    """
    world_transforms = forward_kinematics_world(robot)
    return {name: world_transforms[i] for i, name in enumerate(robot.link_names)}


def forward_kinematics_world(robot: RobotModel) -> Array:
    """Array of shape (num_links, 4, 4) with world poses for all original links.

    Links are stored breadth-first, so every parent is finished before its
    children are visited.
    """
    num_links = len(robot.link_names)
    world_transforms = jnp.identity(4)[None].repeat(num_links, axis=0)

    def scan_body(carry, i):
        """Processes link `i` using its parent's world pose from `carry`."""
        T_world_to_parent = carry[robot.parent_indices[i]]
        T_world_to_child = T_world_to_parent @ robot.joint_transforms[i]
        carry = carry.at[i].set(T_world_to_child)
        return carry, None

    # Root (index 0) is the identity base case.
    final_transforms, _ = jax.lax.scan(scan_body, world_transforms, jnp.arange(1, num_links))
    return final_transforms


def get_world_transform(robot: RobotModel, name: str) -> Pose:
    """Pose of a link or joint frame relative to the root link.

    Args:
        robot: The parsed model.
        name: Any original link name (surviving or fused) or any joint name,
              fixed ones included. A joint frame coincides with its child
              link's frame.

    Returns:
        Pose: ``T_world_parent @ T_joint_origin`` composed from the root down.

    Raises:
        BrokenChainError: If ``name`` has no recorded chain or the walk towards
            the root does not terminate at it.
    """
    link_index = _chain_index(robot, name)

    # Walk parents up to the root; a valid chain takes at most num_links steps.
    path = []
    current = link_index
    for _ in range(len(robot.link_names)):
        if current == 0:
            break
        path.append(current)
        current = int(robot.parent_indices[current])
    else:
        if current != 0:
            raise BrokenChainError(f"Chain from '{name}' does not reach root link '{robot.root}'")

    T = jnp.eye(4)
    for index in reversed(path):
        T = T @ robot.joint_transforms[index]
    return Pose.from_matrix(T)


def _chain_index(robot: RobotModel, name: str) -> int:
    if name in robot.link_names:
        return robot.link_names.index(name)
    if name and name in robot.chain_joint_names:
        return robot.chain_joint_names.index(name)
    logger.debug(f"No chain recorded for '{name}'")
    raise BrokenChainError(f"No link or joint named '{name}' in robot '{robot.name}'")
