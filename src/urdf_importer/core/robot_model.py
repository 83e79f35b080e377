"""RobotModel data structure for the reduced kinematic tree.

This module defines the immutable records produced by the URDF parser: links
(bodies) with their inertial and geometric content, joints, frame aliases left
behind by fixed-joint reduction, and the RobotModel that ties them together.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, Optional, Tuple

from jax import Array
from flax import struct

from urdf_importer.transforms import Pose


class JointType(str, Enum):
    """Joint kinds understood by the importer."""
    FIXED = "fixed"
    REVOLUTE = "revolute"
    CONTINUOUS = "continuous"
    PRISMATIC = "prismatic"
    FLOATING = "floating"
    PLANAR = "planar"
    OTHER = "other"

    @classmethod
    def from_urdf(cls, value: Optional[str]) -> "JointType":
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return cls.OTHER


class GeometryKind(str, Enum):
    """Shape of a visual or collision element."""
    BOX = "box"
    CYLINDER = "cylinder"
    SPHERE = "sphere"
    CAPSULE = "capsule"
    MESH = "mesh"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Inertial:
    """Mass properties of a link.

    Attributes:
        mass: Mass in the model's mass unit.
        origin: Centre of mass pose in the link frame; the inertia tensor is
                expressed in this frame.
        inertia: (ixx, ixy, ixz, iyy, iyz, izz).
    """
    mass: float = 0.0
    origin: Pose = field(default_factory=Pose)
    inertia: Tuple[float, float, float, float, float, float] = (0.0, 0.0, 0.0, 0.0, 0.0, 0.0)

    @property
    def ixx(self) -> float:
        return self.inertia[0]

    @property
    def ixy(self) -> float:
        return self.inertia[1]

    @property
    def ixz(self) -> float:
        return self.inertia[2]

    @property
    def iyy(self) -> float:
        return self.inertia[3]

    @property
    def iyz(self) -> float:
        return self.inertia[4]

    @property
    def izz(self) -> float:
        return self.inertia[5]


@dataclass(frozen=True)
class Geometry:
    """A visual or collision entry of a link.

    ``dimensions`` depends on ``kind``: box ``(x, y, z)``, cylinder and capsule
    ``(radius, length)``, sphere ``(radius,)``, mesh ``(sx, sy, sz)`` scale.
    ``filename`` is the unresolved mesh reference as written in the description.
    """
    kind: GeometryKind
    dimensions: Tuple[float, ...] = ()
    origin: Pose = field(default_factory=Pose)
    filename: Optional[str] = None
    name: Optional[str] = None
    material: Optional[str] = None


@dataclass(frozen=True)
class Body:
    """A link of the reduced model."""
    name: str
    inertial: Inertial = field(default_factory=Inertial)
    visuals: Tuple[Geometry, ...] = ()
    collisions: Tuple[Geometry, ...] = ()


@dataclass(frozen=True)
class JointLimits:
    lower: float = -math.inf
    upper: float = math.inf
    effort: float = math.inf
    velocity: float = math.inf


@dataclass(frozen=True)
class JointDynamics:
    damping: float = 0.0
    friction: float = 0.0


@dataclass(frozen=True)
class Joint:
    """A non-fixed joint of the reduced model.

    ``origin`` is the pose of the joint (and child link) frame expressed in the
    parent body's frame.
    """
    name: str
    type: JointType
    parent: str
    child: str
    origin: Pose = field(default_factory=Pose)
    axis: Optional[Tuple[float, float, float]] = None
    limits: JointLimits = field(default_factory=JointLimits)
    dynamics: JointDynamics = field(default_factory=JointDynamics)


@dataclass(frozen=True)
class Frame:
    """Name kept alive after fixed-joint reduction.

    Attributes:
        name: The eliminated link or fixed joint name.
        attached_to: Name of the surviving body the frame now belongs to.
        pose: Pose of the frame relative to ``attached_to``.
    """
    name: str
    attached_to: str
    pose: Pose = field(default_factory=Pose)


@struct.dataclass
class RobotModel:
    """Immutable representation of a reduced robot description.

    The reduced tree is stored as arenas (``bodies``, ``joints``, ``frames``)
    addressed by integer indices, with name lookups and adjacency built once at
    construction. The original, pre-reduction joint chain is kept alongside in
    the flattened-tree layout used for forward kinematics.

    Attributes:
        name: Robot name from the ``<robot name>`` attribute.
        root: Name of the root body.
        bodies: Surviving links.
        joints: Surviving (non-fixed) joints.
        frames: Aliases for links and fixed joints removed by reduction.
        body_index: Body name -> index into ``bodies``.
        joint_index: Joint name -> index into ``joints``.
        frame_index: Frame name -> index into ``frames``.
        parent_joints: Body name -> indices of joints having that body as parent.
        child_joints: Body name -> indices of joints having that body as child.
        link_names: All pre-reduction link names in breadth-first order,
                    root first.
        chain_joint_names: For every entry of ``link_names``, the name of the
                           original joint whose child it is ("" for the root).
        parent_indices: Array of shape (num_links,) where parent_indices[i]
                        is the parent link index of link i. Root parents itself.
        joint_transforms: Array of shape (num_links, 4, 4) containing SE(3)
                          joint origins from each original link to its parent.
    """
    name: str = struct.field(pytree_node=False)
    root: str = struct.field(pytree_node=False)
    bodies: Tuple[Body, ...] = struct.field(pytree_node=False)
    joints: Tuple[Joint, ...] = struct.field(pytree_node=False)
    frames: Tuple[Frame, ...] = struct.field(pytree_node=False)
    body_index: Mapping[str, int] = struct.field(pytree_node=False)
    joint_index: Mapping[str, int] = struct.field(pytree_node=False)
    frame_index: Mapping[str, int] = struct.field(pytree_node=False)
    parent_joints: Mapping[str, Tuple[int, ...]] = struct.field(pytree_node=False)
    child_joints: Mapping[str, Tuple[int, ...]] = struct.field(pytree_node=False)
    link_names: Tuple[str, ...] = struct.field(pytree_node=False)
    chain_joint_names: Tuple[str, ...] = struct.field(pytree_node=False)
    parent_indices: Array
    joint_transforms: Array
