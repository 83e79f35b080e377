"""URDF parser for loading robot descriptions into RobotModel structures.

This module validates the link/joint tree of a URDF document, keeps the original
joint chain for forward kinematics, and folds every link attached through a
fixed joint into its nearest non-fixed ancestor, leaving a Frame behind for
each eliminated link and joint name.
"""

import logging
from collections import deque
from pathlib import Path
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Union

import jax.numpy as jnp
import numpy as np
from lxml import etree

from urdf_importer.core.errors import StructuralError, StructuralErrorKind
from urdf_importer.core.robot_model import (
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
from urdf_importer.io.xacro import expand_xacro
from urdf_importer.transforms import Pose, se3

logger = logging.getLogger(__name__)

XACRO_SUFFIXES = (".xacro",)


def load_urdf(urdf_path: Union[str, Path], xacro_args: Optional[Dict[str, str]] = None) -> RobotModel:
    """Load a URDF (or xacro) file and convert it to a RobotModel.

    Args:
        urdf_path: Path to the description file. Files ending in ``.xacro``
                   are expanded first, with includes resolved next to the file.
        xacro_args: Overrides for ``xacro:arg`` defaults.

    Returns:
        RobotModel: The reduced robot model.
    """
    path = Path(urdf_path)
    text = path.read_text(encoding="utf-8")

    if path.suffix in XACRO_SUFFIXES:
        logger.info(f"Processing xacro file: {path}")

        def include_loader(filename: str) -> str:
            return (path.parent / filename).read_text(encoding="utf-8")

        text = expand_xacro(text, args=xacro_args, include_loader=include_loader).document

    return parse_urdf(text)


def parse_urdf(urdf_text: str) -> RobotModel:
    """Parse flat URDF text into a RobotModel.

    Args:
        urdf_text: A complete URDF document with no xacro directives left.

    Returns:
        RobotModel: The validated, fixed-joint-reduced robot model.

    Raises:
        StructuralError: If the text is not well-formed XML or does not
            describe a single tree of uniquely named links and joints.
    """
    root = _parse_xml(urdf_text)
    if root.tag != "robot":
        raise StructuralError(
            StructuralErrorKind.INVALID_ELEMENT,
            f"Expected <robot> root element, found <{root.tag}>",
            _location(root),
        )
    robot_name = root.get("name", "")

    # First pass: collect links and joints
    links: Dict[str, Body] = {}
    for link_elem in root.iterchildren("link"):
        link = _parse_link(link_elem)
        if link.name in links:
            raise StructuralError(
                StructuralErrorKind.DUPLICATE_LINK,
                f"Duplicate link name '{link.name}'",
                _location(link_elem),
            )
        links[link.name] = link

    joints: List[Joint] = []
    joint_by_child: Dict[str, Joint] = {}
    seen_joints = set()
    for joint_elem in root.iterchildren("joint"):
        joint = _parse_joint(joint_elem)
        if joint.name in seen_joints:
            raise StructuralError(
                StructuralErrorKind.DUPLICATE_JOINT,
                f"Duplicate joint name '{joint.name}'",
                _location(joint_elem),
            )
        seen_joints.add(joint.name)

        # Fixed joint names become frame aliases alongside link names
        if joint.type == JointType.FIXED and joint.name in links:
            raise StructuralError(
                StructuralErrorKind.DUPLICATE_JOINT,
                f"Fixed joint '{joint.name}' has the same name as a link",
                _location(joint_elem),
            )

        for role, link_name in (("parent", joint.parent), ("child", joint.child)):
            if link_name not in links:
                raise StructuralError(
                    StructuralErrorKind.UNKNOWN_LINK,
                    f"Joint '{joint.name}' references unknown {role} link '{link_name}'",
                    _location(joint_elem),
                )

        if joint.child in joint_by_child:
            raise StructuralError(
                StructuralErrorKind.MULTIPLE_PARENTS,
                f"Link '{joint.child}' is the child of both joint "
                f"'{joint_by_child[joint.child].name}' and joint '{joint.name}'",
                _location(joint_elem),
            )
        joint_by_child[joint.child] = joint
        joints.append(joint)

    root_link = _find_root(links, joint_by_child)
    ordered_links = _breadth_first_order(root_link, joints)

    # Second pass: original chain arrays
    link_index = {name: i for i, name in enumerate(ordered_links)}
    parent_indices_list = []
    joint_transforms_list = []
    chain_joint_names = []
    for i, link_name in enumerate(ordered_links):
        if link_name == root_link:
            parent_indices_list.append(i)  # Root parents itself
            joint_transforms_list.append(jnp.eye(4))
            chain_joint_names.append("")
        else:
            joint = joint_by_child[link_name]
            parent_indices_list.append(link_index[joint.parent])
            joint_transforms_list.append(joint.origin.to_matrix())
            chain_joint_names.append(joint.name)

    # Fixed-joint reduction: each link resolves to its surviving representative
    representative: Dict[str, str] = {}
    offset: Dict[str, Pose] = {}
    for link_name in ordered_links:
        joint = joint_by_child.get(link_name)
        if joint is not None and joint.type == JointType.FIXED:
            representative[link_name] = representative[joint.parent]
            offset[link_name] = offset[joint.parent].compose(joint.origin)
            logger.debug(
                f"Merging link '{link_name}' into '{representative[link_name]}' "
                f"through fixed joint '{joint.name}'"
            )
        else:
            representative[link_name] = link_name
            offset[link_name] = Pose()

    members: Dict[str, List[str]] = {}
    for link_name in ordered_links:
        members.setdefault(representative[link_name], []).append(link_name)

    bodies = tuple(
        _merge_links(survivor, [links[m] for m in group], [offset[m] for m in group])
        for survivor, group in members.items()
    )

    reduced_joints = []
    frames = []
    for link_name in ordered_links[1:]:
        joint = joint_by_child[link_name]
        if joint.type == JointType.FIXED:
            frames.append(Frame(joint.name, representative[link_name], offset[link_name]))
            frames.append(Frame(link_name, representative[link_name], offset[link_name]))
            continue
        parent_offset = offset[joint.parent]
        origin = joint.origin if parent_offset.is_identity() else parent_offset.compose(joint.origin)
        reduced_joints.append(Joint(
            name=joint.name,
            type=joint.type,
            parent=representative[joint.parent],
            child=joint.child,
            origin=origin,
            axis=joint.axis,
            limits=joint.limits,
            dynamics=joint.dynamics,
        ))

    parent_joints: Dict[str, List[int]] = {body.name: [] for body in bodies}
    child_joints: Dict[str, List[int]] = {body.name: [] for body in bodies}
    for i, joint in enumerate(reduced_joints):
        parent_joints[joint.parent].append(i)
        child_joints[joint.child].append(i)

    model = RobotModel(
        name=robot_name,
        root=root_link,
        bodies=bodies,
        joints=tuple(reduced_joints),
        frames=tuple(frames),
        body_index=MappingProxyType({body.name: i for i, body in enumerate(bodies)}),
        joint_index=MappingProxyType({joint.name: i for i, joint in enumerate(reduced_joints)}),
        frame_index=MappingProxyType({frame.name: i for i, frame in enumerate(frames)}),
        parent_joints=_freeze_adjacency(parent_joints),
        child_joints=_freeze_adjacency(child_joints),
        link_names=tuple(ordered_links),
        chain_joint_names=tuple(chain_joint_names),
        parent_indices=jnp.array(parent_indices_list, dtype=jnp.int32),
        joint_transforms=jnp.stack(joint_transforms_list),
    )

    logger.info(
        f"Parsed robot '{robot_name}': {len(ordered_links)} links reduced to "
        f"{len(bodies)} bodies, {len(reduced_joints)} joints, {len(frames)} frames"
    )
    return model


def _parse_xml(text: str) -> etree._Element:
    parser = etree.XMLParser(remove_comments=True, resolve_entities=False, no_network=True)
    try:
        return etree.fromstring(text.encode("utf-8"), parser)
    except etree.XMLSyntaxError as e:
        line = getattr(e, "lineno", None)
        raise StructuralError(
            StructuralErrorKind.MALFORMED_XML,
            f"Not well-formed XML: {e}",
            f"line {line}" if line else None,
        ) from e


def _find_root(links: Mapping[str, Body], joint_by_child: Mapping[str, Joint]) -> str:
    """Return the single link without a parent joint, rejecting cycles."""
    # Every link has at most one parent, so walking parents either ends at a
    # root or revisits a link on the current walk.
    settled = set()
    for start in links:
        walk = []
        on_walk = set()
        current = start
        while current not in settled:
            if current in on_walk:
                cycle = walk[walk.index(current):]
                raise StructuralError(
                    StructuralErrorKind.CYCLE,
                    "Joint graph contains a cycle through links: " + " -> ".join(cycle + [current]),
                )
            walk.append(current)
            on_walk.add(current)
            joint = joint_by_child.get(current)
            if joint is None:
                break
            current = joint.parent
        settled.update(walk)

    root_links = [name for name in links if name not in joint_by_child]
    if len(root_links) != 1:
        raise StructuralError(
            StructuralErrorKind.ROOT_COUNT,
            f"Expected exactly one root link, found {len(root_links)}: {root_links}",
        )
    return root_links[0]


def _breadth_first_order(root_link: str, joints: Sequence[Joint]) -> List[str]:
    children: Dict[str, List[str]] = {}
    for joint in joints:
        children.setdefault(joint.parent, []).append(joint.child)

    ordered = []
    queue = deque([root_link])
    while queue:
        current = queue.popleft()
        ordered.append(current)
        queue.extend(children.get(current, ()))
    return ordered


def _freeze_adjacency(adjacency: Dict[str, List[int]]) -> Mapping[str, Tuple[int, ...]]:
    return MappingProxyType({name: tuple(indices) for name, indices in adjacency.items()})


# Reduction helpers

def _merge_links(survivor: str, group: Sequence[Body], offsets: Sequence[Pose]) -> Body:
    """Fold ``group`` (survivor first) into one body expressed in the survivor frame."""
    if len(group) == 1:
        return group[0]

    visuals = []
    collisions = []
    for link, link_offset in zip(group, offsets):
        visuals.extend(_reexpress(g, link_offset) for g in link.visuals)
        collisions.extend(_reexpress(g, link_offset) for g in link.collisions)

    return Body(
        name=survivor,
        inertial=_combine_inertials([link.inertial for link in group], offsets),
        visuals=tuple(visuals),
        collisions=tuple(collisions),
    )


def _reexpress(geometry: Geometry, link_offset: Pose) -> Geometry:
    if link_offset.is_identity():
        return geometry
    return Geometry(
        kind=geometry.kind,
        dimensions=geometry.dimensions,
        origin=link_offset.compose(geometry.origin),
        filename=geometry.filename,
        name=geometry.name,
        material=geometry.material,
    )


def _combine_inertials(inertials: Sequence[Inertial], offsets: Sequence[Pose]) -> Inertial:
    """Lump inertials with the parallel-axis theorem.

    The combined tensor is expressed about the combined centre of mass, in axes
    aligned with the survivor frame.
    """
    total_mass = sum(inertial.mass for inertial in inertials)

    frames = [se3.multiply(o.to_matrix(), i.origin.to_matrix()) for i, o in zip(inertials, offsets)]
    centers = [se3.get_position(T) for T in frames]

    if total_mass > 0.0:
        com = sum(inertial.mass * c for inertial, c in zip(inertials, centers)) / total_mass
    else:
        com = jnp.zeros(3)

    tensor = jnp.zeros((3, 3))
    for inertial, T, c in zip(inertials, frames, centers):
        R = se3.get_rotation(T)
        tensor = tensor + R @ _inertia_matrix(inertial) @ R.T
        d = c - com
        tensor = tensor + inertial.mass * (jnp.dot(d, d) * jnp.eye(3) - jnp.outer(d, d))

    return Inertial(
        mass=float(total_mass),
        origin=Pose(position=tuple(float(v) for v in com)),
        inertia=(
            float(tensor[0, 0]), float(tensor[0, 1]), float(tensor[0, 2]),
            float(tensor[1, 1]), float(tensor[1, 2]), float(tensor[2, 2]),
        ),
    )


def _inertia_matrix(inertial: Inertial):
    ixx, ixy, ixz, iyy, iyz, izz = inertial.inertia
    return jnp.array([
        [ixx, ixy, ixz],
        [ixy, iyy, iyz],
        [ixz, iyz, izz],
    ])


# Element parsers

def _location(elem: etree._Element) -> Optional[str]:
    return f"line {elem.sourceline}" if elem.sourceline else None


def _require(elem: etree._Element, attribute: str) -> str:
    value = elem.get(attribute)
    if value is None or not value.strip():
        raise StructuralError(
            StructuralErrorKind.INVALID_ELEMENT,
            f"<{elem.tag}> is missing required attribute '{attribute}'",
            _location(elem),
        )
    return value.strip()


def _parse_floats(elem: etree._Element, attribute: str, default: str, count: int) -> Tuple[float, ...]:
    raw = elem.get(attribute, default)
    try:
        values = np.array([float(x) for x in raw.split()], dtype=np.float64)
    except ValueError:
        values = None
    if values is None or values.shape != (count,):
        raise StructuralError(
            StructuralErrorKind.INVALID_ELEMENT,
            f"<{elem.tag} {attribute}=\"{raw}\"> must hold {count} numbers",
            _location(elem),
        )
    return tuple(float(v) for v in values)


def _parse_float(elem: etree._Element, attribute: str, default: float) -> float:
    return _parse_floats(elem, attribute, repr(default), 1)[0]


def _parse_origin(parent_elem: etree._Element) -> Pose:
    origin_elem = parent_elem.find("origin")
    if origin_elem is None:
        return Pose()

    xyz = _parse_floats(origin_elem, "xyz", "0 0 0", 3)
    rpy = _parse_floats(origin_elem, "rpy", "0 0 0", 3)
    if not any(xyz) and not any(rpy):
        return Pose()
    return Pose.from_xyz_rpy(xyz, rpy)


def _parse_link(link_elem: etree._Element) -> Body:
    name = _require(link_elem, "name")

    inertial = Inertial()
    inertial_elem = link_elem.find("inertial")
    if inertial_elem is not None:
        mass_elem = inertial_elem.find("mass")
        inertia_elem = inertial_elem.find("inertia")
        mass = _parse_float(mass_elem, "value", 0.0) if mass_elem is not None else 0.0
        inertia = (0.0,) * 6
        if inertia_elem is not None:
            inertia = tuple(
                _parse_float(inertia_elem, key, 0.0)
                for key in ("ixx", "ixy", "ixz", "iyy", "iyz", "izz")
            )
        inertial = Inertial(mass=mass, origin=_parse_origin(inertial_elem), inertia=inertia)

    visuals = tuple(_parse_geometry_entry(e) for e in link_elem.iterchildren("visual"))
    collisions = tuple(_parse_geometry_entry(e) for e in link_elem.iterchildren("collision"))

    return Body(name=name, inertial=inertial, visuals=visuals, collisions=collisions)


def _parse_geometry_entry(entry_elem: etree._Element) -> Geometry:
    geometry_elem = entry_elem.find("geometry")
    shape_elem = None
    if geometry_elem is not None:
        shape_elem = next((child for child in geometry_elem if isinstance(child.tag, str)), None)
    if shape_elem is None:
        raise StructuralError(
            StructuralErrorKind.INVALID_ELEMENT,
            f"<{entry_elem.tag}> has no geometry",
            _location(entry_elem),
        )

    filename = None
    if shape_elem.tag == "box":
        kind = GeometryKind.BOX
        dimensions = _parse_floats(shape_elem, "size", "0 0 0", 3)
    elif shape_elem.tag in ("cylinder", "capsule"):
        kind = GeometryKind(shape_elem.tag)
        dimensions = (_parse_float(shape_elem, "radius", 0.0), _parse_float(shape_elem, "length", 0.0))
    elif shape_elem.tag == "sphere":
        kind = GeometryKind.SPHERE
        dimensions = (_parse_float(shape_elem, "radius", 0.0),)
    elif shape_elem.tag == "mesh":
        kind = GeometryKind.MESH
        dimensions = _parse_floats(shape_elem, "scale", "1 1 1", 3)
        filename = _require(shape_elem, "filename")
    else:
        kind = GeometryKind.UNKNOWN
        dimensions = ()

    material = None
    material_elem = entry_elem.find("material")
    if material_elem is not None:
        material = material_elem.get("name")

    return Geometry(
        kind=kind,
        dimensions=dimensions,
        origin=_parse_origin(entry_elem),
        filename=filename,
        name=entry_elem.get("name"),
        material=material,
    )


def _parse_joint(joint_elem: etree._Element) -> Joint:
    name = _require(joint_elem, "name")
    joint_type = JointType.from_urdf(_require(joint_elem, "type"))

    endpoints = {}
    for role in ("parent", "child"):
        elem = joint_elem.find(role)
        if elem is None:
            raise StructuralError(
                StructuralErrorKind.INVALID_ELEMENT,
                f"Joint '{name}' has no <{role}> element",
                _location(joint_elem),
            )
        endpoints[role] = _require(elem, "link")

    axis = None
    if joint_type != JointType.FIXED:
        axis_elem = joint_elem.find("axis")
        axis = _parse_floats(axis_elem, "xyz", "1 0 0", 3) if axis_elem is not None else (1.0, 0.0, 0.0)

    limits = JointLimits()
    limit_elem = joint_elem.find("limit")
    if limit_elem is not None:
        limits = JointLimits(
            lower=_parse_float(limit_elem, "lower", -np.inf),
            upper=_parse_float(limit_elem, "upper", np.inf),
            effort=_parse_float(limit_elem, "effort", np.inf),
            velocity=_parse_float(limit_elem, "velocity", np.inf),
        )
    if joint_type == JointType.CONTINUOUS:
        # Continuous joints ignore position limits.
        limits = JointLimits(effort=limits.effort, velocity=limits.velocity)

    dynamics = JointDynamics()
    dynamics_elem = joint_elem.find("dynamics")
    if dynamics_elem is not None:
        dynamics = JointDynamics(
            damping=_parse_float(dynamics_elem, "damping", 0.0),
            friction=_parse_float(dynamics_elem, "friction", 0.0),
        )

    return Joint(
        name=name,
        type=joint_type,
        parent=endpoints["parent"],
        child=endpoints["child"],
        origin=_parse_origin(joint_elem),
        axis=axis,
        limits=limits,
        dynamics=dynamics,
    )
