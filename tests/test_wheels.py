"""Tests for the wheel heuristic."""

from urdf_importer.graph import frame_name_exists
from urdf_importer.io import parse_urdf
from urdf_importer.wheels import find_wheel_links, is_wheel_link

_VISUAL = '<visual><origin rpy="0 0 0" xyz="0 0 0"/><geometry><box size="1 1 1"/></geometry></visual>'
_COLLISION = '<collision><origin rpy="0 0 0" xyz="0 0 0"/><geometry><box size="1 1 1"/></geometry></collision>'
_INERTIAL = (
    '<inertial><origin xyz="0. 0. 0."/><mass value="1."/>'
    '<inertia ixx="1." ixy="0." ixz="0." iyy="1." iyz="0." izz="1."/></inertial>'
)


def _urdf_with_wheel(wheel_name, joint_type, has_visual=True, has_collision=True, axis="0. 0. 1."):
    return (
        '<robot name="wheel_test">'
        f'<link name="base_link">{_INERTIAL}</link>'
        f'<link name="{wheel_name}">{_INERTIAL}'
        f'{_VISUAL if has_visual else ""}{_COLLISION if has_collision else ""}'
        "</link>"
        f'<joint name="joint0" type="{joint_type}">'
        f'<parent link="base_link"/><child link="{wheel_name}"/>'
        f'<axis xyz="{axis}"/><origin rpy="0. 0. 0." xyz="2. 0. 0."/>'
        "</joint>"
        "</robot>"
    )


def test_wheel_valid():
    robot = parse_urdf(_urdf_with_wheel("wheel_left_link", "continuous"))
    assert is_wheel_link(robot, "wheel_left_link")
    assert find_wheel_links(robot) == ("wheel_left_link",)


def test_revolute_wheel_valid():
    robot = parse_urdf(_urdf_with_wheel("wheel_left_link", "revolute"))
    assert is_wheel_link(robot, "wheel_left_link")


def test_wheel_name_not_valid():
    robot = parse_urdf(_urdf_with_wheel("wheel_left_joint", "continuous"))
    assert robot.body_index["wheel_left_joint"] is not None
    assert not is_wheel_link(robot, "wheel_left_joint")


def test_wheel_name_check_ignores_case():
    robot = parse_urdf(_urdf_with_wheel("Wheel_JOINT_link", "continuous"))
    assert not is_wheel_link(robot, "Wheel_JOINT_link")


def test_joint_prefix_in_wheel_name_valid():
    robot = parse_urdf(_urdf_with_wheel("jointed_wheel_link", "continuous"))
    assert is_wheel_link(robot, "jointed_wheel_link")


def test_wheel_fixed_joint_not_valid():
    """A fixed wheel is fused into its parent and leaves only frames behind."""
    robot = parse_urdf(_urdf_with_wheel("wheel_left_link", "fixed"))
    assert len(robot.bodies) == 1
    assert frame_name_exists(robot, "wheel_left_link")
    assert frame_name_exists(robot, "joint0")
    assert not is_wheel_link(robot, "base_link")
    assert not is_wheel_link(robot, "wheel_left_link")
    assert find_wheel_links(robot) == ()


def test_prismatic_joint_not_valid():
    robot = parse_urdf(_urdf_with_wheel("wheel_left_link", "prismatic"))
    assert not is_wheel_link(robot, "wheel_left_link")


def test_wheel_without_visual_not_valid():
    robot = parse_urdf(_urdf_with_wheel("wheel_left_link", "continuous", has_visual=False))
    assert not is_wheel_link(robot, "wheel_left_link")


def test_wheel_without_collision_not_valid():
    robot = parse_urdf(_urdf_with_wheel("wheel_left_link", "continuous", has_collision=False))
    assert not is_wheel_link(robot, "wheel_left_link")


def test_zero_axis_not_valid():
    robot = parse_urdf(_urdf_with_wheel("wheel_left_link", "continuous", axis="0 0 0"))
    assert not is_wheel_link(robot, "wheel_left_link")


def test_root_and_unknown_links_not_wheels():
    robot = parse_urdf(_urdf_with_wheel("wheel_left_link", "continuous"))
    assert not is_wheel_link(robot, "base_link")
    assert not is_wheel_link(robot, "no_such_link")
