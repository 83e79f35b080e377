"""Tests for resource path resolution."""

import os

import pytest

from urdf_importer.resources import (
    PathResolutionFailure,
    ResolverConfig,
    read_manifest_name,
    read_package_name,
    resolve_resource_path,
)


def _never(path):
    return False


def _only(*paths):
    existing = set(paths)
    return lambda path: path in existing


def test_file_uri_is_absolute():
    result = resolve_resource_path(
        "file:///home/foo/ros_ws/install/foo_robot/meshes/bar.dae",
        "/home/foo/ros_ws/install/foo_robot/foo_robot.urdf",
        _never,
    )
    assert result == "/home/foo/ros_ws/install/foo_robot/meshes/bar.dae"


def test_absolute_path_normalised():
    result = resolve_resource_path("/opt/robot/./meshes/../meshes/a.stl", "/tmp/robot.urdf", _never)
    assert result == "/opt/robot/meshes/a.stl"


def test_relative_path_joined_to_description_dir():
    result = resolve_resource_path(
        "meshes/bar.dae",
        "/home/foo/ros_ws/install/foo_robot/foo_robot.urdf",
        _never,
    )
    assert result == "/home/foo/ros_ws/install/foo_robot/meshes/bar.dae"


def test_relative_description_path_gives_absolute_result(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    result = resolve_resource_path("meshes/bar.dae", "robot/foo.urdf", _never)
    assert os.path.isabs(result)
    assert result == os.path.join(os.getcwd(), "robot", "meshes", "bar.dae")
    assert resolve_resource_path("file://meshes/bar.dae", "robot/foo.urdf", _never) == os.path.join(
        os.getcwd(), "meshes", "bar.dae"
    )


def test_package_uri_relative_description_path(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    exists = _only(os.path.join(os.getcwd(), "ws", "my_robot", "package.xml"))
    result = resolve_resource_path("package://my_robot/meshes/base.stl", "ws/my_robot/urdf/robot.urdf", exists)
    assert result == os.path.join(os.getcwd(), "ws", "my_robot", "meshes", "base.stl")


def test_package_uri_without_package_name():
    """The first segment is a directory of the nearest package."""
    exists = _only(
        "/home/foo/ros_ws/install/foo_robot/package.xml",
        "/home/foo/ros_ws/install/foo_robot/meshes/bar.dae",
    )
    result = resolve_resource_path(
        "package://meshes/bar.dae",
        "/home/foo/ros_ws/install/foo_robot/description/foo_robot.urdf",
        exists,
    )
    assert result == "/home/foo/ros_ws/install/foo_robot/meshes/bar.dae"


def test_package_uri_with_override_root():
    exists = _only(
        "/home/foo/ros_ws/install/foo_robot/share/foo_robot/package.xml",
        "/home/foo/ros_ws/install/foo_robot/share/foo_robot/meshes/bar.dae",
    )
    result = resolve_resource_path(
        "package://foo_robot/meshes/bar.dae",
        "/home/foo/ros_ws/install/foo_robot/share/foo_robot/description/foo_robot.urdf",
        exists,
        ResolverConfig(override_root="/home/foo/ros_ws/install/foo_robot"),
    )
    assert result == "/home/foo/ros_ws/install/foo_robot/share/foo_robot/meshes/bar.dae"


def test_package_uri_found_above_description():
    exists = _only("/ws/src/my_robot/package.xml")
    result = resolve_resource_path(
        "package://my_robot/meshes/base.stl",
        "/ws/src/my_robot/urdf/robot.urdf",
        exists,
    )
    assert result == "/ws/src/my_robot/meshes/base.stl"


def test_override_root_takes_precedence():
    exists = _only(
        "/install/share/my_robot/package.xml",
        "/ws/src/my_robot/package.xml",
    )
    result = resolve_resource_path(
        "package://my_robot/meshes/base.stl",
        "/ws/src/my_robot/urdf/robot.urdf",
        exists,
        ResolverConfig(override_root="/install"),
    )
    assert result == "/install/share/my_robot/meshes/base.stl"


def test_manifest_reader_declares_package_name():
    exists = _only("/ws/src/robot_description/package.xml")
    names = {"/ws/src/robot_description/package.xml": "my_robot"}
    result = resolve_resource_path(
        "package://my_robot/meshes/base.stl",
        "/ws/src/robot_description/urdf/robot.urdf",
        exists,
        ResolverConfig(manifest_reader=names.get),
    )
    assert result == "/ws/src/robot_description/meshes/base.stl"


def test_unresolvable_package_returns_failure():
    exists = _only("/ws/src/other/package.xml")
    result = resolve_resource_path(
        "package://my_robot/meshes/base.stl",
        "/ws/src/other/urdf/robot.urdf",
        exists,
    )
    assert isinstance(result, PathResolutionFailure)
    assert not result
    assert result.reference == "package://my_robot/meshes/base.stl"
    assert "my_robot" in result.reason
    assert "/ws/src/other/my_robot/meshes/base.stl" in result.candidates


def test_no_manifest_anywhere():
    result = resolve_resource_path("package://my_robot/a.stl", "/ws/robot.urdf", _never)
    assert isinstance(result, PathResolutionFailure)
    assert result.candidates == ()


@pytest.mark.parametrize("reference", ["", "   ", "package://", "package:///meshes/a.stl"])
def test_malformed_references_fail(reference):
    result = resolve_resource_path(reference, "/ws/robot.urdf", _never)
    assert isinstance(result, PathResolutionFailure)


def test_search_depth_is_bounded():
    exists = _only("/a/package.xml")
    description = "/a/b/c/d/e/robot.urdf"
    found = resolve_resource_path("package://a/x.stl", description, exists)
    assert found == "/a/x.stl"
    missed = resolve_resource_path("package://a/x.stl", description, exists, ResolverConfig(max_search_depth=2))
    assert isinstance(missed, PathResolutionFailure)


def test_read_package_name():
    text = '<?xml version="1.0"?><package format="3"><name> my_robot </name><version>1.0.0</version></package>'
    assert read_package_name(text) == "my_robot"
    assert read_package_name("<package><version>1</version></package>") is None
    assert read_package_name("not xml") is None


def test_read_manifest_name(tmp_path):
    manifest = tmp_path / "package.xml"
    manifest.write_text("<package><name>from_disk</name></package>")
    assert read_manifest_name(str(manifest)) == "from_disk"
    assert read_manifest_name(str(tmp_path / "missing.xml")) is None
