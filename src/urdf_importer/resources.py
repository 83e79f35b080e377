"""Resolution of mesh and resource references found in robot descriptions.

References come in three forms: absolute paths (optionally ``file://``),
paths relative to the description file, and ``package://<pkg>/<path>`` URIs
that are located through ROS package manifests. The filesystem is only
consulted through the ``path_exists`` predicate, which lets callers resolve
against an in-memory or remote tree.
"""

import logging
import os
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional, Tuple, Union

from lxml import etree

logger = logging.getLogger(__name__)

FILE_SCHEME = "file://"
PACKAGE_SCHEME = "package://"

PathExists = Callable[[str], bool]
ManifestReader = Callable[[str], Optional[str]]


@dataclass(frozen=True)
class ResolverConfig:
    """Settings for ``package://`` lookup.

    Attributes:
        override_root: Install prefix searched before the description's own
                       directory (``<override_root>/share/<pkg>`` first).
        manifest_filename: File marking a package directory.
        max_search_depth: Maximum number of directories climbed per search.
        manifest_reader: Returns the package name declared by the manifest at
                         the given path, or None. Defaults to the manifest
                         directory's basename.
    """
    override_root: Optional[str] = None
    manifest_filename: str = "package.xml"
    max_search_depth: int = 32
    manifest_reader: Optional[ManifestReader] = None


@dataclass(frozen=True)
class PathResolutionFailure:
    """Why a reference could not be resolved, and which paths were tried."""
    reference: str
    reason: str
    candidates: Tuple[str, ...] = ()

    def __bool__(self) -> bool:
        return False


ResolvedPath = Union[str, PathResolutionFailure]


def default_path_exists(path: str) -> bool:
    return os.path.exists(path)


def read_package_name(manifest_text: str) -> Optional[str]:
    """Return the ``<name>`` declared by package.xml text, or None."""
    parser = etree.XMLParser(remove_comments=True, resolve_entities=False, no_network=True)
    try:
        root = etree.fromstring(manifest_text.encode("utf-8"), parser)
    except etree.XMLSyntaxError:
        logger.debug("Ignoring unparsable package manifest")
        return None
    name = root.findtext("name")
    return name.strip() if name and name.strip() else None


def read_manifest_name(manifest_path: str) -> Optional[str]:
    """Manifest reader that parses the manifest file on disk."""
    try:
        with open(manifest_path, encoding="utf-8") as f:
            return read_package_name(f.read())
    except OSError as e:
        logger.debug(f"Cannot read manifest {manifest_path}: {e}")
        return None


def resolve_resource_path(
    reference: str,
    description_path: str,
    path_exists: PathExists = default_path_exists,
    config: Optional[ResolverConfig] = None,
) -> ResolvedPath:
    """Resolve a resource reference to an absolute, normalised path.

    Args:
        reference: The reference as written in the description.
        description_path: Path of the description file the reference came from.
        path_exists: Filesystem predicate.
        config: Package lookup settings.

    Returns:
        The resolved absolute path, or a PathResolutionFailure. A relative
        ``description_path`` is taken against the working directory. Absolute
        and relative references are returned without consulting ``path_exists``.
    """
    config = config or ResolverConfig()
    reference = reference.strip()
    if not reference:
        return _fail(reference, "empty reference")

    if reference.startswith(FILE_SCHEME):
        return os.path.abspath(reference[len(FILE_SCHEME):])
    if reference.startswith(PACKAGE_SCHEME):
        return _resolve_package(reference, description_path, path_exists, config)
    if os.path.isabs(reference):
        return os.path.abspath(reference)

    base = os.path.dirname(os.path.abspath(description_path))
    return os.path.abspath(os.path.join(base, reference))


def _resolve_package(
    reference: str, description_path: str, path_exists: PathExists, config: ResolverConfig
) -> ResolvedPath:
    package, _, rest = reference[len(PACKAGE_SCHEME):].partition("/")
    if not package:
        return _fail(reference, "package URI has no package name")

    candidates: List[str] = []
    description_dir = os.path.dirname(os.path.abspath(description_path))

    # A manifest declaring the package name maps the URI onto its directory.
    for manifest_dir in _manifest_dirs(package, description_dir, path_exists, config):
        candidates.append(manifest_dir)
        if _package_name(manifest_dir, config) == package:
            return os.path.normpath(os.path.join(manifest_dir, rest))

    # Otherwise treat the first segment as a directory of the nearest package.
    nearest = next(_climb(description_dir, path_exists, config), None)
    if nearest is not None:
        candidate = os.path.normpath(os.path.join(nearest, package, rest))
        candidates.append(candidate)
        if path_exists(candidate):
            return candidate

    return _fail(reference, f"no manifest for package '{package}' found", tuple(candidates))


def _manifest_dirs(
    package: str, description_dir: str, path_exists: PathExists, config: ResolverConfig
) -> Iterator[str]:
    """Directories holding a manifest, override root first."""
    if config.override_root:
        override_root = os.path.abspath(config.override_root)
        share_dir = os.path.join(override_root, "share", package)
        if path_exists(os.path.join(share_dir, config.manifest_filename)):
            yield share_dir
        yield from _climb(override_root, path_exists, config)
    yield from _climb(description_dir, path_exists, config)


def _climb(start: str, path_exists: PathExists, config: ResolverConfig) -> Iterator[str]:
    """Yield ``start`` and its ancestors that contain a manifest."""
    current = os.path.normpath(start)
    for _ in range(config.max_search_depth):
        if path_exists(os.path.join(current, config.manifest_filename)):
            yield current
        parent = os.path.dirname(current)
        if parent == current:
            break
        current = parent


def _package_name(manifest_dir: str, config: ResolverConfig) -> Optional[str]:
    if config.manifest_reader is not None:
        return config.manifest_reader(os.path.join(manifest_dir, config.manifest_filename))
    return os.path.basename(manifest_dir)


def _fail(reference: str, reason: str, candidates: Tuple[str, ...] = ()) -> PathResolutionFailure:
    logger.warning(f"Cannot resolve resource '{reference}': {reason}")
    return PathResolutionFailure(reference, reason, candidates)
