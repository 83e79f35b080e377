"""Exceptions raised while expanding, parsing and walking robot descriptions."""

from enum import Enum
from typing import Optional


class UrdfImportError(Exception):
    """Base class for every error raised by the importer."""


class MacroSyntaxError(UrdfImportError):
    """A xacro directive could not be expanded.

    Attributes:
        location: Human-readable description of where expansion failed,
                  e.g. ``"line 12"``, ``"in macro wheel"`` or
                  ``"<xacro:include> at line 3"``.
    """

    def __init__(self, message: str, location: Optional[str] = None):
        self.message = message
        self.location = location
        super().__init__(f"{message} ({location})" if location else message)


class StructuralErrorKind(str, Enum):
    """Reasons a description cannot form a valid kinematic tree."""
    MALFORMED_XML = "malformed_xml"
    INVALID_ELEMENT = "invalid_element"
    DUPLICATE_LINK = "duplicate_link"
    DUPLICATE_JOINT = "duplicate_joint"
    UNKNOWN_LINK = "unknown_link"
    MULTIPLE_PARENTS = "multiple_parents"
    CYCLE = "cycle"
    ROOT_COUNT = "root_count"


class StructuralError(UrdfImportError):
    """The description is not a well-formed, single-rooted link tree."""

    def __init__(self, kind: StructuralErrorKind, message: str, location: Optional[str] = None):
        self.kind = kind
        self.message = message
        self.location = location
        detail = f"{message} ({location})" if location else message
        super().__init__(f"[{kind.value}] {detail}")


class BrokenChainError(UrdfImportError, LookupError):
    """No joint chain connects the requested frame to the root link."""
