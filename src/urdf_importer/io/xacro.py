"""Xacro expansion for robot descriptions.

Expansion is delegated to ``xacrodoc``, which runs the reference xacro
processor on an in-memory document. Package lookup is disabled, and
``xacro:include`` elements are inlined beforehand through a caller-supplied
loader, so expansion never reads the filesystem by itself.
"""

import logging
import re
from typing import Callable, Dict, NamedTuple, Optional

from lxml import etree
from xacrodoc import XacroDoc

from urdf_importer.core.errors import MacroSyntaxError

logger = logging.getLogger(__name__)

XACRO_NAMESPACES = frozenset({
    "http://www.ros.org/wiki/xacro",
    "http://ros.org/wiki/xacro",
    "http://wiki.ros.org/xacro",
})

MAX_INCLUDE_DEPTH = 100

_ARG_PATTERN = re.compile(r"\$\(arg\s+([^\s)]+)\s*\)")

IncludeLoader = Callable[[str], str]


class XacroResult(NamedTuple):
    """Flat description text and the top-level argument table."""
    document: str
    parameters: Dict[str, str]


def get_parameters(xacro_text: str) -> Dict[str, str]:
    """Return the top-level ``xacro:arg`` declarations as name -> default.

    Unparsable or empty text yields an empty table.
    """
    if not xacro_text.strip():
        return {}
    try:
        root = _parse(xacro_text)
    except MacroSyntaxError:
        logger.debug("Cannot read xacro arguments from unparsable text")
        return {}
    return _collect_args(root)


def expand_xacro(
    xacro_text: str,
    args: Optional[Dict[str, str]] = None,
    include_loader: Optional[IncludeLoader] = None,
) -> XacroResult:
    """Expand xacro directives into a flat description.

    Args:
        xacro_text: Source document.
        args: Values overriding ``xacro:arg`` defaults.
        include_loader: Callable returning the text of an included file,
                        given its ``filename`` attribute with ``$(arg ...)``
                        substituted.

    Returns:
        XacroResult: The expanded document and the top-level argument table.
        Text containing no xacro construct is returned unchanged with an empty
        table.

    Raises:
        MacroSyntaxError: If the source, an included file or any directive is
            malformed.
    """
    root = _parse(xacro_text)
    if not _uses_xacro(root):
        return XacroResult(xacro_text, {})

    parameters = _collect_args(root)
    subargs = dict(parameters)
    subargs.update(args or {})

    _inline_includes(root, subargs, include_loader, depth=0)
    source = etree.tostring(root, encoding="unicode")

    try:
        doc = XacroDoc.from_string(source, subargs=args or None, resolve_packages=False)
        document = doc.to_urdf_string()
    except Exception as e:
        raise MacroSyntaxError(f"Failed to expand xacro: {e}", _error_location(e)) from e

    logger.debug(f"Expanded xacro document with {len(parameters)} arguments")
    return XacroResult(document, parameters)


def _parse(text: str, source: str = "document") -> etree._Element:
    parser = etree.XMLParser(remove_comments=True, resolve_entities=False, no_network=True)
    try:
        return etree.fromstring(text.encode("utf-8"), parser)
    except etree.XMLSyntaxError as e:
        line = getattr(e, "lineno", None)
        location = f"{source} line {line}" if line else source
        raise MacroSyntaxError(f"Malformed XML: {e}", location) from e


def _xacro_name(elem) -> Optional[str]:
    """Local name of a xacro element, None for anything else."""
    if not isinstance(elem.tag, str):
        return None
    if elem.tag.startswith("xacro:"):
        return elem.tag[len("xacro:"):]
    qname = etree.QName(elem)
    if qname.namespace in XACRO_NAMESPACES:
        return qname.localname
    return None


def _uses_xacro(root: etree._Element) -> bool:
    for elem in root.iter():
        if _xacro_name(elem) is not None:
            return True
        if not isinstance(elem.tag, str):
            continue
        texts = [elem.text or "", elem.tail or ""] + list(elem.attrib.values())
        if any("${" in t or "$(" in t for t in texts):
            return True
    return False


def _collect_args(root: etree._Element) -> Dict[str, str]:
    parameters = {}
    for child in root:
        if _xacro_name(child) == "arg" and child.get("name"):
            parameters[child.get("name")] = child.get("default", "")
    return parameters


def _location(elem: etree._Element) -> str:
    return f"<xacro:{_xacro_name(elem)}> at line {elem.sourceline}"


def _error_location(e: Exception) -> str:
    """Describe where xacro failed, from the macro stack or line it reports."""
    macros = [getattr(m, "name", str(m)) for m in getattr(e, "macros", None) or []]
    if macros:
        return "in macro " + " > ".join(macros)
    line = getattr(e, "lineno", None)
    return f"line {line}" if line else "document"


def _inline_includes(
    parent: etree._Element,
    subargs: Dict[str, str],
    include_loader: Optional[IncludeLoader],
    depth: int,
) -> None:
    """Replace every ``xacro:include`` below ``parent`` by the included content."""
    for elem in list(parent.iter()):
        if _xacro_name(elem) != "include":
            continue
        if depth >= MAX_INCLUDE_DEPTH:
            raise MacroSyntaxError("Maximum include depth exceeded", _location(elem))

        filename = _substitute_args(elem.get("filename", ""), subargs, elem)
        if not filename:
            raise MacroSyntaxError("Missing attribute 'filename'", _location(elem))
        if include_loader is None:
            raise MacroSyntaxError(f"Cannot include '{filename}' without an include loader", _location(elem))
        try:
            text = include_loader(filename)
        except OSError as e:
            raise MacroSyntaxError(f"Cannot read included file '{filename}': {e}", _location(elem)) from e

        included = _parse(text, source=filename)
        _inline_includes(included, subargs, include_loader, depth + 1)
        _replace_with_children(elem, included)


def _substitute_args(value: str, subargs: Dict[str, str], elem: etree._Element) -> str:
    def lookup(match):
        name = match.group(1)
        if name not in subargs:
            raise MacroSyntaxError(f"Undefined substitution argument '{name}'", _location(elem))
        return subargs[name]

    value = _ARG_PATTERN.sub(lookup, value)
    if "${" in value:
        raise MacroSyntaxError(f"Include filename '{value}' cannot use expressions", _location(elem))
    return value


def _replace_with_children(elem: etree._Element, included: etree._Element) -> None:
    """Splice the children of ``included`` in place of ``elem``, keeping tails."""
    holder = elem.getparent()
    index = holder.index(elem)
    tail = elem.tail
    holder.remove(elem)

    children = [child for child in included if isinstance(child.tag, str)]
    for offset, child in enumerate(children):
        holder.insert(index + offset, child)
    if tail:
        if children:
            children[-1].tail = (children[-1].tail or "") + tail
        elif index > 0:
            previous = holder[index - 1]
            previous.tail = (previous.tail or "") + tail
        else:
            holder.text = (holder.text or "") + tail
