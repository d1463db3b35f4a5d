"""
GetCapabilities parsing tolerant of XML namespace differences.
"""

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from enum import Enum

from .errors import EmptyCapabilitiesError, InvalidResponseError

logger = logging.getLogger(__name__)

WFS_20_NAMESPACE = "http://www.opengis.net/wfs/2.0"
OWS_11_NAMESPACE = "http://www.opengis.net/ows/1.1"


class LookupStrategy(Enum):
    """How the FeatureType elements of a capabilities document were found."""

    NAMESPACED = "namespaced"
    UNQUALIFIED = "unqualified"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class FeatureTypeLookup:
    """Result of the two-phase FeatureType lookup."""

    strategy: LookupStrategy
    elements: tuple[ET.Element, ...] = ()


@dataclass(frozen=True)
class FeatureTypeDescriptor:
    """
    A feature type advertised by a WFS service.

    Parameters
    ----------
    name : str
        Type name used in GetFeature TYPENAMES
    title : str
        Human-readable title
    abstract : str or None, optional
        Description, if advertised
    default_crs : str or None, optional
        Advertised default CRS, for diagnostics only
    """

    name: str
    title: str
    abstract: str | None = None
    default_crs: str | None = None


@dataclass(frozen=True)
class Capabilities:
    """
    Parsed GetCapabilities document.

    Parameters
    ----------
    feature_types : tuple[FeatureTypeDescriptor, ...]
        Advertised feature types, never empty
    output_formats : tuple[str, ...]
        Advertised output formats, in document order
    lookup : LookupStrategy
        Strategy that located the feature types
    """

    feature_types: tuple[FeatureTypeDescriptor, ...]
    output_formats: tuple[str, ...] = ()
    lookup: LookupStrategy = LookupStrategy.NAMESPACED

    def get(self, name: str) -> FeatureTypeDescriptor | None:
        """Return the feature type with the given name, if advertised."""
        for feature_type in self.feature_types:
            if feature_type.name == name:
                return feature_type
        return None


def _local_name(tag: object) -> str:
    if not isinstance(tag, str):
        # Comments and processing instructions
        return ""
    return tag.rsplit("}", 1)[-1]


def _child_text(element: ET.Element, local_name: str) -> str | None:
    for child in element:
        if _local_name(child.tag) == local_name:
            text = (child.text or "").strip()
            return text or None
    return None


def find_feature_type_elements(root: ET.Element) -> FeatureTypeLookup:
    """
    Locate FeatureType elements with a two-phase lookup.

    The first phase matches ``FeatureType`` in the WFS 2.0 namespace. Only if
    that finds nothing, the second phase matches any element whose local tag
    name is ``FeatureType``, covering un-namespaced documents and other WFS
    versions.

    Parameters
    ----------
    root : ET.Element
        Root element of the capabilities document

    Returns
    -------
    FeatureTypeLookup
        Matched elements tagged with the strategy that found them
    """
    namespaced = tuple(root.iter(f"{{{WFS_20_NAMESPACE}}}FeatureType"))
    if namespaced:
        return FeatureTypeLookup(LookupStrategy.NAMESPACED, namespaced)

    unqualified = tuple(el for el in root.iter() if _local_name(el.tag) == "FeatureType")
    if unqualified:
        return FeatureTypeLookup(LookupStrategy.UNQUALIFIED, unqualified)

    return FeatureTypeLookup(LookupStrategy.NOT_FOUND)


def _parse_output_formats(root: ET.Element) -> tuple[str, ...]:
    formats: list[str] = []

    for element in root.iter():
        local = _local_name(element.tag)
        if local == "outputFormat":
            # WFS 1.x style <outputFormat>value</outputFormat>
            if element.text and element.text.strip():
                formats.append(element.text.strip())
        elif local == "Parameter" and element.get("name", "").lower() == "outputformat":
            # WFS 2.0 style ows:Parameter/ows:AllowedValues/ows:Value
            for value in element.iter():
                if _local_name(value.tag) == "Value" and value.text and value.text.strip():
                    formats.append(value.text.strip())

    return tuple(dict.fromkeys(formats))


def parse_capabilities(xml: str | bytes, url: str | None = None) -> Capabilities:
    """
    Parse a GetCapabilities response.

    Parameters
    ----------
    xml : str or bytes
        Response body
    url : str or None, optional
        Request URL, used for error context

    Returns
    -------
    Capabilities
        Feature types and output formats

    Raises
    ------
    InvalidResponseError
        If the body is not well-formed XML
    EmptyCapabilitiesError
        If no feature type could be parsed
    """
    try:
        root = ET.fromstring(xml)
    except ET.ParseError as e:
        raise InvalidResponseError(
            f"Invalid XML in GetCapabilities response: {e}", stage="capabilities", url=url
        ) from e

    lookup = find_feature_type_elements(root)
    logger.debug("FeatureType lookup strategy: %s", lookup.strategy.value)

    feature_types: list[FeatureTypeDescriptor] = []
    for element in lookup.elements:
        name = _child_text(element, "Name")
        title = _child_text(element, "Title")
        if not name or not title:
            logger.warning("Skipping FeatureType without Name or Title (name=%r)", name)
            continue

        feature_types.append(
            FeatureTypeDescriptor(
                name=name,
                title=title,
                abstract=_child_text(element, "Abstract"),
                default_crs=_child_text(element, "DefaultCRS") or _child_text(element, "DefaultSRS"),
            )
        )

    if not feature_types:
        raise EmptyCapabilitiesError(
            "No feature types found in GetCapabilities response", stage="capabilities", url=url
        )

    return Capabilities(
        feature_types=tuple(feature_types),
        output_formats=_parse_output_formats(root),
        lookup=lookup.strategy,
    )
