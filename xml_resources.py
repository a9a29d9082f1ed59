"""Parsing for the two XML dialects that go into a package: tuning and SimData.

Tuning files have a single ``<I>`` root carrying the resource identity::

    <I c="Trait" i="trait" m="traits.traits" n="creator:my_trait" s="12345">

SimData files wrap one or more ``<I>`` instances, the first of which is the
row that pairs with a tuning file of the same name::

    <SimData version="0x00000101" u="0x00000000">
      <Instances>
        <I name="creator:my_trait" schema="Trait" type="Object"> ... </I>
      </Instances>
      <Schemas> ... </Schemas>
    </SimData>

Both are stored in the package as the UTF-8 document they were read from.
"""
from __future__ import annotations

import dataclasses
import re

from lxml import etree

from build_errors import ResourceParseError

PREFIX_PATTERN = re.compile(r"^[^:]+:")

_PARSER = etree.XMLParser(
    encoding="UTF-8",
    recover=False,
    resolve_entities=False,
    remove_comments=False,
    strip_cdata=False,
)


def _parse_root(data: bytes, label: str) -> etree._Element:
    try:
        root = etree.fromstring(data, _PARSER)
    except etree.XMLSyntaxError as exc:
        raise ResourceParseError(f"Malformed {label} XML: {exc}") from exc
    if root is None:
        raise ResourceParseError(f"Empty {label} document")
    return root


def parse_instance_id(text: str) -> int:
    cleaned = text.strip()
    try:
        if cleaned.lower().startswith("0x"):
            value = int(cleaned, 16)
        else:
            value = int(cleaned, 10)
    except ValueError as exc:
        raise ResourceParseError(f"Instance id is not a number: {text!r}") from exc
    if not 0 <= value <= 0xFFFFFFFFFFFFFFFF:
        raise ResourceParseError(f"Instance id does not fit in 64 bits: {text!r}")
    return value


def strip_name_prefix(name: str) -> str:
    return PREFIX_PATTERN.sub("", name, count=1)


@dataclasses.dataclass(slots=True)
class TuningDocument:
    root_name: str
    root_tag: str
    attributes: dict[str, str]
    data: bytes

    @property
    def type_attr(self) -> str | None:
        return self.attributes.get("i")

    @property
    def instance(self) -> int:
        return parse_instance_id(self.attributes["s"])

    def to_bytes(self) -> bytes:
        return self.data


@dataclasses.dataclass(slots=True)
class SimDataDocument:
    instance_name: str
    schema_name: str | None
    data: bytes

    def to_bytes(self) -> bytes:
        return self.data


def parse_tuning(data: bytes) -> TuningDocument:
    root = _parse_root(data, "tuning")
    attributes = {str(name): str(value) for name, value in root.attrib.items()}
    name = attributes.get("n")
    if not name:
        raise ResourceParseError("Tuning root has no 'n' (name) attribute")
    if "s" not in attributes:
        raise ResourceParseError(f"Tuning '{name}' has no 's' (instance) attribute")
    parse_instance_id(attributes["s"])
    return TuningDocument(name, str(root.tag), attributes, bytes(data))


def parse_simdata(data: bytes) -> SimDataDocument:
    root = _parse_root(data, "SimData")
    if root.tag != "SimData":
        raise ResourceParseError(f"Expected <SimData> root, found <{root.tag}>")
    instance = root.find("Instances/I")
    if instance is None:
        raise ResourceParseError("SimData has no <Instances><I> element")
    name = instance.get("name")
    if not name:
        raise ResourceParseError("SimData instance has no 'name' attribute")
    return SimDataDocument(name, instance.get("schema"), bytes(data))


def looks_like_xml(data: bytes) -> bool:
    head = data.lstrip(b"\xef\xbb\xbf \t\r\n")[:1]
    return head == b"<"
