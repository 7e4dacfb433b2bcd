"""Search deployed CloudFormation templates for matching resources.

Templates are parsed into a small tagged tree (scalar, mapping, sequence,
null) whose accessors never raise. A lookup that walks into the wrong kind of
node simply yields ``None``, which the matcher treats as "no match".
"""

import json
import logging
import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from datetime import date, datetime

import yaml

from stackscope.errors import MalformedFilterInput, TemplateUnparseable
from stackscope.query import text_contains, text_equals

logger = logging.getLogger(__name__)


class TemplateNode:
    """A node of a parsed template."""

    def get(self, key: str, ignore_case: bool = False) -> "TemplateNode | None":
        """Child under ``key``. Anything but a mapping has no children."""
        return None

    @property
    def text(self) -> str | None:
        """String form of a scalar; ``None`` for every other node."""
        return None


@dataclass(frozen=True)
class ScalarNode(TemplateNode):
    value: str

    @property
    def text(self) -> str | None:
        return self.value


@dataclass(frozen=True)
class MappingNode(TemplateNode):
    items: dict[str, TemplateNode] = field(default_factory=dict)

    def get(self, key: str, ignore_case: bool = False) -> TemplateNode | None:
        if not ignore_case:
            return self.items.get(key)
        for candidate, value in self.items.items():
            if text_equals(candidate, key, ignore_case=True):
                return value
        return None

    def __iter__(self) -> Iterator[tuple[str, TemplateNode]]:
        return iter(self.items.items())


@dataclass(frozen=True)
class SequenceNode(TemplateNode):
    items: tuple[TemplateNode, ...] = ()


@dataclass(frozen=True)
class NullNode(TemplateNode):
    pass


NULL = NullNode()


class CloudFormationLoader(yaml.SafeLoader):
    """YAML loader that understands CloudFormation short-form intrinsic functions.

    Implicit typing follows YAML 1.2: ``yes``/``on``, bare timestamps and
    sexagesimal numbers such as ``1:30`` stay strings.
    """


_YAML11_TAGS = {
    "tag:yaml.org,2002:bool",
    "tag:yaml.org,2002:int",
    "tag:yaml.org,2002:float",
    "tag:yaml.org,2002:timestamp",
}

CloudFormationLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag not in _YAML11_TAGS]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}
CloudFormationLoader.add_implicit_resolver(
    "tag:yaml.org,2002:bool",
    re.compile(r"^(?:true|True|TRUE|false|False|FALSE)$"),
    list("tTfF"),
)
CloudFormationLoader.add_implicit_resolver(
    "tag:yaml.org,2002:int",
    re.compile(r"^(?:[-+]?(?:0|[1-9][0-9_]*)|[-+]?0x[0-9a-fA-F_]+|[-+]?0b[0-1_]+)$"),
    list("-+0123456789"),
)
CloudFormationLoader.add_implicit_resolver(
    "tag:yaml.org,2002:float",
    re.compile(
        r"""^(?:[-+]?[0-9][0-9_]*\.[0-9_]*(?:[eE][-+]?[0-9]+)?
        |[-+]?\.[0-9_]+(?:[eE][-+]?[0-9]+)?
        |[-+]?\.(?:inf|Inf|INF)
        |\.(?:nan|NaN|NAN))$""",
        re.X,
    ),
    list("-+0123456789."),
)


def _construct_intrinsic(loader, tag_suffix, node):
    """Expand ``!Ref X`` to ``{"Ref": X}`` and ``!Sub ...`` to ``{"Fn::Sub": ...}``."""
    if isinstance(node, yaml.ScalarNode):
        value = loader.construct_scalar(node)
        if tag_suffix == "GetAtt":
            value = value.split(".", 1)
    elif isinstance(node, yaml.SequenceNode):
        value = loader.construct_sequence(node, deep=True)
    elif isinstance(node, yaml.MappingNode):
        value = loader.construct_mapping(node, deep=True)
    else:
        raise yaml.constructor.ConstructorError(
            None, None, f"could not determine a constructor for the tag '!{tag_suffix}'", node.start_mark
        )
    key = tag_suffix if tag_suffix in ("Ref", "Condition") else f"Fn::{tag_suffix}"
    return {key: value}


CloudFormationLoader.add_multi_constructor("!", _construct_intrinsic)


def _scalar_text(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def to_node(value) -> TemplateNode:
    """Convert decoded JSON/YAML data into template nodes."""
    if value is None:
        return NULL
    if isinstance(value, dict):
        return MappingNode({str(k): to_node(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return SequenceNode(tuple(to_node(v) for v in value))
    return ScalarNode(_scalar_text(value))


def parse_template(body: str) -> MappingNode:
    """Parse a template body, trying JSON first and YAML second."""
    if not body or not body.strip():
        raise TemplateUnparseable("empty template")

    try:
        document = json.loads(body)
    except ValueError:
        try:
            document = yaml.load(body, Loader=CloudFormationLoader)
        except yaml.YAMLError as exc:
            raise TemplateUnparseable(f"template is neither JSON nor YAML: {exc}") from exc

    try:
        node = to_node(document)
    except RecursionError as exc:
        # Self-referencing anchors decode to cyclic data.
        raise TemplateUnparseable("template nests too deeply or refers to itself") from exc
    if not isinstance(node, MappingNode):
        raise TemplateUnparseable("template document is not a mapping")
    return node


def resolve_path(properties: TemplateNode, path: str, ignore_case: bool = False) -> TemplateNode | None:
    """Walk a dotted path such as ``Versioning.Status``."""
    current: TemplateNode | None = properties
    for part in path.split("."):
        current = current.get(part, ignore_case)
        if current is None:
            return None
    return current


def parse_property_filters(entries: Iterable[str]) -> dict[str, str]:
    """Parse ``key=value`` / ``nested.key=value`` strings."""
    filters: dict[str, str] = {}
    for entry in entries:
        key, sep, value = entry.partition("=")
        if not sep or not key or any(not part for part in key.split(".")):
            raise MalformedFilterInput(
                f"invalid property format {entry!r}, expected key=value"
            )
        filters[key] = value
    return filters


@dataclass(frozen=True)
class ResourceQuery:
    """What to look for in a template's Resources section."""

    resource_type: str = ""
    logical_id: str = ""
    properties: dict[str, str] = field(default_factory=dict)
    ignore_case: bool = False

    @property
    def active(self) -> bool:
        return bool(self.resource_type or self.logical_id or self.properties)

    def describe(self) -> str:
        """Human readable summary, e.g. ``resource "MyBucket" of type "AWS::S3::Bucket"``."""
        if self.logical_id and self.resource_type:
            text = f"resource {self.logical_id!r} of type {self.resource_type!r}"
        elif self.logical_id:
            text = f"resource {self.logical_id!r}"
        elif self.resource_type:
            text = f"resources of type {self.resource_type!r}"
        else:
            text = "resources"
        if self.properties:
            pairs = " ".join(f"{key}={value!r}" for key, value in self.properties.items())
            text += f" with properties: {pairs}"
        return text


def _properties_match(logical_id: str, properties: TemplateNode, query: ResourceQuery) -> bool:
    for path, expected in query.properties.items():
        node = resolve_path(properties, path, query.ignore_case)
        if node is None:
            logger.debug("%s: property path %s not present", logical_id, path)
            return False
        actual = node.text
        if actual is None:
            logger.debug("%s: property %s is not a scalar value", logical_id, path)
            return False
        if not text_equals(actual, expected, query.ignore_case):
            logger.debug("%s: property %s is %r, wanted %r", logical_id, path, actual, expected)
            return False
    return True


def find_first(template: MappingNode, query: ResourceQuery) -> str | None:
    """Return the logical id of the first resource matching every active filter."""
    resources = template.get("Resources")
    if not isinstance(resources, MappingNode):
        return None

    for logical_id, resource in resources:
        # Cheapest check first.
        if query.logical_id and not text_contains(logical_id, query.logical_id, query.ignore_case):
            continue
        if not isinstance(resource, MappingNode):
            continue

        if query.resource_type:
            declared = resource.get("Type")
            declared_type = declared.text if declared is not None else None
            if declared_type is None or not text_equals(
                declared_type, query.resource_type, query.ignore_case
            ):
                continue

        if query.properties:
            properties = resource.get("Properties")
            if not isinstance(properties, MappingNode):
                continue
            if not _properties_match(logical_id, properties, query):
                continue

        return logical_id

    return None


def has_match(body: str, query: ResourceQuery) -> bool:
    """Parse ``body`` and report whether any resource matches ``query``."""
    return find_first(parse_template(body), query) is not None
