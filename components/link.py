"""
Linking: how a component exposes data and permissions to its consumers.

A component opts in by subclassing ``Linkable`` and implementing
``get_link()``. Whatever it returns is the only surface a linked consumer
sees: ``properties`` (JSON-serializable once resolved) become environment
variables, and ``include`` permissions are merged into the consumer's IAM
policy. The helpers below turn a list of linkables into those two shapes.
"""

import abc
import json
from dataclasses import dataclass, field
from typing import Any, Sequence

import pulumi

from components.component import Component
from components.error import ValidationError

ENV_PREFIX = "CLOUDKIT_RESOURCE_"

_EFFECTS = ("allow", "deny")


@dataclass(frozen=True)
class Permission:
    """
    An IAM-style grant carried by a link.

    Attributes:
        actions: Actions such as "s3:GetObject" (wildcards allowed).
        resources: Resource ARNs; may be ``Output[str]`` until resolved.
        effect: "allow" (default) or "deny".
    """

    actions: list[str]
    resources: list[pulumi.Input[str]]
    effect: str = "allow"

    def __post_init__(self):
        if self.effect not in _EFFECTS:
            raise ValidationError(
                f'Permission effect must be "allow" or "deny", got "{self.effect}".'
            )

    def to_input(self) -> dict[str, Any]:
        return {
            "actions": list(self.actions),
            "resources": list(self.resources),
            "effect": self.effect,
        }


def permission(
    actions: list[str],
    resources: list[pulumi.Input[str]],
    effect: str = "allow",
) -> Permission:
    return Permission(actions=actions, resources=resources, effect=effect)


@dataclass
class LinkData:
    properties: dict[str, Any]
    include: list[Permission] = field(default_factory=list)


class Linkable(abc.ABC):
    """Capability of a component to be linked into another one."""

    @abc.abstractmethod
    def get_link(self) -> LinkData:
        """Return the properties and permissions exposed to consumers."""


def _linkables(links: Sequence[Any] | None) -> list[Any]:
    result = []
    for link in links or []:
        if link is None:
            raise ValidationError("An undefined link was passed into a `link` list.")
        if not isinstance(link, Linkable):
            raise TypeError(f"{type(link).__name__} is not linkable.")
        result.append(link)
    return result


def type_tag(component: Component) -> str:
    """Dotted type of a component, e.g. "cloudkit.aws.Bucket"."""
    return component.type_.replace(":", ".")


def _ensure_serializable(entries: dict[str, Any]) -> dict[str, Any]:
    # Values must come back unchanged from the JSON env vars.
    for name, value in entries.items():
        try:
            encoded = json.dumps(value, allow_nan=False)
        except (TypeError, ValueError) as e:
            raise ValidationError(
                f'The link properties of "{name}" are not JSON-serializable: {e}'
            ) from e
        if json.loads(encoded) != value:
            raise ValidationError(
                f'The link properties of "{name}" change when encoded as JSON. '
                "Use strings as keys and lists instead of tuples."
            )
    return entries


def build(links: Sequence[Any] | None) -> list[pulumi.Output[dict[str, Any]]]:
    """One ``{name, properties}`` output per link, ``type`` added to properties."""
    return [
        pulumi.Output.from_input(
            {
                "name": link.component_name,
                "properties": {
                    **link.get_link().properties,
                    "type": type_tag(link),
                },
            }
        )
        for link in _linkables(links)
    ]


def get_properties(links: Sequence[Any] | None) -> pulumi.Output[dict[str, Any]]:
    """
    Resolve the properties of every link into ``{name: {..., "type": tag}}``.

    Raises (inside the output):
        ValidationError: a resolved value cannot be encoded as JSON.
    """
    entries = {
        link.component_name: {**link.get_link().properties, "type": type_tag(link)}
        for link in _linkables(links)
    }
    return pulumi.Output.from_input(entries).apply(_ensure_serializable)


def properties_to_env(
    properties: pulumi.Input[dict[str, Any]],
    app: str,
    stage: str,
) -> pulumi.Output[dict[str, str]]:
    """Encode resolved link properties as JSON environment variables."""

    def encode(resolved: dict[str, Any]) -> dict[str, str]:
        env = {f"{ENV_PREFIX}{key}": json.dumps(value) for key, value in resolved.items()}
        env[f"{ENV_PREFIX}App"] = json.dumps({"name": app, "stage": stage})
        return env

    return pulumi.Output.from_input(properties).apply(encode)


def merge_permissions(permissions: Sequence[Permission]) -> list[Permission]:
    """
    Deduplicate resolved permissions by (effect, action, resource).

    The first occurrence of each tuple wins and order is preserved. Actions
    sharing the same effect and resource list are folded back into one
    permission so the resulting policy stays compact.
    """
    seen: set[tuple[str, str, str]] = set()
    by_action: dict[tuple[str, str], list[str]] = {}
    for perm in permissions:
        for action in perm.actions:
            for resource in perm.resources:
                key = (perm.effect, action, resource)
                if key in seen:
                    continue
                seen.add(key)
                by_action.setdefault((perm.effect, action), []).append(resource)

    folded: dict[tuple[str, tuple[str, ...]], list[str]] = {}
    for (effect, action), resources in by_action.items():
        folded.setdefault((effect, tuple(resources)), []).append(action)
    return [
        Permission(actions=actions, resources=list(resources), effect=effect)
        for (effect, resources), actions in folded.items()
    ]


def get_include(links: Sequence[Any] | None) -> pulumi.Output[list[Permission]]:
    """Merged permissions of every link, resolved."""
    raw = [perm.to_input() for link in _linkables(links) for perm in link.get_link().include]
    return pulumi.Output.from_input(raw).apply(
        lambda items: merge_permissions([Permission(**item) for item in items])
    )


def policy_document(permissions: Sequence[Permission]) -> str:
    """Render resolved permissions as an IAM policy JSON document."""
    statements = [
        {
            "Effect": perm.effect.capitalize(),
            "Action": list(perm.actions),
            "Resource": list(perm.resources),
        }
        for perm in permissions
    ]
    return json.dumps({"Version": "2012-10-17", "Statement": statements})


class CustomLink(Component, Linkable):
    """
    Expose arbitrary values (e.g. a third-party API key) as a link.

    Example:
        CustomLink("Stripe", properties={"key": stripe_key})
    """

    def __init__(
        self,
        name: str,
        properties: dict[str, Any],
        include: list[Permission] | None = None,
        opts: pulumi.ResourceOptions | None = None,
        registry=None,
    ):
        super().__init__("cloudkit:link:CustomLink", name, opts, registry)
        self.properties = properties
        self.include = include or []
        self.register_outputs({"properties": properties})

    def get_link(self) -> LinkData:
        return LinkData(properties=self.properties, include=self.include)


class LinkRef(pulumi.ComponentResource):
    """Records the link data of a top-level component in the stack state."""

    def __init__(self, target: str, tag: str, link: LinkData):
        include = [perm.to_input() for perm in link.include]
        super().__init__(
            "cloudkit:link:LinkRef",
            f"{target}LinkRef",
            {"properties": link.properties, "include": include},
        )
        self.register_outputs(
            {
                "target": target,
                "include": include,
                "properties": {"type": tag, **link.properties},
            }
        )


def register_link_refs(components: Sequence[Component]) -> list[LinkRef]:
    return [
        LinkRef(component.component_name, type_tag(component), component.get_link())
        for component in components
        if isinstance(component, Linkable)
    ]
