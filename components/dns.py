"""
DNS adapters: provider-specific strategies for creating records.

Components that manage a domain (certificates, email identities, sites) do
not talk to a DNS provider directly. They receive a ``DnsAdapter`` and call
``create_alias``, ``create_caa`` or ``create_record`` during construction.
Each adapter is configured once with the root ``domain`` it may write to;
record names outside that domain are rejected before anything is declared.

Record names (and the domain) may be plain strings or ``Output[str]``. With
plain strings validation runs immediately and the created resources are
returned; otherwise validation and creation wait for the values and an
``Output`` of the resources is returned.
"""

import abc
from dataclasses import dataclass
from typing import Any, Callable

import pulumi

from components import _helpers
from components.component import Transform, transform
from components.error import ValidationError

CAA_AUTHORITY = "amazonaws.com"
DEFAULT_TTL = 60


@dataclass(frozen=True)
class DnsRecord:
    """A plain record, e.g. DnsRecord("_dmarc.example.com", "TXT", "v=DMARC1;")."""

    name: pulumi.Input[str]
    type: str
    value: pulumi.Input[str]


@dataclass(frozen=True)
class AliasRecord:
    """
    A record pointing at a managed endpoint (CDN, load balancer).

    Attributes:
        name: Record name inside the adapter's domain.
        alias_name: Target host name (e.g. a CloudFront domain).
        alias_zone: Hosted zone of the target; only used by Route 53.
    """

    name: pulumi.Input[str]
    alias_name: pulumi.Input[str]
    alias_zone: pulumi.Input[str] = ""


class DnsAdapter(abc.ABC):
    """
    Base for DNS providers.

    Args:
        domain: Root domain the adapter manages (e.g. "example.com").
        transform: Optional ``{"record": hook}`` applied to every record.
    """

    provider: str = ""

    def __init__(
        self,
        domain: pulumi.Input[str] | None = None,
        transform: dict[str, Transform] | None = None,
    ):
        self.domain = domain
        self.transform = transform or {}

    def resolve_domain(self) -> pulumi.Input[str]:
        if self.domain is None:
            raise ValidationError(f'The "{self.provider}" DNS adapter needs a domain.')
        return self.domain

    def when_valid(
        self,
        name: pulumi.Input[str],
        declare: Callable[[str, str], Any],
    ) -> Any:
        """
        Validate ``name`` against the domain, then call ``declare(name, domain)``.

        Runs synchronously when both values are plain strings; otherwise the
        call is deferred and an Output of its result is returned.
        """
        domain = self.resolve_domain()
        if isinstance(domain, str) and isinstance(name, str):
            return declare(_helpers.validate_record_name(domain, name), domain)
        return pulumi.Output.all(domain, name).apply(
            lambda args: declare(_helpers.validate_record_name(args[0], args[1]), args[0])
        )

    def transformed(
        self,
        name: str,
        args: dict[str, Any],
        opts: pulumi.ResourceOptions | None,
    ) -> tuple[str, dict[str, Any], pulumi.ResourceOptions]:
        return transform(
            self.transform.get("record"),
            name,
            args,
            opts or pulumi.ResourceOptions(),
        )

    @abc.abstractmethod
    def create_alias(
        self,
        name_prefix: str,
        record: AliasRecord,
        opts: pulumi.ResourceOptions | None = None,
    ) -> Any:
        """Point ``record.name`` at ``record.alias_name``."""

    @abc.abstractmethod
    def create_caa(
        self,
        name_prefix: str,
        record_name: pulumi.Input[str],
        opts: pulumi.ResourceOptions | None = None,
    ) -> Any:
        """Authorize the certificate authority for the domain of ``record_name``."""

    @abc.abstractmethod
    def create_record(
        self,
        name_prefix: str,
        record: DnsRecord,
        opts: pulumi.ResourceOptions | None = None,
    ) -> Any:
        """Create an arbitrary record."""


def dns_adapter(provider: str, **kwargs: Any) -> DnsAdapter:
    """
    Build an adapter by provider name ("aws", "cloudflare", "vercel", "gcp").

    Keyword arguments are passed to the adapter's constructor.
    """
    from components.aws import AwsDns
    from components.cloudflare import CloudflareDns
    from components.gcp import GcpDns
    from components.vercel import VercelDns

    adapters: dict[str, type[DnsAdapter]] = {
        "aws": AwsDns,
        "cloudflare": CloudflareDns,
        "vercel": VercelDns,
        "gcp": GcpDns,
    }
    if provider not in adapters:
        raise ValidationError(
            f'Unknown DNS provider "{provider}". Expected one of: '
            f"{', '.join(sorted(adapters))}."
        )
    return adapters[provider](**kwargs)
