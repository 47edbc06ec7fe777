"""
GCP Cloud DNS adapter.

Records are created as ``RecordSet``s in an existing managed zone. Cloud DNS
expects fully qualified names with a trailing dot, and CNAME targets
normalized the same way, so names go through ``ensure_trailing_dot`` and
targets through ``cname_rrdata`` before they reach the API. Cloud DNS
has no alias/flattening support at the zone apex; ``create_alias`` on the
apex is rejected.
"""

from typing import Any

import pulumi
import pulumi_gcp as gcp

from components import _helpers
from components.component import Transform
from components.dns import (
    CAA_AUTHORITY,
    DEFAULT_TTL,
    AliasRecord,
    DnsAdapter,
    DnsRecord,
)
from components.error import ValidationError


def record_rrdatas(record_type: str, value: str) -> list[str]:
    """rrdatas for a single value, normalized per record type."""
    if record_type == "CNAME":
        return _helpers.cname_rrdata(value)
    if record_type == "TXT":
        return [_helpers.quote_txt(value)]
    return [value]


class GcpDns(DnsAdapter):
    """
    Cloud DNS adapter.

    Args:
        domain: Root domain of the managed zone (e.g. "example.com").
        zone: Managed zone name (``ManagedZone.name``, not its DNS name).
        transform: Optional ``{"record": hook}`` for ``gcp.dns.RecordSet``.
    """

    provider = "gcp"

    def __init__(
        self,
        domain: pulumi.Input[str],
        zone: pulumi.Input[str],
        transform: dict[str, Transform] | None = None,
    ):
        super().__init__(domain, transform)
        self.zone = zone

    def _declare(
        self,
        name_prefix: str,
        record_type: str,
        name: str,
        rrdatas: pulumi.Input[list[str]],
        opts: pulumi.ResourceOptions | None,
    ) -> gcp.dns.RecordSet:
        resource_name, args, opts = self.transformed(
            f"{name_prefix}{record_type}Record{_helpers.logical_name(name)}",
            {
                "name": _helpers.ensure_trailing_dot(name),
                "managed_zone": self.zone,
                "type": record_type,
                "ttl": DEFAULT_TTL,
                "rrdatas": rrdatas,
            },
            opts,
        )
        return gcp.dns.RecordSet(resource_name, opts=opts, **args)

    def create_alias(
        self,
        name_prefix: str,
        record: AliasRecord,
        opts: pulumi.ResourceOptions | None = None,
    ):
        def declare(name: str, domain: str) -> gcp.dns.RecordSet:
            if _helpers.relative_record_name(domain, name) == "":
                raise ValidationError(
                    f'Cloud DNS cannot alias the zone apex "{name}". Use a '
                    "subdomain such as www."
                )
            rrdatas = pulumi.Output.from_input(record.alias_name).apply(
                _helpers.cname_rrdata
            )
            return self._declare(name_prefix, "CNAME", name, rrdatas, opts)

        return self.when_valid(record.name, declare)

    def create_caa(
        self,
        name_prefix: str,
        record_name: pulumi.Input[str],
        opts: pulumi.ResourceOptions | None = None,
    ):
        # Cloud DNS holds every CAA value of a name in a single record set.
        rrdatas = [f'0 {tag} "{CAA_AUTHORITY}"' for tag in ("issue", "issuewild")]
        return self.when_valid(
            record_name,
            lambda _, domain: [
                self._declare(
                    name_prefix,
                    "CAA",
                    _helpers.strip_trailing_dot(domain),
                    rrdatas,
                    opts,
                )
            ],
        )

    def create_record(
        self,
        name_prefix: str,
        record: DnsRecord,
        opts: pulumi.ResourceOptions | None = None,
    ):
        record_type = record.type.upper()

        def declare(name: str, _: str) -> gcp.dns.RecordSet:
            rrdatas: Any = pulumi.Output.from_input(record.value).apply(
                lambda value: record_rrdatas(record_type, value)
            )
            return self._declare(name_prefix, record_type, name, rrdatas, opts)

        return self.when_valid(record.name, declare)
