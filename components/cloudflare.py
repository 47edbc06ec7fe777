"""
Cloudflare DNS adapter.

Aliases are CNAME records (Cloudflare flattens them at the apex) and may be
proxied; proxied records use the automatic TTL. TXT contents are quoted the
way the Cloudflare API expects. CAA records authorize Amazon's CA for both
regular and wildcard certificates on the zone apex.
"""

from typing import Any

import pulumi
import pulumi_cloudflare as cloudflare

from components import _helpers
from components.component import Transform
from components.dns import (
    CAA_AUTHORITY,
    DEFAULT_TTL,
    AliasRecord,
    DnsAdapter,
    DnsRecord,
)

# Cloudflare's "automatic" TTL, required for proxied records.
AUTOMATIC_TTL = 1


class CloudflareDns(DnsAdapter):
    """
    Cloudflare adapter.

    Args:
        zone: Cloudflare zone ID.
        domain: Root domain; defaults to the zone's name.
        proxy: Proxy alias records through Cloudflare.
        transform: Optional ``{"record": hook}`` for ``cloudflare.DnsRecord``.
    """

    provider = "cloudflare"

    def __init__(
        self,
        zone: pulumi.Input[str],
        domain: pulumi.Input[str] | None = None,
        proxy: bool = False,
        transform: dict[str, Transform] | None = None,
    ):
        super().__init__(domain, transform)
        self.zone = zone
        self.proxy = proxy

    def resolve_domain(self) -> pulumi.Input[str]:
        if self.domain is not None:
            return self.domain
        return cloudflare.get_zone_output(zone_id=self.zone).name

    def _declare(
        self,
        resource_name: str,
        args: dict[str, Any],
        opts: pulumi.ResourceOptions | None,
    ) -> cloudflare.DnsRecord:
        resource_name, args, opts = self.transformed(
            resource_name, {"zone_id": self.zone, **args}, opts
        )
        return cloudflare.DnsRecord(resource_name, opts=opts, **args)

    def _content_record(
        self,
        name_prefix: str,
        record_type: str,
        name: str,
        content: pulumi.Input[str],
        proxied: bool,
        opts: pulumi.ResourceOptions | None,
    ) -> cloudflare.DnsRecord:
        if record_type == "TXT":
            content = pulumi.Output.from_input(content).apply(_helpers.quote_txt)
        return self._declare(
            f"{name_prefix}{record_type}Record{_helpers.logical_name(name)}",
            {
                "name": name,
                "type": record_type,
                "content": content,
                "proxied": proxied,
                "ttl": AUTOMATIC_TTL if proxied else DEFAULT_TTL,
            },
            opts,
        )

    def create_alias(
        self,
        name_prefix: str,
        record: AliasRecord,
        opts: pulumi.ResourceOptions | None = None,
    ):
        return self.when_valid(
            record.name,
            lambda name, _: self._content_record(
                name_prefix, "CNAME", name, record.alias_name, self.proxy, opts
            ),
        )

    def create_caa(
        self,
        name_prefix: str,
        record_name: pulumi.Input[str],
        opts: pulumi.ResourceOptions | None = None,
    ):
        def declare(_: str, domain: str) -> list[cloudflare.DnsRecord]:
            suffix = _helpers.logical_name(domain)
            return [
                self._declare(
                    f"{name_prefix}CAA{label}{suffix}Record",
                    {
                        "name": _helpers.strip_trailing_dot(domain),
                        "type": "CAA",
                        "ttl": DEFAULT_TTL,
                        "data": {"flags": 0, "tag": tag, "value": CAA_AUTHORITY},
                    },
                    opts,
                )
                for label, tag in (("", "issue"), ("Wildcard", "issuewild"))
            ]

        return self.when_valid(record_name, declare)

    def create_record(
        self,
        name_prefix: str,
        record: DnsRecord,
        opts: pulumi.ResourceOptions | None = None,
    ):
        return self.when_valid(
            record.name,
            lambda name, _: self._content_record(
                name_prefix, record.type.upper(), name, record.value, False, opts
            ),
        )
