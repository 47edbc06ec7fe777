"""
Vercel DNS adapter.

Vercel records are named relative to the domain ("api" for
api.example.com, "" for the apex). A CNAME cannot live on the apex, so
aliases there become ``ALIAS`` records and ``CNAME`` everywhere else.
"""

from typing import Any

import pulumi
import pulumiverse_vercel as vercel

from components import _helpers
from components.component import Transform
from components.dns import (
    CAA_AUTHORITY,
    DEFAULT_TTL,
    AliasRecord,
    DnsAdapter,
    DnsRecord,
)


def alias_record_type(domain: str, name: str) -> str:
    """ALIAS for the apex of domain, CNAME for any subdomain."""
    return "ALIAS" if _helpers.relative_record_name(domain, name) == "" else "CNAME"


class VercelDns(DnsAdapter):
    """
    Vercel adapter.

    Args:
        domain: Domain registered with Vercel (required).
        team: Vercel team ID owning the domain.
        transform: Optional ``{"record": hook}`` for ``vercel.DnsRecord``.
    """

    provider = "vercel"

    def __init__(
        self,
        domain: pulumi.Input[str],
        team: pulumi.Input[str] | None = None,
        transform: dict[str, Transform] | None = None,
    ):
        super().__init__(domain, transform)
        self.team = team

    def _declare(
        self,
        resource_name: str,
        args: dict[str, Any],
        opts: pulumi.ResourceOptions | None,
    ) -> vercel.DnsRecord:
        defaults = {"domain": self.domain, "ttl": DEFAULT_TTL, **args}
        if self.team is not None:
            defaults["team_id"] = self.team
        resource_name, args, opts = self.transformed(resource_name, defaults, opts)
        return vercel.DnsRecord(resource_name, opts=opts, **args)

    def _record(
        self,
        name_prefix: str,
        record_type: str,
        name: str,
        domain: str,
        value: pulumi.Input[str],
        opts: pulumi.ResourceOptions | None,
    ) -> vercel.DnsRecord:
        return self._declare(
            f"{name_prefix}{record_type}Record{_helpers.logical_name(name)}",
            {
                "type": record_type,
                "name": _helpers.relative_record_name(domain, name),
                "value": value,
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
            lambda name, domain: self._record(
                name_prefix,
                alias_record_type(domain, name),
                name,
                domain,
                record.alias_name,
                opts,
            ),
        )

    def create_caa(
        self,
        name_prefix: str,
        record_name: pulumi.Input[str],
        opts: pulumi.ResourceOptions | None = None,
    ):
        # Vercel keeps CAA records on the apex only.
        return self.when_valid(
            record_name,
            lambda _, domain: [
                self._declare(
                    f"{name_prefix}{label}Record",
                    {"type": "CAA", "name": "", "value": f'0 {tag} "{CAA_AUTHORITY}"'},
                    opts,
                )
                for label, tag in (("Caa", "issue"), ("CaaWildcard", "issuewild"))
            ],
        )

    def create_record(
        self,
        name_prefix: str,
        record: DnsRecord,
        opts: pulumi.ResourceOptions | None = None,
    ):
        return self.when_valid(
            record.name,
            lambda name, domain: self._record(
                name_prefix, record.type.upper(), name, domain, record.value, opts
            ),
        )
