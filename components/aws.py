"""
Route 53 DNS adapter.

Records are created in the hosted zone given by ``zone``; when only a
``domain`` is configured the zone is looked up by name. With only a ``zone``
the domain used for validation is the zone's own name. Alias records become an
``A`` and an ``AAAA`` record with ``evaluate_target_health``. CAA records are
not needed for certificates issued by ACM, so ``create_caa`` declares nothing.
"""

from typing import Any

import pulumi
import pulumi_aws as aws

from components import _helpers
from components.component import Transform
from components.dns import DEFAULT_TTL, AliasRecord, DnsAdapter, DnsRecord
from components.error import ValidationError


class AwsDns(DnsAdapter):
    """
    Route 53 adapter.

    Args:
        domain: Root domain; also used to look up the hosted zone when
            ``zone`` is not given.
        zone: Hosted zone ID.
        override: Overwrite records that already exist.
        transform: Optional ``{"record": hook}`` for ``route53.Record``.
    """

    provider = "aws"

    def __init__(
        self,
        domain: pulumi.Input[str] | None = None,
        zone: pulumi.Input[str] | None = None,
        override: bool = False,
        transform: dict[str, Transform] | None = None,
    ):
        if domain is None and zone is None:
            raise ValidationError('The "aws" DNS adapter needs a "domain" or a "zone".')
        super().__init__(domain, transform)
        self.zone = zone
        self.override = override
        self._zone_lookup: Any | None = None

    def _lookup(self) -> Any:
        # One lookup per adapter, shared by every record it creates.
        if self._zone_lookup is None:
            if self.zone is not None:
                self._zone_lookup = aws.route53.get_zone_output(zone_id=self.zone)
            else:
                self._zone_lookup = aws.route53.get_zone_output(
                    name=self.domain, private_zone=False
                )
        return self._zone_lookup

    def resolve_domain(self) -> pulumi.Input[str]:
        if self.domain is not None:
            return self.domain
        return self._lookup().name

    def zone_id(self) -> pulumi.Input[str]:
        if self.zone is not None:
            return self.zone
        return self._lookup().zone_id

    def _declare(
        self,
        name_prefix: str,
        record_type: str,
        name: str,
        extra: dict[str, Any],
        opts: pulumi.ResourceOptions | None,
    ) -> aws.route53.Record:
        resource_name, args, opts = self.transformed(
            f"{name_prefix}{record_type}Record{_helpers.logical_name(name)}",
            {
                "zone_id": self.zone_id(),
                "name": name,
                "type": record_type,
                "allow_overwrite": self.override,
                **extra,
            },
            opts,
        )
        return aws.route53.Record(resource_name, opts=opts, **args)

    def create_alias(
        self,
        name_prefix: str,
        record: AliasRecord,
        opts: pulumi.ResourceOptions | None = None,
    ):
        alias = {
            "aliases": [
                {
                    "name": record.alias_name,
                    "zone_id": record.alias_zone,
                    "evaluate_target_health": True,
                }
            ]
        }
        return self.when_valid(
            record.name,
            lambda name, _: [
                self._declare(name_prefix, record_type, name, alias, opts)
                for record_type in ("A", "AAAA")
            ],
        )

    def create_caa(
        self,
        name_prefix: str,
        record_name: pulumi.Input[str],
        opts: pulumi.ResourceOptions | None = None,
    ):
        return []

    def create_record(
        self,
        name_prefix: str,
        record: DnsRecord,
        opts: pulumi.ResourceOptions | None = None,
    ):
        extra = {"ttl": DEFAULT_TTL, "records": [record.value]}
        return self.when_valid(
            record.name,
            lambda name, _: self._declare(
                name_prefix, record.type.upper(), name, extra, opts
            ),
        )
