"""
SES v2 email identity.

``sender`` is either an email address or a domain. For a domain, the DKIM
CNAMEs and a DMARC TXT record are created through a DNS adapter (Route 53
for the sender domain by default, ``dns=False`` to manage them yourself),
and the deployment waits for SES to verify the domain. Sending events can be
forwarded to SNS topics or EventBridge buses.
"""

from typing import Any

import pulumi
import pulumi_aws as aws

from components import _helpers, component
from components.aws import AwsDns
from components.component import Component, Registry, Transform
from components.dns import DnsAdapter, DnsRecord
from components.error import ValidationError
from components.link import LinkData, Linkable, permission

ID: str = "cloudkit:aws:Email"

DEFAULT_DMARC = "v=DMARC1; p=none;"

SEND_ACTIONS = ["ses:SendEmail", "ses:SendRawEmail", "ses:SendTemplatedEmail"]


def is_domain(sender: str) -> bool:
    return "@" not in sender


def event_types(types: list[str]) -> list[str]:
    """SES event type names, e.g. "delivery-delay" becomes "DELIVERY_DELAY"."""
    return [t.upper().replace("-", "_") for t in types]


class Email(Component, Linkable):
    """
    SES configuration set and email identity, plus DNS records for domains.

    Resources: sesv2 ConfigurationSet, sesv2 EmailIdentity, one
    ConfigurationSetEventDestination per event, and for domains the DKIM and
    DMARC records and a DomainIdentityVerification.
    """

    def __init__(
        self,
        name: str,
        sender: str,
        dns: DnsAdapter | bool | None = None,
        dmarc: str | None = None,
        events: list[dict[str, Any]] | None = None,
        transform: dict[str, Transform] | None = None,
        ref: bool = False,
        opts: pulumi.ResourceOptions | None = None,
        registry: Registry | None = None,
    ):
        """
        Args:
            name: Component name.
            sender: Email address ("me@example.com") or domain ("example.com").
            dns: Adapter for the DKIM/DMARC records, False to skip them.
                Only valid for domains.
            dmarc: DMARC policy. Only valid for domains.
            events: ``[{"name", "types", "topic"?, "bus"?}]``; ``types`` such
                as "send", "bounce", "delivery-delay".
            transform: Hooks keyed by ``configuration_set`` and ``identity``.
            ref: Reference the existing identity ``sender`` instead.
        """
        domain = is_domain(sender)
        if not ref:
            if not domain and dns:
                raise ValidationError(
                    'The "dns" property is only valid when "sender" is a domain.'
                )
            if not domain and dmarc is not None:
                raise ValidationError(
                    'The "dmarc" property is only valid when "sender" is a domain.'
                )
        super().__init__(ID, name, opts, registry)

        self._sender = sender
        child_opts = pulumi.ResourceOptions(parent=self)

        if ref:
            self.identity = aws.sesv2.EmailIdentity.get(
                f"{name}Identity", sender, opts=child_opts
            )
            self.configuration_set = aws.sesv2.ConfigurationSet.get(
                f"{name}Config",
                self.identity.configuration_set_name.apply(lambda v: v or ""),
                opts=child_opts,
            )
            return

        hooks = transform or {}
        set_name, set_args, set_opts = component.transform(
            hooks.get("configuration_set"),
            f"{name}Config",
            {"configuration_set_name": self.physical_name(64)},
            child_opts,
        )
        self.configuration_set = aws.sesv2.ConfigurationSet(
            set_name, opts=set_opts, **set_args
        )

        identity_name, identity_args, identity_opts = component.transform(
            hooks.get("identity"),
            f"{name}Identity",
            {
                "email_identity": sender,
                "configuration_set_name": self.configuration_set.configuration_set_name,
            },
            child_opts,
        )
        self.identity = aws.sesv2.EmailIdentity(
            identity_name, opts=identity_opts, **identity_args
        )

        for event in events or []:
            destination: dict[str, Any] = {
                "matching_event_types": event_types(event["types"]),
                "enabled": True,
            }
            if event.get("topic"):
                destination["sns_destination"] = {"topic_arn": event["topic"]}
            if event.get("bus"):
                destination["event_bridge_destination"] = {
                    "event_bus_arn": event["bus"]
                }
            aws.sesv2.ConfigurationSetEventDestination(
                f"{name}Event{_helpers.logical_name(event['name'])}",
                configuration_set_name=self.configuration_set.configuration_set_name,
                event_destination_name=event["name"],
                event_destination=destination,
                opts=child_opts,
            )

        if domain:
            adapter = AwsDns(domain=sender) if dns is None or dns is True else dns
            if adapter is not False:
                self._create_dns_records(name, adapter, dmarc or DEFAULT_DMARC)
            aws.ses.DomainIdentityVerification(
                f"{name}Verification",
                domain=sender,
                opts=pulumi.ResourceOptions(parent=self, depends_on=[self.identity]),
            )

        self.register_outputs(
            {"sender": self._sender, "config_set": self.config_set}
        )

    def _create_dns_records(self, name: str, adapter: DnsAdapter, dmarc: str) -> None:
        child_opts = pulumi.ResourceOptions(parent=self)
        sender = self._sender

        # DKIM tokens are only known once SES created the identity.
        def dkim(attributes: Any) -> list[Any]:
            tokens = (attributes.tokens if attributes else None) or []
            return [
                adapter.create_record(
                    name,
                    DnsRecord(
                        name=f"{token}._domainkey.{sender}",
                        type="CNAME",
                        value=f"{token}.dkim.amazonses.com",
                    ),
                    child_opts,
                )
                for token in tokens
            ]

        self.identity.dkim_signing_attributes.apply(dkim)
        adapter.create_record(
            name,
            DnsRecord(name=f"_dmarc.{sender}", type="TXT", value=dmarc),
            child_opts,
        )

    @property
    def sender(self) -> str:
        return self._sender

    @property
    def config_set(self) -> pulumi.Output[str]:
        return self.configuration_set.configuration_set_name

    @property
    def nodes(self) -> dict[str, Any]:
        return {
            "identity": self.identity,
            "configuration_set": self.configuration_set,
        }

    @classmethod
    def get(
        cls,
        name: str,
        sender: str,
        opts: pulumi.ResourceOptions | None = None,
        registry: Registry | None = None,
    ) -> "Email":
        """Reference an existing SES identity."""
        return cls(name, sender, ref=True, opts=opts, registry=registry)

    def get_link(self) -> LinkData:
        return LinkData(
            properties={"sender": self._sender, "config_set": self.config_set},
            include=[
                permission(
                    actions=["ses:*"],
                    resources=[self.identity.arn, self.configuration_set.arn],
                ),
                # Sandbox accounts check recipients too, so sending is not
                # scoped to the identity.
                permission(actions=SEND_ACTIONS, resources=["*"]),
            ],
        )


