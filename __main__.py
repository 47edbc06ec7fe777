"""
cloudkit - example app entrypoint.

Opens a deployment pass for the Pulumi project/stack and builds:

- **Uploads**: private S3 bucket. ``bucket_prefix`` from config is applied
  through a transform hook on the underlying bucket.
- **Email** (when ``email_sender`` is set): SES identity. For a domain
  sender the DKIM/DMARC records go through the DNS adapter of ``home``.

Stack exports: uploads_bucket, dns_provider, email_sender, email_config_set.
"""

from typing import Any

import pulumi

from components import Bucket, Email, Registry, dns_adapter
from components.dns import DnsAdapter
from components.error import ValidationError
from config import AppConfig


def _dns_kwargs(config: AppConfig) -> dict[str, Any]:
    kwargs: dict[str, Any] = {"domain": config.domain}
    if config.dns_zone and config.home != "vercel":
        kwargs["zone"] = config.dns_zone
    return kwargs


def _dns(config: AppConfig) -> DnsAdapter | None:
    if not config.domain:
        return None
    if config.home in ("cloudflare", "gcp") and not config.dns_zone:
        raise ValidationError(f'The "{config.home}" home needs "dns_zone" to be set.')
    return dns_adapter(config.home, **_dns_kwargs(config))


def _email_dns(config: AppConfig) -> DnsAdapter | bool | None:
    if "@" in config.email_sender:
        return None
    adapter = _dns(config)
    if adapter is None and config.home != "aws":
        # No zone to write to; the records are managed by hand.
        return False
    return adapter


def main():
    """
    Build the app components and export stack outputs.

    Reads config (home, bucket_prefix, domain, dns_zone, email_sender), opens
    a Registry for the project/stack and exports the main outputs.
    """
    config = AppConfig.from_pulumi_config(pulumi.Config())

    def prefix_bucket(args: dict[str, Any], opts: pulumi.ResourceOptions, name: str):
        args["bucket_prefix"] = f"{config.bucket_prefix}-"

    with Registry(app=config.name, stage=config.stage):
        uploads = Bucket(
            "Uploads",
            transform={"bucket": prefix_bucket} if config.bucket_prefix else None,
        )
        outputs = [
            ("uploads_bucket", uploads.name),
            ("dns_provider", config.home if config.domain else None),
        ]

        if config.email_sender:
            email = Email("Email", sender=config.email_sender, dns=_email_dns(config))
            outputs += [
                ("email_sender", email.sender),
                ("email_config_set", email.config_set),
            ]

    for output_name, value in outputs:
        pulumi.export(output_name, value)


if __name__ == "__main__":
    main()
