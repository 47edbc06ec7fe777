"""
App configuration loaded from pulumi.Config().

Provides a typed, immutable view of the app settings. Settings are read from
Pulumi config (e.g. Pulumi.<stack>.yaml or pulumi config set); only ``home``
is required. The app name and stage are the Pulumi project and stack. Used by
__main__.main() to open the deployment pass and pick the DNS provider.
"""

from dataclasses import dataclass
from typing import Any, Callable

import pulumi

from components.error import ValidationError

HOMES = ("aws", "cloudflare", "vercel", "gcp")


def _require_home(config: pulumi.Config, key: str) -> str:
    home = config.require(key)
    if home not in HOMES:
        raise ValidationError(
            f'Unsupported home "{home}". Expected one of: {", ".join(HOMES)}.'
        )
    return home


def _optional_str(config: pulumi.Config, key: str) -> str | None:
    return config.get(key) or None


# (key, parser); parser receives (config, key) and returns value.
_CONFIG_SPEC: list[tuple[str, Callable[[pulumi.Config, str], Any]]] = [
    ("home", _require_home),
    ("bucket_prefix", _optional_str),
    ("domain", _optional_str),
    ("dns_zone", _optional_str),
    ("email_sender", _optional_str),
]


@dataclass(frozen=True)
class AppConfig:
    """
    App configuration from Pulumi config.

    Attributes:
        name: App name, the Pulumi project.
        stage: Stage, the Pulumi stack.
        home: Provider hosting the app's DNS: aws, cloudflare, vercel or gcp (required).
        bucket_prefix: Prefix for generated bucket names.
        domain: Root domain handed to the DNS adapter.
        dns_zone: Zone of ``domain`` at the DNS provider (Route 53 zone ID,
            Cloudflare zone ID or Cloud DNS managed zone name).
        email_sender: Address or domain to send email from.
    """

    name: str
    stage: str
    home: str
    bucket_prefix: str | None = None
    domain: str | None = None
    dns_zone: str | None = None
    email_sender: str | None = None

    @classmethod
    def from_pulumi_config(cls, config: pulumi.Config) -> "AppConfig":
        """
        Build AppConfig from pulumi.Config(). Only ``home`` is required.
        """
        kwargs = {key: parser(config, key) for key, parser in _CONFIG_SPEC}
        return cls(name=pulumi.get_project(), stage=pulumi.get_stack(), **kwargs)
