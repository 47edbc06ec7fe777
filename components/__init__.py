"""
Reusable infrastructure components.

Every component is a ComponentResource built inside a deployment pass
(``Registry``) and can be adjusted through ``transform`` hooks. Use from the
Pulumi entrypoint (e.g. __main__.py):

- **Bucket**: S3 bucket with secure defaults; linkable.
- **Email**: SES identity, with DKIM/DMARC records through a DNS adapter;
  linkable.
- **Cron**: EventBridge schedule invoking a function.
- **Analog**, **Nuxt**, **Remix**, **SolidStart**, **TanStackStart**:
  server-rendered sites deployed from their build output; linkable.
- **CustomLink**: arbitrary values exposed as a link.
- **AwsDns**, **CloudflareDns**, **VercelDns**, **GcpDns**: DNS adapters,
  also available by name through ``dns_adapter``.
"""

from components.aws import AwsDns
from components.bucket import Bucket
from components.cloudflare import CloudflareDns
from components.component import Component, Registry, transform
from components.cron import Cron
from components.dns import AliasRecord, DnsAdapter, DnsRecord, dns_adapter
from components.email import Email
from components.error import DuplicateNameError, ValidationError, VisibleError
from components.gcp import GcpDns
from components.link import CustomLink, Linkable, LinkData, permission
from components.sites import Analog, Nuxt, Remix, SolidStart, SsrSite, TanStackStart
from components.vercel import VercelDns

__all__ = [
    "AliasRecord",
    "Analog",
    "AwsDns",
    "Bucket",
    "CloudflareDns",
    "Component",
    "Cron",
    "CustomLink",
    "DnsAdapter",
    "DnsRecord",
    "DuplicateNameError",
    "Email",
    "GcpDns",
    "LinkData",
    "Linkable",
    "Nuxt",
    "Registry",
    "Remix",
    "SolidStart",
    "SsrSite",
    "TanStackStart",
    "ValidationError",
    "VercelDns",
    "VisibleError",
    "dns_adapter",
    "permission",
    "transform",
]
