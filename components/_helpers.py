"""
Pure helpers for DNS and naming. Testable without Pulumi runtime.

Used by the DNS adapters (ensure_trailing_dot, strip_trailing_dot,
cname_rrdata, quote_txt, validate_record_name, relative_record_name) and by the
component base (logical_name, physical_name). No Pulumi types; all functions
accept and return plain Python types so they can be unit-tested without a
Pulumi stack.
"""

import hashlib
import re

from components.error import ValidationError

_PRETTY_CHARS = "abcdefhkmnorstuvwxz"


def ensure_trailing_dot(
    domain: str,
) -> str:
    """
    Return domain with a single trailing dot for DNS FQDN.

    Cloud DNS (and many DNS APIs) expect zone and record names with a trailing
    dot when they are fully qualified. Idempotent if already present.
    """
    return domain if domain.endswith(".") else f"{domain}."


def strip_trailing_dot(
    domain: str,
) -> str:
    """Return domain without its trailing dot, if any."""
    return domain[:-1] if domain.endswith(".") else domain


def cname_rrdata(
    target: str,
) -> list[str]:
    """
    Return CNAME rrdatas list (single target with trailing dot).

    GCP Cloud DNS RecordSet.rrdatas expects a list of strings; CNAME has
    one target. Target is normalized with a trailing dot.
    """
    return [ensure_trailing_dot(target)]


def quote_txt(
    value: str,
) -> str:
    """Wrap a TXT value in double quotes unless it already is."""
    return value if value.startswith('"') else f'"{value}"'


def validate_record_name(
    domain: str,
    name: str,
) -> str:
    """
    Check that a record name is the domain itself or one of its subdomains.

    Both values may carry a trailing dot; comparison is case-insensitive.

    Returns:
        The record name without its trailing dot.

    Raises:
        ValidationError: name is outside of domain (e.g. "example.org" for
            domain "example.com", or "notexample.com").
    """
    record = strip_trailing_dot(name)
    root = strip_trailing_dot(domain)
    candidate, zone = record.lower(), root.lower()
    if candidate != zone and not candidate.endswith(f".{zone}"):
        raise ValidationError(
            f'The DNS record "{record}" cannot be created because it is not '
            f'"{root}" or a subdomain of it.'
        )
    return record


def relative_record_name(
    domain: str,
    name: str,
) -> str:
    """
    Return the part of name left of domain ("api" for api.example.com).

    The apex returns an empty string. Validates like validate_record_name.
    """
    record = validate_record_name(domain, name)
    root = strip_trailing_dot(domain)
    if len(record) == len(root):
        return ""
    return record[: -(len(root) + 1)]


def logical_name(
    name: str,
) -> str:
    """
    Turn an arbitrary string into a Pulumi-friendly logical name suffix.

    Non-alphanumerics are dropped and the first letter is capitalized, so
    "_dmarc.example.com" becomes "Dmarcexamplecom".
    """
    cleaned = re.sub(r"[^a-zA-Z0-9]", "", name)
    return cleaned[:1].upper() + cleaned[1:]


def hash_string_to_pretty_string(
    value: str,
    length: int,
) -> str:
    """
    Stable short hash over a reduced alphabet (no easily confused letters).
    """
    digest = int(hashlib.sha256(value.encode("utf-8")).hexdigest(), 16)
    chars = []
    for _ in range(length):
        digest, index = divmod(digest, len(_PRETTY_CHARS))
        chars.append(_PRETTY_CHARS[index])
    return "".join(chars)


def physical_name(
    max_length: int,
    app: str,
    stage: str,
    name: str,
    suffix: str = "",
) -> str:
    """
    Build a provider-facing name like "myapp-dev-uploads".

    Names longer than max_length are truncated and made unique again with an
    8-character hash of the full name. The result is lowercase and only
    contains alphanumerics and hyphens.

    Args:
        max_length: Maximum length the provider accepts for this resource.
        app: Application name.
        stage: Stage (Pulumi stack) name.
        name: Component logical name.
        suffix: Optional trailing text kept intact (e.g. ".fifo").
    """
    full = re.sub(r"[^a-z0-9-]", "", f"{app}-{stage}-{name}".lower())
    if len(full) + len(suffix) <= max_length:
        return f"{full}{suffix}"
    hashed = hash_string_to_pretty_string(full, 8)
    keep = max_length - len(suffix) - len(hashed) - 1
    return f"{full[:keep].rstrip('-')}-{hashed}{suffix}"
