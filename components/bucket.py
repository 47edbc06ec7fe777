"""
S3 bucket with secure defaults.

The bucket is private unless ``access`` says otherwise, rejects plain HTTP
requests (``enforce_https``), and gets a permissive CORS rule that can be
tuned or disabled. Custom policy statements are appended to the generated
bucket policy. Every underlying resource can be adjusted through
``transform``:

    Bucket("Uploads", transform={"bucket": {"force_destroy": False}})
"""

import json
from typing import Any

import pulumi
import pulumi_aws as aws

from components.component import Component, Registry, Transform, transform
from components.error import ValidationError
from components.link import LinkData, Linkable, permission
from components.units import to_seconds

ID: str = "cloudkit:aws:Bucket"

ACCESS_TYPES = ("public", "cloudfront")

DEFAULT_CORS_METHODS = ["DELETE", "GET", "HEAD", "POST", "PUT"]

_PRINCIPAL_TYPES = {
    "aws": "AWS",
    "service": "Service",
    "federated": "Federated",
    "canonical": "CanonicalUser",
}


def _principal(principals: str | list[dict[str, Any]]) -> Any:
    if principals == "*":
        return "*"
    mapped: dict[str, list[str]] = {}
    for principal in principals:
        kind = _PRINCIPAL_TYPES.get(principal["type"])
        if kind is None:
            raise ValidationError(
                f'Unknown principal type "{principal["type"]}". Expected one of: '
                f"{', '.join(_PRINCIPAL_TYPES)}."
            )
        mapped.setdefault(kind, []).extend(principal["identifiers"])
    return mapped


def policy_statements(
    bucket_arn: str,
    access: str | None,
    enforce_https: bool,
    policy: list[dict[str, Any]],
) -> list[dict[str, Any]]:
    """
    IAM statements for the bucket policy.

    Args:
        bucket_arn: Resolved bucket ARN.
        access: "public", "cloudfront" or None.
        enforce_https: Deny requests not made over TLS.
        policy: Extra statements as dicts with ``actions``, ``principals``
            ("*" or ``[{"type": "aws"|"service"|..., "identifiers": [...]}]``),
            optional ``effect`` ("allow"/"deny"), ``paths`` (object paths,
            "" for the bucket itself; default bucket and all objects) and
            ``conditions`` (``[{"test", "variable", "values"}]``).
    """
    statements = []
    if access:
        statements.append(
            {
                "Effect": "Allow",
                "Principal": (
                    "*"
                    if access == "public"
                    else {"Service": ["cloudfront.amazonaws.com"]}
                ),
                "Action": ["s3:GetObject"],
                "Resource": [f"{bucket_arn}/*"],
            }
        )
    if enforce_https:
        statements.append(
            {
                "Effect": "Deny",
                "Principal": "*",
                "Action": ["s3:*"],
                "Resource": [bucket_arn, f"{bucket_arn}/*"],
                "Condition": {"Bool": {"aws:SecureTransport": ["false"]}},
            }
        )
    for statement in policy:
        paths = [p.lstrip("/") for p in statement.get("paths", ["", "*"])]
        rendered = {
            "Effect": statement.get("effect", "allow").capitalize(),
            "Principal": _principal(statement["principals"]),
            "Action": statement["actions"],
            "Resource": [bucket_arn if p == "" else f"{bucket_arn}/{p}" for p in paths],
        }
        conditions: dict[str, dict[str, list[str]]] = {}
        for condition in statement.get("conditions", []):
            conditions.setdefault(condition["test"], {})[condition["variable"]] = (
                condition["values"]
            )
        if conditions:
            rendered["Condition"] = conditions
        statements.append(rendered)
    return statements


class Bucket(Component, Linkable):
    """
    S3 bucket plus versioning, public access block, policy and CORS.

    Resources: BucketV2, optional BucketVersioningV2, BucketPublicAccessBlock,
    optional BucketPolicy, optional BucketCorsConfigurationV2.
    """

    def __init__(
        self,
        name: str,
        access: str | None = None,
        cors: bool | dict[str, Any] = True,
        versioning: bool = False,
        enforce_https: bool = True,
        policy: list[dict[str, Any]] | None = None,
        transform: dict[str, Transform | bool] | None = None,
        ref: pulumi.Input[str] | None = None,
        opts: pulumi.ResourceOptions | None = None,
        registry: Registry | None = None,
    ):
        """
        Create the bucket, or reference an existing one when ``ref`` is set.

        Args:
            name: Component name (e.g. "Uploads").
            access: "public" to allow anonymous reads, "cloudfront" to allow
                reads from CloudFront only; private when None.
            cors: False to skip CORS, True for the defaults, or a dict with
                ``allow_headers``, ``allow_methods``, ``allow_origins``,
                ``expose_headers`` and ``max_age`` (e.g. "1 day").
            versioning: Enable object versioning.
            enforce_https: Deny requests not made over HTTPS.
            policy: Extra policy statements, see ``policy_statements``.
            transform: Hooks keyed by ``bucket``, ``versioning``,
                ``public_access_block`` (False skips it), ``policy``, ``cors``.
            ref: Name of an existing bucket; nothing is created.
        """
        if access is not None and access not in ACCESS_TYPES:
            raise ValidationError(
                f'Invalid access "{access}" for the "{name}" bucket. Expected '
                '"public" or "cloudfront".'
            )
        transforms = transform or {}
        super().__init__(ID, name, opts, registry)

        if ref is not None:
            self.bucket = aws.s3.BucketV2.get(
                f"{name}Bucket", ref, opts=pulumi.ResourceOptions(parent=self)
            )
            self.register_outputs({"name": self.bucket.bucket})
            return

        self.bucket = self._declare(
            aws.s3.BucketV2,
            transforms.get("bucket"),
            f"{name}Bucket",
            {"force_destroy": True},
        )

        if versioning:
            self._declare(
                aws.s3.BucketVersioningV2,
                transforms.get("versioning"),
                f"{name}Versioning",
                {
                    "bucket": self.bucket.bucket,
                    "versioning_configuration": {"status": "Enabled"},
                },
            )

        public_access_block = None
        if transforms.get("public_access_block") is not False:
            restrict = access != "public"
            public_access_block = self._declare(
                aws.s3.BucketPublicAccessBlock,
                transforms.get("public_access_block"),
                f"{name}PublicAccessBlock",
                {
                    "bucket": self.bucket.bucket,
                    "block_public_acls": True,
                    "block_public_policy": restrict,
                    "ignore_public_acls": True,
                    "restrict_public_buckets": restrict,
                },
            )

        extra_policy = policy or []
        if access or enforce_https or extra_policy:
            document = self.bucket.arn.apply(
                lambda arn: json.dumps(
                    {
                        "Version": "2012-10-17",
                        "Statement": policy_statements(
                            arn, access, enforce_https, extra_policy
                        ),
                    }
                )
            )
            # A bucket holds a single policy; it must land after the access block.
            self._declare(
                aws.s3.BucketPolicy,
                transforms.get("policy"),
                f"{name}Policy",
                {"bucket": self.bucket.bucket, "policy": document},
                pulumi.ResourceOptions(
                    parent=self,
                    depends_on=[public_access_block] if public_access_block else [],
                ),
            )

        if cors is not False:
            rules = cors if isinstance(cors, dict) else {}
            self._declare(
                aws.s3.BucketCorsConfigurationV2,
                transforms.get("cors"),
                f"{name}Cors",
                {
                    "bucket": self.bucket.bucket,
                    "cors_rules": [
                        {
                            "allowed_headers": rules.get("allow_headers", ["*"]),
                            "allowed_methods": rules.get(
                                "allow_methods", DEFAULT_CORS_METHODS
                            ),
                            "allowed_origins": rules.get("allow_origins", ["*"]),
                            "expose_headers": rules.get("expose_headers"),
                            "max_age_seconds": to_seconds(
                                rules.get("max_age", "0 seconds")
                            ),
                        }
                    ],
                },
            )

        self.register_outputs({"name": self.name, "arn": self.arn})

    def _declare(
        self,
        resource_cls: type,
        hook: Transform | None,
        resource_name: str,
        args: dict[str, Any],
        opts: pulumi.ResourceOptions | None = None,
    ) -> Any:
        resource_name, args, opts = transform(
            hook,
            resource_name,
            args,
            opts or pulumi.ResourceOptions(parent=self),
        )
        return resource_cls(resource_name, opts=opts, **args)

    @property
    def name(self) -> pulumi.Output[str]:
        """The generated name of the S3 bucket."""
        return self.bucket.bucket

    @property
    def domain(self) -> pulumi.Output[str]:
        return self.bucket.bucket_domain_name

    @property
    def arn(self) -> pulumi.Output[str]:
        return self.bucket.arn

    @property
    def nodes(self) -> dict[str, Any]:
        return {"bucket": self.bucket}

    @classmethod
    def get(
        cls,
        name: str,
        bucket_name: pulumi.Input[str],
        opts: pulumi.ResourceOptions | None = None,
        registry: Registry | None = None,
    ) -> "Bucket":
        """Reference an existing bucket by its name."""
        return cls(name, ref=bucket_name, opts=opts, registry=registry)

    def get_link(self) -> LinkData:
        return LinkData(
            properties={"name": self.name},
            include=[
                permission(
                    actions=["s3:*"],
                    resources=[self.arn, pulumi.Output.concat(self.arn, "/*")],
                )
            ],
        )
