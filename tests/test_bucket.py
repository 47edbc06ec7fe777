"""Tests for the Bucket component"""

import json

import pytest

from components.bucket import Bucket, policy_statements
from components.error import ValidationError


class TestPolicyStatements:
    def test_private_bucket_enforces_https(self):
        statements = policy_statements("arn:aws:s3:::b", None, True, [])
        assert statements == [
            {
                "Effect": "Deny",
                "Principal": "*",
                "Action": ["s3:*"],
                "Resource": ["arn:aws:s3:::b", "arn:aws:s3:::b/*"],
                "Condition": {"Bool": {"aws:SecureTransport": ["false"]}},
            }
        ]

    def test_public_read(self):
        (statement,) = policy_statements("arn:aws:s3:::b", "public", False, [])
        assert statement["Principal"] == "*"
        assert statement["Resource"] == ["arn:aws:s3:::b/*"]

    def test_cloudfront_read(self):
        (statement,) = policy_statements("arn:aws:s3:::b", "cloudfront", False, [])
        assert statement["Principal"] == {"Service": ["cloudfront.amazonaws.com"]}

    def test_custom_statement(self):
        (statement,) = policy_statements(
            "arn:aws:s3:::b",
            None,
            False,
            [
                {
                    "effect": "deny",
                    "actions": ["s3:DeleteObject"],
                    "principals": [{"type": "aws", "identifiers": ["arn:aws:iam::1:root"]}],
                    "paths": ["logs/*"],
                    "conditions": [
                        {
                            "test": "StringEquals",
                            "variable": "aws:PrincipalTag/team",
                            "values": ["web"],
                        }
                    ],
                }
            ],
        )
        assert statement == {
            "Effect": "Deny",
            "Principal": {"AWS": ["arn:aws:iam::1:root"]},
            "Action": ["s3:DeleteObject"],
            "Resource": ["arn:aws:s3:::b/logs/*"],
            "Condition": {"StringEquals": {"aws:PrincipalTag/team": ["web"]}},
        }

    def test_unknown_principal_type(self):
        with pytest.raises(ValidationError, match="robot"):
            policy_statements(
                "arn:aws:s3:::b",
                None,
                False,
                [{"actions": ["s3:*"], "principals": [{"type": "robot", "identifiers": []}]}],
            )


class TestBucket:
    def test_invalid_access(self, mocks, registry):
        with pytest.raises(ValidationError, match="private"):
            Bucket("Uploads", access="private", registry=registry)
        assert mocks.resources == []

    def test_default_resources(self, mocks, registry, deploy):
        def program():
            Bucket("Uploads", registry=registry)

        deploy(program)
        names = {r.name for r in mocks.resources}
        assert {
            "UploadsBucket",
            "UploadsPublicAccessBlock",
            "UploadsPolicy",
            "UploadsCors",
        } <= names
        assert "UploadsVersioning" not in names

        policy = json.loads(mocks.named("UploadsPolicy").inputs["policy"])
        assert policy["Statement"][0]["Effect"] == "Deny"

    def test_versioning_and_no_cors(self, mocks, registry, deploy):
        def program():
            Bucket("Uploads", versioning=True, cors=False, registry=registry)

        deploy(program)
        names = {r.name for r in mocks.resources}
        assert "UploadsVersioning" in names
        assert "UploadsCors" not in names

    def test_transforms(self, mocks, registry, deploy):
        def rename(args, opts, name):
            args["bucket"] = "shop-uploads"

        def program():
            Bucket(
                "Uploads",
                transform={"bucket": rename, "public_access_block": False},
                registry=registry,
            )

        deploy(program)
        assert mocks.named("UploadsBucket").inputs["bucket"] == "shop-uploads"
        assert not mocks.of_type(":BucketPublicAccessBlock")

    def test_reference_creates_nothing(self, mocks, registry, deploy):
        def program():
            bucket = Bucket.get("Uploads", "existing-bucket", registry=registry)
            assert bucket.nodes["bucket"] is bucket.bucket

        deploy(program)
        assert not mocks.of_type(":BucketPolicy")
        assert not mocks.of_type(":BucketCorsConfigurationV2")
