"""
Server-rendered sites: build plans and their deployment.

A framework's production build leaves a manifest and config files behind.
Each ``*_plan`` function reads them from the project directory and returns a
``BuildPlan``: the base path, where the server bundle lives and which
directories hold static assets. Plans are computed before anything is
declared, so a misconfigured build fails fast with a ``ValidationError`` and
never yields a partial plan.

``SsrSite`` deploys a plan: a nested assets ``Bucket`` with one object per
file, and a Lambda function (with a function URL) for the server. Framework
components only differ in how they build the plan.
"""

import abc
import json
import mimetypes
import os
import posixpath
import re
import shutil
from dataclasses import asdict, dataclass, field, replace
from typing import Any, Sequence

import pulumi
import pulumi_aws as aws

from components import _helpers, component
from components.bucket import Bucket
from components.component import Component, Registry, Transform
from components.error import ValidationError
from components.link import (
    LinkData,
    Linkable,
    get_include,
    get_properties,
    policy_document,
    properties_to_env,
)
from components.units import to_mbs, to_seconds

LAMBDA_PRESET = "aws-lambda"

VITE_CONFIG_FILES = (
    "vite.config.ts",
    "vite.config.js",
    "vite.config.mts",
    "vite.config.mjs",
)

CACHE_IMMUTABLE = "public,max-age=31536000,immutable"
CACHE_REVALIDATE = "public,max-age=0,s-maxage=86400,stale-while-revalidate=86400"
CACHE_NONE = "public,max-age=0,no-cache,no-store,must-revalidate"

LAMBDA_BASIC_EXECUTION = (
    "arn:aws:iam::aws:policy/service-role/AWSLambdaBasicExecutionRole"
)


@dataclass(frozen=True)
class ServerPlan:
    """
    Attributes:
        handler: Handler relative to the bundle, e.g. "index.handler".
        bundle: Absolute path of the directory deployed as the function.
        description: Function description.
        streaming: Serve responses with Lambda response streaming.
    """

    handler: str
    bundle: str
    description: str | None = None
    streaming: bool = False


@dataclass(frozen=True)
class AssetCopy:
    """
    Attributes:
        from_: Directory relative to the project, e.g. ".output/public".
        to: Key prefix in the assets bucket ("" for the root).
        cached: Whether files may be cached by browsers and CDNs.
        versioned_sub_dir: Sub-directory with content-hashed file names,
            safe to cache forever.
    """

    from_: str
    to: str
    cached: bool
    versioned_sub_dir: str | None = None


@dataclass(frozen=True)
class BuildPlan:
    base: str | None
    server: ServerPlan
    assets: list[AssetCopy] = field(default_factory=list)


def _read_text(path: str) -> str:
    try:
        with open(path, encoding="utf-8") as f:
            return f.read()
    except OSError as e:
        raise ValidationError(f'Could not read "{path}": {e.strerror}.') from e


def _read_json(path: str) -> dict[str, Any]:
    try:
        data = json.loads(_read_text(path))
    except json.JSONDecodeError as e:
        raise ValidationError(f'"{path}" is not valid JSON: {e.msg}.') from e
    if not isinstance(data, dict):
        raise ValidationError(f'"{path}" must contain a JSON object.')
    return data


def match_base(text: str, key: str) -> str | None:
    """Value of ``key: "..."`` in a config file, e.g. ``base: "/docs"``."""
    match = re.search(rf"""{key}: ['"](.*)['"]""", text)
    return match.group(1) if match else None


def read_nitro(path: str, framework: str, config_file: str) -> dict[str, Any]:
    """
    Load a Nitro build manifest and check it targets AWS Lambda.

    Raises:
        ValidationError: missing/invalid manifest, or another preset.
    """
    nitro = _read_json(path)
    preset = nitro.get("preset")
    if preset != LAMBDA_PRESET:
        raise ValidationError(
            f"{framework}'s {config_file} must be configured to use the "
            f'"{LAMBDA_PRESET}" preset. It is currently set to "{preset}".'
        )
    return nitro


def _streaming(nitro: dict[str, Any]) -> bool:
    config = nitro.get("config") or {}
    return (config.get("awsLambda") or {}).get("streaming") is True


def analog_plan(output_path: str) -> BuildPlan:
    analog = os.path.join(output_path, "dist", "analog")
    read_nitro(os.path.join(analog, "nitro.json"), "Analog", "vite.config.ts")
    base = match_base(_read_text(os.path.join(output_path, "vite.config.ts")), "base")
    return BuildPlan(
        base=base,
        server=ServerPlan(
            description="Server handler for Analog",
            handler="index.handler",
            bundle=os.path.join(analog, "server"),
        ),
        assets=[AssetCopy(from_=os.path.join("dist", "analog", "public"), to="", cached=True)],
    )


def nuxt_plan(output_path: str) -> BuildPlan:
    config = _read_text(os.path.join(output_path, "nuxt.config.ts"))
    return BuildPlan(
        base=match_base(config, "baseURL"),
        server=ServerPlan(
            description="Server handler for Nuxt",
            handler="index.handler",
            bundle=os.path.join(output_path, ".output", "server"),
        ),
        assets=[AssetCopy(from_=os.path.join(".output", "public"), to="", cached=True)],
    )


def solid_start_plan(output_path: str) -> BuildPlan:
    nitro = read_nitro(
        os.path.join(output_path, ".output", "nitro.json"),
        "SolidStart",
        "app.config.ts",
    )
    config = _read_text(os.path.join(output_path, "app.config.ts"))
    return BuildPlan(
        base=match_base(config, "baseURL"),
        server=ServerPlan(
            description="Server handler for Solid",
            handler="index.handler",
            bundle=os.path.join(output_path, ".output", "server"),
            streaming=_streaming(nitro),
        ),
        assets=[AssetCopy(from_=os.path.join(".output", "public"), to="", cached=True)],
    )


def tan_stack_start_plan(output_path: str) -> BuildPlan:
    """
    TanStack Start has no base path support. Its ``_server`` and ``api``
    public folders are removed so those routes reach the server function.
    """
    nitro = read_nitro(
        os.path.join(output_path, ".output", "nitro.json"),
        "TanStackStart",
        "app.config.ts",
    )
    public = os.path.join(output_path, ".output", "public")
    for route in ("_server", "api"):
        shutil.rmtree(os.path.join(public, route), ignore_errors=True)
    return BuildPlan(
        base=None,
        server=ServerPlan(
            description="Server handler for TanStack",
            handler="index.handler",
            bundle=os.path.join(output_path, ".output", "server"),
            streaming=_streaming(nitro),
        ),
        assets=[AssetCopy(from_=os.path.join(".output", "public"), to="", cached=True)],
    )


def remix_plan(output_path: str, build_directory: str | None = None) -> BuildPlan:
    """
    Vite builds put assets under ``<build>/client`` with hashed files in
    ``assets``; classic builds use ``public`` with hashed files in ``build``.
    """
    vite_config = next(
        (
            name
            for name in VITE_CONFIG_FILES
            if os.path.exists(os.path.join(output_path, name))
        ),
        None,
    )
    if vite_config is None:
        return BuildPlan(
            base=None,
            server=ServerPlan(
                description="Server handler for Remix",
                handler="index.handler",
                bundle=os.path.join(output_path, "build"),
                streaming=True,
            ),
            assets=[
                AssetCopy(from_="public", to="", cached=True, versioned_sub_dir="build")
            ],
        )

    build_dir = build_directory or "build"
    base = match_base(_read_text(os.path.join(output_path, vite_config)), "base")
    return BuildPlan(
        base=base,
        server=ServerPlan(
            description="Server handler for Remix",
            handler="server/index.handler",
            bundle=os.path.join(output_path, build_dir),
            streaming=True,
        ),
        assets=[
            AssetCopy(
                from_=os.path.join(build_dir, "client"),
                to="",
                cached=True,
                versioned_sub_dir="assets",
            )
        ],
    )


def normalize_plan(plan: BuildPlan) -> BuildPlan:
    """
    Give the base a leading slash and no trailing slash, and strip the slashes
    around asset key prefixes.
    """
    base = plan.base
    if base:
        base = base if base.startswith("/") else f"/{base}"
        base = re.sub(r"/$", "", base) or None
    assets = [
        replace(asset, to=re.sub(r"^/|/$", "", asset.to)) for asset in plan.assets
    ]
    return replace(plan, base=base, assets=assets)


def cache_control(asset: AssetCopy, relative_path: str) -> str:
    if not asset.cached:
        return CACHE_NONE
    if asset.versioned_sub_dir and relative_path.startswith(
        f"{asset.versioned_sub_dir}/"
    ):
        return CACHE_IMMUTABLE
    return CACHE_REVALIDATE


def asset_files(output_path: str, plan: BuildPlan) -> list[tuple[str, str, str]]:
    """
    ``(file path, bucket key, cache control)`` for every asset of a plan.

    Raises:
        ValidationError: an asset directory of the plan does not exist.
    """
    files = []
    for asset in plan.assets:
        root = os.path.join(output_path, asset.from_)
        if not os.path.isdir(root):
            raise ValidationError(
                f'The asset directory "{root}" does not exist. Make sure the '
                "site was built before deploying."
            )
        for directory, _, names in sorted(os.walk(root)):
            for filename in sorted(names):
                path = os.path.join(directory, filename)
                relative = os.path.relpath(path, root).replace(os.sep, "/")
                key = posixpath.join(asset.to, relative).lstrip("/")
                files.append((path, key, cache_control(asset, relative)))
    return files


class SsrSite(Component, Linkable):
    """
    Deploy a server-rendered site from its build output.

    Subclasses implement ``build_plan``. Resources: nested assets Bucket, one
    BucketObjectv2 per asset file, an IAM Role (plus a policy for linked
    permissions), a Lambda Function and its FunctionUrl.
    """

    def __init__(
        self,
        type_: str,
        name: str,
        path: str = ".",
        link: Sequence[Any] | None = None,
        environment: dict[str, pulumi.Input[str]] | None = None,
        memory: str = "1024 MB",
        timeout: str = "20 seconds",
        transform: dict[str, Transform] | None = None,
        opts: pulumi.ResourceOptions | None = None,
        registry: Registry | None = None,
    ):
        """
        Args:
            type_: Component type tag of the framework.
            name: Component name.
            path: Project directory holding the build output.
            link: Linkable components whose properties and permissions the
                server receives.
            environment: Extra environment variables for the server.
            memory: Server memory, e.g. "1024 MB".
            timeout: Server timeout, e.g. "20 seconds".
            transform: Hooks keyed by ``server`` and ``server_role``.
        """
        output_path = os.path.abspath(path)
        self.plan = normalize_plan(self.build_plan(output_path))
        files = asset_files(output_path, self.plan)
        memory_size = int(to_mbs(memory))
        timeout_seconds = to_seconds(timeout)

        super().__init__(type_, name, opts, registry)

        hooks = transform or {}
        links = list(link or [])
        properties = get_properties(links)
        child_opts = pulumi.ResourceOptions(parent=self)

        self.assets = Bucket(f"{name}Assets", access="public", opts=child_opts)
        for file_path, key, cache in files:
            aws.s3.BucketObjectv2(
                f"{name}Asset{_helpers.hash_string_to_pretty_string(key, 8)}",
                bucket=self.assets.name,
                key=key,
                source=pulumi.FileAsset(file_path),
                cache_control=cache,
                content_type=mimetypes.guess_type(file_path)[0]
                or "application/octet-stream",
                opts=child_opts,
            )

        role_name, role_args, role_opts = component.transform(
            hooks.get("server_role"),
            f"{name}ServerRole",
            {
                "assume_role_policy": json.dumps(
                    {
                        "Version": "2012-10-17",
                        "Statement": [
                            {
                                "Effect": "Allow",
                                "Principal": {"Service": "lambda.amazonaws.com"},
                                "Action": "sts:AssumeRole",
                            }
                        ],
                    }
                ),
            },
            child_opts,
        )
        self.role = aws.iam.Role(role_name, opts=role_opts, **role_args)
        aws.iam.RolePolicyAttachment(
            f"{name}ServerBasicExecution",
            role=self.role.name,
            policy_arn=LAMBDA_BASIC_EXECUTION,
            opts=child_opts,
        )
        # An IAM policy needs at least one statement.
        if any(item.get_link().include for item in links):
            aws.iam.RolePolicy(
                f"{name}ServerPolicy",
                role=self.role.id,
                policy=link_policy(links),
                opts=child_opts,
            )

        variables = pulumi.Output.all(
            properties_to_env(
                properties,
                self.registry.app,
                self.registry.stage,
            ),
            environment or {},
        ).apply(lambda args: {**args[0], **args[1]})

        server = self.plan.server
        function_name, function_args, function_opts = component.transform(
            hooks.get("server"),
            f"{name}Server",
            {
                "code": pulumi.FileArchive(server.bundle),
                "handler": server.handler,
                "runtime": "nodejs20.x",
                "role": self.role.arn,
                "memory_size": memory_size,
                "timeout": timeout_seconds,
                "description": server.description,
                "environment": {"variables": variables},
            },
            child_opts,
        )
        self.server = aws.lambda_.Function(
            function_name, opts=function_opts, **function_args
        )
        self.function_url = aws.lambda_.FunctionUrl(
            f"{name}ServerUrl",
            function_name=self.server.name,
            authorization_type="NONE",
            invoke_mode="RESPONSE_STREAM" if server.streaming else "BUFFERED",
            opts=child_opts,
        )

        base = self.plan.base
        self.url: pulumi.Output[str] = self.function_url.function_url.apply(
            lambda url: f"{url.rstrip('/')}{base}" if base else url
        )
        self.register_outputs({"url": self.url, "plan": asdict(self.plan)})

    @abc.abstractmethod
    def build_plan(self, output_path: str) -> BuildPlan:
        """Read the build output under ``output_path``."""

    @property
    def nodes(self) -> dict[str, Any]:
        return {
            "assets": self.assets,
            "server": self.server,
            "role": self.role,
        }

    def get_link(self) -> LinkData:
        return LinkData(properties={"url": self.url})


def link_policy(links: Sequence[Any]) -> pulumi.Output[str]:
    return get_include(links).apply(policy_document)


class Analog(SsrSite):
    def __init__(self, name: str, **kwargs: Any):
        super().__init__("cloudkit:aws:Analog", name, **kwargs)

    def build_plan(self, output_path: str) -> BuildPlan:
        return analog_plan(output_path)


class Nuxt(SsrSite):
    def __init__(self, name: str, **kwargs: Any):
        super().__init__("cloudkit:aws:Nuxt", name, **kwargs)

    def build_plan(self, output_path: str) -> BuildPlan:
        return nuxt_plan(output_path)


class Remix(SsrSite):
    """
    Remix site. ``build_directory`` matches Remix's ``buildDirectory``
    option for Vite builds.
    """

    def __init__(self, name: str, build_directory: str | None = None, **kwargs: Any):
        self.build_directory = build_directory
        super().__init__("cloudkit:aws:Remix", name, **kwargs)

    def build_plan(self, output_path: str) -> BuildPlan:
        return remix_plan(output_path, self.build_directory)


class SolidStart(SsrSite):
    def __init__(self, name: str, **kwargs: Any):
        super().__init__("cloudkit:aws:SolidStart", name, **kwargs)

    def build_plan(self, output_path: str) -> BuildPlan:
        return solid_start_plan(output_path)


class TanStackStart(SsrSite):
    def __init__(self, name: str, **kwargs: Any):
        super().__init__("cloudkit:aws:TanStackStart", name, **kwargs)

    def build_plan(self, output_path: str) -> BuildPlan:
        return tan_stack_start_plan(output_path)
