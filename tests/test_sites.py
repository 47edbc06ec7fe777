"""Tests for framework build plans and SSR site deployment"""

import json

import pytest

from components.error import ValidationError
from components.link import CustomLink, permission
from components.sites import (
    AssetCopy,
    BuildPlan,
    Nuxt,
    ServerPlan,
    SolidStart,
    SsrSite,
    analog_plan,
    asset_files,
    match_base,
    normalize_plan,
    nuxt_plan,
    remix_plan,
    solid_start_plan,
    tan_stack_start_plan,
)


def _write(path, content=""):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)


def _nitro(root, preset="aws-lambda", streaming=None):
    config = {} if streaming is None else {"awsLambda": {"streaming": streaming}}
    _write(root, json.dumps({"preset": preset, "config": config}))


class TestMatchBase:
    def test_double_quotes(self):
        assert match_base('export default { base: "/docs" }', "base") == "/docs"

    def test_single_quotes(self):
        assert match_base("  baseURL: '/app',", "baseURL") == "/app"

    def test_missing(self):
        assert match_base("export default {}", "base") is None


class TestAnalogPlan:
    def test_plan(self, tmp_path):
        _nitro(tmp_path / "dist" / "analog" / "nitro.json")
        _write(tmp_path / "vite.config.ts", 'export default { base: "/blog" }')
        plan = analog_plan(str(tmp_path))
        assert plan.base == "/blog"
        assert plan.server.bundle == str(tmp_path / "dist" / "analog" / "server")
        assert plan.server.handler == "index.handler"
        assert plan.assets[0].from_ == "dist/analog/public"

    def test_wrong_preset(self, tmp_path):
        _nitro(tmp_path / "dist" / "analog" / "nitro.json", preset="node-server")
        with pytest.raises(ValidationError) as e:
            analog_plan(str(tmp_path))
        assert str(e.value) == (
            "Analog's vite.config.ts must be configured to use the "
            '"aws-lambda" preset. It is currently set to "node-server".'
        )

    def test_missing_manifest(self, tmp_path):
        with pytest.raises(ValidationError, match="nitro.json"):
            analog_plan(str(tmp_path))


class TestNuxtPlan:
    def test_plan(self, tmp_path):
        _write(tmp_path / "nuxt.config.ts", "app: { baseURL: '/shop' }")
        plan = nuxt_plan(str(tmp_path))
        assert plan.base == "/shop"
        assert plan.server.bundle == str(tmp_path / ".output" / "server")
        assert not plan.server.streaming

    def test_missing_config(self, tmp_path):
        with pytest.raises(ValidationError, match="nuxt.config.ts"):
            nuxt_plan(str(tmp_path))


class TestSolidStartPlan:
    def test_streaming(self, tmp_path):
        _nitro(tmp_path / ".output" / "nitro.json", streaming=True)
        _write(tmp_path / "app.config.ts", "export default defineConfig({})")
        plan = solid_start_plan(str(tmp_path))
        assert plan.base is None
        assert plan.server.streaming

    def test_wrong_preset(self, tmp_path):
        _nitro(tmp_path / ".output" / "nitro.json", preset="vercel")
        with pytest.raises(ValidationError, match='SolidStart.*"vercel"'):
            solid_start_plan(str(tmp_path))

    def test_malformed_manifest(self, tmp_path):
        _write(tmp_path / ".output" / "nitro.json", "{preset")
        with pytest.raises(ValidationError, match="not valid JSON"):
            solid_start_plan(str(tmp_path))


class TestTanStackStartPlan:
    def test_removes_server_routes(self, tmp_path):
        _nitro(tmp_path / ".output" / "nitro.json")
        public = tmp_path / ".output" / "public"
        _write(public / "_server" / "fn.js")
        _write(public / "api" / "users.json")
        _write(public / "favicon.ico")
        plan = tan_stack_start_plan(str(tmp_path))
        assert plan.base is None
        assert not (public / "_server").exists()
        assert not (public / "api").exists()
        assert (public / "favicon.ico").exists()


class TestRemixPlan:
    def test_vite_build(self, tmp_path):
        _write(tmp_path / "vite.config.mjs", 'export default { base: "/remix" }')
        plan = remix_plan(str(tmp_path), build_directory="out")
        assert plan.base == "/remix"
        assert plan.server.handler == "server/index.handler"
        assert plan.server.bundle == str(tmp_path / "out")
        assert plan.assets == [
            AssetCopy(from_="out/client", to="", cached=True, versioned_sub_dir="assets")
        ]

    def test_classic_build(self, tmp_path):
        plan = remix_plan(str(tmp_path))
        assert plan.server.handler == "index.handler"
        assert plan.assets[0].from_ == "public"
        assert plan.assets[0].versioned_sub_dir == "build"


class TestAssetFiles:
    def test_cache_control(self, tmp_path):
        _write(tmp_path / "public" / "favicon.ico")
        _write(tmp_path / "public" / "build" / "app-1a2b.js")
        plan = remix_plan(str(tmp_path))
        files = {key: cache for _, key, cache in asset_files(str(tmp_path), plan)}
        assert files == {
            "build/app-1a2b.js": "public,max-age=31536000,immutable",
            "favicon.ico": "public,max-age=0,s-maxage=86400,stale-while-revalidate=86400",
        }

    def test_missing_directory(self, tmp_path):
        plan = remix_plan(str(tmp_path))
        with pytest.raises(ValidationError, match="does not exist"):
            asset_files(str(tmp_path), plan)


class TestNormalizePlan:
    def _plan(self, base, to=""):
        return BuildPlan(
            base=base,
            server=ServerPlan(handler="index.handler", bundle="/srv"),
            assets=[AssetCopy(from_="public", to=to, cached=True)],
        )

    def test_base_gets_leading_slash_only(self):
        assert normalize_plan(self._plan("shop/")).base == "/shop"

    def test_base_already_normalized(self):
        assert normalize_plan(self._plan("/shop")).base == "/shop"

    def test_no_base(self):
        assert normalize_plan(self._plan(None)).base is None

    def test_asset_prefix_slashes(self):
        assert normalize_plan(self._plan(None, to="/static/")).assets[0].to == "static"


def _nuxt_project(root):
    _write(root / "nuxt.config.ts", "export default defineNuxtConfig({})")
    _write(root / ".output" / "server" / "index.mjs", "export const handler = 1")
    _write(root / ".output" / "public" / "favicon.ico")
    _write(root / ".output" / "public" / "_nuxt" / "entry.js")


class TestSsrSite:
    def test_deploys_assets_and_server(self, tmp_path, mocks, registry, deploy):
        _nuxt_project(tmp_path)

        def program():
            site = Nuxt("Web", path=str(tmp_path), registry=registry)
            assert set(site.nodes) == {"assets", "server", "role"}

        deploy(program)
        assert len(mocks.of_type(":BucketObjectv2")) == 2
        server = mocks.named("WebServer")
        assert server.inputs["handler"] == "index.handler"
        assert server.inputs["memorySize"] == 1024
        assert server.inputs["timeout"] == 20
        assert mocks.named("WebServerUrl").inputs["invokeMode"] == "BUFFERED"
        assert not mocks.of_type(":RolePolicy")

    def test_linked_environment_and_policy(self, tmp_path, mocks, registry, deploy):
        _nuxt_project(tmp_path)

        def program():
            stripe = CustomLink(
                "Stripe",
                properties={"key": "sk_test"},
                include=[permission(actions=["ssm:GetParameter"], resources=["*"])],
                registry=registry,
            )
            Nuxt(
                "Web",
                path=str(tmp_path),
                link=[stripe],
                environment={"LOG_LEVEL": "debug"},
                registry=registry,
            )

        deploy(program)
        variables = mocks.named("WebServer").inputs["environment"]["variables"]
        assert json.loads(variables["CLOUDKIT_RESOURCE_Stripe"])["key"] == "sk_test"
        assert variables["LOG_LEVEL"] == "debug"
        policy = json.loads(mocks.named("WebServerPolicy").inputs["policy"])
        assert policy["Statement"][0]["Action"] == ["ssm:GetParameter"]

    def test_streaming_server(self, tmp_path, mocks, registry, deploy):
        _nitro(tmp_path / ".output" / "nitro.json", streaming=True)
        _write(tmp_path / "app.config.ts", "")
        _write(tmp_path / ".output" / "server" / "index.mjs")
        _write(tmp_path / ".output" / "public" / "favicon.ico")

        def program():
            SolidStart("Web", path=str(tmp_path), registry=registry)

        deploy(program)
        assert mocks.named("WebServerUrl").inputs["invokeMode"] == "RESPONSE_STREAM"

    def test_invalid_build_declares_nothing(self, tmp_path, mocks, registry):
        _nitro(tmp_path / ".output" / "nitro.json", preset="node-server")
        with pytest.raises(ValidationError, match="node-server"):
            SolidStart("Web", path=str(tmp_path), registry=registry)
        assert mocks.resources == []

    def test_server_transform(self, tmp_path, mocks, registry, deploy):
        _nuxt_project(tmp_path)

        def program():
            Nuxt(
                "Web",
                path=str(tmp_path),
                memory="2 GB",
                transform={"server": {"runtime": "nodejs22.x"}},
                registry=registry,
            )

        deploy(program)
        server = mocks.named("WebServer")
        assert server.inputs["runtime"] == "nodejs22.x"
        assert server.inputs["memorySize"] == 2048

    def test_base_path_in_url(self, tmp_path, mocks, registry, deploy):
        _nuxt_project(tmp_path)
        _write(tmp_path / "nuxt.config.ts", "app: { baseURL: 'shop/' }")

        def program():
            site = Nuxt("Web", path=str(tmp_path), registry=registry)
            assert site.plan.base == "/shop"

            def check(url):
                assert url == "https://webserverurl.lambda-url.us-east-1.on.aws/shop"

            return site.url.apply(check)

        deploy(program)

    def test_build_plan_is_required(self, tmp_path, registry):
        class Unplanned(SsrSite):
            def __init__(self, name, **kwargs):
                super().__init__("cloudkit:aws:Unplanned", name, **kwargs)

        with pytest.raises(TypeError, match="build_plan"):
            Unplanned("Web", path=str(tmp_path), registry=registry)
