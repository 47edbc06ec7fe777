"""Pulumi mocks shared by the component tests."""

import pulumi
import pytest

from components.component import Registry


class Mocks(pulumi.runtime.Mocks):
    """Records every declared resource; fills in the outputs tests read."""

    def __init__(self):
        self.resources: list[pulumi.runtime.MockResourceArgs] = []

    def new_resource(self, args: pulumi.runtime.MockResourceArgs):
        self.resources.append(args)
        state = dict(args.inputs)
        physical = args.name.lower()
        if args.typ.endswith(":BucketV2"):
            state.setdefault("bucket", physical)
            state["arn"] = f"arn:aws:s3:::{state['bucket']}"
            state["bucketDomainName"] = f"{state['bucket']}.s3.amazonaws.com"
        elif args.typ.endswith(":FunctionUrl"):
            state["functionUrl"] = f"https://{physical}.lambda-url.us-east-1.on.aws/"
        else:
            state.setdefault("name", physical)
            state.setdefault("arn", f"arn:aws:mock:us-east-1:123456789012:{physical}")
        return [f"{args.name}-id", state]

    def call(self, args: pulumi.runtime.MockCallArgs):
        return {}

    def of_type(self, suffix: str) -> list[pulumi.runtime.MockResourceArgs]:
        return [r for r in self.resources if r.typ.endswith(suffix)]

    def named(self, name: str) -> pulumi.runtime.MockResourceArgs:
        return next(r for r in self.resources if r.name == name)


MOCKS = Mocks()
pulumi.runtime.set_mocks(MOCKS, preview=False)


def _deploy(program):
    pulumi.runtime.test(program)()


@pytest.fixture
def mocks():
    MOCKS.resources = []
    yield MOCKS


@pytest.fixture
def deploy():
    """Run a program under the mocks and wait until every resource is registered."""
    return _deploy


@pytest.fixture
def registry():
    yield Registry(app="shop", stage="dev")
    Registry._active = None
