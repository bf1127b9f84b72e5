"""Shared fixtures for the gateway tests."""

import pytest

from assetgate.index import build_index
from assetgate.pull import PullProxy
from tests.fakes import PARENT, FakeListingClient, FakeRegistry, docker_image, make_chart, registry_factory


@pytest.fixture(autouse=True)
def _reset_fake_registries():
    FakeRegistry.instances.clear()
    yield
    FakeRegistry.instances.clear()


@pytest.fixture
def credential_file(tmp_path):
    path = tmp_path / "key.json"
    path.write_text('{"type": "service_account"}')
    return path


@pytest.fixture
def images():
    return [
        docker_image("nginx", "sha256:1", tags=["v1", "latest"]),
        docker_image("nginx", "sha256:2", tags=["v2"]),
        docker_image("redis", "sha256:3", tags=["latest"]),
    ]


@pytest.fixture
def charts(images):
    return {
        images[0].uri: make_chart("nginx", "1.0.0"),
        images[1].uri: make_chart("nginx", "2.0.0"),
        images[2].uri: make_chart("redis", "7.2.0"),
    }


@pytest.fixture
def index(images):
    return build_index(FakeListingClient(images), PARENT)


@pytest.fixture
def proxy(credential_file, charts):
    return PullProxy(str(credential_file), client_factory=registry_factory(charts))
