"""Tests for both gateways through Flask's test client."""

import base64

import pytest
from google.api_core import exceptions as api_exceptions
from google.cloud import artifactregistry_v1

from assetgate.config import Config
from assetgate.errors import IndexBuildFailed
from assetgate.gateway import build_gateway, create_app
from assetgate.index import build_index
from assetgate.metadata import MetadataProxy
from assetgate.pull import PullProxy
from assetgate.routes import index_blueprint, metadata_blueprint
from tests.fakes import PARENT, FakeListingClient, FakeRegistry, docker_image, make_chart, registry_factory


@pytest.fixture
def client(index, proxy):
    app = create_app(index_blueprint(index, proxy))
    return app.test_client()


class TestIndexGateway:
    """Test digest- and tag-addressed downloads."""

    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.data == b"ok"

    def test_download_by_digest(self, client, charts, images):
        resp = client.get("/nginx@sha256:2")

        assert resp.status_code == 200
        assert resp.headers["Content-Disposition"] == "attachment; filename=nginx-2.0.0.tgz"
        assert resp.data == charts[images[1].uri]

    def test_download_by_tag(self, client, charts, images):
        resp = client.get("/nginx:latest")

        assert resp.status_code == 200
        assert resp.headers["Content-Disposition"] == "attachment; filename=nginx-1.0.0.tgz"
        assert resp.data == charts[images[0].uri]

    def test_digest_and_tag_serve_identical_bytes(self, credential_file):
        image = docker_image("b", "sha256:1", tags=["v1"])
        image.name = "a/b@sha256:1"
        charts = {image.uri: make_chart("b", "0.3.0")}

        app = create_app(index_blueprint(
            build_index(FakeListingClient([image]), "a"),
            PullProxy(str(credential_file), client_factory=registry_factory(charts)),
        ))
        client = app.test_client()

        by_digest = client.get("/b@sha256:1")
        by_tag = client.get("/b:v1")

        assert by_digest.status_code == by_tag.status_code == 200
        assert by_digest.data == by_tag.data == charts[image.uri]

    def test_nested_name_by_digest_and_tag(self, credential_file):
        image = docker_image("org%2Fchart", "sha256:1", tags=["v1"])
        charts = {image.uri: make_chart("chart", "0.4.0")}
        app = create_app(index_blueprint(
            build_index(FakeListingClient([image]), PARENT),
            PullProxy(str(credential_file), client_factory=registry_factory(charts)),
        ))
        client = app.test_client()

        by_digest = client.get("/org%2Fchart@sha256:1")
        by_tag = client.get("/org%2Fchart:v1")

        assert by_digest.status_code == by_tag.status_code == 200
        assert by_digest.data == by_tag.data == charts[image.uri]
        assert by_tag.headers["Content-Disposition"] == "attachment; filename=chart-0.4.0.tgz"

    def test_unknown_digest_is_404(self, client):
        resp = client.get("/nginx@sha256:9")
        assert resp.status_code == 404
        assert FakeRegistry.instances == []

    def test_unknown_tag_is_404(self, client):
        resp = client.get("/redis:v1")
        assert resp.status_code == 404

    def test_invalid_digest_is_400(self, client):
        resp = client.get("/nginx@notadigest")
        assert resp.status_code == 400

    def test_empty_components_do_not_resolve(self, client):
        assert client.get("/@sha256:1").status_code == 404
        assert client.get("/nginx@").status_code == 404
        assert client.get("/nginx:").status_code == 404

    def test_credential_failure_is_500_and_service_survives(self, index, charts, tmp_path):
        key = tmp_path / "key.json"
        app = create_app(index_blueprint(index, PullProxy(str(key), client_factory=registry_factory(charts))))
        client = app.test_client()

        resp = client.get("/nginx@sha256:1")
        assert resp.status_code == 500
        assert b"credential unavailable" in resp.data

        key.write_text("secret")
        assert client.get("/nginx@sha256:1").status_code == 200

    def test_login_failure_is_500(self, index, charts, credential_file):
        proxy = PullProxy(
            str(credential_file),
            client_factory=registry_factory(charts, login_error=ValueError("denied")),
        )
        client = create_app(index_blueprint(index, proxy)).test_client()

        resp = client.get("/nginx:v2")
        assert resp.status_code == 500
        assert b"authentication" in resp.data

    def test_pull_failure_is_500(self, index, credential_file):
        proxy = PullProxy(str(credential_file), client_factory=registry_factory({}))
        client = create_app(index_blueprint(index, proxy)).test_client()

        resp = client.get("/redis:latest")
        assert resp.status_code == 500
        assert b"pull of" in resp.data

    def test_favicon_probe_does_not_resolve(self, client):
        assert client.get("/favicon.ico").status_code == 404


def _image_message(segment):
    return artifactregistry_v1.DockerImage(
        name=f"{PARENT}/dockerImages/{segment}",
        uri=f"us-central1-docker.pkg.dev/acme/charts/{segment}",
        tags=["latest"],
        image_size_bytes=1024,
    )


class TestMetadataGateway:
    """Test the pass-through metadata gateway."""

    def _client(self, listing, auths=None):
        app = create_app(metadata_blueprint(MetadataProxy(listing, PARENT), auths))
        return app.test_client()

    def test_returns_backend_metadata(self):
        segment = "nginx@sha256:1"
        listing = FakeListingClient(metadata={f"{PARENT}/dockerImages/{segment}": _image_message(segment)})

        resp = self._client(listing).get(f"/{segment}")

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["name"] == f"{PARENT}/dockerImages/{segment}"
        assert body["tags"] == ["latest"]
        assert listing.get_calls == [f"{PARENT}/dockerImages/{segment}"]

    def test_nested_segment_is_passed_escaped(self):
        segment = "org%2Fchart@sha256:1"
        path = f"{PARENT}/dockerImages/{segment}"
        listing = FakeListingClient(metadata={path: _image_message(segment)})

        resp = self._client(listing).get("/org%2Fchart@sha256:1")

        assert resp.status_code == 200
        assert listing.get_calls == [path]

    def test_favicon_probe_never_reaches_backend(self):
        listing = FakeListingClient()
        resp = self._client(listing).get("/favicon.ico")

        assert resp.status_code == 404
        assert listing.get_calls == []

    def test_backend_error_is_500(self):
        listing = FakeListingClient(metadata_error=api_exceptions.InternalServerError("boom"))
        resp = self._client(listing).get("/nginx")

        assert resp.status_code == 500
        assert b"metadata lookup for nginx failed" in resp.data

    def test_health_is_open_with_allow_list(self):
        resp = self._client(FakeListingClient(), {"ci": "s3cret"}).get("/health")
        assert resp.status_code == 200

    def test_allow_list_rejects_missing_credentials(self):
        listing = FakeListingClient()
        resp = self._client(listing, {"ci": "s3cret"}).get("/nginx")

        assert resp.status_code == 401
        assert "Basic" in resp.headers["WWW-Authenticate"]
        assert listing.get_calls == []

    def test_allow_list_rejects_wrong_secret(self):
        token = base64.b64encode(b"ci:wrong").decode()
        resp = self._client(FakeListingClient(), {"ci": "s3cret"}).get(
            "/nginx", headers={"Authorization": f"Basic {token}"}
        )
        assert resp.status_code == 401

    def test_allow_list_accepts_configured_pair(self):
        listing = FakeListingClient(metadata={f"{PARENT}/dockerImages/nginx": _image_message("nginx")})
        token = base64.b64encode(b"ci:s3cret").decode()

        resp = self._client(listing, {"ci": "s3cret"}).get(
            "/nginx", headers={"Authorization": f"Basic {token}"}
        )
        assert resp.status_code == 200


class TestBuildGateway:
    """Test strategy selection from configuration."""

    @pytest.fixture
    def config(self, monkeypatch, credential_file):
        for name in ("REGION", "GATEWAY_MODE", "PORT"):
            monkeypatch.delenv(name, raising=False)
        monkeypatch.setenv("PROJECT", "acme")
        monkeypatch.setenv("REPOSITORY", "charts")
        monkeypatch.setenv("CREDENTIAL_PATH", str(credential_file))
        cfg = Config()
        cfg.validate()
        return cfg

    def test_index_mode_builds_index_first(self, config, images, charts):
        listing = FakeListingClient(images)
        app = build_gateway(config, listing_client=listing, registry_factory=registry_factory(charts))

        assert listing.list_calls == [{"parent": PARENT}]
        assert app.test_client().get("/redis:latest").status_code == 200

    def test_metadata_mode_skips_index(self, config):
        config.GATEWAY_MODE = "metadata"
        listing = FakeListingClient()
        app = build_gateway(config, listing_client=listing)

        assert listing.list_calls == []
        assert app.test_client().get("/favicon.ico").status_code == 404

    def test_index_failure_propagates(self, config, images):
        with pytest.raises(IndexBuildFailed):
            build_gateway(config, listing_client=FakeListingClient(images, fail_after=0))
