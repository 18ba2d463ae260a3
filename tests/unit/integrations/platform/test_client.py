"""Unit tests for the replicated-engine REST client."""

from __future__ import annotations

import httpx
import pytest
import respx
from httpx import Response
from pydantic import ValidationError

from openebs_ops.integrations.platform import (
    PlatformAPIError,
    PlatformClient,
    PlatformConfig,
    PlatformConnectionError,
)

BASE_URL = "http://openebs-api-rest:8081"


def _volume(uuid: str, replicas: int = 3, rebuilding: bool = False) -> dict[str, object]:
    child: dict[str, object] = {"uri": "bdev:///disk", "state": "Online"}
    if rebuilding:
        child["rebuildProgress"] = 42
    return {
        "spec": {"uuid": uuid, "num_replicas": replicas, "size": 1024},
        "state": {"uuid": uuid, "status": "Online", "target": {"children": [child]}},
    }


@pytest.fixture
def platform_config() -> PlatformConfig:
    """Config with a single attempt so failures don't back off."""
    return PlatformConfig(base_url=BASE_URL, retries=1)


@pytest.mark.unit
class TestPlatformConfig:
    """Test PlatformConfig validation."""

    def test_base_url_trailing_slash_stripped(self) -> None:
        """Test trailing slashes are removed."""
        assert PlatformConfig(base_url=f"{BASE_URL}/").base_url == BASE_URL

    def test_base_url_requires_scheme(self) -> None:
        """Test a URL without scheme is rejected."""
        with pytest.raises(ValidationError):
            PlatformConfig(base_url="openebs-api-rest:8081")

    def test_from_client_options(self) -> None:
        """Test building from Kubernetes credential options."""
        config = PlatformConfig.from_client_options(
            "https://10.0.0.1:6443/proxy",
            {"headers": {"Authorization": "Bearer t"}, "verify": "/ca.crt"},
        )
        assert config.headers == {"Authorization": "Bearer t"}
        assert config.verify_ssl == "/ca.crt"
        assert config.cert is None


@pytest.mark.unit
class TestPlatformClientVolumes:
    """Test volume listing."""

    @respx.mock
    def test_list_volumes_follows_next_token(self, platform_config: PlatformConfig) -> None:
        """Test every page is fetched until next_token is absent."""
        route = respx.get(f"{BASE_URL}/v0/volumes").mock(
            side_effect=[
                Response(200, json={"entries": [_volume("v1"), _volume("v2")], "next_token": 2}),
                Response(200, json={"entries": [_volume("v3", rebuilding=True)]}),
            ]
        )

        with PlatformClient(platform_config) as client:
            volumes = client.list_volumes(page_size=2)

        assert [v.uuid for v in volumes] == ["v1", "v2", "v3"]
        assert [v.rebuild_in_progress for v in volumes] == [False, False, True]
        assert route.call_count == 2
        assert route.calls[0].request.url.params["starting_token"] == "0"
        assert route.calls[0].request.url.params["max_entries"] == "2"
        assert route.calls[1].request.url.params["starting_token"] == "2"

    @respx.mock
    def test_list_volumes_empty(self, platform_config: PlatformConfig) -> None:
        """Test an empty listing."""
        respx.get(f"{BASE_URL}/v0/volumes").mock(return_value=Response(200, json={"entries": []}))

        with PlatformClient(platform_config) as client:
            assert client.list_volumes() == []

    def test_volume_without_target_is_not_rebuilding(self) -> None:
        """Test a volume that is not published reports no rebuild."""
        from openebs_ops.integrations.platform import Volume

        volume = Volume.model_validate({"spec": {"uuid": "v1", "num_replicas": 1}})
        assert volume.rebuild_in_progress is False

    def test_rebuild_progress_read_from_camel_case_field(self) -> None:
        """Test the API's rebuildProgress field marks the child as rebuilding."""
        from openebs_ops.integrations.platform import Volume

        volume = Volume.model_validate(
            {
                "spec": {"uuid": "v1", "num_replicas": 3},
                "state": {
                    "target": {
                        "children": [
                            {"uri": "bdev:///r1", "state": "Degraded", "rebuildProgress": 42},
                            {"uri": "bdev:///r2", "state": "Online"},
                        ]
                    }
                },
            }
        )

        assert volume.rebuild_in_progress is True
        assert volume.state.target.children[0].rebuild_progress == 42  # type: ignore[union-attr]


@pytest.mark.unit
class TestPlatformClientNodes:
    """Test node listing."""

    @respx.mock
    def test_list_nodes_reports_cordons(self, platform_config: PlatformConfig) -> None:
        """Test cordon state is derived from the node spec."""
        respx.get(f"{BASE_URL}/v0/nodes").mock(
            return_value=Response(
                200,
                json=[
                    {"id": "node-1", "spec": {"id": "node-1", "grpcEndpoint": "10.0.0.1:10124"}},
                    {
                        "id": "node-2",
                        "spec": {
                            "id": "node-2",
                            "cordondrainstate": {"cordonedstate": {"cordonlabels": ["upgrade"]}},
                        },
                    },
                ],
            )
        )

        with PlatformClient(platform_config) as client:
            nodes = client.list_nodes()

        assert [(n.id, n.is_cordoned) for n in nodes] == [("node-1", False), ("node-2", True)]


@pytest.mark.unit
class TestPlatformClientErrors:
    """Test error handling."""

    @respx.mock
    def test_error_status_raises_api_error(self, platform_config: PlatformConfig) -> None:
        """Test non-2xx responses raise PlatformAPIError with the details."""
        respx.get(f"{BASE_URL}/v0/nodes").mock(
            return_value=Response(503, json={"details": "control plane unavailable"})
        )

        with PlatformClient(platform_config) as client, pytest.raises(PlatformAPIError) as exc:
            client.list_nodes()

        assert exc.value.status_code == 503
        assert exc.value.message == "control plane unavailable"
        assert exc.value.endpoint == "/v0/nodes"

    @respx.mock
    def test_connect_error_raises_connection_error(
        self, platform_config: PlatformConfig
    ) -> None:
        """Test transport failures raise PlatformConnectionError."""
        respx.get(f"{BASE_URL}/v0/volumes").mock(side_effect=httpx.ConnectError("refused"))

        with PlatformClient(platform_config) as client, pytest.raises(PlatformConnectionError):
            client.list_volumes()
