"""Unit tests for K8sBaseManager."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from kubernetes.client import ApiException

from openebs_ops.integrations.kubernetes.client import KubernetesClient
from openebs_ops.integrations.kubernetes.exceptions import (
    KubernetesAuthError,
    KubernetesConflictError,
    KubernetesNotFoundError,
)
from openebs_ops.services.kubernetes.base import K8sBaseManager


@pytest.fixture
def mock_k8s_client() -> MagicMock:
    """Create a mock Kubernetes client that translates errors for real."""
    mock_client = MagicMock()
    mock_client.default_namespace = "default"
    mock_client.translate_api_exception.side_effect = KubernetesClient.translate_api_exception
    return mock_client


class TestK8sBaseManager:
    """Tests for K8sBaseManager base class."""

    @pytest.mark.unit
    @pytest.mark.kubernetes
    def test_init(self, mock_k8s_client: MagicMock) -> None:
        """Manager should initialize with client."""
        manager = K8sBaseManager(mock_k8s_client)

        assert manager._client == mock_k8s_client
        assert manager._log is not None

    @pytest.mark.unit
    @pytest.mark.kubernetes
    def test_resolve_namespace_with_explicit_namespace(self, mock_k8s_client: MagicMock) -> None:
        """Should return explicit namespace when provided."""
        manager = K8sBaseManager(mock_k8s_client)

        assert manager._resolve_namespace("openebs") == "openebs"

    @pytest.mark.unit
    @pytest.mark.kubernetes
    def test_resolve_namespace_with_none(self, mock_k8s_client: MagicMock) -> None:
        """Should return default namespace when None provided."""
        manager = K8sBaseManager(mock_k8s_client)

        assert manager._resolve_namespace(None) == "default"

    @pytest.mark.unit
    @pytest.mark.kubernetes
    def test_handle_api_error(self, mock_k8s_client: MagicMock) -> None:
        """Should translate API exception through client."""
        manager = K8sBaseManager(mock_k8s_client)
        error = ApiException(status=403, reason="Forbidden")

        with pytest.raises(KubernetesAuthError) as exc_info:
            manager._handle_api_error(
                error, resource_type="Job", resource_name="upgrade", namespace="openebs"
            )

        assert exc_info.value.__cause__ is error
        mock_k8s_client.translate_api_exception.assert_called_once_with(
            error, resource_type="Job", resource_name="upgrade", namespace="openebs"
        )


class TestCreateIfAbsent:
    """Tests for K8sBaseManager._create_if_absent."""

    @pytest.mark.unit
    @pytest.mark.kubernetes
    def test_created(self, mock_k8s_client: MagicMock) -> None:
        manager = K8sBaseManager(mock_k8s_client)
        create = MagicMock()

        assert manager._create_if_absent(create, "Job", "upgrade", "openebs") is True
        create.assert_called_once_with()

    @pytest.mark.unit
    @pytest.mark.kubernetes
    def test_conflict_means_already_exists(self, mock_k8s_client: MagicMock) -> None:
        manager = K8sBaseManager(mock_k8s_client)
        create = MagicMock(side_effect=ApiException(status=409, reason="AlreadyExists"))

        assert manager._create_if_absent(create, "ClusterRole", "upgrade-role") is False

    @pytest.mark.unit
    @pytest.mark.kubernetes
    def test_other_errors_raise_translated(self, mock_k8s_client: MagicMock) -> None:
        manager = K8sBaseManager(mock_k8s_client)
        create = MagicMock(side_effect=ApiException(status=403, reason="Forbidden"))

        with pytest.raises(KubernetesAuthError):
            manager._create_if_absent(create, "ClusterRole", "upgrade-role")


class TestDeleteIfPresent:
    """Tests for K8sBaseManager._delete_if_present."""

    @pytest.mark.unit
    @pytest.mark.kubernetes
    def test_deleted(self, mock_k8s_client: MagicMock) -> None:
        manager = K8sBaseManager(mock_k8s_client)
        delete = MagicMock()

        assert manager._delete_if_present(delete, "ConfigMap", "values", "openebs") is True
        delete.assert_called_once_with()

    @pytest.mark.unit
    @pytest.mark.kubernetes
    def test_not_found_means_absent(self, mock_k8s_client: MagicMock) -> None:
        manager = K8sBaseManager(mock_k8s_client)
        delete = MagicMock(side_effect=ApiException(status=404, reason="Not Found"))

        assert manager._delete_if_present(delete, "ConfigMap", "values", "openebs") is False

    @pytest.mark.unit
    @pytest.mark.kubernetes
    def test_conflict_is_raised(self, mock_k8s_client: MagicMock) -> None:
        manager = K8sBaseManager(mock_k8s_client)
        delete = MagicMock(side_effect=ApiException(status=409, reason="Conflict"))

        with pytest.raises(KubernetesConflictError):
            manager._delete_if_present(delete, "Job", "upgrade", "openebs")

    @pytest.mark.unit
    @pytest.mark.kubernetes
    def test_already_translated_errors_pass_through(self, mock_k8s_client: MagicMock) -> None:
        manager = K8sBaseManager(mock_k8s_client)
        delete = MagicMock(side_effect=KubernetesNotFoundError(resource_type="Job"))

        assert manager._delete_if_present(delete, "Job", "upgrade", "openebs") is False
