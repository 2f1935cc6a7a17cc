"""Shared test fixtures for vault-secret-sync tests."""

import copy
from unittest.mock import MagicMock, patch

import pytest
from kubernetes import client

from vault_secret_sync.annotations import ITEM_PATH_ANNOTATION, RESTART_ANNOTATION, VERSION_ANNOTATION
from vault_secret_sync.exceptions import ConflictError, ItemNotFoundError
from vault_secret_sync.models import Item, ItemField
from vault_secret_sync.secrets.building import encode_secret_data
from vault_secret_sync.secrets.parsing import is_managed_secret

VAULT_ID = "hfnjvi6aymbsnfc2xeeoheizda"
ITEM_ID = "nwrhuano7bcwddcviubpp4mhfq"
ITEM_PATH = f"vaults/{VAULT_ID}/items/{ITEM_ID}"


class FakeCluster:
    """In-memory stand-in for Cluster, keyed by (namespace, name).

    Objects are copied on the way in and out, like a real API server.
    """

    def __init__(self, secrets=(), workloads=()):
        self.secrets = {(s.metadata.namespace, s.metadata.name): copy.deepcopy(s) for s in secrets}
        self.workloads = {(w.metadata.namespace, w.metadata.name): copy.deepcopy(w) for w in workloads}
        self.secret_writes = []
        self.workload_patches = []
        self.conflicting_secrets = set()
        self.conflicting_workloads = set()

    def list_managed_secrets(self, namespaces):
        return [
            copy.deepcopy(secret)
            for (namespace, _), secret in self.secrets.items()
            if is_managed_secret(secret) and (namespaces is None or namespace in namespaces)
        ]

    def get_secret(self, name, namespace):
        secret = self.secrets.get((namespace, name))
        return copy.deepcopy(secret) if secret is not None else None

    def create_secret(self, secret):
        key = (secret.metadata.namespace, secret.metadata.name)
        if key in self.secrets:
            raise ConflictError(f"secret {key} already exists")
        self.secrets[key] = copy.deepcopy(secret)
        self.secret_writes.append(key)
        return copy.deepcopy(secret)

    def replace_secret(self, secret):
        key = (secret.metadata.namespace, secret.metadata.name)
        if key in self.conflicting_secrets:
            raise ConflictError(f"secret {key} was modified concurrently")
        self.secrets[key] = copy.deepcopy(secret)
        self.secret_writes.append(key)
        return copy.deepcopy(secret)

    def list_workloads(self, namespace):
        return [
            copy.deepcopy(workload)
            for (workload_namespace, _), workload in self.workloads.items()
            if namespace is None or workload_namespace == namespace
        ]

    def patch_workload_template_annotations(self, workload, annotations):
        key = (workload.metadata.namespace, workload.metadata.name)
        if key in self.conflicting_workloads:
            raise ConflictError(f"deployment {key} was modified concurrently")
        stored = self.workloads[key]
        if stored.spec.template.metadata is None:
            stored.spec.template.metadata = client.V1ObjectMeta()
        stored.spec.template.metadata.annotations = {
            **(stored.spec.template.metadata.annotations or {}),
            **annotations,
        }
        self.workload_patches.append(key)
        return copy.deepcopy(stored)

    def restart_trigger(self, name, namespace="default"):
        """Return the restart annotation of a stored deployment, if any."""
        metadata = self.workloads[(namespace, name)].spec.template.metadata
        return (metadata.annotations or {}).get(RESTART_ANNOTATION) if metadata else None


@pytest.fixture
def make_item():
    """Factory for vault items."""

    def _make(version=6, fields=(("username", "u"), ("password", "p")), vault_id=VAULT_ID, item_id=ITEM_ID):
        return Item(
            id=item_id,
            vault_id=vault_id,
            version=version,
            fields=tuple(ItemField(label=label, value=value) for label, value in fields),
        )

    return _make


@pytest.fixture
def make_secret():
    """Factory for managed secrets."""

    def _make(
        name="s",
        namespace="default",
        version="5",
        item_path=ITEM_PATH,
        data=None,
        annotations=None,
        secret_type="Opaque",
    ):
        all_annotations = {}
        if item_path is not None:
            all_annotations[ITEM_PATH_ANNOTATION] = item_path
        if version is not None:
            all_annotations[VERSION_ANNOTATION] = version
        all_annotations.update(annotations or {})
        return client.V1Secret(
            api_version="v1",
            kind="Secret",
            type=secret_type,
            metadata=client.V1ObjectMeta(
                name=name,
                namespace=namespace,
                annotations=all_annotations or None,
                resource_version="1",
            ),
            data=encode_secret_data(data if data is not None else {"password": b"old"}),
        )

    return _make


@pytest.fixture
def make_deployment():
    """Factory for deployments referencing secrets in various ways."""

    def _make(
        name="web",
        namespace="default",
        env_secret=None,
        env_from_secret=None,
        volume_secret=None,
        template_annotations=None,
        annotations=None,
        init_env_secret=None,
        uid="0f4c2b6e-1111-2222-3333-444455556666",
    ):
        env = []
        if env_secret is not None:
            env.append(
                client.V1EnvVar(
                    name="PASSWORD",
                    value_from=client.V1EnvVarSource(
                        secret_key_ref=client.V1SecretKeySelector(name=env_secret, key="password")
                    ),
                )
            )
        env.append(client.V1EnvVar(name="PLAIN", value="value"))
        env_from = [client.V1EnvFromSource(secret_ref=client.V1SecretEnvSource(name=env_from_secret))] if env_from_secret else None
        containers = [client.V1Container(name="app", image="app:latest", env=env, env_from=env_from)]

        init_containers = None
        if init_env_secret is not None:
            init_containers = [
                client.V1Container(
                    name="init",
                    image="init:latest",
                    env=[
                        client.V1EnvVar(
                            name="TOKEN",
                            value_from=client.V1EnvVarSource(
                                secret_key_ref=client.V1SecretKeySelector(name=init_env_secret, key="token")
                            ),
                        )
                    ],
                )
            ]

        volumes = [client.V1Volume(name="config", config_map=client.V1ConfigMapVolumeSource(name="config"))]
        if volume_secret is not None:
            volumes.append(client.V1Volume(name="creds", secret=client.V1SecretVolumeSource(secret_name=volume_secret)))

        return client.V1Deployment(
            api_version="apps/v1",
            kind="Deployment",
            metadata=client.V1ObjectMeta(
                name=name,
                namespace=namespace,
                annotations=annotations,
                uid=uid,
                resource_version="10",
            ),
            spec=client.V1DeploymentSpec(
                selector=client.V1LabelSelector(match_labels={"app": name}),
                template=client.V1PodTemplateSpec(
                    metadata=client.V1ObjectMeta(labels={"app": name}, annotations=template_annotations),
                    spec=client.V1PodSpec(containers=containers, init_containers=init_containers, volumes=volumes),
                ),
            ),
        )

    return _make


@pytest.fixture
def fake_cluster():
    """Factory for an in-memory cluster."""

    def _make(secrets=(), workloads=()):
        return FakeCluster(secrets=secrets, workloads=workloads)

    return _make


@pytest.fixture
def fake_vault():
    """Factory for a vault fetcher serving items by (vault_id, item_id)."""

    def _make(*items, errors=None):
        by_path = {(item.vault_id, item.id): item for item in items}
        errors = errors or {}
        fetcher = MagicMock()

        def _fetch(vault_id, item_id):
            if (vault_id, item_id) in errors:
                raise errors[(vault_id, item_id)]
            if (vault_id, item_id) not in by_path:
                raise ItemNotFoundError(f"vaults/{vault_id}/items/{item_id} not found", vault_id=vault_id, item_id=item_id)
            return by_path[(vault_id, item_id)]

        fetcher.fetch.side_effect = _fetch
        return fetcher

    return _make


@pytest.fixture
def mock_kube_contexts():
    """Mock kubernetes config contexts."""
    with patch("kubernetes.config.list_kube_config_contexts") as mock:
        mock.return_value = ([{"name": "test-context"}], {"name": "test-context"})
        yield mock


@pytest.fixture
def mock_kube_config():
    """Mock kubernetes config loading."""
    with patch("kubernetes.config.load_kube_config") as mock:
        yield mock


@pytest.fixture
def mock_core_v1_api():
    """Mock CoreV1Api."""
    with patch("kubernetes.client.CoreV1Api") as mock:
        api_instance = MagicMock()
        mock.return_value = api_instance
        yield api_instance


@pytest.fixture
def mock_apps_v1_api():
    """Mock AppsV1Api."""
    with patch("kubernetes.client.AppsV1Api") as mock:
        api_instance = MagicMock()
        mock.return_value = api_instance
        yield api_instance


@pytest.fixture
def cluster_mocks(mock_kube_contexts, mock_kube_config, mock_core_v1_api, mock_apps_v1_api, monkeypatch):
    """Combined fixture for creating a Cluster instance outside a pod."""
    monkeypatch.delenv("KUBERNETES_SERVICE_HOST", raising=False)
    return {
        "contexts": mock_kube_contexts,
        "config": mock_kube_config,
        "core_api": mock_core_v1_api,
        "apps_api": mock_apps_v1_api,
    }
