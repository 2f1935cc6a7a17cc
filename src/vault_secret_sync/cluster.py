"""Kubernetes cluster interaction utilities.

This module provides the Cluster class, the only place that talks to the
Kubernetes API. It loads the client configuration, lists and writes
managed secrets, and lists and patches Deployments. Kubernetes client
errors are translated into operator exceptions here.
"""

import os
from typing import Any

import click
import questionary
from icecream import ic
from kubernetes import client, config
from kubernetes.client.exceptions import ApiException
from kubernetes.config.config_exception import ConfigException
from urllib3.exceptions import MaxRetryError

from vault_secret_sync import console
from vault_secret_sync.exceptions import ClusterConnectionError, ConflictError, UnknownSyncError, VaultSyncError
from vault_secret_sync.secrets.parsing import is_managed_secret
from vault_secret_sync.styles import POINTER, PROMPT_STYLE, QMARK

_IN_CLUSTER_CONTEXT = "in-cluster"


def _write_error(err: ApiException, target: str) -> VaultSyncError:
    """Translate a failed write into ConflictError or UnknownSyncError."""
    if err.status == 409:
        return ConflictError(f"{target} was modified concurrently, will retry next cycle")
    return UnknownSyncError(f"Failed to update {target}: {err.status} {err.reason}")


def _qualified(obj: Any) -> str:
    return f"{obj.metadata.namespace}/{obj.metadata.name}"


class Cluster:
    """Manages Kubernetes cluster interactions for the operator.

    Attributes:
        context: The active Kubernetes context name, or 'in-cluster'.
        core_v1: CoreV1Api used for secrets.
        apps_v1: AppsV1Api used for deployments.

    """

    def __init__(self, *, select_context: bool = False, in_cluster: bool | None = None) -> None:
        """Initialize Cluster and load the client configuration.

        Args:
            select_context: If True, prompt user to select a kubeconfig context.
                           Must be passed as a keyword argument.
            in_cluster: Use the pod service account. Defaults to True when
                        running inside a pod and no context selection was asked for.

        """
        if in_cluster is None:
            in_cluster = "KUBERNETES_SERVICE_HOST" in os.environ and not select_context

        if in_cluster:
            try:
                config.load_incluster_config()
            except ConfigException as e:
                raise ClusterConnectionError(f"Invalid in-cluster configuration: {e}") from e
            self.context: str = _IN_CLUSTER_CONTEXT
            console.action(f"Working with {console.highlight(self.context)} configuration")
        else:
            self.context = self._set_context(select_context=select_context)
            config.load_kube_config(context=self.context)

        self.core_v1: client.CoreV1Api = client.CoreV1Api()
        self.apps_v1: client.AppsV1Api = client.AppsV1Api()

    @staticmethod
    def _set_context(*, select_context: bool) -> str:
        """Set the Kubernetes context to use.

        Args:
            select_context: If True, prompt user to select a context.
                           Must be passed as a keyword argument.

        Returns:
            The selected or current context name.

        Raises:
            ClusterConnectionError: If kubeconfig is invalid or missing.
            click.Abort: If user cancels context selection.

        """
        try:
            contexts, current_context = config.list_kube_config_contexts()
        except ConfigException as e:
            raise ClusterConnectionError(f"Invalid or missing kubeconfig: {e}") from e
        if select_context:
            context_names: list[str] = [context["name"] for context in contexts]
            context: str | None = questionary.select(
                "Select context to work with",
                choices=context_names,
                style=PROMPT_STYLE,
                pointer=POINTER,
                qmark=QMARK,
            ).ask()
            if context is None:
                console.warning("Context selection cancelled.")
                raise click.Abort()
        else:
            context = str(current_context["name"])
        console.action(f"Working with {console.highlight(context)} cluster")
        return context

    def list_managed_secrets(self, namespaces: list[str] | None) -> list[client.V1Secret]:
        """List the secrets carrying the item-path annotation.

        Args:
            namespaces: Namespaces to scan, or None for the whole cluster.

        Returns:
            The managed secrets.

        Raises:
            ClusterConnectionError: If the cluster is unreachable or the
                listing is rejected.

        """
        try:
            if namespaces is None:
                secrets = self.core_v1.list_secret_for_all_namespaces().items
            else:
                secrets = [
                    secret for namespace in namespaces for secret in self.core_v1.list_namespaced_secret(namespace).items
                ]
        except MaxRetryError as e:
            raise ClusterConnectionError(f"Failed to connect to the Kubernetes cluster: {e.reason}") from e
        except ApiException as e:
            raise ClusterConnectionError(f"Failed to list secrets: {e.status} {e.reason}") from e

        managed = [secret for secret in secrets if is_managed_secret(secret)]
        ic([_qualified(secret) for secret in managed])
        return managed

    def get_secret(self, name: str, namespace: str) -> client.V1Secret | None:
        """Get a secret by name.

        Returns:
            The secret, or None if it does not exist.

        Raises:
            UnknownSyncError: If the lookup fails for another reason.

        """
        try:
            return self.core_v1.read_namespaced_secret(name, namespace)
        except ApiException as e:
            if e.status == 404:
                return None
            raise UnknownSyncError(f"Failed to read secret {namespace}/{name}: {e.status} {e.reason}") from e
        except MaxRetryError as e:
            raise UnknownSyncError(f"Failed to read secret {namespace}/{name}: {e.reason}") from e

    def create_secret(self, secret: client.V1Secret) -> client.V1Secret:
        """Create a secret.

        Raises:
            ConflictError: If a secret with the same name already exists.
            UnknownSyncError: If the creation fails for another reason.

        """
        try:
            return self.core_v1.create_namespaced_secret(secret.metadata.namespace, secret)
        except ApiException as e:
            raise _write_error(e, f"secret {_qualified(secret)}") from e
        except MaxRetryError as e:
            raise UnknownSyncError(f"Failed to create secret {_qualified(secret)}: {e.reason}") from e

    def replace_secret(self, secret: client.V1Secret) -> client.V1Secret:
        """Replace a secret with the given object.

        The object must carry the resourceVersion it was read with, so a
        concurrent modification is rejected instead of overwritten.

        Raises:
            ConflictError: If the secret changed since it was read.
            UnknownSyncError: If the update fails for another reason.

        """
        try:
            return self.core_v1.replace_namespaced_secret(secret.metadata.name, secret.metadata.namespace, secret)
        except ApiException as e:
            raise _write_error(e, f"secret {_qualified(secret)}") from e
        except MaxRetryError as e:
            raise UnknownSyncError(f"Failed to update secret {_qualified(secret)}: {e.reason}") from e

    def list_workloads(self, namespace: str | None) -> list[client.V1Deployment]:
        """List Deployments.

        Args:
            namespace: Namespace to list, or None for the whole cluster.

        Raises:
            ClusterConnectionError: If the cluster is unreachable or the
                listing is rejected.

        """
        try:
            if namespace is None:
                return self.apps_v1.list_deployment_for_all_namespaces().items
            return self.apps_v1.list_namespaced_deployment(namespace).items
        except MaxRetryError as e:
            raise ClusterConnectionError(f"Failed to connect to the Kubernetes cluster: {e.reason}") from e
        except ApiException as e:
            raise ClusterConnectionError(f"Failed to list deployments: {e.status} {e.reason}") from e

    def patch_workload_template_annotations(
        self, workload: client.V1Deployment, annotations: dict[str, str]
    ) -> client.V1Deployment:
        """Merge annotations into a Deployment's pod template metadata.

        Only the given annotation keys are touched, so the patch carries no
        resourceVersion precondition and status updates do not conflict.

        Raises:
            ConflictError: If the API server rejects the patch with a conflict.
            UnknownSyncError: If the patch fails for another reason.

        """
        body = {"spec": {"template": {"metadata": {"annotations": annotations}}}}
        ic(_qualified(workload), body)
        try:
            return self.apps_v1.patch_namespaced_deployment(workload.metadata.name, workload.metadata.namespace, body)
        except ApiException as e:
            raise _write_error(e, f"deployment {_qualified(workload)}") from e
        except MaxRetryError as e:
            raise UnknownSyncError(f"Failed to update deployment {_qualified(workload)}: {e.reason}") from e

    def __repr__(self) -> str:
        """Return a detailed string representation for debugging."""
        return f"Cluster(context={self.context!r})"
