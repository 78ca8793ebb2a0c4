"""
Kubernetes adapter: a deployment's pods are the application instances
"""

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

import urllib3
import yaml
from kubernetes import client as k8s_client
from kubernetes import config as k8s_config
from kubernetes.client.exceptions import ApiException, OpenApiException
from kubernetes.config.config_exception import ConfigException
from kubernetes.utils import parse_quantity

from elastic_manager.platforms.base import AppClient, AppClientError, AppInstance

logger = logging.getLogger(__name__)

METRICS_GROUP = "metrics.k8s.io"
METRICS_VERSION = "v1beta1"
# metrics-server answers 404 for pods it has not scraped yet
METRICS_NOT_READY = 404

# Failures raised by the kubernetes client stack
_CLIENT_ERRORS = (OpenApiException, ConfigException, urllib3.exceptions.HTTPError, OSError)

# Kubeconfig loading also decodes base64 key material and walks untyped YAML nodes
_KUBECONFIG_ERRORS = _CLIENT_ERRORS + (ValueError, TypeError, KeyError, AttributeError)


class KubernetesAppInstance(AppInstance):
    """A pod of the deployment; metrics are read once per instance object"""

    def __init__(self, pod: Any, custom_api: Any, namespace: str):
        self._pod = pod
        self._custom_api = custom_api
        self._namespace = namespace
        self._usage: Optional[Dict[str, Decimal]] = None

    def get_name(self) -> str:
        name = getattr(self._pod.metadata, "name", None) if self._pod.metadata else None
        if not name:
            raise AppClientError("Pod has no name")
        return name

    def get_cpu_load(self) -> float:
        return self._load("cpu")

    def get_ram_load(self) -> float:
        return self._load("memory")

    def _load(self, resource: str) -> float:
        allotted = self._allotted(resource)
        if allotted <= 0:
            raise AppClientError(
                f"Pod {self.get_name()} declares no {resource} limits or requests"
            )
        return float(self._container_usage()[resource] / allotted)

    def _allotted(self, resource: str) -> Decimal:
        limits = Decimal(0)
        requests = Decimal(0)
        try:
            for container in self._pod.spec.containers or []:
                resources = container.resources
                if resources is None:
                    continue
                if resources.limits and resource in resources.limits:
                    limits += parse_quantity(resources.limits[resource])
                if resources.requests and resource in resources.requests:
                    requests += parse_quantity(resources.requests[resource])
        except (AttributeError, ValueError) as e:
            raise AppClientError(f"Malformed resources on pod {self.get_name()}: {e}") from e
        return limits or requests

    def _container_usage(self) -> Dict[str, Decimal]:
        if self._usage is not None:
            return self._usage

        name = self.get_name()
        usage = {"cpu": Decimal(0), "memory": Decimal(0)}
        try:
            metrics = self._custom_api.get_namespaced_custom_object(
                METRICS_GROUP, METRICS_VERSION, self._namespace, "pods", name
            )
        except ApiException as e:
            if e.status != METRICS_NOT_READY:
                raise AppClientError(f"No metrics for pod {name}: {e}") from e
            logger.debug(f"Pod {name} has no metrics yet, reporting zero load")
            self._usage = usage
            return usage
        except _CLIENT_ERRORS as e:
            raise AppClientError(f"No metrics for pod {name}: {e}") from e

        try:
            for container in metrics.get("containers", []):
                for resource in usage:
                    usage[resource] += parse_quantity(container["usage"][resource])
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise AppClientError(f"Malformed metrics for pod {name}: {e}") from e

        self._usage = usage
        return usage


class KubernetesAppClient(AppClient):
    """Deployment-backed elastic application"""

    def __init__(self, apps_api: Any, core_api: Any, custom_api: Any, namespace: str, deployment: str):
        self.apps_api = apps_api
        self.core_api = core_api
        self.custom_api = custom_api
        self.namespace = namespace
        self.deployment = deployment

    @classmethod
    def connect(cls, kubeconfig: str, namespace: str, deployment: str) -> "KubernetesAppClient":
        """Build API clients from kubeconfig text and check the deployment is readable"""
        try:
            config_dict = yaml.safe_load(kubeconfig)
        except yaml.YAMLError as e:
            raise AppClientError(f"Kubeconfig is not valid YAML: {e}") from e
        if not isinstance(config_dict, dict):
            raise AppClientError("Kubeconfig must be a YAML mapping")

        try:
            api_client = k8s_config.new_client_from_config_dict(config_dict, persist_config=False)
        except _KUBECONFIG_ERRORS as e:
            raise AppClientError(f"Unable to load kubeconfig: {e}") from e

        client = cls(
            k8s_client.AppsV1Api(api_client),
            k8s_client.CoreV1Api(api_client),
            k8s_client.CustomObjectsApi(api_client),
            namespace,
            deployment,
        )
        client.label_selector()
        return client

    def label_selector(self) -> str:
        try:
            deployment = self.apps_api.read_namespaced_deployment(self.deployment, self.namespace)
        except _CLIENT_ERRORS as e:
            raise AppClientError(
                f"Unable to read deployment {self.namespace}/{self.deployment}: {e}"
            ) from e

        selector = deployment.spec.selector if deployment.spec else None
        match_labels = selector.match_labels if selector else None
        if not match_labels:
            raise AppClientError(
                f"Deployment {self.namespace}/{self.deployment} has no matchLabels selector"
            )
        return ",".join(f"{key}={value}" for key, value in sorted(match_labels.items()))

    def get_app_instances(self) -> List[AppInstance]:
        selector = self.label_selector()
        try:
            pods = self.core_api.list_namespaced_pod(self.namespace, label_selector=selector)
        except _CLIENT_ERRORS as e:
            raise AppClientError(f"Unable to list pods for {selector}: {e}") from e

        logger.debug(f"Deployment {self.namespace}/{self.deployment} has {len(pods.items)} pods")
        return [KubernetesAppInstance(pod, self.custom_api, self.namespace) for pod in pods.items]

    def scale_instances(self, increment_by: int) -> None:
        try:
            scale = self.apps_api.read_namespaced_deployment_scale(self.deployment, self.namespace)
            current = (scale.spec.replicas if scale.spec else None) or 0
            replicas = max(0, current + increment_by)
            self.apps_api.patch_namespaced_deployment_scale(
                self.deployment, self.namespace, {"spec": {"replicas": replicas}}
            )
        except _CLIENT_ERRORS as e:
            raise AppClientError(
                f"Unable to scale deployment {self.namespace}/{self.deployment}: {e}"
            ) from e

        logger.info(f"Scaled {self.namespace}/{self.deployment} from {current} to {replicas} replicas")
