from __future__ import annotations

import os
from datetime import datetime
from typing import Any, Protocol

from kubernetes import client as kube_client
from kubernetes import config as kube_config
from kubernetes.dynamic import DynamicClient
from kubernetes.dynamic.exceptions import NotFoundError
from ocp_resources.job import Job
from simple_logger.logger import get_logger

from image_copy.constants import CopyJob, EnvVars
from image_copy.jobs import JobRecord

LOGGER = get_logger(name=__name__)


class JobBackend(Protocol):
    """The three batch/v1 Job operations the dispatcher needs."""

    def list_jobs(self, namespace: str, label_selector: str) -> list[JobRecord]: ...

    def delete_job(self, namespace: str, name: str) -> None: ...

    def create_job(self, namespace: str, manifest: dict[str, Any]) -> JobRecord: ...


class ClusterJobBackend:
    """
    JobBackend backed by a live cluster through ocp_resources.

    Every call is a single request and raises on the first failure, connection errors
    included. Create and delete go through Job.api, not Job.create()/Job.delete(),
    which retry cluster exceptions.
    """

    def __init__(self, client: DynamicClient):
        self.client = client

    def list_jobs(self, namespace: str, label_selector: str) -> list[JobRecord]:
        return [
            job_record_from_dict(data=job.to_dict())
            for job in Job.get(
                client=self.client,
                namespace=namespace,
                label_selector=label_selector,
                raw=True,
                exceptions_dict={},
            )
        ]

    def delete_job(self, namespace: str, name: str) -> None:
        job = Job(client=self.client, name=name, namespace=namespace)
        try:
            job.api.delete(name=name, namespace=namespace, body={"propagationPolicy": CopyJob.DELETE_PROPAGATION})
        except NotFoundError:
            LOGGER.warning(f"Job {namespace}/{name} was already gone")

    def create_job(self, namespace: str, manifest: dict[str, Any]) -> JobRecord:
        job = Job(
            client=self.client,
            name=manifest["metadata"]["name"],
            namespace=namespace,
            kind_dict=manifest,
        )
        created = job.api.create(body=manifest, namespace=namespace)
        return job_record_from_dict(data=created.to_dict())


def job_record_from_dict(data: dict[str, Any]) -> JobRecord:
    """
    Converts a Job as returned by the API server to a JobRecord.

    Args:
        data (dict[str, Any]): Job object

    Returns:
        JobRecord: the job's name, lifecycle fields, labels and annotations

    """
    metadata = data.get("metadata") or {}
    status = data.get("status") or {}
    completion_time = status.get("completionTime")

    return JobRecord(
        name=metadata["name"],
        namespace=metadata.get("namespace", ""),
        active=status.get("active") or 0,
        completion_time=parse_kubernetes_time(value=completion_time) if completion_time else None,
        labels=dict(metadata.get("labels") or {}),
        annotations=dict(metadata.get("annotations") or {}),
    )


def parse_kubernetes_time(value: str | datetime) -> datetime:
    # the dynamic client returns RFC 3339 strings, e.g. 2024-05-01T10:00:00Z
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def get_kubernetes_client() -> DynamicClient:
    """
    Create a DynamicClient from $KUBECONFIG when set, otherwise from the in-cluster service account.

    Returns:
        DynamicClient: client for the target cluster

    """
    if kubeconfig := os.environ.get(EnvVars.KUBECONFIG):
        LOGGER.info("KUBECONFIG is set, using kubeconfig")
        api_client = kube_config.new_client_from_config(config_file=kubeconfig)
    else:
        LOGGER.info("KUBECONFIG is not set, using in-cluster config")
        configuration = kube_client.Configuration()
        kube_config.load_incluster_config(client_configuration=configuration)
        api_client = kube_client.ApiClient(configuration=configuration)

    return DynamicClient(client=api_client)
