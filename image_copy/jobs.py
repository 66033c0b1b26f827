from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from uuid6 import uuid7

from image_copy.config import CopyMachineConfig
from image_copy.constants import Annotations, AuthFile, CopyJob, Transports
from image_copy.references import DispatchKey


@dataclass(frozen=True)
class JobRecord:
    """Read-only view of a batch/v1 Job as seen by the dispatcher."""

    name: str
    namespace: str
    active: int = 0
    completion_time: datetime | None = None
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Reclamation:
    blocking: bool
    to_delete: list[JobRecord]


def classify_jobs(jobs: list[JobRecord], now: datetime, stale_after: timedelta) -> Reclamation:
    """
    Decide which existing jobs block a new copy and which should be deleted.

    A running job blocks. A completed job blocks until it is older than stale_after,
    then it is deleted. A job that is neither running nor completed (failed or orphaned)
    is always deleted.

    Args:
        jobs (list[JobRecord]): jobs matching the dispatch key
        now (datetime): current time, timezone aware
        stale_after (timedelta): age after which a completed job no longer blocks

    Returns:
        Reclamation: blocking flag and jobs to delete

    """
    blocking = False
    to_delete: list[JobRecord] = []

    for job in jobs:
        if job.active > 0:
            blocking = True

        elif job.completion_time is not None:
            if now - job.completion_time <= stale_after:
                blocking = True
            else:
                to_delete.append(job)

        else:
            to_delete.append(job)

    return Reclamation(blocking=blocking, to_delete=to_delete)


def create_job_id() -> str:
    """Returns a time sortable unique id without dashes"""
    return uuid7().hex


def build_copy_args(source: str, target: str, config: CopyMachineConfig) -> list[str]:
    args = ["copy"]

    if config.copy.multi_arch:
        args.append(f"--multi-arch={config.copy.multi_arch}")
    if config.copy.authfile_src:
        args.append(f"--src-authfile={AuthFile.SRC_MOUNT_PATH}/{AuthFile.FILE_NAME}")
    if config.copy.authfile_dst:
        args.append(f"--dest-authfile={AuthFile.DST_MOUNT_PATH}/{AuthFile.FILE_NAME}")

    args.extend([f"{Transports.DOCKER}{source}", f"{Transports.DOCKER}{target}"])
    return args


def build_copy_job(
    source: str,
    target: str,
    key: DispatchKey,
    config: CopyMachineConfig,
    job_id: str | None = None,
) -> dict[str, Any]:
    """
    Build the batch/v1 Job manifest that runs skopeo copy.

    Args:
        source (str): canonical source image
        target (str): canonical target image
        key (DispatchKey): fingerprints of source and target
        config (CopyMachineConfig): process config
        job_id (str): id appended to the job name, generated when not given

    Returns:
        dict[str, Any]: Job manifest

    """
    labels = key.labels
    annotations = {
        Annotations.CopyMachine.SOURCE_IMAGE: source,
        Annotations.CopyMachine.TARGET_IMAGE: target,
    }

    volumes: list[dict[str, Any]] = []
    volume_mounts: list[dict[str, Any]] = []

    if config.copy.authfile_src:
        volumes.append({"name": AuthFile.SRC_VOLUME, "secret": {"secretName": config.copy.authfile_src}})
        volume_mounts.append({"name": AuthFile.SRC_VOLUME, "readOnly": True, "mountPath": AuthFile.SRC_MOUNT_PATH})

    if config.copy.authfile_dst:
        volumes.append({"name": AuthFile.DST_VOLUME, "secret": {"secretName": config.copy.authfile_dst}})
        volume_mounts.append({"name": AuthFile.DST_VOLUME, "readOnly": True, "mountPath": AuthFile.DST_MOUNT_PATH})

    container: dict[str, Any] = {
        "name": CopyJob.CONTAINER_NAME,
        "image": config.job.image,
        "args": build_copy_args(source=source, target=target, config=config),
    }
    if config.job.image_pull_policy:
        container["imagePullPolicy"] = config.job.image_pull_policy
    if volume_mounts:
        container["volumeMounts"] = volume_mounts

    pod_spec: dict[str, Any] = {
        "restartPolicy": CopyJob.RESTART_POLICY,
        "containers": [container],
    }
    if config.job.image_pull_secrets:
        pod_spec["imagePullSecrets"] = [{"name": name} for name in config.job.image_pull_secrets]
    if volumes:
        pod_spec["volumes"] = volumes

    return {
        "apiVersion": "batch/v1",
        "kind": "Job",
        "metadata": {
            "name": f"{CopyJob.NAME_PREFIX}{job_id or create_job_id()}",
            "namespace": config.job.namespace,
            "labels": dict(labels),
            "annotations": dict(annotations),
        },
        "spec": {
            "ttlSecondsAfterFinished": config.copy.ttl_seconds,
            "template": {
                "metadata": {
                    "labels": dict(labels),
                    "annotations": dict(annotations),
                },
                "spec": pod_spec,
            },
        },
    }
