"""
Idempotent dispatch of image copy jobs.

One lock per dispatcher covers list, reclaim, decide and create, so two
requests can never both create a job for the same source and target.
The lock is shared by all keys: unrelated copies are serialized as well.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable

from simple_logger.logger import get_logger

from image_copy.config import CopyMachineConfig
from image_copy.infra import JobBackend
from image_copy.jobs import build_copy_job, classify_jobs
from image_copy.references import DispatchKey, canonicalize_image

LOGGER = get_logger(name=__name__)


class DispatchStatus(Enum):
    ACCEPTED = "accepted"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class DispatchResult:
    status: DispatchStatus
    source: str
    target: str
    job_name: str | None = None
    deleted: list[str] = field(default_factory=list)


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


class CopyDispatcher:
    def __init__(
        self,
        backend: JobBackend,
        config: CopyMachineConfig,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.backend = backend
        self.config = config
        self.clock = clock
        self._lock = threading.Lock()

    @property
    def namespace(self) -> str:
        return self.config.job.namespace

    def dispatch(self, source: str, target: str) -> DispatchResult:
        """
        Create a copy job unless one for the same source and target is running or recently finished.

        Stale and orphaned jobs for the pair are deleted first, whether or not a new job is created.
        Backend errors propagate, a failed delete stops the dispatch before anything is created.

        Args:
            source (str): source image reference
            target (str): target image reference

        Returns:
            DispatchResult: accepted with the created job name, or skipped

        """
        with self._lock:
            LOGGER.info(f"copy from {source} to {target}")

            source = canonicalize_image(image=source)
            target = canonicalize_image(image=target)
            key = DispatchKey.from_images(source=source, target=target)

            existing = self.backend.list_jobs(namespace=self.namespace, label_selector=key.label_selector)
            reclamation = classify_jobs(
                jobs=existing,
                now=self.clock(),
                stale_after=timedelta(seconds=self.config.copy.stale_after_seconds),
            )

            deleted: list[str] = []
            for job in reclamation.to_delete:
                LOGGER.info(f"Deleting stale job {job.name}")
                self.backend.delete_job(namespace=self.namespace, name=job.name)
                deleted.append(job.name)

            if reclamation.blocking:
                LOGGER.info(f"Job for {source} -> {target} is active or still valid, skipping")
                return DispatchResult(status=DispatchStatus.SKIPPED, source=source, target=target, deleted=deleted)

            manifest = build_copy_job(source=source, target=target, key=key, config=self.config)
            created = self.backend.create_job(namespace=self.namespace, manifest=manifest)
            LOGGER.info(f"Created job {created.name} for {source} -> {target}")

            return DispatchResult(
                status=DispatchStatus.ACCEPTED,
                source=source,
                target=target,
                job_name=created.name,
                deleted=deleted,
            )
