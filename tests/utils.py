import threading
import time
from datetime import datetime
from typing import Any

from image_copy.jobs import JobRecord
from image_copy.references import DispatchKey, canonicalize_image


class FakeJobBackend:
    """In-memory JobBackend that records every call made against it."""

    def __init__(self, jobs: list[JobRecord] | None = None, create_delay: float = 0.0):
        self.jobs: dict[str, JobRecord] = {job.name: job for job in jobs or []}
        self.calls: list[tuple[str, str]] = []
        self.created: list[dict[str, Any]] = []
        self.fail_on: dict[str, Exception] = {}
        self.create_delay = create_delay
        self._calls_lock = threading.Lock()

    def _record(self, operation: str, argument: str) -> None:
        with self._calls_lock:
            self.calls.append((operation, argument))
        if exc := self.fail_on.get(operation):
            raise exc

    def list_jobs(self, namespace: str, label_selector: str) -> list[JobRecord]:
        self._record(operation="list", argument=label_selector)
        wanted = dict(part.split("=", 1) for part in label_selector.split(","))
        return [
            job
            for job in self.jobs.values()
            if job.namespace == namespace and all(job.labels.get(key) == value for key, value in wanted.items())
        ]

    def delete_job(self, namespace: str, name: str) -> None:
        self._record(operation="delete", argument=name)
        self.jobs.pop(name, None)

    def create_job(self, namespace: str, manifest: dict[str, Any]) -> JobRecord:
        name = manifest["metadata"]["name"]
        self._record(operation="create", argument=name)
        # widens the window between list and create for concurrency tests
        if self.create_delay:
            time.sleep(self.create_delay)

        job = JobRecord(
            name=name,
            namespace=namespace,
            active=1,
            labels=dict(manifest["metadata"]["labels"]),
            annotations=dict(manifest["metadata"]["annotations"]),
        )
        self.jobs[name] = job
        self.created.append(manifest)
        return job

    def operations(self, operation: str) -> list[str]:
        return [argument for op, argument in self.calls if op == operation]


def job_for_images(
    name: str,
    source: str,
    target: str,
    namespace: str,
    active: int = 0,
    completion_time: datetime | None = None,
) -> JobRecord:
    """Returns a JobRecord labeled the way the dispatcher labels jobs for source and target"""
    return JobRecord(
        name=name,
        namespace=namespace,
        active=active,
        completion_time=completion_time,
        labels=DispatchKey.from_images(
            source=canonicalize_image(image=source),
            target=canonicalize_image(image=target),
        ).labels,
    )
