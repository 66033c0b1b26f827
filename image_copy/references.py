import hashlib
from dataclasses import dataclass

from image_copy.constants import DockerHub, Labels


def canonicalize_image(image: str) -> str:
    """
    Normalize an image reference to registry/repository:tag form.

    Never raises: anything that does not look like a reference is passed on
    to skopeo, which reports the error from inside the Job.

    Args:
        image (str): image reference, e.g. "alpine" or "org/app:v1"

    Returns:
        str: fully qualified image reference

    """
    if ":" not in image:
        image = f"{image}:{DockerHub.DEFAULT_TAG}"

    parts = image.split("/")

    if len(parts) < 2:
        return f"{DockerHub.DOMAIN}/{DockerHub.LIBRARY_NAMESPACE}/{image}"

    # first part looks like a registry host, optionally with a port
    if "." in parts[0] or ":" in parts[0]:
        if len(parts) == 2 and parts[0] == DockerHub.DOMAIN:
            return f"{DockerHub.DOMAIN}/{DockerHub.LIBRARY_NAMESPACE}/{parts[1]}"
        return image

    return f"{DockerHub.DOMAIN}/{image}"


def image_fingerprint(image: str) -> str:
    """Returns the sha1 hex digest of a canonical image reference, usable as a label value"""
    return hashlib.sha1(image.encode()).hexdigest()


@dataclass(frozen=True)
class DispatchKey:
    """Fingerprints of a canonical (source, target) pair, used to find jobs of the same copy."""

    source: str
    target: str

    @classmethod
    def from_images(cls, source: str, target: str) -> "DispatchKey":
        return cls(source=image_fingerprint(image=source), target=image_fingerprint(image=target))

    @property
    def labels(self) -> dict[str, str]:
        return {
            Labels.CopyMachine.SOURCE_IMAGE: self.source,
            Labels.CopyMachine.TARGET_IMAGE: self.target,
        }

    @property
    def label_selector(self) -> str:
        return format_label_selector(labels=self.labels)


def format_label_selector(labels: dict[str, str]) -> str:
    """
    Creates an exact-match label selector string.

    Args:
        labels (dict[str, str]): labels to match

    Returns:
        str: selector in "key1=val1,key2=val2" form, sorted by key

    """
    return ",".join(f"{key}={value}" for key, value in sorted(labels.items()))
