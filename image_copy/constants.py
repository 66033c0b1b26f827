DEFAULT_CONFIG_FILE: str = "config.json"
SERVICE_ACCOUNT_NAMESPACE_FILE: str = "/var/run/secrets/kubernetes.io/serviceaccount/namespace"
ONE_DAY_SECONDS: int = 24 * 60 * 60


class DockerHub:
    DOMAIN: str = "docker.io"
    LIBRARY_NAMESPACE: str = "library"
    DEFAULT_TAG: str = "latest"


class Transports:
    DOCKER: str = "docker://"


class Labels:
    class CopyMachine:
        SOURCE_IMAGE: str = "com.yankeguo.skopeo-machine/copy.source-image"
        TARGET_IMAGE: str = "com.yankeguo.skopeo-machine/copy.target-image"


class Annotations:
    class CopyMachine:
        SOURCE_IMAGE: str = Labels.CopyMachine.SOURCE_IMAGE
        TARGET_IMAGE: str = Labels.CopyMachine.TARGET_IMAGE


class CopyJob:
    NAME_PREFIX: str = "skopeo-copy-"
    CONTAINER_NAME: str = "skopeo-copy"
    DEFAULT_IMAGE: str = "quay.io/skopeo/stable:latest"
    DEFAULT_MULTI_ARCH: str = "system"
    RESTART_POLICY: str = "OnFailure"
    DELETE_PROPAGATION: str = "Background"


class AuthFile:
    SRC_VOLUME: str = "authfile-src"
    DST_VOLUME: str = "authfile-dst"
    SRC_MOUNT_PATH: str = "/authfile-src"
    DST_MOUNT_PATH: str = "/authfile-dst"
    FILE_NAME: str = ".dockerconfigjson"


class EnvVars:
    KUBECONFIG: str = "KUBECONFIG"
    POD_NAMESPACE: str = "POD_NAMESPACE"


class HTTPRoutes:
    COPY_V1: str = "/skopeo-machine/v1/copy"
    LEGACY: str = "/"
    HEALTH: str = "/healthz"
