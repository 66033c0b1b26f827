from typing import Any


class ConfigurationError(Exception):
    pass


class MissingNamespaceError(ConfigurationError):
    def __init__(self, config_file: str):
        self.config_file = config_file

    def __str__(self) -> str:
        return (
            f"namespace is empty: not set in {self.config_file}, "
            "POD_NAMESPACE is not set and no service account namespace file was found"
        )


class InvalidConfigurationError(ConfigurationError):
    def __init__(self, config_file: str, field: str, value: Any = None):
        self.config_file = config_file
        self.field = field
        self.value = value

    def __str__(self) -> str:
        return f"invalid value for {self.field} in {self.config_file}: {self.value!r}"
