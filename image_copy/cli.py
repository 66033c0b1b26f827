from __future__ import annotations

import typer
import uvicorn
from kubernetes.config import ConfigException
from simple_logger.logger import get_logger

from image_copy.config import load_config
from image_copy.constants import DEFAULT_CONFIG_FILE
from image_copy.dispatcher import CopyDispatcher
from image_copy.exceptions import ConfigurationError
from image_copy.infra import ClusterJobBackend, get_kubernetes_client
from image_copy.server import create_app

LOGGER = get_logger(name=__name__)

app = typer.Typer(add_completion=False)


@app.command()
def serve(
    conf: str = typer.Option(DEFAULT_CONFIG_FILE, "--conf", help="Config file (JSON or YAML)"),
    host: str = typer.Option("0.0.0.0", "--host", help="Bind address"),
    port: int = typer.Option(8080, "--port", help="Bind port"),
) -> None:
    """Serve copy requests and dispatch them as skopeo copy Jobs."""
    try:
        config = load_config(config_file=conf)
        backend = ClusterJobBackend(client=get_kubernetes_client())
    except (ConfigurationError, ConfigException, OSError) as e:
        LOGGER.error(f"exit with error: {e}")
        raise typer.Exit(code=1) from e

    dispatcher = CopyDispatcher(backend=backend, config=config)
    uvicorn.run(create_app(dispatcher=dispatcher), host=host, port=port)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
