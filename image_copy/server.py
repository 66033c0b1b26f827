"""
HTTP surface of the copy machine.

``create_app()`` wires basic auth, error handlers and the copy routes around
a single CopyDispatcher. Routes are sync so each request runs on its own
worker thread and blocks on the dispatcher lock.
"""

from __future__ import annotations

import secrets
from typing import Any

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from kubernetes.client.exceptions import ApiException
from pydantic import BaseModel, Field
from simple_logger.logger import get_logger

from image_copy.config import AuthConfig
from image_copy.constants import HTTPRoutes
from image_copy.dispatcher import CopyDispatcher, DispatchResult
from image_copy.jobs import create_job_id

LOGGER = get_logger(name=__name__)

COPY_ACTION: str = "copy"


class HTTPError(Exception):
    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message

    def __str__(self) -> str:
        return self.message


class CopyRequest(BaseModel):
    source: str = Field(min_length=1)
    target: str = Field(min_length=1)


class CopyResponse(BaseModel):
    jobId: str
    status: str
    jobName: str | None = None


class LegacyRequest(BaseModel):
    action: str = ""
    source: str = ""
    target: str = ""


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message})


def credentials_match(credentials: HTTPBasicCredentials | None, auth: AuthConfig) -> bool:
    """Constant time check of basic auth credentials, a missing header counts as empty username and password"""
    username = credentials.username if credentials else ""
    password = credentials.password if credentials else ""

    username_ok = secrets.compare_digest(username.encode(), auth.username.encode())
    password_ok = secrets.compare_digest(password.encode(), auth.password.encode())
    return username_ok and password_ok


def create_app(dispatcher: CopyDispatcher) -> FastAPI:
    """
    Build the FastAPI application around a dispatcher.

    Args:
        dispatcher (CopyDispatcher): engine shared by all requests

    Returns:
        FastAPI: the application

    """
    app = FastAPI(title="image-copy-machine")
    app.state.dispatcher = dispatcher

    basic = HTTPBasic(auto_error=False)

    def require_basic_auth(credentials: HTTPBasicCredentials | None = Depends(basic)) -> None:
        if not credentials_match(credentials=credentials, auth=dispatcher.config.auth):
            raise HTTPError(status_code=status.HTTP_401_UNAUTHORIZED, message="Unauthorized")

    @app.exception_handler(HTTPError)
    async def http_error_handler(request: Request, exc: HTTPError) -> JSONResponse:
        response = error_response(status_code=exc.status_code, message=exc.message)
        if exc.status_code == status.HTTP_401_UNAUTHORIZED:
            response.headers["WWW-Authenticate"] = "Basic"
        return response

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return error_response(status_code=status.HTTP_400_BAD_REQUEST, message=_validation_message(exc=exc))

    @app.exception_handler(ApiException)
    async def backend_error_handler(request: Request, exc: ApiException) -> JSONResponse:
        LOGGER.error(f"Cluster request failed: {exc}")
        return error_response(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, message=str(exc))

    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        LOGGER.error(f"Request to {request.url.path} failed: {exc!r}")
        return error_response(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, message=str(exc))

    # connection errors to the cluster and anything else unexpected
    app.add_exception_handler(Exception, unhandled_error_handler)

    @app.get(HTTPRoutes.HEALTH)
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post(HTTPRoutes.COPY_V1, response_model=CopyResponse, dependencies=[Depends(require_basic_auth)])
    def copy_v1(body: CopyRequest) -> CopyResponse:
        job_id = create_job_id()
        result = dispatcher.dispatch(source=body.source, target=body.target)
        return _copy_response(job_id=job_id, result=result)

    @app.post(HTTPRoutes.LEGACY, dependencies=[Depends(require_basic_auth)])
    def legacy(body: LegacyRequest) -> dict[str, Any]:
        if body.action != COPY_ACTION:
            raise HTTPError(status_code=status.HTTP_400_BAD_REQUEST, message="action not supported")
        if not body.source:
            raise HTTPError(status_code=status.HTTP_400_BAD_REQUEST, message="source is empty")
        if not body.target:
            raise HTTPError(status_code=status.HTTP_400_BAD_REQUEST, message="target is empty")

        result = dispatcher.dispatch(source=body.source, target=body.target)
        return {"message": "OK", "status": result.status.value}

    return app


def _copy_response(job_id: str, result: DispatchResult) -> CopyResponse:
    return CopyResponse(jobId=job_id, status=result.status.value, jobName=result.job_name)


def _validation_message(exc: RequestValidationError) -> str:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return "; ".join(messages) or "invalid request"
