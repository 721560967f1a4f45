"""Uniform client over the remote job APIs (research, quote calls, booking calls)."""

from typing import Any, Protocol

import httpx

from autoquote.errors import RemoteError
from autoquote.models.tasks import TaskHandle, TaskKind, TaskRequest, TaskStatus
from autoquote.telemetry.logger import get_logger


class TaskBackend(Protocol):
    """One remote service able to create tasks and report their status."""

    simulated: bool

    async def create(self, kind: TaskKind, request: TaskRequest) -> TaskHandle: ...

    async def status(self, kind: TaskKind, task_id: str) -> TaskStatus: ...

    async def aclose(self) -> None: ...


class HttpBackend:
    """Shared httpx plumbing for live backends.

    Every transport failure, non-2xx answer or non-JSON body is turned into a
    RemoteError. Nothing is retried here; waiting is the poller's job.
    """

    service = "remote"
    simulated = False

    def __init__(
        self,
        base_url: str,
        headers: dict[str, str],
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.headers = headers
        self.timeout = timeout
        self._http = http_client
        self.logger = get_logger(f"autoquote.clients.{self.service}")

    def _client(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(
                base_url=self.base_url, headers=self.headers, timeout=self.timeout
            )
        return self._http

    async def _request(self, method: str, path: str, json: Any = None) -> dict[str, Any]:
        try:
            response = await self._client().request(method, path, json=json)
        except httpx.HTTPError as e:
            self.logger.error(
                "Remote request failed",
                extra={
                    "service": self.service,
                    "method": method,
                    "path": path,
                    "error": str(e),
                    "error_type": type(e).__name__,
                    "operation": "remote_request_error",
                },
            )
            raise RemoteError(self.service, f"{method} {path} failed: {e}") from e

        if response.is_error:
            detail = _error_detail(response)
            self.logger.error(
                "Remote request returned error status",
                extra={
                    "service": self.service,
                    "method": method,
                    "path": path,
                    "status_code": response.status_code,
                    "detail": detail,
                    "operation": "remote_request_status",
                },
            )
            raise RemoteError(
                self.service, f"{method} {path} returned {response.status_code}: {detail}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise RemoteError(self.service, f"{method} {path} returned a non-JSON body") from e
        if not isinstance(data, dict):
            raise RemoteError(self.service, f"{method} {path} returned {type(data).__name__}")
        return data

    async def aclose(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return str(body)[:200]


class ExternalTaskClient:
    """Routes create/status calls for each task kind to its backend."""

    def __init__(self, backends: dict[TaskKind, TaskBackend]):
        self.backends = backends
        self.logger = get_logger("autoquote.task_client")

    def _backend(self, kind: TaskKind) -> TaskBackend:
        backend = self.backends.get(kind)
        if backend is None:
            raise RemoteError(kind.value, "no backend configured for this task kind")
        return backend

    def is_live(self, kind: TaskKind) -> bool:
        """True when tasks of this kind reach a real remote service."""
        backend = self.backends.get(kind)
        return backend is not None and not backend.simulated

    def supports(self, kind: TaskKind) -> bool:
        return kind in self.backends

    async def create_task(self, kind: TaskKind, request: TaskRequest) -> TaskHandle:
        """Create a remote task.

        Args:
            kind: Task kind
            request: Typed request for that kind

        Returns:
            Handle of the created task

        Raises:
            RemoteError: If the remote service rejected or never answered the request
        """
        handle = await self._backend(kind).create(kind, request)
        self.logger.info(
            "Remote task created",
            extra={
                "kind": kind.value,
                "task_id": handle.task_id,
                "view_url": handle.view_url,
                "operation": "task_create",
            },
        )
        return handle

    async def get_status(self, kind: TaskKind, task_id: str) -> TaskStatus:
        """Fetch and normalize the current status of a remote task.

        Raises:
            RemoteError: On transport failure or malformed response
        """
        status = await self._backend(kind).status(kind, task_id)
        self.logger.debug(
            "Remote task status fetched",
            extra={
                "kind": kind.value,
                "task_id": task_id,
                "raw_status": status.raw_status,
                "status": status.status.value,
                "operation": "task_status",
            },
        )
        return status

    async def aclose(self) -> None:
        closed: set[int] = set()
        for backend in self.backends.values():
            if id(backend) not in closed:
                closed.add(id(backend))
                await backend.aclose()
