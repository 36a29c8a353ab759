"""HTTP client for the Todoist REST (v2) and Sync (v9) APIs.

``TodoistClient`` is a thin synchronous wrapper over ``httpx.Client``:
it adds bearer auth, a per-request timeout, bounded retry of transient
failures, and maps HTTP failures onto a small exception hierarchy so the CLI
can report them uniformly.

Example usage:
    with TodoistClient(token) as client:
        projects = client.get_projects()
        result = client.sync([ItemMove(id="1", section_id="2")])
        result.raise_for_status()
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

import httpx

from todoist_cli.core.commands import SyncCommand, payloads
from todoist_cli.core.models import (
    Comment,
    Label,
    Project,
    Section,
    Task,
    labels_from_api,
    projects_from_api,
    sections_from_api,
    tasks_from_api,
)
from todoist_cli.core.resilience import MEDIUM_TIMEOUT, retry_with_backoff

logger = logging.getLogger(__name__)

DEFAULT_REST_URL = "https://api.todoist.com/rest/v2"
DEFAULT_SYNC_URL = "https://api.todoist.com/sync/v9/sync"
DEFAULT_MAX_RETRIES = 2


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class TodoistAPIError(Exception):
    """Base exception for Todoist API failures.

    Attributes:
        message: Human-readable error message
        status_code: HTTP status code, when a response was received
        retryable: Whether retrying the request could succeed
        original_error: The underlying exception, if any
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        retryable: bool = False,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.retryable = retryable
        self.original_error = original_error


class AuthenticationError(TodoistAPIError):
    """The API rejected the token (401/403)."""

    def __init__(self, message: str = "Invalid or expired API token", *, status_code: int = 401):
        super().__init__(message, status_code=status_code, retryable=False)


class RateLimitError(TodoistAPIError):
    """Too many requests (429)."""

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        *,
        retry_after: Optional[float] = None,
    ):
        super().__init__(message, status_code=429, retryable=True)
        self.retry_after = retry_after


class APITimeoutError(TodoistAPIError):
    """A request did not complete within the configured timeout."""

    def __init__(self, message: str, *, timeout: Optional[float] = None, original_error=None):
        super().__init__(message, retryable=True, original_error=original_error)
        self.timeout = timeout


@dataclass(frozen=True)
class CommandFailure:
    """One sync command the server refused."""

    uuid: str
    type: str
    target_id: Optional[str]
    error: str
    error_code: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "uuid": self.uuid,
            "type": self.type,
            "target_id": self.target_id,
            "error": self.error,
            "error_code": self.error_code,
        }


class SyncCommandError(TodoistAPIError):
    """Some commands of a grouped sync request failed.

    Successful siblings are not rolled back; ``succeeded`` lists their uuids.
    """

    def __init__(self, failures: Sequence[CommandFailure], succeeded: Sequence[str] = ()):
        count = len(failures)
        noun = "command" if count == 1 else "commands"
        summary = "; ".join(f"{f.type} {f.target_id or ''}: {f.error}".strip() for f in failures)
        super().__init__(f"{count} sync {noun} failed: {summary}", retryable=False)
        self.failures = list(failures)
        self.succeeded = list(succeeded)


# ---------------------------------------------------------------------------
# Sync results
# ---------------------------------------------------------------------------


@dataclass
class SyncResult:
    """Outcome of one grouped sync request."""

    commands: List[SyncCommand]
    statuses: Dict[str, Any] = field(default_factory=dict)
    temp_id_mapping: Dict[str, str] = field(default_factory=dict)

    def ok(self, command: SyncCommand) -> bool:
        return self.statuses.get(command.uuid) == "ok"  # type: ignore[attr-defined]

    def succeeded(self) -> List[SyncCommand]:
        return [c for c in self.commands if self.ok(c)]

    def failures(self) -> List[CommandFailure]:
        failed = []
        for command in self.commands:
            status = self.statuses.get(command.uuid)  # type: ignore[attr-defined]
            if status == "ok":
                continue
            if isinstance(status, Mapping):
                error = str(status.get("error") or status)
                code = status.get("error_code")
            else:
                error = "No status returned" if status is None else str(status)
                code = None
            failed.append(
                CommandFailure(
                    uuid=command.uuid,  # type: ignore[attr-defined]
                    type=command.type,
                    target_id=command.target_id,
                    error=error,
                    error_code=code,
                )
            )
        return failed

    def created_id(self, command: SyncCommand) -> Optional[str]:
        """Real id assigned to a create command's temp id."""
        temp_id = getattr(command, "temp_id", None)
        if temp_id is None:
            return None
        real = self.temp_id_mapping.get(temp_id)
        return str(real) if real is not None else None

    def raise_for_status(self) -> "SyncResult":
        failures = self.failures()
        if failures:
            raise SyncCommandError(failures, [c.uuid for c in self.succeeded()])  # type: ignore[attr-defined]
        return self


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class TodoistClient:
    """Synchronous Todoist API client.

    Args:
        token: Personal API token.
        rest_url: REST API base URL.
        sync_url: Sync API endpoint URL.
        timeout: Per-request timeout in seconds.
        max_retries: Retries for transient failures (0 disables).
        retry_base_delay: First backoff delay in seconds.
        transport: Optional httpx transport (tests use ``httpx.MockTransport``).
        sleep: Sleep function used between retries.
    """

    def __init__(
        self,
        token: str,
        *,
        rest_url: str = DEFAULT_REST_URL,
        sync_url: str = DEFAULT_SYNC_URL,
        timeout: float = MEDIUM_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_base_delay: float = 1.0,
        transport: Optional[httpx.BaseTransport] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._rest_url = rest_url.rstrip("/")
        self._sync_url = sync_url
        self._timeout = timeout
        self._max_retries = max_retries
        self._retry_base_delay = retry_base_delay
        self._sleep = sleep
        self._http = httpx.Client(
            headers={"Authorization": f"Bearer {token}"},
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_config(cls, config: Any, **kwargs: Any) -> "TodoistClient":
        """Build a client from a ``ClientConfig`` (token must be present)."""
        return cls(
            config.require_token(),
            rest_url=config.rest_url,
            sync_url=config.sync_url,
            timeout=config.timeout,
            max_retries=config.max_retries,
            retry_base_delay=config.retry_base_delay,
            **kwargs,
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "TodoistClient":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    # -- transport ---------------------------------------------------------

    def _send(self, method: str, url: str, **kwargs: Any) -> Any:
        try:
            response = self._http.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise APITimeoutError(
                f"Request to {url} timed out after {self._timeout}s",
                timeout=self._timeout,
                original_error=e,
            ) from e
        except httpx.RequestError as e:
            raise TodoistAPIError(
                f"Network error contacting Todoist: {e}",
                retryable=True,
                original_error=e,
            ) from e

        if response.status_code in (401, 403):
            raise AuthenticationError(
                f"Todoist rejected the API token ({response.status_code})",
                status_code=response.status_code,
            )
        if response.status_code == 429:
            raise RateLimitError(retry_after=self._parse_retry_after(response))
        if response.status_code >= 400:
            raise TodoistAPIError(
                f"API error {response.status_code}: {self._extract_error_message(response)}",
                status_code=response.status_code,
                retryable=response.status_code >= 500,
            )
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise TodoistAPIError(
                f"Malformed response from {url}",
                status_code=response.status_code,
                original_error=e,
            ) from e

    def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        logger.debug("%s %s", method, url)
        return retry_with_backoff(
            lambda: self._send(method, url, **kwargs),
            max_retries=self._max_retries,
            base_delay=self._retry_base_delay,
            retryable_exceptions=[TodoistAPIError],
            should_retry=lambda exc: getattr(exc, "retryable", False),
            retry_delay=lambda exc: getattr(exc, "retry_after", None),
            sleep=self._sleep,
        )

    def _rest(self, method: str, path: str, **kwargs: Any) -> Any:
        return self._request(method, f"{self._rest_url}{path}", **kwargs)

    @staticmethod
    def _parse_retry_after(response: httpx.Response) -> Optional[float]:
        retry_after = response.headers.get("Retry-After")
        if retry_after:
            try:
                return float(retry_after)
            except ValueError:
                return None
        return None

    @staticmethod
    def _extract_error_message(response: httpx.Response) -> str:
        try:
            data = response.json()
        except ValueError:
            return response.text[:200] if response.text else "Unknown error"
        if isinstance(data, Mapping):
            return str(data.get("error") or data.get("message") or data)[:200]
        return str(data)[:200]

    # -- REST reads --------------------------------------------------------

    def get_projects(self) -> List[Project]:
        return projects_from_api(self._rest("GET", "/projects") or [])

    def get_sections(self, project_id: Optional[str] = None) -> List[Section]:
        params = {"project_id": project_id} if project_id else None
        return sections_from_api(self._rest("GET", "/sections", params=params) or [])

    def get_tasks(
        self,
        *,
        project_id: Optional[str] = None,
        section_id: Optional[str] = None,
        label: Optional[str] = None,
        filter: Optional[str] = None,
        ids: Optional[Iterable[str]] = None,
    ) -> List[Task]:
        params: Dict[str, str] = {}
        if project_id:
            params["project_id"] = project_id
        if section_id:
            params["section_id"] = section_id
        if label:
            params["label"] = label
        if filter:
            params["filter"] = filter
        if ids:
            params["ids"] = ",".join(str(i) for i in ids)
        return tasks_from_api(self._rest("GET", "/tasks", params=params or None) or [])

    def get_task(self, task_id: str) -> Task:
        return Task.from_api(self._rest("GET", f"/tasks/{task_id}"))

    def get_labels(self) -> List[Label]:
        return labels_from_api(self._rest("GET", "/labels") or [])

    # -- REST writes -------------------------------------------------------

    def add_task(self, content: str, **fields: Any) -> Task:
        """Create a task. ``fields`` are REST field names; None values are dropped."""
        body = {"content": content, **{k: v for k, v in fields.items() if v is not None}}
        data = self._rest(
            "POST",
            "/tasks",
            json=body,
            headers={"X-Request-Id": str(uuid.uuid4())},
        )
        return Task.from_api(data)

    def close_task(self, task_id: str) -> None:
        self._rest("POST", f"/tasks/{task_id}/close")

    def add_comment(
        self,
        content: str,
        *,
        task_id: Optional[str] = None,
        project_id: Optional[str] = None,
    ) -> Comment:
        if bool(task_id) == bool(project_id):
            raise ValueError("A comment needs exactly one of task_id or project_id")
        body: Dict[str, Any] = {"content": content}
        if task_id:
            body["task_id"] = task_id
        else:
            body["project_id"] = project_id
        data = self._rest(
            "POST",
            "/comments",
            json=body,
            headers={"X-Request-Id": str(uuid.uuid4())},
        )
        return Comment.from_api(data)

    # -- Sync API ----------------------------------------------------------

    def sync(self, commands: Sequence[SyncCommand]) -> SyncResult:
        """Submit commands as one grouped request.

        The result is returned even when some commands failed; call
        ``raise_for_status()`` to turn failures into ``SyncCommandError``.
        """
        commands = list(commands)
        if not commands:
            return SyncResult(commands=[])
        logger.debug("Submitting %d sync command(s)", len(commands))
        data = self._request(
            "POST",
            self._sync_url,
            json={"commands": payloads(commands)},
        ) or {}
        return SyncResult(
            commands=commands,
            statuses=dict(data.get("sync_status") or {}),
            temp_id_mapping={
                str(k): str(v) for k, v in (data.get("temp_id_mapping") or {}).items()
            },
        )

    def sync_read(self, resource_types: Sequence[str]) -> Dict[str, Any]:
        """Full sync read of the given resource types."""
        return (
            self._request(
                "POST",
                self._sync_url,
                json={"sync_token": "*", "resource_types": list(resource_types)},
            )
            or {}
        )

    # -- Sync API reads ----------------------------------------------------

    def _sync_endpoint(self, path: str) -> str:
        # sibling of the /sync endpoint, e.g. .../sync/v9/activity/get
        return f"{self._sync_url.rstrip('/').rsplit('/', 1)[0]}/{path}"

    def get_activity(
        self,
        *,
        object_type: Optional[str] = None,
        object_id: Optional[str] = None,
        event_type: Optional[str] = None,
        parent_project_id: Optional[str] = None,
        parent_item_id: Optional[str] = None,
        since: Optional[str] = None,
        until: Optional[str] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> Dict[str, Any]:
        """One page of the activity log (``{"events": [...], "count": n}``)."""
        params = {
            key: str(value)
            for key, value in (
                ("object_type", object_type),
                ("object_id", object_id),
                ("event_type", event_type),
                ("parent_project_id", parent_project_id),
                ("parent_item_id", parent_item_id),
                ("since", since),
                ("until", until),
                ("limit", limit),
                ("offset", offset),
            )
            if value is not None
        }
        return self._request("GET", self._sync_endpoint("activity/get"), params=params) or {}

    def get_completed(
        self,
        *,
        project_id: Optional[str] = None,
        since: Optional[str] = None,
        until: Optional[str] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Completed tasks (``{"items": [...], "projects": {...}}``)."""
        params = {
            key: str(value)
            for key, value in (
                ("project_id", project_id),
                ("since", since),
                ("until", until),
                ("limit", limit),
                ("offset", offset),
            )
            if value is not None
        }
        return (
            self._request("GET", self._sync_endpoint("completed/get_all"), params=params)
            or {}
        )

    def get_productivity_stats(self) -> Dict[str, Any]:
        """Karma, goals and streaks."""
        return self._request("GET", self._sync_endpoint("completed/get_stats")) or {}
