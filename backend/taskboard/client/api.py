"""Async HTTP client for the Taskboard API.

Thin wrapper over httpx. Request and response data are plain dicts in the
API's wire format (camelCase task keys); the server already validates
everything, so the client does not duplicate the schemas.

Usage:
    async with TaskboardClient("http://localhost:8000") as client:
        await client.login("me@example.com", "hunter22x")
        body = await client.list_tasks(status="pending")
"""

from typing import Any

import httpx

_API_PREFIX = "/api"


class TaskboardClientError(Exception):
    """Non-2xx response from the API.

    Attributes:
        status_code: HTTP status of the response.
        message: The server's ``error`` message, or the reason phrase.
        code: The server's machine-readable error code, if any.
    """

    def __init__(
        self, status_code: int, message: str, code: str | None = None
    ) -> None:
        self.status_code = status_code
        self.message = message
        self.code = code
        super().__init__(f"{status_code}: {message}")

    @classmethod
    def from_response(cls, response: httpx.Response) -> "TaskboardClientError":
        """Build the error from an error envelope, tolerating non-JSON bodies."""
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and isinstance(body.get("error"), str):
            return cls(response.status_code, body["error"], body.get("code"))
        return cls(response.status_code, response.reason_phrase or "Request failed")


class TaskboardClient:
    """Async client for the auth and task endpoints.

    Holds the bearer token returned by register/login and sends it on every
    later request.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        *,
        http: httpx.AsyncClient | None = None,
        token: str | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Server root, used only when ``http`` is not given.
            http: Pre-configured httpx client (e.g. with an ASGI or mock
                transport). The caller keeps ownership of it.
            token: Bearer token to start with.
        """
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(base_url=base_url)
        self.token = token

    async def __aenter__(self) -> "TaskboardClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying httpx client if this instance created it."""
        if self._owns_http:
            await self._http.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        response = await self._http.request(
            method,
            f"{_API_PREFIX}{path}",
            json=json,
            params=params,
            headers=headers,
        )
        if response.is_error:
            raise TaskboardClientError.from_response(response)
        return response.json()

    # -------------------------------------------------------------------------
    # Auth
    # -------------------------------------------------------------------------

    async def register(self, email: str, password: str) -> dict[str, Any]:
        """Create an account and keep its token.

        Returns:
            The new user ({id, email, createdAt}).
        """
        body = await self._request(
            "POST", "/auth/register", json={"email": email, "password": password}
        )
        self.token = body["token"]
        return body["user"]

    async def login(self, email: str, password: str) -> dict[str, Any]:
        """Sign in and keep the returned token.

        Returns:
            The signed-in user ({id, email, createdAt}).
        """
        body = await self._request(
            "POST", "/auth/login", json={"email": email, "password": password}
        )
        self.token = body["token"]
        return body["user"]

    async def logout(self) -> None:
        """Tell the server to clear its cookie and forget the local token."""
        try:
            await self._request("POST", "/auth/logout")
        finally:
            self.token = None

    async def me(self) -> dict[str, Any]:
        """Return the user behind the current token."""
        body = await self._request("GET", "/auth/me")
        return body["user"]

    # -------------------------------------------------------------------------
    # Tasks
    # -------------------------------------------------------------------------

    async def list_tasks(
        self,
        *,
        page: int = 1,
        limit: int | None = None,
        search: str = "",
        status: str = "all",
    ) -> dict[str, Any]:
        """List one page of tasks.

        Returns:
            Dict with 'tasks' (list) and 'pagination' (page, limit, total, pages).
        """
        params: dict[str, Any] = {"page": page, "status": status}
        if limit is not None:
            params["limit"] = limit
        if search:
            params["search"] = search
        return await self._request("GET", "/tasks", params=params)

    async def create_task(
        self, title: str, description: str, status: str | None = None
    ) -> dict[str, Any]:
        """Create a task and return it."""
        payload: dict[str, Any] = {"title": title, "description": description}
        if status is not None:
            payload["status"] = status
        body = await self._request("POST", "/tasks", json=payload)
        return body["task"]

    async def get_task(self, task_id: str) -> dict[str, Any]:
        """Fetch one task by id."""
        body = await self._request("GET", f"/tasks/{task_id}")
        return body["task"]

    async def update_task(self, task_id: str, **fields: Any) -> dict[str, Any]:
        """Apply a partial update and return the updated task.

        Args:
            task_id: Task to update.
            **fields: Any of title, description, status.
        """
        body = await self._request("PUT", f"/tasks/{task_id}", json=fields)
        return body["task"]

    async def delete_task(self, task_id: str) -> None:
        """Delete a task."""
        await self._request("DELETE", f"/tasks/{task_id}")
