from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

import requests

from .retry import RetryConfig, TransientError, is_transient_status, parse_retry_after, run_with_retries

DEFAULT_API_URL = "https://api.github.com"
USER_AGENT = "subtaskgraph-rest/0.2.0"
HTTP_ERROR_STATUS = 400


class GitHubAPIError(RuntimeError):
    """Raised when the GitHub REST API returns an error."""

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        response_text: str | None = None,
    ):
        super().__init__(message)
        self.status = status
        self.response_text = response_text


@dataclass
class GitHubRestClient:
    """Lightweight REST client for the issue operations subtaskgraph needs."""

    token: str
    repo: str
    base_url: str = DEFAULT_API_URL
    session: requests.Session | None = None
    retry: RetryConfig | None = None
    _session: requests.Session = field(init=False, repr=False)

    def __post_init__(self) -> None:  # pragma: no cover - simple wiring
        self._session = self.session or requests.Session()
        self._session.headers.setdefault("Authorization", f"Bearer {self.token}")
        self._session.headers.setdefault("Accept", "application/vnd.github+json")
        self._session.headers.setdefault("User-Agent", USER_AGENT)

    # ---- REST helpers -------------------------------------------------
    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: Any | None = None,
    ) -> Any:
        url = (
            path
            if path.startswith("http")
            else f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"
        )

        def _run() -> requests.Response:
            try:
                response = self._session.request(
                    method,
                    url,
                    params=params,
                    json=json_body,
                    headers=self._session.headers,
                    timeout=30,
                )
            except (requests.ConnectionError, requests.Timeout) as exc:
                raise TransientError(f"{method} {url}: {exc}") from exc
            if is_transient_status(response.status_code, response.text or ""):
                raise TransientError(
                    f"GitHub API {method} {url} returned {response.status_code}",
                    retry_after=parse_retry_after(
                        getattr(response, "headers", {}).get("Retry-After")
                    ),
                )
            return response

        try:
            response = run_with_retries(_run, cfg=self.retry)
        except TransientError as exc:
            raise GitHubAPIError(str(exc)) from exc
        if response.status_code >= HTTP_ERROR_STATUS:
            raise GitHubAPIError(
                f"GitHub API {method} {url} failed with {response.status_code}",
                status=response.status_code,
                response_text=response.text,
            )
        if response.text:
            try:
                return response.json()
            except ValueError:  # pragma: no cover - defensive
                return response.text
        return None

    def _paginate(
        self, path: str, *, params: dict[str, Any] | None = None
    ) -> list[Any]:
        params = dict(params or {})
        per_page = params.setdefault("per_page", 100)
        params.setdefault("page", 1)
        results: list[Any] = []
        while True:
            data = self._request("GET", path, params=params)
            if not isinstance(data, list):
                break
            results.extend(data)
            if len(data) < per_page:
                break
            params["page"] = params.get("page", 1) + 1
        return results

    # ---- Issue operations --------------------------------------------
    def list_issues(self, *, state: str = "open") -> list[dict[str, Any]]:
        data = self._paginate(f"/repos/{self.repo}/issues", params={"state": state})
        return [entry for entry in data if isinstance(entry, dict)]

    def get_issue(self, number: int) -> dict[str, Any]:
        data = self._request("GET", f"/repos/{self.repo}/issues/{number}")
        if not isinstance(data, dict):
            raise GitHubAPIError(f"Unexpected payload for issue #{number}")
        return data

    def add_assignees(self, number: int, logins: Iterable[str]) -> None:
        self._request(
            "POST",
            f"/repos/{self.repo}/issues/{number}/assignees",
            json_body={"assignees": list(logins)},
        )

    def create_comment(self, number: int, body: str) -> None:
        self._request(
            "POST",
            f"/repos/{self.repo}/issues/{number}/comments",
            json_body={"body": body},
        )


__all__ = ["DEFAULT_API_URL", "GitHubAPIError", "GitHubRestClient"]
