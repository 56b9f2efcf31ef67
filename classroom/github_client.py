"""
Async GitHub API client used by the request handlers and background jobs
"""

from typing import Any, Dict, List, Optional

import httpx
import structlog

from classroom.config import settings

logger = structlog.get_logger()


class GitHubError(Exception):
    """Generic failure talking to GitHub"""

    def __init__(self, message: str, status_code: Optional[int] = None, response_data: Optional[dict] = None):
        self.message = message
        self.status_code = status_code
        self.response_data = response_data
        super().__init__(message)


class GitHubNotFound(GitHubError):
    pass


class GitHubForbidden(GitHubError):
    pass


def _error_for_status(status_code: int, data: Any) -> GitHubError:
    message = data.get("message") if isinstance(data, dict) else None
    message = message or f"GitHub API error: {status_code}"
    if status_code == 404:
        return GitHubNotFound(message, status_code=status_code, response_data=data)
    if status_code == 403:
        return GitHubForbidden(message, status_code=status_code, response_data=data)
    return GitHubError(message, status_code=status_code, response_data=data)


class GitHubClient:
    """Token-authenticated GitHub client"""

    def __init__(self, token: str, transport: Optional[httpx.AsyncBaseTransport] = None):
        if not token:
            raise ValueError("GitHub token is required")

        self.token = token
        self.base_url = settings.GITHUB_API_URL
        self.headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
        }
        self.transport = transport

    async def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            async with httpx.AsyncClient(
                headers=self.headers,
                transport=self.transport,
                timeout=httpx.Timeout(30.0),
            ) as client:
                response = await client.request(method, url, **kwargs)
        except httpx.RequestError as e:
            logger.error("GitHub API request failed", error=str(e), url=url)
            raise GitHubError(f"Request failed: {e}") from e

        if response.status_code >= 400:
            try:
                data = response.json()
            except ValueError:
                data = {"message": response.text}
            logger.warning("GitHub API error", status_code=response.status_code, url=url)
            raise _error_for_status(response.status_code, data)

        return response.json() if response.content else {}

    async def repository(self, full_name: str) -> Dict[str, Any]:
        """Look up a repository by ``owner/name``."""
        return await self._request("GET", f"/repos/{full_name}")

    async def create_repository(
        self,
        org_login: str,
        name: str,
        private: bool = True,
        template_repo_id: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Create a repository in an organization, optionally from a template repository."""
        payload = {"name": name, "private": private}
        if template_repo_id is None:
            return await self._request("POST", f"/orgs/{org_login}/repos", json=payload)

        template = await self._request("GET", f"/repositories/{template_repo_id}")
        payload["owner"] = org_login
        return await self._request("POST", f"/repos/{template['full_name']}/generate", json=payload)

    async def create_org_hook(
        self,
        org_login: str,
        url: str,
        secret: str = "",
        events: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        payload = {
            "name": "web",
            "active": True,
            "events": events or ["*"],
            "config": {"url": url, "content_type": "json", "secret": secret},
        }
        return await self._request("POST", f"/orgs/{org_login}/hooks", json=payload)
