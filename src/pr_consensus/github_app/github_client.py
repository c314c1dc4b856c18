"""GitHub API client for reading pull request state and publishing check runs."""

import base64
import logging
import time
import jwt
import requests
from typing import Optional, Dict, Any, List
from datetime import datetime, timedelta, timezone

from ..utils.settings import Settings

logger = logging.getLogger(__name__)

ACCEPT_HEADER = "application/vnd.github+json"
PER_PAGE = 100
GRAPHQL_NOT_FOUND = "NOT_FOUND"


class TransportError(Exception):
    """A GitHub API call failed; the current event cannot be processed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class GitHubAuthError(TransportError):
    """The app could not authenticate against GitHub."""


def _graphql_messages(errors: List[Dict[str, Any]]) -> str:
    return "; ".join(str(error.get("message", error)) for error in errors)


class GitHubClient:
    """GitHub API client for GitHub App operations."""

    def __init__(self, settings: Optional[Settings] = None):
        """Initialize GitHub client.

        Args:
            settings: Application settings. Defaults to values from the environment.
        """
        settings = settings or Settings.from_env()
        self.app_id = settings.app_id
        self.private_key = settings.private_key

        if not self.app_id or not self.private_key:
            raise ValueError(
                "GitHub App credentials not configured. "
                "Set GITHUB_APP_ID and GITHUB_APP_PRIVATE_KEY environment variables."
            )

        self.base_url = settings.api_url
        self.timeout = settings.request_timeout
        self._installation_tokens: Dict[int, tuple[str, datetime]] = {}

    def _generate_jwt(self) -> str:
        """Generate JWT for GitHub App authentication."""
        now = int(time.time())
        payload = {
            "iat": now - 60,  # clock drift allowance
            "exp": now + (10 * 60),
            "iss": self.app_id,
        }

        return jwt.encode(payload, self.private_key, algorithm="RS256")

    def get_installation_token(self, installation_id: int) -> str:
        """Get installation access token (cached until shortly before expiry).

        Args:
            installation_id: GitHub App installation ID

        Returns:
            Installation access token
        """
        if installation_id in self._installation_tokens:
            token, expires_at = self._installation_tokens[installation_id]
            if datetime.now(timezone.utc) < expires_at - timedelta(minutes=5):
                return token

        url = f"{self.base_url}/app/installations/{installation_id}/access_tokens"
        try:
            response = requests.post(
                url,
                headers={
                    "Authorization": f"Bearer {self._generate_jwt()}",
                    "Accept": ACCEPT_HEADER,
                },
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise TransportError(f"Installation token request failed: {e}") from e

        if response.status_code == 401:
            raise GitHubAuthError(
                f"GitHub App authentication failed (401 Unauthorized). "
                f"Check that GITHUB_APP_ID ({self.app_id}) and the private key match "
                f"the app installed as {installation_id}. Response: {response.text}",
                status_code=401,
            )
        self._raise_for_status(response, "POST", url)

        data = response.json()
        token = data["token"]
        expires_at = datetime.fromisoformat(data["expires_at"].replace("Z", "+00:00"))
        self._installation_tokens[installation_id] = (token, expires_at)
        logger.debug(f"Refreshed installation token for {installation_id}")

        return token

    @staticmethod
    def _raise_for_status(response: requests.Response, method: str, url: str) -> None:
        if response.status_code >= 400:
            raise TransportError(
                f"GitHub API {method} {url} failed with HTTP {response.status_code}: "
                f"{response.text[:500]}",
                status_code=response.status_code,
            )

    def _request(
        self,
        method: str,
        installation_id: int,
        url: str,
        allow_not_found: bool = False,
        **kwargs: Any,
    ) -> Optional[requests.Response]:
        token = self.get_installation_token(installation_id)
        try:
            response = requests.request(
                method,
                url,
                headers={
                    "Authorization": f"Bearer {token}",
                    "Accept": ACCEPT_HEADER,
                },
                timeout=self.timeout,
                **kwargs,
            )
        except requests.RequestException as e:
            raise TransportError(f"GitHub API {method} {url} failed: {e}") from e

        if allow_not_found and response.status_code == 404:
            return None
        self._raise_for_status(response, method, url)
        return response

    def _get_paginated(self, installation_id: int, url: str) -> List[Dict[str, Any]]:
        """Follow ``Link: rel=next`` headers and concatenate the pages."""
        items: List[Dict[str, Any]] = []
        params: Optional[Dict[str, Any]] = {"per_page": PER_PAGE}
        next_url: Optional[str] = url
        while next_url:
            response = self._request("GET", installation_id, next_url, params=params)
            items.extend(response.json())
            next_url = response.links.get("next", {}).get("url")
            # the next link already carries the query string
            params = None
        return items

    def get_file_contents(
        self,
        installation_id: int,
        repo_full_name: str,
        path: str,
    ) -> Optional[str]:
        """Read a file from the repository's default branch.

        Args:
            installation_id: GitHub App installation ID
            repo_full_name: Full repo name (owner/repo)
            path: File path relative to repo root

        Returns:
            Decoded file text, or None if the file does not exist
        """
        url = f"{self.base_url}/repos/{repo_full_name}/contents/{path}"
        response = self._request("GET", installation_id, url, allow_not_found=True)
        if response is None:
            return None

        data = response.json()
        if not isinstance(data, dict) or data.get("type") != "file":
            return None
        return base64.b64decode(data.get("content", "")).decode("utf-8")

    def get_pull_request(
        self,
        installation_id: int,
        repo_full_name: str,
        pr_number: int,
    ) -> Dict[str, Any]:
        """Get a single pull request."""
        url = f"{self.base_url}/repos/{repo_full_name}/pulls/{pr_number}"
        return self._request("GET", installation_id, url).json()

    def list_pr_reviews(
        self,
        installation_id: int,
        repo_full_name: str,
        pr_number: int,
    ) -> List[Dict[str, Any]]:
        """List all reviews of a PR in chronological order."""
        url = f"{self.base_url}/repos/{repo_full_name}/pulls/{pr_number}/reviews"
        return self._get_paginated(installation_id, url)

    def list_pr_commits(
        self,
        installation_id: int,
        repo_full_name: str,
        pr_number: int,
    ) -> List[Dict[str, Any]]:
        """List the commits of a PR."""
        url = f"{self.base_url}/repos/{repo_full_name}/pulls/{pr_number}/commits"
        return self._get_paginated(installation_id, url)

    def request_reviewers(
        self,
        installation_id: int,
        repo_full_name: str,
        pr_number: int,
        reviewers: List[str],
    ) -> Dict[str, Any]:
        """Request reviews from individual users.

        Args:
            installation_id: GitHub App installation ID
            repo_full_name: Full repo name (owner/repo)
            pr_number: Pull request number
            reviewers: User logins to request

        Returns:
            API response (the updated pull request)
        """
        url = f"{self.base_url}/repos/{repo_full_name}/pulls/{pr_number}/requested_reviewers"
        response = self._request("POST", installation_id, url, json={"reviewers": reviewers})
        return response.json()

    def create_check_run(
        self,
        installation_id: int,
        repo_full_name: str,
        check_run: Dict[str, Any],
    ) -> Dict[str, Any]:
        """Create a GitHub check run.

        Args:
            installation_id: GitHub App installation ID
            repo_full_name: Full repo name (owner/repo)
            check_run: Check run body (name, head_sha, status, conclusion, output, ...)

        Returns:
            API response with check run ID
        """
        url = f"{self.base_url}/repos/{repo_full_name}/check-runs"
        response = self._request("POST", installation_id, url, json=check_run)
        return response.json()

    def graphql(
        self,
        installation_id: int,
        query: str,
        variables: Dict[str, Any],
    ) -> Dict[str, Any]:
        """Run a GraphQL query.

        Returns:
            The ``data`` member of the response

        Raises:
            TransportError: On HTTP failure, when GitHub returns errors without data,
                or on any error other than NOT_FOUND (e.g. FORBIDDEN)
        """
        url = f"{self.base_url}/graphql"
        response = self._request(
            "POST", installation_id, url, json={"query": query, "variables": variables}
        )
        body = response.json()
        data = body.get("data")
        errors = body.get("errors") or []
        if data is None:
            raise TransportError(
                f"GraphQL query failed: {_graphql_messages(errors) or 'no data returned'}"
            )

        # NOT_FOUND nulls out a missing organization or team; anything else
        # means the data cannot be trusted
        fatal = [error for error in errors if error.get("type") != GRAPHQL_NOT_FOUND]
        if fatal:
            raise TransportError(f"GraphQL query failed: {_graphql_messages(fatal)}")
        if errors:
            logger.debug(f"GraphQL returned NOT_FOUND alongside data: {errors}")
        return data
