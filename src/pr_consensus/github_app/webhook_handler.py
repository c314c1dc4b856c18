"""FastAPI webhook handler for GitHub App."""

import hmac
import hashlib
import json
import logging
from typing import Any, Dict, Optional
from fastapi import FastAPI, Request, HTTPException
from starlette.concurrency import run_in_threadpool

from .. import __version__
from .event_handler import EventContext, dispatch_event
from .github_backend import GitHubRepository, GitHubTeamDirectory
from .github_client import GitHubClient, TransportError
from ..utils.settings import Settings

logger = logging.getLogger(__name__)

app = FastAPI(title="PR Consensus GitHub App")

settings = Settings.from_env()
github_client = None  # Initialized on first use


def get_github_client() -> GitHubClient:
    """Get GitHub client instance (lazy initialization)."""
    global github_client
    if github_client is None:
        github_client = GitHubClient(settings)
    return github_client


def verify_webhook_signature(
    payload_body: bytes,
    signature_header: str,
    webhook_secret: Optional[str],
) -> bool:
    """Verify GitHub webhook signature.

    Args:
        payload_body: Raw request body bytes
        signature_header: X-Hub-Signature-256 header value
        webhook_secret: Secret configured for the GitHub App

    Returns:
        True if signature is valid
    """
    if not webhook_secret:
        raise ValueError("GITHUB_WEBHOOK_SECRET not configured")

    # GitHub sends signature as "sha256=<signature>"
    if not signature_header.startswith("sha256="):
        return False

    expected_signature = signature_header.split("=", 1)[1]

    mac = hmac.new(
        webhook_secret.encode("utf-8"),
        msg=payload_body,
        digestmod=hashlib.sha256,
    )
    return hmac.compare_digest(expected_signature, mac.hexdigest())


def build_event_context(payload: Dict[str, Any]) -> EventContext:
    """Wire the installation-scoped GitHub collaborators for one delivery."""
    client = get_github_client()
    installation_id = payload["installation"]["id"]
    repository = payload["repository"]
    org_login = (payload.get("organization") or {}).get("login") or repository["owner"]["login"]

    repo = GitHubRepository(client, installation_id, repository["full_name"])
    return EventContext(
        payload=payload,
        config_store=repo,
        team_directory=GitHubTeamDirectory(client, installation_id, org_login),
        review_store=repo,
        check_publisher=repo,
        settings=settings,
    )


def process_event(event_name: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    return dispatch_event(event_name, build_event_context(payload))


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": __version__,
    }


@app.post("/webhook")
async def handle_webhook(request: Request):
    """Handle GitHub webhook events.

    Raises:
        HTTPException: If signature verification fails or GitHub calls fail
    """
    signature = request.headers.get("X-Hub-Signature-256")
    if not signature:
        raise HTTPException(status_code=401, detail="Missing signature header")

    body = await request.body()

    try:
        valid = verify_webhook_signature(body, signature, settings.webhook_secret)
    except ValueError as e:
        logger.error(str(e))
        raise HTTPException(status_code=500, detail="Webhook secret not configured")
    if not valid:
        raise HTTPException(status_code=401, detail="Invalid signature")

    payload = json.loads(body)
    event_type = request.headers.get("X-GitHub-Event", "")

    if event_type == "ping":
        return {"status": "ok", "action": "pong"}
    if "installation" not in payload or "repository" not in payload:
        logger.debug(f"Ignoring {event_type} delivery without installation or repository")
        return {"status": "ok", "action": "ignored"}

    try:
        # requests-based client blocks, keep it off the event loop
        result = await run_in_threadpool(process_event, event_type, payload)
    except TransportError as e:
        logger.error(f"Aborted {event_type} event: {e}")
        raise HTTPException(status_code=502, detail="GitHub API request failed")

    return {"status": "ok", **result}


if __name__ == "__main__":
    import uvicorn

    from ..utils.logging_config import setup_logging

    setup_logging(settings.log_level)
    uvicorn.run(app, host="0.0.0.0", port=8000, log_config=None)
