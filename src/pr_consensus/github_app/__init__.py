"""GitHub App integration for PR Consensus.

Provides webhook handling, team reviewer assignment and consensus check runs
on GitHub Pull Requests.
"""

from .webhook_handler import app as webhook_app
from .github_client import GitHubClient, TransportError
from .event_handler import EventContext, dispatch_event

__all__ = ["webhook_app", "GitHubClient", "TransportError", "EventContext", "dispatch_event"]
