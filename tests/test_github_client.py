import base64
from unittest.mock import MagicMock

import pytest
import requests

from pr_consensus.github_app.github_backend import GitHubTeamDirectory
from pr_consensus.github_app.github_client import GitHubAuthError, GitHubClient, TransportError
from pr_consensus.utils.settings import Settings


def _response(status_code=200, json_data=None, links=None, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = json_data
    response.links = links or {}
    response.text = text
    return response


@pytest.fixture
def client(mocker):
    gh = GitHubClient(Settings(app_id="123", private_key="not-a-real-key"))
    mocker.patch.object(gh, "get_installation_token", return_value="installation-token")
    return gh


@pytest.fixture
def mock_request(mocker):
    return mocker.patch("pr_consensus.github_app.github_client.requests.request")


def test_missing_credentials():
    with pytest.raises(ValueError):
        GitHubClient(Settings())


def test_installation_token_is_cached(mocker):
    gh = GitHubClient(Settings(app_id="123", private_key="not-a-real-key"))
    mocker.patch.object(gh, "_generate_jwt", return_value="app-jwt")
    mock_post = mocker.patch(
        "pr_consensus.github_app.github_client.requests.post",
        return_value=_response(
            201, {"token": "tok", "expires_at": "2999-01-01T00:00:00Z"}
        ),
    )

    assert gh.get_installation_token(42) == "tok"
    assert gh.get_installation_token(42) == "tok"
    mock_post.assert_called_once()
    assert mock_post.call_args.kwargs["headers"]["Authorization"] == "Bearer app-jwt"


def test_installation_token_unauthorized(mocker):
    gh = GitHubClient(Settings(app_id="123", private_key="not-a-real-key"))
    mocker.patch.object(gh, "_generate_jwt", return_value="app-jwt")
    mocker.patch(
        "pr_consensus.github_app.github_client.requests.post",
        return_value=_response(401, text="Bad credentials"),
    )

    with pytest.raises(GitHubAuthError):
        gh.get_installation_token(42)


def test_get_file_contents_decodes_base64(client, mock_request):
    content = base64.b64encode(b"teams:\n  - slug: qa\n").decode()
    mock_request.return_value = _response(200, {"type": "file", "content": content})

    text = client.get_file_contents(42, "octo-org/spaceship", ".github/consensus.yml")

    assert text == "teams:\n  - slug: qa\n"
    method, url = mock_request.call_args.args
    assert method == "GET"
    assert url == "https://api.github.com/repos/octo-org/spaceship/contents/.github/consensus.yml"
    assert mock_request.call_args.kwargs["headers"]["Authorization"] == "Bearer installation-token"


def test_get_file_contents_missing_file(client, mock_request):
    mock_request.return_value = _response(404, {"message": "Not Found"})

    assert client.get_file_contents(42, "octo-org/spaceship", ".github/consensus.yml") is None


def test_list_reviews_follows_pagination(client, mock_request):
    next_url = "https://api.github.com/repositories/1/pulls/7/reviews?per_page=100&page=2"
    mock_request.side_effect = [
        _response(200, [{"id": 1}], links={"next": {"url": next_url}}),
        _response(200, [{"id": 2}]),
    ]

    reviews = client.list_pr_reviews(42, "octo-org/spaceship", 7)

    assert reviews == [{"id": 1}, {"id": 2}]
    first, second = mock_request.call_args_list
    assert first.kwargs["params"] == {"per_page": 100}
    assert second.args[1] == next_url
    assert second.kwargs["params"] is None


def test_http_error_raises_transport_error(client, mock_request):
    mock_request.return_value = _response(500, text="boom")

    with pytest.raises(TransportError) as error:
        client.list_pr_commits(42, "octo-org/spaceship", 7)
    assert error.value.status_code == 500


def test_connection_error_raises_transport_error(client, mock_request):
    mock_request.side_effect = requests.ConnectionError("unreachable")

    with pytest.raises(TransportError):
        client.create_check_run(42, "octo-org/spaceship", {"name": "Get Consensus"})


def test_request_reviewers_body(client, mock_request):
    mock_request.return_value = _response(201, {"number": 7})

    client.request_reviewers(42, "octo-org/spaceship", 7, ["spock", "woz"])

    method, url = mock_request.call_args.args
    assert method == "POST"
    assert url.endswith("/repos/octo-org/spaceship/pulls/7/requested_reviewers")
    assert mock_request.call_args.kwargs["json"] == {"reviewers": ["spock", "woz"]}


def test_graphql_errors_without_data(client, mock_request):
    mock_request.return_value = _response(200, {"errors": [{"message": "rate limited"}]})

    with pytest.raises(TransportError, match="rate limited"):
        client.graphql(42, "query {}", {})


def test_team_directory_validates_slug(client, mock_request):
    directory = GitHubTeamDirectory(client, 42, "octo-org")
    mock_request.side_effect = [
        _response(200, {"data": {"organization": {"team": {"name": "QA"}}}}),
        _response(
            200,
            {
                "data": {"organization": {"team": None}},
                "errors": [{"type": "NOT_FOUND", "message": "Could not resolve"}],
            },
        ),
        _response(200, {"data": {"organization": None}}),
    ]

    assert directory.validate_slug("qa") is True
    assert directory.validate_slug("ghosts") is False
    assert directory.validate_slug("qa") is False
    variables = mock_request.call_args_list[0].kwargs["json"]["variables"]
    assert variables == {"login": "octo-org", "slug": "qa"}


def test_team_directory_members(client, mock_request):
    directory = GitHubTeamDirectory(client, 42, "octo-org")
    mock_request.return_value = _response(
        200,
        {
            "data": {
                "organization": {
                    "team": {
                        "name": "QA",
                        "members": {"nodes": [{"login": "spock"}, {"login": "woz"}]},
                    }
                }
            }
        },
    )

    assert directory.members_of("qa") == frozenset({"spock", "woz"})


def test_team_directory_members_of_missing_team(client, mock_request):
    directory = GitHubTeamDirectory(client, 42, "octo-org")
    mock_request.return_value = _response(200, {"data": {"organization": {"team": None}}})

    assert directory.members_of("ghosts") == frozenset()


FORBIDDEN_TEAM_RESPONSE = {
    "data": {"organization": {"team": None}},
    "errors": [
        {
            "type": "FORBIDDEN",
            "path": ["organization", "team"],
            "message": "Resource not accessible by integration",
        }
    ],
}


def test_graphql_forbidden_alongside_data(client, mock_request):
    mock_request.return_value = _response(200, FORBIDDEN_TEAM_RESPONSE)

    with pytest.raises(TransportError, match="Resource not accessible by integration"):
        client.graphql(42, "query {}", {})


def test_team_directory_does_not_mistake_forbidden_for_missing_team(client, mock_request):
    directory = GitHubTeamDirectory(client, 42, "octo-org")
    mock_request.return_value = _response(200, FORBIDDEN_TEAM_RESPONSE)

    with pytest.raises(TransportError):
        directory.validate_slug("qa")
    with pytest.raises(TransportError):
        directory.members_of("qa")


def test_graphql_mixed_not_found_and_forbidden(client, mock_request):
    mock_request.return_value = _response(
        200,
        {
            "data": {"organization": {"team": None}},
            "errors": [
                {"type": "NOT_FOUND", "message": "Could not resolve"},
                {"type": "FORBIDDEN", "message": "Resource not accessible by integration"},
            ],
        },
    )

    with pytest.raises(TransportError) as error:
        client.graphql(42, "query {}", {})
    assert "Could not resolve" not in str(error.value)
