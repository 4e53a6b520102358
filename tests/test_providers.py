"""Tests for provider adapters, the HTTP client and the registry."""

from unittest import mock

import pytest
import requests

from trotd.domain.errors import ProviderFetchError
from trotd.domain.repository import LanguageFilter, ProviderConfig
from trotd.infrastructure.http_client import HttpClient, HttpError
from trotd.infrastructure.providers.gitea import Gitea
from trotd.infrastructure.providers.github import GitHub
from trotd.infrastructure.providers.gitlab import GitLab
from trotd.infrastructure.providers.registry import build_providers
from trotd.infrastructure.settings import Settings


class FakeHttp:
    """Serves canned JSON keyed by page number."""

    def __init__(self, pages=None, error=None):
        self.pages = pages or {}
        self.error = error
        self.requests = []

    def get_json(self, url, timeout, params=None, headers=None):
        self.requests.append((url, params, headers))
        if self.error:
            raise self.error
        return self.pages.get(params.get("page", 1) if params else 1)


def github_item(i, language="Python", topics=()):
    return {
        "full_name": f"owner/repo{i}",
        "html_url": f"https://github.com/owner/repo{i}",
        "language": language,
        "description": f"Repo {i}",
        "stargazers_count": 1000 - i,
        "pushed_at": "2024-05-01T10:00:00Z",
        "topics": list(topics),
    }


def test_github_slices_offset_window_across_pages():
    page1 = {"items": [github_item(i) for i in range(100)]}
    page2 = {"items": [github_item(i) for i in range(100, 200)]}
    http = FakeHttp({1: page1, 2: page2})

    repos = GitHub(http=http).top_today(ProviderConfig(), offset=98, limit=4, lang_filter=LanguageFilter())

    assert [r.name for r in repos] == ["owner/repo98", "owner/repo99", "owner/repo100", "owner/repo101"]
    assert [params["page"] for _, params, _ in http.requests] == [1, 2]


def test_github_parses_fields_and_sends_token():
    http = FakeHttp({1: {"items": [github_item(1, topics=("cli",))]}})
    cfg = ProviderConfig(token="secret")

    repo = GitHub(http=http).top_today(cfg, 0, 3, LanguageFilter())[0]

    assert repo.provider == "github"
    assert repo.url == "https://github.com/owner/repo1"
    assert repo.stars_total == 999
    assert repo.topics == ("cli",)
    assert repo.last_activity.year == 2024
    assert http.requests[0][2]["Authorization"] == "Bearer secret"


def test_github_query_includes_language_and_excluded_topics():
    github = GitHub(http=FakeHttp())
    query = github.build_query(ProviderConfig(exclude_topics=("awesome",)), LanguageFilter.from_list(["Rust"]))

    assert "language:rust" in query
    assert "-topic:awesome" in query
    assert query.startswith("created:>=")


def test_github_post_filters_language_and_topics():
    items = [github_item(1, "Rust"), github_item(2, "Go"), github_item(3, "Rust", topics=("awesome",))]
    http = FakeHttp({1: {"items": items}})
    cfg = ProviderConfig(exclude_topics=("Awesome",))

    repos = GitHub(http=http).top_today(cfg, 0, 10, LanguageFilter.from_list(["rust"]))

    assert [r.name for r in repos] == ["owner/repo1"]


def test_transport_failure_becomes_fetch_error():
    http = FakeHttp(error=HttpError("boom"))

    with pytest.raises(ProviderFetchError) as exc_info:
        GitHub(http=http).top_today(ProviderConfig(), 0, 3, LanguageFilter())

    assert exc_info.value.provider_id == "github"


def test_unexpected_payload_becomes_fetch_error():
    http = FakeHttp({1: {"items": [{"name": "missing-fields"}]}})

    with pytest.raises(ProviderFetchError):
        GitHub(http=http).top_today(ProviderConfig(), 0, 3, LanguageFilter())


def test_github_user_stars_paginates():
    http = FakeHttp({
        1: [{"full_name": f"a/{i}"} for i in range(100)],
        2: [{"full_name": "b/last"}],
    })

    starred = GitHub(http=http).get_user_stars("token")

    assert len(starred) == 101
    assert "b/last" in starred


def test_gitlab_parses_projects():
    http = FakeHttp({1: [{
        "path_with_namespace": "group/project",
        "web_url": "https://gitlab.com/group/project",
        "description": "A project",
        "star_count": 42,
        "last_activity_at": "2024-05-01T10:00:00.000Z",
        "topics": ["go"],
    }]})

    repos = GitLab(http=http).top_today(ProviderConfig(), 0, 3, LanguageFilter())

    assert repos[0].name == "group/project"
    assert repos[0].provider == "gitlab"
    assert repos[0].language is None
    assert http.requests[0][1]["order_by"] == "star_count"


def test_gitea_uses_configured_base_url():
    http = FakeHttp({1: {"data": [{
        "full_name": "org/tool",
        "html_url": "https://codeberg.org/org/tool",
        "language": "Go",
        "stars_count": 7,
        "updated_at": "2024-05-01T10:00:00Z",
    }]}})
    cfg = ProviderConfig(base_url="https://codeberg.org/")

    repos = Gitea(http=http).top_today(cfg, 0, 3, LanguageFilter.from_list(["go"]))

    assert [r.name for r in repos] == ["org/tool"]
    assert http.requests[0][0] == "https://codeberg.org/api/v1/repos/search"


def test_gitea_rejects_invalid_base_url():
    with pytest.raises(ValueError):
        Gitea(base_url="not a url")


def test_registry_reports_unknown_and_broken_providers():
    settings = Settings(gitea_base_url="ftp://nowhere")

    enabled, unavailable = build_providers(settings, ["github", "bitbucket", "gitea"])

    assert [p.provider_id for p in enabled] == ["github"]
    assert {e.provider_id for e in unavailable} == {"bitbucket", "gitea"}


def test_registry_injects_config_and_limits():
    settings = Settings(max_per_provider=5, provider_max={"gitlab": 2}, github_token="t", exclude_topics=["x"])

    enabled, _ = build_providers(settings, ["github", "gitlab"])
    by_id = {p.provider_id: p for p in enabled}

    assert by_id["github"].limit == 5
    assert by_id["gitlab"].limit == 2
    assert by_id["github"].cfg.token == "t"
    assert by_id["github"].cfg.exclude_topics == ("x",)
    assert by_id["gitlab"].cfg.exclude_topics == ()


def _response(status_code, payload=None):
    response = mock.Mock(status_code=status_code)
    response.json.return_value = payload
    return response


@mock.patch("trotd.infrastructure.http_client.time.sleep")
def test_http_client_retries_server_errors(sleep):
    session = mock.Mock(headers={})
    session.request.side_effect = [_response(502), requests.exceptions.ConnectionError("reset"), _response(200, {"ok": True})]

    assert HttpClient(session=session).get_json("https://api.example.com", timeout=5) == {"ok": True}
    assert session.request.call_count == 3
    assert sleep.call_count == 2


@mock.patch("trotd.infrastructure.http_client.time.sleep")
def test_http_client_does_not_retry_client_errors(sleep):
    session = mock.Mock(headers={})
    session.request.return_value = _response(404)

    with pytest.raises(HttpError) as exc_info:
        HttpClient(session=session).get_json("https://api.example.com", timeout=5)

    assert exc_info.value.status_code == 404
    assert session.request.call_count == 1


@mock.patch("trotd.infrastructure.http_client.time.sleep")
def test_http_client_gives_up_after_max_retries(sleep):
    session = mock.Mock(headers={})
    session.request.return_value = _response(503)

    with pytest.raises(HttpError):
        HttpClient(session=session, max_retries=2).get_json("https://api.example.com", timeout=5)

    assert session.request.call_count == 2
