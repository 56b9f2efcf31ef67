import structlog

from classroom.config import configure_logging
from classroom.github_client import GitHubError, GitHubForbidden, GitHubNotFound
from classroom.services.group_assignment import sanitize_repo_name
from classroom.services.pagination import normalize_page
from classroom.services.results import ErrorKind, HandlerResult
from classroom.services.slugs import slugify, unique_slug


def test_slugify():
    assert slugify("Final Project: Part 2!") == "final-project-part-2"
    assert slugify("   ") == "item"


def test_unique_slug_appends_suffix():
    assert unique_slug("Lab", []) == "lab"
    assert unique_slug("Lab", ["lab", "lab-2"]) == "lab-3"


def test_sanitize_repo_name_removes_all_whitespace():
    assert sanitize_repo_name("my repo ") == "myrepo"
    assert sanitize_repo_name(" octocat / hello\tworld\n") == "octocat/helloworld"


def test_normalize_page():
    assert normalize_page(None) == 1
    assert normalize_page("abc") == 1
    assert normalize_page("0") == 1
    assert normalize_page("3") == 3


def test_handler_result_maps_github_errors():
    assert HandlerResult.from_github_error(GitHubNotFound("Not Found")).error == ErrorKind.NOT_FOUND
    assert HandlerResult.from_github_error(GitHubForbidden("Forbidden")).error == ErrorKind.FORBIDDEN

    result = HandlerResult.from_github_error(GitHubError("Server Error"))
    assert result.error == ErrorKind.PROVIDER
    assert result.message == "Server Error"
    assert not result.ok


def test_configure_logging_renders_json():
    configure_logging()
    assert isinstance(structlog.get_config()["processors"][-1], structlog.processors.JSONRenderer)
