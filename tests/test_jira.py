"""
Jira issue creation tests (requests is monkeypatched).
"""
import sys
import os
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from scripts.form5500 import config, jira
from scripts.form5500.jira import JiraError, create_jira_issue


class FakeResponse:
    def __init__(self, status_code=201, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload or {}
        self.text = text

    def json(self):
        return self._payload


@pytest.fixture
def posts(monkeypatch):
    calls = []
    responses = []

    def fake_post(url, **kwargs):
        calls.append((url, kwargs))
        return responses.pop(0) if responses else FakeResponse(payload={"key": "DATA-1"})

    monkeypatch.setattr(jira.requests, "post", fake_post)
    monkeypatch.setattr(config, "JIRA_URL", "https://example.atlassian.net/")
    return calls, responses


class TestCreateJiraIssue:

    def test_creates_issue(self, posts):
        calls, _ = posts
        key = create_jira_issue("me@example.com", "secret", "5b10ac8d82e05b22cc7d4ef5")
        assert key == "DATA-1"
        url, kwargs = calls[0]
        assert url == "https://example.atlassian.net/rest/api/2/issue"
        assert kwargs["auth"] == ("me@example.com", "secret")
        fields = kwargs["json"]["fields"]
        assert fields["project"] == {"key": config.JIRA_PROJECT}
        assert fields["assignee"] == {"accountId": "5b10ac8d82e05b22cc7d4ef5"}
        assert "unmatched_rks.csv" in fields["description"]

    def test_no_assignee(self, posts):
        calls, _ = posts
        create_jira_issue("me@example.com", "secret")
        assert "assignee" not in calls[0][1]["json"]["fields"]

    def test_attaches_report(self, posts, tmp_path):
        calls, _ = posts
        report = tmp_path / "unmatched_rks.csv"
        report.write_text("rk_name\n")
        create_jira_issue("me@example.com", "secret", attachment=str(report))
        url, kwargs = calls[1]
        assert url.endswith("/rest/api/2/issue/DATA-1/attachments")
        assert kwargs["headers"] == {"X-Atlassian-Token": "no-check"}
        assert kwargs["files"]["file"][0] == "unmatched_rks.csv"

    def test_error_status_raises(self, posts):
        _, responses = posts
        responses.append(FakeResponse(status_code=401, text="Unauthorized"))
        with pytest.raises(JiraError, match="HTTP 401"):
            create_jira_issue("me@example.com", "bad")

    def test_requires_url(self, posts, monkeypatch):
        monkeypatch.setattr(config, "JIRA_URL", "")
        with pytest.raises(JiraError, match="JIRA_URL"):
            create_jira_issue("me@example.com", "secret")
