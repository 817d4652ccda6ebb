"""
Jira ticket for the unmatched recordkeeper report.

Uses the Jira Cloud REST v2 API with basic auth (account email + API token).
Cloud identifies users by accountId, so the assignee is an account id.
"""

import logging
import os
from typing import Optional

import requests

from . import config

logger = logging.getLogger(__name__)

ISSUE_SUMMARY = "Match unmatched Form 5500 recordkeepers"
ISSUE_DESCRIPTION = (
    "The Form 5500 search table has recordkeepers with no company id.\n"
    "The attached unmatched_rks.csv lists each name with the closest known "
    "Schedule C provider (edit distance below {max_distance}). Add confirmed "
    "matches to the rk mapping file and rebuild the search table."
)


class JiraError(Exception):
    """Jira rejected a request."""


def _check(response, action: str):
    if not 200 <= response.status_code < 300:
        raise JiraError(f"{action} failed: HTTP {response.status_code} {response.text[:500]}")
    return response


def create_jira_issue(creator: str, token: str, assignee: Optional[str] = None,
                      attachment: Optional[str] = None,
                      base_url: Optional[str] = None) -> str:
    """
    Open the tracking issue and optionally attach the report.

    Args:
        creator: Jira account (email) the issue is created as
        token: API token for creator
        assignee: Jira Cloud accountId to assign, if any
        attachment: Path of a file to attach
        base_url: Jira site URL (defaults to JIRA_URL)

    Returns:
        The new issue key
    """
    base_url = (base_url or config.JIRA_URL).rstrip("/")
    if not base_url:
        raise JiraError("JIRA_URL is not configured")
    auth = (creator, token)

    fields = {
        "project": {"key": config.JIRA_PROJECT},
        "summary": ISSUE_SUMMARY,
        "description": ISSUE_DESCRIPTION.format(max_distance=config.MAX_SUGGESTION_DISTANCE),
        "issuetype": {"name": config.JIRA_ISSUE_TYPE},
    }
    if assignee:
        fields["assignee"] = {"accountId": assignee}

    response = _check(
        requests.post(f"{base_url}/rest/api/2/issue", json={"fields": fields},
                      auth=auth, timeout=config.JIRA_TIMEOUT),
        "Creating Jira issue",
    )
    key = response.json()["key"]
    logger.info(f"Created Jira issue {key}")

    if attachment:
        with open(attachment, "rb") as f:
            _check(
                requests.post(
                    f"{base_url}/rest/api/2/issue/{key}/attachments",
                    files={"file": (os.path.basename(attachment), f, "text/csv")},
                    headers={"X-Atlassian-Token": "no-check"},
                    auth=auth,
                    timeout=config.JIRA_TIMEOUT,
                ),
                f"Attaching {attachment} to {key}",
            )
        logger.info(f"Attached {attachment} to {key}")

    return key
