"""GitHub implementation of the activity provider."""

import threading
import time
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional

import requests
from gql import Client, gql
from gql.transport.exceptions import TransportError, TransportQueryError
from gql.transport.requests import RequestsHTTPTransport

from ..errors import UpstreamFetchFailure
from ..logging import get_logger
from ..models import Issue, PullRequest, Release, Tag, Workflow, WorkflowRun
from .provider import ActivityProvider

logger = get_logger(__name__)

DEFAULT_API_URL = "https://api.github.com"

RELEASES_QUERY = gql("""
    query($owner: String!, $repo: String!, $cursor: String) {
        repository(owner: $owner, name: $repo) {
            releases(first: 100, after: $cursor, orderBy: {field: CREATED_AT, direction: DESC}) {
                pageInfo {
                    hasNextPage
                    endCursor
                }
                nodes {
                    tagName
                    name
                    publishedAt
                    isDraft
                    isPrerelease
                }
            }
        }
        rateLimit {
            remaining
            resetAt
        }
    }
""")

TAGS_QUERY = gql("""
    query($owner: String!, $repo: String!, $cursor: String) {
        repository(owner: $owner, name: $repo) {
            refs(refPrefix: "refs/tags/", first: 100, after: $cursor) {
                pageInfo {
                    hasNextPage
                    endCursor
                }
                nodes {
                    name
                    target {
                        oid
                        ... on Tag {
                            target {
                                oid
                            }
                        }
                    }
                }
            }
        }
        rateLimit {
            remaining
            resetAt
        }
    }
""")

COMMIT_QUERY = gql("""
    query($owner: String!, $repo: String!, $oid: GitObjectID!) {
        repository(owner: $owner, name: $repo) {
            object(oid: $oid) {
                ... on Commit {
                    authoredDate
                }
            }
        }
        rateLimit {
            remaining
            resetAt
        }
    }
""")

PULL_REQUESTS_QUERY = gql("""
    query($owner: String!, $repo: String!, $cursor: String, $states: [PullRequestState!]) {
        repository(owner: $owner, name: $repo) {
            pullRequests(first: 100, after: $cursor, states: $states, orderBy: {field: UPDATED_AT, direction: DESC}) {
                pageInfo {
                    hasNextPage
                    endCursor
                }
                nodes {
                    number
                    title
                    isDraft
                    createdAt
                    updatedAt
                    mergedAt
                    headRefName
                    labels(first: 20) {
                        nodes {
                            name
                        }
                    }
                }
            }
        }
        rateLimit {
            remaining
            resetAt
        }
    }
""")

ISSUES_QUERY = gql("""
    query($owner: String!, $repo: String!, $cursor: String) {
        repository(owner: $owner, name: $repo) {
            issues(first: 100, after: $cursor, states: [CLOSED], orderBy: {field: UPDATED_AT, direction: DESC}) {
                pageInfo {
                    hasNextPage
                    endCursor
                }
                nodes {
                    number
                    title
                    createdAt
                    closedAt
                    labels(first: 20) {
                        nodes {
                            name
                        }
                    }
                }
            }
        }
        rateLimit {
            remaining
            resetAt
        }
    }
""")


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse a GitHub ISO 8601 timestamp into an aware datetime."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed


def _format_datetime(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class GitHubClient(ActivityProvider):
    """
    Client for repository activity on GitHub.

    Releases, tags, commits, pull requests and issues come from the
    GraphQL API; Actions workflows and runs only exist in the REST API.
    """

    PAGE_SIZE = 100
    MAX_RETRIES = 5

    def __init__(
        self,
        token: str,
        api_url: str = DEFAULT_API_URL,
        graphql_url: Optional[str] = None,
        timeout: int = 30,
    ):
        """
        Initialize GitHub client.

        Args:
            token: GitHub personal access or installation token
            api_url: REST API root, override for GitHub Enterprise
            graphql_url: GraphQL endpoint, defaults to ``<api_url>/graphql``
            timeout: Per-request timeout in seconds
        """
        self.token = token
        self.api_url = api_url.rstrip("/")
        self.graphql_url = graphql_url or f"{self.api_url}/graphql"
        self.timeout = timeout

        transport = RequestsHTTPTransport(
            url=self.graphql_url,
            headers={"Authorization": f"Bearer {token}"},
            retries=3,
            timeout=timeout,
        )
        self.client = Client(transport=transport, fetch_schema_from_transport=True)
        # The sync gql client connects its single transport per execute; one call at a time
        self._graphql_lock = threading.Lock()

        self.session = requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        })

    # GraphQL-backed operations

    def list_releases(self, owner: str, repo: str) -> List[Release]:
        logger.info(f"Fetching releases for {owner}/{repo}")
        releases = [
            Release(
                tag_name=node["tagName"],
                name=node.get("name") or node["tagName"],
                published_at=_parse_datetime(node.get("publishedAt")),
                is_draft=node.get("isDraft", False),
                is_prerelease=node.get("isPrerelease", False),
            )
            for node in self._paginate(RELEASES_QUERY, owner, repo, "releases", "list releases")
        ]
        logger.info(f"Fetched {len(releases)} releases")
        return releases

    def list_tags(self, owner: str, repo: str) -> List[Tag]:
        logger.info(f"Fetching tags for {owner}/{repo}")
        tags = []
        for node in self._paginate(TAGS_QUERY, owner, repo, "refs", "list tags"):
            target = node.get("target") or {}
            # Annotated tags point at a Tag object, which points at the commit
            commit_sha = (target.get("target") or {}).get("oid") or target.get("oid")
            tags.append(Tag(name=node["name"], commit_sha=commit_sha))
        logger.info(f"Fetched {len(tags)} tags")
        return tags

    def resolve_commit_timestamp(self, owner: str, repo: str, commit_sha: str) -> datetime:
        variables = {"owner": owner, "repo": repo, "oid": commit_sha}
        result = self._execute_with_rate_limit(COMMIT_QUERY, variables, "resolve commit")

        commit = result["repository"]["object"]
        if not commit or not commit.get("authoredDate"):
            raise UpstreamFetchFailure("resolve commit", f"commit {commit_sha} not found")
        return _parse_datetime(commit["authoredDate"])

    def list_merged_pull_requests(
        self,
        owner: str,
        repo: str,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
    ) -> List[PullRequest]:
        logger.info(f"Fetching merged pull requests for {owner}/{repo}")

        pull_requests = []
        for node in self._paginate(
            PULL_REQUESTS_QUERY, owner, repo, "pullRequests", "list merged pull requests",
            states=["MERGED"],
        ):
            # Ordered by last update; a PR cannot be merged after it was last updated
            if since and _parse_datetime(node["updatedAt"]) < since:
                break

            pr = self._parse_pull_request(node)
            if pr.merged_at is None:
                continue
            if since and pr.merged_at < since:
                continue
            if until and pr.merged_at > until:
                continue
            pull_requests.append(pr)

        logger.info(f"Fetched {len(pull_requests)} merged pull requests")
        return pull_requests

    def list_closed_pull_requests(self, owner: str, repo: str) -> List[PullRequest]:
        logger.info(f"Fetching closed pull requests for {owner}/{repo}")
        pull_requests = [
            self._parse_pull_request(node)
            for node in self._paginate(
                PULL_REQUESTS_QUERY, owner, repo, "pullRequests", "list closed pull requests",
                states=["CLOSED", "MERGED"],
            )
        ]
        logger.info(f"Fetched {len(pull_requests)} closed pull requests")
        return pull_requests

    def list_closed_issues(self, owner: str, repo: str) -> List[Issue]:
        logger.info(f"Fetching closed issues for {owner}/{repo}")
        issues = [
            Issue(
                number=node["number"],
                title=node["title"],
                created_at=_parse_datetime(node["createdAt"]),
                closed_at=_parse_datetime(node.get("closedAt")),
                labels=[label["name"] for label in (node.get("labels") or {}).get("nodes", [])],
            )
            for node in self._paginate(ISSUES_QUERY, owner, repo, "issues", "list closed issues")
        ]
        logger.info(f"Fetched {len(issues)} closed issues")
        return issues

    # REST-backed operations

    def list_workflows(self, owner: str, repo: str) -> List[Workflow]:
        logger.info(f"Fetching workflows for {owner}/{repo}")
        workflows = [
            Workflow(id=item["id"], name=item["name"], path=item["path"])
            for item in self._paginate_rest(
                f"/repos/{owner}/{repo}/actions/workflows", "workflows", {}, "list workflows"
            )
        ]
        logger.info(f"Fetched {len(workflows)} workflows")
        return workflows

    def list_workflow_runs(
        self,
        owner: str,
        repo: str,
        workflow_id: Optional[int] = None,
        status: Optional[str] = None,
        created_after: Optional[datetime] = None,
    ) -> List[WorkflowRun]:
        if workflow_id:
            path = f"/repos/{owner}/{repo}/actions/workflows/{workflow_id}/runs"
        else:
            path = f"/repos/{owner}/{repo}/actions/runs"

        params = {}
        if status:
            params["status"] = status
        if created_after:
            params["created"] = f">={_format_datetime(created_after)}"

        logger.info(f"Fetching workflow runs for {owner}/{repo} ({params})")
        runs = [
            WorkflowRun(
                id=item["id"],
                name=item.get("name") or "",
                conclusion=item.get("conclusion"),
                created_at=_parse_datetime(item["created_at"]),
                head_branch=item.get("head_branch"),
                workflow_id=item.get("workflow_id"),
            )
            for item in self._paginate_rest(path, "workflow_runs", params, "list workflow runs")
        ]
        logger.info(f"Fetched {len(runs)} workflow runs")
        return runs

    # Transport helpers

    def _paginate(
        self,
        query,
        owner: str,
        repo: str,
        connection: str,
        operation: str,
        **extra_variables: Any,
    ) -> Iterator[Dict]:
        """Yield every node of a repository connection, page by page."""
        cursor = None
        while True:
            variables = {"owner": owner, "repo": repo, "cursor": cursor, **extra_variables}
            result = self._execute_with_rate_limit(query, variables, operation)

            repository = result.get("repository")
            if repository is None:
                raise UpstreamFetchFailure(operation, f"repository {owner}/{repo} not found", 404)

            page = repository[connection]
            yield from page["nodes"]

            page_info = page["pageInfo"]
            if not page_info["hasNextPage"]:
                break
            cursor = page_info["endCursor"]

    def _execute_with_rate_limit(self, query, variables: Dict, operation: str) -> Dict:
        """Execute GraphQL query with rate limit handling."""
        base_delay = 1

        for attempt in range(self.MAX_RETRIES):
            try:
                with self._graphql_lock:
                    result = self.client.execute(query, variable_values=variables)
            except TransportQueryError as e:
                # The query itself was rejected; retrying will not help
                logger.error(f"{operation} failed: {e}")
                raise UpstreamFetchFailure(operation, str(e)) from e
            except (TransportError, requests.RequestException) as e:
                if attempt == self.MAX_RETRIES - 1:
                    logger.error(f"{operation} failed after {self.MAX_RETRIES} attempts: {e}")
                    raise UpstreamFetchFailure(operation, str(e)) from e
                delay = base_delay * (2 ** attempt)  # Exponential backoff
                logger.warning(
                    f"Request failed (attempt {attempt + 1}/{self.MAX_RETRIES}), retrying in {delay}s: {e}"
                )
                time.sleep(delay)
                continue

            self._wait_for_rate_limit(result.get("rateLimit") or {})
            return result

        raise UpstreamFetchFailure(operation, "max retries exceeded")

    def _wait_for_rate_limit(self, rate_limit: Dict) -> None:
        remaining = rate_limit.get("remaining")
        reset_at = rate_limit.get("resetAt")
        if remaining is None or remaining >= 10 or not reset_at:
            return

        wait_time = (_parse_datetime(reset_at) - datetime.now(timezone.utc)).total_seconds()
        if wait_time > 0:
            logger.warning(f"Rate limit low ({remaining} remaining), waiting {wait_time:.0f}s")
            time.sleep(wait_time + 1)

    def _paginate_rest(
        self, path: str, key: str, params: Dict[str, Any], operation: str
    ) -> Iterator[Dict]:
        """Yield items under ``key`` from every page of a REST listing."""
        page = 1
        while True:
            payload = self._get_json(path, {**params, "per_page": self.PAGE_SIZE, "page": page}, operation)
            items = payload.get(key) or []
            yield from items

            if len(items) < self.PAGE_SIZE:
                break
            page += 1

    def _get_json(self, path: str, params: Dict[str, Any], operation: str) -> Dict[str, Any]:
        """GET a REST resource, retrying on 429 and 5xx responses."""
        url = f"{self.api_url}{path}"

        for attempt in range(1, self.MAX_RETRIES + 1):
            try:
                response = self.session.get(url, params=params, timeout=self.timeout)
            except requests.RequestException as e:
                if attempt == self.MAX_RETRIES:
                    logger.error(f"{operation} failed: GET {url}: {e}")
                    raise UpstreamFetchFailure(operation, str(e)) from e
                time.sleep(2 ** (attempt - 1))
                continue

            status = response.status_code
            if (status == 429 or 500 <= status <= 599) and attempt < self.MAX_RETRIES:
                time.sleep(2 ** (attempt - 1))
                continue

            if status >= 400:
                self._log_http_error(operation, status)
                raise UpstreamFetchFailure(operation, f"GET {url} returned {status}", status)

            try:
                return response.json()
            except ValueError as e:
                raise UpstreamFetchFailure(operation, f"invalid JSON from GET {url}") from e

        raise UpstreamFetchFailure(operation, "max retries exceeded")

    @staticmethod
    def _log_http_error(operation: str, status: int) -> None:
        if status == 404:
            logger.error(f"{operation} failed: resource not found (404)")
        elif status == 403:
            logger.error(f"{operation} failed: permission denied (403)")
            logger.warning("Check that the token has access to the repository and Actions")
        elif status == 401:
            logger.error(f"{operation} failed: authentication error (401)")
        else:
            logger.error(f"{operation} failed ({status})")

    def _parse_pull_request(self, pr_data: Dict) -> PullRequest:
        """Parse PR data from GraphQL response."""
        labels = [label["name"] for label in (pr_data.get("labels") or {}).get("nodes", [])]

        return PullRequest(
            number=pr_data["number"],
            title=pr_data["title"],
            created_at=_parse_datetime(pr_data["createdAt"]),
            merged_at=_parse_datetime(pr_data.get("mergedAt")),
            is_draft=pr_data.get("isDraft", False),
            labels=labels,
            head_branch=pr_data.get("headRefName") or "",
        )
