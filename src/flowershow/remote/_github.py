"""Git-hosting backend speaking the GitHub REST and GraphQL APIs."""

from __future__ import annotations

import base64
import logging
import secrets
from urllib.parse import quote

from .._hash import detect_algo
from .._http import HttpClient, Transport
from ..config import PublishConfig
from ..exceptions import RemoteRequestFailed
from ..retry import READS, WRITES, RetryPolicy
from ..types import PathHash, RemoteState, normalize_path
from ._base import PullRequest

logger = logging.getLogger(__name__)

_ENABLE_AUTO_MERGE = """
mutation EnableAutoMerge($pullRequestId: ID!, $mergeMethod: PullRequestMergeMethod!, $commitHeadline: String) {
  enablePullRequestAutoMerge(input: {
    pullRequestId: $pullRequestId,
    mergeMethod: $mergeMethod,
    commitHeadline: $commitHeadline
  }) {
    pullRequest { number autoMergeRequest { enabledAt } }
  }
}
"""


def _graphql_url(api_url: str) -> str:
    """GraphQL endpoint for *api_url* (Enterprise serves it beside ``/v3``)."""
    api_url = api_url.rstrip("/")
    if api_url.endswith("/v3"):
        return api_url[: -len("/v3")] + "/graphql"
    return api_url + "/graphql"


class GitHubRepository:
    """A repository on a GitHub-compatible host.

    Reads are retried under *reads*, mutations under *writes*.
    """

    def __init__(
        self,
        owner: str,
        repo: str,
        client: HttpClient,
        *,
        committer: dict[str, str] | None = None,
        reads: RetryPolicy = READS,
        writes: RetryPolicy = WRITES,
    ) -> None:
        self.owner = owner
        self.repo = repo
        self._client = client
        self._committer = committer
        self._reads = reads
        self._writes = writes

    @classmethod
    def from_config(cls, config: PublishConfig, *, transport: Transport | None = None, **kwargs) -> GitHubRepository:
        client = HttpClient(
            config.api_url,
            token=config.token,
            timeout=config.timeout,
            transport=transport,
            accept="application/vnd.github+json",
        )
        return cls(config.owner, config.repo, client, committer=config.committer, **kwargs)

    def __repr__(self) -> str:
        return f"GitHubRepository({self.owner}/{self.repo})"

    @property
    def _base(self) -> str:
        return f"repos/{quote(self.owner, safe='')}/{quote(self.repo, safe='')}"

    def _contents(self, path: str) -> str:
        return f"{self._base}/contents/{quote(path, safe='/')}"

    # --- Refs ---

    def get_branch_sha(self, branch: str) -> str:
        resp = self._reads.call(
            self._client.request, "GET", f"{self._base}/git/ref/heads/{quote(branch, safe='/')}",
            operation="get branch", subject=branch,
        )
        return resp.json()["object"]["sha"]

    def branch_exists(self, branch: str) -> bool:
        resp = self._reads.call(
            self._client.request, "GET", f"{self._base}/git/ref/heads/{quote(branch, safe='/')}",
            operation="probe branch", subject=branch, allow=(404,),
        )
        if resp.status == 404:
            return False
        # The single-ref endpoint falls back to prefix matches (a list).
        payload = resp.json()
        return isinstance(payload, dict) and payload.get("ref") == f"refs/heads/{branch}"

    def create_branch(self, branch: str, sha: str) -> None:
        self._writes.call(
            self._client.request, "POST", f"{self._base}/git/refs",
            json_body={"ref": f"refs/heads/{branch}", "sha": sha},
            operation="create branch", subject=branch,
        )

    # --- Contents ---

    def get_file_sha(self, path: str, ref: str) -> str | None:
        resp = self._reads.call(
            self._client.request, "GET", self._contents(path), params={"ref": ref},
            operation="get file", subject=path, allow=(404,),
        )
        if resp.status == 404:
            return None
        payload = resp.json()
        if not isinstance(payload, dict) or payload.get("type", "file") != "file":
            return None
        return payload.get("sha")

    def put_file(
        self, path: str, content: bytes, *, branch: str, message: str, sha: str | None = None,
    ) -> None:
        body = {
            "message": message,
            "content": base64.b64encode(content).decode("ascii"),
            "branch": branch,
        }
        if self._committer:
            body["committer"] = self._committer
        if sha:
            body["sha"] = sha
        self._writes.call(
            self._client.request, "PUT", self._contents(path), json_body=body,
            operation="update file" if sha else "create file", subject=path,
        )

    def delete_file(self, path: str, *, branch: str, message: str, sha: str) -> None:
        body = {"message": message, "sha": sha, "branch": branch}
        if self._committer:
            body["committer"] = self._committer
        self._writes.call(
            self._client.request, "DELETE", self._contents(path), json_body=body,
            operation="delete file", subject=path,
        )

    # --- Trees ---

    def read_tree(self, ref: str) -> RemoteState:
        """Full recursive listing of *ref*.

        A random query parameter and ``Cache-Control: no-cache`` keep any
        intermediate cache from serving an old listing.  An empty
        repository (HTTP 409) reads as an empty state.
        """
        resp = self._reads.call(
            self._client.request, "GET", f"{self._base}/git/trees/{quote(ref, safe='/')}",
            params={"recursive": "1", "nocache": secrets.token_hex(4)},
            headers={"Cache-Control": "no-cache"},
            operation="read tree", subject=ref, allow=(409,),
        )
        if resp.status == 409:
            logger.info("Repository %s/%s is empty", self.owner, self.repo)
            return RemoteState()
        payload = resp.json()
        entries: dict[str, PathHash] = {}
        for item in payload.get("tree", []):
            if item.get("type") != "blob":
                continue
            path = normalize_path(item["path"])
            entries[path] = PathHash(path, item["sha"])
        truncated = bool(payload.get("truncated"))
        if truncated:
            logger.warning(
                "Tree listing for %s/%s@%s was truncated after %d entries; "
                "deletions beyond that point cannot be detected",
                self.owner, self.repo, ref, len(entries),
            )
        return RemoteState(
            entries, algo=detect_algo(payload.get("sha")), framed=True, truncated=truncated,
        )

    # --- Pull requests ---

    def create_pull_request(self, *, title: str, body: str, head: str, base: str) -> PullRequest:
        resp = self._writes.call(
            self._client.request, "POST", f"{self._base}/pulls",
            json_body={"title": title, "body": body, "head": head, "base": base},
            operation="create pull request", subject=head,
        )
        payload = resp.json()
        return PullRequest(
            number=int(payload["number"]),
            url=payload.get("html_url", ""),
            node_id=payload.get("node_id", ""),
        )

    def merge_pull_request(self, pr: PullRequest, *, commit_title: str, method: str) -> None:
        resp = self._writes.call(
            self._client.request, "PUT", f"{self._base}/pulls/{pr.number}/merge",
            json_body={"commit_title": commit_title, "merge_method": method},
            operation="merge pull request", subject=f"#{pr.number}",
        )
        payload = resp.json() or {}
        if payload.get("merged") is False:
            raise RemoteRequestFailed(
                payload.get("message") or "Pull request was not merged",
                operation="merge pull request", path=f"#{pr.number}", status=resp.status,
            )

    def enable_auto_merge(self, pr: PullRequest, *, commit_headline: str, method: str) -> None:
        resp = self._writes.call(
            self._client.request, "POST", _graphql_url(self._client.base_url),
            json_body={
                "query": _ENABLE_AUTO_MERGE,
                "variables": {
                    "pullRequestId": pr.node_id,
                    "mergeMethod": method.upper(),
                    "commitHeadline": commit_headline,
                },
            },
            operation="enable auto-merge", subject=f"#{pr.number}",
        )
        payload = resp.json() or {}
        errors = payload.get("errors")
        if errors:
            message = "; ".join(str(e.get("message", e)) for e in errors)
            raise RemoteRequestFailed(
                message, operation="enable auto-merge", path=f"#{pr.number}", status=resp.status,
            )
