import os
import logging
import httpx
from typing import Any, List, Optional
from urllib.parse import quote
from pydantic import ValidationError

from .errors import ErrorKind, SourceError
from .models import NpmSearchPage, TreeEntry

NPM_SEARCH_URL = os.environ.get(
    "NODESCOUT_NPM_SEARCH_URL", "https://registry.npmjs.org/-/v1/search")
GITHUB_API_BASE = os.environ.get(
    "NODESCOUT_GITHUB_API_BASE", "https://api.github.com")
RAW_GITHUB_BASE = os.environ.get(
    "NODESCOUT_RAW_GITHUB_BASE", "https://raw.githubusercontent.com")
USER_AGENT = os.environ.get("NODESCOUT_USER_AGENT", "NodeScout/0.1")

log = logging.getLogger(__name__)


async def _get(client: httpx.AsyncClient, url: httpx.URL | str, accept: str,
               not_found: bool = False) -> httpx.Response:
    try:
        r = await client.get(url, headers={"Accept": accept, "User-Agent": USER_AGENT})
    except httpx.HTTPError as e:
        raise SourceError(ErrorKind.SOURCE_UNAVAILABLE,
                          f"Request failed: {e.__class__.__name__}", url=str(url)) from e
    if r.status_code == 404 and not_found:
        raise SourceError(ErrorKind.NOT_FOUND, "Not found", status=404, url=str(url))
    if not r.is_success:
        raise SourceError(ErrorKind.SOURCE_UNAVAILABLE,
                          f"Request failed with status {r.status_code}",
                          status=r.status_code, url=str(url))
    return r


def _json(r: httpx.Response, url: httpx.URL | str) -> Any:
    try:
        return r.json()
    except ValueError as e:
        raise SourceError(ErrorKind.MALFORMED_RESPONSE, "Invalid JSON response",
                          status=r.status_code, url=str(url)) from e


def _malformed(e: ValidationError, r: httpx.Response, url: httpx.URL | str) -> SourceError:
    return SourceError(ErrorKind.MALFORMED_RESPONSE,
                       f"Unexpected response shape ({e.error_count()} errors)",
                       status=r.status_code, url=str(url))


class NpmSearchClient:
    def __init__(self, client: httpx.AsyncClient, base_url: str = NPM_SEARCH_URL):
        self.client = client
        self.base_url = base_url

    def build_search_url(self, text: str, size: int, offset: int = 0) -> httpx.URL:
        return httpx.URL(self.base_url, params={"text": text, "size": str(size), "from": str(offset)})

    async def search(self, text: str, size: int, offset: int = 0) -> NpmSearchPage:
        url = self.build_search_url(text, size, offset)
        r = await _get(self.client, url, "application/json")
        data = _json(r, url)
        try:
            page = NpmSearchPage.model_validate(data)
        except ValidationError as e:
            raise _malformed(e, r, url) from e
        log.debug("npm search %r -> %d/%d", text, len(page.objects), page.total)
        return page


class GithubClient:
    def __init__(self, client: httpx.AsyncClient, api_base: str = GITHUB_API_BASE,
                 raw_base: str = RAW_GITHUB_BASE):
        self.client = client
        self.api_base = api_base.rstrip("/")
        self.raw_base = raw_base.rstrip("/")

    def raw_url(self, owner: str, repo: str, branch: str, path: str) -> str:
        return f"{self.raw_base}/{owner}/{repo}/{branch}/{path}"

    async def resolve_default_branch(self, owner: str, repo: str) -> str:
        url = f"{self.api_base}/repos/{owner}/{repo}"
        r = await _get(self.client, url, "application/vnd.github+json")
        data = _json(r, url)
        branch = data.get("default_branch") if isinstance(data, dict) else None
        if not isinstance(branch, str) or not branch:
            raise SourceError(ErrorKind.MALFORMED_RESPONSE, "Missing default_branch",
                              status=r.status_code, url=url)
        return branch

    async def get_tree(self, owner: str, repo: str, branch: str) -> List[TreeEntry]:
        url = f"{self.api_base}/repos/{owner}/{repo}/git/trees/{quote(branch, safe='')}?recursive=1"
        r = await _get(self.client, url, "application/vnd.github+json")
        data = _json(r, url)
        tree: Optional[list] = data.get("tree") if isinstance(data, dict) else None
        if not isinstance(tree, list):
            raise SourceError(ErrorKind.MALFORMED_RESPONSE, "Missing tree listing",
                              status=r.status_code, url=url)
        try:
            return [TreeEntry.model_validate(e) for e in tree]
        except ValidationError as e:
            raise _malformed(e, r, url) from e

    async def fetch_raw_content(self, url: str) -> str:
        r = await _get(self.client, url, "text/plain", not_found=True)
        return r.text
