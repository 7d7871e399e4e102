import os
import re
import logging
from typing import Dict, List, Optional, Sequence, Tuple

from .models import (DocPage, DocPageContent, DocPageSearchResult, OfficialNodeDoc,
                     OfficialNodeDocContent, OfficialNodeSearchResult, TreeEntry)
from .ranker import rank_positive
from .sources import RAW_GITHUB_BASE, GithubClient
from .utils import docs_tokens, token_match_score

DOCS_OWNER = os.environ.get("NODESCOUT_DOCS_OWNER", "n8n-io")
DOCS_REPO = os.environ.get("NODESCOUT_DOCS_REPO", "n8n-docs")
DOCS_SITE = os.environ.get("NODESCOUT_DOCS_SITE", "https://docs.n8n.io")
DOCS_ROOT = "docs/"

NODE_DOC_PATTERN = re.compile(
    r"^docs/integrations/builtin/"
    r"(?:core-nodes|app-nodes|trigger-nodes|cluster-nodes/root-nodes|cluster-nodes/sub-nodes)/"
    r"(n8n-nodes-(?:base|langchain)\.([^/]+))(?:\.md|/index\.md)$",
    re.I,
)
PACKAGE_PREFIXES = (
    ("n8n-nodes-base.", "nodes-base."),
    ("n8n-nodes-langchain.", "nodes-langchain."),
)

log = logging.getLogger(__name__)


def short_node_type(full: str) -> str:
    for long_prefix, short_prefix in PACKAGE_PREFIXES:
        if full.lower().startswith(long_prefix):
            return short_prefix + full[len(long_prefix):]
    return full


def normalize_node_input(value: str) -> str:
    v = value.strip()
    if not v:
        return ""
    return short_node_type(v).lower()


def to_docs_url(path: str) -> str:
    rest = path[len(DOCS_ROOT):] if path.startswith(DOCS_ROOT) else path
    rest = re.sub(r"\.md$", "", rest, flags=re.I)
    rest = re.sub(r"/index$", "", rest, flags=re.I)
    return f"{DOCS_SITE}/{rest}/"


def to_title(path: str) -> str:
    leaf = path.split("/")[-1]
    title = re.sub(r"[-_]", " ", re.sub(r"\.md$", "", leaf, flags=re.I)).strip()
    return title or path


def github_url(path: str, branch: str, owner: str = DOCS_OWNER, repo: str = DOCS_REPO) -> str:
    return f"https://github.com/{owner}/{repo}/blob/{branch}/{path}"


def classify_path(path: str, branch: str, raw_base: str = RAW_GITHUB_BASE,
                  owner: str = DOCS_OWNER, repo: str = DOCS_REPO) -> Optional[OfficialNodeDoc]:
    """Map a tree path to an official node record, or None if it is not one."""
    m = NODE_DOC_PATTERN.match(path)
    if not m:
        return None
    full_name, node_name = m.group(1), m.group(2)
    package = "n8n-nodes-base" if full_name.lower().startswith("n8n-nodes-base.") else "n8n-nodes-langchain"
    return OfficialNodeDoc(
        node_type=short_node_type(full_name),
        node_name=node_name,
        package_name=package,
        path=path,
        docs_url=to_docs_url(path),
        github_url=github_url(path, branch, owner, repo),
        raw_url=f"{raw_base.rstrip('/')}/{owner}/{repo}/{branch}/{path}",
    )


def collect_nodes(entries: Sequence[TreeEntry], branch: str, **kw) -> List[OfficialNodeDoc]:
    seen: Dict[str, OfficialNodeDoc] = {}
    for e in entries:
        if e.type != "blob":
            continue
        node = classify_path(e.path, branch, **kw)
        if node and node.node_type not in seen:
            seen[node.node_type] = node
    return list(seen.values())


def collect_pages(entries: Sequence[TreeEntry], branch: str, raw_base: str = RAW_GITHUB_BASE,
                  owner: str = DOCS_OWNER, repo: str = DOCS_REPO) -> List[DocPage]:
    return [
        DocPage(
            path=e.path,
            title=to_title(e.path),
            docs_url=to_docs_url(e.path),
            github_url=github_url(e.path, branch, owner, repo),
            raw_url=f"{raw_base.rstrip('/')}/{owner}/{repo}/{branch}/{e.path}",
        )
        for e in entries
        if e.type == "blob" and e.path.startswith(DOCS_ROOT) and e.path.endswith(".md")
    ]


def overlap_score(text: str, tokens: List[str]) -> float:
    # an empty query matches every entry
    return token_match_score(text, tokens) if tokens else 1.0


def normalize_page_path(path_input: str) -> str:
    p = path_input.strip().strip("/")
    return p if p.startswith(DOCS_ROOT) else f"{DOCS_ROOT}{p}"


class DocsIndexer:
    """
    Official docs search over a fresh tree snapshot of the docs repo.
    Nothing is cached: every call resolves the default branch and pulls
    the whole recursive tree again.
    """

    def __init__(self, github: GithubClient, owner: str = DOCS_OWNER, repo: str = DOCS_REPO):
        self.github = github
        self.owner = owner
        self.repo = repo

    @property
    def _loc(self) -> dict:
        return {"raw_base": self.github.raw_base, "owner": self.owner, "repo": self.repo}

    async def snapshot(self) -> Tuple[str, List[TreeEntry]]:
        branch = await self.github.resolve_default_branch(self.owner, self.repo)
        entries = await self.github.get_tree(self.owner, self.repo, branch)
        log.info("docs tree %s/%s@%s: %d entries", self.owner, self.repo, branch, len(entries))
        return branch, entries

    async def nodes(self) -> List[OfficialNodeDoc]:
        branch, entries = await self.snapshot()
        return collect_nodes(entries, branch, **self._loc)

    async def search_official_nodes(self, query: str, limit: int) -> OfficialNodeSearchResult:
        corpus = await self.nodes()
        tokens = docs_tokens(query)
        ranked = rank_positive(
            corpus,
            lambda n: overlap_score(f"{n.node_type} {n.node_name} {n.path}", tokens),
            lambda n: n.node_type,
            limit,
        )
        return OfficialNodeSearchResult(total=len(corpus), results=[n for n, _ in ranked])

    async def get_official_node_doc(self, node: str) -> Optional[OfficialNodeDocContent]:
        wanted = normalize_node_input(node)
        if not wanted:
            return None
        corpus = sorted(await self.nodes(), key=lambda n: n.node_type)
        hit = next((n for n in corpus if normalize_node_input(n.node_type) == wanted), None)
        if hit is None:
            hit = next((n for n in corpus if wanted in n.node_name.lower()), None)
        if hit is None:
            log.info("official node %r not found", node)
            return None
        markdown = await self.github.fetch_raw_content(hit.raw_url)
        return OfficialNodeDocContent(**hit.model_dump(), markdown=markdown)

    async def search_docs_pages(self, query: str, limit: int) -> DocPageSearchResult:
        branch, entries = await self.snapshot()
        pages = collect_pages(entries, branch, **self._loc)
        tokens = docs_tokens(query)
        ranked = rank_positive(
            pages,
            lambda p: overlap_score(f"{p.path} {p.title}", tokens),
            lambda p: p.path,
            limit,
        )
        return DocPageSearchResult(total=len(pages), results=[p for p, _ in ranked])

    async def get_docs_page(self, path_input: str) -> DocPageContent:
        path = normalize_page_path(path_input)
        branch = await self.github.resolve_default_branch(self.owner, self.repo)
        raw_url = self.github.raw_url(self.owner, self.repo, branch, path)
        markdown = await self.github.fetch_raw_content(raw_url)
        return DocPageContent(
            path=path,
            title=to_title(path),
            docs_url=to_docs_url(path),
            github_url=github_url(path, branch, self.owner, self.repo),
            raw_url=raw_url,
            markdown=markdown,
        )
