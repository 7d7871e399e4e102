import asyncio
import httpx
import pytest

from nodescout.errors import ErrorKind, SourceError
from nodescout.sources import GithubClient, NpmSearchClient


def run_with(handler, fn):
    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as c:
            return await fn(c)
    return asyncio.run(go())


def test_npm_search_parses_page_and_sends_params():
    seen = {}

    def handler(request):
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json={
            "total": 1,
            "objects": [{
                "package": {"name": "n8n-nodes-foo", "version": "0.1.0", "keywords": ["n8n"]},
                "score": {"final": 0.4, "detail": {"popularity": 0.3}},
                "searchScore": 12.5,
                "flags": {"unstable": True},
            }],
        })

    page = run_with(handler, lambda c: NpmSearchClient(c, "https://npm.test/search").search("keywords:x", 7, 3))
    assert seen["params"] == {"text": "keywords:x", "size": "7", "from": "3"}
    assert page.total == 1
    assert page.objects[0].package.name == "n8n-nodes-foo"
    assert page.objects[0].popularity == 0.3
    assert page.objects[0].package.description is None


def test_npm_search_non_2xx_is_source_unavailable():
    with pytest.raises(SourceError) as exc:
        run_with(lambda r: httpx.Response(503), lambda c: NpmSearchClient(c, "https://npm.test/search").search("x", 5))
    e = exc.value
    assert e.kind == ErrorKind.SOURCE_UNAVAILABLE
    assert e.status == 503
    assert e.url.startswith("https://npm.test/search?")
    assert e.message == "Request failed with status 503"


def test_npm_search_bad_json_and_bad_shape_are_malformed():
    client = lambda c: NpmSearchClient(c, "https://npm.test/search").search("x", 5)
    with pytest.raises(SourceError) as exc:
        run_with(lambda r: httpx.Response(200, text="<html>"), client)
    assert exc.value.kind == ErrorKind.MALFORMED_RESPONSE
    with pytest.raises(SourceError) as exc:
        run_with(lambda r: httpx.Response(200, json={"total": 1, "objects": [{"package": {}}]}), client)
    assert exc.value.kind == ErrorKind.MALFORMED_RESPONSE


def test_transport_error_is_source_unavailable():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(SourceError) as exc:
        run_with(handler, lambda c: NpmSearchClient(c, "https://npm.test/search").search("x", 5))
    assert exc.value.kind == ErrorKind.SOURCE_UNAVAILABLE
    assert exc.value.status is None


def test_github_branch_and_tree():
    def handler(request):
        if request.url.path == "/repos/o/r":
            return httpx.Response(200, json={"default_branch": "main"})
        assert request.url.path == "/repos/o/r/git/trees/main"
        assert request.url.params["recursive"] == "1"
        return httpx.Response(200, json={"tree": [{"path": "docs/a.md", "type": "blob", "sha": "1"},
                                                  {"path": "docs", "type": "tree"}]})

    async def go(c):
        gh = GithubClient(c, api_base="https://gh.test")
        branch = await gh.resolve_default_branch("o", "r")
        return branch, await gh.get_tree("o", "r", branch)

    branch, tree = run_with(handler, go)
    assert branch == "main"
    assert [(e.path, e.type) for e in tree] == [("docs/a.md", "blob"), ("docs", "tree")]


def test_github_missing_fields_are_malformed():
    gh = lambda c: GithubClient(c, api_base="https://gh.test")
    with pytest.raises(SourceError) as exc:
        run_with(lambda r: httpx.Response(200, json={"name": "r"}), lambda c: gh(c).resolve_default_branch("o", "r"))
    assert exc.value.kind == ErrorKind.MALFORMED_RESPONSE
    with pytest.raises(SourceError) as exc:
        run_with(lambda r: httpx.Response(200, json={"truncated": False}), lambda c: gh(c).get_tree("o", "r", "main"))
    assert exc.value.kind == ErrorKind.MALFORMED_RESPONSE


def test_raw_content_and_not_found():
    def handler(request):
        if request.url.path.endswith("missing.md"):
            return httpx.Response(404, text="404: Not Found")
        return httpx.Response(200, text="# Title\n")

    gh = lambda c: GithubClient(c, raw_base="https://raw.test")
    assert run_with(handler, lambda c: gh(c).fetch_raw_content("https://raw.test/o/r/main/a.md")) == "# Title\n"
    with pytest.raises(SourceError) as exc:
        run_with(handler, lambda c: gh(c).fetch_raw_content("https://raw.test/o/r/main/missing.md"))
    assert exc.value.kind == ErrorKind.NOT_FOUND
    assert exc.value.url == "https://raw.test/o/r/main/missing.md"
