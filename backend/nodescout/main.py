import os
import time
import logging
import httpx
from typing import Any, List, Optional
from fastapi import Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse

from .errors import ErrorKind, SourceError
from .models import ApiError, ApiMeta, ApiResponse
from .official_docs import DocsIndexer
from .search import aggregate_list, aggregate_search
from .sources import GithubClient, NpmSearchClient

app = FastAPI(title="NodeScout", version="0.1.0")
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(message)s"
)

# Knobs
HTTP_TIMEOUT = float(os.environ.get("NODESCOUT_HTTP_TIMEOUT", "15"))
SEARCH_MAX_RESULTS = int(os.environ.get("NODESCOUT_SEARCH_MAX_RESULTS", "10"))
LIST_MAX_RESULTS = int(os.environ.get("NODESCOUT_LIST_MAX_RESULTS", "25"))
DOCS_MAX_RESULTS = int(os.environ.get("NODESCOUT_DOCS_MAX_RESULTS", "30"))

STATUS_FOR = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.SOURCE_UNAVAILABLE: 502,
    ErrorKind.MALFORMED_RESPONSE: 502,
    ErrorKind.ALL_SOURCES_FAILED: 502,
}


def ok(data: Any, warnings: Optional[List[str]] = None, count: Optional[int] = None) -> dict:
    meta = None
    if warnings or count is not None:
        meta = ApiMeta(warnings=warnings or None, count=count)
    return ApiResponse(ok=True, data=data, meta=meta).model_dump(exclude_none=True)


def err(code: str, message: str, details: Any = None, warnings: Optional[List[str]] = None) -> dict:
    meta = ApiMeta(warnings=warnings) if warnings else None
    return ApiResponse(ok=False, error=ApiError(code=code, message=message, details=details),
                       meta=meta).model_dump(exclude_none=True)


@app.exception_handler(SourceError)
async def _source_error(request: Request, e: SourceError):
    code = "not_found" if e.kind == ErrorKind.NOT_FOUND else "upstream_error"
    warnings = e.details.get("warnings") if isinstance(e.details, dict) else None
    details = e.to_dict()
    logging.warning("%s failed: %r", request.url.path, e)
    return JSONResponse(status_code=STATUS_FOR[e.kind],
                        content=err(code, e.message, details=details, warnings=warnings))


# one client per request; nothing is pooled across calls
async def get_http():
    async with httpx.AsyncClient(timeout=HTTP_TIMEOUT, follow_redirects=True) as c:
        yield c


def get_npm(http: httpx.AsyncClient = Depends(get_http)) -> NpmSearchClient:
    return NpmSearchClient(http)


def get_docs(http: httpx.AsyncClient = Depends(get_http)) -> DocsIndexer:
    return DocsIndexer(GithubClient(http))


@app.get("/health")
def health(): return {"ok": True}


@app.get("/search")
async def search(q: str = Query(..., min_length=1, max_length=200),
                 limit: int = Query(5, ge=1, le=SEARCH_MAX_RESULTS),
                 npm: NpmSearchClient = Depends(get_npm)):
    t0 = time.time()
    res = (await aggregate_search(npm, q, min(limit, SEARCH_MAX_RESULTS))).raise_for_failure()
    logging.info("/search q=%r total=%d took=%.1fms", q, res.total, (time.time() - t0) * 1000)
    return ok(res.model_dump(exclude={"warnings", "had_success"}), warnings=res.warnings,
              count=len(res.results))


@app.get("/list")
async def list_packages(tag: Optional[str] = Query(None, min_length=1),
                        limit: int = Query(10, ge=1, le=LIST_MAX_RESULTS),
                        npm: NpmSearchClient = Depends(get_npm)):
    res = (await aggregate_list(npm, [tag] if tag else None, min(limit, LIST_MAX_RESULTS))).raise_for_failure()
    return ok([it.model_dump() for it in res.items], warnings=res.warnings, count=len(res.items))


@app.get("/official-nodes")
async def search_official_nodes(q: str = "",
                                limit: int = Query(10, ge=1, le=DOCS_MAX_RESULTS),
                                docs: DocsIndexer = Depends(get_docs)):
    res = await docs.search_official_nodes(q, limit)
    return ok(res.model_dump(), count=len(res.results))


@app.get("/official-nodes/{node}")
async def get_official_node(node: str, include_content: bool = True,
                            docs: DocsIndexer = Depends(get_docs)):
    doc = await docs.get_official_node_doc(node)
    if doc is None:
        return JSONResponse(status_code=404, content=err("not_found", f"Official node not found: {node}"))
    data = doc.model_dump()
    if not include_content:
        data.pop("markdown")
    return ok(data)


@app.get("/docs-pages")
async def search_docs_pages(q: str = Query(..., min_length=1),
                            limit: int = Query(10, ge=1, le=DOCS_MAX_RESULTS),
                            docs: DocsIndexer = Depends(get_docs)):
    res = await docs.search_docs_pages(q, limit)
    return ok(res.model_dump(), count=len(res.results))


@app.get("/docs-pages/page")
async def get_docs_page(path: str = Query(..., min_length=1),
                        docs: DocsIndexer = Depends(get_docs)):
    page = await docs.get_docs_page(path)
    return ok(page.model_dump())
