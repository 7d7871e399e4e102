from pydantic import BaseModel, Field, field_validator
from typing import Any, Dict, List, Literal, Optional

from .errors import ErrorKind, SourceError


# ---- npm search payloads (validated once at the adapter boundary) ----

class NpmSearchPackage(BaseModel):
    name: str
    version: Optional[str] = None
    description: Optional[str] = None
    keywords: List[str] = []
    links: Dict[str, str] = {}


class NpmScoreDetail(BaseModel):
    popularity: Optional[float] = None
    quality: Optional[float] = None
    maintenance: Optional[float] = None


class NpmScore(BaseModel):
    final: Optional[float] = None
    detail: Optional[NpmScoreDetail] = None


class NpmSearchObject(BaseModel):
    package: NpmSearchPackage
    score: Optional[NpmScore] = None
    searchScore: Optional[float] = None

    @property
    def popularity(self) -> Optional[float]:
        if self.score and self.score.detail:
            return self.score.detail.popularity
        return None


class NpmSearchPage(BaseModel):
    total: int
    objects: List[NpmSearchObject]


# ---- GitHub payloads ----

class TreeEntry(BaseModel):
    path: str
    type: str  # "blob" | "tree" | "commit"


# ---- canonical records ----

class ListItem(BaseModel):
    name: str
    identity: str
    description: Optional[str] = None
    tags: List[str] = []
    version: Optional[str] = None
    popularity: Optional[float] = None


class ScoredItem(ListItem):
    score: float


class AggregationResult(BaseModel):
    query: str
    limit: int
    total: int
    results: List[ScoredItem]
    warnings: List[str] = []
    had_success: bool

    def raise_for_failure(self) -> "AggregationResult":
        if not self.had_success:
            raise SourceError(ErrorKind.ALL_SOURCES_FAILED, "Failed to fetch search results",
                              details={"warnings": self.warnings})
        return self


class ListingResult(BaseModel):
    items: List[ListItem]
    warnings: List[str] = []
    had_success: bool

    def raise_for_failure(self) -> "ListingResult":
        if not self.had_success:
            raise SourceError(ErrorKind.ALL_SOURCES_FAILED, "Failed to fetch list results",
                              details={"warnings": self.warnings})
        return self


class RankingWeights(BaseModel, frozen=True):
    name: float = 0.4
    description: float = 0.2
    tags: float = 0.3
    popularity: float = 0.1

    @field_validator("name", "description", "tags", "popularity")
    @classmethod
    def _non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("ranking weights must be >= 0")
        return v

    @property
    def total(self) -> float:
        return self.name + self.description + self.tags + self.popularity


class OfficialNodeDoc(BaseModel):
    node_type: str
    node_name: str
    package_name: Literal["n8n-nodes-base", "n8n-nodes-langchain"]
    path: str
    docs_url: str
    github_url: str
    raw_url: str


class OfficialNodeDocContent(OfficialNodeDoc):
    markdown: str


class DocPage(BaseModel):
    path: str
    title: str
    docs_url: str
    github_url: str
    raw_url: str


class DocPageContent(DocPage):
    markdown: str


class OfficialNodeSearchResult(BaseModel):
    total: int
    results: List[OfficialNodeDoc]


class DocPageSearchResult(BaseModel):
    total: int
    results: List[DocPage]


# ---- HTTP envelope ----

class ApiMeta(BaseModel):
    count: Optional[int] = None
    warnings: Optional[List[str]] = None


class ApiError(BaseModel):
    code: str
    message: str
    details: Optional[Any] = None


class ApiResponse(BaseModel):
    ok: bool
    data: Optional[Any] = None
    error: Optional[ApiError] = None
    meta: Optional[ApiMeta] = None
