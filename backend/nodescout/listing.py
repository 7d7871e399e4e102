from typing import Dict, Iterable, List, Tuple

from .models import ListItem, NpmSearchObject


def identity_of(name: str) -> str:
    return name.strip().lower()


def to_list_item(obj: NpmSearchObject, tag: str) -> ListItem:
    pkg = obj.package
    name = pkg.name.strip()
    description = (pkg.description or "").strip() or None
    tags = [t.strip() for t in [tag] if t and t.strip()]
    return ListItem(
        name=name,
        identity=identity_of(name),
        description=description,
        tags=tags,
        version=pkg.version,
        popularity=None,
    )


def items_for_facets(results: Iterable[Tuple[str, List[NpmSearchObject]]]) -> List[ListItem]:
    """Flatten (facet, objects) pairs into list items, keeping facet order."""
    return [to_list_item(obj, tag) for tag, objects in results for obj in objects]


def merge_items(existing: ListItem, incoming: ListItem) -> ListItem:
    tags = sorted({t.strip() for t in existing.tags + incoming.tags if t.strip()})
    return existing.model_copy(update={
        "tags": tags,
        "description": existing.description if existing.description is not None else incoming.description,
        "version": existing.version if existing.version is not None else incoming.version,
        "popularity": existing.popularity if existing.popularity is not None else incoming.popularity,
    })


def dedupe_items(items: Iterable[ListItem]) -> List[ListItem]:
    """
    Merge items that share an identity. Earlier items win for scalar
    fields, so callers must pass items in facet-list order. Result is
    sorted by identity.
    """
    merged: Dict[str, ListItem] = {}
    for item in items:
        prev = merged.get(item.identity)
        merged[item.identity] = merge_items(prev, item) if prev else item
    return sorted(merged.values(), key=lambda it: it.identity)
