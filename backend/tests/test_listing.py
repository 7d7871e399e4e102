from nodescout.listing import dedupe_items, items_for_facets, to_list_item
from nodescout.models import NpmSearchObject


def obj(name, description=None, version=None, popularity=None):
    data = {"package": {"name": name, "description": description, "version": version}}
    if popularity is not None:
        data["score"] = {"final": 0.5, "detail": {"popularity": popularity}}
    return NpmSearchObject.model_validate(data)


def test_to_list_item_normalizes_fields():
    item = to_list_item(obj("  N8N-Nodes-Foo ", description="   ", version="1.2.3-beta"), "n8n-nodes")
    assert item.name == "N8N-Nodes-Foo"
    assert item.identity == "n8n-nodes-foo"
    assert item.description is None
    assert item.tags == ["n8n-nodes"]
    assert item.version == "1.2.3-beta"
    assert item.popularity is None


def test_merge_keeps_first_facet_values_and_unions_tags():
    results = [
        ("b-tag", [obj("p", description="X")]),
        ("a-tag", [obj("P ", description="Y", version="2.0.0"), obj("q")]),
    ]
    merged = dedupe_items(items_for_facets(results))
    assert [m.identity for m in merged] == ["p", "q"]
    p = merged[0]
    assert p.description == "X"
    assert p.version == "2.0.0"
    assert p.tags == ["a-tag", "b-tag"]


def test_first_non_null_description_wins():
    results = [
        ("a", [obj("p", description=None)]),
        ("b", [obj("p", description="Y")]),
        ("c", [obj("p", description="Z")]),
    ]
    (p,) = dedupe_items(items_for_facets(results))
    assert p.description == "Y"
    assert p.tags == ["a", "b", "c"]


def test_dedupe_identity_is_unique_and_sorted():
    results = [("t1", [obj("Zeta"), obj("alpha"), obj("ALPHA")]), ("t2", [obj("zeta "), obj("beta")])]
    merged = dedupe_items(items_for_facets(results))
    ids = [m.identity for m in merged]
    assert ids == sorted(set(ids))
    assert ids == ["alpha", "beta", "zeta"]
    assert merged[0].name == "alpha"
