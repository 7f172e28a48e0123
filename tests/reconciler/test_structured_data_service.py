# tests/reconciler/test_structured_data_service.py
import json

import pytest

from reconciler.model import FaqEntry, GraphTemplate, PrimaryImage
from reconciler.services.canonical_service import CanonicalService
from reconciler.services.structured_data_service import StructuredDataBuilder

ORIGIN = "https://example.com"

TEMPLATE = GraphTemplate.from_document({
    "@context": "https://schema.org",
    "@graph": [
        {"@type": "Organization", "@id": "https://template.invalid/#org", "name": "Example Org",
         "logo": "https://example.com/logo.png"},
        {"@type": "WebSite", "@id": "https://template.invalid/#website"},
        {"@type": "WebPage", "isAccessibleForFree": True},
        {"@type": "BreadcrumbList"},
    ],
})

FAQ = [
    FaqEntry(q="Is titanium safe?", a="Yes."),
    FaqEntry(q="Does it scratch?", a="Rarely."),
    FaqEntry(question="Can it go in the oven?", answer="Up to 260C."),
]

PAGE = """<html><head></head><body>
<h1>Pan care</h1>
<div data-speak="tldr">Wash warm.</div>
<ol class="care-steps"><li>Rinse</li><li>Dry <em>fully</em></li></ol>
</body></html>"""


@pytest.fixture
def builder():
    return StructuredDataBuilder(ORIGIN, "Example Site", today=lambda: "2024-01-01")


def _nodes(graph):
    return {node["@id"]: node for node in graph["@graph"]}


def test_graph_nodes_are_anchored_to_canonical_and_origin(builder):
    record = CanonicalService(ORIGIN).derive("guides/pan-care.html")
    image = PrimaryImage(url=f"{ORIGIN}/img/hero.jpg", source="hero", caption="Pan", width="1200", height="630")
    graph = builder.build_graph(PAGE, record, "Pan care", "How to care", FAQ, TEMPLATE, primary_image=image)

    canonical = record.canonical_url
    assert graph["@context"] == "https://schema.org"
    assert [node["@id"] for node in graph["@graph"]] == [
        f"{ORIGIN}/#org",
        f"{ORIGIN}/#website",
        f"{canonical}#breadcrumbs",
        f"{canonical}#webpage",
        f"{canonical}#primaryimage",
        f"{canonical}#blog",
        f"{canonical}#speakable",
        f"{canonical}#care",
    ]
    nodes = _nodes(graph)
    assert nodes[f"{ORIGIN}/#org"]["logo"] == "https://example.com/logo.png"
    assert nodes[f"{canonical}#webpage"]["isAccessibleForFree"] is True
    assert nodes[f"{canonical}#webpage"]["primaryImageOfPage"] == {"@id": f"{canonical}#primaryimage"}
    assert nodes[f"{canonical}#blog"]["@type"] == "BlogPosting"
    assert nodes[f"{canonical}#blog"]["image"] == {"@id": f"{canonical}#primaryimage"}
    assert nodes[f"{canonical}#primaryimage"]["width"] == 1200
    assert nodes[f"{canonical}#speakable"]["cssSelector"] == [".tldr", "h1"]
    steps = nodes[f"{canonical}#care"]["step"]
    assert [(s["position"], s["text"]) for s in steps] == [(1, "Rinse"), (2, "Dry fully")]


def test_faq_page_only_on_root_with_bank_order(builder):
    root = CanonicalService(ORIGIN).derive("index.html")
    graph = builder.build_graph(PAGE, root, "Home", "Desc", FAQ, TEMPLATE)
    faq = _nodes(graph)[f"{ORIGIN}/#faq"]
    assert [q["name"] for q in faq["mainEntity"]] == [e.question for e in FAQ]
    assert faq["mainEntity"][2]["acceptedAnswer"] == {"@type": "Answer", "text": "Up to 260C."}

    page = CanonicalService(ORIGIN).derive("guides/index.html")
    assert not any(n["@type"] == "FAQPage" for n in builder.build_graph(PAGE, page, "T", "D", FAQ, TEMPLATE)["@graph"])
    assert not any(n["@type"] == "FAQPage" for n in builder.build_graph(PAGE, root, "T", "D", [], TEMPLATE)["@graph"])


def test_optional_nodes_are_omitted_without_signals(builder):
    record = CanonicalService(ORIGIN).derive("a.html")
    only_summary = '<p class="tldr">Short</p>'
    graph = builder.build_graph(only_summary, record, "T", "D", [], GraphTemplate())
    types = [node["@type"] for node in graph["@graph"]]
    assert "SpeakableSpecification" not in types
    assert "ImageObject" not in types
    assert "HowTo" not in types
    assert "primaryImageOfPage" not in _nodes(graph)[f"{ORIGIN}/a.html#webpage"]


@pytest.mark.parametrize("prior, explicit, expected", [
    ({}, None, ("2024-01-01", "2024-01-01")),
    ({}, "2023-05-02", ("2023-05-02", "2023-05-02")),
    ({"datePublished": "2022-01-01"}, None, ("2022-01-01", "2022-01-01")),
    ({"datePublished": "2022-01-01", "dateModified": "2022-06-01"}, "2023-05-02", ("2022-01-01", "2023-05-02")),
])
def test_resolve_dates(builder, prior, explicit, expected):
    assert builder.resolve_dates(prior, explicit) == expected


def test_extract_existing_dates_first_value_wins_and_counts_invalid():
    blocks = [
        "{not json",
        json.dumps({"@graph": [{"@type": "WebPage", "datePublished": "2021-01-01", "dateModified": "2021-02-02"}]}),
        json.dumps({"@type": "Article", "datePublished": "2020-01-01"}),
    ]
    dates, invalid = StructuredDataBuilder.extract_existing_dates(blocks)
    assert dates == {"datePublished": "2021-01-01", "dateModified": "2021-02-02"}
    assert invalid == 1


def test_serialize_is_two_space_json_safe_for_script_tags(builder):
    text = builder.serialize({"@context": "https://schema.org", "name": "A </script> B", "x": "é"})
    assert text.startswith('{\n  "@context"')
    assert "</script>" not in text
    assert "<\\/script>" in text
    assert "é" in text
    assert json.loads(text)["name"] == "A </script> B"
