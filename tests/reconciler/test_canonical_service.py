# tests/reconciler/test_canonical_service.py
import pytest

from reconciler.services.canonical_service import CanonicalService, normalize_rel_path, title_case

ORIGIN = "https://example.com"


@pytest.fixture
def service():
    return CanonicalService(ORIGIN + "/")


@pytest.mark.parametrize("rel_path, expected", [
    ("index.html", "https://example.com/"),
    ("guides/index.html", "https://example.com/guides/"),
    ("guides/care/index.html", "https://example.com/guides/care/"),
    ("guides/pan-care.html", "https://example.com/guides/pan-care.html"),
    ("./about.html", "https://example.com/about.html"),
])
def test_compute_canonical(service, rel_path, expected):
    assert service.compute_canonical(rel_path) == expected


def test_canonical_depends_on_path_only(service):
    assert service.derive("guides\\care.html") == service.derive("guides/care.html")


def test_breadcrumbs_for_root_is_home_only(service):
    crumbs = service.build_breadcrumbs("index.html")
    assert [(c.position, c.name, c.item) for c in crumbs] == [(1, "Home", "https://example.com/")]


def test_breadcrumbs_for_directory_index(service):
    crumbs = service.build_breadcrumbs("guides/care/index.html")
    assert [(c.position, c.name, c.item) for c in crumbs] == [
        (1, "Home", "https://example.com/"),
        (2, "Guides", "https://example.com/guides/"),
        (3, "Care", "https://example.com/guides/care/"),
    ]


def test_breadcrumbs_for_page_keep_the_html_url(service):
    crumbs = service.build_breadcrumbs("buying_guides/titanium-pan-care.html")
    assert crumbs[1].name == "Buying Guides"
    assert crumbs[1].item == "https://example.com/buying_guides/"
    assert crumbs[2].name == "Titanium Pan Care"
    assert crumbs[2].item == "https://example.com/buying_guides/titanium-pan-care.html"


def test_record_flags_the_root_index(service):
    assert service.derive("index.html").is_root
    assert not service.derive("guides/index.html").is_root


def test_helpers():
    assert normalize_rel_path("/a/b.html") == "a/b.html"
    assert title_case("care--and__cleaning") == "Care And Cleaning"
