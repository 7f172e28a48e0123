# tests/reconciler/conftest.py
import pytest

from reconciler.model import FaqEntry, GraphTemplate, IconSpec, ReconcileSettings
from reconciler.pipeline import ReconcileContext

SAMPLE_PAGE = """<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>Titanium Cookware Guides and Honest Reviews</title>
</head>
<body>
  <header>
    <nav><a href="/">Home</a></nav>
  </header>
  <main>
    <h1>Titanium cookware</h1>
    <p class="tldr">Titanium pans are light, tough and easy to care for.</p>
    <img class="hero" src="/assets/img/hero.jpg" alt="A titanium pan" width="1200" height="630">
    <img src="/assets/img/detail.jpg" width="600" height="400">
    <section id="faqs">
    </section>
  </main>
</body>
</html>
"""


@pytest.fixture
def settings():
    return ReconcileSettings(
        origin="https://example.com/",
        site_name="Example Site",
        default_title="Example Site",
        default_description="Guides and reviews from the Example Site team.",
        fallback_image="/assets/img/og.webp",
        og_image_alt="Site hero image",
        misspelled_origins=["https://exmaple.com"],
        icons=[
            IconSpec(rel="icon", href="/assets/img/brand/logo-32.png", sizes="32x32", type="image/png"),
            IconSpec(rel="icon", href="/assets/img/brand/logo-192.png", sizes="192x192", type="image/png"),
            IconSpec(rel="apple-touch-icon", href="/assets/img/brand/apple-touch-180.png", sizes="180x180"),
        ],
    )


@pytest.fixture
def faq_entries():
    return [
        FaqEntry(q="Is titanium cookware safe?", a="Yes, it is inert."),
        FaqEntry(q="Can it go in the dishwasher?", a="Hand washing is better."),
        FaqEntry(q="Does it need seasoning?", a="No."),
    ]


@pytest.fixture
def template():
    return GraphTemplate.from_document({
        "@context": "https://schema.org",
        "@graph": [{"@type": "Organization", "name": "Example Site", "logo": "https://example.com/logo.png"}],
    })


@pytest.fixture
def make_ctx(settings, faq_entries, template):
    def factory(today="2024-01-01", **overrides):
        options = {
            "faq_entries": faq_entries,
            "template": template,
            "disclosure": "We may earn a commission from qualifying purchases.",
        }
        options.update(overrides)
        return ReconcileContext(settings, today=lambda: today, **options)
    return factory


@pytest.fixture
def sample_page():
    return SAMPLE_PAGE
