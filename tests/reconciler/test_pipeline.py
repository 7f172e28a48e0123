# tests/reconciler/test_pipeline.py
import json

import pytest

from reconciler.dom.head import locate_head
from reconciler.dom.markup import count_faq_details
from reconciler.dom.upsert import json_ld_blocks
from reconciler.errors import StageError
from reconciler.model import FaqEntry
from reconciler.pipeline import (
    ASSETS_PIPELINE,
    ENFORCE_PIPELINE,
    INJECT_PIPELINE,
    PIPELINES,
    DocumentState,
    Pipeline,
    ensure_site_script,
    locate_head as locate_head_stage,
    stage_spec,
)


def _run(pipeline, ctx, text, rel_path="index.html"):
    return pipeline.run(DocumentState.load(rel_path, text), ctx)


def _graph(text):
    blocks = json_ld_blocks(locate_head(text).inner)
    assert len(blocks) == 1
    return {node["@type"]: node for node in json.loads(blocks[0])["@graph"]}


def test_pipelines_are_registered_by_name():
    assert set(PIPELINES) == {"enforce", "assets", "inject"}
    assert ENFORCE_PIPELINE.stage_names[:2] == ["domain-typos", "locate-head"]
    assert INJECT_PIPELINE.stage_names == ["disclosure", "faq"]


def test_enforce_first_run_fixes_sample_page(make_ctx, sample_page):
    state = _run(ENFORCE_PIPELINE, make_ctx(), sample_page)

    assert state.changed
    assert state.summary.warnings == []
    assert state.summary.fixes == [
        "Ensured canonical link",
        "Added meta description",
        "Added robots meta",
        "Aligned Open Graph tags",
        "Aligned Twitter card tags",
        "Refreshed JSON-LD graph",
        "Inserted progress bar markup",
        "Added site.js reference",
        "Standardized image loading attributes",
    ]
    html = state.html
    assert '<link rel="canonical" href="https://example.com/">' in html
    assert '<meta name="description" content="Titanium pans are light, tough and easy to care for.">' in html
    assert '<meta property="og:type" content="website">' in html
    assert '<meta property="og:image" content="https://example.com/assets/img/hero.jpg">' in html
    assert '<meta property="og:image:alt" content="A titanium pan">' in html
    assert '<meta name="twitter:card" content="summary_large_image">' in html

    graph = _graph(html)
    assert graph["WebPage"]["datePublished"] == "2024-01-01"
    assert len(graph["FAQPage"]["mainEntity"]) == 3
    assert graph["SpeakableSpecification"]["cssSelector"] == [".tldr", "h1"]


def test_enforce_is_idempotent_and_dates_are_stable(make_ctx, sample_page):
    first = _run(ENFORCE_PIPELINE, make_ctx(today="2024-01-01"), sample_page)
    second = _run(ENFORCE_PIPELINE, make_ctx(today="2025-06-01"), first.html)

    assert second.summary.fixes == []
    assert second.summary.warnings == []
    assert not second.changed
    assert second.html == first.html
    assert _graph(second.html)["WebPage"]["datePublished"] == "2024-01-01"


def test_closing_bracket_inside_authored_values_is_kept_in_the_tag(make_ctx, sample_page):
    page = sample_page.replace(
        "</title>",
        '</title>\n  <meta name="description" content="Light > heavy pans">\n  <meta name="twitter:title" content="A > B">',
    )
    first = _run(ENFORCE_PIPELINE, make_ctx(), page)
    assert '<meta name="description" content="Light > heavy pans">' in first.html
    assert "Added meta description" not in first.summary.fixes
    assert first.description == "Light > heavy pans"
    assert first.html.count("twitter:title") == 1
    assert '> B">' not in first.html

    second = _run(ENFORCE_PIPELINE, make_ctx(), first.html)
    assert second.summary.fixes == []
    assert second.html == first.html


def test_faq_markup_in_head_json_ld_never_feeds_body_signals(make_ctx, sample_page):
    entries = [FaqEntry(
        q="Where do I start?",
        a="Open <body>, read the <h1>Pans</h1> heading, look at <img src='/assets/img/faq.png'> "
          "and follow <ol class='care-steps'><li>Rinse</li></ol>. Load <script src='/site.js'> last.",
    )]
    page = (
        sample_page
        .replace("    <h1>Titanium cookware</h1>\n", "")
        .replace('    <img class="hero" src="/assets/img/hero.jpg" alt="A titanium pan" width="1200" height="630">\n', "")
        .replace('    <img src="/assets/img/detail.jpg" width="600" height="400">\n', "")
    )
    first = _run(ENFORCE_PIPELINE, make_ctx(faq_entries=entries), page)
    assert "Added site.js reference" in first.summary.fixes
    assert first.html.count('<script src="/site.js" defer></script>') == 1
    graph = _graph(first.html)
    assert "SpeakableSpecification" not in graph
    assert "HowTo" not in graph
    assert graph["ImageObject"]["url"] == "https://example.com/assets/img/og.webp"

    second = _run(ENFORCE_PIPELINE, make_ctx(faq_entries=entries), first.html)
    assert second.summary.fixes == []
    assert second.html == first.html
    assert '<meta property="og:image" content="https://example.com/assets/img/og.webp">' in second.html


def test_explicit_timestamp_drives_dates(make_ctx, sample_page):
    page = sample_page.replace("<main>", '<main>\n    <time datetime="2023-03-04">March</time>')
    graph = _graph(_run(ENFORCE_PIPELINE, make_ctx(), page).html)
    assert graph["BlogPosting"]["datePublished"] == "2023-03-04"
    assert graph["BlogPosting"]["dateModified"] == "2023-03-04"


def test_authored_description_is_never_rewritten(make_ctx, sample_page):
    page = sample_page.replace("</title>", '</title>\n  <meta name="description" content="Authored &amp; kept">')
    state = _run(ENFORCE_PIPELINE, make_ctx(), page)
    assert '<meta name="description" content="Authored &amp; kept">' in state.html
    assert "Added meta description" not in state.summary.fixes
    assert state.description == "Authored & kept"
    assert '<meta property="og:description" content="Authored &amp; kept">' in state.html


def test_empty_description_is_filled(make_ctx, sample_page):
    page = sample_page.replace("</title>", '</title>\n  <meta name="description" content="">')
    state = _run(ENFORCE_PIPELINE, make_ctx(), page)
    assert "Added meta description" in state.summary.fixes
    assert 'content=""' not in state.html


def test_long_authored_description_only_warns(make_ctx, sample_page):
    long_text = "x" * 200
    page = sample_page.replace("</title>", f'</title>\n  <meta name="description" content="{long_text}">')
    state = _run(ENFORCE_PIPELINE, make_ctx(), page)
    assert "Meta description length 200 exceeds 165 characters" in state.summary.warnings
    assert long_text in state.html


def test_existing_robots_are_kept(make_ctx, sample_page):
    page = sample_page.replace("</title>", '</title>\n  <meta name="robots" content="noindex">')
    state = _run(ENFORCE_PIPELINE, make_ctx(), page)
    assert '<meta name="robots" content="noindex">' in state.html
    assert "Added robots meta" not in state.summary.fixes


def test_short_title_warns(make_ctx, sample_page):
    state = _run(ENFORCE_PIPELINE, make_ctx(), sample_page.replace("Titanium Cookware Guides and Honest Reviews", "Pans"))
    assert "Title length 4 outside preferred range (35-65)" in state.summary.warnings


def test_duplicates_and_multiple_json_ld_blocks_warn(make_ctx, sample_page):
    head_extra = (
        '</title>\n'
        '  <link rel="canonical" href="https://example.com/old">\n'
        '  <link rel="canonical" href="https://example.com/older">\n'
        '  <script type="application/ld+json">{"@graph": [{"datePublished": "2020-02-02"}]}</script>\n'
        '  <script type="application/ld+json">{broken</script>'
    )
    state = _run(ENFORCE_PIPELINE, make_ctx(), sample_page.replace("</title>", head_extra))
    warnings = state.summary.warnings
    assert 'Duplicate <link rel="canonical"> tags, first kept' in warnings
    assert "Multiple JSON-LD blocks (2), replaced with one" in warnings
    assert "Invalid previous JSON-LD ignored" in warnings
    assert _graph(state.html)["WebPage"]["datePublished"] == "2020-02-02"


def test_json_ld_left_alone_without_template(make_ctx, sample_page):
    state = _run(ENFORCE_PIPELINE, make_ctx(template=None), sample_page)
    assert json_ld_blocks(locate_head(state.html).inner) == []
    assert "Refreshed JSON-LD graph" not in state.summary.fixes


def test_domain_typos_are_corrected(make_ctx, sample_page):
    page = sample_page.replace('<a href="/">', '<a href="https://exmaple.com/">')
    state = _run(ENFORCE_PIPELINE, make_ctx(), page)
    assert "Corrected domain typo" in state.summary.fixes
    assert "exmaple" not in state.html


def test_missing_head_skips_head_stages(make_ctx, sample_page):
    page = '<html><body><header></header><p>Body only</p><img src="/a.jpg"></body></html>'
    state = _run(ENFORCE_PIPELINE, make_ctx(), page, rel_path="guides/a.html")
    assert "Missing <head> section" in state.summary.warnings
    assert "Missing width/height on image #1 (/a.jpg)" in state.summary.warnings
    assert locate_head(state.html) is None
    assert state.summary.fixes == [
        "Inserted progress bar markup",
        "Added site.js reference",
        "Standardized image loading attributes",
    ]
    assert state.changed


def test_missing_header_warns(make_ctx, sample_page):
    page = sample_page.replace("<header>\n    <nav><a href=\"/\">Home</a></nav>\n  </header>\n", "")
    state = _run(ENFORCE_PIPELINE, make_ctx(), page)
    assert "Missing <header> for progress bar injection" in state.summary.warnings


@stage_spec("explode")
def _explode(state, ctx):
    raise RuntimeError("kaput")


@stage_spec("refuse")
def _refuse(state, ctx):
    raise StageError("input rejected")


@pytest.mark.parametrize("stage, message", [
    (_explode, "Stage 'explode' failed: kaput"),
    (_refuse, "Stage 'refuse' failed: input rejected"),
])
def test_failing_stage_aborts_document(make_ctx, sample_page, stage, message):
    pipeline = Pipeline("broken", [ensure_site_script, locate_head_stage, stage, ensure_site_script])
    state = pipeline.run(DocumentState.load("index.html", sample_page), make_ctx())
    assert state.summary.warnings == [message]
    assert state.aborted
    assert not state.changed
    assert state.summary.fixes == ["Added site.js reference"]


def test_assets_pipeline_only_links_existing_icons(make_ctx, sample_page):
    missing = "/assets/img/brand/logo-192.png"
    ctx = make_ctx(asset_exists=lambda path: path != missing)
    state = _run(ASSETS_PIPELINE, ctx, sample_page)
    assert "Ensured icon 32x32" in state.summary.fixes
    assert "Ensured apple-touch-icon 180x180" in state.summary.fixes
    assert missing not in state.html
    assert '<link rel="icon" href="/assets/img/brand/logo-32.png" sizes="32x32" type="image/png">' in state.html
    assert json_ld_blocks(locate_head(state.html).inner) == []

    again = _run(ASSETS_PIPELINE, ctx, state.html)
    assert again.summary.fixes == []
    assert again.html == state.html


def test_inject_syncs_faq_and_disclosure(make_ctx, sample_page, faq_entries):
    state = _run(INJECT_PIPELINE, make_ctx(), sample_page)
    assert state.summary.fixes == ["Updated disclosure block", "Synced FAQ module"]
    assert count_faq_details(state.html) == len(faq_entries)
    assert state.html.count('id="disclosure"') == 1

    again = _run(INJECT_PIPELINE, make_ctx(), state.html)
    assert again.summary.fixes == []


def test_disclosure_without_main_lands_right_after_body_open(make_ctx, sample_page):
    page = sample_page.replace("<main>", "<div>").replace("</main>", "</div>")
    state = _run(INJECT_PIPELINE, make_ctx(), page)
    assert '<body>\n  <section class="disclosure" id="disclosure">' in state.html
    assert state.html.rstrip().endswith("</html>")


def test_inject_leaves_faq_of_other_pages_alone(make_ctx, sample_page):
    state = _run(INJECT_PIPELINE, make_ctx(), sample_page, rel_path="guides/pans.html")
    assert state.summary.fixes == ["Updated disclosure block"]
    assert count_faq_details(state.html) == 0


def test_inject_without_faq_bank_skips_faq(make_ctx, sample_page):
    state = _run(INJECT_PIPELINE, make_ctx(faq_entries=None, disclosure=None), sample_page)
    assert state.summary.fixes == []
    assert not state.changed
