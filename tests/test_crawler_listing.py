import datetime as dt

import pytest

from review_tracker.errors import ParseDocumentError
from review_tracker.services.crawl.pagination import extract_reviews
from review_tracker.services.crawl.spiders import ListingExtractor, select_extractor

from conftest import TODAY, read_fixture


def test_listing_extractor_raw_fragments_in_document_order():
    html = read_fixture("reviews_page_1.html")
    raws = list(ListingExtractor().extract(html, source_url="file://page1"))
    # topic 104 has no title anchor and is skipped
    assert [r.title for r in raws] == [
        "Works great with multisite installs",
        "Broke my checkout page & support was slow",
        "Meh",
        "Nice plugin without a visible rating",
    ]
    first = raws[0]
    assert first.author == "alice"
    assert first.date_text == "2024-01-05"
    assert "4 out of 5" in first.rating_text
    assert first.link == "https://wordpress.org/support/topic/works-great-with-multisite/"
    assert raws[1].link == "https://wordpress.org/support/topic/broke-my-checkout-page/"
    assert all(r.source_url == "file://page1" for r in raws)


def test_listing_reviews_are_normalized_and_filtered():
    html = read_fixture("reviews_page_1.html")
    reviews = extract_reviews(ListingExtractor(), html, today=TODAY)
    assert len(reviews) == 3  # "Meh" is too short

    alice, bob, anon = reviews
    assert (alice.author, alice.rating, alice.date) == ("alice", 4, dt.date(2024, 1, 5))
    assert alice.content == alice.title == "Works great with multisite installs"

    assert bob.rating == 2
    assert bob.date == TODAY - dt.timedelta(days=14)

    assert anon.author == "Anonymous"
    assert anon.rating == 5
    assert anon.date == TODAY - dt.timedelta(days=3)
    assert all(r.id is None for r in reviews)


def test_listing_prefers_explicit_body_over_title():
    html = """
    <ul class="bbp-topic">
      <li class="bbp-topic-title"><a class="bbp-topic-permalink" href="/t/1/">Short</a>
        <div class="bbp-topic-content">The body text is much longer than the title.</div>
      </li>
    </ul>
    """
    reviews = extract_reviews(ListingExtractor(), html, today=TODAY)
    assert len(reviews) == 1
    assert reviews[0].content == "The body text is much longer than the title."
    assert reviews[0].title == "Short"


def test_listing_empty_document_is_a_parse_error():
    with pytest.raises(ParseDocumentError):
        list(ListingExtractor().extract("   "))


def test_select_extractor_by_mode():
    assert isinstance(select_extractor("listing"), ListingExtractor)


def test_listing_falls_back_to_generic_topic_rows():
    html = """
    <ul class="topics">
      <li class="bbp-body">
        <ul class="topic"><li class="bbp-topic-title"><a href="/t/9/">Older markup still works fine</a></li></ul>
      </li>
    </ul>
    """
    reviews = extract_reviews(ListingExtractor(), html, today=TODAY)
    assert [r.content for r in reviews] == ["Older markup still works fine"]
    assert reviews[0].reviewUrl == "https://wordpress.org/t/9/"


ANCIENT_HTML = """
<ul class="bbp-topic">
  <li class="bbp-topic-title"><a class="bbp-topic-permalink" href="/t/1/">Recent review of the plugin</a>
    <p class="bbp-topic-meta"><span class="bbp-topic-started-in">2 weeks ago</span></p>
  </li>
</ul>
<ul class="bbp-topic">
  <li class="bbp-topic-title"><a class="bbp-topic-permalink" href="/t/2/">Review from the distant past</a>
    <p class="bbp-topic-meta"><span class="bbp-topic-started-in">3000 years ago</span></p>
  </li>
</ul>
"""


def test_out_of_range_relative_date_keeps_the_pass_going():
    reviews = extract_reviews(ListingExtractor(), ANCIENT_HTML, today=TODAY)
    assert [r.date for r in reviews] == [TODAY - dt.timedelta(days=14), TODAY]


def test_fragment_that_fails_normalization_is_skipped(monkeypatch):
    from review_tracker.services.crawl import pagination

    real_normalize = pagination.normalize

    def flaky_normalize(raw, today=None):
        if raw.position == 1:
            raise ValueError("bad fragment")
        return real_normalize(raw, today)

    monkeypatch.setattr(pagination, "normalize", flaky_normalize)
    reviews = extract_reviews(ListingExtractor(), ANCIENT_HTML, today=TODAY)
    assert [r.content for r in reviews] == ["Recent review of the plugin"]
