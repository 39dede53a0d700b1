import pytest

from eventrank.config import SearchCandidate
from eventrank.url_bias import (
    candidate_url_bonus,
    filter_aggregators,
    has_conference_path,
    has_german_tld,
    is_aggregator_url,
    url_bonus,
)
from eventrank.utils.urls import bare_host, parse_url


def test_parse_url_handles_garbage():
    assert parse_url("https://WWW.Example.DE:8443/Programm?x=1").host == "www.example.de"
    assert parse_url("https://example.de/Programm").path == "/programm"
    assert parse_url("example.de/path") is None
    assert parse_url("") is None
    assert parse_url(None) is None
    assert bare_host("https://www.example.de/") == "example.de"


@pytest.mark.parametrize(
    "url, expected",
    [
        ("https://www.10times.com/legal", True),
        ("https://sub.eventbrite.com/e/1", True),
        ("https://learn.microsoft.com/docs", True),
        ("https://microsoft.com/events", False),
        ("https://not10times.com/", False),
        ("https://example.de/event", False),
        ("garbage", False),
    ],
)
def test_is_aggregator_url(url, expected):
    assert is_aggregator_url(url) is expected


def test_url_bonus_components():
    assert has_german_tld("https://legal.de/x")
    assert not has_german_tld("https://legal.com/de")
    assert has_conference_path("https://legal.com/Speakers")
    assert not has_conference_path("https://programm.com/")
    assert url_bonus("https://legal.de/programm") == pytest.approx(0.13)
    assert url_bonus("https://legal.com/") == 0.0
    assert url_bonus("nonsense") == 0.0


def _c(url):
    return SearchCandidate(url=url, title="t")


def test_filter_aggregators_drops_when_enough_primary_pages():
    primary = [_c(f"https://event{i}.de/") for i in range(6)]
    aggs = [_c("https://10times.com/a"), _c("https://meetup.com/b")]
    gate = filter_aggregators(aggs[:1] + primary + aggs[1:])

    assert [c.url for c in gate.candidates] == [c.url for c in primary]
    assert gate.aggregators_dropped == 2
    assert gate.backstop_kept == 0


def test_filter_aggregators_keeps_backstop_when_too_few():
    primary = [_c("https://event.de/")]
    aggs = [_c("https://10times.com/a"), _c("https://meetup.com/b")]
    gate = filter_aggregators(aggs + primary)

    assert [c.url for c in gate.candidates] == ["https://event.de/", "https://10times.com/a"]
    assert gate.aggregators_dropped == 1
    assert gate.backstop_kept == 1


def test_filter_aggregators_empty():
    gate = filter_aggregators([])
    assert gate.candidates == []
    assert gate.aggregators_dropped == 0


def test_candidate_url_bonus_reads_the_candidate_url():
    assert candidate_url_bonus(_c("https://legal.de/programm")) == pytest.approx(0.13)
    assert candidate_url_bonus(_c("https://legal.com/")) == 0.0
