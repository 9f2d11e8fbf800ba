"""
Tests for extraction rules and the fetch-extract stage.
"""

import logging

import pytest

from conftest import AIRBORNE_HTML, NO_INFOBOX_HTML
from film_scraper.config import RuleConfig
from film_scraper.errors import MalformedField, NotFound, TransientFetchError
from film_scraper.extractor import (
    FieldsRule,
    InfoboxRule,
    TextBlockRule,
    build_rule,
    clean_text,
    fetch_and_extract,
    resolve_locator,
    to_number,
)
from film_scraper.models import MISSING, Outcome

IMDB_HTML = """
<div data-testid="hero-rating-bar__aggregate-rating">
  <div data-testid="hero-rating-bar__aggregate-rating__score"><span>{rating}</span><span>/10</span></div>
  <div></div>
  <div>12K</div>
</div>
"""

RATING_RULE = FieldsRule(
    '[data-testid="hero-rating-bar__aggregate-rating"]',
    fields={
        "IMDb rating": '[data-testid="hero-rating-bar__aggregate-rating__score"] span',
        "IMDb votes": '[data-testid="hero-rating-bar__aggregate-rating__score"] ~ div:last-child',
    },
    anchor_fields=["IMDb rating"],
    converters={"IMDb rating": "number", "IMDb votes": "number"},
)


def _serve(html):
    return lambda url: html


def _raise(exc):
    def fetch(url):
        raise exc
    return fetch


class TestResolveLocator:
    def test_relative_path(self):
        assert (resolve_locator("/wiki/Airborne_(1993_film)", "https://en.wikipedia.org")
                == "https://en.wikipedia.org/wiki/Airborne_(1993_film)")

    def test_spaces_are_encoded(self):
        url = resolve_locator("/Movie Scripts/Fight Club Script.html", "https://imsdb.com")
        assert url == "https://imsdb.com/Movie%20Scripts/Fight%20Club%20Script.html"

    def test_existing_escapes_kept(self):
        url = resolve_locator("/wiki/Am%C3%A9lie", "https://en.wikipedia.org")
        assert url == "https://en.wikipedia.org/wiki/Am%C3%A9lie"

    def test_absolute_locator_ignores_base(self):
        assert (resolve_locator("https://imsdb.com/scripts/Airborne.html", "https://en.wikipedia.org")
                == "https://imsdb.com/scripts/Airborne.html")

    def test_invalid(self):
        with pytest.raises(NotFound):
            resolve_locator("/wiki/Airborne", "")


class TestConverters:
    def test_clean_text(self):
        assert clean_text("  1993\xa0film [2] ") == "1993 film"
        assert clean_text("Andy , Bob") == "Andy, Bob"

    def test_clean_text_empty(self):
        with pytest.raises(MalformedField):
            clean_text(" \xa0 ")

    @pytest.mark.parametrize("raw,expected", [
        ("7.3", 7.3),
        ("1,234", 1234.0),
        ("12K", 12000.0),
        ("1.5M", 1500000.0),
        ("102 minutes", 102.0),
        ("$1,000,000", 1000000.0),
    ])
    def test_to_number(self, raw, expected):
        assert to_number(raw) == pytest.approx(expected)

    def test_to_number_malformed(self):
        with pytest.raises(MalformedField):
            to_number("N/A")


class TestRules:
    def test_infobox(self):
        rule = InfoboxRule(fields=["Release date", "Budget"])
        assert rule.apply(AIRBORNE_HTML) == {"Release date": "1993", "Budget": "$1,000,000"}

    def test_infobox_without_field_filter_keeps_all_rows(self):
        html = AIRBORNE_HTML.replace(
            "</tbody>", "<tr><th>Running time</th><td>91 minutes</td></tr></tbody>")
        assert InfoboxRule().apply(html)["Running time"] == "91 minutes"

    def test_infobox_lists(self):
        html = """<table class="infobox">
          <tr><th>Starring</th><td><div class="plainlist"><ul>
            <li><a href="/wiki/Shane_McDermott">Shane McDermott</a></li>
            <li>Seth Green</li></ul></div></td></tr>
          <tr><th>Music by</th><td>Stewart Copeland<br>Someone Else</td></tr>
        </table>"""
        fields = InfoboxRule().apply(html)
        assert fields["Starring"] == "Shane McDermott, Seth Green"
        assert fields["Music by"] == "Stewart Copeland, Someone Else"

    def test_infobox_empty_value_is_missing(self):
        html = '<table class="infobox"><tr><th>Budget</th><td> </td></tr></table>'
        assert InfoboxRule().apply(html) == {"Budget": MISSING}

    def test_fields_rule(self):
        fields = RATING_RULE.apply(IMDB_HTML.format(rating="6.3"))
        assert fields == {"IMDb rating": 6.3, "IMDb votes": 12000.0}

    def test_fields_rule_missing_sub_element(self):
        html = '<div data-testid="hero-rating-bar__aggregate-rating"></div>'
        assert RATING_RULE.apply(html) == {"IMDb rating": MISSING, "IMDb votes": MISSING}

    def test_text_block(self):
        rule = TextBlockRule("td.scrtext pre")
        html = "<table><tr><td class='scrtext'><pre>FADE IN:\n  EXT. BEACH</pre></td></tr></table>"
        assert rule.apply(html) == {"script": "FADE IN:\n  EXT. BEACH"}

    def test_text_block_empty(self):
        rule = TextBlockRule("td.scrtext pre")
        html = "<table><tr><td class='scrtext'><pre>   </pre></td></tr></table>"
        assert rule.apply(html) == {"script": MISSING}

    def test_unknown_converter(self):
        with pytest.raises(ValueError):
            InfoboxRule(converters={"Budget": "currency"})


class TestBuildRule:
    def test_kinds(self):
        assert isinstance(build_rule(RuleConfig(kind="infobox")), InfoboxRule)
        text_rule = build_rule(RuleConfig(kind="text", selector="pre", fields="script_text"))
        assert isinstance(text_rule, TextBlockRule)
        assert text_rule.field_name == "script_text"
        fields_rule = build_rule(RuleConfig(kind="fields", selector="div", fields={"a": "span"},
                                            anchor_fields=["a"]))
        assert fields_rule.anchor_fields == ["a"]

    def test_unknown_kind(self):
        with pytest.raises(ValueError, match="Unknown extraction rule kind"):
            build_rule(RuleConfig(kind="json-ld"))

    def test_fields_rule_needs_fields(self):
        with pytest.raises(ValueError):
            build_rule(RuleConfig(kind="fields", selector="div"))


class TestFetchAndExtract:
    """Every simulated page condition maps to its own outcome."""

    def test_element_present(self):
        outcome = fetch_and_extract("/wiki/Airborne_(1993_film)", InfoboxRule(), _serve(AIRBORNE_HTML),
                                    base_url="https://en.wikipedia.org")
        assert outcome.kind == Outcome.SUCCESS
        assert outcome.fields["Release date"] == "1993"

    def test_element_absent(self):
        outcome = fetch_and_extract("/wiki/Airborne", InfoboxRule(), _serve(NO_INFOBOX_HTML),
                                    base_url="https://en.wikipedia.org")
        assert outcome.kind == Outcome.NO_DATA

    def test_page_missing(self):
        outcome = fetch_and_extract("/wiki/Nope", InfoboxRule(), _raise(NotFound("HTTP 404")),
                                    base_url="https://en.wikipedia.org")
        assert outcome.kind == Outcome.NOT_FOUND
        assert outcome.error == "HTTP 404"

    def test_malformed_value(self):
        outcome = fetch_and_extract("/title/tt0106233/", RATING_RULE,
                                    _serve(IMDB_HTML.format(rating="N/A")),
                                    base_url="https://www.imdb.com")
        assert outcome.kind == Outcome.SUCCESS
        assert outcome.fields["IMDb rating"] is MISSING
        assert outcome.fields["IMDb votes"] == 12000.0

    def test_transient(self):
        outcome = fetch_and_extract("/wiki/Airborne", InfoboxRule(),
                                    _raise(TransientFetchError("HTTP 503")),
                                    base_url="https://en.wikipedia.org")
        assert outcome.kind == Outcome.TRANSIENT

    def test_bad_locator_never_fetches(self):
        calls = []
        outcome = fetch_and_extract("not a url", InfoboxRule(), calls.append)
        assert outcome.kind == Outcome.NOT_FOUND
        assert calls == []

    def test_fetch_receives_resolved_url(self):
        urls = []

        def fetch(url):
            urls.append(url)
            return AIRBORNE_HTML

        fetch_and_extract("/wiki/Air borne", InfoboxRule(), fetch, base_url="https://en.wikipedia.org")
        assert urls == ["https://en.wikipedia.org/wiki/Air%20borne"]


def test_infobox_alias_maps_label_variants():
    rule = InfoboxRule(fields=["Release date", "Budget"], aliases={"Release dates": "Release date"})
    html = AIRBORNE_HTML.replace("<th>Release date</th>", "<th>Release dates</th>")
    assert rule.apply(html) == {"Release date": "1993", "Budget": "$1,000,000"}


def test_build_rule_passes_aliases():
    rule = build_rule(RuleConfig(kind="infobox", aliases={"Release dates": "Release date"}))
    assert rule.aliases == {"Release dates": "Release date"}


def test_malformed_field_is_logged_with_url(caplog):
    with caplog.at_level(logging.INFO, logger="film_scraper"):
        outcome = fetch_and_extract("/title/tt0106233/", RATING_RULE,
                                    _serve(IMDB_HTML.format(rating="N/A")),
                                    base_url="https://www.imdb.com")

    assert outcome.fields["IMDb rating"] is MISSING
    warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert len(warnings) == 1
    assert "https://www.imdb.com/title/tt0106233/" in warnings[0].getMessage()
    assert "IMDb rating" in warnings[0].getMessage()
    assert any("not a number" in r.getMessage() for r in caplog.records)
