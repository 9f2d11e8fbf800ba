"""Extraction rules (one per page shape) and the fetch-extract stage.

A rule owns a CSS selector for the structural element it reads. If the
selector matches nothing the page is classified as NoData; individual values
that are empty or unparsable become MISSING instead of failing the item.
"""

import logging
import re
from abc import ABC, abstractmethod
from typing import Callable, Dict, Iterable, List, Optional
from urllib.parse import quote, urljoin, urlparse

from bs4 import BeautifulSoup

from .config import RuleConfig
from .errors import FetchError, MalformedField, NoData, NotFound
from .models import MISSING, FieldSet, Outcome, is_missing

logger = logging.getLogger("film_scraper")

# Keep URL structure and existing escapes; encode spaces and other unsafe characters.
_SAFE_URL_CHARS = "/:?=&%#()!,;@+$*'~"

_NUMBER_RE = re.compile(r"[-+]?\d[\d,]*(?:\.\d+)?(?:\s*([KkMmBb])(?![A-Za-z]))?")
_SCALE = {"k": 1e3, "m": 1e6, "b": 1e9}
_CITATION_RE = re.compile(r"\[\s*(?:\d+|[a-z]|note \d+)\s*\]")


def clean_text(value: str) -> str:
    text = value.replace("\xa0", " ")
    text = _CITATION_RE.sub("", text)
    text = re.sub(r"\s+", " ", text).strip()
    text = re.sub(r" ,", ",", text).strip(" ,")
    if not text:
        raise MalformedField("empty value")
    return text


def to_number(value: str) -> float:
    """Parse '7.3', '1,234' or '12K' style values."""
    match = _NUMBER_RE.search(value.replace("\xa0", " "))
    if not match:
        raise MalformedField(f"not a number: {value!r}")
    number = float(match.group(0).rstrip("KkMmBb ").replace(",", ""))
    suffix = match.group(1)
    if suffix:
        number *= _SCALE[suffix.lower()]
    return number


CONVERTERS: Dict[str, Callable[[str], object]] = {
    "text": clean_text,
    "number": lambda value: to_number(clean_text(value)),
}


def resolve_locator(locator: str, base_url: str = "") -> str:
    """Resolve a relative locator against ``base_url`` and percent-encode it."""
    url = urljoin(base_url, quote(locator.strip(), safe=_SAFE_URL_CHARS))
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise NotFound(f"Invalid locator {locator!r} (base {base_url!r})")
    return url


def _cell_text(cell) -> str:
    # list entries (Starring, Music by) come as <li> items or <br>-separated lines
    entries = cell.find_all("li")
    if entries:
        return ", ".join(li.get_text(" ", strip=True) for li in entries)
    for br in cell.find_all("br"):
        br.replace_with(",")
    return cell.get_text(" ", strip=True)


class ExtractionRule(ABC):
    kind: str = ""

    def __init__(self, selector: str, anchor_fields: Iterable[str] = (),
                 converters: Optional[Dict[str, str]] = None):
        self.selector = selector
        self.anchor_fields: List[str] = list(anchor_fields)
        self.converters = dict(converters or {})
        for name, conv in self.converters.items():
            if conv not in CONVERTERS:
                raise ValueError(f"Unknown converter {conv!r} for field {name!r}")

    def apply(self, html: str) -> FieldSet:
        soup = BeautifulSoup(html, "html.parser")
        element = soup.select_one(self.selector)
        if element is None:
            raise NoData(f"No element matches {self.selector!r}")
        return self.extract(element)

    @abstractmethod
    def extract(self, element) -> FieldSet:
        """Map the matched element to raw field values."""

    def convert(self, name: str, raw: str):
        """Coerce one raw value; malformed values are logged and become MISSING."""
        converter = CONVERTERS[self.converters.get(name, "text")]
        try:
            return converter(raw)
        except MalformedField as e:
            logger.info(f"Field {name!r} malformed ({e}); recorded as missing")
            return MISSING


class InfoboxRule(ExtractionRule):
    """Label/value table rows, e.g. a Wikipedia film infobox."""

    kind = "infobox"

    def __init__(self, selector: str = "table.infobox", fields: Optional[Iterable[str]] = None,
                 aliases: Optional[Dict[str, str]] = None, **kwargs):
        super().__init__(selector, **kwargs)
        self.fields = list(fields) if fields else None
        # row label -> field name, e.g. "Release dates" -> "Release date"
        self.aliases = dict(aliases or {})

    def extract(self, element) -> FieldSet:
        for tag in element.select("sup.reference, .noprint, style"):
            tag.decompose()

        out: FieldSet = {}
        for row in element.select("tr"):
            label = row.find("th")
            value = row.find("td")
            if label is None or value is None:
                continue
            name = " ".join(label.get_text(" ", strip=True).split())
            name = self.aliases.get(name, name)
            if not name or (self.fields is not None and name not in self.fields):
                continue
            if name in out and not is_missing(out[name]):
                continue
            out[name] = self.convert(name, _cell_text(value))
        return out


class FieldsRule(ExtractionRule):
    """Named sub-selectors inside one container, e.g. an IMDb rating block."""

    kind = "fields"

    def __init__(self, selector: str, fields: Dict[str, str], **kwargs):
        super().__init__(selector, **kwargs)
        if not fields:
            raise ValueError("fields rule needs a mapping of field name -> selector")
        self.fields = dict(fields)

    def extract(self, element) -> FieldSet:
        out: FieldSet = {}
        for name, sub_selector in self.fields.items():
            node = element.select_one(sub_selector)
            out[name] = self.convert(name, node.get_text(" ", strip=True)) if node else MISSING
        return out


class TextBlockRule(ExtractionRule):
    """The whole text of one element, e.g. an IMSDb script body."""

    kind = "text"

    def __init__(self, selector: str, field_name: str = "script", **kwargs):
        super().__init__(selector, **kwargs)
        self.field_name = field_name

    def extract(self, element) -> FieldSet:
        text = element.get_text().strip()
        return {self.field_name: text if text else MISSING}


def build_rule(rule_config: RuleConfig) -> ExtractionRule:
    common = dict(anchor_fields=rule_config.anchor_fields, converters=rule_config.converters)
    if rule_config.kind == InfoboxRule.kind:
        return InfoboxRule(rule_config.selector or "table.infobox", fields=rule_config.fields,
                           aliases=rule_config.aliases, **common)
    if rule_config.kind == FieldsRule.kind:
        return FieldsRule(rule_config.selector, fields=rule_config.fields, **common)
    if rule_config.kind == TextBlockRule.kind:
        field_name = rule_config.fields if isinstance(rule_config.fields, str) else "script"
        return TextBlockRule(rule_config.selector, field_name=field_name, **common)
    raise ValueError(f"Unknown extraction rule kind: {rule_config.kind!r}")


def fetch_and_extract(locator: str, rule: ExtractionRule, fetch: Callable[[str], str],
                      base_url: str = "") -> Outcome:
    """Fetch one document and apply ``rule``. Never raises for per-item failures."""
    try:
        url = resolve_locator(locator, base_url)
        html = fetch(url)
        fields = rule.apply(html)
        missing = [name for name, value in fields.items() if is_missing(value)]
        if missing:
            logger.warning(f"{url}: empty or malformed field(s) recorded as missing: {', '.join(missing)}")
    except NotFound as e:
        return Outcome.not_found(str(e))
    except NoData as e:
        return Outcome.no_data(str(e))
    except FetchError as e:
        return Outcome.transient(str(e))
    return Outcome.success(fields)
