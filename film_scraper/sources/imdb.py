"""IMDb title pages: the aggregate rating block."""

import re

from ..config import RuleConfig
from .base import BaseSource

TITLE_ID_RE = re.compile(r"^tt\d{7,}$")


class IMDbSource(BaseSource):
    name = "imdb"
    BASE_URL = "https://www.imdb.com"

    DEFAULT_RULE = RuleConfig(
        kind="fields",
        selector='[data-testid="hero-rating-bar__aggregate-rating"]',
        fields={
            "IMDb rating": '[data-testid="hero-rating-bar__aggregate-rating__score"] span',
            "IMDb votes": '[data-testid="hero-rating-bar__aggregate-rating__score"] ~ div:last-child',
        },
        anchor_fields=["IMDb rating"],
        converters={"IMDb rating": "number", "IMDb votes": "number"},
    )

    def locator_for(self, identity: str) -> str:
        # Titles are ambiguous on IMDb; only a title id maps to a page.
        title_id = identity.strip()
        if not TITLE_ID_RE.match(title_id):
            raise ValueError("IMDb items need an explicit locator or a tt title id")
        return f"/title/{title_id}/"
