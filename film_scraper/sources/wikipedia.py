"""Wikipedia film articles: the infobox table."""

from urllib.parse import quote

from ..config import RuleConfig
from .base import BaseSource


class WikipediaSource(BaseSource):
    name = "wikipedia"
    BASE_URL = "https://en.wikipedia.org"

    DEFAULT_RULE = RuleConfig(
        kind="infobox",
        selector="table.infobox",
        fields=[
            "Directed by", "Written by", "Starring", "Music by",
            "Release date", "Running time", "Country",
            "Language", "Budget", "Box office",
        ],
        anchor_fields=["Release date"],
        aliases={"Release dates": "Release date"},
    )

    def locator_for(self, identity: str) -> str:
        # Article slugs use underscores; anything else is percent-encoded later.
        return "/wiki/" + quote(identity.strip().replace(" ", "_"), safe="()_,'!")
