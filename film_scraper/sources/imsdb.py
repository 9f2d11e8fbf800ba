"""IMSDb script pages: the script body."""

from ..config import RuleConfig
from .base import BaseSource


class IMSDbSource(BaseSource):
    name = "imsdb"
    BASE_URL = "https://imsdb.com"

    DEFAULT_RULE = RuleConfig(
        kind="text",
        selector="td.scrtext pre",
        fields="script",
        anchor_fields=["script"],
    )

    def locator_for(self, identity: str) -> str:
        title = identity.strip()
        # IMSDb files "The Matrix" under "Matrix, The"
        if title.lower().startswith("the "):
            title = f"{title[4:]}, The"
        return f"/scripts/{title.replace(' ', '-')}.html"
