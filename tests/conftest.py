"""
Shared fixtures: throwaway worklist databases and stubbed HTTP transports.
"""

import httpx
import pytest

from film_scraper.config import AppConfig, DownloadConfig
from film_scraper.downloader import Downloader
from film_scraper.store import WorklistStore

AIRBORNE_HTML = """
<html><body>
<h1>Airborne (1993 film)</h1>
<table class="infobox vevent"><tbody>
  <tr><th colspan="2" class="infobox-above">Airborne</th></tr>
  <tr><th>Release date</th><td>1993<sup class="reference">[1]</sup></td></tr>
  <tr><th>Budget</th><td>$1,000,000</td></tr>
</tbody></table>
</body></html>
"""

NO_INFOBOX_HTML = "<html><body><p>Airborne may refer to several things.</p></body></html>"


@pytest.fixture
def config(tmp_path):
    return AppConfig(
        db_path=str(tmp_path / "films.db"),
        log_dir=str(tmp_path / "logs"),
        download=DownloadConfig(max_retries=2, backoff_factor=0.0, default_rate_limit=0.0),
    )


@pytest.fixture
def store(config):
    with WorklistStore.load(config.db_path, "wikipedia") as s:
        yield s


@pytest.fixture
def make_downloader(config):
    """Build a Downloader whose requests are answered by ``handler``."""
    created = []

    def _make(handler, cfg=None):
        dl = Downloader(cfg or config, transport=httpx.MockTransport(handler))
        created.append(dl)
        return dl

    yield _make
    for dl in created:
        dl.close()
