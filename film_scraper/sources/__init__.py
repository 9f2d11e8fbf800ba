"""Source registry."""

from .imdb import IMDbSource
from .imsdb import IMSDbSource
from .wikipedia import WikipediaSource

ALL_SOURCES = {
    "wikipedia": WikipediaSource,
    "imdb": IMDbSource,
    "imsdb": IMSDbSource,
}
