"""Polite, concurrent breadth-first site crawler."""
__version__ = "1.2.0"

from .configuration import Configuration, ConfigurationError, FollowLinks
from .urlnorm import normalize_url, canonical_url
from .links import extract_links
from .page import Page, PageStore
from .frontier import Frontier
from .robots import RobotsPolicy
from .website import Website

__all__ = [
    '__version__',
    'Configuration','ConfigurationError','FollowLinks',
    'normalize_url','canonical_url','extract_links',
    'Page','PageStore','Frontier','RobotsPolicy','Website',
]
