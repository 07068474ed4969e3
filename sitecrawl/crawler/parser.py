"""
HTML parser that turns a response body into a queryable document.
"""

import codecs
import re
import logging
from typing import List, Optional
from bs4 import BeautifulSoup

from .errors import ParseError


class HTMLDocument:
    """Parsed page exposing the pieces the crawler needs."""

    whitespace_pattern = re.compile(r'\s+')

    def __init__(self, url: str, soup: BeautifulSoup):
        self.url = url
        self.soup = soup

    def find_title(self) -> str:
        """Text of the first <title> element, or an empty string."""
        title_tag = self.soup.find('title')
        if not title_tag:
            return ""
        return self.whitespace_pattern.sub(' ', title_tag.get_text()).strip()

    def find_links(self) -> List[str]:
        """Raw href values of all anchors, in document order."""
        return [link['href'] for link in self.soup.find_all('a', href=True)]


def _codec_name(encoding: Optional[str]) -> Optional[str]:
    """Canonical codec name for a charset label; None lets the parser sniff."""
    if not encoding:
        return None
    try:
        return codecs.lookup(encoding).name
    except LookupError:
        return None


class ContentParser:
    """
    Parses HTML bodies with BeautifulSoup on top of lxml.
    """

    def __init__(self, features: str = 'lxml'):
        self.features = features
        self.logger = logging.getLogger(__name__)

    def parse(self, url: str, body: bytes, encoding: Optional[str] = None) -> HTMLDocument:
        """
        Parse a response body.

        Args:
            url: The URL the body was fetched from
            body: Raw response bytes
            encoding: Charset announced by the server, if any

        Returns:
            HTMLDocument wrapping the parsed tree

        Raises:
            ParseError: if the body cannot be parsed
        """
        try:
            soup = BeautifulSoup(body, self.features, from_encoding=_codec_name(encoding))
        except Exception as e:
            self.logger.error(f"Error parsing content from {url}: {e}")
            raise ParseError(url, str(e)) from e

        self.logger.debug(f"Parsed {url} ({len(body)} bytes)")
        return HTMLDocument(url, soup)
