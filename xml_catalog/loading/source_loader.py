"""
Source loaders: produce raw XML text from a local file or a URL.

Loaders do no parsing. They hand the full payload to the catalog session in one
piece, so a failed load never leaves a partially processed document behind.
"""

import logging
from pathlib import Path
from typing import Optional, Union

import requests

from ..interfaces import SourceLoaderInterface
from ..exceptions import FetchError, SourceFileError


XML_EXTENSION = '.xml'
DEFAULT_FETCH_TIMEOUT = 30


class FileSourceLoader(SourceLoaderInterface):
    """Reads XML text from a local file with an .xml extension."""

    def __init__(self, encoding: str = 'utf-8'):
        self.encoding = encoding
        self.logger = logging.getLogger(__name__)

    def load(self, location: Union[str, Path]) -> str:
        """
        Read an XML file.

        Raises:
            SourceFileError: If the path lacks the .xml extension or cannot be read
        """
        path = Path(location)
        if path.suffix.lower() != XML_EXTENSION:
            raise SourceFileError(f"Please upload an XML file (got '{path.name}')", str(path))

        try:
            # utf-8-sig drops a leading BOM
            encoding = 'utf-8-sig' if self.encoding.lower().replace('_', '-') == 'utf-8' else self.encoding
            content = path.read_text(encoding=encoding)
        except (OSError, UnicodeDecodeError) as e:
            raise SourceFileError(f"Error reading file {path}: {e}", str(path))

        self.logger.info(f"Read {len(content)} characters from {path}")
        return content


class URLSourceLoader(SourceLoaderInterface):
    """Fetches XML text over HTTP(S); any success status body is accepted as XML."""

    def __init__(self, timeout: float = DEFAULT_FETCH_TIMEOUT, session: Optional[requests.Session] = None):
        self.timeout = timeout
        self.session = session or requests.Session()
        self.logger = logging.getLogger(__name__)

    def load(self, location: str) -> str:
        """
        Fetch a URL.

        Raises:
            FetchError: If the URL is empty, the request fails or the status is not a success
        """
        url = (location or '').strip()
        if not url:
            raise FetchError("Please enter a URL")

        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise FetchError(f"Error loading XML from URL {url}: {e}", url)

        if not response.ok:
            raise FetchError(
                f"Failed to fetch XML from {url}: HTTP {response.status_code}",
                url,
                response.status_code
            )

        # Servers often omit the charset on XML bodies; requests then guesses ISO-8859-1
        if response.encoding is None or response.encoding.lower() == 'iso-8859-1':
            response.encoding = response.apparent_encoding or 'utf-8'

        content = response.text
        self.logger.info(f"Fetched {len(content)} characters from {url}")
        return content


def is_url(location: str) -> bool:
    return str(location).lower().startswith(('http://', 'https://'))
