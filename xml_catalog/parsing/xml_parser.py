"""
XML parsing engine for catalog documents of unknown schema.

This module turns raw XML text into an lxml element tree, with the content
clean-up needed for text that arrives from browser uploads or HTTP bodies
(byte order marks, stray control characters, encoding declarations).
"""

import logging
import re

from typing import Optional

from lxml import etree

from ..interfaces import XMLParserInterface
from ..exceptions import ParseError, SchemaError
from ..models import FALLBACK_FIELD_TAG


_XML_DECLARATION = re.compile(r'^<\?xml[^>]*\?>', re.IGNORECASE)


class XMLParser(XMLParserInterface):
    """
    Strict XML parser for catalog documents.

    Unlike a recovering parser, malformed input is never patched up: a document
    that is not well-formed raises ParseError so that nothing derived from a
    partial tree is ever shown or persisted.

    Features:
    - BOM and leading control character removal
    - Encoding declarations stripped (content is already decoded text)
    - Entity resolution and network access disabled
    - Comments and processing instructions dropped from the tree
    """

    def __init__(self, source: Optional[str] = None):
        """
        Initialize XML parser.

        Args:
            source: Optional description of where content comes from, used in errors and logs
        """
        self.source = source
        self.logger = logging.getLogger(__name__)
        self.parse_count = 0

    def parse_xml_stream(self, xml_content: str):
        """
        Parse XML content into an element tree root.

        Args:
            xml_content: Raw XML content as string

        Returns:
            lxml root element

        Raises:
            SchemaError: If the content is empty (no root element)
            ParseError: If XML is malformed or cannot be parsed
        """
        if xml_content is None or not str(xml_content).strip():
            raise SchemaError("empty document", self.source)

        self.parse_count += 1
        cleaned_xml = self._clean_xml_content(xml_content)
        if not cleaned_xml:
            raise SchemaError("empty document", self.source)

        try:
            root = etree.fromstring(cleaned_xml.encode('utf-8'), self._build_parser())
        except etree.XMLSyntaxError as e:
            error_msg = f"XML syntax error: {e}"
            self.logger.error(f"{error_msg} (parse #{self.parse_count})")
            raise ParseError(error_msg, xml_content, self.source)
        except UnicodeError as e:
            error_msg = f"XML content is not valid Unicode text: {e}"
            self.logger.error(f"{error_msg} (parse #{self.parse_count})")
            raise ParseError(error_msg, xml_content, self.source)

        if root is None:
            raise SchemaError("empty document", self.source)

        self.logger.debug(f"Parsed XML document with root <{etree.QName(root).localname}> (parse #{self.parse_count})")
        return root

    def validate_xml_structure(self, xml_content: str) -> bool:
        """
        Validate XML well-formedness without raising.

        Args:
            xml_content: Raw XML content to validate

        Returns:
            True if XML is well-formed and has a root element, False otherwise
        """
        try:
            self.parse_xml_stream(xml_content)
            return True
        except (ParseError, SchemaError) as e:
            self.logger.warning(f"XML validation failed: {e}")
            return False

    def _build_parser(self):
        return etree.XMLParser(
            recover=False,
            remove_comments=True,
            remove_pis=True,
            resolve_entities=False,  # Security: don't resolve external entities
            no_network=True  # Security: disable network access
        )

    def _clean_xml_content(self, xml_content: str) -> str:
        """
        Clean and normalize XML content for parsing.

        Args:
            xml_content: Raw XML content

        Returns:
            Cleaned XML content
        """
        if xml_content.startswith('\ufeff'):
            xml_content = xml_content[1:]
            self.logger.debug("Removed UTF-8 BOM from XML content")

        # BOM decoded with the wrong codec shows up as visible characters
        if xml_content.startswith('ï»¿'):
            xml_content = xml_content[3:]
            self.logger.debug("Removed visible UTF-8 BOM characters from XML content")

        while xml_content and ord(xml_content[0]) < 32 and xml_content[0] not in '\t\n\r':
            xml_content = xml_content[1:]
            self.logger.debug("Removed hidden leading character")

        xml_content = xml_content.replace('\r\n', '\n').replace('\r', '\n').strip()

        # The text is re-encoded as UTF-8 below, so a declared encoding would lie
        xml_content = _XML_DECLARATION.sub('', xml_content, count=1).lstrip()

        return xml_content


def local_name(element) -> str:
    """Tag of an element without its namespace."""
    return etree.QName(element).localname


def field_name(element) -> str:
    """
    Field name carried by a record child element.

    A <field name="..."> element is named by its attribute, so fields whose
    names are not valid XML tags can still be told apart.
    """
    name = local_name(element)
    if name == FALLBACK_FIELD_TAG and element.get('name'):
        return element.get('name')
    return name


def child_elements(element):
    """Direct children of an element that are themselves elements."""
    return [child for child in element if isinstance(child.tag, str)]


def element_text(element) -> str:
    """All text content of an element and its descendants."""
    return ''.join(element.itertext())
