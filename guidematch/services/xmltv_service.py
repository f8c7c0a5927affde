"""
XMLTV parsing and serialization

Timestamps are carried through verbatim; they are never parsed as calendar time.
"""
from __future__ import annotations

import asyncio
import logging

from lxml import etree # type: ignore

from guidematch.exceptions import GuideParseError
from guidematch.services.guide_types import GuideChannel, GuideDocument, GuideProgram

logger = logging.getLogger(__name__)


def parse_guide(data: bytes | str) -> GuideDocument:
    """
    Parse an XMLTV document

    Args:
        data: Raw XMLTV bytes (or text)

    Returns:
        GuideDocument with channels and programmes in document order

    Raises:
        GuideParseError: If the XML is malformed or the root element is not <tv>
    """
    if isinstance(data, str):
        data = data.encode("utf-8")

    try:
        logger.debug("  Loading XML document (%s bytes)...", len(data))
        parser = etree.XMLParser(huge_tree=True, resolve_entities=False)
        root = etree.fromstring(data, parser)
    except etree.XMLSyntaxError as e:
        logger.error("  XML parsing error: %s", e)
        raise GuideParseError(f"Failed to parse EPG XML: {e}") from e

    if root.tag != "tv":
        raise GuideParseError(f"Failed to parse EPG XML: unexpected root element <{root.tag}>")

    channels = _parse_channels(root)
    programs = _parse_programs(root)

    logger.info("XMLTV parsing complete: %s channels, %s programs", len(channels), len(programs))

    return GuideDocument(channels=tuple(channels), programs=tuple(programs))


def _parse_channels(root: etree._Element) -> list[GuideChannel]:
    """Extract channels from XMLTV root element"""
    channels = []

    for channel in root.findall('channel'):
        # Empty IDs are kept, the matcher derives one from the display name
        icon_elem = channel.find('icon')
        channels.append(GuideChannel(
            id=channel.get('id', ''),
            display_name=_get_text(channel, 'display-name'),
            icon=icon_elem.get('src', '') if icon_elem is not None else '',
        ))

    return channels


def _parse_programs(root: etree._Element) -> list[GuideProgram]:
    """Extract programmes from XMLTV root element"""
    programs = []

    for programme in root.findall('programme'):
        programs.append(GuideProgram(
            channel=programme.get('channel', ''),
            start=programme.get('start', ''),
            stop=programme.get('stop', ''),
            title=_get_text(programme, 'title'),
            description=_get_text(programme, 'desc'),
            category=_get_text(programme, 'category'),
        ))

    return programs


def _get_text(element: etree._Element, tag: str) -> str:
    """Safely extract text from the first matching child element"""
    child = element.find(tag)
    if child is None or not child.text:
        return ''
    return child.text.strip()


def serialize_guide(guide: GuideDocument) -> bytes:
    """
    Serialize a guide document to XMLTV

    Args:
        guide: Matched or merged guide document

    Returns:
        UTF-8 encoded XMLTV document with XML declaration
    """
    root = etree.Element('tv')

    for channel in guide.channels:
        channel_elem = etree.SubElement(root, 'channel', id=channel.id)
        etree.SubElement(channel_elem, 'display-name').text = channel.display_name
        if channel.icon:
            etree.SubElement(channel_elem, 'icon', src=channel.icon)

    for program in guide.programs:
        programme_elem = etree.SubElement(
            root,
            'programme',
            channel=program.channel,
            start=program.start,
            stop=program.stop,
        )
        etree.SubElement(programme_elem, 'title').text = program.title
        etree.SubElement(programme_elem, 'desc').text = program.description
        if program.category:
            etree.SubElement(programme_elem, 'category').text = program.category

    return etree.tostring(root, xml_declaration=True, encoding='UTF-8', pretty_print=True)


async def parse_guide_async(
    data: bytes | str,
    *,
    parse_timeout_seconds: int | None = None
) -> GuideDocument:
    """
    Parse an XMLTV document asynchronously with timeout protection.

    Parsing is offloaded to the default thread pool so the event loop stays free.

    Args:
        data: Raw XMLTV bytes (or text)

    Keyword Args:
        parse_timeout_seconds: Timeout in seconds for parsing (0/None disables timeout)

    Raises:
        GuideParseError: If the document is malformed or parsing times out
    """
    effective_timeout = parse_timeout_seconds if parse_timeout_seconds and parse_timeout_seconds > 0 else None
    timeout_display = f"{effective_timeout}s" if effective_timeout else "disabled"

    loop = asyncio.get_running_loop()
    logger.debug("Offloading XML parsing to thread pool executor (timeout: %s)...", timeout_display)
    parse_task = loop.run_in_executor(None, parse_guide, data)

    try:
        if effective_timeout:
            return await asyncio.wait_for(parse_task, timeout=effective_timeout)
        return await parse_task
    except asyncio.TimeoutError as exc:
        logger.error("XML parsing timed out after %s", timeout_display)
        raise GuideParseError("XML parsing timed out - document may be too large or malformed") from exc
