"""
Reading and writing of Kodi-style <movie> sidecar files.

parse() normalises the document into NfoData; serialize() turns NfoData
back into XML. Tags this module does not model are carried through
NfoData.extras untouched, so fields written by other tools survive an
edit made here.
"""
import logging
import os
import re
import shutil
import tempfile
from pathlib import Path
from typing import List, Optional, Union

from lxml import etree as ET

from .. import config
from ..exceptions import NfoParseError, NfoWriteError
from ..models import NfoData, NfoActor, NfoRating

# Scalar tags map 1:1 onto NfoData attributes of the same name
SCALAR_TAGS = (
    'title', 'originaltitle', 'sorttitle', 'year', 'premiered', 'plot', 'outline',
    'tagline', 'runtime', 'mpaa', 'userrating', 'trailer',
)

# Repeatable text tags -> NfoData list attribute
LIST_TAGS = {
    'genre': 'genres',
    'director': 'directors',
    'credits': 'credits',
    'studio': 'studios',
    'country': 'countries',
    'tag': 'tags',
}

OWNED_TAGS = set(SCALAR_TAGS) | set(LIST_TAGS) | {'actor', 'ratings', 'uniqueid', 'thumb', 'fanart'}
ACTOR_TAGS = {'name', 'role', 'order', 'thumb'}

XML_DECL_RE = re.compile(r'^\s*<\?xml[^>]*\?>')
TRUE_VALUES = {'true', '1', 'yes'}


def _parser() -> ET.XMLParser:
    # Blank text is dropped so that re-serialised documents indent cleanly
    return ET.XMLParser(remove_blank_text=True, resolve_entities=False, no_network=True)


def _text(elem: Optional[ET._Element]) -> str:
    if elem is None or elem.text is None:
        return ''
    return elem.text.strip()


def _raw(elem: ET._Element) -> str:
    return ET.tostring(elem, encoding='unicode', with_tail=False)


def _to_int(value: str) -> Optional[int]:
    try:
        return int(value.replace(',', '').strip())
    except (AttributeError, ValueError):
        return None


def _to_float(value: str) -> Optional[float]:
    try:
        return float(value.replace(',', '.').strip())
    except (AttributeError, ValueError):
        return None


def _format_number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


# --- Parsing ---

def parse(xml_text: Union[str, bytes]) -> NfoData:
    """
    Parses sidecar XML into NfoData.

    Raises:
        NfoParseError: malformed XML or a root element other than <movie>.
    """
    if isinstance(xml_text, str):
        # lxml refuses str input that still carries an encoding declaration
        xml_text = XML_DECL_RE.sub('', xml_text.lstrip('\ufeff'), count=1)

    if not xml_text.strip():
        raise NfoParseError("Empty NFO document")

    try:
        root = ET.fromstring(xml_text, _parser())
    except ET.XMLSyntaxError as e:
        raise NfoParseError(f"Malformed NFO XML: {e}") from e

    if root.tag != config.NFO_ROOT_TAG:
        raise NfoParseError(f"Expected <{config.NFO_ROOT_TAG}> root element, found <{root.tag}>")

    data = NfoData()
    thumbs: List[ET._Element] = []
    seen_scalars = set()

    for child in root:
        # Comments and processing instructions carry no fields
        if not isinstance(child.tag, str):
            continue
        tag = child.tag

        if tag in SCALAR_TAGS:
            if tag not in seen_scalars:
                setattr(data, tag, _text(child))
                seen_scalars.add(tag)
        elif tag in LIST_TAGS:
            value = _text(child)
            if value:
                getattr(data, LIST_TAGS[tag]).append(value)
        elif tag == 'actor':
            data.actors.append(_parse_actor(child))
        elif tag == 'ratings':
            data.ratings.extend(_parse_rating(r) for r in child.findall('rating'))
        elif tag == 'uniqueid':
            _parse_uniqueid(child, data)
        elif tag == 'thumb':
            thumbs.append(child)
        elif tag == 'fanart':
            if data.fanart_raw:
                logging.debug("Ignoring additional <fanart> container")
                continue
            data.fanart_raw = _raw(child)
            data.fanart = _text(child.find('thumb'))
        else:
            data.extras.setdefault(tag, []).append(_raw(child))

    _assign_poster(thumbs, data)
    return data


def _parse_actor(elem: ET._Element) -> NfoActor:
    order_text = _text(elem.find('order'))
    return NfoActor(
        name=_text(elem.find('name')),
        role=_text(elem.find('role')),
        order=_to_int(order_text) if order_text else None,
        thumb=_text(elem.find('thumb')),
        extras=[
            _raw(c) for c in elem
            if isinstance(c.tag, str) and c.tag not in ACTOR_TAGS
        ],
    )


def _parse_rating(elem: ET._Element) -> NfoRating:
    value = _to_float(_text(elem.find('value')))
    votes = _to_int(_text(elem.find('votes')))
    max_value = _to_int(elem.get('max', ''))
    return NfoRating(
        name=elem.get('name', ''),
        value=value if value is not None else 0.0,
        votes=votes if votes is not None else 0,
        max=max_value if max_value else config.DEFAULT_RATING_MAX,
        default=elem.get('default', '').strip().lower() in TRUE_VALUES,
    )


def _parse_uniqueid(elem: ET._Element, data: NfoData):
    id_type = (elem.get('type') or '').strip() or config.DEFAULT_UNIQUEID_TYPE
    data.uniqueids[id_type] = _text(elem)
    if elem.get('default', '').strip().lower() in TRUE_VALUES:
        data.default_uniqueid = id_type


def _assign_poster(thumbs: List[ET._Element], data: NfoData):
    """
    Poster = first <thumb aspect="poster">, or the first <thumb> without an aspect.
    All remaining thumbs are preserved as raw markup.
    """
    poster_elem = None
    for thumb in thumbs:
        aspect = thumb.get('aspect')
        if aspect == 'poster' or aspect is None:
            poster_elem = thumb
            break

    if poster_elem is not None:
        data.poster = _text(poster_elem)
        data.poster_raw = _raw(poster_elem)

    data.extra_thumbs = [_raw(t) for t in thumbs if t is not poster_elem]


# --- Serialization ---

def serialize(data: NfoData) -> str:
    """
    Builds the XML document for NfoData.
    Empty scalars and empty lists are omitted entirely.

    Raises:
        NfoWriteError: a value cannot be represented in XML.
    """
    try:
        root = _build_movie(data)
    except (ValueError, ET.XMLSyntaxError) as e:
        raise NfoWriteError(f"Cannot serialise NFO data: {e}") from e

    body = ET.tostring(root, encoding='unicode', pretty_print=True)
    return config.XML_DECLARATION + body


def _build_movie(data: NfoData) -> ET._Element:
    movie = ET.Element(config.NFO_ROOT_TAG)

    for tag in SCALAR_TAGS:
        value = getattr(data, tag)
        if value:
            ET.SubElement(movie, tag).text = value

    for tag, attr in LIST_TAGS.items():
        for value in getattr(data, attr):
            ET.SubElement(movie, tag).text = value

    for actor in data.actors:
        movie.append(_build_actor(actor))

    if data.ratings:
        ratings = ET.SubElement(movie, 'ratings')
        for rating in data.ratings:
            r = ET.SubElement(ratings, 'rating', {
                'name': rating.name,
                'max': str(rating.max),
                'default': 'true' if rating.default else 'false',
            })
            ET.SubElement(r, 'value').text = _format_number(rating.value)
            ET.SubElement(r, 'votes').text = str(rating.votes)

    for id_type, value in data.uniqueids.items():
        uid = ET.SubElement(movie, 'uniqueid', {'type': id_type})
        if id_type == data.default_uniqueid:
            uid.set('default', 'true')
        uid.text = value

    _build_artwork(movie, data)

    for tag, raw_values in data.extras.items():
        if tag in OWNED_TAGS:
            continue
        for raw in raw_values:
            movie.append(ET.fromstring(raw, _parser()))

    return movie


def _build_actor(actor: NfoActor) -> ET._Element:
    elem = ET.Element('actor')
    ET.SubElement(elem, 'name').text = actor.name
    if actor.role:
        ET.SubElement(elem, 'role').text = actor.role
    if actor.order is not None:
        ET.SubElement(elem, 'order').text = str(actor.order)
    if actor.thumb:
        ET.SubElement(elem, 'thumb').text = actor.thumb
    for raw in actor.extras:
        elem.append(ET.fromstring(raw, _parser()))
    return elem


def _build_artwork(movie: ET._Element, data: NfoData):
    if data.poster:
        original = ET.fromstring(data.poster_raw, _parser()) if data.poster_raw else None
        if original is not None and _text(original) == data.poster:
            movie.append(original)
        else:
            ET.SubElement(movie, 'thumb', {'aspect': 'poster'}).text = data.poster

    for raw in data.extra_thumbs:
        movie.append(ET.fromstring(raw, _parser()))

    original_fanart = ET.fromstring(data.fanart_raw, _parser()) if data.fanart_raw else None
    if original_fanart is not None and _text(original_fanart.find('thumb')) == data.fanart:
        movie.append(original_fanart)
        return

    if not data.fanart:
        return

    fanart = ET.SubElement(movie, 'fanart')
    ET.SubElement(fanart, 'thumb').text = data.fanart
    # Keep the alternative backdrops that followed the replaced one
    if original_fanart is not None:
        for thumb in original_fanart.findall('thumb')[1:]:
            fanart.append(thumb)


# --- File I/O ---

def create_empty_nfo() -> NfoData:
    return NfoData()


def nfo_path_for(video_path: Union[str, Path], base_name: Optional[str] = None) -> Path:
    """<dir>/<base_name or video stem>.nfo"""
    video = Path(video_path)
    name = base_name or video.stem
    return video.parent / f"{name}{config.NFO_EXT}"


def read_nfo(nfo_path: Union[str, Path]) -> NfoData:
    """
    Reads and parses a sidecar file.

    Raises:
        OSError: the file cannot be read.
        NfoParseError: the content is not a valid <movie> document.
    """
    content = Path(nfo_path).read_bytes()
    return parse(content)


def backup_path_for(nfo_path: Union[str, Path]) -> Path:
    return Path(f"{nfo_path}{config.NFO_BACKUP_SUFFIX}")


def save_nfo(nfo_path: Union[str, Path], data: NfoData):
    """
    Writes NfoData to disk, copying the previous file to <path>.bak first.

    The new content goes to a temporary file in the same directory and is
    moved into place, so a failed write leaves the original untouched.

    Raises:
        NfoWriteError: serialisation or the final write failed.
    """
    path = Path(nfo_path)
    xml = serialize(data)

    # Backup original file; it might not exist yet (first save)
    try:
        shutil.copyfile(path, backup_path_for(path))
    except OSError as e:
        logging.debug(f"No backup made for {path}: {e}")

    tmp_name = None
    try:
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix='.tmp', dir=path.parent)
        with os.fdopen(fd, 'w', encoding='utf-8', newline='\n') as f:
            f.write(xml)
        os.replace(tmp_name, path)
    except OSError as e:
        if tmp_name and os.path.exists(tmp_name):
            try:
                os.unlink(tmp_name)
            except OSError:
                pass  # best effort cleanup
        raise NfoWriteError(f"Failed to write {path}: {e}") from e

    logging.info(f"Saved NFO: {path}")
