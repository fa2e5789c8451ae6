"""Parsing and normalising of player/slot JSON documents.

A slot document is a JSON object that must carry a ``slot_id`` key naming the
slot it is stored under.  Everything else in it is opaque game data and is
passed through untouched, in its original key order.
"""
import datetime
import json
from typing import Any, Dict, Optional, Union

from ..errors import InvalidJSON

CREATED_FORMAT = '%Y-%m-%d %H:%M:%S'


def empty_slot(slot_id: str, created: bool = True) -> Dict[str, Any]:
    """Return a fresh slot document with no game data.

    With *created* the document is stamped with the current local time.
    """
    doc: Dict[str, Any] = {'slot_id': slot_id, 'datafile': None}
    if created:
        doc['created'] = datetime.datetime.now().strftime(CREATED_FORMAT)
    return doc


def loads(raw: Union[bytes, str]) -> Any:
    """Parse *raw* as JSON, raising :class:`InvalidJSON` on failure."""
    if isinstance(raw, bytes):
        try:
            raw = raw.decode('utf-8-sig')
        except UnicodeDecodeError as exc:
            raise InvalidJSON(f"Invalid JSON: {exc}") from exc
    try:
        return json.loads(raw)
    except ValueError as exc:
        raise InvalidJSON(f"Invalid JSON: {exc}") from exc


def parse_object(raw: Union[bytes, str]) -> Optional[Dict[str, Any]]:
    """Return *raw* as a non-empty mapping, or ``None`` if it is not one."""
    try:
        doc = loads(raw)
    except InvalidJSON:
        return None
    if not isinstance(doc, dict) or not doc:
        return None
    return doc


def normalize(raw: Union[bytes, str], slot_id: str,
              overwrite: bool = True) -> Dict[str, Any]:
    """Turn arbitrary input into a valid slot document for *slot_id*.

    Unparseable, empty or non-object input is replaced wholesale by
    ``{"slot_id": slot_id, "datafile": null}``.  Otherwise a missing
    ``slot_id`` is appended; an existing one is replaced only when
    *overwrite* is true.
    """
    doc = parse_object(raw)
    if doc is None:
        return empty_slot(slot_id, created=False)
    if overwrite or 'slot_id' not in doc:
        doc['slot_id'] = slot_id
    return doc


def dumps(doc: Any) -> bytes:
    """Serialise *doc* with two-space indentation."""
    return (json.dumps(doc, indent=2, ensure_ascii=False) + '\n').encode('utf-8')
