"""
Structured decoding of request bodies, forms, headers and queries.
"""

from gear.encoding.body import (
    BODY_DECODERS,
    MIME_JSON,
    MIME_TEXT_XML,
    MIME_XML,
    BodyDecoder,
    decode_body,
    json_body_decoder,
    select_body_decoder,
    xml_body_decoder,
)
from gear.encoding.mapping import (
    HTTPDate,
    MapValueUnmarshaler,
    decode_form,
    decode_header,
    decode_map,
    decode_query,
)

__all__ = [
    "BODY_DECODERS",
    "MIME_JSON",
    "MIME_TEXT_XML",
    "MIME_XML",
    "BodyDecoder",
    "decode_body",
    "json_body_decoder",
    "select_body_decoder",
    "xml_body_decoder",
    "HTTPDate",
    "MapValueUnmarshaler",
    "decode_form",
    "decode_header",
    "decode_map",
    "decode_query",
]
