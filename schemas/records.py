"""
Output record emitted for every matched XML node
"""

from types import MappingProxyType
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict

# Fixed three-field output shape, shared by every reader instance
XML_RECORD_SCHEMA: Mapping[str, Any] = MappingProxyType({
    "type": "record",
    "name": "xmlSchema",
    "fields": (
        MappingProxyType({"name": "offset", "type": "long"}),
        MappingProxyType({"name": "filename", "type": "string"}),
        MappingProxyType({"name": "record", "type": "string"}),
    ),
})


class XMLRecord(BaseModel):
    """One extracted node: byte offset in the file, file path, node XML"""

    model_config = ConfigDict(frozen=True)

    offset: int
    filename: str
    record: str


def schema_field_names() -> tuple:
    return tuple(f["name"] for f in XML_RECORD_SCHEMA["fields"])


def schema_as_dict() -> dict:
    """Plain JSON-serializable copy of the record schema"""
    return {
        "type": XML_RECORD_SCHEMA["type"],
        "name": XML_RECORD_SCHEMA["name"],
        "fields": [dict(f) for f in XML_RECORD_SCHEMA["fields"]],
    }
