"""Values returned by IObjectStore implementations.

A missing object is always reported as ``None``; these types only
describe objects that were found.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class ObjectMetadata:
    key: str
    expires: object = None
    etag: str = ""
    content_type: str = ""
    content_length: int = 0
    storage_class: str = ""


@dataclass(frozen=True)
class StoredObject:
    metadata: ObjectMetadata
    body: bytes = b""

    @property
    def key(self):
        return self.metadata.key
