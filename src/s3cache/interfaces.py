from zope.interface import Attribute
from zope.interface import Interface


class ObjectStoreError(Exception):
    """A store operation failed for a reason other than a missing object."""


class IObjectStore(Interface):
    """Key to blob store with per-object metadata and no native TTL."""

    bucket_name = Attribute("Name of the bucket all keys live in.")

    def put_object(key, body, expires, content_type, storage_class):
        """Write body and metadata unconditionally, return the ETag."""

    def get_object(key):
        """Return a StoredObject (payload and metadata), or None if not found."""

    def head_object(key):
        """Return ObjectMetadata for a key, or None if not found."""

    def delete_object(key):
        """Delete an object. Deleting a missing key is not an error."""

    def list_objects(prefix):
        """Yield every key starting with prefix, paginating lazily."""


class IKeyMapper(Interface):
    """Maps logical cache keys onto storage keys."""

    namespace = Attribute("Listing prefix covering every mapped key.")

    def __call__(key):
        """Return the storage key for a logical key."""


class ICache(Interface):
    """Cache backed by an IObjectStore."""

    def get(key, default=None):
        """Return the cached bytes, or default on a miss or expired entry."""

    def set(key, value, ttl=0):
        """Store value, overwriting any existing entry."""

    def add(key, value, ttl=0):
        """Store value only if no live entry exists for key."""

    def delete(key):
        """Remove an entry. Removing a missing entry succeeds."""

    def exists(key):
        """Return True if a live entry exists, without fetching it."""

    def flush():
        """Remove every object under the cache namespace."""
