from s3cache import expiry
from s3cache.gc import GarbageCollector
from s3cache.interfaces import ICache
from s3cache.interfaces import ObjectStoreError
from s3cache.keys import KeyMapper
from zope.interface import implementer

import logging
import time


logger = logging.getLogger(__name__)

STANDARD = "STANDARD"
REDUCED_REDUNDANCY = "REDUCED_REDUNDANCY"


@implementer(ICache)
class S3Cache:
    """Cache for large, long-lived values kept in an object store.

    Each entry is one object whose ``Expires`` header holds the instant
    it dies. There is no index: the storage key derived by the key
    mapper is the only lookup. The cache keeps no state between calls.

    ``get`` costs a single GET; expiry is checked on the returned
    metadata instead of with a separate HEAD. Store errors propagate as
    ObjectStoreError so callers can tell an outage from a miss.
    """

    def __init__(
        self,
        store,
        key_mapper=None,
        gc_probability=10,
        default_ttl=expiry.DEFAULT_TTL,
        reduced_redundancy=True,
        content_type="application/octet-stream",
        clock=time.time,
        collector=None,
    ):
        if default_ttl <= 0:
            raise ValueError(f"default-ttl must be positive, got {default_ttl}")
        self.store = store
        self.key_mapper = key_mapper if key_mapper is not None else KeyMapper()
        self.default_ttl = default_ttl
        self.reduced_redundancy = reduced_redundancy
        self.content_type = content_type
        self._clock = clock
        if collector is None:
            collector = GarbageCollector(
                store,
                namespace=self.key_mapper.namespace,
                probability=gc_probability,
                clock=clock,
            )
        self.collector = collector

    def __repr__(self):
        return f"<S3Cache {self.store!r} {self.key_mapper!r}>"

    @property
    def gc_probability(self):
        return self.collector.probability

    @property
    def storage_class(self):
        return REDUCED_REDUNDANCY if self.reduced_redundancy else STANDARD

    def storage_key(self, key):
        return self.key_mapper(key)

    def get(self, key, default=None):
        storage_key = self.key_mapper(key)
        obj = self.store.get_object(storage_key)
        if obj is None:
            return default
        if expiry.is_expired(obj.metadata.expires, self._clock()):
            self._discard(storage_key)
            return default
        return obj.body

    def set(self, key, value, ttl=0):
        storage_key = self.key_mapper(key)
        expires = expiry.expires_at(ttl, self.default_ttl, self._clock())
        etag = self.store.put_object(
            storage_key,
            value,
            expires,
            content_type=self.content_type,
            storage_class=self.storage_class,
        )
        logger.debug(
            "Stored %s, expires %s", storage_key, expiry.format_expires(expires)
        )
        self.collector.maybe_collect()
        return bool(etag)

    def add(self, key, value, ttl=0):
        # Not atomic: a concurrent writer may pass the same check, and the
        # last write wins.
        if self.exists(key):
            return False
        return self.set(key, value, ttl)

    def delete(self, key):
        self.store.delete_object(self.key_mapper(key))
        return True

    def exists(self, key):
        """Return True if a live entry exists for key.

        Only the metadata is fetched, so a ``get`` right after may still
        miss if the entry expires in between.
        """
        meta = self.store.head_object(self.key_mapper(key))
        if meta is None:
            return False
        return not expiry.is_expired(meta.expires, self._clock())

    def flush(self):
        self.collector.collect(expired_only=False)
        return True

    def gc(self, force=False, expired_only=True):
        """Run a sweep now if forced, else with the configured probability."""
        if force or self.collector.should_run():
            return self.collector.collect(expired_only=expired_only)
        return 0

    def _discard(self, storage_key):
        try:
            self.store.delete_object(storage_key)
        except ObjectStoreError:
            logger.warning(
                "Failed to delete expired key %s", storage_key, exc_info=True
            )
