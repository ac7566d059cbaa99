from s3cache import expiry
from s3cache.interfaces import ObjectStoreError

import logging
import random as _random
import time


logger = logging.getLogger(__name__)

# gc probability is expressed in parts per million.
GC_SCALE = 1000000


class GarbageCollector:
    """Probabilistic sweep over every object under a namespace.

    Listing a whole namespace is expensive, so ``maybe_collect`` only
    sweeps with probability ``probability / 1000000``. Sweeps are best
    effort: store errors are logged and never reach the caller.
    """

    def __init__(
        self, store, namespace="", probability=10, random=None, clock=time.time
    ):
        if not 0 <= probability <= GC_SCALE:
            raise ValueError(
                f"gc-probability must be between 0 and {GC_SCALE}, got {probability}"
            )
        self.store = store
        self.namespace = namespace
        self.probability = probability
        self._random = random if random is not None else _random.Random()
        self._clock = clock

    def should_run(self):
        return self._random.randrange(GC_SCALE) < self.probability

    def maybe_collect(self):
        """Sweep expired objects if the dice say so. Returns deleted count."""
        if not self.should_run():
            return 0
        return self.collect()

    def collect(self, expired_only=True):
        deleted = 0
        now = self._clock()
        try:
            for key in self.store.list_objects(self.namespace):
                if self._collect_key(key, expired_only, now):
                    deleted += 1
        except ObjectStoreError:
            logger.warning(
                "GC: listing %r failed, sweep stopped after %d deletions",
                self.namespace,
                deleted,
                exc_info=True,
            )
        logger.info("GC: removed %d object(s) under %r", deleted, self.namespace)
        return deleted

    def _collect_key(self, key, expired_only, now):
        try:
            if expired_only:
                meta = self.store.head_object(key)
                # Deleted since it was listed.
                if meta is None:
                    return False
                if not expiry.is_expired(meta.expires, now):
                    return False
            self.store.delete_object(key)
        except ObjectStoreError:
            logger.warning("GC: failed to remove key %s", key, exc_info=True)
            return False
        logger.debug("GC: removed key %s", key)
        return True
