from s3cache.interfaces import IKeyMapper
from zope.interface import implementer

import hashlib
import json
import re


SEPARATOR = "/"

_PATH_RE = re.compile(r"[a-zA-Z0-9._/-]*")


def hash_key(key):
    """Reduce any logical key to a fixed width hex digest.

    Bytes are hashed as-is, strings as UTF-8, everything else over its
    canonical JSON form so that equal structures map to the same digest
    regardless of dict ordering.
    """
    if isinstance(key, bytes):
        data = key
    elif isinstance(key, str):
        data = key.encode("utf-8")
    else:
        data = json.dumps(
            key, sort_keys=True, separators=(",", ":"), default=repr
        ).encode("utf-8")
    return hashlib.sha256(data).hexdigest()


@implementer(IKeyMapper)
class KeyMapper:
    """Builds storage keys like ``{directory_path}/{ab}/{cd}/{key}{suffix}``.

    Plain string keys are used verbatim unless ``hash_key`` is set; any
    other key is hashed. ``directory_level`` two-character slices of
    the mapped key become path segments to spread objects over many
    prefixes.
    """

    def __init__(
        self,
        directory_path="",
        directory_level=0,
        hash_key=False,
        suffix=".bin",
        key_prefix="",
    ):
        directory_path = directory_path.rstrip(SEPARATOR) if directory_path else ""
        if directory_path:
            if not _PATH_RE.fullmatch(directory_path):
                raise ValueError(
                    f"directory-path contains invalid characters: "
                    f"{directory_path!r}. Only alphanumeric characters, dots, "
                    "hyphens, underscores, and slashes are allowed."
                )
            if ".." in directory_path:
                raise ValueError(
                    f"directory-path must not contain '..': {directory_path!r}"
                )
        if directory_level < 0:
            raise ValueError(
                f"directory-level must not be negative, got {directory_level}"
            )
        self.directory_path = directory_path
        self.directory_level = directory_level
        self.hash_key = hash_key
        self.suffix = suffix or ""
        self.key_prefix = key_prefix or ""

    def __repr__(self):
        return (
            f"<KeyMapper path={self.directory_path!r} "
            f"level={self.directory_level} hash={self.hash_key}>"
        )

    @property
    def namespace(self):
        if self.directory_path:
            return self.directory_path + SEPARATOR
        return ""

    def build_key(self, key):
        """Normalize a logical key, hashing it when required."""
        if isinstance(key, str) and not self.hash_key:
            return self.key_prefix + key
        return self.key_prefix + hash_key(key)

    def __call__(self, key):
        key = self.build_key(key)
        segments = [self.directory_path] if self.directory_path else []
        for i in range(self.directory_level):
            shard = key[i * 2 : i * 2 + 2]
            if shard:
                segments.append(shard)
        segments.append(key + self.suffix)
        return SEPARATOR.join(segments)
