import io
import os
import ZConfig


_schema = None


def getSchema():
    global _schema
    if _schema is None:
        here = os.path.dirname(os.path.abspath(__file__))
        _schema = ZConfig.loadSchema(os.path.join(here, "schema.xml"))
    return _schema


def cacheFromString(s):
    """Open the cache described by a ZConfig string."""
    return cacheFromFile(io.StringIO(s))


def cacheFromFile(f):
    config, _handle = ZConfig.loadConfigFile(getSchema(), f)
    return config.cache.open()


def cacheFromURL(url):
    config, _handle = ZConfig.loadConfig(getSchema(), url)
    return config.cache.open()


class S3CacheFactory:
    """ZConfig factory for S3Cache."""

    def __init__(self, config):
        self.config = config
        self.name = config.getSectionName()

    def open(self):
        from s3cache.cache import S3Cache
        from s3cache.keys import KeyMapper
        from s3cache.s3client import S3Client

        config = self.config

        s3_client = S3Client(
            bucket_name=config.bucket_name,
            endpoint_url=config.s3_endpoint_url,
            region_name=config.s3_region,
            aws_access_key_id=config.s3_access_key,
            aws_secret_access_key=config.s3_secret_key,
            use_ssl=config.s3_use_ssl,
            addressing_style=config.s3_addressing_style,
            connect_timeout=config.s3_connect_timeout,
            read_timeout=config.s3_read_timeout,
            max_attempts=config.s3_max_attempts,
        )
        key_mapper = KeyMapper(
            directory_path=config.directory_path or "",
            directory_level=config.directory_level,
            hash_key=config.hash_key,
            suffix=config.cache_file_suffix,
            key_prefix=config.key_prefix or "",
        )
        return S3Cache(
            s3_client,
            key_mapper=key_mapper,
            gc_probability=config.gc_probability,
            default_ttl=config.default_ttl,
            reduced_redundancy=config.reduced_redundancy,
            content_type=config.content_type,
        )
