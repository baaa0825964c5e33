# image_proxy/sources/s3_source.py

"""
A source that downloads images from an S3 bucket over plain HTTP(S).
"""
import base64
import hashlib
import hmac
from email.utils import formatdate
from typing import Dict
from urllib.parse import quote

import requests

from image_proxy.config import SourceConfig
from image_proxy.errors import ConfigError, SourceFetchError, SourceNotFoundError
from image_proxy.sources.base_source import ImageSource, RawImage


class S3Source(ImageSource):
    """Fetches objects by key from a single bucket, signing requests when keys are configured."""

    def __init__(self, config: SourceConfig):
        super().__init__(config)
        if not config.s3_bucket:
            raise ConfigError(f"'s3_bucket' is required for s3 source '{config.name}'.")

    def object_url(self, key: str) -> str:
        quoted = quote(key.lstrip("/"), safe="/~")
        if self.config.s3_endpoint:
            # Custom endpoints (S3-compatible stores) are addressed path-style.
            return f"{self.config.s3_endpoint.rstrip('/')}/{self.config.s3_bucket}/{quoted}"
        return f"https://{self.config.s3_bucket}.s3.amazonaws.com/{quoted}"

    def sign(self, key: str, date: str) -> str:
        """Computes an AWS signature version 2 for a GET of `key`."""
        resource = f"/{self.config.s3_bucket}/{quote(key.lstrip('/'), safe='/~')}"
        string_to_sign = f"GET\n\n\n{date}\n{resource}"
        digest = hmac.new(self.config.s3_secret_key.encode("utf-8"),
                          string_to_sign.encode("utf-8"), hashlib.sha1).digest()
        signature = base64.b64encode(digest).decode("ascii")
        return f"AWS {self.config.s3_access_key}:{signature}"

    def request_headers(self, key: str) -> Dict[str, str]:
        date = formatdate(usegmt=True)
        headers = {"Date": date}
        if self.config.s3_access_key and self.config.s3_secret_key:
            headers["Authorization"] = self.sign(key, date)
        return headers

    def fetch(self, key: str) -> RawImage:
        if not key.strip("/"):
            raise SourceNotFoundError(key, "empty key")

        url = self.object_url(key)
        try:
            response = requests.get(url, headers=self.request_headers(key), timeout=self.config.timeout)
        except requests.RequestException as e:
            raise SourceFetchError(key, f"request to {url} failed: {e}") from e

        # S3 answers 403 for missing keys when the caller may not list the bucket.
        if response.status_code in (403, 404):
            raise SourceNotFoundError(key, f"{url} returned {response.status_code}")
        if response.status_code != 200:
            raise SourceFetchError(key, f"{url} returned {response.status_code}")

        self.logger.debug("Downloaded %d bytes from %s", len(response.content), url)
        return RawImage(data=response.content, mime_type=response.headers.get("Content-Type"))
