from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Protocol

import requests

from storefront.config import Settings
from storefront.errors import internal_error

logger = logging.getLogger(__name__)

IMAGEKIT_UPLOAD_URL = "https://upload.imagekit.io/api/v1/files/upload"


class AssetUploader(Protocol):
    def upload(self, data: bytes, file_name: str, folder: str = "products") -> Dict[str, Any]: ...


def image_from_upload(result: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "url": result.get("url"),
        "thumbnail": result.get("thumbnailUrl") or result.get("thumbnail") or result.get("url"),
        "id": result.get("fileId") or result.get("id"),
    }


class ImageKitUploader:
    """Uploads product images to ImageKit through its HTTP upload API."""

    def __init__(
        self,
        public_key: str,
        private_key: str,
        url_endpoint: str,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.public_key = public_key
        self.private_key = private_key
        self.url_endpoint = url_endpoint
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls, s: Settings) -> "ImageKitUploader":
        return cls(s.imagekit_public_key, s.imagekit_private_key, s.imagekit_url_endpoint)

    def missing_config(self) -> list[str]:
        missing = []
        if not self.public_key:
            missing.append("IMAGEKIT_PUBLIC_KEY")
        if not self.private_key:
            missing.append("IMAGEKIT_PRIVATE_KEY")
        if not self.url_endpoint:
            missing.append("IMAGEKIT_URL or IMAGEKIT_URL_ENDPOINT")
        return missing

    def upload(self, data: bytes, file_name: str, folder: str = "products") -> Dict[str, Any]:
        missing = self.missing_config()
        if missing:
            logger.error("ImageKit config missing: %s", ", ".join(missing))
            raise internal_error("Image upload is not configured")

        try:
            resp = self.session.post(
                IMAGEKIT_UPLOAD_URL,
                auth=(self.private_key, ""),
                files={"file": (file_name, data)},
                data={"fileName": file_name, "folder": folder},
                timeout=self.timeout,
            )
            resp.raise_for_status()
            result = resp.json()
        except (requests.RequestException, ValueError) as e:
            logger.error("image upload failed file=%s: %s", file_name, e)
            raise internal_error("Image upload failed")

        return image_from_upload(result)
