"""
Module for normalizing the subject reference image.

The UI has two ways to supply the character to draw: paste an image URL or
upload a photo (sent as base64). Both arrive as a single string and are turned
into one ResolvedReference here. Nothing is fetched: URLs are passed through
verbatim and the image model dereferences them at generation time.
"""

import base64
import binascii
import mimetypes
import re
from io import BytesIO
from typing import Union
from urllib.parse import urlparse

from PIL import Image, UnidentifiedImageError

from bilingual_stories.config.pipeline import DEFAULT_MAX_REFERENCE_BYTES
from ..errors import InvalidReferenceError, PayloadTooLargeError, UnsupportedMediaTypeError
from ..types import (
    Base64Payload,
    ReferenceInput,
    ReferenceProvenance,
    ReferenceUrl,
    ResolvedReference,
)

ALLOWED_UPLOAD_MIME_TYPES = frozenset({
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
})

MIME_ALIASES = {
    "image/jpg": "image/jpeg",
    "image/pjpeg": "image/jpeg",
}

IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp", ".bmp")

# Hosts that serve images directly even without a file extension in the path
DIRECT_IMAGE_HOSTS = (
    "imgur.com",
    "i.imgur.com",
    "postimg.cc",
    "i.postimg.cc",
    "unsplash.com",
    "images.unsplash.com",
    "picsum.photos",
    "res.cloudinary.com",
)

# Search results and image viewers: pages that *show* an image but aren't one.
# Matched against "host/path?query", lowercased.
VIEWER_PAGE_PATTERNS = tuple(re.compile(p) for p in (
    r"(^|\.)google\.[a-z.]+/imgres",
    r"(^|\.)google\.[a-z.]+/search",
    r"(^|\.)googleusercontent\.com/proxy",
    r"(^|\.)bing\.com/images/search",
    r"^images\.search\.yahoo\.com/",
    r"(^|\.)duckduckgo\.com/.*[?&]iax=images",
    r"(^|\.)pinterest\.[a-z.]+/pin/",
))

_DATA_URI = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?P<params>(;[^,;]*)*),(?P<data>.*)$", re.DOTALL)


def parse_reference(raw: str) -> ReferenceInput:
    """
    Turn the raw request string into a ReferenceUrl or Base64Payload.

    Data URIs and bare base64 become Base64Payload; anything with a scheme
    separator is treated as a URL and checked by the resolver.
    """
    if not isinstance(raw, str) or not raw.strip():
        raise InvalidReferenceError("Subject reference is empty")

    value = raw.strip()

    if value[:5].lower() == "data:":
        match = _DATA_URI.match(value)
        if not match or ";base64" not in match.group("params").lower():
            raise InvalidReferenceError("Subject reference data URI must be base64-encoded")
        return Base64Payload(data=match.group("data"), declared_mime_type=match.group("mime"))

    if "://" in value:
        return ReferenceUrl(url=value)

    return Base64Payload(data=value)


class ReferenceResolver:
    """
    Validate and normalize subject references.

    Pure and deterministic: the same input always yields an equal
    ResolvedReference or the same rejection.

    Args:
        max_reference_bytes: Ceiling on the decoded size of uploaded images
    """

    def __init__(self, max_reference_bytes: int = DEFAULT_MAX_REFERENCE_BYTES):
        self.max_reference_bytes = max_reference_bytes

    def resolve(self, reference: Union[ReferenceInput, str]) -> ResolvedReference:
        """Resolve a URL, base64 payload, or raw request string."""
        if isinstance(reference, str):
            reference = parse_reference(reference)

        if isinstance(reference, ReferenceUrl):
            return self._resolve_url(reference)
        if isinstance(reference, Base64Payload):
            return self._resolve_upload(reference)

        raise InvalidReferenceError(f"Unsupported subject reference type: {type(reference).__name__}")

    # === URL REFERENCES ===

    def _resolve_url(self, reference: ReferenceUrl) -> ResolvedReference:
        url = reference.url
        parsed = urlparse(url)

        if parsed.scheme.lower() not in ("http", "https") or not parsed.hostname:
            raise InvalidReferenceError("Reference image URL must be an absolute http(s) URL")

        host = parsed.hostname.lower()
        path = parsed.path.lower()

        if self._is_viewer_page(host, path, parsed.query.lower()):
            raise InvalidReferenceError(
                "Reference URL points to a search result or image viewer page, not an image. "
                "Please use a direct link to the image file."
            )

        has_image_extension = path.endswith(IMAGE_EXTENSIONS)
        if not has_image_extension and not self._is_direct_image_host(host):
            raise InvalidReferenceError(
                "Reference URL does not look like a direct image link. It should end with "
                ".jpg, .png, .gif, or .webp, or come from an image hosting service."
            )

        return ResolvedReference(
            provenance=ReferenceProvenance.FROM_URL,
            mime_type=self._guess_url_mime_type(path),
            url=url,
        )

    @staticmethod
    def _is_viewer_page(host: str, path: str, query: str) -> bool:
        target = f"{host}{path}?{query}"
        return any(pattern.search(target) for pattern in VIEWER_PAGE_PATTERNS)

    @staticmethod
    def _is_direct_image_host(host: str) -> bool:
        return any(host == known or host.endswith("." + known) for known in DIRECT_IMAGE_HOSTS)

    @staticmethod
    def _guess_url_mime_type(path: str) -> str:
        mime_type, _ = mimetypes.guess_type(path)
        if mime_type and mime_type.startswith("image/"):
            return MIME_ALIASES.get(mime_type, mime_type)
        return "image/jpeg"

    # === UPLOADED REFERENCES ===

    def _resolve_upload(self, reference: Base64Payload) -> ResolvedReference:
        declared = self._normalize_mime_type(reference.declared_mime_type)
        if declared is not None and declared not in ALLOWED_UPLOAD_MIME_TYPES:
            raise UnsupportedMediaTypeError(
                f"Unsupported image type '{declared}'. Please upload JPEG, PNG, GIF, or WebP images."
            )

        encoded = "".join(reference.data.split())

        # Reject obviously oversized payloads before decoding them
        if (len(encoded) * 3) // 4 - 2 > self.max_reference_bytes:
            raise self._too_large()

        try:
            image_bytes = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError):
            raise InvalidReferenceError("Subject reference is not valid base64 image data") from None

        if not image_bytes:
            raise InvalidReferenceError("Subject reference image is empty")
        if len(image_bytes) > self.max_reference_bytes:
            raise self._too_large()

        mime_type = declared or self._detect_mime_type(image_bytes)

        return ResolvedReference(
            provenance=ReferenceProvenance.FROM_UPLOAD,
            mime_type=mime_type,
            data=image_bytes,
        )

    def _too_large(self) -> PayloadTooLargeError:
        limit_mib = self.max_reference_bytes / (1024 * 1024)
        return PayloadTooLargeError(
            f"Reference image too large. Please upload images smaller than {limit_mib:g}MB."
        )

    @staticmethod
    def _normalize_mime_type(mime_type):
        if not mime_type:
            return None
        mime_type = mime_type.strip().lower()
        return MIME_ALIASES.get(mime_type, mime_type)

    @staticmethod
    def _detect_mime_type(image_bytes: bytes) -> str:
        """Detect the type of bare base64 uploads, which carry no declared MIME type."""
        try:
            with Image.open(BytesIO(image_bytes)) as image:
                image_format = image.format
        except Image.DecompressionBombError:
            raise PayloadTooLargeError(
                "Reference image dimensions are too large. Please upload a smaller image."
            ) from None
        except (UnidentifiedImageError, OSError):
            raise UnsupportedMediaTypeError(
                "Could not recognize the uploaded image. Please upload JPEG, PNG, GIF, or WebP images."
            ) from None

        mime_type = Image.MIME.get(image_format or "", "")
        if mime_type not in ALLOWED_UPLOAD_MIME_TYPES:
            raise UnsupportedMediaTypeError(
                f"Unsupported image type '{mime_type or image_format}'. "
                "Please upload JPEG, PNG, GIF, or WebP images."
            )
        return mime_type
