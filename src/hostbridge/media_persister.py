import logging
from dataclasses import dataclass
from typing import Dict, Any, Optional

from .errors import BridgeArgumentError
from .media_store import MediaStore

logger = logging.getLogger(__name__)

MIME_PNG = "image/png"
MIME_WEBP = "image/webp"
MIME_JPEG = "image/jpeg"

_SUFFIX_MIME_TYPES = (
    (".png", MIME_PNG),
    (".webp", MIME_WEBP),
)


def resolve_mime_type(name: str) -> str:
    """Case-insensitive suffix match; anything unknown is saved as JPEG."""
    lowered = name.lower()
    for suffix, mime_type in _SUFFIX_MIME_TYPES:
        if lowered.endswith(suffix):
            return mime_type
    return MIME_JPEG


@dataclass
class MediaSaveRequest:
    data: bytes
    name: str = "image.jpg"
    album: str = "Stuff"

    @property
    def mime_type(self) -> str:
        return resolve_mime_type(self.name)

    @classmethod
    def from_arguments(
        cls,
        args: Optional[Dict[str, Any]],
        default_name: str = "image.jpg",
        default_album: str = "Stuff",
    ) -> "MediaSaveRequest":
        args = args or {}
        data = args.get("bytes")
        if data is None:
            raise BridgeArgumentError("bytes is required")
        if isinstance(data, (bytearray, memoryview)):
            data = bytes(data)
        if not isinstance(data, bytes):
            raise BridgeArgumentError("bytes must be a byte sequence")

        name = args.get("name")
        album = args.get("album")
        return cls(
            data=data,
            name=name if isinstance(name, str) and name else default_name,
            album=album if isinstance(album, str) and album else default_album,
        )


class MediaPersister:
    """
    Saves image buffers into the shared gallery through a MediaStore.

    Expected acquisition failures come back as False; only a failing
    write raises (BridgeIOError), and a missing buffer raises
    BridgeArgumentError before anything is touched.
    """

    def __init__(
        self,
        store: MediaStore,
        default_name: str = "image.jpg",
        default_album: str = "Stuff",
    ):
        self.store = store
        self.default_name = default_name
        self.default_album = default_album

    def save(self, request: MediaSaveRequest) -> bool:
        if request.data is None:
            raise BridgeArgumentError("bytes is required")

        mime_type = request.mime_type
        logger.debug(
            "Saving %d bytes as %s (%s) in album %s",
            len(request.data), request.name, mime_type, request.album,
        )
        return self.store.store(request.name, mime_type, request.album, request.data)

    def handle_save_image(self, args: Dict[str, Any]) -> bool:
        """Handler for the `saveImage` method."""
        request = MediaSaveRequest.from_arguments(
            args, self.default_name, self.default_album
        )
        return self.save(request)
