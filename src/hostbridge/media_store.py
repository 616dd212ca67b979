"""
Write strategies for the shared media gallery.

The scoped strategy goes through a MediaRegistry and its pending flag;
the legacy strategy writes straight into the public pictures directory.
Which one a bridge uses is decided once, from the `scoped_storage`
capability flag.
"""

import os
import enum
import logging
from typing import Optional

from .config import MediaConfig
from .errors import BridgeIOError
from .media_api import MediaRegistry, is_plain_name

logger = logging.getLogger(__name__)


class SaveState(enum.Enum):
    CREATED = "created"
    WRITTEN = "written"
    FINALIZED = "finalized"
    ABORTED = "aborted"


_NEXT_STATES = {
    None: (SaveState.CREATED, SaveState.ABORTED),
    SaveState.CREATED: (SaveState.WRITTEN, SaveState.ABORTED),
    SaveState.WRITTEN: (SaveState.FINALIZED,),
}


def _advance(state: Optional[SaveState], new_state: SaveState, handle) -> SaveState:
    if new_state not in _NEXT_STATES.get(state, ()):
        raise RuntimeError(f"invalid save transition {state} -> {new_state}")
    logger.debug("Media record %s: %s", handle, new_state.value)
    return new_state


class MediaStore(object):
    """Contract for one gallery write strategy."""

    def store(self, name: str, mime_type: str, album: str, data: bytes) -> bool:
        raise NotImplementedError()


class ScopedMediaStore(MediaStore):
    """
    Allocate pending -> write -> finalize, through the media registry.

    Failing to get a handle or a stream aborts with False. An OSError
    while writing is raised as BridgeIOError and the record is left
    pending, so it never shows up in the gallery. Registries report their
    own storage failures as BridgeIOError.
    """

    def __init__(self, registry: MediaRegistry):
        self.registry = registry

    def store(self, name: str, mime_type: str, album: str, data: bytes) -> bool:
        state = None
        handle = self.registry.allocate(name, mime_type, album)
        if handle is None:
            state = _advance(state, SaveState.ABORTED, handle)
            logger.warning("No media record could be allocated for %s/%s", album, name)
            return False
        state = _advance(state, SaveState.CREATED, handle)

        stream = self.registry.open(handle)
        if stream is None:
            state = _advance(state, SaveState.ABORTED, handle)
            logger.warning("Media record %s could not be opened for writing", handle)
            return False

        try:
            with stream:
                stream.write(data)
        except OSError as e:
            logger.error("Failed to write media record %s: %s", handle, e)
            raise BridgeIOError(str(e)) from e
        state = _advance(state, SaveState.WRITTEN, handle)

        self.registry.finalize(handle)
        state = _advance(state, SaveState.FINALIZED, handle)
        logger.info("Saved %s (%d bytes) to album %s", name, len(data), album)
        return state is SaveState.FINALIZED


class LegacyMediaStore(MediaStore):
    """
    Direct filesystem write to `<root_dir>/<pictures_dir>/<album>/<name>`
    for hosts without scoped storage.

    Bytes go to a hidden `.<name>.pending` sibling first and are renamed
    into place, so a reader never sees a partial file.
    """

    def __init__(self, root_dir: str, pictures_dir: str = "Pictures"):
        self.root_dir = root_dir
        self.pictures_dir = pictures_dir

    def album_dir(self, album: str) -> str:
        return os.path.join(self.root_dir, self.pictures_dir, album)

    def store(self, name: str, mime_type: str, album: str, data: bytes) -> bool:
        if not is_plain_name(name) or not is_plain_name(album):
            logger.warning("Refusing to store %r in album %r", name, album)
            return False

        album_dir = self.album_dir(album)
        try:
            os.makedirs(album_dir, exist_ok=True)
        except OSError as e:
            logger.warning("Cannot create album directory %s: %s", album_dir, e)
            return False

        final_path = os.path.join(album_dir, name)
        staging_path = os.path.join(album_dir, f".{name}.pending")
        try:
            f = open(staging_path, "wb")
        except OSError as e:
            logger.warning("Cannot open %s for writing: %s", staging_path, e)
            return False

        try:
            with f:
                f.write(data)
            os.replace(staging_path, final_path)
        except OSError as e:
            logger.error("Failed to write %s: %s", final_path, e)
            self._discard(staging_path)
            raise BridgeIOError(str(e)) from e

        logger.info("Saved %s (%s) to %s", name, mime_type, album_dir)
        return True

    @staticmethod
    def _discard(path: str) -> None:
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Could not remove staging file %s: %s", path, e)


def select_media_store(
    config: MediaConfig, registry: Optional[MediaRegistry] = None
) -> MediaStore:
    """Pick the write strategy from the scoped-storage capability flag."""
    if config.scoped_storage:
        if registry is None:
            raise ValueError("scoped storage needs a media registry")
        logger.info("Using scoped media storage")
        return ScopedMediaStore(registry)

    logger.info("Scoped storage unavailable, writing directly under %s", config.root_dir)
    return LegacyMediaStore(config.root_dir, config.pictures_dir)
