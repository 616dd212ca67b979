import logging
from typing import Dict, Any, Optional

from .config import BridgeConfig, load_config
from .errors import BridgeArgumentError
from .log_forwarder import LogForwarder, LogSink, LoggingSink
from .media_persister import MediaPersister
from .media_registry import SQLiteMediaRegistry
from .media_store import select_media_store
from .protocol import LOG_METHOD, SAVE_IMAGE_METHOD, make_error_response
from .router import CommandRouter

logger = logging.getLogger(__name__)


class Bridge:
    """
    Orchestrator: owns the media registry, the gallery write strategy,
    the log sink and both handlers, and answers command-channel calls.
    """

    def __init__(self, config: BridgeConfig, sink: Optional[LogSink] = None):
        self.config = config
        self.channel_name = config.channel.name
        self.native_logger = logging.getLogger(config.channel.native_tag)

        media_cfg = config.media
        self.registry: Optional[SQLiteMediaRegistry] = None
        if media_cfg.scoped_storage:
            self.registry = SQLiteMediaRegistry(
                media_cfg.root_dir, media_cfg.db_path, media_cfg.pictures_dir
            )
            logger.info("Using media database %s", self.registry.db_path)
        self.media_store = select_media_store(media_cfg, self.registry)

        self.log_forwarder = LogForwarder(
            sink or LoggingSink(), config.logging.default_tag
        )
        self.media_persister = MediaPersister(
            self.media_store, media_cfg.default_name, media_cfg.default_album
        )

        self.router = CommandRouter()
        self.router.register(LOG_METHOD, self.log_forwarder.handle_log)
        self.router.register(SAVE_IMAGE_METHOD, self.media_persister.handle_save_image)

        self.native_logger.info("Bridge on channel %s ready", self.channel_name)

    # ------------------------------------------------------------------
    # Command channel
    # ------------------------------------------------------------------

    def handle_call(self, method: str, arguments: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Dispatch one call and return its response message."""
        return self.router.dispatch(method, arguments)

    def handle_message(self, message: Dict[str, Any]) -> Dict[str, Any]:
        """Handle a METHOD_CALL message dict as built by make_method_call."""
        msg_type = message.get("msg_type", "")
        if msg_type != "METHOD_CALL":
            logger.warning("Unexpected message type: %s", msg_type)
            error = BridgeArgumentError(f"unexpected message type {msg_type!r}")
            return make_error_response(error.code, error.message)
        return self.handle_call(message.get("method", ""), message.get("arguments"))

    # ------------------------------------------------------------------
    # Gallery maintenance
    # ------------------------------------------------------------------

    def sweep_pending(self) -> int:
        """Remove pending records older than the configured TTL."""
        if self.registry is None:
            return 0
        return self.registry.sweep_pending(self.config.media.pending_ttl_sec)

    def close(self) -> None:
        if self.registry is not None:
            self.registry.close()
        self.native_logger.info("Bridge on channel %s closed", self.channel_name)


def create_bridge(
    config_path: Optional[str] = None,
    root_dir: Optional[str] = None,
    scoped_storage: Optional[bool] = None,
    sink: Optional[LogSink] = None,
) -> Bridge:
    """Create and configure a bridge instance."""
    config = load_config(config_path)

    if root_dir is not None:
        config.media.root_dir = root_dir
    if scoped_storage is not None:
        config.media.scoped_storage = scoped_storage

    return Bridge(config, sink=sink)
