import os
import yaml
from dataclasses import dataclass
from typing import Optional

@dataclass
class ChannelConfig:
    name: str = "com.example.stuff/log"
    native_tag: str = "MainActivityNative"

@dataclass
class LoggingConfig:
    default_tag: str = "FlutterLog"
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

@dataclass
class MediaConfig:
    root_dir: str = "media"
    pictures_dir: str = "Pictures"
    default_name: str = "image.jpg"
    default_album: str = "Stuff"
    scoped_storage: bool = True
    db_path: Optional[str] = None
    pending_ttl_sec: int = 3600

@dataclass
class BridgeConfig:
    channel: ChannelConfig
    logging: LoggingConfig
    media: MediaConfig

def load_config(config_path: Optional[str] = None) -> BridgeConfig:
    """Load configuration from file or use defaults."""
    if config_path and os.path.exists(config_path):
        with open(config_path, 'r') as f:
            config_data = yaml.safe_load(f) or {}

        channel_config = ChannelConfig(**config_data.get('channel', {}))
        logging_config = LoggingConfig(**config_data.get('logging', {}))
        media_config = MediaConfig(**config_data.get('media', {}))
    else:
        channel_config = ChannelConfig()
        logging_config = LoggingConfig()
        media_config = MediaConfig()

    return BridgeConfig(
        channel=channel_config,
        logging=logging_config,
        media=media_config,
    )
