"""
HostBridge: native-side command bridge for a sandboxed UI layer

This package serves two host capabilities over a request/response channel:
- Forwarding structured log records to the platform logger, with a severity
  inferred from the message text
- Saving in-memory image buffers into a shared media gallery, hiding each
  record until its bytes are fully written
"""

__version__ = "0.1.0"

from .bridge import Bridge, create_bridge
from .config import BridgeConfig, load_config

__all__ = ['Bridge', 'create_bridge', 'BridgeConfig', 'load_config']
