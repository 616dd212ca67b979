#!/usr/bin/env python3

import argparse
import logging
import sys
import json

from .bridge import create_bridge
from .config import LoggingConfig, load_config
from .protocol import SAVE_IMAGE_METHOD, LOG_METHOD


def setup_logging(debug: bool = False, logging_config: LoggingConfig = None) -> None:
    """Setup logging configuration."""
    logging_config = logging_config or LoggingConfig()
    level = logging.DEBUG if debug else getattr(logging, logging_config.level.upper(), logging.INFO)

    filename = "hostbridge_debug.log" if debug else None

    logging.basicConfig(
        level=level,
        format=logging_config.format,
        filename=filename,
        filemode='w'
    )

    if debug:
        print(f"Debug logging enabled. Writing to {filename}...")


def _open_bridge(args):
    setup_logging(args.debug, load_config(args.config).logging)
    return create_bridge(
        config_path=args.config,
        root_dir=args.root_dir,
        scoped_storage=False if args.legacy_storage else None,
    )


def _print_response(response) -> None:
    print(json.dumps(response, indent=2, default=str))


# ---------------------------------------------------------------------------

def cmd_log(args) -> int:
    """Handle log command."""
    try:
        bridge = _open_bridge(args)
        arguments = {"message": args.message}
        if args.tag is not None:
            arguments["tag"] = args.tag
        if args.error is not None:
            arguments["error"] = args.error
        if args.stack_trace is not None:
            arguments["stackTrace"] = args.stack_trace

        bridge.handle_call(LOG_METHOD, arguments)
        bridge.close()
        return 0

    except Exception as e:
        print(f"Error: {e}")
        return 1


def cmd_save_image(args) -> int:
    """Handle save-image command."""
    try:
        bridge = _open_bridge(args)

        try:
            with open(args.file, "rb") as f:
                data = f.read()
        except OSError as e:
            print(f"Error: cannot read '{args.file}': {e}")
            bridge.close()
            return 1

        arguments = {"bytes": data}
        if args.name is not None:
            arguments["name"] = args.name
        if args.album is not None:
            arguments["album"] = args.album

        response = bridge.handle_call(SAVE_IMAGE_METHOD, arguments)
        bridge.close()

        if response["msg_type"] == "ERROR":
            print(f"Error [{response['code']}]: {response['message']}")
            return 1
        if not response["result"]:
            print("Image was not saved")
            return 1

        print("Image saved")
        return 0

    except Exception as e:
        print(f"Error: {e}")
        return 1


def cmd_call(args) -> int:
    """Handle call command: dispatch any method with JSON arguments."""
    try:
        arguments = json.loads(args.args) if args.args else {}
        if not isinstance(arguments, dict):
            print("Error: --args must be a JSON object")
            return 1
        if isinstance(arguments.get("bytes"), str):
            arguments["bytes"] = arguments["bytes"].encode("utf-8")

        bridge = _open_bridge(args)
        response = bridge.handle_call(args.method, arguments)
        bridge.close()

        _print_response(response)
        return 1 if response["msg_type"] == "ERROR" else 0

    except json.JSONDecodeError as e:
        print(f"Error: invalid --args JSON: {e}")
        return 1
    except Exception as e:
        print(f"Error: {e}")
        return 1


def cmd_gallery(args) -> int:
    """Handle gallery command."""
    try:
        bridge = _open_bridge(args)
        if bridge.registry is None:
            print("Gallery listing needs scoped storage")
            bridge.close()
            return 1

        records = bridge.registry.list_visible(args.album)
        bridge.close()

        if args.json:
            print(json.dumps(records, indent=2, default=str))
            return 0

        if not records:
            print("No images found")
            return 0

        print(f"Found {len(records)} image(s):\n")
        for record in records:
            print(f"{record['relative_path']}/{record['display_name']}")
            print(f"  Type: {record['mime_type']}")
            print(f"  Size: {record['size']} bytes")
            print(f"  Saved: {record.get('finalized_at', 'N/A')}")
            print()
        return 0

    except Exception as e:
        print(f"Error: {e}")
        return 1


def cmd_sweep(args) -> int:
    """Handle sweep command."""
    try:
        bridge = _open_bridge(args)
        removed = bridge.sweep_pending()
        bridge.close()
        print(f"Removed {removed} stale pending record(s)")
        return 0

    except Exception as e:
        print(f"Error: {e}")
        return 1


def main() -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="HostBridge: log forwarding and gallery saves for a sandboxed UI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Forward a warning
  hostbridge log --tag App --message "WARNING: disk low"

  # Save an image into the Holiday album
  hostbridge --root-dir /tmp/media save-image photo.png --album Holiday

  # Raw call, printing the response
  hostbridge call log --args '{"message": "INFO: hello"}'

  # List what a gallery viewer would see
  hostbridge --root-dir /tmp/media gallery --album Holiday
""",
    )

    parser.add_argument(
        "--config",
        type=str,
        help="Configuration file path",
    )
    parser.add_argument(
        "--root-dir",
        type=str,
        help="Media root directory (default: from config, 'media')",
    )
    parser.add_argument(
        "--legacy-storage",
        action="store_true",
        help="Write images directly instead of through the media registry",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    log_parser = subparsers.add_parser("log", help="Forward a log record")
    log_parser.add_argument("--message", required=True, help="Log message")
    log_parser.add_argument("--tag", help="Log tag (default: from config)")
    log_parser.add_argument("--error", help="Error text to append")
    log_parser.add_argument("--stack-trace", help="Stack trace to append")

    save_parser = subparsers.add_parser("save-image", help="Save an image to the gallery")
    save_parser.add_argument("file", help="Image file to read bytes from")
    save_parser.add_argument("--name", help="Display name (default: image.jpg)")
    save_parser.add_argument("--album", help="Album (default: Stuff)")

    call_parser = subparsers.add_parser("call", help="Dispatch a raw method call")
    call_parser.add_argument("method", help="Method name")
    call_parser.add_argument("--args", help="Arguments as a JSON object")

    gallery_parser = subparsers.add_parser("gallery", help="List visible images")
    gallery_parser.add_argument("--album", help="Only list this album")
    gallery_parser.add_argument(
        "--json",
        action="store_true",
        help="Output records in JSON format",
    )

    subparsers.add_parser("sweep", help="Remove stale pending records")

    args = parser.parse_args()

    if args.command == "log":
        return cmd_log(args)
    elif args.command == "save-image":
        return cmd_save_image(args)
    elif args.command == "call":
        return cmd_call(args)
    elif args.command == "gallery":
        return cmd_gallery(args)
    elif args.command == "sweep":
        return cmd_sweep(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
