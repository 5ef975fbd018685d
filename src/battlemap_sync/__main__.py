"""
Command line entry point for battlemap-sync.
Usage: python -m battlemap_sync {decode,encode,watch} ...
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Optional, Sequence

import orjson
from PySide6.QtCore import QCoreApplication

from . import __version__
from .codec import MapCodecError, decode_map_state, encode_map_state, expand_envelope
from .maps import Battlemap, BattlemapSession, MapState, terrain_name
from .settings import AppSettings, ConfigError
from .sync import QtBattlemapTransport, SyncController
from .utils.logging_config import setup_logging


def describe_map_state(state: MapState) -> dict[str, Any]:
    """Readable JSON form of a decoded snapshot.

    Objects without a stored color or size show their catalog defaults.
    """
    cells = [(x, y) for y in range(state.grid_height) for x in range(state.grid_width)]
    return {
        "gridWidth": state.grid_width,
        "gridHeight": state.grid_height,
        "cellBackgrounds": (
            [terrain_name(state.background_at(x, y)) for x, y in cells]
            if state.has_custom_backgrounds()
            else None
        ),
        "waterCells": [[x, y] for x, y in cells if state.is_water(x, y)],
        "tokens": [
            {
                "id": token.id,
                "x": token.x,
                "y": token.y,
                "isGmOnly": token.is_gm_only,
                "color": token.color,
                "avatarUrl": token.avatar_url,
                "borderColor": token.border_color,
                "name": token.name,
                "characterId": token.character_id,
            }
            for token in state.tokens
        ],
        "environmentObjects": [
            {
                "id": obj.id,
                "type": obj.type.label,
                "x": obj.x,
                "y": obj.y,
                "color": obj.display_color(),
                "size": obj.display_size(),
            }
            for obj in state.environment_objects
        ],
        "fogRevealedAreas": [list(cell) for cell in sorted(state.fog_revealed_areas)],
    }


def cmd_decode(args: argparse.Namespace, settings: AppSettings) -> int:
    state = decode_map_state(args.data, settings.map.grid_width, settings.map.grid_height)
    sys.stdout.write(orjson.dumps(describe_map_state(state), option=orjson.OPT_INDENT_2).decode())
    sys.stdout.write("\n")
    return 0


def cmd_encode(args: argparse.Namespace, settings: AppSettings) -> int:
    raw = sys.stdin.buffer.read() if args.file == "-" else Path(args.file).read_bytes()
    try:
        parsed = orjson.loads(raw)
    except orjson.JSONDecodeError as e:
        raise MapCodecError(f"{args.file} is not JSON: {e}") from e

    state = expand_envelope(parsed, settings.map.grid_width, settings.map.grid_height)
    sys.stdout.write(encode_map_state(state, compression_margin=settings.map.compression_margin))
    sys.stdout.write("\n")
    return 0


def cmd_watch(args: argparse.Namespace, settings: AppSettings) -> int:
    logger = logging.getLogger(f"{__name__}.watch")

    if args.server:
        settings.sync.server_url = args.server
    if args.token:
        settings.sync.api_token = args.token

    validation = settings.validate()
    for warning in validation.warnings:
        logger.warning(f"  {warning}")
    if not validation.is_valid:
        raise ConfigError("; ".join(validation.errors))

    app = QCoreApplication.instance() or QCoreApplication(sys.argv)

    session = BattlemapSession(
        Battlemap(
            grid_size=settings.map.grid_size,
            canvas_width=settings.map.canvas_width,
            canvas_height=settings.map.canvas_height,
        )
    )
    transport = QtBattlemapTransport.from_settings(settings, args.session_id, parent=app)
    controller = SyncController.from_settings(session, transport, settings, parent=app)

    seen: dict[str, Any] = {"tokens": None, "fog": None}

    def report() -> None:
        tokens = {token.id: (token.x, token.y, token.is_gm_only) for token in session.tokens}
        fog = session.fog.revealed
        if tokens != seen["tokens"]:
            logger.info(f"Tokens ({len(tokens)}): {sorted(tokens.items())}")
            seen["tokens"] = tokens
        if fog != seen["fog"]:
            logger.info(f"Fog: {len(fog)} revealed cells")
            seen["fog"] = fog

    controller.battlemapApplied.connect(report)
    controller.start()
    logger.info(f"Watching session {args.session_id} at {transport.endpoint} (Ctrl+C to stop)")
    return app.exec()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="battlemap-sync", description="Battlemap snapshot codec and sync client"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--profile", default="default", help="Settings profile name")
    subparsers = parser.add_subparsers(dest="command", required=True)

    decode = subparsers.add_parser("decode", help="Decode a snapshot string to JSON")
    decode.add_argument("data", help="Snapshot text (value of the data query parameter)")
    decode.set_defaults(handler=cmd_decode)

    encode = subparsers.add_parser("encode", help="Encode a JSON map file to a snapshot string")
    encode.add_argument("file", help="JSON file in snapshot layout, or - for stdin")
    encode.set_defaults(handler=cmd_encode)

    watch = subparsers.add_parser("watch", help="Poll a session battlemap and log changes")
    watch.add_argument("session_id", help="Game session id")
    watch.add_argument("--server", help="Server URL (saved to the profile)")
    watch.add_argument("--token", help="API token (saved to the profile)")
    watch.set_defaults(handler=cmd_watch)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main command line entry point."""
    args = build_parser().parse_args(argv)
    logger = logging.getLogger(f"{__name__}.main")

    settings = AppSettings(profile=args.profile)
    setup_logging(settings)
    logger.debug(f"Configuration loaded from {settings.get_settings_file_path()}")

    try:
        return args.handler(args, settings)
    except MapCodecError as e:
        logger.error(f"Invalid map data: {e}")
        return 1
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        return 2
    except OSError as e:
        logger.error(f"I/O error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
