"""
Command line entry point: connect the configured providers and log every
canonical event until interrupted.
"""

import argparse
import sys
import time

import yaml
from dotenv import load_dotenv
from loguru import logger

from .config_manager import LoggingConfig, load_config
from .errors import IngestError
from .events import AnyCanonicalEvent, EventSink
from .ingest_manager import IngestManager
from .transport import OAuthCallbackServer, authorize_interactively


class LoggingSink(EventSink):
    """Writes each canonical event to the log."""

    def on_canonical_event(self, event: AnyCanonicalEvent) -> None:
        who = f" {event.viewer.name}" if event.viewer.name else ""
        details = {
            k: v
            for k, v in vars(event).items()
            if k not in ("provider", "viewer", "timestamp")
        }
        logger.info(f"[{event.provider.label}] {event.kind.value}{who} {details}")


def setup_logging(config: LoggingConfig, verbose: bool = False) -> None:
    logger.remove()
    level = "DEBUG" if verbose else config.level
    logger.add(
        sys.stderr,
        level=level,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}",
    )
    if config.file:
        logger.add(
            config.file,
            level=level,
            rotation=config.rotation,
            retention=config.retention,
            encoding="utf-8",
        )


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Live event ingestion for TikTok LIVE and YouTube Live")
    parser.add_argument(
        "--config", default="conf.yaml", help="Path to the YAML configuration (default: conf.yaml)"
    )
    parser.add_argument(
        "--authorize",
        action="store_true",
        help="Run the YouTube OAuth consent flow before connecting",
    )
    parser.add_argument(
        "--no-browser",
        action="store_true",
        help="Print the consent URL instead of opening a browser",
    )
    parser.add_argument("--tiktok-username", help="Override tiktok.username")
    parser.add_argument("--youtube-video-id", help="Override youtube.video_id")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    """
    Returns:
        Exit code (0 for success, 1 for failure)
    """
    load_dotenv()
    args = parse_args(argv)

    try:
        config = load_config(args.config)
    except (FileNotFoundError, IOError) as e:
        logger.critical(str(e))
        return 1
    except yaml.YAMLError:
        return 1
    except ValueError:
        # already reported by validate_config
        return 1

    if args.tiktok_username is not None:
        config.tiktok.username = args.tiktok_username
        config.tiktok.enabled = True
    if args.youtube_video_id is not None:
        config.youtube.video_id = args.youtube_video_id
        config.youtube.enabled = True

    setup_logging(config.logging, args.verbose)

    manager = IngestManager(config, sinks=[LoggingSink()])
    if not manager.initialize():
        return 1

    if args.authorize:
        if manager.oauth is None:
            logger.error("[YouTube] --authorize requires youtube.enabled")
            return 1
        oauth_config = config.youtube.oauth
        server = OAuthCallbackServer(
            host=oauth_config.redirect_host,
            port=oauth_config.redirect_port,
            path=oauth_config.redirect_path,
        )
        try:
            manager.oauth.require_client_credentials()
            authorize_interactively(
                manager.oauth,
                server,
                open_browser=not args.no_browser,
                timeout=oauth_config.authorize_timeout,
            )
        except IngestError as e:
            logger.error(f"[YouTube] Authorization failed: {e}")
            return 1

    if not manager.start():
        return 1

    interval = 1.0 / config.tick_rate
    try:
        while True:
            manager.tick()
            time.sleep(interval)
    except KeyboardInterrupt:
        logger.info("[Ingest] Interrupted")
    finally:
        manager.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
