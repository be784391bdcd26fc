"""Main entry point for the confession wall server."""

import argparse
import logging
import sys

from .api import create_app
from .config import Config, load_config
from .services.abuse_gate import AbuseGate
from .services.audit_log import AuditLog
from .services.challenge_service import TurnstileVerifier
from .services.confession_store import create_store
from .uploads import UploadStorage


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the application."""
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
    )

    # Reduce noise from libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def build_app(config: Config):
    """Wire the services described by `config` into an application."""
    store = create_store(config.storage)
    abuse_gate = AbuseGate(
        window_seconds=config.rate_limit.window_seconds,
        max_requests=config.rate_limit.max_requests,
    )
    audit_log = AuditLog(config.rate_limit.audit_log_path)
    verifier = TurnstileVerifier(
        secret_key=config.turnstile.secret_key.get_secret_value(),
        verify_url=config.turnstile.verify_url,
        timeout=config.turnstile.timeout_seconds,
    )
    uploads = UploadStorage(config.uploads, config.server.public_base_url)

    return create_app(
        config,
        store=store,
        abuse_gate=abuse_gate,
        audit_log=audit_log,
        verifier=verifier,
        uploads=uploads,
    )


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Anonymous confession wall with abuse protection",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                              # Run with default config.yaml
  %(prog)s -c myconfig.yaml             # Run with custom config
  %(prog)s -v                           # Run with verbose logging
  %(prog)s --host 0.0.0.0 --port 8080   # Override the listen address
        """,
    )

    parser.add_argument(
        "-c",
        "--config",
        default="config.yaml",
        help="Path to configuration file (default: config.yaml)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose/debug logging",
    )
    parser.add_argument("--host", help="Listen address (overrides config)")
    parser.add_argument("--port", type=int, help="Listen port (overrides config)")

    args = parser.parse_args()

    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    try:
        logger.info("Loading configuration from %s", args.config)
        config = load_config(args.config)
    except FileNotFoundError as e:
        logger.error(str(e))
        return 1
    except Exception as e:
        logger.exception("Invalid configuration: %s", e)
        return 1

    host = args.host or config.server.host
    port = args.port or config.server.port

    try:
        import uvicorn

        app = build_app(config)
        logger.info("Confess Wall running at http://%s:%d", host, port)
        uvicorn.run(
            app,
            host=host,
            port=port,
            log_level="info" if args.verbose else "warning",
        )
        return 0
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 0
    except Exception as e:
        logger.exception("Fatal error: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
