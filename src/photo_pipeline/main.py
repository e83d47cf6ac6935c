"""Main module for the photo pipeline CLI."""

import argparse
import sys
from typing import List, Optional

from . import __version__
from .core.config import get_settings
from .core.exceptions import PhotoPipelineError
from .core.factories import S3ClientFactory
from .core.logging_config import get_logger
from .core.services import S3ObjectStore


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="photo-pipeline",
        description="Photo Pipeline - batch image upload, deletion and signed access over S3",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run the HTTP service
  photo-pipeline serve --host 0.0.0.0 --port 9292

  # Issue a presigned URL for a private object
  photo-pipeline sign agency_42/property_7/private/3f2a.webp --ttl 600

  # Show version
  photo-pipeline version
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API with uvicorn")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=9292, help="Bind port")
    serve_parser.add_argument("--reload", action="store_true", help="Reload on code changes")

    sign_parser = subparsers.add_parser("sign", help="Print a presigned GET URL for a key")
    sign_parser.add_argument("key", help="Object key in the configured bucket")
    sign_parser.add_argument(
        "--ttl", type=int, default=None, help="Expiry in seconds (default: PRESIGN_TTL_SECONDS)"
    )

    subparsers.add_parser("version", help="Show version information")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for the ``photo-pipeline`` command."""
    parser = build_parser()
    args = parser.parse_args(argv)
    logger = get_logger("photo-pipeline.cli")

    if args.command == "serve":
        import uvicorn

        uvicorn.run("photo_pipeline.api:app", host=args.host, port=args.port, reload=args.reload)

    elif args.command == "sign":
        settings = get_settings()
        try:
            settings.require_storage()
            store = S3ObjectStore(
                S3ClientFactory.create_s3_client(settings),
                bucket=settings.s3_bucket or "",
                endpoint=settings.s3_endpoint,
                public_base_url=settings.public_base_url,
            )
            print(store.sign(args.key, args.ttl or settings.presign_ttl_seconds))
        except PhotoPipelineError as e:
            logger.error(f"Could not sign {args.key}: {e}")
            sys.exit(1)

    elif args.command == "version":
        print("Photo Pipeline")
        print(f"Version {__version__}")
        sys.exit(0)

    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
