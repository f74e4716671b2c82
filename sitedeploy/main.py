"""
Command-line entry point.

Builds settings, an object store client and a SiteDeployer, then runs a
single deployment. Using a factory (build_deployer) because:
- Tests can build a deployer around the mock store
- Explicit about initialization order

Usage:
    python -m sitedeploy deploy --bucket my-site --dist client/dist
    python -m sitedeploy info

Configuration comes from environment variables / .env (see
config/settings.py); flags override them for a single run.
"""

import argparse
import asyncio
import logging
import signal
import sys
from typing import Optional

from .config.settings import Settings, get_settings
from .core.deployment import (
    BucketReconciler,
    DeploymentError,
    DeploymentResult,
    MissingBuildOutput,
    MissingConfiguration,
    SiteDeployer,
    UploadPipeline,
)
from .core.deployment.storage import ObjectStoreClient
from .infrastructure.storage import StoreConfig, create_object_store_client

logger = logging.getLogger(__name__)

USAGE = "Deploy a static site build to a public website bucket"

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_MISCONFIGURED = 2


def configure_logging(level: str) -> None:
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=getattr(logging, level.upper(), logging.INFO),
    )


def build_deployer(
    settings: Settings,
    store: Optional[ObjectStoreClient] = None,
    cancel_event: Optional[asyncio.Event] = None,
) -> SiteDeployer:
    """
    Wire up a SiteDeployer from settings.

    Pass `store` to reuse an existing client (tests pass the mock);
    otherwise one is created from settings.
    """
    if store is None:
        store = create_object_store_client(
            StoreConfig(
                region=settings.aws_region,
                endpoint_url=settings.aws_endpoint_url,
            ),
            mock_mode=settings.storage_mock_mode,
        )

    reconciler = BucketReconciler(store, arn_partition=settings.arn_partition)
    pipeline = UploadPipeline(
        store,
        concurrency=settings.upload_concurrency,
        cancel_event=cancel_event,
    )

    return SiteDeployer(
        reconciler,
        pipeline,
        stage=settings.stage,
        region=settings.aws_region,
    )


def positive_int(value: str) -> int:
    """argparse type matching UPLOAD_CONCURRENCY's ge=1 constraint."""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"{value!r} is not an integer")
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="sitedeploy", description=USAGE)
    parser.add_argument(
        "command",
        nargs="?",
        choices=["info", "deploy"],
        default="info",
        help="info: show usage; deploy: reconcile the bucket and upload the build",
    )
    parser.add_argument("--bucket", help="Bucket name (overrides BUCKET_NAME)")
    parser.add_argument("--dist", help="Build output directory (overrides CLIENT_DIST_PATH)")
    parser.add_argument("--stage", help="Stage label (overrides STAGE)")
    parser.add_argument(
        "--concurrency",
        type=positive_int,
        help="Concurrent uploads (overrides UPLOAD_CONCURRENCY)",
    )
    parser.add_argument(
        "--mock",
        action="store_true",
        help="Use the in-memory store instead of S3",
    )
    return parser.parse_args(argv)


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    """Return a copy of settings with any command-line flags applied."""
    updates = {}
    if args.bucket:
        updates["bucket_name"] = args.bucket
    if args.dist:
        updates["client_dist_path"] = args.dist
    if args.stage:
        updates["stage"] = args.stage
    if args.concurrency is not None:
        updates["upload_concurrency"] = args.concurrency
    if args.mock:
        updates["storage_mock_mode"] = True

    if not updates:
        return settings
    return settings.model_copy(update=updates)


def request_cancel(
    loop: asyncio.AbstractEventLoop,
    sig: int,
    cancel_event: asyncio.Event,
) -> None:
    """
    First signal: stop starting new uploads and let in-flight ones finish.

    The handler removes itself, so a second Ctrl-C gets the default
    KeyboardInterrupt and stops the process even mid-reconcile.
    """
    logger.warning("Cancelling deployment; send the signal again to abort immediately")
    cancel_event.set()
    loop.remove_signal_handler(sig)


def install_cancel_handlers(
    loop: asyncio.AbstractEventLoop,
    cancel_event: asyncio.Event,
    signals: tuple[int, ...] = (signal.SIGINT, signal.SIGTERM),
) -> None:
    for sig in signals:
        try:
            loop.add_signal_handler(sig, request_cancel, loop, sig, cancel_event)
        except (NotImplementedError, RuntimeError):
            # Windows event loops don't support signal handlers
            pass


async def deploy(settings: Settings) -> DeploymentResult:
    """Validate and run one deployment, cancelling cleanly on SIGINT/SIGTERM."""
    cancel_event = asyncio.Event()
    install_cancel_handlers(asyncio.get_running_loop(), cancel_event)

    deployer = build_deployer(settings, cancel_event=cancel_event)
    target = deployer.validate(settings.bucket_name, settings.local_root_path)
    return await deployer.run(target)


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    settings = apply_overrides(get_settings(), args)
    configure_logging(settings.log_level)

    if args.command == "info":
        print(USAGE)
        print("Run `sitedeploy deploy --help` for options.")
        return EXIT_OK

    # SiteDeployer.validate() decides precedence: build output, then bucket
    try:
        result = asyncio.run(deploy(settings))
    except MissingBuildOutput as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_MISCONFIGURED
    except MissingConfiguration as e:
        missing = settings.validate_required_fields()
        logger.error(
            "Missing required configuration",
            extra={"missing_fields": missing}
        )
        print(f"ERROR: {e}", file=sys.stderr)
        print(f"Missing required configuration: {', '.join(missing)}", file=sys.stderr)
        return EXIT_MISCONFIGURED
    except DeploymentError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_FAILED

    print(f"Deployed {len(result.report.uploaded)} files to {result.website_url}")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
