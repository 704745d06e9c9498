"""CLI entry point for Minnow."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

import httpx

from minnow.client import S3Client
from minnow.config import MinnowConfig, load_config
from minnow.errors import MinnowError
from minnow.logging_config import configure_logging
from minnow.models import ObjectInfo
from minnow.policy import PolicyType

logger = logging.getLogger("minnow")

DEFAULT_CONFIG = Path("minnow.yaml")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        argv: Argument list to parse. Defaults to sys.argv[1:].

    Returns:
        Parsed argument namespace.
    """
    parser = argparse.ArgumentParser(
        prog="minnow",
        description="Minnow - client for S3-compatible object storage",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to YAML configuration file (default: minnow.yaml if present)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (overrides config, default: INFO)",
    )
    parser.add_argument(
        "--log-format",
        type=str,
        default=None,
        choices=["text", "json"],
        help="Log format: 'text' (human-readable) or 'json' (structured)",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    ls = commands.add_parser("ls", help="List buckets, or objects in a bucket")
    ls.add_argument("bucket", nargs="?", default=None)
    ls.add_argument("--prefix", default="")
    ls.add_argument("--recursive", action="store_true")

    presign = commands.add_parser("presign", help="Print a presigned URL")
    presign.add_argument("method", choices=["get", "put"])
    presign.add_argument("bucket")
    presign.add_argument("key")
    presign.add_argument("--expires", type=int, default=3600, help="Lifetime in seconds")

    policy = commands.add_parser("policy", help="Show or change anonymous bucket access")
    policy_commands = policy.add_subparsers(dest="policy_command", required=True)
    policy_get = policy_commands.add_parser("get")
    policy_get.add_argument("bucket")
    policy_get.add_argument("--prefix", default="")
    policy_set = policy_commands.add_parser("set")
    policy_set.add_argument("bucket")
    policy_set.add_argument("access", choices=[p.value for p in PolicyType])
    policy_set.add_argument("--prefix", default="")

    put = commands.add_parser("put", help="Upload a file")
    put.add_argument("bucket")
    put.add_argument("key")
    put.add_argument("file", type=Path)

    return parser.parse_args(argv)


def _load(path: Path | None) -> MinnowConfig:
    if path is None:
        if not DEFAULT_CONFIG.exists():
            return MinnowConfig()
        path = DEFAULT_CONFIG
    return load_config(path)


def _describe(obj: ObjectInfo) -> str:
    if obj.is_dir:
        return f"{'PRE':>12}  {obj.key}"
    return f"{obj.size:>12}  {obj.last_modified}  {obj.key}"


async def run(args: argparse.Namespace, config: MinnowConfig) -> None:
    """Execute one parsed command against the configured endpoint."""
    async with S3Client.from_config(config) as client:
        if args.command == "ls":
            if args.bucket is None:
                for bucket in await client.list_buckets():
                    print(f"{bucket.creation_date}  {bucket.name}")
            else:
                async for obj in client.list_objects(args.bucket, args.prefix, args.recursive):
                    print(_describe(obj))
        elif args.command == "presign":
            method = args.method.upper()
            print(client.get_presigned_url(method, args.bucket, args.key, args.expires))
        elif args.command == "policy" and args.policy_command == "get":
            access = await client.get_bucket_access(args.bucket, args.prefix)
            print(access.value)
        elif args.command == "policy":
            await client.set_bucket_access(args.bucket, PolicyType(args.access), args.prefix)
            logger.info("Set %s access on %s/%s", args.access, args.bucket, args.prefix)
        elif args.command == "put":
            etag = await client.fput_object(args.bucket, args.key, args.file)
            print(etag)


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the Minnow CLI.

    Args:
        argv: Argument list to parse. Defaults to sys.argv[1:].

    Returns:
        Process exit code.
    """
    args = parse_args(argv)

    # Use a basic stderr logger for config-loading errors
    logging.basicConfig(level=logging.INFO, stream=sys.stderr)

    try:
        config = _load(args.config)
    except FileNotFoundError:
        logger.error("Config file not found: %s", args.config)
        return 1
    except Exception as exc:
        logger.error("Failed to load config: %s", exc)
        return 1

    if args.log_level is not None:
        config.logging.level = args.log_level
    if args.log_format is not None:
        config.logging.format = args.log_format
    configure_logging(level=config.logging.level, fmt=config.logging.format)

    try:
        asyncio.run(run(args, config))
    except (MinnowError, httpx.HTTPError) as exc:
        logger.error("%s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
