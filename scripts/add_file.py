#!/usr/bin/env python3
"""
Add a file to the download catalog.

The file must already exist under DOWNLOADS_DIR; the stored path is
relative to it.

Usage:
    python -m scripts.add_file reports/q3.pdf --name "Q3 report" --protected
"""

import argparse
import asyncio
import sys

from download_portal.core.config import settings
from download_portal.core.errors import APIException
from download_portal.db.session import AsyncSessionLocal, Base, engine
from download_portal.models import download, user  # noqa: F401
from download_portal.services.downloads import DownloadService
from download_portal.services.file_server import SecureFileServer


async def add_file(args: argparse.Namespace) -> None:
    file_server = SecureFileServer(settings.DOWNLOADS_DIR)

    try:
        relative_path = str(file_server.check_path(args.path))
        file_server.resolve(relative_path)
    except APIException as exc:
        print(f"ERROR: {args.path}: {exc.message}", file=sys.stderr)
        sys.exit(1)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        file = await DownloadService(db).add_file(
            file_path=relative_path,
            display_name=args.name or relative_path.rsplit("/", 1)[-1],
            description=args.description,
            is_protected=args.protected,
        )

    await engine.dispose()

    print(f"Added {relative_path}")
    print(f"  ID:        {file.id}")
    print(f"  Protected: {file.is_protected}")


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Add a file under DOWNLOADS_DIR to the download catalog.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("path", help="Path relative to DOWNLOADS_DIR")
    parser.add_argument("--name", help="Display name (default: file name)")
    parser.add_argument("--description", help="Optional description")
    parser.add_argument(
        "--protected",
        action="store_true",
        help="Require a signed-in user and a single-use token to download",
    )

    asyncio.run(add_file(parser.parse_args()))


if __name__ == "__main__":
    main()
