#!/usr/bin/env python3
"""
Create a portal user with interactive prompts.

SECURITY: This script is blocked from running in production/staging.
For those environments, provision users through your deployment process.

Usage:
    python -m scripts.create_user

    Or with environment variables (for CI/automation in dev):
        PORTAL_USERNAME=alice PORTAL_PASSWORD=secret123 python -m scripts.create_user
"""

import asyncio
import getpass
import os
import secrets
import sys

from download_portal.core.config import settings
from download_portal.core.errors import DuplicateUsernameError
from download_portal.db.session import AsyncSessionLocal, Base, engine
from download_portal.models import download, user  # noqa: F401
from download_portal.services.auth import AuthService

# Environments where this script must NOT run
BLOCKED_ENVIRONMENTS = {"production", "staging"}


def check_environment() -> None:
    """Fail if running in a secure environment."""
    env = settings.ENVIRONMENT.lower()
    if env in BLOCKED_ENVIRONMENTS:
        print(
            f"ERROR: create_user.py cannot run in '{env}' environment.\n"
            f"Use proper user provisioning for {env} deployments.",
            file=sys.stderr,
        )
        sys.exit(1)


def get_input(prompt: str, env_var: str, default: str | None = None) -> str:
    """Get input from env var, interactive prompt, or default."""
    value = os.environ.get(env_var, "").strip()
    if value:
        return value

    if default:
        user_input = input(f"{prompt} [{default}]: ").strip()
        return user_input if user_input else default

    while True:
        user_input = input(f"{prompt}: ").strip()
        if user_input:
            return user_input
        print("This field is required.")


def get_password(env_var: str) -> tuple[str, bool]:
    """
    Get password from env var, interactive prompt, or generate one.

    Returns:
        tuple of (password, was_generated)
    """
    value = os.environ.get(env_var, "")
    if value:
        return value, False

    print("\nPassword options:")
    print("  1. Enter a password")
    print("  2. Generate a random password")

    choice = input("Choose [1/2] (default: 2): ").strip()

    if choice == "1":
        while True:
            password = getpass.getpass("Enter password: ")
            if not password:
                print("Password cannot be empty.")
                continue
            confirm = getpass.getpass("Confirm password: ")
            if password != confirm:
                print("Passwords do not match. Try again.")
                continue
            return password, False

    return secrets.token_urlsafe(16), True


async def create_user() -> None:
    check_environment()

    print("=" * 50)
    print("Create Portal User")
    print(f"Environment: {settings.ENVIRONMENT}")
    print("=" * 50)
    print()

    username = get_input("Username", "PORTAL_USERNAME")
    password, was_generated = get_password("PORTAL_PASSWORD")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        try:
            user_id = await AuthService(db, settings).create_user(username, password)
        except DuplicateUsernameError:
            print(f"\nERROR: User '{username}' already exists!", file=sys.stderr)
            sys.exit(1)

    await engine.dispose()

    print()
    print("User created successfully!")
    print(f"  Username: {username}")
    print(f"  ID:       {user_id}")

    if was_generated:
        # stderr, so it stays out of captured stdout
        print(f"\n  Generated password: {password}", file=sys.stderr)
        print("\n  (Save this password - it will not be shown again)", file=sys.stderr)


if __name__ == "__main__":
    asyncio.run(create_user())
