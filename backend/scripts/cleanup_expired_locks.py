"""
Cleanup Expired Locks - bulk delete edit locks whose expiry has passed
Run: python -m scripts.cleanup_expired_locks

Locks are also removed lazily whenever they are read, so this only keeps
the collection tidy. Safe to run at any time, e.g. from cron.
"""
import asyncio
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from memofy.engine.lock_manager import LockManager
from memofy.repositories.mongo_client import close_connection
from memofy.utils.logger import setup_logging


async def run() -> int:
    return await LockManager().cleanup_expired()


def main():
    setup_logging()
    try:
        deleted = asyncio.run(run())
    finally:
        close_connection()
    print(f"Deleted {deleted} expired lock(s)")


if __name__ == "__main__":
    main()
