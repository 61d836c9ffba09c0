"""
Seed RBAC Script - Creates the admin, secretary and faculty role records
Run: python -m scripts.seed_rbac [--reset]

Existing role records are left untouched unless --reset is given, so
permission changes made through the admin UI survive a re-run.
"""
import argparse
import asyncio
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from memofy.repositories.mongo_client import create_indexes, close_connection
from memofy.repositories.role_repo import RoleRepository
from memofy.rbac.registry import list_roles, list_permissions
from memofy.utils.time import utc_now


async def seed_roles(reset: bool = False) -> None:
    repo = RoleRepository()
    now = utc_now()

    for role in list_roles():
        existing = await repo.get_role(role.name)
        if existing is not None and not reset:
            print(f"  = {role.name.value}: already exists ({len(existing.permissions)} permissions)")
            continue

        role.updated_at = now
        await repo.upsert_role(role)
        print(f"  + {role.name.value}: {len(role.permissions)} permissions")


async def run(reset: bool) -> None:
    await create_indexes()
    print(f"Permission catalogue: {len(list_permissions())} permissions")
    await seed_roles(reset)


def main():
    parser = argparse.ArgumentParser(description="Seed RBAC role records")
    parser.add_argument("--reset", action="store_true", help="Overwrite existing role records")
    args = parser.parse_args()

    print("=== Seeding roles ===")
    print("-" * 40)
    try:
        asyncio.run(run(args.reset))
    finally:
        close_connection()
    print("-" * 40)
    print("Done!")


if __name__ == "__main__":
    main()
