"""
Create an admin account, or promote an existing user to admin.

Registration only ever creates regular users, so the first admin is
bootstrapped from the command line:

    python scripts/create_admin.py --email admin@example.com --name Admin --password secret123
"""
import argparse
import asyncio
import getpass
import sys
from pathlib import Path

# Add parent directory to path to import modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from auth.auth_utils import hash_password
from constants import MIN_PASSWORD_LENGTH, ROLE_ADMIN, USER_STATUS_ACTIVE
from database import create_indexes, users_collection
from utils.mongo_helper import utcnow


async def create_admin(email: str, name: str, password: str) -> str:
    email = email.lower()
    now = utcnow()
    existing = await users_collection.find_one({"email": email})
    if existing:
        await users_collection.update_one(
            {"_id": existing["_id"]},
            {"$set": {"role": ROLE_ADMIN, "status": USER_STATUS_ACTIVE, "updated_at": now}},
        )
        return f"Promoted existing user {email} to admin"

    await users_collection.insert_one({
        "name": name,
        "email": email,
        "password_hash": hash_password(password),
        "role": ROLE_ADMIN,
        "status": USER_STATUS_ACTIVE,
        "avatar": None,
        "created_at": now,
        "updated_at": now,
    })
    return f"Created admin {email}"


def main():
    parser = argparse.ArgumentParser(description="Create or promote an admin account")
    parser.add_argument("--email", required=True)
    parser.add_argument("--name", default="Administrator")
    parser.add_argument("--password", help="Prompted for when omitted")
    args = parser.parse_args()

    password = args.password or getpass.getpass("Password: ")
    if len(password) < MIN_PASSWORD_LENGTH:
        sys.exit(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    async def run():
        await create_indexes()
        print(await create_admin(args.email, args.name, password))

    asyncio.run(run())


if __name__ == "__main__":
    main()
