"""Grant or revoke the admin role for an existing account.
Usage: python scripts/promote_admin.py EMAIL [--demote]
"""
import sys
import argparse
import pathlib
# Ensure `backend/` is on sys.path so `aiclub` imports work when running this script directly
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
from sqlmodel import Session
from aiclub.database import engine
from aiclub import repositories, services


def main(email: str, demote: bool = False) -> int:
    """Set the role of `email` and print the result; returns an exit code."""
    with Session(engine) as session:
        user = repositories.UserRepository(session).get_by_email(email.strip().lower())
        if not user:
            print(f'No user with email {email}')
            return 1
        role = 'user' if demote else 'admin'
        services.AdminUserService(session).update(user.id, role=role)
        print(f'{user.email} is now {role}')
    return 0


if __name__ == '__main__':
    parser = argparse.ArgumentParser()
    parser.add_argument('email', help='Email of the account to change')
    parser.add_argument('--demote', action='store_true', help='Revoke admin instead of granting it')
    args = parser.parse_args()
    sys.exit(main(args.email, demote=args.demote))
