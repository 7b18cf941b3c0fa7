import argparse
import sys
from dotenv import load_dotenv

load_dotenv()

from gearshare.core.models import User, Role
from gearshare.core.db import SessionLocal, init as db_init
from gearshare.core.auth import create_session_cookie

def main():
    parser = argparse.ArgumentParser(description="Register a GearShare user and print a session token")
    parser.add_argument("--user-id", required=True)
    parser.add_argument("--name", required=True)
    parser.add_argument("--email", required=True)
    parser.add_argument("--admin", action="store_true", default=False,
                        help="Grant the admin role")
    args = parser.parse_args()
    role = Role.ADMIN if args.admin else Role.USER

    session = SessionLocal()
    try:
        db_init()
        existing = session.get(User, args.user_id)
        if existing:
            existing.name = args.name
            existing.email = args.email
            existing.role = role
            session.commit()
            print(f"Success! User '{args.user_id}' updated ({role.value}).")
        else:
            session.add(User(user_id=args.user_id, name=args.name, email=args.email, role=role))
            session.commit()
            print(f"Success! User '{args.user_id}' created ({role.value}).")
        print(f"Session token: {create_session_cookie(args.user_id)}")
    except Exception as e:
        session.rollback()
        print(f"Database error: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        session.close()

if __name__ == "__main__":
    main()
