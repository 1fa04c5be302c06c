# File: create_super_admin.py
# Project: itms-backend
#
# Super admins cannot self-register. Run once per deployment:
#   python create_super_admin.py <username> <email>
# The password is read from SUPER_ADMIN_PASSWORD or prompted for.

import getpass
import os
import sys

from dotenv import load_dotenv

load_dotenv(override=True)

from app.core.config import Settings
from app.db.base import load_models
from app.db.session import make_engine, make_session_factory
from app.services.identity import provision_super_admin


def main(argv):
    if len(argv) != 3:
        print("usage: python create_super_admin.py <username> <email>")
        return 2
    username, email = argv[1], argv[2]
    password = os.getenv("SUPER_ADMIN_PASSWORD") or getpass.getpass("Password: ")

    settings = Settings()
    load_models()
    engine = make_engine(settings)
    db = make_session_factory(engine)()
    try:
        user = provision_super_admin(db, settings, username, email, password)
    finally:
        db.close()
    print(f"super_admin {user.username} created with id {user.id}")
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv))
