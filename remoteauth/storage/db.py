"""Local user directory: resolve an authenticated username to a local user."""

import logging
import os
import sys
from typing import Dict, Iterable, Optional

import pymysql
from dotenv import load_dotenv
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class LocalUser(BaseModel):
    """A user known to this installation."""
    username: str
    email: Optional[str] = None


class InMemoryUserDirectory:
    """Dictionary-backed directory. Read-only after construction."""

    def __init__(self, users: Iterable[LocalUser] = ()):
        self._users: Dict[str, LocalUser] = {user.username: user for user in users}

    def resolve_by_username(self, username: str) -> Optional[LocalUser]:
        return self._users.get(username)


def get_db_connection():
    """
    Open a connection to the local user database.

    Settings come from DB_HOST, DB_PORT, DB_USER, DB_PASSWORD and DB_NAME
    (a .env file is honored). Rows are returned as dicts.
    """
    load_dotenv()
    return pymysql.connect(
        host=os.getenv("DB_HOST", "localhost"),
        port=int(os.getenv("DB_PORT", 3306)),
        user=os.getenv("DB_USER", "remoteauth"),
        password=os.getenv("DB_PASSWORD", ""),
        database=os.getenv("DB_NAME", "remoteauth"),
        charset='utf8mb4',
        cursorclass=pymysql.cursors.DictCursor
    )


class MySQLUserDirectory:
    """
    Looks users up in the ``users`` table.

    A connection is opened per lookup. Database errors are logged and
    reported as "not found" so they can never turn into an authentication.
    """

    def __init__(self, connect=get_db_connection):
        self._connect = connect

    def resolve_by_username(self, username: str) -> Optional[LocalUser]:
        """
        Get the local user with the given username.

        Args:
            username: Username vouched for by the remote server

        Returns:
            LocalUser or None if not found
        """
        try:
            conn = self._connect()
        except pymysql.MySQLError as e:
            logger.error("Cannot connect to user database: %s", e)
            return None

        try:
            with conn.cursor() as cursor:
                cursor.execute(
                    "SELECT email, username FROM users WHERE username = %s",
                    (username,)
                )
                result = cursor.fetchone()
        except pymysql.MySQLError as e:
            logger.error("User lookup for %s failed: %s", username, e)
            return None
        finally:
            conn.close()

        if not result:
            return None
        return LocalUser(username=result['username'], email=result.get('email'))


def main():
    """CLI entry point: look a user up in the database."""
    if len(sys.argv) > 1:
        user = MySQLUserDirectory().resolve_by_username(sys.argv[1])
        print(user.model_dump_json() if user else "not found")
    else:
        print("Usage: python -m remoteauth.storage.db <username>")


if __name__ == "__main__":
    main()
