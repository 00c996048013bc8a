from typing import Dict, Optional

from lms.config import users_table_name
from lms.errors import Conflict, UniqueViolation
from lms.utils.db import DatabasePool

PUBLIC_USER_COLUMNS = "id, username, email, name, role"


async def get_user_by_id(pool: DatabasePool, user_id: int) -> Optional[Dict]:
    return await pool.execute(
        f"SELECT {PUBLIC_USER_COLUMNS} FROM {users_table_name} WHERE id = ?",
        (user_id,),
        fetch_one=True,
    )


async def user_exists(pool: DatabasePool, user_id: int) -> bool:
    row = await pool.execute(
        f"SELECT id FROM {users_table_name} WHERE id = ?",
        (user_id,),
        fetch_one=True,
    )
    return row is not None


async def get_user_by_login(pool: DatabasePool, login: str) -> Optional[Dict]:
    """Look a user up by username or email. Includes the password hash."""
    return await pool.execute(
        f"""
        SELECT {PUBLIC_USER_COLUMNS}, password
        FROM {users_table_name}
        WHERE username = ? OR email = ?
        """,
        (login, login),
        fetch_one=True,
    )


async def user_exists_with(pool: DatabasePool, username: str, email: str) -> bool:
    row = await pool.execute(
        f"SELECT id FROM {users_table_name} WHERE username = ? OR email = ?",
        (username, email),
        fetch_one=True,
    )
    return row is not None


async def insert_user(
    pool: DatabasePool,
    username: str,
    email: str,
    password_hash: str,
    name: str,
    role: str,
) -> Dict:
    try:
        user_id = await pool.execute(
            f"""
            INSERT INTO {users_table_name} (username, email, password, name, role)
            VALUES (?, ?, ?, ?, ?)
            """,
            (username, email, password_hash, name, role),
            get_last_row_id=True,
        )
    except UniqueViolation:
        # lost a race with a concurrent registration
        raise Conflict("Username or email already exists")

    return await get_user_by_id(pool, user_id)
