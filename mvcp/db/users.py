"""Pastor accounts and the registration / approval workflow."""

import logging
from typing import Any

from ..auth.models import AccountStatus, PastorData, User, UserRole
from ..auth.session import hash_password, verify_password
from ..constants import REGIONS
from ..errors import AuthError, ConflictError, NotFoundError, PendingApprovalError, ValidationError
from .core import connect, execute, fetch_dicts, fetch_one_dict
from .helpers import _utc_now_iso, new_id

logger = logging.getLogger(__name__)

_USER_SELECT = """
    SELECT u.user_id, u.email, u.name, u.role, u.region, u.group_id, g.name AS "group",
           u.district_id, d.name AS district, u.status, u.contact, u.created_at
    FROM users u
    LEFT JOIN cell_groups g ON g.group_id = u.group_id
    LEFT JOIN districts d ON d.district_id = u.district_id
"""


def _row_to_user(row: dict[str, Any]) -> User:
    return User(**row)


def _resolve_attachment(con, data: PastorData) -> dict[str, Any]:
    """Fill region/group from the most specific level given and check it matches the role."""
    region, group_id, district_id = data.region, data.group_id, data.district_id

    if district_id:
        cur = execute(
            con,
            """SELECT d.group_id, g.region FROM districts d
               JOIN cell_groups g ON g.group_id = d.group_id
               WHERE d.district_id = :district_id""",
            {"district_id": district_id},
        )
        row = cur.fetchone()
        if row is None:
            raise NotFoundError(f"District {district_id} not found")
        group_id, region = row
    elif group_id:
        cur = execute(con, "SELECT region FROM cell_groups WHERE group_id = :group_id", {"group_id": group_id})
        row = cur.fetchone()
        if row is None:
            raise NotFoundError(f"Group {group_id} not found")
        region = row[0]

    if data.role == UserRole.NATIONAL_COORDINATOR:
        return {"region": None, "group_id": None, "district_id": None}
    if region not in REGIONS:
        raise ValidationError("A region is required for this role")
    if data.role == UserRole.REGIONAL_PASTOR:
        return {"region": region, "group_id": None, "district_id": None}
    if not group_id:
        raise ValidationError("A group is required for this role")
    if data.role == UserRole.GROUP_PASTOR:
        return {"region": region, "group_id": group_id, "district_id": None}
    if not district_id:
        raise ValidationError("A district is required for this role")
    return {"region": region, "group_id": group_id, "district_id": district_id}


def _email_taken(con, email: str, exclude_id: str | None = None) -> bool:
    cur = execute(
        con,
        """SELECT 1 FROM users WHERE lower(email) = lower(:email)
           AND (:exclude_id IS NULL OR user_id != :exclude_id)""",
        {"email": email, "exclude_id": exclude_id},
    )
    return cur.fetchone() is not None


def _insert_pastor(data: PastorData, status: AccountStatus) -> User:
    if not data.password:
        raise ValidationError("A password is required")

    con = connect()
    try:
        if _email_taken(con, data.email):
            raise ConflictError("A user with this email already exists")
        attachment = _resolve_attachment(con, data)
        user_id = new_id("user")
        execute(
            con,
            """INSERT INTO users (user_id, email, name, role, region, group_id, district_id,
                                  status, password_hash, contact, created_at)
               VALUES (:user_id, :email, :name, :role, :region, :group_id, :district_id,
                       :status, :password_hash, :contact, :created_at)""",
            {
                "user_id": user_id,
                "email": data.email.strip(),
                "name": data.name,
                "role": data.role.value,
                **attachment,
                "status": status.value,
                "password_hash": hash_password(data.password),
                "contact": data.contact,
                "created_at": _utc_now_iso(),
            },
        )
        con.commit()
    except Exception:
        con.rollback()
        raise
    finally:
        con.close()

    logger.info("Created %s account %s (%s)", status.value, user_id, data.role.value)
    return get_user(user_id)


def register_pastor(data: PastorData) -> User:
    """Self-registration: the account waits for national approval."""
    if data.role == UserRole.NATIONAL_COORDINATOR:
        raise ValidationError("The national coordinator account cannot be self-registered")
    return _insert_pastor(data, AccountStatus.PENDING)


def add_pastor(data: PastorData) -> User:
    """Account created by the national coordinator, approved immediately."""
    return _insert_pastor(data, AccountStatus.APPROVED)


def get_user(user_id: str) -> User | None:
    con = connect()
    try:
        row = fetch_one_dict(execute(con, _USER_SELECT + " WHERE u.user_id = :user_id", {"user_id": user_id}))
    finally:
        con.close()
    return _row_to_user(row) if row else None


def authenticate(email: str, password: str) -> User:
    """Check credentials. Email match is case-insensitive."""
    con = connect()
    try:
        cur = execute(
            con,
            "SELECT user_id, password_hash, status FROM users WHERE lower(email) = lower(:email)",
            {"email": email.strip()},
        )
        row = cur.fetchone()
    finally:
        con.close()

    if row is None or not verify_password(password, row[1]):
        raise AuthError("Incorrect email or password")
    if row[2] != AccountStatus.APPROVED.value:
        raise PendingApprovalError("This account is awaiting approval")
    return get_user(row[0])


def list_pending_pastors() -> list[User]:
    con = connect()
    try:
        rows = fetch_dicts(
            execute(con, _USER_SELECT + " WHERE u.status = :status ORDER BY u.created_at", {"status": "pending"})
        )
    finally:
        con.close()
    return [_row_to_user(row) for row in rows]


def list_pastors() -> list[User]:
    """Approved pastors, excluding national coordinators."""
    con = connect()
    try:
        rows = fetch_dicts(
            execute(
                con,
                _USER_SELECT + " WHERE u.status = :status AND u.role != :national ORDER BY u.name",
                {"status": "approved", "national": UserRole.NATIONAL_COORDINATOR.value},
            )
        )
    finally:
        con.close()
    return [_row_to_user(row) for row in rows]


def approve_pastor(user_id: str) -> None:
    con = connect()
    try:
        cur = execute(
            con,
            "UPDATE users SET status = :status WHERE user_id = :user_id",
            {"status": AccountStatus.APPROVED.value, "user_id": user_id},
        )
        if cur.rowcount == 0:
            raise NotFoundError(f"User {user_id} not found")
        con.commit()
    except Exception:
        con.rollback()
        raise
    finally:
        con.close()
    logger.info("Approved pastor %s", user_id)


def update_pastor(user_id: str, data: PastorData) -> User:
    """Update profile, role and attachment. The password is left unchanged."""
    con = connect()
    try:
        if _email_taken(con, data.email, exclude_id=user_id):
            raise ConflictError("A user with this email already exists")
        attachment = _resolve_attachment(con, data)
        cur = execute(
            con,
            """UPDATE users SET email = :email, name = :name, role = :role, region = :region,
                   group_id = :group_id, district_id = :district_id, contact = :contact
               WHERE user_id = :user_id""",
            {
                "user_id": user_id,
                "email": data.email.strip(),
                "name": data.name,
                "role": data.role.value,
                **attachment,
                "contact": data.contact,
            },
        )
        if cur.rowcount == 0:
            raise NotFoundError(f"User {user_id} not found")
        con.commit()
    except Exception:
        con.rollback()
        raise
    finally:
        con.close()
    return get_user(user_id)


def delete_pastor(user_id: str) -> None:
    con = connect()
    try:
        execute(con, "DELETE FROM users WHERE user_id = :user_id", {"user_id": user_id})
        con.commit()
    except Exception:
        con.rollback()
        raise
    finally:
        con.close()
