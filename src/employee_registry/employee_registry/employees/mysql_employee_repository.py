from __future__ import annotations

import logging
from typing import Optional, Sequence

import mysql.connector

from ..core.constants import DEFAULT_BUCKET_LOCK_TIMEOUT, SERIAL_WIDTH
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, escape_like, fetchall, fetchone, is_duplicate_key, named_lock
from ..identifiers.model import EmployeeIdentifier, serial_of
from .duplicates import match_field
from .model import EmployeeRecord, NewEmployee
from .repository import EmployeeRepository

logger = logging.getLogger(__name__)

_COLUMNS = """
    employee_id, first_name, last_name, department, contact, email, date_of_birth,
    position, address, blood_group, other, photo_url, photo_ref, created_at, updated_at
"""

# "NNNNNN-C" after the bucket prefix (which ends with "-").
_SUFFIX_LENGTH = SERIAL_WIDTH + 2

# Upper bound on rows pulled by the coarse SQL prefilter of the duplicate check.
_CONFLICT_SCAN_LIMIT = 25


def _row_to_record(row: dict) -> EmployeeRecord:
    return EmployeeRecord(
        identifier=row["employee_id"],
        first_name=row["first_name"],
        last_name=row["last_name"],
        department=row.get("department") or "",
        contact=row.get("contact") or "",
        email=row.get("email") or "",
        date_of_birth=row.get("date_of_birth") or "",
        position=row.get("position") or "",
        address=row.get("address") or "",
        blood_group=row.get("blood_group") or "",
        other=row.get("other") or "",
        photo_url=row.get("photo_url"),
        photo_ref=row.get("photo_ref"),
        created_at=row["created_at"],
        updated_at=row.get("updated_at"),
    )


class MySQLEmployeeRepository(EmployeeRepository):
    def __init__(self, conn_factory: DatabaseConnection, *, lock_timeout: float = DEFAULT_BUCKET_LOCK_TIMEOUT):
        self._conn_factory = conn_factory
        self._lock_timeout = lock_timeout

    def find_latest_in_bucket(self, bucket_prefix: str) -> Optional[EmployeeRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM employees
                WHERE employee_id LIKE %s AND CHAR_LENGTH(employee_id) = %s
                ORDER BY created_at DESC, record_id DESC
                LIMIT 1
                """,
                (escape_like(bucket_prefix) + "%", len(bucket_prefix) + _SUFFIX_LENGTH),
            )
            row = fetchone(cur)
            return _row_to_record(row) if row else None

    def highest_issued_serial(self, bucket_prefix: str) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT last_serial FROM bucket_serials WHERE bucket_prefix=%s", (bucket_prefix,))
            row = fetchone(cur)
            return int(row["last_serial"]) if row else 0

    def find_conflicting(
        self, candidate: NewEmployee, *, exclude_identifier: Optional[str] = None
    ) -> Optional[EmployeeRecord]:
        # Build clauses only for non-empty inputs; the final decision is match_field.
        clauses: list[str] = []
        params: list = []
        if candidate.email:
            clauses.append("LOWER(email) = %s")
            params.append(candidate.email.lower())
        if candidate.contact:
            clauses.append("contact = %s")
            params.append(candidate.contact)
        if candidate.first_name and candidate.last_name and candidate.date_of_birth:
            clauses.append("(LOWER(first_name) = %s AND LOWER(last_name) = %s AND date_of_birth = %s)")
            params.extend([candidate.first_name.lower(), candidate.last_name.lower(), candidate.date_of_birth])
        if not clauses:
            return None

        sql = f"SELECT {_COLUMNS} FROM employees WHERE ({' OR '.join(clauses)})"
        if exclude_identifier:
            sql += " AND employee_id <> %s"
            params.append(exclude_identifier)
        sql += f" ORDER BY created_at DESC LIMIT {_CONFLICT_SCAN_LIMIT}"

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            rows = fetchall(cur)
        for row in rows:
            rec = _row_to_record(row)
            if match_field(candidate, rec) is not None:
                return rec
        return None

    def insert_with_unique_identifier(self, record: EmployeeRecord) -> bool:
        prefix = EmployeeIdentifier.parse(record.identifier).bucket.prefix
        with db_cursor(self._conn_factory) as (conn, cur):
            try:
                cur.execute(
                    f"""
                    INSERT INTO employees({_COLUMNS})
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        record.identifier,
                        record.first_name,
                        record.last_name,
                        record.department,
                        record.contact,
                        record.email,
                        record.date_of_birth,
                        record.position,
                        record.address,
                        record.blood_group,
                        record.other,
                        record.photo_url,
                        record.photo_ref,
                        record.created_at,
                        record.updated_at,
                    ),
                )
            except mysql.connector.IntegrityError as e:
                if not is_duplicate_key(e):
                    raise
                conn.rollback()
                logger.debug("Identifier %s already present", record.identifier)
                return False
            cur.execute(
                """
                INSERT INTO bucket_serials(bucket_prefix, last_serial) VALUES(%s, %s)
                ON DUPLICATE KEY UPDATE last_serial = GREATEST(last_serial, VALUES(last_serial))
                """,
                (prefix, serial_of(record.identifier)),
            )
            return True

    def allocation_scope(self, bucket_prefix: str):
        return named_lock(self._conn_factory, f"employee_registry:{bucket_prefix}", timeout=self._lock_timeout)

    def get_by_identifier(self, identifier: str) -> Optional[EmployeeRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM employees WHERE employee_id=%s", (identifier,))
            row = fetchone(cur)
            return _row_to_record(row) if row else None

    def search(self, *, q: str, limit: int, offset: int) -> Sequence[EmployeeRecord]:
        sql = f"SELECT {_COLUMNS} FROM employees"
        params: list = []
        needle = (q or "").strip()
        if needle:
            like = f"%{escape_like(needle.lower())}%"
            sql += """
                WHERE LOWER(employee_id) LIKE %s OR LOWER(first_name) LIKE %s OR LOWER(last_name) LIKE %s
                   OR LOWER(email) LIKE %s OR LOWER(contact) LIKE %s
            """
            params.extend([like] * 5)
        sql += " ORDER BY created_at DESC, record_id DESC LIMIT %s OFFSET %s"
        params.extend([int(limit), int(offset)])
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_row_to_record(r) for r in fetchall(cur)]

    def update(self, record: EmployeeRecord) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE employees
                SET first_name=%s, last_name=%s, department=%s, contact=%s, email=%s, date_of_birth=%s,
                    position=%s, address=%s, blood_group=%s, other=%s, photo_url=%s, photo_ref=%s, updated_at=%s
                WHERE employee_id=%s
                """,
                (
                    record.first_name,
                    record.last_name,
                    record.department,
                    record.contact,
                    record.email,
                    record.date_of_birth,
                    record.position,
                    record.address,
                    record.blood_group,
                    record.other,
                    record.photo_url,
                    record.photo_ref,
                    record.updated_at,
                    record.identifier,
                ),
            )
            # rowcount is 0 when nothing changed; existence is what matters here.
            cur.execute("SELECT 1 AS found FROM employees WHERE employee_id=%s", (record.identifier,))
            return fetchone(cur) is not None

    def delete_by_identifier(self, identifier: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM employees WHERE employee_id=%s", (identifier,))
            return cur.rowcount > 0
