"""One-off copy of the legacy ``users`` table into ``profiles``."""
import logging
from datetime import datetime
from sqlalchemy import inspect, select, MetaData, Table
from ..models import db, Profile
from shared.enums import UserRole
from shared.models import now

logger = logging.getLogger(__name__)

LEGACY_TABLE = 'users'
COPIED_FIELDS = ('email', 'full_name', 'avatar_url', 'phone')


class LegacyUsersMissing(Exception):
    """Raised when there is no legacy users table to migrate from."""
    pass


def _timestamp(value):
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value.replace('Z', '+00:00'))
        except ValueError:
            logger.debug(f"Unparseable legacy timestamp {value!r}, using now")
    return now()


def _role(value):
    valid = [r.value for r in UserRole]
    return value if value in valid else UserRole.MEMBER.value


def migrate_legacy_users():
    """Copy users missing from profiles, matching on id and case-insensitive email.

    Returns:
        dict: {'users': n, 'profiles_before': n, 'migrated': [ids], 'skipped': [(id, reason)]}
    """
    if LEGACY_TABLE not in inspect(db.engine).get_table_names():
        raise LegacyUsersMissing(f"No legacy '{LEGACY_TABLE}' table found")

    users = Table(LEGACY_TABLE, MetaData(), autoload_with=db.engine)
    rows = [dict(row) for row in db.session.execute(select(users)).mappings()]
    profiles = Profile.query.all()
    logger.info(f"Found {len(rows)} legacy users and {len(profiles)} profiles")

    existing_ids = {p.id for p in profiles}
    existing_emails = {p.email.lower() for p in profiles if p.email}
    summary = {'users': len(rows), 'profiles_before': len(profiles), 'migrated': [], 'skipped': []}

    for row in rows:
        user_id = str(row.get('id'))
        email = row.get('email') or ''
        if user_id in existing_ids:
            summary['skipped'].append((user_id, 'id already in profiles'))
            continue
        if not email:
            summary['skipped'].append((user_id, 'no email'))
            continue
        if email.lower() in existing_emails:
            summary['skipped'].append((user_id, f'email {email} already in profiles'))
            continue

        profile = Profile(
            id=user_id,
            role=_role(row.get('role')),
            created_at=_timestamp(row.get('created_at')),
            updated_at=_timestamp(row.get('updated_at')),
            **{field: row.get(field) or '' for field in COPIED_FIELDS}
        )
        db.session.add(profile)
        existing_ids.add(user_id)
        existing_emails.add(email.lower())
        summary['migrated'].append(user_id)

    db.session.commit()
    logger.info(f"Migrated {len(summary['migrated'])} users, skipped {len(summary['skipped'])}")
    return summary
