"""
Repository pattern for data access.

Holds the local mirror of upstream resources and their daily counter
snapshots. Every write is an upsert so that orchestrators running out of
order never clobber each other with stale blind overwrites.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence

import sqlite3

from .db import DEFAULT_DB_PATH, get_connection
from .models import (
    AccessLevel,
    AutocreditDefinition,
    AutocreditInterval,
    AutocreditStatus,
    AutocreditType,
    DhcpStatus,
    InterfaceType,
    Lan,
    LanUsageSnapshot,
    NetworkInterface,
    PrepaidAccess,
    QosLevel,
    UsageLimitStatus,
    UsagePeriodType,
    User,
    UserSnapshot,
    UserStatus,
    Wan,
    WanStatus,
    WanUsageSnapshot,
)


class MissingReferenceError(LookupError):
    """Raised when a write references a resource that is not mirrored yet."""

    def __init__(self, table: str, key: str):
        super().__init__(f"{table} '{key}' does not exist locally")
        self.table = table
        self.key = key


_SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS users (
        user_id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        display_name TEXT,
        access_level TEXT NOT NULL,
        auto_credit INTEGER NOT NULL DEFAULT 0,
        data_credit INTEGER NOT NULL DEFAULT 0,
        time_credit INTEGER NOT NULL DEFAULT 0,
        status TEXT NOT NULL,
        portal_connected_at TEXT,
        autocredit_definition TEXT NOT NULL,
        autocredit_interval TEXT NOT NULL,
        autocredit_type TEXT NOT NULL,
        autocredit_value INTEGER,
        autocredit_last_update TEXT,
        autocredit_status TEXT NOT NULL,
        usage_debit INTEGER NOT NULL DEFAULT 0,
        usage_credit INTEGER NOT NULL DEFAULT 0,
        usage_quota INTEGER NOT NULL DEFAULT 0,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS user_snapshots (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id TEXT NOT NULL REFERENCES users(user_id) ON DELETE CASCADE,
        snapshot_date TEXT NOT NULL,
        name TEXT NOT NULL,
        access_level TEXT NOT NULL,
        auto_credit INTEGER NOT NULL DEFAULT 0,
        data_credit INTEGER NOT NULL DEFAULT 0,
        time_credit INTEGER NOT NULL DEFAULT 0,
        status TEXT NOT NULL,
        autocredit_value INTEGER,
        usage_debit INTEGER NOT NULL DEFAULT 0,
        usage_credit INTEGER NOT NULL DEFAULT 0,
        usage_quota INTEGER NOT NULL DEFAULT 0
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_user_snapshots_user_date "
    "ON user_snapshots (user_id, snapshot_date)",
    """
    CREATE TABLE IF NOT EXISTS interfaces (
        interface_id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        status INTEGER NOT NULL DEFAULT 0,
        type TEXT NOT NULL,
        port INTEGER,
        vlan_id INTEGER,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS wans (
        wan_id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        status TEXT NOT NULL,
        allow_prepaid TEXT NOT NULL,
        dhcp TEXT NOT NULL,
        usage_limited TEXT NOT NULL,
        usage_period_type TEXT NOT NULL,
        prepaid_usage_period_type TEXT NOT NULL,
        dns1 TEXT,
        dns2 TEXT,
        interface_id TEXT,
        ip_address TEXT,
        ip_gateway TEXT,
        subnetmask TEXT,
        prepaid_usage_max_volume INTEGER NOT NULL DEFAULT 0,
        switch_priority INTEGER NOT NULL DEFAULT 0,
        usage_blocked INTEGER NOT NULL DEFAULT 0,
        usage_bytes INTEGER NOT NULL DEFAULT 0,
        usage_max_bytes INTEGER NOT NULL DEFAULT 0,
        usage_period INTEGER NOT NULL DEFAULT 0,
        usage_start TEXT,
        usage_start_timestamp INTEGER,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS wan_usage_snapshots (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        wan_id TEXT NOT NULL REFERENCES wans(wan_id) ON DELETE CASCADE,
        snapshot_date TEXT NOT NULL,
        name TEXT NOT NULL,
        bytes INTEGER NOT NULL DEFAULT 0,
        max_bytes INTEGER NOT NULL DEFAULT 0,
        start_time INTEGER NOT NULL DEFAULT 0,
        end_time INTEGER
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_wan_usage_wan_date "
    "ON wan_usage_snapshots (wan_id, snapshot_date)",
    """
    CREATE TABLE IF NOT EXISTS lans (
        lan_id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        dhcp TEXT NOT NULL,
        qos TEXT NOT NULL,
        ip_address TEXT,
        subnetmask TEXT,
        dns1 TEXT,
        dns2 TEXT,
        dhcp_range_from TEXT,
        dhcp_range_to TEXT,
        allow_gateway INTEGER NOT NULL DEFAULT 0,
        captive_portal INTEGER NOT NULL DEFAULT 0,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS lan_interfaces (
        lan_id TEXT NOT NULL REFERENCES lans(lan_id) ON DELETE CASCADE,
        interface_id TEXT NOT NULL REFERENCES interfaces(interface_id) ON DELETE CASCADE,
        PRIMARY KEY (lan_id, interface_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS lan_usage_snapshots (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        lan_id TEXT NOT NULL REFERENCES lans(lan_id) ON DELETE CASCADE,
        wan_id TEXT NOT NULL REFERENCES wans(wan_id) ON DELETE CASCADE,
        snapshot_date TEXT NOT NULL,
        lan_name TEXT NOT NULL,
        wan_name TEXT NOT NULL,
        bytes INTEGER NOT NULL DEFAULT 0,
        start_time INTEGER NOT NULL DEFAULT 0,
        end_time INTEGER
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_lan_usage_lan_wan_date "
    "ON lan_usage_snapshots (lan_id, wan_id, snapshot_date)",
]


def initialize_schema(db_path: str = DEFAULT_DB_PATH) -> None:
    """Create the mirror tables if they don't exist.

    Args:
        db_path: Path to SQLite database file
    """
    conn = get_connection(db_path)
    try:
        for statement in _SCHEMA:
            conn.execute(statement)
        conn.commit()
    finally:
        conn.close()


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _parse(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _start_of_day(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def _upsert(conn: sqlite3.Connection, table: str, key: str, values: Dict[str, Any]) -> None:
    """Insert a row or update every non-key column of the existing one."""
    columns = list(values.keys())
    placeholders = ", ".join("?" for _ in columns)
    updates = ", ".join(f"{col} = excluded.{col}" for col in columns if col != key)
    conn.execute(
        f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders}) "
        f"ON CONFLICT({key}) DO UPDATE SET {updates}",
        [values[col] for col in columns],
    )


def _upsert_daily_snapshot(
    conn: sqlite3.Connection,
    table: str,
    match: Dict[str, Any],
    values: Dict[str, Any],
    snapshot_date: datetime,
) -> bool:
    """Write the snapshot for the day of ``snapshot_date``.

    Looks for a row matching ``match`` dated on that calendar day. If one
    exists it is updated in place, otherwise a new row is inserted, so
    each matched entity keeps at most one row per day.

    Returns:
        True if a new row was inserted, False if an existing one was updated
    """
    conditions = " AND ".join(f"{col} = ?" for col in match)
    day_start = _start_of_day(snapshot_date)
    params = list(match.values()) + [_iso(day_start), _iso(day_start + timedelta(days=1))]
    row = conn.execute(
        f"SELECT id FROM {table} WHERE {conditions} AND snapshot_date >= ? AND snapshot_date < ? "
        f"ORDER BY snapshot_date DESC LIMIT 1",
        params,
    ).fetchone()

    data = dict(match)
    data.update(values)
    data["snapshot_date"] = _iso(snapshot_date)

    if row is None:
        columns = list(data.keys())
        conn.execute(
            f"INSERT INTO {table} ({', '.join(columns)}) "
            f"VALUES ({', '.join('?' for _ in columns)})",
            [data[col] for col in columns],
        )
        return True

    assignments = ", ".join(f"{col} = ?" for col in data)
    conn.execute(
        f"UPDATE {table} SET {assignments} WHERE id = ?",
        list(data.values()) + [row["id"]],
    )
    return False


def _exists(conn: sqlite3.Connection, table: str, key: str, value: str) -> bool:
    row = conn.execute(f"SELECT 1 FROM {table} WHERE {key} = ?", (value,)).fetchone()
    return row is not None


def _date_range(
    conditions: List[str],
    params: List[Any],
    start: Optional[datetime],
    end: Optional[datetime],
) -> None:
    if start is not None:
        conditions.append("snapshot_date >= ?")
        params.append(_iso(start))
    if end is not None:
        conditions.append("snapshot_date <= ?")
        params.append(_iso(end))


def _where(conditions: Sequence[str]) -> str:
    return " WHERE " + " AND ".join(conditions) if conditions else ""


class MirrorRepository:
    """Repository for the local mirror of upstream resources.

    Each call opens and closes its own connection, so one instance can be
    shared by every orchestrator running on the event loop.
    """

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        """Initialize the repository with a database path.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path

    def _write(self, operation, *args):
        conn = get_connection(self.db_path)
        try:
            conn.execute("BEGIN TRANSACTION")
            result = operation(conn, *args)
            conn.commit()
            return result
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _read(self, query: str, params: Iterable[Any] = ()) -> List[sqlite3.Row]:
        conn = get_connection(self.db_path)
        try:
            return conn.execute(query, list(params)).fetchall()
        finally:
            conn.close()

    # Users

    def upsert_user(self, user: User, now: Optional[datetime] = None) -> None:
        """Insert or update a user keyed by its upstream identifier."""
        values = {
            "user_id": user.user_id,
            "name": user.name,
            "display_name": user.display_name,
            "access_level": user.access_level.value,
            "auto_credit": int(user.auto_credit),
            "data_credit": user.data_credit,
            "time_credit": user.time_credit,
            "status": user.status.value,
            "portal_connected_at": _iso(user.portal_connected_at),
            "autocredit_definition": user.autocredit_definition.value,
            "autocredit_interval": user.autocredit_interval.value,
            "autocredit_type": user.autocredit_type.value,
            "autocredit_value": user.autocredit_value,
            "autocredit_last_update": _iso(user.autocredit_last_update),
            "autocredit_status": user.autocredit_status.value,
            "usage_debit": user.usage_debit,
            "usage_credit": user.usage_credit,
            "usage_quota": user.usage_quota,
            "updated_at": _iso(now or datetime.now()),
        }
        self._write(_upsert, "users", "user_id", values)

    def record_user_snapshot(self, snapshot: UserSnapshot) -> bool:
        """Write today's snapshot for a user.

        Returns:
            True if a new snapshot row was created

        Raises:
            MissingReferenceError: If the user is not mirrored
        """
        values = {
            "name": snapshot.name,
            "access_level": snapshot.access_level.value,
            "auto_credit": int(snapshot.auto_credit),
            "data_credit": snapshot.data_credit,
            "time_credit": snapshot.time_credit,
            "status": snapshot.status.value,
            "autocredit_value": snapshot.autocredit_value,
            "usage_debit": snapshot.usage_debit,
            "usage_credit": snapshot.usage_credit,
            "usage_quota": snapshot.usage_quota,
        }

        def write(conn):
            if not _exists(conn, "users", "user_id", snapshot.user_id):
                raise MissingReferenceError("user", snapshot.user_id)
            return _upsert_daily_snapshot(
                conn, "user_snapshots", {"user_id": snapshot.user_id},
                values, snapshot.snapshot_date
            )

        return self._write(write)

    def get_user(self, user_id: str) -> Optional[User]:
        rows = self._read("SELECT * FROM users WHERE user_id = ?", (user_id,))
        return _row_to_user(rows[0]) if rows else None

    def list_users(self) -> List[User]:
        return [_row_to_user(row) for row in self._read("SELECT * FROM users ORDER BY name")]

    def fetch_user_snapshots(
        self,
        user_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[UserSnapshot]:
        """Fetch user snapshots ordered by snapshot date (oldest first).

        Args:
            user_id: Optional filter for a single user
            start: Optional inclusive lower bound on snapshot date
            end: Optional inclusive upper bound on snapshot date

        Returns:
            List of snapshots in chronological order
        """
        conditions: List[str] = []
        params: List[Any] = []
        if user_id is not None:
            conditions.append("user_id = ?")
            params.append(user_id)
        _date_range(conditions, params, start, end)
        rows = self._read(
            "SELECT * FROM user_snapshots" + _where(conditions) + " ORDER BY snapshot_date ASC, id ASC",
            params,
        )
        return [_row_to_user_snapshot(row) for row in rows]

    # Interfaces

    def upsert_interface(self, interface: NetworkInterface, now: Optional[datetime] = None) -> None:
        values = {
            "interface_id": interface.interface_id,
            "name": interface.name,
            "status": interface.status,
            "type": interface.type.value,
            "port": interface.port,
            "vlan_id": interface.vlan_id,
            "updated_at": _iso(now or datetime.now()),
        }
        self._write(_upsert, "interfaces", "interface_id", values)

    def list_interfaces(self) -> List[NetworkInterface]:
        rows = self._read("SELECT * FROM interfaces ORDER BY name")
        return [
            NetworkInterface(
                interface_id=row["interface_id"],
                name=row["name"],
                status=row["status"],
                type=InterfaceType(row["type"]),
                port=row["port"],
                vlan_id=row["vlan_id"],
            )
            for row in rows
        ]

    # WANs

    def upsert_wan(self, wan: Wan, now: Optional[datetime] = None) -> None:
        values = {
            "wan_id": wan.wan_id,
            "name": wan.name,
            "status": wan.status.value,
            "allow_prepaid": wan.allow_prepaid.value,
            "dhcp": wan.dhcp.value,
            "usage_limited": wan.usage_limited.value,
            "usage_period_type": wan.usage_period_type.value,
            "prepaid_usage_period_type": wan.prepaid_usage_period_type.value,
            "dns1": wan.dns1,
            "dns2": wan.dns2,
            "interface_id": wan.interface_id,
            "ip_address": wan.ip_address,
            "ip_gateway": wan.ip_gateway,
            "subnetmask": wan.subnetmask,
            "prepaid_usage_max_volume": wan.prepaid_usage_max_volume,
            "switch_priority": wan.switch_priority,
            "usage_blocked": int(wan.usage_blocked),
            "usage_bytes": wan.usage_bytes,
            "usage_max_bytes": wan.usage_max_bytes,
            "usage_period": wan.usage_period,
            "usage_start": _iso(wan.usage_start),
            "usage_start_timestamp": wan.usage_start_timestamp,
            "updated_at": _iso(now or datetime.now()),
        }
        self._write(_upsert, "wans", "wan_id", values)

    def get_wan(self, wan_id: str) -> Optional[Wan]:
        rows = self._read("SELECT * FROM wans WHERE wan_id = ?", (wan_id,))
        return _row_to_wan(rows[0]) if rows else None

    def list_wans(self) -> List[Wan]:
        return [_row_to_wan(row) for row in self._read("SELECT * FROM wans ORDER BY name")]

    def record_wan_usage_snapshot(self, snapshot: WanUsageSnapshot) -> bool:
        """Write today's usage snapshot for a WAN.

        Returns:
            True if a new snapshot row was created

        Raises:
            MissingReferenceError: If the WAN is not mirrored
        """
        values = {
            "name": snapshot.name,
            "bytes": snapshot.bytes,
            "max_bytes": snapshot.max_bytes,
            "start_time": snapshot.start_time,
            "end_time": snapshot.end_time,
        }

        def write(conn):
            if not _exists(conn, "wans", "wan_id", snapshot.wan_id):
                raise MissingReferenceError("wan", snapshot.wan_id)
            return _upsert_daily_snapshot(
                conn, "wan_usage_snapshots", {"wan_id": snapshot.wan_id},
                values, snapshot.snapshot_date
            )

        return self._write(write)

    def fetch_wan_usage(
        self,
        wan_ids: Optional[Sequence[str]] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[WanUsageSnapshot]:
        """Fetch WAN usage snapshots ordered by snapshot date (oldest first)."""
        conditions: List[str] = []
        params: List[Any] = []
        if wan_ids:
            conditions.append(f"wan_id IN ({', '.join('?' for _ in wan_ids)})")
            params.extend(wan_ids)
        _date_range(conditions, params, start, end)
        rows = self._read(
            "SELECT * FROM wan_usage_snapshots" + _where(conditions) + " ORDER BY snapshot_date ASC, id ASC",
            params,
        )
        return [
            WanUsageSnapshot(
                id=row["id"],
                wan_id=row["wan_id"],
                snapshot_date=_parse(row["snapshot_date"]),
                name=row["name"],
                bytes=row["bytes"],
                max_bytes=row["max_bytes"],
                start_time=row["start_time"],
                end_time=row["end_time"],
            )
            for row in rows
        ]

    # LANs

    def upsert_lan(self, lan: Lan, now: Optional[datetime] = None) -> List[str]:
        """Insert or update a LAN and replace its interface links.

        The LAN row and its links are written in one transaction. Links to
        interfaces that are not mirrored yet are left out.

        Returns:
            Interface IDs that were skipped because they don't exist locally
        """
        values = {
            "lan_id": lan.lan_id,
            "name": lan.name,
            "dhcp": lan.dhcp.value,
            "qos": lan.qos.value,
            "ip_address": lan.ip_address,
            "subnetmask": lan.subnetmask,
            "dns1": lan.dns1,
            "dns2": lan.dns2,
            "dhcp_range_from": lan.dhcp_range_from,
            "dhcp_range_to": lan.dhcp_range_to,
            "allow_gateway": int(lan.allow_gateway),
            "captive_portal": int(lan.captive_portal),
            "updated_at": _iso(now or datetime.now()),
        }

        def write(conn):
            _upsert(conn, "lans", "lan_id", values)
            conn.execute("DELETE FROM lan_interfaces WHERE lan_id = ?", (lan.lan_id,))
            skipped = []
            for interface_id in lan.interface_ids:
                if not _exists(conn, "interfaces", "interface_id", interface_id):
                    skipped.append(interface_id)
                    continue
                conn.execute(
                    "INSERT OR IGNORE INTO lan_interfaces (lan_id, interface_id) VALUES (?, ?)",
                    (lan.lan_id, interface_id),
                )
            return skipped

        return self._write(write)

    def get_lan(self, lan_id: str) -> Optional[Lan]:
        rows = self._read("SELECT * FROM lans WHERE lan_id = ?", (lan_id,))
        if not rows:
            return None
        return _row_to_lan(rows[0], self._lan_links().get(lan_id, ()))

    def list_lans(self) -> List[Lan]:
        links = self._lan_links()
        rows = self._read("SELECT * FROM lans ORDER BY name")
        return [_row_to_lan(row, links.get(row["lan_id"], ())) for row in rows]

    def _lan_links(self) -> Dict[str, tuple]:
        links: Dict[str, list] = {}
        for row in self._read("SELECT lan_id, interface_id FROM lan_interfaces ORDER BY interface_id"):
            links.setdefault(row["lan_id"], []).append(row["interface_id"])
        return {lan_id: tuple(ids) for lan_id, ids in links.items()}

    def record_lan_usage_snapshot(self, snapshot: LanUsageSnapshot) -> bool:
        """Write today's usage snapshot for a (LAN, WAN) pair.

        Returns:
            True if a new snapshot row was created

        Raises:
            MissingReferenceError: If the LAN or the WAN is not mirrored
        """
        values = {
            "lan_name": snapshot.lan_name,
            "wan_name": snapshot.wan_name,
            "bytes": snapshot.bytes,
            "start_time": snapshot.start_time,
            "end_time": snapshot.end_time,
        }

        def write(conn):
            if not _exists(conn, "lans", "lan_id", snapshot.lan_id):
                raise MissingReferenceError("lan", snapshot.lan_id)
            if not _exists(conn, "wans", "wan_id", snapshot.wan_id):
                raise MissingReferenceError("wan", snapshot.wan_id)
            return _upsert_daily_snapshot(
                conn, "lan_usage_snapshots",
                {"lan_id": snapshot.lan_id, "wan_id": snapshot.wan_id},
                values, snapshot.snapshot_date
            )

        return self._write(write)

    def fetch_lan_usage(
        self,
        lan_id: Optional[str] = None,
        wan_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[LanUsageSnapshot]:
        """Fetch LAN usage snapshots ordered by snapshot date (oldest first)."""
        conditions: List[str] = []
        params: List[Any] = []
        if lan_id is not None:
            conditions.append("lan_id = ?")
            params.append(lan_id)
        if wan_id is not None:
            conditions.append("wan_id = ?")
            params.append(wan_id)
        _date_range(conditions, params, start, end)
        rows = self._read(
            "SELECT * FROM lan_usage_snapshots" + _where(conditions) + " ORDER BY snapshot_date ASC, id ASC",
            params,
        )
        return [
            LanUsageSnapshot(
                id=row["id"],
                lan_id=row["lan_id"],
                wan_id=row["wan_id"],
                snapshot_date=_parse(row["snapshot_date"]),
                lan_name=row["lan_name"],
                wan_name=row["wan_name"],
                bytes=row["bytes"],
                start_time=row["start_time"],
                end_time=row["end_time"],
            )
            for row in rows
        ]


def _row_to_user(row: sqlite3.Row) -> User:
    return User(
        user_id=row["user_id"],
        name=row["name"],
        display_name=row["display_name"],
        access_level=AccessLevel(row["access_level"]),
        auto_credit=bool(row["auto_credit"]),
        data_credit=row["data_credit"],
        time_credit=row["time_credit"],
        status=UserStatus(row["status"]),
        portal_connected_at=_parse(row["portal_connected_at"]),
        autocredit_definition=AutocreditDefinition(row["autocredit_definition"]),
        autocredit_interval=AutocreditInterval(row["autocredit_interval"]),
        autocredit_type=AutocreditType(row["autocredit_type"]),
        autocredit_value=row["autocredit_value"],
        autocredit_last_update=_parse(row["autocredit_last_update"]),
        autocredit_status=AutocreditStatus(row["autocredit_status"]),
        usage_debit=row["usage_debit"],
        usage_credit=row["usage_credit"],
        usage_quota=row["usage_quota"],
    )


def _row_to_user_snapshot(row: sqlite3.Row) -> UserSnapshot:
    return UserSnapshot(
        id=row["id"],
        user_id=row["user_id"],
        snapshot_date=_parse(row["snapshot_date"]),
        name=row["name"],
        access_level=AccessLevel(row["access_level"]),
        auto_credit=bool(row["auto_credit"]),
        data_credit=row["data_credit"],
        time_credit=row["time_credit"],
        status=UserStatus(row["status"]),
        autocredit_value=row["autocredit_value"],
        usage_debit=row["usage_debit"],
        usage_credit=row["usage_credit"],
        usage_quota=row["usage_quota"],
    )


def _row_to_wan(row: sqlite3.Row) -> Wan:
    return Wan(
        wan_id=row["wan_id"],
        name=row["name"],
        status=WanStatus(row["status"]),
        allow_prepaid=PrepaidAccess(row["allow_prepaid"]),
        dhcp=DhcpStatus(row["dhcp"]),
        usage_limited=UsageLimitStatus(row["usage_limited"]),
        usage_period_type=UsagePeriodType(row["usage_period_type"]),
        prepaid_usage_period_type=UsagePeriodType(row["prepaid_usage_period_type"]),
        dns1=row["dns1"],
        dns2=row["dns2"],
        interface_id=row["interface_id"],
        ip_address=row["ip_address"],
        ip_gateway=row["ip_gateway"],
        subnetmask=row["subnetmask"],
        prepaid_usage_max_volume=row["prepaid_usage_max_volume"],
        switch_priority=row["switch_priority"],
        usage_blocked=bool(row["usage_blocked"]),
        usage_bytes=row["usage_bytes"],
        usage_max_bytes=row["usage_max_bytes"],
        usage_period=row["usage_period"],
        usage_start=_parse(row["usage_start"]),
        usage_start_timestamp=row["usage_start_timestamp"],
    )


def _row_to_lan(row: sqlite3.Row, interface_ids: Sequence[str]) -> Lan:
    return Lan(
        lan_id=row["lan_id"],
        name=row["name"],
        dhcp=DhcpStatus(row["dhcp"]),
        qos=QosLevel(row["qos"]),
        ip_address=row["ip_address"],
        subnetmask=row["subnetmask"],
        dns1=row["dns1"],
        dns2=row["dns2"],
        dhcp_range_from=row["dhcp_range_from"],
        dhcp_range_to=row["dhcp_range_to"],
        allow_gateway=bool(row["allow_gateway"]),
        captive_portal=bool(row["captive_portal"]),
        interface_ids=tuple(interface_ids),
    )
