"""Repository layer responsible for all database access."""

from __future__ import annotations

import sqlite3
from contextlib import closing, contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional, Sequence

from lodging.domain.constraints import recompute_totals
from lodging.domain.models import (
    AssignmentType,
    Client,
    ClientStatus,
    ClientType,
    Event,
    EventHotelAssignment,
    EventStatus,
    Gender,
    GroupRelation,
    Hotel,
    HotelCategory,
    LogicalRoom,
    RoomTier,
    RoomType,
    RosterEntry,
)
from lodging.utils.config import Settings, get_settings
from lodging.utils.logger import get_logger


logger = get_logger(__name__)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


_CLIENT_COLUMNS = """
    id, event_id, first_name, last_name, phone, email, gender, client_type,
    group_name, group_size, group_relation, status, notes, assigned_hotel_id,
    logical_room_id, real_room_number, bed_number, assignment_type,
    assignment_date, assigned_by, deposit_paid, deposit_amount, checked_in_at,
    checked_in_by
"""

_HOTEL_COLUMNS = """
    h.id, h.event_id, h.name, h.city, h.category, h.total_capacity,
    h.allow_mixed_groups,
    (SELECT COUNT(*) FROM HotelRoster AS r WHERE r.hotel_id = h.id) AS occupancy
"""


def _row_to_client(row: sqlite3.Row) -> Client:
    return Client(
        client_id=int(row["id"]),
        event_id=int(row["event_id"]),
        first_name=str(row["first_name"]),
        last_name=str(row["last_name"]),
        phone=str(row["phone"]),
        email=row["email"],
        gender=Gender(row["gender"]),
        client_type=ClientType(row["client_type"]),
        group_name=row["group_name"],
        group_size=int(row["group_size"]),
        group_relation=GroupRelation(row["group_relation"]) if row["group_relation"] else None,
        status=ClientStatus(row["status"]),
        notes=str(row["notes"] or ""),
        assigned_hotel_id=(
            int(row["assigned_hotel_id"]) if row["assigned_hotel_id"] is not None else None
        ),
        logical_room_id=(
            int(row["logical_room_id"]) if row["logical_room_id"] is not None else None
        ),
        real_room_number=row["real_room_number"],
        bed_number=int(row["bed_number"]) if row["bed_number"] is not None else None,
        assignment_type=(
            AssignmentType(row["assignment_type"]) if row["assignment_type"] else None
        ),
        assignment_date=row["assignment_date"],
        assigned_by=row["assigned_by"],
        deposit_paid=bool(row["deposit_paid"]),
        deposit_amount=float(row["deposit_amount"] or 0.0),
        checked_in_at=row["checked_in_at"],
        checked_in_by=row["checked_in_by"],
    )


def _row_to_hotel(row: sqlite3.Row) -> Hotel:
    return Hotel(
        hotel_id=int(row["id"]),
        event_id=int(row["event_id"]),
        name=str(row["name"]),
        city=row["city"],
        category=HotelCategory(row["category"]),
        total_capacity=int(row["total_capacity"]),
        allow_mixed_groups=bool(row["allow_mixed_groups"]),
        occupancy=int(row["occupancy"]),
    )


def _row_to_event(row: sqlite3.Row) -> Event:
    return Event(
        event_id=int(row["id"]),
        name=str(row["name"]),
        city=str(row["city"]),
        country=str(row["country"]),
        start_date=row["start_date"],
        end_date=row["end_date"],
        status=EventStatus(row["status"]),
        max_participants=(
            int(row["max_participants"]) if row["max_participants"] is not None else None
        ),
        allow_mixed_groups=bool(row["allow_mixed_groups"]),
        current_participants=int(row["current_participants"]),
        total_hotels=int(row["total_hotels"]),
    )


class DataRepository:
    """Encapsulates SQLite access so the engine stays storage-agnostic.

    Reads accept an optional connection so that they can run inside the
    caller's transaction; writes always take the transaction connection.
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._db_path = Path(self._settings.database_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def database_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(
            self._db_path,
            timeout=self._settings.database_busy_timeout_seconds,
            isolation_level=None,
            check_same_thread=False,
        )
        connection.row_factory = sqlite3.Row
        connection.execute("PRAGMA foreign_keys = ON;")
        return connection

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Open a write transaction that holds the database write lock.

        `BEGIN IMMEDIATE` takes the reserved lock up front, so a capacity
        check and the insert that depends on it cannot interleave with
        another writer, even one in a different process.
        """
        with closing(self._connect()) as conn:
            conn.execute("BEGIN IMMEDIATE;")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK;")
                raise
            conn.execute("COMMIT;")

    @contextmanager
    def _session(self, conn: Optional[sqlite3.Connection]) -> Iterator[sqlite3.Connection]:
        if conn is not None:
            yield conn
            return
        with closing(self._connect()) as owned:
            yield owned

    def initialize_database(self) -> None:
        """Create all persistence artifacts before API startup."""
        try:
            with self.transaction() as conn:
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Events (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        name TEXT NOT NULL UNIQUE,
                        city TEXT NOT NULL,
                        country TEXT NOT NULL,
                        start_date TEXT,
                        end_date TEXT,
                        status TEXT NOT NULL DEFAULT 'Planning',
                        max_participants INTEGER CHECK (max_participants IS NULL OR max_participants > 0),
                        allow_mixed_groups INTEGER NOT NULL DEFAULT 0,
                        current_participants INTEGER NOT NULL DEFAULT 0,
                        total_hotels INTEGER NOT NULL DEFAULT 0,
                        created_at DATETIME DEFAULT CURRENT_TIMESTAMP
                    );
                    """
                )
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Hotels (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        event_id INTEGER NOT NULL,
                        name TEXT NOT NULL,
                        city TEXT,
                        category TEXT NOT NULL DEFAULT 'Standard',
                        total_capacity INTEGER NOT NULL CHECK (total_capacity >= 0),
                        allow_mixed_groups INTEGER NOT NULL DEFAULT 0,
                        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                        UNIQUE (event_id, name),
                        FOREIGN KEY (event_id) REFERENCES Events(id) ON DELETE CASCADE
                    );
                    """
                )
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS LogicalRooms (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        hotel_id INTEGER NOT NULL,
                        event_id INTEGER NOT NULL,
                        label TEXT NOT NULL,
                        room_type TEXT NOT NULL DEFAULT 'Standard',
                        bed_count INTEGER NOT NULL CHECK (bed_count >= 1),
                        max_capacity INTEGER NOT NULL CHECK (max_capacity >= 1),
                        real_room_number TEXT,
                        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                        UNIQUE (hotel_id, label),
                        FOREIGN KEY (hotel_id) REFERENCES Hotels(id) ON DELETE CASCADE
                    );
                    """
                )
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Clients (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        event_id INTEGER NOT NULL,
                        first_name TEXT NOT NULL,
                        last_name TEXT NOT NULL,
                        phone TEXT NOT NULL,
                        email TEXT,
                        gender TEXT NOT NULL,
                        client_type TEXT NOT NULL DEFAULT 'Standard',
                        group_name TEXT,
                        group_size INTEGER NOT NULL DEFAULT 1 CHECK (group_size >= 1),
                        group_relation TEXT,
                        status TEXT NOT NULL DEFAULT 'Pending',
                        notes TEXT NOT NULL DEFAULT '',
                        assigned_hotel_id INTEGER,
                        logical_room_id INTEGER,
                        real_room_number TEXT,
                        bed_number INTEGER,
                        assignment_type TEXT,
                        assignment_date TEXT,
                        assigned_by TEXT,
                        deposit_paid INTEGER NOT NULL DEFAULT 0,
                        deposit_amount REAL NOT NULL DEFAULT 0 CHECK (deposit_amount >= 0),
                        checked_in_at TEXT,
                        checked_in_by TEXT,
                        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                        UNIQUE (event_id, phone),
                        FOREIGN KEY (event_id) REFERENCES Events(id) ON DELETE CASCADE,
                        FOREIGN KEY (assigned_hotel_id) REFERENCES Hotels(id),
                        FOREIGN KEY (logical_room_id) REFERENCES LogicalRooms(id)
                    );
                    """
                )
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS HotelRoster (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        hotel_id INTEGER NOT NULL,
                        client_id INTEGER NOT NULL UNIQUE,
                        assigned_at TEXT NOT NULL,
                        assigned_by TEXT NOT NULL,
                        assignment_type TEXT NOT NULL,
                        FOREIGN KEY (hotel_id) REFERENCES Hotels(id) ON DELETE CASCADE,
                        FOREIGN KEY (client_id) REFERENCES Clients(id) ON DELETE CASCADE
                    );
                    """
                )
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS EventHotelAssignments (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        event_id INTEGER NOT NULL,
                        hotel_id INTEGER NOT NULL,
                        suspended INTEGER NOT NULL DEFAULT 0,
                        notes TEXT NOT NULL DEFAULT '',
                        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                        UNIQUE (event_id, hotel_id),
                        FOREIGN KEY (event_id) REFERENCES Events(id) ON DELETE CASCADE,
                        FOREIGN KEY (hotel_id) REFERENCES Hotels(id) ON DELETE CASCADE
                    );
                    """
                )
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS RoomTiers (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        assignment_id INTEGER NOT NULL,
                        bed_count INTEGER NOT NULL CHECK (bed_count >= 1),
                        quantity INTEGER NOT NULL CHECK (quantity >= 0),
                        price_per_night REAL NOT NULL DEFAULT 0,
                        assigned_rooms INTEGER NOT NULL DEFAULT 0 CHECK (assigned_rooms >= 0),
                        UNIQUE (assignment_id, bed_count),
                        FOREIGN KEY (assignment_id) REFERENCES EventHotelAssignments(id)
                            ON DELETE CASCADE
                    );
                    """
                )
                conn.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_clients_event_hotel
                    ON Clients(event_id, assigned_hotel_id);
                    """
                )
                conn.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_clients_event_group
                    ON Clients(event_id, group_name);
                    """
                )
                conn.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_roster_hotel
                    ON HotelRoster(hotel_id);
                    """
                )
                conn.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_clients_logical_room
                    ON Clients(logical_room_id);
                    """
                )
            logger.info("Database initialized at %s", self._db_path)
        except sqlite3.Error as exc:
            raise RuntimeError(f"Database initialization failed: {exc}") from exc

    def seed_demo_data_if_empty(self) -> int:
        """Insert one demo event with hotels, rooms and clients; return clients seeded."""
        with self.transaction() as conn:
            existing = conn.execute("SELECT COUNT(*) AS count FROM Events;").fetchone()
            if int(existing["count"]) > 0:
                logger.info("Demo seeding skipped: events already present")
                return 0

            event_id = self.create_event(
                conn,
                name="Demo Summit",
                city="Casablanca",
                country="Morocco",
                start_date="2026-06-01",
                end_date="2026-06-04",
                status=EventStatus.ACTIVE,
                max_participants=200,
                allow_mixed_groups=False,
            )
            vip_hotel = self.create_hotel(
                conn,
                event_id=event_id,
                name="Palace Royal",
                city="Casablanca",
                category=HotelCategory.VIP,
                total_capacity=12,
                allow_mixed_groups=True,
            )
            standard_hotel = self.create_hotel(
                conn,
                event_id=event_id,
                name="City Inn",
                city="Casablanca",
                category=HotelCategory.STANDARD,
                total_capacity=20,
                allow_mixed_groups=False,
            )
            for hotel_id, room_type, bed_count in (
                (vip_hotel, RoomType.VIP, 2),
                (vip_hotel, RoomType.MIXED, 4),
                (standard_hotel, RoomType.GROUP_MALE, 4),
                (standard_hotel, RoomType.GROUP_FEMALE, 4),
                (standard_hotel, RoomType.STANDARD, 2),
            ):
                label_row = conn.execute(
                    "SELECT COUNT(*) AS count FROM LogicalRooms WHERE hotel_id = ?;",
                    (hotel_id,),
                ).fetchone()
                self.create_logical_room(
                    conn,
                    hotel_id=hotel_id,
                    event_id=event_id,
                    label=f"room_{int(label_row['count']) + 1}",
                    room_type=room_type,
                    bed_count=bed_count,
                    max_capacity=bed_count,
                )
            self.create_event_hotel_assignment(
                conn,
                event_id=event_id,
                hotel_id=standard_hotel,
                tiers=(
                    RoomTier(bed_count=2, quantity=4, price_per_night=60.0),
                    RoomTier(bed_count=4, quantity=3, price_per_night=90.0),
                ),
                notes="Demo quota",
            )

            demo_clients = (
                ("Amina", "Benali", "+212600000001", Gender.FEMALE, ClientType.VIP, None),
                ("Youssef", "Haddad", "+212600000002", Gender.MALE, ClientType.INFLUENCER, None),
                ("Karim", "Alaoui", "+212600000003", Gender.MALE, ClientType.STAFF, None),
                ("Sara", "Idrissi", "+212600000004", Gender.FEMALE, ClientType.STANDARD, "Team A"),
                ("Omar", "Idrissi", "+212600000005", Gender.MALE, ClientType.STANDARD, "Team A"),
                ("Nadia", "Tazi", "+212600000006", Gender.FEMALE, ClientType.STANDARD, "Team B"),
                ("Leila", "Tazi", "+212600000007", Gender.FEMALE, ClientType.STANDARD, "Team B"),
                ("Hamza", "Fassi", "+212600000008", Gender.MALE, ClientType.STANDARD, None),
            )
            for first_name, last_name, phone, gender, client_type, group in demo_clients:
                self.create_client(
                    conn,
                    event_id=event_id,
                    first_name=first_name,
                    last_name=last_name,
                    phone=phone,
                    email=None,
                    gender=gender,
                    client_type=client_type,
                    group_name=group,
                    group_size=2 if group else 1,
                    group_relation=GroupRelation.FRIENDS if group else None,
                    status=ClientStatus.CONFIRMED,
                    notes="[VIP] " if client_type == ClientType.VIP else "",
                )
            self.refresh_event_counters(conn, event_id)
        logger.info(
            "Demo data seeded | event_id=%s | clients=%s", event_id, len(demo_clients)
        )
        return len(demo_clients)

    # --- Events ---

    def create_event(
        self,
        conn: sqlite3.Connection,
        *,
        name: str,
        city: str,
        country: str,
        start_date: str | None,
        end_date: str | None,
        status: EventStatus,
        max_participants: int | None,
        allow_mixed_groups: bool,
    ) -> int:
        cursor = conn.execute(
            """
            INSERT INTO Events (
                name, city, country, start_date, end_date, status,
                max_participants, allow_mixed_groups
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?);
            """,
            (
                name,
                city,
                country,
                start_date,
                end_date,
                status.value,
                max_participants,
                int(allow_mixed_groups),
            ),
        )
        return int(cursor.lastrowid)

    def get_event(
        self,
        event_id: int,
        conn: Optional[sqlite3.Connection] = None,
    ) -> Optional[Event]:
        with self._session(conn) as session:
            row = session.execute("SELECT * FROM Events WHERE id = ?;", (event_id,)).fetchone()
            return _row_to_event(row) if row is not None else None

    def list_events(self) -> list[Event]:
        with self._session(None) as session:
            rows = session.execute("SELECT * FROM Events ORDER BY id ASC;").fetchall()
            return [_row_to_event(row) for row in rows]

    def update_event(
        self,
        conn: sqlite3.Connection,
        event_id: int,
        *,
        name: str,
        city: str,
        country: str,
        start_date: str | None,
        end_date: str | None,
        status: EventStatus,
        max_participants: int | None,
        allow_mixed_groups: bool,
    ) -> None:
        conn.execute(
            """
            UPDATE Events
            SET name = ?, city = ?, country = ?, start_date = ?, end_date = ?, status = ?,
                max_participants = ?, allow_mixed_groups = ?
            WHERE id = ?;
            """,
            (
                name,
                city,
                country,
                start_date,
                end_date,
                status.value,
                max_participants,
                int(allow_mixed_groups),
                event_id,
            ),
        )

    def refresh_event_counters(self, conn: sqlite3.Connection, event_id: int) -> None:
        """Recompute cached participant/hotel counters from the rows themselves."""
        conn.execute(
            """
            UPDATE Events
            SET current_participants = (
                    SELECT COUNT(*) FROM Clients WHERE event_id = Events.id
                ),
                total_hotels = (
                    SELECT COUNT(*) FROM Hotels WHERE event_id = Events.id
                )
            WHERE id = ?;
            """,
            (event_id,),
        )

    # --- Hotels ---

    def create_hotel(
        self,
        conn: sqlite3.Connection,
        *,
        event_id: int,
        name: str,
        city: str | None,
        category: HotelCategory,
        total_capacity: int,
        allow_mixed_groups: bool,
    ) -> int:
        cursor = conn.execute(
            """
            INSERT INTO Hotels (
                event_id, name, city, category, total_capacity, allow_mixed_groups
            )
            VALUES (?, ?, ?, ?, ?, ?);
            """,
            (event_id, name, city, category.value, total_capacity, int(allow_mixed_groups)),
        )
        return int(cursor.lastrowid)

    def get_hotel(
        self,
        hotel_id: int,
        conn: Optional[sqlite3.Connection] = None,
    ) -> Optional[Hotel]:
        with self._session(conn) as session:
            row = session.execute(
                f"SELECT {_HOTEL_COLUMNS} FROM Hotels AS h WHERE h.id = ?;",
                (hotel_id,),
            ).fetchone()
            return _row_to_hotel(row) if row is not None else None

    def list_hotels(
        self,
        event_id: int,
        conn: Optional[sqlite3.Connection] = None,
    ) -> list[Hotel]:
        with self._session(conn) as session:
            rows = session.execute(
                f"""
                SELECT {_HOTEL_COLUMNS}
                FROM Hotels AS h
                WHERE h.event_id = ?
                ORDER BY h.id ASC;
                """,
                (event_id,),
            ).fetchall()
            return [_row_to_hotel(row) for row in rows]

    def update_hotel(
        self,
        conn: sqlite3.Connection,
        hotel_id: int,
        *,
        name: str,
        city: str | None,
        category: HotelCategory,
        total_capacity: int,
        allow_mixed_groups: bool,
    ) -> None:
        conn.execute(
            """
            UPDATE Hotels
            SET name = ?, city = ?, category = ?, total_capacity = ?, allow_mixed_groups = ?
            WHERE id = ?;
            """,
            (name, city, category.value, total_capacity, int(allow_mixed_groups), hotel_id),
        )

    def count_occupancy(self, conn: sqlite3.Connection, hotel_id: int) -> int:
        row = conn.execute(
            "SELECT COUNT(*) AS count FROM HotelRoster WHERE hotel_id = ?;",
            (hotel_id,),
        ).fetchone()
        return int(row["count"])

    # --- Roster ---

    def insert_roster_entries(
        self,
        conn: sqlite3.Connection,
        *,
        hotel_id: int,
        client_ids: Sequence[int],
        assigned_at: str,
        assigned_by: str,
        assignment_type: AssignmentType,
    ) -> list[RosterEntry]:
        conn.executemany(
            """
            INSERT INTO HotelRoster (hotel_id, client_id, assigned_at, assigned_by, assignment_type)
            VALUES (?, ?, ?, ?, ?);
            """,
            [
                (hotel_id, client_id, assigned_at, assigned_by, assignment_type.value)
                for client_id in client_ids
            ],
        )
        return [
            RosterEntry(
                hotel_id=hotel_id,
                client_id=client_id,
                assigned_at=assigned_at,
                assigned_by=assigned_by,
                assignment_type=assignment_type,
            )
            for client_id in client_ids
        ]

    def delete_roster_entries(
        self,
        conn: sqlite3.Connection,
        *,
        hotel_id: int,
        client_ids: Sequence[int],
    ) -> int:
        if not client_ids:
            return 0
        placeholders = ",".join("?" for _ in client_ids)
        cursor = conn.execute(
            f"""
            DELETE FROM HotelRoster
            WHERE hotel_id = ? AND client_id IN ({placeholders});
            """,
            (hotel_id, *client_ids),
        )
        return int(cursor.rowcount)

    def get_roster_entry(
        self,
        client_id: int,
        conn: Optional[sqlite3.Connection] = None,
    ) -> Optional[RosterEntry]:
        with self._session(conn) as session:
            row = session.execute(
                """
                SELECT hotel_id, client_id, assigned_at, assigned_by, assignment_type
                FROM HotelRoster
                WHERE client_id = ?;
                """,
                (client_id,),
            ).fetchone()
            if row is None:
                return None
            return RosterEntry(
                hotel_id=int(row["hotel_id"]),
                client_id=int(row["client_id"]),
                assigned_at=str(row["assigned_at"]),
                assigned_by=str(row["assigned_by"]),
                assignment_type=AssignmentType(row["assignment_type"]),
            )

    def list_roster(
        self,
        hotel_id: int,
        conn: Optional[sqlite3.Connection] = None,
    ) -> list[RosterEntry]:
        with self._session(conn) as session:
            rows = session.execute(
                """
                SELECT hotel_id, client_id, assigned_at, assigned_by, assignment_type
                FROM HotelRoster
                WHERE hotel_id = ?
                ORDER BY id ASC;
                """,
                (hotel_id,),
            ).fetchall()
            return [
                RosterEntry(
                    hotel_id=int(row["hotel_id"]),
                    client_id=int(row["client_id"]),
                    assigned_at=str(row["assigned_at"]),
                    assigned_by=str(row["assigned_by"]),
                    assignment_type=AssignmentType(row["assignment_type"]),
                )
                for row in rows
            ]

    # --- Clients ---

    def create_client(
        self,
        conn: sqlite3.Connection,
        *,
        event_id: int,
        first_name: str,
        last_name: str,
        phone: str,
        email: str | None,
        gender: Gender,
        client_type: ClientType,
        group_name: str | None,
        group_size: int,
        group_relation: GroupRelation | None,
        status: ClientStatus,
        notes: str,
    ) -> int:
        cursor = conn.execute(
            """
            INSERT INTO Clients (
                event_id, first_name, last_name, phone, email, gender, client_type,
                group_name, group_size, group_relation, status, notes
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
            """,
            (
                event_id,
                first_name,
                last_name,
                phone,
                email,
                gender.value,
                client_type.value,
                group_name,
                group_size,
                group_relation.value if group_relation else None,
                status.value,
                notes,
            ),
        )
        return int(cursor.lastrowid)

    def get_client(
        self,
        client_id: int,
        conn: Optional[sqlite3.Connection] = None,
    ) -> Optional[Client]:
        with self._session(conn) as session:
            row = session.execute(
                f"SELECT {_CLIENT_COLUMNS} FROM Clients WHERE id = ?;",
                (client_id,),
            ).fetchone()
            return _row_to_client(row) if row is not None else None

    def get_clients(
        self,
        client_ids: Sequence[int],
        conn: Optional[sqlite3.Connection] = None,
    ) -> dict[int, Client]:
        if not client_ids:
            return {}
        placeholders = ",".join("?" for _ in client_ids)
        with self._session(conn) as session:
            rows = session.execute(
                f"SELECT {_CLIENT_COLUMNS} FROM Clients WHERE id IN ({placeholders});",
                tuple(client_ids),
            ).fetchall()
            return {int(row["id"]): _row_to_client(row) for row in rows}

    def find_client_by_phone(
        self,
        event_id: int,
        phone: str,
        conn: Optional[sqlite3.Connection] = None,
    ) -> Optional[Client]:
        with self._session(conn) as session:
            row = session.execute(
                f"SELECT {_CLIENT_COLUMNS} FROM Clients WHERE event_id = ? AND phone = ?;",
                (event_id, phone),
            ).fetchone()
            return _row_to_client(row) if row is not None else None

    def list_clients(
        self,
        event_id: int,
        conn: Optional[sqlite3.Connection] = None,
        *,
        assigned: Optional[bool] = None,
        hotel_id: Optional[int] = None,
        group_name: Optional[str] = None,
        client_type: Optional[ClientType] = None,
        gender: Optional[Gender] = None,
        status: Optional[ClientStatus] = None,
    ) -> list[Client]:
        """Return event clients in registration order, optionally filtered."""
        clauses = ["event_id = ?"]
        params: list[object] = [event_id]
        if assigned is True:
            clauses.append("assigned_hotel_id IS NOT NULL")
        elif assigned is False:
            clauses.append("assigned_hotel_id IS NULL")
        if hotel_id is not None:
            clauses.append("assigned_hotel_id = ?")
            params.append(hotel_id)
        if group_name is not None:
            clauses.append("group_name = ?")
            params.append(group_name)
        if client_type is not None:
            clauses.append("client_type = ?")
            params.append(client_type.value)
        if gender is not None:
            clauses.append("gender = ?")
            params.append(gender.value)
        if status is not None:
            clauses.append("status = ?")
            params.append(status.value)

        with self._session(conn) as session:
            rows = session.execute(
                f"""
                SELECT {_CLIENT_COLUMNS}
                FROM Clients
                WHERE {" AND ".join(clauses)}
                ORDER BY id ASC;
                """,
                tuple(params),
            ).fetchall()
            return [_row_to_client(row) for row in rows]

    def list_group_names(
        self,
        event_id: int,
        conn: Optional[sqlite3.Connection] = None,
    ) -> list[str]:
        with self._session(conn) as session:
            rows = session.execute(
                """
                SELECT group_name, MIN(id) AS first_id
                FROM Clients
                WHERE event_id = ? AND group_name IS NOT NULL AND group_name != ''
                GROUP BY group_name
                ORDER BY first_id ASC;
                """,
                (event_id,),
            ).fetchall()
            return [str(row["group_name"]) for row in rows]

    def update_client_assignment(
        self,
        conn: sqlite3.Connection,
        client_id: int,
        *,
        hotel_id: int | None,
        logical_room_id: int | None,
        real_room_number: str | None,
        bed_number: int | None,
        assignment_type: AssignmentType | None,
        assignment_date: str | None,
        assigned_by: str | None,
        status: ClientStatus,
    ) -> None:
        conn.execute(
            """
            UPDATE Clients
            SET assigned_hotel_id = ?,
                logical_room_id = ?,
                real_room_number = ?,
                bed_number = ?,
                assignment_type = ?,
                assignment_date = ?,
                assigned_by = ?,
                status = ?
            WHERE id = ?;
            """,
            (
                hotel_id,
                logical_room_id,
                real_room_number,
                bed_number,
                assignment_type.value if assignment_type else None,
                assignment_date,
                assigned_by,
                status.value,
                client_id,
            ),
        )

    def clear_client_assignments_for_event(
        self,
        conn: sqlite3.Connection,
        event_id: int,
        reverted_status: ClientStatus,
    ) -> int:
        cursor = conn.execute(
            """
            UPDATE Clients
            SET assigned_hotel_id = NULL,
                logical_room_id = NULL,
                real_room_number = NULL,
                bed_number = NULL,
                assignment_type = NULL,
                assignment_date = NULL,
                assigned_by = NULL,
                status = ?
            WHERE event_id = ? AND assigned_hotel_id IS NOT NULL;
            """,
            (reverted_status.value, event_id),
        )
        return int(cursor.rowcount)

    def update_client_status(
        self,
        conn: sqlite3.Connection,
        client_id: int,
        status: ClientStatus,
    ) -> None:
        conn.execute(
            "UPDATE Clients SET status = ? WHERE id = ?;",
            (status.value, client_id),
        )

    def update_client_details(
        self,
        conn: sqlite3.Connection,
        client_id: int,
        *,
        first_name: str,
        last_name: str,
        phone: str,
        email: str | None,
        gender: Gender,
        client_type: ClientType,
        group_name: str | None,
        group_size: int,
        group_relation: GroupRelation | None,
        notes: str,
    ) -> None:
        conn.execute(
            """
            UPDATE Clients
            SET first_name = ?, last_name = ?, phone = ?, email = ?, gender = ?,
                client_type = ?, group_name = ?, group_size = ?, group_relation = ?,
                notes = ?
            WHERE id = ?;
            """,
            (
                first_name,
                last_name,
                phone,
                email,
                gender.value,
                client_type.value,
                group_name,
                group_size,
                group_relation.value if group_relation else None,
                notes,
                client_id,
            ),
        )

    def update_client_on_site(
        self,
        conn: sqlite3.Connection,
        client_id: int,
        *,
        deposit_paid: bool,
        deposit_amount: float,
        checked_in_at: str | None,
        checked_in_by: str | None,
    ) -> None:
        conn.execute(
            """
            UPDATE Clients
            SET deposit_paid = ?, deposit_amount = ?, checked_in_at = ?, checked_in_by = ?
            WHERE id = ?;
            """,
            (int(deposit_paid), deposit_amount, checked_in_at, checked_in_by, client_id),
        )

    def delete_client(self, conn: sqlite3.Connection, client_id: int) -> None:
        conn.execute("DELETE FROM Clients WHERE id = ?;", (client_id,))

    # --- Logical rooms ---

    def create_logical_room(
        self,
        conn: sqlite3.Connection,
        *,
        hotel_id: int,
        event_id: int,
        label: str,
        room_type: RoomType,
        bed_count: int,
        max_capacity: int,
    ) -> int:
        cursor = conn.execute(
            """
            INSERT INTO LogicalRooms (hotel_id, event_id, label, room_type, bed_count, max_capacity)
            VALUES (?, ?, ?, ?, ?, ?);
            """,
            (hotel_id, event_id, label, room_type.value, bed_count, max_capacity),
        )
        return int(cursor.lastrowid)

    def _room_from_row(self, session: sqlite3.Connection, row: sqlite3.Row) -> LogicalRoom:
        occupant_rows = session.execute(
            """
            SELECT id FROM Clients
            WHERE logical_room_id = ?
            ORDER BY bed_number ASC, id ASC;
            """,
            (int(row["id"]),),
        ).fetchall()
        return LogicalRoom(
            room_id=int(row["id"]),
            hotel_id=int(row["hotel_id"]),
            event_id=int(row["event_id"]),
            label=str(row["label"]),
            room_type=RoomType(row["room_type"]),
            bed_count=int(row["bed_count"]),
            max_capacity=int(row["max_capacity"]),
            real_room_number=row["real_room_number"],
            assigned_client_ids=tuple(int(item["id"]) for item in occupant_rows),
        )

    def get_logical_room(
        self,
        room_id: int,
        conn: Optional[sqlite3.Connection] = None,
    ) -> Optional[LogicalRoom]:
        with self._session(conn) as session:
            row = session.execute(
                "SELECT * FROM LogicalRooms WHERE id = ?;",
                (room_id,),
            ).fetchone()
            if row is None:
                return None
            return self._room_from_row(session, row)

    def list_logical_rooms(
        self,
        hotel_id: int,
        conn: Optional[sqlite3.Connection] = None,
    ) -> list[LogicalRoom]:
        with self._session(conn) as session:
            rows = session.execute(
                "SELECT * FROM LogicalRooms WHERE hotel_id = ? ORDER BY id ASC;",
                (hotel_id,),
            ).fetchall()
            return [self._room_from_row(session, row) for row in rows]

    def list_event_logical_rooms(self, event_id: int) -> list[LogicalRoom]:
        with self._session(None) as session:
            rows = session.execute(
                "SELECT * FROM LogicalRooms WHERE event_id = ? ORDER BY hotel_id ASC, id ASC;",
                (event_id,),
            ).fetchall()
            return [self._room_from_row(session, row) for row in rows]

    def count_logical_rooms(self, conn: sqlite3.Connection, hotel_id: int) -> int:
        row = conn.execute(
            "SELECT COUNT(*) AS count FROM LogicalRooms WHERE hotel_id = ?;",
            (hotel_id,),
        ).fetchone()
        return int(row["count"])

    def occupied_beds(self, conn: sqlite3.Connection, room_id: int) -> set[int]:
        rows = conn.execute(
            """
            SELECT bed_number FROM Clients
            WHERE logical_room_id = ? AND bed_number IS NOT NULL;
            """,
            (room_id,),
        ).fetchall()
        return {int(row["bed_number"]) for row in rows}

    def find_room_by_real_number(
        self,
        conn: sqlite3.Connection,
        hotel_id: int,
        real_room_number: str,
    ) -> Optional[int]:
        row = conn.execute(
            "SELECT id FROM LogicalRooms WHERE hotel_id = ? AND real_room_number = ?;",
            (hotel_id, real_room_number),
        ).fetchone()
        return int(row["id"]) if row is not None else None

    def set_real_room_number(
        self,
        conn: sqlite3.Connection,
        room_id: int,
        real_room_number: str,
    ) -> None:
        conn.execute(
            "UPDATE LogicalRooms SET real_room_number = ? WHERE id = ?;",
            (real_room_number, room_id),
        )
        # Occupants carry the number for on-site check-in.
        conn.execute(
            "UPDATE Clients SET real_room_number = ? WHERE logical_room_id = ?;",
            (real_room_number, room_id),
        )

    # --- Event/hotel room-type quotas ---

    def create_event_hotel_assignment(
        self,
        conn: sqlite3.Connection,
        *,
        event_id: int,
        hotel_id: int,
        tiers: Sequence[RoomTier],
        notes: str,
    ) -> int:
        cursor = conn.execute(
            """
            INSERT INTO EventHotelAssignments (event_id, hotel_id, notes)
            VALUES (?, ?, ?);
            """,
            (event_id, hotel_id, notes),
        )
        assignment_id = int(cursor.lastrowid)
        self.replace_room_tiers(conn, assignment_id, tiers)
        return assignment_id

    def replace_room_tiers(
        self,
        conn: sqlite3.Connection,
        assignment_id: int,
        tiers: Sequence[RoomTier],
    ) -> None:
        conn.execute("DELETE FROM RoomTiers WHERE assignment_id = ?;", (assignment_id,))
        conn.executemany(
            """
            INSERT INTO RoomTiers (
                assignment_id, bed_count, quantity, price_per_night, assigned_rooms
            )
            VALUES (?, ?, ?, ?, ?);
            """,
            [
                (
                    assignment_id,
                    tier.bed_count,
                    tier.quantity,
                    tier.price_per_night,
                    tier.assigned_rooms,
                )
                for tier in tiers
            ],
        )

    def update_tier_assigned_rooms(
        self,
        conn: sqlite3.Connection,
        assignment_id: int,
        bed_count: int,
        assigned_rooms: int,
    ) -> None:
        conn.execute(
            """
            UPDATE RoomTiers SET assigned_rooms = ?
            WHERE assignment_id = ? AND bed_count = ?;
            """,
            (assigned_rooms, assignment_id, bed_count),
        )

    def update_event_hotel_assignment_meta(
        self,
        conn: sqlite3.Connection,
        assignment_id: int,
        *,
        suspended: bool,
        notes: str,
    ) -> None:
        conn.execute(
            "UPDATE EventHotelAssignments SET suspended = ?, notes = ? WHERE id = ?;",
            (int(suspended), notes, assignment_id),
        )

    def delete_event_hotel_assignment(self, conn: sqlite3.Connection, assignment_id: int) -> None:
        conn.execute("DELETE FROM EventHotelAssignments WHERE id = ?;", (assignment_id,))

    def _assignment_from_row(
        self,
        session: sqlite3.Connection,
        row: sqlite3.Row,
    ) -> EventHotelAssignment:
        tier_rows = session.execute(
            """
            SELECT bed_count, quantity, price_per_night, assigned_rooms
            FROM RoomTiers
            WHERE assignment_id = ?
            ORDER BY bed_count ASC;
            """,
            (int(row["id"]),),
        ).fetchall()
        tiers = tuple(
            RoomTier(
                bed_count=int(tier["bed_count"]),
                quantity=int(tier["quantity"]),
                price_per_night=float(tier["price_per_night"]),
                assigned_rooms=int(tier["assigned_rooms"]),
            )
            for tier in tier_rows
        )
        totals = recompute_totals(tiers)
        return EventHotelAssignment(
            assignment_id=int(row["id"]),
            event_id=int(row["event_id"]),
            hotel_id=int(row["hotel_id"]),
            available_rooms=tiers,
            total_capacity=totals.total_capacity,
            total_assigned=totals.total_assigned,
            suspended=bool(row["suspended"]),
            notes=str(row["notes"] or ""),
        )

    def get_event_hotel_assignment(
        self,
        assignment_id: int,
        conn: Optional[sqlite3.Connection] = None,
    ) -> Optional[EventHotelAssignment]:
        with self._session(conn) as session:
            row = session.execute(
                "SELECT * FROM EventHotelAssignments WHERE id = ?;",
                (assignment_id,),
            ).fetchone()
            return self._assignment_from_row(session, row) if row is not None else None

    def find_event_hotel_assignment(
        self,
        event_id: int,
        hotel_id: int,
        conn: Optional[sqlite3.Connection] = None,
    ) -> Optional[EventHotelAssignment]:
        with self._session(conn) as session:
            row = session.execute(
                "SELECT * FROM EventHotelAssignments WHERE event_id = ? AND hotel_id = ?;",
                (event_id, hotel_id),
            ).fetchone()
            return self._assignment_from_row(session, row) if row is not None else None

    def list_event_hotel_assignments(self, event_id: int) -> list[EventHotelAssignment]:
        with self._session(None) as session:
            rows = session.execute(
                "SELECT * FROM EventHotelAssignments WHERE event_id = ? ORDER BY id ASC;",
                (event_id,),
            ).fetchall()
            return [self._assignment_from_row(session, row) for row in rows]
