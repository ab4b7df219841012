"""State persistence for ZimEstimate MCP using SQLite."""

import asyncio
import json
import logging
import uuid
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import Any

import aiosqlite

from models.price import TRUSTED_REVIEW_STATUSES, PriceObservation, ReviewStatus, WeeklyPrice
from models.project import (
    AccessLevel,
    BOQItem,
    LaborPreference,
    Project,
    ProjectScope,
    ProjectShare,
    ProjectStatus,
    Reminder,
    ReminderType,
)
from models.stage import DEFAULT_STAGES, MaterialUsage, ProjectStage, StageStatus, StageTask, stage_applies
from utils.clock import utc_now
from utils.errors import PartialFailureError

logger = logging.getLogger(__name__)

# Default database path
DEFAULT_DB_PATH = Path.home() / ".local" / "share" / "zimestimate" / "state.db"

PROJECT_FIELDS = (
    "name",
    "location",
    "description",
    "scope",
    "labor_preference",
    "status",
    "total_usd",
    "total_zwg",
    "selected_stages",
    "usage_tracking_enabled",
    "usage_low_stock_threshold",
    "target_date",
)

BOQ_ITEM_FIELDS = (
    "material_id",
    "material_name",
    "category",
    "quantity",
    "unit",
    "unit_price_usd",
    "unit_price_zwg",
    "notes",
    "sort_order",
    "actual_quantity",
    "actual_price_usd",
    "is_purchased",
    "purchased_date",
)

STAGE_FIELDS = (
    "name",
    "description",
    "start_date",
    "end_date",
    "status",
    "is_applicable",
)

TASK_FIELDS = (
    "title",
    "description",
    "assigned_to",
    "verification_note",
    "is_completed",
    "completed_at",
    "sort_order",
)


def _new_id() -> str:
    return str(uuid.uuid4())[:12]


def _enum_value(value: Any) -> Any:
    return getattr(value, "value", value)


def _column_value(name: str, value: Any) -> Any:
    """Convert a model value into its column representation."""
    if name == "selected_stages":
        return json.dumps(list(value or []))
    if name in ("usage_tracking_enabled", "is_purchased", "is_applicable", "is_completed"):
        return 1 if value else 0
    return _enum_value(value)


class StateStore:
    """Persistent state storage using SQLite."""

    def __init__(self, db_path: Path | str | None = None):
        self.db_path = Path(db_path).expanduser() if db_path else DEFAULT_DB_PATH
        self._db: aiosqlite.Connection | None = None
        self._lock = asyncio.Lock()

    @property
    def is_initialized(self) -> bool:
        return self._db is not None

    async def initialize(self) -> None:
        """Initialize the database and create tables."""
        # Ensure directory exists
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._db = await aiosqlite.connect(str(self.db_path))
        self._db.row_factory = aiosqlite.Row

        await self._db.execute("""
            CREATE TABLE IF NOT EXISTS projects (
                id TEXT PRIMARY KEY,
                owner_id TEXT NOT NULL,
                name TEXT NOT NULL,
                location TEXT,
                description TEXT,
                scope TEXT NOT NULL DEFAULT 'entire_house',
                labor_preference TEXT NOT NULL DEFAULT 'materials_only',
                status TEXT NOT NULL DEFAULT 'draft',
                total_usd REAL NOT NULL DEFAULT 0,
                total_zwg REAL NOT NULL DEFAULT 0,
                selected_stages TEXT NOT NULL DEFAULT '[]',
                usage_tracking_enabled INTEGER NOT NULL DEFAULT 0,
                usage_low_stock_threshold INTEGER NOT NULL DEFAULT 20,
                target_date TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)

        await self._db.execute("""
            CREATE INDEX IF NOT EXISTS idx_projects_owner
            ON projects(owner_id, updated_at)
        """)

        await self._db.execute("""
            CREATE TABLE IF NOT EXISTS boq_items (
                id TEXT PRIMARY KEY,
                project_id TEXT NOT NULL,
                material_id TEXT NOT NULL,
                material_name TEXT NOT NULL,
                category TEXT NOT NULL,
                quantity REAL NOT NULL,
                unit TEXT NOT NULL,
                unit_price_usd REAL NOT NULL DEFAULT 0,
                unit_price_zwg REAL NOT NULL DEFAULT 0,
                notes TEXT,
                sort_order INTEGER NOT NULL DEFAULT 0,
                actual_quantity REAL,
                actual_price_usd REAL,
                is_purchased INTEGER NOT NULL DEFAULT 0,
                purchased_date TEXT
            )
        """)

        await self._db.execute("""
            CREATE INDEX IF NOT EXISTS idx_boq_items_project
            ON boq_items(project_id, sort_order)
        """)

        await self._db.execute("""
            CREATE TABLE IF NOT EXISTS reminders (
                id TEXT PRIMARY KEY,
                project_id TEXT NOT NULL,
                item_id TEXT,
                reminder_type TEXT NOT NULL,
                message TEXT NOT NULL,
                scheduled_date TEXT NOT NULL,
                phone_number TEXT NOT NULL,
                is_sent INTEGER NOT NULL DEFAULT 0
            )
        """)

        await self._db.execute("""
            CREATE TABLE IF NOT EXISTS project_shares (
                id TEXT PRIMARY KEY,
                project_id TEXT NOT NULL,
                email TEXT NOT NULL,
                access_level TEXT NOT NULL DEFAULT 'view',
                created_at TEXT NOT NULL,
                UNIQUE(project_id, email)
            )
        """)

        await self._db.execute("""
            CREATE TABLE IF NOT EXISTS price_observations (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                material_key TEXT NOT NULL,
                material_name TEXT,
                unit TEXT,
                price_usd REAL,
                price_zwg REAL,
                currency TEXT NOT NULL DEFAULT 'USD',
                location TEXT,
                supplier_name TEXT,
                source_name TEXT,
                url TEXT,
                confidence INTEGER NOT NULL DEFAULT 2,
                review_status TEXT NOT NULL DEFAULT 'auto',
                scraped_at TEXT NOT NULL
            )
        """)

        await self._db.execute("""
            CREATE INDEX IF NOT EXISTS idx_observations_material
            ON price_observations(material_key, scraped_at)
        """)

        await self._db.execute("""
            CREATE TABLE IF NOT EXISTS price_weekly (
                material_key TEXT NOT NULL,
                week_start TEXT NOT NULL,
                avg_price_usd REAL,
                avg_price_zwg REAL,
                median_price_usd REAL,
                min_price_usd REAL,
                max_price_usd REAL,
                sample_count INTEGER NOT NULL DEFAULT 0,
                last_scraped_at TEXT,
                updated_at TEXT NOT NULL,
                PRIMARY KEY (material_key, week_start)
            )
        """)

        await self._db.execute("""
            CREATE TABLE IF NOT EXISTS room_layouts (
                layout_id TEXT PRIMARY KEY,
                rooms_json TEXT NOT NULL,
                target_floor_area REAL NOT NULL DEFAULT 0,
                updated_at TEXT NOT NULL
            )
        """)

        await self._db.execute("""
            CREATE TABLE IF NOT EXISTS project_stages (
                id TEXT PRIMARY KEY,
                project_id TEXT NOT NULL,
                boq_category TEXT NOT NULL,
                name TEXT NOT NULL,
                description TEXT,
                start_date TEXT,
                end_date TEXT,
                status TEXT NOT NULL DEFAULT 'planning',
                sort_order INTEGER NOT NULL DEFAULT 0,
                is_applicable INTEGER NOT NULL DEFAULT 1,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                UNIQUE(project_id, boq_category)
            )
        """)

        await self._db.execute("""
            CREATE TABLE IF NOT EXISTS stage_tasks (
                id TEXT PRIMARY KEY,
                stage_id TEXT NOT NULL,
                title TEXT NOT NULL,
                description TEXT,
                assigned_to TEXT,
                verification_note TEXT,
                is_completed INTEGER NOT NULL DEFAULT 0,
                completed_at TEXT,
                sort_order INTEGER NOT NULL DEFAULT 0,
                is_default INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL
            )
        """)

        await self._db.execute("""
            CREATE INDEX IF NOT EXISTS idx_stage_tasks_stage
            ON stage_tasks(stage_id, sort_order)
        """)

        await self._db.execute("""
            CREATE TABLE IF NOT EXISTS material_usage (
                id TEXT PRIMARY KEY,
                project_id TEXT NOT NULL,
                boq_item_id TEXT NOT NULL,
                quantity_used REAL NOT NULL,
                usage_date TEXT NOT NULL,
                notes TEXT,
                created_at TEXT NOT NULL
            )
        """)

        await self._db.execute("""
            CREATE INDEX IF NOT EXISTS idx_material_usage_project
            ON material_usage(project_id, usage_date)
        """)

        await self._db.commit()
        logger.info(f"State store initialized at {self.db_path}")

    async def close(self) -> None:
        """Close the database connection."""
        if self._db:
            await self._db.close()
            self._db = None

    @asynccontextmanager
    async def _write(self) -> AsyncIterator[aiosqlite.Connection]:
        """Commit the writes made in the block, or roll them back and re-raise."""
        if not self._db:
            raise RuntimeError("Database not initialized")

        async with self._lock:
            try:
                yield self._db
                await self._db.commit()
            except BaseException:
                await self._db.rollback()
                raise

    @asynccontextmanager
    async def _transaction(self, operation: str) -> AsyncIterator[aiosqlite.Connection]:
        """Run several writes atomically.

        Any failure rolls every write back and surfaces as PartialFailureError.
        """
        if not self._db:
            raise RuntimeError("Database not initialized")

        try:
            async with self._write() as db:
                yield db
        except Exception as e:
            logger.error(f"Rolled back {operation}: {e}")
            raise PartialFailureError(operation, str(e)) from e

    # Project methods
    async def create_project(
        self,
        owner_id: str,
        name: str,
        location: str | None = None,
        description: str | None = None,
        scope: ProjectScope | str = ProjectScope.ENTIRE_HOUSE,
        labor_preference: LaborPreference | str = LaborPreference.MATERIALS_ONLY,
        selected_stages: list[str] | None = None,
        target_date: str | None = None,
    ) -> Project:
        """Create a project in draft status."""
        if not self._db:
            raise RuntimeError("Database not initialized")

        project = Project(
            id=_new_id(),
            owner_id=owner_id,
            name=name,
            location=location,
            description=description,
            scope=ProjectScope(_enum_value(scope)),
            labor_preference=LaborPreference(_enum_value(labor_preference)),
            selected_stages=list(selected_stages or []),
            target_date=target_date,
        )

        async with self._write():
            await self._insert_project(project)
            await self._insert_default_stages(project)

        logger.info(f"Created project {project.id}: {name}")
        return await self.get_project(project.id)

    async def _insert_project(self, project: Project) -> None:
        now = utc_now().isoformat()
        project.created_at = project.created_at or now
        project.updated_at = now
        await self._db.execute(
            """
            INSERT INTO projects
            (id, owner_id, name, location, description, scope, labor_preference,
             status, total_usd, total_zwg, selected_stages, usage_tracking_enabled,
             usage_low_stock_threshold, target_date, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                project.id,
                project.owner_id,
                project.name,
                project.location,
                project.description,
                project.scope.value,
                project.labor_preference.value,
                project.status.value,
                project.total_usd,
                project.total_zwg,
                json.dumps(project.selected_stages),
                1 if project.usage_tracking_enabled else 0,
                project.usage_low_stock_threshold,
                project.target_date,
                project.created_at,
                project.updated_at,
            ),
        )

    async def get_project(self, project_id: str) -> Project | None:
        """Get a project by ID."""
        if not self._db:
            return None

        async with self._lock:
            async with self._db.execute(
                "SELECT * FROM projects WHERE id = ?",
                (project_id,),
            ) as cursor:
                row = await cursor.fetchone()
                if row:
                    return self._row_to_project(row)
        return None

    async def list_projects(
        self,
        owner_id: str,
        status: ProjectStatus | str | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Project]:
        """List a user's projects, most recently updated first."""
        if not self._db:
            return []

        query = "SELECT * FROM projects WHERE owner_id = ?"
        params: list[Any] = [owner_id]

        if status:
            query += " AND status = ?"
            params.append(_enum_value(status))

        query += " ORDER BY updated_at DESC"
        if limit is not None:
            query += " LIMIT ? OFFSET ?"
            params.extend([limit, offset])
        elif offset:
            query += " LIMIT -1 OFFSET ?"
            params.append(offset)

        async with self._lock:
            async with self._db.execute(query, params) as cursor:
                return [self._row_to_project(row) async for row in cursor]

    async def count_open_projects(self, owner_id: str) -> int:
        """Count projects that are not archived."""
        if not self._db:
            return 0

        async with self._lock:
            async with self._db.execute(
                "SELECT COUNT(*) FROM projects WHERE owner_id = ? AND status != 'archived'",
                (owner_id,),
            ) as cursor:
                row = await cursor.fetchone()
                return row[0] if row else 0

    async def update_project(self, project_id: str, **updates: Any) -> Project | None:
        """Update project fields and bump updated_at."""
        if not self._db:
            raise RuntimeError("Database not initialized")

        async with self._write():
            found = await self._update_project_row(project_id, updates)

        if not found:
            return None
        return await self.get_project(project_id)

    @staticmethod
    def _check_project_fields(updates: dict[str, Any]) -> None:
        unknown = set(updates) - set(PROJECT_FIELDS)
        if unknown:
            raise ValueError(f"Unknown project fields: {', '.join(sorted(unknown))}")

    async def _update_project_row(self, project_id: str, updates: dict[str, Any]) -> bool:
        self._check_project_fields(updates)
        assignments = [f"{name} = ?" for name in updates]
        params = [_column_value(name, value) for name, value in updates.items()]
        assignments.append("updated_at = ?")
        params.append(utc_now().isoformat())
        params.append(project_id)

        cursor = await self._db.execute(
            f"UPDATE projects SET {', '.join(assignments)} WHERE id = ?",
            params,
        )
        return cursor.rowcount > 0

    async def delete_project(self, project_id: str) -> bool:
        """Delete a project and everything attached to it in one transaction."""
        async with self._transaction("delete_project") as db:
            await db.execute(
                "DELETE FROM stage_tasks WHERE stage_id IN (SELECT id FROM project_stages WHERE project_id = ?)",
                (project_id,),
            )
            for table in ("boq_items", "reminders", "project_shares", "project_stages", "material_usage"):
                await db.execute(f"DELETE FROM {table} WHERE project_id = ?", (project_id,))
            cursor = await db.execute("DELETE FROM projects WHERE id = ?", (project_id,))
            deleted = cursor.rowcount > 0

        if deleted:
            logger.info(f"Deleted project {project_id}")
        return deleted

    def _row_to_project(self, row: aiosqlite.Row) -> Project:
        """Convert a database row to a Project."""
        return Project(
            id=row["id"],
            owner_id=row["owner_id"],
            name=row["name"],
            location=row["location"],
            description=row["description"],
            scope=ProjectScope(row["scope"]),
            labor_preference=LaborPreference(row["labor_preference"]),
            status=ProjectStatus(row["status"]),
            total_usd=row["total_usd"],
            total_zwg=row["total_zwg"],
            selected_stages=json.loads(row["selected_stages"] or "[]"),
            usage_tracking_enabled=bool(row["usage_tracking_enabled"]),
            usage_low_stock_threshold=row["usage_low_stock_threshold"],
            target_date=row["target_date"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    # BOQ item methods
    async def get_boq_items(self, project_id: str) -> list[BOQItem]:
        """Get a project's items in sort order."""
        if not self._db:
            return []

        async with self._lock:
            async with self._db.execute(
                "SELECT * FROM boq_items WHERE project_id = ? ORDER BY sort_order, rowid",
                (project_id,),
            ) as cursor:
                return [self._row_to_item(row) async for row in cursor]

    async def get_boq_item(self, item_id: str) -> BOQItem | None:
        if not self._db:
            return None

        async with self._lock:
            async with self._db.execute(
                "SELECT * FROM boq_items WHERE id = ?",
                (item_id,),
            ) as cursor:
                row = await cursor.fetchone()
                if row:
                    return self._row_to_item(row)
        return None

    async def add_boq_items(self, project_id: str, items: list[dict[str, Any]]) -> list[BOQItem]:
        """Insert several items for a project, all or none."""
        if not self._db:
            raise RuntimeError("Database not initialized")

        for data in items:
            self._check_item_fields(data)
        async with self._transaction("add_boq_items"):
            created = await self._insert_items(project_id, items)
        return created

    @staticmethod
    def _check_item_fields(data: dict[str, Any]) -> None:
        unknown = set(data) - set(BOQ_ITEM_FIELDS) - {"id", "project_id", "total_usd"}
        if unknown:
            raise ValueError(f"Unknown BOQ item fields: {', '.join(sorted(unknown))}")

    async def _insert_items(
        self,
        project_id: str,
        items: Iterable[dict[str, Any]],
        renumber: bool = False,
    ) -> list[BOQItem]:
        created = []
        for index, data in enumerate(items):
            self._check_item_fields(data)
            item = BOQItem(
                id=_new_id(),
                project_id=project_id,
                material_id=data["material_id"],
                material_name=data["material_name"],
                category=data["category"],
                quantity=float(data["quantity"]),
                unit=data["unit"],
                unit_price_usd=float(data.get("unit_price_usd") or 0.0),
                unit_price_zwg=float(data.get("unit_price_zwg") or 0.0),
                notes=data.get("notes"),
                sort_order=index if renumber else int(data.get("sort_order", index)),
                actual_quantity=data.get("actual_quantity"),
                actual_price_usd=data.get("actual_price_usd"),
                is_purchased=bool(data.get("is_purchased", False)),
                purchased_date=data.get("purchased_date"),
            )
            await self._db.execute(
                f"""
                INSERT INTO boq_items (id, project_id, {', '.join(BOQ_ITEM_FIELDS)})
                VALUES ({', '.join('?' * (len(BOQ_ITEM_FIELDS) + 2))})
                """,
                (
                    item.id,
                    item.project_id,
                    *(_column_value(name, getattr(item, name)) for name in BOQ_ITEM_FIELDS),
                ),
            )
            created.append(item)
        return created

    async def update_boq_item(self, item_id: str, **updates: Any) -> BOQItem | None:
        if not self._db:
            raise RuntimeError("Database not initialized")

        unknown = set(updates) - set(BOQ_ITEM_FIELDS)
        if unknown:
            raise ValueError(f"Unknown BOQ item fields: {', '.join(sorted(unknown))}")
        if not updates:
            return await self.get_boq_item(item_id)

        assignments = ", ".join(f"{name} = ?" for name in updates)
        params = [_column_value(name, value) for name, value in updates.items()]
        params.append(item_id)

        async with self._write():
            cursor = await self._db.execute(
                f"UPDATE boq_items SET {assignments} WHERE id = ?",
                params,
            )
            updated = cursor.rowcount > 0

        if not updated:
            return None
        return await self.get_boq_item(item_id)

    async def mark_items_purchased(
        self,
        item_ids: list[str],
        purchased_date: str,
        actual_quantity: float | None = None,
        actual_price_usd: float | None = None,
    ) -> int:
        """Flag items as purchased, optionally recording what was actually paid."""
        if not self._db:
            raise RuntimeError("Database not initialized")
        if not item_ids:
            return 0

        assignments = ["is_purchased = 1", "purchased_date = ?"]
        params: list[Any] = [purchased_date]
        if actual_quantity is not None:
            assignments.append("actual_quantity = ?")
            params.append(actual_quantity)
        if actual_price_usd is not None:
            assignments.append("actual_price_usd = ?")
            params.append(actual_price_usd)

        placeholders = ", ".join("?" * len(item_ids))
        async with self._write():
            cursor = await self._db.execute(
                f"UPDATE boq_items SET {', '.join(assignments)} WHERE id IN ({placeholders})",
                (*params, *item_ids),
            )
            return cursor.rowcount

    async def delete_project_items(self, project_id: str) -> int:
        if not self._db:
            raise RuntimeError("Database not initialized")

        async with self._write():
            await self._db.execute("DELETE FROM material_usage WHERE project_id = ?", (project_id,))
            cursor = await self._db.execute(
                "DELETE FROM boq_items WHERE project_id = ?",
                (project_id,),
            )
            return cursor.rowcount

    async def delete_boq_items(self, item_ids: list[str]) -> int:
        if not self._db:
            raise RuntimeError("Database not initialized")
        if not item_ids:
            return 0

        placeholders = ", ".join("?" * len(item_ids))
        async with self._write():
            await self._db.execute(
                f"DELETE FROM material_usage WHERE boq_item_id IN ({placeholders})",
                item_ids,
            )
            cursor = await self._db.execute(
                f"DELETE FROM boq_items WHERE id IN ({placeholders})",
                item_ids,
            )
            return cursor.rowcount

    async def replace_project_items(
        self,
        project_id: str,
        project_updates: dict[str, Any],
        items: list[dict[str, Any]],
    ) -> bool:
        """Update a project and swap its items for a renumbered list, atomically."""
        self._check_project_fields(project_updates)
        async with self._transaction("save_project_with_items") as db:
            if not await self._update_project_row(project_id, project_updates):
                return False
            await db.execute("DELETE FROM material_usage WHERE project_id = ?", (project_id,))
            await db.execute("DELETE FROM boq_items WHERE project_id = ?", (project_id,))
            await self._insert_items(project_id, items, renumber=True)
        return True

    async def duplicate_project(self, project_id: str, new_name: str) -> Project | None:
        """Copy a project and its items in one transaction.

        The copy starts in draft status with purchase tracking cleared.
        """
        source = await self.get_project(project_id)
        if not source:
            return None
        items = await self.get_boq_items(project_id)

        copy = Project(
            id=_new_id(),
            owner_id=source.owner_id,
            name=new_name,
            location=source.location,
            description=source.description,
            scope=source.scope,
            labor_preference=source.labor_preference,
            total_usd=source.total_usd,
            total_zwg=source.total_zwg,
            selected_stages=list(source.selected_stages),
            target_date=source.target_date,
        )
        item_rows = [
            {
                "material_id": item.material_id,
                "material_name": item.material_name,
                "category": item.category,
                "quantity": item.quantity,
                "unit": item.unit,
                "unit_price_usd": item.unit_price_usd,
                "unit_price_zwg": item.unit_price_zwg,
                "notes": item.notes,
                "sort_order": item.sort_order,
            }
            for item in items
        ]

        async with self._transaction("duplicate_project"):
            await self._insert_project(copy)
            await self._insert_default_stages(copy)
            await self._insert_items(copy.id, item_rows)

        logger.info(f"Duplicated project {project_id} as {copy.id}")
        return await self.get_project(copy.id)

    def _row_to_item(self, row: aiosqlite.Row) -> BOQItem:
        """Convert a database row to a BOQItem."""
        return BOQItem(
            id=row["id"],
            project_id=row["project_id"],
            material_id=row["material_id"],
            material_name=row["material_name"],
            category=row["category"],
            quantity=row["quantity"],
            unit=row["unit"],
            unit_price_usd=row["unit_price_usd"],
            unit_price_zwg=row["unit_price_zwg"],
            notes=row["notes"],
            sort_order=row["sort_order"],
            actual_quantity=row["actual_quantity"],
            actual_price_usd=row["actual_price_usd"],
            is_purchased=bool(row["is_purchased"]),
            purchased_date=row["purchased_date"],
        )

    # Reminder methods
    async def create_reminder(
        self,
        project_id: str,
        reminder_type: ReminderType | str,
        message: str,
        scheduled_date: str,
        phone_number: str,
        item_id: str | None = None,
    ) -> Reminder:
        if not self._db:
            raise RuntimeError("Database not initialized")

        reminder = Reminder(
            id=_new_id(),
            project_id=project_id,
            reminder_type=ReminderType(_enum_value(reminder_type)),
            message=message,
            scheduled_date=scheduled_date,
            phone_number=phone_number,
            item_id=item_id,
        )

        async with self._write():
            await self._db.execute(
                """
                INSERT INTO reminders
                (id, project_id, item_id, reminder_type, message, scheduled_date, phone_number, is_sent)
                VALUES (?, ?, ?, ?, ?, ?, ?, 0)
                """,
                (
                    reminder.id,
                    project_id,
                    item_id,
                    reminder.reminder_type.value,
                    message,
                    scheduled_date,
                    phone_number,
                ),
            )

        return reminder

    async def get_reminders(self, project_id: str) -> list[Reminder]:
        """Get a project's reminders, soonest first."""
        if not self._db:
            return []

        async with self._lock:
            async with self._db.execute(
                "SELECT * FROM reminders WHERE project_id = ? ORDER BY scheduled_date ASC",
                (project_id,),
            ) as cursor:
                return [
                    Reminder(
                        id=row["id"],
                        project_id=row["project_id"],
                        item_id=row["item_id"],
                        reminder_type=ReminderType(row["reminder_type"]),
                        message=row["message"],
                        scheduled_date=row["scheduled_date"],
                        phone_number=row["phone_number"],
                        is_sent=bool(row["is_sent"]),
                    )
                    async for row in cursor
                ]

    async def delete_reminder(self, reminder_id: str) -> bool:
        if not self._db:
            raise RuntimeError("Database not initialized")

        async with self._write():
            cursor = await self._db.execute("DELETE FROM reminders WHERE id = ?", (reminder_id,))
            return cursor.rowcount > 0

    # Share methods
    async def add_share(
        self,
        project_id: str,
        email: str,
        access_level: AccessLevel | str = AccessLevel.VIEW,
    ) -> ProjectShare:
        """Share a project with an email address, replacing any earlier access level."""
        if not self._db:
            raise RuntimeError("Database not initialized")

        share = ProjectShare(
            id=_new_id(),
            project_id=project_id,
            email=email.strip().lower(),
            access_level=AccessLevel(_enum_value(access_level)),
            created_at=utc_now().isoformat(),
        )

        async with self._write():
            await self._db.execute(
                """
                INSERT INTO project_shares (id, project_id, email, access_level, created_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(project_id, email) DO UPDATE SET access_level = excluded.access_level
                """,
                (share.id, project_id, share.email, share.access_level.value, share.created_at),
            )

        return share

    async def list_shares(self, project_id: str) -> list[ProjectShare]:
        if not self._db:
            return []

        async with self._lock:
            async with self._db.execute(
                "SELECT * FROM project_shares WHERE project_id = ? ORDER BY created_at",
                (project_id,),
            ) as cursor:
                return [
                    ProjectShare(
                        id=row["id"],
                        project_id=row["project_id"],
                        email=row["email"],
                        access_level=AccessLevel(row["access_level"]),
                        created_at=row["created_at"],
                    )
                    async for row in cursor
                ]

    async def remove_share(self, project_id: str, email: str) -> bool:
        if not self._db:
            raise RuntimeError("Database not initialized")

        async with self._write():
            cursor = await self._db.execute(
                "DELETE FROM project_shares WHERE project_id = ? AND email = ?",
                (project_id, email.strip().lower()),
            )
            return cursor.rowcount > 0

    # Stage methods
    async def _insert_default_stages(self, project: Project) -> None:
        """Give a project the standard stages and their checklist tasks."""
        now = utc_now().isoformat()
        for sort_order, template in enumerate(DEFAULT_STAGES):
            stage_id = _new_id()
            await self._db.execute(
                """
                INSERT INTO project_stages
                (id, project_id, boq_category, name, description, status, sort_order,
                 is_applicable, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    stage_id,
                    project.id,
                    template.boq_category,
                    template.name,
                    template.description,
                    StageStatus.PLANNING.value,
                    sort_order,
                    1 if stage_applies(template.boq_category, project.scope.value, project.selected_stages) else 0,
                    now,
                    now,
                ),
            )
            await self._db.executemany(
                """
                INSERT INTO stage_tasks
                (id, stage_id, title, description, sort_order, is_default, is_completed, created_at)
                VALUES (?, ?, ?, ?, ?, 1, 0, ?)
                """,
                [
                    (_new_id(), stage_id, title, description, index, now)
                    for index, (title, description) in enumerate(template.tasks)
                ],
            )

    async def get_project_stages(self, project_id: str) -> list[ProjectStage]:
        """Get a project's stages in order, each with its sorted tasks."""
        if not self._db:
            return []

        async with self._lock:
            async with self._db.execute(
                "SELECT * FROM project_stages WHERE project_id = ? ORDER BY sort_order",
                (project_id,),
            ) as cursor:
                stages = [self._row_to_stage(row) async for row in cursor]
            async with self._db.execute(
                """
                SELECT t.* FROM stage_tasks t
                JOIN project_stages s ON s.id = t.stage_id
                WHERE s.project_id = ?
                ORDER BY t.sort_order, t.rowid
                """,
                (project_id,),
            ) as cursor:
                tasks = [self._row_to_task(row) async for row in cursor]

        by_id = {stage.id: stage for stage in stages}
        for task in tasks:
            by_id[task.stage_id].tasks.append(task)
        return stages

    async def get_stage(self, stage_id: str) -> ProjectStage | None:
        if not self._db:
            return None

        async with self._lock:
            async with self._db.execute(
                "SELECT * FROM project_stages WHERE id = ?",
                (stage_id,),
            ) as cursor:
                row = await cursor.fetchone()
                if not row:
                    return None
                stage = self._row_to_stage(row)
            async with self._db.execute(
                "SELECT * FROM stage_tasks WHERE stage_id = ? ORDER BY sort_order, rowid",
                (stage_id,),
            ) as cursor:
                stage.tasks = [self._row_to_task(row) async for row in cursor]
        return stage

    async def update_stage(self, stage_id: str, **updates: Any) -> ProjectStage | None:
        """Update stage fields and bump updated_at."""
        if not self._db:
            raise RuntimeError("Database not initialized")

        unknown = set(updates) - set(STAGE_FIELDS)
        if unknown:
            raise ValueError(f"Unknown stage fields: {', '.join(sorted(unknown))}")
        if "status" in updates:
            updates["status"] = StageStatus(_enum_value(updates["status"]))

        assignments = [f"{name} = ?" for name in updates]
        params = [_column_value(name, value) for name, value in updates.items()]
        assignments.append("updated_at = ?")
        params.extend([utc_now().isoformat(), stage_id])

        async with self._write():
            cursor = await self._db.execute(
                f"UPDATE project_stages SET {', '.join(assignments)} WHERE id = ?",
                params,
            )
            updated = cursor.rowcount > 0

        if not updated:
            return None
        return await self.get_stage(stage_id)

    async def set_stage_applicability(self, project_id: str, categories: list[str]) -> int | None:
        """Save a project's stage selection and flag exactly those stages, atomically.

        Returns how many stages are now applicable, or None for a missing project.
        """
        now = utc_now().isoformat()
        placeholders = ", ".join("?" * len(categories))
        async with self._transaction("set_stage_applicability") as db:
            if not await self._update_project_row(project_id, {"selected_stages": categories}):
                return None
            await db.execute(
                "UPDATE project_stages SET is_applicable = 0, updated_at = ? WHERE project_id = ?",
                (now, project_id),
            )
            cursor = await db.execute(
                f"""
                UPDATE project_stages SET is_applicable = 1, updated_at = ?
                WHERE project_id = ? AND boq_category IN ({placeholders})
                """,
                (now, project_id, *categories),
            )
            return cursor.rowcount

    def _row_to_stage(self, row: aiosqlite.Row) -> ProjectStage:
        return ProjectStage(
            id=row["id"],
            project_id=row["project_id"],
            boq_category=row["boq_category"],
            name=row["name"],
            description=row["description"],
            start_date=row["start_date"],
            end_date=row["end_date"],
            status=StageStatus(row["status"]),
            sort_order=row["sort_order"],
            is_applicable=bool(row["is_applicable"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    # Stage task methods
    async def create_stage_task(
        self,
        stage_id: str,
        title: str,
        description: str | None = None,
        assigned_to: str | None = None,
    ) -> StageTask:
        """Append a task after the stage's existing tasks."""
        if not self._db:
            raise RuntimeError("Database not initialized")

        task = StageTask(
            id=_new_id(),
            stage_id=stage_id,
            title=title,
            description=description,
            assigned_to=assigned_to,
            created_at=utc_now().isoformat(),
        )

        async with self._write():
            async with self._db.execute(
                "SELECT MAX(sort_order) FROM stage_tasks WHERE stage_id = ?",
                (stage_id,),
            ) as cursor:
                row = await cursor.fetchone()
            task.sort_order = row[0] + 1 if row and row[0] is not None else 1
            await self._db.execute(
                """
                INSERT INTO stage_tasks
                (id, stage_id, title, description, assigned_to, sort_order, is_default, is_completed, created_at)
                VALUES (?, ?, ?, ?, ?, ?, 0, 0, ?)
                """,
                (task.id, stage_id, title, description, assigned_to, task.sort_order, task.created_at),
            )

        return task

    async def get_stage_task(self, task_id: str) -> StageTask | None:
        if not self._db:
            return None

        async with self._lock:
            async with self._db.execute(
                "SELECT * FROM stage_tasks WHERE id = ?",
                (task_id,),
            ) as cursor:
                row = await cursor.fetchone()
                if row:
                    return self._row_to_task(row)
        return None

    async def update_stage_task(self, task_id: str, **updates: Any) -> StageTask | None:
        if not self._db:
            raise RuntimeError("Database not initialized")

        unknown = set(updates) - set(TASK_FIELDS)
        if unknown:
            raise ValueError(f"Unknown stage task fields: {', '.join(sorted(unknown))}")
        if not updates:
            return await self.get_stage_task(task_id)

        assignments = ", ".join(f"{name} = ?" for name in updates)
        params = [_column_value(name, value) for name, value in updates.items()]
        params.append(task_id)

        async with self._write():
            cursor = await self._db.execute(
                f"UPDATE stage_tasks SET {assignments} WHERE id = ?",
                params,
            )
            updated = cursor.rowcount > 0

        if not updated:
            return None
        return await self.get_stage_task(task_id)

    async def delete_stage_task(self, task_id: str) -> bool:
        if not self._db:
            raise RuntimeError("Database not initialized")

        async with self._write():
            cursor = await self._db.execute("DELETE FROM stage_tasks WHERE id = ?", (task_id,))
            return cursor.rowcount > 0

    def _row_to_task(self, row: aiosqlite.Row) -> StageTask:
        return StageTask(
            id=row["id"],
            stage_id=row["stage_id"],
            title=row["title"],
            description=row["description"],
            assigned_to=row["assigned_to"],
            verification_note=row["verification_note"],
            is_completed=bool(row["is_completed"]),
            completed_at=row["completed_at"],
            sort_order=row["sort_order"],
            is_default=bool(row["is_default"]),
            created_at=row["created_at"],
        )

    # Material usage methods
    async def record_material_usage(
        self,
        project_id: str,
        boq_item_id: str,
        quantity_used: float,
        usage_date: str,
        notes: str | None = None,
    ) -> MaterialUsage:
        if not self._db:
            raise RuntimeError("Database not initialized")

        usage = MaterialUsage(
            id=_new_id(),
            project_id=project_id,
            boq_item_id=boq_item_id,
            quantity_used=quantity_used,
            usage_date=usage_date,
            notes=notes,
            created_at=utc_now().isoformat(),
        )

        async with self._write():
            await self._db.execute(
                """
                INSERT INTO material_usage
                (id, project_id, boq_item_id, quantity_used, usage_date, notes, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (usage.id, project_id, boq_item_id, quantity_used, usage_date, notes, usage.created_at),
            )

        return usage

    async def get_material_usage(self, project_id: str) -> list[MaterialUsage]:
        """Get a project's usage records, most recent first."""
        if not self._db:
            return []

        async with self._lock:
            async with self._db.execute(
                """
                SELECT * FROM material_usage WHERE project_id = ?
                ORDER BY usage_date DESC, created_at DESC
                """,
                (project_id,),
            ) as cursor:
                return [
                    MaterialUsage(
                        id=row["id"],
                        project_id=row["project_id"],
                        boq_item_id=row["boq_item_id"],
                        quantity_used=row["quantity_used"],
                        usage_date=row["usage_date"],
                        notes=row["notes"],
                        created_at=row["created_at"],
                    )
                    async for row in cursor
                ]

    # Price observation methods
    async def record_price_observations(self, observations: list[PriceObservation]) -> int:
        """Insert price observations and return how many were written."""
        if not self._db:
            raise RuntimeError("Database not initialized")
        if not observations:
            return 0

        async with self._write():
            await self._db.executemany(
                """
                INSERT INTO price_observations
                (material_key, material_name, unit, price_usd, price_zwg, currency, location,
                 supplier_name, source_name, url, confidence, review_status, scraped_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        o.material_key,
                        o.material_name,
                        o.unit,
                        o.price_usd,
                        o.price_zwg,
                        o.currency,
                        o.location,
                        o.supplier_name,
                        o.source_name,
                        o.url,
                        o.confidence,
                        o.review_status.value,
                        o.scraped_at.isoformat(),
                    )
                    for o in observations
                ],
            )

        return len(observations)

    async def get_observations(
        self,
        material_key: str,
        since: datetime | None = None,
        until: datetime | None = None,
        trusted_only: bool = True,
        order: str = "newest",
        limit: int | None = None,
    ) -> list[PriceObservation]:
        """Get observations with a price for a material.

        Args:
            material_key: Catalog material id
            since: Only observations scraped at or after this time
            until: Only observations scraped before this time
            trusted_only: Skip observations awaiting review or rejected
            order: "newest" first or "cheapest" first
            limit: Maximum rows to return
        """
        if not self._db:
            return []

        query = "SELECT * FROM price_observations WHERE material_key = ? AND price_usd IS NOT NULL"
        params: list[Any] = [material_key]

        if since:
            query += " AND scraped_at >= ?"
            params.append(since.isoformat())
        if until:
            query += " AND scraped_at < ?"
            params.append(until.isoformat())
        if trusted_only:
            query += f" AND review_status IN ({', '.join('?' * len(TRUSTED_REVIEW_STATUSES))})"
            params.extend(TRUSTED_REVIEW_STATUSES)

        if order == "cheapest":
            query += " ORDER BY price_usd ASC, scraped_at DESC"
        else:
            query += " ORDER BY scraped_at DESC, id DESC"
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)

        async with self._lock:
            async with self._db.execute(query, params) as cursor:
                return [self._row_to_observation(row) async for row in cursor]

    async def get_latest_observations(
        self,
        material_keys: list[str],
        since: datetime | None = None,
    ) -> dict[str, PriceObservation]:
        """Get the newest trusted observation for each key in one query."""
        if not self._db or not material_keys:
            return {}

        query = (
            f"SELECT * FROM price_observations WHERE material_key IN ({', '.join('?' * len(material_keys))})"
            " AND price_usd IS NOT NULL"
            f" AND review_status IN ({', '.join('?' * len(TRUSTED_REVIEW_STATUSES))})"
        )
        params: list[Any] = [*material_keys, *TRUSTED_REVIEW_STATUSES]
        if since:
            query += " AND scraped_at >= ?"
            params.append(since.isoformat())
        query += " ORDER BY scraped_at DESC, id DESC"

        latest: dict[str, PriceObservation] = {}
        async with self._lock:
            async with self._db.execute(query, params) as cursor:
                async for row in cursor:
                    if row["material_key"] not in latest:
                        latest[row["material_key"]] = self._row_to_observation(row)
        return latest

    async def get_observation(self, observation_id: int) -> PriceObservation | None:
        if not self._db:
            return None

        async with self._lock:
            async with self._db.execute(
                "SELECT * FROM price_observations WHERE id = ?",
                (observation_id,),
            ) as cursor:
                row = await cursor.fetchone()
                if row:
                    return self._row_to_observation(row)
        return None

    async def set_review_status(self, observation_id: int, status: ReviewStatus | str) -> bool:
        if not self._db:
            raise RuntimeError("Database not initialized")

        async with self._write():
            cursor = await self._db.execute(
                "UPDATE price_observations SET review_status = ? WHERE id = ?",
                (_enum_value(status), observation_id),
            )
            return cursor.rowcount > 0

    def _row_to_observation(self, row: aiosqlite.Row) -> PriceObservation:
        return PriceObservation(
            id=row["id"],
            material_key=row["material_key"],
            material_name=row["material_name"],
            unit=row["unit"],
            price_usd=row["price_usd"],
            price_zwg=row["price_zwg"],
            currency=row["currency"],
            location=row["location"],
            supplier_name=row["supplier_name"],
            source_name=row["source_name"],
            url=row["url"],
            confidence=row["confidence"],
            review_status=ReviewStatus(row["review_status"]),
            scraped_at=datetime.fromisoformat(row["scraped_at"]),
        )

    # Weekly aggregate methods
    async def upsert_weekly_price(self, weekly: WeeklyPrice) -> None:
        if not self._db:
            raise RuntimeError("Database not initialized")

        async with self._write():
            await self._db.execute(
                """
                INSERT INTO price_weekly
                (material_key, week_start, avg_price_usd, avg_price_zwg, median_price_usd,
                 min_price_usd, max_price_usd, sample_count, last_scraped_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(material_key, week_start) DO UPDATE SET
                    avg_price_usd = excluded.avg_price_usd,
                    avg_price_zwg = excluded.avg_price_zwg,
                    median_price_usd = excluded.median_price_usd,
                    min_price_usd = excluded.min_price_usd,
                    max_price_usd = excluded.max_price_usd,
                    sample_count = excluded.sample_count,
                    last_scraped_at = excluded.last_scraped_at,
                    updated_at = excluded.updated_at
                """,
                (
                    weekly.material_key,
                    weekly.week_start,
                    weekly.avg_price_usd,
                    weekly.avg_price_zwg,
                    weekly.median_price_usd,
                    weekly.min_price_usd,
                    weekly.max_price_usd,
                    weekly.sample_count,
                    weekly.last_scraped_at,
                    utc_now().isoformat(),
                ),
            )

    async def delete_weekly_price(self, material_key: str, week_start: str) -> bool:
        async with self._write():
            cursor = await self._db.execute(
                "DELETE FROM price_weekly WHERE material_key = ? AND week_start = ?",
                (material_key, week_start),
            )
            return cursor.rowcount > 0

    async def get_weekly_prices(self, material_key: str, limit: int = 8) -> list[WeeklyPrice]:
        """Get weekly aggregates, newest week first."""
        if not self._db:
            return []

        async with self._lock:
            async with self._db.execute(
                """
                SELECT * FROM price_weekly
                WHERE material_key = ?
                ORDER BY week_start DESC
                LIMIT ?
                """,
                (material_key, limit),
            ) as cursor:
                return [
                    WeeklyPrice(
                        material_key=row["material_key"],
                        week_start=row["week_start"],
                        avg_price_usd=row["avg_price_usd"],
                        avg_price_zwg=row["avg_price_zwg"],
                        median_price_usd=row["median_price_usd"],
                        min_price_usd=row["min_price_usd"],
                        max_price_usd=row["max_price_usd"],
                        sample_count=row["sample_count"],
                        last_scraped_at=row["last_scraped_at"],
                    )
                    async for row in cursor
                ]

    # Room layout draft methods
    async def save_room_layout(
        self,
        layout_id: str,
        rooms: list[dict[str, Any]],
        target_floor_area: float,
    ) -> None:
        if not self._db:
            raise RuntimeError("Database not initialized")

        async with self._write():
            await self._db.execute(
                """
                INSERT OR REPLACE INTO room_layouts (layout_id, rooms_json, target_floor_area, updated_at)
                VALUES (?, ?, ?, ?)
                """,
                (layout_id, json.dumps(rooms), target_floor_area, utc_now().isoformat()),
            )

    async def load_room_layout(self, layout_id: str) -> dict[str, Any] | None:
        if not self._db:
            return None

        async with self._lock:
            async with self._db.execute(
                "SELECT * FROM room_layouts WHERE layout_id = ?",
                (layout_id,),
            ) as cursor:
                row = await cursor.fetchone()
                if row:
                    return {
                        "layout_id": row["layout_id"],
                        "rooms": json.loads(row["rooms_json"]),
                        "target_floor_area": row["target_floor_area"],
                        "updated_at": datetime.fromisoformat(row["updated_at"]),
                    }
        return None

    async def delete_room_layout(self, layout_id: str) -> bool:
        if not self._db:
            raise RuntimeError("Database not initialized")

        async with self._write():
            cursor = await self._db.execute(
                "DELETE FROM room_layouts WHERE layout_id = ?",
                (layout_id,),
            )
            return cursor.rowcount > 0

    async def get_stats(self) -> dict[str, int]:
        """Row counts per table, for status reports."""
        if not self._db:
            return {}

        stats = {}
        async with self._lock:
            for table in (
                "projects",
                "boq_items",
                "reminders",
                "project_shares",
                "project_stages",
                "stage_tasks",
                "material_usage",
                "price_observations",
                "price_weekly",
                "room_layouts",
            ):
                async with self._db.execute(f"SELECT COUNT(*) FROM {table}") as cursor:
                    row = await cursor.fetchone()
                    stats[table] = row[0] if row else 0
            async with self._db.execute(
                "SELECT COUNT(*) FROM price_observations WHERE review_status = ?",
                (ReviewStatus.PENDING.value,),
            ) as cursor:
                row = await cursor.fetchone()
                stats["pending_observations"] = row[0] if row else 0
        return stats


# Global instance
_store: StateStore | None = None


async def get_store(db_path: Path | str | None = None) -> StateStore:
    """Get or create the global state store instance."""
    global _store

    if _store is None:
        _store = StateStore(db_path)
        await _store.initialize()

    return _store


async def close_store() -> None:
    """Close the global state store."""
    global _store

    if _store:
        await _store.close()
        _store = None
