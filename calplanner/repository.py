"""
Year-keyed persistence of annual plans, plus backup/restore and reset.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Any, Optional
from zoneinfo import ZoneInfo

from sqlalchemy import delete, insert, select
from sqlalchemy.dialects import mysql, postgresql, sqlite

from calplanner.db import MYSQL_DIALECTS, PlanRow, PlanStore
from calplanner.errors import (
    CorruptPlan,
    PlanNotFound,
    PlanValidationError,
    RestoreFailed,
)

logger = logging.getLogger(__name__)

plans_table = PlanRow.__table__

OFFSET_PATTERN = re.compile(r"^([+-])(\d{1,2}):(\d{2})$")


@dataclass
class PlanRecord:
    year: int
    year_data: Any
    month_data: Any
    theme: Optional[str] = None
    background_images: Any = None
    created_at: Optional[datetime] = None

    def as_dict(self) -> dict:
        return {
            "year": self.year,
            "theme": self.theme,
            "yearData": self.year_data,
            "monthData": self.month_data,
            "backgroundImages": self.background_images,
        }


def _encode_document(value: Any) -> Optional[str]:
    if value is None:
        return None
    return json.dumps(value, ensure_ascii=False)


def _decode_document(raw: Any, year: int, column: str) -> Any:
    if raw is None or not isinstance(raw, (str, bytes)):
        return raw
    try:
        return json.loads(raw)
    except ValueError as exc:
        raise CorruptPlan(year, f"{column} is not valid JSON") from exc


def _restore_document(value: Any) -> Optional[str]:
    """Keep pre-serialized documents verbatim, serialize structured ones."""
    if value is None or isinstance(value, str):
        return value
    return _encode_document(value)


def session_tzinfo(offset: str) -> tzinfo:
    """Map a MySQL ``time_zone`` value such as ``+08:00`` to a tzinfo."""
    match = OFFSET_PATTERN.match(offset.strip())
    if match:
        sign, hours, minutes = match.groups()
        delta = timedelta(hours=int(hours), minutes=int(minutes))
        return timezone(-delta if sign == "-" else delta)
    return ZoneInfo(offset.strip())


def _parse_created_at(value: Any, tz: tzinfo) -> datetime:
    """
    Parse a backed-up creation time into the naive wall-clock value the
    database session expects. Zone-aware values are shifted into ``tz``.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    else:
        raise ValueError(f"Unsupported created_at value: {value!r}")
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(tz).replace(tzinfo=None)
    return parsed


class PlanRepository:
    """Reads and writes ``annual_plans`` through an injected ``PlanStore``."""

    def __init__(self, store: PlanStore):
        self.store = store

    def get_by_year(self, year: int) -> PlanRecord:
        with self.store.session() as session:
            row = session.execute(
                select(PlanRow).where(PlanRow.year == year)
            ).scalar_one_or_none()
            if row is None:
                raise PlanNotFound(year)
            data, theme, bg_images, created_at = (
                row.data,
                row.theme,
                row.bg_images,
                row.created_at,
            )

        try:
            document = _decode_document(data, year, "data")
            background_images = _decode_document(bg_images, year, "bg_images")
            if not isinstance(document, dict) or not {
                "yearData",
                "monthData",
            } <= document.keys():
                raise CorruptPlan(year, "data is missing yearData/monthData")
        except CorruptPlan as exc:
            logger.warning("%s", exc)
            raise

        return PlanRecord(
            year=year,
            year_data=document["yearData"],
            month_data=document["monthData"],
            theme=theme,
            background_images=background_images,
            created_at=created_at,
        )

    def upsert(
        self,
        year: int,
        year_data: Any,
        month_data: Any,
        theme: Optional[str] = None,
        background_images: Any = None,
    ) -> None:
        """
        Insert the plan for ``year`` or replace its payload in one statement.

        ``created_at`` is left untouched for an existing year. Concurrent
        upserts for the same year are last-writer-wins.
        """
        if year_data is None or month_data is None:
            raise PlanValidationError("yearData and monthData are required")

        # Resolve the store before building anything so offline short-circuits.
        dialect = self.store.dialect_name
        values = {
            "year": year,
            "data": _encode_document({"yearData": year_data, "monthData": month_data}),
            "theme": theme,
            "bg_images": _encode_document(background_images),
        }
        with self.store.session() as session:
            session.execute(_upsert_statement(dialect, values))
            session.commit()

    def export_all(self) -> list[dict]:
        with self.store.engine.connect() as conn:
            result = conn.execute(select(plans_table).order_by(plans_table.c.year))
            return [dict(row._mapping) for row in result]

    def restore_all(self, rows: Any) -> int:
        """
        Replace every stored plan with ``rows`` inside a single transaction.

        Any failure rolls the table back to its state before the call.
        """
        if not isinstance(rows, list):
            raise PlanValidationError("Restore payload must be an array of rows")

        with self.store.session() as session:
            try:
                session.execute(delete(plans_table))
                tz = session_tzinfo(self.store.session_time_zone)
                for index, row in enumerate(rows):
                    session.execute(
                        insert(plans_table).values(**_restore_values(row, index, tz))
                    )
                session.commit()
            except Exception as exc:
                session.rollback()
                logger.error("Restore failed, transaction rolled back: %s", exc)
                raise RestoreFailed(str(exc)) from exc

        logger.info("Restored %d plan rows", len(rows))
        return len(rows)

    def reset_all(self) -> None:
        self.store.drop_table()
        logger.warning("Dropped table %s", plans_table.name)
        self.store.create_table()


def _restore_values(row: Any, index: int, tz: tzinfo) -> dict:
    if not isinstance(row, dict):
        raise PlanValidationError(f"Row {index} is not an object")
    values = {
        "year": row.get("year"),
        "data": _restore_document(row.get("data")),
        "theme": row.get("theme"),
        "bg_images": _restore_document(row.get("bg_images")),
    }
    # Without a creation time the column default (database clock) applies.
    if row.get("created_at") is not None:
        values["created_at"] = _parse_created_at(row["created_at"], tz)
    if row.get("id") is not None:
        values["id"] = row["id"]
    return values


def _upsert_statement(dialect: str, values: dict):
    if dialect in MYSQL_DIALECTS:
        stmt = mysql.insert(plans_table).values(**values)
        return stmt.on_duplicate_key_update(
            data=stmt.inserted.data,
            theme=stmt.inserted.theme,
            bg_images=stmt.inserted.bg_images,
        )
    if dialect in ("sqlite", "postgresql"):
        dialect_insert = sqlite.insert if dialect == "sqlite" else postgresql.insert
        stmt = dialect_insert(plans_table).values(**values)
        return stmt.on_conflict_do_update(
            index_elements=[plans_table.c.year],
            set_={
                "data": stmt.excluded.data,
                "theme": stmt.excluded.theme,
                "bg_images": stmt.excluded.bg_images,
            },
        )
    raise NotImplementedError(f"Upsert is not supported for dialect {dialect}")
