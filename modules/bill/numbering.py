"""
Bill Module - Numbering
========================
Human-readable, per-day sequential bill numbers: {PREFIX}{YYMMDD}{SEQ}
e.g. the third bill on 1 Dec 2024 is CS241201003.

The counter is one row per calendar day, bumped with a single
UPDATE ... RETURNING inside the caller's transaction. The row stays locked
until that transaction ends, so numbers are never handed out twice; if the
bill insert fails, the increment rolls back with it.
"""

import logging
from datetime import date
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config.settings import BILL_NUMBER_PREFIX, BILL_SEQUENCE_WIDTH
from common.helpers import local_today
from modules.bill.models import BillSequence

logger = logging.getLogger("silai.numbering")


def format_bill_number(prefix: str, day: date, seq: int, width: int = BILL_SEQUENCE_WIDTH) -> str:
    return f"{prefix}{day:%y%m%d}{seq:0{width}d}"


class BillNumberService:

    def next_value(self, db: Session, day: date) -> int:
        """Atomically increment and return the counter for `day`."""
        table = BillSequence.__table__
        bump = (
            table.update()
            .where(table.c.day == day)
            .values(last_value=table.c.last_value + 1)
            .returning(table.c.last_value)
        )
        value = db.execute(bump).scalar_one_or_none()
        if value is not None:
            return value

        # First bill of the day: create the row. A concurrent creator wins the
        # primary key race; the loser falls back to bumping that row.
        try:
            with db.begin_nested():
                db.execute(table.insert().values(day=day, last_value=1))
            return 1
        except IntegrityError:
            return db.execute(bump).scalar_one()

    def next_bill_number(self, db: Session, day: Optional[date] = None, prefix: Optional[str] = None) -> str:
        day = day or local_today()
        prefix = BILL_NUMBER_PREFIX if prefix is None else prefix
        seq = self.next_value(db, day)
        number = format_bill_number(prefix, day, seq)
        logger.debug(f"Allocated bill number {number}")
        return number


bill_number_service = BillNumberService()
