"""Named counters backing account and invoice numbers"""

import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..models import Counter

logger = logging.getLogger(__name__)

ACCOUNT_NUMBER_START = 998801
INVOICE_NUMBER_START = 700001


def next_sequence(db: Session, name: str, start: int, floor_column=None) -> int:
    """
    Reserve the next value of a named sequence.

    The first call seeds the counter at `start`, or one past the highest
    existing value in `floor_column` when rows were created before the
    counter existed. The caller commits.
    """
    counter = db.query(Counter).filter(Counter.name == name).with_for_update().first()
    if counter is None:
        seed = start
        if floor_column is not None:
            current_max = db.query(func.max(floor_column)).scalar()
            if current_max is not None and current_max >= start:
                seed = current_max + 1
        counter = Counter(name=name, value=seed)
        db.add(counter)
        db.flush()
        logger.info(f"🔢 Seeded sequence '{name}' at {seed}")
        return seed

    counter.value += 1
    db.flush()
    return counter.value
