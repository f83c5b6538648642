"""Named monotonic counters (payment and sale numbers)."""

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from quotaledger.infrastructure.database.models import Counter

PAYMENT_NUMBER_SEQ = "payment_number_seq"
SALE_NUMBER_SEQ = "sale_number_seq"


class CounterRepository:
    """Upsert-increment counters stored in the `counters` table."""

    def next_value(self, session: Session, name: str) -> int:
        """
        Atomically increment a counter and return its new value.

        The first call for a name creates the row with value 1. A concurrent
        creator losing the insert race falls back to the increment.
        """
        value = self._increment(session, name)
        if value is not None:
            return value

        try:
            with session.begin_nested():
                session.add(Counter(name=name, value=1))
            return 1
        except IntegrityError:
            value = self._increment(session, name)
            if value is None:
                raise
            return value

    @staticmethod
    def _increment(session: Session, name: str) -> int | None:
        stmt = (
            update(Counter)
            .where(Counter.name == name)
            .values(value=Counter.value + 1)
            .returning(Counter.value)
            .execution_options(synchronize_session=False)
        )
        return session.execute(stmt).scalar_one_or_none()
