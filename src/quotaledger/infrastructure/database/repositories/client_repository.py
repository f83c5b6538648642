"""Client persistence used by the payment engine."""

from typing import Optional

from sqlalchemy import update
from sqlalchemy.orm import Session
from sqlalchemy.orm.util import identity_key

from quotaledger.domain.errors import ClientNotFoundError
from quotaledger.infrastructure.database.models import Client


class ClientRepository:
    """Client lookups and credit balance mutations."""

    def find_by_id(self, session: Session, client_id: str) -> Optional[Client]:
        return session.get(Client, client_id)

    def create(self, session: Session, client: Client) -> Client:
        session.add(client)
        session.flush()
        return client

    def adjust_credit_balance(self, session: Session, client_id: str, delta_cents: int) -> None:
        """Atomically add `delta_cents` (may be negative) to the client's credit balance."""
        stmt = (
            update(Client)
            .where(Client.id == client_id)
            .values(credit_balance_cents=Client.credit_balance_cents + delta_cents)
            .execution_options(synchronize_session=False)
        )
        result = session.execute(stmt)
        if result.rowcount != 1:
            raise ClientNotFoundError(client_id)

        # Loaded instance (if any) must not keep serving the old balance
        loaded = session.identity_map.get(identity_key(Client, client_id))
        if loaded is not None:
            session.expire(loaded, ["credit_balance_cents"])
