from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from sqlalchemy import and_, delete, func, or_, select, update

from santa_exchange.db.models import (
    Assignment,
    Exchange,
    Participant,
    PendingParticipant,
    User,
)


def _exchange_is_open(exchange_id: int):
    return (
        select(Exchange.id)
        .where(and_(Exchange.id == exchange_id, Exchange.assignments_generated.is_(False)))
        .exists()
    )


def get_user_by_id(session, user_id: int) -> Optional[User]:
    return session.scalar(select(User).where(User.id == user_id))


def create_user(session, name: str, email: str) -> User:
    user = User(name=name, email=email)
    session.add(user)
    session.flush()
    return user


def get_exchange_by_id(session, exchange_id: int) -> Optional[Exchange]:
    return session.scalar(select(Exchange).where(Exchange.id == exchange_id))


def lock_exchange(session, exchange_id: int) -> Optional[Exchange]:
    """Load the exchange row with ``FOR UPDATE``.

    Every roster write and the assignment flag flip take this row lock, so they
    serialize per exchange. Backends without row locks (sqlite) ignore the clause
    and rely on their database-wide write lock instead.
    """
    return session.scalar(
        select(Exchange).where(Exchange.id == exchange_id).with_for_update(nowait=False)
    )


def create_exchange(
    session,
    name: str,
    gift_budget: str,
    created_by: int,
    start_date: Optional[str],
    end_date: Optional[str],
) -> Exchange:
    exchange = Exchange(
        name=name,
        gift_budget=gift_budget,
        created_by=created_by,
        start_date=start_date,
        end_date=end_date,
        assignments_generated=False,
    )
    session.add(exchange)
    session.flush()
    return exchange


def list_exchanges(session) -> List[Exchange]:
    return list(session.scalars(select(Exchange).order_by(Exchange.id)).all())


def list_exchanges_for_user(session, user_id: int) -> List[Exchange]:
    joined = select(Participant.exchange_id).where(Participant.user_id == user_id)
    return list(
        session.scalars(
            select(Exchange)
            .where(or_(Exchange.created_by == user_id, Exchange.id.in_(joined)))
            .order_by(Exchange.id)
        ).all()
    )


def update_exchange_details(
    session,
    exchange: Exchange,
    name: Optional[str],
    gift_budget: Optional[str],
    start_date: Optional[str],
    end_date: Optional[str],
) -> None:
    if name is not None:
        exchange.name = name
    if gift_budget is not None:
        exchange.gift_budget = gift_budget
    if start_date is not None:
        exchange.start_date = start_date
    if end_date is not None:
        exchange.end_date = end_date


def delete_exchange(session, exchange: Exchange) -> None:
    session.delete(exchange)


def mark_assignments_generated(session, exchange_id: int) -> bool:
    result = session.execute(
        update(Exchange)
        .where(and_(Exchange.id == exchange_id, Exchange.assignments_generated.is_(False)))
        .values(assignments_generated=True, assigned_at=func.now())
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def get_participant(session, exchange_id: int, user_id: int) -> Optional[Participant]:
    return session.scalar(
        select(Participant).where(
            and_(Participant.exchange_id == exchange_id, Participant.user_id == user_id)
        )
    )


def add_participant(session, exchange_id: int, user_id: int) -> Participant:
    participant = Participant(exchange_id=exchange_id, user_id=user_id)
    session.add(participant)
    session.flush()
    return participant


def list_participants(session, exchange_id: int) -> List[Participant]:
    return list(
        session.scalars(
            select(Participant)
            .where(Participant.exchange_id == exchange_id)
            .order_by(Participant.joined_at, Participant.user_id)
        ).all()
    )


def delete_participant_if_open(session, exchange_id: int, user_id: int) -> bool:
    result = session.execute(
        delete(Participant)
        .where(
            and_(
                Participant.exchange_id == exchange_id,
                Participant.user_id == user_id,
                _exchange_is_open(exchange_id),
            )
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def get_pending(session, exchange_id: int, user_id: int) -> Optional[PendingParticipant]:
    return session.scalar(
        select(PendingParticipant).where(
            and_(
                PendingParticipant.exchange_id == exchange_id,
                PendingParticipant.user_id == user_id,
            )
        )
    )


def add_pending(session, exchange_id: int, user_id: int) -> PendingParticipant:
    pending = PendingParticipant(exchange_id=exchange_id, user_id=user_id)
    session.add(pending)
    session.flush()
    return pending


def list_pending(session, exchange_id: int) -> List[PendingParticipant]:
    return list(
        session.scalars(
            select(PendingParticipant)
            .where(PendingParticipant.exchange_id == exchange_id)
            .order_by(PendingParticipant.requested_at, PendingParticipant.user_id)
        ).all()
    )


def delete_pending_if_open(session, exchange_id: int, user_id: int) -> bool:
    result = session.execute(
        delete(PendingParticipant)
        .where(
            and_(
                PendingParticipant.exchange_id == exchange_id,
                PendingParticipant.user_id == user_id,
                _exchange_is_open(exchange_id),
            )
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def create_assignments(
    session, exchange_id: int, pairs: Sequence[Tuple[int, int]]
) -> List[Assignment]:
    rows = [
        Assignment(exchange_id=exchange_id, giver_user_id=giver_id, recipient_user_id=recipient_id)
        for giver_id, recipient_id in pairs
    ]
    session.add_all(rows)
    session.flush()
    return rows


def list_assignments(session, exchange_id: int) -> List[Assignment]:
    return list(
        session.scalars(
            select(Assignment).where(Assignment.exchange_id == exchange_id).order_by(Assignment.id)
        ).all()
    )


def get_assignment_for_giver(session, exchange_id: int, giver_id: int) -> Optional[Assignment]:
    return session.scalar(
        select(Assignment).where(
            and_(Assignment.exchange_id == exchange_id, Assignment.giver_user_id == giver_id)
        )
    )


def count_assignments(session, exchange_id: int) -> int:
    return session.scalar(
        select(func.count()).select_from(Assignment).where(Assignment.exchange_id == exchange_id)
    )
