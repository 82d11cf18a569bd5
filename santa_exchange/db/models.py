from __future__ import annotations

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    false,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self) -> str:
        return "<User(id={0}, email={1})>".format(self.id, self.email)


class Exchange(Base):
    __tablename__ = "exchanges"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    gift_budget = Column(String, nullable=False)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    start_date = Column(String, nullable=True)
    end_date = Column(String, nullable=True)
    assignments_generated = Column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    assigned_at = Column(DateTime(timezone=True), nullable=True)

    participants = relationship(
        "Participant", back_populates="exchange", cascade="all, delete-orphan"
    )
    pending_participants = relationship(
        "PendingParticipant", back_populates="exchange", cascade="all, delete-orphan"
    )
    assignments = relationship(
        "Assignment", back_populates="exchange", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return (
            f"<Exchange(id={self.id}, name={self.name}, "
            f"assignments_generated={self.assignments_generated})>"
        )


class Participant(Base):
    __tablename__ = "participants"

    exchange_id = Column(
        Integer, ForeignKey("exchanges.id", ondelete="CASCADE"), primary_key=True
    )
    user_id = Column(Integer, ForeignKey("users.id", ondelete="RESTRICT"), primary_key=True)
    joined_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    exchange = relationship("Exchange", back_populates="participants")


class PendingParticipant(Base):
    __tablename__ = "pending_participants"

    exchange_id = Column(
        Integer, ForeignKey("exchanges.id", ondelete="CASCADE"), primary_key=True
    )
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    requested_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    exchange = relationship("Exchange", back_populates="pending_participants")


class Assignment(Base):
    __tablename__ = "assignments"

    id = Column(Integer, primary_key=True)
    exchange_id = Column(Integer, ForeignKey("exchanges.id", ondelete="CASCADE"), nullable=False)
    giver_user_id = Column(Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    recipient_user_id = Column(Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    exchange = relationship("Exchange", back_populates="assignments")

    __table_args__ = (
        UniqueConstraint("exchange_id", "giver_user_id", name="uq_assignments_exchange_giver"),
        UniqueConstraint(
            "exchange_id", "recipient_user_id", name="uq_assignments_exchange_recipient"
        ),
        CheckConstraint("giver_user_id <> recipient_user_id", name="ck_assignments_not_self"),
    )
