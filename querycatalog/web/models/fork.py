from sqlalchemy import Column, Integer, ForeignKey, DateTime, UniqueConstraint
from sqlalchemy.orm import relationship
from .base import Base


class Fork(Base):
    """Membership of a user in a query's forked_by set."""
    __tablename__ = "fork"
    __table_args__ = (UniqueConstraint("user_id", "query_id"),)

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("user.id"))
    timestamp = Column(DateTime)
    query_id = Column(Integer, ForeignKey("query.id"))

    query = relationship("Query", uselist=False, viewonly=True)
    user = relationship("User", uselist=False)
