from sqlalchemy import Column, Integer, ForeignKey, DateTime, UniqueConstraint
from sqlalchemy.orm import relationship
from .base import Base


class Star(Base):
    __tablename__ = "star"
    # A user holds at most one star per query; inserting a duplicate
    # fails, which is what gives stared_by its set semantics.
    __table_args__ = (UniqueConstraint("user_id", "query_id"),)

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("user.id"))
    timestamp = Column(DateTime)
    query_id = Column(Integer, ForeignKey("query.id"))

    query = relationship("Query", uselist=False, viewonly=True)
    user = relationship("User", uselist=False)
