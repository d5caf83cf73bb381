from sqlalchemy import Column, Integer, UnicodeText, ForeignKey, DateTime
from .base import Base
from .query import Query  # noqa


class QueryRevision(Base):
    """An immutable snapshot of a query's text.

    One is appended when the query is created and one per update. Rows
    are never edited; they go away only together with their query.
    """
    __tablename__ = 'query_revision'

    id = Column(Integer, primary_key=True)
    text = Column(UnicodeText)
    query_id = Column(Integer, ForeignKey('query.id'))
    timestamp = Column(DateTime)

    def to_json(self):
        return {
            'id': self.id,
            'queryText': self.text,
            'createdAt': self.timestamp,
        }
