from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Unicode,
    UnicodeText,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from .base import Base
from .user import User  # noqa


class Query(Base):
    __tablename__ = 'query'

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey('user.id'))
    title = Column(Unicode(1024))
    description = Column(UnicodeText)
    private = Column(Boolean, default=False, nullable=False)
    text = Column(UnicodeText)
    stars = Column(Integer, default=0, nullable=False)
    forks = Column(Integer, default=0, nullable=False)
    # Logical reference only, so a source query can be deleted after forking.
    forked_from = Column(Integer)
    forked = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime)
    updated_at = Column(DateTime)

    tags = relationship('QueryTag',
                        order_by='QueryTag.name',
                        cascade='all, delete-orphan')
    starred_by = relationship('Star', viewonly=True)
    forked_by = relationship('Fork', viewonly=True)

    @property
    def creator(self):
        return self.user_id

    @property
    def tag_names(self):
        return sorted(tag.name for tag in self.tags)

    @property
    def starred_user_ids(self):
        return sorted(star.user_id for star in self.starred_by)

    @property
    def forked_user_ids(self):
        return sorted(fork.user_id for fork in self.forked_by)

    def to_json(self):
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'creator': self.user_id,
            'username': self.user.username if self.user else '',
            'private': bool(self.private),
            'text': self.text,
            'tags': self.tag_names,
            'stars': self.stars,
            'forks': self.forks,
            'staredBy': self.starred_user_ids,
            'forkedBy': self.forked_user_ids,
            'forkedFrom': self.forked_from or '',
            'forked': bool(self.forked),
            'createdAt': self.created_at,
            'updatedAt': self.updated_at,
        }


class QueryTag(Base):
    __tablename__ = 'query_tag'
    __table_args__ = (UniqueConstraint('query_id', 'name'),)

    id = Column(Integer, primary_key=True)
    query_id = Column(Integer, ForeignKey('query.id'))
    name = Column(Unicode(255))
