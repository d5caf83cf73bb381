from sqlalchemy import Column, Integer, Unicode, ForeignKey
from sqlalchemy.orm import relationship
from .base import Base


class User(Base):
    __tablename__ = 'user'

    id = Column(Integer, primary_key=True)
    username = Column(Unicode(255))
    wiki_uid = Column(Integer)
    # Aggregate counters of the stars and forks this user has handed out
    stars = Column(Integer, default=0, nullable=False)
    forks = Column(Integer, default=0, nullable=False)

    queries = relationship('Query', backref='user')

    groups = relationship('UserGroup', backref='user')

    def to_json(self):
        return {
            'id': self.id,
            'username': self.username,
            'stars': self.stars or 0,
            'forks': self.forks or 0,
        }


class UserGroup(Base):
    __tablename__ = 'user_group'
    """
    Currently used groups:
    - sudo: can bulk delete the catalog
    """
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey('user.id'))
    group_name = Column(Unicode(255))
