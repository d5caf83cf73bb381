from datetime import datetime

from sqlalchemy import case, func, or_, update
from sqlalchemy.exc import IntegrityError

from .models.fork import Fork
from .models.query import Query, QueryTag
from .models.queryrevision import QueryRevision
from .models.star import Star

COUNTER_FIELDS = ('stars', 'forks')


def clamped_increment(column, amount):
    """SQL expression for ``column + amount`` that never drops below zero."""
    return case((column + amount < 0, 0), else_=column + amount)


class CatalogStore(object):
    """
    Document-style access to the query table.

    Every write commits on its own. Callers that need several writes
    (a star touches the membership table and two counters) get one
    atomic step per call and no transaction spanning them.
    """
    def __init__(self, session):
        self.session = session

    def get(self, query_id):
        return self.session.get(Query, query_id)

    def find(self, *criteria, order_by=()):
        return self.session.query(Query) \
            .filter(*criteria) \
            .order_by(*order_by, Query.id) \
            .all()

    def search_criterion(self, term):
        """
        Case-insensitive substring match against title, text or any tag.
        """
        needle = term.lower()
        return or_(
            func.lower(Query.title).contains(needle, autoescape=True),
            func.lower(Query.text).contains(needle, autoescape=True),
            Query.tags.any(
                func.lower(QueryTag.name).contains(needle, autoescape=True)
            ),
        )

    def insert(self, query, tags):
        query.tags = [QueryTag(name=tag) for tag in sorted(set(tags))]
        self.session.add(query)
        self.session.commit()
        return query.id

    def overwrite(self, query, fields, tags):
        for name, value in fields.items():
            setattr(query, name, value)
        wanted = set(tags)
        query.tags = [tag for tag in query.tags if tag.name in wanted]
        kept = set(tag.name for tag in query.tags)
        for name in sorted(wanted - kept):
            query.tags.append(QueryTag(name=name))
        self.session.add(query)
        self.session.commit()

    def increment(self, query_id, field, amount):
        if field not in COUNTER_FIELDS:
            raise ValueError("Not a counter field: %s" % field)
        column = getattr(Query, field)
        self.session.execute(
            update(Query)
            .where(Query.id == query_id)
            .values({field: clamped_increment(column, amount)}),
            execution_options={"synchronize_session": False},
        )
        self.session.commit()

    def add_member(self, model, query_id, user_id):
        """
        Add user_id to the star or fork set of a query.

        Returns False when the user already was a member, in which case
        nothing changed.
        """
        membership = model(
            query_id=query_id, user_id=user_id, timestamp=datetime.utcnow()
        )
        self.session.add(membership)
        try:
            self.session.commit()
        except IntegrityError:
            # Duplicate (user_id, query_id)
            self.session.rollback()
            return False
        return True

    def remove_member(self, model, query_id, user_id):
        removed = self.session.query(model) \
            .filter(model.query_id == query_id) \
            .filter(model.user_id == user_id) \
            .delete(synchronize_session=False)
        self.session.commit()
        return removed > 0

    def delete(self, query_id, revisions=None):
        """Remove a query along with its tags and memberships.

        When a RevisionLog is given, the query's revisions are purged in
        the same commit.
        """
        if revisions is not None:
            revisions.purge(query_id, commit=False)
        for model in (Star, Fork):
            self.session.query(model) \
                .filter(model.query_id == query_id) \
                .delete(synchronize_session=False)
        self.session.delete(self.get(query_id))
        self.session.commit()

    def all_ids(self):
        return [row[0] for row in self.session.query(Query.id).order_by(Query.id)]


class RevisionLog(object):
    """Append-only history of a query's text."""
    def __init__(self, session):
        self.session = session

    def append(self, query_id, text, timestamp=None):
        revision = QueryRevision(
            query_id=query_id,
            text=text,
            timestamp=timestamp or datetime.utcnow(),
        )
        self.session.add(revision)
        self.session.commit()
        return revision

    def list(self, query_id):
        return self.session.query(QueryRevision) \
            .filter(QueryRevision.query_id == query_id) \
            .order_by(QueryRevision.timestamp, QueryRevision.id) \
            .all()

    def purge(self, query_id, commit=True):
        self.session.query(QueryRevision) \
            .filter(QueryRevision.query_id == query_id) \
            .delete(synchronize_session=False)
        if commit:
            self.session.commit()
