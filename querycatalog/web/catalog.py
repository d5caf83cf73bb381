import logging
from datetime import datetime

from sqlalchemy import desc
from sqlalchemy.exc import SQLAlchemyError

from .directory import UserDirectory
from .models.fork import Fork
from .models.query import Query
from .models.serviceresult import ErrorCode, FailureResult, SuccessResult
from .models.star import Star
from .store import CatalogStore, RevisionLog
from .utils.pagination import paginate

logger = logging.getLogger(__name__)


class QueryCatalog(object):
    """
    Business rules of the shared query catalog.

    Operations never raise: store failures are rolled back, logged and
    turned into a FailureResult carrying the DB_* code of the operation.

    Star, unstar and fork update the membership set, the query counter
    and the acting user's counter as three separately committed steps.
    A crash in between leaves them out of step until corrected by hand;
    there is no compensation. Counters only move when the membership
    write actually changed the set, so two concurrent stars by the same
    user are counted once.
    """
    def __init__(self, store, revisions, users, default_limit=10):
        self.store = store
        self.revisions = revisions
        self.users = users
        self.default_limit = default_limit

    @classmethod
    def from_session(cls, session, **kwargs):
        return cls(
            CatalogStore(session),
            RevisionLog(session),
            UserDirectory(session),
            **kwargs
        )

    def _store_failure(self, message, code, error):
        # Must be called from an except block so the traceback is logged
        logger.exception("%s (%s)", message, code.value)
        self.store.session.rollback()
        return FailureResult(message, code, str(error))

    def _list(self, criteria, order_by, page, limit,
              empty_message="No queries found."):
        limit = self.default_limit if limit is None else limit
        try:
            candidates = self.store.find(*criteria, order_by=order_by)
        except SQLAlchemyError as e:
            return self._store_failure(
                "Failed to retrieve queries.", ErrorCode.DB_QUERY_ERROR, e
            )
        # Whole candidate list is fetched, then sliced here
        try:
            queries = paginate(candidates, limit, page)
        except ValueError as e:
            return FailureResult(str(e), ErrorCode.BAD_REQUEST)
        if not queries:
            return FailureResult(empty_message, ErrorCode.NOT_FOUND)
        try:
            data = [query.to_json() for query in queries]
        except SQLAlchemyError as e:
            return self._store_failure(
                "Failed to retrieve username for query creator.",
                ErrorCode.DB_QUERY_ERROR,
                e,
            )
        return SuccessResult(data)

    def list_public(self, page=1, limit=None):
        return self._list([Query.private == False], (), page, limit)  # noqa: E712

    def list_by_stars(self, page=1, limit=None):
        return self._list(
            [Query.private == False], (desc(Query.stars),), page, limit  # noqa: E712
        )

    def list_by_forks(self, page=1, limit=None):
        return self._list(
            [Query.private == False], (desc(Query.forks),), page, limit  # noqa: E712
        )

    def search(self, term, page=1, limit=None):
        """Public queries whose title, text or one of its tags contains term.

        Matching is a case-insensitive substring test; ``%`` and ``_`` in
        term match literally.
        """
        return self._list(
            [Query.private == False, self.store.search_criterion(term)],  # noqa: E712
            (),
            page,
            limit,
        )

    def list_for_user(self, uid, page=1, limit=None, viewer=None):
        """Queries created by uid.

        Private ones are only part of the listing when the viewer is uid
        themself.
        """
        criteria = [Query.user_id == uid]
        if viewer != uid:
            criteria.append(Query.private == False)  # noqa: E712
        return self._list(
            criteria, (), page, limit,
            empty_message="No queries found for the user.",
        )

    def _reread(self, query_id, message):
        try:
            query = self.store.get(query_id)
            if query is None:
                return FailureResult(message, ErrorCode.DB_RETRIEVAL_ERROR)
            return SuccessResult(query.to_json())
        except SQLAlchemyError as e:
            return self._store_failure(message, ErrorCode.DB_RETRIEVAL_ERROR, e)

    def get(self, query_id):
        try:
            query = self.store.get(query_id)
            if query is None:
                return FailureResult("Query not found.", ErrorCode.NOT_FOUND)
            return SuccessResult(query.to_json())
        except SQLAlchemyError as e:
            return self._store_failure(
                "Failed to retrieve query.", ErrorCode.DB_FETCH_ERROR, e
            )

    def create(self, title, description, creator, private, text, tags,
               forked_from=None, forked=False):
        if bool(forked) != (forked_from is not None):
            return FailureResult(
                "forked must be set exactly when forked_from is.",
                ErrorCode.BAD_REQUEST,
            )
        now = datetime.utcnow()
        query = Query(
            title=title,
            description=description,
            user_id=creator,
            private=bool(private),
            text=text,
            stars=0,
            forks=0,
            forked_from=forked_from,
            forked=bool(forked),
            created_at=now,
            updated_at=now,
        )
        try:
            query_id = self.store.insert(query, tags or [])
            self.revisions.append(query_id, text, now)
        except SQLAlchemyError as e:
            return self._store_failure(
                "Error creating query.", ErrorCode.DB_INSERT_ERROR, e
            )
        logger.info("Created query:%s by user:%s", query_id, creator)
        return self._reread(query_id, "Failed to retrieve created query.")

    def update(self, query_id, title, description, creator, private, text, tags):
        now = datetime.utcnow()
        try:
            query = self.store.get(query_id)
            if query is None:
                return FailureResult("Query not found.", ErrorCode.NOT_FOUND)
            self.store.overwrite(
                query,
                {
                    'title': title,
                    'description': description,
                    'user_id': creator,
                    'private': bool(private),
                    'text': text,
                    'updated_at': now,
                },
                tags or [],
            )
            self.revisions.append(query_id, text, now)
        except SQLAlchemyError as e:
            return self._store_failure(
                "Error updating query.", ErrorCode.DB_UPDATE_ERROR, e
            )
        logger.info("Updated query:%s", query_id)
        return self._reread(query_id, "Failed to retrieve updated query.")

    def _load(self, query_id, uid):
        """Fetch the acting user and the query, or the failure to return."""
        if self.users.get(uid) is None:
            return None, FailureResult("User not found.", ErrorCode.NOT_FOUND)
        query = self.store.get(query_id)
        if query is None:
            return None, FailureResult("Query not found.", ErrorCode.NOT_FOUND)
        return query, None

    def star(self, query_id, uid):
        try:
            query, failure = self._load(query_id, uid)
            if failure is not None:
                return failure
            if uid in query.starred_user_ids:
                logger.info("User:%s already starred query:%s", uid, query_id)
                return FailureResult("Query already starred.", ErrorCode.CONFLICT)
            if not self.store.add_member(Star, query_id, uid):
                # A concurrent star by the same user got there first
                return FailureResult("Query already starred.", ErrorCode.CONFLICT)
            self.store.increment(query_id, 'stars', 1)
            self.users.increment(uid, 'stars', 1)
        except SQLAlchemyError as e:
            return self._store_failure(
                "Error starring query.", ErrorCode.DB_UPDATE_ERROR, e
            )
        logger.info("Starred query:%s by user:%s", query_id, uid)
        return self._reread(query_id, "Failed to retrieve updated query.")

    def unstar(self, query_id, uid):
        try:
            query, failure = self._load(query_id, uid)
            if failure is not None:
                return failure
            if uid not in query.starred_user_ids:
                logger.info("User:%s has not starred query:%s", uid, query_id)
                return FailureResult("Query already un-starred.", ErrorCode.CONFLICT)
            if not self.store.remove_member(Star, query_id, uid):
                return FailureResult("Query already un-starred.", ErrorCode.CONFLICT)
            self.store.increment(query_id, 'stars', -1)
            self.users.increment(uid, 'stars', -1)
        except SQLAlchemyError as e:
            return self._store_failure(
                "Error un-starring query.", ErrorCode.DB_UPDATE_ERROR, e
            )
        logger.info("Un-starred query:%s by user:%s", query_id, uid)
        return self._reread(query_id, "Failed to retrieve updated query.")

    def fork(self, query_id, uid):
        """
        Clone query_id into a new query owned by uid.

        Only originals can be forked, never by their creator and at most
        once per user. Returns the new query, not the source.
        """
        try:
            query, failure = self._load(query_id, uid)
            if failure is not None:
                return failure
            if uid in query.forked_user_ids:
                return FailureResult("Query already forked.", ErrorCode.CONFLICT)
            if uid == query.user_id:
                return FailureResult(
                    "You cannot fork your own query.", ErrorCode.CONFLICT
                )
            if query.forked:
                return FailureResult(
                    "A forked query cannot be forked again.", ErrorCode.CONFLICT
                )
            source = {
                'title': query.title,
                'description': query.description,
                'private': query.private,
                'text': query.text,
                'tags': query.tag_names,
            }
            if not self.store.add_member(Fork, query_id, uid):
                return FailureResult("Query already forked.", ErrorCode.CONFLICT)
            self.store.increment(query_id, 'forks', 1)
            self.users.increment(uid, 'forks', 1)
        except SQLAlchemyError as e:
            return self._store_failure(
                "Error forking query.", ErrorCode.DB_UPDATE_ERROR, e
            )
        logger.info("Forked query:%s by user:%s", query_id, uid)
        return self.create(
            source['title'],
            source['description'],
            uid,
            source['private'],
            source['text'],
            source['tags'],
            forked_from=query_id,
            forked=True,
        )

    def get_revisions(self, query_id):
        try:
            if self.store.get(query_id) is None:
                return FailureResult("Query not found.", ErrorCode.NOT_FOUND)
            data = [rev.to_json() for rev in self.revisions.list(query_id)]
        except SQLAlchemyError as e:
            return self._store_failure(
                "Error retrieving query revisions.", ErrorCode.DB_FETCH_ERROR, e
            )
        return SuccessResult(data)

    def delete(self, query_id):
        try:
            if self.store.get(query_id) is None:
                return FailureResult("Query not found.", ErrorCode.NOT_FOUND)
            self.store.delete(query_id, revisions=self.revisions)
        except SQLAlchemyError as e:
            return self._store_failure(
                "Failed to delete query.", ErrorCode.DB_DELETE_ERROR, e
            )
        logger.info("Deleted query:%s", query_id)
        return SuccessResult(True)

    def delete_all(self):
        """
        Delete every query, one at a time.

        A query that fails to delete is logged and skipped; the call as a
        whole still succeeds.
        """
        try:
            query_ids = self.store.all_ids()
        except SQLAlchemyError as e:
            return self._store_failure(
                "Failed to delete queries.", ErrorCode.DB_DELETE_ERROR, e
            )
        deleted = 0
        for query_id in query_ids:
            try:
                self.store.delete(query_id, revisions=self.revisions)
                deleted += 1
            except SQLAlchemyError:
                logger.exception("Failed to delete query:%s, skipping", query_id)
                self.store.session.rollback()
        logger.info("Deleted %s of %s queries", deleted, len(query_ids))
        return SuccessResult(True)
