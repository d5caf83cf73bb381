from flask import Blueprint, current_app, g, request
from pydantic import ValidationError

from .catalog import QueryCatalog
from .models.serviceresult import ErrorCode, FailureResult, SuccessResult
from .schemas import (
    ListQueriesArgs,
    QueryBody,
    QueryIdArgs,
    QueryUpdateBody,
    UserArgs,
    validation_failure,
)
from .user import get_user, get_user_id, unauthorized
from .utils import result_response

query_blueprint = Blueprint("query", __name__)


def get_catalog():
    if not hasattr(g, "_catalog"):
        g._catalog = QueryCatalog.from_session(
            g.conn.session,
            default_limit=current_app.config.get("QUERY_RESULTS_PER_PAGE", 10),
        )
    return g._catalog


def request_body():
    return request.get_json(silent=True) or request.form.to_dict()


def visible_query(query_id):
    """Result of fetching query_id, hiding private queries from non-owners."""
    result = get_catalog().get(query_id)
    if (
        result.success
        and result.data["private"]
        and result.data["creator"] != get_user_id()
    ):
        return FailureResult("Query not found.", ErrorCode.NOT_FOUND)
    return result


def owned_query(query_id, user):
    """Fetch query_id for a write by user; returns (query, failure)."""
    result = get_catalog().get(query_id)
    if not result.success:
        return None, result_response(result)
    if result.data["creator"] != user.id:
        return None, unauthorized("Invalid User")
    return result.data, None


@query_blueprint.route("/query", methods=["GET"])
def list_queries():
    try:
        args = ListQueriesArgs.model_validate(request.args.to_dict())
    except ValidationError as e:
        return result_response(validation_failure(e))

    catalog = get_catalog()
    if args.search:
        result = catalog.search(args.search, args.page, args.limit)
    elif args.type == "forks":
        result = catalog.list_by_forks(args.page, args.limit)
    elif args.type == "stars":
        result = catalog.list_by_stars(args.page, args.limit)
    else:
        result = catalog.list_public(args.page, args.limit)
    return result_response(result)


@query_blueprint.route("/query", methods=["POST"])
def create_query():
    user = get_user()
    if user is None:
        return unauthorized()
    try:
        body = QueryBody.model_validate(request_body())
    except ValidationError as e:
        return result_response(validation_failure(e))
    if body.creator != user.id:
        return unauthorized("Invalid User")

    result = get_catalog().create(
        body.title,
        body.description,
        body.creator,
        body.private,
        body.text,
        body.tags,
    )
    return result_response(result)


@query_blueprint.route("/query", methods=["PATCH"])
def update_query():
    user = get_user()
    if user is None:
        return unauthorized()
    try:
        body = QueryUpdateBody.model_validate(request_body())
    except ValidationError as e:
        return result_response(validation_failure(e))
    if body.creator != user.id:
        return unauthorized("Invalid User")
    _, failure = owned_query(body.id, user)
    if failure is not None:
        return failure

    result = get_catalog().update(
        body.id,
        body.title,
        body.description,
        body.creator,
        body.private,
        body.text,
        body.tags,
    )
    return result_response(result)


@query_blueprint.route("/query", methods=["DELETE"])
def delete_query():
    user = get_user()
    if user is None:
        return unauthorized()
    try:
        args = QueryIdArgs.model_validate(request.args.to_dict())
    except ValidationError:
        return result_response(
            FailureResult("No ID provided", ErrorCode.BAD_REQUEST)
        )
    _, failure = owned_query(args.id, user)
    if failure is not None:
        return failure
    return result_response(get_catalog().delete(args.id))


@query_blueprint.route("/query/all", methods=["DELETE"])
def delete_all_queries():
    user = get_user()
    if user is None:
        return unauthorized()
    catalog = get_catalog()
    if not catalog.users.in_group(user.id, "sudo"):
        return unauthorized("You do not have the sudo right")
    return result_response(catalog.delete_all())


@query_blueprint.route("/query/user", methods=["GET"])
def user_queries():
    try:
        args = UserArgs.model_validate(request.args.to_dict())
    except ValidationError:
        return result_response(FailureResult("Missing UID", ErrorCode.BAD_REQUEST))

    catalog = get_catalog()
    user = catalog.users.get(args.uid)
    if user is None:
        return result_response(FailureResult("User not found.", ErrorCode.NOT_FOUND))

    queries = catalog.list_for_user(args.uid, viewer=get_user_id())
    if queries.success:
        data = queries.data
    elif queries.code == ErrorCode.NOT_FOUND:
        # A user without (visible) queries is not an error here
        data = []
    else:
        return result_response(queries)
    return result_response(SuccessResult({
        "user": user.to_json(),
        "queries": data,
    }))


@query_blueprint.route("/query/<int:query_id>", methods=["GET"])
def query_show(query_id):
    return result_response(visible_query(query_id))


@query_blueprint.route("/query/<int:query_id>/revisions", methods=["GET"])
def query_revisions(query_id):
    result = visible_query(query_id)
    if not result.success:
        return result_response(result)
    return result_response(get_catalog().get_revisions(query_id))
