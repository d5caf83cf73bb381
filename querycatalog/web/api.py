from flask import Blueprint
from pydantic import ValidationError

from .query import get_catalog, request_body, visible_query
from .schemas import QueryIdBody, validation_failure
from .user import get_user, unauthorized
from .utils import result_response

api_blueprint = Blueprint("api", __name__)


def social_action(action):
    user = get_user()
    if user is None:
        return unauthorized("Authentication required")
    try:
        body = QueryIdBody.model_validate(request_body())
    except ValidationError as e:
        return result_response(validation_failure(e))
    # Private queries of other users are treated as missing
    visible = visible_query(body.query_id)
    if not visible.success:
        return result_response(visible)
    return result_response(action(body.query_id, user.id))


@api_blueprint.route("/api/query/star", methods=["POST"])
def star_query():
    return social_action(get_catalog().star)


@api_blueprint.route("/api/query/unstar", methods=["POST"])
def unstar_query():
    return social_action(get_catalog().unstar)


@api_blueprint.route("/api/query/fork", methods=["POST"])
def fork_query():
    return social_action(get_catalog().fork)
