import json
from datetime import datetime, timedelta

from flask import Blueprint, g, Response
from .models.query import Query
from .models.queryrevision import QueryRevision
from .models.star import Star

health_blueprint = Blueprint('health', __name__)


def fetch_count_last_minutes(table, column, minutes):
    since = datetime.utcnow() - timedelta(minutes=minutes)
    return g.conn.session.query(table).filter(column >= since).count()


@health_blueprint.route('/.health/summary/v1/<int:minutes>')
def health_summary(minutes):
    """
    Get numbers of Query, QueryRevision and Star rows created within
    the last specified `minutes` for monitoring purposes.

    The values returned by this function are most likely always changing
    because every time this API endpoint is accessed it will do some queries
    against the catalog database to find out how many Query objects are
    created within the last n minutes, etc.
    """
    resp_dict = {}

    resp_dict['queries_num'] = fetch_count_last_minutes(
        Query, Query.created_at, minutes
    )

    resp_dict['query_revs_num'] = fetch_count_last_minutes(
        QueryRevision, QueryRevision.timestamp, minutes
    )

    resp_dict['stars_num'] = fetch_count_last_minutes(
        Star, Star.timestamp, minutes
    )

    return Response(json.dumps(resp_dict), mimetype='application/json')
