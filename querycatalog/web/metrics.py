from functools import wraps

from flask import request
from prometheus_client.exposition import choose_encoder
from prometheus_client.metrics_core import GaugeMetricFamily
from prometheus_client.registry import CollectorRegistry
from prometheus_flask_exporter import PrometheusMetrics
from sqlalchemy import func

from querycatalog.web.connections import Connections
from querycatalog.web.models.query import Query


class CatalogVisibilityCollector:
    def __init__(self, app):
        self.app = app

    def collect(self):
        with Connections(self.app.config).session() as db_session:
            queries_per_visibility = db_session \
                .query(Query.private, func.count(Query.id)) \
                .group_by(Query.private).all()

        metric_family = GaugeMetricFamily(
            "querycatalog_queries_per_visibility",
            documentation="Number of catalog queries per visibility",
            labels=["visibility"]
        )

        for (private, query_count) in queries_per_visibility:
            metric_family.add_metric(
                ["private" if private else "public"],
                query_count
            )

        yield metric_family


def add_custom_metrics(custom_registry: CollectorRegistry):
    """
    Add metrics that we load directly from the database in a way that it works
    even in a 'multiproc' environment like uWSGI with several workers.
    """
    def wrapper(f):
        @wraps(f)
        def middleware(*args, **kwargs):
            # Get metrics from the flask exporter
            data, status, headers = f(*args, **kwargs)
            if status != 200:
                return data, status, headers

            # Add our "custom" metrics (like amount of queries per
            # visibility), without consulting the multiproc handler. Those
            # metrics are generated at /metrics request time, not during
            # normal flask request processing.
            generate_latest, _ = choose_encoder(request.headers.get("Accept"))
            data += generate_latest(custom_registry)

            return data, status, headers

        return middleware

    return wrapper


def metrics_init_app(app):
    if app.config['TESTING']:
        # The exporter registers its metrics globally, which breaks
        # when the test suite builds an app per test.
        return

    custom_registry = CollectorRegistry()
    custom_registry.register(CatalogVisibilityCollector(app))

    # This will automatically use PROMETHEUS_MULTIPROC_DIR if specified,
    # so metrics in production with multiple uwsgi workers work properly.
    # Also note, the prometheus exporter package will not do anything if Flask
    # is in debug mode, unless the env variable DEBUG_METRICS is set.
    metrics = PrometheusMetrics.for_app_factory(
        metrics_endpoint='/metrics',
        metrics_decorator=add_custom_metrics(custom_registry),
        # track metrics per route pattern, not per individual url
        group_by='url_rule',
    )

    metrics.init_app(app)
