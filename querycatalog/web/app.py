import logging
import os

from flask import current_app, Flask, g
import yaml

from .connections import Connections
from .login import auth
from .metrics import metrics_init_app
from .models.base import Base
from .redissession import RedisSessionInterface
from .health import health_blueprint
from .query import query_blueprint
from .api import api_blueprint

__dir__ = os.path.dirname(__file__)


def get_config():
    conf = {}
    conf.update(
        yaml.safe_load(open(os.path.join(__dir__, "../default_config.yaml")))
    )
    try:
        conf.update(
            yaml.safe_load(open(os.path.join(__dir__, "../config.yaml")))
        )
    except IOError:
        # Is ok if we can't load config.yaml
        pass

    return conf


def setup_logging(config):
    logging.basicConfig(
        level=config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s pid:%(process)d %(name)s %(message)s",
    )


def setup_context():
    g.conn = Connections(current_app.config)


def kill_context(exception=None):
    # Runs even when setup_context did not, e.g. for session_transaction
    conn = g.pop("conn", None)
    if conn is not None:
        conn.close_all()


def create_app(test_config=None):
    app = Flask(__name__)

    if test_config is None:
        app.config.update(get_config())
    else:
        app.config.from_mapping(test_config)

    setup_logging(app.config)

    app.register_blueprint(auth)
    app.register_blueprint(health_blueprint)
    app.register_blueprint(query_blueprint)
    app.register_blueprint(api_blueprint)

    if app.config.get("REDIS_HOST"):
        global_conn = Connections(app.config)
        app.session_interface = RedisSessionInterface(global_conn.redis)

    app.before_request(setup_context)
    app.teardown_request(kill_context)

    metrics_init_app(app)

    @app.cli.command("init-db")
    def init_db():
        """Create the catalog tables that do not exist yet."""
        Base.metadata.create_all(Connections(app.config).db_engine)

    return app


if __name__ == "__main__":
    application = create_app()
    application.run(port=5000, host="0.0.0.0")
