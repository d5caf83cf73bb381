import logging

from flask import Blueprint, current_app, request, session, redirect, g
from mwoauth import ConsumerToken, Handshaker, RequestToken
from .models.user import User

logger = logging.getLogger(__name__)

auth = Blueprint('auth', __name__)

oauth_token = None


@auth.record
def record_oauth_token(state):
    global oauth_token
    oauth_token = ConsumerToken(
        state.app.config['OAUTH_CONSUMER_TOKEN'],
        state.app.config['OAUTH_SECRET_TOKEN']
    )


def get_handshaker():
    return Handshaker(
        current_app.config.get('OAUTH_MW_URI', "https://meta.wikimedia.org/w/index.php"),
        oauth_token
    )


@auth.route("/login")
def login():
    redirect_url, request_token = get_handshaker().initiate()
    session['request_token'] = request_token
    session['return_to_url'] = request.args.get('next', '/')
    return redirect(redirect_url)


@auth.route("/oauth-callback")
def oauth_callback():
    handshaker = get_handshaker()
    # Sessions store the token as a plain JSON list
    request_token = RequestToken(*session['request_token'])
    access_token = handshaker.complete(request_token, request.query_string)
    identity = handshaker.identify(access_token)
    wiki_uid = identity['sub']
    user = g.conn.session.query(User).filter(User.wiki_uid == wiki_uid).first()
    if user is None:
        user = User(username=identity['username'], wiki_uid=wiki_uid, stars=0, forks=0)
        g.conn.session.add(user)
        g.conn.session.commit()
        logger.info("Registered user:%s on first login", user.id)
    session['user_id'] = user.id
    return_to_url = session.get('return_to_url', '/')
    session.pop('request_token', None)
    session.pop('return_to_url', None)
    return redirect(return_to_url)


@auth.route("/logout")
def logout():
    session.clear()
    return redirect("/")
