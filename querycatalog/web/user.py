from flask import session, g

from .models.serviceresult import ErrorCode, FailureResult
from .models.user import User
from .utils import result_response


def get_user():
    if 'user_id' in session:
        if not hasattr(g, '_user'):
            session.permanent = True
            g._user = g.conn.session.query(User).filter(User.id == session['user_id']).first()
        return g._user
    return None


def get_user_id():
    user = get_user()
    return user.id if user is not None else None


def unauthorized(message="Unauthorized"):
    return result_response(FailureResult(message, ErrorCode.UNAUTHORIZED))
