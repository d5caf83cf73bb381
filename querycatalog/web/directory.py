from sqlalchemy import update

from .models.user import User, UserGroup
from .store import clamped_increment


class UserDirectory(object):
    """The small part of the user table the catalog is allowed to touch."""
    def __init__(self, session):
        self.session = session

    def get(self, user_id):
        return self.session.get(User, user_id)

    def increment(self, user_id, field, amount):
        """Atomically add amount to the user's stars or forks, floored at zero."""
        if field not in ('stars', 'forks'):
            raise ValueError("Not a counter field: %s" % field)
        self.session.execute(
            update(User)
            .where(User.id == user_id)
            .values({field: clamped_increment(getattr(User, field), amount)}),
            execution_options={"synchronize_session": False},
        )
        self.session.commit()

    def in_group(self, user_id, group_name):
        return self.session.query(UserGroup) \
            .filter(UserGroup.user_id == user_id) \
            .filter(UserGroup.group_name == group_name) \
            .first() is not None
