from datetime import datetime, timezone
from typing import List, Optional

from flask_login import UserMixin, current_user
from flask_principal import Identity, RoleNeed, UserNeed, identity_loaded

from .. import app, login, mongo, principal

__all__ = ["User", "UserExistsError"]


class UserExistsError(Exception):
    """Raised when a user with the same username already exists."""

    pass


class User(UserMixin):
    """An account known to the application.

    Credentials are handled by the external identity provider; this only
    carries what authorization needs: a stable id and the roles.
    """

    ROLES = ["admin"]

    def __init__(
        self,
        username: str,
        email: str,
        roles: List[str],
        created_at: Optional[datetime] = None,
    ):
        self.username = username
        self.email = email
        self.roles = roles
        self.created_at = created_at

    @property
    def dict(self):
        return {
            "username": self.username,
            "email": self.email,
            "roles": self.roles,
            "created_at": self.created_at,
        }

    @property
    def id(self):
        return self.username

    @property
    def is_admin(self) -> bool:
        return "admin" in self.roles

    def save(self):
        """Save or update user in database"""
        mongo.db.users.update_one({"username": self.username}, {"$set": self.dict}, upsert=True)

    def delete(self):
        """Delete user from database"""
        mongo.db.users.delete_one({"username": self.username})

    @staticmethod
    def get(username):
        doc = mongo.db.users.find_one({"username": username})
        if not doc:
            return None
        return User(doc["username"], doc.get("email", ""), doc.get("roles", []), doc.get("created_at"))

    @staticmethod
    def create(username: str, email: str, roles: Optional[List[str]] = None):
        """Create a new user"""
        if User.get(username):
            raise UserExistsError("User with this username already exists")

        user = User(
            username=username,
            email=email,
            roles=roles if roles is not None else [],
            created_at=datetime.now(timezone.utc),
        )
        user.save()
        return user


login.user_loader(User.get)


@principal.identity_loader
def load_identity():
    # The session only carries the Flask-Login user id, the identity follows it.
    if current_user.is_authenticated:
        return Identity(current_user.id)
    return None


@identity_loaded.connect_via(app)
def on_identity_loaded(sender, identity):
    # Set the identity user object
    identity.user = current_user

    # Add the UserNeed to the identity
    if hasattr(current_user, "id"):
        identity.provides.add(UserNeed(current_user.id))

    # Add a RoleNeed for every role of the user
    if hasattr(current_user, "roles"):
        for role in current_user.roles:
            identity.provides.add(RoleNeed(role))
