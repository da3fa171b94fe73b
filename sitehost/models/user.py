"""User model.

Owner identity for hosted sites. Credentials are issued elsewhere; this
table only gives sites.owner_id a referent and lets the API token
loader hand Flask-Login a user object.
"""

import uuid

from flask_login import UserMixin

from sitehost.extensions import db


class User(UserMixin, db.Model):
    __tablename__ = "users"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password_hash = db.Column("password", db.String(255), nullable=False)
    avatar = db.Column(db.Text, nullable=True)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    def __repr__(self):
        return f"<User {self.email}>"
