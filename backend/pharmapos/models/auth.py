from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


class User(db.Model):
    """
    Staff account used for attribution of sales and stock receipts.

    Authentication itself happens at an external provider; AuthUserID is the
    identity it issues, and sales arrive carrying that id.
    """
    __tablename__ = "User"
    __table_args__ = (
        db.UniqueConstraint("Username", name="uq_user_username"),
        db.UniqueConstraint("AuthUserID", name="uq_user_auth_user_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column("UserID", db.Integer, primary_key=True)
    auth_user_id = db.Column("AuthUserID", db.String(64), nullable=True)

    username = db.Column("Username", db.String(64), nullable=False)
    first_name = db.Column("FirstName", db.String(128), nullable=False)
    last_name = db.Column("LastName", db.String(128), nullable=False)
    email = db.Column("Email", db.String(255), nullable=True)
    role = db.Column(
        "Roles",
        db.Enum("Admin", "Pharmacist", "Cashier", name="Roles"),
        nullable=False,
        default="Admin",
    )

    is_active = db.Column("IsActive", db.Boolean, nullable=False, default=True)
    created_at = db.Column("CreatedAt", db.DateTime, nullable=False, default=utcnow)

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username!r}>"

    def to_dict(self) -> dict:
        return {
            "UserID": self.id,
            "AuthUserID": self.auth_user_id,
            "Username": self.username,
            "FirstName": self.first_name,
            "LastName": self.last_name,
            "Email": self.email,
            "Roles": self.role,
            "IsActive": self.is_active,
            "CreatedAt": to_utc_z(self.created_at),
        }
