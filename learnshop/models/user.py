# learnshop/models/user.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class User(SQLModel, table=True):
    """
    Local mirror of an identity issued by the identity provider.

    Identity:
      - id: MUST match the token "sub" claim (UUID)

    Role:
      - "user" | "admin"
      - guests have no row; their carts are keyed by a guest token.

    Credentials never live here; the identity provider owns them.
    """

    __tablename__ = "users"

    id: uuid.UUID = Field(
        primary_key=True,
        index=True,
        description="Matches the token 'sub' claim",
    )

    email: str = Field(
        unique=True,
        index=True,
    )

    name: str = Field(
        max_length=100,
        description="Display name; first part of email by default",
    )

    # Application role, used for admin-only routes
    role: str = Field(
        default="user",
        index=True,
        description="Application role: user | admin",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
