"""Database layer for detected subscriptions (SQLAlchemy).

Public exports
--------------
- ``Base`` and ``metadata`` for schema creation
- the ``Subscription`` ORM model
- engine/session helpers in ``recurring_charges.db.client``
"""

from __future__ import annotations

from .models import Base, Subscription

metadata = Base.metadata

__all__ = ["Base", "metadata", "Subscription"]
