from sqlalchemy import Column, String, Boolean, DateTime
from datetime import datetime
from database import Base


class User(Base):
    """
    Subscription record for one user inside one application scope.
    Single-tenant deployments store every row under the default app id.
    """
    __tablename__ = "users"

    app_id = Column(String, primary_key=True)
    id = Column(String, primary_key=True)
    email = Column(String, nullable=True)
    is_subscribed = Column(Boolean, default=False, nullable=False)
    payment_status = Column(String, nullable=True)
    last_payment_date = Column(DateTime, nullable=True)
    stripe_session_id = Column(String, nullable=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
