"""Create all tables. Run on app startup."""
import logging

from sqlalchemy.engine import Engine

from shopbill.db.base import Base
from shopbill.db.session import engine as default_engine
from shopbill.models import business, shop, customer, product, invoice, idempotency  # noqa: F401 - register models

logger = logging.getLogger(__name__)


def init_db(bind: Engine = None):
    bind = bind or default_engine
    Base.metadata.create_all(bind=bind)
    logger.info(f"[DB] Tables ready on {bind.url.render_as_string(hide_password=True)}")
