"""txinsight data — SQLAlchemy base, datasource and transaction boundary."""

from txinsight.data.entity import Base
from txinsight.data.transactional import Propagation, current_session, session_scope, transactional

__all__ = ["Base", "Propagation", "current_session", "session_scope", "transactional"]
