from . import leaderboard_repo
from .attempt_store import SqlAttemptStore, SqlStoreTransaction
from .catalog import SqlQuestionCatalog

__all__ = ["leaderboard_repo", "SqlAttemptStore", "SqlStoreTransaction", "SqlQuestionCatalog"]
