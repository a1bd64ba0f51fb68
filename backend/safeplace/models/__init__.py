from safeplace.db.base import Base  # noqa
from safeplace.models.incident import Incident  # noqa
from safeplace.models.scraper_log import ScraperLog  # noqa
from safeplace.models.score_record import ScoreRecord  # noqa

__all__ = ["Base", "Incident", "ScraperLog", "ScoreRecord"]
