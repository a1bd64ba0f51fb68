from sqlalchemy.orm import declarative_base

# Base class for ORM models (Incident, ScraperLog, ScoreRecord)
Base = declarative_base()
