# backend/toolforge/models/base.py
from sqlalchemy.orm import declarative_base

# Declarative base for the tables the application itself owns. Migrations are
# generated from Base.metadata; the application talks to these tables through
# the Supabase query API, not through SQLAlchemy sessions.
Base = declarative_base()
