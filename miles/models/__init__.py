# miles/models/__init__.py
# Miles — Database Models
# Import all models here for SQLAlchemy discovery

from miles.models.event import Event   # noqa
