from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy

from paperflow.services.object_store import LocalObjectStore

db = SQLAlchemy()
migrate = Migrate()
object_store = LocalObjectStore()
