# backend/db.py
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy

# shared extension instances, bound in app.create_app()
db = SQLAlchemy()
migrate = Migrate()
