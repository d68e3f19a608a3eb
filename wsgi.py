# wsgi.py
# gunicorn: `gunicorn wsgi:app` (APP_ENV picks the config class)
import os

from app import create_app
from config import config_for

app = create_app(config_for(os.getenv("APP_ENV")))

if __name__ == "__main__":
    port = int(os.getenv("PORT", "8080"))
    # Flask-SocketIO registers itself under app.extensions
    app.extensions["socketio"].run(app, host="0.0.0.0", port=port)
