"""
WSGI entry point for the link-page service
"""
import eventlet
eventlet.monkey_patch()

from dotenv import load_dotenv  # noqa: E402

load_dotenv()

from linkpage.factory import create_app  # noqa: E402
from linkpage.realtime import socketio  # noqa: E402
from linkpage.tasks import start_background_tasks  # noqa: E402

app = create_app()
start_background_tasks(app)

# Gunicorn/uWSGI compatibility (eventlet worker)
application = app

if __name__ == "__main__":
    cfg = app.config["APP_CONFIG"]
    socketio.run(app, host=cfg["APP_HOST"], port=cfg["APP_PORT"], debug=cfg["FLASK_DEBUG"])
