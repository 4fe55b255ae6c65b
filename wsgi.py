"""
WSGI entry point for the TurnoFácil scheduling API

    gunicorn --config gunicorn_config.py wsgi:app
"""
import os

from turnofacil import create_app

app = create_app(os.environ.setdefault('FLASK_ENV', 'production'))
application = app

if __name__ == "__main__":
    # Local runs only; deployments go through gunicorn
    app.run(host='127.0.0.1', port=int(os.getenv('PORT', '5000')))
