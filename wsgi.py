"""WSGI entry point for Gunicorn (gunicorn wsgi:app)."""
import os
import sys

# Make the project root importable when started from another directory
sys.path.insert(0, os.path.dirname(__file__))

from app import create_app

app = create_app(os.getenv('BARBERPRO_CONFIG', 'config.Config'))

if __name__ == "__main__":
    app.run()
