# backend/wsgi.py
from cashbook import create_app

app = create_app()
