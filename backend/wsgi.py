# backend/wsgi.py
from cstore import create_app

app = create_app()
