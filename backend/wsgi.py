# backend/wsgi.py
from studiodesk import create_app

app = create_app()
