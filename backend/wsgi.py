# backend/wsgi.py
from paint_erp import create_app

app = create_app()
