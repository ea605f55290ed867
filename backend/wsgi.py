# backend/wsgi.py
# FLASK_APP=wsgi.py; python -m flask run / python -m flask <group> <command>
from pharmapos import create_app

app = create_app()
