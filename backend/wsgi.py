# backend/wsgi.py
# Entry point for the flask CLI: set FLASK_APP=wsgi.py and run from the backend directory.
from stockledger import create_app

app = create_app()
