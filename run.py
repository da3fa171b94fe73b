"""Local development entry point.

Usage:
    python run.py

Then browse http://localhost:5001/ for the API, or
http://<slug>.lvh.me:5001/ for a hosted site (lvh.me resolves every
sub-domain to 127.0.0.1).
"""

from dotenv import load_dotenv

load_dotenv()  # Load .env before anything else

from sitehost import create_app

app = create_app()

if __name__ == "__main__":
    try:
        app.run(debug=True, host="0.0.0.0", port=5001, threaded=True)
    finally:
        app.extensions["persistence"].dispose()
