"""
WSGI entry point — `gunicorn wsgi:app`.

Settings come from the environment; startup fails fast when a required
variable is missing.
"""
from factor_relay import create_app

app = create_app()

if __name__ == '__main__':
    import os
    app.run(host='0.0.0.0', port=int(os.getenv('PORT', 3000)))
